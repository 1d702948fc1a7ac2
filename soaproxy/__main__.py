"""Allow ``python -m soaproxy``."""

from .cli_entry import main

if __name__ == "__main__":
    main()
