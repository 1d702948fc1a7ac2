"""
Command-line interface for soaproxy

Provides CLI access to analysis and transformation of C++ files with rich
terminal output.
"""

import argparse
import sys
import logging
from typing import List, Optional

from soaproxy import __version__
from soaproxy.api import SoaProxy
from soaproxy.cli.commands import cmd_analyze, cmd_config, cmd_transform
from soaproxy.cli.rich_output import set_rich_enabled
from soaproxy.config import SoaProxyConfig, load_config

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _source_options() -> argparse.ArgumentParser:
    """Options shared by the commands that parse a C++ file."""
    parent = argparse.ArgumentParser(add_help=False)
    parent.add_argument("path", help="C++ source file to process")
    parent.add_argument(
        "--containers",
        nargs="+",
        metavar="NAME",
        help="Container class templates to track (default from config: std::vector)",
    )
    parent.add_argument(
        "--clang-arg",
        dest="clang_args",
        action="append",
        default=[],
        metavar="ARG",
        help="Extra argument passed to clang, written as --clang-arg=-DFOO (repeatable)",
    )
    parent.add_argument(
        "-I",
        dest="include_paths",
        action="append",
        default=[],
        metavar="DIR",
        help="Add an include search path (repeatable)",
    )
    parent.add_argument(
        "--format",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    return parent


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="soaproxy",
        description="soaproxy - structure-of-arrays proxy generation for C++ value classes",
        epilog='Use "soaproxy <command> --help" for detailed command help.',
    )

    # Global options
    parser.add_argument("--config", "-c", type=str, help="Path to configuration file")

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output and debug logging",
    )

    parser.add_argument(
        "--no-rich",
        action="store_true",
        help="Disable rich terminal output (use plain text)",
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")
    source_options = _source_options()

    subparsers.add_parser(
        "analyze",
        parents=[source_options],
        help="Report which element classes of tracked containers can get a proxy",
    )

    transform_parser = subparsers.add_parser(
        "transform",
        parents=[source_options],
        help="Generate proxy headers and patch the original classes",
    )
    transform_parser.add_argument(
        "--output", "-o", help="Output directory (default: next to the input file)"
    )
    transform_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the results instead of writing them",
    )

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_action", required=True)

    show_parser = config_subparsers.add_parser("show", help="Show the effective configuration")
    show_parser.add_argument(
        "--format", choices=["text", "json"], default="text", help="Output format"
    )

    init_parser = config_subparsers.add_parser("init", help="Write a default configuration file")
    init_parser.add_argument(
        "path", nargs="?", default="soaproxy.yaml", help="Configuration file to create"
    )
    init_parser.add_argument(
        "--format", choices=["yaml", "json"], default="yaml", help="File format"
    )

    return parser


def apply_overrides(config: SoaProxyConfig, args) -> SoaProxyConfig:
    """Fold command-line parse options into the loaded configuration."""
    config.parse_settings.clang_args.extend(getattr(args, "clang_args", None) or [])
    config.parse_settings.include_paths.extend(getattr(args, "include_paths", None) or [])
    return config


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    setup_logging(getattr(args, "verbose", False))
    set_rich_enabled(not getattr(args, "no_rich", False))

    try:
        if args.command == "config":
            cmd_config(args)
            return

        config = apply_overrides(load_config(getattr(args, "config", None)), args)
        soaproxy = SoaProxy(config)

        if args.command == "analyze":
            cmd_analyze(args, soaproxy)
        elif args.command == "transform":
            cmd_transform(args, soaproxy)

    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if getattr(args, "verbose", False):
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
