"""
Rich terminal output utilities for the soaproxy CLI.

Provides tables, trees and syntax highlighted code, with a plain text mode
for ``--no-rich`` and for output that is piped into other tools.
"""

from typing import Dict, List, Optional, Union

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.tree import Tree


class RichOutputManager:
    """Manages rich terminal output with a plain text mode."""

    def __init__(self, use_rich: bool = True):
        """Initialize the output manager."""
        self.use_rich = use_rich
        if use_rich:
            self.console = Console()
        else:
            self.console = Console(markup=False, highlight=False, no_color=True, soft_wrap=True)

    def print_header(self, title: str, subtitle: Optional[str] = None) -> None:
        """Print a formatted header."""
        if self.use_rich:
            if subtitle:
                header_text = f"[bold blue]{escape(title)}[/bold blue]\n[dim]{escape(subtitle)}[/dim]"
            else:
                header_text = f"[bold blue]{escape(title)}[/bold blue]"

            self.console.print(Panel(header_text, border_style="blue", padding=(1, 2)))
        else:
            self.console.print(f"\n=== {title} ===")
            if subtitle:
                self.console.print(f"{subtitle}")
            self.console.print()

    def print_section(self, title: str) -> None:
        """Print a section separator."""
        if self.use_rich:
            self.console.rule(f"[bold]{escape(title)}[/bold]", style="blue")
        else:
            self.console.print(f"\n--- {title} ---")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        if self.use_rich:
            self.console.print(f"[green]✓[/green] {escape(message)}")
        else:
            self.console.print(f"✓ {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        if self.use_rich:
            self.console.print(f"[yellow]⚠[/yellow] {escape(message)}")
        else:
            self.console.print(f"⚠ {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        if self.use_rich:
            self.console.print(f"[blue]ℹ[/blue] {escape(message)}")
        else:
            self.console.print(f"ℹ {message}")

    def print_text(self, text: str) -> None:
        if self.use_rich:
            self.console.print(escape(text))
        else:
            self.console.print(text)

    def create_table(self, title: str, columns: List[str]) -> Union[Table, Dict]:
        """Create a rich table."""
        if self.use_rich:
            table = Table(title=title, show_header=True, header_style="bold blue")
            for column in columns:
                table.add_column(column)
            return table
        else:
            return {"title": title, "columns": columns, "rows": []}

    def add_table_row(self, table: Union[Table, Dict], *values) -> None:
        """Add a row to the table."""
        if isinstance(table, Table):
            table.add_row(*[escape(str(v)) for v in values])
        else:
            table["rows"].append(values)

    def print_table(self, table: Union[Table, Dict]) -> None:
        """Print the table."""
        if isinstance(table, Table):
            self.console.print(table)
            return

        self.console.print(f"\n{table['title']}")
        self.console.print("-" * len(table["title"]))

        header = " | ".join(table["columns"])
        self.console.print(header)
        self.console.print("-" * len(header))

        for row in table["rows"]:
            self.console.print(" | ".join(str(v) for v in row))
        self.console.print()

    def create_tree(self, title: str) -> Union[Tree, Dict]:
        """Create a tree structure."""
        if self.use_rich:
            return Tree(escape(title))
        else:
            return {"title": title, "children": []}

    def add_tree_node(
        self,
        tree: Union[Tree, Dict],
        label: str,
        parent: Optional[Union[Tree, Dict]] = None,
    ) -> Union[Tree, Dict]:
        """Add a node to the tree."""
        target = tree if parent is None else parent
        if isinstance(target, Tree):
            return target.add(escape(label))
        node = {"label": label, "children": []}
        target["children"].append(node)
        return node

    def print_tree(self, tree: Union[Tree, Dict]) -> None:
        """Print the tree."""
        if isinstance(tree, Tree):
            self.console.print(tree)
        else:
            self._print_tree_fallback(tree, 0)

    def _print_tree_fallback(self, node: Dict, indent: int) -> None:
        """Print tree in plain mode."""
        prefix = "  " * indent
        if indent == 0:
            self.console.print(f"{node['title']}")
        else:
            self.console.print(f"{prefix}├── {node['label']}")

        for child in node.get("children", []):
            self._print_tree_fallback(child, indent + 1)

    def print_code(self, code: str, language: str = "cpp", title: Optional[str] = None) -> None:
        """Print code with syntax highlighting."""
        if title:
            self.print_section(title)

        if self.use_rich:
            self.console.print(Syntax(code, language, theme="monokai", line_numbers=True))
        else:
            self.console.print(code)


# Global instance
rich_output = RichOutputManager()


def set_rich_enabled(enabled: bool) -> None:
    """Enable or disable rich output globally."""
    global rich_output
    rich_output = RichOutputManager(use_rich=enabled)


def get_rich_output() -> RichOutputManager:
    """Get the global rich output manager."""
    return rich_output
