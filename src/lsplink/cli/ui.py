"""
Terminal UI utilities using Rich.

Provides:
- Colored status output
- Diagnostics and server tables
- JSON result display
"""

import json
from typing import Any, Dict, List

from rich.console import Console
from rich.table import Table

# Global console instance
console = Console()

SEVERITY_NAMES = {1: "error", 2: "warning", 3: "info", 4: "hint"}
SEVERITY_STYLES = {1: "red", 2: "yellow", 3: "cyan", 4: "dim"}


def print_success(message: str) -> None:
    console.print(f"[bold green]✓ {message}[/bold green]")


def print_warning(message: str) -> None:
    console.print(f"[bold yellow]! {message}[/bold yellow]")


def print_error(message: str) -> None:
    console.print(f"[bold red]✗ {message}[/bold red]")


def print_server_log(message: str) -> None:
    """Print a line of server output"""
    console.print(message, style="dim", markup=False, highlight=False)


def show_diagnostics(diagnostics_by_uri: Dict[str, List[Any]]) -> None:
    """
    Display published diagnostics as a table.

    Args:
        diagnostics_by_uri: Latest diagnostics array per document URI
    """
    if not any(diagnostics_by_uri.values()):
        console.print("[dim]No diagnostics published[/dim]")
        return

    table = Table(title="Diagnostics")

    table.add_column("Document", style="cyan")
    table.add_column("Line", style="dim", justify="right")
    table.add_column("Severity")
    table.add_column("Message", style="white")

    for uri, diagnostics in diagnostics_by_uri.items():
        for diagnostic in diagnostics:
            if not isinstance(diagnostic, dict):
                continue
            start = diagnostic.get("range", {}).get("start", {})
            line = start.get("line")
            severity = diagnostic.get("severity")
            style = SEVERITY_STYLES.get(severity, "white")
            table.add_row(
                uri,
                str(line + 1) if isinstance(line, int) else "",
                f"[{style}]{SEVERITY_NAMES.get(severity, '-')}[/{style}]",
                str(diagnostic.get("message", "")),
            )

    console.print(table)


def show_servers(servers: Dict[str, Any], availability: Dict[str, bool]) -> None:
    """
    Display configured language servers.

    Args:
        servers: Language -> LSPServerConfig
        availability: Language -> whether the command is on PATH
    """
    table = Table(title="Language Servers")

    table.add_column("Language", style="cyan", no_wrap=True)
    table.add_column("Command", style="white")
    table.add_column("Extensions", style="dim")
    table.add_column("Available")

    for language, config in servers.items():
        available = availability.get(language, False)
        table.add_row(
            language,
            " ".join(config.argv),
            ", ".join(config.extensions),
            "[green]✓ Yes[/green]" if available else "[red]✗ No[/red]",
        )

    console.print(table)


def show_result(result: Any) -> None:
    """Print a request result as JSON"""
    console.print_json(json.dumps(result))
