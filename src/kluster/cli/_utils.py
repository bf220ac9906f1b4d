"""CLI utilities."""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from kluster._poller import as_label
from kluster.client import KlusterClient
from kluster.exceptions import AuthenticationError, KlusterError, WaitTimeoutError

console = Console()
error_console = Console(stderr=True)


def get_client() -> KlusterClient:
    """Get an authenticated KlusterClient from environment and config file."""
    try:
        return KlusterClient()
    except AuthenticationError as e:
        error_console.print(f"[red]Authentication error:[/red] {e}")
        error_console.print("\nTo authenticate, run:")
        error_console.print("  kluster config set token <token>")
        raise typer.Exit(1) from None


def output_json(data: Any) -> None:
    """Output data as JSON."""
    if hasattr(data, "model_dump"):
        data = data.model_dump(mode="json")
    elif isinstance(data, list) and data and hasattr(data[0], "model_dump"):
        data = [item.model_dump(mode="json") for item in data]

    console.print_json(json.dumps(data, default=str))


def output_table(
    data: list[Any],
    columns: list[tuple[str, str]],
    title: str | None = None,
) -> None:
    """Output data as a Rich table.

    Args:
        data: List of objects
        columns: List of (field_path, header) tuples; dotted paths reach into
            nested models, e.g. ``status.phase``
        title: Optional table title
    """
    table = Table(title=title, show_header=True, header_style="bold")

    for _, header in columns:
        table.add_column(header)

    for item in data:
        table.add_row(*(_cell(_lookup(item, path)) for path, _ in columns))

    console.print(table)


def _cell(value: Any) -> str:
    if value is None or value == "":
        return "-"
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
    return as_label(value)


def _lookup(item: Any, path: str) -> Any:
    value = item
    for part in path.split("."):
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, None)
        if value is None:
            return None
    return value


def handle_error(e: Exception) -> None:
    """Handle and display an error."""
    if isinstance(e, WaitTimeoutError):
        error_console.print(f"[yellow]Timed out:[/yellow] {e.message}")
    elif isinstance(e, KlusterError):
        error_console.print(f"[red]Error:[/red] {e.message}")
    else:
        error_console.print(f"[red]Error:[/red] {e}")

    raise typer.Exit(1)


def confirm_action(message: str, default: bool = False) -> bool:
    """Prompt user for confirmation."""
    return typer.confirm(message, default=default)


def get_json_flag(ctx: typer.Context) -> bool:
    """Get JSON output flag from context."""
    return ctx.obj.get("json", False) if ctx.obj else False


PHASE_COLORS = {
    "Running": "green",
    "complete": "green",
    "active": "green",
    "Pending": "dim",
    "queued": "dim",
    "Creating": "blue",
    "executing": "blue",
    "Upgrading": "blue",
    "Terminating": "yellow",
    "Terminated": "yellow",
    "failed": "red",
}


def colored(label: Any) -> str:
    """Wrap a status label in its Rich color markup."""
    label = as_label(label)
    color = PHASE_COLORS.get(label, "white")
    return f"[{color}]{label}[/{color}]"
