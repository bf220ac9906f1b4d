"""Configuration CLI commands."""

from __future__ import annotations

import dataclasses
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from kluster import _config
from kluster._config import KlusterConfig, get_config_value, set_config_value

app = typer.Typer(help="Configuration management.")
console = Console()

SECRET_KEYS = {"token"}


def _mask(value: str) -> str:
    return value[:8] + "..." + value[-4:] if len(value) > 12 else "***"


def _shown(key: str, value: Any) -> str:
    if value is None or value == "":
        return "[dim]not set[/dim]"
    if key in SECRET_KEYS:
        return _mask(str(value))
    return str(value)


def _coerce(value: str) -> str | bool | int | float:
    """Interpret a command line value as bool, int or float where it looks like one."""
    if value.lower() in ("true", "false"):
        return value.lower() == "true"
    if not any(c.isdigit() for c in value):
        return value
    for kind in (int, float):
        try:
            return kind(value)
        except ValueError:
            continue
    return value


@app.command("get")
def get(
    key: str = typer.Argument(..., help="Configuration key, e.g. url or polling.poll_interval"),
) -> None:
    """Get a configuration value from the config file.

    Example:
        kluster config get url
    """
    value = get_config_value(key)
    if value is None:
        console.print(f"[dim]No value set for '{key}'[/dim]")
        return
    console.print(_shown(key, value))


@app.command("set")
def set_value(
    key: str = typer.Argument(..., help="Configuration key"),
    value: str = typer.Argument(..., help="Configuration value"),
) -> None:
    """Set a configuration value.

    Example:
        kluster config set url https://kubernikus.example.com
        kluster config set polling.poll_interval 5
    """
    set_config_value(key, _coerce(value))
    console.print(f"[green]Set {key} = {_shown(key, value)}[/green]")


@app.command("list")
def list_config() -> None:
    """List the effective configuration (environment, file and defaults)."""
    config = KlusterConfig.load()

    table = Table(title="Current Configuration", show_header=True, header_style="bold")
    table.add_column("Key")
    table.add_column("Value")

    for field in dataclasses.fields(config):
        if field.name == "polling":
            continue
        key = "url" if field.name == "base_url" else field.name
        table.add_row(key, _shown(key, getattr(config, field.name)))
    for field in dataclasses.fields(config.polling):
        table.add_row(f"polling.{field.name}", _shown(field.name, getattr(config.polling, field.name)))

    console.print(table)
    console.print(f"\n[dim]Config file: {_config.CONFIG_FILE}[/dim]")


@app.command("path")
def show_path() -> None:
    """Show configuration file path."""
    console.print(str(_config.CONFIG_FILE))
