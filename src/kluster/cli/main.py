"""Main CLI entry point."""

from __future__ import annotations

import typer
from rich.console import Console

from kluster._logging import setup_logging
from kluster._version import __version__
from kluster.cli import agent, cluster, config, job

app = typer.Typer(
    name="kluster",
    help="Kluster CLI - manage clusters, agents and jobs.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(cluster.app, name="cluster", help="Cluster management")
app.add_typer(job.app, name="job", help="Agent jobs")
app.add_typer(agent.app, name="agent", help="Agents")
app.add_typer(config.app, name="config", help="Configuration management")


@app.command()
def version() -> None:
    """Show version information."""
    console.print(f"kluster-sdk version {__version__}")


@app.callback()
def main(
    ctx: typer.Context,
    json_output: bool = typer.Option(
        False,
        "--json",
        "-j",
        help="Output in JSON format",
        is_eager=True,
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Log requests and every poll sample",
        envvar="KLUSTER_DEBUG",
    ),
) -> None:
    """Kluster CLI - manage clusters, agents and jobs."""
    ctx.ensure_object(dict)
    ctx.obj["json"] = json_output
    setup_logging(debug=debug)


if __name__ == "__main__":
    app()
