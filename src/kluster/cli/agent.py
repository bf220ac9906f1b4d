"""Agent CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console

from kluster.cli._utils import (
    get_client,
    get_json_flag,
    handle_error,
    output_json,
    output_table,
)

app = typer.Typer(help="Agent commands.")
console = Console()


@app.command("list")
def list_agents(
    ctx: typer.Context,
    filter: str | None = typer.Option(None, "--filter", "-f", help="Filter expression"),
) -> None:
    """List agents."""
    try:
        client = get_client()
        agents = client.agents.list(filter=filter)

        if get_json_flag(ctx):
            output_json(agents)
        elif not agents:
            console.print("[dim]No agents found.[/dim]")
        else:
            output_table(
                agents,
                columns=[
                    ("agent_id", "ID"),
                    ("display_name", "Name"),
                    ("project", "Project"),
                    ("updated_at", "Updated"),
                ],
                title="Agents",
            )

    except Exception as e:
        handle_error(e)


@app.command("show")
def show(
    ctx: typer.Context,
    agent_id: str = typer.Argument(..., help="Agent ID"),
) -> None:
    """Show agent details, including facts."""
    try:
        client = get_client()
        agent = client.agents.read(client.agents.get(agent_id))

        if get_json_flag(ctx):
            output_json(agent)
            return

        console.print(f"[bold]Agent: {agent.agent_id}[/bold]")
        console.print(f"  Name: {agent.display_name or '-'}")
        console.print(f"  Project: {agent.project or '-'}")
        if agent.tags:
            console.print("\n  Tags:")
            for k, v in agent.tags.items():
                console.print(f"    {k}: {v}")
        if agent.facts:
            console.print("\n  Facts:")
            for k, v in sorted(agent.facts.items()):
                console.print(f"    {k}: {v}")

    except Exception as e:
        handle_error(e)


@app.command("wait")
def wait(
    ctx: typer.Context,
    agent_id: str = typer.Argument("", help="Agent ID"),
    filter: str | None = typer.Option(None, "--filter", "-f", help="Filter expression"),
    timeout: float = typer.Option(0, "--timeout", "-t", help="Timeout in seconds (0 = check once)"),
) -> None:
    """Wait for an agent to register.

    Example:
        kluster agent wait --filter "@metadata_name = 'web-1'" --timeout 300
    """
    try:
        client = get_client()
        with console.status("Waiting for agent..."):
            agent = client.agents.wait_for(agent_id, filter=filter, timeout=timeout)

        if get_json_flag(ctx):
            output_json(agent)
        else:
            console.print(f"[green]Agent {agent.agent_id} is active[/green]")

    except Exception as e:
        handle_error(e)
