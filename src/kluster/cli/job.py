"""Job CLI commands."""

from __future__ import annotations

import sys

import typer
from rich.console import Console

from kluster.cli._utils import (
    colored,
    get_client,
    get_json_flag,
    handle_error,
    output_json,
    output_table,
)

app = typer.Typer(help="Agent job commands.")
console = Console()


@app.command("list")
def list_jobs(
    ctx: typer.Context,
    agent_id: str | None = typer.Option(None, "--agent-id", "-a", help="Filter by agent ID"),
    agent: str = typer.Option("", "--agent", help="Filter by agent type, e.g. execute"),
    action: str = typer.Option("", "--action", help="Filter by action"),
    status: str = typer.Option(
        "",
        "--status",
        "-s",
        help="Filter by status (queued, executing, failed, complete)",
    ),
    timeout: int = typer.Option(0, "--timeout", help="Filter by job timeout"),
) -> None:
    """List jobs."""
    try:
        client = get_client()
        jobs = client.jobs.list(
            agent_id=agent_id,
            timeout=timeout,
            agent=agent,
            action=action,
            status=status,
        )

        if get_json_flag(ctx):
            output_json(jobs)
        elif not jobs:
            console.print("[dim]No jobs found.[/dim]")
        else:
            output_table(
                jobs,
                columns=[
                    ("request_id", "ID"),
                    ("to", "Agent ID"),
                    ("agent", "Agent"),
                    ("action", "Action"),
                    ("status", "Status"),
                    ("created_at", "Created"),
                ],
                title="Jobs",
            )

    except Exception as e:
        handle_error(e)


@app.command("show")
def show(
    ctx: typer.Context,
    request_id: str = typer.Argument(..., help="Job request ID"),
) -> None:
    """Show job details."""
    try:
        client = get_client()
        job = client.jobs.get(request_id)

        if get_json_flag(ctx):
            output_json(job)
            return

        console.print(f"[bold]Job: {job.request_id}[/bold]")
        console.print(f"  Status: {colored(job.status)}")
        console.print(f"  Agent ID: {job.to or '-'}")
        console.print(f"  Action: {job.agent}/{job.action}")
        console.print(f"  Timeout: {job.timeout}s")
        if job.created_at:
            console.print(f"  Created: {job.created_at}")
        if job.user:
            console.print(f"  User: {job.user.name} ({job.user.domain_name})")

    except Exception as e:
        handle_error(e)


@app.command("wait")
def wait(
    ctx: typer.Context,
    request_id: str = typer.Argument(..., help="Job request ID"),
    timeout: float = typer.Option(3600, "--timeout", "-t", help="Timeout in seconds (0 = check once)"),
) -> None:
    """Wait for a job to complete."""
    try:
        client = get_client()
        with console.status(f"Waiting for job {request_id}..."):
            job = client.jobs.wait_for(request_id, timeout=timeout)

        if get_json_flag(ctx):
            output_json(job)
        else:
            console.print(f"[green]Job {request_id} is complete[/green]")

    except Exception as e:
        handle_error(e)


@app.command("log")
def log(
    request_id: str = typer.Argument(..., help="Job request ID"),
) -> None:
    """Print a job's log."""
    try:
        client = get_client()
        sys.stdout.buffer.write(client.jobs.get_log(request_id))
        sys.stdout.flush()

    except Exception as e:
        handle_error(e)
