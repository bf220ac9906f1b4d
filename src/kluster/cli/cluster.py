"""Cluster CLI commands."""

from __future__ import annotations

import typer
from rich.console import Console

from kluster.cli._utils import (
    colored,
    confirm_action,
    get_client,
    get_json_flag,
    handle_error,
    output_json,
    output_table,
)
from kluster.models.cluster import ClusterPhase
from kluster.resources.clusters import DELETE_PENDING, UPDATE_PENDING

app = typer.Typer(help="Kubernetes cluster commands.")
console = Console()


@app.command("list")
def list_clusters(ctx: typer.Context) -> None:
    """List clusters."""
    try:
        client = get_client()
        clusters = client.clusters.list()

        if get_json_flag(ctx):
            output_json(clusters)
        elif not clusters:
            console.print("[dim]No clusters found.[/dim]")
        else:
            output_table(
                clusters,
                columns=[
                    ("name", "Name"),
                    ("status.phase", "Phase"),
                    ("spec.version", "Version"),
                    ("status.apiserver_version", "API Server"),
                ],
                title="Clusters",
            )

    except Exception as e:
        handle_error(e)


@app.command("show")
def show(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
) -> None:
    """Show cluster details."""
    try:
        client = get_client()
        cluster = client.clusters.get(name)

        if get_json_flag(ctx):
            output_json(cluster)
            return

        console.print(f"[bold]Cluster: {cluster.name}[/bold]")
        console.print(f"  Phase: {colored(cluster.status.phase)}")
        console.print(f"  Version: {cluster.spec.version or '-'}")
        console.print(f"  API server version: {cluster.status.apiserver_version or '-'}")
        if cluster.status.apiserver:
            console.print(f"  API server: {cluster.status.apiserver}")

        reported = {p.name: p for p in cluster.status.node_pools}
        if cluster.spec.node_pools:
            console.print("\n  Node pools:")
            for pool in cluster.spec.node_pools:
                observed = reported.get(pool.name)
                healthy = observed.healthy if observed else 0
                zone = pool.availability_zone or "-"
                console.print(
                    f"    - {pool.name}: {pool.flavor} x{pool.size} "
                    f"({healthy} healthy, zone {zone})"
                )

    except Exception as e:
        handle_error(e)


@app.command("events")
def events(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
) -> None:
    """Show cluster events, oldest first."""
    try:
        client = get_client()
        items = client.clusters.get_events(name)

        if get_json_flag(ctx):
            output_json(items)
        elif not items:
            console.print("[dim]No events found.[/dim]")
        else:
            output_table(
                items,
                columns=[
                    ("last_timestamp", "Last Seen"),
                    ("type", "Type"),
                    ("reason", "Reason"),
                    ("message", "Message"),
                ],
                title=f"Events for {name}",
            )

    except Exception as e:
        handle_error(e)


@app.command("wait")
def wait(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Cluster name"),
    target: ClusterPhase = typer.Option(
        ClusterPhase.RUNNING,
        "--for",
        help="Phase to wait for",
        case_sensitive=False,
    ),
    timeout: float = typer.Option(1800, "--timeout", "-t", help="Timeout in seconds (0 = check once)"),
) -> None:
    """Wait for a cluster to reach a phase.

    Example:
        kluster cluster wait demo --for Running --timeout 600
    """
    try:
        client = get_client()
        removing = target == ClusterPhase.TERMINATED
        with console.status(f"Waiting for {name} to become {target.value}..."):
            cluster = client.clusters.wait_for(
                name,
                target,
                DELETE_PENDING if removing else UPDATE_PENDING,
                timeout=timeout,
            )

        if get_json_flag(ctx):
            output_json(cluster)
        else:
            console.print(f"[green]Cluster {name} is {target.value}[/green]")

    except Exception as e:
        handle_error(e)


@app.command("delete")
def delete(
    name: str = typer.Argument(..., help="Cluster name"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
    no_wait: bool = typer.Option(False, "--no-wait", help="Return once deletion is accepted"),
    timeout: float = typer.Option(600, "--timeout", "-t", help="Timeout in seconds"),
) -> None:
    """Delete a cluster."""
    if not force and not confirm_action(f"Delete cluster {name}?"):
        console.print("[dim]Cancelled.[/dim]")
        return

    try:
        client = get_client()
        with console.status(f"Deleting {name}..."):
            client.clusters.delete(name, wait=not no_wait, timeout=timeout)
        console.print(f"[green]Cluster {name} deleted[/green]")

    except Exception as e:
        handle_error(e)


@app.command("credentials")
def credentials(
    name: str = typer.Argument(..., help="Cluster name"),
) -> None:
    """Print the cluster's kubeconfig."""
    try:
        client = get_client()
        kubeconfig = client.clusters.get_credentials(name)
        typer.echo(kubeconfig)

    except Exception as e:
        handle_error(e)
