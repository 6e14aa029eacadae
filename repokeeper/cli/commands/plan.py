"""``repokeeper plan`` — preview eviction against an existing local snapshot.

Advisory only: nothing is fetched, deleted or pushed.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from repokeeper.config import PublisherSettings
from repokeeper.core.artifact_store import ArtifactStore
from repokeeper.core.eviction import plan_eviction
from repokeeper.models.channels import Channel, EvictionPolicy
from repokeeper.monitor.renderer import RunRenderer

console = Console()


def plan_cmd(
    channel: Channel = typer.Option(
        Channel.DEVELOPMENT,
        "--channel",
        "-c",
        case_sensitive=False,
        help="Channel whose snapshot to inspect.",
    ),
    workdir: Path = typer.Option(
        None,
        "--workdir",
        "-w",
        help="Local snapshot directory (defaults to the channel's workdir).",
    ),
    policy: EvictionPolicy = typer.Option(
        None,
        "--policy",
        case_sensitive=False,
        help="Override REPOKEEPER_EVICTION_POLICY.",
    ),
) -> None:
    """Show which artifacts the next run would evict."""
    settings = PublisherSettings()
    channel_config = settings.channel_config(channel)
    if channel_config.quota is None:
        console.print(f"[dim]Channel {channel.value} has no quota; nothing is ever evicted.[/dim]")
        return

    snapshot = workdir or settings.workdir_for(channel)
    if not snapshot.is_dir():
        console.print(f"[bold red]Snapshot not found:[/bold red] {snapshot}")
        raise typer.Exit(code=1)

    store = ArtifactStore(snapshot)
    plan = plan_eviction(
        store.list(),
        channel_config.quota,
        policy=policy or settings.eviction_policy,
    )
    RunRenderer(console=console).print_eviction_plan(plan)
