"""``repokeeper publish`` — run the full lifecycle for one channel.

Usage errors (no channel, nothing to do, unreadable or duplicate artifact)
exit 2 before anything runs. Missing tools or settings exit 1 before the
first state.
A failure mid-run exits 1 after rendering which state failed and which
states were blocked.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from repokeeper.bridge.signer import SigningError
from repokeeper.config import PublisherSettings
from repokeeper.core.orchestrator import RepositoryOrchestrator, RunAbortedError, duplicate_names
from repokeeper.core.preflight import PrerequisiteError, check_prerequisites
from repokeeper.models.channels import Channel
from repokeeper.monitor.renderer import RunRenderer

console = Console()


def publish_cmd(
    channel: Channel = typer.Option(
        ...,
        "--channel",
        "-c",
        case_sensitive=False,
        help="Channel to publish: stable or development.",
    ),
    add: list[Path] = typer.Option(
        None,
        "--add",
        "-a",
        exists=True,
        dir_okay=False,
        readable=True,
        help="Artifact file to add (repeatable, one per package variant).",
    ),
    sign_all: bool = typer.Option(
        False,
        "--sign-all",
        help="Re-sign every existing artifact lacking a fresh signature.",
    ),
    prune: bool = typer.Option(
        None,
        "--prune/--no-prune",
        help="Let remote reconciliation delete objects (development only). "
        "Defaults to REPOKEEPER_PRUNE_DRY_RUN, which is advisory.",
    ),
    workdir: Path = typer.Option(
        None,
        "--workdir",
        "-w",
        help="Local working directory for the snapshot.",
    ),
) -> None:
    """Fetch, mutate, rebuild, sign and republish a repository channel."""
    if not add and not sign_all:
        console.print(
            "[bold red]Nothing to do:[/bold red] supply at least one --add or --sign-all."
        )
        raise typer.Exit(code=2)

    duplicates = duplicate_names(add or [])
    if duplicates:
        console.print(
            f"[bold red]Duplicate artifact names:[/bold red] {', '.join(duplicates)}"
        )
        raise typer.Exit(code=2)

    settings = PublisherSettings()
    try:
        check_prerequisites(settings)
    except PrerequisiteError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)

    try:
        orchestrator = RepositoryOrchestrator.from_settings(
            channel,
            settings,
            workdir=workdir,
            prune_dry_run=None if prune is None else not prune,
        )
    except SigningError as exc:
        console.print(f"[bold red]Signer configuration error:[/bold red] {exc}")
        raise typer.Exit(code=1)

    renderer = RunRenderer(console=console)
    try:
        report = orchestrator.run(add or [], sign_all=sign_all)
    except RunAbortedError as exc:
        renderer.print_report(orchestrator.report)
        console.print(f"[bold red]Publish failed:[/bold red] {exc}")
        raise typer.Exit(code=1)
    except ValueError as exc:
        console.print(f"[bold red]Invalid input:[/bold red] {exc}")
        raise typer.Exit(code=2)

    renderer.print_report(report)
