"""Main Typer application — imports and registers all CLI commands.

Entry point: ``repokeeper`` (configured via pyproject.toml console scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from repokeeper.cli.commands.keygen import keygen_cmd
from repokeeper.cli.commands.plan import plan_cmd
from repokeeper.cli.commands.publish import publish_cmd
from repokeeper.config import PublisherSettings

app = typer.Typer(
    name="repokeeper",
    help="Repokeeper: signed package repository publisher with quota-bounded eviction.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

app.command(name="publish", help="Run the publish lifecycle for a channel.")(publish_cmd)
app.command(name="plan", help="Preview the eviction plan for a local snapshot.")(plan_cmd)
app.command(name="keygen", help="Generate an Ed25519 signing key-pair.")(keygen_cmd)


def configure_logging(level: str) -> None:
    """Route stdlib logging through Rich at *level*."""
    logging.basicConfig(
        level=level.upper(),
        format="%(name)s: %(message)s",
        handlers=[RichHandler(show_path=False, rich_tracebacks=False)],
        force=True,
    )


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None,
        "--log-level",
        help="Override REPOKEEPER_LOG_LEVEL for this invocation.",
    ),
) -> None:
    """Repokeeper: signed package repository publisher."""
    configure_logging(log_level or PublisherSettings().log_level)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
