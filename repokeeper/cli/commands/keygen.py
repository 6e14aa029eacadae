"""``repokeeper keygen`` — write an Ed25519 key-pair for the ed25519 signer."""

from __future__ import annotations

import os
from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from repokeeper.bridge.signer import generate_keypair, key_fingerprint

console = Console()


def keygen_cmd(
    out: Path = typer.Option(
        Path("repokeeper-signing"),
        "--out",
        "-o",
        help="Path prefix; writes <out>.key (private) and <out>.pub.",
    ),
    force: bool = typer.Option(False, "--force", help="Overwrite existing key files."),
) -> None:
    """Generate an Ed25519 key-pair (hex) for REPOKEEPER_ED25519_PRIVATE_KEY."""
    key_path = out.with_name(out.name + ".key")
    pub_path = out.with_name(out.name + ".pub")
    if not force and (key_path.exists() or pub_path.exists()):
        console.print(f"[bold red]Refusing to overwrite[/bold red] {key_path} / {pub_path}")
        raise typer.Exit(code=1)

    private_key, public_key = generate_keypair()
    key_path.parent.mkdir(parents=True, exist_ok=True)
    key_path.write_text(private_key + "\n", encoding="ascii")
    os.chmod(key_path, 0o600)
    pub_path.write_text(public_key + "\n", encoding="ascii")

    console.print(
        Panel(
            "\n".join([
                f"[bold]Private key:[/bold] {key_path}",
                f"[bold]Public key:[/bold]  {pub_path}",
                f"[bold]Fingerprint:[/bold] {key_fingerprint(public_key)}",
            ]),
            title="[bold]Signing key generated[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
