"""Repokeeper CLI — Typer-based command-line interface.

Provides the ``repokeeper`` command with subcommands for publishing a
channel, previewing an eviction plan, and generating Ed25519 signing keys.

All output uses Rich for formatted terminal display.
"""
