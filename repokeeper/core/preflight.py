"""Preflight guard — external tools and settings a run cannot start without.

Runs once before the first state. Every violation is collected and
reported together as a single ``PrerequisiteError``; nothing has touched
the local snapshot or remote storage at that point.
"""

from __future__ import annotations

import logging

from repokeeper.bridge.process import tool_available
from repokeeper.config import PublisherSettings, SignerBackend

logger = logging.getLogger(__name__)


class PrerequisiteError(RuntimeError):
    """Raised when a required tool or setting is missing.

    The run never starts; the process should exit non-zero.
    """


def check_prerequisites(settings: PublisherSettings) -> None:
    """Validate tools and settings needed by the command-line backends.

    Raises
    ------
    PrerequisiteError
        Listing every violation found.
    """
    violations: list[str] = []

    required_tools = [settings.aws_binary, settings.createrepo_binary]
    if settings.signer_backend == SignerBackend.GPG:
        required_tools.append(settings.gpg_binary)
    for binary in required_tools:
        if tool_available(binary) is None:
            violations.append(f"Required tool '{binary}' not found on PATH.")

    if settings.signer_backend == SignerBackend.ED25519 and not settings.ed25519_private_key:
        violations.append(
            "signer_backend=ed25519 requires a key. Set REPOKEEPER_ED25519_PRIVATE_KEY."
        )

    if not settings.cdn_distribution_id:
        violations.append(
            "CDN distribution id is not configured. Set REPOKEEPER_CDN_DISTRIBUTION_ID."
        )

    if not settings.bucket_url.startswith("s3://"):
        violations.append(f"bucket_url must be an s3:// URL, got '{settings.bucket_url}'.")

    if settings.is_production and settings.debug:
        violations.append(
            "debug=True is not allowed in production. Set REPOKEEPER_DEBUG=false."
        )

    if violations:
        msg = "Preflight check failed.\n" + "\n".join(f"  - {v}" for v in violations)
        logger.critical(msg)
        raise PrerequisiteError(msg)

    logger.info("Preflight check passed.")
