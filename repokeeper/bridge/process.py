"""Blocking invocation of external command-line tools.

Every collaborator that shells out (aws, gpg, createrepo_c) goes through
``run_tool`` so failures surface uniformly as the caller's error type.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)


def tool_available(binary: str) -> str | None:
    """Return the resolved path of *binary* on PATH, or None."""
    return shutil.which(binary)


def run_tool(
    argv: Sequence[str],
    *,
    error_cls: type[RuntimeError],
) -> subprocess.CompletedProcess[str]:
    """Run *argv* to completion and raise *error_cls* on any failure.

    No timeout is applied; the tool's own behaviour governs how long a
    call may block.
    """
    logger.debug("exec: %s", " ".join(argv))
    try:
        result = subprocess.run(
            list(argv),
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as exc:
        raise error_cls(f"Could not run {argv[0]}: {exc}") from exc

    if result.returncode != 0:
        detail = (result.stderr or result.stdout).strip()
        raise error_cls(
            f"{argv[0]} exited with status {result.returncode}: {detail}"
        )
    return result
