"""Package metadata compiler boundary.

Any object with ``rebuild(directory)`` satisfies ``MetadataCompiler``. The
shipped backend runs ``createrepo_c --update`` over the snapshot, which
(re)writes ``repodata/`` including ``repomd.xml``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol, runtime_checkable

from repokeeper.bridge.process import run_tool

logger = logging.getLogger(__name__)


class MetadataBuildError(RuntimeError):
    """Raised when the repository metadata could not be rebuilt."""


@runtime_checkable
class MetadataCompiler(Protocol):
    """Protocol for repository metadata compilers."""

    def rebuild(self, directory: Path) -> None:
        """Rebuild the metadata index for the artifacts in *directory*."""
        ...


class CreaterepoCompiler:
    """Rebuilds yum/dnf metadata with ``createrepo_c``."""

    def __init__(self, binary: str = "createrepo_c") -> None:
        self.binary = binary

    def rebuild(self, directory: Path) -> None:
        logger.info("Rebuilding metadata in %s", directory)
        run_tool([self.binary, "--update", str(directory)], error_cls=MetadataBuildError)
