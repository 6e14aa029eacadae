"""Local repository snapshot — artifacts, their signatures, and metadata.

Layout of a snapshot directory (mirrors the remote channel layout)::

    {base}/<artifact>
    {base}/<artifact>.asc
    {base}/repodata/repomd.xml
    {base}/repodata/repomd.xml.asc

The store only touches the local directory. Mirroring its changes to
remote storage is the orchestrator's job.
"""

from __future__ import annotations

import logging
import shutil
from datetime import datetime, timezone
from pathlib import Path

from repokeeper.bridge.signer import signature_path_for
from repokeeper.models.artifacts import SIGNATURE_SUFFIX, Artifact
from repokeeper.models.channels import Quota

logger = logging.getLogger(__name__)

METADATA_DIR = "repodata"
METADATA_INDEX = "repomd.xml"


class ArtifactNotFoundError(FileNotFoundError):
    """Raised when an artifact is not present in the snapshot."""


class ArtifactStore:
    """Directory-backed model of a channel snapshot.

    Parameters
    ----------
    base_path:
        The local working directory for one channel.
    """

    def __init__(self, base_path: Path) -> None:
        self._base = Path(base_path)
        self._base.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base

    @property
    def metadata_dir(self) -> Path:
        return self._base / METADATA_DIR

    @property
    def metadata_index_path(self) -> Path:
        return self.metadata_dir / METADATA_INDEX

    def artifact_path(self, name: str) -> Path:
        return self._base / name

    # ------------------------------------------------------------------
    # Listing and accounting
    # ------------------------------------------------------------------

    def list(self) -> list[Artifact]:
        """Return every artifact in the snapshot (no particular order).

        Signature files and the metadata subtree are not artifacts.
        """
        artifacts: list[Artifact] = []
        for path in self._base.iterdir():
            if not path.is_file() or path.name.endswith(SIGNATURE_SUFFIX):
                continue
            artifacts.append(self._describe(path))
        return artifacts

    def get(self, name: str) -> Artifact:
        path = self.artifact_path(name)
        if not path.is_file():
            raise ArtifactNotFoundError(f"Artifact not found: {name}")
        return self._describe(path)

    def _describe(self, path: Path) -> Artifact:
        stat = path.stat()
        sig = signature_path_for(path)
        has_sig = sig.is_file()
        return Artifact(
            name=path.name,
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            has_signature=has_sig,
            signature_size_bytes=sig.stat().st_size if has_sig else 0,
        )

    def size_bytes(self, extension_filter: str | Quota) -> int:
        """Sum the sizes of artifacts matching *extension_filter*.

        Signature files are excluded from the total.
        """
        quota = (
            extension_filter
            if isinstance(extension_filter, Quota)
            else Quota(max_size_bytes=0, extension_filter=extension_filter)
        )
        return sum(a.size_bytes for a in self.list() if quota.matches(a.name))

    def has_fresh_signature(self, artifact: Artifact) -> bool:
        """A signature is fresh if it is at least as new as its artifact."""
        path = self.artifact_path(artifact.name)
        sig = signature_path_for(path)
        if not sig.is_file():
            return False
        return sig.stat().st_mtime >= path.stat().st_mtime

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def clear(self) -> int:
        """Delete everything under the snapshot directory, keeping the directory.

        Returns the number of top-level entries removed.
        """
        removed = 0
        for path in self._base.iterdir():
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            else:
                path.unlink()
            removed += 1
        if removed:
            logger.info("Cleared %d stale entr(ies) from %s", removed, self._base)
        return removed

    def add(self, source: Path) -> Artifact:
        """Copy *source* into the snapshot, replacing any same-named artifact.

        A signature left over from a previous artifact of the same name is
        removed, since it no longer attests to the new bytes.
        """
        source = Path(source)
        if not source.is_file():
            raise ArtifactNotFoundError(f"New artifact not found: {source}")
        dest = self.artifact_path(source.name)
        stale_sig = signature_path_for(dest)
        if stale_sig.exists():
            stale_sig.unlink()
        shutil.copy2(source, dest)
        logger.info("Added %s (%d bytes) to snapshot", dest.name, dest.stat().st_size)
        return self._describe(dest)

    def remove(self, artifact: Artifact) -> int:
        """Delete *artifact* and its signature, if present.

        Returns the total bytes freed (artifact plus signature).
        """
        path = self.artifact_path(artifact.name)
        if not path.is_file():
            raise ArtifactNotFoundError(f"Artifact not found: {artifact.name}")
        freed = path.stat().st_size
        path.unlink()

        sig = signature_path_for(path)
        if sig.is_file():
            freed += sig.stat().st_size
            sig.unlink()

        logger.info("Removed %s from snapshot (%d bytes freed)", artifact.name, freed)
        return freed
