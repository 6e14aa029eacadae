"""Signature service — replaces detached signatures, never leaves stale ones."""

from __future__ import annotations

import logging
from pathlib import Path

from repokeeper.bridge.signer import Signer, SigningError, signature_path_for
from repokeeper.core.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)


class SignatureService:
    """Produces or replaces the detached signature for a single file.

    Any existing signature is removed before the signer runs, so a failed
    re-sign leaves the file unsigned rather than carrying an old signature.
    Failures are raised as ``SigningError``; there are no retries.

    Parameters
    ----------
    signer:
        Any ``Signer`` backend.
    """

    def __init__(self, signer: Signer) -> None:
        self._signer = signer

    def sign(self, path: Path) -> Path:
        """Sign *path*, returning the path of its fresh ``.asc`` file."""
        path = Path(path)
        if not path.is_file():
            raise SigningError(f"Cannot sign missing file: {path}")

        sig_path = signature_path_for(path)
        if sig_path.exists():
            sig_path.unlink()

        try:
            written = self._signer.sign(path)
        except SigningError:
            raise
        except Exception as exc:
            raise SigningError(f"Signer failed for {path.name}: {exc}") from exc

        written = Path(written)
        if not written.is_file() or written.stat().st_size == 0:
            raise SigningError(f"Signer produced no signature for {path.name}")
        logger.info("Signed %s", path.name)
        return written

    def sign_metadata(self, store: ArtifactStore) -> Path:
        """Sign the snapshot's metadata index (``repodata/repomd.xml``)."""
        index = store.metadata_index_path
        if not index.is_file():
            raise SigningError(f"Metadata index missing: {index}")
        return self.sign(index)
