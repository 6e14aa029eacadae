"""Remote object store and CDN boundary.

The orchestrator consumes the ``RemoteSync`` protocol only. The shipped
backend, ``AwsCliRemote``, drives the ``aws`` CLI (S3 plus CloudFront);
any object with the same four methods can stand in for it.

All operations block until complete and raise ``RemoteSyncError`` on
failure. No partial-object semantics are exposed.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from repokeeper.bridge.process import run_tool

logger = logging.getLogger(__name__)


class RemoteSyncError(RuntimeError):
    """Raised when a pull, push, sync or invalidation fails."""


@runtime_checkable
class RemoteSync(Protocol):
    """Protocol for the object store / CDN client."""

    def pull(self, remote_prefix: str, local_dir: Path) -> None:
        """Recursively copy *remote_prefix* into *local_dir* (no delete)."""
        ...

    def push(self, local_file: Path, remote_key: str, *, public_read: bool = True) -> None:
        """Upload one file to *remote_key*."""
        ...

    def sync_dir(
        self,
        local_dir: Path,
        remote_prefix: str,
        *,
        delete: bool = False,
        public_read: bool = True,
        dry_run: bool = False,
    ) -> None:
        """Mirror *local_dir* onto *remote_prefix*.

        With *delete*, remote objects absent locally are removed, unless
        *dry_run* is set, in which case the changes are only reported.
        """
        ...

    def invalidate(self, paths: Sequence[str]) -> None:
        """Purge CDN caches for *paths* (glob-like, rooted at ``/``)."""
        ...


class AwsCliRemote:
    """``RemoteSync`` backed by ``aws s3`` and ``aws cloudfront``.

    Parameters
    ----------
    bucket_url:
        Bucket root, e.g. ``s3://packages.example.org``.
    distribution_id:
        CloudFront distribution used for invalidations.
    binary:
        Name or path of the aws executable.
    """

    def __init__(self, bucket_url: str, distribution_id: str, binary: str = "aws") -> None:
        self.bucket_url = bucket_url.rstrip("/")
        self.distribution_id = distribution_id
        self.binary = binary

    def _url(self, key: str) -> str:
        key = key.strip("/")
        return f"{self.bucket_url}/{key}" if key else self.bucket_url

    def _run(self, *args: str) -> str:
        result = run_tool([self.binary, *args], error_cls=RemoteSyncError)
        return result.stdout

    # ------------------------------------------------------------------
    # Object store
    # ------------------------------------------------------------------

    def pull(self, remote_prefix: str, local_dir: Path) -> None:
        Path(local_dir).mkdir(parents=True, exist_ok=True)
        logger.info("Pulling %s -> %s", self._url(remote_prefix), local_dir)
        self._run("s3", "cp", "--recursive", self._url(remote_prefix) + "/", str(local_dir))

    def push(self, local_file: Path, remote_key: str, *, public_read: bool = True) -> None:
        args = ["s3", "cp", str(local_file), self._url(remote_key)]
        if public_read:
            args += ["--acl", "public-read"]
        logger.info("Pushing %s -> %s", local_file, self._url(remote_key))
        self._run(*args)

    def sync_dir(
        self,
        local_dir: Path,
        remote_prefix: str,
        *,
        delete: bool = False,
        public_read: bool = True,
        dry_run: bool = False,
    ) -> None:
        args = ["s3", "sync", str(local_dir), self._url(remote_prefix) + "/"]
        if delete:
            args.append("--delete")
        if public_read:
            args += ["--acl", "public-read"]
        if dry_run:
            args.append("--dryrun")
        logger.info(
            "Syncing %s -> %s (delete=%s, dry_run=%s)",
            local_dir,
            self._url(remote_prefix),
            delete,
            dry_run,
        )
        output = self._run(*args)
        if dry_run and output.strip():
            for line in output.strip().splitlines():
                logger.warning("[advisory] %s", line)

    # ------------------------------------------------------------------
    # CDN
    # ------------------------------------------------------------------

    def invalidate(self, paths: Sequence[str]) -> None:
        if not paths:
            return
        if not self.distribution_id:
            raise RemoteSyncError("No CDN distribution id configured for invalidation")
        logger.info("Invalidating %s", ", ".join(paths))
        self._run(
            "cloudfront",
            "create-invalidation",
            "--distribution-id",
            self.distribution_id,
            "--paths",
            *paths,
        )
