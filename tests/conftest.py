"""Shared test fixtures for Repokeeper.

The collaborator fakes below satisfy the bridge Protocols against local
directories and record every call into one shared event list, so tests can
assert on cross-collaborator ordering.
"""

from __future__ import annotations

import hashlib
import os
import shutil
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest

from repokeeper.bridge.metadata import MetadataBuildError
from repokeeper.bridge.remote import RemoteSyncError
from repokeeper.bridge.signer import SigningError
from repokeeper.core.artifact_store import ArtifactStore
from repokeeper.core.orchestrator import RepositoryOrchestrator
from repokeeper.core.signing import SignatureService
from repokeeper.models.artifacts import Artifact
from repokeeper.models.channels import Channel, ChannelConfig, EvictionPolicy, Quota

BASE_TIME = datetime(2026, 1, 1, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Collaborator fakes
# ---------------------------------------------------------------------------


class RecordingRemote:
    """RemoteSync over a local "bucket" directory."""

    def __init__(self, bucket: Path, events: list[tuple[Any, ...]]) -> None:
        self.bucket = bucket
        self.events = events
        self.fail_on: set[str] = set()  # operation names that raise

    def _check(self, op: str) -> None:
        if op in self.fail_on:
            raise RemoteSyncError(f"simulated {op} failure")

    def pull(self, remote_prefix: str, local_dir: Path) -> None:
        self._check("pull")
        self.events.append(("pull", remote_prefix))
        src = self.bucket / remote_prefix
        if src.is_dir():
            shutil.copytree(src, local_dir, dirs_exist_ok=True)

    def push(self, local_file: Path, remote_key: str, *, public_read: bool = True) -> None:
        self._check("push")
        self.events.append(("push", remote_key))
        dest = self.bucket / remote_key
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(local_file, dest)

    def sync_dir(
        self,
        local_dir: Path,
        remote_prefix: str,
        *,
        delete: bool = False,
        public_read: bool = True,
        dry_run: bool = False,
    ) -> None:
        self._check("sync_dir")
        self.events.append(("sync_dir", remote_prefix, delete, dry_run))
        if dry_run:
            return
        dest = self.bucket / remote_prefix
        dest.mkdir(parents=True, exist_ok=True)
        shutil.copytree(local_dir, dest, dirs_exist_ok=True)
        if delete:
            for path in sorted(dest.rglob("*"), reverse=True):
                rel = path.relative_to(dest)
                if not (Path(local_dir) / rel).exists():
                    if path.is_dir():
                        path.rmdir()
                    else:
                        path.unlink()

    def invalidate(self, paths: Sequence[str]) -> None:
        self._check("invalidate")
        self.events.append(("invalidate", tuple(paths)))

    def invalidation_calls(self) -> list[tuple[str, ...]]:
        return [e[1] for e in self.events if e[0] == "invalidate"]


class FakeSigner:
    """Writes a deterministic pseudo-signature; can be told to fail."""

    def __init__(self, events: list[tuple[Any, ...]]) -> None:
        self.events = events
        self.fail_for: set[str] = set()  # file names whose signing fails

    def sign(self, path: Path) -> Path:
        if path.name in self.fail_for:
            raise SigningError(f"simulated signer failure for {path.name}")
        self.events.append(("sign", path.name))
        digest = hashlib.sha512(path.read_bytes()).hexdigest()
        out = path.with_name(path.name + ".asc")
        out.write_text(f"-----SIG-----\n{digest}\n")
        return out


class FakeCompiler:
    """Writes repodata/repomd.xml listing the snapshot's artifacts."""

    def __init__(self, events: list[tuple[Any, ...]]) -> None:
        self.events = events
        self.fail = False

    def rebuild(self, directory: Path) -> None:
        if self.fail:
            raise MetadataBuildError("simulated createrepo failure")
        self.events.append(("rebuild", str(directory)))
        names = sorted(
            p.name for p in Path(directory).iterdir() if p.is_file() and not p.name.endswith(".asc")
        )
        repodata = Path(directory) / "repodata"
        repodata.mkdir(exist_ok=True)
        (repodata / "repomd.xml").write_text(
            "<repomd>" + "".join(f"<pkg>{n}</pkg>" for n in names) + "</repomd>"
        )


# ---------------------------------------------------------------------------
# File helpers
# ---------------------------------------------------------------------------


def write_file(directory: Path, name: str, size: int, *, age_days: float = 0) -> Path:
    """Write *size* bytes to directory/name with an mtime *age_days* ago."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_bytes(os.urandom(size) if size else b"")
    ts = (BASE_TIME - timedelta(days=age_days)).timestamp()
    os.utime(path, (ts, ts))
    return path


def make_artifact(
    name: str, size: int, *, day: int = 0, signature_size: int = 0
) -> Artifact:
    return Artifact(
        name=name,
        size_bytes=size,
        modified_at=BASE_TIME + timedelta(days=day),
        has_signature=signature_size > 0,
        signature_size_bytes=signature_size,
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test artifacts."""
    return tmp_path


@pytest.fixture
def events() -> list[tuple[Any, ...]]:
    return []


@pytest.fixture
def bucket(tmp_dir: Path) -> Path:
    path = tmp_dir / "bucket"
    path.mkdir()
    return path


@pytest.fixture
def remote(bucket: Path, events: list[tuple[Any, ...]]) -> RecordingRemote:
    return RecordingRemote(bucket, events)


@pytest.fixture
def signer(events: list[tuple[Any, ...]]) -> FakeSigner:
    return FakeSigner(events)


@pytest.fixture
def compiler(events: list[tuple[Any, ...]]) -> FakeCompiler:
    return FakeCompiler(events)


@pytest.fixture
def store(tmp_dir: Path) -> ArtifactStore:
    """Provide an empty snapshot directory."""
    return ArtifactStore(tmp_dir / "work")


@pytest.fixture
def stable_config() -> ChannelConfig:
    return ChannelConfig(channel=Channel.STABLE, remote_prefix="stable")


@pytest.fixture
def make_orchestrator(
    tmp_dir: Path,
    remote: RecordingRemote,
    signer: FakeSigner,
    compiler: FakeCompiler,
) -> Callable[..., RepositoryOrchestrator]:
    """Factory fixture: orchestrator wired to the recording fakes."""

    def _factory(
        channel: Channel = Channel.STABLE,
        *,
        quota_bytes: int = 1000,
        extension: str = "rpm",
        policy: EvictionPolicy = EvictionPolicy.REACH_QUOTA,
        prune_dry_run: bool = True,
    ) -> RepositoryOrchestrator:
        quota = (
            Quota(max_size_bytes=quota_bytes, extension_filter=extension)
            if channel == Channel.DEVELOPMENT
            else None
        )
        config = ChannelConfig(channel=channel, remote_prefix=channel.value, quota=quota)
        return RepositoryOrchestrator(
            channel_config=config,
            store=ArtifactStore(tmp_dir / "work" / channel.value),
            remote=remote,
            signatures=SignatureService(signer),
            compiler=compiler,
            eviction_policy=policy,
            prune_dry_run=prune_dry_run,
            run_id="rk-test-run-001",
        )

    return _factory


@pytest.fixture
def artifact_file() -> Callable[..., Path]:
    """Factory fixture: write a file of a given size and age."""
    return write_file


@pytest.fixture
def artifact() -> Callable[..., Artifact]:
    """Factory fixture: build an Artifact model without touching disk."""
    return make_artifact
