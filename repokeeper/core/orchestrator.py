"""Repository lifecycle orchestrator — one publish run per invocation.

The run walks a fixed sequence of states::

    FETCH -> RESIGN_ALL? -> EVICT? -> ADD_ARTIFACTS? -> REBUILD_METADATA?
          -> SIGN_METADATA? -> PUBLISH? -> SYNC_METADATA -> PRUNE_REMOTE?

Each state is skipped (never retried) when its guard is false. The first
failure aborts the run: later states are blocked, nothing is rolled back,
and ``RunAbortedError`` is raised. Because every state only pushes what it
has already prepared locally, and signatures are always pushed before the
files or metadata that reference them are advertised, an aborted run
leaves remote storage valid but possibly stale.

Runs against the same channel must be serialized by the operator; no
locking is performed against remote storage.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from pathlib import Path

from repokeeper.bridge.metadata import CreaterepoCompiler, MetadataCompiler
from repokeeper.bridge.remote import AwsCliRemote, RemoteSync
from repokeeper.bridge.signer import Ed25519Signer, GpgSigner, Signer, signature_path_for
from repokeeper.config import PublisherSettings, SignerBackend
from repokeeper.core.artifact_store import METADATA_DIR, METADATA_INDEX, ArtifactStore
from repokeeper.core.eviction import plan_eviction
from repokeeper.core.signing import SignatureService
from repokeeper.core.state_machine import RunStateMachine
from repokeeper.models.artifacts import SIGNATURE_SUFFIX, EvictionPlan, PublishPlan
from repokeeper.models.channels import Channel, ChannelConfig, EvictionPolicy
from repokeeper.models.reports import RunReport
from repokeeper.models.states import STATE_ORDER, RunState, StateOutcome

logger = logging.getLogger(__name__)

METADATA_SIGNATURE = f"{METADATA_DIR}/{METADATA_INDEX}{SIGNATURE_SUFFIX}"


class RunAbortedError(RuntimeError):
    """Raised when a state fails; the remaining states did not run."""

    def __init__(self, state: RunState, cause: BaseException) -> None:
        super().__init__(f"Run aborted in {state.value}: {cause}")
        self.state = state
        self.cause = cause


def duplicate_names(paths: Sequence[Path]) -> list[str]:
    """File names that occur more than once in *paths*, sorted."""
    seen: set[str] = set()
    dupes: set[str] = set()
    for path in paths:
        if path.name in seen:
            dupes.add(path.name)
        seen.add(path.name)
    return sorted(dupes)


def build_signer(settings: PublisherSettings) -> Signer:
    """Select the signer backend named by *settings*."""
    if settings.signer_backend == SignerBackend.ED25519:
        return Ed25519Signer(settings.ed25519_private_key)
    return GpgSigner(key_id=settings.gpg_key_id, binary=settings.gpg_binary)


class RepositoryOrchestrator:
    """Drives one channel through the publish lifecycle.

    Parameters
    ----------
    channel_config:
        Channel, remote prefix and (for development) quota.
    store:
        The local snapshot for this channel.
    remote:
        Object store / CDN client.
    signatures:
        Signature service wrapping the configured signer.
    compiler:
        Repository metadata compiler.
    eviction_policy:
        Stop rule for the eviction scan.
    prune_dry_run:
        When True (the default) remote reconciliation only reports what a
        destructive sync would delete.
    """

    def __init__(
        self,
        channel_config: ChannelConfig,
        store: ArtifactStore,
        remote: RemoteSync,
        signatures: SignatureService,
        compiler: MetadataCompiler,
        *,
        eviction_policy: EvictionPolicy = EvictionPolicy.REACH_QUOTA,
        prune_dry_run: bool = True,
        run_id: str | None = None,
    ) -> None:
        self.channel_config = channel_config
        self.store = store
        self.remote = remote
        self.signatures = signatures
        self.compiler = compiler
        self.eviction_policy = eviction_policy
        self.prune_dry_run = prune_dry_run

        ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
        self.run_id = run_id or f"rk-{ts}-{uuid.uuid4().hex[:6]}"

        self.report = RunReport(run_id=self.run_id, channel=channel_config.channel)
        self.plan = PublishPlan()
        self.eviction_plan: EvictionPlan | None = None
        self._machine = RunStateMachine(self.report)
        self._new_artifacts: list[Path] = []
        self._sign_all = False

        self._guards: dict[RunState, Callable[[], str | None]] = {
            RunState.FETCH: lambda: None,
            RunState.RESIGN_ALL: lambda: None if self._sign_all else "sign-all not requested",
            RunState.EVICT: self._quota_guard,
            RunState.ADD_ARTIFACTS: lambda: None if self._new_artifacts else "no new artifacts",
            RunState.REBUILD_METADATA: lambda: (
                None if self.plan.rebuild_metadata else "artifact set unchanged"
            ),
            RunState.SIGN_METADATA: lambda: (
                None
                if self._machine.outcome(RunState.REBUILD_METADATA) == StateOutcome.PASSED
                else "metadata not rebuilt"
            ),
            RunState.PUBLISH: lambda: None if self.plan.to_add else "nothing added",
            RunState.SYNC_METADATA: lambda: None,
            RunState.PRUNE_REMOTE: self._quota_guard,
        }
        self._actions: dict[RunState, Callable[[], None]] = {
            RunState.FETCH: self._fetch,
            RunState.RESIGN_ALL: self._resign_all,
            RunState.EVICT: self._evict,
            RunState.ADD_ARTIFACTS: self._add_artifacts,
            RunState.REBUILD_METADATA: self._rebuild_metadata,
            RunState.SIGN_METADATA: self._sign_metadata,
            RunState.PUBLISH: self._publish,
            RunState.SYNC_METADATA: self._sync_metadata,
            RunState.PRUNE_REMOTE: self._prune_remote,
        }

    @classmethod
    def from_settings(
        cls,
        channel: Channel,
        settings: PublisherSettings,
        *,
        workdir: Path | None = None,
        prune_dry_run: bool | None = None,
    ) -> RepositoryOrchestrator:
        """Wire the command-line backends (aws, gpg or Ed25519, createrepo_c)."""
        return cls(
            channel_config=settings.channel_config(channel),
            store=ArtifactStore(workdir or settings.workdir_for(channel)),
            remote=AwsCliRemote(
                settings.bucket_url,
                settings.cdn_distribution_id,
                binary=settings.aws_binary,
            ),
            signatures=SignatureService(build_signer(settings)),
            compiler=CreaterepoCompiler(settings.createrepo_binary),
            eviction_policy=settings.eviction_policy,
            prune_dry_run=settings.prune_dry_run if prune_dry_run is None else prune_dry_run,
        )

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def run(self, new_artifacts: Sequence[Path] = (), *, sign_all: bool = False) -> RunReport:
        """Execute every reachable state in order and return the report.

        Raises ``RunAbortedError`` on the first failing state; the report
        (with the failed and blocked states) stays available on
        ``self.report``.
        """
        if self.report.transitions:
            raise RuntimeError(f"Run {self.run_id} has already been executed")

        self._new_artifacts = [Path(p) for p in new_artifacts]
        duplicates = duplicate_names(self._new_artifacts)
        if duplicates:
            raise ValueError(f"Duplicate artifact names: {', '.join(duplicates)}")
        base = self.store.base_path.resolve()
        for path in self._new_artifacts:
            # FETCH empties the snapshot, which would delete these first
            if path.resolve().is_relative_to(base):
                raise ValueError(f"New artifact {path} lies inside the snapshot {base}")
        self._sign_all = sign_all
        logger.info(
            "Run %s: channel=%s add=%d sign_all=%s",
            self.run_id,
            self.channel_config.channel.value,
            len(self._new_artifacts),
            sign_all,
        )

        for state in STATE_ORDER:
            skip_reason = self._guards[state]()
            if skip_reason is not None:
                self._machine.transition(state, StateOutcome.SKIPPED, reason=skip_reason)
                logger.info("%s skipped: %s", state.value, skip_reason)
                continue

            self._machine.transition(state, StateOutcome.RUNNING)
            try:
                self._actions[state]()
            except Exception as exc:
                logger.error("%s failed: %s", state.value, exc)
                self._machine.transition(state, StateOutcome.FAILED, reason=str(exc))
                self.report.error = str(exc)
                self.report.failed_state = state
                raise RunAbortedError(state, exc) from exc
            self._machine.transition(state, StateOutcome.PASSED)
            logger.info("%s passed", state.value)

        self.report.finished_at = datetime.now(timezone.utc)
        return self.report

    def _quota_guard(self) -> str | None:
        return None if self.channel_config.is_quota_bounded else "channel is not quota-bounded"

    # ------------------------------------------------------------------
    # Remote helpers
    # ------------------------------------------------------------------

    def _push(self, local: Path, relative: str) -> None:
        key = self.channel_config.remote_key(relative)
        self.remote.push(local, key, public_read=True)
        self.report.pushed_keys.append(key)

    def _invalidate(self, *relatives: str) -> None:
        paths = [self.channel_config.cdn_path(r) for r in relatives]
        self.remote.invalidate(paths)
        self.report.invalidations.append(paths)

    # ------------------------------------------------------------------
    # State actions
    # ------------------------------------------------------------------

    def _fetch(self) -> None:
        # The snapshot must mirror the remote exactly; leftovers from an
        # aborted run would otherwise be indexed and counted against quota.
        self.store.clear()
        self.remote.pull(self.channel_config.remote_prefix, self.store.base_path)

    def _resign_all(self) -> None:
        for artifact in sorted(self.store.list(), key=lambda a: a.name):
            if self.store.has_fresh_signature(artifact):
                continue
            self.signatures.sign(self.store.artifact_path(artifact.name))
            self._push(
                signature_path_for(self.store.artifact_path(artifact.name)),
                artifact.signature_name,
            )
            self._invalidate(artifact.signature_name)
            self.report.resigned.append(artifact.name)

        if not self.store.metadata_index_path.is_file():
            logger.warning("No metadata index in snapshot; nothing to re-sign")
            return
        self.signatures.sign_metadata(self.store)
        self._push(signature_path_for(self.store.metadata_index_path), METADATA_SIGNATURE)
        self._invalidate(METADATA_SIGNATURE)
        self.plan = self.plan.model_copy(update={"resigned": list(self.report.resigned)})

    def _evict(self) -> None:
        quota = self.channel_config.quota
        if quota is None:
            raise ValueError(
                f"Channel {self.channel_config.channel.value} has no quota to evict against"
            )
        self.eviction_plan = plan_eviction(
            self.store.list(), quota, policy=self.eviction_policy
        )
        if self.eviction_plan.stopped_early:
            logger.warning(
                "Channel remains over quota after eviction (%d of %d deficit bytes freed)",
                self.eviction_plan.freed_bytes,
                self.eviction_plan.deficit_bytes,
            )
        for artifact in self.eviction_plan.to_delete:
            self.report.freed_bytes += self.store.remove(artifact)
            self.report.evicted.append(artifact.name)
        self.plan = self.plan.model_copy(update={"to_delete": list(self.report.evicted)})

    def _add_artifacts(self) -> None:
        added: list[str] = []
        for source in self._new_artifacts:
            artifact = self.store.add(source)
            self.signatures.sign(self.store.artifact_path(artifact.name))
            added.append(artifact.name)
        self.report.added = added
        self.plan = self.plan.model_copy(update={"to_add": added})

    def _rebuild_metadata(self) -> None:
        self.compiler.rebuild(self.store.base_path)

    def _sign_metadata(self) -> None:
        # Pushed on its own so it is live before the sync advertises the
        # new index.
        self.signatures.sign_metadata(self.store)
        self._push(signature_path_for(self.store.metadata_index_path), METADATA_SIGNATURE)

    def _publish(self) -> None:
        for name in self.plan.to_add:
            path = self.store.artifact_path(name)
            sig_name = f"{name}{SIGNATURE_SUFFIX}"
            self._push(signature_path_for(path), sig_name)
            self._push(path, name)
            self._invalidate(name)
            self._invalidate(sig_name)

    def _sync_metadata(self) -> None:
        # An empty channel has no repodata remotely either; syncing an
        # empty directory is a no-op rather than an error.
        self.store.metadata_dir.mkdir(parents=True, exist_ok=True)
        self.remote.sync_dir(
            self.store.metadata_dir,
            self.channel_config.remote_key(METADATA_DIR),
            delete=True,
            public_read=True,
        )
        self._invalidate(f"{METADATA_DIR}/*")

    def _prune_remote(self) -> None:
        if self.prune_dry_run:
            logger.info("Remote prune is advisory (dry run); nothing will be deleted")
        self.remote.sync_dir(
            self.store.base_path,
            self.channel_config.remote_prefix,
            delete=True,
            public_read=True,
            dry_run=self.prune_dry_run,
        )
