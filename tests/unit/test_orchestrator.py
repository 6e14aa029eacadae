"""Unit tests for RepositoryOrchestrator: guards, ordering and fail-fast."""

from __future__ import annotations

from pathlib import Path

import pytest

from repokeeper.bridge.remote import AwsCliRemote
from repokeeper.bridge.signer import Ed25519Signer, GpgSigner, generate_keypair
from repokeeper.config import PublisherSettings, SignerBackend
from repokeeper.core.orchestrator import RepositoryOrchestrator, RunAbortedError, build_signer
from repokeeper.core.signing import SignatureService
from repokeeper.models.channels import Channel, ChannelConfig
from repokeeper.models.states import RunState, StateOutcome


@pytest.fixture
def incoming(tmp_dir: Path, artifact_file) -> Path:
    return artifact_file(tmp_dir / "incoming", "new-1.0-1.x86_64.rpm", 128)


class TestConstruction:
    def test_run_id_auto_generated(self, make_orchestrator):
        orch = make_orchestrator()
        assert orch.run_id == "rk-test-run-001"

    def test_default_run_id_prefix(self, make_orchestrator, tmp_dir: Path):
        orch = make_orchestrator()
        fresh = RepositoryOrchestrator(
            orch.channel_config, orch.store, orch.remote, orch.signatures, orch.compiler
        )
        assert fresh.run_id.startswith("rk-")
        assert fresh.prune_dry_run is True

    def test_from_settings_wires_cli_backends(self, tmp_dir: Path):
        settings = PublisherSettings(
            bucket_url="s3://bucket",
            cdn_distribution_id="E2EXAMPLE",
            development_quota_bytes=123,
        )
        orch = RepositoryOrchestrator.from_settings(
            Channel.DEVELOPMENT, settings, workdir=tmp_dir / "w"
        )
        assert isinstance(orch.remote, AwsCliRemote)
        assert orch.remote.distribution_id == "E2EXAMPLE"
        assert orch.channel_config.quota.max_size_bytes == 123
        assert orch.store.base_path == tmp_dir / "w"

    def test_prune_flag_overrides_settings(self, tmp_dir: Path):
        settings = PublisherSettings(prune_dry_run=True)
        orch = RepositoryOrchestrator.from_settings(
            Channel.DEVELOPMENT, settings, workdir=tmp_dir / "w", prune_dry_run=False
        )
        assert orch.prune_dry_run is False

    def test_build_signer_selects_backend(self):
        assert isinstance(build_signer(PublisherSettings()), GpgSigner)
        priv, _ = generate_keypair()
        settings = PublisherSettings(
            signer_backend=SignerBackend.ED25519, ed25519_private_key=priv
        )
        assert isinstance(build_signer(settings), Ed25519Signer)


class TestGuards:
    def test_stable_add_runs_expected_states(self, make_orchestrator, incoming):
        report = make_orchestrator(Channel.STABLE).run([incoming])

        assert report.succeeded
        assert report.states_with(StateOutcome.SKIPPED) == [
            RunState.RESIGN_ALL,
            RunState.EVICT,
            RunState.PRUNE_REMOTE,
        ]
        assert report.outcomes[RunState.PUBLISH] == StateOutcome.PASSED

    def test_sign_all_without_additions_skips_rebuild_and_publish(self, make_orchestrator):
        report = make_orchestrator(Channel.STABLE).run([], sign_all=True)

        assert report.outcomes[RunState.RESIGN_ALL] == StateOutcome.PASSED
        for state in (
            RunState.ADD_ARTIFACTS,
            RunState.REBUILD_METADATA,
            RunState.SIGN_METADATA,
            RunState.PUBLISH,
        ):
            assert report.outcomes[state] == StateOutcome.SKIPPED
        assert report.outcomes[RunState.SYNC_METADATA] == StateOutcome.PASSED

    def test_development_always_evaluates_eviction_and_prune(self, make_orchestrator, incoming):
        report = make_orchestrator(Channel.DEVELOPMENT, quota_bytes=10_000).run([incoming])
        assert report.outcomes[RunState.EVICT] == StateOutcome.PASSED
        assert report.outcomes[RunState.PRUNE_REMOTE] == StateOutcome.PASSED
        assert report.evicted == []

    def test_run_only_once(self, make_orchestrator, incoming):
        orch = make_orchestrator()
        orch.run([incoming])
        with pytest.raises(RuntimeError, match="already been executed"):
            orch.run([incoming])


class TestOrdering:
    def test_stable_add_event_order(self, make_orchestrator, incoming, events):
        make_orchestrator(Channel.STABLE).run([incoming])
        name = incoming.name

        assert events == [
            ("pull", "stable"),
            ("sign", name),
            ("rebuild", events[2][1]),
            ("sign", "repomd.xml"),
            ("push", "stable/repodata/repomd.xml.asc"),
            ("push", f"stable/{name}.asc"),
            ("push", f"stable/{name}"),
            ("invalidate", (f"/stable/{name}",)),
            ("invalidate", (f"/stable/{name}.asc",)),
            ("sync_dir", "stable/repodata", True, False),
            ("invalidate", ("/stable/repodata/*",)),
        ]

    def test_signature_pushed_before_artifact(self, make_orchestrator, incoming, events):
        make_orchestrator().run([incoming])
        pushes = [e[1] for e in events if e[0] == "push"]
        assert pushes.index(f"stable/{incoming.name}.asc") < pushes.index(
            f"stable/{incoming.name}"
        )

    def test_metadata_signature_pushed_before_sync(self, make_orchestrator, incoming, events):
        make_orchestrator().run([incoming])
        push = events.index(("push", "stable/repodata/repomd.xml.asc"))
        sync = events.index(("sync_dir", "stable/repodata", True, False))
        assert events.index(("sign", "repomd.xml")) < push < sync


class TestFailFast:
    def test_fetch_failure_blocks_everything(self, make_orchestrator, remote, incoming, events):
        remote.fail_on.add("pull")
        orch = make_orchestrator()

        with pytest.raises(RunAbortedError) as excinfo:
            orch.run([incoming])

        assert excinfo.value.state == RunState.FETCH
        assert orch.report.failed_state == RunState.FETCH
        assert len(orch.report.states_with(StateOutcome.BLOCKED)) == 8
        assert events == []

    def test_add_sign_failure_stops_before_rebuild(
        self, make_orchestrator, signer, incoming, events
    ):
        signer.fail_for.add(incoming.name)
        orch = make_orchestrator()

        with pytest.raises(RunAbortedError):
            orch.run([incoming])

        assert orch.report.outcomes[RunState.ADD_ARTIFACTS] == StateOutcome.FAILED
        assert not any(e[0] in ("rebuild", "push", "sync_dir") for e in events)

    def test_compiler_failure_aborts(self, make_orchestrator, compiler, incoming, events):
        compiler.fail = True
        orch = make_orchestrator()

        with pytest.raises(RunAbortedError, match="createrepo"):
            orch.run([incoming])
        assert orch.report.outcomes[RunState.SIGN_METADATA] == StateOutcome.BLOCKED
        assert not any(e[0] == "push" for e in events)

    def test_cause_is_chained(self, make_orchestrator, remote, incoming):
        remote.fail_on.add("pull")
        with pytest.raises(RunAbortedError) as excinfo:
            make_orchestrator().run([incoming])
        assert excinfo.value.__cause__ is excinfo.value.cause


class TestFetch:
    def test_fetch_discards_local_leftovers(
        self, make_orchestrator, bucket, artifact_file, incoming
    ):
        artifact_file(bucket / "stable", "kept.rpm", 16)
        orch = make_orchestrator()
        artifact_file(orch.store.base_path, "leftover.rpm", 16)
        artifact_file(orch.store.base_path, "leftover.rpm.asc", 4)

        orch.run([incoming])

        names = sorted(a.name for a in orch.store.list())
        assert names == sorted(["kept.rpm", incoming.name])
        assert "leftover.rpm" not in orch.store.metadata_index_path.read_text()


class TestInputValidation:
    def test_duplicate_artifact_names_rejected(
        self, make_orchestrator, tmp_dir: Path, artifact_file, events
    ):
        first = artifact_file(tmp_dir / "x86", "pkg.rpm", 8)
        second = artifact_file(tmp_dir / "arm", "pkg.rpm", 8)
        orch = make_orchestrator()

        with pytest.raises(ValueError, match="pkg.rpm"):
            orch.run([first, second])
        assert events == []
        assert orch.report.transitions == []

    def test_artifact_inside_snapshot_rejected(self, make_orchestrator, artifact_file, events):
        orch = make_orchestrator()
        inside = artifact_file(orch.store.base_path, "pkg.rpm", 8)

        with pytest.raises(ValueError, match="inside the snapshot"):
            orch.run([inside])
        assert inside.exists()
        assert events == []

    def test_evict_without_quota_fails_the_state(
        self, make_orchestrator, remote, signer, compiler, store
    ):
        # Bypass validation to get a quota-bounded channel with no quota
        config = ChannelConfig.model_construct(
            channel=Channel.DEVELOPMENT, remote_prefix="development", quota=None
        )
        orch = RepositoryOrchestrator(
            config, store, remote, SignatureService(signer), compiler, run_id="rk-noquota"
        )

        with pytest.raises(RunAbortedError, match="no quota") as excinfo:
            orch.run([], sign_all=True)
        assert excinfo.value.state == RunState.EVICT
