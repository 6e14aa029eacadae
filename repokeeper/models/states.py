"""Run state models — the fixed lifecycle order and its outcome transitions."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RunState(str, Enum):
    """Lifecycle states of a single publish run, in execution order."""

    FETCH = "fetch"
    RESIGN_ALL = "resign_all"
    EVICT = "evict"
    ADD_ARTIFACTS = "add_artifacts"
    REBUILD_METADATA = "rebuild_metadata"
    SIGN_METADATA = "sign_metadata"
    PUBLISH = "publish"
    SYNC_METADATA = "sync_metadata"
    PRUNE_REMOTE = "prune_remote"


STATE_ORDER: list[RunState] = list(RunState)


class StateOutcome(str, Enum):
    """Outcome of one lifecycle state within a run."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    SKIPPED = "skipped"
    PASSED = "passed"
    FAILED = "failed"
    BLOCKED = "blocked"


# Skipped, passed and blocked are terminal; a run never retries a state.
VALID_TRANSITIONS: dict[StateOutcome, set[StateOutcome]] = {
    StateOutcome.NOT_STARTED: {
        StateOutcome.RUNNING,
        StateOutcome.SKIPPED,
        StateOutcome.BLOCKED,
    },
    StateOutcome.RUNNING: {StateOutcome.PASSED, StateOutcome.FAILED},
    StateOutcome.SKIPPED: set(),
    StateOutcome.PASSED: set(),
    StateOutcome.FAILED: set(),
    StateOutcome.BLOCKED: set(),
}


class StateTransition(BaseModel):
    """Records a single outcome transition for the run report."""

    model_config = ConfigDict(frozen=True)

    state: RunState
    from_outcome: StateOutcome
    to_outcome: StateOutcome
    reason: str | None = None  # why a state was skipped, failed or blocked
