"""Run report — what one publish run did, for rendering and assertions."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from repokeeper.models.channels import Channel
from repokeeper.models.states import RunState, StateOutcome, StateTransition


class RunReport(BaseModel):
    """Accumulated record of a run.

    Unlike the other models this one is mutable: the orchestrator appends
    to it as the run progresses, and the CLI renders whatever it holds when
    the run ends, whether it completed or aborted.
    """

    run_id: str
    channel: Channel
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None
    outcomes: dict[RunState, StateOutcome] = {}
    transitions: list[StateTransition] = []
    pushed_keys: list[str] = []
    invalidations: list[list[str]] = []
    resigned: list[str] = []
    evicted: list[str] = []
    added: list[str] = []
    freed_bytes: int = 0
    error: str | None = None
    failed_state: RunState | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.finished_at is not None

    @property
    def invalidated_paths(self) -> list[str]:
        return [path for batch in self.invalidations for path in batch]

    def states_with(self, outcome: StateOutcome) -> list[RunState]:
        return [state for state, o in self.outcomes.items() if o == outcome]
