"""Run state machine — fixed order, guarded skips, cascade blocking.

Enforces:
- Valid outcome transitions only (VALID_TRANSITIONS table)
- States are entered strictly in STATE_ORDER
- A failed state blocks every later state
- Every transition recorded in the run report
"""

from __future__ import annotations

import logging

from repokeeper.models.reports import RunReport
from repokeeper.models.states import (
    STATE_ORDER,
    VALID_TRANSITIONS,
    RunState,
    StateOutcome,
    StateTransition,
)

logger = logging.getLogger(__name__)


class InvalidTransitionError(RuntimeError):
    """Raised when a requested outcome transition is not valid."""


class RunStateMachine:
    """Tracks per-state outcomes for one run.

    Parameters
    ----------
    report:
        The run report that receives every transition.
    """

    def __init__(self, report: RunReport) -> None:
        self._report = report
        self._outcomes: dict[RunState, StateOutcome] = {
            state: StateOutcome.NOT_STARTED for state in STATE_ORDER
        }
        self._report.outcomes = dict(self._outcomes)

    def outcome(self, state: RunState) -> StateOutcome:
        return self._outcomes[state]

    def all_outcomes(self) -> dict[RunState, StateOutcome]:
        return dict(self._outcomes)

    def transition(
        self, state: RunState, target: StateOutcome, *, reason: str | None = None
    ) -> StateTransition:
        """Move *state* to *target*, recording the transition.

        Raises ``InvalidTransitionError`` if the move is not allowed, or if
        an earlier state has not reached a terminal outcome yet.
        """
        current = self._outcomes[state]
        allowed = VALID_TRANSITIONS.get(current, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition {state.value} from {current.value} to {target.value}. "
                f"Allowed: {[o.value for o in allowed]}"
            )

        if current == StateOutcome.NOT_STARTED and target != StateOutcome.BLOCKED:
            for earlier in STATE_ORDER[: STATE_ORDER.index(state)]:
                if self._outcomes[earlier] in (StateOutcome.NOT_STARTED, StateOutcome.RUNNING):
                    raise InvalidTransitionError(
                        f"Cannot enter {state.value} before {earlier.value} has finished"
                    )

        record = StateTransition(
            state=state, from_outcome=current, to_outcome=target, reason=reason
        )
        self._outcomes[state] = target
        self._report.outcomes[state] = target
        self._report.transitions.append(record)
        logger.debug("%s: %s -> %s", state.value, current.value, target.value)

        if target == StateOutcome.FAILED:
            self._cascade_block(state)
        return record

    def _cascade_block(self, failed: RunState) -> list[RunState]:
        blocked: list[RunState] = []
        for later in STATE_ORDER[STATE_ORDER.index(failed) + 1:]:
            if self._outcomes[later] == StateOutcome.NOT_STARTED:
                self.transition(later, StateOutcome.BLOCKED, reason=f"{failed.value} failed")
                blocked.append(later)
        return blocked
