"""Repokeeper data models — Pydantic v2, frozen except for the run report."""

from repokeeper.models.artifacts import (
    SIGNATURE_SUFFIX,
    Artifact,
    EvictionPlan,
    PublishPlan,
)
from repokeeper.models.channels import Channel, ChannelConfig, EvictionPolicy, Quota
from repokeeper.models.reports import RunReport
from repokeeper.models.states import (
    STATE_ORDER,
    VALID_TRANSITIONS,
    RunState,
    StateOutcome,
    StateTransition,
)

__all__ = [
    # artifacts
    "SIGNATURE_SUFFIX",
    "Artifact",
    "EvictionPlan",
    "PublishPlan",
    # channels
    "Channel",
    "ChannelConfig",
    "EvictionPolicy",
    "Quota",
    # states
    "RunState",
    "StateOutcome",
    "StateTransition",
    "STATE_ORDER",
    "VALID_TRANSITIONS",
    # reports
    "RunReport",
]
