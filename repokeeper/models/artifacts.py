"""Artifact, eviction plan, and publish plan models."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

SIGNATURE_SUFFIX = ".asc"


class Artifact(BaseModel):
    """A published package file, tracked by name.

    Artifacts are treated as opaque byte blobs: only the name, size and
    modification time matter to the repository lifecycle.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    size_bytes: int = Field(ge=0)
    modified_at: datetime
    has_signature: bool = False
    signature_size_bytes: int = Field(default=0, ge=0)

    @property
    def signature_name(self) -> str:
        """Deterministic name of this artifact's detached signature."""
        return f"{self.name}{SIGNATURE_SUFFIX}"

    @property
    def total_size_bytes(self) -> int:
        """Artifact bytes plus signature bytes."""
        return self.size_bytes + (self.signature_size_bytes if self.has_signature else 0)


class EvictionPlan(BaseModel):
    """Ordered, oldest-first set of artifacts selected for deletion."""

    model_config = ConfigDict(frozen=True)

    total_bytes: int = 0
    quota_bytes: int = 0
    deficit_bytes: int = 0
    freed_bytes: int = 0
    to_delete: list[Artifact] = []
    stopped_early: bool = False  # scan ended before the deficit was covered

    @property
    def is_empty(self) -> bool:
        return not self.to_delete

    @property
    def names(self) -> list[str]:
        return [a.name for a in self.to_delete]


class PublishPlan(BaseModel):
    """What a single run changes, derived once and applied in order."""

    model_config = ConfigDict(frozen=True)

    to_add: list[str] = []  # artifact names copied into the snapshot
    to_delete: list[str] = []  # artifact names evicted from the snapshot
    resigned: list[str] = []

    @property
    def rebuild_metadata(self) -> bool:
        """Metadata must be rebuilt whenever the artifact set changed."""
        return bool(self.to_add or self.to_delete)
