"""Channel and quota models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Channel(str, Enum):
    """The two supported repository channels."""

    STABLE = "stable"
    DEVELOPMENT = "development"


class EvictionPolicy(str, Enum):
    """How the eviction scan decides when to stop."""

    REACH_QUOTA = "reach_quota"  # delete while freed < deficit
    STRICT_UNDER = "strict_under"  # delete only while freed + size < deficit


class Quota(BaseModel):
    """Size bound for a development channel, scoped to one file extension."""

    model_config = ConfigDict(frozen=True)

    max_size_bytes: int = Field(ge=0)
    extension_filter: str = "rpm"

    @field_validator("extension_filter")
    @classmethod
    def _normalize_extension(cls, value: str) -> str:
        value = value.strip().lstrip(".")
        if not value:
            raise ValueError("extension_filter must not be empty")
        return value

    def matches(self, name: str) -> bool:
        """Return True if *name* carries the quota's extension."""
        return name.endswith(f".{self.extension_filter}")


class ChannelConfig(BaseModel):
    """A channel bound to its remote prefix and (for development) its quota."""

    model_config = ConfigDict(frozen=True)

    channel: Channel
    remote_prefix: str
    quota: Quota | None = None

    @field_validator("remote_prefix")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        return value.strip("/")

    @model_validator(mode="after")
    def _quota_matches_channel(self) -> ChannelConfig:
        if self.channel == Channel.DEVELOPMENT and self.quota is None:
            raise ValueError("development channel requires a quota")
        if self.channel == Channel.STABLE and self.quota is not None:
            raise ValueError("stable channel must not carry a quota")
        return self

    @property
    def is_quota_bounded(self) -> bool:
        return self.channel == Channel.DEVELOPMENT

    def remote_key(self, relative: str) -> str:
        """Object key for *relative* under this channel's prefix."""
        relative = relative.lstrip("/")
        return f"{self.remote_prefix}/{relative}" if self.remote_prefix else relative

    def cdn_path(self, relative: str) -> str:
        """CDN path (always rooted) for *relative* under this channel."""
        return "/" + self.remote_key(relative)
