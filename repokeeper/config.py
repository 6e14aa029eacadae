"""Publisher configuration — env-driven via pydantic-settings.

Reads from a .env file and REPOKEEPER_* environment variables. Quota
parameters and the CDN distribution are operational settings, never part
of the remote layout.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from repokeeper.models.channels import Channel, ChannelConfig, EvictionPolicy, Quota

GIB = 1024 ** 3


class SignerBackend(str, Enum):
    GPG = "gpg"
    ED25519 = "ed25519"


class PublisherSettings(BaseSettings):
    """Publisher configuration with environment variable overrides.

    Examples
    --------
    Override via environment::

        export REPOKEEPER_BUCKET_URL=s3://packages.example.org
        export REPOKEEPER_CDN_DISTRIBUTION_ID=E2ABCDEF123456
        export REPOKEEPER_DEVELOPMENT_QUOTA_BYTES=5368709120

    Or via .env file::

        REPOKEEPER_GPG_KEY_ID=releng@example.org
        REPOKEEPER_PRUNE_DRY_RUN=false
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="REPOKEEPER_",
        env_file_encoding="utf-8",
    )

    # Runtime environment
    environment: str = "development"
    log_level: str = "INFO"
    debug: bool = False

    # Remote layout
    bucket_url: str = "s3://repokeeper-packages"
    stable_prefix: str = "stable"
    development_prefix: str = "development"
    cdn_distribution_id: str = ""

    # Development channel quota
    development_quota_bytes: int = 10 * GIB
    development_extension: str = "rpm"
    eviction_policy: EvictionPolicy = EvictionPolicy.REACH_QUOTA

    # Local working area; one subdirectory per channel
    workdir_root: Path = Path(".repokeeper/work")

    # Signing
    signer_backend: SignerBackend = SignerBackend.GPG
    gpg_key_id: str = ""
    ed25519_private_key: str = ""  # hex seed, see `repokeeper keygen`

    # External tools
    aws_binary: str = "aws"
    createrepo_binary: str = "createrepo_c"
    gpg_binary: str = "gpg"

    # Full-tree remote reconciliation stays advisory unless turned off here
    prune_dry_run: bool = True

    @property
    def is_production(self) -> bool:
        """Whether running in production mode."""
        return self.environment == "production"

    def channel_config(self, channel: Channel) -> ChannelConfig:
        """Build the ChannelConfig for *channel* from these settings."""
        if channel == Channel.DEVELOPMENT:
            return ChannelConfig(
                channel=channel,
                remote_prefix=self.development_prefix,
                quota=Quota(
                    max_size_bytes=self.development_quota_bytes,
                    extension_filter=self.development_extension,
                ),
            )
        return ChannelConfig(channel=channel, remote_prefix=self.stable_prefix)

    def workdir_for(self, channel: Channel) -> Path:
        return self.workdir_root / channel.value


# Module-level singleton; import as `from repokeeper.config import settings`
settings = PublisherSettings()
