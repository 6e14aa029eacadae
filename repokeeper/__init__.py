"""Repokeeper: signed package repository publisher for object storage behind a CDN.

Each run mirrors a channel locally, optionally re-signs and evicts, adds new
artifacts, rebuilds and signs the metadata index, and republishes with CDN
invalidation. Development channels are bounded by a size quota, enforced by
deleting the oldest artifacts first.
"""

__version__ = "0.1.0"
__description__ = "Signed package repository publisher with quota-bounded eviction"

from repokeeper.core.orchestrator import RepositoryOrchestrator
from repokeeper.cli.app import app as cli

__all__ = ["RepositoryOrchestrator", "cli", "__version__"]
