"""Rich terminal rendering of run reports and eviction plans."""

from repokeeper.monitor.renderer import RunRenderer

__all__ = ["RunRenderer"]
