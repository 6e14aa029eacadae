"""Quota-bounded eviction planning for development channels.

The planner is a pure function over a fully materialized candidate list:
it never touches the store and carries no state between calls. Callers
apply the returned plan themselves.

Both policies walk candidates oldest-first in a single pass and stop at
the first candidate that fails the policy test; newer candidates are
never considered after that, even if they would fit on their own.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from repokeeper.models.artifacts import Artifact, EvictionPlan
from repokeeper.models.channels import EvictionPolicy, Quota

logger = logging.getLogger(__name__)


def _should_delete(
    policy: EvictionPolicy, freed: int, candidate: Artifact, deficit: int
) -> bool:
    if policy == EvictionPolicy.STRICT_UNDER:
        return freed + candidate.size_bytes < deficit
    return freed < deficit


def plan_eviction(
    artifacts: Iterable[Artifact],
    quota: Quota,
    *,
    policy: EvictionPolicy = EvictionPolicy.REACH_QUOTA,
) -> EvictionPlan:
    """Select the oldest matching artifacts to delete so the channel fits *quota*.

    Parameters
    ----------
    artifacts:
        Every artifact in the snapshot; non-matching extensions are ignored.
    quota:
        Maximum total size and the extension it applies to.
    policy:
        ``REACH_QUOTA`` deletes while the freed total is below the deficit,
        so it may overshoot by up to one artifact. ``STRICT_UNDER`` deletes
        only while the freed total plus the candidate stays below the
        deficit, so a single candidate larger than the deficit stops the
        scan and the channel stays over quota.

    Returns
    -------
    EvictionPlan
        Empty when the matching total is already within the quota.
    """
    candidates = sorted(
        (a for a in artifacts if quota.matches(a.name)),
        key=lambda a: (a.modified_at, a.name),
    )
    total = sum(a.size_bytes for a in candidates)

    if total <= quota.max_size_bytes:
        logger.debug(
            "Within quota: %d <= %d bytes, nothing to evict", total, quota.max_size_bytes
        )
        return EvictionPlan(total_bytes=total, quota_bytes=quota.max_size_bytes)

    deficit = total - quota.max_size_bytes
    freed = 0
    selected: list[Artifact] = []
    stopped_early = False

    for candidate in candidates:
        if not _should_delete(policy, freed, candidate, deficit):
            # Under STRICT_UNDER this can leave the channel over quota;
            # that is accepted for this run.
            stopped_early = freed < deficit
            logger.debug(
                "Eviction scan stopped at %s (freed=%d deficit=%d)",
                candidate.name,
                freed,
                deficit,
            )
            break
        selected.append(candidate)
        freed += candidate.total_size_bytes
    else:
        stopped_early = freed < deficit

    logger.info(
        "Eviction plan: %d artifact(s), %d of %d deficit bytes (policy=%s)",
        len(selected),
        freed,
        deficit,
        policy.value,
    )
    return EvictionPlan(
        total_bytes=total,
        quota_bytes=quota.max_size_bytes,
        deficit_bytes=deficit,
        freed_bytes=freed,
        to_delete=selected,
        stopped_early=stopped_early,
    )
