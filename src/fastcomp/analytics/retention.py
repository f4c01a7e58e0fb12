"""Short-term retention of the weight lost during a fast.

Retention compares the post-fast weigh-in with the next canonical
weigh-in inside a 48 hour window. A fast that dropped 4 lb followed by a
1 lb rebound retained 75% of its loss.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable, Optional

from fastcomp.analytics.models import (
    BodyLogEntry,
    Fast,
    FastSnapshot,
    RetentionResult,
    round_or_none,
)

DEFAULT_RETENTION_WINDOW_HOURS = 48

WAITING_MESSAGE = "We don't have a weigh-in to gauge retention yet."
NO_DATA_MESSAGE = "Complete a fast with start and post-fast weights to see retention insights."


def find_next_canonical_entry(
    post_entry: BodyLogEntry,
    canonical_entries: Iterable[BodyLogEntry],
    window_hours: float = DEFAULT_RETENTION_WINDOW_HOURS,
) -> Optional[BodyLogEntry]:
    """Earliest canonical entry in (post, post + window], other than the post entry."""
    posted = post_entry.logged_at
    cutoff = posted + timedelta(hours=window_hours)

    candidates = [
        entry
        for entry in canonical_entries or ()
        if entry is not None
        and entry.entry_id != post_entry.entry_id
        and entry.logged_at is not None
        and posted < entry.logged_at <= cutoff
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda e: e.logged_at)


def calculate_retention_for_fast(
    fast: Optional[Fast],
    snapshot: Optional[FastSnapshot],
    canonical_entries: Iterable[BodyLogEntry],
    window_hours: float = DEFAULT_RETENTION_WINDOW_HOURS,
) -> Optional[RetentionResult]:
    """Compute retention for one fast.

    Args:
        fast: The completed fast
        snapshot: Its resolved start/post snapshot
        canonical_entries: The user's canonical weigh-ins
        window_hours: How long after the post-fast weigh-in to look

    Returns:
        RetentionResult with status 'ok' or 'waiting', or None when the
        snapshot lacks a usable post-fast weigh-in or start weight
    """
    if fast is None or snapshot is None or snapshot.post_entry is None:
        return None
    if snapshot.start_weight is None or snapshot.post_weight is None:
        return None

    post_entry = snapshot.post_entry
    if post_entry.logged_at is None:
        return None

    start_weight = snapshot.start_weight
    post_weight = snapshot.post_weight
    loss = start_weight - post_weight

    next_entry = find_next_canonical_entry(post_entry, canonical_entries, window_hours)
    if next_entry is None:
        return RetentionResult(
            status="waiting",
            message=WAITING_MESSAGE,
            fast_id=fast.fast_id,
            post_fast_weight=round_or_none(post_weight),
            post_fast_logged_at=post_entry.logged_at,
        )

    next_weight = next_entry.weight_lbs
    if next_weight is None:
        return None

    regained = max(0.0, next_weight - post_weight)
    if loss > 0:
        retained = max(0.0, loss - regained)
        retention_percent = max(0.0, min(1.0, retained / loss)) * 100
    else:
        retention_percent = 0.0

    return RetentionResult(
        status="ok",
        fast_id=fast.fast_id,
        post_fast_weight=round_or_none(post_weight),
        post_fast_logged_at=post_entry.logged_at,
        next_canonical_weight=round_or_none(next_weight),
        next_canonical_logged_at=next_entry.logged_at,
        weight_lost_during_fast=round_or_none(loss),
        weight_regained=round_or_none(regained),
        retention_percent=round_or_none(retention_percent, 0),
        raw={
            "weight_lost_during_fast": loss,
            "weight_regained": regained,
            "retention_percent": retention_percent,
        },
    )
