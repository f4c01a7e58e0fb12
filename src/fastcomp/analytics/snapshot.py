"""Resolve the start and post-fast reference weigh-ins for a fast."""

from __future__ import annotations

import logging
from typing import Iterable, Optional

from fastcomp.analytics.models import BodyLogEntry, Fast, FastSnapshot
from fastcomp.analytics.timezone import ReferenceOffsetStrategy, entry_local_date

logger = logging.getLogger(__name__)

START_TAGS = ("fast_start",)
POST_FAST_TAG = "post_fast"


def _weighed(entries: Iterable[BodyLogEntry]) -> list[BodyLogEntry]:
    """Entries with a weight and a parseable timestamp, oldest first."""
    return sorted(
        (e for e in entries or () if e is not None and e.has_weight),
        key=lambda e: e.logged_at,
    )


def find_post_fast_entry(linked: list[BodyLogEntry]) -> Optional[BodyLogEntry]:
    """Earliest fast-linked entry tagged post_fast."""
    return next((e for e in linked if e.entry_tag == POST_FAST_TAG), None)


def find_start_entry(
    fast: Fast,
    linked: list[BodyLogEntry],
    user_entries: list[BodyLogEntry],
    offset_strategy: Optional[ReferenceOffsetStrategy] = None,
) -> tuple[Optional[BodyLogEntry], Optional[str]]:
    """Resolve the start weigh-in, returning it with the tier that matched.

    1. A fast-linked entry tagged (or sourced) ``fast_start``.
    2. The earliest fast-linked entry logged before the fast started.
    3. Among all of the user's entries, the latest one strictly before the
       fast start on the same local date as the start. Users often weigh
       in shortly before starting a fast without linking the entry.
    """
    for entry in linked:
        if entry.entry_tag in START_TAGS or entry.source in START_TAGS:
            return entry, "fast_start"

    if fast.start_time is None:
        return None, None

    for entry in linked:
        if entry.logged_at < fast.start_time:
            return entry, "linked_before_start"

    strategy = offset_strategy or ReferenceOffsetStrategy()
    start_local_date = strategy.local_date_for(user_entries, fast.start_time)

    candidate = None
    for entry in user_entries:
        if entry.logged_at >= fast.start_time:
            break
        if entry_local_date(entry) == start_local_date:
            candidate = entry

    if candidate is not None:
        return candidate, "same_local_day"
    return None, None


def build_fast_snapshot(
    fast: Optional[Fast],
    fast_linked_entries: Iterable[BodyLogEntry],
    all_user_entries: Iterable[BodyLogEntry] = (),
    offset_strategy: Optional[ReferenceOffsetStrategy] = None,
) -> Optional[FastSnapshot]:
    """Build the start/post snapshot for a fast.

    Args:
        fast: The fast being analysed
        fast_linked_entries: Entries whose fast_id is this fast
        all_user_entries: Every entry of the user (for the same-day fallback)
        offset_strategy: How to pick the offset for the fast's start date

    Returns:
        FastSnapshot, or None when there is no fast
    """
    if fast is None:
        return None

    linked = _weighed(fast_linked_entries)
    user_entries = _weighed(
        e for e in all_user_entries or () if e is not None and e.user_id == fast.user_id
    )

    post_entry = find_post_fast_entry(linked)
    start_entry, resolution = find_start_entry(fast, linked, user_entries, offset_strategy)

    if start_entry is not None:
        start_weight = start_entry.weight_lbs
        start_body_fat = start_entry.body_fat_pct
    elif fast.weight_lbs is not None:
        start_weight = fast.weight_lbs
        start_body_fat = fast.body_fat_pct
        resolution = "legacy_fast_weight"
    else:
        start_weight = None
        start_body_fat = None

    logger.debug(
        "Fast %s snapshot: start=%s (%s), post=%s",
        fast.fast_id,
        start_entry.entry_id if start_entry else None,
        resolution,
        post_entry.entry_id if post_entry else None,
    )

    return FastSnapshot(
        start_entry=start_entry,
        post_entry=post_entry,
        start_weight=start_weight,
        post_weight=post_entry.weight_lbs if post_entry else None,
        start_body_fat=start_body_fat,
        post_body_fat=post_entry.body_fat_pct if post_entry else None,
        start_resolution=resolution,
    )
