"""Timestamp parsing and local-date reasoning for body log entries.

Weigh-ins are stored as UTC instants plus the UTC offset (minutes) the
user was at when logging. The local calendar date is what canonical
designation and start-weight matching key on.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Union

from dateutil import parser as date_parser
from dateutil import tz

logger = logging.getLogger(__name__)

_OFFSET_PATTERN = re.compile(r"([+-])(\d{2}):?(\d{2})$")


def parse_offset_from_iso(value: str) -> Optional[int]:
    """Return the UTC offset (minutes) carried by an ISO-8601 string.

    Example:
        >>> parse_offset_from_iso("2025-01-05T07:30:00-05:00")
        -300
        >>> parse_offset_from_iso("2025-01-05T12:30:00Z")
        0
    """
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        return 0
    match = _OFFSET_PATTERN.search(text)
    if not match or "T" not in text:
        return None
    sign = -1 if match.group(1) == "-" else 1
    return sign * (int(match.group(2)) * 60 + int(match.group(3)))


def parse_timestamp(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse a stored timestamp into an aware UTC datetime.

    Naive values are treated as UTC. Returns None when the value cannot be
    parsed, so callers can drop the record instead of failing.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = date_parser.isoparse(str(value).strip())
        except (ValueError, OverflowError):
            logger.warning("Ignoring malformed timestamp %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def offset_from_time_zone(instant: datetime, time_zone: Optional[str]) -> Optional[int]:
    """UTC offset (minutes) of a named IANA zone at ``instant``."""
    if not time_zone:
        return None
    zone = tz.gettz(time_zone)
    if zone is None:
        return None
    offset = instant.astimezone(zone).utcoffset()
    if offset is None:
        return None
    return int(offset.total_seconds() // 60)


def resolve_offset_minutes(
    instant: datetime,
    offset_minutes: Optional[int] = None,
    time_zone: Optional[str] = None,
) -> int:
    """Pick the offset for an instant: named zone, else explicit offset, else UTC."""
    zone_offset = offset_from_time_zone(instant, time_zone)
    if zone_offset is not None:
        return zone_offset
    if offset_minutes is not None:
        return int(offset_minutes)
    return 0


def local_date(instant: datetime, offset_minutes: int) -> date:
    """Calendar date at ``instant`` shifted by ``offset_minutes``."""
    shifted = instant.astimezone(timezone.utc) + timedelta(minutes=offset_minutes)
    return shifted.date()


@dataclass
class LocalContext:
    """Normalised instant and its local calendar context."""

    instant: datetime
    offset_minutes: int
    time_zone: Optional[str]
    local_date: date

    @property
    def local_time(self) -> datetime:
        return self.instant + timedelta(minutes=self.offset_minutes)


def normalize_timestamp(
    logged_at: Union[str, datetime],
    timezone_offset_minutes: Optional[int] = None,
    time_zone: Optional[str] = None,
) -> LocalContext:
    """Resolve a user-supplied timestamp into its UTC instant and local date.

    The offset comes from the named zone when given, else the explicit
    offset, else the offset embedded in the ISO string, else UTC.

    Raises:
        ValueError: if ``logged_at`` cannot be parsed
    """
    instant = parse_timestamp(logged_at)
    if instant is None:
        raise ValueError(f"Unable to parse logged_at value: {logged_at!r}")

    offset = timezone_offset_minutes
    if offset is None and isinstance(logged_at, str):
        offset = parse_offset_from_iso(logged_at)
    zone = time_zone.strip() if isinstance(time_zone, str) and time_zone.strip() else None

    resolved = resolve_offset_minutes(instant, offset, zone)
    return LocalContext(
        instant=instant,
        offset_minutes=resolved,
        time_zone=zone,
        local_date=local_date(instant, resolved),
    )


def entry_local_date(entry) -> Optional[date]:
    """Local date of a body log entry: the stored value, else derived."""
    if entry.local_date is not None:
        return entry.local_date
    if entry.logged_at is None:
        return None
    offset = resolve_offset_minutes(
        entry.logged_at, entry.timezone_offset_minutes, entry.time_zone
    )
    return local_date(entry.logged_at, offset)


class ReferenceOffsetStrategy:
    """Choose a UTC offset to interpret an instant that carries none.

    Fasts are stored without the user's offset, so the local date of a
    fast's start has to borrow one from the user's weigh-ins. The offset
    is taken from the latest entry at or before the instant that carries
    one, else the earliest such entry after it. With no offset anywhere in
    the user's history the strategy falls back to UTC, which can attribute
    a late-evening weigh-in to the wrong local day.
    """

    fallback_offset_minutes = 0

    def resolve(self, entries: Iterable, at: datetime) -> int:
        before: Optional[tuple[datetime, int]] = None
        after: Optional[tuple[datetime, int]] = None

        for entry in entries:
            if entry.logged_at is None:
                continue
            offset = entry.timezone_offset_minutes
            if offset is None and entry.time_zone:
                offset = offset_from_time_zone(entry.logged_at, entry.time_zone)
            if offset is None:
                continue
            if entry.logged_at <= at:
                if before is None or entry.logged_at > before[0]:
                    before = (entry.logged_at, offset)
            elif after is None or entry.logged_at < after[0]:
                after = (entry.logged_at, offset)

        if before is not None:
            return before[1]
        if after is not None:
            return after[1]
        logger.debug("No reference offset in history; using UTC for %s", at)
        return self.fallback_offset_minutes

    def local_date_for(self, entries: Iterable, at: datetime) -> date:
        return local_date(at, self.resolve(entries, at))
