"""Database queries for fasts, body log entries and user profiles.

Rows are converted to typed records in exactly one place per table
(``fast_from_row``, ``entry_from_row``, ``profile_from_row``).
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import date, datetime, timezone
from typing import Optional, Union

from fastcomp.analytics.models import BodyLogEntry, Fast, UserProfile
from fastcomp.analytics.timezone import normalize_timestamp, parse_timestamp

logger = logging.getLogger(__name__)

ENTRY_COLUMNS = """
    entry_id, user_id, fast_id, logged_at, local_date, timezone_offset_minutes,
    time_zone, weight_lbs, body_fat_pct, entry_tag, source, notes,
    is_canonical, canonical_status, canonical_reason
"""

FAST_COLUMNS = """
    fast_id, user_id, start_time, end_time, duration_hours,
    planned_duration_hours, weight_lbs, body_fat_pct, source
"""


def format_timestamp(value: datetime) -> str:
    """Store instants as second-resolution UTC ISO strings (sortable as text)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning("Ignoring malformed local_date %r", value)
        return None


def _float_or_none(value) -> Optional[float]:
    return float(value) if value is not None else None


def entry_from_row(row: sqlite3.Row) -> BodyLogEntry:
    """Map a body_log_entries row to a BodyLogEntry."""
    return BodyLogEntry(
        entry_id=row["entry_id"],
        user_id=row["user_id"],
        fast_id=row["fast_id"],
        logged_at=parse_timestamp(row["logged_at"]),
        local_date=_parse_date(row["local_date"]),
        timezone_offset_minutes=row["timezone_offset_minutes"],
        time_zone=row["time_zone"],
        weight_lbs=_float_or_none(row["weight_lbs"]),
        body_fat_pct=_float_or_none(row["body_fat_pct"]),
        entry_tag=row["entry_tag"],
        source=row["source"],
        notes=row["notes"],
        is_canonical=bool(row["is_canonical"]),
        canonical_status=row["canonical_status"] or "auto",
        canonical_reason=row["canonical_reason"],
    )


def fast_from_row(row: sqlite3.Row) -> Fast:
    """Map a fasts row to a Fast."""
    return Fast(
        fast_id=row["fast_id"],
        user_id=row["user_id"],
        start_time=parse_timestamp(row["start_time"]),
        end_time=parse_timestamp(row["end_time"]),
        duration_hours=_float_or_none(row["duration_hours"]),
        planned_duration_hours=_float_or_none(row["planned_duration_hours"]),
        weight_lbs=_float_or_none(row["weight_lbs"]),
        body_fat_pct=_float_or_none(row["body_fat_pct"]),
        source=row["source"],
    )


def profile_from_row(row: sqlite3.Row) -> UserProfile:
    """Map a user_profiles row to a UserProfile."""
    return UserProfile(
        height_cm=row["height_cm"],
        age=row["age"],
        sex=row["sex"],
        activity=row["activity"],
        tdee=row["tdee"],
        keto_adapted=row["keto_adapted"],
        start_in_ketosis=bool(row["start_in_ketosis"]),
        pre_fast_protein_grams=row["pre_fast_protein_grams"] or 0.0,
        carb_status=row["carb_status"],
    )


class UserQueries:
    """Database queries for user profiles."""

    @staticmethod
    def save_profile(conn: sqlite3.Connection, user_id: int, profile: UserProfile) -> None:
        """Create or replace a user's profile."""
        conn.execute(
            """
            INSERT OR REPLACE INTO user_profiles
            (user_id, height_cm, age, sex, activity, tdee, keto_adapted,
             start_in_ketosis, pre_fast_protein_grams, carb_status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                profile.height_cm,
                profile.age,
                profile.sex,
                profile.activity,
                profile.tdee,
                profile.keto_adapted,
                profile.start_in_ketosis,
                profile.pre_fast_protein_grams,
                profile.carb_status,
            ),
        )

    @staticmethod
    def get_profile(conn: sqlite3.Connection, user_id: int) -> Optional[UserProfile]:
        row = conn.execute(
            """
            SELECT height_cm, age, sex, activity, tdee, keto_adapted,
                   start_in_ketosis, pre_fast_protein_grams, carb_status
            FROM user_profiles WHERE user_id = ?
            """,
            (user_id,),
        ).fetchone()
        return profile_from_row(row) if row else None


class FastQueries:
    """Database queries for fasting sessions."""

    @staticmethod
    def create_fast(
        conn: sqlite3.Connection,
        user_id: int,
        start_time: datetime,
        planned_duration_hours: Optional[float] = None,
        weight_lbs: Optional[float] = None,
        body_fat_pct: Optional[float] = None,
        source: Optional[str] = "manual",
        end_time: Optional[datetime] = None,
    ) -> Fast:
        """Insert a fast and return it."""
        duration = None
        if end_time is not None:
            duration = (end_time - start_time).total_seconds() / 3600
        cursor = conn.execute(
            """
            INSERT INTO fasts (user_id, start_time, end_time, duration_hours,
                               planned_duration_hours, weight_lbs, body_fat_pct, source)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                format_timestamp(start_time),
                format_timestamp(end_time) if end_time else None,
                duration,
                planned_duration_hours,
                weight_lbs,
                body_fat_pct,
                source,
            ),
        )
        return FastQueries.get_fast(conn, cursor.lastrowid)

    @staticmethod
    def end_fast(conn: sqlite3.Connection, fast_id: int, end_time: datetime) -> Optional[Fast]:
        """Close an active fast, recording its duration."""
        fast = FastQueries.get_fast(conn, fast_id)
        if fast is None:
            return None
        if fast.end_time is not None:
            raise ValueError(f"Fast {fast_id} has already ended")
        if fast.start_time is None or end_time <= fast.start_time:
            raise ValueError("end_time must be after the fast's start_time")

        duration = (end_time - fast.start_time).total_seconds() / 3600
        conn.execute(
            "UPDATE fasts SET end_time = ?, duration_hours = ? WHERE fast_id = ?",
            (format_timestamp(end_time), duration, fast_id),
        )
        return FastQueries.get_fast(conn, fast_id)

    @staticmethod
    def get_fast(conn: sqlite3.Connection, fast_id: int) -> Optional[Fast]:
        row = conn.execute(
            f"SELECT {FAST_COLUMNS} FROM fasts WHERE fast_id = ?",
            (fast_id,),
        ).fetchone()
        return fast_from_row(row) if row else None

    @staticmethod
    def get_fasts_in_range(
        conn: sqlite3.Connection,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> list[Fast]:
        """Fasts that start, end, or are in progress within [start, end]."""
        start_s = format_timestamp(start)
        end_s = format_timestamp(end)
        rows = conn.execute(
            f"""
            SELECT {FAST_COLUMNS} FROM fasts
            WHERE user_id = ?
              AND (
                (start_time >= ? AND start_time <= ?)
                OR (end_time IS NOT NULL AND end_time >= ? AND end_time <= ?)
                OR (start_time <= ? AND (end_time IS NULL OR end_time >= ?))
              )
            ORDER BY start_time
            """,
            (user_id, start_s, end_s, start_s, end_s, start_s, end_s),
        ).fetchall()
        return [fast_from_row(row) for row in rows]


class BodyLogQueries:
    """Database queries for body log entries."""

    @staticmethod
    def add_entry(
        conn: sqlite3.Connection,
        user_id: int,
        logged_at: Union[str, datetime],
        weight_lbs: float,
        body_fat_pct: Optional[float] = None,
        entry_tag: str = "ad_hoc",
        timezone_offset_minutes: Optional[int] = None,
        time_zone: Optional[str] = None,
        fast_id: Optional[int] = None,
        source: str = "manual",
        notes: Optional[str] = None,
    ) -> BodyLogEntry:
        """Insert a weigh-in, deriving its local date from the offset or zone.

        The entry tag is stored as given; tagging and canonical selection
        are the caller's responsibility.
        """
        context = normalize_timestamp(logged_at, timezone_offset_minutes, time_zone)
        cursor = conn.execute(
            """
            INSERT INTO body_log_entries
            (user_id, fast_id, logged_at, local_date, timezone_offset_minutes, time_zone,
             weight_lbs, body_fat_pct, entry_tag, source, notes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id,
                fast_id,
                format_timestamp(context.instant),
                context.local_date.isoformat(),
                context.offset_minutes,
                context.time_zone,
                weight_lbs,
                body_fat_pct,
                entry_tag,
                source,
                notes,
            ),
        )
        return BodyLogQueries.get_entry(conn, cursor.lastrowid)

    @staticmethod
    def get_entry(conn: sqlite3.Connection, entry_id: int) -> Optional[BodyLogEntry]:
        row = conn.execute(
            f"SELECT {ENTRY_COLUMNS} FROM body_log_entries WHERE entry_id = ?",
            (entry_id,),
        ).fetchone()
        return entry_from_row(row) if row else None

    @staticmethod
    def get_entries_by_fast(conn: sqlite3.Connection, fast_id: int) -> list[BodyLogEntry]:
        rows = conn.execute(
            f"""
            SELECT {ENTRY_COLUMNS} FROM body_log_entries
            WHERE fast_id = ?
            ORDER BY logged_at
            """,
            (fast_id,),
        ).fetchall()
        return [entry_from_row(row) for row in rows]

    @staticmethod
    def get_entries_by_user(
        conn: sqlite3.Connection,
        user_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_secondary: bool = True,
    ) -> list[BodyLogEntry]:
        """Entries for a user by local date; secondary means non-canonical."""
        query = f"SELECT {ENTRY_COLUMNS} FROM body_log_entries WHERE user_id = ?"
        params: list = [user_id]

        if start_date:
            query += " AND local_date >= ?"
            params.append(start_date.isoformat())
        if end_date:
            query += " AND local_date <= ?"
            params.append(end_date.isoformat())
        if not include_secondary:
            query += " AND is_canonical = 1"

        query += " ORDER BY logged_at"

        rows = conn.execute(query, params).fetchall()
        return [entry_from_row(row) for row in rows]

    @staticmethod
    def get_canonical_entries(
        conn: sqlite3.Connection,
        user_id: int,
        start_date: date,
        end_date: date,
    ) -> list[BodyLogEntry]:
        return BodyLogQueries.get_entries_by_user(
            conn, user_id, start_date, end_date, include_secondary=False
        )

    @staticmethod
    def mark_canonical(
        conn: sqlite3.Connection,
        entry_id: int,
        canonical_status: str = "manual",
        canonical_reason: Optional[str] = None,
    ) -> BodyLogEntry:
        """Make an entry the canonical one for its (user, local date).

        Clears the previous canonical entry and sets the new one on the same
        connection, so both changes commit or roll back together.
        """
        if canonical_status not in ("auto", "manual"):
            raise ValueError(f"canonical_status must be 'auto' or 'manual', got '{canonical_status}'")

        row = conn.execute(
            "SELECT user_id, local_date, entry_tag FROM body_log_entries WHERE entry_id = ?",
            (entry_id,),
        ).fetchone()
        if row is None:
            raise ValueError(f"Body log entry {entry_id} not found")

        conn.execute(
            """
            UPDATE body_log_entries
            SET is_canonical = 0, canonical_status = 'auto', canonical_reason = NULL
            WHERE user_id = ? AND local_date = ? AND is_canonical = 1
            """,
            (row["user_id"], row["local_date"]),
        )
        conn.execute(
            """
            UPDATE body_log_entries
            SET is_canonical = 1, canonical_status = ?, canonical_reason = ?,
                canonical_override_at = CASE WHEN ? = 'manual' THEN ? ELSE NULL END
            WHERE entry_id = ?
            """,
            (
                canonical_status,
                canonical_reason or row["entry_tag"],
                canonical_status,
                format_timestamp(datetime.now(timezone.utc)),
                entry_id,
            ),
        )
        return BodyLogQueries.get_entry(conn, entry_id)
