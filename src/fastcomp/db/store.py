"""SQLite-backed store consumed by the analytics service.

Read methods follow the store contract the engine depends on. Each call
opens its own short-lived connection; errors from sqlite propagate to the
caller unchanged.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Union

from fastcomp.analytics.models import BodyLogEntry, Fast, UserProfile
from fastcomp.analytics.timezone import parse_timestamp
from fastcomp.db.connection import DatabaseConnection
from fastcomp.db.queries import BodyLogQueries, FastQueries, UserQueries


def _as_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def _as_datetime(value: Union[str, datetime]) -> datetime:
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {value!r}")
    return parsed


class SQLiteStore:
    """Fasts, weigh-ins and profiles stored in a local SQLite database."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    # Read contract ---------------------------------------------------------

    def get_fast_by_id(self, fast_id: int) -> Optional[Fast]:
        with self.db.get_connection() as conn:
            return FastQueries.get_fast(conn, fast_id)

    def get_fasts_by_user_and_date_range(
        self,
        user_id: int,
        start: Union[str, datetime],
        end: Union[str, datetime],
    ) -> list[Fast]:
        with self.db.get_connection() as conn:
            return FastQueries.get_fasts_in_range(
                conn, user_id, _as_datetime(start), _as_datetime(end)
            )

    def get_body_log_entries_by_fast_id(self, fast_id: int) -> list[BodyLogEntry]:
        with self.db.get_connection() as conn:
            return BodyLogQueries.get_entries_by_fast(conn, fast_id)

    def get_body_log_entries_by_user(
        self,
        user_id: int,
        start_date: Union[str, date, None] = None,
        end_date: Union[str, date, None] = None,
        include_secondary: bool = True,
    ) -> list[BodyLogEntry]:
        with self.db.get_connection() as conn:
            return BodyLogQueries.get_entries_by_user(
                conn,
                user_id,
                _as_date(start_date),
                _as_date(end_date),
                include_secondary=include_secondary,
            )

    def get_canonical_entries_by_range(
        self,
        user_id: int,
        start_date: Union[str, date],
        end_date: Union[str, date],
    ) -> list[BodyLogEntry]:
        with self.db.get_connection() as conn:
            return BodyLogQueries.get_canonical_entries(
                conn, user_id, _as_date(start_date), _as_date(end_date)
            )

    def get_user_profile(self, user_id: int) -> Optional[UserProfile]:
        with self.db.get_connection() as conn:
            return UserQueries.get_profile(conn, user_id)

    # Writes used by the CLI ------------------------------------------------

    def save_user_profile(self, user_id: int, profile: UserProfile) -> None:
        with self.db.get_connection() as conn:
            UserQueries.save_profile(conn, user_id, profile)

    def create_fast(self, user_id: int, start_time: Union[str, datetime], **kwargs) -> Fast:
        end_time = kwargs.pop("end_time", None)
        with self.db.get_connection() as conn:
            return FastQueries.create_fast(
                conn,
                user_id,
                _as_datetime(start_time),
                end_time=_as_datetime(end_time) if end_time is not None else None,
                **kwargs,
            )

    def end_fast(self, fast_id: int, end_time: Union[str, datetime]) -> Optional[Fast]:
        with self.db.get_connection() as conn:
            return FastQueries.end_fast(conn, fast_id, _as_datetime(end_time))

    def create_entry(self, user_id: int, logged_at: Union[str, datetime], weight_lbs: float, **kwargs) -> BodyLogEntry:
        fast_id = kwargs.get("fast_id")
        with self.db.get_connection() as conn:
            if fast_id is not None:
                fast = FastQueries.get_fast(conn, fast_id)
                if fast is None or fast.user_id != user_id:
                    raise ValueError(f"Fast {fast_id} not found")
            return BodyLogQueries.add_entry(conn, user_id, logged_at, weight_lbs, **kwargs)

    def mark_canonical_entry(
        self,
        entry_id: int,
        canonical_status: str = "manual",
        canonical_reason: Optional[str] = None,
    ) -> BodyLogEntry:
        """Atomically make ``entry_id`` the canonical entry of its local day."""
        with self.db.get_connection() as conn:
            return BodyLogQueries.mark_canonical(
                conn, entry_id, canonical_status, canonical_reason
            )
