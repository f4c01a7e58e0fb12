"""SQLite connection handling for the fastcomp database."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

from fastcomp.db.schema import get_schema_sql


class DatabaseConnection:
    """Opens short-lived connections to one fastcomp database file.

    Weigh-ins reference their fast through ``body_log_entries.fast_id``;
    foreign keys are switched on for every connection so a weigh-in can
    never point at a fast that does not exist.
    """

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Yield a connection whose statements commit or roll back as one unit.

        Canonical swaps and fast/weigh-in writes rely on this: either every
        statement in the ``with`` block lands or none does.
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def initialize_schema(self) -> None:
        """Create the profile, fast and body log tables (safe to repeat)."""
        with self.get_connection() as conn:
            conn.executescript(get_schema_sql())


# Global database instance, used by the CLI only
_db: Optional[DatabaseConnection] = None


def get_db() -> DatabaseConnection:
    """Database at ``settings.database.path``, created on first use."""
    global _db
    if _db is None:
        from fastcomp.config import get_settings

        _db = DatabaseConnection(get_settings().database.path)
    return _db


def set_db(db: Optional[DatabaseConnection]) -> None:
    """Point the CLI at another database (or clear it). Used by tests."""
    global _db
    _db = db
