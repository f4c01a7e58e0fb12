"""SQLite storage for fasts, body log entries and user profiles."""

from __future__ import annotations

from fastcomp.db.connection import DatabaseConnection, get_db, set_db
from fastcomp.db.store import SQLiteStore

__all__ = [
    "DatabaseConnection",
    "SQLiteStore",
    "get_db",
    "set_db",
]
