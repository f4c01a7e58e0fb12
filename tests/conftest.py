"""Pytest fixtures for fastcomp tests."""

from __future__ import annotations

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from fastcomp.analytics.models import BodyLogEntry, Fast
from fastcomp.db.connection import DatabaseConnection
from fastcomp.db.store import SQLiteStore


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def make_entry(entry_id, logged_at, weight, **kwargs) -> BodyLogEntry:
    kwargs.setdefault("user_id", 1)
    return BodyLogEntry(entry_id=entry_id, logged_at=logged_at, weight_lbs=weight, **kwargs)


def make_fast(fast_id, start, hours=None, **kwargs) -> Fast:
    kwargs.setdefault("user_id", 1)
    end = start + timedelta(hours=hours) if hours is not None else None
    return Fast(
        fast_id=fast_id,
        start_time=start,
        end_time=end,
        duration_hours=hours,
        **kwargs,
    )


@pytest.fixture
def temp_db():
    """Create a temporary database with schema."""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    db = DatabaseConnection(db_path)
    db.initialize_schema()

    yield db

    # Cleanup
    db_path.unlink(missing_ok=True)


@pytest.fixture
def store(temp_db):
    return SQLiteStore(temp_db)


def seed_fast(store, start, hours, start_weight, post_weight, planned=None, user_id=1, **post):
    """Insert a completed fast with linked fast_start and post_fast weigh-ins."""
    end = start + timedelta(hours=hours)
    fast = store.create_fast(
        user_id, start, planned_duration_hours=planned, end_time=end
    )
    store.create_entry(
        user_id, start, start_weight, entry_tag="fast_start", fast_id=fast.fast_id,
        body_fat_pct=post.pop("start_body_fat", None),
    )
    post_entry = store.create_entry(
        user_id, end, post_weight, entry_tag="post_fast", fast_id=fast.fast_id, **post
    )
    return fast, post_entry


@pytest.fixture
def seeded_store(store):
    """Two completed fasts (planned 36h and 24h) with next-morning canonicals.

    Fast 1: 200 -> 196, next canonical 197 (75% retained)
    Fast 2: 198 -> 195, next canonical 196 (67% retained)
    """
    seed_fast(store, utc(2025, 3, 1, 18), 36, 200.0, 196.0, planned=36)
    morning = store.create_entry(1, utc(2025, 3, 4, 12), 197.0, entry_tag="morning")
    store.mark_canonical_entry(morning.entry_id, "auto")

    seed_fast(store, utc(2025, 3, 8, 18), 24, 198.0, 195.0, planned=24)
    morning = store.create_entry(1, utc(2025, 3, 10, 12), 196.0, entry_tag="morning")
    store.mark_canonical_entry(morning.entry_id, "auto")

    return store
