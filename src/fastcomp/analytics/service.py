"""Body log analytics service.

Composes the snapshot resolver, effectiveness calculator, retention
calculator and rolling aggregator on top of a store. The service keeps no
mutable state: every call re-reads the store and recomputes, so repeated
calls against an unchanged store return identical results and calls for
different users are independent.

The store must provide:

    get_fast_by_id(fast_id) -> Fast | None
    get_fasts_by_user_and_date_range(user_id, start, end) -> list[Fast]
    get_body_log_entries_by_fast_id(fast_id) -> list[BodyLogEntry]
    get_body_log_entries_by_user(user_id, start_date, end_date, include_secondary)
    get_canonical_entries_by_range(user_id, start_date, end_date)
    get_user_profile(user_id) -> UserProfile | None
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from fastcomp.analytics.composition import compute_weekly_composition
from fastcomp.analytics.effectiveness import (
    NOT_FOUND_MESSAGE,
    FastEffectivenessCalculator,
)
from fastcomp.analytics.insights import (
    NO_DATA_MESSAGE as NO_INSIGHTS_MESSAGE,
    FastSample,
    aggregate_rolling_insights,
    derive_protocol_group,
)
from fastcomp.analytics.models import (
    AnalyticsReport,
    BodyLogEntry,
    EffectivenessResult,
    Fast,
    FastSnapshot,
    RetentionResult,
    RollingInsights,
    UserProfile,
    WeeklyComposition,
)
from fastcomp.analytics.retention import (
    NO_DATA_MESSAGE as NO_RETENTION_MESSAGE,
    calculate_retention_for_fast,
)
from fastcomp.analytics.snapshot import build_fast_snapshot
from fastcomp.analytics.timezone import ReferenceOffsetStrategy
from fastcomp.config.settings import Settings

logger = logging.getLogger(__name__)

NO_EFFECTIVENESS_MESSAGE = (
    "Complete a fast with start and post-fast weights to size up effectiveness."
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _by_logged_at(entries: Iterable[BodyLogEntry]) -> list[BodyLogEntry]:
    """Drop entries with unusable timestamps and sort the rest ascending."""
    return sorted(
        (e for e in entries or () if e is not None and e.logged_at is not None),
        key=lambda e: e.logged_at,
    )


def _completed_newest_first(user_id: int, fasts: Iterable[Fast]) -> list[Fast]:
    completed = [
        fast
        for fast in fasts or ()
        if fast is not None
        and fast.user_id == user_id
        and fast.is_completed
        and fast.start_time is not None
    ]
    return sorted(completed, key=lambda f: f.end_time, reverse=True)


class BodyLogAnalyticsService:
    """Per-fast effectiveness, retention and rolling insights for a user."""

    def __init__(
        self,
        store,
        calculator: Optional[FastEffectivenessCalculator] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
        offset_strategy: Optional[ReferenceOffsetStrategy] = None,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.calculator = calculator or FastEffectivenessCalculator(self.settings.physiology)
        self.clock = clock or _utcnow
        self.offset_strategy = offset_strategy or ReferenceOffsetStrategy()

    # Snapshots -----------------------------------------------------------

    def _user_entries_through(self, user_id: int, fasts: list[Fast]) -> list[BodyLogEntry]:
        """User entries up to the day after the latest fast start."""
        starts = [f.start_time for f in fasts if f.start_time is not None]
        if not starts:
            return []
        end_date = (max(starts) + timedelta(days=1)).date()
        return self.store.get_body_log_entries_by_user(
            user_id, start_date=None, end_date=end_date, include_secondary=True
        )

    def _snapshot(self, fast: Fast, user_entries: list[BodyLogEntry]) -> Optional[FastSnapshot]:
        linked = self.store.get_body_log_entries_by_fast_id(fast.fast_id)
        return build_fast_snapshot(fast, linked, user_entries, self.offset_strategy)

    def _profile(self, user_id: int, profile: Optional[UserProfile]) -> UserProfile:
        """Explicit profile, else the stored one, else configured defaults."""
        if profile is not None:
            return profile
        stored = self.store.get_user_profile(user_id)
        if stored is not None:
            return stored
        return UserProfile(**self.settings.defaults.profile_fields())

    # Public API ------------------------------------------------------------

    def get_fast_effectiveness(
        self,
        user_id: int,
        fast_id: int,
        profile: Optional[UserProfile] = None,
        fast: Optional[Fast] = None,
        user_entries: Optional[list[BodyLogEntry]] = None,
    ) -> EffectivenessResult:
        """Fat / muscle / fluid breakdown for one of the user's fasts.

        Returns a 'not_found' result when the fast does not exist or belongs
        to another user.
        """
        if fast is None or fast.fast_id != fast_id:
            fast = self.store.get_fast_by_id(fast_id)

        if fast is None or fast.user_id != user_id:
            return EffectivenessResult(status="not_found", message=NOT_FOUND_MESSAGE)

        if user_entries is None:
            user_entries = self._user_entries_through(user_id, [fast])

        snapshot = self._snapshot(fast, user_entries)
        return self.calculator.compute_from_snapshot(
            fast, snapshot, self._profile(user_id, profile)
        )

    def compute_retention(
        self,
        user_id: int,
        fasts: list[Fast],
        canonical_entries: list[BodyLogEntry],
        user_entries: Optional[list[BodyLogEntry]] = None,
    ) -> RetentionResult:
        """Retention of the most recent completed fast that has a verdict."""
        completed = _completed_newest_first(user_id, fasts)
        if not completed:
            return RetentionResult(status="no-data", message=NO_RETENTION_MESSAGE)

        if user_entries is None:
            user_entries = self._user_entries_through(user_id, completed)
        canonical = _by_logged_at(canonical_entries)
        window = self.settings.analytics.retention_window_hours

        for fast in completed:
            snapshot = self._snapshot(fast, user_entries)
            if snapshot is None or snapshot.post_entry is None:
                continue
            result = calculate_retention_for_fast(fast, snapshot, canonical, window)
            if result is not None and result.status in ("ok", "waiting"):
                return result

        return RetentionResult(status="no-data", message=NO_RETENTION_MESSAGE)

    def compute_rolling_insights(
        self,
        user_id: int,
        fasts: list[Fast],
        canonical_entries: list[BodyLogEntry],
        days: Optional[int] = None,
        limit_protocols: Optional[int] = None,
        profile: Optional[UserProfile] = None,
        user_entries: Optional[list[BodyLogEntry]] = None,
    ) -> RollingInsights:
        """Rolling averages across the user's completed fasts."""
        days = days if days is not None else self.settings.analytics.default_days
        if limit_protocols is None:
            limit_protocols = self.settings.analytics.limit_protocols

        completed = _completed_newest_first(user_id, fasts)
        if not completed:
            return RollingInsights(status="no-data", message=NO_INSIGHTS_MESSAGE)

        if user_entries is None:
            user_entries = self._user_entries_through(user_id, completed)
        canonical = _by_logged_at(canonical_entries)
        profile = self._profile(user_id, profile)
        window = self.settings.analytics.retention_window_hours

        samples = []
        for fast in completed:
            snapshot = self._snapshot(fast, user_entries)
            effectiveness = self.calculator.compute_from_snapshot(fast, snapshot, profile)
            if not effectiveness.is_ok:
                logger.debug("Skipping fast %s: %s", fast.fast_id, effectiveness.status)
                continue

            samples.append(
                FastSample(
                    fast=fast,
                    effectiveness=effectiveness,
                    retention=calculate_retention_for_fast(fast, snapshot, canonical, window),
                    protocol=derive_protocol_group(fast),
                )
            )

        return aggregate_rolling_insights(samples, days=days, limit_protocols=limit_protocols)

    def compute_weekly_composition(
        self, canonical_entries: list[BodyLogEntry]
    ) -> list[WeeklyComposition]:
        return compute_weekly_composition(_by_logged_at(canonical_entries))

    def get_analytics(self, user_id: int, days: Optional[int] = None) -> AnalyticsReport:
        """Everything the analytics view shows for the last ``days`` days."""
        days = days if days is not None else self.settings.analytics.default_days
        range_end = self.clock()
        range_start = range_end - timedelta(days=days)

        canonical = _by_logged_at(
            self.store.get_canonical_entries_by_range(
                user_id, range_start.date(), range_end.date()
            )
        )
        all_entries = _by_logged_at(
            self.store.get_body_log_entries_by_user(
                user_id,
                start_date=range_start.date(),
                end_date=range_end.date(),
                include_secondary=True,
            )
        )
        post_fast_entries = [
            e for e in all_entries if e.entry_tag == "post_fast" and not e.is_canonical
        ]
        fasts = self.store.get_fasts_by_user_and_date_range(user_id, range_start, range_end)
        profile = self._profile(user_id, None)

        retention = self.compute_retention(user_id, fasts, canonical, user_entries=all_entries)
        rolling = self.compute_rolling_insights(
            user_id,
            fasts,
            canonical,
            days=days,
            profile=profile,
            user_entries=all_entries,
        )

        completed = _completed_newest_first(user_id, fasts)
        if completed:
            latest = completed[0]
            effectiveness = self.get_fast_effectiveness(
                user_id,
                latest.fast_id,
                profile=profile,
                fast=latest,
                user_entries=all_entries,
            )
        else:
            effectiveness = EffectivenessResult(
                status="no-data", message=NO_EFFECTIVENESS_MESSAGE
            )

        return AnalyticsReport(
            range_start=range_start,
            range_end=range_end,
            canonical_entries=canonical,
            post_fast_entries=post_fast_entries,
            fasts=fasts,
            weekly_composition=compute_weekly_composition(canonical),
            retention=retention,
            fast_effectiveness=effectiveness,
            rolling_insights=rolling,
        )
