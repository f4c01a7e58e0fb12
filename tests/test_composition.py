"""Tests for weekly body composition."""

from __future__ import annotations

from datetime import date

import pytest
from conftest import make_entry, utc

from fastcomp.analytics.composition import compute_weekly_composition


class TestWeeklyComposition:
    def test_empty(self):
        assert compute_weekly_composition([]) == []

    def test_groups_by_monday_week(self):
        entries = [
            make_entry(1, utc(2025, 3, 3, 12), 200.0, body_fat_pct=20.0),  # Monday
            make_entry(2, utc(2025, 3, 5, 12), 196.0, body_fat_pct=20.0),
            make_entry(3, utc(2025, 3, 9, 12), 198.0, body_fat_pct=20.0),  # Sunday
            make_entry(4, utc(2025, 3, 10, 12), 190.0, body_fat_pct=21.0),
        ]
        weeks = compute_weekly_composition(entries)

        assert [w.week_start for w in weeks] == [date(2025, 3, 3), date(2025, 3, 10)]
        assert weeks[0].week_end == date(2025, 3, 9)

        first, second = weeks
        assert first.average_weight == 198.0
        assert first.average_body_fat == 20.0
        assert first.average_fat_mass == pytest.approx(39.6)
        assert first.average_lean_mass == pytest.approx(158.4)
        assert first.delta_weight is None

        assert second.average_fat_mass == pytest.approx(39.9)
        assert second.average_lean_mass == pytest.approx(150.1)
        assert second.delta_weight == pytest.approx(-8.0)
        assert second.delta_fat_mass == pytest.approx(0.3)
        assert second.delta_lean_mass == pytest.approx(-8.3)

    def test_local_date_decides_week(self):
        # Monday 01:00 UTC is still Sunday at UTC-5
        entries = [
            make_entry(1, utc(2025, 3, 10, 1), 200.0, timezone_offset_minutes=-300),
        ]
        assert compute_weekly_composition(entries)[0].week_start == date(2025, 3, 3)

    def test_week_without_body_fat(self):
        entries = [
            make_entry(1, utc(2025, 3, 3, 12), 200.0),
            make_entry(2, utc(2025, 3, 4, 12), 198.0, body_fat_pct=22.0),
            make_entry(3, utc(2025, 3, 11, 12), 196.0),
        ]
        first, second = compute_weekly_composition(entries)
        # body fat averages only over the readings that have it
        assert first.average_body_fat == 22.0
        assert first.average_fat_mass == pytest.approx(43.8)
        assert second.average_body_fat is None
        assert second.average_fat_mass is None
        assert second.delta_weight == pytest.approx(-3.0)
        assert second.delta_fat_mass is None

    def test_entries_without_weight_skipped(self):
        entries = [
            make_entry(1, utc(2025, 3, 3, 12), None),
            make_entry(2, None, 180.0),
        ]
        assert compute_weekly_composition(entries) == []
