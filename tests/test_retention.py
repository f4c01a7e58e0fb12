"""Tests for post-fast retention."""

from __future__ import annotations

from datetime import timedelta

import pytest
from conftest import make_entry, make_fast, utc

from fastcomp.analytics.models import FastSnapshot
from fastcomp.analytics.retention import (
    WAITING_MESSAGE,
    calculate_retention_for_fast,
    find_next_canonical_entry,
)

POSTED = utc(2025, 1, 7, 14)


def setup_fast(start_weight=200.0, post_weight=196.0):
    fast = make_fast(1, utc(2025, 1, 6, 2), 36)
    start = make_entry(1, utc(2025, 1, 6, 2), start_weight, entry_tag="fast_start", fast_id=1)
    post = make_entry(2, POSTED, post_weight, entry_tag="post_fast", fast_id=1)
    snapshot = FastSnapshot(start, post, start_weight, post_weight, None, None)
    return fast, snapshot


def canonical(entry_id, hours_after, weight):
    return make_entry(entry_id, POSTED + timedelta(hours=hours_after), weight, is_canonical=True)


class TestRetention:
    def test_partial_rebound(self):
        fast, snapshot = setup_fast(200.0, 196.0)
        result = calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 197.0)])

        assert result.status == "ok"
        assert result.weight_lost_during_fast == 4.0
        assert result.weight_regained == 1.0
        assert result.retention_percent == 75.0
        assert result.next_canonical_weight == 197.0
        assert result.raw["retention_percent"] == pytest.approx(75.0)

    def test_further_loss_retains_everything(self):
        fast, snapshot = setup_fast(200.0, 196.0)
        result = calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 195.0)])
        assert result.weight_regained == 0.0
        assert result.retention_percent == 100.0

    def test_full_rebound_is_zero(self):
        fast, snapshot = setup_fast(200.0, 196.0)
        result = calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 201.0)])
        assert result.weight_regained == 5.0
        assert result.retention_percent == 0.0

    def test_no_loss_is_zero(self):
        fast, snapshot = setup_fast(196.0, 196.5)
        result = calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 196.0)])
        assert result.status == "ok"
        assert result.retention_percent == 0.0

    def test_percent_rounded_to_whole(self):
        fast, snapshot = setup_fast(198.0, 195.0)
        result = calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 196.0)])
        assert result.retention_percent == 67.0

    def test_waiting_without_next_weigh_in(self):
        fast, snapshot = setup_fast()
        result = calculate_retention_for_fast(fast, snapshot, [])
        assert result.status == "waiting"
        assert result.message == WAITING_MESSAGE
        assert result.post_fast_weight == 196.0
        assert result.retention_percent is None

    def test_no_post_entry(self):
        fast, snapshot = setup_fast()
        snapshot = FastSnapshot(snapshot.start_entry, None, 200.0, None, None, None)
        assert calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 197.0)]) is None

    def test_no_start_weight(self):
        fast, snapshot = setup_fast()
        snapshot = FastSnapshot(None, snapshot.post_entry, None, 196.0, None, None)
        assert calculate_retention_for_fast(fast, snapshot, [canonical(3, 18, 197.0)]) is None


class TestNextCanonicalEntry:
    def setup_method(self):
        _, snapshot = setup_fast()
        self.post = snapshot.post_entry

    def test_window_is_inclusive(self):
        entry = canonical(3, 48, 197.0)
        assert find_next_canonical_entry(self.post, [entry]) is entry

    def test_outside_window(self):
        assert find_next_canonical_entry(self.post, [canonical(3, 48.02, 197.0)]) is None

    def test_earlier_than_post_ignored(self):
        assert find_next_canonical_entry(self.post, [canonical(3, -2, 197.0)]) is None

    def test_post_entry_itself_ignored(self):
        same = make_entry(2, POSTED, 196.0, is_canonical=True)
        assert find_next_canonical_entry(self.post, [same]) is None

    def test_earliest_wins(self):
        later = canonical(4, 30, 198.0)
        sooner = canonical(3, 10, 197.0)
        assert find_next_canonical_entry(self.post, [later, sooner]) is sooner

    def test_custom_window(self):
        entry = canonical(3, 30, 197.0)
        assert find_next_canonical_entry(self.post, [entry], window_hours=24) is None
