"""Rolling insights across repeated fasts, bucketed by protocol."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from fastcomp.analytics.models import (
    EffectivenessResult,
    Fast,
    ProtocolGroup,
    ProtocolSummary,
    RetentionResult,
    RollingInsights,
    round_or_none,
)

# anchor hours -> (key, label)
PROTOCOL_BUCKETS = {
    18: ("18h", "18h Reset"),
    24: ("24h", "24h Reset"),
    36: ("36h", "36h Deep Reset"),
    48: ("48h", "48h Extended"),
    60: ("60h", "60h Push"),
    72: ("72h_plus", "72h+ Prolonged"),
}
CUSTOM_KEY = "custom"
CUSTOM_LABEL = "Custom Fast"

NO_DATA_MESSAGE = "Complete a fast with start and post-fast weights to see protocol insights."
NO_SAMPLES_MESSAGE = "Log start and post-fast weights to unlock rolling insights."


def nearest_anchor(hours: float) -> int:
    """Nearest protocol anchor to a whole-hour duration (ties go to the longer one).

    Durations between anchors go to whichever is closer, not always up to the
    next one: 20h groups with 18h fasts and 27h with 24h fasts.
    """
    return min(PROTOCOL_BUCKETS, key=lambda anchor: (abs(hours - anchor), -anchor))


def derive_protocol_group(fast: Optional[Fast]) -> ProtocolGroup:
    """Assign a fast to a protocol bucket.

    The planned duration is preferred over the actual one, since a 36h
    attempt broken at 33h still belongs with other 36h attempts.
    """
    if fast is None:
        return ProtocolGroup(CUSTOM_KEY, CUSTOM_LABEL, None, "unknown")

    planned = fast.planned_duration_hours
    if planned is not None and planned <= 0:
        planned = None
    actual = fast.actual_hours

    source = "planned" if planned is not None else "actual"
    candidate = planned if planned is not None else actual

    if candidate is None:
        return ProtocolGroup(CUSTOM_KEY, CUSTOM_LABEL, None, source, planned, actual)

    anchor = nearest_anchor(round(candidate))
    key, label = PROTOCOL_BUCKETS[anchor]
    return ProtocolGroup(key, label, float(anchor), source, planned, actual)


@dataclass
class FastSample:
    """One completed fast that produced an 'ok' effectiveness result."""

    fast: Fast
    effectiveness: EffectivenessResult
    retention: Optional[RetentionResult]
    protocol: ProtocolGroup


@dataclass
class _Accumulator:
    """Running totals for one group of samples."""

    count: int = 0
    total_weight_delta: float = 0.0
    total_weight_loss_positive: float = 0.0
    positive_samples: int = 0
    total_retention: float = 0.0
    retention_samples: int = 0
    total_fat_loss: float = 0.0
    fat_samples: int = 0

    def add(self, sample: FastSample) -> None:
        self.count += 1
        raw = sample.effectiveness.raw

        delta = raw.get("weight_delta")
        if delta is not None:
            self.total_weight_delta += delta

        lost = raw.get("weight_lost")
        if lost is not None and lost > 0:
            self.total_weight_loss_positive += lost
            self.positive_samples += 1

        fat = raw.get("fat_loss")
        if fat is not None:
            self.total_fat_loss += fat
            self.fat_samples += 1

        retention = sample.retention
        if retention is not None and retention.status == "ok":
            percent = retention.raw.get("retention_percent")
            if percent is not None:
                self.total_retention += percent
                self.retention_samples += 1

    @staticmethod
    def _avg(total: float, n: int, decimals: int = 1) -> Optional[float]:
        return round_or_none(total / n, decimals) if n > 0 else None

    @property
    def average_weight_delta(self) -> Optional[float]:
        return self._avg(self.total_weight_delta, self.count)

    @property
    def average_weight_drop(self) -> Optional[float]:
        return self._avg(self.total_weight_loss_positive, self.positive_samples)

    @property
    def average_retention_percent(self) -> Optional[float]:
        return self._avg(self.total_retention, self.retention_samples, 0)

    @property
    def average_fat_loss(self) -> Optional[float]:
        return self._avg(self.total_fat_loss, self.fat_samples)


@dataclass
class _Group:
    protocol: ProtocolGroup
    totals: _Accumulator = field(default_factory=_Accumulator)

    def summary(self) -> ProtocolSummary:
        return ProtocolSummary(
            key=self.protocol.key,
            label=self.protocol.label,
            anchor_hours=self.protocol.anchor_hours
            if self.protocol.anchor_hours is not None
            else self.protocol.actual_hours,
            count=self.totals.count,
            average_weight_delta=self.totals.average_weight_delta,
            average_weight_drop=self.totals.average_weight_drop,
            average_retention_percent=self.totals.average_retention_percent,
            average_fat_loss=self.totals.average_fat_loss,
            source=self.protocol.source,
        )


def aggregate_rolling_insights(
    samples: list[FastSample],
    days: int = 90,
    limit_protocols: int = 3,
) -> RollingInsights:
    """Average effectiveness and retention overall and per protocol bucket.

    Buckets are ordered by sample count, then by longer anchor. Only the
    first ``limit_protocols`` are returned in ``protocols``; the rest go to
    ``remaining_protocols``.
    """
    if not samples:
        return RollingInsights(status="no-data", message=NO_SAMPLES_MESSAGE)

    overall = _Accumulator()
    groups: dict[str, _Group] = {}

    for sample in samples:
        overall.add(sample)
        key = sample.protocol.key or CUSTOM_KEY
        if key not in groups:
            groups[key] = _Group(sample.protocol)
        groups[key].totals.add(sample)

    summaries = sorted(
        (group.summary() for group in groups.values()),
        key=lambda s: (-s.count, -(s.anchor_hours or 0)),
    )
    limit = max(0, limit_protocols)
    n = len(samples)

    return RollingInsights(
        status="ok",
        sample_size=n,
        positive_sample_size=overall.positive_samples,
        average_weight_delta=overall.average_weight_delta,
        average_weight_drop=overall.average_weight_drop,
        average_retention_percent=overall.average_retention_percent,
        average_fat_loss=overall.average_fat_loss,
        protocols=summaries[:limit],
        remaining_protocols=summaries[limit:],
        education={
            "headline": "Repeat protocols to see clearer trends.",
            "description": (
                f"Based on {n} fast{'' if n == 1 else 's'} with start & post-fast "
                f"weigh-ins in the last {days} days."
            ),
            "retention": (
                "Retention compares your post-fast weight to the next canonical "
                "weigh-in within 48 hours."
            ),
        },
    )
