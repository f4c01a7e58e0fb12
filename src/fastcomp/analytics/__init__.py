"""Fast effectiveness, retention and rolling insights.

Key components:
- Snapshot resolver (start / post-fast reference weigh-ins)
- Effectiveness calculator (fat / muscle / lean water / other fluid)
- Retention calculator (next canonical weigh-in within 48h)
- Rolling insights aggregator (protocol buckets)
- Analytics service tying them to a store
"""

from __future__ import annotations

from fastcomp.analytics.effectiveness import (
    EffectivenessParams,
    FastEffectivenessCalculator,
)
from fastcomp.analytics.insights import derive_protocol_group
from fastcomp.analytics.models import (
    BodyLogEntry,
    EffectivenessResult,
    Fast,
    FastSnapshot,
    RetentionResult,
    RollingInsights,
    UserProfile,
)
from fastcomp.analytics.retention import calculate_retention_for_fast
from fastcomp.analytics.service import BodyLogAnalyticsService
from fastcomp.analytics.snapshot import build_fast_snapshot

__all__ = [
    "BodyLogAnalyticsService",
    "BodyLogEntry",
    "EffectivenessParams",
    "EffectivenessResult",
    "Fast",
    "FastEffectivenessCalculator",
    "FastSnapshot",
    "RetentionResult",
    "RollingInsights",
    "UserProfile",
    "build_fast_snapshot",
    "calculate_retention_for_fast",
    "derive_protocol_group",
]
