"""Data models for fasts, body log entries and derived analytics."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Optional

# Values guaranteed by the entry-tagging collaborator
VALID_ENTRY_TAGS = (
    "morning",
    "pre_fast",
    "fast_start",
    "post_fast",
    "ad_hoc",
    "manual_override",
)
VALID_CANONICAL_STATUSES = ("auto", "manual")
VALID_SEXES = ("male", "female")
VALID_ACTIVITY_LEVELS = ("sedentary", "light", "moderate", "active", "very_active")
VALID_KETO_ADAPTED = ("none", "sometimes", "consistent")
VALID_CARB_STATUSES = ("low", "normal", "high")


def _serialize(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    return value


@dataclass(frozen=True)
class BodyLogEntry:
    """A single weigh-in from the body log.

    ``logged_at`` is None when the stored timestamp could not be parsed;
    such entries are skipped by every analytics step.
    """

    entry_id: int
    user_id: int
    logged_at: Optional[datetime]
    weight_lbs: Optional[float]
    local_date: Optional[date] = None
    timezone_offset_minutes: Optional[int] = None
    time_zone: Optional[str] = None
    body_fat_pct: Optional[float] = None
    entry_tag: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    is_canonical: bool = False
    canonical_status: str = "auto"
    canonical_reason: Optional[str] = None
    fast_id: Optional[int] = None

    @property
    def has_weight(self) -> bool:
        return self.weight_lbs is not None and self.logged_at is not None

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass(frozen=True)
class Fast:
    """A fasting session. ``end_time`` is None while the fast is active."""

    fast_id: int
    user_id: int
    start_time: Optional[datetime]
    end_time: Optional[datetime] = None
    duration_hours: Optional[float] = None
    planned_duration_hours: Optional[float] = None
    weight_lbs: Optional[float] = None
    body_fat_pct: Optional[float] = None
    source: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    @property
    def actual_hours(self) -> Optional[float]:
        """Recorded duration, else end - start."""
        if self.duration_hours is not None and self.duration_hours > 0:
            return float(self.duration_hours)
        if self.start_time is not None and self.end_time is not None:
            return (self.end_time - self.start_time).total_seconds() / 3600
        return None

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass
class UserProfile:
    """Optional body metrics that sharpen the estimated breakdown."""

    height_cm: Optional[float] = None
    age: Optional[float] = None
    sex: Optional[str] = None
    activity: str = "sedentary"
    tdee: Optional[float] = None
    keto_adapted: str = "none"
    start_in_ketosis: bool = False
    pre_fast_protein_grams: float = 0.0
    carb_status: str = "normal"

    def __post_init__(self) -> None:
        if self.sex is not None and self.sex not in VALID_SEXES:
            raise ValueError(f"sex must be one of {VALID_SEXES}, got '{self.sex}'")
        if self.activity not in VALID_ACTIVITY_LEVELS:
            raise ValueError(
                f"activity must be one of {VALID_ACTIVITY_LEVELS}, got '{self.activity}'"
            )
        if self.keto_adapted not in VALID_KETO_ADAPTED:
            raise ValueError(
                f"keto_adapted must be one of {VALID_KETO_ADAPTED}, got '{self.keto_adapted}'"
            )
        if self.carb_status not in VALID_CARB_STATUSES:
            raise ValueError(
                f"carb_status must be one of {VALID_CARB_STATUSES}, got '{self.carb_status}'"
            )


@dataclass(frozen=True)
class FastSnapshot:
    """Start and post-fast reference weigh-ins resolved for one fast."""

    start_entry: Optional[BodyLogEntry]
    post_entry: Optional[BodyLogEntry]
    start_weight: Optional[float]
    post_weight: Optional[float]
    start_body_fat: Optional[float]
    post_body_fat: Optional[float]
    start_resolution: Optional[str] = None


@dataclass
class FluidBreakdown:
    """Other transient fluid split into its sources (lbs)."""

    glycogen_mass: float = 0.0
    glycogen_bound_water: float = 0.0
    gut_content: float = 0.0
    residual_water_shift: float = 0.0

    @property
    def total(self) -> float:
        return (
            self.glycogen_mass
            + self.glycogen_bound_water
            + self.gut_content
            + self.residual_water_shift
        )


@dataclass
class EffectivenessResult:
    """Breakdown of one fast's weight change into fat, muscle and fluid."""

    status: str
    message: str
    fast_id: Optional[int] = None
    start_weight: Optional[float] = None
    post_weight: Optional[float] = None
    total_weight_lost: Optional[float] = None
    weight_delta: Optional[float] = None
    fat_loss: Optional[float] = None
    muscle_loss: Optional[float] = None
    lean_water: Optional[float] = None
    other_fluid_loss: Optional[float] = None
    fluid_loss: Optional[float] = None
    fluid_breakdown: Optional[FluidBreakdown] = None
    breakdown_source: Optional[str] = None
    start_body_fat: Optional[float] = None
    post_body_fat: Optional[float] = None
    body_fat_change: Optional[float] = None
    body_fat_change_abs: Optional[float] = None
    body_fat_change_significant: bool = False
    start_entry_id: Optional[int] = None
    post_entry_id: Optional[int] = None
    raw: dict[str, float] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass
class RetentionResult:
    """How much of a fast's weight drop survived to the next canonical weigh-in."""

    status: str
    message: Optional[str] = None
    fast_id: Optional[int] = None
    post_fast_weight: Optional[float] = None
    post_fast_logged_at: Optional[datetime] = None
    next_canonical_weight: Optional[float] = None
    next_canonical_logged_at: Optional[datetime] = None
    weight_lost_during_fast: Optional[float] = None
    weight_regained: Optional[float] = None
    retention_percent: Optional[float] = None
    raw: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass(frozen=True)
class ProtocolGroup:
    """Protocol bucket a fast belongs to."""

    key: str
    label: str
    anchor_hours: Optional[float]
    source: str
    planned_hours: Optional[float] = None
    actual_hours: Optional[float] = None


@dataclass
class ProtocolSummary:
    """Averages for one protocol bucket."""

    key: str
    label: str
    anchor_hours: Optional[float]
    count: int
    average_weight_delta: Optional[float]
    average_weight_drop: Optional[float]
    average_retention_percent: Optional[float]
    average_fat_loss: Optional[float]
    source: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RollingInsights:
    """Rolling averages across repeated fasts, overall and per protocol."""

    status: str
    message: Optional[str] = None
    sample_size: int = 0
    positive_sample_size: int = 0
    average_weight_delta: Optional[float] = None
    average_weight_drop: Optional[float] = None
    average_retention_percent: Optional[float] = None
    average_fat_loss: Optional[float] = None
    protocols: list[ProtocolSummary] = field(default_factory=list)
    remaining_protocols: list[ProtocolSummary] = field(default_factory=list)
    education: dict[str, str] = field(default_factory=dict)

    def protocol_labels(self) -> list[str]:
        return [p.label for p in self.protocols + self.remaining_protocols]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class WeeklyComposition:
    """Average body composition for one Monday-based week."""

    week_start: date
    week_end: date
    average_weight: Optional[float]
    average_body_fat: Optional[float]
    average_fat_mass: Optional[float]
    average_lean_mass: Optional[float]
    delta_weight: Optional[float] = None
    delta_fat_mass: Optional[float] = None
    delta_lean_mass: Optional[float] = None

    def to_dict(self) -> dict:
        return _serialize(asdict(self))


@dataclass
class AnalyticsReport:
    """Everything the analytics view needs for one user and range."""

    range_start: datetime
    range_end: datetime
    canonical_entries: list[BodyLogEntry]
    post_fast_entries: list[BodyLogEntry]
    fasts: list[Fast]
    weekly_composition: list[WeeklyComposition]
    retention: RetentionResult
    fast_effectiveness: EffectivenessResult
    rolling_insights: RollingInsights

    def to_dict(self) -> dict:
        return {
            "range": {
                "start": self.range_start.isoformat(),
                "end": self.range_end.isoformat(),
            },
            "canonical_entries": [e.to_dict() for e in self.canonical_entries],
            "post_fast_entries": [e.to_dict() for e in self.post_fast_entries],
            "fasts": [f.to_dict() for f in self.fasts],
            "weekly_composition": [w.to_dict() for w in self.weekly_composition],
            "retention": self.retention.to_dict(),
            "fast_effectiveness": self.fast_effectiveness.to_dict(),
            "rolling_insights": self.rolling_insights.to_dict(),
        }


def round_or_none(value: Optional[float], decimals: int = 1) -> Optional[float]:
    """Round to ``decimals`` places, passing None and NaN through as None."""
    if value is None or value != value:
        return None
    return round(value, decimals)
