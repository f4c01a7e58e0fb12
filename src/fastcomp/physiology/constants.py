"""Named physiology constants used by the estimators.

Every estimator accepts a ``constants`` argument so that values can be
overridden from the ``physiology`` section of the config file without
touching module state.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

LBS_PER_KG = 2.2046
GRAMS_PER_LB = 1000 / LBS_PER_KG


@dataclass(frozen=True)
class PhysiologyConstants:
    """Tunable parameters for the body-composition model."""

    # Mifflin-St Jeor fallbacks
    default_height_cm: float = 175.0
    default_age: float = 35.0
    default_body_fat_pct: float = 20.0
    sex_constants: dict[str, float] = field(
        default_factory=lambda: {"male": 5.0, "female": -161.0, "unknown": -78.0}
    )
    activity_multipliers: dict[str, float] = field(
        default_factory=lambda: {
            "sedentary": 1.2,
            "light": 1.375,
            "moderate": 1.55,
            "active": 1.725,
            "very_active": 1.9,
        }
    )

    # Metabolic adaptation
    adaptation_onset_hours: float = 36.0
    adaptation_initial_drop: float = 0.02
    adaptation_drop_per_hour: float = 0.0008
    adaptation_max_base_drop: float = 0.12
    adaptation_reference_body_fat: float = 15.0
    adaptation_leanness_per_pct: float = 0.003
    adaptation_max_leanness_adj: float = 0.05
    adaptation_max_drop: float = 0.15

    # Ketosis and protein sparing
    ketosis_blend_hours: float = 48.0
    ketosis_start_boost: float = 0.5
    ketosis_max_baseline: float = 0.6
    ketosis_protein_sparing: float = 0.6
    protein_buffer_max_protect: float = 0.35
    protein_buffer_saturation_g: float = 80.0
    protein_buffer_full_hours: float = 24.0
    protein_buffer_fade_hours: float = 24.0

    # Lean tissue
    base_protein_loss_g_per_kg_day: float = 0.5
    wet_lean_g_per_protein_g: float = 4.0
    lean_water_fraction: float = 0.75

    # Fat oxidation
    fat_oxidation_cap_kcal_per_kg: float = 69.0
    kcal_per_lb_fat: float = 3500.0

    # Glycogen and gut content
    glycogen_capacity_ratio: float = 0.015
    glycogen_water_ratio: float = 3.2
    glycogen_depletion_hours: float = 24.0
    carb_status_multipliers: dict[str, float] = field(
        default_factory=lambda: {"low": 0.6, "normal": 1.0, "high": 1.1}
    )
    gut_peak_fraction: float = 0.008
    gut_peak_min_lbs: float = 1.0
    gut_peak_max_lbs: float = 4.0

    @classmethod
    def from_dict(cls, data: dict) -> "PhysiologyConstants":
        """Build constants from a config mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        overrides = {}
        for key, value in (data or {}).items():
            if key not in known:
                continue
            if isinstance(value, dict):
                merged = dict(getattr(cls(), key))
                merged.update({k: float(v) for k, v in value.items()})
                overrides[key] = merged
            else:
                overrides[key] = float(value)
        return cls(**overrides)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


DEFAULT_CONSTANTS = PhysiologyConstants()

# Keto-adapted status -> baseline ketosis level
KETO_ADAPTED_BASELINES = {
    "none": 0.0,
    "sometimes": 0.3,
    "consistent": 0.6,
}
