"""Transient fluid estimates: glycogen, glycogen-bound water, gut content."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np

from fastcomp.physiology.constants import (
    DEFAULT_CONSTANTS,
    LBS_PER_KG,
    PhysiologyConstants,
)

# Fraction of peak gut content cleared, anchored at (hours, fraction)
GUT_CLEARANCE_HOURS = (0.0, 8.0, 24.0, 36.0)
GUT_CLEARANCE_FRACTIONS = (0.0, 0.10, 0.85, 0.95)


@dataclass
class GlycogenEstimate:
    """Glycogen depleted during a fast and the water it held."""

    glycogen_lost_lbs: float
    bound_water_lost_lbs: float
    start_glycogen_lbs: float

    @property
    def total_lbs(self) -> float:
        return self.glycogen_lost_lbs + self.bound_water_lost_lbs


def estimate_glycogen_and_bound_water(
    hours: float,
    weight_lbs: float,
    body_fat_pct: float,
    carb_status: str = "normal",
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> GlycogenEstimate:
    """Estimate glycogen and bound water lost.

    Args:
        hours: Fast duration in hours
        weight_lbs: Starting weight in pounds
        body_fat_pct: Body fat percentage
        carb_status: 'low', 'normal' or 'high' pre-fast carbohydrate intake

    Returns:
        GlycogenEstimate in pounds
    """
    lbm_kg = max(0.0, weight_lbs * (1 - body_fat_pct / 100)) / LBS_PER_KG
    capacity_kg = lbm_kg * constants.glycogen_capacity_ratio

    multipliers = constants.carb_status_multipliers
    carb_mult = multipliers.get(carb_status or "normal", multipliers["normal"])
    start_fill_kg = capacity_kg * carb_mult

    depletion = 1 - math.exp(-max(0.0, hours) / constants.glycogen_depletion_hours)
    glycogen_used_kg = min(start_fill_kg, start_fill_kg * depletion)
    bound_water_kg = glycogen_used_kg * constants.glycogen_water_ratio

    return GlycogenEstimate(
        glycogen_lost_lbs=glycogen_used_kg * LBS_PER_KG,
        bound_water_lost_lbs=bound_water_kg * LBS_PER_KG,
        start_glycogen_lbs=start_fill_kg * LBS_PER_KG,
    )


def gut_clearance_fraction(hours: float) -> float:
    """Fraction of peak gut content cleared after ``hours`` (plateaus at 95%)."""
    return float(
        np.interp(max(0.0, hours), GUT_CLEARANCE_HOURS, GUT_CLEARANCE_FRACTIONS)
    )


def estimate_gut_content_loss(
    hours: float,
    weight_lbs: float,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Estimate gut content cleared during a fast, in pounds.

    Peak gut content is 0.8% of body weight, limited to 1-4 lbs.
    """
    peak = min(
        constants.gut_peak_max_lbs,
        max(constants.gut_peak_min_lbs, weight_lbs * constants.gut_peak_fraction),
    )
    return peak * gut_clearance_fraction(hours)
