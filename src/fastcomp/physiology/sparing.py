"""Muscle-sparing factors and lean tissue loss.

Ketosis and a protein-rich pre-fast meal both slow protein catabolism, but
their effect changes over the course of a fast. Lean loss accumulates over
the whole fast, so the model uses the *time-average* of each factor over
[0, hours] rather than its value at the end. Both averages are computed as
closed-form piecewise integrals:

    avg(f, H) = (1 / H) * integral_0^H f(t) dt
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from fastcomp.physiology.constants import (
    DEFAULT_CONSTANTS,
    GRAMS_PER_LB,
    LBS_PER_KG,
    PhysiologyConstants,
)

# (start_hour, end_hour, level) of the fasting-progress ketosis curve
KETOSIS_CURVE = (
    (0.0, 16.0, 0.0),
    (16.0, 24.0, 0.2),
    (24.0, 48.0, 0.5),
    (48.0, 72.0, 0.7),
    (72.0, math.inf, 0.8),
)


def ketosis_curve(hours: float) -> float:
    """Instantaneous fasting-progress ketosis level at ``hours``."""
    for start, end, level in KETOSIS_CURVE:
        if start <= hours < end:
            return level
    return 0.0


def _early_ketosis(
    baseline_keto: float,
    start_in_ketosis: bool,
    constants: PhysiologyConstants,
) -> float:
    baseline = max(0.0, min(constants.ketosis_max_baseline, baseline_keto or 0.0))
    boost = constants.ketosis_start_boost if start_in_ketosis else 0.0
    return max(boost, baseline)


def ketosis_factor(
    hours: float,
    baseline_keto: float = 0.0,
    start_in_ketosis: bool = False,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Time-averaged ketosis factor over [0, hours].

    The instantaneous factor blends from an early level (keto-adapted
    baseline, or a boost when the fast starts in ketosis) toward the
    fasting-progress curve with weight ``w = min(1, t / 48)``:

        k(t) = (1 - w) * early + w * curve(t)

    The blend horizon coincides with a curve breakpoint, so each curve
    segment lies entirely on the ramp (w = t/48) or after it (w = 1):

        ramp segment [a, b]:  integral w * c = c * (b^2 - a^2) / (2 * 48)
        flat segment [a, b]:  integral w * c = c * (b - a)

    Args:
        hours: Hours fasted so far
        baseline_keto: Keto-adapted baseline in [0, 0.6]
        start_in_ketosis: Whether the fast began already in ketosis

    Returns:
        Average ketosis factor in [0, 0.8]
    """
    early = _early_ketosis(baseline_keto, start_in_ketosis, constants)
    if hours <= 0:
        return early

    blend = constants.ketosis_blend_hours

    # integral of (1 - w) * early
    ramp_end = min(hours, blend)
    early_area = early * (ramp_end - ramp_end**2 / (2 * blend))

    # integral of w * curve(t)
    curve_area = 0.0
    for start, end, level in KETOSIS_CURVE:
        if start >= hours:
            break
        seg_end = min(end, hours)
        if level == 0.0:
            continue
        ramp_hi = min(seg_end, blend)
        if start < ramp_hi:
            curve_area += level * (ramp_hi**2 - start**2) / (2 * blend)
        flat_lo = max(start, blend)
        if seg_end > flat_lo:
            curve_area += level * (seg_end - flat_lo)

    return (early_area + curve_area) / hours


def protein_buffer_level(
    pre_fast_protein_grams: float,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Peak protection from the pre-fast meal (saturates near 100g)."""
    protein = max(0.0, pre_fast_protein_grams or 0.0)
    saturation = 1 - math.exp(-protein / constants.protein_buffer_saturation_g)
    return constants.protein_buffer_max_protect * saturation


def protein_buffer_factor(
    hours: float,
    pre_fast_protein_grams: float = 0.0,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Time-averaged protein buffer multiplier over [0, hours].

    The instantaneous multiplier is ``1 - level`` for the first 24h, fades
    linearly back to 1 between 24h and 48h, and stays at 1 afterwards.
    Lower is better (less protein lost).

    Returns:
        Average multiplier in [0.65, 1.0]
    """
    level = protein_buffer_level(pre_fast_protein_grams, constants)
    if hours <= 0:
        return 1 - level

    full = constants.protein_buffer_full_hours
    fade = constants.protein_buffer_fade_hours

    # integral of the protection (1 - multiplier), divided by level
    protected = min(hours, full)
    if hours > full:
        into_fade = min(hours - full, fade)
        protected += into_fade - into_fade**2 / (2 * fade)

    return 1 - level * protected / hours


@dataclass
class LeanLossComponents:
    """Lean tissue lost during a fast, from the protein catabolism model."""

    protein_grams: float
    wet_lean_lbs: float
    muscle_lbs: float
    lean_water_lbs: float
    ketosis: float
    protein_buffer: float


def estimate_lean_loss_components(
    hours: float,
    weight_lbs: float,
    body_fat_pct: float,
    baseline_keto: float = 0.0,
    start_in_ketosis: bool = False,
    pre_fast_protein_grams: float = 0.0,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> LeanLossComponents:
    """Split lean tissue loss into true muscle and lean-associated water.

    Protein loss (g) = 0.5 g/kg-LBM/day x (1 - 0.6 x ketosis)
    x protein buffer x LBM (kg) x days. Each gram of protein corresponds
    to ~4g of wet lean tissue, which is 75% water and 25% muscle.
    """
    if hours <= 0:
        return LeanLossComponents(0.0, 0.0, 0.0, 0.0, 0.0, 1.0)

    lbm_kg = max(0.0, weight_lbs * (1 - body_fat_pct / 100)) / LBS_PER_KG
    keto = ketosis_factor(hours, baseline_keto, start_in_ketosis, constants)
    buffer = protein_buffer_factor(hours, pre_fast_protein_grams, constants)
    keto_mult = 1 - keto * constants.ketosis_protein_sparing
    days = hours / 24

    protein_g = (
        constants.base_protein_loss_g_per_kg_day * keto_mult * buffer * lbm_kg * days
    )
    wet_lean_lbs = protein_g * constants.wet_lean_g_per_protein_g / GRAMS_PER_LB
    lean_water_lbs = wet_lean_lbs * constants.lean_water_fraction

    return LeanLossComponents(
        protein_grams=protein_g,
        wet_lean_lbs=wet_lean_lbs,
        muscle_lbs=wet_lean_lbs - lean_water_lbs,
        lean_water_lbs=lean_water_lbs,
        ketosis=keto,
        protein_buffer=buffer,
    )
