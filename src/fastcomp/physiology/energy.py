"""Energy expenditure and fat oxidation estimates for a fast.

Uses the Mifflin-St Jeor equation for BMR, scaled by an activity
multiplier, then reduced by a time-dependent metabolic adaptation factor
once a fast runs past the adaptation onset (36h by default).
"""

from __future__ import annotations

from typing import Optional

from fastcomp.physiology.constants import (
    DEFAULT_CONSTANTS,
    LBS_PER_KG,
    PhysiologyConstants,
)


def estimate_bmr(
    weight_lbs: float,
    height_cm: Optional[float] = None,
    age: Optional[float] = None,
    sex: Optional[str] = None,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Calculate Basal Metabolic Rate using Mifflin-St Jeor.

    Args:
        weight_lbs: Weight in pounds
        height_cm: Height in cm (defaults to 175 when unknown)
        age: Age in years (defaults to 35 when unknown)
        sex: 'male', 'female' or None (midpoint constant when unknown)

    Returns:
        BMR in kcal/day
    """
    weight_kg = weight_lbs / LBS_PER_KG
    height = height_cm if height_cm is not None else constants.default_height_cm
    age_value = age if age is not None else constants.default_age

    sex_key = sex.lower() if isinstance(sex, str) else "unknown"
    sex_const = constants.sex_constants.get(
        sex_key, constants.sex_constants["unknown"]
    )

    return 10 * weight_kg + 6.25 * height - 5 * age_value + sex_const


def estimate_tdee(
    weight_lbs: float,
    height_cm: Optional[float] = None,
    age: Optional[float] = None,
    sex: Optional[str] = None,
    activity: Optional[str] = "sedentary",
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Estimate Total Daily Energy Expenditure.

    Args:
        weight_lbs: Weight in pounds
        height_cm: Height in cm, optional
        age: Age in years, optional
        sex: 'male', 'female' or None
        activity: 'sedentary', 'light', 'moderate', 'active', 'very_active'.
            Unknown levels fall back to sedentary.

    Returns:
        TDEE in kcal/day
    """
    bmr = estimate_bmr(weight_lbs, height_cm, age, sex, constants)
    multipliers = constants.activity_multipliers
    key = activity.lower() if isinstance(activity, str) else "sedentary"
    return bmr * multipliers.get(key, multipliers["sedentary"])


def metabolic_adaptation_factor(
    hours: float,
    body_fat_pct: float,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """TDEE multiplier accounting for metabolic slowdown during a fast.

    No reduction up to the onset. Past it, the base drop starts at 2% and
    grows 0.08%/hour up to 12%. Leaner people adapt less: every point of
    body fat below 15% shaves 0.3% off the drop (and above 15% adds it),
    limited to +-5%. The total drop is clamped to [0, 15%].

    Returns:
        Factor in [0.85, 1.0], where 1.0 means no adaptation
    """
    if hours <= constants.adaptation_onset_hours:
        return 1.0

    past_onset = hours - constants.adaptation_onset_hours
    base_drop = min(
        constants.adaptation_max_base_drop,
        constants.adaptation_initial_drop
        + constants.adaptation_drop_per_hour * past_onset,
    )

    leanness_adj = (
        constants.adaptation_reference_body_fat - body_fat_pct
    ) * constants.adaptation_leanness_per_pct
    leanness_adj = max(
        -constants.adaptation_max_leanness_adj,
        min(constants.adaptation_max_leanness_adj, leanness_adj),
    )

    drop = max(0.0, min(constants.adaptation_max_drop, base_drop - leanness_adj))
    return 1 - drop


def estimate_fat_loss_lbs(
    hours: float,
    tdee: float,
    weight_lbs: float,
    body_fat_pct: float,
    constants: PhysiologyConstants = DEFAULT_CONSTANTS,
) -> float:
    """Estimate fat oxidised over a fast.

    The daily deficit is the adapted TDEE (nothing is eaten). Fat oxidation
    is capped per kg of fat mass, which matters for lean individuals.

    Args:
        hours: Fast duration in hours
        tdee: Total daily energy expenditure (kcal/day)
        weight_lbs: Starting weight in pounds
        body_fat_pct: Body fat percentage

    Returns:
        Fat loss in lbs, never more than the available fat mass
    """
    if hours <= 0:
        return 0.0

    days = hours / 24
    daily_deficit = tdee * metabolic_adaptation_factor(hours, body_fat_pct, constants)

    fat_mass_lbs = max(0.0, weight_lbs * (body_fat_pct / 100))
    fat_mass_kg = fat_mass_lbs / LBS_PER_KG
    max_fat_kcal_per_day = constants.fat_oxidation_cap_kcal_per_kg * fat_mass_kg

    allowed_per_day = min(daily_deficit, max_fat_kcal_per_day) / constants.kcal_per_lb_fat
    return max(0.0, min(fat_mass_lbs, allowed_per_day * days))
