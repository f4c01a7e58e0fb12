"""Fast effectiveness: partition a fast's weight change into its sources.

Four-component model:

    total lost = fat + true muscle + lean water + other fluid

where other fluid is glycogen, glycogen-bound water, gut content and a
residual water shift. In *measured* mode (body fat % logged before and
after) fat comes straight from the fat-mass delta; in *estimated* mode it
comes from the energy model. Muscle and lean water always come from the
protein catabolism model. Components are reconciled so they never exceed
the observed total.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from fastcomp.analytics.models import (
    EffectivenessResult,
    Fast,
    FastSnapshot,
    FluidBreakdown,
    UserProfile,
    round_or_none,
)
from fastcomp.physiology import (
    DEFAULT_CONSTANTS,
    KETO_ADAPTED_BASELINES,
    PhysiologyConstants,
    estimate_fat_loss_lbs,
    estimate_glycogen_and_bound_water,
    estimate_gut_content_loss,
    estimate_lean_loss_components,
    estimate_tdee,
)

logger = logging.getLogger(__name__)

# Body fat % change at or above this is reported as significant
SIGNIFICANT_BODY_FAT_CHANGE = 0.3

MESSAGES = {
    "held_steady": "Weight held steady. Your body still got the metabolic reset.",
    "excellent": (
        "Excellent fast: about {fat} lb looks like fat loss. "
        "Expect some fluid rebound within a day or two."
    ),
    "good_progress": (
        "Good progress: about {fat} lb looks like fat loss. "
        "Morning weigh-ins will confirm what sticks."
    ),
    "mostly_fluid": (
        "Most of this drop is fluid and glycogen. "
        "Expect part of it to rebound as you rehydrate."
    ),
    "generic": "Part of this drop is fat and part is fluid. Keep logging to see what sticks.",
}

NOT_FOUND_MESSAGE = "We couldn't find this fast entry."
MISSING_START_MESSAGE = "Add a start weight to this fast to size up its effectiveness."
MISSING_POST_MESSAGE = "Log your post-fast weight to see what portion came from fat vs. fluid."
MISSING_PARAMS_MESSAGE = (
    "Missing required parameters: start_weight, post_weight, fast_duration_hours"
)


@dataclass
class EffectivenessParams:
    """Inputs for one effectiveness calculation."""

    start_weight: Optional[float]
    post_weight: Optional[float]
    fast_duration_hours: Optional[float]
    start_body_fat: Optional[float] = None
    post_body_fat: Optional[float] = None
    tdee: Optional[float] = None
    height_cm: Optional[float] = None
    age: Optional[float] = None
    sex: Optional[str] = None
    activity: str = "sedentary"
    keto_adapted: str = "none"
    start_in_ketosis: bool = False
    pre_fast_protein_grams: float = 0.0
    carb_status: str = "normal"

    @classmethod
    def from_snapshot(
        cls,
        snapshot: FastSnapshot,
        hours: Optional[float],
        profile: Optional[UserProfile] = None,
    ) -> "EffectivenessParams":
        profile = profile or UserProfile()
        return cls(
            start_weight=snapshot.start_weight,
            post_weight=snapshot.post_weight,
            fast_duration_hours=hours,
            start_body_fat=snapshot.start_body_fat,
            post_body_fat=snapshot.post_body_fat,
            tdee=profile.tdee,
            height_cm=profile.height_cm,
            age=profile.age,
            sex=profile.sex,
            activity=profile.activity,
            keto_adapted=profile.keto_adapted,
            start_in_ketosis=profile.start_in_ketosis,
            pre_fast_protein_grams=profile.pre_fast_protein_grams,
            carb_status=profile.carb_status,
        )


def _is_number(value) -> bool:
    """True for finite real numbers (bools, NaN and infinities excluded)."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _is_body_fat(value) -> bool:
    """A usable body fat reading: a finite percentage in [0, 100]."""
    return _is_number(value) and 0 <= value <= 100


def _scale_to_budget(values: list[float], budget: float) -> list[float]:
    """Scale non-negative values down proportionally so they sum to <= budget."""
    total = sum(values)
    if total <= budget or total <= 0:
        return values
    factor = max(0.0, budget) / total
    return [v * factor for v in values]


def select_message(total_lost: float, fat_loss: float, fluid_loss: float) -> str:
    """Pick the user-facing summary for a breakdown (rounded values)."""
    if total_lost <= 0:
        return MESSAGES["held_steady"]
    if fat_loss >= 1.0:
        return MESSAGES["excellent"].format(fat=fat_loss)
    if fat_loss >= 0.5:
        return MESSAGES["good_progress"].format(fat=fat_loss)
    if fluid_loss / total_lost > 0.7:
        return MESSAGES["mostly_fluid"]
    return MESSAGES["generic"]


class FastEffectivenessCalculator:
    """Composes the physiology estimators into a per-fast breakdown."""

    def __init__(self, constants: PhysiologyConstants = DEFAULT_CONSTANTS):
        self.constants = constants

    def calculate(self, params: EffectivenessParams) -> EffectivenessResult:
        """Partition the weight change of one fast.

        Returns:
            EffectivenessResult with status 'ok', or 'error' when a required
            numeric input is missing, not finite or not positive. Body fat
            readings outside 0-100% are ignored (estimated mode).
        """
        required = (params.start_weight, params.post_weight, params.fast_duration_hours)
        if not all(_is_number(v) and v > 0 for v in required):
            return EffectivenessResult(status="error", message=MISSING_PARAMS_MESSAGE)

        c = self.constants
        start_weight = float(params.start_weight)
        post_weight = float(params.post_weight)
        hours = float(params.fast_duration_hours)
        total_lost = start_weight - post_weight

        baseline_keto = KETO_ADAPTED_BASELINES.get(params.keto_adapted or "none", 0.0)
        measured = _is_body_fat(params.start_body_fat) and _is_body_fat(params.post_body_fat)
        body_fat = (
            float(params.start_body_fat)
            if _is_body_fat(params.start_body_fat)
            else c.default_body_fat_pct
        )

        if measured:
            start_fat_mass = start_weight * (params.start_body_fat / 100)
            post_fat_mass = post_weight * (params.post_body_fat / 100)
            fat_loss = max(0.0, start_fat_mass - post_fat_mass)
            breakdown_source = "measured"
        else:
            tdee = params.tdee
            if not _is_number(tdee) or tdee <= 0:
                tdee = estimate_tdee(
                    start_weight,
                    params.height_cm,
                    params.age,
                    params.sex,
                    params.activity,
                    constants=c,
                )
            fat_loss = estimate_fat_loss_lbs(hours, tdee, start_weight, body_fat, constants=c)
            breakdown_source = "estimated"

        lean = estimate_lean_loss_components(
            hours,
            start_weight,
            body_fat,
            baseline_keto=baseline_keto,
            start_in_ketosis=params.start_in_ketosis,
            pre_fast_protein_grams=params.pre_fast_protein_grams,
            constants=c,
        )

        # Fat and lean components never claim more than was actually lost
        budget = max(0.0, total_lost)
        fat_loss = min(fat_loss, budget)
        muscle_loss, lean_water = _scale_to_budget(
            [lean.muscle_lbs, lean.lean_water_lbs], budget - fat_loss
        )

        glycogen = estimate_glycogen_and_bound_water(
            hours, start_weight, body_fat, params.carb_status, constants=c
        )
        gut = estimate_gut_content_loss(hours, start_weight, constants=c)

        available = max(0.0, total_lost - fat_loss - muscle_loss - lean_water)
        glycogen_mass, bound_water, gut_content = _scale_to_budget(
            [glycogen.glycogen_lost_lbs, glycogen.bound_water_lost_lbs, gut], available
        )
        residual = max(0.0, available - glycogen_mass - bound_water - gut_content)

        breakdown = FluidBreakdown(
            glycogen_mass=glycogen_mass,
            glycogen_bound_water=bound_water,
            gut_content=gut_content,
            residual_water_shift=residual,
        )
        other_fluid = breakdown.total
        fluid_loss = lean_water + other_fluid

        body_fat_change = None
        if measured:
            body_fat_change = round_or_none(params.post_body_fat - params.start_body_fat)

        result = EffectivenessResult(
            status="ok",
            message="",
            start_weight=round_or_none(start_weight),
            post_weight=round_or_none(post_weight),
            total_weight_lost=round_or_none(total_lost),
            weight_delta=round_or_none(post_weight - start_weight),
            fat_loss=round_or_none(fat_loss),
            muscle_loss=round_or_none(muscle_loss),
            lean_water=round_or_none(lean_water),
            other_fluid_loss=round_or_none(other_fluid),
            fluid_loss=round_or_none(fluid_loss),
            fluid_breakdown=FluidBreakdown(
                glycogen_mass=round_or_none(glycogen_mass),
                glycogen_bound_water=round_or_none(bound_water),
                gut_content=round_or_none(gut_content),
                residual_water_shift=round_or_none(residual),
            ),
            breakdown_source=breakdown_source,
            start_body_fat=round_or_none(params.start_body_fat)
            if _is_body_fat(params.start_body_fat)
            else None,
            post_body_fat=round_or_none(params.post_body_fat)
            if _is_body_fat(params.post_body_fat)
            else None,
            body_fat_change=body_fat_change,
            body_fat_change_abs=abs(body_fat_change) if body_fat_change is not None else None,
            body_fat_change_significant=(
                body_fat_change is not None
                and abs(body_fat_change) >= SIGNIFICANT_BODY_FAT_CHANGE
            ),
            raw={
                "start_weight": start_weight,
                "post_weight": post_weight,
                "weight_lost": total_lost,
                "weight_delta": post_weight - start_weight,
                "fat_loss": fat_loss,
                "muscle_loss": muscle_loss,
                "lean_water": lean_water,
                "other_fluid_loss": other_fluid,
                "fluid_loss": fluid_loss,
            },
        )
        result.message = select_message(
            result.total_weight_lost, result.fat_loss, result.fluid_loss
        )
        return result

    def compute_from_snapshot(
        self,
        fast: Optional[Fast],
        snapshot: Optional[FastSnapshot],
        profile: Optional[UserProfile] = None,
    ) -> EffectivenessResult:
        """Effectiveness of a stored fast, with data-availability statuses."""
        if fast is None or snapshot is None:
            return EffectivenessResult(status="not_found", message=NOT_FOUND_MESSAGE)

        if not _is_number(snapshot.start_weight):
            return EffectivenessResult(
                status="missing_start", fast_id=fast.fast_id, message=MISSING_START_MESSAGE
            )

        if snapshot.post_entry is None or not _is_number(snapshot.post_weight):
            return EffectivenessResult(
                status="missing_post_fast", fast_id=fast.fast_id, message=MISSING_POST_MESSAGE
            )

        params = EffectivenessParams.from_snapshot(snapshot, fast.actual_hours, profile)
        result = self.calculate(params)
        result.fast_id = fast.fast_id
        result.start_entry_id = snapshot.start_entry.entry_id if snapshot.start_entry else None
        result.post_entry_id = snapshot.post_entry.entry_id
        if not result.is_ok:
            logger.debug("Fast %s: %s", fast.fast_id, result.message)
        return result
