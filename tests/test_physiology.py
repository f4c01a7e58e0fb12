"""Tests for the physiology estimators."""

from __future__ import annotations

import pytest
from scipy.integrate import quad

from fastcomp.physiology import (
    DEFAULT_CONSTANTS,
    PhysiologyConstants,
    estimate_bmr,
    estimate_fat_loss_lbs,
    estimate_glycogen_and_bound_water,
    estimate_gut_content_loss,
    estimate_lean_loss_components,
    estimate_tdee,
    ketosis_factor,
    metabolic_adaptation_factor,
    protein_buffer_factor,
)
from fastcomp.physiology.fluids import gut_clearance_fraction
from fastcomp.physiology.sparing import ketosis_curve, protein_buffer_level

BREAKPOINTS = (16.0, 24.0, 48.0, 72.0)


def instantaneous_ketosis(t, early):
    w = min(1.0, t / 48)
    return (1 - w) * early + w * ketosis_curve(t)


def instantaneous_buffer(t, level):
    if t < 24:
        return 1 - level
    if t < 48:
        return 1 - level * (1 - (t - 24) / 24)
    return 1.0


def time_average(f, hours):
    points = [p for p in BREAKPOINTS if p < hours]
    area, _ = quad(f, 0, hours, points=points or None, limit=200)
    return area / hours


class TestEnergy:
    """Tests for BMR, TDEE and metabolic adaptation."""

    def test_bmr_male(self):
        # 180 lb, 175 cm, 35 y: 10*81.65 + 1093.75 - 175 + 5
        assert estimate_bmr(180, 175, 35, "male") == pytest.approx(1740.2, abs=0.1)

    def test_bmr_unknown_sex_uses_midpoint(self):
        male = estimate_bmr(180, 175, 35, "male")
        female = estimate_bmr(180, 175, 35, "female")
        unknown = estimate_bmr(180, 175, 35, None)
        assert female < unknown < male

    def test_bmr_defaults_height_and_age(self):
        assert estimate_bmr(180) == pytest.approx(estimate_bmr(180, 175, 35, None))

    def test_tdee_applies_activity(self):
        bmr = estimate_bmr(180, 175, 35, "male")
        assert estimate_tdee(180, 175, 35, "male") == pytest.approx(bmr * 1.2)
        assert estimate_tdee(180, 175, 35, "male", "moderate") == pytest.approx(bmr * 1.55)

    def test_tdee_unknown_activity_is_sedentary(self):
        assert estimate_tdee(180, activity="couch") == pytest.approx(estimate_tdee(180))

    def test_no_adaptation_before_onset(self):
        assert metabolic_adaptation_factor(0, 20) == 1.0
        assert metabolic_adaptation_factor(36, 20) == 1.0

    def test_adaptation_after_onset(self):
        # base 2% + 0.08% * 12h = 2.96%, plus 1.5% for 20% body fat
        assert metabolic_adaptation_factor(48, 20) == pytest.approx(1 - 0.0446)

    def test_lean_people_adapt_less(self):
        assert metabolic_adaptation_factor(72, 8) > metabolic_adaptation_factor(72, 25)

    def test_adaptation_is_bounded(self):
        for hours in (37, 60, 120, 500):
            for body_fat in (3, 15, 45):
                factor = metabolic_adaptation_factor(hours, body_fat)
                assert 0.85 <= factor <= 1.0
        assert metabolic_adaptation_factor(500, 45) == pytest.approx(0.85)

    def test_fat_loss_48h(self):
        tdee = estimate_tdee(180, 175, 35, "male")
        # capped by 69 kcal/kg of fat mass (36 lb of fat)
        assert estimate_fat_loss_lbs(48, tdee, 180, 20) == pytest.approx(0.644, abs=0.005)

    def test_fat_loss_uses_deficit_when_below_cap(self):
        # 40% body fat: cap is far above the daily deficit
        fat = estimate_fat_loss_lbs(24, 2000, 200, 40)
        assert fat == pytest.approx(2000 / 3500)

    def test_fat_loss_never_exceeds_fat_mass(self):
        assert estimate_fat_loss_lbs(10_000, 3000, 100, 1) <= 1.0

    def test_fat_loss_zero_hours(self):
        assert estimate_fat_loss_lbs(0, 2000, 180, 20) == 0.0


class TestKetosisFactor:
    """Tests for the time-averaged ketosis factor."""

    def test_zero_hours_returns_early_level(self):
        assert ketosis_factor(0) == 0.0
        assert ketosis_factor(0, baseline_keto=0.3) == 0.3
        assert ketosis_factor(0, start_in_ketosis=True) == 0.5

    def test_no_ketosis_in_first_16h(self):
        assert ketosis_factor(16) == 0.0

    def test_24h_closed_form(self):
        # 0.2 * (24^2 - 16^2) / 96 / 24
        assert ketosis_factor(24) == pytest.approx(0.2 * 320 / 96 / 24)

    @pytest.mark.parametrize("hours", [6, 16, 20, 24, 30, 48, 60, 72, 96, 150])
    @pytest.mark.parametrize(
        "baseline,start_in_ketosis",
        [(0.0, False), (0.3, False), (0.6, False), (0.0, True), (0.3, True)],
    )
    def test_matches_numeric_integral(self, hours, baseline, start_in_ketosis):
        early = max(0.5 if start_in_ketosis else 0.0, baseline)
        expected = time_average(lambda t: instantaneous_ketosis(t, early), hours)
        assert ketosis_factor(hours, baseline, start_in_ketosis) == pytest.approx(
            expected, abs=1e-6
        )

    def test_baseline_is_clamped(self):
        assert ketosis_factor(10, baseline_keto=0.9) == pytest.approx(
            ketosis_factor(10, baseline_keto=0.6)
        )

    def test_bounded(self):
        for hours in (1, 24, 48, 200):
            assert 0.0 <= ketosis_factor(hours, 0.6, True) <= 0.8


class TestProteinBuffer:
    """Tests for the time-averaged protein buffer multiplier."""

    def test_no_protein_no_protection(self):
        assert protein_buffer_factor(36, 0) == 1.0

    def test_zero_hours_returns_full_protection(self):
        level = protein_buffer_level(100)
        assert protein_buffer_factor(0, 100) == pytest.approx(1 - level)

    def test_level_saturates(self):
        assert protein_buffer_level(1000) == pytest.approx(0.35, abs=1e-4)
        assert protein_buffer_level(40) < protein_buffer_level(80)

    @pytest.mark.parametrize("hours", [4, 24, 30, 48, 72, 120])
    @pytest.mark.parametrize("protein", [20, 60, 150])
    def test_matches_numeric_integral(self, hours, protein):
        level = protein_buffer_level(protein)
        expected = time_average(lambda t: instantaneous_buffer(t, level), hours)
        assert protein_buffer_factor(hours, protein) == pytest.approx(expected, abs=1e-6)

    def test_bounded(self):
        for hours in (1, 24, 48, 200):
            assert 0.65 <= protein_buffer_factor(hours, 500) <= 1.0


class TestLeanLoss:
    """Tests for lean tissue loss components."""

    def test_split_into_muscle_and_water(self):
        lean = estimate_lean_loss_components(48, 180, 20)
        assert lean.lean_water_lbs == pytest.approx(0.75 * lean.wet_lean_lbs)
        assert lean.muscle_lbs == pytest.approx(0.25 * lean.wet_lean_lbs)

    def test_protein_grams_no_sparing(self):
        # ketosis has not started by 16h and there is no protein buffer
        lean = estimate_lean_loss_components(16, 180, 20)
        lbm_kg = 144 / 2.2046
        assert lean.protein_grams == pytest.approx(0.5 * lbm_kg * 16 / 24)

    def test_ketosis_spares_muscle(self):
        plain = estimate_lean_loss_components(48, 180, 20)
        adapted = estimate_lean_loss_components(48, 180, 20, baseline_keto=0.6)
        assert adapted.muscle_lbs < plain.muscle_lbs

    def test_protein_buffer_spares_muscle(self):
        plain = estimate_lean_loss_components(24, 180, 20)
        buffered = estimate_lean_loss_components(24, 180, 20, pre_fast_protein_grams=80)
        assert buffered.muscle_lbs < plain.muscle_lbs

    def test_zero_hours(self):
        lean = estimate_lean_loss_components(0, 180, 20)
        assert lean.wet_lean_lbs == 0.0


class TestFluids:
    """Tests for glycogen, bound water and gut content."""

    def test_glycogen_24h(self):
        estimate = estimate_glycogen_and_bound_water(24, 180, 20)
        assert estimate.glycogen_lost_lbs == pytest.approx(1.365, abs=0.01)
        assert estimate.bound_water_lost_lbs == pytest.approx(
            3.2 * estimate.glycogen_lost_lbs
        )

    def test_glycogen_never_exceeds_stores(self):
        estimate = estimate_glycogen_and_bound_water(500, 180, 20)
        assert estimate.glycogen_lost_lbs <= estimate.start_glycogen_lbs

    def test_carb_status_scales_stores(self):
        normal = estimate_glycogen_and_bound_water(24, 180, 20, "normal")
        low = estimate_glycogen_and_bound_water(24, 180, 20, "low")
        high = estimate_glycogen_and_bound_water(24, 180, 20, "high")
        assert low.total_lbs == pytest.approx(0.6 * normal.total_lbs)
        assert high.total_lbs == pytest.approx(1.1 * normal.total_lbs)

    def test_unknown_carb_status_is_normal(self):
        assert estimate_glycogen_and_bound_water(24, 180, 20, "bogus").total_lbs == pytest.approx(
            estimate_glycogen_and_bound_water(24, 180, 20).total_lbs
        )

    def test_gut_clearance_curve(self):
        assert gut_clearance_fraction(0) == 0.0
        assert gut_clearance_fraction(8) == pytest.approx(0.10)
        assert gut_clearance_fraction(16) == pytest.approx(0.475)
        assert gut_clearance_fraction(24) == pytest.approx(0.85)
        assert gut_clearance_fraction(36) == pytest.approx(0.95)
        assert gut_clearance_fraction(200) == pytest.approx(0.95)

    def test_gut_content_peak_limits(self):
        # 0.8% of body weight, limited to 1-4 lb
        assert estimate_gut_content_loss(36, 180) == pytest.approx(1.44 * 0.95)
        assert estimate_gut_content_loss(36, 100) == pytest.approx(1.0 * 0.95)
        assert estimate_gut_content_loss(36, 600) == pytest.approx(4.0 * 0.95)


class TestConstants:
    """Tests for overriding named constants."""

    def test_from_dict_overrides(self):
        constants = PhysiologyConstants.from_dict(
            {"kcal_per_lb_fat": 3600, "sex_constants": {"male": 6}, "unknown": 1}
        )
        assert constants.kcal_per_lb_fat == 3600.0
        assert constants.sex_constants["male"] == 6.0
        assert constants.sex_constants["female"] == -161.0

    def test_constants_flow_into_estimators(self):
        constants = PhysiologyConstants.from_dict({"adaptation_onset_hours": 48})
        assert metabolic_adaptation_factor(48, 20, constants) == 1.0
        assert metabolic_adaptation_factor(48, 20, DEFAULT_CONSTANTS) < 1.0
