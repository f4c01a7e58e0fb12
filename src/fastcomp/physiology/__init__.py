"""Physiology estimators for fasting body-composition analysis.

Pure numeric functions:
- TDEE (Mifflin-St Jeor) and metabolic adaptation
- Time-averaged ketosis and protein-buffer factors
- Lean tissue (muscle + lean water) and fat loss
- Glycogen / bound water kinetics and gut-content clearance
"""

from __future__ import annotations

from fastcomp.physiology.constants import (
    DEFAULT_CONSTANTS,
    KETO_ADAPTED_BASELINES,
    PhysiologyConstants,
)
from fastcomp.physiology.energy import (
    estimate_bmr,
    estimate_fat_loss_lbs,
    estimate_tdee,
    metabolic_adaptation_factor,
)
from fastcomp.physiology.fluids import (
    GlycogenEstimate,
    estimate_glycogen_and_bound_water,
    estimate_gut_content_loss,
)
from fastcomp.physiology.sparing import (
    LeanLossComponents,
    estimate_lean_loss_components,
    ketosis_factor,
    protein_buffer_factor,
)

__all__ = [
    "DEFAULT_CONSTANTS",
    "GlycogenEstimate",
    "KETO_ADAPTED_BASELINES",
    "LeanLossComponents",
    "PhysiologyConstants",
    "estimate_bmr",
    "estimate_fat_loss_lbs",
    "estimate_glycogen_and_bound_water",
    "estimate_gut_content_loss",
    "estimate_lean_loss_components",
    "estimate_tdee",
    "ketosis_factor",
    "metabolic_adaptation_factor",
    "protein_buffer_factor",
]
