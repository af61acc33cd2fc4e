"""Macro consistency scoring using the coefficient of variation.

A low CV means intake barely moves from day to day. Each macro's CV is
stdev / mean (population stdev); a macro whose mean is zero has nothing to
vary and scores CV = 0.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from macrotrend.analytics._stats import clamp, coefficient_of_variation, round_half_up
from macrotrend.analytics.models import MacroConsistency, MacroDay

logger = logging.getLogger(__name__)

MIN_DAYS = 3


def consistency_percent(cv: float) -> int:
    """Per-macro consistency percentage: (1 - CV) × 100 clamped to [0, 100]."""
    return clamp(round_half_up((1 - cv) * 100))


def macro_consistency(
    days: Sequence[MacroDay],
    min_days: int = MIN_DAYS,
) -> Optional[MacroConsistency]:
    """
    Score how stable daily calories and macros are.

    Args:
        days: Logged days with calories, protein, carbs and fat
        min_days: Minimum number of days to score

    Returns:
        MacroConsistency, or None with fewer than ``min_days`` days.
    """
    if len(days) < min_days:
        logger.debug("macro_consistency: %d days, need %d", len(days), min_days)
        return None

    calorie_cv = coefficient_of_variation([d.calories for d in days])
    protein_cv = coefficient_of_variation([d.protein for d in days])
    carbs_cv = coefficient_of_variation([d.carbs for d in days])
    fat_cv = coefficient_of_variation([d.fat for d in days])

    avg_cv = (calorie_cv + protein_cv + carbs_cv + fat_cv) / 4
    overall = clamp(round_half_up(100 * (1 - avg_cv)))

    return MacroConsistency(
        overall_consistency=overall,
        calorie_cv=calorie_cv,
        protein_cv=protein_cv,
        carbs_cv=carbs_cv,
        fat_cv=fat_cv,
    )
