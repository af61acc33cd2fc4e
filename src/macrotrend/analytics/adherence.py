"""Weekly adherence score and letter grade.

The score blends three percentages:
- calorie adherence: logged days within ±10% of the calorie goal
- protein adherence: logged days reaching 90% of the protein goal
- logging consistency: logged days out of the days in the period
"""

from __future__ import annotations

from collections.abc import Sequence

from macrotrend.analytics._stats import round_half_up
from macrotrend.analytics.models import AdherenceResult, TargetDay

CALORIE_TOLERANCE = 0.10
PROTEIN_THRESHOLD = 0.90

CALORIE_WEIGHT = 0.4
PROTEIN_WEIGHT = 0.35
LOGGING_WEIGHT = 0.25

# (minimum score, grade), checked top-down
GRADE_BANDS = (
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
)


def grade_for_score(score: int) -> str:
    """Map a 0-100 score onto A+ through F."""
    for minimum, grade in GRADE_BANDS:
        if score >= minimum:
            return grade
    return "F"


def calorie_on_target(day: TargetDay, tolerance: float = CALORIE_TOLERANCE) -> bool:
    return abs(day.calories - day.goal_calories) <= tolerance * day.goal_calories


def protein_on_target(day: TargetDay, threshold: float = PROTEIN_THRESHOLD) -> bool:
    return day.protein >= threshold * day.goal_protein


def adherence(
    days: Sequence[TargetDay],
    period_days: int,
    calorie_tolerance: float = CALORIE_TOLERANCE,
    protein_threshold: float = PROTEIN_THRESHOLD,
    weights: tuple[float, float, float] = (CALORIE_WEIGHT, PROTEIN_WEIGHT, LOGGING_WEIGHT),
) -> AdherenceResult:
    """
    Score how consistently calorie and protein targets were hit.

    Args:
        days: Logged days in the period (absent days are simply not listed)
        period_days: Number of calendar days in the period
        calorie_tolerance: Allowed fractional deviation from the calorie goal
        protein_threshold: Fraction of the protein goal that counts as a hit
        weights: Blend weights for (calorie, protein, logging)

    Returns:
        AdherenceResult. With no logged days every score is 0 and the grade F.

    Example:
        >>> adherence([], 7).grade
        'F'
    """
    logged = len(days)
    if logged == 0:
        return AdherenceResult(
            overall_score=0,
            grade="F",
            calorie_adherence=0,
            protein_adherence=0,
            logging_consistency=0,
            days_on_target=0,
            total_days=0,
        )

    calorie_hits = sum(1 for d in days if calorie_on_target(d, calorie_tolerance))
    protein_hits = sum(1 for d in days if protein_on_target(d, protein_threshold))

    calorie_pct = round_half_up(100 * calorie_hits / logged)
    protein_pct = round_half_up(100 * protein_hits / logged)
    if period_days > 0:
        logging_pct = min(100, round_half_up(100 * logged / period_days))
    else:
        logging_pct = 0

    calorie_weight, protein_weight, logging_weight = weights
    overall = round_half_up(
        calorie_weight * calorie_pct + protein_weight * protein_pct + logging_weight * logging_pct
    )

    return AdherenceResult(
        overall_score=overall,
        grade=grade_for_score(overall),
        calorie_adherence=calorie_pct,
        protein_adherence=protein_pct,
        logging_consistency=logging_pct,
        days_on_target=calorie_hits,
        total_days=logged,
    )
