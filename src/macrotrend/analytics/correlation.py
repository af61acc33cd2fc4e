"""Pearson correlation between intake and outcome series."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Optional

import numpy as np
from scipy import stats

from macrotrend.analytics.align import latest_per_day
from macrotrend.analytics.models import CorrelationResult, DailyRecord, WeightEntry

logger = logging.getLogger(__name__)

MIN_POINTS = 5

# Upper bounds on |r| for each strength bucket, checked in order
STRENGTH_BOUNDS = (
    (0.2, "none"),
    (0.4, "weak"),
    (0.6, "moderate"),
    (0.8, "strong"),
)

INTAKE_LABELS = {
    "calories": "calorie intake",
    "protein": "protein intake",
    "carbs": "carb intake",
    "fat": "fat intake",
}

STRENGTH_WORDS = {
    "none": "No meaningful",
    "weak": "Weak",
    "moderate": "Moderate",
    "strong": "Strong",
    "very_strong": "Very strong",
}


def classify_strength(coefficient: float) -> str:
    """Bucket |r| into none/weak/moderate/strong/very_strong."""
    magnitude = abs(coefficient)
    for bound, label in STRENGTH_BOUNDS:
        if magnitude < bound:
            return label
    return "very_strong"


def describe_correlation(strength: str, direction: str, label_a: str, label_b: str) -> str:
    """One-sentence reading of a correlation."""
    if strength == "none":
        return f"No meaningful correlation between {label_a} and {label_b}"
    return f"{STRENGTH_WORDS[strength]} {direction} correlation between {label_a} and {label_b}"


def correlate(
    series_a: Sequence[Optional[float]],
    series_b: Sequence[Optional[float]],
    label_a: str = "A",
    label_b: str = "B",
    min_points: int = MIN_POINTS,
) -> Optional[CorrelationResult]:
    """
    Pearson correlation between two position-aligned series.

    Series are truncated to the shorter length; the caller is responsible for
    aligning them by date first. Positions where either value is missing
    (``None``, as in a dense series) or not finite are left out, and the
    point minimum applies to the pairs that remain. A ``strength`` of
    ``none`` is still returned; deciding whether to show it is up to the
    caller.

    Args:
        series_a: First series
        series_b: Second series
        label_a: Human name for the first series, used in the description
        label_b: Human name for the second series
        min_points: Minimum number of complete pairs

    Returns:
        CorrelationResult, or None when there are too few complete pairs or
        either series is constant over them.

    Example:
        >>> correlate([1, 2, 3, 4, 5], [2, 4, 6, 8, 10], "x", "y").strength
        'very_strong'
    """
    n = min(len(series_a), len(series_b))
    a = np.asarray(series_a[:n], dtype=float)
    b = np.asarray(series_b[:n], dtype=float)
    complete = np.isfinite(a) & np.isfinite(b)
    a, b = a[complete], b[complete]

    sample_size = int(a.size)
    if sample_size < max(min_points, 2):
        logger.debug("correlate: %d complete pairs, need %d", sample_size, min_points)
        return None

    if np.ptp(a) == 0 or np.ptp(b) == 0:
        logger.debug("correlate: zero variance, correlation undefined")
        return None

    r = float(stats.pearsonr(a, b)[0])
    r = max(-1.0, min(1.0, r))

    strength = classify_strength(r)
    direction = "positive" if r >= 0 else "negative"

    return CorrelationResult(
        coefficient=r,
        strength=strength,
        direction=direction,
        description=describe_correlation(strength, direction, label_a, label_b),
        sample_size=sample_size,
    )


def intake_vs_weight_change(
    days: Sequence[DailyRecord],
    weights: Sequence[WeightEntry],
    min_points: int = MIN_POINTS,
    field: str = "calories",
) -> Optional[CorrelationResult]:
    """
    Correlate each day's intake with the weight change that follows it.

    For every logged day that has a weigh-in, the change is measured to the
    next weigh-in (whatever day it falls on), scaled to a per-day rate.

    Args:
        days: Daily records
        weights: Weight entries
        min_points: Minimum number of paired days
        field: Intake field to correlate (one of ``INTAKE_LABELS``)

    Returns:
        CorrelationResult labelled e.g. "calorie intake" / "weight change", or None.
    """
    if field not in INTAKE_LABELS:
        raise ValueError(f"field must be one of {sorted(INTAKE_LABELS)}, got {field!r}")

    ordered = latest_per_day(weights)
    next_weight: dict[date, tuple[date, float, float]] = {}
    for current, following in zip(ordered, ordered[1:]):
        next_weight[current.date] = (following.date, current.weight, following.weight)

    intake: list[float] = []
    changes: list[float] = []
    for day in latest_per_day(days):
        if day.date not in next_weight:
            continue
        next_date, start, end = next_weight[day.date]
        elapsed = (next_date - day.date).days
        intake.append(getattr(day, field))
        changes.append((end - start) / elapsed)

    return correlate(intake, changes, INTAKE_LABELS[field], "weight change", min_points)
