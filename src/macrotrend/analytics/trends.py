"""Trend diagnostics: regression, forecasting, anomalies, plateaus and adaptation."""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from datetime import date, timedelta
from typing import Optional

import numpy as np
from scipy import stats

from macrotrend.analytics._stats import coefficient_of_variation, round_half_up
from macrotrend.analytics.align import latest_per_day
from macrotrend.analytics.models import (
    Anomaly,
    AnomalyResult,
    DailyRecord,
    MetabolicAdaptation,
    PlateauResult,
    Prediction,
    RegressionResult,
    WeightEntry,
)

logger = logging.getLogger(__name__)

# The most recent point carries this multiple of the oldest point's weight
RECENCY_WEIGHT_RATIO = 3.0

STABLE_SLOPE = 0.005

ANOMALY_THRESHOLD = 2.0
ANOMALY_MIN_POINTS = 5
MIN_STD_DEV = 0.001

PLATEAU_WINDOW_DAYS = 14
PLATEAU_CV_THRESHOLD = 0.005  # 0.5% variation
PLATEAU_MAX_SLOPE = 0.02
# Looser CV allowed when extending a plateau further back
PLATEAU_EXTENSION_FACTOR = 1.5

PREDICTION_MIN_POINTS = 7
# Forecast confidence drops this many points per day ahead
PREDICTION_CONFIDENCE_DECAY = 5

ADAPTATION_WEEKS = 4
ADAPTATION_MIN_DEFICIT = 300  # kcal per day under goal
ADAPTATION_SIGNIFICANT_DEFICIT = 500
# Average weekly change at or above this counts as a stall (units per week)
ADAPTATION_STALL_RATE = -0.2
# Share of the deficit assumed to be absorbed by a slower metabolism
ADAPTATION_FACTOR = 0.15
ADAPTATION_RECOMMENDATIONS = (
    "Consider a 1-2 week diet break at maintenance calories",
    "Increase daily movement outside of workouts",
    "Add 1-2 resistance training sessions to preserve metabolic rate",
    "Aim for 7-9 hours of sleep",
)


def weighted_linear_regression(
    data: Sequence[float],
    window_days: int = 7,
) -> Optional[RegressionResult]:
    """
    Linear fit where recent points count more than older ones.

    Weights grow exponentially so that the last point in the window carries
    ``RECENCY_WEIGHT_RATIO`` times the weight of the first.

    Args:
        data: Series in chronological order
        window_days: Number of trailing points to fit (7, 14, 30 or 90 typical)

    Returns:
        RegressionResult, or None with fewer than 3 points.
    """
    window = np.asarray(list(data)[-window_days:], dtype=float)
    n = len(window)
    if n < 3:
        return None

    x = np.arange(n, dtype=float)
    w = np.exp(math.log(RECENCY_WEIGHT_RATIO) / (n - 1) * x)

    w_sum = w.sum()
    wx_sum = (w * x).sum()
    wy_sum = (w * window).sum()
    wxy_sum = (w * x * window).sum()
    wx2_sum = (w * x * x).sum()

    denom = w_sum * wx2_sum - wx_sum * wx_sum
    if abs(denom) < 1e-10:
        return None

    slope = float((w_sum * wxy_sum - wx_sum * wy_sum) / denom)
    intercept = float((wy_sum - slope * wx_sum) / w_sum)

    y_mean = wy_sum / w_sum
    ss_res = float((w * (window - (slope * x + intercept)) ** 2).sum())
    ss_tot = float((w * (window - y_mean) ** 2).sum())
    r_squared = 0.0 if ss_tot == 0 else max(0.0, 1 - ss_res / ss_tot)

    if abs(slope) < STABLE_SLOPE:
        direction = "stable"
    else:
        direction = "increasing" if slope > 0 else "decreasing"

    return RegressionResult(
        slope=round(slope, 3),
        intercept=round(intercept, 2),
        r_squared=round(r_squared, 3),
        direction=direction,
        confidence=round_half_up(r_squared * 100),
        predicted_next=round(slope * n + intercept, 1),
    )


def predict_future(
    data: Sequence[float],
    days_ahead: int = 7,
    min_points: int = PREDICTION_MIN_POINTS,
) -> list[Prediction]:
    """
    Extend an ordinary least-squares line over the series ``days_ahead`` steps.

    Confidence starts at the fit's R² as a percentage and drops by
    ``PREDICTION_CONFIDENCE_DECAY`` for each further step, never below zero.

    Args:
        data: Series in chronological order, one point per step
        days_ahead: Number of steps to forecast
        min_points: Minimum series length

    Returns:
        One Prediction per step, or an empty list with too few points.
    """
    values = np.asarray(list(data), dtype=float)
    n = len(values)
    if n < max(min_points, 2) or days_ahead < 1:
        return []

    fit = stats.linregress(np.arange(n, dtype=float), values)
    r_squared = fit.rvalue**2 if math.isfinite(fit.rvalue) else 0.0
    base = round_half_up(r_squared * 100)

    return [
        Prediction(
            day_offset=step + 1,
            predicted=round(float(fit.slope * (n + step) + fit.intercept), 1),
            confidence=max(0, base - PREDICTION_CONFIDENCE_DECAY * step),
        )
        for step in range(days_ahead)
    ]


def detect_anomalies(
    data: Sequence[float],
    threshold: float = ANOMALY_THRESHOLD,
    dates: Optional[Sequence[date]] = None,
) -> AnomalyResult:
    """
    Flag values at least ``threshold`` standard deviations from the mean.

    Args:
        data: Series to scan
        threshold: |z| at or above which a value is an anomaly
        dates: Optional dates matching ``data`` positions

    Returns:
        AnomalyResult; empty under 5 points or when the series is flat.
    """
    values = np.asarray(data, dtype=float)
    if len(values) < ANOMALY_MIN_POINTS:
        return AnomalyResult(anomalies=[], mean=0.0, std_dev=0.0)

    mean = float(values.mean())
    std_dev = float(values.std())
    if std_dev < MIN_STD_DEV:
        return AnomalyResult(anomalies=[], mean=mean, std_dev=std_dev)

    z_scores = stats.zscore(values)
    anomalies = []
    for i, z in enumerate(z_scores):
        if abs(z) >= threshold:
            anomalies.append(
                Anomaly(
                    index=i,
                    value=float(values[i]),
                    z_score=round(float(z), 2),
                    type="high" if z > 0 else "low",
                    date=dates[i] if dates is not None and i < len(dates) else None,
                )
            )

    return AnomalyResult(anomalies=anomalies, mean=round(mean, 1), std_dev=round(std_dev, 1))


def detect_plateau(
    data: Sequence[float],
    window_days: int = PLATEAU_WINDOW_DAYS,
    change_threshold: float = PLATEAU_CV_THRESHOLD,
) -> PlateauResult:
    """
    Statistical test for weight stagnation.

    A plateau needs both a tiny coefficient of variation over the last
    ``window_days`` points and a near-flat recency-weighted slope. Once found,
    the plateau is extended back a week at a time while the variation stays
    under 1.5x the threshold.

    Returns:
        PlateauResult; not a plateau when there are too few points.
    """
    values = list(data)
    not_plateau = PlateauResult(
        is_plateau=False, duration=0, change_rate=0.0, suggestion="", confidence=0
    )
    if len(values) < window_days:
        return not_plateau

    recent = values[-window_days:]
    if float(np.mean(recent)) == 0:
        return not_plateau

    cv = abs(coefficient_of_variation(recent))
    trend = weighted_linear_regression(recent, 7)
    abs_slope = abs(trend.slope) if trend else 0.0

    is_plateau = cv < change_threshold and abs_slope < PLATEAU_MAX_SLOPE

    duration = window_days
    if is_plateau:
        for w in range(window_days + 7, len(values) + 1, 7):
            window_cv = abs(coefficient_of_variation(values[-w:]))
            if window_cv < change_threshold * PLATEAU_EXTENSION_FACTOR:
                duration = w
            else:
                break

    suggestion = ""
    if is_plateau:
        if duration >= 28:
            suggestion = (
                "Extended plateau detected. Consider a strategic diet break or reverse "
                "diet for 1-2 weeks."
            )
        else:
            suggestion = (
                "Your progress has stalled. Try adjusting calories by 100-200, changing "
                "workout intensity, or adding more daily movement."
            )

    return PlateauResult(
        is_plateau=is_plateau,
        duration=duration if is_plateau else 0,
        change_rate=round(abs_slope, 3),
        suggestion=suggestion,
        confidence=min(95, round_half_up((1 - cv / change_threshold) * 100)) if is_plateau else 0,
    )


def detect_metabolic_adaptation(
    days: Sequence[DailyRecord],
    weights: Sequence[WeightEntry],
    weeks: int = ADAPTATION_WEEKS,
    min_deficit: float = ADAPTATION_MIN_DEFICIT,
    stall_rate: float = ADAPTATION_STALL_RATE,
) -> Optional[MetabolicAdaptation]:
    """
    Look for a sustained calorie deficit that no longer moves the scale.

    The trailing ``weeks`` 7-day blocks ending at the last logged day each
    give an average deficit (goal minus intake, over days with a calorie
    goal) and a mean weight. Adaptation is flagged when the average deficit
    exceeds ``min_deficit`` while the average week-to-week weight change is
    no faster a loss than ``stall_rate``.

    Returns:
        MetabolicAdaptation, or None when any block has no logged days or
        fewer than two blocks have weigh-ins.
    """
    logged = [d for d in latest_per_day(days) if d.calories > 0 and d.goal_calories > 0]
    if not logged:
        return None
    weigh_ins = latest_per_day(weights)
    end = logged[-1].date

    deficits: list[float] = []
    block_weights: list[Optional[float]] = []
    for k in reversed(range(weeks)):
        last = end - timedelta(days=7 * k)
        first = last - timedelta(days=6)
        block = [d.goal_calories - d.calories for d in logged if first <= d.date <= last]
        if not block:
            logger.debug("detect_metabolic_adaptation: no logged days %s to %s", first, last)
            return None
        deficits.append(float(np.mean(block)))
        measured = [w.weight for w in weigh_ins if first <= w.date <= last]
        block_weights.append(float(np.mean(measured)) if measured else None)

    changes = [
        b - a
        for a, b in zip(block_weights, block_weights[1:])
        if a is not None and b is not None
    ]
    if not changes:
        logger.debug("detect_metabolic_adaptation: no consecutive weeks with weigh-ins")
        return None

    average_deficit = float(np.mean(deficits))
    weekly_change = float(np.mean(changes))
    if average_deficit <= min_deficit or weekly_change < stall_rate:
        return MetabolicAdaptation(
            adapted=False,
            average_deficit=round_half_up(average_deficit),
            weekly_weight_change=round(weekly_change, 2),
        )

    return MetabolicAdaptation(
        adapted=True,
        average_deficit=round_half_up(average_deficit),
        weekly_weight_change=round(weekly_change, 2),
        severity="significant" if average_deficit > ADAPTATION_SIGNIFICANT_DEFICIT else "mild",
        estimated_adaptation=round_half_up(average_deficit * ADAPTATION_FACTOR),
        recommendations=list(ADAPTATION_RECOMMENDATIONS),
    )
