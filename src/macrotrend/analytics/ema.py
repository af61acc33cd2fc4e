"""Exponentially weighted moving average for weight trend display.

The trend is computed with the classic update form:
    T_n = T_{n-1} + α × (W_n - T_{n-1})

which is algebraically α·W_n + (1 - α)·T_{n-1}. The update form keeps a
constant series exactly constant, with no floating-point drift.

The smoothing factor follows the span convention α = 2 / (span + 1), so the
default 7-point window gives α = 0.25.

The noise envelope around the trend is constant width: σ is the population
standard deviation of the residuals (W_n - T_n) over the whole window. It is a
visual band for day-to-day scale noise, not a forecast interval.

For dense series with missing days (``None`` slots) we use time-scaled
smoothing on the next measurement:
    α_adjusted = 1 - (1 - α)^t
where t is days since last measurement.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Optional

from scipy import stats

from macrotrend.analytics._stats import population_std
from macrotrend.analytics.models import EWMAResult

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 7
DEFAULT_BAND_MULTIPLIER = 1.5

# Fewer points than this cannot be smoothed meaningfully
MIN_POINTS = 5


def smoothing_factor(window_size: int) -> float:
    """Return α = 2 / (window_size + 1)."""
    if window_size < 1:
        raise ValueError(f"window_size must be >= 1, got {window_size}")
    return 2 / (window_size + 1)


def time_scaled_alpha(base_alpha: float, days_elapsed: int) -> float:
    """
    Adjust smoothing factor for non-daily measurements.

    Args:
        base_alpha: Base smoothing factor
        days_elapsed: Days since last measurement

    Returns:
        Adjusted smoothing factor

    Example:
        >>> time_scaled_alpha(0.25, 1)  # Daily: unchanged
        0.25
        >>> time_scaled_alpha(0.25, 3)  # 3 days: trust new measurement more
        0.578125  # = 1 - 0.75^3
    """
    if days_elapsed <= 0:
        days_elapsed = 1
    return 1 - (1 - base_alpha) ** days_elapsed


def update_trend(
    prev_trend: float,
    today_weight: float,
    smoothing: float,
    days_elapsed: int = 1,
) -> float:
    """
    Calculate the next trend value.

    Args:
        prev_trend: Previous trend value (T_{n-1})
        today_weight: Today's scale weight (W_n)
        smoothing: Base smoothing factor α
        days_elapsed: Days since last measurement (default 1)

    Returns:
        Today's trend value (T_n)
    """
    adjusted_alpha = time_scaled_alpha(smoothing, days_elapsed)
    return prev_trend + adjusted_alpha * (today_weight - prev_trend)


def _present(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value)


def ewma(
    weights: Sequence[Optional[float]],
    window_size: int = DEFAULT_WINDOW_SIZE,
    band_multiplier: float = DEFAULT_BAND_MULTIPLIER,
    min_points: int = MIN_POINTS,
) -> Optional[EWMAResult]:
    """
    Smooth a weight series and wrap it in a constant-width noise band.

    Args:
        weights: Weights in chronological order. ``None`` marks an absent day
                 in a dense series; its position is kept in the output.
        window_size: EWMA span (α = 2 / (span + 1))
        band_multiplier: Band half-width in residual standard deviations
        min_points: Minimum number of present weights

    Returns:
        EWMAResult whose lists match ``weights`` in length, or None when
        there are fewer than ``min_points`` weights.

    Example:
        >>> ewma([80.0, 80.0, 80.0, 80.0, 80.0]).smoothed
        [80.0, 80.0, 80.0, 80.0, 80.0]
    """
    present = [w for w in weights if _present(w)]
    if len(present) < min_points:
        logger.debug("ewma: %d points, need %d", len(present), min_points)
        return None

    alpha = smoothing_factor(window_size)

    smoothed: list[Optional[float]] = []
    trend: Optional[float] = None
    days_since = 1
    for weight in weights:
        if not _present(weight):
            smoothed.append(None)
            days_since += 1
            continue
        if trend is None:
            trend = float(weight)  # First trend = first weight
        else:
            trend = update_trend(trend, float(weight), alpha, days_since)
        days_since = 1
        smoothed.append(trend)

    residuals = [
        float(w) - s for w, s in zip(weights, smoothed) if _present(w) and s is not None
    ]
    sigma = population_std(residuals)
    band = band_multiplier * sigma

    return EWMAResult(
        smoothed=smoothed,
        upper_band=[None if s is None else s + band for s in smoothed],
        lower_band=[None if s is None else s - band for s in smoothed],
        sigma=sigma,
    )


def ewma_slope(smoothed: Sequence[Optional[float]], points: int = 14) -> Optional[float]:
    """
    Least-squares slope over the last ``points`` smoothed values.

    Absent positions are not counted toward ``points`` but the values keep
    their positions, so the slope stays per position (per day for a dense
    daily series) however sparse the weigh-ins are.

    Returns:
        Slope, or None when fewer than ``points`` values are present.
    """
    present = [(i, v) for i, v in enumerate(smoothed) if v is not None]
    if len(present) < max(points, 2):
        return None
    tail = present[-points:]
    xs = [i for i, _ in tail]
    ys = [v for _, v in tail]
    return float(stats.linregress(xs, ys).slope)


def estimate_weekly_change(trend_start: float, trend_end: float, days: int = 7) -> float:
    """
    Estimate weekly weight change from trend values.

    Args:
        trend_start: Trend value at start of period
        trend_end: Trend value at end of period
        days: Number of days in period (default 7)

    Returns:
        Estimated weekly change (negative = losing)
    """
    daily_change = (trend_end - trend_start) / days
    return daily_change * 7
