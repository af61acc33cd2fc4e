"""Goal progress: actual versus expected rate, and a calendar projection."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from datetime import date, timedelta
from typing import Any, Optional

from macrotrend.analytics._stats import round_half_up
from macrotrend.analytics.align import coerce_weight_entries, latest_per_day
from macrotrend.analytics.models import GoalContext, GoalMilestone, GoalTimeline, ProgressRate

logger = logging.getLogger(__name__)

MIN_ENTRIES = 3

# Shorter spans than this (in weeks) give meaningless rates
MIN_WEEKS_ELAPSED = 0.1

# Rates smaller than this count as no movement
RATE_EPSILON = 1e-9

# (minimum percent of expected, status), checked top-down
STATUS_BANDS = (
    (100, "ahead"),
    (70, "on_track"),
    (30, "behind"),
)

# Projections further out than this are not shown
MAX_PROJECTION_DAYS = 3 * 365

MAX_MILESTONE_WEEKS = 52


def _sign(value: float) -> int:
    if abs(value) < RATE_EPSILON:
        return 0
    return 1 if value > 0 else -1


def status_for_percent(percent: int) -> str:
    for minimum, status in STATUS_BANDS:
        if percent >= minimum:
            return status
    return "stalled"


def percent_of_expected(actual: float, expected: float, goal_direction: int) -> int:
    """
    Actual rate as a whole percentage of the expected rate.

    The expected rate is read in the goal's direction, so callers may pass
    either -0.5 or 0.5 for a 0.5/week loss. Moving away from the goal counts
    as zero progress, never negative.
    """
    actual_direction = _sign(actual)
    wrong_way = goal_direction != 0 and actual_direction == -goal_direction

    if _sign(expected) == 0:
        if actual_direction == 0 or wrong_way:
            return 0
        return 100

    if wrong_way:
        return 0
    signed_expected = abs(expected) * goal_direction if goal_direction != 0 else expected
    return max(0, round_half_up(100 * actual / signed_expected))


def progress_rate(
    current_weight: float,
    goal_weight: float,
    start_weight: float,
    expected_rate_per_week: float,
    history: Iterable[Any],
    start_date: Optional[date] = None,
    min_entries: int = MIN_ENTRIES,
    max_projection_days: int = MAX_PROJECTION_DAYS,
) -> Optional[ProgressRate]:
    """
    Compare the actual weekly rate of change with the planned one.

    Args:
        current_weight: Latest weight
        goal_weight: Target weight
        start_weight: Weight when the goal was set
        expected_rate_per_week: Planned weekly change
        history: WeightEntries (or mappings) in any order
        start_date: When the goal was set (default: first history date)
        min_entries: Minimum number of distinct weigh-in days
        max_projection_days: Projections beyond this are reported as None

    Returns:
        ProgressRate, or None with too few entries or under 0.1 weeks of span.

    Example:
        >>> progress_rate(79.0, 75.0, 80.0, -0.5, history).status
        'ahead'
    """
    entries = latest_per_day(coerce_weight_entries(history))
    if len(entries) < min_entries:
        logger.debug("progress_rate: %d entries, need %d", len(entries), min_entries)
        return None

    first, last = entries[0], entries[-1]
    weeks_elapsed = (last.date - first.date).days / 7
    if weeks_elapsed < MIN_WEEKS_ELAPSED:
        logger.debug("progress_rate: only %.2f weeks elapsed", weeks_elapsed)
        return None

    actual = (last.weight - first.weight) / weeks_elapsed
    goal_direction = _sign(goal_weight - start_weight)
    percent = percent_of_expected(actual, expected_rate_per_week, goal_direction)

    projected: Optional[date] = None
    if goal_direction != 0 and _sign(actual) == goal_direction:
        weeks_to_goal = (goal_weight - start_weight) / actual
        days_to_goal = weeks_to_goal * 7
        if math.isfinite(days_to_goal) and days_to_goal <= max_projection_days:
            anchor = start_date if start_date is not None else first.date
            projected = anchor + timedelta(days=round(days_to_goal))

    return ProgressRate(
        projected_date=projected,
        status=status_for_percent(percent),
        percent_of_expected=percent,
        actual_rate_per_week=actual,
        expected_rate_per_week=expected_rate_per_week,
        remaining=goal_weight - current_weight,
    )


def progress_for_goal(
    goal: GoalContext,
    history: Iterable[Any],
    min_entries: int = MIN_ENTRIES,
    max_projection_days: int = MAX_PROJECTION_DAYS,
) -> Optional[ProgressRate]:
    """progress_rate() driven by a GoalContext."""
    return progress_rate(
        goal.current_weight,
        goal.goal_weight,
        goal.start_weight,
        goal.expected_rate_per_week,
        history,
        start_date=goal.start_date,
        min_entries=min_entries,
        max_projection_days=max_projection_days,
    )


def project_goal_timeline(
    current_weight: float,
    goal_weight: float,
    weekly_rate: float,
    today: Optional[date] = None,
) -> Optional[GoalTimeline]:
    """
    Weeks to reach the goal at a fixed weekly rate, with weekly milestones.

    Returns:
        GoalTimeline, or None when already at goal or the rate is zero.
    """
    if _sign(weekly_rate) == 0 or _sign(goal_weight - current_weight) == 0:
        return None
    if today is None:
        today = date.today()

    total_change = abs(current_weight - goal_weight)
    rate = abs(weekly_rate)
    weeks_to_goal = math.ceil(total_change / rate)
    direction = -1 if current_weight > goal_weight else 1

    milestones = []
    for week in range(1, min(weeks_to_goal, MAX_MILESTONE_WEEKS) + 1):
        projected = current_weight + direction * rate * week
        # The final week never overshoots the goal
        projected = max(projected, goal_weight) if direction < 0 else min(projected, goal_weight)
        milestones.append(
            GoalMilestone(
                week=week,
                weight=round(projected, 1),
                date=today + timedelta(weeks=week),
                percent_complete=min(100, round_half_up(100 * week / weeks_to_goal)),
            )
        )

    return GoalTimeline(
        weeks_to_goal=weeks_to_goal,
        target_date=today + timedelta(weeks=weeks_to_goal),
        total_change=round(total_change, 1),
        direction="gaining" if direction > 0 else "losing",
        milestones=milestones,
    )
