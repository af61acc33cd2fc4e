"""Logging streaks and day-of-week intake patterns."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from typing import Any, Optional

from macrotrend.analytics._stats import round_half_up
from macrotrend.analytics.align import WEEKDAY_LABELS, parse_date
from macrotrend.analytics.models import DailyRecord, DayAverage, DayPatterns, StreakAnalytics

logger = logging.getLogger(__name__)

WEEKEND = ("Sat", "Sun")


def analyze_streaks(
    logged_dates: Iterable[Any],
    today: Optional[date] = None,
) -> StreakAnalytics:
    """
    Streak statistics from the set of days with any logging.

    Every unlogged day between the first logged day and ``today`` counts as a
    break on its weekday. The current streak is only non-zero when ``today``
    itself is logged.

    Args:
        logged_dates: Dates (or ISO strings) with logging; duplicates are fine
        today: Last day to walk to (default: ``date.today()``)

    Returns:
        StreakAnalytics (all zeros for no dates)
    """
    if today is None:
        today = date.today()
    logged: set[date] = set()
    for raw in logged_dates:
        try:
            day = parse_date(raw)
        except ValueError:
            logger.debug("analyze_streaks: skipping unreadable date %r", raw)
            continue
        if day <= today:
            logged.add(day)
    break_days = {label: 0 for label in WEEKDAY_LABELS}

    if not logged:
        return StreakAnalytics(
            current_streak=0,
            longest_streak=0,
            average_streak_length=0.0,
            total_streaks=0,
            break_days=break_days,
            most_likely_break_day=None,
        )

    runs: list[int] = []
    run = 0
    day = min(logged)
    while day <= today:
        if day in logged:
            run += 1
        else:
            if run:
                runs.append(run)
                run = 0
            break_days[WEEKDAY_LABELS[day.weekday()]] += 1
        day += timedelta(days=1)
    if run:
        runs.append(run)

    current = run if today in logged else 0

    most_likely: Optional[str] = None
    max_breaks = 0
    for label, count in break_days.items():
        if count > max_breaks:
            max_breaks = count
            most_likely = label

    return StreakAnalytics(
        current_streak=current,
        longest_streak=max(runs),
        average_streak_length=round(sum(runs) / len(runs), 1),
        total_streaks=len(runs),
        break_days=break_days,
        most_likely_break_day=most_likely,
    )


def analyze_day_patterns(days: Sequence[DailyRecord]) -> DayPatterns:
    """
    Average intake per weekday, best/worst day and weekday vs weekend.

    The best day is the one with the lowest average calories.
    """
    totals = {label: [0.0, 0.0, 0] for label in WEEKDAY_LABELS}
    for record in days:
        if record.calories <= 0:
            continue
        bucket = totals[WEEKDAY_LABELS[record.date.weekday()]]
        bucket[0] += record.calories
        bucket[1] += record.protein
        bucket[2] += 1

    averages: dict[str, DayAverage] = {}
    best_day: Optional[str] = None
    worst_day: Optional[str] = None
    min_avg = float("inf")
    max_avg = float("-inf")
    for label, (calories, protein, count) in totals.items():
        avg = round_half_up(calories / count) if count else 0
        averages[label] = DayAverage(
            avg_calories=avg,
            avg_protein=round_half_up(protein / count) if count else 0,
            count=count,
        )
        if count:
            if avg < min_avg:
                min_avg, best_day = avg, label
            if avg > max_avg:
                max_avg, worst_day = avg, label

    def _group_avg(labels: Iterable[str]) -> int:
        calories = sum(totals[label][0] for label in labels)
        count = sum(totals[label][2] for label in labels)
        return round_half_up(calories / count) if count else 0

    weekdays = [label for label in WEEKDAY_LABELS if label not in WEEKEND]

    return DayPatterns(
        averages=averages,
        best_day=best_day,
        worst_day=worst_day,
        weekday_avg=_group_avg(weekdays),
        weekend_avg=_group_avg(WEEKEND),
    )
