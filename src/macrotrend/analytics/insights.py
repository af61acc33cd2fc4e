"""Rule-based insight generation.

Every insight comes from one entry in ``RULES``: a predicate over the
analysis facts plus title/description/action templates. The predicate
returns a ``Trigger`` (template values and the date of the data that set it
off) or None. ``generate_insights`` evaluates each rule once, renders the
triggered ones, and ranks them by priority and then recency.

Adding or removing an insight only touches ``RULES``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from functools import cached_property
from typing import Any, Optional

from macrotrend.analytics._stats import round_half_up
from macrotrend.analytics.adherence import adherence
from macrotrend.analytics.align import (
    WEEKDAY_LABELS,
    align,
    coerce_daily_records,
    coerce_weight_entries,
    latest_per_day,
)
from macrotrend.analytics.consistency import macro_consistency
from macrotrend.analytics.correlation import intake_vs_weight_change
from macrotrend.analytics.ema import ewma, ewma_slope
from macrotrend.analytics.models import (
    AdherenceResult,
    CorrelationResult,
    DailyRecord,
    DayAverage,
    DayPatterns,
    EWMAResult,
    Insight,
    MacroConsistency,
    MetabolicAdaptation,
    ProgressRate,
    StreakAnalytics,
    WeightEntry,
)
from macrotrend.analytics.patterns import WEEKEND, analyze_day_patterns, analyze_streaks
from macrotrend.analytics.progress import progress_rate
from macrotrend.analytics.trends import detect_anomalies, detect_metabolic_adaptation
from macrotrend.analytics.tuning import AnalyticsConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_COUNT = 10

# Insights at or above this priority feed the weekly focus list
FOCUS_PRIORITY = 7
DEFAULT_FOCUS = "Keep up your current routine. Consistency is what moves the trend."

# Priority of a weekend warning once the gap passes weekend_severe_gap_calories
WEEKEND_SEVERE_PRIORITY = 9


@dataclass(frozen=True)
class InsightContext:
    """Everything the insight rules may look at."""

    daily_data: Sequence[Any]
    weight_history: Sequence[Any] = ()
    current_weight: Optional[float] = None
    goal_weight: Optional[float] = None
    start_weight: Optional[float] = None
    expected_weekly_rate: Optional[float] = None
    logged_dates: Sequence[Any] = ()
    streak: int = 0
    today: Optional[date] = None


@dataclass(frozen=True)
class Trigger:
    """A fired rule: values for its templates and when its data happened.

    ``priority`` overrides the rule's own when the data makes it more urgent.
    """

    recency: date
    values: dict[str, Any] = field(default_factory=dict)
    priority: Optional[int] = None


class _Facts:
    """Per-call analysis results, each computed at most once."""

    def __init__(self, context: InsightContext, config: AnalyticsConfig) -> None:
        self.context = context
        self.config = config
        self.days: list[DailyRecord] = latest_per_day(coerce_daily_records(context.daily_data))
        self.weights: list[WeightEntry] = latest_per_day(
            coerce_weight_entries(context.weight_history)
        )
        self.today: date = context.today if context.today is not None else date.today()

    @property
    def last_day(self) -> date:
        return self.days[-1].date

    @property
    def last_weigh_in(self) -> Optional[date]:
        return self.weights[-1].date if self.weights else None

    @property
    def current_weight(self) -> Optional[float]:
        if self.context.current_weight is not None:
            return self.context.current_weight
        return self.weights[-1].weight if self.weights else None

    @property
    def has_goal(self) -> bool:
        c = self.context
        return None not in (c.goal_weight, c.start_weight, c.expected_weekly_rate)

    @cached_property
    def recent_days(self) -> list[DailyRecord]:
        period = self.config.adherence.period_days
        cutoff = self.last_day - timedelta(days=period - 1)
        return [d for d in self.days if d.date >= cutoff]

    @cached_property
    def adherence(self) -> AdherenceResult:
        cfg = self.config.adherence
        return adherence(
            self.recent_days,
            cfg.period_days,
            calorie_tolerance=cfg.calorie_tolerance,
            protein_threshold=cfg.protein_threshold,
            weights=cfg.weights,
        )

    @cached_property
    def consistency(self) -> Optional[MacroConsistency]:
        return macro_consistency(self.days, self.config.consistency.min_days)

    @cached_property
    def patterns(self) -> DayPatterns:
        return analyze_day_patterns(self.days)

    @cached_property
    def streaks(self) -> StreakAnalytics:
        dates = self.context.logged_dates or [d.date for d in self.days]
        return analyze_streaks(dates, self.today)

    @cached_property
    def weight_trend(self) -> Optional[EWMAResult]:
        if not self.weights:
            return None
        span = (self.weights[-1].date - self.weights[0].date).days + 1
        dense = align(self.weights, span, dense_fill=True, today=self.weights[-1].date)
        cfg = self.config.ewma
        return ewma(
            [p.value for p in dense],
            window_size=cfg.window_size,
            band_multiplier=cfg.band_multiplier,
            min_points=cfg.min_points,
        )

    @cached_property
    def progress(self) -> Optional[ProgressRate]:
        if not self.has_goal or self.current_weight is None:
            return None
        c = self.context
        return progress_rate(
            self.current_weight,
            c.goal_weight,
            c.start_weight,
            c.expected_weekly_rate,
            self.weights,
            min_entries=self.config.progress.min_entries,
            max_projection_days=self.config.progress.max_projection_days,
        )

    @cached_property
    def intake_link(self) -> Optional[CorrelationResult]:
        return intake_vs_weight_change(
            self.days, self.weights, self.config.correlation.min_points
        )

    @cached_property
    def adaptation(self) -> Optional[MetabolicAdaptation]:
        cfg = self.config.insights
        return detect_metabolic_adaptation(
            self.days,
            self.weights,
            min_deficit=cfg.adaptation_min_deficit,
            stall_rate=cfg.adaptation_stall_rate,
        )

    @cached_property
    def sampled_weekdays(self) -> dict[str, DayAverage]:
        """Weekday averages backed by enough logged days to compare."""
        minimum = self.config.insights.day_pattern_min_samples
        return {
            label: avg for label, avg in self.patterns.averages.items() if avg.count >= minimum
        }

    def last_on_weekday(self, label: str) -> date:
        return max(d.date for d in self.days if WEEKDAY_LABELS[d.date.weekday()] == label)


@dataclass(frozen=True)
class InsightRule:
    """A predicate over the facts and the templates it fills when it fires."""

    id: str
    type: str
    priority: int
    emoji: str
    title: str
    description: str
    predicate: Callable[[_Facts], Optional[Trigger]]
    action: Optional[str] = None

    def priority_for(self, trigger: Trigger) -> int:
        return trigger.priority if trigger.priority is not None else self.priority

    def render(self, trigger: Trigger) -> Insight:
        values = trigger.values
        action = self.action.format(**values) if self.action else None
        return Insight(
            id=self.id,
            type=self.type,
            title=self.title.format(**values),
            description=self.description.format(**values),
            actionable=action is not None,
            emoji=self.emoji,
            action=action,
            priority=self.priority_for(trigger),
        )


def _format_day(d: date) -> str:
    return f"{d:%B} {d.day}"


# ============================================================================
# Predicates
# ============================================================================


def _calorie_overage_run(f: _Facts) -> Optional[Trigger]:
    needed = f.config.insights.overage_run_days
    latest_run: list[DailyRecord] = []
    run: list[DailyRecord] = []
    for day in f.days:
        over = day.goal_calories > 0 and day.calories > day.goal_calories
        if over and run and (day.date - run[-1].date).days == 1:
            run.append(day)
        elif over:
            run = [day]
        else:
            run = []
        if len(run) >= needed:
            latest_run = list(run)
    if not latest_run:
        return None
    excess = sum(d.calories - d.goal_calories for d in latest_run) / len(latest_run)
    return Trigger(
        recency=latest_run[-1].date,
        values={
            "days": len(latest_run),
            "excess": round(excess),
            "start": _format_day(latest_run[0].date),
            "end": _format_day(latest_run[-1].date),
        },
    )


def _weight_plateau(f: _Facts) -> Optional[Trigger]:
    trend = f.weight_trend
    if trend is None or not f.has_goal or f.current_weight is None:
        return None
    if abs(f.context.goal_weight - f.current_weight) < 1e-9:
        return None
    points = f.config.insights.plateau_points
    slope = ewma_slope(trend.smoothed, points)
    if slope is None or abs(slope) >= f.config.insights.plateau_slope_tolerance:
        return None
    present = [i for i, s in enumerate(trend.smoothed) if s is not None][-points:]
    latest = trend.smoothed[present[-1]]
    return Trigger(
        recency=f.last_weigh_in,
        values={"days": present[-1] - present[0] + 1, "trend": f"{latest:.1f}"},
    )


def _progress_behind(f: _Facts) -> Optional[Trigger]:
    progress = f.progress
    if progress is None or progress.status not in ("behind", "stalled"):
        return None
    return Trigger(
        recency=f.last_weigh_in,
        values={
            "percent": progress.percent_of_expected,
            "actual": f"{abs(progress.actual_rate_per_week):.2f}",
            "expected": f"{abs(progress.expected_rate_per_week):.2f}",
        },
    )


def _progress_on_track(f: _Facts) -> Optional[Trigger]:
    progress = f.progress
    if progress is None or progress.status not in ("ahead", "on_track"):
        return None
    if progress.projected_date is None:
        return None
    return Trigger(
        recency=f.last_weigh_in,
        values={
            "goal": f"{f.context.goal_weight:g}",
            "date": _format_day(progress.projected_date),
            "percent": progress.percent_of_expected,
        },
    )


def _protein_gap(f: _Facts) -> Optional[Trigger]:
    result = f.adherence
    if result.total_days == 0 or result.protein_adherence >= f.config.insights.protein_gap_percent:
        return None
    if all(d.goal_protein <= 0 for d in f.recent_days):
        return None
    return Trigger(recency=f.last_day, values={"percent": result.protein_adherence})


def _weekend_calories(f: _Facts) -> Optional[Trigger]:
    patterns = f.patterns
    if patterns.weekday_avg <= 0 or patterns.weekend_avg <= 0:
        return None
    difference = patterns.weekend_difference
    if difference <= f.config.insights.weekend_gap_calories:
        return None
    weekend_days = [d.date for d in f.days if WEEKDAY_LABELS[d.date.weekday()] in WEEKEND]
    return Trigger(
        recency=max(weekend_days),
        values={
            "difference": difference,
            "weekly": difference * len(WEEKEND),
            "weekday": patterns.weekday_avg,
            "weekend": patterns.weekend_avg,
        },
        priority=WEEKEND_SEVERE_PRIORITY
        if difference > f.config.insights.weekend_severe_gap_calories
        else None,
    )


def _adherence_high(f: _Facts) -> Optional[Trigger]:
    result = f.adherence
    if result.overall_score < f.config.insights.high_adherence_score:
        return None
    return Trigger(
        recency=f.last_day,
        values={
            "grade": result.grade,
            "score": result.overall_score,
            "calories": result.calorie_adherence,
            "protein": result.protein_adherence,
        },
    )


def _streak_personal_best(f: _Facts) -> Optional[Trigger]:
    streaks = f.streaks
    if streaks.current_streak < 7 or streaks.current_streak < streaks.longest_streak:
        return None
    if streaks.total_streaks < 2:
        return None
    return Trigger(recency=f.today, values={"days": streaks.current_streak})


def _streak_milestone(f: _Facts) -> Optional[Trigger]:
    streak = f.context.streak or f.streaks.current_streak
    if streak not in f.config.insights.streak_milestones:
        return None
    return Trigger(recency=f.today, values={"days": streak})


def _macro_consistent(f: _Facts) -> Optional[Trigger]:
    result = f.consistency
    if result is None or result.overall_consistency < f.config.insights.consistent_score:
        return None
    return Trigger(
        recency=f.last_day,
        values={"score": result.overall_consistency, "cv": round(result.calorie_cv * 100)},
    )


def _macro_inconsistent(f: _Facts) -> Optional[Trigger]:
    result = f.consistency
    if result is None or result.overall_consistency >= f.config.insights.inconsistent_score:
        return None
    return Trigger(
        recency=f.last_day,
        values={"score": result.overall_consistency, "cv": round(result.calorie_cv * 100)},
    )


def _intake_weight_link(f: _Facts) -> Optional[Trigger]:
    link = f.intake_link
    if link is None or link.direction != "positive":
        return None
    if link.strength in ("none", "weak"):
        return None
    return Trigger(
        recency=f.last_weigh_in or f.last_day,
        values={"description": link.description, "r": f"{link.coefficient:.2f}"},
    )


def _streak_break_pattern(f: _Facts) -> Optional[Trigger]:
    streaks = f.streaks
    day = streaks.most_likely_break_day
    if day is None or streaks.break_days[day] < f.config.insights.break_pattern_min:
        return None
    return Trigger(recency=f.today, values={"day": day, "count": streaks.break_days[day]})


def _calorie_spike(f: _Facts) -> Optional[Trigger]:
    logged = [d for d in f.days if d.calories > 0]
    result = detect_anomalies(
        [d.calories for d in logged],
        f.config.insights.anomaly_threshold,
        [d.date for d in logged],
    )
    if not result.has_anomalies:
        return None
    highs = [a for a in result.anomalies if a.type == "high"]
    if not highs:
        return None
    spike = highs[-1]
    return Trigger(
        recency=spike.date,
        values={
            "calories": round(spike.value),
            "above": round(spike.value - result.mean),
            "day": _format_day(spike.date),
        },
    )


def _toughest_weekday(f: _Facts) -> Optional[Trigger]:
    sampled = f.sampled_weekdays
    if len(sampled) < 2:
        return None
    worst = max(sampled, key=lambda label: sampled[label].avg_calories)
    best = min(sampled, key=lambda label: sampled[label].avg_calories)
    if sampled[worst].avg_calories == sampled[best].avg_calories:
        return None
    return Trigger(
        recency=f.last_on_weekday(worst),
        values={
            "worst": worst,
            "best": best,
            "worst_calories": sampled[worst].avg_calories,
            "best_calories": sampled[best].avg_calories,
        },
    )


def _protein_drop(f: _Facts) -> Optional[Trigger]:
    cfg = f.config.insights
    sampled = f.sampled_weekdays
    if len(sampled) < cfg.protein_drop_min_weekdays:
        return None
    average = sum(avg.avg_protein for avg in sampled.values()) / len(sampled)
    if average <= 0:
        return None
    day = min(sampled, key=lambda label: sampled[label].avg_protein)
    protein = sampled[day].avg_protein
    if protein >= average * cfg.protein_drop_ratio:
        return None
    return Trigger(
        recency=f.last_on_weekday(day),
        values={
            "day": day,
            "drop": round_half_up((1 - protein / average) * 100),
            "protein": protein,
            "average": round_half_up(average),
        },
    )


def _metabolic_adaptation(f: _Facts) -> Optional[Trigger]:
    result = f.adaptation
    if result is None or not result.adapted:
        return None
    return Trigger(
        recency=f.last_day,
        values={
            "calories": result.estimated_adaptation,
            "deficit": result.average_deficit,
            "change": f"{result.weekly_weight_change:+.2f}",
        },
    )


# ============================================================================
# Rule table
# ============================================================================

# Priority bands: warnings 7-9, achievements 5-6, positive 4, tips 1-3
RULES: tuple[InsightRule, ...] = (
    InsightRule(
        id="calorie_overage_run",
        type="warning",
        priority=9,
        emoji="⚠️",
        title="{days} days in a row over your calorie goal",
        description="From {start} to {end} you averaged {excess} kcal above target.",
        action="Plan tomorrow's meals ahead and keep a lower-calorie snack on hand.",
        predicate=_calorie_overage_run,
    ),
    InsightRule(
        id="weight_plateau",
        type="warning",
        priority=8,
        emoji="⏸️",
        title="Weight plateau for {days} days",
        description="Your smoothed weight has held near {trend} for the last {days} days.",
        action="Try adjusting calories by 100-200 or adding 2,000 daily steps.",
        predicate=_weight_plateau,
    ),
    InsightRule(
        id="progress_behind",
        type="warning",
        priority=8,
        emoji="🐢",
        title="Progress is slower than planned",
        description=(
            "You're moving {actual} per week against a plan of {expected} "
            "({percent}% of expected)."
        ),
        action="Review your calorie target or add 15 minutes of daily activity.",
        predicate=_progress_behind,
    ),
    InsightRule(
        id="metabolic_adaptation",
        type="warning",
        priority=8,
        emoji="🐌",
        title="Your metabolism may have adapted by ~{calories} kcal",
        description=(
            "You've eaten {deficit} kcal a day under your goal for four weeks, "
            "yet your weight moved only {change} per week."
        ),
        action="Eat at maintenance for 5-7 days, then return to your deficit.",
        predicate=_metabolic_adaptation,
    ),
    InsightRule(
        id="protein_gap",
        type="warning",
        priority=7,
        emoji="🥩",
        title="Protein goal missed most days",
        description="You reached your protein goal on only {percent}% of logged days.",
        action="Add a protein-rich snack such as Greek yogurt or a shake.",
        predicate=_protein_gap,
    ),
    InsightRule(
        id="protein_drop",
        type="warning",
        priority=7,
        emoji="📉",
        title="Protein drops {drop}% on {day}s",
        description=(
            "You average {protein}g of protein on {day}s against {average}g across the week."
        ),
        action="Plan a protein-rich breakfast or snack for {day}s.",
        predicate=_protein_drop,
    ),
    InsightRule(
        id="weekend_calories",
        type="warning",
        priority=7,
        emoji="🍕",
        title="You eat {difference} more calories on weekends",
        description=(
            "Your weekday average is {weekday} kcal vs {weekend} kcal on weekends, "
            "about {weekly} extra kcal each week."
        ),
        action="Prep weekend meals in advance or plan a lighter Saturday dinner.",
        predicate=_weekend_calories,
    ),
    InsightRule(
        id="adherence_high",
        type="achievement",
        priority=6,
        emoji="🏆",
        title="{grade} week: {score}% adherence",
        description="You hit your calorie target {calories}% of the time and protein {protein}%.",
        predicate=_adherence_high,
    ),
    InsightRule(
        id="streak_personal_best",
        type="achievement",
        priority=6,
        emoji="🥇",
        title="New personal best streak!",
        description="This is your longest logging streak yet at {days} days.",
        predicate=_streak_personal_best,
    ),
    InsightRule(
        id="streak_milestone",
        type="achievement",
        priority=5,
        emoji="🔥",
        title="{days}-day streak!",
        description="You've logged for {days} days straight. That's a real habit.",
        predicate=_streak_milestone,
    ),
    InsightRule(
        id="progress_on_track",
        type="positive",
        priority=4,
        emoji="🎯",
        title="On track to reach {goal} by {date}",
        description="You're moving at {percent}% of your planned rate. Keep it up!",
        predicate=_progress_on_track,
    ),
    InsightRule(
        id="macro_consistent",
        type="positive",
        priority=4,
        emoji="📏",
        title="Excellent macro consistency",
        description="Your calories vary by only {cv}% day to day (score {score}).",
        predicate=_macro_consistent,
    ),
    InsightRule(
        id="intake_weight_link",
        type="tip",
        priority=3,
        emoji="🔗",
        title="Your intake shows up on the scale",
        description="{description} (r = {r}).",
        action="Hold calories steady for a week and watch the trend respond.",
        predicate=_intake_weight_link,
    ),
    InsightRule(
        id="macro_inconsistent",
        type="tip",
        priority=3,
        emoji="📊",
        title="Macro intake is inconsistent",
        description="Your calories vary by {cv}% day to day (score {score}).",
        action="Meal prep 2-3 standard meals you can rotate.",
        predicate=_macro_inconsistent,
    ),
    InsightRule(
        id="day_pattern",
        type="tip",
        priority=2,
        emoji="🗓️",
        title="{worst}s are your toughest day",
        description=(
            "You average {worst_calories} kcal on {worst}s vs {best_calories} kcal on {best}s."
        ),
        action="Prepare meals for {worst}s the night before.",
        predicate=_toughest_weekday,
    ),
    InsightRule(
        id="streak_break_pattern",
        type="tip",
        priority=2,
        emoji="📅",
        title="You tend to skip logging on {day}s",
        description="{count} of your missed days fell on a {day}.",
        action="Set a reminder on {day}s to log your meals.",
        predicate=_streak_break_pattern,
    ),
    InsightRule(
        id="calorie_spike",
        type="tip",
        priority=1,
        emoji="📈",
        title="Calorie spike on {day}: {calories} kcal",
        description=(
            "That was {above} kcal above your average. "
            "One day doesn't define your progress."
        ),
        action="Get back to your usual intake today.",
        predicate=_calorie_spike,
    ),
)


def generate_insights(
    context: InsightContext,
    max_count: int = DEFAULT_MAX_COUNT,
    config: Optional[AnalyticsConfig] = None,
    rules: Sequence[InsightRule] = RULES,
) -> list[Insight]:
    """
    Evaluate every rule once and return the top insights.

    Args:
        context: Logs, weight history, goal and streak information
        max_count: Maximum number of insights returned
        config: Engine parameters (default: ``AnalyticsConfig()``)
        rules: Rule table to evaluate (default: ``RULES``)

    Returns:
        Insights sorted by priority, then by how recent their data is.
        Empty when there are fewer than ``config.insights.min_days`` valid days.
    """
    if config is None:
        config = AnalyticsConfig()

    facts = _Facts(context, config)
    if len(facts.days) < config.insights.min_days:
        logger.debug(
            "generate_insights: %d valid days, need %d",
            len(facts.days),
            config.insights.min_days,
        )
        return []

    fired: dict[str, tuple[InsightRule, Trigger, int]] = {}
    for order, rule in enumerate(rules):
        if rule.id in fired:
            continue
        trigger = rule.predicate(facts)
        if trigger is not None:
            fired[rule.id] = (rule, trigger, order)

    ranked = sorted(
        fired.values(),
        key=lambda item: (
            -item[0].priority_for(item[1]),
            -item[1].recency.toordinal(),
            item[2],
        ),
    )
    logger.debug("generate_insights: %d of %d rules fired", len(ranked), len(rules))
    return [rule.render(trigger) for rule, trigger, _ in ranked[: max(0, max_count)]]


def next_week_focus(insights: Sequence[Insight], limit: int = 2) -> list[str]:
    """Up to ``limit`` actions from high-priority insights, or a default."""
    focus = [
        i.action for i in insights if i.priority >= FOCUS_PRIORITY and i.action is not None
    ][:limit]
    return focus or [DEFAULT_FOCUS]
