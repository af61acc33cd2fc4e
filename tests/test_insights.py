"""Tests for the rule-based insight generator."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, timedelta

import pytest

from macrotrend.analytics.insights import (
    DEFAULT_FOCUS,
    RULES,
    InsightContext,
    InsightRule,
    Trigger,
    generate_insights,
    next_week_focus,
)
from macrotrend.analytics.models import Insight, WeightEntry
from macrotrend.analytics.tuning import AnalyticsConfig, InsightConfig


def ids(insights: list[Insight]) -> list[str]:
    return [i.id for i in insights]


def fixed_rule(rule_id: str, priority: int, recency: date) -> InsightRule:
    return InsightRule(
        id=rule_id,
        type="tip",
        priority=priority,
        emoji="*",
        title=rule_id,
        description="{note}",
        predicate=lambda facts: Trigger(recency=recency, values={"note": rule_id}),
    )


class TestRuleTable:
    """Tests for the shape of the rule table."""

    def test_unique_ids(self) -> None:
        assert len({r.id for r in RULES}) == len(RULES)

    def test_priority_bands(self) -> None:
        """Warnings outrank achievements, which outrank positives, then tips."""
        by_type: dict[str, list[int]] = {}
        for rule in RULES:
            by_type.setdefault(rule.type, []).append(rule.priority)
        assert min(by_type["warning"]) > max(by_type["achievement"])
        assert min(by_type["achievement"]) > max(by_type["positive"])
        assert min(by_type["positive"]) > max(by_type["tip"])


class TestGenerateInsightsBasics:
    """Tests for generate_insights guard rails and ranking."""

    def test_fewer_than_five_days(self, make_days, start_date) -> None:
        context = InsightContext(daily_data=make_days([2500] * 4), today=start_date)
        assert generate_insights(context) == []

    def test_malformed_records_do_not_count(self, make_days, start_date) -> None:
        daily = make_days([2000] * 4) + [{"date": "bad", "calories": 1}, {"calories": 5}, None]
        context = InsightContext(daily_data=daily, today=start_date + timedelta(days=3))
        assert generate_insights(context) == []

    def test_dedup_by_rule_id(self, make_days, start_date) -> None:
        rule = fixed_rule("same", 3, start_date)
        context = InsightContext(daily_data=make_days([2000] * 5), today=start_date)
        result = generate_insights(context, rules=(rule, rule))
        assert ids(result) == ["same"]

    def test_sorted_by_priority_then_recency(self, make_days, start_date) -> None:
        rules = (
            fixed_rule("old", 3, start_date),
            fixed_rule("low", 1, start_date + timedelta(days=9)),
            fixed_rule("new", 3, start_date + timedelta(days=2)),
            fixed_rule("high", 8, start_date),
        )
        context = InsightContext(daily_data=make_days([2000] * 5), today=start_date)
        result = generate_insights(context, rules=rules)
        assert ids(result) == ["high", "new", "old", "low"]

    def test_truncates_to_max_count(self, make_days, start_date) -> None:
        rules = tuple(fixed_rule(f"r{i}", i, start_date) for i in range(6))
        context = InsightContext(daily_data=make_days([2000] * 5), today=start_date)
        assert ids(generate_insights(context, max_count=2, rules=rules)) == ["r5", "r4"]
        assert generate_insights(context, max_count=0, rules=rules) == []

    def test_templates_rendered(self, make_days, start_date) -> None:
        context = InsightContext(daily_data=make_days([2000] * 5), today=start_date)
        [insight] = generate_insights(context, rules=(fixed_rule("x", 2, start_date),))
        assert insight.description == "x"
        assert insight.actionable is False
        assert insight.action is None

    def test_idempotent(self, scenario) -> None:
        context = InsightContext(
            daily_data=scenario["days"],
            weight_history=scenario["weights"],
            goal_weight=75.0,
            start_weight=80.0,
            expected_weekly_rate=0.5,
            today=scenario["today"],
        )
        assert generate_insights(context) == generate_insights(context)


class TestRules:
    """Tests for individual rules."""

    def test_calorie_overage_run(self, make_days, start_date) -> None:
        days = make_days([1900, 1900, 1900, 1900, 2300, 2400, 2350])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        result = generate_insights(context)
        assert result[0].id == "calorie_overage_run"
        assert result[0].type == "warning"
        assert result[0].title == "3 days in a row over your calorie goal"
        assert result[0].actionable

    def test_weekend_calories(self, make_days, start_date) -> None:
        days = make_days([1800, 1800, 1800, 1800, 1800, 2400, 1900])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        result = generate_insights(context)
        weekend = next(i for i in result if i.id == "weekend_calories")
        assert weekend.title == "You eat 350 more calories on weekends"
        assert weekend.priority == 7

    def test_large_weekend_gap_ranks_first(self, make_days, start_date) -> None:
        days = make_days([1800, 1800, 1800, 1800, 1800, 2400, 2300])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        result = generate_insights(context)
        assert result[0].id == "weekend_calories"
        assert result[0].priority == 9

    def test_toughest_weekday(self, make_days, start_date) -> None:
        days = make_days([1800, 1900, 1900, 1900, 2300, 1900, 1900] * 2)
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=13))
        result = generate_insights(context, max_count=20)
        pattern = next(i for i in result if i.id == "day_pattern")
        assert pattern.type == "tip"
        assert pattern.title == "Fris are your toughest day"
        assert pattern.description == "You average 2300 kcal on Fris vs 1800 kcal on Mons."

    def test_weekday_pattern_needs_repeat_days(self, make_days, start_date) -> None:
        days = make_days([1800, 1900, 1900, 1900, 2300, 1900, 1900])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        assert "day_pattern" not in ids(generate_insights(context, max_count=20))

    def test_protein_drop(self, make_days, start_date) -> None:
        days = [
            replace(d, protein=80.0) if d.date.weekday() == 6 else d
            for d in make_days([2000] * 14)
        ]
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=13))
        result = generate_insights(context, max_count=20)
        drop = next(i for i in result if i.id == "protein_drop")
        assert drop.type == "warning"
        assert drop.title == "Protein drops 43% on Suns"
        assert "140g" in drop.description
        assert "protein_gap" not in ids(result)

    def test_no_protein_drop_when_steady(self, scenario) -> None:
        context = InsightContext(daily_data=scenario["days"], today=scenario["today"])
        assert "protein_drop" not in ids(generate_insights(context, max_count=20))

    def test_metabolic_adaptation(self, make_days, make_weights, start_date) -> None:
        context = InsightContext(
            daily_data=make_days([1400] * 28),
            weight_history=make_weights([80.0] * 28),
            today=start_date + timedelta(days=27),
        )
        result = generate_insights(context, max_count=20)
        adaptation = next(i for i in result if i.id == "metabolic_adaptation")
        assert adaptation.type == "warning"
        assert adaptation.title == "Your metabolism may have adapted by ~90 kcal"
        assert adaptation.actionable

    def test_protein_gap(self, make_days, start_date) -> None:
        days = make_days([2000] * 7, protein=90)
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        assert "protein_gap" in ids(generate_insights(context))

    def test_no_protein_gap_without_goal(self, make_days, start_date) -> None:
        days = make_days([2000] * 7, protein=90, goal_protein=0)
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=6))
        assert "protein_gap" not in ids(generate_insights(context))

    def test_streak_milestone_from_context(self, make_days, start_date) -> None:
        context = InsightContext(daily_data=make_days([2000] * 5), streak=30, today=start_date)
        result = generate_insights(context)
        milestone = next(i for i in result if i.id == "streak_milestone")
        assert milestone.title == "30-day streak!"
        assert milestone.type == "achievement"

    def test_streak_break_pattern(self, make_days, start_date) -> None:
        # Four weeks logged Monday to Friday only
        logged = [
            start_date + timedelta(weeks=w, days=d) for w in range(4) for d in range(5)
        ]
        context = InsightContext(
            daily_data=make_days([2000] * 5),
            logged_dates=logged,
            today=start_date + timedelta(weeks=3, days=4),
        )
        result = generate_insights(context)
        pattern = next(i for i in result if i.id == "streak_break_pattern")
        assert pattern.title == "You tend to skip logging on Sats"
        assert pattern.action == "Set a reminder on Sats to log your meals."

    def test_weight_plateau(self, make_days, make_weights, start_date) -> None:
        weights = make_weights([80.0] * 20)
        context = InsightContext(
            daily_data=make_days([2000] * 7),
            weight_history=weights,
            goal_weight=75.0,
            start_weight=80.0,
            expected_weekly_rate=0.5,
            today=start_date + timedelta(days=19),
        )
        result = ids(generate_insights(context))
        assert "weight_plateau" in result
        assert "progress_behind" in result

    def test_plateau_over_sparse_weigh_ins(self, make_days, make_weights, start_date) -> None:
        context = InsightContext(
            daily_data=make_days([2000] * 7),
            weight_history=make_weights([80.0] * 15, step=3),
            goal_weight=75.0,
            start_weight=80.0,
            expected_weekly_rate=0.5,
            today=start_date + timedelta(days=42),
        )
        plateau = next(i for i in generate_insights(context) if i.id == "weight_plateau")
        # The last 14 weigh-ins span 40 days
        assert plateau.title == "Weight plateau for 40 days"

    def test_no_plateau_from_few_weigh_ins(self, make_days, make_weights, start_date) -> None:
        context = InsightContext(
            daily_data=make_days([2000] * 7),
            weight_history=make_weights([80.0] * 6, step=3),
            goal_weight=75.0,
            start_weight=80.0,
            expected_weekly_rate=0.5,
            today=start_date + timedelta(days=15),
        )
        assert "weight_plateau" not in ids(generate_insights(context))

    def test_no_plateau_without_goal(self, make_days, make_weights, start_date) -> None:
        context = InsightContext(
            daily_data=make_days([2000] * 7),
            weight_history=make_weights([80.0] * 20),
            today=start_date + timedelta(days=19),
        )
        assert "weight_plateau" not in ids(generate_insights(context))

    def test_progress_on_track(self, scenario) -> None:
        context = InsightContext(
            daily_data=scenario["days"],
            weight_history=scenario["weights"],
            goal_weight=75.0,
            start_weight=80.0,
            expected_weekly_rate=0.5,
            today=scenario["today"],
        )
        result = generate_insights(context)
        on_track = next(i for i in result if i.id == "progress_on_track")
        assert on_track.type == "positive"
        assert on_track.title.startswith("On track to reach 75 by ")
        assert "progress_behind" not in ids(result)

    def test_adherence_and_consistency_praise(self, scenario) -> None:
        context = InsightContext(daily_data=scenario["days"], today=scenario["today"])
        result = ids(generate_insights(context))
        assert "adherence_high" in result
        assert "macro_consistent" in result
        assert "macro_inconsistent" not in result

    def test_calorie_spike(self, make_days, start_date) -> None:
        days = make_days([2000] * 9 + [4000])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=9))
        result = generate_insights(context, max_count=20)
        spike = next(i for i in result if i.id == "calorie_spike")
        assert "4000 kcal" in spike.title

    def test_personal_best_needs_previous_streak(self, make_days, start_date) -> None:
        first = [start_date + timedelta(days=i) for i in range(3)]
        second = [start_date + timedelta(days=i) for i in range(4, 12)]
        context = InsightContext(
            daily_data=make_days([2000] * 5),
            logged_dates=first + second,
            today=start_date + timedelta(days=11),
        )
        assert "streak_personal_best" in ids(generate_insights(context, max_count=20))

    def test_intake_weight_link(self, make_days, start_date) -> None:
        calories = [1600, 2400, 1800, 2600, 1700, 2200, 1500]
        weights = [WeightEntry(start_date, 80.0)]
        for i, c in enumerate(calories):
            next_weight = weights[-1].weight + (c - 2000) / 7700
            weights.append(WeightEntry(start_date + timedelta(days=i + 1), next_weight))
        context = InsightContext(
            daily_data=make_days(calories),
            weight_history=weights,
            today=start_date + timedelta(days=7),
        )
        assert "intake_weight_link" in ids(generate_insights(context, max_count=20))


class TestConfig:
    """Tests for tuning the generator."""

    def test_min_days_from_config(self, make_days, start_date) -> None:
        config = AnalyticsConfig(insights=InsightConfig(min_days=3))
        context = InsightContext(daily_data=make_days([2000] * 3), streak=7, today=start_date)
        assert "streak_milestone" in ids(generate_insights(context, config=config))

    def test_overage_run_length(self, make_days, start_date) -> None:
        days = make_days([1900, 1900, 1900, 2300, 2400])
        context = InsightContext(daily_data=days, today=start_date + timedelta(days=4))
        assert "calorie_overage_run" not in ids(generate_insights(context))
        config = AnalyticsConfig(insights=InsightConfig(overage_run_days=2))
        assert "calorie_overage_run" in ids(generate_insights(context, config=config))


class TestNextWeekFocus:
    """Tests for next_week_focus."""

    def test_default_when_nothing_urgent(self) -> None:
        assert next_week_focus([]) == [DEFAULT_FOCUS]

    def test_takes_high_priority_actions(self) -> None:
        insights = [
            Insight("a", "warning", "A", "", True, "!", action="do a", priority=9),
            Insight("b", "warning", "B", "", True, "!", action="do b", priority=8),
            Insight("c", "warning", "C", "", True, "!", action="do c", priority=7),
            Insight("d", "tip", "D", "", True, "!", action="do d", priority=2),
        ]
        assert next_week_focus(insights) == ["do a", "do b"]

    @pytest.mark.parametrize("limit", [1, 3])
    def test_limit(self, limit: int) -> None:
        insights = [
            Insight(str(i), "warning", "", "", True, "!", action=f"do {i}", priority=9)
            for i in range(5)
        ]
        assert len(next_week_focus(insights, limit=limit)) == limit
