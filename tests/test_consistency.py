"""Tests for macro consistency scoring."""

from __future__ import annotations

from datetime import timedelta

import pytest

from macrotrend.analytics.consistency import consistency_percent, macro_consistency
from macrotrend.analytics.models import DailyRecord


class TestConsistencyPercent:
    """Tests for consistency_percent."""

    @pytest.mark.parametrize(
        "cv,expected",
        [(0.0, 100), (0.125, 88), (0.5, 50), (1.0, 0), (2.5, 0)],
    )
    def test_values(self, cv: float, expected: int) -> None:
        assert consistency_percent(cv) == expected


class TestMacroConsistency:
    """Tests for macro_consistency."""

    def test_constant_intake_scores_100(self, make_days) -> None:
        result = macro_consistency(make_days([2000] * 7))
        assert result is not None
        assert result.overall_consistency == 100
        assert result.calorie_cv == 0
        assert result.protein_cv == 0

    def test_below_minimum_returns_none(self, make_days) -> None:
        assert macro_consistency(make_days([2000, 2100])) is None
        assert macro_consistency([]) is None

    def test_custom_minimum(self, make_days) -> None:
        assert macro_consistency(make_days([2000, 2100]), min_days=2) is not None

    def test_population_cv(self, make_days) -> None:
        """Calories 1500/2500 have mean 2000 and population stdev 500."""
        result = macro_consistency(make_days([1500, 2500, 1500, 2500]))
        assert result is not None
        assert result.calorie_cv == pytest.approx(0.25)
        # Other macros are constant: avg CV = 0.25 / 4
        assert result.overall_consistency == 94

    def test_zero_mean_macro_counts_as_zero_cv(self, make_days) -> None:
        result = macro_consistency(make_days([2000] * 3, carbs=0))
        assert result is not None
        assert result.carbs_cv == 0
        assert result.overall_consistency == 100

    def test_overall_clamped_at_zero(self, start_date) -> None:
        days = [
            DailyRecord(
                date=start_date + timedelta(days=i),
                calories=c,
                protein=c / 10,
                carbs=c / 5,
                fat=c / 20,
            )
            for i, c in enumerate([10, 10, 10, 10, 10000])
        ]
        result = macro_consistency(days)
        assert result is not None
        assert result.overall_consistency == 0
