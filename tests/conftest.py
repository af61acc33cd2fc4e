"""Pytest fixtures for macrotrend tests."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
import yaml

from macrotrend.analytics.models import DailyRecord, WeightEntry

# A Monday, so weekday arithmetic in tests stays readable
START = date(2026, 3, 2)


@pytest.fixture
def start_date() -> date:
    return START


@pytest.fixture
def make_days():
    """Factory: one DailyRecord per calorie value on consecutive days."""

    def _make(
        calories: list[float],
        start: date = START,
        protein: float = 150.0,
        carbs: float = 200.0,
        fat: float = 60.0,
        goal_calories: float = 2000.0,
        goal_protein: float = 150.0,
    ) -> list[DailyRecord]:
        return [
            DailyRecord(
                date=start + timedelta(days=i),
                calories=c,
                protein=protein,
                carbs=carbs,
                fat=fat,
                goal_calories=goal_calories,
                goal_protein=goal_protein,
            )
            for i, c in enumerate(calories)
        ]

    return _make


@pytest.fixture
def make_weights():
    """Factory: one WeightEntry per value, ``step`` days apart."""

    def _make(weights: list[float], start: date = START, step: int = 1) -> list[WeightEntry]:
        return [
            WeightEntry(date=start + timedelta(days=i * step), weight=w)
            for i, w in enumerate(weights)
        ]

    return _make


@pytest.fixture
def descending_weights() -> list[float]:
    """14 daily weights falling evenly from 80.0 to 78.5."""
    return [round(80.0 - 1.5 * i / 13, 3) for i in range(14)]


@pytest.fixture
def scenario(make_days, make_weights, descending_weights):
    """Two weeks of steady loss with every day logged under the calorie goal."""
    days = make_days([1900, 1950, 1880, 1920, 1960, 1900, 1940] * 2)
    weights = make_weights(descending_weights)
    return {
        "days": days,
        "weights": weights,
        "today": START + timedelta(days=13),
    }


@pytest.fixture
def scenario_file(tmp_path, scenario):
    """The two-week scenario written as a YAML export with a goal."""
    doc = {
        "daily": [
            {
                "date": d.date.isoformat(),
                "calories": d.calories,
                "protein": d.protein,
                "carbs": d.carbs,
                "fat": d.fat,
                "goal_calories": d.goal_calories,
                "goal_protein": d.goal_protein,
            }
            for d in scenario["days"]
        ],
        "weights": [
            {"date": w.date.isoformat(), "weight": w.weight} for w in scenario["weights"]
        ],
        "goal": {
            "start_weight": 80.0,
            "goal_weight": 75.0,
            "expected_rate_per_week": 0.5,
            "start_date": START.isoformat(),
        },
        "streak": 14,
    }
    path = tmp_path / "export.yaml"
    path.write_text(yaml.safe_dump(doc, sort_keys=False))
    return path
