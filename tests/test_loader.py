"""Tests for loading exported logs."""

from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from macrotrend.loader import AnalysisInput, LoaderError, load_input, parse_input


class TestParseInput:
    """Tests for parse_input."""

    def test_empty_document(self) -> None:
        result = parse_input(None)
        assert result == AnalysisInput()
        assert result.current_weight is None

    def test_drops_malformed_records(self) -> None:
        result = parse_input({
            "daily": [
                {"date": "2026-03-02", "calories": 1800, "goalCalories": 2000},
                {"date": "2026-03-03"},
                {"date": "2026-03-04", "calories": -1},
            ],
            "weights": [{"date": "2026-03-02", "weight": 80.1}, {"weight": 80.0}],
        })
        assert len(result.daily) == 1
        assert result.daily[0].goal_calories == 2000
        assert len(result.weights) == 1

    def test_goal_defaults_from_weights(self) -> None:
        result = parse_input({
            "weights": [
                {"date": "2026-03-09", "weight": 79.2},
                {"date": "2026-03-02", "weight": 80.0},
            ],
            "goal": {"start_weight": 80.0, "goal_weight": 75.0},
        })
        assert result.goal is not None
        assert result.goal.current_weight == 79.2
        assert result.goal.start_date == date(2026, 3, 2)
        assert result.goal.expected_rate_per_week == 0.5

    @pytest.mark.parametrize(
        "doc,message",
        [
            ([1, 2], "mapping"),
            ({"daily": {"date": "2026-03-02"}}, "'daily' must be a list"),
            ({"goal": {"goal_weight": 75}}, "start_weight"),
            ({"goal": {"start_weight": "heavy", "goal_weight": 75}}, "Invalid 'goal'"),
            ({"goal": [75]}, "'goal' must be a mapping"),
            ({"streak": "many"}, "streak"),
        ],
    )
    def test_structural_errors(self, doc, message: str) -> None:
        with pytest.raises(LoaderError, match=message):
            parse_input(doc)

    def test_logged_dates(self) -> None:
        result = parse_input({"logged_dates": ["2026-03-02", "garbage", date(2026, 3, 3)]})
        assert result.logged_dates == [date(2026, 3, 2), date(2026, 3, 3)]


class TestLoadInput:
    """Tests for load_input."""

    def test_yaml_file(self, scenario_file: Path) -> None:
        result = load_input(scenario_file)
        assert len(result.daily) == 14
        assert len(result.weights) == 14
        assert result.goal is not None
        assert result.goal.goal_weight == 75.0
        assert result.streak == 14

    def test_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "export.json"
        path.write_text(json.dumps({"daily": [{"date": "2026-03-02", "calories": 1800}]}))
        assert len(load_input(path).daily) == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(LoaderError, match="Cannot read"):
            load_input(tmp_path / "missing.yaml")

    def test_unparseable_file(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(LoaderError, match="Cannot parse"):
            load_input(path)

    def test_insight_context(self, scenario_file: Path) -> None:
        data = load_input(scenario_file)
        context = data.insight_context(today=date(2026, 3, 15))
        assert context.goal_weight == 75.0
        assert context.current_weight == 78.5
        assert context.streak == 14
        assert len(context.logged_dates) == 14
