"""Tests for CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from macrotrend.cli import app

runner = CliRunner()

TODAY = "2026-03-15"


def invoke_json(*args: str) -> dict:
    result = runner.invoke(app, [*args, "--today", TODAY, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.output)


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep tests away from ~/.macrotrend/config.yaml."""
    from macrotrend.config import settings as settings_module

    monkeypatch.setattr(settings_module, "_default_config_dir", lambda: tmp_path / "cfg")
    monkeypatch.setattr(settings_module, "_settings", None)


class TestMainCommands:
    """Tests for top-level CLI behavior."""

    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("trend", "consistency", "adherence", "progress", "correlate",
                        "insights", "report"):
            assert command in result.output

    def test_requires_input_path(self) -> None:
        result = runner.invoke(app, ["trend"])
        assert result.exit_code != 0

    def test_missing_input_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["trend", str(tmp_path / "nope.yaml"), "--json"])
        assert result.exit_code == 1
        payload = json.loads(result.output)
        assert payload["success"] is False
        assert payload["command"] == "trend"

    def test_bad_today(self, scenario_file: Path) -> None:
        result = runner.invoke(app, ["adherence", str(scenario_file), "--today", "yesterday"])
        assert result.exit_code == 1
        assert "Invalid --today" in result.output

    def test_bad_config(self, scenario_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("ewma:\n  window_size: 0\n")
        result = runner.invoke(
            app, ["trend", str(scenario_file), "--config", str(config), "--today", TODAY]
        )
        assert result.exit_code == 1
        assert "Invalid config" in result.output

    def test_output_format_from_config(self, scenario_file: Path, tmp_path: Path) -> None:
        config_dir = tmp_path / "cfg"
        config_dir.mkdir()
        (config_dir / "config.yaml").write_text("defaults:\n  output_format: json\n")
        result = runner.invoke(app, ["adherence", str(scenario_file), "--today", TODAY])
        assert result.exit_code == 0
        assert json.loads(result.output)["command"] == "adherence"

    def test_table_flag_overrides_config(self, scenario_file: Path, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("defaults:\n  output_format: json\n")
        result = runner.invoke(
            app,
            ["adherence", str(scenario_file), "--config", str(config), "--today", TODAY,
             "--table"],
        )
        assert result.exit_code == 0
        assert "Adherence, last 7 days" in result.output

    def test_progress_remaining_wording(self, scenario_file: Path) -> None:
        result = runner.invoke(app, ["progress", str(scenario_file), "--today", TODAY, "--table"])
        assert result.exit_code == 0
        assert "3.5 to lose" in result.output

    def test_verbose_flag(self, scenario_file: Path) -> None:
        args = ["--verbose", "adherence", str(scenario_file), "--today", TODAY]
        result = runner.invoke(app, args)
        assert result.exit_code == 0


class TestAnalysisCommands:
    """Tests for each analysis command's JSON envelope."""

    def test_trend(self, scenario_file: Path) -> None:
        payload = invoke_json("trend", str(scenario_file), "--days", "14")
        assert payload["success"] is True
        assert payload["command"] == "trend"
        data = payload["data"]
        assert len(data["points"]) == 14
        assert data["weekly_change"] < 0
        assert len(data["forecast"]) == 7
        assert data["forecast"][0]["predicted"] < data["points"][-1]["weight"]
        assert "human_summary" in payload

    def test_trend_table(self, scenario_file: Path) -> None:
        result = runner.invoke(app, ["trend", str(scenario_file), "--today", TODAY])
        assert result.exit_code == 0
        assert "Weight trend" in result.output

    def test_trend_not_enough_data(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("weights: []\n")
        result = runner.invoke(app, ["trend", str(path), "--today", TODAY])
        assert result.exit_code == 1
        assert "Not enough weight data" in result.output

    def test_consistency(self, scenario_file: Path) -> None:
        data = invoke_json("consistency", str(scenario_file))["data"]
        assert data["overall_consistency"] >= 95
        assert data["days"] == 14

    def test_adherence(self, scenario_file: Path) -> None:
        data = invoke_json("adherence", str(scenario_file))["data"]
        assert data["overall_score"] == 100
        assert data["grade"] == "A+"
        assert data["period_days"] == 7

    def test_progress(self, scenario_file: Path) -> None:
        data = invoke_json("progress", str(scenario_file))["data"]
        assert data["status"] == "ahead"
        assert data["projected_date"] is not None
        assert data["timeline"]["direction"] == "losing"
        assert data["goal_direction"] == -1

    def test_progress_without_goal(self, tmp_path: Path) -> None:
        path = tmp_path / "nogoal.yaml"
        path.write_text("weights: []\n")
        result = runner.invoke(app, ["progress", str(path), "--today", TODAY])
        assert result.exit_code == 1
        assert "No goal" in result.output

    def test_correlate_fields(self, scenario_file: Path) -> None:
        result = runner.invoke(
            app,
            ["correlate", str(scenario_file), "--field", "calories", "--against", "protein",
             "--today", TODAY, "--json"],
        )
        # Protein is constant in the scenario
        assert result.exit_code == 1
        assert json.loads(result.output)["success"] is False

    def test_correlate_unknown_field(self, scenario_file: Path) -> None:
        result = runner.invoke(app, ["correlate", str(scenario_file), "--field", "sugar"])
        assert result.exit_code == 1
        assert "Unknown field" in result.output

    def test_insights(self, scenario_file: Path) -> None:
        data = invoke_json("insights", str(scenario_file))["data"]
        found = {i["id"] for i in data["insights"]}
        assert "progress_on_track" in found
        assert "streak_milestone" in found
        assert data["next_week_focus"]

    def test_insights_max(self, scenario_file: Path) -> None:
        data = invoke_json("insights", str(scenario_file), "--max", "1")["data"]
        assert len(data["insights"]) == 1

    def test_report(self, scenario_file: Path) -> None:
        data = invoke_json("report", str(scenario_file))["data"]
        assert data["adherence"]["grade"] == "A+"
        assert data["progress"]["status"] in ("ahead", "on_track")
        assert data["streaks"]["current_streak"] == 14
        assert data["trend"] is not None
        assert "points" not in data["trend"]
        # Two weeks of logs are too short to judge adaptation
        assert data["metabolic_adaptation"] is None

    def test_report_repeatable(self, scenario_file: Path) -> None:
        first = invoke_json("report", str(scenario_file))
        second = invoke_json("report", str(scenario_file))
        assert first == second

    def test_report_table(self, scenario_file: Path) -> None:
        result = runner.invoke(app, ["report", str(scenario_file), "--today", TODAY])
        assert result.exit_code == 0
        assert "Report for 2026-03-15" in result.output
