"""Load exported nutrition logs into typed analytics inputs.

The input document is YAML (or JSON) shaped like::

    daily:
      - {date: 2026-01-05, calories: 1850, protein: 140, goal_calories: 1900, goal_protein: 150}
    weights:
      - {date: 2026-01-05, weight: 82.4}
    goal:
      start_weight: 84.0
      goal_weight: 78.0
      expected_rate_per_week: 0.5
      start_date: 2025-12-01
    streak: 12
    logged_dates: [2026-01-05, ...]

Individual malformed records are dropped the same way the engine drops them;
only a document the loader cannot interpret at all raises LoaderError.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Optional

import yaml

from macrotrend.analytics.align import (
    parse_date,
    coerce_daily_records,
    coerce_weight_entries,
    latest_per_day,
)
from macrotrend.analytics.insights import InsightContext
from macrotrend.analytics.models import DailyRecord, GoalContext, WeightEntry

logger = logging.getLogger(__name__)

LIST_SECTIONS = ("daily", "weights", "logged_dates")


class LoaderError(Exception):
    """Raised when an input file cannot be read or has the wrong shape."""


@dataclass
class AnalysisInput:
    """Typed contents of one input document."""

    daily: list[DailyRecord] = field(default_factory=list)
    weights: list[WeightEntry] = field(default_factory=list)
    goal: Optional[GoalContext] = None
    streak: int = 0
    logged_dates: list[date] = field(default_factory=list)

    @property
    def current_weight(self) -> Optional[float]:
        """Latest logged weight, falling back to the goal's current weight."""
        if self.weights:
            return latest_per_day(self.weights)[-1].weight
        if self.goal is not None:
            return self.goal.current_weight
        return None

    def insight_context(self, today: Optional[date] = None) -> InsightContext:
        """Build the insight generator's context from this input."""
        goal = self.goal
        return InsightContext(
            daily_data=self.daily,
            weight_history=self.weights,
            current_weight=self.current_weight,
            goal_weight=goal.goal_weight if goal else None,
            start_weight=goal.start_weight if goal else None,
            expected_weekly_rate=goal.expected_rate_per_week if goal else None,
            logged_dates=self.logged_dates or [d.date for d in self.daily],
            streak=self.streak,
            today=today,
        )


def _read_document(path: Path) -> Any:
    try:
        text = path.read_text()
    except OSError as e:
        raise LoaderError(f"Cannot read {path}: {e}") from e

    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise LoaderError(f"Cannot parse {path}: {e}") from e


def _parse_goal(data: Any, weights: list[WeightEntry]) -> GoalContext:
    if not isinstance(data, dict):
        raise LoaderError("'goal' must be a mapping")

    try:
        start_weight = float(data["start_weight"])
        goal_weight = float(data["goal_weight"])
        expected = float(data.get("expected_rate_per_week", 0.5))
        if "current_weight" in data:
            current = float(data["current_weight"])
        elif weights:
            current = latest_per_day(weights)[-1].weight
        else:
            current = start_weight
        if "start_date" in data:
            start_date = parse_date(data["start_date"])
        elif weights:
            start_date = min(w.date for w in weights)
        else:
            start_date = date.today()
        return GoalContext(
            start_weight=start_weight,
            current_weight=current,
            goal_weight=goal_weight,
            expected_rate_per_week=expected,
            start_date=start_date,
        )
    except KeyError as e:
        raise LoaderError(f"'goal' is missing {e.args[0]!r}") from e
    except (TypeError, ValueError) as e:
        raise LoaderError(f"Invalid 'goal': {e}") from e


def _parse_logged_dates(raw: list[Any]) -> list[date]:
    dates = []
    for value in raw:
        try:
            dates.append(parse_date(value))
        except ValueError as e:
            logger.debug("Dropping logged date: %s", e)
    return dates


def parse_input(data: Any) -> AnalysisInput:
    """Turn an already-decoded document into an AnalysisInput.

    Raises:
        LoaderError: If the document or one of its sections has the wrong shape.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise LoaderError("Input document must be a mapping")

    for section in LIST_SECTIONS:
        if section in data and not isinstance(data[section], list):
            raise LoaderError(f"'{section}' must be a list")

    daily = coerce_daily_records(data.get("daily", []))
    weights = coerce_weight_entries(data.get("weights", []))

    goal = None
    if data.get("goal") is not None:
        goal = _parse_goal(data["goal"], weights)

    try:
        streak = int(data.get("streak", 0))
    except (TypeError, ValueError) as e:
        raise LoaderError(f"Invalid 'streak': {e}") from e

    return AnalysisInput(
        daily=daily,
        weights=weights,
        goal=goal,
        streak=max(streak, 0),
        logged_dates=_parse_logged_dates(data.get("logged_dates", [])),
    )


def load_input(path: Path) -> AnalysisInput:
    """Load an input document from a YAML or JSON file.

    Args:
        path: File to read; ``.json`` files are parsed as JSON, anything else as YAML

    Returns:
        AnalysisInput with malformed records dropped

    Raises:
        LoaderError: If the file is unreadable or structurally invalid
    """
    result = parse_input(_read_document(Path(path)))
    logger.debug(
        "Loaded %s: %d daily records, %d weights",
        path,
        len(result.daily),
        len(result.weights),
    )
    return result
