"""Data models for nutrition logs, weight history and analytics results."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Optional, Protocol


# Valid classification values for validation
STRENGTHS = ("none", "weak", "moderate", "strong", "very_strong")
DIRECTIONS = ("positive", "negative")
PROGRESS_STATUSES = ("ahead", "on_track", "behind", "stalled")
INSIGHT_TYPES = ("positive", "warning", "tip", "achievement")


def _require_finite(obj: object, *names: str) -> None:
    for name in names:
        value = getattr(obj, name)
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            raise ValueError(f"{name} must be a finite number, got {value!r}")


class MacroDay(Protocol):
    """Anything carrying one day's macro totals."""

    calories: float
    protein: float
    carbs: float
    fat: float


class TargetDay(Protocol):
    """Anything carrying one day's intake alongside its goals."""

    calories: float
    protein: float
    goal_calories: float
    goal_protein: float


@dataclass(frozen=True)
class DailyRecord:
    """Totals for one day with food logged.

    Days without logging are absent from a collection, never a zero record.
    """

    date: date
    calories: float
    protein: float = 0.0
    carbs: float = 0.0
    fat: float = 0.0
    goal_calories: float = 0.0
    goal_protein: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.date, date):
            raise ValueError(f"date must be a date, got {self.date!r}")
        _require_finite(
            self, "calories", "protein", "carbs", "fat", "goal_calories", "goal_protein"
        )


@dataclass(frozen=True)
class WeightEntry:
    """A single body-weight measurement (unit-agnostic)."""

    date: date
    weight: float

    def __post_init__(self) -> None:
        if not isinstance(self.date, date):
            raise ValueError(f"date must be a date, got {self.date!r}")
        _require_finite(self, "weight")


@dataclass(frozen=True)
class SeriesPoint:
    """One aligned position in a series. ``value`` is None for an absent day."""

    index: int
    value: Optional[float]
    label: str
    date: date


@dataclass(frozen=True)
class GoalContext:
    """The user's weight goal, fixed for one analysis call."""

    start_weight: float
    current_weight: float
    goal_weight: float
    expected_rate_per_week: float
    start_date: date

    def __post_init__(self) -> None:
        _require_finite(
            self, "start_weight", "current_weight", "goal_weight", "expected_rate_per_week"
        )

    @property
    def direction(self) -> int:
        """-1 when losing toward the goal, +1 when gaining, 0 at goal."""
        delta = self.goal_weight - self.start_weight
        return (delta > 0) - (delta < 0)


@dataclass(frozen=True)
class EWMAResult:
    """Smoothed weight trend with a constant-width noise envelope."""

    smoothed: list[Optional[float]]
    upper_band: list[Optional[float]]
    lower_band: list[Optional[float]]
    sigma: float


@dataclass(frozen=True)
class MacroConsistency:
    """Coefficient of variation per macro and the blended 0-100 score."""

    overall_consistency: int
    calorie_cv: float
    protein_cv: float
    carbs_cv: float
    fat_cv: float

    def percentages(self) -> dict[str, int]:
        """Per-macro consistency percentages for display."""
        from macrotrend.analytics.consistency import consistency_percent

        return {
            "calories": consistency_percent(self.calorie_cv),
            "protein": consistency_percent(self.protein_cv),
            "carbs": consistency_percent(self.carbs_cv),
            "fat": consistency_percent(self.fat_cv),
        }


@dataclass(frozen=True)
class CorrelationResult:
    """Pearson r with its qualitative reading."""

    coefficient: float
    strength: str
    direction: str
    description: str
    sample_size: int


@dataclass(frozen=True)
class AdherenceResult:
    """How consistently targets were hit over a period."""

    overall_score: int
    grade: str
    calorie_adherence: int
    protein_adherence: int
    logging_consistency: int
    days_on_target: int = 0
    total_days: int = 0


@dataclass(frozen=True)
class ProgressRate:
    """Actual versus expected rate of weight change toward a goal."""

    projected_date: Optional[date]
    status: str
    percent_of_expected: int
    actual_rate_per_week: float
    expected_rate_per_week: float
    remaining: float


@dataclass(frozen=True)
class GoalMilestone:
    """Projected weight at the end of one week."""

    week: int
    weight: float
    date: date
    percent_complete: int


@dataclass(frozen=True)
class GoalTimeline:
    """Weeks needed to reach a goal at a fixed weekly rate."""

    weeks_to_goal: int
    target_date: date
    total_change: float
    direction: str  # 'losing' or 'gaining'
    milestones: list[GoalMilestone] = field(default_factory=list)


@dataclass(frozen=True)
class RegressionResult:
    """Recency-weighted linear fit over a series."""

    slope: float
    intercept: float
    r_squared: float
    direction: str  # 'increasing', 'decreasing', 'stable'
    confidence: int
    predicted_next: float


@dataclass(frozen=True)
class Prediction:
    """Forecast value ``day_offset`` steps past the end of a series."""

    day_offset: int
    predicted: float
    confidence: int


@dataclass(frozen=True)
class MetabolicAdaptation:
    """Whether a sustained deficit has stopped moving the scale."""

    adapted: bool
    average_deficit: int
    weekly_weight_change: float
    severity: Optional[str] = None  # 'mild' or 'significant'
    estimated_adaptation: int = 0
    recommendations: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Anomaly:
    """A value far from the series mean."""

    index: int
    value: float
    z_score: float
    type: str  # 'high' or 'low'
    date: Optional[date] = None


@dataclass(frozen=True)
class AnomalyResult:
    """Z-score outliers found in a series."""

    anomalies: list[Anomaly]
    mean: float
    std_dev: float

    @property
    def has_anomalies(self) -> bool:
        return len(self.anomalies) > 0


@dataclass(frozen=True)
class PlateauResult:
    """Statistical plateau reading for a weight series."""

    is_plateau: bool
    duration: int
    change_rate: float
    suggestion: str
    confidence: int


@dataclass(frozen=True)
class StreakAnalytics:
    """Logging streaks and the weekdays they tend to break on."""

    current_streak: int
    longest_streak: int
    average_streak_length: float
    total_streaks: int
    break_days: dict[str, int]
    most_likely_break_day: Optional[str]


@dataclass(frozen=True)
class DayAverage:
    """Average intake on one weekday."""

    avg_calories: int
    avg_protein: int
    count: int


@dataclass(frozen=True)
class DayPatterns:
    """Intake grouped by weekday."""

    averages: dict[str, DayAverage]
    best_day: Optional[str]
    worst_day: Optional[str]
    weekday_avg: int
    weekend_avg: int

    @property
    def weekend_difference(self) -> int:
        return self.weekend_avg - self.weekday_avg


@dataclass(frozen=True)
class Insight:
    """A ranked natural-language observation for the user."""

    id: str
    type: str
    title: str
    description: str
    actionable: bool
    emoji: str
    action: Optional[str] = None
    priority: int = 0

    def __post_init__(self) -> None:
        if self.type not in INSIGHT_TYPES:
            raise ValueError(f"type must be one of {INSIGHT_TYPES}, got '{self.type}'")

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}
