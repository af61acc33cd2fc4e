"""Tunable parameters for the analytics engine.

Each dataclass defaults to the engine's named constants. Callers pass an
``AnalyticsConfig`` into the insight generator; the YAML settings layer in
``macrotrend.config`` builds one from a config file.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from macrotrend.analytics.adherence import (
    CALORIE_TOLERANCE,
    CALORIE_WEIGHT,
    LOGGING_WEIGHT,
    PROTEIN_THRESHOLD,
    PROTEIN_WEIGHT,
)
from macrotrend.analytics.consistency import MIN_DAYS as CONSISTENCY_MIN_DAYS
from macrotrend.analytics.correlation import MIN_POINTS as CORRELATION_MIN_POINTS
from macrotrend.analytics.ema import DEFAULT_BAND_MULTIPLIER, DEFAULT_WINDOW_SIZE
from macrotrend.analytics.ema import MIN_POINTS as EWMA_MIN_POINTS
from macrotrend.analytics.progress import MAX_PROJECTION_DAYS, MIN_ENTRIES
from macrotrend.analytics.trends import (
    ADAPTATION_MIN_DEFICIT,
    ADAPTATION_STALL_RATE,
    ANOMALY_THRESHOLD,
)


@dataclass
class EWMAConfig:
    """Weight trend smoothing."""

    window_size: int = DEFAULT_WINDOW_SIZE
    band_multiplier: float = DEFAULT_BAND_MULTIPLIER
    min_points: int = EWMA_MIN_POINTS

    def __post_init__(self) -> None:
        if self.window_size < 1:
            raise ValueError(f"window_size must be >= 1, got {self.window_size}")
        if self.band_multiplier < 0:
            raise ValueError(f"band_multiplier must be >= 0, got {self.band_multiplier}")


@dataclass
class ConsistencyConfig:
    """Macro consistency scoring."""

    min_days: int = CONSISTENCY_MIN_DAYS


@dataclass
class CorrelationConfig:
    """Correlation analysis."""

    min_points: int = CORRELATION_MIN_POINTS


@dataclass
class AdherenceConfig:
    """Adherence scoring."""

    calorie_tolerance: float = CALORIE_TOLERANCE
    protein_threshold: float = PROTEIN_THRESHOLD
    calorie_weight: float = CALORIE_WEIGHT
    protein_weight: float = PROTEIN_WEIGHT
    logging_weight: float = LOGGING_WEIGHT
    period_days: int = 7

    def __post_init__(self) -> None:
        total = self.calorie_weight + self.protein_weight + self.logging_weight
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"adherence weights must sum to 1.0, got {total:.3f}")

    @property
    def weights(self) -> tuple[float, float, float]:
        return (self.calorie_weight, self.protein_weight, self.logging_weight)


@dataclass
class ProgressConfig:
    """Goal progress projection."""

    min_entries: int = MIN_ENTRIES
    max_projection_days: int = MAX_PROJECTION_DAYS


@dataclass
class InsightConfig:
    """Insight rule thresholds."""

    min_days: int = 5
    max_count: int = 10
    overage_run_days: int = 3
    plateau_points: int = 14
    plateau_slope_tolerance: float = 0.02  # weight units per day
    protein_gap_percent: int = 50
    weekend_gap_calories: int = 150
    # Weekend gaps above this are raised to the top warning priority
    weekend_severe_gap_calories: int = 400
    # Weekdays need this many logged days to count in weekday comparisons
    day_pattern_min_samples: int = 2
    protein_drop_ratio: float = 0.75
    protein_drop_min_weekdays: int = 5
    consistent_score: int = 80
    inconsistent_score: int = 50
    high_adherence_score: int = 85
    streak_milestones: list[int] = field(
        default_factory=lambda: [7, 14, 21, 30, 60, 90, 180, 365]
    )
    break_pattern_min: int = 3
    anomaly_threshold: float = ANOMALY_THRESHOLD
    adaptation_min_deficit: int = ADAPTATION_MIN_DEFICIT
    adaptation_stall_rate: float = ADAPTATION_STALL_RATE


@dataclass
class AnalyticsConfig:
    """All engine parameters."""

    ewma: EWMAConfig = field(default_factory=EWMAConfig)
    consistency: ConsistencyConfig = field(default_factory=ConsistencyConfig)
    correlation: CorrelationConfig = field(default_factory=CorrelationConfig)
    adherence: AdherenceConfig = field(default_factory=AdherenceConfig)
    progress: ProgressConfig = field(default_factory=ProgressConfig)
    insights: InsightConfig = field(default_factory=InsightConfig)
