"""Nutrition and body-weight analytics engine.

Pure, synchronous functions over in-memory records. Nothing here performs
I/O or keeps state between calls; insufficient data yields None (or an empty
list) rather than an exception.

Key components:
- Series alignment (sparse or dense, absent days never zero-filled)
- EWMA weight trend with a constant-width noise band
- Macro consistency (coefficient of variation)
- Pearson correlation with strength/direction classification
- Adherence score and letter grade
- Goal progress rate and projected completion date
- Forecasting, plateau and metabolic adaptation diagnostics
- Rule-based insight generation
"""

from __future__ import annotations

from macrotrend.analytics.adherence import adherence, grade_for_score
from macrotrend.analytics.align import (
    align,
    coerce_daily_records,
    coerce_weight_entries,
    latest_per_day,
    present_values,
)
from macrotrend.analytics.consistency import consistency_percent, macro_consistency
from macrotrend.analytics.correlation import correlate, intake_vs_weight_change
from macrotrend.analytics.ema import ewma, ewma_slope
from macrotrend.analytics.insights import (
    InsightContext,
    InsightRule,
    generate_insights,
    next_week_focus,
)
from macrotrend.analytics.models import (
    AdherenceResult,
    CorrelationResult,
    DailyRecord,
    EWMAResult,
    GoalContext,
    Insight,
    MacroConsistency,
    MetabolicAdaptation,
    Prediction,
    ProgressRate,
    SeriesPoint,
    WeightEntry,
)
from macrotrend.analytics.patterns import analyze_day_patterns, analyze_streaks
from macrotrend.analytics.progress import (
    progress_for_goal,
    progress_rate,
    project_goal_timeline,
)
from macrotrend.analytics.trends import (
    detect_anomalies,
    detect_metabolic_adaptation,
    detect_plateau,
    predict_future,
    weighted_linear_regression,
)
from macrotrend.analytics.tuning import AnalyticsConfig

__all__ = [
    "AdherenceResult",
    "AnalyticsConfig",
    "CorrelationResult",
    "DailyRecord",
    "EWMAResult",
    "GoalContext",
    "Insight",
    "InsightContext",
    "InsightRule",
    "MacroConsistency",
    "MetabolicAdaptation",
    "Prediction",
    "ProgressRate",
    "SeriesPoint",
    "WeightEntry",
    "adherence",
    "align",
    "analyze_day_patterns",
    "analyze_streaks",
    "coerce_daily_records",
    "coerce_weight_entries",
    "consistency_percent",
    "correlate",
    "detect_anomalies",
    "detect_metabolic_adaptation",
    "detect_plateau",
    "ewma",
    "ewma_slope",
    "generate_insights",
    "grade_for_score",
    "intake_vs_weight_change",
    "latest_per_day",
    "macro_consistency",
    "next_week_focus",
    "predict_future",
    "present_values",
    "progress_for_goal",
    "progress_rate",
    "project_goal_timeline",
    "weighted_linear_regression",
]
