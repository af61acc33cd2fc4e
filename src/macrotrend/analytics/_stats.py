"""Small numeric helpers shared by the analytics modules."""

from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Scores are presented as whole percentages; Python's ``round`` uses
    banker's rounding, which would turn 72.5 into 72.
    """
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, value))


def population_std(values: Sequence[float]) -> float:
    """Population standard deviation (ddof=0); 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.std(np.asarray(values, dtype=float)))


def coefficient_of_variation(values: Sequence[float]) -> float:
    """stdev / mean, defined as 0.0 when the mean is zero."""
    if len(values) == 0:
        return 0.0
    mean = float(np.mean(np.asarray(values, dtype=float)))
    if mean == 0:
        return 0.0
    return population_std(values) / mean
