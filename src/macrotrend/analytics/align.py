"""Series alignment: turn dated records into indexed, labelled points.

Missing days are never filled with zero. A sparse series simply skips them; a
dense series (``dense_fill=True``) keeps one slot per calendar day and marks
absent days with ``None`` so charts keep their x positions while statistics
ignore the gap.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any, Optional, TypeVar, Union

import pandas as pd

from macrotrend.analytics.models import DailyRecord, SeriesPoint, WeightEntry

logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

# Windows up to this many days are labelled by weekday, longer ones by M/D
WEEKDAY_LABEL_MAX_DAYS = 7

# Fields that may never be negative
NON_NEGATIVE_FIELDS = ("calories", "weight")

Dated = TypeVar("Dated", DailyRecord, WeightEntry)
ValueGetter = Union[str, Callable[[Any], Optional[float]]]


def parse_date(raw: Any) -> date:
    """Accept a date, a datetime or an ISO string (time part ignored)."""
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        return date.fromisoformat(raw[:10])
    raise ValueError(f"Cannot interpret {raw!r} as a date")


def _first(data: Mapping[str, Any], *keys: str, default: Any = 0.0) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def daily_record_from_mapping(data: Mapping[str, Any]) -> DailyRecord:
    """Build a DailyRecord from a loosely shaped mapping.

    Accepts both snake_case and the camelCase keys mobile clients send
    (``goalCalories``, ``proteinGoal``, ``goal``).

    Raises:
        ValueError: If the date is unreadable or a numeric field is not finite.
    """
    try:
        return DailyRecord(
            date=parse_date(data["date"]),
            calories=float(data["calories"]),
            protein=float(_first(data, "protein")),
            carbs=float(_first(data, "carbs")),
            fat=float(_first(data, "fat")),
            goal_calories=float(_first(data, "goal_calories", "goalCalories", "goal")),
            goal_protein=float(
                _first(data, "goal_protein", "goalProtein", "proteinGoal", "protein_goal")
            ),
        )
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed daily record {dict(data)!r}: {e}") from e


def weight_entry_from_mapping(data: Mapping[str, Any]) -> WeightEntry:
    """Build a WeightEntry from a mapping with ``date`` and ``weight`` keys.

    Raises:
        ValueError: If either field is missing or unusable.
    """
    try:
        return WeightEntry(date=parse_date(data["date"]), weight=float(data["weight"]))
    except (KeyError, TypeError) as e:
        raise ValueError(f"Malformed weight entry {dict(data)!r}: {e}") from e


def _is_usable(record: object) -> bool:
    for name in NON_NEGATIVE_FIELDS:
        value = getattr(record, name, None)
        if value is not None and value < 0:
            return False
    return True


def _coerce(
    records: Iterable[Any],
    record_type: type,
    from_mapping: Callable[[Mapping[str, Any]], Any],
) -> list[Any]:
    coerced = []
    for raw in records:
        if isinstance(raw, record_type):
            record = raw
        elif isinstance(raw, Mapping):
            try:
                record = from_mapping(raw)
            except ValueError as e:
                logger.debug("Dropping malformed record: %s", e)
                continue
        else:
            logger.debug("Dropping record of unsupported type %s", type(raw).__name__)
            continue

        if not _is_usable(record):
            logger.debug("Dropping record with negative value: %r", record)
            continue
        coerced.append(record)
    return coerced


def coerce_daily_records(records: Iterable[Any]) -> list[DailyRecord]:
    """Return valid DailyRecords, dropping malformed or negative-calorie ones."""
    return _coerce(records, DailyRecord, daily_record_from_mapping)


def coerce_weight_entries(entries: Iterable[Any]) -> list[WeightEntry]:
    """Return valid WeightEntries, dropping malformed or negative ones."""
    return _coerce(entries, WeightEntry, weight_entry_from_mapping)


def latest_per_day(records: Iterable[Dated]) -> list[Dated]:
    """Keep the last record seen for each date, sorted ascending by date."""
    by_date: dict[date, Dated] = {}
    for record in records:
        by_date[record.date] = record
    return [by_date[d] for d in sorted(by_date)]


def day_label(day: date, window_days: int) -> str:
    """Short axis label: weekday for weekly windows, M/D otherwise."""
    if window_days <= WEEKDAY_LABEL_MAX_DAYS:
        return WEEKDAY_LABELS[day.weekday()]
    return f"{day.month}/{day.day}"


def _value_of(record: Any, value: ValueGetter) -> Optional[float]:
    raw = value(record) if callable(value) else getattr(record, value)
    if raw is None:
        return None
    raw = float(raw)
    if not math.isfinite(raw):
        return None
    return raw


def align(
    records: Iterable[Any],
    window_days: int,
    *,
    value: Optional[ValueGetter] = None,
    dense_fill: bool = False,
    today: Optional[date] = None,
) -> list[SeriesPoint]:
    """
    Align dated records into an indexed series over a trailing window.

    Args:
        records: DailyRecords, WeightEntries, or mappings shaped like either.
                 May be unsorted; is never modified.
        window_days: Length of the trailing window ending ``today`` (inclusive)
        value: Attribute name or callable extracting the point value
               (default: ``weight`` for weight entries, else ``calories``)
        dense_fill: Emit one point per calendar day, ``None`` for absent days
        today: Last day of the window (default: ``date.today()``)

    Returns:
        Points sorted ascending by date with zero-based indices.

    Example:
        >>> align(records, 7, today=date(2025, 1, 7))
        [SeriesPoint(index=0, value=2100.0, label='Wed', ...), ...]
    """
    if window_days < 1:
        return []
    if today is None:
        today = date.today()
    start = today - timedelta(days=window_days - 1)

    items = list(records)
    if items and all(
        isinstance(r, WeightEntry) or (isinstance(r, Mapping) and "weight" in r)
        for r in items
    ):
        cleaned = coerce_weight_entries(items)
        default_value = "weight"
    else:
        cleaned = coerce_daily_records(items)
        default_value = "calories"
    if value is None:
        value = default_value

    values: dict[date, float] = {}
    for record in latest_per_day(r for r in cleaned if start <= r.date <= today):
        v = _value_of(record, value)
        if v is None or v < 0:
            logger.debug("Dropping %s: unusable value %r", record.date, v)
            continue
        values[record.date] = v

    if not dense_fill:
        return [
            SeriesPoint(index=i, value=values[d], label=day_label(d, window_days), date=d)
            for i, d in enumerate(sorted(values))
        ]

    calendar = pd.date_range(start=start, end=today, freq="D")
    series = pd.Series(
        list(values.values()), index=pd.to_datetime(list(values.keys())), dtype=float
    ).reindex(calendar)

    points = []
    for i, (stamp, v) in enumerate(series.items()):
        d = stamp.date()
        points.append(
            SeriesPoint(
                index=i,
                value=None if pd.isna(v) else float(v),
                label=day_label(d, window_days),
                date=d,
            )
        )
    return points


def present_values(points: Iterable[SeriesPoint]) -> list[float]:
    """Values of the points that carry data, skipping absent days."""
    return [p.value for p in points if p.value is not None]
