"""
Report Aggregation - Pareto Breakdown and Consumption Summary

Groups readings by a key, reduces each group, and annotates the result
with percentage-of-total and cumulative percentage so the "vital few"
contributors to consumption stand out.

Reductions:
- sum: used for the energy metric (total kWh per group)
- max: used for the power metric (peak kW per group)

Ordering:
- Groups are sorted by value, descending
- Ties keep the order in which the group was first encountered

All functions here are read-only and side-effect free.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, Hashable, List, Mapping, Optional, Sequence

from .errors import InvalidArgumentError, NoDataError
from .readings import Reading

UNKNOWN_GROUP = "Unknown"


class GroupBy(str, Enum):
    """Grouping keys for Pareto reports."""
    CLASSIFICATION = "classification"
    DAY_OF_WEEK = "dayOfWeek"
    HOUR_OF_DAY = "hourOfDay"


class MetricType(str, Enum):
    """Metric reduced within each group."""
    ENERGY = "energy"
    POWER = "power"


class Reduction(str, Enum):
    """How values inside one group are combined."""
    SUM = "sum"
    MAX = "max"


@dataclass
class ParetoEntry:
    """One row of a Pareto breakdown."""
    key: Hashable
    value: float
    percent_of_total: float
    cumulative_percent: float

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "value": self.value,
            "percent_of_total": self.percent_of_total,
            "cumulative_percent": self.cumulative_percent,
        }


@dataclass
class ConsumptionSummary:
    """Headline figures for a set of readings."""
    total_energy: float
    max_power: float
    avg_power: float
    reading_count: int
    first_timestamp: datetime
    last_timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_energy": self.total_energy,
            "max_power": self.max_power,
            "avg_power": self.avg_power,
            "reading_count": self.reading_count,
            "first_timestamp": self.first_timestamp.isoformat(),
            "last_timestamp": self.last_timestamp.isoformat(),
        }


# =========================================
# Group Keys
# =========================================

def day_of_week_key(reading: Reading) -> str:
    """English weekday name, e.g. 'Monday'."""
    return reading.timestamp.strftime("%A")


def hour_of_day_key(reading: Reading) -> str:
    """Hour label, e.g. '08:00'."""
    return f"{reading.timestamp.hour:02d}:00"


def classification_key(names: Mapping[int, str]) -> Callable[[Reading], str]:
    """Build a key function mapping a reading to its classification name."""
    def key(reading: Reading) -> str:
        return names.get(reading.classification_id, UNKNOWN_GROUP)
    return key


# =========================================
# Pareto
# =========================================

def pareto_breakdown(
    readings: Sequence[Reading],
    group_key_fn: Callable[[Reading], Hashable],
    value_fn: Callable[[Reading], float],
    reduction: Reduction = Reduction.SUM
) -> List[ParetoEntry]:
    """
    Group readings and compute a Pareto breakdown.

    Args:
        readings: Readings to aggregate
        group_key_fn: Maps a reading to its group key
        value_fn: Extracts the value to reduce from a reading
        reduction: SUM or MAX within each group

    Returns:
        Entries sorted by value descending with percentage annotations

    Raises:
        NoDataError: If there are no readings or the grand total is zero
    """
    reduction = Reduction(reduction)
    groups: Dict[Hashable, float] = {}

    for reading in readings:
        key = group_key_fn(reading)
        value = value_fn(reading)
        if key not in groups:
            groups[key] = value
        elif reduction == Reduction.SUM:
            groups[key] += value
        else:
            groups[key] = max(groups[key], value)

    total = sum(groups.values())
    if not groups or total == 0:
        raise NoDataError(
            "No data available for the selected criteria",
            group_count=len(groups),
            reduction=reduction.value,
        )

    # sorted() is stable, so equal values keep first-encountered order
    ordered = sorted(groups.items(), key=lambda item: item[1], reverse=True)

    entries: List[ParetoEntry] = []
    running = 0.0
    for key, value in ordered:
        running += value
        entries.append(ParetoEntry(
            key=key,
            value=value,
            percent_of_total=value / total * 100,
            cumulative_percent=running / total * 100,
        ))

    return entries


def pareto_report(
    readings: Sequence[Reading],
    group_by: str = GroupBy.CLASSIFICATION,
    metric: str = MetricType.ENERGY,
    classification_names: Optional[Mapping[int, str]] = None
) -> List[ParetoEntry]:
    """
    Pareto breakdown by a named grouping and metric.

    Args:
        readings: Readings to aggregate
        group_by: classification, dayOfWeek, or hourOfDay
        metric: energy (summed) or power (max per group)
        classification_names: Map of classification id to name

    Returns:
        List of ParetoEntry

    Raises:
        InvalidArgumentError: Unknown group_by or metric
        NoDataError: Nothing to aggregate
    """
    try:
        group_by = GroupBy(group_by)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown grouping: {group_by}", group_by=group_by
        ) from None
    try:
        metric = MetricType(metric)
    except ValueError:
        raise InvalidArgumentError(
            f"Unknown metric: {metric}", metric=metric
        ) from None

    if group_by == GroupBy.CLASSIFICATION:
        key_fn = classification_key(classification_names or {})
    elif group_by == GroupBy.DAY_OF_WEEK:
        key_fn = day_of_week_key
    else:
        key_fn = hour_of_day_key

    if metric == MetricType.ENERGY:
        return pareto_breakdown(
            readings, key_fn, lambda r: r.energy_value, Reduction.SUM
        )
    return pareto_breakdown(readings, key_fn, lambda r: r.power, Reduction.MAX)


# =========================================
# Summary
# =========================================

def summarize(readings: Sequence[Reading]) -> ConsumptionSummary:
    """
    Total energy, peak power and mean power for a set of readings.

    Raises:
        NoDataError: If readings is empty
    """
    if not readings:
        raise NoDataError("No metering data available to summarize")

    timestamps = [r.timestamp for r in readings]
    return ConsumptionSummary(
        total_energy=sum(r.energy_value for r in readings),
        max_power=max(r.power for r in readings),
        avg_power=sum(r.power for r in readings) / len(readings),
        reading_count=len(readings),
        first_timestamp=min(timestamps),
        last_timestamp=max(timestamps),
    )
