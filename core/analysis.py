"""
Tabular Analysis of Metering Readings

pandas-backed helpers for the dashboard views that work on the whole
reading set at once:
- Weekday x hour heatmap of mean power
- Weekday profile of mean energy per reading
- Daily consumption trend (energy sum, mean power)
- Per-classification comparison (energy, peak and mean power)
- Energy flow from the site total through classification types to
  classifications (Sankey nodes and links)
- CSV export of readings with classification names

Weekdays are ordered Monday first (pandas dayofweek convention).
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import pandas as pd

from .errors import NoDataError
from .readings import Reading

WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday",
    "Friday", "Saturday", "Sunday",
]
HOURS = list(range(24))

EXPORT_COLUMNS = [
    "Timestamp", "Classification", "Energy (kWh)", "Power (kW)", "ClassificationId",
]


@dataclass
class HeatmapGrid:
    """Mean power per weekday (rows) and hour of day (columns)."""
    days: List[str]
    hours: List[int]
    values: List[List[float]]

    def to_dict(self) -> Dict:
        """Convert to dictionary for JSON serialization."""
        return {"days": self.days, "hours": self.hours, "values": self.values}


@dataclass
class DailyConsumption:
    """Energy total and mean power for one calendar day (UTC)."""
    date: str
    energy: float
    avg_power: float
    reading_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "date": self.date,
            "energy": self.energy,
            "avg_power": self.avg_power,
            "reading_count": self.reading_count,
        }


@dataclass
class ClassificationComparison:
    """Consumption figures for one classification."""
    classification_id: int
    classification: str
    energy: float
    max_power: float
    avg_power: float
    reading_count: int

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "classification_id": self.classification_id,
            "classification": self.classification,
            "energy": self.energy,
            "max_power": self.max_power,
            "avg_power": self.avg_power,
            "reading_count": self.reading_count,
        }


@dataclass
class FlowLink:
    """Energy flowing from one node to another, by node index."""
    source: int
    target: int
    value: float


@dataclass
class EnergyFlow:
    """
    Sankey-style energy flow.

    Node 0 is the site total. Each classification type links from the
    total, and each classification links from its type.
    """
    total: float
    nodes: List[str]
    links: List[FlowLink]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "total": self.total,
            "nodes": self.nodes,
            "links": [
                {"source": link.source, "target": link.target, "value": link.value}
                for link in self.links
            ],
        }


def readings_to_frame(
    readings: Sequence[Reading],
    classification_names: Optional[Mapping[int, str]] = None
) -> pd.DataFrame:
    """
    Build a DataFrame with one row per reading.

    Args:
        readings: Readings to tabulate
        classification_names: Optional id -> name map; adds a
            'classification' column when given

    Returns:
        DataFrame with id, timestamp (UTC), energy_value, power,
        classification_id columns
    """
    df = pd.DataFrame(
        [
            {
                "id": r.id,
                "timestamp": r.timestamp,
                "energy_value": r.energy_value,
                "power": r.power,
                "classification_id": r.classification_id,
            }
            for r in readings
        ],
        columns=["id", "timestamp", "energy_value", "power", "classification_id"],
    )
    df["timestamp"] = pd.to_datetime(df["timestamp"], utc=True)

    if classification_names is not None:
        df["classification"] = (
            df["classification_id"].map(classification_names).fillna("Unknown")
        )

    return df


def _require_readings(readings: Sequence[Reading], view: str) -> None:
    if not readings:
        raise NoDataError(f"No metering data available for {view}", view=view)


def hourly_heatmap(readings: Sequence[Reading]) -> HeatmapGrid:
    """
    Mean power by weekday and hour of day.

    Cells without readings are 0.0.

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "heatmap")

    df = readings_to_frame(readings)
    df["weekday"] = df["timestamp"].dt.dayofweek
    df["hour"] = df["timestamp"].dt.hour

    grid = (
        df.pivot_table(index="weekday", columns="hour", values="power", aggfunc="mean")
        .reindex(index=range(7), columns=HOURS)
        .fillna(0.0)
    )

    return HeatmapGrid(
        days=list(WEEKDAY_NAMES),
        hours=list(HOURS),
        values=[[float(v) for v in row] for row in grid.to_numpy()],
    )


def weekday_profile(readings: Sequence[Reading]) -> Dict[str, float]:
    """
    Mean energy per reading for each weekday, Monday first.

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "weekday profile")

    df = readings_to_frame(readings)
    means = (
        df.groupby(df["timestamp"].dt.dayofweek)["energy_value"]
        .mean()
        .reindex(range(7))
        .fillna(0.0)
    )

    return {WEEKDAY_NAMES[day]: float(value) for day, value in means.items()}


def daily_trend(readings: Sequence[Reading]) -> List[DailyConsumption]:
    """
    Energy total and mean power per UTC calendar day, oldest first.

    Days without readings are omitted.

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "daily trend")

    df = readings_to_frame(readings)
    daily = df.groupby(df["timestamp"].dt.strftime("%Y-%m-%d")).agg(
        energy=("energy_value", "sum"),
        avg_power=("power", "mean"),
        reading_count=("power", "size"),
    )

    return [
        DailyConsumption(
            date=date,
            energy=float(row.energy),
            avg_power=float(row.avg_power),
            reading_count=int(row.reading_count),
        )
        for date, row in daily.iterrows()
    ]


def classification_comparison(
    readings: Sequence[Reading],
    classification_names: Optional[Mapping[int, str]] = None
) -> List[ClassificationComparison]:
    """
    Energy, peak power and mean power per classification.

    Sorted by energy descending; ties keep first-encountered order.

    Args:
        readings: Readings to compare
        classification_names: id -> name map

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "classification comparison")

    names = classification_names or {}
    df = readings_to_frame(readings)
    grouped = (
        df.groupby("classification_id", sort=False)
        .agg(
            energy=("energy_value", "sum"),
            max_power=("power", "max"),
            avg_power=("power", "mean"),
            reading_count=("power", "size"),
        )
        .sort_values("energy", ascending=False, kind="mergesort")
    )

    return [
        ClassificationComparison(
            classification_id=int(classification_id),
            classification=names.get(int(classification_id), "Unknown"),
            energy=float(row.energy),
            max_power=float(row.max_power),
            avg_power=float(row.avg_power),
            reading_count=int(row.reading_count),
        )
        for classification_id, row in grouped.iterrows()
    ]


def energy_flow(
    readings: Sequence[Reading],
    classification_names: Optional[Mapping[int, str]] = None,
    classification_types: Optional[Mapping[int, str]] = None,
    root_name: str = "Total"
) -> EnergyFlow:
    """
    Energy flow from the total through types to classifications.

    Args:
        readings: Readings to aggregate
        classification_names: id -> name map
        classification_types: id -> type map (Facility, Equipment, ...)
        root_name: Label of node 0

    Returns:
        EnergyFlow with nodes in first-encountered order

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "energy flow")

    df = readings_to_frame(readings, classification_names or {})
    df["type"] = df["classification_id"].map(classification_types or {}).fillna("Unknown")

    by_classification = df.groupby(["type", "classification"], sort=False)["energy_value"].sum()

    nodes = [root_name]
    links: List[FlowLink] = []
    for type_name, group in by_classification.groupby(level=0, sort=False):
        type_index = len(nodes)
        nodes.append(type_name)
        links.append(FlowLink(source=0, target=type_index, value=float(group.sum())))

        for (_, name), value in group.items():
            nodes.append(name)
            links.append(FlowLink(source=type_index, target=len(nodes) - 1, value=float(value)))

    return EnergyFlow(total=float(df["energy_value"].sum()), nodes=nodes, links=links)


def export_readings_csv(
    readings: Sequence[Reading],
    classification_names: Optional[Mapping[int, str]] = None
) -> str:
    """
    Render readings as CSV text.

    Args:
        readings: Readings to export
        classification_names: id -> name map for the Classification column

    Returns:
        CSV string with a header row

    Raises:
        NoDataError: If readings is empty
    """
    _require_readings(readings, "export")

    df = readings_to_frame(readings, classification_names or {})
    export = pd.DataFrame({
        "Timestamp": df["timestamp"].map(lambda ts: ts.isoformat()),
        "Classification": df["classification"],
        "Energy (kWh)": df["energy_value"].round(2),
        "Power (kW)": df["power"].round(2),
        "ClassificationId": df["classification_id"],
    }, columns=EXPORT_COLUMNS)

    return export.to_csv(index=False, float_format="%.2f")
