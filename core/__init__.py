"""
Core Module - Energy Metering Tracker

This module contains the core business logic for the metering tracker:
- Reading model and error taxonomy
- EnPI indicator engine (formula reduction with optional baseline)
- Report aggregation (Pareto breakdowns, consumption summary)
- Tabular analysis (heatmap, weekday profile, daily trend, comparison,
  energy flow, CSV export)

These components are framework-agnostic and perform no I/O; the API
layer fetches readings from the store and hands them in.
"""

from .errors import (
    MeteringError,
    InvalidArgumentError,
    ClassificationNotFoundError,
    NoDataError,
    InvalidFormulaError,
)
from .readings import Reading, to_utc, validate_window
from .indicators import (
    Formula,
    BaselineStatus,
    IndicatorEngine,
    IndicatorResult,
    calculate_indicator,
    improvement_percent,
)
from .reports import (
    GroupBy,
    MetricType,
    Reduction,
    ParetoEntry,
    ConsumptionSummary,
    pareto_breakdown,
    pareto_report,
    summarize,
)
from .analysis import (
    HeatmapGrid,
    DailyConsumption,
    ClassificationComparison,
    FlowLink,
    EnergyFlow,
    daily_trend,
    classification_comparison,
    energy_flow,
    hourly_heatmap,
    weekday_profile,
    export_readings_csv,
    readings_to_frame,
)

__all__ = [
    # Errors
    "MeteringError",
    "InvalidArgumentError",
    "ClassificationNotFoundError",
    "NoDataError",
    "InvalidFormulaError",

    # Readings
    "Reading",
    "to_utc",
    "validate_window",

    # Indicators
    "Formula",
    "BaselineStatus",
    "IndicatorEngine",
    "IndicatorResult",
    "calculate_indicator",
    "improvement_percent",

    # Reports
    "GroupBy",
    "MetricType",
    "Reduction",
    "ParetoEntry",
    "ConsumptionSummary",
    "pareto_breakdown",
    "pareto_report",
    "summarize",

    # Analysis
    "HeatmapGrid",
    "DailyConsumption",
    "ClassificationComparison",
    "FlowLink",
    "EnergyFlow",
    "daily_trend",
    "classification_comparison",
    "energy_flow",
    "hourly_heatmap",
    "weekday_profile",
    "export_readings_csv",
    "readings_to_frame",
]

__version__ = "0.1.0"
