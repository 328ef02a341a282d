"""
Energy Performance Indicator (EnPI) Engine

This module reduces a set of metering readings to a single scalar
indicator value, optionally alongside the same indicator computed over
a baseline period for comparison.

Filtering Contract:
- The engine performs NO filtering by classification or date.
- Callers pass readings already restricted to the classification and
  window (the store does this in SQL).
- Every reading passed in contributes to the result.

Formulas:
- TotalEnergy: sum of energy over the set (kWh)
- EnergyPerHour: sum of energy divided by the window span in hours
- MaxPower: peak power over the set (kW)
- AvgPower: arithmetic mean power over the set (kW)

Baseline Handling:
- not_requested: no baseline window supplied, value 0.0
- no_data: baseline window supplied but no readings found, value 0.0
- measured: baseline computed with the same formula over its own span
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from .errors import InvalidArgumentError, InvalidFormulaError, NoDataError
from .readings import Reading, to_utc, validate_window


class Formula(str, Enum):
    """Supported EnPI formulas."""
    TOTAL_ENERGY = "TotalEnergy"
    ENERGY_PER_HOUR = "EnergyPerHour"
    MAX_POWER = "MaxPower"
    AVG_POWER = "AvgPower"

    @classmethod
    def parse(cls, value: Union[str, "Formula"]) -> "Formula":
        """
        Resolve a formula selector.

        Raises:
            InvalidFormulaError: If the selector is not a known formula
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise InvalidFormulaError(value) from None


class BaselineStatus(str, Enum):
    """Whether a baseline value was measured or defaulted to zero."""
    NOT_REQUESTED = "not_requested"
    NO_DATA = "no_data"
    MEASURED = "measured"


@dataclass
class IndicatorResult:
    """
    Result of an indicator calculation.

    Attributes:
        formula: Formula used for both periods
        current_value: Indicator over the current window
        baseline_value: Indicator over the baseline window (0.0 unless measured)
        baseline_status: How the baseline value was obtained
        reading_count: Number of readings in the current set
        baseline_reading_count: Number of readings in the baseline set
    """
    formula: Formula
    current_value: float
    baseline_value: float = 0.0
    baseline_status: BaselineStatus = BaselineStatus.NOT_REQUESTED
    reading_count: int = 0
    baseline_reading_count: int = 0

    @property
    def improvement_percent(self) -> Optional[float]:
        """
        Percentage improvement of current over baseline.

        Positive means the current value is lower than the baseline.
        None unless the baseline was measured and is non-zero.
        """
        return improvement_percent(
            self.current_value, self.baseline_value, self.baseline_status
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "formula": self.formula.value,
            "current_value": self.current_value,
            "baseline_value": self.baseline_value,
            "baseline_status": self.baseline_status.value,
            "improvement_percent": self.improvement_percent,
            "reading_count": self.reading_count,
            "baseline_reading_count": self.baseline_reading_count,
        }


def improvement_percent(
    current_value: float,
    baseline_value: float,
    baseline_status: BaselineStatus
) -> Optional[float]:
    """Compute (baseline - current) / baseline * 100 for a measured baseline."""
    if baseline_status != BaselineStatus.MEASURED or baseline_value == 0:
        return None
    return (baseline_value - current_value) / baseline_value * 100


class IndicatorEngine:
    """
    Engine for reducing readings to EnPI values.

    The engine is stateless; one instance can serve every request.

    Example:
        engine = IndicatorEngine()
        result = engine.calculate(
            "TotalEnergy",
            readings,
            window_start=datetime(2024, 1, 1),
            window_end=datetime(2024, 1, 2),
        )
        print(result.current_value)
    """

    def calculate(
        self,
        formula: Union[str, Formula],
        readings: Sequence[Reading],
        window_start: datetime,
        window_end: datetime,
        baseline_readings: Optional[Sequence[Reading]] = None,
        baseline_start: Optional[datetime] = None,
        baseline_end: Optional[datetime] = None
    ) -> IndicatorResult:
        """
        Calculate an indicator over a current window and optional baseline.

        Args:
            formula: Formula selector (name or Formula member)
            readings: Readings already filtered to the current window
            window_start: Start of the current window
            window_end: End of the current window (inclusive)
            baseline_readings: Readings already filtered to the baseline window
            baseline_start: Start of the baseline window
            baseline_end: End of the baseline window

        Returns:
            IndicatorResult with current and baseline values

        Raises:
            InvalidFormulaError: Unknown formula selector
            InvalidArgumentError: Inverted window, or zero-length window
                for EnergyPerHour
            NoDataError: No readings in the current set
        """
        formula = Formula.parse(formula)
        validate_window(window_start, window_end, formula=formula.value)

        if not readings:
            raise NoDataError(
                "No metering data found for the specified criteria",
                formula=formula.value,
                start=window_start,
                end=window_end,
            )

        current_value = self.reduce(formula, readings, window_start, window_end)

        baseline_value = 0.0
        baseline_status = BaselineStatus.NOT_REQUESTED
        baseline_count = 0

        if baseline_start is not None and baseline_end is not None:
            validate_window(
                baseline_start, baseline_end,
                formula=formula.value, period="baseline"
            )
            if baseline_readings:
                baseline_value = self.reduce(
                    formula, baseline_readings, baseline_start, baseline_end
                )
                baseline_status = BaselineStatus.MEASURED
                baseline_count = len(baseline_readings)
            else:
                baseline_status = BaselineStatus.NO_DATA

        return IndicatorResult(
            formula=formula,
            current_value=current_value,
            baseline_value=baseline_value,
            baseline_status=baseline_status,
            reading_count=len(readings),
            baseline_reading_count=baseline_count,
        )

    def reduce(
        self,
        formula: Union[str, Formula],
        readings: Sequence[Reading],
        window_start: datetime,
        window_end: datetime
    ) -> float:
        """
        Apply a formula to a non-empty set of readings.

        Args:
            formula: Formula selector
            readings: Non-empty readings for the window
            window_start: Window start (used by EnergyPerHour)
            window_end: Window end (used by EnergyPerHour)

        Returns:
            Indicator value
        """
        formula = Formula.parse(formula)

        if formula == Formula.TOTAL_ENERGY:
            return sum(r.energy_value for r in readings)

        if formula == Formula.ENERGY_PER_HOUR:
            hours = window_hours(window_start, window_end)
            if hours <= 0:
                raise InvalidArgumentError(
                    "EnergyPerHour requires a window longer than zero hours",
                    formula=formula.value,
                    start=window_start,
                    end=window_end,
                )
            return sum(r.energy_value for r in readings) / hours

        if formula == Formula.MAX_POWER:
            return max(r.power for r in readings)

        if formula == Formula.AVG_POWER:
            return sum(r.power for r in readings) / len(readings)

        raise InvalidFormulaError(formula)


def window_hours(start: datetime, end: datetime) -> float:
    """Span of a window in fractional hours."""
    return (to_utc(end) - to_utc(start)).total_seconds() / 3600.0


def calculate_indicator(
    formula: Union[str, Formula],
    readings: List[Reading],
    window_start: datetime,
    window_end: datetime,
    baseline_readings: Optional[List[Reading]] = None,
    baseline_start: Optional[datetime] = None,
    baseline_end: Optional[datetime] = None
) -> IndicatorResult:
    """
    Convenience function to calculate an indicator.

    Example:
        result = calculate_indicator("AvgPower", readings, start, end)
        print(f"Average power: {result.current_value:.2f} kW")
    """
    engine = IndicatorEngine()
    return engine.calculate(
        formula,
        readings,
        window_start,
        window_end,
        baseline_readings=baseline_readings,
        baseline_start=baseline_start,
        baseline_end=baseline_end,
    )
