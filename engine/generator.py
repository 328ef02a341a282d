"""
Synthetic Data Generator for Energy Metering Readings

Generates sample time-series readings for a classification so the
dashboard, indicator engine, and reports have something to work on
before real meters are connected.

Shape:
- Time-of-day profile with a midday peak during business hours
- Reduced evening load, low overnight base load
- Weekend consumption at 60% of weekdays
- Bounded uniform noise drawn from an injected random source

Every reading satisfies:
- energy_value >= 0 (floored after noise)
- power == energy_value * 60 / interval_minutes
"""

import math
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Generator, List, Optional

import pandas as pd

from core.errors import InvalidArgumentError
from core.readings import Reading, to_utc, validate_window

DEFAULT_INTERVAL_MINUTES = 15
DEFAULT_BASE_VALUE = 10.0
DEFAULT_VARIANCE = 2.0


@dataclass
class GenerationRequest:
    """
    Parameters for one synthetic generation run.

    Attributes:
        classification_id: Classification the readings belong to
        start: First timestamp
        end: Last timestamp (inclusive)
        interval_minutes: Minutes between readings
        base_value: Base energy per interval in kWh
        variance: Half-width of the uniform noise band in kWh
    """
    classification_id: int
    start: datetime
    end: datetime
    interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    base_value: float = DEFAULT_BASE_VALUE
    variance: float = DEFAULT_VARIANCE

    def validate(self) -> None:
        """
        Reject requests the generator cannot honour.

        Raises:
            InvalidArgumentError: Non-positive classification id or interval,
                negative variance, or end before start
        """
        if self.classification_id <= 0:
            raise InvalidArgumentError(
                "Invalid Classification ID",
                classification_id=self.classification_id,
            )
        if self.interval_minutes <= 0:
            raise InvalidArgumentError(
                f"Interval must be positive, got {self.interval_minutes} minutes",
                classification_id=self.classification_id,
                interval_minutes=self.interval_minutes,
            )
        if self.variance < 0:
            raise InvalidArgumentError(
                f"Variance must be non-negative, got {self.variance}",
                classification_id=self.classification_id,
                variance=self.variance,
            )
        validate_window(self.start, self.end, classification_id=self.classification_id)


class MeteringDataGenerator:
    """
    Generator for synthetic metering readings.

    The noise term comes from the random.Random instance passed in, so
    a seeded generator reproduces exact sequences and nothing touches
    the module-level random state.

    Example:
        gen = MeteringDataGenerator(classification_id=1, rng=random.Random(42))

        readings = gen.generate_to_list(
            start_time=datetime(2024, 1, 1),
            end_time=datetime(2024, 1, 7),
            interval_minutes=15,
        )
    """

    def __init__(
        self,
        classification_id: int,
        base_value: float = DEFAULT_BASE_VALUE,
        variance: float = DEFAULT_VARIANCE,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the generator.

        Args:
            classification_id: Classification the readings belong to
            base_value: Base energy per interval (kWh)
            variance: Half-width of the uniform noise band (kWh)
            rng: Random source for the noise term (fresh unseeded if None)
        """
        self.classification_id = classification_id
        self.base_value = base_value
        self.variance = variance
        self.rng = rng or random.Random()

    def generate_reading(
        self,
        timestamp: datetime,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    ) -> Reading:
        """
        Generate a single reading.

        Args:
            timestamp: Timestamp for the reading
            interval_minutes: Interval length, used to derive power

        Returns:
            Reading with floored energy and derived power
        """
        timestamp = to_utc(timestamp)

        time_factor = time_of_day_factor(timestamp.hour)
        day_factor = day_of_week_factor(timestamp)
        random_factor = (self.rng.random() * 2 - 1) * self.variance

        energy_value = max(0.0, self.base_value * time_factor * day_factor + random_factor)
        power = energy_value * 60 / interval_minutes

        return Reading(
            timestamp=timestamp,
            energy_value=energy_value,
            power=power,
            classification_id=self.classification_id,
        )

    def generate_batch(
        self,
        start_time: datetime,
        end_time: datetime,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    ) -> Generator[Reading, None, None]:
        """
        Generate readings from start_time through end_time inclusive.

        Args:
            start_time: First timestamp
            end_time: Last timestamp (inclusive)
            interval_minutes: Minutes between readings

        Yields:
            Readings in strictly increasing timestamp order

        Raises:
            InvalidArgumentError: If interval_minutes <= 0
        """
        if interval_minutes <= 0:
            raise InvalidArgumentError(
                f"Interval must be positive, got {interval_minutes} minutes",
                classification_id=self.classification_id,
                interval_minutes=interval_minutes,
            )

        current_time = to_utc(start_time)
        end_time = to_utc(end_time)
        step = timedelta(minutes=interval_minutes)

        while current_time <= end_time:
            yield self.generate_reading(current_time, interval_minutes)
            current_time += step

    def generate_to_list(
        self,
        start_time: datetime,
        end_time: datetime,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    ) -> List[Reading]:
        """
        Generate readings and return as a list.

        Args:
            start_time: First timestamp
            end_time: Last timestamp (inclusive)
            interval_minutes: Minutes between readings

        Returns:
            List of readings
        """
        return list(self.generate_batch(start_time, end_time, interval_minutes))

    def generate_to_dataframe(
        self,
        start_time: datetime,
        end_time: datetime,
        interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    ) -> pd.DataFrame:
        """
        Generate readings as a DataFrame.

        Returns:
            DataFrame with timestamp, energy_value, power, classification_id
        """
        readings = self.generate_to_list(start_time, end_time, interval_minutes)
        df = pd.DataFrame(
            [
                {
                    "timestamp": r.timestamp,
                    "energy_value": r.energy_value,
                    "power": r.power,
                    "classification_id": r.classification_id,
                }
                for r in readings
            ],
            columns=["timestamp", "energy_value", "power", "classification_id"],
        )
        return df


# =========================================
# Load Profile Factors
# =========================================

def time_of_day_factor(hour: int) -> float:
    """
    Load multiplier for an hour of the day.

    - 08:00-17:59: sine-shaped business-hours curve, 1.0 at 08:00,
      peaking near 1.5 around 12:00-13:00
    - 18:00-22:59: evening, 0.7
    - otherwise: overnight base load, 0.3

    Args:
        hour: Hour of day (0-23)

    Returns:
        Multiplier applied to the base value
    """
    if 8 <= hour <= 17:
        return 1.0 + 0.5 * math.sin((hour - 8) * math.pi / 9)
    if 18 <= hour <= 22:
        return 0.7
    return 0.3


def day_of_week_factor(timestamp: datetime) -> float:
    """0.6 on Saturday and Sunday, 1.0 on weekdays."""
    return 0.6 if timestamp.weekday() >= 5 else 1.0


# =========================================
# Convenience Functions
# =========================================

def generate_readings(
    request: GenerationRequest,
    rng: Optional[random.Random] = None
) -> List[Reading]:
    """
    Validate a generation request and produce its readings.

    Args:
        request: Generation parameters
        rng: Random source for the noise term

    Returns:
        List of readings, start through end inclusive

    Raises:
        InvalidArgumentError: If the request is malformed
    """
    request.validate()

    generator = MeteringDataGenerator(
        classification_id=request.classification_id,
        base_value=request.base_value,
        variance=request.variance,
        rng=rng,
    )
    return generator.generate_to_list(
        request.start, request.end, request.interval_minutes
    )
