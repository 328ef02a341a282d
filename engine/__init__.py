"""
Engine Module - Synthetic Data Generation

This module provides synthetic metering data generation for testing
and demonstration of the energy metering tracker.

Key Components:
- MeteringDataGenerator: Generates timestamped (energy, power) readings
- GenerationRequest: Validated generation parameters
- time_of_day_factor / day_of_week_factor: Load profile shape

Usage:
    from engine import GenerationRequest, generate_readings

    request = GenerationRequest(
        classification_id=1,
        start=datetime(2024, 1, 1),
        end=datetime(2024, 1, 7),
    )
    readings = generate_readings(request, rng=random.Random(42))
"""

from .generator import (
    DEFAULT_BASE_VALUE,
    DEFAULT_INTERVAL_MINUTES,
    DEFAULT_VARIANCE,
    GenerationRequest,
    MeteringDataGenerator,
    day_of_week_factor,
    generate_readings,
    time_of_day_factor,
)

__all__ = [
    "DEFAULT_BASE_VALUE",
    "DEFAULT_INTERVAL_MINUTES",
    "DEFAULT_VARIANCE",
    "GenerationRequest",
    "MeteringDataGenerator",
    "day_of_week_factor",
    "generate_readings",
    "time_of_day_factor",
]

__version__ = "0.1.0"
