"""
Metering Reading Model

A Reading is one timestamped (energy, power) observation tied to a
classification. Readings are immutable value objects: the generator
creates them, the store persists them, and the indicator engine and
report aggregation consume them.

Units:
- energy_value: kWh consumed during the interval ending at timestamp
- power: average kW over that interval
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .errors import InvalidArgumentError


def to_utc(timestamp: datetime) -> datetime:
    """
    Normalize a timestamp to an aware UTC datetime.

    Naive datetimes are taken to already be in UTC.
    """
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def validate_window(start: datetime, end: datetime, **context: Any) -> None:
    """
    Reject a time window whose end precedes its start.

    Raises:
        InvalidArgumentError: If end < start
    """
    if to_utc(end) < to_utc(start):
        raise InvalidArgumentError(
            f"Window end {end.isoformat()} is before start {start.isoformat()}",
            start=start,
            end=end,
            **context,
        )


@dataclass(frozen=True)
class Reading:
    """
    A single metering observation.

    Attributes:
        timestamp: UTC instant of the reading
        energy_value: Energy in kWh (>= 0)
        power: Power in kW (>= 0)
        classification_id: Foreign key of the owning classification
        id: Store identity, None until persisted
    """
    timestamp: datetime
    energy_value: float
    power: float
    classification_id: int
    id: Optional[int] = None

    def __post_init__(self):
        if self.energy_value < 0:
            raise InvalidArgumentError(
                f"Energy value must be non-negative, got {self.energy_value}",
                classification_id=self.classification_id,
                timestamp=self.timestamp,
            )
        if self.power < 0:
            raise InvalidArgumentError(
                f"Power must be non-negative, got {self.power}",
                classification_id=self.classification_id,
                timestamp=self.timestamp,
            )
        object.__setattr__(self, "timestamp", to_utc(self.timestamp))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "energy_value": self.energy_value,
            "power": self.power,
            "classification_id": self.classification_id,
        }
