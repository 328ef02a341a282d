"""
Pydantic Models for API Request/Response Validation

This module defines all the data models used by the API for:
- Request body validation
- Response serialization
- Documentation generation (OpenAPI/Swagger)

All models use Pydantic v2 syntax for validation and serialization.
Formula, grouping and metric selectors are accepted as plain strings
and resolved by the core, so unknown values surface as the core's
structured errors rather than generic 422 responses.
"""

from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field


# =========================================
# Classification Models
# =========================================

class ClassificationInput(BaseModel):
    """Input model for creating or updating a classification."""
    name: str = Field(
        ...,
        description="Display name, e.g. 'Main Building'",
        min_length=1,
        max_length=200
    )
    type: str = Field(
        default="Equipment",
        description="Equipment, Facility, ProductionLine, Organization, or free text",
        min_length=1,
        max_length=100
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Compressor Hall", "type": "Equipment"}
        }
    )


class Classification(BaseModel):
    """Stored classification."""
    id: int
    name: str
    type: str

    model_config = ConfigDict(from_attributes=True)


class ClassificationListResponse(BaseModel):
    """Response listing classifications."""
    count: int
    classifications: List[Classification]


# =========================================
# Metering Data Models
# =========================================

class MeteringDataInput(BaseModel):
    """Input model for recording a single reading."""
    timestamp: Optional[datetime] = Field(
        default=None,
        description="Timestamp of the reading (ISO 8601, UTC if no offset); now if omitted"
    )
    energy_value: float = Field(..., description="Energy in kWh", ge=0)
    power: float = Field(..., description="Average power in kW", ge=0)
    classification_id: int = Field(..., description="Owning classification")


class MeteringData(BaseModel):
    """Stored metering reading."""
    id: Optional[int] = None
    timestamp: datetime
    energy_value: float
    power: float
    classification_id: int

    model_config = ConfigDict(from_attributes=True)


class MeteringDataListResponse(BaseModel):
    """Response with metering readings."""
    count: int
    readings: List[MeteringData]


class GenerateRequest(BaseModel):
    """Request to synthesize and persist readings."""
    classification_id: int = Field(..., description="Classification for generated data")
    start_date: datetime = Field(..., description="First timestamp")
    end_date: datetime = Field(..., description="Last timestamp (inclusive)")
    interval_minutes: int = Field(
        default=15,
        description="Minutes between readings"
    )
    base_value: float = Field(
        default=10.0,
        description="Base energy consumption per interval (kWh)"
    )
    variance: float = Field(
        default=2.0,
        description="Random variance amount (kWh)",
        ge=0
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "classification_id": 1,
                "start_date": "2024-01-01T00:00:00Z",
                "end_date": "2024-01-07T23:45:00Z",
                "interval_minutes": 15,
                "base_value": 10.0,
                "variance": 2.0
            }
        }
    )


class GenerateResponse(BaseModel):
    """Response from synthetic data generation."""
    success: bool
    classification_id: int
    readings_generated: int
    time_range: Dict[str, datetime]
    readings: List[MeteringData]
    message: str


# =========================================
# EnPI Models
# =========================================

class EnPICalculationRequest(BaseModel):
    """Request to calculate and store an EnPI."""
    name: str = Field(..., min_length=1, max_length=200)
    formula: str = Field(
        ...,
        description="TotalEnergy, EnergyPerHour, MaxPower, or AvgPower"
    )
    classification_id: int
    start_date: datetime
    end_date: datetime
    baseline_start_date: Optional[datetime] = None
    baseline_end_date: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Main Building weekly energy",
                "formula": "TotalEnergy",
                "classification_id": 1,
                "start_date": "2024-02-01T00:00:00Z",
                "end_date": "2024-02-07T23:59:59Z",
                "baseline_start_date": "2024-01-01T00:00:00Z",
                "baseline_end_date": "2024-01-07T23:59:59Z"
            }
        }
    )


class EnPI(BaseModel):
    """Stored Energy Performance Indicator."""
    id: int
    name: str
    formula: str
    current_value: float
    baseline_value: float
    baseline_status: str = Field(
        ...,
        description="not_requested, no_data, or measured"
    )
    improvement_percent: Optional[float] = Field(
        None,
        description="(baseline - current) / baseline * 100, only for a measured non-zero baseline"
    )
    calculation_date: datetime
    classification_id: int


class EnPIListResponse(BaseModel):
    """Response listing EnPIs."""
    count: int
    enpis: List[EnPI]


# =========================================
# Report Models
# =========================================

class ParetoEntry(BaseModel):
    """One row of a Pareto breakdown."""
    key: str
    value: float
    percent_of_total: float
    cumulative_percent: float


class ParetoResponse(BaseModel):
    """Pareto breakdown response."""
    group_by: str
    metric: str
    total: float
    entries: List[ParetoEntry]


class SummaryResponse(BaseModel):
    """Consumption summary response."""
    total_energy: float
    max_power: float
    avg_power: float
    reading_count: int
    first_timestamp: datetime
    last_timestamp: datetime


class HeatmapResponse(BaseModel):
    """Mean power by weekday and hour."""
    days: List[str]
    hours: List[int]
    values: List[List[float]]


class WeekdayProfileResponse(BaseModel):
    """Mean energy per reading by weekday."""
    profile: Dict[str, float]


class DailyConsumptionEntry(BaseModel):
    """Consumption for one UTC calendar day."""
    date: str = Field(..., description="YYYY-MM-DD")
    energy: float = Field(..., description="Total energy (kWh)")
    avg_power: float = Field(..., description="Mean power (kW)")
    reading_count: int


class DailyTrendResponse(BaseModel):
    """Daily consumption trend, oldest day first."""
    count: int
    days: List[DailyConsumptionEntry]


class ClassificationComparisonEntry(BaseModel):
    """Consumption figures for one classification."""
    classification_id: int
    classification: str
    energy: float
    max_power: float
    avg_power: float
    reading_count: int


class ClassificationComparisonResponse(BaseModel):
    """Per-classification comparison, highest energy first."""
    count: int
    classifications: List[ClassificationComparisonEntry]


class EnergyFlowLink(BaseModel):
    """Link between two energy flow nodes, by index into nodes."""
    source: int
    target: int
    value: float


class EnergyFlowResponse(BaseModel):
    """Energy flow from the total through types to classifications."""
    total: float
    nodes: List[str]
    links: List[EnergyFlowLink]


# =========================================
# System Status Models
# =========================================

class SystemHealth(BaseModel):
    """System health check response."""
    status: str = Field(..., description="ok, degraded, or error")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Current server time")
    database: str = Field(..., description="Database connection status")
    components: Dict[str, str] = Field(
        default_factory=dict,
        description="Status of system components"
    )
