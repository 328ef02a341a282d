"""
Report Endpoints

Read-only aggregations over stored readings:
- Pareto breakdown by classification, weekday, or hour of day
- Consumption summary (total energy, peak and mean power)
- Weekday x hour heatmap of mean power
- Weekday profile of mean energy
- Daily consumption trend
- Per-classification comparison
- Energy flow (total -> classification type -> classification)

All endpoints accept the same optional filters: classification_id and
an inclusive [start_date, end_date] window. An unknown classification
is a 404; an empty selection is a NoData error (HTTP 400).
"""

import logging
from dataclasses import asdict
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from api.database import get_db, DatabaseManager
from api.models import (
    ClassificationComparisonEntry,
    ClassificationComparisonResponse,
    DailyConsumptionEntry,
    DailyTrendResponse,
    EnergyFlowResponse,
    HeatmapResponse,
    ParetoEntry,
    ParetoResponse,
    SummaryResponse,
    WeekdayProfileResponse,
)
from core.analysis import (
    classification_comparison,
    daily_trend,
    energy_flow,
    hourly_heatmap,
    weekday_profile,
)
from core.readings import Reading, validate_window
from core.reports import pareto_report, summarize

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


def _select_readings(
    db_manager: DatabaseManager,
    classification_id: Optional[int],
    start_date: Optional[datetime],
    end_date: Optional[datetime]
) -> List[Reading]:
    if classification_id is not None:
        db_manager.require_classification(classification_id)
    if start_date is not None and end_date is not None:
        validate_window(start_date, end_date, classification_id=classification_id)
    return db_manager.get_readings(classification_id, start_date, end_date)


@router.get(
    "/pareto",
    response_model=ParetoResponse,
    summary="Pareto analysis",
    description="""
    Group readings and rank the groups by consumption.

    **group_by:** `classification`, `dayOfWeek`, `hourOfDay`

    **metric:**
    - `energy`: total kWh per group
    - `power`: peak kW per group
    """
)
async def get_pareto(
    group_by: str = Query(default="classification"),
    metric: str = Query(default="energy"),
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Pareto breakdown of consumption."""
    logger.info(f"Generating Pareto analysis grouped by {group_by} on {metric}")

    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, classification_id, start_date, end_date)
        entries = pareto_report(
            readings,
            group_by=group_by,
            metric=metric,
            classification_names=db_manager.get_classification_names(),
        )

    return ParetoResponse(
        group_by=group_by,
        metric=metric,
        total=sum(e.value for e in entries),
        entries=[
            ParetoEntry(
                key=str(e.key),
                value=e.value,
                percent_of_total=e.percent_of_total,
                cumulative_percent=e.cumulative_percent,
            )
            for e in entries
        ]
    )


@router.get(
    "/summary",
    response_model=SummaryResponse,
    summary="Consumption summary"
)
async def get_summary(
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Total energy, peak power and mean power."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, classification_id, start_date, end_date)
    summary = summarize(readings)
    return SummaryResponse(**asdict(summary))


@router.get(
    "/heatmap",
    response_model=HeatmapResponse,
    summary="Weekday x hour power heatmap"
)
async def get_heatmap(
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Mean power for each weekday and hour, Monday first."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, classification_id, start_date, end_date)
    grid = hourly_heatmap(readings)
    return HeatmapResponse(**grid.to_dict())


@router.get(
    "/weekday",
    response_model=WeekdayProfileResponse,
    summary="Weekday energy profile"
)
async def get_weekday_profile(
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Mean energy per reading for each weekday."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, classification_id, start_date, end_date)
    return WeekdayProfileResponse(profile=weekday_profile(readings))


@router.get(
    "/daily-trend",
    response_model=DailyTrendResponse,
    summary="Daily consumption trend"
)
async def get_daily_trend(
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Energy total and mean power per UTC day."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, classification_id, start_date, end_date)
    days = daily_trend(readings)
    return DailyTrendResponse(
        count=len(days),
        days=[DailyConsumptionEntry(**d.to_dict()) for d in days]
    )


@router.get(
    "/comparison",
    response_model=ClassificationComparisonResponse,
    summary="Classification comparison"
)
async def get_classification_comparison(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Energy, peak power and mean power for each classification."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, None, start_date, end_date)
        rows = classification_comparison(readings, db_manager.get_classification_names())
    return ClassificationComparisonResponse(
        count=len(rows),
        classifications=[ClassificationComparisonEntry(**r.to_dict()) for r in rows]
    )


@router.get(
    "/energy-flow",
    response_model=EnergyFlowResponse,
    summary="Energy flow",
    description="""
    Sankey nodes and links for energy flowing from the total (node 0)
    through each classification type to each classification. Link
    values are energy in kWh.
    """
)
async def get_energy_flow(
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Energy flow by classification type and classification."""
    with DatabaseManager(db) as db_manager:
        readings = _select_readings(db_manager, None, start_date, end_date)
        flow = energy_flow(
            readings,
            classification_names=db_manager.get_classification_names(),
            classification_types=db_manager.get_classification_types(),
        )
    return EnergyFlowResponse(**flow.to_dict())
