"""
Metering Data Endpoints

This module handles metering readings: listing and filtering stored
readings, recording individual readings, synthesizing sample series,
and exporting readings as CSV.

Generation Flow:
1. Validate the request (positive classification id and interval)
2. Confirm the classification exists
3. Generate readings with the injected random source
4. Persist all readings in one transaction
5. Return the persisted readings
"""

import os
import logging
import random
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from api.database import get_db, DatabaseManager
from api.models import (
    GenerateRequest,
    GenerateResponse,
    MeteringData,
    MeteringDataInput,
    MeteringDataListResponse,
)
from core.analysis import export_readings_csv
from core.readings import Reading, validate_window
from engine.generator import GenerationRequest, generate_readings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/metering-data", tags=["Metering Data"])


def build_rng() -> random.Random:
    """
    Random source for synthetic generation.

    Seeded from SYNTHETIC_DATA_SEED when set, so a deployment can
    produce repeatable demo data.
    """
    seed = os.getenv("SYNTHETIC_DATA_SEED")
    return random.Random(int(seed)) if seed else random.Random()


def generate_metering_data(
    request: GenerationRequest,
    db_manager: DatabaseManager,
    rng: Optional[random.Random] = None
) -> List[Reading]:
    """
    Generate and persist synthetic readings for a classification.

    Args:
        request: Generation parameters
        db_manager: Database manager instance
        rng: Random source for the noise term

    Returns:
        Persisted readings with ids

    Raises:
        InvalidArgumentError: Non-positive id or interval, inverted range
        ClassificationNotFoundError: Unknown classification id
    """
    request.validate()
    db_manager.require_classification(request.classification_id)

    readings = generate_readings(request, rng=rng)
    persisted = db_manager.insert_readings(readings)

    logger.info(
        f"Generated {len(persisted)} data points for classification "
        f"{request.classification_id}"
    )
    return persisted


def _check_window(
    start_date: Optional[datetime],
    end_date: Optional[datetime],
    classification_id: Optional[int]
) -> None:
    if start_date is not None and end_date is not None:
        validate_window(start_date, end_date, classification_id=classification_id)


# =========================================
# Query Endpoints
# =========================================

@router.get(
    "",
    response_model=MeteringDataListResponse,
    summary="List metering data",
    description="""
    Get stored readings, optionally filtered by classification and an
    inclusive `[start_date, end_date]` window.
    """
)
async def list_metering_data(
    classification_id: Optional[int] = Query(default=None, description="Classification filter"),
    start_date: Optional[datetime] = Query(default=None, description="Earliest timestamp"),
    end_date: Optional[datetime] = Query(default=None, description="Latest timestamp"),
    db: Session = Depends(get_db)
):
    """List readings."""
    logger.info("Getting filtered metering data")
    _check_window(start_date, end_date, classification_id)

    with DatabaseManager(db) as db_manager:
        readings = db_manager.get_readings(classification_id, start_date, end_date)
        return MeteringDataListResponse(
            count=len(readings),
            readings=[MeteringData.model_validate(r) for r in readings]
        )


@router.get(
    "/export",
    summary="Export metering data as CSV",
    response_class=Response,
    responses={200: {"content": {"text/csv": {}}}}
)
async def export_metering_data(
    classification_id: Optional[int] = Query(default=None),
    start_date: Optional[datetime] = Query(default=None),
    end_date: Optional[datetime] = Query(default=None),
    db: Session = Depends(get_db)
):
    """Export readings as a CSV download."""
    _check_window(start_date, end_date, classification_id)

    with DatabaseManager(db) as db_manager:
        if classification_id is not None:
            db_manager.require_classification(classification_id)
        readings = db_manager.get_readings(classification_id, start_date, end_date)
        csv_text = export_readings_csv(readings, db_manager.get_classification_names())

    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="metering-data.csv"'}
    )


# =========================================
# Ingestion Endpoints
# =========================================

@router.post(
    "",
    response_model=MeteringData,
    status_code=status.HTTP_201_CREATED,
    summary="Record a reading"
)
async def create_metering_data(
    data: MeteringDataInput,
    db: Session = Depends(get_db)
):
    """Record a single reading."""
    with DatabaseManager(db) as db_manager:
        db_manager.require_classification(data.classification_id)

        reading = Reading(
            timestamp=data.timestamp or datetime.now(timezone.utc),
            energy_value=data.energy_value,
            power=data.power,
            classification_id=data.classification_id,
        )
        persisted = db_manager.insert_readings([reading])
        return MeteringData.model_validate(persisted[0])


@router.post(
    "/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Generate synthetic metering data",
    description="""
    Synthesize readings for a classification from `start_date` through
    `end_date` inclusive and store them.

    **Shape:**
    - Business hours (08:00-17:59) follow a midday peak curve
    - Evenings (18:00-22:59) run at 70% of base, nights at 30%
    - Weekends run at 60% of weekdays
    - Uniform noise of +/- `variance` kWh, floored at zero

    Power is derived as `energy_value * 60 / interval_minutes`.
    """
)
async def generate_synthetic_data(
    request: GenerateRequest,
    db: Session = Depends(get_db)
):
    """Generate and store synthetic readings."""
    generation = GenerationRequest(
        classification_id=request.classification_id,
        start=request.start_date,
        end=request.end_date,
        interval_minutes=request.interval_minutes,
        base_value=request.base_value,
        variance=request.variance,
    )

    with DatabaseManager(db) as db_manager:
        readings = generate_metering_data(generation, db_manager, rng=build_rng())

    return GenerateResponse(
        success=True,
        classification_id=request.classification_id,
        readings_generated=len(readings),
        time_range={"start": request.start_date, "end": request.end_date},
        readings=[MeteringData.model_validate(r) for r in readings],
        message=f"Generated {len(readings)} readings"
    )
