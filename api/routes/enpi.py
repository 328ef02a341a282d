"""
Energy Performance Indicator (EnPI) Endpoints

Calculates, stores, lists and deletes EnPIs. Every calculation stores
a new row; EnPIs are never updated in place.

Calculation Flow:
1. Confirm the classification exists
2. Fetch readings for the classification in [start_date, end_date]
3. Fetch baseline readings if a baseline window was given
4. Reduce both sets with the IndicatorEngine
5. Store the result with the calculation timestamp
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from api.database import get_db, from_db_time, DatabaseManager, EnPIRecord
from api.models import EnPI, EnPICalculationRequest, EnPIListResponse
from core.indicators import BaselineStatus, IndicatorEngine, improvement_percent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enpi", tags=["EnPI"])

indicator_engine = IndicatorEngine()


def to_enpi_model(record: EnPIRecord) -> EnPI:
    """Convert a stored EnPI row to its response model."""
    return EnPI(
        id=record.id,
        name=record.name,
        formula=record.formula,
        current_value=record.current_value,
        baseline_value=record.baseline_value,
        baseline_status=record.baseline_status,
        improvement_percent=improvement_percent(
            record.current_value,
            record.baseline_value,
            BaselineStatus(record.baseline_status),
        ),
        calculation_date=from_db_time(record.calculation_date),
        classification_id=record.classification_id,
    )


def calculate_enpi(
    request: EnPICalculationRequest,
    db_manager: DatabaseManager
) -> EnPIRecord:
    """
    Calculate an EnPI and store it.

    Args:
        request: Calculation request
        db_manager: Database manager instance

    Returns:
        The stored EnPI row

    Raises:
        ClassificationNotFoundError: Unknown classification id
        InvalidFormulaError: Unknown formula
        InvalidArgumentError: Inverted or zero-length window
        NoDataError: No readings in [start_date, end_date]
    """
    logger.info(f"Calculating EnPI for classification: {request.classification_id}")

    db_manager.require_classification(request.classification_id)

    readings = db_manager.get_readings(
        request.classification_id, request.start_date, request.end_date
    )

    baseline_readings = None
    if request.baseline_start_date is not None and request.baseline_end_date is not None:
        baseline_readings = db_manager.get_readings(
            request.classification_id,
            request.baseline_start_date,
            request.baseline_end_date,
        )

    result = indicator_engine.calculate(
        request.formula,
        readings,
        request.start_date,
        request.end_date,
        baseline_readings=baseline_readings,
        baseline_start=request.baseline_start_date,
        baseline_end=request.baseline_end_date,
    )

    return db_manager.create_enpi({
        "name": request.name,
        "formula": result.formula.value,
        "current_value": result.current_value,
        "baseline_value": result.baseline_value,
        "baseline_status": result.baseline_status.value,
        "calculation_date": datetime.now(timezone.utc),
        "classification_id": request.classification_id,
    })


@router.get(
    "",
    response_model=EnPIListResponse,
    summary="List EnPIs"
)
async def list_enpis(db: Session = Depends(get_db)):
    """List all calculated EnPIs."""
    logger.info("Getting all EnPIs")
    with DatabaseManager(db) as db_manager:
        records = db_manager.get_all_enpis()
        return EnPIListResponse(
            count=len(records),
            enpis=[to_enpi_model(r) for r in records]
        )


@router.get(
    "/{enpi_id}",
    response_model=EnPI,
    summary="Get EnPI"
)
async def get_enpi(enpi_id: int, db: Session = Depends(get_db)):
    """Get a calculated EnPI by id."""
    with DatabaseManager(db) as db_manager:
        record = db_manager.get_enpi(enpi_id)
        if record is None:
            logger.warning(f"EnPI not found with ID: {enpi_id}")
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"EnPI not found: {enpi_id}"
            )
        return to_enpi_model(record)


@router.post(
    "/calculate",
    response_model=EnPI,
    status_code=status.HTTP_201_CREATED,
    summary="Calculate EnPI",
    description="""
    Calculate an Energy Performance Indicator for a classification over
    `[start_date, end_date]`, optionally against a baseline window.

    **Formulas:**
    - `TotalEnergy`: total kWh
    - `EnergyPerHour`: total kWh divided by the window length in hours
    - `MaxPower`: peak kW
    - `AvgPower`: mean kW

    **Baseline:**
    - No baseline window: `baseline_status = not_requested`, value 0
    - Baseline window without readings: `baseline_status = no_data`, value 0
    - Otherwise `baseline_status = measured` and `improvement_percent` is set
      when the baseline is non-zero
    """
)
async def calculate(request: EnPICalculationRequest, db: Session = Depends(get_db)):
    """Calculate and store an EnPI."""
    with DatabaseManager(db) as db_manager:
        record = calculate_enpi(request, db_manager)
        return to_enpi_model(record)


@router.delete(
    "/{enpi_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete EnPI"
)
async def delete_enpi(enpi_id: int, db: Session = Depends(get_db)):
    """Delete a calculated EnPI."""
    with DatabaseManager(db) as db_manager:
        if not db_manager.delete_enpi(enpi_id):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"EnPI not found: {enpi_id}"
            )
