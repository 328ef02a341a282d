"""
Classification Endpoints

Classifications are the named, typed groupings (buildings, equipment,
production lines) that readings and EnPIs hang off. Deleting one
removes its readings and EnPIs with it.
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from api.database import get_db, DatabaseManager
from api.models import (
    Classification,
    ClassificationInput,
    ClassificationListResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/classifications", tags=["Classifications"])


@router.get(
    "",
    response_model=ClassificationListResponse,
    summary="List classifications"
)
async def list_classifications(db: Session = Depends(get_db)):
    """List all classifications."""
    logger.info("Getting all classifications")
    with DatabaseManager(db) as db_manager:
        records = db_manager.get_all_classifications()
        return ClassificationListResponse(
            count=len(records),
            classifications=[Classification.model_validate(r) for r in records]
        )


@router.get(
    "/{classification_id}",
    response_model=Classification,
    summary="Get classification"
)
async def get_classification(classification_id: int, db: Session = Depends(get_db)):
    """Get a classification by id."""
    with DatabaseManager(db) as db_manager:
        record = db_manager.require_classification(classification_id)
        return Classification.model_validate(record)


@router.post(
    "",
    response_model=Classification,
    status_code=status.HTTP_201_CREATED,
    summary="Create classification"
)
async def create_classification(
    data: ClassificationInput,
    db: Session = Depends(get_db)
):
    """Create a new classification."""
    logger.info(f"Creating new classification: {data.name}")
    with DatabaseManager(db) as db_manager:
        record = db_manager.create_classification(data.name, data.type)
        return Classification.model_validate(record)


@router.put(
    "/{classification_id}",
    response_model=Classification,
    summary="Update classification"
)
async def update_classification(
    classification_id: int,
    data: ClassificationInput,
    db: Session = Depends(get_db)
):
    """Rename or retype a classification."""
    with DatabaseManager(db) as db_manager:
        record = db_manager.update_classification(classification_id, data.name, data.type)
        return Classification.model_validate(record)


@router.delete(
    "/{classification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete classification",
    description="""
    Delete a classification together with all of its metering data
    and calculated EnPIs.

    **Warning:** This action cannot be undone.
    """
)
async def delete_classification(classification_id: int, db: Session = Depends(get_db)):
    """Delete a classification and its dependent rows."""
    with DatabaseManager(db) as db_manager:
        db_manager.delete_classification(classification_id)
        logger.info(f"Deleted classification {classification_id}")
