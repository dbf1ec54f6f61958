"""Activity recording endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from uuid import UUID

from rideboard.database import get_db
from rideboard.dependencies import get_current_subject_id
from rideboard.schemas.activity import ActivityCreate, ActivityResponse
from rideboard.services.activity_service import ActivityError, ActivityService

router = APIRouter()


@router.post("", response_model=ActivityResponse, status_code=201)
async def record_activity(
    payload: ActivityCreate,
    subject_id: UUID = Depends(get_current_subject_id),
    db: AsyncSession = Depends(get_db),
):
    """Record a finished activity for the authenticated rider."""
    service = ActivityService(db)
    try:
        activity = await service.record_activity(subject_id, payload)
    except ActivityError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e

    return ActivityResponse.model_validate(activity)
