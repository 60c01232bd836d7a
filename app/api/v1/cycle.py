"""
Cycle API Endpoints
===================

Menstrual cycle tracking. A user has at most one active cycle.
"""

from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.schemas.cycle import CycleCreate, CyclePrediction, CycleResponse, CycleUpdate
from app.services.cycle_service import CycleService

router = APIRouter()


@router.post(
    "",
    response_model=BaseResponse[CycleResponse],
    status_code=status.HTTP_201_CREATED,
)
async def start_cycle(
    body: CycleCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Start a new cycle; any previously active cycle is deactivated."""
    cycle = await CycleService(db).start_cycle(current_user.user_id, body.model_dump())
    return BaseResponse(data=CycleResponse.model_validate(cycle), message="Cycle started")


@router.get(
    "/active",
    response_model=BaseResponse[CycleResponse],
)
async def get_active_cycle(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    cycle = await CycleService(db).get_active(current_user.user_id)
    return BaseResponse(data=CycleResponse.model_validate(cycle) if cycle else None)


@router.get(
    "/predict",
    response_model=BaseResponse[CyclePrediction],
)
async def predict_phase(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Current phase of the active cycle with a suggestion for the partner."""
    prediction = await CycleService(db).predict(current_user.user_id)
    return BaseResponse(data=CyclePrediction(**prediction))


@router.patch(
    "/{cycle_id}",
    response_model=BaseResponse[CycleResponse],
)
async def update_cycle(
    cycle_id: uuid.UUID,
    body: CycleUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    cycle = await CycleService(db).update_cycle(
        cycle_id,
        current_user.user_id,
        body.model_dump(exclude_unset=True),
    )
    return BaseResponse(data=CycleResponse.model_validate(cycle), message="Cycle updated")


@router.delete(
    "/{cycle_id}",
    response_model=BaseResponse[dict],
)
async def delete_cycle(
    cycle_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    await CycleService(db).delete_cycle(cycle_id, current_user.user_id)
    return BaseResponse(data={"cycle_id": str(cycle_id), "deleted": True}, message="Cycle deleted")
