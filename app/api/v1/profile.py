"""
Profile API Endpoints
=====================

Handles user profile retrieval and updates.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, NotFoundError
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.models.user import User
from app.schemas.common import BaseResponse
from app.schemas.profile import NotificationPreferences, ProfileUpdate
from app.services.cache import CacheInvalidator, CacheKeys, CacheManager
from app.services.premium_service import build_status_payload

router = APIRouter()


def _profile_payload(user: User) -> dict:
    prefs = NotificationPreferences(**(user.notification_preferences or {}))
    return {
        "user": {
            "user_id": str(user.user_id),
            "email": user.email,
            "full_name": user.full_name,
            "avatar_url": user.avatar_url,
            "timezone": user.timezone,
            "created_at": user.created_at.isoformat() if user.created_at else None,
        },
        "subscription": build_status_payload(user.premium_subscription),
        "preferences": prefs.model_dump(),
        "relationship_goals": user.relationship_goals or [],
    }


@router.get(
    "",
    response_model=BaseResponse[dict],
)
async def get_profile(current_user: CurrentUser):
    """
    Get complete user profile.

    Includes user info, premium status, notification preferences and goals.
    """
    user_id_str = str(current_user.user_id)

    cached = await CacheManager.get(CacheKeys.profile(user_id_str))
    if cached:
        return BaseResponse(data=cached)

    profile_data = _profile_payload(current_user)
    await CacheManager.set(
        CacheKeys.profile(user_id_str),
        profile_data,
        ttl=CacheManager.TTL_SHORT,
    )

    return BaseResponse(data=profile_data)


@router.patch(
    "",
    response_model=BaseResponse[dict],
)
async def update_profile(
    profile_data: ProfileUpdate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Update user profile.

    Allows updating name, timezone, notification preferences and goals.
    """
    # CurrentUser may come from the auth cache, detached from this session
    result = await db.execute(select(User).where(User.user_id == current_user.user_id))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError(code=ErrorCodes.USER_NOT_FOUND, message="User not found")

    if profile_data.full_name is not None:
        user.full_name = profile_data.full_name

    if profile_data.timezone is not None:
        user.timezone = profile_data.timezone

    if profile_data.notification_preferences is not None:
        user.notification_preferences = profile_data.notification_preferences.model_dump()

    if profile_data.relationship_goals is not None:
        user.relationship_goals = profile_data.relationship_goals

    await db.flush()
    await db.refresh(user, attribute_names=["updated_at"])

    await CacheInvalidator.on_profile_update(str(user.user_id))

    return BaseResponse(
        data={
            "user_id": str(user.user_id),
            "full_name": user.full_name,
            "timezone": user.timezone,
            "notification_preferences": user.notification_preferences,
            "relationship_goals": user.relationship_goals or [],
            "updated_at": user.updated_at.isoformat() if user.updated_at else None,
        },
        message="Profile updated successfully",
    )
