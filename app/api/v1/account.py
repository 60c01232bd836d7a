"""
Account API Endpoints
=====================

Self-service account deletion.
"""

from typing import Annotated
import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ForbiddenError
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.schemas.common import BaseResponse
from app.services.account_service import AccountService

router = APIRouter()


@router.delete(
    "/{user_id}",
    response_model=BaseResponse[dict],
)
async def delete_account(
    user_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Permanently delete the caller's account.

    Relationships the caller created are removed for every member;
    relationships they only joined are left. The Supabase login is
    deleted last; if that fails the response carries a ``warning``.
    """
    if user_id != current_user.user_id:
        raise ForbiddenError(
            code=ErrorCodes.ACCOUNT_DELETE_FORBIDDEN,
            message="You can only delete your own account",
        )

    result = await AccountService(db).delete_account(user_id)
    return BaseResponse(
        data=result,
        message=result.get("warning") or "Account deleted",
    )
