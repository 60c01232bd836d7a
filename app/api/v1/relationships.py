"""
Relationships API Endpoints
===========================

Relationships, membership and partner-suggestion generation.

Every relationship-scoped endpoint requires the caller to be a member:
an unknown id is 404, a non-member gets 403.
"""

from typing import Annotated
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.feature_limits import FeatureGate
from app.core.rate_limit import create_rate_limit_dependency
from app.db.session import get_db
from app.dependencies import CurrentUser
from app.models.relationship import Relationship
from app.schemas.common import BaseResponse
from app.schemas.insight import PartnerSuggestionResponse
from app.schemas.relationship import (
    InviteRequest,
    MemberResponse,
    RelationshipCreate,
    RelationshipResponse,
    RelationshipSuggestionsRequest,
)
from app.services.relationship_service import RelationshipService
from app.services.suggestion_service import SuggestionService

router = APIRouter()


def relationship_to_response(relationship: Relationship) -> RelationshipResponse:
    return RelationshipResponse(
        relationship_id=relationship.relationship_id,
        name=relationship.name,
        relationship_type=relationship.relationship_type,
        created_by=relationship.created_by,
        start_date=relationship.start_date,
        members=[
            MemberResponse(user_id=m.user_id, role=m.role, joined_at=m.joined_at)
            for m in relationship.members
        ],
        created_at=relationship.created_at,
    )


@router.get(
    "",
    response_model=BaseResponse[list[RelationshipResponse]],
)
async def list_relationships(
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    relationships = await RelationshipService(db).list_for_user(current_user.user_id)
    return BaseResponse(data=[relationship_to_response(r) for r in relationships])


@router.post(
    "",
    response_model=BaseResponse[RelationshipResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(create_rate_limit_dependency("create"))],
)
async def create_relationship(
    body: RelationshipCreate,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Create a relationship; the caller becomes its owner."""
    relationship = await RelationshipService(db).create(
        current_user.user_id,
        name=body.name,
        relationship_type=body.relationship_type,
        start_date=body.start_date,
    )
    return BaseResponse(
        data=relationship_to_response(relationship),
        message="Relationship created",
    )


@router.get(
    "/{relationship_id}",
    response_model=BaseResponse[RelationshipResponse],
)
async def get_relationship(
    relationship_id: uuid.UUID,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    relationship = await RelationshipService(db).require_member(relationship_id, current_user.user_id)
    return BaseResponse(data=relationship_to_response(relationship))


@router.post(
    "/{relationship_id}/invite",
    response_model=BaseResponse[dict],
)
async def invite_member(
    relationship_id: uuid.UUID,
    body: InviteRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Add a registered user to the relationship by email.

    Inviting someone who is already a member is not an error.
    """
    service = RelationshipService(db)
    relationship = await service.require_member(relationship_id, current_user.user_id)
    added, invitee = await service.invite(relationship, current_user.user_id, body.email)

    if not added:
        return BaseResponse(
            data={"user_id": str(invitee.user_id), "added": False},
            message="User is already a member of this relationship",
        )

    return BaseResponse(
        data={"user_id": str(invitee.user_id), "added": True},
        message=f"{invitee.full_name or invitee.email} was added to {relationship.name}",
    )


@router.post(
    "/{relationship_id}/suggestions",
    response_model=BaseResponse[dict],
    dependencies=[
        Depends(FeatureGate("partner_suggestions")),
        Depends(create_rate_limit_dependency("ai")),
    ],
)
async def generate_relationship_suggestions(
    relationship_id: uuid.UUID,
    body: RelationshipSuggestionsRequest,
    current_user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """
    Generate suggestions for every member from the other members' journals.

    Requires premium and at least two members.
    """
    relationship = await RelationshipService(db).require_member(relationship_id, current_user.user_id)
    result = await SuggestionService(db).generate_for_relationship(
        relationship,
        timeframe_hours=body.timeframe_hours,
        max_suggestions=body.max_suggestions,
    )

    return BaseResponse(
        data={
            "suggestions": [
                PartnerSuggestionResponse.model_validate(s).model_dump(mode="json")
                for s in result["suggestions"]
            ],
            "processing_stats": result["processing_stats"],
        },
        message=f"Generated {len(result['suggestions'])} suggestions",
    )
