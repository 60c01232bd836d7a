"""
Relationship Service
====================

Relationships, membership checks and invitations.
"""

import logging
from typing import Optional
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import ErrorCodes, ForbiddenError, NotFoundError
from app.models.relationship import (
    InvitationStatus,
    MemberRole,
    Relationship,
    RelationshipInvitation,
    RelationshipMember,
)
from app.models.user import User

logger = logging.getLogger(__name__)


class RelationshipService:
    """Service for relationship operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, relationship_id: uuid.UUID) -> Optional[Relationship]:
        result = await self.db.execute(
            select(Relationship).where(Relationship.relationship_id == relationship_id)
        )
        return result.scalar_one_or_none()

    async def require_member(
        self,
        relationship_id: uuid.UUID,
        user_id: uuid.UUID,
    ) -> Relationship:
        """
        Return the relationship if ``user_id`` belongs to it.

        Raises:
            NotFoundError: relationship does not exist
            ForbiddenError: caller is not a member
        """
        relationship = await self.get(relationship_id)
        if relationship is None:
            raise NotFoundError(
                code=ErrorCodes.REL_NOT_FOUND,
                message="Relationship not found",
            )

        if user_id not in relationship.member_ids:
            raise ForbiddenError(
                code=ErrorCodes.FORBIDDEN,
                message="You are not a member of this relationship",
            )

        return relationship

    async def list_for_user(self, user_id: uuid.UUID) -> list[Relationship]:
        """Relationships the user belongs to, oldest first."""
        stmt = (
            select(Relationship)
            .join(RelationshipMember, RelationshipMember.relationship_id == Relationship.relationship_id)
            .where(RelationshipMember.user_id == user_id)
            .order_by(Relationship.created_at.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().unique().all())

    async def create(
        self,
        user_id: uuid.UUID,
        name: str,
        relationship_type,
        start_date=None,
    ) -> Relationship:
        """Create a relationship with the creator as its owner."""
        relationship = Relationship(
            name=name,
            relationship_type=relationship_type,
            created_by=user_id,
            start_date=start_date,
        )
        relationship.members = [
            RelationshipMember(user_id=user_id, role=MemberRole.OWNER),
        ]
        self.db.add(relationship)
        await self.db.flush()

        logger.info("Relationship %s created by %s", relationship.relationship_id, user_id)
        return relationship

    async def invite(
        self,
        relationship: Relationship,
        invited_by: uuid.UUID,
        email: str,
    ) -> tuple[bool, User]:
        """
        Add the user registered under ``email`` as a member.

        Returns:
            ``(added, invitee)``; ``added`` is False when they were already a member.
        """
        result = await self.db.execute(
            select(User).where(func.lower(User.email) == email.strip().lower())
        )
        invitee = result.scalar_one_or_none()
        if invitee is None:
            raise NotFoundError(
                code=ErrorCodes.REL_INVITEE_NOT_FOUND,
                message="No user found with that email address",
            )

        if invitee.user_id in relationship.member_ids:
            return False, invitee

        relationship.members.append(
            RelationshipMember(user_id=invitee.user_id, role=MemberRole.MEMBER)
        )
        self.db.add(
            RelationshipInvitation(
                relationship_id=relationship.relationship_id,
                invited_by=invited_by,
                invitee_email=invitee.email,
                status=InvitationStatus.ACCEPTED,
            )
        )
        await self.db.flush()

        logger.info(
            "User %s added to relationship %s", invitee.user_id, relationship.relationship_id
        )
        return True, invitee

    async def member_names(self, user_ids: list[uuid.UUID]) -> dict[uuid.UUID, str]:
        """Display name per user id: full name, then email, then an id prefix."""
        if not user_ids:
            return {}
        result = await self.db.execute(select(User).where(User.user_id.in_(user_ids)))
        names = {
            user.user_id: user.full_name or user.email
            for user in result.scalars().all()
        }
        return {
            user_id: names.get(user_id) or f"User {str(user_id)[:8]}"
            for user_id in user_ids
        }
