"""
Relationship Models
===================

Relationships (a named pairing or group), their members, invitations
and per-member relationship profiles.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
import uuid

from sqlalchemy import (
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, CreatedAtMixin, TimestampMixin


class RelationshipType(str, Enum):
    """Kinds of relationship a user can track."""
    ROMANTIC = "romantic"
    WORK = "work"
    FAMILY = "family"
    FRIEND = "friend"
    OTHER = "other"


class MemberRole(str, Enum):
    """Role of a user within a relationship."""
    OWNER = "owner"
    MEMBER = "member"


class InvitationStatus(str, Enum):
    """Invitation lifecycle states."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


class Relationship(Base, TimestampMixin):
    """
    Relationship model.

    A named pairing or group of users with a type tag.
    """

    __tablename__ = "relationships"

    relationship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
    )
    relationship_type: Mapped[RelationshipType] = mapped_column(
        SQLEnum(RelationshipType),
        nullable=False,
        default=RelationshipType.ROMANTIC,
    )
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    # When the relationship started; drives the relationship-stage label
    start_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )

    members: Mapped[list["RelationshipMember"]] = relationship(
        "RelationshipMember",
        back_populates="parent",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def member_ids(self) -> list[uuid.UUID]:
        return [m.user_id for m in self.members]

    def __repr__(self) -> str:
        return f"<Relationship(id={self.relationship_id}, type={self.relationship_type})>"


class RelationshipMember(Base):
    """Join row between a user and a relationship."""

    __tablename__ = "relationship_members"
    __mapper_args__ = {"eager_defaults": True}

    member_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    relationship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[MemberRole] = mapped_column(
        SQLEnum(MemberRole),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    parent: Mapped["Relationship"] = relationship(
        "Relationship",
        back_populates="members",
    )

    __table_args__ = (
        UniqueConstraint("relationship_id", "user_id", name="uq_relationship_member"),
        Index("idx_relationship_members_user", "user_id"),
    )


class RelationshipInvitation(Base, CreatedAtMixin):
    """Record of a member inviting someone by email."""

    __tablename__ = "relationship_invitations"

    invitation_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    relationship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=False,
    )
    invited_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="SET NULL"),
        nullable=True,
    )
    invitee_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    status: Mapped[InvitationStatus] = mapped_column(
        SQLEnum(InvitationStatus),
        nullable=False,
        default=InvitationStatus.PENDING,
    )


class RelationshipProfile(Base, TimestampMixin):
    """
    Per-relationship onboarding answers of a single member.
    """

    __tablename__ = "relationship_profiles"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        nullable=False,
    )
    relationship_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("relationships.relationship_id", ondelete="CASCADE"),
        nullable=False,
    )
    perceived_closeness: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    communication_frequency: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    preferred_interaction_style: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    relationship_expectations: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )
    interaction_preferences: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "relationship_id", name="uq_relationship_profile_user"),
    )
