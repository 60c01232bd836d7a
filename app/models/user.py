"""
User Model
==========

Application-side mirror of a Supabase auth identity.

The primary key equals the ``sub`` claim of the Supabase access token,
so the row is created on first authenticated request.
"""

from typing import TYPE_CHECKING, Optional
import uuid

from sqlalchemy import String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.subscription import PremiumSubscription


class User(Base, TimestampMixin):
    """
    User account model.

    Stores profile information and notification preferences.
    """

    __tablename__ = "users"

    # Primary Key (Supabase auth.users.id)
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    # Account fields
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    full_name: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    avatar_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    # Preferences
    timezone: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
        default="UTC",
    )
    notification_preferences: Mapped[Optional[dict]] = mapped_column(
        JSONB,
        nullable=True,
        default=dict,
    )
    relationship_goals: Mapped[Optional[list]] = mapped_column(
        JSONB,
        nullable=True,
        default=list,
    )

    # Relationships
    premium_subscription: Mapped[Optional["PremiumSubscription"]] = relationship(
        "PremiumSubscription",
        back_populates="user",
        uselist=False,
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<User(user_id={self.user_id}, email={self.email})>"
