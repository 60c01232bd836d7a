"""
Onboarding Models
=================

Universal (relationship-independent) personality profile collected during
onboarding. Per-relationship answers live in ``RelationshipProfile``.
"""

from typing import Optional
import uuid

from sqlalchemy import Float, ForeignKey, Integer, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base import Base, TimestampMixin


class UniversalUserProfile(Base, TimestampMixin):
    """
    FIRO needs, attachment style and communication preferences.
    """

    __tablename__ = "universal_user_profiles"

    profile_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.user_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # FIRO-B needs (1-10)
    inclusion_need: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    control_need: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    affection_need: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Attachment
    attachment_style: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    attachment_confidence: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Communication
    communication_directness: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    communication_assertiveness: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    communication_context: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    support_preference: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    conflict_style: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Love languages
    love_language_receive: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    love_language_give: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def __repr__(self) -> str:
        return f"<UniversalUserProfile(user_id={self.user_id}, attachment={self.attachment_style})>"
