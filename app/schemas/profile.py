"""
Profile Schemas
===============

Pydantic schemas for user profile endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class NotificationPreferences(BaseModel):
    """Notification preferences schema."""

    notifications_enabled: bool = True
    daily_checkin_reminder: Optional[str] = "20:00"
    partner_suggestion_alerts: bool = True
    weekly_summary: bool = True


class ProfileUpdate(BaseModel):
    """Request schema for PATCH /profile. Only provided fields change."""

    full_name: Optional[str] = Field(None, max_length=255)
    timezone: Optional[str] = Field(None, max_length=50)
    notification_preferences: Optional[NotificationPreferences] = None
    relationship_goals: Optional[list[str]] = None
