"""Notification and notification preference Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from companyhub.db.enums import NotificationType


class NotificationRead(BaseModel):
    """Notification response."""
    id: UUID
    type: str
    title: str
    message: str
    data: dict[str, Any]
    status: str
    read_at: datetime | None
    dismissed_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Paginated notification list."""
    items: list[NotificationRead]
    unread_count: int


class UnreadCountResponse(BaseModel):
    """Unread count only (for polling)."""
    count: int


class MarkAllReadResponse(BaseModel):
    marked_read: int


class PreferenceRead(BaseModel):
    type: NotificationType
    label: str
    description: str
    email_enabled: bool
    in_app_enabled: bool
    push_enabled: bool


class PreferenceUpdate(BaseModel):
    """Partial channel update; omitted channels keep their current value."""
    email_enabled: bool | None = None
    in_app_enabled: bool | None = None
    push_enabled: bool | None = None


class PreferenceBulkItem(PreferenceUpdate):
    type: NotificationType


class PreferenceBulkUpdate(BaseModel):
    preferences: list[PreferenceBulkItem] = Field(min_length=1)


class NotificationStatistics(BaseModel):
    total: int
    unread: int
    read: int
    dismissed: int
    recent: int
    by_type: dict[str, int] = {}


class CleanupRequest(BaseModel):
    days: int = Field(default=90, ge=1)


class CleanupResponse(BaseModel):
    deleted_count: int
