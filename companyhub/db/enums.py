"""Enum definitions for application constants."""

from enum import Enum


class Role(str, Enum):
    """
    Per-company membership roles.

    - ADMIN: full control of the company (users, settings, deletions)
    - MANAGER: day-to-day management (locations, surveys, announcements)
    - MEMBER: regular employee
    - VIEWER: read-only access
    """

    ADMIN = "admin"
    MANAGER = "manager"
    MEMBER = "member"
    VIEWER = "viewer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class NotificationType(str, Enum):
    """Types of in-app notifications."""

    SURVEY_AVAILABLE = "survey_available"
    ANNOUNCEMENT = "announcement"
    LOCATION_ASSIGNMENT = "location_assignment"
    GOAL_UPDATE = "goal_update"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class NotificationStatus(str, Enum):
    """Notification lifecycle: unread -> read -> dismissed."""

    UNREAD = "unread"
    READ = "read"
    DISMISSED = "dismissed"


class NotificationChannel(str, Enum):
    """Delivery channels a preference row toggles."""

    IN_APP = "in_app"
    EMAIL = "email"
    PUSH = "push"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


DEFAULT_MEMBER_ROLE = Role.MEMBER
DEFAULT_NOTIFICATION_STATUS = NotificationStatus.UNREAD
