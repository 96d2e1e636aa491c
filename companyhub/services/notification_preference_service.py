"""
Notification preference resolver.

Single source of truth for channel defaults: a missing preference row
means "use CHANNEL_DEFAULTS", while an existing row is binding for all
three channels.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from companyhub.core.errors import ValidationFailedError
from companyhub.db.enums import NotificationChannel, NotificationType
from companyhub.db.models import NotificationPreference


logger = logging.getLogger(__name__)


CHANNEL_DEFAULTS: dict[NotificationChannel, bool] = {
    NotificationChannel.IN_APP: True,
    NotificationChannel.EMAIL: True,
    NotificationChannel.PUSH: False,
}

# Column backing each channel on NotificationPreference
_CHANNEL_COLUMNS: dict[NotificationChannel, str] = {
    NotificationChannel.IN_APP: "in_app_enabled",
    NotificationChannel.EMAIL: "email_enabled",
    NotificationChannel.PUSH: "push_enabled",
}

# Display catalog for the preferences screen
NOTIFICATION_TYPE_INFO: dict[NotificationType, dict[str, str]] = {
    NotificationType.SURVEY_AVAILABLE: {
        "label": "New Surveys",
        "description": "Get notified when new surveys are available",
    },
    NotificationType.ANNOUNCEMENT: {
        "label": "Announcements",
        "description": "Get notified about company announcements",
    },
    NotificationType.LOCATION_ASSIGNMENT: {
        "label": "Location Assignments",
        "description": "Get notified when you are assigned to a location",
    },
    NotificationType.GOAL_UPDATE: {
        "label": "Goal Updates",
        "description": "Get notified when company goals are updated",
    },
}


def _validate_type(notification_type: NotificationType | str) -> NotificationType:
    if isinstance(notification_type, NotificationType):
        return notification_type
    if not NotificationType.has_value(notification_type):
        allowed = ", ".join(t.value for t in NotificationType)
        raise ValidationFailedError(
            f"Unknown notification type '{notification_type}'",
            errors={"type": [f"Must be one of: {allowed}"]},
        )
    return NotificationType(notification_type)


def _validate_channel(channel: NotificationChannel | str) -> NotificationChannel:
    if isinstance(channel, NotificationChannel):
        return channel
    if not NotificationChannel.has_value(channel):
        allowed = ", ".join(c.value for c in NotificationChannel)
        raise ValidationFailedError(
            f"Unknown channel '{channel}'",
            errors={"channel": [f"Must be one of: {allowed}"]},
        )
    return NotificationChannel(channel)


def _serialize(
    email_enabled: bool, in_app_enabled: bool, push_enabled: bool
) -> dict[str, bool]:
    return {
        "email_enabled": email_enabled,
        "in_app_enabled": in_app_enabled,
        "push_enabled": push_enabled,
    }


def _defaults() -> dict[str, bool]:
    return _serialize(
        email_enabled=CHANNEL_DEFAULTS[NotificationChannel.EMAIL],
        in_app_enabled=CHANNEL_DEFAULTS[NotificationChannel.IN_APP],
        push_enabled=CHANNEL_DEFAULTS[NotificationChannel.PUSH],
    )


def get_preference(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    notification_type: NotificationType | str,
) -> NotificationPreference | None:
    notification_type = _validate_type(notification_type)
    return (
        db.query(NotificationPreference)
        .filter(
            NotificationPreference.user_id == user_id,
            NotificationPreference.company_id == company_id,
            NotificationPreference.notification_type == notification_type.value,
        )
        .first()
    )


def is_enabled(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    notification_type: NotificationType | str,
    channel: NotificationChannel | str = NotificationChannel.IN_APP,
) -> bool:
    """Whether a channel fires for this user/company/type."""
    channel = _validate_channel(channel)
    preference = get_preference(db, user_id, company_id, notification_type)
    if preference is None:
        return CHANNEL_DEFAULTS[channel]
    return bool(getattr(preference, _CHANNEL_COLUMNS[channel]))


def get_or_default(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    notification_type: NotificationType | str,
) -> dict[str, bool]:
    """
    Resolved channel flags for display.

    Read-only: never creates a preference row.
    """
    preference = get_preference(db, user_id, company_id, notification_type)
    if preference is None:
        return _defaults()
    return _serialize(
        email_enabled=preference.email_enabled,
        in_app_enabled=preference.in_app_enabled,
        push_enabled=preference.push_enabled,
    )


def upsert_preference(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    notification_type: NotificationType | str,
    email: bool | None = None,
    in_app: bool | None = None,
    push: bool | None = None,
) -> NotificationPreference:
    """
    Create or update the preference row.

    Omitted channels keep their stored value on update, or take the
    channel default on create.
    """
    notification_type = _validate_type(notification_type)
    preference = get_preference(db, user_id, company_id, notification_type)

    if preference is None:
        defaults = _defaults()
        preference = NotificationPreference(
            user_id=user_id,
            company_id=company_id,
            notification_type=notification_type.value,
            email_enabled=defaults["email_enabled"],
            in_app_enabled=defaults["in_app_enabled"],
            push_enabled=defaults["push_enabled"],
        )
        db.add(preference)

    if email is not None:
        preference.email_enabled = email
    if in_app is not None:
        preference.in_app_enabled = in_app
    if push is not None:
        preference.push_enabled = push

    db.flush()
    logger.debug(
        "Upserted %s preference for user %s in company %s",
        notification_type.value,
        user_id,
        company_id,
    )
    return preference


def list_preferences(db: Session, user_id: UUID, company_id: UUID) -> list[dict]:
    """Every notification type with its label and resolved channel flags."""
    stored = {
        p.notification_type: p
        for p in db.query(NotificationPreference).filter(
            NotificationPreference.user_id == user_id,
            NotificationPreference.company_id == company_id,
        )
    }

    items = []
    for notification_type, info in NOTIFICATION_TYPE_INFO.items():
        preference = stored.get(notification_type.value)
        flags = (
            _serialize(
                email_enabled=preference.email_enabled,
                in_app_enabled=preference.in_app_enabled,
                push_enabled=preference.push_enabled,
            )
            if preference
            else _defaults()
        )
        items.append({"type": notification_type.value, **info, **flags})
    return items
