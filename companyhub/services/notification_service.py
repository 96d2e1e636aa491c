"""
Notification Service - dispatch, lifecycle, and retention of in-app notifications.

Dispatch is best-effort: each recipient is evaluated against their
preferences and written in its own savepoint, and a failure for one
recipient is logged without stopping the rest of the audience.
"""

import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import func, update
from sqlalchemy.orm import Session

from companyhub.core.errors import (
    InvalidStatusTransitionError,
    NotificationNotFoundError,
    ValidationFailedError,
)
from companyhub.core.structured_logging import build_log_context
from companyhub.db.base import utcnow
from companyhub.db.enums import NotificationChannel, NotificationStatus, NotificationType
from companyhub.db.models import (
    Announcement,
    Company,
    Goal,
    Location,
    Notification,
    Survey,
    User,
)
from companyhub.services import membership_service, notification_preference_service


logger = logging.getLogger(__name__)


SURVEY_AVAILABLE_TITLE = "New Survey Available"
SURVEY_AVAILABLE_MESSAGE = (
    "A new survey '{survey_title}' is now available in {company_name}. "
    "Please take a moment to complete it."
)
ANNOUNCEMENT_TITLE = "New Announcement"
ANNOUNCEMENT_MESSAGE = "New announcement: {announcement_title}"
LOCATION_ASSIGNMENT_TITLE = "Location Assignment"
LOCATION_ASSIGNMENT_MESSAGE = "You have been assigned to {location_name} in {company_name}."
GOAL_UPDATE_TITLE = "Goal Update"
GOAL_UPDATE_MESSAGE = "Goal '{goal_title}' has been updated in {company_name}."

RECENT_DAYS = 7


# =============================================================================
# Notification CRUD
# =============================================================================


def create_notification(
    db: Session,
    company_id: UUID,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    data: Optional[dict] = None,
) -> Notification:
    """Create an unread notification. No dedupe is applied."""
    notification = Notification(
        company_id=company_id,
        user_id=user_id,
        type=type.value,
        title=title,
        message=message,
        data=data or {},
        status=NotificationStatus.UNREAD.value,
    )
    db.add(notification)
    db.flush()
    return notification


def get_notification(
    db: Session,
    notification_id: UUID,
    user_id: UUID,
    company_id: UUID,
) -> Notification:
    """Fetch a notification owned by the user in the company (tenant isolation)."""
    notification = (
        db.query(Notification)
        .filter(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            Notification.company_id == company_id,
        )
        .first()
    )
    if not notification:
        raise NotificationNotFoundError("Notification not found")
    return notification


def get_notifications(
    db: Session,
    user_id: UUID,
    company_id: UUID,
    status: NotificationStatus | None = None,
    notification_type: NotificationType | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Notification]:
    """Get notifications for user, newest first."""
    query = db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.company_id == company_id,
    )

    if status:
        query = query.filter(Notification.status == status.value)

    if notification_type:
        query = query.filter(Notification.type == notification_type.value)

    return (
        query.order_by(Notification.created_at.desc(), Notification.id)
        .offset(offset)
        .limit(limit)
        .all()
    )


def get_unread_count(db: Session, user_id: UUID, company_id: UUID) -> int:
    return db.query(Notification).filter(
        Notification.user_id == user_id,
        Notification.company_id == company_id,
        Notification.status == NotificationStatus.UNREAD.value,
    ).count()


# =============================================================================
# Status transitions
# =============================================================================


def mark_as_read(db: Session, notification: Notification) -> Notification:
    """unread -> read. Already-read is a no-op; dismissed cannot be re-read."""
    if notification.status == NotificationStatus.DISMISSED.value:
        raise InvalidStatusTransitionError("Dismissed notifications cannot be marked as read")

    if notification.status == NotificationStatus.UNREAD.value:
        notification.status = NotificationStatus.READ.value
        notification.read_at = utcnow()
        db.flush()
        logger.info("Marked notification %s as read", notification.id)

    return notification


def mark_as_unread(db: Session, notification: Notification) -> Notification:
    """read -> unread, clearing read_at."""
    if notification.status == NotificationStatus.DISMISSED.value:
        raise InvalidStatusTransitionError("Dismissed notifications cannot be marked as unread")

    if notification.status == NotificationStatus.READ.value:
        notification.status = NotificationStatus.UNREAD.value
        notification.read_at = None
        db.flush()
        logger.info("Marked notification %s as unread", notification.id)

    return notification


def dismiss(db: Session, notification: Notification) -> Notification:
    """unread|read -> dismissed. read_at is left as it was."""
    if notification.status != NotificationStatus.DISMISSED.value:
        notification.status = NotificationStatus.DISMISSED.value
        notification.dismissed_at = utcnow()
        db.flush()
        logger.info("Dismissed notification %s", notification.id)

    return notification


def mark_all_as_read(
    db: Session,
    user_id: UUID,
    company_id: UUID | None = None,
) -> int:
    """Mark every unread notification of the user as read. Returns count updated."""
    stmt = update(Notification).where(
        Notification.user_id == user_id,
        Notification.status == NotificationStatus.UNREAD.value,
    )
    if company_id is not None:
        stmt = stmt.where(Notification.company_id == company_id)

    result = db.execute(
        stmt.values(status=NotificationStatus.READ.value, read_at=utcnow()),
        execution_options={"synchronize_session": "evaluate"},
    )
    count = result.rowcount or 0
    logger.info(
        "Marked %d notifications as read for user %s",
        count,
        user_id,
        extra=build_log_context(user_id=user_id, company_id=company_id),
    )
    return count


# =============================================================================
# Retention
# =============================================================================


def cleanup(db: Session, days: int, company_id: UUID | None = None) -> int:
    """
    Delete read/dismissed notifications older than `days`.

    Unread notifications are kept regardless of age. Returns count deleted.
    """
    if days < 1:
        raise ValidationFailedError(
            "Retention window must be at least one day",
            errors={"days": ["Must be greater than or equal to 1"]},
        )

    cutoff = utcnow() - timedelta(days=days)
    query = db.query(Notification).filter(
        Notification.created_at < cutoff,
        Notification.status.in_(
            [NotificationStatus.READ.value, NotificationStatus.DISMISSED.value]
        ),
    )
    if company_id is not None:
        query = query.filter(Notification.company_id == company_id)

    # rowcount is unreliable when the dialect deletes with RETURNING
    deleted = query.count()
    # "fetch" expunges deleted rows from the identity map without comparing
    # created_at in Python
    query.delete(synchronize_session="fetch")
    logger.info(
        "Cleaned up %d old notifications",
        deleted,
        extra=build_log_context(company_id=company_id),
    )
    return deleted


# =============================================================================
# Statistics
# =============================================================================


def _status_counts(query) -> dict[str, int]:
    recent_cutoff = utcnow() - timedelta(days=RECENT_DAYS)
    return {
        "total": query.count(),
        "unread": query.filter(Notification.status == NotificationStatus.UNREAD.value).count(),
        "read": query.filter(Notification.status == NotificationStatus.READ.value).count(),
        "dismissed": query.filter(
            Notification.status == NotificationStatus.DISMISSED.value
        ).count(),
        "recent": query.filter(Notification.created_at >= recent_cutoff).count(),
    }


def get_user_stats(db: Session, user_id: UUID, company_id: UUID | None = None) -> dict[str, int]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if company_id is not None:
        query = query.filter(Notification.company_id == company_id)
    return _status_counts(query)


def get_company_stats(db: Session, company_id: UUID) -> dict:
    query = db.query(Notification).filter(Notification.company_id == company_id)
    stats: dict = _status_counts(query)
    by_type = (
        db.query(Notification.type, func.count(Notification.id))
        .filter(Notification.company_id == company_id)
        .group_by(Notification.type)
        .all()
    )
    stats["by_type"] = {notification_type: count for notification_type, count in by_type}
    return stats


# =============================================================================
# Dispatch (called from survey/announcement/location/goal lifecycle hooks)
# =============================================================================


def _dispatch(
    db: Session,
    company: Company,
    recipient_ids: list[UUID],
    notification_type: NotificationType,
    title: str,
    message: str,
    data: dict,
) -> list[Notification]:
    """Create one notification per recipient whose in-app channel is enabled."""
    created: list[Notification] = []

    for user_id in recipient_ids:
        try:
            if not notification_preference_service.is_enabled(
                db, user_id, company.id, notification_type, NotificationChannel.IN_APP
            ):
                continue

            with db.begin_nested():
                notification = create_notification(
                    db=db,
                    company_id=company.id,
                    user_id=user_id,
                    type=notification_type,
                    title=title,
                    message=message,
                    data=data,
                )
        except Exception:
            logger.exception(
                "Failed to send %s notification to user %s",
                notification_type.value,
                user_id,
                extra=build_log_context(user_id=user_id, company_id=company.id),
            )
            continue

        created.append(notification)
        logger.info(
            "%s notification sent to user %s",
            notification_type.value,
            user_id,
            extra=build_log_context(user_id=user_id, company_id=company.id),
        )

    return created


def _company_audience(db: Session, company_id: UUID) -> list[UUID]:
    return [m.user_id for m in membership_service.list_members(db, company_id)]


def dispatch_survey_available(db: Session, survey: Survey) -> list[Notification]:
    """Notify every active member that a survey is available."""
    company = survey.company
    return _dispatch(
        db,
        company,
        _company_audience(db, company.id),
        NotificationType.SURVEY_AVAILABLE,
        title=SURVEY_AVAILABLE_TITLE,
        message=SURVEY_AVAILABLE_MESSAGE.format(
            survey_title=survey.title, company_name=company.name
        ),
        data={
            "survey_id": str(survey.id),
            "survey_title": survey.title,
            "company_name": company.name,
        },
    )


def dispatch_announcement(db: Session, announcement: Announcement) -> list[Notification]:
    """Notify every active member of a new announcement."""
    company = announcement.company
    return _dispatch(
        db,
        company,
        _company_audience(db, company.id),
        NotificationType.ANNOUNCEMENT,
        title=ANNOUNCEMENT_TITLE,
        message=ANNOUNCEMENT_MESSAGE.format(announcement_title=announcement.title),
        data={
            "announcement_id": str(announcement.id),
            "announcement_title": announcement.title,
            "company_name": company.name,
        },
    )


def dispatch_location_assignment(
    db: Session,
    user: User,
    location: Location,
) -> list[Notification]:
    """Notify the single user who was assigned to a location."""
    company = location.company
    return _dispatch(
        db,
        company,
        [user.id],
        NotificationType.LOCATION_ASSIGNMENT,
        title=LOCATION_ASSIGNMENT_TITLE,
        message=LOCATION_ASSIGNMENT_MESSAGE.format(
            location_name=location.name, company_name=company.name
        ),
        data={
            "location_id": str(location.id),
            "location_name": location.name,
            "company_name": company.name,
        },
    )


def dispatch_goal_update(db: Session, goal: Goal) -> list[Notification]:
    """Notify every active member that a goal changed."""
    company = goal.company
    return _dispatch(
        db,
        company,
        _company_audience(db, company.id),
        NotificationType.GOAL_UPDATE,
        title=GOAL_UPDATE_TITLE,
        message=GOAL_UPDATE_MESSAGE.format(goal_title=goal.title, company_name=company.name),
        data={
            "goal_id": str(goal.id),
            "goal_title": goal.title,
            "company_name": company.name,
        },
    )
