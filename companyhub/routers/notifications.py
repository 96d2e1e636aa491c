"""
Notifications Router - in-app notifications, preferences and retention.

Every member reads and manages their own notifications and preferences.
Company-wide statistics require view_analytics; cleanup requires
manage_company_settings and is scoped to the company in the path.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from companyhub.core.deps import (
    get_company_context,
    get_db,
    require_action_dep,
    require_csrf_header,
)
from companyhub.core.policies import CompanyAction
from companyhub.db.enums import NotificationStatus, NotificationType
from companyhub.schemas.auth import CompanyContext
from companyhub.schemas.notification import (
    CleanupRequest,
    CleanupResponse,
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationRead,
    NotificationStatistics,
    PreferenceBulkUpdate,
    PreferenceRead,
    PreferenceUpdate,
    UnreadCountResponse,
)
from companyhub.services import notification_preference_service, notification_service


router = APIRouter(
    prefix="/companies/{company_id}/notifications",
    tags=["notifications"],
)


# =============================================================================
# Notifications
# =============================================================================


@router.get("", response_model=NotificationListResponse)
def list_notifications(
    status: NotificationStatus | None = Query(None),
    type: NotificationType | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    """Current user's notifications, newest first."""
    items = notification_service.get_notifications(
        db,
        user_id=context.user_id,
        company_id=context.company_id,
        status=status,
        notification_type=type,
        limit=limit,
        offset=offset,
    )
    unread_count = notification_service.get_unread_count(
        db, context.user_id, context.company_id
    )
    return NotificationListResponse(
        items=[NotificationRead.model_validate(n) for n in items],
        unread_count=unread_count,
    )


@router.get("/count", response_model=UnreadCountResponse)
def get_unread_count(
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    """Unread count for polling."""
    count = notification_service.get_unread_count(db, context.user_id, context.company_id)
    return UnreadCountResponse(count=count)


@router.post(
    "/read-all",
    response_model=MarkAllReadResponse,
    dependencies=[Depends(require_csrf_header)],
)
def mark_all_read(
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    count = notification_service.mark_all_as_read(db, context.user_id, context.company_id)
    db.commit()
    return MarkAllReadResponse(marked_read=count)


# =============================================================================
# Preferences
# =============================================================================


@router.get("/preferences", response_model=list[PreferenceRead])
def get_preferences(
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    """Every notification type with resolved channel flags."""
    return notification_preference_service.list_preferences(
        db, context.user_id, context.company_id
    )


@router.put(
    "/preferences",
    response_model=list[PreferenceRead],
    dependencies=[Depends(require_csrf_header)],
)
def update_preferences(
    data: PreferenceBulkUpdate,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    for item in data.preferences:
        notification_preference_service.upsert_preference(
            db,
            context.user_id,
            context.company_id,
            item.type,
            email=item.email_enabled,
            in_app=item.in_app_enabled,
            push=item.push_enabled,
        )
    db.commit()
    return notification_preference_service.list_preferences(
        db, context.user_id, context.company_id
    )


@router.patch(
    "/preferences/{notification_type}",
    response_model=PreferenceRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_preference(
    notification_type: str,
    data: PreferenceUpdate,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    preference = notification_preference_service.upsert_preference(
        db,
        context.user_id,
        context.company_id,
        notification_type,
        email=data.email_enabled,
        in_app=data.in_app_enabled,
        push=data.push_enabled,
    )
    db.commit()

    resolved_type = NotificationType(preference.notification_type)
    return PreferenceRead(
        type=resolved_type,
        **notification_preference_service.NOTIFICATION_TYPE_INFO[resolved_type],
        **notification_preference_service.get_or_default(
            db, context.user_id, context.company_id, resolved_type
        ),
    )


# =============================================================================
# Statistics & retention
# =============================================================================


@router.get("/statistics", response_model=NotificationStatistics)
def get_company_statistics(
    context: CompanyContext = Depends(require_action_dep(CompanyAction.VIEW_ANALYTICS)),
    db: Session = Depends(get_db),
):
    return notification_service.get_company_stats(db, context.company_id)


@router.get("/statistics/me", response_model=NotificationStatistics)
def get_my_statistics(
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    return notification_service.get_user_stats(db, context.user_id, context.company_id)


@router.post(
    "/cleanup",
    response_model=CleanupResponse,
    dependencies=[Depends(require_csrf_header)],
)
def cleanup_notifications(
    data: CleanupRequest,
    context: CompanyContext = Depends(
        require_action_dep(CompanyAction.MANAGE_COMPANY_SETTINGS)
    ),
    db: Session = Depends(get_db),
):
    """Delete read/dismissed notifications older than `days` in this company."""
    deleted = notification_service.cleanup(db, data.days, company_id=context.company_id)
    db.commit()
    return CleanupResponse(deleted_count=deleted)


# =============================================================================
# Single notification transitions
# =============================================================================


@router.patch(
    "/{notification_id}/read",
    response_model=NotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_read(
    notification_id: UUID,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    notification = notification_service.get_notification(
        db, notification_id, context.user_id, context.company_id
    )
    notification_service.mark_as_read(db, notification)
    db.commit()
    db.refresh(notification)
    return notification


@router.patch(
    "/{notification_id}/unread",
    response_model=NotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def mark_unread(
    notification_id: UUID,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    notification = notification_service.get_notification(
        db, notification_id, context.user_id, context.company_id
    )
    notification_service.mark_as_unread(db, notification)
    db.commit()
    db.refresh(notification)
    return notification


@router.patch(
    "/{notification_id}/dismiss",
    response_model=NotificationRead,
    dependencies=[Depends(require_csrf_header)],
)
def dismiss(
    notification_id: UUID,
    context: CompanyContext = Depends(get_company_context),
    db: Session = Depends(get_db),
):
    notification = notification_service.get_notification(
        db, notification_id, context.user_id, context.company_id
    )
    notification_service.dismiss(db, notification)
    db.commit()
    db.refresh(notification)
    return notification
