import logging
import uuid
from datetime import timedelta

import pytest

from companyhub.core.errors import (
    InvalidStatusTransitionError,
    NotificationNotFoundError,
    ValidationFailedError,
)
from companyhub.db.base import utcnow
from companyhub.db.enums import NotificationStatus, NotificationType
from companyhub.db.models import Announcement, Goal, Notification, Survey
from companyhub.services import notification_preference_service, notification_service


@pytest.fixture
def survey(db, company) -> Survey:
    survey = Survey(company_id=company.id, title="Q3 Pulse", is_active=True)
    db.add(survey)
    db.flush()
    return survey


@pytest.fixture
def notification(db, company, member) -> Notification:
    return notification_service.create_notification(
        db,
        company_id=company.id,
        user_id=member.id,
        type=NotificationType.ANNOUNCEMENT,
        title="New Announcement",
        message="New announcement: Picnic",
    )


def _count(db, **filters) -> int:
    return db.query(Notification).filter_by(**filters).count()


# =============================================================================
# Dispatch
# =============================================================================

def test_survey_dispatch_skips_member_with_in_app_disabled(db, company, make_member, survey):
    enabled = make_member(company)
    disabled = make_member(company)
    notification_preference_service.upsert_preference(
        db, disabled.id, company.id, NotificationType.SURVEY_AVAILABLE, in_app=False
    )

    created = notification_service.dispatch_survey_available(db, survey)

    assert [n.user_id for n in created] == [enabled.id]
    assert _count(db, company_id=company.id) == 1
    assert _count(db, user_id=disabled.id) == 0


def test_survey_dispatch_templates(db, company, member, survey):
    [notification] = notification_service.dispatch_survey_available(db, survey)

    assert notification.title == "New Survey Available"
    assert notification.message == (
        "A new survey 'Q3 Pulse' is now available in Acme Corp. "
        "Please take a moment to complete it."
    )
    assert notification.data == {
        "survey_id": str(survey.id),
        "survey_title": "Q3 Pulse",
        "company_name": "Acme Corp",
    }
    assert notification.status == NotificationStatus.UNREAD.value


def test_announcement_dispatch_templates(db, company, member):
    announcement = Announcement(company_id=company.id, title="Picnic Friday", content="Bring snacks")
    db.add(announcement)
    db.flush()

    [notification] = notification_service.dispatch_announcement(db, announcement)

    assert notification.title == "New Announcement"
    assert notification.message == "New announcement: Picnic Friday"
    assert notification.data["announcement_id"] == str(announcement.id)
    assert notification.data["company_name"] == "Acme Corp"


def test_goal_dispatch_templates(db, company, member):
    goal = Goal(company_id=company.id, title="Ship v2")
    db.add(goal)
    db.flush()

    [notification] = notification_service.dispatch_goal_update(db, goal)

    assert notification.title == "Goal Update"
    assert notification.message == "Goal 'Ship v2' has been updated in Acme Corp."
    assert notification.data == {
        "goal_id": str(goal.id),
        "goal_title": "Ship v2",
        "company_name": "Acme Corp",
    }


def test_location_assignment_targets_only_assigned_user(
    db, company, member, make_member, make_location
):
    bystander = make_member(company)
    location = make_location(company, "Downtown")

    created = notification_service.dispatch_location_assignment(db, member, location)

    assert [n.user_id for n in created] == [member.id]
    assert created[0].title == "Location Assignment"
    assert created[0].message == "You have been assigned to Downtown in Acme Corp."
    assert created[0].data["location_id"] == str(location.id)
    assert _count(db, user_id=bystander.id) == 0


def test_dispatch_only_reaches_active_members(db, company, make_member, make_company, survey):
    active = make_member(company)
    make_member(make_company("Globex"))

    created = notification_service.dispatch_survey_available(db, survey)

    assert [n.user_id for n in created] == [active.id]


def test_repeated_dispatch_is_not_deduplicated(db, company, member, survey):
    notification_service.dispatch_survey_available(db, survey)
    notification_service.dispatch_survey_available(db, survey)

    assert _count(db, user_id=member.id, type="survey_available") == 2


def test_dispatch_failure_for_one_recipient_does_not_stop_others(
    monkeypatch, caplog, db, company, make_member, survey
):
    first = make_member(company, display_name="First")
    broken = make_member(company, display_name="Broken")
    last = make_member(company, display_name="Last")

    real_create = notification_service.create_notification

    def flaky_create_notification(**kwargs):
        if kwargs["user_id"] == broken.id:
            raise RuntimeError("database hiccup")
        return real_create(**kwargs)

    monkeypatch.setattr(notification_service, "create_notification", flaky_create_notification)

    with caplog.at_level(logging.ERROR, logger="companyhub.services.notification_service"):
        created = notification_service.dispatch_survey_available(db, survey)

    assert {n.user_id for n in created} == {first.id, last.id}
    assert _count(db, user_id=broken.id) == 0
    assert any(str(broken.id) in record.getMessage() for record in caplog.records)


# =============================================================================
# Status transitions
# =============================================================================

def test_read_then_dismiss(db, notification):
    notification_service.mark_as_read(db, notification)
    notification_service.dismiss(db, notification)

    assert notification.status == "dismissed"
    assert notification.read_at is not None
    assert notification.dismissed_at is not None


def test_unread_can_be_dismissed_directly(db, notification):
    notification_service.dismiss(db, notification)

    assert notification.status == "dismissed"
    assert notification.read_at is None
    assert notification.dismissed_at is not None


def test_mark_as_unread_clears_read_at(db, notification):
    notification_service.mark_as_read(db, notification)
    notification_service.mark_as_unread(db, notification)

    assert notification.status == "unread"
    assert notification.read_at is None


def test_mark_as_read_is_idempotent(db, notification):
    notification_service.mark_as_read(db, notification)
    first_read_at = notification.read_at

    notification_service.mark_as_read(db, notification)

    assert notification.read_at == first_read_at


def test_dismissed_is_terminal(db, notification):
    notification_service.dismiss(db, notification)
    dismissed_at = notification.dismissed_at

    with pytest.raises(InvalidStatusTransitionError):
        notification_service.mark_as_read(db, notification)
    with pytest.raises(InvalidStatusTransitionError):
        notification_service.mark_as_unread(db, notification)

    # Dismissing again is a no-op
    notification_service.dismiss(db, notification)
    assert notification.dismissed_at == dismissed_at


def test_get_notification_is_owner_scoped(db, company, notification, make_member):
    other = make_member(company)

    with pytest.raises(NotificationNotFoundError):
        notification_service.get_notification(db, notification.id, other.id, company.id)
    with pytest.raises(NotificationNotFoundError):
        notification_service.get_notification(db, uuid.uuid4(), notification.user_id, company.id)


def test_mark_all_as_read_scoped_to_company(db, company, make_company, member):
    other = make_company("Globex")
    for company_id in (company.id, company.id, other.id):
        notification_service.create_notification(
            db, company_id, member.id, NotificationType.GOAL_UPDATE, "Goal Update", "msg"
        )

    updated = notification_service.mark_all_as_read(db, member.id, company.id)

    assert updated == 2
    assert notification_service.get_unread_count(db, member.id, company.id) == 0
    assert notification_service.get_unread_count(db, member.id, other.id) == 1


def test_get_notifications_filters(db, company, member, notification):
    notification_service.create_notification(
        db, company.id, member.id, NotificationType.GOAL_UPDATE, "Goal Update", "msg"
    )
    notification_service.mark_as_read(db, notification)

    unread = notification_service.get_notifications(
        db, member.id, company.id, status=NotificationStatus.UNREAD
    )
    assert [n.type for n in unread] == ["goal_update"]

    announcements = notification_service.get_notifications(
        db, member.id, company.id, notification_type=NotificationType.ANNOUNCEMENT
    )
    assert [n.id for n in announcements] == [notification.id]

    assert len(notification_service.get_notifications(db, member.id, company.id, limit=1)) == 1


# =============================================================================
# Retention & statistics
# =============================================================================

def _aged(db, company, user, status: NotificationStatus, days: int) -> Notification:
    notification = notification_service.create_notification(
        db, company.id, user.id, NotificationType.ANNOUNCEMENT, "New Announcement", "msg"
    )
    notification.status = status.value
    notification.created_at = utcnow() - timedelta(days=days)
    db.flush()
    return notification


def test_cleanup_keeps_unread_regardless_of_age(db, company, member):
    _aged(db, company, member, NotificationStatus.READ, days=100)
    _aged(db, company, member, NotificationStatus.UNREAD, days=200)

    deleted = notification_service.cleanup(db, 90)

    assert deleted == 1
    assert _count(db, user_id=member.id, status="unread") == 1
    assert _count(db, user_id=member.id, status="read") == 0


def test_cleanup_keeps_recent_and_deletes_old_dismissed(db, company, member):
    _aged(db, company, member, NotificationStatus.DISMISSED, days=120)
    _aged(db, company, member, NotificationStatus.READ, days=10)

    assert notification_service.cleanup(db, 90) == 1
    assert _count(db, user_id=member.id) == 1


def test_cleanup_company_scope(db, company, make_company, make_member):
    other = make_company("Globex")
    here = make_member(company)
    there = make_member(other)
    _aged(db, company, here, NotificationStatus.READ, days=100)
    _aged(db, other, there, NotificationStatus.READ, days=100)

    assert notification_service.cleanup(db, 90, company_id=company.id) == 1
    assert _count(db, company_id=other.id) == 1


def test_cleanup_removes_deleted_rows_from_session(db, company, member):
    old = _aged(db, company, member, NotificationStatus.READ, days=100)
    kept = _aged(db, company, member, NotificationStatus.UNREAD, days=100)

    assert notification_service.cleanup(db, 90) == 1

    assert old not in db
    assert kept in db
    # Later work in the same session must not touch the deleted row
    assert notification_service.mark_all_as_read(db, member.id, company.id) == 1
    db.flush()
    assert kept.status == NotificationStatus.READ.value


def test_cleanup_rejects_non_positive_window(db):
    with pytest.raises(ValidationFailedError):
        notification_service.cleanup(db, 0)


def test_statistics(db, company, member, make_member):
    _aged(db, company, member, NotificationStatus.READ, days=30)
    _aged(db, company, member, NotificationStatus.UNREAD, days=1)
    other = make_member(company)
    notification_service.create_notification(
        db, company.id, other.id, NotificationType.GOAL_UPDATE, "Goal Update", "msg"
    )

    user_stats = notification_service.get_user_stats(db, member.id, company.id)
    assert user_stats == {"total": 2, "unread": 1, "read": 1, "dismissed": 0, "recent": 1}

    company_stats = notification_service.get_company_stats(db, company.id)
    assert company_stats["total"] == 3
    assert company_stats["recent"] == 2
    assert company_stats["by_type"] == {"announcement": 2, "goal_update": 1}
