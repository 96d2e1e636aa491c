from datetime import timedelta

import pytest

from companyhub.db.base import utcnow
from companyhub.db.enums import NotificationStatus, NotificationType
from companyhub.db.models import Notification
from companyhub.services import notification_service


def _notify(db, company, user, notification_type=NotificationType.ANNOUNCEMENT) -> Notification:
    return notification_service.create_notification(
        db, company.id, user.id, notification_type, "New Announcement", "New announcement: Picnic"
    )


@pytest.mark.asyncio
async def test_list_and_count(db, authed_client, company, member):
    _notify(db, company, member)
    _notify(db, company, member, NotificationType.GOAL_UPDATE)

    async with authed_client(member) as client:
        listed = await client.get(f"/companies/{company.id}/notifications")
        filtered = await client.get(
            f"/companies/{company.id}/notifications", params={"type": "goal_update"}
        )
        count = await client.get(f"/companies/{company.id}/notifications/count")

    assert listed.status_code == 200, listed.text
    assert len(listed.json()["items"]) == 2
    assert listed.json()["unread_count"] == 2
    assert [n["type"] for n in filtered.json()["items"]] == ["goal_update"]
    assert count.json() == {"count": 2}


@pytest.mark.asyncio
async def test_notifications_are_private(db, authed_client, company, member, make_member):
    notification = _notify(db, company, member)
    notification_id = notification.id
    other = make_member(company)

    async with authed_client(other) as client:
        listed = await client.get(f"/companies/{company.id}/notifications")
        read = await client.patch(
            f"/companies/{company.id}/notifications/{notification_id}/read"
        )

    assert listed.json()["items"] == []
    assert read.status_code == 404


@pytest.mark.asyncio
async def test_status_transitions(db, authed_client, company, member):
    notification_id = _notify(db, company, member).id
    base = f"/companies/{company.id}/notifications/{notification_id}"

    async with authed_client(member) as client:
        read = await client.patch(f"{base}/read")
        unread = await client.patch(f"{base}/unread")
        dismissed = await client.patch(f"{base}/dismiss")
        reread = await client.patch(f"{base}/read")

    assert read.status_code == 200, read.text
    assert read.json()["status"] == "read"
    assert read.json()["read_at"] is not None
    assert unread.json()["status"] == "unread"
    assert unread.json()["read_at"] is None
    assert dismissed.json()["status"] == "dismissed"
    assert dismissed.json()["dismissed_at"] is not None
    assert reread.status_code == 409


@pytest.mark.asyncio
async def test_mark_all_read(db, authed_client, company, member):
    for _ in range(3):
        _notify(db, company, member)

    async with authed_client(member) as client:
        resp = await client.post(f"/companies/{company.id}/notifications/read-all")
        count = await client.get(f"/companies/{company.id}/notifications/count")

    assert resp.status_code == 200, resp.text
    assert resp.json() == {"marked_read": 3}
    assert count.json() == {"count": 0}


@pytest.mark.asyncio
async def test_preferences_roundtrip(authed_client, company, member):
    base = f"/companies/{company.id}/notifications/preferences"

    async with authed_client(member) as client:
        defaults = await client.get(base)
        patched = await client.patch(f"{base}/survey_available", json={"in_app_enabled": False})
        bulk = await client.put(
            base,
            json={"preferences": [{"type": "goal_update", "push_enabled": True}]},
        )

    assert defaults.status_code == 200, defaults.text
    assert all(p["in_app_enabled"] and not p["push_enabled"] for p in defaults.json())

    assert patched.status_code == 200, patched.text
    assert patched.json()["in_app_enabled"] is False
    assert patched.json()["email_enabled"] is True
    assert patched.json()["label"] == "New Surveys"

    by_type = {p["type"]: p for p in bulk.json()}
    assert by_type["goal_update"]["push_enabled"] is True
    assert by_type["survey_available"]["in_app_enabled"] is False


@pytest.mark.asyncio
async def test_unknown_preference_type_returns_422(authed_client, company, member):
    async with authed_client(member) as client:
        resp = await client.patch(
            f"/companies/{company.id}/notifications/preferences/birthday",
            json={"email_enabled": False},
        )

    assert resp.status_code == 422
    assert "type" in resp.json()["errors"]


@pytest.mark.asyncio
async def test_company_statistics_requires_view_analytics(
    db, authed_client, company, manager, member
):
    _notify(db, company, member)

    async with authed_client(member) as client:
        denied = await client.get(f"/companies/{company.id}/notifications/statistics")
        mine = await client.get(f"/companies/{company.id}/notifications/statistics/me")
    async with authed_client(manager) as client:
        allowed = await client.get(f"/companies/{company.id}/notifications/statistics")

    assert denied.status_code == 403
    assert mine.status_code == 200, mine.text
    assert mine.json()["unread"] == 1
    assert allowed.status_code == 200, allowed.text
    assert allowed.json()["by_type"] == {"announcement": 1}


@pytest.mark.asyncio
async def test_cleanup_is_admin_only_and_company_scoped(
    db, authed_client, company, admin, manager, member, make_company, make_member
):
    other = make_company("Globex")
    outsider = make_member(other)
    for user, owner in ((member, company), (outsider, other)):
        notification = _notify(db, owner, user)
        notification.status = NotificationStatus.READ.value
        notification.created_at = utcnow() - timedelta(days=100)
    db.flush()
    other_id = other.id

    async with authed_client(manager) as client:
        denied = await client.post(
            f"/companies/{company.id}/notifications/cleanup", json={"days": 90}
        )
    async with authed_client(admin) as client:
        invalid = await client.post(
            f"/companies/{company.id}/notifications/cleanup", json={"days": 0}
        )
        resp = await client.post(
            f"/companies/{company.id}/notifications/cleanup", json={"days": 90}
        )

    assert denied.status_code == 403
    assert invalid.status_code == 422
    assert resp.status_code == 200, resp.text
    assert resp.json() == {"deleted_count": 1}
    assert db.query(Notification).filter(Notification.company_id == other_id).count() == 1
