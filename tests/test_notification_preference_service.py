import pytest

from companyhub.core.errors import ValidationFailedError
from companyhub.db.enums import NotificationChannel, NotificationType
from companyhub.db.models import NotificationPreference
from companyhub.services import notification_preference_service as prefs


SURVEY = NotificationType.SURVEY_AVAILABLE


def _row_count(db, user_id) -> int:
    return db.query(NotificationPreference).filter(
        NotificationPreference.user_id == user_id
    ).count()


def test_channel_defaults_without_row(db, company, member):
    assert prefs.is_enabled(db, member.id, company.id, SURVEY, NotificationChannel.IN_APP) is True
    assert prefs.is_enabled(db, member.id, company.id, SURVEY, NotificationChannel.EMAIL) is True
    assert prefs.is_enabled(db, member.id, company.id, SURVEY, NotificationChannel.PUSH) is False


def test_existing_row_is_binding_for_all_channels(db, company, member):
    db.add(
        NotificationPreference(
            user_id=member.id,
            company_id=company.id,
            notification_type=SURVEY.value,
            email_enabled=False,
            in_app_enabled=False,
            push_enabled=True,
        )
    )
    db.flush()

    assert prefs.is_enabled(db, member.id, company.id, SURVEY, "in_app") is False
    assert prefs.is_enabled(db, member.id, company.id, SURVEY, "email") is False
    assert prefs.is_enabled(db, member.id, company.id, SURVEY, "push") is True
    # Other types still fall back to defaults
    assert prefs.is_enabled(db, member.id, company.id, NotificationType.ANNOUNCEMENT) is True


def test_preferences_are_scoped_per_company(db, company, make_company, member):
    other = make_company("Globex")
    prefs.upsert_preference(db, member.id, company.id, SURVEY, in_app=False)

    assert prefs.is_enabled(db, member.id, company.id, SURVEY) is False
    assert prefs.is_enabled(db, member.id, other.id, SURVEY) is True


def test_upsert_creates_with_defaults_for_omitted_channels(db, company, member):
    preference = prefs.upsert_preference(db, member.id, company.id, SURVEY, push=True)

    assert preference.email_enabled is True
    assert preference.in_app_enabled is True
    assert preference.push_enabled is True


def test_upsert_updates_only_given_channels(db, company, member):
    prefs.upsert_preference(db, member.id, company.id, SURVEY, email=False, push=True)
    preference = prefs.upsert_preference(db, member.id, company.id, SURVEY, in_app=False)

    assert preference.email_enabled is False
    assert preference.in_app_enabled is False
    assert preference.push_enabled is True
    assert _row_count(db, member.id) == 1


def test_get_or_default_never_persists(db, company, member):
    flags = prefs.get_or_default(db, member.id, company.id, SURVEY)

    assert flags == {"email_enabled": True, "in_app_enabled": True, "push_enabled": False}
    assert _row_count(db, member.id) == 0


def test_get_or_default_reads_stored_row(db, company, member):
    prefs.upsert_preference(db, member.id, company.id, "announcement", email=False)

    flags = prefs.get_or_default(db, member.id, company.id, "announcement")
    assert flags["email_enabled"] is False
    assert flags["in_app_enabled"] is True


def test_list_preferences_covers_every_type(db, company, member):
    prefs.upsert_preference(db, member.id, company.id, SURVEY, in_app=False)

    items = {item["type"]: item for item in prefs.list_preferences(db, member.id, company.id)}

    assert set(items) == {t.value for t in NotificationType}
    assert items["survey_available"]["in_app_enabled"] is False
    assert items["survey_available"]["label"] == "New Surveys"
    assert items["goal_update"]["push_enabled"] is False


def test_unknown_type_and_channel_rejected(db, company, member):
    with pytest.raises(ValidationFailedError) as exc_info:
        prefs.upsert_preference(db, member.id, company.id, "birthday", email=True)
    assert "type" in exc_info.value.errors

    with pytest.raises(ValidationFailedError) as exc_info:
        prefs.is_enabled(db, member.id, company.id, SURVEY, "sms")
    assert "channel" in exc_info.value.errors
