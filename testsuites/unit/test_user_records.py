import re

import pytest

from testsuites.ui_testing.framework.user_data import UserDataFactory, UserRecord, UserUpdate


def test_record_validates_role_and_status():
    with pytest.raises(ValueError):
        UserRecord("Jane Doe", "jane", "pw", role="Supervisor")
    with pytest.raises(ValueError):
        UserRecord("Jane Doe", "jane", "pw", status="Locked")
    with pytest.raises(ValueError):
        UserUpdate(role="Root")


def test_password_never_shown():
    record = UserRecord("Jane Doe", "jane", "Aa1!secret")
    update = UserUpdate(username="jane2", password="Aa1!other")

    assert "secret" not in repr(record)
    assert "other" not in repr(update)
    assert "jane2" in repr(update)


def test_update_changes_only_set_fields():
    record = UserRecord("Jane Doe", "jane", "pw", role="ESS", status="Enabled")
    update = UserUpdate(status="Disabled")

    assert update.changes() == {"status": "Disabled"}
    assert record.updated(update) == UserRecord("Jane Doe", "jane", "pw", role="ESS", status="Disabled")
    assert record.status == "Enabled"
    assert UserUpdate().is_empty


def test_factory_builds_unique_users():
    factory = UserDataFactory("Jane Doe", seed=7)

    first = factory.build(stem="jane.doe")
    second = factory.build(role="Admin", status="Disabled")

    assert first.username != second.username
    assert re.match(r"^autotest\.jane\.doe\.\d{10}[0-9a-f]{6}$", first.username)
    assert second.role == "Admin" and second.status == "Disabled"
    assert first.employee_name == "Jane Doe"
    assert factory.created == [first, second]


def test_factory_passwords_follow_policy():
    password = UserDataFactory("Jane Doe", seed=1).password(16)

    assert len(password) == 16
    assert any(c.isupper() for c in password)
    assert any(c.islower() for c in password)
    assert any(c.isdigit() for c in password)
    assert any(not c.isalnum() for c in password)


def test_factory_overrides():
    record = UserDataFactory("Jane Doe").build(username="fixed.name", employee_name="John Smith")

    assert record.username == "fixed.name"
    assert record.employee_name == "John Smith"
