import pytest

from ricemill import user_service
from ricemill.errors import (
    DuplicateUsername,
    LastAdminRemoval,
    SelfDeletion,
    UserNotFound,
    ValidationFailed,
)


pytestmark = pytest.mark.usefixtures("ledger_db")


def test_register_and_authenticate():
    user = user_service.register_user("awa", "secret123", role="admin")

    assert user.role == "admin"
    assert user_service.authenticate_user("awa", "secret123").id == user.id
    assert user_service.authenticate_user("AWA", "secret123").id == user.id
    assert user_service.authenticate_user("awa", "wrong-pass") is None
    assert user_service.authenticate_user("nobody", "secret123") is None


def test_password_hash_is_salted():
    first = user_service._hash_password("secret123")
    second = user_service._hash_password("secret123")

    assert first != second
    assert user_service._verify_password("secret123", first)
    assert not user_service._verify_password("secret123", "md5$1$00$00")


@pytest.mark.parametrize(
    "username, password, role",
    [("ab", "secret123", "manager"), ("valid", "123", "manager"), ("valid", "secret123", "owner")],
)
def test_register_validation(username, password, role):
    with pytest.raises(ValidationFailed):
        user_service.register_user(username, password, role)


def test_register_duplicate_username():
    user_service.register_user("moussa", "secret123")

    with pytest.raises(DuplicateUsername):
        user_service.register_user("Moussa", "another123")


def test_last_admin_is_protected():
    admin = user_service.register_user("admin", "secret123", role="admin")

    with pytest.raises(LastAdminRemoval):
        user_service.update_user_role(admin.id, "manager")
    with pytest.raises(LastAdminRemoval):
        user_service.delete_user(admin.id)

    second = user_service.register_user("admin2", "secret123", role="admin")
    assert user_service.update_user_role(admin.id, "manager").role == "manager"
    assert user_service.get_user(second.id).role == "admin"


def test_delete_user_rules():
    admin = user_service.register_user("chief", "secret123", role="admin")
    manager = user_service.register_user("clerk", "secret123")

    with pytest.raises(SelfDeletion):
        user_service.delete_user(admin.id, acting_user_id=admin.id)

    user_service.delete_user(manager.id, acting_user_id=admin.id)
    with pytest.raises(UserNotFound):
        user_service.get_user(manager.id)
    assert [u.username for u in user_service.list_users()] == ["chief"]


def test_bootstrap_skipped_in_test_env(monkeypatch):
    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", "bootstrap-pass")

    assert user_service.bootstrap_default_admin() is None
    assert user_service.list_users() == []


def test_bootstrap_creates_admin_when_empty(monkeypatch):
    monkeypatch.setenv("APP_ENV", "development")
    monkeypatch.delenv("SKIP_USER_BOOTSTRAP", raising=False)
    monkeypatch.setenv("DEFAULT_ADMIN_USERNAME", "root")
    monkeypatch.setenv("DEFAULT_ADMIN_PASSWORD", "bootstrap-pass")

    created = user_service.bootstrap_default_admin()

    assert created.username == "root"
    assert created.role == "admin"
    assert user_service.bootstrap_default_admin() is None
