# investment_tracker/tests/test_user_service.py
import json

import pytest

from investment_tracker.db.enums import UserRole
from investment_tracker.services.persistence_service import USERS_KEY
from investment_tracker.services.user_service import UserService


def test_seeded_admin_can_log_in(user_service):
    user = user_service.authenticate(username="admin", password="admin123")
    assert user.role == UserRole.ADMIN


def test_username_is_case_insensitive_password_is_not(user_service):
    assert user_service.authenticate(username=" ADMIN ", password="admin123").username == "admin"
    with pytest.raises(ValueError, match="Invalid username or password."):
        user_service.authenticate(username="admin", password="ADMIN123")
    with pytest.raises(ValueError):
        user_service.authenticate(username="nobody", password="admin123")


def test_add_user_and_login(user_service, store):
    user = user_service.add_user(username=" editor1 ", password="pw", role="editor")

    assert user.username == "editor1"
    assert user.role == UserRole.EDITOR
    assert user_service.authenticate(username="Editor1", password="pw").id == user.id
    assert [u["username"] for u in json.loads(store.get(USERS_KEY))] == ["admin", "editor1"]


@pytest.mark.parametrize("username,password", [("", "pw"), ("bob", ""), ("  ", "  ")])
def test_add_user_requires_both_fields(user_service, username, password):
    with pytest.raises(ValueError):
        user_service.add_user(username=username, password=password)


def test_add_duplicate_username_raises(user_service):
    user_service.add_user(username="viewer1", password="pw")
    with pytest.raises(ValueError):
        user_service.add_user(username="VIEWER1", password="other")


def test_reserved_admin_cannot_be_deleted(user_service):
    admin = user_service.get_user_by_username("admin")
    user_service.delete_user(admin.id)
    assert user_service.get_user_by_id(admin.id) is not None


def test_delete_regular_user(user_service):
    user = user_service.add_user(username="temp", password="pw")
    user_service.delete_user(user.id)
    user_service.delete_user("missing")
    assert user_service.get_user_by_username("temp") is None


def test_role_changes(user_service):
    admin = user_service.get_user_by_username("admin")
    with pytest.raises(PermissionError):
        user_service.update_user_role(user_id=admin.id, role=UserRole.VIEWER)

    user = user_service.add_user(username="bob", password="pw")
    promoted = user_service.update_user_role(user_id=user.id, role=UserRole.ADMIN)
    assert promoted.role == UserRole.ADMIN
    assert user_service.update_user_role(user_id="missing", role=UserRole.EDITOR) is None


def test_users_survive_reload(user_service, persistence, clock):
    user_service.add_user(username="carol", password="pw", role=UserRole.EDITOR)

    reloaded = UserService(persistence, clock=clock)
    assert reloaded.get_user_by_username("carol").role == UserRole.EDITOR


def test_hashed_passwords(persistence, clock):
    service = UserService(persistence, hash_passwords=True, clock=clock)
    user = service.add_user(username="dora", password="s3cret")

    assert user.password != "s3cret"
    assert user.password.startswith("$2")
    assert service.authenticate(username="dora", password="s3cret").id == user.id
    # 旧的明文密码依然可用
    assert service.authenticate(username="admin", password="admin123").is_admin


def test_ensure_reserved_admin_restores_lost_account(store, persistence, clock):
    store.set(USERS_KEY, json.dumps([{"username": "solo", "password": "pw", "role": "editor"}]))
    service = UserService(persistence, clock=clock)
    assert service.get_user_by_username("admin") is None

    admin = service.ensure_reserved_admin()

    assert admin.role == UserRole.ADMIN
    assert service.ensure_reserved_admin().id == admin.id
    assert [u.username for u in service.users] == ["admin", "solo"]
