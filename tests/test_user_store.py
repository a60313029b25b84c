"""Unit tests for auth/store.py -- UserStore queries and mutations.

Covers:
- create/get by id and email, email normalization, duplicate rejection
- reset token persistence: set, lookup by digest, expiry, clear
- update_password stamps password_changed_at and drops the reset token
- delete_user and list_users
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.passwords import hash_password


def _user(email: str = "ada@example.com", role: str = Role.user.value) -> User:
    return User(name="Ada", email=email, role=role, hashed_password=hash_password("analytical-engine"))


class TestCreateAndLookup:
    def test_create_assigns_id_and_defaults(self, store) -> None:
        user_id = store.create_user(_user())
        user = store.get_by_id(user_id)

        assert user is not None
        assert user.email == "ada@example.com"
        assert user.role == "user"
        assert user.active is True
        assert user.created_at
        assert user.password_changed_at is None
        assert user.password_reset_token is None

    def test_email_is_lower_cased(self, store) -> None:
        user_id = store.create_user(_user(email="  Ada@Example.COM "))
        assert store.get_by_id(user_id).email == "ada@example.com"
        assert store.get_by_email("ADA@example.com").id == user_id

    def test_duplicate_email_raises(self, store) -> None:
        store.create_user(_user())
        with pytest.raises(IntegrityError):
            store.create_user(_user(email="ADA@example.com"))

    def test_missing_user(self, store) -> None:
        assert store.get_by_id(999) is None
        assert store.get_by_email("nobody@example.com") is None

    def test_count_and_list(self, store) -> None:
        assert store.count_users() == 0
        store.create_user(_user(email="b@example.com"))
        store.create_user(_user(email="a@example.com", role=Role.admin.value))
        assert store.count_users() == 2
        assert [u.email for u in store.list_users()] == ["a@example.com", "b@example.com"]


class TestPasswordReset:
    def test_lookup_by_digest_before_expiry(self, store) -> None:
        user_id = store.create_user(_user())
        now = datetime.now(timezone.utc)
        store.set_password_reset(user_id, "d" * 64, now + timedelta(minutes=10))

        found = store.get_by_reset_token("d" * 64, now=now)
        assert found is not None
        assert found.id == user_id
        assert found.password_reset_token == "d" * 64

    def test_expired_token_not_found(self, store) -> None:
        user_id = store.create_user(_user())
        now = datetime.now(timezone.utc)
        store.set_password_reset(user_id, "d" * 64, now - timedelta(seconds=1))
        assert store.get_by_reset_token("d" * 64, now=now) is None

    def test_unknown_digest(self, store) -> None:
        store.create_user(_user())
        assert store.get_by_reset_token("e" * 64) is None

    def test_clear(self, store) -> None:
        user_id = store.create_user(_user())
        store.set_password_reset(user_id, "d" * 64, datetime.now(timezone.utc) + timedelta(minutes=10))
        store.clear_password_reset(user_id)

        user = store.get_by_id(user_id)
        assert user.password_reset_token is None
        assert user.password_reset_expires is None
        assert store.get_by_reset_token("d" * 64) is None

    def test_update_password_stamps_and_clears(self, store) -> None:
        user_id = store.create_user(_user())
        store.set_password_reset(user_id, "d" * 64, datetime.now(timezone.utc) + timedelta(minutes=10))
        changed_at = datetime(2026, 6, 1, 8, 30, tzinfo=timezone.utc)

        assert store.update_password(user_id, hash_password("new-password-1"), changed_at) is True

        user = store.get_by_id(user_id)
        assert datetime.fromisoformat(user.password_changed_at) == changed_at
        assert user.password_reset_token is None
        assert user.password_reset_expires is None

    def test_update_password_unknown_user(self, store) -> None:
        assert store.update_password(999, hash_password("x" * 8), datetime.now(timezone.utc)) is False


class TestDelete:
    def test_delete(self, store) -> None:
        user_id = store.create_user(_user())
        assert store.delete_user(user_id) is True
        assert store.get_by_id(user_id) is None
        assert store.delete_user(user_id) is False
