"""
Authentication, session and user administration tests.

Verifies:
- password strength rules and bcrypt verification
- sessions: idle timeout, absolute expiry, revocation, deactivated users
- password changes revoke every session of the account
- the default administrator cannot be deleted
- login / logout / me over HTTP
"""

from datetime import timedelta

import pytest

from stocksense.errors import ConflictError, Forbidden, NotFound, ValidationError
from stocksense.models import SessionToken, User
from stocksense.permissions import Actor, Role
from stocksense.services import auth_service, session_service
from stocksense.services.auth_service import PasswordValidationError
from stocksense.time_utils import utcnow

from conftest import TEST_PASSWORD, auth_headers, get_auth_token


class TestPasswords:

    @pytest.mark.parametrize(
        "password",
        ["Sh0rt!", "alllowercase1!", "ALLUPPERCASE1!", "NoDigitsHere!", "NoSpecial123", None],
    )
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            auth_service.validate_password_strength(password)

    def test_strong_password_accepted(self):
        auth_service.validate_password_strength("Str0ng.Pass")

    def test_hash_and_verify(self, app):
        hashed = auth_service.hash_password(TEST_PASSWORD, rounds=4)

        assert hashed != TEST_PASSWORD
        assert auth_service.verify_password(TEST_PASSWORD, hashed)
        assert not auth_service.verify_password("Wrong123!", hashed)

    def test_malformed_hash_is_a_mismatch(self):
        assert auth_service.verify_password(TEST_PASSWORD, "not-a-bcrypt-hash") is False
        assert auth_service.verify_password("", "anything") is False


class TestAuthenticate:

    def test_valid_credentials(self, users):
        user = auth_service.authenticate("STAFF001", TEST_PASSWORD)

        assert user is not None
        assert user.role == "Staff"

    def test_wrong_password(self, users):
        assert auth_service.authenticate("STAFF001", "Wrong123!") is None

    def test_inactive_user(self, users, db_session):
        users["Staff"].is_active = False
        db_session.commit()

        assert auth_service.authenticate("STAFF001", TEST_PASSWORD) is None

    def test_duplicate_id_number(self, users):
        with pytest.raises(ConflictError):
            auth_service.register_user(
                id_number="STAFF001", password=TEST_PASSWORD, role=Role.STAFF, full_name="Dup"
            )

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            auth_service.register_user(
                id_number="X1", password=TEST_PASSWORD, role="Cashier", full_name="X"
            )

        assert exc_info.value.details["allowed_roles"] == ["Admin", "Manager", "Staff"]


class TestSessions:

    def test_create_and_validate(self, users):
        session, token = session_service.create_session(users["Staff"].id)

        context = session_service.validate_session(token)

        assert context.user.id == users["Staff"].id
        assert context.session.id == session.id
        assert session.token_hash != token

    def test_unknown_token(self, users):
        assert session_service.validate_session("nope") is None
        assert session_service.validate_session("") is None

    def test_idle_timeout_revokes(self, users, db_session):
        session, token = session_service.create_session(users["Staff"].id)

        later = utcnow() + session_service.SESSION_IDLE_TIMEOUT + timedelta(minutes=1)
        assert session_service.validate_session(token, now=later) is None

        refreshed = db_session.get(SessionToken, session.id)
        assert refreshed.is_revoked
        assert refreshed.revoked_reason == "Idle timeout"

    def test_absolute_expiry(self, users):
        _, token = session_service.create_session(users["Staff"].id)

        much_later = utcnow() + session_service.SESSION_ABSOLUTE_TIMEOUT + timedelta(minutes=1)
        assert session_service.validate_session(token, now=much_later) is None

    def test_revoke(self, users):
        _, token = session_service.create_session(users["Staff"].id)

        assert session_service.revoke_session(token) is True
        assert session_service.revoke_session(token) is False
        assert session_service.validate_session(token) is None

    def test_deactivated_user(self, users, db_session):
        session, token = session_service.create_session(users["Staff"].id)
        users["Staff"].is_active = False
        db_session.commit()

        assert session_service.validate_session(token) is None
        assert db_session.get(SessionToken, session.id).revoked_reason == "User account deactivated"

    def test_revoke_all(self, users):
        session_service.create_session(users["Staff"].id)
        session_service.create_session(users["Staff"].id)

        assert session_service.revoke_all_user_sessions(users["Staff"].id) == 2


class TestUserAdministration:

    @pytest.fixture
    def admin(self, users):
        return Actor.of(users["Admin"].id, users["Admin"].role)

    def test_create_and_list(self, policy, admin, users):
        created = auth_service.create_user(
            policy,
            actor=admin,
            payload={"id_number": "STAFF002", "password": TEST_PASSWORD, "role": "staff", "full_name": "New Hire"},
        )

        assert created["role"] == "Staff"
        assert "password_hash" not in created
        listed = auth_service.list_users(policy, actor=admin)
        assert [u["id_number"] for u in listed] == ["ADMIN001", "MGR001", "STAFF001", "STAFF002"]

    def test_manager_cannot_administer_users(self, policy, users):
        manager = Actor.of(users["Manager"].id, users["Manager"].role)

        with pytest.raises(Forbidden):
            auth_service.list_users(policy, actor=manager)

    def test_update_role(self, policy, admin, users):
        updated = auth_service.update_user_role(
            policy, actor=admin, user_id=users["Staff"].id, role="Manager"
        )

        assert updated["role"] == "Manager"

    def test_password_change_revokes_sessions(self, policy, admin, users, db_session):
        staff_id = users["Staff"].id
        _, token = session_service.create_session(staff_id)

        auth_service.update_user_password(policy, actor=admin, user_id=staff_id, password="N3w.Password")

        assert session_service.validate_session(token) is None
        assert auth_service.authenticate("STAFF001", "N3w.Password") is not None
        reasons = {s.revoked_reason for s in db_session.query(SessionToken).filter_by(user_id=staff_id)}
        assert reasons == {"Password changed"}

    def test_delete_user(self, policy, admin, users, db_session):
        staff_id = users["Staff"].id
        session_service.create_session(staff_id)

        deleted = auth_service.delete_user(policy, actor=admin, user_id=staff_id)

        assert deleted["id_number"] == "STAFF001"
        assert db_session.get(User, staff_id) is None
        assert db_session.query(SessionToken).filter_by(user_id=staff_id).count() == 0

    def test_default_admin_cannot_be_deleted(self, policy, admin, users):
        with pytest.raises(Forbidden, match="Cannot delete default admin"):
            auth_service.delete_user(policy, actor=admin, user_id=users["Admin"].id)

    def test_unknown_user(self, policy, admin, users):
        with pytest.raises(NotFound):
            auth_service.update_user_role(policy, actor=admin, user_id=999_999, role="Staff")


class TestAuthRoutes:

    def test_login_returns_token_and_permissions(self, client, users):
        resp = client.post("/api/auth/login", json={"id_number": "MGR001", "password": TEST_PASSWORD})

        assert resp.status_code == 200
        body = resp.get_json()
        assert len(body["token"]) == 64
        assert body["user"]["role"] == "Manager"
        assert "manage-catalog" in body["permissions"]
        assert body["permissions"] == sorted(body["permissions"])

    def test_login_missing_fields(self, client, users):
        resp = client.post("/api/auth/login", json={"id_number": "MGR001"})

        assert resp.status_code == 400

    def test_login_bad_credentials(self, client, users):
        resp = client.post("/api/auth/login", json={"id_number": "MGR001", "password": "Wrong123!"})

        assert resp.status_code == 401
        assert resp.get_json()["code"] == "unauthorized"

    def test_me(self, client, staff_headers):
        resp = client.get("/api/auth/me", headers=staff_headers)

        assert resp.status_code == 200
        assert resp.get_json()["user"]["id_number"] == "STAFF001"
        assert resp.get_json()["permissions"] == ["record-sale", "view-analytics-basic", "view-sales"]

    def test_logout_revokes_token(self, client, users):
        token = get_auth_token(client, "STAFF001")
        headers = auth_headers(token)

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    @pytest.mark.parametrize(
        "header",
        [None, "Bearer", "Token abc", "Bearer not-a-real-token"],
    )
    def test_me_requires_valid_bearer(self, client, users, header):
        headers = {"Authorization": header} if header else {}

        resp = client.get("/api/auth/me", headers=headers)

        assert resp.status_code == 401
