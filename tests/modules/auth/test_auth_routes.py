"""
Tests for registration, approval and session endpoints.
"""
from datetime import datetime, timedelta

from fxdojo.modules.auth.models import PendingUser, PendingUserStatus, User, UserSession, UserStatus
from fxdojo.modules.invites.models import InviteLink, InviteRegistration


def _invite(db, **fields):
    invite = InviteLink(code=fields.pop("code", "welcome-code"), **fields)
    db.add(invite)
    db.commit()
    db.refresh(invite)
    return invite


def _register(client, code="welcome-code", email="new@test.com", **overrides):
    payload = {
        "email": email,
        "password": "secret-pass",
        "password_confirmation": "secret-pass",
        "full_name": "New Trader",
        "discord_name": "newtrader#0001",
        "invite_code": code,
    }
    payload.update(overrides)
    return client.post("/api/v1/auth/register", json=payload)


class TestRegistration:
    """Registration requests are gated by invites and wait for approval."""

    def test_register_with_valid_invite_creates_pending_request(self, client, db):
        _invite(db)

        response = _register(client)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["email"] == "new@test.com"
        assert "approval_token" not in data
        assert db.query(User).filter(User.email == "new@test.com").first() is None

    def test_register_with_unknown_invite_fails(self, client, db):
        response = _register(client, code="nope")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid invite code"

    def test_register_with_expired_invite_fails(self, client, db):
        _invite(db, expires_at=datetime.utcnow() - timedelta(days=1))

        response = _register(client)

        assert response.status_code == 400
        assert "expired" in response.json()["detail"]

    def test_register_with_exhausted_invite_fails(self, client, db):
        _invite(db, max_uses=1, used_count=1)

        response = _register(client)

        assert response.status_code == 400
        assert "usage limit" in response.json()["detail"]

    def test_register_with_mismatched_passwords_fails(self, client, db):
        _invite(db)

        response = _register(client, password_confirmation="different-pass")

        assert response.status_code == 422

    def test_register_twice_while_pending_fails(self, client, db):
        _invite(db)
        assert _register(client).status_code == 201

        response = _register(client)

        assert response.status_code == 400
        assert "pending" in response.json()["detail"]

    def test_register_existing_email_fails(self, client, db, student_user):
        _invite(db)

        response = _register(client, email=student_user.email)

        assert response.status_code == 400
        assert response.json()["detail"] == "Email already registered"


class TestApproval:
    """Administrators approve or reject pending registrations."""

    def test_admin_approval_creates_student_and_uses_invite(
        self, client, db, admin_headers, student_role
    ):
        invite = _invite(db, max_uses=5)
        _register(client)
        pending = db.query(PendingUser).one()

        response = client.post(
            f"/api/v1/auth/approve/{pending.approval_token}",
            json={"approved": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "approved"

        user = db.query(User).filter(User.email == "new@test.com").one()
        assert user.role_names == ["student"]
        assert user.email_verified is True

        db.refresh(invite)
        assert invite.used_count == 1
        assert db.query(InviteRegistration).filter(InviteRegistration.user_id == user.id).count() == 1

        login = client.post(
            "/api/v1/auth/login",
            data={"username": "new@test.com", "password": "secret-pass"},
        )
        assert login.status_code == 200

    def test_admin_rejection_records_reason(self, client, db, admin_headers):
        _invite(db)
        _register(client)
        pending = db.query(PendingUser).one()

        response = client.post(
            f"/api/v1/auth/approve/{pending.approval_token}",
            json={"approved": False},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "rejected"
        assert data["rejection_reason"]
        assert db.query(User).filter(User.email == "new@test.com").first() is None

    def test_request_cannot_be_decided_twice(self, client, db, admin_headers, student_role):
        _invite(db)
        _register(client)
        pending = db.query(PendingUser).one()
        url = f"/api/v1/auth/approve/{pending.approval_token}"

        assert client.post(url, json={"approved": True}, headers=admin_headers).status_code == 200
        response = client.post(url, json={"approved": False}, headers=admin_headers)

        assert response.status_code == 400

    def test_unknown_token_returns_404(self, client, admin_headers):
        response = client.post(
            "/api/v1/auth/approve/does-not-exist",
            json={"approved": True},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_student_cannot_approve(self, client, db, auth_headers):
        _invite(db)
        _register(client)
        pending = db.query(PendingUser).one()

        response = client.post(
            f"/api/v1/auth/approve/{pending.approval_token}",
            json={"approved": True},
            headers=auth_headers,
        )

        assert response.status_code == 403
        db.refresh(pending)
        assert pending.status == PendingUserStatus.pending

    def test_admin_lists_pending_with_tokens(self, client, db, admin_headers):
        _invite(db)
        _register(client)

        response = client.get("/api/v1/auth/pending-users", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["approval_token"]


class TestSessions:
    """Login, refresh and logout."""

    def test_login_returns_token_pair(self, client, student_user):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "password123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"

    def test_login_with_wrong_password_fails(self, client, student_user):
        response = client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "wrong-password"},
        )
        assert response.status_code == 401

    def test_blocked_user_cannot_login(self, client, db, student_user):
        student_user.status = UserStatus.blocked
        db.commit()

        response = client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "password123"},
        )
        assert response.status_code == 403

    def test_refresh_rotates_the_refresh_token(self, client, student_user):
        tokens = client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "password123"},
        ).json()

        response = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        rotated = response.json()["refresh_token"]
        assert rotated != tokens["refresh_token"]

        reused = client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert reused.status_code == 401

    def test_refresh_with_garbage_token_fails(self, client):
        response = client.post("/api/v1/auth/refresh", json={"refresh_token": "garbage"})
        assert response.status_code == 401

    def test_logout_deletes_session(self, client, db, student_user):
        tokens = client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "password123"},
        ).json()

        response = client.post("/api/v1/auth/logout", json={"refresh_token": tokens["refresh_token"]})

        assert response.status_code == 200
        assert db.query(UserSession).filter(UserSession.user_id == student_user.id).count() == 0

    def test_logout_all_removes_every_session(self, client, db, student_user, auth_headers):
        client.post(
            "/api/v1/auth/login",
            data={"username": student_user.email, "password": "password123"},
        )

        response = client.post("/api/v1/auth/logout-all", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["sessions_deleted"] == 2
        assert db.query(UserSession).filter(UserSession.user_id == student_user.id).count() == 0


class TestProfile:
    def test_me_returns_current_user(self, client, auth_headers, student_user):
        response = client.get("/api/v1/auth/me", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["email"] == student_user.email
        assert data["role_names"] == ["student"]

    def test_me_without_token_is_unauthorized(self, client):
        assert client.get("/api/v1/auth/me").status_code == 401

    def test_verify_token(self, client, auth_headers, student_user):
        response = client.get("/api/v1/auth/verify-token", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["user_id"] == str(student_user.id)

    def test_update_profile(self, client, auth_headers):
        response = client.put(
            "/api/v1/auth/update-profile",
            json={"full_name": "  Renamed Trader  ", "avatar_color": "#ff8800"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["full_name"] == "Renamed Trader"
        assert data["avatar_color"] == "#ff8800"

    def test_update_profile_requires_name(self, client, auth_headers):
        response = client.put(
            "/api/v1/auth/update-profile",
            json={"full_name": "   "},
            headers=auth_headers,
        )
        assert response.status_code == 400
