"""
Tests for invite link management.
"""
from datetime import datetime, timedelta

from fxdojo.modules.invites.models import InviteLink
from fxdojo.modules.invites.service import InviteService


class TestInviteAdmin:
    """Admin-only invite management endpoints."""

    def test_admin_creates_invite(self, client, admin_headers, admin_user):
        response = client.post(
            "/api/v1/invites",
            json={"max_uses": 3, "description": "Discord launch"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["code"]
        assert data["max_uses"] == 3
        assert data["used_count"] == 0
        assert data["remaining_uses"] == 3
        assert data["created_by"] == str(admin_user.id)

    def test_student_cannot_create_invite(self, client, auth_headers):
        response = client.post("/api/v1/invites", json={}, headers=auth_headers)
        assert response.status_code == 403

    def test_list_invites_is_paginated(self, client, db, admin_headers, admin_user):
        service = InviteService(db)
        for _ in range(3):
            service.create_invite(admin_user)

        response = client.get("/api/v1/invites?page=1&limit=2", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["pages"] == 2
        assert len(data["items"]) == 2

    def test_toggle_and_delete(self, client, db, admin_headers, admin_user):
        invite = InviteService(db).create_invite(admin_user)

        response = client.patch(
            f"/api/v1/invites/{invite.id}/toggle",
            json={"is_active": False},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is False

        response = client.delete(f"/api/v1/invites/{invite.id}", headers=admin_headers)
        assert response.status_code == 204
        assert db.query(InviteLink).count() == 0

    def test_get_unknown_invite_returns_404(self, client, admin_headers):
        from uuid import uuid4

        response = client.get(f"/api/v1/invites/{uuid4()}", headers=admin_headers)
        assert response.status_code == 404

    def test_stats(self, client, db, admin_headers, admin_user, student_user):
        service = InviteService(db)
        invite = service.create_invite(admin_user, max_uses=2)
        service.use_invite(invite.code, student_user)
        service.set_active(service.create_invite(admin_user).id, False)

        response = client.get("/api/v1/invites/stats/overview", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_invites"] == 2
        assert data["active_invites"] == 1
        assert data["total_registrations"] == 1
        assert data["recent_registrations_count"] == 1


class TestInviteValidation:
    """Public validation and per-user invite usage."""

    def test_validate_good_code(self, client, db, admin_user):
        invite = InviteService(db).create_invite(admin_user, max_uses=5)

        response = client.post("/api/v1/invites/validate", json={"code": invite.code})

        assert response.status_code == 200
        data = response.json()
        assert data["valid"] is True
        assert data["remaining_uses"] == 5

    def test_validate_reports_reason(self, client, db, admin_user):
        service = InviteService(db)
        expired = service.create_invite(admin_user, expires_at=datetime.utcnow() - timedelta(hours=1))
        disabled = service.set_active(service.create_invite(admin_user).id, False)

        assert client.post("/api/v1/invites/validate", json={"code": "missing"}).json()["reason"] == "invalid"
        assert client.post("/api/v1/invites/validate", json={"code": expired.code}).json()["reason"] == "expired"
        assert client.post("/api/v1/invites/validate", json={"code": disabled.code}).json()["reason"] == "deactivated"

    def test_use_invite_once_per_user(self, client, db, admin_user, auth_headers):
        invite = InviteService(db).create_invite(admin_user)

        first = client.post("/api/v1/invites/use", json={"code": invite.code}, headers=auth_headers)
        second = client.post("/api/v1/invites/use", json={"code": invite.code}, headers=auth_headers)

        assert first.status_code == 201
        assert second.status_code == 400

        mine = client.get("/api/v1/invites/user/registration", headers=auth_headers)
        assert mine.status_code == 200
        assert mine.json()["invite_id"] == str(invite.id)

    def test_usage_limit_is_enforced(self, db, admin_user, student_user, other_student):
        service = InviteService(db)
        invite = service.create_invite(admin_user, max_uses=1)
        service.use_invite(invite.code, student_user)

        check = service.check_code(invite.code)

        assert check.valid is False
        assert check.reason == "usage_limit_reached"
