"""
Tests for the administration console.
"""
from fxdojo.modules.auth.models import User, UserSession
from fxdojo.modules.chat.models import ChatMessage


def _message(db, user, content="Good morning traders"):
    message = ChatMessage(user_id=user.id, content=content, channel_id="general")
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


class TestDashboard:
    def test_dashboard_counts(self, client, db, admin_headers, student_user, published_course, lesson):
        _message(db, student_user)

        response = client.get("/api/v1/admin/dashboard", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 2
        assert data["total_courses"] == 1
        assert data["total_lessons"] == 1
        assert data["new_registrations_7d"] == 2
        assert data["pending_registrations"] == 0
        assert data["recent_messages"][0]["content"] == "Good morning traders"

    def test_students_are_refused(self, client, auth_headers):
        assert client.get("/api/v1/admin/dashboard", headers=auth_headers).status_code == 403

    def test_settings(self, client, admin_headers):
        response = client.get("/api/v1/admin/settings", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["site_name"] == "FX Dojo"
        assert data["registration_mode"] == "invite_only"
        assert data["currency"] == "JPY"
        assert data["features"]["private_rooms"] is True


class TestUserManagement:
    def test_search_users(self, client, admin_headers, student_user, other_student):
        response = client.get("/api/v1/admin/users", params={"search": "other"}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["email"] == "other@test.com"

    def test_filter_by_role(self, client, admin_headers, student_user, instructor_user):
        response = client.get("/api/v1/admin/users", params={"role": "instructor"}, headers=admin_headers)

        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == str(instructor_user.id)

    def test_update_user_rejects_taken_email(self, client, admin_headers, student_user, other_student):
        response = client.put(
            f"/api/v1/admin/users/{student_user.id}",
            json={"email": "other@test.com"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_update_user(self, client, admin_headers, student_user):
        response = client.put(
            f"/api/v1/admin/users/{student_user.id}",
            json={"full_name": "Renamed Student", "discord_name": "pips"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed Student"
        assert response.json()["discord_name"] == "pips"

    def test_change_role(self, client, admin_headers, student_user):
        response = client.put(
            f"/api/v1/admin/users/{student_user.id}/role",
            json={"role": "instructor"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["role_names"] == ["instructor"]

    def test_invalid_role(self, client, admin_headers, student_user):
        response = client.put(
            f"/api/v1/admin/users/{student_user.id}/role",
            json={"role": "superuser"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_last_admin_keeps_role(self, client, admin_headers, admin_user):
        response = client.put(
            f"/api/v1/admin/users/{admin_user.id}/role",
            json={"role": "student"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_block_user_drops_sessions(self, client, db, admin_headers, auth_headers, student_user):
        assert db.query(UserSession).filter(UserSession.user_id == student_user.id).count() == 1

        response = client.put(
            f"/api/v1/admin/users/{student_user.id}/status",
            json={"status": "blocked"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "blocked"
        assert db.query(UserSession).filter(UserSession.user_id == student_user.id).count() == 0
        assert client.get("/api/v1/auth/me", headers=auth_headers).status_code == 400

    def test_cannot_block_self(self, client, admin_headers, admin_user):
        response = client.put(
            f"/api/v1/admin/users/{admin_user.id}/status",
            json={"status": "blocked"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_delete_user_removes_their_rows(self, client, db, admin_headers, student_user, enrollment):
        _message(db, student_user)
        student_id = student_user.id

        response = client.delete(f"/api/v1/admin/users/{student_id}", headers=admin_headers)

        assert response.status_code == 204
        db.expire_all()
        assert db.get(User, student_id) is None
        assert db.query(ChatMessage).filter(ChatMessage.user_id == student_id).count() == 0

    def test_cannot_delete_self(self, client, admin_headers, admin_user):
        response = client.delete(f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers)
        assert response.status_code == 400


class TestContentAndModeration:
    def test_staff_sees_draft_courses(self, client, instructor_headers, published_course, draft_course):
        response = client.get("/api/v1/admin/courses", headers=instructor_headers)

        assert response.status_code == 200
        assert {c["slug"] for c in response.json()} == {"fx-foundations", "advanced-scalping"}

    def test_lessons_for_course(self, client, instructor_headers, published_course, lesson):
        response = client.get(
            "/api/v1/admin/lessons",
            params={"course_id": str(published_course.id)},
            headers=instructor_headers,
        )
        assert [row["id"] for row in response.json()] == [str(lesson.id)]

    def test_moderate_message(self, client, db, admin_headers, student_user):
        message = _message(db, student_user, content="buy buy buy")

        response = client.put(
            f"/api/v1/admin/chat/messages/{message.id}/moderate",
            json={"content": "[removed by moderator]"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["content"] == "[removed by moderator]"
        assert response.json()["is_edited"] is True

    def test_delete_message(self, client, db, admin_headers, student_user):
        message = _message(db, student_user)

        response = client.delete(f"/api/v1/admin/chat/messages/{message.id}", headers=admin_headers)

        assert response.status_code == 204
        listing = client.get("/api/v1/admin/chat/messages", headers=admin_headers)
        assert listing.json() == []

    def test_delete_unknown_message(self, client, admin_headers):
        response = client.delete(
            "/api/v1/admin/chat/messages/00000000-0000-0000-0000-000000000000",
            headers=admin_headers,
        )
        assert response.status_code == 404
