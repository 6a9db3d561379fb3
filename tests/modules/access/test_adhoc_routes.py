"""
Tests for the admin ad-hoc access endpoints.
"""
from datetime import datetime, timedelta
from uuid import uuid4


class TestAdhocAccessRoutes:
    def test_admin_grants_access(self, client, admin_headers, student_user, lesson):
        response = client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={
                "user_id": str(student_user.id),
                "lesson_id": str(lesson.id),
                "reason": "Missed the live session",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["is_active"] is True
        assert data["reason"] == "Missed the live session"

    def test_granted_lesson_reports_adhoc_access(
        self, client, admin_headers, auth_headers, student_user, lesson
    ):
        client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={"user_id": str(student_user.id), "lesson_id": str(lesson.id)},
            headers=admin_headers,
        )

        response = client.get(f"/api/v1/lessons/{lesson.id}/access", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["reason"] == "adhoc_access"

    def test_grant_for_unknown_user_returns_404(self, client, admin_headers, lesson):
        response = client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={"user_id": str(uuid4()), "lesson_id": str(lesson.id)},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_grant_accepts_timezone_aware_dates(self, client, admin_headers, student_user, lesson):
        start = datetime.utcnow().replace(microsecond=0)
        response = client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={
                "user_id": str(student_user.id),
                "lesson_id": str(lesson.id),
                "start_date": start.isoformat() + "Z",
                "end_date": (start + timedelta(days=7)).isoformat() + "+00:00",
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["start_date"].startswith(start.isoformat())

    def test_student_cannot_grant(self, client, auth_headers, student_user, lesson):
        response = client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={"user_id": str(student_user.id), "lesson_id": str(lesson.id)},
            headers=auth_headers,
        )
        assert response.status_code == 403

    def test_revoke(self, client, admin_headers, student_user, lesson):
        body = {"user_id": str(student_user.id), "lesson_id": str(lesson.id)}
        client.post("/api/v1/admin/adhoc-access/grant", json=body, headers=admin_headers)

        response = client.post("/api/v1/admin/adhoc-access/revoke", json=body, headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_revoke_without_grant_returns_404(self, client, admin_headers, student_user, lesson):
        response = client.post(
            "/api/v1/admin/adhoc-access/revoke",
            json={"user_id": str(student_user.id), "lesson_id": str(lesson.id)},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_bulk_grant_reports_failures(self, client, admin_headers, student_user, other_student, lesson):
        missing = uuid4()
        response = client.post(
            "/api/v1/admin/adhoc-access/bulk-grant",
            json={
                "user_ids": [str(student_user.id), str(other_student.id), str(missing)],
                "lesson_id": str(lesson.id),
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["successful"] == 2
        assert data["failed"] == 1
        assert str(missing) in data["errors"][0]

    def test_list_by_user_and_lesson(self, client, admin_headers, student_user, lesson):
        client.post(
            "/api/v1/admin/adhoc-access/grant",
            json={"user_id": str(student_user.id), "lesson_id": str(lesson.id)},
            headers=admin_headers,
        )

        by_user = client.get(f"/api/v1/admin/adhoc-access/user/{student_user.id}", headers=admin_headers)
        by_lesson = client.get(f"/api/v1/admin/adhoc-access/lesson/{lesson.id}", headers=admin_headers)

        assert by_user.status_code == 200
        assert by_user.json()[0]["lesson"]["id"] == str(lesson.id)
        assert by_lesson.status_code == 200
        assert by_lesson.json()[0]["user"]["id"] == str(student_user.id)
