"""
Tests for course and lesson endpoints.
"""
from datetime import datetime, timedelta
from uuid import uuid4

import httpx

from fxdojo.integrations.vimeo.client import VimeoClient
from fxdojo.modules.courses.models import Course, Lesson, ReleaseType
from fxdojo.modules.courses.service import CourseService
from fxdojo.modules.progress.models import Progress
from fxdojo.schemas.course import LessonCreate


class TestCourseCatalogue:
    """Listing and reading courses."""

    def test_list_only_published_courses(self, client, published_course, draft_course):
        response = client.get("/api/v1/courses")

        assert response.status_code == 200
        slugs = [c["slug"] for c in response.json()]
        assert slugs == ["fx-foundations"]

    def test_anonymous_sees_lessons_without_video(self, client, published_course, lesson):
        response = client.get(f"/api/v1/courses/{published_course.slug}")

        assert response.status_code == 200
        data = response.json()
        assert data["lesson_count"] == 1
        assert data["is_enrolled"] is False
        assert data["lessons"][0]["has_access"] is False
        assert data["lessons"][0]["access_reason"] == "not_authenticated"
        assert data["lessons"][0]["video_url"] is None

    def test_enrolled_student_sees_video(self, client, auth_headers, enrollment, published_course, lesson):
        response = client.get(f"/api/v1/courses/{published_course.slug}", headers=auth_headers)

        data = response.json()
        assert data["is_enrolled"] is True
        assert data["lessons"][0]["has_access"] is True
        assert data["lessons"][0]["video_url"] == lesson.video_url

    def test_draft_course_hidden_from_students(self, client, auth_headers, draft_course):
        response = client.get(f"/api/v1/courses/{draft_course.slug}", headers=auth_headers)
        assert response.status_code == 404

    def test_draft_course_visible_to_staff(self, client, instructor_headers, draft_course):
        response = client.get(f"/api/v1/courses/{draft_course.slug}", headers=instructor_headers)
        assert response.status_code == 200


class TestCourseManagement:
    """Staff-only course writes."""

    def test_instructor_creates_course(self, client, instructor_headers):
        response = client.post(
            "/api/v1/courses",
            json={"title": "Risk Management", "slug": "risk-management", "price": 9800},
            headers=instructor_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["slug"] == "risk-management"
        assert data["is_published"] is False

    def test_duplicate_slug_rejected(self, client, instructor_headers, published_course):
        response = client.post(
            "/api/v1/courses",
            json={"title": "Again", "slug": published_course.slug},
            headers=instructor_headers,
        )
        assert response.status_code == 400

    def test_student_cannot_create_course(self, client, auth_headers):
        response = client.post(
            "/api/v1/courses",
            json={"title": "Nope", "slug": "nope"},
            headers=auth_headers,
        )
        assert response.status_code == 403

    def test_update_course(self, client, instructor_headers, published_course):
        response = client.put(
            f"/api/v1/courses/{published_course.id}",
            json={"title": "FX Foundations 2"},
            headers=instructor_headers,
        )

        assert response.status_code == 200
        assert response.json()["title"] == "FX Foundations 2"
        assert response.json()["slug"] == "fx-foundations"

    def test_admin_publishes_course(self, client, admin_headers, draft_course):
        response = client.put(
            f"/api/v1/courses/{draft_course.id}/publish",
            json={"is_published": True},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["is_published"] is True

    def test_instructor_cannot_publish(self, client, instructor_headers, draft_course):
        response = client.put(
            f"/api/v1/courses/{draft_course.id}/publish",
            json={"is_published": True},
            headers=instructor_headers,
        )
        assert response.status_code == 403

    def test_delete_course_with_enrollments_fails(self, client, admin_headers, enrollment, published_course):
        response = client.delete(f"/api/v1/courses/{published_course.id}", headers=admin_headers)
        assert response.status_code == 400

    def test_delete_empty_course(self, client, db, admin_headers, draft_course):
        response = client.delete(f"/api/v1/courses/{draft_course.id}", headers=admin_headers)

        assert response.status_code == 204
        assert db.query(Course).filter(Course.id == draft_course.id).first() is None


class TestEnrollment:
    def test_enroll(self, client, auth_headers, student_user, published_course):
        response = client.post(f"/api/v1/courses/{published_course.id}/enroll", headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["user_id"] == str(student_user.id)

    def test_enroll_twice_fails(self, client, auth_headers, enrollment, published_course):
        response = client.post(f"/api/v1/courses/{published_course.id}/enroll", headers=auth_headers)
        assert response.status_code == 400

    def test_enroll_in_unknown_course(self, client, auth_headers):
        response = client.post(f"/api/v1/courses/{uuid4()}/enroll", headers=auth_headers)
        assert response.status_code == 404

    def test_course_stats(self, client, db, instructor_headers, enrollment, student_user, published_course, lesson):
        db.add(Progress(user_id=student_user.id, lesson_id=lesson.id, watched_seconds=300, completed=True))
        db.commit()

        response = client.get(f"/api/v1/courses/{published_course.id}/stats", headers=instructor_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["enrollment_count"] == 1
        assert data["lesson_count"] == 1
        assert data["completed_count"] == 1
        assert data["completion_rate"] == 100.0
        assert data["total_watched_seconds"] == 300


class TestLessons:
    def test_lesson_access_endpoint_explains_lock(self, client, db, auth_headers, enrollment, published_course):
        lesson = Lesson(
            course_id=published_course.id,
            title="Central bank week",
            release_type=ReleaseType.scheduled,
            release_date=datetime.utcnow() + timedelta(days=3, hours=1),
        )
        db.add(lesson)
        db.commit()

        response = client.get(f"/api/v1/lessons/{lesson.id}/access", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["has_access"] is False
        assert data["reason"] == "not_yet_scheduled"
        assert data["available_in"] == 4
        assert data["lesson"]["title"] == "Central bank week"

    def test_list_lessons_by_course(self, client, auth_headers, enrollment, published_course, lesson):
        response = client.get(f"/api/v1/lessons?course_id={published_course.id}", headers=auth_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [str(lesson.id)]

    def test_create_lesson_with_prerequisite(self, client, instructor_headers, published_course, lesson):
        response = client.post(
            "/api/v1/lessons",
            json={
                "course_id": str(published_course.id),
                "title": "Reading the order book",
                "thumbnail": "https://i.vimeocdn.com/video/1.jpg",
                "order_index": 1,
                "release_type": "prerequisite",
                "prerequisite_id": str(lesson.id),
            },
            headers=instructor_headers,
        )

        assert response.status_code == 201
        assert response.json()["prerequisite_id"] == str(lesson.id)

    def test_create_lesson_with_unknown_prerequisite(self, client, instructor_headers, published_course):
        response = client.post(
            "/api/v1/lessons",
            json={
                "course_id": str(published_course.id),
                "title": "Orphan",
                "release_type": "prerequisite",
                "prerequisite_id": str(uuid4()),
            },
            headers=instructor_headers,
        )
        assert response.status_code == 400

    def test_lesson_cannot_require_itself(self, client, instructor_headers, lesson):
        response = client.put(
            f"/api/v1/lessons/{lesson.id}",
            json={"prerequisite_id": str(lesson.id)},
            headers=instructor_headers,
        )
        assert response.status_code == 400

    def test_create_lesson_fetches_vimeo_thumbnail(self, db, published_course):
        def handler(request):
            assert request.url.params["url"] == "https://vimeo.com/76979871"
            return httpx.Response(200, json={"thumbnail_url": "https://i.vimeocdn.com/video/452001751.jpg"})

        vimeo = VimeoClient(transport=httpx.MockTransport(handler))
        lesson = CourseService(db, vimeo=vimeo).create_lesson(
            LessonCreate(
                course_id=published_course.id,
                title="Pips and lots",
                video_url="https://vimeo.com/76979871",
            )
        )

        assert lesson.thumbnail == "https://i.vimeocdn.com/video/452001751.jpg"

    def test_delete_lesson(self, client, db, admin_headers, lesson):
        response = client.delete(f"/api/v1/lessons/{lesson.id}", headers=admin_headers)

        assert response.status_code == 204
        assert db.query(Lesson).count() == 0
