"""
Pytest configuration and fixtures for testing.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret")
os.environ["CELERY_TASK_ALWAYS_EAGER"] = "true"
os.environ["EMAIL_ENABLED"] = "false"

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from fxdojo.main import app
from fxdojo.db.base import Base
from fxdojo.db import deps
from fxdojo.db.deps import get_db
from fxdojo.core.security import create_access_token, get_password_hash
from fxdojo.modules.auth.models import User, Role, UserRole
from fxdojo.modules.courses.models import Course, Enrollment, Lesson, ReleaseType
from datetime import datetime, timedelta
from uuid import uuid4

import fxdojo.models  # noqa: F401


# Test database URL
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db, monkeypatch):
    """FastAPI test client with test database."""
    # websocket frames open their own sessions
    monkeypatch.setattr(deps, "SessionLocal", TestingSessionLocal)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_role(db, name):
    role = Role(id=uuid4(), name=name)
    db.add(role)
    db.commit()
    db.refresh(role)
    return role


def make_user(db, role, email, full_name, **fields):
    """Create a user holding `role` with password `password123`."""
    user = User(
        id=uuid4(),
        email=email,
        password_hash=get_password_hash("password123"),
        full_name=full_name,
        **fields,
    )
    db.add(user)
    db.flush()

    db.add(UserRole(user_id=user.id, role_id=role.id))
    db.commit()
    db.refresh(user)
    return user


def headers_for(user):
    token = create_access_token(subject=str(user.id))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_role(db):
    """Create student role."""
    return _make_role(db, "student")


@pytest.fixture
def instructor_role(db):
    """Create instructor role."""
    return _make_role(db, "instructor")


@pytest.fixture
def admin_role(db):
    """Create admin role."""
    return _make_role(db, "admin")


@pytest.fixture
def student_user(db, student_role):
    """Create a student user."""
    return make_user(db, student_role, "student@test.com", "Test Student")


@pytest.fixture
def other_student(db, student_role):
    """Create a second student user."""
    return make_user(db, student_role, "other@test.com", "Other Student")


@pytest.fixture
def instructor_user(db, instructor_role):
    """Create an instructor user."""
    return make_user(db, instructor_role, "instructor@test.com", "Test Instructor")


@pytest.fixture
def admin_user(db, admin_role):
    """Create an admin user."""
    return make_user(db, admin_role, "admin@test.com", "Test Admin")


@pytest.fixture
def published_course(db):
    """Create a published course."""
    course = Course(
        id=uuid4(),
        title="FX Foundations",
        description="Reading the currency market",
        slug="fx-foundations",
        is_published=True,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def draft_course(db):
    """Create an unpublished course."""
    course = Course(
        id=uuid4(),
        title="Advanced Scalping",
        slug="advanced-scalping",
        is_published=False,
    )
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


@pytest.fixture
def lesson(db, published_course):
    """Create an immediately available lesson."""
    lesson = Lesson(
        id=uuid4(),
        course_id=published_course.id,
        title="What moves a currency pair",
        video_url="https://vimeo.com/76979871",
        duration=600,
        order_index=0,
        release_type=ReleaseType.immediate,
    )
    db.add(lesson)
    db.commit()
    db.refresh(lesson)
    return lesson


@pytest.fixture
def enrollment(db, student_user, published_course):
    """Enroll the student in the published course thirty days ago."""
    enrollment = Enrollment(
        id=uuid4(),
        user_id=student_user.id,
        course_id=published_course.id,
        enrolled_at=datetime.utcnow() - timedelta(days=30),
    )
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


@pytest.fixture
def auth_headers(client, student_user):
    """Get authentication headers for student user."""
    response = client.post(
        "/api/v1/auth/login",
        data={
            "username": student_user.email,
            "password": "password123"
        }
    )
    token = response.json()["access_token"]
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_headers(other_student):
    return headers_for(other_student)


@pytest.fixture
def instructor_headers(instructor_user):
    return headers_for(instructor_user)


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def token_headers():
    """Build bearer headers for any user without going through login."""
    return headers_for


@pytest.fixture
def user_factory(db, student_role):
    """Create extra students on demand."""
    def factory(email, full_name="Another Student", role=None):
        return make_user(db, role or student_role, email, full_name)
    return factory
