#!/usr/bin/env python3
"""Seed a development database with roles, users, a sample course and a plan.

Usage:
  python -m fxdojo.scripts.seed            # create what is missing
  python -m fxdojo.scripts.seed --reset    # drop and recreate every table first
"""

import argparse
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from fxdojo.core.env import load_env

load_env()

from fxdojo.core.logging import configure_logging, get_logger
from fxdojo.core.security import get_password_hash
from fxdojo.db.init_db import create_database, drop_database
from fxdojo.db.session import SessionLocal
from fxdojo.modules.auth.models import ROLE_ADMIN, ROLE_INSTRUCTOR, ROLE_STUDENT, User
from fxdojo.modules.auth.repository import RoleRepository, UserRepository, UserRoleRepository
from fxdojo.modules.courses.models import Course, Lesson, ReleaseType
from fxdojo.modules.courses.repository import CourseRepository, EnrollmentRepository, LessonRepository
from fxdojo.modules.subscriptions.models import SubscriptionPlan

logger = get_logger(__name__)

DEV_PASSWORD = "password123"

USERS = [
    ("admin@fxdojo.local", "Dojo Admin", ROLE_ADMIN),
    ("instructor@fxdojo.local", "Dojo Instructor", ROLE_INSTRUCTOR),
    ("student@fxdojo.local", "Dojo Student", ROLE_STUDENT),
]

COURSE_SLUG = "fx-foundations"

LESSONS = [
    {"title": "What moves currency pairs", "release_type": ReleaseType.immediate},
    {"title": "Reading the economic calendar", "release_type": ReleaseType.drip, "release_days": 7},
    {"title": "Position sizing", "release_type": ReleaseType.drip},
    {"title": "Trading the London open", "release_type": ReleaseType.scheduled, "release_in_days": 14},
    {"title": "Building a trade journal", "release_type": ReleaseType.prerequisite},
]


def get_or_create_user(db: Session, email: str, full_name: str, role_name: str) -> User:
    user_repo = UserRepository(db)
    user = user_repo.get_by_email(email)
    if user:
        return user

    user = user_repo.create(
        email=email,
        full_name=full_name,
        password_hash=get_password_hash(DEV_PASSWORD),
        email_verified=True,
    )
    role = RoleRepository(db).get_or_create(role_name)
    UserRoleRepository(db).assign_role(user.id, role.id)
    logger.info("seeded user", email=email, role=role_name)
    return user


def get_or_create_course(db: Session) -> Course:
    course_repo = CourseRepository(db)
    course = course_repo.get_by_slug(COURSE_SLUG)
    if course:
        return course

    course = course_repo.create(
        title="FX Foundations",
        description="Market structure, risk and execution for new FX traders.",
        slug=COURSE_SLUG,
        is_published=True,
        price=9800,
    )
    lesson_repo = LessonRepository(db)
    previous: Lesson | None = None
    for index, item in enumerate(LESSONS):
        release_date = None
        if item.get("release_in_days"):
            release_date = datetime.utcnow() + timedelta(days=item["release_in_days"])
        previous = lesson_repo.create(
            course_id=course.id,
            title=item["title"],
            duration=600 + index * 120,
            order_index=index,
            release_type=item["release_type"],
            release_days=item.get("release_days"),
            release_date=release_date,
            prerequisite_id=previous.id
            if previous is not None and item["release_type"] == ReleaseType.prerequisite
            else None,
        )
    logger.info("seeded course", slug=COURSE_SLUG, lessons=len(LESSONS))
    return course


def get_or_create_plan(db: Session) -> SubscriptionPlan:
    plan = db.query(SubscriptionPlan).filter(SubscriptionPlan.name == "Monthly").first()
    if plan:
        return plan
    plan = SubscriptionPlan(
        name="Monthly",
        description="Full access to every course and the trading floor chat.",
        price=4980,
        duration_days=30,
        features=["All courses", "Live chat", "Private rooms"],
    )
    db.add(plan)
    db.flush()
    logger.info("seeded plan", name=plan.name)
    return plan


def seed(reset: bool = False) -> None:
    if reset:
        drop_database()
    create_database()

    db = SessionLocal()
    try:
        users = {role: get_or_create_user(db, email, name, role) for email, name, role in USERS}
        course = get_or_create_course(db)
        enrollment_repo = EnrollmentRepository(db)
        student = users[ROLE_STUDENT]
        if not enrollment_repo.get_by_user_and_course(student.id, course.id):
            enrollment_repo.create(user_id=student.id, course_id=course.id)
        get_or_create_plan(db)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("seeding failed")
        raise
    finally:
        db.close()

    logger.info("seed complete", password=DEV_PASSWORD, users=[email for email, _, _ in USERS])


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the fxdojo database")
    parser.add_argument("--reset", action="store_true", help="drop and recreate all tables first")
    args = parser.parse_args()

    configure_logging()
    seed(reset=args.reset)


if __name__ == "__main__":
    main()
