"""Maintenance commands.

Usage:

    python -m skillhub.manage seed               # demo student + faculty accounts
    python -m skillhub.manage destroy            # delete every user
    python -m skillhub.manage link-instructors   # stamp facultyId on legacy courses
"""
from __future__ import annotations

import argparse

import structlog

from .application.use_cases.course_catalog import CourseCatalog
from .domain.entities import FACULTY
from .infrastructure import db
from .infrastructure.logging_setup import configure_logging
from .infrastructure.models import Course
from .infrastructure.repositories import CourseRepository, EnrollmentRepository, UserRepository
from .infrastructure.security import PasswordHasher

logger = structlog.get_logger()

DEMO_USERS = [
    {
        "name": "John Student",
        "email": "student@example.com",
        "password": "password123",
        "role": "student",
        "registration_number": "REG001",
    },
    {
        "name": "Dr. Smith",
        "email": "faculty@example.com",
        "password": "password123",
        "role": "faculty",
        "department": "Computer Science",
    },
]


def seed(session) -> int:
    repo = UserRepository(session)
    repo.delete_all()
    hasher = PasswordHasher()
    for user in DEMO_USERS:
        repo.create(
            user["name"],
            user["email"],
            hasher.hash(user["password"]),
            user["role"],
            registration_number=user.get("registration_number"),
            department=user.get("department"),
        )
    logger.info("demo_users_seeded", count=len(DEMO_USERS))
    return len(DEMO_USERS)


def destroy(session) -> int:
    count = UserRepository(session).delete_all()
    logger.info("users_destroyed", count=count)
    return count


def link_instructors(session) -> dict[int, int]:
    catalog = CourseCatalog(CourseRepository(session), EnrollmentRepository(session), course_factory=Course)
    return catalog.link_instructor_courses(UserRepository(session).list_by_role(FACULTY))


COMMANDS = {
    "seed": seed,
    "destroy": destroy,
    "link-instructors": link_instructors,
}


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SkillHub maintenance commands")
    parser.add_argument("command", choices=sorted(COMMANDS))
    return parser.parse_args(argv)


def main(argv=None) -> None:
    configure_logging()
    args = _parse_args(argv)
    db.init_db()
    session = db.SessionLocal()
    try:
        COMMANDS[args.command](session)
    finally:
        session.close()


if __name__ == "__main__":  # pragma: no cover - manual entry point
    main()
