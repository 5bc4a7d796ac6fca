"""Course catalog: CRUD plus the soft-delete / restore / hard-delete lifecycle."""
from typing import Any

import structlog

from ...domain.entities import Identity, User, LEVELS, as_utc
from ...domain.errors import Conflict, NotFound, ValidationError

logger = structlog.get_logger()

# columns a partial update may touch; every one of them is NOT NULL
UPDATABLE_FIELDS = (
    "title", "code", "category", "description", "instructor", "duration",
    "level", "max_students", "start_date", "end_date", "syllabus", "is_active",
)


def surname(name: str) -> str:
    parts = name.split()
    return parts[-1] if parts else name


class CourseCatalog:
    def __init__(self, courses, enrollments, course_factory):
        self.courses = courses
        self.enrollments = enrollments
        self.course_factory = course_factory

    def get(self, course_id: int):
        row = self.courses.get(course_id)
        if not row:
            raise NotFound("Course not found")
        return row

    def with_live_counts(self, rows: list) -> list[tuple[Any, int]]:
        """Pair each course with its enrollment count computed from the enrollment rows."""
        counts = self.enrollments.counts_by_course([r.id for r in rows])
        return [(r, counts.get(r.id, 0)) for r in rows]

    def list_public(self) -> list[tuple[Any, int]]:
        return self.with_live_counts(self.courses.list_active())

    def create(self, fields: dict, faculty: Identity):
        code = fields["code"].strip().upper()
        if self.courses.get_by_code(code):
            logger.info("course_code_taken", code=code)
            raise Conflict("Course with this code already exists")
        row = self.course_factory(**{**fields, "code": code, "enrolled": 0, "faculty_id": faculty.id})
        row = self.courses.add(row)
        logger.info("course_created", course_id=row.id, code=row.code, faculty_id=faculty.id)
        return row

    def update(self, course_id: int, changes: dict):
        """Apply the fields present in ``changes``; absent fields keep their stored value."""
        row = self.get(course_id)
        for field, value in changes.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if value is None:
                raise ValidationError(f"{field} cannot be null")
        if "code" in changes:
            changes = {**changes, "code": changes["code"].strip().upper()}
            if changes["code"] != row.code:
                other = self.courses.get_by_code(changes["code"])
                if other and other.id != row.id:
                    raise Conflict("Course with this code already exists")
        if "level" in changes and changes["level"] not in LEVELS:
            raise ValidationError("Level must be one of " + ", ".join(LEVELS))
        start = changes.get("start_date", row.start_date)
        end = changes.get("end_date", row.end_date)
        if as_utc(end) < as_utc(start):
            raise ValidationError("endDate must not be before startDate")
        for field in UPDATABLE_FIELDS:
            if field in changes:
                setattr(row, field, changes[field])
        row = self.courses.save(row)
        logger.info("course_updated", course_id=row.id, fields=sorted(changes))
        return row

    def set_active(self, course_id: int, active: bool):
        row = self.get(course_id)
        row.is_active = active
        row = self.courses.save(row)
        logger.info("course_restored" if active else "course_soft_deleted", course_id=course_id)
        return row

    def permanent_delete(self, course_id: int) -> int:
        """Remove the course row. Enrollment rows are kept; returns how many were orphaned."""
        row = self.get(course_id)
        orphaned = self.enrollments.count_for_course(course_id)
        self.courses.delete(row)
        if orphaned:
            logger.warning("course_deleted_with_enrollments", course_id=course_id, orphaned_enrollments=orphaned)
        else:
            logger.info("course_deleted", course_id=course_id)
        return orphaned

    def list_by_faculty(self, faculty_id: int) -> list[tuple[Any, int]]:
        return self.with_live_counts(self.courses.list_by_faculty(faculty_id))

    def match_instructor(self, name: str) -> list:
        """Best-effort match of unlinked courses against a free-text instructor name.

        Tiers: exact name, case-insensitive full name, case-insensitive surname.
        A tier is consulted only when the previous ones found nothing, so the
        surname tier can over-match a colleague with the same surname.
        """
        rows = self.courses.list_unlinked_by_instructor(name, exact=True)
        if not rows:
            rows = self.courses.list_unlinked_by_instructor(name)
        if not rows:
            rows = self.courses.list_unlinked_by_instructor(surname(name))
        return rows

    def my_courses(self, faculty: Identity) -> list[tuple[Any, int]]:
        if not faculty.name:
            raise ValidationError("Faculty name not found in token")
        rows = self.courses.list_by_faculty(faculty.id)
        if not rows:
            rows = self.match_instructor(faculty.name)
        return self.with_live_counts(rows)

    def link_instructor_courses(self, faculty_users: list[User]) -> dict[int, int]:
        """Stamp faculty_id on unlinked courses resolved through the name tiers.

        Returns {faculty id: number of courses linked}.
        """
        linked = {}
        for user in faculty_users:
            rows = self.match_instructor(user.name) if user.name else []
            for row in rows:
                row.faculty_id = user.id
                self.courses.save(row)
            linked[user.id] = len(rows)
            logger.info("instructor_courses_linked", faculty_id=user.id, courses=len(rows))
        return linked
