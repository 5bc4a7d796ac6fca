"""Enrollment ledger.

Keeps ``courses.enrolled`` equal to the number of enrollment rows for the
course. Every mutation runs in a single transaction on the injected session:
the seat counter and the enrollment row either both change or neither does.
"""
import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..dto import EnrolledStudent, RemovedEnrollment
from ...domain.errors import CapacityExceeded, Conflict, InternalError, NotFound

logger = structlog.get_logger()

NOT_AVAILABLE = "N/A"


class EnrollmentLedger:
    def __init__(self, session, users, courses, enrollments, enrollment_factory):
        self.session = session
        self.users = users
        self.courses = courses
        self.enrollments = enrollments
        self.enrollment_factory = enrollment_factory

    def enroll(self, course_id: int, student_id: int):
        course = self.courses.get(course_id)
        if not course:
            raise NotFound("Course not found")
        student = self.users.get_by_id(student_id)
        if not student:
            raise NotFound("Student not found")
        if self.enrollments.get(student_id, course_id):
            raise Conflict("You are already enrolled in this course")

        try:
            # conditional increment: check and claim in one statement, row stays locked until commit
            if not self.enrollments.claim_seat(course_id):
                raise CapacityExceeded("This course is full")
            enrollment = self.enrollments.add(self.enrollment_factory(
                student_id=student_id,
                course_id=course_id,
                student_name=student.name,
                registration_number=student.registration_number,
                course_title=course.title,
                course_code=course.code,
            ))
            # capacity as of the row lock, not as of the load above
            max_students = self.enrollments.capacity(course_id)
            live = self.enrollments.count_for_course(course_id)
            if live > max_students:
                raise CapacityExceeded("This course is full")
            self.enrollments.set_counter(course_id, live)
            self.session.commit()
        except Conflict as exc:
            self.session.rollback()
            logger.info("enrollment_rejected", course_id=course_id, student_id=student_id, reason=exc.message)
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("enrollment_failed", course_id=course_id, student_id=student_id, error=str(exc))
            raise InternalError() from exc
        logger.info("student_enrolled", course_id=course_id, student_id=student_id, enrolled=live)
        return enrollment

    def _remove(self, course_id: int, student_id: int) -> None:
        try:
            if not self.enrollments.delete(student_id, course_id):
                raise NotFound("Enrollment not found")
            self.enrollments.release_seat(course_id)
            self.session.commit()
        except NotFound:
            self.session.rollback()
            raise
        except SQLAlchemyError as exc:
            self.session.rollback()
            logger.error("unenrollment_failed", course_id=course_id, student_id=student_id, error=str(exc))
            raise InternalError() from exc
        logger.info("student_unenrolled", course_id=course_id, student_id=student_id)

    def unenroll(self, course_id: int, student_id: int) -> str:
        """Drop the caller's enrollment; returns the course title for the confirmation message."""
        enrollment = self.enrollments.get(student_id, course_id)
        if not enrollment:
            raise NotFound("Enrollment not found")
        title = enrollment.course_title
        self._remove(course_id, student_id)
        return title

    def remove_student(self, course_id: int, student_id: int) -> RemovedEnrollment:
        if not self.enrollments.get(student_id, course_id):
            raise NotFound("Enrollment not found")
        course = self.courses.get(course_id)
        if not course:
            raise NotFound("Course not found")
        student = self.users.get_by_id(student_id)
        if not student:
            raise NotFound("Student not found")
        result = RemovedEnrollment(student_name=student.name, course_title=course.title)
        self._remove(course_id, student_id)
        return result

    def enrolled_courses(self, student_id: int) -> list:
        return self.enrollments.list_courses_for_student(student_id)

    def enrolled_students(self, course_id: int) -> list[EnrolledStudent]:
        students = []
        for enrollment, user in self.enrollments.list_students_for_course(course_id):
            if user is not None:
                students.append(EnrolledStudent(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    registration_number=user.registration_number,
                    department=user.department,
                    enrolled_date=enrollment.enrollment_date,
                ))
            else:
                # user record is gone: serve the snapshot taken at enrollment time
                students.append(EnrolledStudent(
                    id=enrollment.id,
                    name=enrollment.student_name,
                    email=NOT_AVAILABLE,
                    registration_number=enrollment.registration_number or NOT_AVAILABLE,
                    department=NOT_AVAILABLE,
                    enrolled_date=enrollment.enrollment_date,
                ))
        return students
