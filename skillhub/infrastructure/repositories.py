from sqlalchemy import case, delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import UserORM, CourseORM, EnrollmentORM, utcnow
from ..domain.entities import User
from ..domain.errors import Conflict
from ..application.use_cases.register_user import IUserRepository

def to_domain(u: UserORM) -> User:
    return User(
        id=u.id,
        name=u.name,
        email=u.email,
        role=u.role,
        registration_number=u.registration_number,
        department=u.department,
    )

def normalize_email(email: str) -> str:
    return email.strip().lower()

def normalize_code(code: str) -> str:
    return code.strip().upper()


class UserRepository(IUserRepository):
    def __init__(self, db: Session): self.db = db

    def get_row(self, user_id: int) -> UserORM | None:
        return self.db.get(UserORM, user_id)

    def get_by_id(self, user_id: int) -> User | None:
        row = self.get_row(user_id)
        return to_domain(row) if row else None

    def get_row_by_email(self, email: str) -> UserORM | None:
        return self.db.query(UserORM).filter(UserORM.email == normalize_email(email)).first()

    def get_by_email(self, email: str) -> User | None:
        row = self.get_row_by_email(email)
        return to_domain(row) if row else None

    def get_credentials(self, email: str) -> tuple[User, str] | None:
        row = self.get_row_by_email(email)
        return (to_domain(row), row.password_hash) if row else None

    def list_by_role(self, role: str) -> list[User]:
        rows = self.db.query(UserORM).filter(UserORM.role == role).order_by(UserORM.id).all()
        return [to_domain(r) for r in rows]

    def create(self, name: str, email: str, password_hash: str, role: str,
               registration_number: str | None = None, department: str | None = None) -> User:
        row = UserORM(
            name=name,
            email=normalize_email(email),
            password_hash=password_hash,
            role=role,
            registration_number=registration_number,
            department=department,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict("An account with this email already exists") from exc
        self.db.refresh(row)
        return to_domain(row)

    def delete_all(self) -> int:
        count = self.db.execute(delete(UserORM)).rowcount
        self.db.commit()
        return count


class CourseRepository:
    def __init__(self, db: Session): self.db = db

    def get(self, course_id: int) -> CourseORM | None:
        return self.db.get(CourseORM, course_id)

    def get_by_code(self, code: str) -> CourseORM | None:
        return self.db.query(CourseORM).filter(CourseORM.code == normalize_code(code)).first()

    def list_active(self) -> list[CourseORM]:
        return self.db.query(CourseORM).filter(CourseORM.is_active.is_(True)).order_by(CourseORM.id).all()

    def list_by_faculty(self, faculty_id: int) -> list[CourseORM]:
        return self.db.query(CourseORM).filter(CourseORM.faculty_id == faculty_id).order_by(CourseORM.id).all()

    def list_unlinked_by_instructor(self, name: str, exact: bool = False) -> list[CourseORM]:
        """Courses without a faculty link whose free-text instructor matches ``name``.

        exact=False is a case-insensitive substring match.
        """
        q = self.db.query(CourseORM).filter(CourseORM.faculty_id.is_(None))
        if exact:
            q = q.filter(CourseORM.instructor == name)
        else:
            q = q.filter(func.lower(CourseORM.instructor).contains(name.lower(), autoescape=True))
        return q.order_by(CourseORM.id).all()

    def add(self, row: CourseORM) -> CourseORM:
        self.db.add(row)
        return self._commit(row)

    def save(self, row: CourseORM) -> CourseORM:
        row.updated_at = utcnow()
        return self._commit(row)

    def _commit(self, row: CourseORM) -> CourseORM:
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise Conflict("Course with this code already exists") from exc
        self.db.refresh(row)
        return row

    def delete(self, row: CourseORM) -> None:
        self.db.delete(row); self.db.commit()


class EnrollmentRepository:
    """Enrollment rows plus the seat counter on courses.

    Mutating methods never commit; the ledger owns the transaction.
    """

    def __init__(self, db: Session): self.db = db

    def get(self, student_id: int, course_id: int) -> EnrollmentORM | None:
        return (self.db.query(EnrollmentORM)
                .filter(EnrollmentORM.student_id == student_id, EnrollmentORM.course_id == course_id)
                .first())

    def count_for_course(self, course_id: int) -> int:
        return self.db.scalar(
            select(func.count(EnrollmentORM.id)).where(EnrollmentORM.course_id == course_id)
        ) or 0

    def counts_by_course(self, course_ids: list[int]) -> dict[int, int]:
        if not course_ids:
            return {}
        rows = self.db.execute(
            select(EnrollmentORM.course_id, func.count(EnrollmentORM.id))
            .where(EnrollmentORM.course_id.in_(course_ids))
            .group_by(EnrollmentORM.course_id)
        ).all()
        return {course_id: count for course_id, count in rows}

    def list_courses_for_student(self, student_id: int) -> list[tuple[EnrollmentORM, CourseORM]]:
        # inner join drops enrollments whose course was permanently deleted
        q = (select(EnrollmentORM, CourseORM)
             .join(CourseORM, CourseORM.id == EnrollmentORM.course_id)
             .where(EnrollmentORM.student_id == student_id)
             .order_by(EnrollmentORM.enrollment_date.desc(), EnrollmentORM.id.desc()))
        return [(e, c) for e, c in self.db.execute(q).all()]

    def list_students_for_course(self, course_id: int) -> list[tuple[EnrollmentORM, UserORM | None]]:
        q = (select(EnrollmentORM, UserORM)
             .outerjoin(UserORM, UserORM.id == EnrollmentORM.student_id)
             .where(EnrollmentORM.course_id == course_id)
             .order_by(EnrollmentORM.enrollment_date.desc(), EnrollmentORM.id.desc()))
        return [(e, u) for e, u in self.db.execute(q).all()]

    def capacity(self, course_id: int) -> int:
        return self.db.scalar(select(CourseORM.max_students).where(CourseORM.id == course_id))

    def claim_seat(self, course_id: int) -> bool:
        """Atomically take one seat if the stored counter is below capacity."""
        result = self.db.execute(
            update(CourseORM)
            .where(CourseORM.id == course_id, CourseORM.enrolled < CourseORM.max_students)
            .values(enrolled=CourseORM.enrolled + 1)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def set_counter(self, course_id: int, enrolled: int) -> None:
        self.db.execute(
            update(CourseORM)
            .where(CourseORM.id == course_id)
            .values(enrolled=enrolled)
            .execution_options(synchronize_session=False)
        )

    def release_seat(self, course_id: int) -> None:
        self.db.execute(
            update(CourseORM)
            .where(CourseORM.id == course_id)
            .values(
                enrolled=case((CourseORM.enrolled > 0, CourseORM.enrolled - 1), else_=0),
            )
            .execution_options(synchronize_session=False)
        )

    def add(self, row: EnrollmentORM) -> EnrollmentORM:
        self.db.add(row)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise Conflict("You are already enrolled in this course") from exc
        return row

    def delete(self, student_id: int, course_id: int) -> bool:
        result = self.db.execute(
            delete(EnrollmentORM)
            .where(EnrollmentORM.student_id == student_id, EnrollmentORM.course_id == course_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount > 0
