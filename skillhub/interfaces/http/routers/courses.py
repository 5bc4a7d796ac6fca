from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from ....application.use_cases.course_catalog import CourseCatalog
from ....application.use_cases.enrollment_ledger import EnrollmentLedger
from ....domain.entities import Identity
from ....domain.errors import CapacityExceeded, Conflict
from ....infrastructure.db import get_db
from ....infrastructure.models import Course, Enrollment
from ....infrastructure.repositories import UserRepository, CourseRepository, EnrollmentRepository
from ....infrastructure.cache import course_key, get_cache, set_cache, delete_cache
from ....infrastructure.metrics import cache_hits_total, cache_misses_total, enrollments_total
from ..schemas import (
    CourseOut, CourseCreate, CourseUpdate, EnrolledCourseOut, EnrolledStudentOut,
    EnrollResp, MessageResp, RestoreResp, RemovedStudentResp, PermanentDeleteResp,
)
from ..authz import require_student, require_faculty

router = APIRouter(prefix="/api/courses", tags=["courses"])

def get_catalog(db: Session = Depends(get_db)) -> CourseCatalog:
    return CourseCatalog(CourseRepository(db), EnrollmentRepository(db), course_factory=Course)

def get_ledger(db: Session = Depends(get_db)) -> EnrollmentLedger:
    return EnrollmentLedger(
        db, UserRepository(db), CourseRepository(db), EnrollmentRepository(db),
        enrollment_factory=Enrollment,
    )

def course_out(row, enrolled: int | None = None) -> CourseOut:
    out = CourseOut.model_validate(row)
    if enrolled is not None:
        out = out.model_copy(update={"enrolled": enrolled})
    return out

def course_fields(payload: CourseCreate | CourseUpdate, exclude_unset: bool = False) -> dict:
    fields = payload.model_dump(exclude={"syllabus"}, exclude_unset=exclude_unset)
    if "syllabus" in payload.model_fields_set or not exclude_unset:
        syllabus = payload.syllabus
        fields["syllabus"] = (
            None if syllabus is None
            else [item.model_dump(mode="json", by_alias=True) for item in syllabus]
        )
    return fields

# --- public

@router.get("", response_model=list[CourseOut])
def list_courses(catalog: CourseCatalog = Depends(get_catalog)):
    return [course_out(row, live) for row, live in catalog.list_public()]

# --- student

@router.get("/enrolled", response_model=list[EnrolledCourseOut])
def enrolled_courses(
    identity: Identity = Depends(require_student),
    ledger: EnrollmentLedger = Depends(get_ledger),
):
    return [
        EnrolledCourseOut(**course_out(course).model_dump(), enrolled_at=enrollment.enrollment_date)
        for enrollment, course in ledger.enrolled_courses(identity.id)
    ]

# --- faculty listings

@router.get("/my-courses", response_model=list[CourseOut])
def my_courses(
    identity: Identity = Depends(require_faculty),
    catalog: CourseCatalog = Depends(get_catalog),
):
    return [course_out(row, live) for row, live in catalog.my_courses(identity)]

@router.get("/faculty/{faculty_id}", response_model=list[CourseOut], dependencies=[Depends(require_faculty)])
def faculty_courses(faculty_id: int, catalog: CourseCatalog = Depends(get_catalog)):
    return [course_out(row, live) for row, live in catalog.list_by_faculty(faculty_id)]

@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: int, catalog: CourseCatalog = Depends(get_catalog)):
    cached = get_cache(course_key(course_id))
    if cached:
        cache_hits_total.inc()
        return cached

    cache_misses_total.inc()
    result = course_out(catalog.get(course_id))
    set_cache(course_key(course_id), result.model_dump(mode="json", by_alias=True))
    return result

# --- enrollment

@router.post("/{course_id}/enroll", response_model=EnrollResp, status_code=status.HTTP_201_CREATED)
def enroll(
    course_id: int,
    identity: Identity = Depends(require_student),
    ledger: EnrollmentLedger = Depends(get_ledger),
):
    try:
        enrollment = ledger.enroll(course_id, identity.id)
    except Conflict as exc:
        enrollments_total.labels(outcome="full" if isinstance(exc, CapacityExceeded) else "duplicate").inc()
        raise
    enrollments_total.labels(outcome="enrolled").inc()
    delete_cache(course_key(course_id))
    return EnrollResp(message=f"Successfully enrolled in {enrollment.course_title}", course_id=course_id)

@router.delete("/{course_id}/unenroll", response_model=MessageResp)
def unenroll(
    course_id: int,
    identity: Identity = Depends(require_student),
    ledger: EnrollmentLedger = Depends(get_ledger),
):
    title = ledger.unenroll(course_id, identity.id)
    enrollments_total.labels(outcome="unenrolled").inc()
    delete_cache(course_key(course_id))
    return MessageResp(message=f"Successfully unenrolled from {title}")

@router.get("/{course_id}/students", response_model=list[EnrolledStudentOut], dependencies=[Depends(require_faculty)])
def enrolled_students(course_id: int, ledger: EnrollmentLedger = Depends(get_ledger)):
    return [EnrolledStudentOut.model_validate(s) for s in ledger.enrolled_students(course_id)]

@router.delete("/{course_id}/students/{student_id}", response_model=RemovedStudentResp,
               dependencies=[Depends(require_faculty)])
def remove_student(course_id: int, student_id: int, ledger: EnrollmentLedger = Depends(get_ledger)):
    removed = ledger.remove_student(course_id, student_id)
    enrollments_total.labels(outcome="unenrolled").inc()
    delete_cache(course_key(course_id))
    return RemovedStudentResp(
        message=f"Successfully removed {removed.student_name} from {removed.course_title}",
        student_name=removed.student_name,
        course_title=removed.course_title,
    )

# --- faculty CRUD

@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(
    payload: CourseCreate,
    identity: Identity = Depends(require_faculty),
    catalog: CourseCatalog = Depends(get_catalog),
):
    return course_out(catalog.create(course_fields(payload), identity))

@router.put("/{course_id}", response_model=CourseOut, dependencies=[Depends(require_faculty)])
def update_course(course_id: int, payload: CourseUpdate, catalog: CourseCatalog = Depends(get_catalog)):
    row = catalog.update(course_id, course_fields(payload, exclude_unset=True))
    delete_cache(course_key(course_id))
    return course_out(row)

@router.delete("/{course_id}", response_model=MessageResp, dependencies=[Depends(require_faculty)])
def delete_course(course_id: int, catalog: CourseCatalog = Depends(get_catalog)):
    catalog.set_active(course_id, False)
    delete_cache(course_key(course_id))
    return MessageResp(message="Course deleted successfully")

@router.put("/{course_id}/restore", response_model=RestoreResp, dependencies=[Depends(require_faculty)])
def restore_course(course_id: int, catalog: CourseCatalog = Depends(get_catalog)):
    row = catalog.set_active(course_id, True)
    delete_cache(course_key(course_id))
    return RestoreResp(message="Course restored successfully", data=course_out(row))

@router.delete("/{course_id}/permanent", response_model=PermanentDeleteResp, dependencies=[Depends(require_faculty)])
def permanent_delete_course(course_id: int, catalog: CourseCatalog = Depends(get_catalog)):
    orphaned = catalog.permanent_delete(course_id)
    delete_cache(course_key(course_id))
    return PermanentDeleteResp(message="Course permanently deleted successfully", orphaned_enrollments=orphaned)
