from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ...domain.entities import as_utc

Level = Literal["Beginner", "Intermediate", "Advanced"]


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class CourseInput(CamelModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        str_strip_whitespace = True

# --- auth

class RegisterReq(CamelModel):
    name: str
    email: EmailStr
    password: str
    role: str
    registration_number: str | None = None
    department: str | None = None

class LoginReq(CamelModel):
    email: str = ""
    password: str = ""

class UserResp(CamelModel):
    id: int
    name: str
    email: str
    role: str
    registration_number: str | None = None
    department: str | None = None

class ProfileResp(UserResp):
    created_at: datetime | None = None
    updated_at: datetime | None = None

class TokenResp(CamelModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserResp

class RegisterResp(TokenResp):
    email_sent: bool

# --- courses

class SyllabusFile(CourseInput):
    file_name: str = Field(min_length=1)
    file_url: str = Field(min_length=1)
    file_type: str | None = None
    file_size: str | None = None
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class SyllabusItem(CourseInput):
    module: str = Field(min_length=1)
    topic: str = Field(min_length=1)
    youtube_links: list[str] = Field(default_factory=list)
    file_uploads: list[SyllabusFile] = Field(default_factory=list)

class CourseCreate(CourseInput):
    title: str = Field(min_length=1)
    code: str = Field(min_length=1)
    category: str = Field(min_length=1)
    description: str = Field(min_length=1)
    instructor: str = Field(min_length=1)
    duration: str = Field(min_length=1)
    level: Level
    max_students: int = Field(ge=1)
    start_date: datetime
    end_date: datetime
    syllabus: list[SyllabusItem] = Field(default_factory=list)

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_as_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self

class CourseUpdate(CourseInput):
    """Every field optional; only the fields present in the body are applied."""
    title: str | None = Field(default=None, min_length=1)
    code: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1)
    description: str | None = Field(default=None, min_length=1)
    instructor: str | None = Field(default=None, min_length=1)
    duration: str | None = Field(default=None, min_length=1)
    level: Level | None = None
    max_students: int | None = Field(default=None, ge=1)
    start_date: datetime | None = None
    end_date: datetime | None = None
    syllabus: list[SyllabusItem] | None = None
    is_active: bool | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def naive_as_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else value

class CourseOut(CamelModel):
    id: int
    title: str
    code: str
    category: str
    description: str
    instructor: str
    faculty_id: int | None = None
    duration: str
    level: str
    max_students: int
    enrolled: int
    start_date: datetime
    end_date: datetime
    syllabus: list[SyllabusItem] = []
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

class EnrolledCourseOut(CourseOut):
    enrolled_at: datetime

class EnrolledStudentOut(CamelModel):
    id: int
    name: str | None = None
    email: str
    registration_number: str | None = None
    department: str | None = None
    enrolled_date: datetime

class MessageResp(BaseModel):
    message: str

class EnrollResp(CamelModel):
    message: str
    course_id: int

class RestoreResp(BaseModel):
    message: str
    data: CourseOut

class RemovedStudentResp(CamelModel):
    message: str
    student_name: str
    course_title: str

class PermanentDeleteResp(CamelModel):
    message: str
    orphaned_enrollments: int
