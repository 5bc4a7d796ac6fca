from dataclasses import dataclass
from datetime import datetime

from ..domain.entities import User

@dataclass
class RegisterUserInput:
    name: str
    email: str
    password: str
    role: str
    registration_number: str | None = None
    department: str | None = None

@dataclass
class RegistrationResult:
    user: User
    email_sent: bool

@dataclass
class EnrolledStudent:
    id: int
    name: str | None
    email: str
    registration_number: str | None
    department: str | None
    enrolled_date: datetime

@dataclass
class RemovedEnrollment:
    student_name: str
    course_title: str
