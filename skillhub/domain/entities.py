from dataclasses import dataclass
from datetime import datetime, timezone

STUDENT = "student"
FACULTY = "faculty"
ROLES = (STUDENT, FACULTY)

LEVELS = ("Beginner", "Intermediate", "Advanced")


@dataclass(frozen=True)
class User:
    id: int | None
    name: str
    email: str
    role: str = STUDENT
    registration_number: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class Identity:
    """Caller resolved from a bearer token; name may be None for legacy tokens."""
    id: int
    name: str | None
    role: str


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC so it compares with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
