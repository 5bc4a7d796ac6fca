import os
import sys
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.dirname(CURRENT_DIR)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from skillhub.infrastructure import cache
from skillhub.infrastructure.db import Base, get_db
from skillhub.infrastructure.models import User, Course
from skillhub.infrastructure.security import PasswordHasher, create_access_token
from skillhub.interfaces.http.ratelimit import limiter
from skillhub.interfaces.http.routers.auth import get_notifier
from skillhub.main import app

# in-memory database shared by every session in a test
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db
# rate limiting is off in tests
limiter.enabled = False

PASSWORD = "password123"


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    """Redis stand-in: every read is a miss."""
    client = MagicMock()
    client.get.return_value = None
    monkeypatch.setattr(cache, "get_redis", lambda: client)
    return client


@pytest.fixture(scope="session")
def password_hash():
    return PasswordHasher().hash(PASSWORD)


@pytest.fixture
def db_session():
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def notifier():
    mock = MagicMock()
    mock.send_welcome.return_value = True
    return mock


@pytest.fixture
def client(db_session, notifier):
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.pop(get_notifier, None)


@pytest.fixture
def make_user(db_session, password_hash):
    def _make(name="Jane Student", role="student", email=None,
              registration_number="REG100", department=None):
        row = User(
            name=name,
            email=email or f"{uuid.uuid4().hex[:10]}@example.com",
            password_hash=password_hash,
            role=role,
            registration_number=registration_number if role == "student" else None,
            department=department,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _make


@pytest.fixture
def student(make_user):
    return make_user(name="Jane Student", registration_number="REG001")


@pytest.fixture
def faculty(make_user):
    return make_user(name="Jane Smith", role="faculty", department="Computer Science")


@pytest.fixture
def make_course(db_session):
    counter = {"n": 0}

    def _make(code=None, instructor="Jane Smith", max_students=30, enrolled=0,
              is_active=True, faculty_id=None, title=None):
        counter["n"] += 1
        start = datetime(2026, 1, 10, tzinfo=timezone.utc)
        row = Course(
            title=title or f"Course {counter['n']}",
            code=code or f"CS{100 + counter['n']}",
            category="Programming",
            description="An introductory course",
            instructor=instructor,
            faculty_id=faculty_id,
            duration="8 weeks",
            level="Beginner",
            max_students=max_students,
            enrolled=enrolled,
            start_date=start,
            end_date=start + timedelta(weeks=8),
            syllabus=[],
            is_active=is_active,
        )
        db_session.add(row)
        db_session.commit()
        db_session.refresh(row)
        return row
    return _make


@pytest.fixture
def auth_header():
    def _header(user) -> dict:
        token = create_access_token(user.id, user.name, user.role)
        return {"Authorization": f"Bearer {token}"}
    return _header


@pytest.fixture
def course_payload():
    return {
        "title": "Python Basics",
        "code": "py101",
        "category": "Programming",
        "description": "Learn Python",
        "instructor": "Jane Smith",
        "duration": "6 weeks",
        "level": "Beginner",
        "maxStudents": 2,
        "startDate": "2026-02-01T00:00:00Z",
        "endDate": "2026-03-15T00:00:00Z",
        "syllabus": [
            {
                "module": "Module 1",
                "topic": "Variables",
                "youtubeLinks": ["https://youtu.be/abc"],
                "fileUploads": [{"fileName": "intro.pdf", "fileUrl": "https://files.example.com/intro.pdf"}],
            }
        ],
    }
