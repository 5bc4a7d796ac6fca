import pytest

from skillhub import manage
from skillhub.infrastructure import db
from skillhub.infrastructure.models import Course, User
from skillhub.infrastructure.security import PasswordHasher

from conftest import TestingSessionLocal, test_engine


def test_seed_replaces_existing_users(db_session, make_user):
    make_user(name="Old User")
    assert manage.seed(db_session) == 2
    users = db_session.query(User).order_by(User.id).all()
    assert [(u.name, u.role) for u in users] == [("John Student", "student"), ("Dr. Smith", "faculty")]
    assert users[0].registration_number == "REG001"
    assert users[1].department == "Computer Science"
    assert PasswordHasher().verify("password123", users[0].password_hash)


def test_destroy(db_session, make_user):
    make_user()
    make_user()
    assert manage.destroy(db_session) == 2
    assert db_session.query(User).count() == 0


def test_link_instructors(db_session, faculty, make_course):
    matched = make_course(code="LEG101", instructor="Dr. Jane Smith")
    other = make_course(code="LEG102", instructor="Alan Turing")
    matched_id, other_id = matched.id, other.id

    assert manage.link_instructors(db_session) == {faculty.id: 1}
    db_session.expire_all()
    assert db_session.get(Course, matched_id).faculty_id == faculty.id
    assert db_session.get(Course, other_id).faculty_id is None


def test_main_runs_command(db_session, monkeypatch):
    monkeypatch.setattr(db, "engine", test_engine)
    monkeypatch.setattr(db, "SessionLocal", TestingSessionLocal)
    manage.main(["seed"])
    assert db_session.query(User).count() == 2


def test_main_rejects_unknown_command():
    with pytest.raises(SystemExit):
        manage.main(["explode"])
