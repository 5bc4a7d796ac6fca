from fastapi.testclient import TestClient
from sqlalchemy.exc import SQLAlchemyError

from skillhub.infrastructure.db import get_db
from skillhub.infrastructure.models import User
from skillhub.infrastructure.security import decode_token
from skillhub.main import app


def register_student(client, **overrides):
    body = {
        "name": "Ada Student",
        "email": "ada@example.com",
        "password": "password123",
        "role": "student",
        "registrationNumber": "REG042",
    }
    body.update(overrides)
    return client.post("/api/auth/register", json=body)


def test_register_student_success(client, db_session, notifier):
    """Registration returns a token that decodes to the stored identity"""
    response = register_student(client)
    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["emailSent"] is True
    assert data["user"]["email"] == "ada@example.com"
    assert data["user"]["registrationNumber"] == "REG042"
    assert "password" not in data["user"]

    claims = decode_token(data["token"])
    assert claims["sub"] == data["user"]["id"]
    assert claims["name"] == "Ada Student"
    assert claims["role"] == "student"
    notifier.send_welcome.assert_called_once()


def test_register_student_requires_registration_number(client, db_session):
    response = register_student(client, registrationNumber=None)
    assert response.status_code == 400
    assert response.json()["detail"] == "Registration number is required for students"
    assert db_session.query(User).count() == 0


def test_register_faculty_keeps_department_only(client, db_session):
    response = client.post("/api/auth/register", json={
        "name": "Dr. Smith",
        "email": "smith@example.com",
        "password": "password123",
        "role": "faculty",
        "registrationNumber": "IGNORED",
        "department": "Computer Science",
    })
    assert response.status_code == 201
    user = response.json()["user"]
    assert user["role"] == "faculty"
    assert user["department"] == "Computer Science"
    assert user["registrationNumber"] is None


def test_register_normalizes_email(client, db_session):
    response = register_student(client, email="Ada@Example.COM")
    assert response.status_code == 201
    assert response.json()["user"]["email"] == "ada@example.com"


def test_register_duplicate_email_case_insensitive(client, db_session):
    assert register_student(client).status_code == 201
    response = register_student(client, email="ADA@example.com")
    assert response.status_code == 400
    assert response.json()["detail"] == "An account with this email already exists"
    assert db_session.query(User).count() == 1


def test_register_short_password(client, db_session):
    response = register_student(client, password="123")
    assert response.status_code == 400
    assert "at least 6 characters" in response.json()["detail"]


def test_register_invalid_email(client, db_session):
    response = register_student(client, email="invalid-email")
    assert response.status_code == 400


def test_register_unknown_role(client, db_session):
    response = register_student(client, role="admin")
    assert response.status_code == 400


def test_register_succeeds_when_notification_fails(client, db_session, notifier):
    notifier.send_welcome.return_value = False
    response = register_student(client)
    assert response.status_code == 201
    assert response.json()["emailSent"] is False
    assert db_session.query(User).count() == 1


def test_login_success(client, student):
    response = client.post("/api/auth/login", json={"email": student.email, "password": "password123"})
    assert response.status_code == 200
    data = response.json()
    assert data["tokenType"] == "bearer"
    assert data["user"]["id"] == student.id
    assert decode_token(data["token"])["role"] == "student"


def test_login_wrong_password(client, student):
    response = client.post("/api/auth/login", json={"email": student.email, "password": "wrongpassword"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


def test_login_unknown_user(client, db_session):
    response = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "password123"})
    assert response.status_code == 401


def test_login_missing_fields(client, db_session):
    response = client.post("/api/auth/login", json={"email": "nobody@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email and password are required"


def test_profile(client, student, auth_header):
    response = client.get("/api/auth/profile", headers=auth_header(student))
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == student.id
    assert data["registrationNumber"] == "REG001"
    assert "password" not in data and "passwordHash" not in data


def test_profile_user_gone(client, db_session, student, auth_header):
    headers = auth_header(student)
    db_session.delete(student)
    db_session.commit()
    response = client.get("/api/auth/profile", headers=headers)
    assert response.status_code == 404


def test_profile_requires_token(client, db_session):
    response = client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authorization token required"


def test_unexpected_error_is_generic_500(db_session):
    def broken_db():
        raise SQLAlchemyError("connection refused to 10.0.0.5")
        yield  # pragma: no cover

    previous = app.dependency_overrides[get_db]
    app.dependency_overrides[get_db] = broken_db
    try:
        response = TestClient(app, raise_server_exceptions=False).post(
            "/api/auth/login", json={"email": "a@example.com", "password": "password123"}
        )
    finally:
        app.dependency_overrides[get_db] = previous
    assert response.status_code == 500
    assert response.json() == {"detail": "Server error"}
