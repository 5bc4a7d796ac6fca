from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt
from sqlalchemy.exc import SQLAlchemyError

from skillhub.config import settings
from skillhub.interfaces.http.authz import get_current_identity
from skillhub.infrastructure.security import create_access_token


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def test_missing_header(client, db_session):
    response = client.get("/api/courses/enrolled")
    assert response.status_code == 401
    assert response.json()["detail"] == "Authorization token required"


def test_non_bearer_scheme(client, student):
    token = create_access_token(student.id, student.name, student.role)
    response = client.get("/api/courses/enrolled", headers={"Authorization": f"Token {token}"})
    assert response.status_code == 401


def test_garbage_token(client, db_session):
    response = client.get("/api/courses/enrolled", headers=bearer("not-a-jwt"))
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authorized, token failed"


def test_token_signed_with_other_key(client, student):
    token = jwt.encode({"sub": str(student.id), "role": "student"}, "other-key", algorithm="HS256")
    response = client.get("/api/courses/enrolled", headers=bearer(token))
    assert response.status_code == 401


def test_expired_token(client, student):
    token = create_access_token(student.id, student.name, student.role, days=-1)
    response = client.get("/api/courses/enrolled", headers=bearer(token))
    assert response.status_code == 401
    assert response.json()["detail"] == "Not authorized, token failed"


def test_token_without_subject(client, db_session):
    token = jwt.encode({"role": "student"}, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    response = client.get("/api/courses/enrolled", headers=bearer(token))
    assert response.status_code == 401


def test_wrong_role_forbidden(client, student, auth_header):
    response = client.get("/api/courses/my-courses", headers=auth_header(student))
    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied. Insufficient permissions."


def test_stored_role_wins_over_token_claim(client, db_session, student, auth_header):
    """A role change in the database applies to tokens issued before it"""
    headers = auth_header(student)
    student.role = "faculty"
    db_session.commit()
    assert client.get("/api/courses/enrolled", headers=headers).status_code == 403
    assert client.get("/api/courses/my-courses", headers=headers).status_code == 200


def test_deleted_user_not_found(client, db_session, student, auth_header):
    headers = auth_header(student)
    db_session.delete(student)
    db_session.commit()
    response = client.get("/api/courses/enrolled", headers=headers)
    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


def test_nameless_token_resolves_name_from_user(client, faculty, make_course):
    make_course(code="LEG101", instructor="Jane Smith")
    token = create_access_token(faculty.id, None, faculty.role)
    assert "name" not in jwt.get_unverified_claims(token)
    response = client.get("/api/courses/my-courses", headers=bearer(token))
    assert response.status_code == 200
    assert [c["code"] for c in response.json()] == ["LEG101"]


def test_name_lookup_failure_leaves_name_empty():
    token = create_access_token(7, None, "faculty")
    db = MagicMock()
    db.get.side_effect = SQLAlchemyError("database is locked")
    request = MagicMock()

    identity = get_current_identity(
        request,
        HTTPAuthorizationCredentials(scheme="Bearer", credentials=token),
        db,
    )

    assert identity.id == 7
    assert identity.name is None
    assert identity.role == "faculty"
    assert request.state.identity == identity


def test_faculty_without_name_cannot_list_own_courses(client, db_session, faculty):
    token = create_access_token(faculty.id, None, faculty.role)
    faculty.name = ""
    db_session.commit()
    response = client.get("/api/courses/my-courses", headers=bearer(token))
    assert response.status_code == 400
    assert response.json()["detail"] == "Faculty name not found in token"


def test_missing_credentials_direct_call():
    with pytest.raises(HTTPException) as exc_info:
        get_current_identity(MagicMock(), None, MagicMock())
    assert exc_info.value.status_code == 401
