"""Two-stage authorization for protected routes.

``get_current_identity`` verifies the bearer token and resolves who is
calling. ``require_roles`` then re-reads that user from the database and
checks the stored role, so a role change takes effect without waiting for
the 30-day token to expire.
"""
import structlog
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ...domain.entities import Identity, STUDENT, FACULTY
from ...domain.errors import Forbidden, NotFound
from ...infrastructure.db import get_db
from ...infrastructure.repositories import UserRepository
from ...infrastructure.security import decode_token

logger = structlog.get_logger()

bearer = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_identity(
    request: Request,
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
    db: Session = Depends(get_db),
) -> Identity:
    if creds is None or not creds.credentials:
        raise _unauthorized("Authorization token required")
    try:
        claims = decode_token(creds.credentials)
    except JWTError:
        raise _unauthorized("Not authorized, token failed")

    name = claims.get("name")
    if not name:
        # tokens minted before the name claim existed
        try:
            user = UserRepository(db).get_by_id(claims["sub"])
            name = user.name if user else None
        except SQLAlchemyError as exc:
            logger.warning("identity_name_lookup_failed", user_id=claims["sub"], error=str(exc))
            name = None

    identity = Identity(id=claims["sub"], name=name, role=claims.get("role", ""))
    request.state.identity = identity
    return identity


def require_roles(*roles: str):
    allowed = frozenset(roles)

    def dependency(
        identity: Identity = Depends(get_current_identity),
        db: Session = Depends(get_db),
    ) -> Identity:
        user = UserRepository(db).get_by_id(identity.id)
        if user is None:
            raise NotFound("User not found")
        if user.role not in allowed:
            logger.info("role_check_denied", user_id=identity.id, role=user.role, required=sorted(allowed))
            raise Forbidden()
        return Identity(id=identity.id, name=identity.name, role=user.role)

    return dependency


require_student = require_roles(STUDENT)
require_faculty = require_roles(FACULTY)
