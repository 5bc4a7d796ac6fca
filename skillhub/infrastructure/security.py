from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from jose import jwt, JWTError
from ..config import settings

pwd = CryptContext(
    schemes=["bcrypt_sha256"],
    deprecated="auto",
    bcrypt_sha256__truncate_error=False,
)

class PasswordHasher:
    def hash(self, plain: str) -> str: return pwd.hash(plain)
    def verify(self, plain: str, hashed: str) -> bool: return pwd.verify(plain, hashed)

def create_access_token(user_id: int, name: str | None, role: str, days: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    exp = now + timedelta(days=days or settings.ACCESS_TOKEN_EXPIRE_DAYS)
    payload = {"sub": str(user_id), "role": role, "iat": now, "exp": exp}
    if name:
        payload["name"] = name
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Return verified claims with ``sub`` coerced to an int user id, or raise JWTError."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    sub = payload.get("sub")
    if not sub:
        raise JWTError("No subject")
    try:
        payload["sub"] = int(sub)
    except (TypeError, ValueError) as exc:
        raise JWTError("Malformed subject") from exc
    return payload
