import structlog

from ...domain.entities import User
from ...domain.errors import Unauthenticated, ValidationError

logger = structlog.get_logger()

class ICredentialStore:
    def get_credentials(self, email: str) -> tuple[User, str] | None: ...

class IPasswordVerifier:
    def verify(self, plain: str, hashed: str) -> bool: ...

class AuthenticateUser:
    def __init__(self, repo: ICredentialStore, hasher: IPasswordVerifier):
        self.repo = repo
        self.hasher = hasher

    def execute(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required")
        found = self.repo.get_credentials(email)
        if not found or not self.hasher.verify(password, found[1]):
            logger.info("login_failed", known_email=found is not None)
            raise Unauthenticated("Invalid email or password")
        return found[0]
