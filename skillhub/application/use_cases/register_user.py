import structlog

from ..dto import RegisterUserInput, RegistrationResult
from ...domain.entities import User, ROLES, STUDENT, FACULTY
from ...domain.errors import Conflict, ValidationError

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 6

class IUserRepository:
    def get_by_email(self, email: str) -> User | None: ...
    def get_by_id(self, user_id: int) -> User | None: ...
    def create(self, name: str, email: str, password_hash: str, role: str,
               registration_number: str | None = None, department: str | None = None) -> User: ...

class IPasswordHasher:
    def hash(self, plain: str) -> str: ...

class INotifier:
    def send_welcome(self, user: User) -> bool: ...

class RegisterUser:
    def __init__(self, repo: IUserRepository, hasher: IPasswordHasher, notifier: INotifier | None = None):
        self.repo = repo
        self.hasher = hasher
        self.notifier = notifier

    def validate(self, data: RegisterUserInput) -> None:
        if not data.name or not data.email or not data.password or not data.role:
            raise ValidationError("All required fields must be filled")
        if "@" not in data.email:
            raise ValidationError("Please enter a valid email address")
        if len(data.password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
        if data.role not in ROLES:
            raise ValidationError("Role must be either student or faculty")
        if data.role == STUDENT and not data.registration_number:
            raise ValidationError("Registration number is required for students")

    def execute(self, data: RegisterUserInput) -> RegistrationResult:
        self.validate(data)
        if self.repo.get_by_email(data.email):
            raise Conflict("An account with this email already exists")
        pwd_hash = self.hasher.hash(data.password)
        # the unique index on email still guards a concurrent duplicate (repo raises Conflict)
        user = self.repo.create(
            data.name,
            data.email,
            pwd_hash,
            data.role,
            registration_number=data.registration_number if data.role == STUDENT else None,
            department=data.department if data.role == FACULTY else None,
        )
        logger.info("user_registered", user_id=user.id, role=user.role)
        email_sent = self.notifier.send_welcome(user) if self.notifier else False
        return RegistrationResult(user=user, email_sent=email_sent)
