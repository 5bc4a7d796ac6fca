from fastapi import APIRouter, Depends, status, Request
from sqlalchemy.orm import Session

from ....application.dto import RegisterUserInput
from ....application.use_cases.authenticate_user import AuthenticateUser
from ....application.use_cases.register_user import RegisterUser
from ....domain.entities import Identity, User
from ....domain.errors import NotFound
from ....infrastructure.db import get_db
from ....infrastructure.notifications import WebhookNotifier
from ....infrastructure.repositories import UserRepository
from ....infrastructure.security import PasswordHasher, create_access_token
from ..authz import get_current_identity
from ..ratelimit import limiter, REGISTER_LIMIT, LOGIN_LIMIT
from ..schemas import RegisterReq, LoginReq, UserResp, ProfileResp, TokenResp, RegisterResp

router = APIRouter(prefix="/api/auth", tags=["auth"])

def get_notifier() -> WebhookNotifier:
    return WebhookNotifier()

def to_resp(user: User) -> UserResp:
    return UserResp(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        registration_number=user.registration_number,
        department=user.department,
    )

@router.post("/register", response_model=RegisterResp, status_code=status.HTTP_201_CREATED)
@limiter.limit(REGISTER_LIMIT)
def register(
    request: Request,
    payload: RegisterReq,
    db: Session = Depends(get_db),
    notifier: WebhookNotifier = Depends(get_notifier),
):
    uc = RegisterUser(repo=UserRepository(db), hasher=PasswordHasher(), notifier=notifier)
    result = uc.execute(RegisterUserInput(
        name=payload.name.strip(),
        email=str(payload.email),
        password=payload.password,
        role=payload.role.strip(),
        registration_number=(payload.registration_number or "").strip() or None,
        department=(payload.department or "").strip() or None,
    ))
    user = result.user
    token = create_access_token(user.id, user.name, user.role)
    return RegisterResp(token=token, user=to_resp(user), email_sent=result.email_sent)

@router.post("/login", response_model=TokenResp)
@limiter.limit(LOGIN_LIMIT)
def login(
    request: Request,
    payload: LoginReq,
    db: Session = Depends(get_db),
):
    user = AuthenticateUser(repo=UserRepository(db), hasher=PasswordHasher()).execute(
        payload.email.strip(), payload.password
    )
    token = create_access_token(user.id, user.name, user.role)
    return TokenResp(token=token, user=to_resp(user))

@router.get("/profile", response_model=ProfileResp)
def profile(
    identity: Identity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    row = UserRepository(db).get_row(identity.id)
    if not row:
        raise NotFound("User not found")
    return ProfileResp.model_validate(row)
