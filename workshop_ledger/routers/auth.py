from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from workshop_ledger.core.api_docs import error_responses
from workshop_ledger.core.config import settings
from workshop_ledger.core.deps import get_db
from workshop_ledger.core.rate_limit import LoginRateLimiter
from workshop_ledger.core.security import create_access_token, hash_password, verify_password
from workshop_ledger.core.security_current import clear_auth_cookie, get_current_user, set_auth_cookie
from workshop_ledger.models.user import User
from workshop_ledger.schemas.auth import AuthOut, LoginIn, LogoutOut, RegisterIn, TokenOut, UserOut
from workshop_ledger.services.audit_service import log_audit_event

router = APIRouter(prefix="/auth", tags=["auth"])
AUTH_RESPONSE = {
    "content": {
        "application/json": {
            "example": {
                "user": {
                    "id": 1,
                    "username": "workshop_owner",
                    "email": "owner@example.com",
                    "name": "Ada Carpenter",
                    "profile_picture": None,
                    "created_at": "2026-10-19T09:00:00Z",
                    "updated_at": "2026-10-19T09:00:00Z",
                },
                "access_token": "access-token",
                "token_type": "bearer",
            }
        }
    },
}

login_rate_limiter = LoginRateLimiter(
    max_attempts=settings.auth_rate_limit_max_attempts,
    window_seconds=settings.auth_rate_limit_window_seconds,
    lock_seconds=settings.auth_rate_limit_lock_seconds,
)


def username_taken(db: Session, username: str, *, exclude_user_id: int | None = None) -> bool:
    stmt = select(User.id).where(func.lower(User.username) == username.lower())
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def email_taken(db: Session, email: str, *, exclude_user_id: int | None = None) -> bool:
    stmt = select(User.id).where(func.lower(User.email) == email.lower())
    if exclude_user_id is not None:
        stmt = stmt.where(User.id != exclude_user_id)
    return db.execute(stmt).first() is not None


def _client_ip(request: Request) -> str:
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def _rate_key(identifier: str, client_ip: str) -> str:
    return f"{identifier.strip().lower()}:{client_ip}"


def _enforce_rate_limit(identifier: str, client_ip: str) -> str:
    key = _rate_key(identifier, client_ip)
    retry_after = login_rate_limiter.check(key)
    if retry_after > 0:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many failed attempts. Try again later.",
            headers={"Retry-After": str(retry_after)},
        )
    return key


def _authenticate_user(db: Session, identifier: str, password: str) -> User:
    normalized_identifier = identifier.strip().lower()
    user = db.execute(
        select(User).where(
            or_(
                func.lower(User.email) == normalized_identifier,
                func.lower(User.username) == normalized_identifier,
            )
        )
    ).scalar_one_or_none()

    if not user or not verify_password(password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid username or password")

    return user


def _login(db: Session, request: Request, identifier: str, password: str) -> User:
    key = _enforce_rate_limit(identifier, _client_ip(request))
    try:
        user = _authenticate_user(db, identifier, password)
    except HTTPException as exc:
        if exc.status_code == 401:
            login_rate_limiter.register_failure(key)
        raise

    login_rate_limiter.register_success(key)
    return user


@router.post(
    "/register",
    response_model=AuthOut,
    status_code=status.HTTP_201_CREATED,
    summary="Register a user",
    description="Creates the account and signs it in by setting the auth cookie.",
    responses={201: AUTH_RESPONSE, **error_responses(400, 422, 500)},
)
def register(payload: RegisterIn, response: Response, db: Session = Depends(get_db)):
    if username_taken(db, payload.username):
        raise HTTPException(status_code=400, detail="Username already exists")
    if email_taken(db, payload.email):
        raise HTTPException(status_code=400, detail="Email already exists")

    user = User(
        username=payload.username,
        email=payload.email.lower(),
        hashed_password=hash_password(payload.password),
        name=payload.name,
        profile_picture=payload.profile_picture,
    )
    db.add(user)
    db.flush()
    log_audit_event(
        db,
        actor_user_id=user.id,
        action="user.register",
        target_type="user",
        target_id=user.id,
        metadata_json={"username": user.username},
    )
    db.commit()
    db.refresh(user)

    access_token = create_access_token(user.id)
    set_auth_cookie(response, access_token)
    return AuthOut(user=UserOut.model_validate(user), access_token=access_token)


@router.post(
    "/login",
    response_model=AuthOut,
    summary="Login with JSON",
    description="Authenticate with username or email and password; sets the auth cookie.",
    responses={200: AUTH_RESPONSE, **error_responses(401, 422, 429, 500)},
)
def login(payload: LoginIn, request: Request, response: Response, db: Session = Depends(get_db)):
    user = _login(db, request, payload.username, payload.password)
    access_token = create_access_token(user.id)
    set_auth_cookie(response, access_token)
    return AuthOut(user=UserOut.model_validate(user), access_token=access_token)


@router.post(
    "/token",
    response_model=TokenOut,
    summary="OAuth2 password token (Swagger Authorize)",
    description=(
        "Form-data login endpoint used by Swagger Authorize. "
        "Use your email or username in the `username` field."
    ),
    responses=error_responses(401, 422, 429, 500),
)
def login_for_swagger(
    request: Request,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
):
    user = _login(db, request, form_data.username, form_data.password)
    return TokenOut(access_token=create_access_token(user.id))


@router.post(
    "/logout",
    response_model=LogoutOut,
    summary="Logout",
    description="Clears the auth cookie. Bearer tokens stay valid until they expire.",
)
def logout(response: Response):
    clear_auth_cookie(response)
    return LogoutOut()


@router.get(
    "/user",
    response_model=UserOut,
    summary="Current user",
    responses=error_responses(401, 500),
)
def get_authenticated_user(user: User = Depends(get_current_user)):
    return UserOut.model_validate(user)
