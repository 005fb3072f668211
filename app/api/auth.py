from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from fastapi.responses import JSONResponse
from sqlmodel import Session, select, delete, col

from app.api import deps
from app.core import security
from app.core.config import settings
from app.core.errors import (
    AuthenticationError,
    ConflictError,
    ErrorCode,
    RateLimitError,
    ValidationError,
    error_boundary,
)
from app.core.jwt import create_access_token
from app.core.logging_config import get_logger
from app.core.rate_limit import LOGIN_LIMIT, RESET_LIMIT, get_client_ip, get_user_agent, rate_limiter
from app.db import get_session
from app.models import Account, AccountMetadata, LoginSession, Role
from app.schemas import EmailRequest, LoginRequest, RegisterRequest, ResetPasswordConfirm, TokenRequest
from app.services import verification
from app.services.accounts import (
    count_non_seed_accounts,
    create_account,
    get_account_by_email,
    serialize_account,
    serialize_account_detail,
)
from app.services.email import send_password_reset_email, send_verification_email, send_welcome_email

logger = get_logger(__name__)

router = APIRouter()

# Cookie settings
COOKIE_MAX_AGE = settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60
COOKIE_SAMESITE = "lax"

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"
RESET_REQUEST_MESSAGE = "If an account exists for this email, a password reset link has been sent."
RESEND_MESSAGE = "If an account exists for this email, a verification link has been sent."


def set_auth_cookie(response: Response, token: str):
    """Set httpOnly auth cookie."""
    response.set_cookie(
        key=deps.COOKIE_NAME,
        value=token,
        max_age=COOKIE_MAX_AGE,
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        path="/",
    )


def clear_auth_cookies(response: Response):
    """Clear auth cookies, including the legacy session cookie."""
    for name in (deps.COOKIE_NAME, deps.LEGACY_SESSION_COOKIE):
        response.delete_cookie(
            key=name,
            path="/",
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=COOKIE_SAMESITE,
        )


def start_session(session: Session, request: Request, account: Account) -> LoginSession:
    """Sign a token for the account and persist the session row that backs it."""
    expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    token = create_access_token(
        {"sub": account.id, "email": account.email, "role": Role(account.role).value},
        expires_delta=expires_delta,
    )
    login_session = LoginSession(
        token=token,
        account_id=account.id,
        expires_at=datetime.now(timezone.utc) + expires_delta,
        user_agent=get_user_agent(request),
        ip_address=get_client_ip(request),
    )
    session.add(login_session)
    return login_session


def _require_email(email: Optional[str]) -> str:
    if not email:
        raise ValidationError("Email is required", field="email")
    normalized = security.normalize_email(email)
    if not security.validate_email(normalized):
        raise ValidationError("Invalid email", field="email")
    return normalized


def _require_strong_password(password: str, field: str = "password"):
    result = security.validate_password(password)
    if not result.is_valid:
        raise ValidationError(
            "Password is too weak",
            code=ErrorCode.WEAK_PASSWORD,
            field=field,
            details={"errors": result.errors, "suggestions": result.suggestions, "score": result.score},
        )


def _send_verification(account_id: int, email: str, token: str):
    with error_boundary("send_verification_email", account_id=account_id):
        if not send_verification_email(email, token):
            logger.warning("Verification email not delivered", account_id=account_id)


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    request: Request,
    body: RegisterRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> Any:
    if not body.email or not body.password or not body.name or not body.name.strip():
        raise ValidationError("Email, password and name are required")

    email = _require_email(body.email)
    _require_strong_password(body.password)

    if get_account_by_email(session, email):
        raise ConflictError("Email is already in use", code=ErrorCode.EMAIL_ALREADY_EXISTS, field="email")

    # First real registrant bootstraps the site as its administrator
    is_first = count_non_seed_accounts(session) == 0
    account = create_account(
        session,
        email=email,
        password=body.password,
        name=body.name,
        role=Role.ADMIN if is_first else Role.SUBSCRIBER,
        email_verified=is_first,
        registration_source="web",
    )

    login_session = start_session(session, request, account)
    session.commit()

    if not account.email_verified:
        with error_boundary("create_verification_token", account_id=account.id):
            token = verification.create_email_verification_token(session, account.id)
            background_tasks.add_task(_send_verification, account.id, account.email, token)

    logger.info("Account registered", account_id=account.id, role=account.role, first_admin=is_first)

    message = (
        "Account created. You are the site administrator."
        if is_first
        else "Account created. Check your email to verify your address."
    )
    response = JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "user": serialize_account(account),
            "accessToken": login_session.token,
            "message": message,
        },
    )
    set_auth_cookie(response, login_session.token)
    return response


@router.post("/login")
def login(
    request: Request,
    body: LoginRequest,
    session: Session = Depends(get_session),
) -> Any:
    ip = get_client_ip(request)
    limiter_key = f"login:{ip}"
    rate_limiter.enforce(limiter_key, LOGIN_LIMIT, "Too many login attempts. Please try again later.")

    if not body.email or not body.password:
        raise ValidationError("Email and password are required")

    account = get_account_by_email(session, body.email)
    if not account or not security.verify_password(body.password, account.hashed_password):
        is_locked, remaining = rate_limiter.record_failure(limiter_key)
        if is_locked:
            raise RateLimitError(
                f"Too many failed attempts. Try again in {remaining} seconds.",
                headers={"Retry-After": str(remaining)},
            )
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE, code=ErrorCode.INVALID_CREDENTIALS)

    rate_limiter.reset_failures(limiter_key)

    login_session = start_session(session, request, account)

    metadata = session.exec(select(AccountMetadata).where(AccountMetadata.account_id == account.id)).first()
    if metadata is None:
        metadata = AccountMetadata(account_id=account.id)
    metadata.login_count += 1
    metadata.last_login_at = datetime.now(timezone.utc)
    metadata.last_login_ip = ip
    session.add(metadata)
    session.commit()
    session.refresh(login_session)

    logger.info("Login succeeded", account_id=account.id)

    response = JSONResponse(content={
        "user": serialize_account(account),
        "session": {
            "id": login_session.id,
            "expiresAt": login_session.expires_at.isoformat(),
        },
        "accessToken": login_session.token,
    })
    set_auth_cookie(response, login_session.token)
    return response


@router.post("/logout")
def logout(request: Request, session: Session = Depends(get_session)):
    """Revoke the presented session, if any, and clear auth cookies. Always succeeds."""
    tokens = [
        request.cookies.get(deps.COOKIE_NAME),
        request.cookies.get(deps.LEGACY_SESSION_COOKIE),
    ]
    tokens = [t for t in tokens if t]
    if tokens:
        session.execute(delete(LoginSession).where(col(LoginSession.token).in_(tokens)))
        session.commit()

    resp = JSONResponse(content={"message": "Logged out successfully"})
    clear_auth_cookies(resp)
    return resp


@router.get("/me")
def me(
    session: Session = Depends(get_session),
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
) -> Any:
    account = session.get(Account, current_user.id)
    return {"user": serialize_account_detail(session, account)}


@router.post("/verify-email")
def verify_email(
    body: TokenRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> Any:
    if not body.token:
        raise ValidationError("Token is required", field="token")

    account = verification.verify_email_verification_token(session, body.token)
    if account is None:
        raise ValidationError("Invalid or expired token", code=ErrorCode.TOKEN_INVALID, field="token")

    background_tasks.add_task(send_welcome_email, account.email, account.name)
    return {"message": "Email verified successfully", "user": serialize_account(account)}


@router.post("/resend-verification")
def resend_verification(
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> Any:
    """
    Issue a fresh verification link.
    Unknown emails get the same answer as known ones.
    """
    email = _require_email(body.email)

    account = get_account_by_email(session, email)
    if account is None:
        return {"message": RESEND_MESSAGE}

    if account.email_verified:
        raise ValidationError("Email is already verified", field="email")

    recent = verification.count_recent_verification_tokens(session, account.id)
    if recent >= settings.VERIFICATION_RESEND_LIMIT_PER_HOUR:
        raise RateLimitError(
            "Too many verification emails requested. Please try again later.",
            headers={"Retry-After": "3600"},
        )

    token = verification.create_email_verification_token(session, account.id, resent=True)
    background_tasks.add_task(_send_verification, account.id, account.email, token)
    return {"message": RESEND_MESSAGE}


@router.post("/reset-password")
def request_password_reset(
    request: Request,
    body: EmailRequest,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
) -> Any:
    """
    Send password reset email.
    Always returns success to prevent email enumeration.
    """
    email = _require_email(body.email)

    rate_limiter.enforce(
        f"reset:{get_client_ip(request)}",
        RESET_LIMIT,
        "Too many password reset attempts. Please try again later.",
    )

    account = get_account_by_email(session, email)
    if account:
        reset_token = verification.create_password_reset_token(session, account.id)
        background_tasks.add_task(send_password_reset_email, account.email, reset_token)

    return {"message": RESET_REQUEST_MESSAGE}


@router.put("/reset-password")
def confirm_password_reset(
    body: ResetPasswordConfirm,
    session: Session = Depends(get_session),
) -> Any:
    if not body.token or not body.new_password:
        raise ValidationError("Token and new password are required")

    _require_strong_password(body.new_password, field="newPassword")

    account = verification.verify_password_reset_token(session, body.token)
    if account is None:
        raise ValidationError("Invalid or expired token", code=ErrorCode.TOKEN_INVALID, field="token")

    verification.update_account_password(session, account, body.new_password, body.token)
    return {"message": "Password updated successfully"}
