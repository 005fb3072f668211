"""
Request guard and shared FastAPI dependencies.

A request is authenticated only when both checks pass:

1. the presented JWT verifies (signature, expiry, required claims), and
2. a non-expired LoginSession row holds that exact token string.

The second check is what makes logout and password reset revoke tokens
before they expire.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session, select

from app.core.category_cache import CategoryCache
from app.core.config import settings
from app.core.context import set_user_id
from app.core.errors import AuthenticationError, AuthorizationError
from app.core.jwt import verify_token
from app.core.permissions import authorize
from app.db import get_session
from app.models import Account, LoginSession, Role
from app.services.storage import StorageBackend, get_storage_backend

# Cookie name for auth token
COOKIE_NAME = "access_token"
# Cookie issued by earlier releases; cleared on logout
LEGACY_SESSION_COOKIE = "session_token"

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_PREFIX}/auth/login", auto_error=False)


@dataclass(frozen=True)
class CurrentUser:
    id: int
    email: str
    name: str
    role: Role


@dataclass(frozen=True)
class AuthResult:
    is_authenticated: bool
    user: Optional[CurrentUser] = None
    error: Optional[str] = None


def get_token_from_request(request: Request, header_token: Optional[str] = None) -> Optional[str]:
    """
    Extract token from cookie or Authorization header.
    Priority: Cookie > Header
    """
    cookie_token = request.cookies.get(COOKIE_NAME)
    if cookie_token:
        return cookie_token

    if header_token:
        return header_token

    return None


def find_active_session(session: Session, token: str) -> Optional[LoginSession]:
    return session.exec(
        select(LoginSession).where(
            LoginSession.token == token,
            LoginSession.expires_at > datetime.now(timezone.utc),
        )
    ).first()


def authenticate_request(request: Request, session: Session, header_token: Optional[str] = None) -> AuthResult:
    token = get_token_from_request(request, header_token)
    if not token:
        return AuthResult(is_authenticated=False, error="Token not found")

    claims = verify_token(token)
    if claims is None:
        return AuthResult(is_authenticated=False, error="Invalid token")

    try:
        account_id = int(claims.sub)
    except ValueError:
        return AuthResult(is_authenticated=False, error="Invalid token")

    account = session.get(Account, account_id)
    if account is None:
        return AuthResult(is_authenticated=False, error="User not found")

    if find_active_session(session, token) is None:
        return AuthResult(is_authenticated=False, error="Session expired or revoked")

    return AuthResult(
        is_authenticated=True,
        user=CurrentUser(id=account.id, email=account.email, name=account.name, role=Role(account.role)),
    )


def get_auth_result(
    request: Request,
    header_token: Optional[str] = Depends(oauth2_scheme),
    session: Session = Depends(get_session),
) -> AuthResult:
    """Guard result for routes that behave differently for anonymous callers."""
    result = authenticate_request(request, session, header_token)
    if result.user:
        set_user_id(result.user.id)
    return result


def get_current_user(auth: AuthResult = Depends(get_auth_result)) -> CurrentUser:
    if not auth.is_authenticated or auth.user is None:
        raise AuthenticationError(
            "Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return auth.user


def require_role(role: Role):
    """
    Dependency factory for role-restricted routes.

        @router.get("/users")
        def list_users(admin: CurrentUser = Depends(require_role(Role.ADMIN))): ...
    """

    def dependency(auth: AuthResult = Depends(get_auth_result)) -> CurrentUser:
        decision = authorize(auth.user if auth.is_authenticated else None, role)
        if not decision.allowed:
            if auth.user is None or not auth.is_authenticated:
                raise AuthenticationError(
                    decision.reason or "Authentication required",
                    headers={"WWW-Authenticate": "Bearer"},
                )
            raise AuthorizationError(decision.reason or "Insufficient privileges")
        return auth.user

    return dependency


require_admin = require_role(Role.ADMIN)


def get_category_cache(request: Request) -> CategoryCache:
    return request.app.state.category_cache


def get_storage() -> StorageBackend:
    return get_storage_backend()
