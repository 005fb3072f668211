from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping, Optional
import uuid

import jwt
from jwt.exceptions import PyJWTError

from app.core.config import settings


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    role: str
    iat: Optional[int] = None
    exp: Optional[int] = None
    jti: Optional[str] = None


def create_access_token(claims: Mapping[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Sign {sub, email, role} with the server secret."""
    now = datetime.now(timezone.utc)
    if expires_delta:
        expire = now + expires_delta
    else:
        expire = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode = {
        "sub": str(claims["sub"]),
        "email": claims["email"],
        "role": str(claims["role"]),
        "iat": now,
        "exp": expire,
        "jti": uuid.uuid4().hex,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_token(token: str, secret: Optional[str] = None) -> Optional[dict]:
    """Decode and validate signature/expiry. Returns None on any failure."""
    try:
        return jwt.decode(
            token,
            secret if secret is not None else settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except PyJWTError:
        return None


def verify_token(token: str, secret: Optional[str] = None) -> Optional[TokenClaims]:
    """
    Verify a token and return its claims.

    Fails closed: a bad signature, an expired token, a malformed token or a
    payload missing email/role all yield None.
    """
    payload = decode_token(token, secret)
    if payload is None:
        return None
    email = payload.get("email")
    role = payload.get("role")
    if not email or not role:
        return None
    return TokenClaims(
        sub=str(payload["sub"]),
        email=email,
        role=role,
        iat=payload.get("iat"),
        exp=payload.get("exp"),
        jti=payload.get("jti"),
    )


def get_token_expiry(token: str) -> Optional[datetime]:
    """Expiry of a valid token as an aware UTC datetime."""
    payload = decode_token(token)
    if payload is None:
        return None
    return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
