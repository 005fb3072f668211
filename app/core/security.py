"""
Password hashing and credential validation helpers.
"""
import re
from dataclasses import dataclass, field
from typing import List

import bcrypt

from app.core.config import settings

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 8

COMMON_PASSWORDS = {
    "password",
    "123456",
    "password123",
    "admin",
    "qwerty",
    "letmein",
    "welcome",
    "monkey",
    "dragon",
    "master",
}


@dataclass
class PasswordValidation:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    score: int = 0


def get_password_hash(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Compare using bcrypt's own checker. Malformed hashes never match."""
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), hashed_password.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def normalize_email(email: str) -> str:
    return email.strip().lower()


def validate_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email or ""))


def validate_password(password: str) -> PasswordValidation:
    """
    Check password strength.

    Every failing rule is reported, not just the first one.
    """
    errors: List[str] = []
    suggestions: List[str] = []
    score = 0

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
    else:
        score += 1

    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter")
        suggestions.append("Add lowercase letters")
    else:
        score += 1

    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter")
        suggestions.append("Add uppercase letters")
    else:
        score += 1

    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one number")
        suggestions.append("Add numbers")
    else:
        score += 1

    if not re.search(r"[^a-zA-Z0-9]", password):
        errors.append("Password must contain at least one special character")
        suggestions.append("Add special characters (!@#$%^&*)")
    else:
        score += 1

    if password.lower() in COMMON_PASSWORDS:
        errors.append("This password is too common")
        suggestions.append("Use a more unique password")
        score = max(0, score - 2)

    return PasswordValidation(
        is_valid=not errors,
        errors=errors,
        suggestions=suggestions,
        score=score,
    )
