"""
Single-use tokens for email verification and password reset.
"""

from enum import Enum
from typing import Optional
from sqlmodel import Field, SQLModel, Index
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenType(str, Enum):
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PASSWORD_RESET = "PASSWORD_RESET"


class VerificationToken(SQLModel, table=True):
    __tablename__ = "verification_token"

    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(unique=True, index=True)
    account_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")
    type: TokenType
    used: bool = Field(default=False)
    # Issued through resend-verification; only these count toward the hourly limit
    resent: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utc_now)
    expires_at: datetime

    __table_args__ = (
        # Resend limit counts recent tokens per account and type
        Index("ix_verification_token_account_type_created", "account_id", "type", "created_at"),
    )
