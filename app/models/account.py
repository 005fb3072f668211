from enum import Enum
from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


def _utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class Role(str, Enum):
    ADMIN = "ADMIN"
    EDITOR = "EDITOR"
    AUTHOR = "AUTHOR"
    SUBSCRIBER = "SUBSCRIBER"


class Account(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(unique=True, index=True)  # Stored lower-cased and stripped
    name: str
    avatar: Optional[str] = Field(default=None, nullable=True)
    hashed_password: str
    role: Role = Field(default=Role.SUBSCRIBER, index=True)
    email_verified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


class AccountPreferences(SQLModel, table=True):
    __tablename__ = "account_preferences"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", unique=True, index=True, ondelete="CASCADE")
    theme: str = Field(default="system")  # "light", "dark", "system"
    language: str = Field(default="pt-BR")
    email_notifications: bool = Field(default=True)
    push_notifications: bool = Field(default=True)
    sms_notifications: bool = Field(default=False)
    newsletter_subscribed: bool = Field(default=False)


class AccountMetadata(SQLModel, table=True):
    __tablename__ = "account_metadata"

    id: Optional[int] = Field(default=None, primary_key=True)
    account_id: int = Field(foreign_key="account.id", unique=True, index=True, ondelete="CASCADE")
    login_count: int = Field(default=0)
    last_login_at: Optional[datetime] = Field(default=None, nullable=True)
    last_login_ip: Optional[str] = Field(default=None, nullable=True)
    # "web", "admin" or "seed"; seeded accounts don't count for first-admin bootstrap
    registration_source: str = Field(default="web", index=True)
