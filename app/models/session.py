from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class LoginSession(SQLModel, table=True):
    """
    Server-side record of an issued access token.

    A token is only honoured while a non-expired row holding that exact token
    string exists, so deleting rows revokes tokens before their JWT expiry.
    """

    __tablename__ = "login_session"

    id: Optional[int] = Field(default=None, primary_key=True)
    token: str = Field(unique=True, index=True)
    account_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")
    expires_at: datetime = Field(index=True)
    user_agent: Optional[str] = Field(default=None, nullable=True)
    ip_address: Optional[str] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=_utc_now)
