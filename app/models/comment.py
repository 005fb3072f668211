from typing import Optional
from sqlmodel import Field, SQLModel
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Comment(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    content: str
    post_id: int = Field(foreign_key="post.id", index=True, ondelete="CASCADE")
    author_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")
    parent_id: Optional[int] = Field(
        default=None, foreign_key="comment.id", nullable=True, index=True, ondelete="CASCADE"
    )
    approved: bool = Field(default=False, index=True)  # Only admin comments start approved
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)
