"""
Blog content models: posts, their taxonomy and view tracking.

Usage:
    from app.models.post import Post, Category, Tag

    post = Post(
        title="Reforma tributária: o que muda",
        slug="reforma-tributaria-o-que-muda",
        content="<p>...</p>",
        author_id=1,
    )
"""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel, Column
from sqlalchemy import Text, Index


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    description: Optional[str] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=_utc_now)


class Tag(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)


class PostCategoryLink(SQLModel, table=True):
    __tablename__ = "post_category"

    post_id: int = Field(foreign_key="post.id", primary_key=True, ondelete="CASCADE")
    category_id: int = Field(foreign_key="category.id", primary_key=True, ondelete="CASCADE")


class PostTagLink(SQLModel, table=True):
    __tablename__ = "post_tag"

    post_id: int = Field(foreign_key="post.id", primary_key=True, ondelete="CASCADE")
    tag_id: int = Field(foreign_key="tag.id", primary_key=True, ondelete="CASCADE")


class Post(SQLModel, table=True):
    """
    Attributes:
        content: Normalized block markup (see app.services.content)
        order: Manual sort key set by the admin reorder screen
        published_at: Set on first publish and kept afterwards
        reading_time: Minutes, derived from word_count
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    slug: str = Field(unique=True, index=True)
    content: str = Field(sa_column=Column(Text, nullable=False))
    excerpt: Optional[str] = Field(default=None, nullable=True)
    main_image: Optional[str] = Field(default=None, nullable=True)
    published: bool = Field(default=False)
    published_at: Optional[datetime] = Field(default=None, nullable=True)
    author_id: int = Field(foreign_key="account.id", index=True, ondelete="CASCADE")
    order: int = Field(default=0)
    reading_time: Optional[int] = Field(default=None, nullable=True)
    word_count: Optional[int] = Field(default=None, nullable=True)
    seo_title: Optional[str] = Field(default=None, nullable=True)
    seo_description: Optional[str] = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)

    __table_args__ = (
        Index("ix_post_published_created", "published", "created_at"),
    )


class PostView(SQLModel, table=True):
    __tablename__ = "post_view"

    id: Optional[int] = Field(default=None, primary_key=True)
    post_id: int = Field(foreign_key="post.id", index=True, ondelete="CASCADE")
    ip_address: str = Field(index=True)
    account_id: Optional[int] = Field(
        default=None, foreign_key="account.id", nullable=True, ondelete="SET NULL"
    )
    created_at: datetime = Field(default_factory=_utc_now)


__all__ = ["Category", "Tag", "PostCategoryLink", "PostTagLink", "Post", "PostView"]
