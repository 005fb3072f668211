from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from datetime import datetime

from app.models import Role


class CamelModel(BaseModel):
    """JSON uses camelCase keys; Python code uses snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


# === REQUEST BODIES ===
# Required fields are Optional here so handlers can answer with specific
# messages instead of a generic schema error.

class RegisterRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None

class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None

class TokenRequest(CamelModel):
    token: Optional[str] = None

class EmailRequest(CamelModel):
    email: Optional[str] = None

class ResetPasswordConfirm(CamelModel):
    token: Optional[str] = None
    new_password: Optional[str] = None

class CommentCreate(CamelModel):
    content: Optional[str] = None
    post_id: Optional[int] = None
    parent_id: Optional[int] = None

class PostCreate(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    description: Optional[str] = None
    main_image: Optional[str] = None
    categories: List[int] = []
    tags: List[str] = []
    published: bool = False
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None

class PostUpdate(CamelModel):
    title: Optional[str] = None
    excerpt: Optional[str] = None
    main_image: Optional[str] = None
    content: Optional[str] = None
    published: Optional[bool] = None

class PostOrder(CamelModel):
    id: int
    order: int

class ReorderRequest(CamelModel):
    post_orders: Optional[List[PostOrder]] = None

class AdminUserCreate(CamelModel):
    email: Optional[str] = None
    name: Optional[str] = None
    role: Role = Role.SUBSCRIBER
    email_verified: bool = False

class AdminUserUpdate(CamelModel):
    name: Optional[str] = None
    role: Optional[Role] = None
    email_verified: Optional[bool] = None

class CategoryCreate(CamelModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    description: Optional[str] = None


# === RESPONSES ===

class PreferencesOut(CamelModel):
    theme: str
    language: str
    email_notifications: bool
    push_notifications: bool
    sms_notifications: bool
    newsletter_subscribed: bool

class MetadataOut(CamelModel):
    login_count: int
    last_login_at: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    registration_source: str

class AccountOut(CamelModel):
    id: int
    email: str
    name: str
    avatar: Optional[str] = None
    role: Role
    email_verified: bool
    created_at: datetime
    updated_at: datetime

class AccountDetailOut(AccountOut):
    preferences: Optional[PreferencesOut] = None
    metadata: Optional[MetadataOut] = None

class AuthorOut(CamelModel):
    id: int
    name: str
    avatar: Optional[str] = None

class CategoryOut(CamelModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None

class CategoryWithCount(CategoryOut):
    post_count: int = 0

class TagOut(CamelModel):
    id: int
    name: str
    slug: str

class PostOut(CamelModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    main_image: Optional[str] = None
    published: bool
    published_at: Optional[datetime] = None
    order: int
    reading_time: Optional[int] = None
    word_count: Optional[int] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    author_id: int
    author: Optional[AuthorOut] = None
    categories: List[CategoryOut] = []
    tags: List[TagOut] = []
    comment_count: int = 0
    view_count: int = 0

class CommentOut(CamelModel):
    id: int
    content: str
    post_id: int
    parent_id: Optional[int] = None
    approved: bool
    created_at: datetime
    author: Optional[AuthorOut] = None
    replies: List["CommentOut"] = []


def dump(model: BaseModel) -> dict:
    """JSON-ready dict with camelCase keys."""
    return model.model_dump(by_alias=True, mode="json")
