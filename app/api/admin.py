"""
Administration endpoints: post management and ordering, user management.

Every route here requires the ADMIN role.
"""

import secrets
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select, func, col

from app.api import deps
from app.core.errors import (
    AuthorizationError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
    error_boundary,
)
from app.core.logging_config import get_logger
from app.core.security import normalize_email, validate_email
from app.db import get_session
from app.models import Account, Comment, Post, Role
from app.schemas import AdminUserCreate, AdminUserUpdate, PostUpdate, ReorderRequest
from app.services.accounts import create_account, get_account_by_email, serialize_account_detail
from app.services.posts import serialize_post, serialize_posts, set_content, set_published
from app.services.revalidate import purge_post_cache

logger = get_logger(__name__)

router = APIRouter()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============== POSTS ==============


@router.get("/posts")
def list_posts(
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """All posts, drafts included, in display order, with dashboard totals."""
    posts = session.exec(
        select(Post).order_by(col(Post.order).asc(), col(Post.created_at).desc(), col(Post.id).desc())
    ).all()
    items = serialize_posts(session, list(posts), approved_comments_only=False)

    pending_comments = session.exec(
        select(func.count()).select_from(Comment).where(Comment.approved == False)  # noqa: E712
    ).one()
    total_comments = sum(p["commentCount"] for p in items)
    total_views = sum(p["viewCount"] for p in items)
    stats = {
        "totalPosts": len(items),
        "publishedPosts": sum(1 for p in items if p["published"]),
        "draftPosts": sum(1 for p in items if not p["published"]),
        "totalComments": total_comments,
        "pendingComments": pending_comments,
        "totalViews": total_views,
        "avgViewsPerPost": round(total_views / len(items)) if items else 0,
    }
    return {"posts": items, "stats": stats}


@router.put("/posts/reorder")
def reorder_posts(
    body: ReorderRequest,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """
    Apply a new manual order to many posts at once.

    All-or-nothing: when any id is unknown nothing is written. Orders are
    stored as given; gaps and duplicates are allowed.
    """
    if body.post_orders is None:
        raise ValidationError("postOrders must be a list", field="postOrders")

    ids = [item.id for item in body.post_orders]
    posts = {
        p.id: p for p in session.exec(select(Post).where(col(Post.id).in_(ids))).all()
    } if ids else {}

    missing = sorted({post_id for post_id in ids if post_id not in posts})
    if missing:
        session.rollback()
        raise NotFoundError("Post not found", field="postOrders", details={"missingIds": missing})

    now = _utc_now()
    for item in body.post_orders:
        post = posts[item.id]
        post.order = item.order
        post.updated_at = now
        session.add(post)
    session.commit()

    logger.info("Posts reordered", count=len(ids), admin_id=admin.id)

    with error_boundary("purge_post_cache"):
        purge_post_cache()

    return {"message": "Post order updated", "updated": len(ids)}


@router.put("/posts/{post_id}")
def update_post(
    post_id: int,
    body: PostUpdate,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    post = session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")

    if body.title is not None:
        if not body.title.strip():
            raise ValidationError("Title cannot be empty", field="title")
        post.title = body.title.strip()
    if body.excerpt is not None:
        post.excerpt = body.excerpt
    if body.main_image is not None:
        post.main_image = body.main_image or None
    if body.content is not None:
        set_content(post, body.content)
    if body.published is not None:
        set_published(post, body.published)

    post.updated_at = _utc_now()
    session.add(post)
    session.commit()
    session.refresh(post)

    logger.info("Post updated", post_id=post.id, admin_id=admin.id)
    return serialize_post(session, post, approved_comments_only=False)


@router.delete("/posts/{post_id}")
def delete_post(
    post_id: int,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """Deletes the post with its comments, views and taxonomy links."""
    post = session.get(Post, post_id)
    if post is None:
        raise NotFoundError("Post not found")

    session.delete(post)
    session.commit()

    logger.info("Post deleted", post_id=post_id, admin_id=admin.id)
    return {"message": "Post deleted"}


# ============== USERS ==============


def _user_summary(session: Session, account: Account) -> dict:
    data = serialize_account_detail(session, account)
    data["postCount"] = session.exec(
        select(func.count()).select_from(Post).where(Post.author_id == account.id)
    ).one()
    data["commentCount"] = session.exec(
        select(func.count()).select_from(Comment).where(Comment.author_id == account.id)
    ).one()
    return data


def _get_account(session: Session, user_id: int) -> Account:
    account = session.get(Account, user_id)
    if account is None:
        raise NotFoundError("User not found")
    return account


@router.get("/users")
def list_users(
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    accounts = session.exec(select(Account).order_by(col(Account.created_at).desc(), col(Account.id).desc())).all()
    return {"users": [_user_summary(session, a) for a in accounts]}


@router.get("/users/{user_id}")
def get_user(
    user_id: int,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    return {"user": _user_summary(session, _get_account(session, user_id))}


@router.post("/users", status_code=status.HTTP_201_CREATED)
def create_user(
    body: AdminUserCreate,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """
    Create an account on someone's behalf.

    The generated temporary password is returned once and never stored in
    clear.
    """
    if not body.email or not body.name or not body.name.strip():
        raise ValidationError("Email and name are required")

    email = normalize_email(body.email)
    if not validate_email(email):
        raise ValidationError("Invalid email", field="email")

    if get_account_by_email(session, email):
        raise ConflictError("Email is already in use", code=ErrorCode.EMAIL_ALREADY_EXISTS, field="email")

    temp_password = secrets.token_urlsafe(12)
    account = create_account(
        session,
        email=email,
        password=temp_password,
        name=body.name,
        role=body.role,
        email_verified=body.email_verified,
        registration_source="admin",
    )

    logger.info("User created by admin", account_id=account.id, role=account.role, admin_id=admin.id)
    return {"user": _user_summary(session, account), "tempPassword": temp_password}


@router.put("/users/{user_id}")
def update_user(
    user_id: int,
    body: AdminUserUpdate,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    account = _get_account(session, user_id)

    # An administrator cannot demote themselves; this keeps at least one admin
    if account.id == admin.id and body.role is not None and body.role != Role.ADMIN:
        raise AuthorizationError(
            "You cannot remove your own administrator role",
            code=ErrorCode.SELF_PROTECTION,
            field="role",
        )

    if body.name is not None:
        if not body.name.strip():
            raise ValidationError("Name cannot be empty", field="name")
        account.name = body.name.strip()
    if body.role is not None:
        account.role = body.role
    if body.email_verified is not None:
        account.email_verified = body.email_verified

    account.updated_at = _utc_now()
    session.add(account)
    session.commit()
    session.refresh(account)

    logger.info("User updated", account_id=account.id, admin_id=admin.id)
    return {"user": _user_summary(session, account)}


@router.delete("/users/{user_id}")
def delete_user(
    user_id: int,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """Deletes the account and everything it owns."""
    account = _get_account(session, user_id)

    if account.id == admin.id:
        raise AuthorizationError("You cannot delete your own account", code=ErrorCode.SELF_PROTECTION)

    session.delete(account)
    session.commit()

    logger.info("User deleted", account_id=user_id, admin_id=admin.id)
    return {"message": "User deleted"}
