from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlmodel import Session, select, col

from app.api import deps
from app.core.errors import NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.core.rate_limit import get_client_ip
from app.db import get_session
from app.models import Category, Post, PostCategoryLink, PostView
from app.schemas import PostCreate
from app.services.posts import create_post, get_published_post, serialize_post, serialize_posts

logger = get_logger(__name__)

router = APIRouter()

PUBLIC_LIST_LIMIT = 50
VIEW_WINDOW = timedelta(hours=24)


@router.get("")
def list_published_posts(
    category: Optional[str] = Query(default=None, description="Category slug"),
    limit: int = Query(default=PUBLIC_LIST_LIMIT, ge=1, le=PUBLIC_LIST_LIMIT),
    session: Session = Depends(get_session),
) -> Any:
    """Published posts, newest first."""
    query = select(Post).where(Post.published == True)  # noqa: E712
    if category:
        query = (
            query.join(PostCategoryLink, PostCategoryLink.post_id == Post.id)
            .join(Category, Category.id == PostCategoryLink.category_id)
            .where(Category.slug == category)
        )
    posts = session.exec(
        query.order_by(
            col(Post.published_at).desc(),
            col(Post.created_at).desc(),
            col(Post.id).desc(),
        ).limit(limit)
    ).all()
    return serialize_posts(session, list(posts))


@router.post("", status_code=status.HTTP_201_CREATED)
def create(
    body: PostCreate,
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
    session: Session = Depends(get_session),
) -> Any:
    if not body.title or not body.title.strip() or not body.content:
        raise ValidationError("Title and content are required")

    post = create_post(session, current_user.id, body)
    logger.info("Post created", post_id=post.id, slug=post.slug, published=post.published)
    return serialize_post(session, post)


@router.get("/{slug}")
def read_post(slug: str, session: Session = Depends(get_session)) -> Any:
    return serialize_post(session, get_published_post(session, slug))


@router.post("/{slug}/view")
def record_view(
    slug: str,
    request: Request,
    auth: deps.AuthResult = Depends(deps.get_auth_result),
    session: Session = Depends(get_session),
) -> Any:
    """Count at most one view per IP address per post in any 24 hour window."""
    post = session.exec(select(Post).where(Post.slug == slug)).first()
    if post is None:
        raise NotFoundError("Post not found")

    ip = get_client_ip(request)
    since = datetime.now(timezone.utc) - VIEW_WINDOW
    existing = session.exec(
        select(PostView.id).where(
            PostView.post_id == post.id,
            PostView.ip_address == ip,
            PostView.created_at >= since,
        )
    ).first()
    if existing is not None:
        return {"recorded": False, "message": "View already recorded"}

    session.add(PostView(
        post_id=post.id,
        ip_address=ip,
        account_id=auth.user.id if auth.user else None,
    ))
    session.commit()
    return {"recorded": True, "message": "View recorded"}
