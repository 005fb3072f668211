from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlmodel import Session, select, col

from app.api import deps
from app.core.errors import NotFoundError, ValidationError
from app.core.logging_config import get_logger
from app.db import get_session
from app.models import Account, Comment, Post, Role
from app.schemas import AuthorOut, CommentCreate, CommentOut, dump

logger = get_logger(__name__)

router = APIRouter()


def _authors(session: Session, comments: List[Comment]) -> Dict[int, Account]:
    ids = {c.author_id for c in comments}
    if not ids:
        return {}
    return {a.id: a for a in session.exec(select(Account).where(col(Account.id).in_(ids))).all()}


def _comment_out(comment: Comment, authors: Dict[int, Account], replies: Optional[List[CommentOut]] = None) -> CommentOut:
    author = authors.get(comment.author_id)
    return CommentOut(
        **comment.model_dump(),
        author=AuthorOut.model_validate(author) if author else None,
        replies=replies or [],
    )


@router.get("")
def list_comments(
    post_id: Optional[int] = Query(default=None, alias="postId"),
    session: Session = Depends(get_session),
) -> Any:
    """
    Approved top-level comments for a post, newest first, each with its
    approved replies oldest first.
    """
    if post_id is None:
        raise ValidationError("postId is required", field="postId")

    top_level = session.exec(
        select(Comment)
        .where(Comment.post_id == post_id, Comment.approved == True, Comment.parent_id == None)  # noqa: E711,E712
        .order_by(col(Comment.created_at).desc(), col(Comment.id).desc())
    ).all()

    parent_ids = [c.id for c in top_level]
    replies: List[Comment] = []
    if parent_ids:
        replies = list(session.exec(
            select(Comment)
            .where(col(Comment.parent_id).in_(parent_ids), Comment.approved == True)  # noqa: E712
            .order_by(col(Comment.created_at).asc(), col(Comment.id).asc())
        ).all())

    authors = _authors(session, list(top_level) + replies)
    replies_by_parent: Dict[int, List[CommentOut]] = {}
    for reply in replies:
        replies_by_parent.setdefault(reply.parent_id, []).append(_comment_out(reply, authors))

    return [dump(_comment_out(c, authors, replies_by_parent.get(c.id))) for c in top_level]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_comment(
    body: CommentCreate,
    current_user: deps.CurrentUser = Depends(deps.get_current_user),
    session: Session = Depends(get_session),
) -> Any:
    content = (body.content or "").strip()
    if not content or body.post_id is None:
        raise ValidationError("Content and postId are required")

    post = session.get(Post, body.post_id)
    if post is None:
        raise NotFoundError("Post not found", field="postId")

    if body.parent_id is not None:
        parent = session.get(Comment, body.parent_id)
        if parent is None or parent.post_id != post.id:
            raise NotFoundError("Parent comment not found", field="parentId")
        if parent.parent_id is not None:
            # Threads are one level deep
            raise ValidationError("Replies can only be made to top-level comments", field="parentId")

    # Administrators publish directly; everyone else goes through moderation
    approved = current_user.role == Role.ADMIN
    comment = Comment(
        content=content,
        post_id=post.id,
        author_id=current_user.id,
        parent_id=body.parent_id,
        approved=approved,
    )
    session.add(comment)
    session.commit()
    session.refresh(comment)

    logger.info("Comment created", comment_id=comment.id, post_id=post.id, approved=approved)

    authors = _authors(session, [comment])
    message = "Comment published" if approved else "Comment submitted and awaiting moderation"
    return {"comment": dump(_comment_out(comment, authors)), "message": message}


@router.get("/pending")
def list_pending_comments(
    post_id: Optional[int] = Query(default=None, alias="postId"),
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """Unapproved comments awaiting moderation, oldest first."""
    query = select(Comment).where(Comment.approved == False)  # noqa: E712
    if post_id is not None:
        query = query.where(Comment.post_id == post_id)
    pending = session.exec(query.order_by(col(Comment.created_at).asc(), col(Comment.id).asc())).all()

    post_ids = {c.post_id for c in pending}
    posts = {}
    if post_ids:
        posts = {p.id: p for p in session.exec(select(Post).where(col(Post.id).in_(post_ids))).all()}

    authors = _authors(session, list(pending))
    result = []
    for comment in pending:
        item = dump(_comment_out(comment, authors))
        post = posts.get(comment.post_id)
        item["post"] = {"id": post.id, "title": post.title, "slug": post.slug} if post else None
        result.append(item)
    return result


@router.put("/{comment_id}/approve")
def approve_comment(
    comment_id: int,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")

    comment.approved = True
    comment.updated_at = datetime.now(timezone.utc)
    session.add(comment)
    session.commit()
    session.refresh(comment)

    logger.info("Comment approved", comment_id=comment.id, moderator_id=admin.id)
    return {"comment": dump(_comment_out(comment, _authors(session, [comment]))), "message": "Comment approved"}


@router.delete("/{comment_id}/approve")
def reject_comment(
    comment_id: int,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
) -> Any:
    """Rejection removes the comment and its replies."""
    comment = session.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")

    session.delete(comment)
    session.commit()

    logger.info("Comment rejected", comment_id=comment_id, moderator_id=admin.id)
    return {"message": "Comment rejected"}
