"""
Post persistence helpers shared by the public and admin post routes.
"""

import time
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, select, func, col

from app.core.errors import NotFoundError
from app.models import Account, Category, Comment, Post, PostCategoryLink, PostTagLink, PostView, Tag
from app.schemas import AuthorOut, CategoryOut, PostCreate, PostOut, TagOut, dump
from app.services.content import count_words, normalize_content, reading_time, slugify


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def unique_post_slug(session: Session, title: str) -> str:
    """Slug from the title, suffixed with a millisecond timestamp when taken."""
    slug = slugify(title) or "post"
    if session.exec(select(Post.id).where(Post.slug == slug)).first() is not None:
        slug = f"{slug}-{int(time.time() * 1000)}"
    return slug


def set_content(post: Post, raw_content: str) -> None:
    """Normalize content and refresh the derived word count and reading time."""
    post.content = normalize_content(raw_content)
    post.word_count = count_words(post.content)
    post.reading_time = reading_time(post.word_count)


def set_published(post: Post, published: bool) -> None:
    """
    Toggle visibility.

    published_at is stamped on the first publish only; unpublishing and
    republishing keep the original timestamp.
    """
    post.published = published
    if published and post.published_at is None:
        post.published_at = _utc_now()


def _load_categories(session: Session, category_ids: Iterable[int]) -> List[Category]:
    ids = list(dict.fromkeys(category_ids))
    if not ids:
        return []
    categories = session.exec(select(Category).where(col(Category.id).in_(ids))).all()
    if len(categories) != len(ids):
        raise NotFoundError("Category not found", field="categories")
    return list(categories)


def _get_or_create_tags(session: Session, names: Iterable[str]) -> List[Tag]:
    tags: List[Tag] = []
    seen = set()
    for raw in names:
        name = (raw or "").strip()
        slug = slugify(name)
        if not slug or slug in seen:
            continue
        seen.add(slug)
        tag = session.exec(select(Tag).where(Tag.slug == slug)).first()
        if tag is None:
            tag = Tag(name=name, slug=slug)
            session.add(tag)
            session.flush()
        tags.append(tag)
    return tags


def create_post(session: Session, author_id: int, data: PostCreate) -> Post:
    categories = _load_categories(session, data.categories)

    post = Post(
        title=data.title.strip(),
        slug=unique_post_slug(session, data.title),
        content="",
        excerpt=data.description or "",
        main_image=data.main_image,
        author_id=author_id,
        seo_title=data.seo_title,
        seo_description=data.seo_description,
    )
    set_content(post, data.content)
    set_published(post, data.published)

    session.add(post)
    session.flush()
    for category in categories:
        session.add(PostCategoryLink(post_id=post.id, category_id=category.id))
    for tag in _get_or_create_tags(session, data.tags):
        session.add(PostTagLink(post_id=post.id, tag_id=tag.id))
    session.commit()
    session.refresh(post)
    return post


def get_published_post(session: Session, slug: str) -> Post:
    post = session.exec(select(Post).where(Post.slug == slug, Post.published == True)).first()  # noqa: E712
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _counts(session: Session, model, post_ids: List[int], *criteria) -> Dict[int, int]:
    if not post_ids:
        return {}
    rows = session.exec(
        select(model.post_id, func.count())
        .where(col(model.post_id).in_(post_ids), *criteria)
        .group_by(model.post_id)
    ).all()
    return {post_id: count for post_id, count in rows}


def serialize_posts(session: Session, posts: List[Post], approved_comments_only: bool = True) -> List[dict]:
    """Posts with author, categories, tags and comment/view counts, in input order."""
    post_ids = [p.id for p in posts]
    if not post_ids:
        return []

    author_ids = {p.author_id for p in posts}
    authors = {
        a.id: a for a in session.exec(select(Account).where(col(Account.id).in_(author_ids))).all()
    }

    categories: Dict[int, List[Category]] = {pid: [] for pid in post_ids}
    for link, category in session.exec(
        select(PostCategoryLink, Category)
        .join(Category, Category.id == PostCategoryLink.category_id)
        .where(col(PostCategoryLink.post_id).in_(post_ids))
        .order_by(Category.name)
    ).all():
        categories[link.post_id].append(category)

    tags: Dict[int, List[Tag]] = {pid: [] for pid in post_ids}
    for link, tag in session.exec(
        select(PostTagLink, Tag)
        .join(Tag, Tag.id == PostTagLink.tag_id)
        .where(col(PostTagLink.post_id).in_(post_ids))
        .order_by(Tag.name)
    ).all():
        tags[link.post_id].append(tag)

    comment_criteria = [Comment.approved == True] if approved_comments_only else []  # noqa: E712
    comment_counts = _counts(session, Comment, post_ids, *comment_criteria)
    view_counts = _counts(session, PostView, post_ids)

    result = []
    for post in posts:
        author: Optional[Account] = authors.get(post.author_id)
        out = PostOut(
            **post.model_dump(),
            author=AuthorOut.model_validate(author) if author else None,
            categories=[CategoryOut.model_validate(c) for c in categories[post.id]],
            tags=[TagOut.model_validate(t) for t in tags[post.id]],
            comment_count=comment_counts.get(post.id, 0),
            view_count=view_counts.get(post.id, 0),
        )
        result.append(dump(out))
    return result


def serialize_post(session: Session, post: Post, approved_comments_only: bool = True) -> dict:
    return serialize_posts(session, [post], approved_comments_only)[0]
