from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlmodel import Session, select, func

from app.api import deps
from app.core.category_cache import CategoryCache
from app.core.errors import ConflictError, ErrorCode, ValidationError
from app.core.logging_config import get_logger
from app.db import get_session
from app.models import Category, PostCategoryLink
from app.schemas import CategoryCreate, CategoryOut, CategoryWithCount, dump
from app.services.content import slugify

logger = get_logger(__name__)

router = APIRouter()

# Featured sections of the blog, listed before everything else in this order
PRIORITY_SLUGS = [
    "francisco-arrighi",
    "atualizacoes-tributarias",
    "imposto-renda",
    "reforma-tributaria",
    "tributario",
    "fiscal",
    "contabil",
    "legislacao",
    "planejamento",
    "compliance",
]
_PRIORITY = {slug: index for index, slug in enumerate(PRIORITY_SLUGS)}


def sort_categories(categories: List[dict]) -> List[dict]:
    """Priority slugs first in their fixed order, then the rest by name."""
    return sorted(
        categories,
        key=lambda c: (
            _PRIORITY.get(c["slug"], len(_PRIORITY)),
            c["name"].casefold() if c["slug"] not in _PRIORITY else "",
        ),
    )


def load_categories(session: Session) -> List[dict]:
    counts = dict(
        session.exec(
            select(PostCategoryLink.category_id, func.count()).group_by(PostCategoryLink.category_id)
        ).all()
    )
    categories = session.exec(select(Category)).all()
    return sort_categories([
        dump(CategoryWithCount(**c.model_dump(), post_count=counts.get(c.id, 0)))
        for c in categories
    ])


@router.get("")
def list_categories(
    session: Session = Depends(get_session),
    cache: CategoryCache = Depends(deps.get_category_cache),
) -> Any:
    return cache.get_or_load(lambda: load_categories(session))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_category(
    body: CategoryCreate,
    admin: deps.CurrentUser = Depends(deps.require_admin),
    session: Session = Depends(get_session),
    cache: CategoryCache = Depends(deps.get_category_cache),
) -> Any:
    name = (body.name or "").strip()
    if not name:
        raise ValidationError("Category name is required", field="name")

    slug = slugify(body.slug or name)
    if not slug:
        raise ValidationError("Category name must contain letters or numbers", field="name")

    if session.exec(select(Category).where(Category.slug == slug)).first():
        raise ConflictError(
            "A category with this name already exists",
            code=ErrorCode.SLUG_ALREADY_EXISTS,
            field="slug",
        )

    category = Category(name=name, slug=slug, description=body.description or None)
    session.add(category)
    session.commit()
    session.refresh(category)

    cache.invalidate()
    logger.info("Category created", category_id=category.id, slug=slug, admin_id=admin.id)
    return dump(CategoryOut.model_validate(category))
