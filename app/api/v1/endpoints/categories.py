"""Course categories: the public list and admin management under /admin/categories."""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError

from app.constants.constants import (
    CATEGORY_EXISTS_MESSAGE,
    CATEGORY_NAME_LENGTH_MESSAGE,
    CATEGORY_NAME_MAX_LENGTH,
    CATEGORY_NAME_MIN_LENGTH,
    CATEGORY_NAME_REQUIRED_MESSAGE,
    CATEGORY_NOT_FOUND_MESSAGE,
    DEFAULT_CATEGORY_COLOR,
    HEX_COLOR_PATTERN,
    INVALID_COLOR_MESSAGE,
)
from app.core.deps import get_category_store, require_admin
from app.core.exceptions import ConflictError, NotFoundError, ValidationFailedError
from app.schemas.categorySchema import (
    CategoryCreateRequest,
    CategoryUpdateRequest,
    serialize_category,
    serialize_public_category,
)
from app.schemas.courseSchema import clean_text
from app.services.CategoryStore import CategoryStore
from app.utils.slugs import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/categories", tags=["categories"])

admin_router = APIRouter(
    prefix="/admin/categories",
    tags=["admin"],
    dependencies=[Depends(require_admin)]
)


def _category_name(name: Optional[str]) -> str:
    name = clean_text(name)
    if not name:
        raise ValidationFailedError(CATEGORY_NAME_REQUIRED_MESSAGE)
    if not CATEGORY_NAME_MIN_LENGTH <= len(name) <= CATEGORY_NAME_MAX_LENGTH:
        raise ValidationFailedError(CATEGORY_NAME_LENGTH_MESSAGE)
    return name


def _category_color(color: Optional[str]) -> str:
    if not color:
        return DEFAULT_CATEGORY_COLOR
    if not re.fullmatch(HEX_COLOR_PATTERN, color):
        raise ValidationFailedError(INVALID_COLOR_MESSAGE)
    return color


async def _get_or_404(store: CategoryStore, category_id: str):
    category = await store.get(category_id)
    if not category:
        raise NotFoundError(CATEGORY_NOT_FOUND_MESSAGE)
    return category


@router.get("")
async def list_active_categories(store: CategoryStore = Depends(get_category_store)):
    categories = await store.list_categories(active=True)
    return {
        "status": "success",
        "data": {"categories": [serialize_public_category(category) for category in categories]},
    }


# ------------------------------
# Admin
# ------------------------------
@admin_router.get("")
async def list_categories(
    active: Optional[bool] = Query(None),
    store: CategoryStore = Depends(get_category_store),
):
    categories = await store.list_categories(active=active)
    return {
        "status": "success",
        "data": {
            "categories": [serialize_category(category) for category in categories],
            "total": len(categories),
        },
    }


@admin_router.get("/{category_id}")
async def get_category(category_id: str, store: CategoryStore = Depends(get_category_store)):
    category = await _get_or_404(store, category_id)
    return {"status": "success", "data": {"category": serialize_category(category)}}


@admin_router.post("", status_code=201)
async def create_category(
    data: CategoryCreateRequest,
    store: CategoryStore = Depends(get_category_store),
):
    name = _category_name(data.name)
    if await store.name_taken(name):
        raise ConflictError(CATEGORY_EXISTS_MESSAGE)
    color = _category_color(data.color)

    try:
        category = await store.create(
            name=name,
            slug=await unique_slug(name, store.slug_taken, fallback="category"),
            description=clean_text(data.description),
            icon=clean_text(data.icon),
            color=color,
            sort_order=data.sort_order if data.sort_order is not None else 0,
        )
    except IntegrityError as e:
        # lost a race against a concurrent create with the same name
        raise ConflictError(CATEGORY_EXISTS_MESSAGE) from e

    logger.info(f"🏷️ Category created: {category.name} ({category.slug})")
    return {
        "status": "success",
        "message": "Category created successfully",
        "data": {"category": serialize_category(category)},
    }


@admin_router.put("/{category_id}")
async def update_category(
    category_id: str,
    data: CategoryUpdateRequest,
    store: CategoryStore = Depends(get_category_store),
):
    """Update any subset of fields. Renaming also regenerates the slug."""
    category = await _get_or_404(store, category_id)
    fields = data.model_dump(exclude_unset=True)
    values = {}

    if "name" in fields:
        name = _category_name(fields["name"])
        if name != category.name:
            if await store.name_taken(name):
                raise ConflictError(CATEGORY_EXISTS_MESSAGE)
            values["name"] = name
            values["slug"] = await unique_slug(
                name,
                lambda slug: store.slug_taken(slug, exclude_id=category_id),
                fallback="category",
            )
    if "description" in fields:
        values["description"] = clean_text(fields["description"])
    if "icon" in fields:
        values["icon"] = clean_text(fields["icon"])
    if "color" in fields:
        values["color"] = _category_color(fields["color"])
    if fields.get("sort_order") is not None:
        values["sort_order"] = fields["sort_order"]
    if fields.get("is_active") is not None:
        values["is_active"] = fields["is_active"]

    try:
        await store.update(category, values)
    except IntegrityError as e:
        raise ConflictError(CATEGORY_EXISTS_MESSAGE) from e

    return {
        "status": "success",
        "message": "Category updated successfully",
        "data": {"category": serialize_category(category)},
    }


@admin_router.delete("/{category_id}")
async def delete_category(category_id: str, store: CategoryStore = Depends(get_category_store)):
    """Delete a category. Its courses keep existing, uncategorized."""
    await _get_or_404(store, category_id)
    await store.delete(category_id)
    logger.info(f"🗑️ Category {category_id} deleted")
    return {"status": "success", "message": "Category deleted successfully"}
