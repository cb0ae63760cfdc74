from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CategoryCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = None
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")


class CategoryUpdateRequest(CategoryCreateRequest):
    is_active: Optional[bool] = Field(default=None, alias="isActive")


def serialize_public_category(category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "description": category.description,
        "icon": category.icon,
        "color": category.color,
    }


def serialize_category(category) -> dict:
    data = serialize_public_category(category)
    data.update(
        {
            "sortOrder": category.sort_order,
            "isActive": category.is_active,
            "createdAt": category.created_at.isoformat() if category.created_at else None,
            "updatedAt": category.updated_at.isoformat() if category.updated_at else None,
        }
    )
    return data
