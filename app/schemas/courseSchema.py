from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ==================== COURSE SCHEMAS ====================

class CourseRequest(BaseModel):
    """Body of a course create or update. Fields left out are left alone on update."""

    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    short_description: Optional[str] = Field(default=None, alias="shortDescription")
    thumbnail: Optional[str] = Field(default=None, max_length=500)
    level: Optional[str] = None
    category_id: Optional[str] = Field(default=None, alias="categoryId")
    price: Optional[float] = None
    is_free: Optional[bool] = Field(default=None, alias="isFree")
    language: Optional[str] = Field(default=None, max_length=50)
    tags: Optional[List[str]] = None


# ==================== SECTION SCHEMAS ====================

class SectionCreateRequest(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None


class SectionUpdateRequest(SectionCreateRequest):
    model_config = ConfigDict(populate_by_name=True)

    sort_order: Optional[int] = Field(default=None, alias="sortOrder")


# ==================== LESSON SCHEMAS ====================

class LessonCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    description: Optional[str] = None
    type: Optional[str] = None
    content: Optional[str] = None
    video_url: Optional[str] = Field(default=None, alias="videoUrl", max_length=500)
    duration: Optional[int] = None
    is_free: Optional[bool] = Field(default=None, alias="isFree")


class LessonUpdateRequest(LessonCreateRequest):
    sort_order: Optional[int] = Field(default=None, alias="sortOrder")


# ==================== SERIALIZERS ====================

def clean_text(value: Optional[str]) -> Optional[str]:
    """Trimmed text, or None when nothing is left."""
    if value is None:
        return None
    return value.strip() or None


def clean_tags(tags: List[str]) -> List[str]:
    return [tag.strip() for tag in tags if tag and tag.strip()]


def _iso(value):
    return value.isoformat() if value else None


def _enum_value(value):
    return value.value if hasattr(value, "value") else value


def serialize_category_summary(category) -> Optional[dict]:
    if category is None:
        return None
    return {
        "id": category.id,
        "name": category.name,
        "icon": category.icon,
        "color": category.color,
    }


def serialize_lesson(lesson) -> dict:
    return {
        "id": lesson.id,
        "sectionId": lesson.section_id,
        "title": lesson.title,
        "description": lesson.description,
        "type": _enum_value(lesson.type),
        "content": lesson.content,
        "videoUrl": lesson.video_url,
        "duration": lesson.duration,
        "isFree": lesson.is_free,
        "sortOrder": lesson.sort_order,
        "createdAt": _iso(lesson.created_at),
        "updatedAt": _iso(lesson.updated_at),
    }


def serialize_section(section, include_lessons: bool = True) -> dict:
    data = {
        "id": section.id,
        "courseId": section.course_id,
        "title": section.title,
        "description": section.description,
        "sortOrder": section.sort_order,
        "createdAt": _iso(section.created_at),
        "updatedAt": _iso(section.updated_at),
    }
    if include_lessons:
        data["lessons"] = [serialize_lesson(lesson) for lesson in section.lessons]
    return data


def serialize_course(course, counts: Optional[Dict[str, int]] = None, include_sections: bool = False) -> dict:
    """
    Course as the creator studio shows it.

    ``counts`` becomes the ``_count`` block; sections (with their lessons)
    are only included when they were loaded with the course.
    """
    data = {
        "id": course.id,
        "title": course.title,
        "slug": course.slug,
        "description": course.description,
        "shortDescription": course.short_description,
        "thumbnail": course.thumbnail,
        "level": _enum_value(course.level),
        "status": _enum_value(course.status),
        "price": float(course.price or 0),
        "isFree": course.is_free,
        "language": course.language,
        "tags": list(course.tags or []),
        "creatorId": course.creator_id,
        "categoryId": course.category_id,
        "category": serialize_category_summary(course.category),
        "publishedAt": _iso(course.published_at),
        "createdAt": _iso(course.created_at),
        "updatedAt": _iso(course.updated_at),
    }
    if include_sections:
        data["sections"] = [serialize_section(section) for section in course.sections]
    if counts is not None:
        data["_count"] = counts
    return data
