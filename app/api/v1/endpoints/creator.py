"""Creator studio: dashboard stats and course / section / lesson management."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.constants.constants import (
    COURSE_NOT_FOUND_MESSAGE,
    COURSE_TITLE_LENGTH_MESSAGE,
    COURSE_TITLE_MAX_LENGTH,
    COURSE_TITLE_MIN_LENGTH,
    COURSE_TITLE_REQUIRED_MESSAGE,
    DEFAULT_COURSE_LANGUAGE,
    INVALID_CATEGORY_MESSAGE,
    LESSON_NOT_FOUND_MESSAGE,
    LESSON_TITLE_REQUIRED_MESSAGE,
    PUBLISH_REQUIRES_CONTENT_MESSAGE,
    SECTION_NOT_FOUND_MESSAGE,
    SECTION_TITLE_REQUIRED_MESSAGE,
    CourseLevel,
    CourseStatus,
    LessonType,
)
from app.core.deps import get_category_store, get_course_store, require_creator
from app.core.exceptions import NotFoundError, ValidationFailedError
from app.schemas.courseSchema import (
    CourseRequest,
    LessonCreateRequest,
    LessonUpdateRequest,
    SectionCreateRequest,
    SectionUpdateRequest,
    clean_tags,
    clean_text,
    serialize_course,
    serialize_lesson,
    serialize_section,
)
from app.services.CategoryStore import CategoryStore
from app.services.CourseStore import CourseStore
from app.utils.clock import utcnow
from app.utils.slugs import unique_slug

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/creator",
    tags=["creator"],
    dependencies=[Depends(require_creator)]
)


def _course_title(title: Optional[str]) -> str:
    title = clean_text(title)
    if not title:
        raise ValidationFailedError(COURSE_TITLE_REQUIRED_MESSAGE)
    if not COURSE_TITLE_MIN_LENGTH <= len(title) <= COURSE_TITLE_MAX_LENGTH:
        raise ValidationFailedError(COURSE_TITLE_LENGTH_MESSAGE)
    return title


def _required_title(title: Optional[str], message: str) -> str:
    title = clean_text(title)
    if not title:
        raise ValidationFailedError(message)
    return title


def _enum_or_none(enum_cls, value):
    """Member of ``enum_cls`` named ``value``; None when it is not one."""
    try:
        return enum_cls(value)
    except ValueError:
        return None


async def _check_category(categories: CategoryStore, category_id: str):
    if not await categories.exists(category_id):
        raise ValidationFailedError(INVALID_CATEGORY_MESSAGE)


async def _owned_course(store: CourseStore, course_id: str, creator_id: str, with_content: bool = False):
    course = await store.get_for_creator(course_id, creator_id, with_content=with_content)
    if not course:
        raise NotFoundError(COURSE_NOT_FOUND_MESSAGE)
    return course


# ------------------------------
# Dashboard
# ------------------------------
@router.get("/dashboard")
async def get_dashboard(
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    creator_id = claims["userId"]
    return {
        "status": "success",
        "data": {
            "userId": creator_id,
            "role": claims.get("role"),
            "stats": {
                "totalCourses": await store.count_courses(creator_id),
                "publishedCourses": await store.count_courses(creator_id, CourseStatus.PUBLISHED),
                "totalStudents": await store.count_enrollments(creator_id),
                "totalRevenue": 0,
            },
        },
    }


@router.get("/analytics")
async def get_analytics(
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    # TODO: views and completionRate stay 0 until lesson progress is tracked
    creator_id = claims["userId"]
    return {
        "status": "success",
        "data": {
            "views": 0,
            "enrollments": await store.count_enrollments(creator_id),
            "courses": await store.count_courses(creator_id),
            "completionRate": 0,
        },
    }


# ------------------------------
# Courses
# ------------------------------
@router.get("/courses")
async def list_courses(
    status: Optional[str] = Query(None),
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    """The creator's courses, most recently updated first. An unknown ``status`` is ignored."""
    courses = await store.list_for_creator(claims["userId"], _enum_or_none(CourseStatus, status))
    counts = await store.counts(course.id for course in courses)
    return {
        "status": "success",
        "data": {
            "courses": [serialize_course(course, counts[course.id]) for course in courses],
            "total": len(courses),
        },
    }


@router.get("/courses/{course_id}")
async def get_course(
    course_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    course = await _owned_course(store, course_id, claims["userId"], with_content=True)
    counts = await store.counts([course.id])
    return {
        "status": "success",
        "data": {"course": serialize_course(course, counts[course.id], include_sections=True)},
    }


@router.post("/courses", status_code=201)
async def create_course(
    data: CourseRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
    categories: CategoryStore = Depends(get_category_store),
):
    creator_id = claims["userId"]
    title = _course_title(data.title)

    if data.category_id:
        await _check_category(categories, data.category_id)

    course = await store.create(
        title=title,
        slug=await unique_slug(title, store.slug_taken, fallback="course"),
        description=clean_text(data.description),
        short_description=clean_text(data.short_description),
        thumbnail=clean_text(data.thumbnail),
        level=_enum_or_none(CourseLevel, data.level) or CourseLevel.ALL_LEVELS,
        status=CourseStatus.DRAFT,
        creator_id=creator_id,
        category_id=data.category_id or None,
        price=data.price if data.price is not None and data.price >= 0 else 0,
        is_free=data.is_free is not False,
        language=clean_text(data.language) or DEFAULT_COURSE_LANGUAGE,
        tags=clean_tags(data.tags or []),
    )
    course = await store.get_for_creator(course.id, creator_id)
    logger.info(f"📚 Creator {creator_id} created course {course.id} ({course.slug})")

    return {
        "status": "success",
        "message": "Course created successfully",
        "data": {"course": serialize_course(course)},
    }


@router.patch("/courses/{course_id}")
async def update_course(
    course_id: str,
    data: CourseRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
    categories: CategoryStore = Depends(get_category_store),
):
    """Partial update. A new title also gets a new slug; ``categoryId: null`` clears the category."""
    creator_id = claims["userId"]
    course = await _owned_course(store, course_id, creator_id)
    fields = data.model_dump(exclude_unset=True)
    values = {}

    if "title" in fields:
        title = _course_title(fields["title"])
        values["title"] = title
        if title != course.title:
            values["slug"] = await unique_slug(
                title,
                lambda slug: store.slug_taken(slug, exclude_id=course.id),
                fallback="course",
            )

    for field in ("description", "short_description", "thumbnail"):
        if field in fields:
            values[field] = clean_text(fields[field])
    if "language" in fields:
        values["language"] = clean_text(fields["language"]) or DEFAULT_COURSE_LANGUAGE
    if fields.get("level") is not None:
        level = _enum_or_none(CourseLevel, fields["level"])
        if level:
            values["level"] = level
    if "category_id" in fields:
        if fields["category_id"] is None:
            values["category_id"] = None
        else:
            await _check_category(categories, fields["category_id"])
            values["category_id"] = fields["category_id"]
    if fields.get("price") is not None:
        values["price"] = max(0, fields["price"])
    if fields.get("is_free") is not None:
        values["is_free"] = fields["is_free"]
    if fields.get("tags") is not None:
        values["tags"] = clean_tags(fields["tags"])

    await store.update(course, values)
    course = await _owned_course(store, course_id, creator_id, with_content=True)
    logger.info(f"✏️ Course {course_id} updated: {sorted(values)}")

    return {
        "status": "success",
        "message": "Course updated successfully",
        "data": {"course": serialize_course(course, include_sections=True)},
    }


@router.delete("/courses/{course_id}")
async def delete_course(
    course_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    await _owned_course(store, course_id, claims["userId"])
    await store.delete(course_id)
    logger.info(f"🗑️ Course {course_id} deleted by creator {claims['userId']}")
    return {"status": "success", "message": "Course deleted successfully"}


@router.patch("/courses/{course_id}/publish")
async def publish_course(
    course_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    """Publish a course that has at least one section and one lesson. The first publish date is kept."""
    course = await _owned_course(store, course_id, claims["userId"])

    sections, lessons = await store.content_totals(course_id)
    if sections == 0 or lessons == 0:
        raise ValidationFailedError(PUBLISH_REQUIRES_CONTENT_MESSAGE)

    await store.update(
        course,
        {"status": CourseStatus.PUBLISHED, "published_at": course.published_at or utcnow()},
    )
    course = await _owned_course(store, course_id, claims["userId"])
    logger.info(f"🚀 Course {course_id} published")
    return {
        "status": "success",
        "message": "Course published",
        "data": {"course": serialize_course(course)},
    }


@router.patch("/courses/{course_id}/unpublish")
async def unpublish_course(
    course_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    course = await _owned_course(store, course_id, claims["userId"])
    await store.update(course, {"status": CourseStatus.DRAFT})
    course = await _owned_course(store, course_id, claims["userId"])
    return {
        "status": "success",
        "message": "Course unpublished",
        "data": {"course": serialize_course(course)},
    }


# ------------------------------
# Sections
# ------------------------------
@router.post("/courses/{course_id}/sections", status_code=201)
async def create_section(
    course_id: str,
    data: SectionCreateRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    """Append a section after the course's last one."""
    await _owned_course(store, course_id, claims["userId"])
    title = _required_title(data.title, SECTION_TITLE_REQUIRED_MESSAGE)

    section = await store.add_section(
        course_id=course_id,
        title=title,
        description=clean_text(data.description),
        sort_order=await store.next_section_order(course_id),
    )
    section = await store.get_section_for_creator(section.id, claims["userId"])
    return {
        "status": "success",
        "message": "Section created",
        "data": {"section": serialize_section(section)},
    }


@router.patch("/sections/{section_id}")
async def update_section(
    section_id: str,
    data: SectionUpdateRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    section = await store.get_section_for_creator(section_id, claims["userId"])
    if not section:
        raise NotFoundError(SECTION_NOT_FOUND_MESSAGE)

    fields = data.model_dump(exclude_unset=True)
    if "title" in fields:
        section.title = _required_title(fields["title"], SECTION_TITLE_REQUIRED_MESSAGE)
    if "description" in fields:
        section.description = clean_text(fields["description"])
    if fields.get("sort_order") is not None:
        section.sort_order = fields["sort_order"]
    await store.flush()

    section = await store.get_section_for_creator(section_id, claims["userId"])
    return {
        "status": "success",
        "message": "Section updated",
        "data": {"section": serialize_section(section)},
    }


@router.delete("/sections/{section_id}")
async def delete_section(
    section_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    """Delete a section together with its lessons."""
    if not await store.get_section_for_creator(section_id, claims["userId"]):
        raise NotFoundError(SECTION_NOT_FOUND_MESSAGE)
    await store.delete_section(section_id)
    return {"status": "success", "message": "Section deleted"}


# ------------------------------
# Lessons
# ------------------------------
@router.post("/sections/{section_id}/lessons", status_code=201)
async def create_lesson(
    section_id: str,
    data: LessonCreateRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    if not await store.get_section_for_creator(section_id, claims["userId"]):
        raise NotFoundError(SECTION_NOT_FOUND_MESSAGE)
    title = _required_title(data.title, LESSON_TITLE_REQUIRED_MESSAGE)

    lesson = await store.add_lesson(
        section_id=section_id,
        title=title,
        description=clean_text(data.description),
        type=_enum_or_none(LessonType, data.type) or LessonType.VIDEO,
        content=clean_text(data.content),
        video_url=clean_text(data.video_url),
        duration=max(0, data.duration) if data.duration is not None else 0,
        is_free=data.is_free is True,
        sort_order=await store.next_lesson_order(section_id),
    )
    return {
        "status": "success",
        "message": "Lesson created",
        "data": {"lesson": serialize_lesson(lesson)},
    }


@router.patch("/lessons/{lesson_id}")
async def update_lesson(
    lesson_id: str,
    data: LessonUpdateRequest,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    lesson = await store.get_lesson_for_creator(lesson_id, claims["userId"])
    if not lesson:
        raise NotFoundError(LESSON_NOT_FOUND_MESSAGE)

    fields = data.model_dump(exclude_unset=True)
    if "title" in fields:
        lesson.title = _required_title(fields["title"], LESSON_TITLE_REQUIRED_MESSAGE)
    for field in ("description", "content", "video_url"):
        if field in fields:
            setattr(lesson, field, clean_text(fields[field]))
    if fields.get("type") is not None:
        lesson_type = _enum_or_none(LessonType, fields["type"])
        if lesson_type:
            lesson.type = lesson_type
    if fields.get("duration") is not None:
        lesson.duration = max(0, fields["duration"])
    if fields.get("is_free") is not None:
        lesson.is_free = fields["is_free"]
    if fields.get("sort_order") is not None:
        lesson.sort_order = fields["sort_order"]
    await store.flush()

    return {
        "status": "success",
        "message": "Lesson updated",
        "data": {"lesson": serialize_lesson(lesson)},
    }


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(
    lesson_id: str,
    claims: dict = Depends(require_creator),
    store: CourseStore = Depends(get_course_store),
):
    if not await store.get_lesson_for_creator(lesson_id, claims["userId"]):
        raise NotFoundError(LESSON_NOT_FOUND_MESSAGE)
    await store.delete_lesson(lesson_id)
    return {"status": "success", "message": "Lesson deleted"}
