"""
Persistence for courses, their sections and lessons.

Every lookup that a creator can reach is scoped by ``creator_id``, so a course
owned by someone else is indistinguishable from a missing one.
"""

from typing import Dict, Iterable, Optional, Tuple

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.constants.constants import CourseStatus
from app.models.course import Course, Enrollment, Lesson, Section


class CourseStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------
    # Courses
    # ------------------------------
    async def slug_taken(self, slug: str, exclude_id: Optional[str] = None) -> bool:
        query = select(Course.id).where(Course.slug == slug)
        if exclude_id:
            query = query.where(Course.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def list_for_creator(self, creator_id: str, status: Optional[CourseStatus] = None):
        query = select(Course).where(Course.creator_id == creator_id)
        if status is not None:
            query = query.where(Course.status == status)
        result = await self.db.execute(query.order_by(Course.updated_at.desc()))
        return result.scalars().all()

    async def get_for_creator(self, course_id: str, creator_id: str, with_content: bool = False) -> Optional[Course]:
        """Fetch a creator's course, overwriting any stale copy in the session."""
        query = (
            select(Course)
            .where(Course.id == course_id, Course.creator_id == creator_id)
            .execution_options(populate_existing=True)
        )
        if with_content:
            query = query.options(selectinload(Course.sections).selectinload(Section.lessons))
        return (await self.db.execute(query)).scalar_one_or_none()

    async def create(self, **values) -> Course:
        course = Course(**values)
        self.db.add(course)
        await self.db.flush()
        return course

    async def update(self, course: Course, values: dict):
        for field, value in values.items():
            setattr(course, field, value)
        await self.db.flush()

    async def delete(self, course_id: str):
        await self.db.execute(delete(Course).where(Course.id == course_id))

    async def counts(self, course_ids: Iterable[str]) -> Dict[str, Dict[str, int]]:
        """Section, lesson and enrollment totals per course, one query each."""
        ids = list(course_ids)
        counts = {course_id: {"sections": 0, "lessons": 0, "enrollments": 0} for course_id in ids}
        if not ids:
            return counts

        queries = {
            "sections": select(Section.course_id, func.count(Section.id))
            .where(Section.course_id.in_(ids))
            .group_by(Section.course_id),
            "lessons": select(Section.course_id, func.count(Lesson.id))
            .select_from(Section)
            .join(Lesson, Lesson.section_id == Section.id)
            .where(Section.course_id.in_(ids))
            .group_by(Section.course_id),
            "enrollments": select(Enrollment.course_id, func.count(Enrollment.id))
            .where(Enrollment.course_id.in_(ids))
            .group_by(Enrollment.course_id),
        }
        for key, query in queries.items():
            for course_id, total in (await self.db.execute(query)).all():
                counts[course_id][key] = total
        return counts

    async def content_totals(self, course_id: str) -> Tuple[int, int]:
        """(sections, lessons) of one course."""
        sections = await self.db.execute(
            select(func.count(Section.id)).where(Section.course_id == course_id)
        )
        lessons = await self.db.execute(
            select(func.count(Lesson.id))
            .select_from(Lesson)
            .join(Section, Lesson.section_id == Section.id)
            .where(Section.course_id == course_id)
        )
        return sections.scalar_one(), lessons.scalar_one()

    async def count_courses(self, creator_id: str, status: Optional[CourseStatus] = None) -> int:
        query = select(func.count(Course.id)).where(Course.creator_id == creator_id)
        if status is not None:
            query = query.where(Course.status == status)
        return (await self.db.execute(query)).scalar_one()

    async def count_enrollments(self, creator_id: str) -> int:
        query = (
            select(func.count(Enrollment.id))
            .select_from(Enrollment)
            .join(Course, Enrollment.course_id == Course.id)
            .where(Course.creator_id == creator_id)
        )
        return (await self.db.execute(query)).scalar_one()

    # ------------------------------
    # Sections
    # ------------------------------
    async def get_section_for_creator(self, section_id: str, creator_id: str) -> Optional[Section]:
        query = (
            select(Section)
            .join(Course, Section.course_id == Course.id)
            .where(Section.id == section_id, Course.creator_id == creator_id)
            .options(selectinload(Section.lessons))
            .execution_options(populate_existing=True)
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def next_section_order(self, course_id: str) -> int:
        last = await self.db.execute(
            select(func.max(Section.sort_order)).where(Section.course_id == course_id)
        )
        current = last.scalar_one()
        return 0 if current is None else current + 1

    async def add_section(self, **values) -> Section:
        section = Section(**values)
        self.db.add(section)
        await self.db.flush()
        return section

    async def delete_section(self, section_id: str):
        await self.db.execute(delete(Section).where(Section.id == section_id))

    # ------------------------------
    # Lessons
    # ------------------------------
    async def get_lesson_for_creator(self, lesson_id: str, creator_id: str) -> Optional[Lesson]:
        query = (
            select(Lesson)
            .join(Section, Lesson.section_id == Section.id)
            .join(Course, Section.course_id == Course.id)
            .where(Lesson.id == lesson_id, Course.creator_id == creator_id)
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def next_lesson_order(self, section_id: str) -> int:
        last = await self.db.execute(
            select(func.max(Lesson.sort_order)).where(Lesson.section_id == section_id)
        )
        current = last.scalar_one()
        return 0 if current is None else current + 1

    async def add_lesson(self, **values) -> Lesson:
        lesson = Lesson(**values)
        self.db.add(lesson)
        await self.db.flush()
        return lesson

    async def delete_lesson(self, lesson_id: str):
        await self.db.execute(delete(Lesson).where(Lesson.id == lesson_id))

    async def flush(self):
        await self.db.flush()
