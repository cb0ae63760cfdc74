"""Courses as a creator builds them: course -> sections -> lessons, plus enrollments."""

import uuid
from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from app.constants.constants import CourseLevel, CourseStatus, DEFAULT_COURSE_LANGUAGE, LessonType
from app.models.base import Base, TimestampMixin
from app.models.category import Category  # noqa: F401
from app.utils.clock import utcnow


def _uuid() -> str:
    return str(uuid.uuid4())


class Course(Base, TimestampMixin):
    __tablename__ = "courses"
    id = Column(String(36), primary_key=True, default=_uuid)
    title = Column(String(150), nullable=False)
    slug = Column(String(200), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    short_description = Column(String(300), nullable=True)
    thumbnail = Column(String(500), nullable=True)

    level = Column(SQLEnum(CourseLevel), default=CourseLevel.ALL_LEVELS, nullable=False)
    status = Column(SQLEnum(CourseStatus), default=CourseStatus.DRAFT, nullable=False, index=True)
    price = Column(Numeric(10, 2, asdecimal=False), default=0, nullable=False)
    is_free = Column(Boolean, default=True, nullable=False)
    language = Column(String(50), default=DEFAULT_COURSE_LANGUAGE, nullable=False)
    tags = Column(JSON, default=list, nullable=False)

    creator_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    published_at = Column(DateTime, nullable=True)

    category = relationship("Category", lazy="selectin")
    sections = relationship(
        "Section",
        back_populates="course",
        order_by="Section.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<Course {self.title} ({self.status})>"


class Section(Base, TimestampMixin):
    __tablename__ = "sections"
    id = Column(String(36), primary_key=True, default=_uuid)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, default=0, nullable=False)

    course = relationship("Course", back_populates="sections")
    lessons = relationship(
        "Lesson",
        back_populates="section",
        order_by="Lesson.sort_order",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Lesson(Base, TimestampMixin):
    __tablename__ = "lessons"
    id = Column(String(36), primary_key=True, default=_uuid)
    section_id = Column(String(36), ForeignKey("sections.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(LessonType), default=LessonType.VIDEO, nullable=False)
    content = Column(Text, nullable=True)
    video_url = Column(String(500), nullable=True)
    duration = Column(Integer, default=0, nullable=False)
    is_free = Column(Boolean, default=False, nullable=False)
    sort_order = Column(Integer, default=0, nullable=False)

    section = relationship("Section", back_populates="lessons")


class Enrollment(Base):
    __tablename__ = "enrollments"
    __table_args__ = (UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(String(36), ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    enrolled_at = Column(DateTime, default=utcnow, nullable=False)
