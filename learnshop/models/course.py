# learnshop/models/course.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import UniqueConstraint
from sqlmodel import SQLModel, Field


class Course(SQLModel, table=True):
    """
    Course catalog entry.

    `students_count` is incremented once per newly created Enrollment,
    never on duplicate enroll attempts.
    """

    __tablename__ = "courses"

    id: int | None = Field(default=None, primary_key=True)

    title: str = Field(index=True)
    description: str = ""
    instructor: str = ""
    price: float = Field(ge=0)
    image: str | None = None
    duration: str = ""
    level: str = Field(default="beginner", index=True)
    category: str = Field(default="general", index=True)
    rating: float = 4.5
    students_count: int = Field(default=0, ge=0)

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Lesson(SQLModel, table=True):
    __tablename__ = "lessons"

    id: int | None = Field(default=None, primary_key=True)

    course_id: int = Field(
        foreign_key="courses.id",
        ondelete="CASCADE",
        index=True,
    )

    title: str
    duration: str = ""
    video_url: str | None = None
    order_index: int = Field(default=0, description="Position inside the course")

    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class Enrollment(SQLModel, table=True):
    """
    Access record of a user to a course.

    Created by an explicit enroll action or implicitly by an order
    containing the course. `progress` is a materialized value: it is only
    ever written by the lesson-completion path.
    """

    __tablename__ = "enrollments"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    course_id: int = Field(
        foreign_key="courses.id",
        ondelete="CASCADE",
        index=True,
    )

    progress: int = Field(default=0, ge=0, le=100)

    enrolled_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


class LessonCompletion(SQLModel, table=True):
    """
    Append-only record that a user finished a lesson.
    """

    __tablename__ = "lesson_completions"
    __table_args__ = (
        UniqueConstraint("user_id", "lesson_id", name="uq_completion_user_lesson"),
    )

    id: int | None = Field(default=None, primary_key=True)

    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    lesson_id: int = Field(
        foreign_key="lessons.id",
        ondelete="CASCADE",
        index=True,
    )

    completed_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
    )
