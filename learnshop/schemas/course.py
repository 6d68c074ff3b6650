# learnshop/schemas/course.py
from datetime import datetime

from learnshop.schemas.base import CamelModel, MessageResponse


class LessonRead(CamelModel):
    id: int
    course_id: int
    title: str
    duration: str
    video_url: str | None = None
    order_index: int
    is_completed: bool = False


class CourseRead(CamelModel):
    """
    Catalog course as seen by the caller.

    `is_enrolled` / `progress` are False / 0 for anonymous callers.
    """

    id: int
    title: str
    description: str
    instructor: str
    price: float
    image: str | None = None
    duration: str
    level: str
    category: str
    rating: float
    students_count: int
    lesson_count: int = 0
    is_enrolled: bool = False
    progress: int = 0


class CourseWithLessonsRead(CourseRead):
    lessons: list[LessonRead]


class CourseList(CamelModel):
    courses: list[CourseRead]


class CourseEnvelope(CamelModel):
    course: CourseWithLessonsRead


class EnrollmentRead(CamelModel):
    course_id: int
    title: str
    image: str | None = None
    progress: int
    enrolled_at: datetime


class MyCourses(CamelModel):
    courses: list[EnrollmentRead]


class LessonCompleted(MessageResponse):
    progress: int


class CourseProgress(CamelModel):
    course_id: int
    is_enrolled: bool
    progress: int
