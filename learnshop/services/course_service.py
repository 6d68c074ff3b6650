# learnshop/services/course_service.py
import uuid

from sqlmodel import Session

from learnshop.core.errors import NotFoundError
from learnshop.models.course import Course, Enrollment
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.repositories.enrollment_repo import EnrollmentRepository
from learnshop.schemas.course import (
    CourseRead,
    CourseWithLessonsRead,
    EnrollmentRead,
    LessonRead,
)


class CourseService:
    """
    Read side of the course catalog, decorated with the caller's
    enrollment state. Anonymous callers get the "not enrolled" view.
    """

    def __init__(
        self,
        catalog_repo: CatalogRepository,
        enrollment_repo: EnrollmentRepository,
    ):
        self.catalog_repo = catalog_repo
        self.enrollment_repo = enrollment_repo

    @staticmethod
    def _course_dto(
        course: Course,
        lesson_count: int,
        enrollment: Enrollment | None,
    ) -> CourseRead:
        return CourseRead(
            id=course.id,
            title=course.title,
            description=course.description,
            instructor=course.instructor,
            price=course.price,
            image=course.image,
            duration=course.duration,
            level=course.level,
            category=course.category,
            rating=course.rating,
            students_count=course.students_count,
            lesson_count=lesson_count,
            is_enrolled=enrollment is not None,
            progress=enrollment.progress if enrollment else 0,
        )

    def list_courses(
        self,
        session: Session,
        user_id: uuid.UUID | None,
        category: str | None = None,
        level: str | None = None,
        search: str | None = None,
    ) -> list[CourseRead]:
        courses = self.catalog_repo.list_courses(
            session, category=category, level=level, search=search
        )
        course_ids = [c.id for c in courses]
        counts = self.enrollment_repo.lesson_counts(session, course_ids)
        enrollments = (
            self.enrollment_repo.map_for_user(session, user_id, course_ids)
            if user_id
            else {}
        )
        return [
            self._course_dto(c, counts.get(c.id, 0), enrollments.get(c.id))
            for c in courses
        ]

    def get_course(
        self,
        session: Session,
        user_id: uuid.UUID | None,
        course_id: int,
    ) -> CourseWithLessonsRead:
        course = self.catalog_repo.get_course(session, course_id)
        if course is None:
            raise NotFoundError("Course not found")

        lessons = self.catalog_repo.list_lessons(session, course_id)
        enrollment = None
        completed: set[int] = set()
        if user_id:
            enrollment = self.enrollment_repo.get(session, user_id, course_id)
            completed = self.enrollment_repo.completed_lesson_ids(session, user_id, course_id)

        base = self._course_dto(course, len(lessons), enrollment)
        return CourseWithLessonsRead(
            **base.model_dump(),
            lessons=[
                LessonRead(
                    id=lesson.id,
                    course_id=lesson.course_id,
                    title=lesson.title,
                    duration=lesson.duration,
                    video_url=lesson.video_url,
                    order_index=lesson.order_index,
                    is_completed=lesson.id in completed,
                )
                for lesson in lessons
            ],
        )

    def my_courses(self, session: Session, user_id: uuid.UUID) -> list[EnrollmentRead]:
        return [
            EnrollmentRead(
                course_id=course.id,
                title=course.title,
                image=course.image,
                progress=enrollment.progress,
                enrolled_at=enrollment.enrolled_at,
            )
            for enrollment, course in self.enrollment_repo.list_for_user(session, user_id)
        ]
