# learnshop/repositories/enrollment_repo.py
import uuid

from sqlalchemy import func
from sqlmodel import Session, select

from learnshop.models.course import Course, Enrollment, Lesson, LessonCompletion


class EnrollmentRepository:
    """
    Data access layer for enrollments and lesson completions.

    NOTE:
      - No commits here; the enrollment service and the checkout saga
        decide where a unit of work ends.
    """

    # ---- Enrollments ----

    def get(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> Enrollment | None:
        stmt = select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id == course_id,
        )
        return session.exec(stmt).first()

    def create(self, session: Session, enrollment: Enrollment) -> Enrollment:
        session.add(enrollment)
        session.flush()
        return enrollment

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[tuple[Enrollment, Course]]:
        stmt = (
            select(Enrollment, Course)
            .join(Course, Course.id == Enrollment.course_id)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.enrolled_at.desc())
        )
        return list(session.exec(stmt).all())

    def map_for_user(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_ids: list[int],
    ) -> dict[int, Enrollment]:
        if not course_ids:
            return {}
        stmt = select(Enrollment).where(
            Enrollment.user_id == user_id,
            Enrollment.course_id.in_(course_ids),
        )
        return {e.course_id: e for e in session.exec(stmt).all()}

    # ---- Lesson completions ----

    def get_completion(
        self,
        session: Session,
        user_id: uuid.UUID,
        lesson_id: int,
    ) -> LessonCompletion | None:
        stmt = select(LessonCompletion).where(
            LessonCompletion.user_id == user_id,
            LessonCompletion.lesson_id == lesson_id,
        )
        return session.exec(stmt).first()

    def add_completion(self, session: Session, completion: LessonCompletion) -> LessonCompletion:
        session.add(completion)
        session.flush()
        return completion

    def completed_lesson_ids(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> set[int]:
        stmt = (
            select(LessonCompletion.lesson_id)
            .join(Lesson, Lesson.id == LessonCompletion.lesson_id)
            .where(
                LessonCompletion.user_id == user_id,
                Lesson.course_id == course_id,
            )
        )
        return set(session.exec(stmt).all())

    def count_lessons(self, session: Session, course_id: int) -> int:
        stmt = select(func.count()).select_from(Lesson).where(Lesson.course_id == course_id)
        return int(session.exec(stmt).one() or 0)

    def lesson_counts(self, session: Session, course_ids: list[int]) -> dict[int, int]:
        if not course_ids:
            return {}
        stmt = (
            select(Lesson.course_id, func.count(Lesson.id))
            .where(Lesson.course_id.in_(course_ids))
            .group_by(Lesson.course_id)
        )
        return {course_id: int(count) for course_id, count in session.exec(stmt).all()}
