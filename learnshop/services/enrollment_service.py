# learnshop/services/enrollment_service.py
import logging
import math
import uuid

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from learnshop.core.errors import (
    AlreadyEnrolledError,
    NotEnrolledError,
    NotFoundError,
)
from learnshop.models.course import Enrollment, LessonCompletion
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.repositories.enrollment_repo import EnrollmentRepository

logger = logging.getLogger(__name__)


def compute_progress(completed: int, total: int) -> int:
    """
    Percentage of lessons completed, rounded half up.
    A course without lessons has progress 0.
    """
    if total <= 0:
        return 0
    percent = math.floor(100 * completed / total + 0.5)
    return max(0, min(100, percent))


class EnrollmentService:
    """
    Enrollment state machine and lesson progress.

      absent --enroll / order commit--> active(progress=0)
      active --complete_lesson (repeatable)--> active(progress 0..100)

    There is no cancelled state. `progress` is only written by
    `complete_lesson`, never by callers.
    """

    def __init__(
        self,
        enrollment_repo: EnrollmentRepository,
        catalog_repo: CatalogRepository,
    ):
        self.enrollment_repo = enrollment_repo
        self.catalog_repo = catalog_repo

    def _require_course(self, session: Session, course_id: int) -> None:
        if self.catalog_repo.get_course(session, course_id) is None:
            raise NotFoundError("Course not found")

    # ---- Enrollment ----

    def enroll(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> Enrollment:
        """
        Explicit enrollment (public endpoint).

        Raises AlreadyEnrolledError when an enrollment exists; on success
        the course gains one student.
        """
        self._require_course(session, course_id)
        if self.enrollment_repo.get(session, user_id, course_id) is not None:
            raise AlreadyEnrolledError()

        try:
            enrollment = self.enrollment_repo.create(
                session, Enrollment(user_id=user_id, course_id=course_id)
            )
            self.catalog_repo.increment_students_count(session, course_id)
            session.commit()
        except IntegrityError:
            # a concurrent request enrolled the same user first
            session.rollback()
            raise AlreadyEnrolledError()
        session.refresh(enrollment)
        logger.info("User %s enrolled in course %s", user_id, course_id)
        return enrollment

    def ensure_enrollment(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> bool:
        """
        Idempotent enrollment used by checkout.

        Returns True when a new enrollment was created (and the course's
        students_count incremented), False when one already existed.
        Does not commit.
        """
        if self.enrollment_repo.get(session, user_id, course_id) is not None:
            return False
        self.enrollment_repo.create(
            session, Enrollment(user_id=user_id, course_id=course_id)
        )
        self.catalog_repo.increment_students_count(session, course_id)
        return True

    # ---- Progress ----

    def complete_lesson(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
        lesson_id: int,
    ) -> int:
        """
        Mark a lesson completed and recompute the course progress.

        - NotEnrolledError if the user has no enrollment for the course.
        - NotFoundError if the lesson does not belong to the course.
        - Completing an already completed lesson is a silent success.

        Returns the recomputed progress.
        """
        enrollment = self.enrollment_repo.get(session, user_id, course_id)
        if enrollment is None:
            raise NotEnrolledError()

        lesson = self.catalog_repo.get_lesson(session, lesson_id)
        # stricter than accepting any lesson id: it must belong to the course
        if lesson is None or lesson.course_id != course_id:
            raise NotFoundError("Lesson not found in this course")

        if self.enrollment_repo.get_completion(session, user_id, lesson_id) is None:
            try:
                self.enrollment_repo.add_completion(
                    session, LessonCompletion(user_id=user_id, lesson_id=lesson_id)
                )
            except IntegrityError:
                # completed concurrently; nothing else is pending in this session
                session.rollback()

        progress = self._recompute_progress(session, enrollment)
        session.commit()
        return progress

    def _recompute_progress(self, session: Session, enrollment: Enrollment) -> int:
        completed = len(
            self.enrollment_repo.completed_lesson_ids(
                session, enrollment.user_id, enrollment.course_id
            )
        )
        total = self.enrollment_repo.count_lessons(session, enrollment.course_id)
        enrollment.progress = compute_progress(completed, total)
        session.add(enrollment)
        session.flush()
        return enrollment.progress

    def progress_for(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> int:
        """
        Stored progress, not recomputed. 0 when not enrolled.
        """
        enrollment = self.enrollment_repo.get(session, user_id, course_id)
        return enrollment.progress if enrollment else 0

    def is_enrolled(
        self,
        session: Session,
        user_id: uuid.UUID,
        course_id: int,
    ) -> bool:
        return self.enrollment_repo.get(session, user_id, course_id) is not None
