# learnshop/routers/courses.py
from fastapi import APIRouter, Depends
from sqlmodel import Session

from learnshop.core.auth import get_current_user, require_auth
from learnshop.database import get_session
from learnshop.models.user import User
from learnshop.repositories.catalog_repo import CatalogRepository
from learnshop.repositories.enrollment_repo import EnrollmentRepository
from learnshop.schemas.base import MessageResponse
from learnshop.schemas.course import (
    CourseEnvelope,
    CourseList,
    CourseProgress,
    LessonCompleted,
    MyCourses,
)
from learnshop.services.course_service import CourseService
from learnshop.services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/courses", tags=["Courses"])

catalog_repo = CatalogRepository()
enrollment_repo = EnrollmentRepository()
course_service = CourseService(catalog_repo, enrollment_repo)
enrollment_service = EnrollmentService(enrollment_repo, catalog_repo)


# -------- Catalog views (identity optional) --------


@router.get("", response_model=CourseList)
def list_courses(
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
    category: str | None = None,
    level: str | None = None,
    search: str | None = None,
):
    """
    List courses with lesson count and the caller's enrollment state.

    - Public endpoint; anonymous callers see isEnrolled=false, progress=0.
    """
    user_id = current_user.id if current_user else None
    return CourseList(
        courses=course_service.list_courses(
            session, user_id, category=category, level=level, search=search
        )
    )


@router.get("/my-courses", response_model=MyCourses)
def my_courses(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Courses the authenticated user is enrolled in, with stored progress.
    """
    return MyCourses(courses=course_service.my_courses(session, current_user.id))


@router.get("/{course_id}", response_model=CourseEnvelope)
def get_course(
    course_id: int,
    session: Session = Depends(get_session),
    current_user: User | None = Depends(get_current_user),
):
    """
    Course detail with ordered lessons flagged isCompleted for the caller.
    """
    user_id = current_user.id if current_user else None
    return CourseEnvelope(course=course_service.get_course(session, user_id, course_id))


@router.get("/{course_id}/progress", response_model=CourseProgress)
def get_progress(
    course_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Stored progress of the caller in a course (not recomputed).
    """
    return CourseProgress(
        course_id=course_id,
        is_enrolled=enrollment_service.is_enrolled(session, current_user.id, course_id),
        progress=enrollment_service.progress_for(session, current_user.id, course_id),
    )


# -------- Enrollment state machine --------


@router.post("/{course_id}/enroll", response_model=MessageResponse)
def enroll(
    course_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Enroll the caller in a course.

    - 404 unknown course, 409 already enrolled.
    """
    enrollment_service.enroll(session, current_user.id, course_id)
    return MessageResponse(message="Enrollment successful")


@router.post(
    "/{course_id}/lessons/{lesson_id}/complete",
    response_model=LessonCompleted,
)
def complete_lesson(
    course_id: int,
    lesson_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Mark a lesson as completed and return the recomputed progress.

    - 403 if the caller is not enrolled in the course.
    - Completing the same lesson twice is not an error.
    """
    progress = enrollment_service.complete_lesson(
        session, current_user.id, course_id, lesson_id
    )
    return LessonCompleted(message="Lesson marked as completed", progress=progress)
