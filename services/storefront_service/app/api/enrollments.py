"""HTTP routes for course enrollments."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import (
    get_course_repository,
    get_event_publisher,
    get_session,
    invalidate_dashboard,
    require_user,
)
from ..events import StorefrontEventPublisher
from ..identity import CurrentUser
from ..repository import CourseRepository
from ..schemas import EnrollmentCreate, EnrollmentListResponse, EnrollmentResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/enrollments", tags=["enrollments"])

ALREADY_ENROLLED = "You are already enrolled in this course."


def _serialize_enrollment(enrollment) -> dict[str, object]:
    return {
        "id": enrollment.id,
        "userId": enrollment.user_id,
        "courseId": enrollment.course_id,
        "courseTitle": enrollment.course.title if enrollment.course is not None else None,
        "status": enrollment.status,
        "progress": enrollment.progress,
        "enrolledAt": enrollment.enrolled_at,
        "completedAt": enrollment.completed_at,
    }


@router.post("", response_model=EnrollmentResponse, status_code=status.HTTP_201_CREATED)
async def enroll(
    payload: EnrollmentCreate,
    request: Request,
    user: CurrentUser = Depends(require_user),
    session: AsyncSession = Depends(get_session),
    repository: CourseRepository = Depends(get_course_repository),
    event_publisher: StorefrontEventPublisher | None = Depends(get_event_publisher),
) -> EnrollmentResponse:
    course = await repository.get_course(payload.course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    if await repository.get_enrollment(user_id=user.id, course_id=course.id) is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_ENROLLED)

    try:
        enrollment = await repository.create_enrollment(user_id=user.id, course_id=course.id)
    except IntegrityError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=ALREADY_ENROLLED) from exc

    await session.commit()
    logger.info("User %s enrolled in course %s", user.id, course.id)
    if event_publisher is not None:
        await event_publisher.enrollment_created(enrollment)
    await invalidate_dashboard(request)
    return EnrollmentResponse.model_validate(_serialize_enrollment(enrollment))


@router.get("/me", response_model=EnrollmentListResponse)
async def list_my_enrollments(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user: CurrentUser = Depends(require_user),
    repository: CourseRepository = Depends(get_course_repository),
) -> EnrollmentListResponse:
    enrollments, total = await repository.list_enrollments(user_id=user.id, limit=limit, offset=offset)
    items = [EnrollmentResponse.model_validate(_serialize_enrollment(item)) for item in enrollments]
    return EnrollmentListResponse(items=items, total=total)


@router.get("", response_model=EnrollmentListResponse)
async def list_enrollments(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    user_id: str | None = Query(default=None, alias="userId"),
    repository: CourseRepository = Depends(get_course_repository),
) -> EnrollmentListResponse:
    enrollments, total = await repository.list_enrollments(user_id=user_id, limit=limit, offset=offset)
    items = [EnrollmentResponse.model_validate(_serialize_enrollment(item)) for item in enrollments]
    return EnrollmentListResponse(items=items, total=total)
