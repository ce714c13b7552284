"""HTTP routes for the training course catalog."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..dependencies import get_course_repository, get_session, invalidate_dashboard
from ..formatting import format_price
from ..repository import CourseRepository
from ..schemas import CourseCreate, CourseListResponse, CourseResponse

router = APIRouter(prefix="/courses", tags=["courses"])


def _serialize_course(course) -> dict[str, object]:
    return {
        "id": course.id,
        "title": course.title,
        "category": course.category,
        "description": course.description,
        "duration": course.duration,
        "level": course.level,
        "price": course.price,
        "formattedPrice": format_price(course.price or 0),
        "imageUrl": course.image_url,
        "certificateAvailable": course.certificate_available,
        "createdAt": course.created_at,
    }


@router.post("", response_model=CourseResponse, status_code=status.HTTP_201_CREATED)
async def create_course(
    payload: CourseCreate,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: CourseRepository = Depends(get_course_repository),
) -> CourseResponse:
    course = await repository.create_course(**payload.model_dump())
    await session.commit()
    await invalidate_dashboard(request)
    return CourseResponse.model_validate(_serialize_course(course))


@router.get("", response_model=CourseListResponse)
async def list_courses(
    limit: int = Query(default=50, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    category: str | None = Query(default=None),
    repository: CourseRepository = Depends(get_course_repository),
) -> CourseListResponse:
    courses, total = await repository.list_courses(limit=limit, offset=offset, category=category)
    items = [CourseResponse.model_validate(_serialize_course(course)) for course in courses]
    return CourseListResponse(items=items, total=total)


@router.get("/{course_id}", response_model=CourseResponse)
async def get_course(
    course_id: int,
    repository: CourseRepository = Depends(get_course_repository),
) -> CourseResponse:
    course = await repository.get_course(course_id)
    if course is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Course not found")
    return CourseResponse.model_validate(_serialize_course(course))


@router.delete("/{course_id}")
async def delete_course(
    course_id: int,
    request: Request,
    session: AsyncSession = Depends(get_session),
    repository: CourseRepository = Depends(get_course_repository),
) -> Response:
    course = await repository.get_course(course_id)
    if course is None:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    await repository.delete_course(course)
    await session.commit()
    await invalidate_dashboard(request)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
