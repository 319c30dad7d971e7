"""Assignment routes. Results are narrowed to the caller's own rows."""

import math
from typing import Annotated, Optional

from core.auth_helper import CurrentClaims, get_client_ip, get_device_info
from core.dependencies import get_assignment_service
from fastapi import APIRouter, Depends, Query, Request, Response, status
from schemas.school import AssignmentCreate, AssignmentOut, AssignmentPage, Pagination
from services.assignments import AssignmentService

router = APIRouter(prefix="/api/assignments", tags=["assignments"])

Assignments = Annotated[AssignmentService, Depends(get_assignment_service)]


@router.get("", response_model=AssignmentPage)
async def list_assignments(
    claims: CurrentClaims,
    service: Assignments,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str = "",
    lesson_id: Optional[int] = Query(default=None, alias="lessonId"),
):
    items, total = await service.list_visible(
        claims, page=page, limit=limit, search=search, lesson_id=lesson_id
    )
    return AssignmentPage(
        assignments=[AssignmentOut.model_validate(a) for a in items],
        pagination=Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit)
        ),
    )


@router.get("/{assignment_id}", response_model=AssignmentOut)
async def get_assignment(assignment_id: int, claims: CurrentClaims, service: Assignments):
    return AssignmentOut.model_validate(await service.get(claims, assignment_id))


@router.post("", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
async def create_assignment(
    request: Request,
    body: AssignmentCreate,
    claims: CurrentClaims,
    service: Assignments,
):
    """Create an assignment. Teachers may only use their own lessons."""

    assignment = await service.create(
        claims,
        body.title,
        body.start_date,
        body.due_date,
        body.lesson_id,
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    return AssignmentOut.model_validate(assignment)


@router.delete("/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_assignment(
    request: Request,
    assignment_id: int,
    claims: CurrentClaims,
    service: Assignments,
):
    await service.delete(
        claims,
        assignment_id,
        ip_address=get_client_ip(request),
        user_agent=get_device_info(request),
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
