# app/api/v1/endpoints/requests.py
# Tutoring request endpoints
#
# Public:
#   GET    /requests              → browse (default status=OPEN), newest first
#
# Student flow:
#   POST   /requests              → post a new request (profile must be APPROVED)
#   GET    /requests/me           → own requests with received applications
#   PATCH  /requests/{id}         → close (CLOSED) or reopen (OPEN)
#   DELETE /requests/{id}         → delete request and its applications

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.config import settings
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.schemas.matching import (
    BrowseRequestItem,
    BrowseRequestsResponse,
    MessageResponse,
    OwnRequestsResponse,
    OwnTutoringRequest,
    TutoringRequestCreate,
    TutoringRequestResponse,
    TutoringRequestStatusUpdate,
)
from app.services import matching_service

router = APIRouter()


# ── Public ────────────────────────────────────────────────────────────────────

@router.get(
    "",
    response_model=BrowseRequestsResponse,
    summary="Browse tutoring requests",
)
def browse_requests(
    status: Optional[str] = Query(None, description="OPEN (default) | MATCHED | CLOSED"),
    subject: Optional[str] = Query(None),
    grade_level: Optional[str] = Query(None),
    db: Session = Depends(get_db),
):
    """
    Public listing. Shows the grade level and application count
    but never the student's name or contact details.
    """
    rows = matching_service.browse_requests(
        db,
        status=status.strip().upper() if status else None,
        subject=subject.strip() if subject else None,
        grade_level=grade_level.strip() if grade_level else None,
        limit=settings.browse_limit,
    )
    return BrowseRequestsResponse(requests=[
        BrowseRequestItem(
            id=req.id,
            title=req.title,
            subjects=req.subjects or [],
            grade_level=req.grade_level,
            description=req.description,
            preferred_schedule=req.preferred_schedule,
            status=req.status,
            application_count=count,
            created_at=req.created_at,
        )
        for req, count in rows
    ])


# ── Student Endpoints ─────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=TutoringRequestResponse,
    status_code=201,
    summary="Student posts a tutoring request",
)
def create_request(
    payload: TutoringRequestCreate,
    ctx: CallerContext = Depends(require_capability(Capability.POST_REQUEST)),
    db: Session = Depends(get_db),
):
    req = matching_service.create_request(
        db,
        student_id=ctx.student_profile_id,
        title=payload.title,
        subjects=payload.subjects,
        description=payload.description,
        preferred_schedule=payload.preferred_schedule,
    )
    return TutoringRequestResponse.model_validate(req)


@router.get(
    "/me",
    response_model=OwnRequestsResponse,
    summary="Student's own requests with applications",
)
def list_my_requests(
    ctx: CallerContext = Depends(require_capability(Capability.MANAGE_OWN_REQUESTS)),
    db: Session = Depends(get_db),
):
    requests = matching_service.list_student_requests(db, ctx.student_profile_id)
    return OwnRequestsResponse(
        requests=[OwnTutoringRequest.model_validate(req) for req in requests]
    )


@router.patch(
    "/{request_id}",
    response_model=TutoringRequestResponse,
    summary="Close or reopen a request",
)
def update_request_status(
    request_id: UUID,
    payload: TutoringRequestStatusUpdate,
    ctx: CallerContext = Depends(require_capability(Capability.MANAGE_OWN_REQUESTS)),
    db: Session = Depends(get_db),
):
    req = matching_service.update_request_status(
        db, ctx.student_profile_id, request_id, payload.status
    )
    return TutoringRequestResponse.model_validate(req)


@router.delete(
    "/{request_id}",
    response_model=MessageResponse,
    summary="Delete a request and its applications",
)
def delete_request(
    request_id: UUID,
    ctx: CallerContext = Depends(require_capability(Capability.MANAGE_OWN_REQUESTS)),
    db: Session = Depends(get_db),
):
    matching_service.delete_request(db, ctx.student_profile_id, request_id)
    return MessageResponse(message="Request deleted successfully.")
