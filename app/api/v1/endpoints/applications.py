# app/api/v1/endpoints/applications.py
# Tutor application endpoints
#
# Tutor flow:
#   POST   /applications          → apply to an OPEN request
#   GET    /applications/me       → own applications with request summary
#
# Student flow:
#   PATCH  /applications/{id}     → {"action": "accept"} → request MATCHED,
#                                   siblings REJECTED, connection created,
#                                   tutor contact returned
#                                   {"action": "reject"} → this application only

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.schemas.matching import (
    ApplicationAction,
    ApplicationCreate,
    ApplicationResponse,
    ApplicationReviewResponse,
    ConnectionResponse,
    OwnApplicationsResponse,
    SubmittedApplication,
    TutorContact,
)
from app.services import matching_service

router = APIRouter()


# ── Tutor Endpoints ───────────────────────────────────────────────────────────

@router.post(
    "",
    response_model=ApplicationResponse,
    status_code=201,
    summary="Tutor applies to a tutoring request",
)
def apply_to_request(
    payload: ApplicationCreate,
    ctx: CallerContext = Depends(require_capability(Capability.APPLY_TO_REQUEST)),
    db: Session = Depends(get_db),
):
    application = matching_service.apply_to_request(
        db,
        tutor_id=ctx.tutor_profile_id,
        request_id=payload.request_id,
        message=payload.message,
        proposed_schedule=payload.proposed_schedule,
    )
    return ApplicationResponse.model_validate(application)


@router.get(
    "/me",
    response_model=OwnApplicationsResponse,
    summary="Tutor's own applications",
)
def list_my_applications(
    ctx: CallerContext = Depends(require_capability(Capability.VIEW_OWN_APPLICATIONS)),
    db: Session = Depends(get_db),
):
    applications = matching_service.list_tutor_applications(db, ctx.tutor_profile_id)
    return OwnApplicationsResponse(
        applications=[SubmittedApplication.model_validate(a) for a in applications]
    )


# ── Student Endpoints ─────────────────────────────────────────────────────────

@router.patch(
    "/{application_id}",
    response_model=ApplicationReviewResponse,
    summary="Accept or reject an application",
)
def review_application(
    application_id: UUID,
    payload: ApplicationAction,
    ctx: CallerContext = Depends(require_capability(Capability.REVIEW_APPLICATIONS)),
    db: Session = Depends(get_db),
):
    """
    Accept: runs the matching transaction and returns the tutor's contact.
    Reject: marks only this application REJECTED.
    """
    if payload.action == "accept":
        result = matching_service.accept_application(db, ctx.student_profile_id, application_id)
        return ApplicationReviewResponse(
            application=ApplicationResponse.model_validate(result.application),
            connection=ConnectionResponse.model_validate(result.connection),
            tutor_contact=TutorContact.model_validate(result.tutor_contact),
        )

    application = matching_service.reject_application(db, ctx.student_profile_id, application_id)
    return ApplicationReviewResponse(
        application=ApplicationResponse.model_validate(application),
    )
