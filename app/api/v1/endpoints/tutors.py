# app/api/v1/endpoints/tutors.py
# Tutor profile endpoint
#
#   GET /tutors/me  → own private profile + connections

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.api.v1.endpoints.connections import build_connection_items
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.schemas.profile import TutorMeResponse, TutorProfileResponse
from app.services import matching_service

router = APIRouter()


@router.get(
    "/me",
    response_model=TutorMeResponse,
    summary="Tutor's own profile and connections",
)
def get_my_profile(
    ctx: CallerContext = Depends(require_capability(Capability.APPLY_TO_REQUEST)),
    db: Session = Depends(get_db),
):
    profile = matching_service.get_tutor_profile(db, ctx.tutor_profile_id)
    connections = matching_service.list_connections(db, tutor_id=profile.id)
    return TutorMeResponse(
        email=ctx.email,
        profile=TutorProfileResponse.model_validate(profile),
        connections=build_connection_items(connections, ctx.role),
    )
