# app/api/v1/endpoints/students.py
# Student profile endpoint
#
#   GET /students/me  → own private profile + connections

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.api.v1.endpoints.connections import build_connection_items
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.schemas.profile import StudentMeResponse, StudentProfileResponse
from app.services import matching_service

router = APIRouter()


@router.get(
    "/me",
    response_model=StudentMeResponse,
    summary="Student's own profile and connections",
)
def get_my_profile(
    ctx: CallerContext = Depends(require_capability(Capability.POST_REQUEST)),
    db: Session = Depends(get_db),
):
    profile = matching_service.get_student_profile(db, ctx.student_profile_id)
    connections = matching_service.list_connections(db, student_id=profile.id)
    return StudentMeResponse(
        email=ctx.email,
        profile=StudentProfileResponse.model_validate(profile),
        connections=build_connection_items(connections, ctx.role),
    )
