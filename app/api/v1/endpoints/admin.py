# app/api/v1/endpoints/admin.py
# Admin portal endpoints -- all require role=ADMIN
#
#   GET  /admin/verifications?status=PENDING&type=student|tutor
#   POST /admin/verify

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.core.dependencies import require_capability
from app.core.permissions import Capability, CallerContext
from app.db.session import get_db
from app.models.profile import VerificationStatus
from app.schemas.admin import (
    VerificationItem,
    VerificationListResponse,
    VerifyRequest,
    VerifyResponse,
)
from app.services import verification_service

router = APIRouter()


# ── Verification ──────────────────────────────────────────────────────────────

@router.get(
    "/verifications",
    response_model=VerificationListResponse,
    summary="List profiles by verification status",
)
def list_verifications(
    status: str = Query(VerificationStatus.PENDING.value),
    type: Optional[str] = Query(None, description="student | tutor"),
    ctx: CallerContext = Depends(require_capability(Capability.REVIEW_VERIFICATIONS)),
    db: Session = Depends(get_db),
):
    rows = verification_service.list_verifications(
        db, status=status.strip().upper(), profile_type=type
    )
    return VerificationListResponse(profiles=[
        VerificationItem(
            profile_id=profile.id,
            profile_type=profile_type,
            user_id=profile.user_id,
            email=email,
            full_name=profile.full_name,
            phone=profile.phone,
            verification_status=profile.verification_status,
            verification_notes=profile.verification_notes,
            document_keys=profile.verification_documents or [],
            created_at=profile.created_at,
        )
        for profile_type, profile, email in rows
    ])


@router.post(
    "/verify",
    response_model=VerifyResponse,
    summary="Approve or reject a student / tutor profile",
)
def verify_profile(
    payload: VerifyRequest,
    ctx: CallerContext = Depends(require_capability(Capability.REVIEW_VERIFICATIONS)),
    db: Session = Depends(get_db),
):
    """
    Sets verification_status and notes on the profile, then emails the
    outcome. A failed email never fails this call.
    """
    profile = verification_service.verify_profile(
        db,
        profile_id=payload.profile_id,
        profile_type=payload.profile_type,
        action=payload.action,
        notes=payload.notes,
        reviewer_id=ctx.user_id,
    )
    verb = "approved" if payload.action == "approve" else "rejected"
    return VerifyResponse(
        profile_id=profile.id,
        profile_type=payload.profile_type,
        verification_status=profile.verification_status,
        message=f"Profile {verb} successfully.",
    )
