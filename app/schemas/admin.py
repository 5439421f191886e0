# app/schemas/admin.py

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from app.models.profile import VerificationStatus


# ── Verification ──────────────────────────────────────────────────────────────

class VerificationItem(BaseModel):
    profile_id: UUID
    profile_type: str                 # student | tutor
    user_id: UUID
    email: str
    full_name: str
    phone: Optional[str] = None
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None
    document_keys: List[str] = []
    created_at: datetime


class VerificationListResponse(BaseModel):
    profiles: List[VerificationItem]


class VerifyRequest(BaseModel):
    profile_id: UUID
    profile_type: str    # student | tutor
    action: str          # approve | reject
    notes: Optional[str] = None

    @field_validator("profile_type")
    @classmethod
    def valid_type(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("student", "tutor"):
            raise ValueError("profile_type must be 'student' or 'tutor'")
        return v

    @field_validator("action")
    @classmethod
    def valid_action(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("approve", "reject"):
            raise ValueError("action must be 'approve' or 'reject'")
        return v


class VerifyResponse(BaseModel):
    profile_id: UUID
    profile_type: str
    verification_status: VerificationStatus
    message: str
