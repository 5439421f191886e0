# app/schemas/profile.py
# Own-profile views for GET /students/me and GET /tutors/me.
# These are private views and include phone and verification state.

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel

from app.models.profile import VerificationStatus
from app.schemas.matching import ConnectionListItem


class StudentProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    phone: Optional[str] = None
    grade_level: str
    subjects_needed: List[str] = []
    special_needs_description: Optional[str] = None
    verification_documents: List[str] = []
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TutorProfileResponse(BaseModel):
    id: UUID
    user_id: UUID
    full_name: str
    phone: Optional[str] = None
    education_level: str
    subjects_taught: List[str] = []
    bio: Optional[str] = None
    availability: Optional[Any] = None
    exam_results: Optional[Any] = None
    verification_documents: List[str] = []
    verification_status: VerificationStatus
    verification_notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class StudentMeResponse(BaseModel):
    email: str
    profile: StudentProfileResponse
    connections: List[ConnectionListItem]


class TutorMeResponse(BaseModel):
    email: str
    profile: TutorProfileResponse
    connections: List[ConnectionListItem]
