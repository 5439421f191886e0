# app/schemas/auth.py
# Pydantic request/response models for registration and login

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.models.profile import VerificationStatus
from app.models.user import UserRole


def _not_blank(v: str, field: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError(f"{field} cannot be empty")
    return v


def _normalize_email(v: str) -> str:
    return v.strip().lower()


def _clean_subjects(v: List[str]) -> List[str]:
    cleaned = [s.strip() for s in v if s and s.strip()]
    if not cleaned:
        raise ValueError("At least one subject is required")
    return cleaned


# ── Registration ──────────────────────────────────────────────────────────────

class _RegisterBase(BaseModel):
    email: EmailStr
    password: str
    full_name: str = Field(max_length=255)
    phone: str = Field(max_length=20)

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v: str) -> str:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def password_strength(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v

    @field_validator("full_name")
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Full name")

    @field_validator("phone")
    @classmethod
    def phone_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Phone")


class StudentRegisterRequest(_RegisterBase):
    grade_level: str = Field(max_length=50)
    subjects_needed: List[str]
    special_needs_description: str

    @field_validator("grade_level")
    @classmethod
    def grade_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Grade level")

    @field_validator("subjects_needed")
    @classmethod
    def subjects_not_empty(cls, v: List[str]) -> List[str]:
        return _clean_subjects(v)

    @field_validator("special_needs_description")
    @classmethod
    def needs_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Special needs description")


class ExamResult(BaseModel):
    exam_type: str                  # HKDSE | HKCEE | HKALE | IB | GCE ...
    subject: str
    grade: str


class TutorRegisterRequest(_RegisterBase):
    education_level: str = Field(max_length=100)
    subjects_taught: List[str]
    bio: str
    availability: Dict[str, Any]
    exam_results: List[ExamResult] = []

    @field_validator("education_level")
    @classmethod
    def education_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Education level")

    @field_validator("subjects_taught")
    @classmethod
    def subjects_not_empty(cls, v: List[str]) -> List[str]:
        return _clean_subjects(v)

    @field_validator("bio")
    @classmethod
    def bio_not_empty(cls, v: str) -> str:
        return _not_blank(v, "Bio")


class RegisterResponse(BaseModel):
    user_id: UUID
    profile_id: UUID
    role: UserRole
    verification_status: VerificationStatus
    message: str


# ── Login ─────────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def email_lowercase(cls, v: str) -> str:
        return _normalize_email(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # seconds until access token expiry

    # User info embedded so frontend doesn't need a second request
    user_id: UUID
    role: UserRole
    profile_id: Optional[UUID] = None
    verification_status: Optional[VerificationStatus] = None
