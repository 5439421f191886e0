# app/api/v1/endpoints/auth.py
# Authentication endpoints
#
# POST /auth/register/student  -- user + student profile (PENDING review)
# POST /auth/register/tutor    -- user + tutor profile (PENDING review)
# POST /auth/login             -- returns a bearer access token

import logging
from datetime import datetime, timezone
from typing import Union

from fastapi import APIRouter, Depends
from sqlalchemy import and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401 -- registers all models so relationships resolve
from app.core.config import settings
from app.core.exceptions import Conflict, Unauthenticated
from app.core.security import create_access_token, hash_password, verify_password
from app.db.session import get_db
from app.models.profile import StudentProfile, TutorProfile, VerificationStatus
from app.models.user import User, UserRole
from app.schemas.auth import (
    LoginRequest,
    RegisterResponse,
    StudentRegisterRequest,
    TokenResponse,
    TutorRegisterRequest,
)
from app.services import email_service

logger = logging.getLogger("freetutor.auth")

router = APIRouter()

REGISTERED_MESSAGE = "Registration received. Your documents will be reviewed within 3-5 working days."


# Helper
def _create_user(
    payload: Union[StudentRegisterRequest, TutorRegisterRequest],
    role: UserRole,
    db: Session,
) -> User:
    if db.query(User).filter(User.email == payload.email).first():
        raise Conflict("An account with this email already exists.")
    user = User(
        email=payload.email,
        hashed_password=hash_password(payload.password),
        role=role,
        is_active=True,
    )
    db.add(user)
    db.flush()
    return user


def _commit_registration(db: Session) -> None:
    try:
        db.commit()
    except IntegrityError as e:
        # Same email registered concurrently
        db.rollback()
        raise Conflict("An account with this email already exists.") from e


# Register student
@router.post("/register/student", response_model=RegisterResponse, status_code=201, summary="Register as a student")
def register_student(payload: StudentRegisterRequest, db: Session = Depends(get_db)):
    user = _create_user(payload, UserRole.STUDENT, db)
    profile = StudentProfile(
        user_id=user.id,
        full_name=payload.full_name,
        phone=payload.phone,
        grade_level=payload.grade_level,
        subjects_needed=payload.subjects_needed,
        special_needs_description=payload.special_needs_description,
        verification_status=VerificationStatus.PENDING,
    )
    db.add(profile)
    _commit_registration(db)

    logger.info(f"Student registered: user={user.id} profile={profile.id}")
    email_service.dispatch(email_service.registration_email(profile.full_name, user.email, "student"))

    return RegisterResponse(
        user_id=user.id,
        profile_id=profile.id,
        role=user.role,
        verification_status=profile.verification_status,
        message=REGISTERED_MESSAGE,
    )


# Register tutor
@router.post("/register/tutor", response_model=RegisterResponse, status_code=201, summary="Register as a tutor")
def register_tutor(payload: TutorRegisterRequest, db: Session = Depends(get_db)):
    user = _create_user(payload, UserRole.TUTOR, db)
    profile = TutorProfile(
        user_id=user.id,
        full_name=payload.full_name,
        phone=payload.phone,
        education_level=payload.education_level,
        subjects_taught=payload.subjects_taught,
        bio=payload.bio,
        availability=payload.availability,
        exam_results=[r.model_dump() for r in payload.exam_results],
        verification_status=VerificationStatus.PENDING,
    )
    db.add(profile)
    _commit_registration(db)

    logger.info(f"Tutor registered: user={user.id} profile={profile.id}")
    email_service.dispatch(email_service.registration_email(profile.full_name, user.email, "tutor"))

    return RegisterResponse(
        user_id=user.id,
        profile_id=profile.id,
        role=user.role,
        verification_status=profile.verification_status,
        message=REGISTERED_MESSAGE,
    )


# Login
@router.post("/login", response_model=TokenResponse, summary="Log in with email and password")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(and_(User.email == payload.email, User.is_active == True)).first()  # noqa: E712
    if not user or not user.hashed_password:
        raise Unauthenticated("Incorrect email or password.")
    if not verify_password(payload.password, user.hashed_password):
        raise Unauthenticated("Incorrect email or password.")

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()

    profile = user.student_profile or user.tutor_profile
    return TokenResponse(
        access_token=create_access_token(user.id, user.role.value),
        expires_in=settings.access_token_expire_minutes * 60,
        user_id=user.id,
        role=user.role,
        profile_id=profile.id if profile else None,
        verification_status=profile.verification_status if profile else None,
    )
