# app/services/verification_service.py
# Admin review of student / tutor verification
#
#   list_verifications()  profiles in a given status, joined with the owner's email
#   verify_profile()      approve or reject, store notes, email the outcome

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import InvalidInput, NotFound
from app.models.profile import StudentProfile, TutorProfile, VerificationStatus
from app.models.user import User
from app.services import email_service

logger = logging.getLogger("freetutor.verification")

PROFILE_MODELS = {"student": StudentProfile, "tutor": TutorProfile}
VERIFY_ACTIONS = {"approve": VerificationStatus.APPROVED, "reject": VerificationStatus.REJECTED}

Profile = Union[StudentProfile, TutorProfile]


def _sort_key(item) -> datetime:
    # SQLite hands back naive datetimes
    created_at = item[1].created_at
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def _profile_model(profile_type: str):
    model = PROFILE_MODELS.get((profile_type or "").lower())
    if model is None:
        raise InvalidInput("profile_type must be 'student' or 'tutor'.")
    return model


def list_verifications(
    db: Session,
    status: str = VerificationStatus.PENDING.value,
    profile_type: Optional[str] = None,
) -> List[Tuple[str, Profile, str]]:
    """
    Returns (profile_type, profile, email) tuples, newest first.
    Without profile_type both students and tutors are listed.
    """
    try:
        status_filter = VerificationStatus(status)
    except ValueError:
        raise InvalidInput("status must be one of PENDING, APPROVED, REJECTED.")

    types = [profile_type.lower()] if profile_type else list(PROFILE_MODELS)
    items = []
    for type_ in types:
        model = _profile_model(type_)
        rows = db.query(model, User.email).join(
            User, User.id == model.user_id
        ).filter(
            model.verification_status == status_filter
        ).all()
        items.extend((type_, profile, email) for profile, email in rows)

    items.sort(key=_sort_key, reverse=True)
    return items


def verify_profile(
    db: Session,
    profile_id: UUID,
    profile_type: str,
    action: str,
    notes: Optional[str] = None,
    reviewer_id: Optional[UUID] = None,
) -> Profile:
    """
    Approve or reject a profile.
    The outcome email is best effort and sent after commit.
    """
    model = _profile_model(profile_type)
    new_status = VERIFY_ACTIONS.get((action or "").lower())
    if new_status is None:
        raise InvalidInput("action must be 'approve' or 'reject'.")

    profile = db.query(model).filter(model.id == profile_id).first()
    if not profile:
        raise NotFound("Profile not found.")

    profile.verification_status = new_status
    profile.verification_notes = notes.strip() if notes and notes.strip() else None
    db.commit()
    db.refresh(profile)

    logger.info(
        f"{profile_type.lower()} profile {profile.id} {new_status.value} by admin {reviewer_id}"
    )

    user = db.query(User).filter(User.id == profile.user_id).first()
    if user:
        if new_status == VerificationStatus.APPROVED:
            template = email_service.approval_email(
                profile.full_name, user.email, profile_type.lower()
            )
        else:
            template = email_service.rejection_email(
                profile.full_name, user.email, profile_type.lower(), profile.verification_notes
            )
        email_service.dispatch(template)

    return profile
