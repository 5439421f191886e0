# app/api/v1/endpoints/stats.py
# Public platform counters for the landing page

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import app.db.base  # noqa: F401
from app.db.session import get_db
from app.models.profile import StudentProfile, TutorProfile, VerificationStatus
from app.models.tutoring_request import ConnectionRequest, ConnectionStatus, RequestStatus, TutoringRequest
from app.schemas.stats import PlatformStats

router = APIRouter()


@router.get(
    "",
    response_model=PlatformStats,
    summary="Platform statistics",
)
def get_stats(db: Session = Depends(get_db)):
    approved_students = db.query(StudentProfile).filter(
        StudentProfile.verification_status == VerificationStatus.APPROVED
    ).count()
    approved_tutors = db.query(TutorProfile).filter(
        TutorProfile.verification_status == VerificationStatus.APPROVED
    ).count()
    open_requests = db.query(TutoringRequest).filter(
        TutoringRequest.status == RequestStatus.OPEN
    ).count()
    successful_matches = db.query(ConnectionRequest).filter(
        ConnectionRequest.status == ConnectionStatus.ACCEPTED
    ).count()

    return PlatformStats(
        approved_students=approved_students,
        approved_tutors=approved_tutors,
        open_requests=open_requests,
        successful_matches=successful_matches,
    )
