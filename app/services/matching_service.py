# app/services/matching_service.py
# Matching workflow: tutoring requests, tutor applications, connections
#
# Every function takes an open Session plus the caller's profile id and
# either returns ORM rows or raises an app.core.exceptions error.
# All business rules are checked before the first write.
#
#   create_request()         student posts a need            → OPEN
#   apply_to_request()       tutor bids on an OPEN request   → PENDING
#   accept_application()     one transaction, four writes    → MATCHED + connection
#   reject_application()     single write                    → REJECTED
#   update_request_status()  close / reopen
#   delete_request()         request + its applications, connections detached

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import Conflict, Forbidden, Internal, InvalidInput, NotFound
from app.models.profile import StudentProfile, TutorProfile
from app.models.tutoring_request import (
    ApplicationStatus,
    ConnectionRequest,
    ConnectionStatus,
    RequestStatus,
    TutorApplication,
    TutoringRequest,
)
from app.services import email_service

logger = logging.getLogger("freetutor.matching")

# Statuses a student may set directly; MATCHED is only reachable via accept
STUDENT_SETTABLE_STATUSES = {RequestStatus.OPEN, RequestStatus.CLOSED}

# tutoring_requests.title column width
TITLE_MAX_LENGTH = 255


@dataclass(frozen=True)
class TutorContact:
    """Disclosed to the student only when they accept this tutor."""
    id: UUID
    full_name: str
    phone: Optional[str]
    education_level: str


@dataclass(frozen=True)
class AcceptResult:
    application: TutorApplication
    connection: ConnectionRequest
    tutor_contact: TutorContact


# ── Helpers ───────────────────────────────────────────────────────────────────

def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_subjects(subjects: Optional[Sequence[str]]) -> List[str]:
    return [s.strip() for s in (subjects or []) if s and s.strip()]


def get_student_profile(db: Session, student_id: Optional[UUID]) -> StudentProfile:
    profile = None
    if student_id is not None:
        profile = db.query(StudentProfile).filter(StudentProfile.id == student_id).first()
    if not profile:
        raise NotFound("Student profile not found.")
    return profile


def get_tutor_profile(db: Session, tutor_id: Optional[UUID]) -> TutorProfile:
    profile = None
    if tutor_id is not None:
        profile = db.query(TutorProfile).filter(TutorProfile.id == tutor_id).first()
    if not profile:
        raise NotFound("Tutor profile not found.")
    return profile


def _get_owned_request(db: Session, student: StudentProfile, request_id: UUID) -> TutoringRequest:
    """Not-found and not-owned are indistinguishable to the caller."""
    req = db.query(TutoringRequest).filter(TutoringRequest.id == request_id).first()
    if not req or req.student_id != student.id:
        raise NotFound("Request not found or unauthorized.")
    return req


def _get_owned_application(
    db: Session,
    student: StudentProfile,
    application_id: UUID,
) -> TutorApplication:
    application = db.query(TutorApplication).filter(
        TutorApplication.id == application_id
    ).first()
    if not application:
        raise NotFound("Application not found.")
    if application.request.student_id != student.id:
        raise Forbidden("Unauthorized to modify this application.")
    return application


# ── Requests ──────────────────────────────────────────────────────────────────

def create_request(
    db: Session,
    student_id: Optional[UUID],
    title: Optional[str],
    subjects: Optional[Sequence[str]],
    description: Optional[str],
    preferred_schedule: Optional[Any] = None,
) -> TutoringRequest:
    """
    Post a new OPEN tutoring request.
    The student must be APPROVED; grade level is copied from their profile.
    """
    student = get_student_profile(db, student_id)
    if not student.is_approved:
        raise Forbidden("Your account must be approved before posting requests.")

    title = (title or "").strip()
    description = (description or "").strip()
    subjects = _clean_subjects(subjects)
    if not title or not subjects or not description:
        raise InvalidInput("Missing required fields: title, subjects and description are required.")
    if len(title) > TITLE_MAX_LENGTH:
        raise InvalidInput(f"Title must be at most {TITLE_MAX_LENGTH} characters.")

    req = TutoringRequest(
        student_id=student.id,
        title=title,
        subjects=subjects,
        grade_level=student.grade_level,
        description=description,
        preferred_schedule=preferred_schedule,
        status=RequestStatus.OPEN,
    )
    db.add(req)
    db.commit()
    db.refresh(req)

    logger.info(f"Request created: id={req.id} student={student.id} subjects={subjects}")
    return req


def browse_requests(
    db: Session,
    status: Optional[str] = None,
    subject: Optional[str] = None,
    grade_level: Optional[str] = None,
    limit: int = 50,
) -> List[Tuple[TutoringRequest, int]]:
    """
    Public listing of requests with their application counts, newest first.
    Defaults to OPEN requests.
    """
    try:
        status_filter = RequestStatus(status or RequestStatus.OPEN.value)
    except ValueError:
        raise InvalidInput("status must be one of OPEN, MATCHED, CLOSED.")

    query = db.query(TutoringRequest).filter(TutoringRequest.status == status_filter)

    if grade_level:
        query = query.filter(TutoringRequest.grade_level == grade_level)

    # ARRAY containment on PostgreSQL; the SQLite test engine stores JSON
    sql_subject_filter = subject and db.get_bind().dialect.name == "postgresql"
    if sql_subject_filter:
        query = query.filter(TutoringRequest.subjects.any(subject))

    query = query.order_by(TutoringRequest.created_at.desc())
    if subject and not sql_subject_filter:
        requests = [r for r in query.all() if subject in (r.subjects or [])][:limit]
    else:
        requests = query.limit(limit).all()

    counts = {}
    if requests:
        counts = dict(
            db.query(TutorApplication.request_id, func.count(TutorApplication.id))
            .filter(TutorApplication.request_id.in_([r.id for r in requests]))
            .group_by(TutorApplication.request_id)
            .all()
        )
    return [(r, counts.get(r.id, 0)) for r in requests]


def list_student_requests(db: Session, student_id: Optional[UUID]) -> List[TutoringRequest]:
    """A student's own requests with applications and the selected tutor loaded."""
    student = get_student_profile(db, student_id)
    return (
        db.query(TutoringRequest)
        .options(
            selectinload(TutoringRequest.applications).selectinload(TutorApplication.tutor),
            selectinload(TutoringRequest.selected_tutor),
        )
        .filter(TutoringRequest.student_id == student.id)
        .order_by(TutoringRequest.created_at.desc())
        .all()
    )


def update_request_status(
    db: Session,
    student_id: Optional[UUID],
    request_id: UUID,
    status: Optional[str],
) -> TutoringRequest:
    """
    Close or reopen a request. Pending applications are left as they are.
    MATCHED requests are terminal.
    """
    student = get_student_profile(db, student_id)
    req = _get_owned_request(db, student, request_id)

    try:
        target = RequestStatus(status)
    except ValueError:
        target = None
    if target not in STUDENT_SETTABLE_STATUSES:
        raise InvalidInput("Status must be OPEN or CLOSED.")

    if req.status == RequestStatus.MATCHED:
        raise Conflict("A matched request can not be closed or reopened.")

    req.status = target
    req.updated_at = _now()
    db.commit()
    db.refresh(req)

    logger.info(f"Request {req.id} set to {target.value} by student {student.id}")
    return req


def delete_request(db: Session, student_id: Optional[UUID], request_id: UUID) -> None:
    """
    Delete a request in one transaction:
      1. delete every application on it
      2. detach connections that originated from it (tutoring_request_id → NULL)
      3. delete the request row
    """
    student = get_student_profile(db, student_id)
    req = _get_owned_request(db, student, request_id)

    try:
        removed = db.query(TutorApplication).filter(
            TutorApplication.request_id == req.id
        ).delete()
        detached = db.query(ConnectionRequest).filter(
            ConnectionRequest.tutoring_request_id == req.id
        ).update({ConnectionRequest.tutoring_request_id: None})
        db.delete(req)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Deleting request {request_id} failed: {e}")
        raise Internal("Failed to delete request.") from e

    logger.info(
        f"Request {request_id} deleted by student {student.id} "
        f"({removed} applications removed, {detached} connections detached)"
    )


# ── Applications ──────────────────────────────────────────────────────────────

def apply_to_request(
    db: Session,
    tutor_id: Optional[UUID],
    request_id: Optional[UUID],
    message: Optional[str],
    proposed_schedule: Optional[Any] = None,
) -> TutorApplication:
    """
    Submit a PENDING application. Checked in order:
    request exists → request OPEN → tutor has not applied before.
    """
    tutor = get_tutor_profile(db, tutor_id)
    if not tutor.is_approved:
        raise Forbidden("Your account must be approved before applying to requests.")

    message = (message or "").strip()
    if not request_id or not message:
        raise InvalidInput("Missing required fields: request_id and message are required.")

    req = db.query(TutoringRequest).filter(TutoringRequest.id == request_id).first()
    if not req:
        raise NotFound("Tutoring request not found.")

    if req.status != RequestStatus.OPEN:
        raise Conflict("This request is no longer accepting applications.")

    existing = db.query(TutorApplication).filter(
        and_(
            TutorApplication.request_id == req.id,
            TutorApplication.tutor_id == tutor.id,
        )
    ).first()
    if existing:
        raise Conflict("You have already applied to this request.")

    application = TutorApplication(
        request_id=req.id,
        tutor_id=tutor.id,
        message=message,
        proposed_schedule=proposed_schedule,
        status=ApplicationStatus.PENDING,
    )
    db.add(application)
    try:
        db.commit()
    except IntegrityError as e:
        # A concurrent submit won the unique (request_id, tutor_id) race
        db.rollback()
        raise Conflict("You have already applied to this request.") from e
    db.refresh(application)

    logger.info(f"Application {application.id}: tutor={tutor.id} request={req.id}")
    return application


def list_tutor_applications(db: Session, tutor_id: Optional[UUID]) -> List[TutorApplication]:
    tutor = get_tutor_profile(db, tutor_id)
    return (
        db.query(TutorApplication)
        .options(selectinload(TutorApplication.request))
        .filter(TutorApplication.tutor_id == tutor.id)
        .order_by(TutorApplication.created_at.desc())
        .all()
    )


def _create_connection(
    db: Session,
    student_id: UUID,
    application: TutorApplication,
    request_title: str,
) -> ConnectionRequest:
    connection = ConnectionRequest(
        student_id=student_id,
        tutor_id=application.tutor_id,
        tutoring_request_id=application.request_id,
        status=ConnectionStatus.ACCEPTED,
        notes=f"Matched through tutoring request: {request_title}",
    )
    db.add(connection)
    db.flush()
    return connection


def accept_application(
    db: Session,
    student_id: Optional[UUID],
    application_id: UUID,
) -> AcceptResult:
    """
    Accept one application. Executed as a single transaction:
      1. application            → ACCEPTED
      2. other PENDING siblings → REJECTED
      3. request                → MATCHED, selected_tutor_id = tutor
                                  (conditional on the row still being OPEN)
      4. ConnectionRequest inserted with status ACCEPTED
    Any failure rolls all four back.
    """
    student = get_student_profile(db, student_id)
    application = _get_owned_application(db, student, application_id)

    # Re-read the parent row under lock where the engine supports it
    req = (
        db.query(TutoringRequest)
        .filter(TutoringRequest.id == application.request_id)
        .with_for_update()
        .populate_existing()
        .one()
    )

    if application.status != ApplicationStatus.PENDING:
        raise Conflict(f"Cannot accept an application with status '{application.status.value}'.")
    if req.status != RequestStatus.OPEN:
        raise Conflict("This request is no longer accepting applications.")

    tutor = application.tutor
    now = _now()
    try:
        application.status = ApplicationStatus.ACCEPTED
        application.updated_at = now
        db.flush()

        rejected = db.query(TutorApplication).filter(
            and_(
                TutorApplication.request_id == req.id,
                TutorApplication.id != application.id,
                TutorApplication.status == ApplicationStatus.PENDING,
            )
        ).update(
            {
                TutorApplication.status: ApplicationStatus.REJECTED,
                TutorApplication.updated_at: now,
            },
            synchronize_session="evaluate",
        )

        matched = db.query(TutoringRequest).filter(
            and_(
                TutoringRequest.id == req.id,
                TutoringRequest.status == RequestStatus.OPEN,
            )
        ).update(
            {
                TutoringRequest.status: RequestStatus.MATCHED,
                TutoringRequest.selected_tutor_id: application.tutor_id,
                TutoringRequest.updated_at: now,
            },
            synchronize_session="evaluate",
        )
        if matched != 1:
            raise Conflict("This request has already been matched.")

        connection = _create_connection(db, student.id, application, req.title)
        db.commit()
    except Conflict:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Accepting application {application_id} failed, rolled back: {e}")
        raise Internal("Failed to accept application.") from e
    except Exception:
        db.rollback()
        raise

    db.refresh(application)
    db.refresh(req)
    logger.info(
        f"Request {req.id} matched: application={application.id} tutor={tutor.id} "
        f"({rejected} sibling applications rejected)"
    )

    if tutor.user is not None:
        email_service.dispatch(
            email_service.tutor_matched_email(tutor.full_name, tutor.user.email, req.title)
        )

    return AcceptResult(
        application=application,
        connection=connection,
        tutor_contact=TutorContact(
            id=tutor.id,
            full_name=tutor.full_name,
            phone=tutor.phone,
            education_level=tutor.education_level,
        ),
    )


def reject_application(
    db: Session,
    student_id: Optional[UUID],
    application_id: UUID,
) -> TutorApplication:
    """Reject a single application. No effect on siblings or the request."""
    student = get_student_profile(db, student_id)
    application = _get_owned_application(db, student, application_id)

    if application.status != ApplicationStatus.PENDING:
        raise Conflict(f"Cannot reject an application with status '{application.status.value}'.")

    application.status = ApplicationStatus.REJECTED
    application.updated_at = _now()
    db.commit()
    db.refresh(application)

    logger.info(f"Application {application.id} rejected by student {student.id}")
    return application


# ── Connections ───────────────────────────────────────────────────────────────

def list_connections(
    db: Session,
    student_id: Optional[UUID] = None,
    tutor_id: Optional[UUID] = None,
) -> List[ConnectionRequest]:
    """Connections on the student side or the tutor side, newest first."""
    query = db.query(ConnectionRequest).options(
        selectinload(ConnectionRequest.student),
        selectinload(ConnectionRequest.tutor),
    )
    if student_id is not None:
        query = query.filter(ConnectionRequest.student_id == student_id)
    elif tutor_id is not None:
        query = query.filter(ConnectionRequest.tutor_id == tutor_id)
    else:
        return []
    return query.order_by(ConnectionRequest.created_at.desc()).all()


def respond_to_connection(
    db: Session,
    tutor_id: Optional[UUID],
    connection_id: UUID,
    accept: bool,
) -> ConnectionRequest:
    """The tutor on a connection accepts or declines it."""
    tutor = get_tutor_profile(db, tutor_id)
    connection = db.query(ConnectionRequest).filter(
        ConnectionRequest.id == connection_id
    ).first()
    if not connection:
        raise NotFound("Connection not found.")
    if connection.tutor_id != tutor.id:
        raise Forbidden("Unauthorized to modify this connection.")

    connection.status = ConnectionStatus.ACCEPTED if accept else ConnectionStatus.DECLINED
    connection.updated_at = _now()
    db.commit()
    db.refresh(connection)

    logger.info(f"Connection {connection.id} set to {connection.status.value} by tutor {tutor.id}")
    return connection
