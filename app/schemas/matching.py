# app/schemas/matching.py
# Pydantic request/response models for requests, applications and connections
#
# Input models are deliberately lenient about empty strings: emptiness is
# checked by matching_service after the approval gate, so an unapproved
# caller always gets 403 before 400.

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, field_validator

from app.models.tutoring_request import ApplicationStatus, ConnectionStatus, RequestStatus


class MessageResponse(BaseModel):
    message: str


# ── Requests (input) ──────────────────────────────────────────────────────────

class TutoringRequestCreate(BaseModel):
    """Student posts this to open a new tutoring request."""
    title: Optional[str] = None
    subjects: Optional[List[str]] = None
    description: Optional[str] = None
    preferred_schedule: Optional[Any] = None


class TutoringRequestStatusUpdate(BaseModel):
    """Close (CLOSED) or reopen (OPEN) a request."""
    status: str

    @field_validator("status")
    @classmethod
    def normalise_status(cls, v: str) -> str:
        return v.strip().upper()


class ApplicationCreate(BaseModel):
    request_id: Optional[UUID] = None
    message: Optional[str] = None
    proposed_schedule: Optional[Any] = None


class ApplicationAction(BaseModel):
    action: str    # accept | reject

    @field_validator("action")
    @classmethod
    def valid_action(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("accept", "reject"):
            raise ValueError("Action must be 'accept' or 'reject'")
        return v


class ConnectionAction(BaseModel):
    action: str    # accept | decline

    @field_validator("action")
    @classmethod
    def valid_action(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("accept", "decline"):
            raise ValueError("Action must be 'accept' or 'decline'")
        return v


# ── Embedded tutor views ──────────────────────────────────────────────────────

class TutorPublicInfo(BaseModel):
    """What a student sees about an applicant. No phone."""
    id: UUID
    full_name: str
    education_level: str
    subjects_taught: List[str] = []
    bio: Optional[str] = None
    exam_results: Optional[Any] = None

    model_config = {"from_attributes": True}


class TutorContact(BaseModel):
    """Disclosed only once the student has accepted this tutor."""
    id: UUID
    full_name: str
    phone: Optional[str] = None
    education_level: str

    model_config = {"from_attributes": True}


# ── Requests (output) ─────────────────────────────────────────────────────────

class TutoringRequestResponse(BaseModel):
    id: UUID
    student_id: UUID
    title: str
    subjects: List[str]
    grade_level: str
    description: str
    preferred_schedule: Optional[Any] = None
    status: RequestStatus
    selected_tutor_id: Optional[UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class BrowseRequestItem(BaseModel):
    """Public listing item. Never carries the student's name or phone."""
    id: UUID
    title: str
    subjects: List[str]
    grade_level: str
    description: str
    preferred_schedule: Optional[Any] = None
    status: RequestStatus
    application_count: int
    created_at: datetime


class BrowseRequestsResponse(BaseModel):
    requests: List[BrowseRequestItem]


# ── Applications (output) ─────────────────────────────────────────────────────

class ApplicationResponse(BaseModel):
    id: UUID
    request_id: UUID
    tutor_id: UUID
    message: str
    proposed_schedule: Optional[Any] = None
    status: ApplicationStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReceivedApplication(ApplicationResponse):
    """An application as the requesting student sees it."""
    tutor: TutorPublicInfo


class OwnTutoringRequest(TutoringRequestResponse):
    applications: List[ReceivedApplication] = []
    selected_tutor: Optional[TutorContact] = None


class OwnRequestsResponse(BaseModel):
    requests: List[OwnTutoringRequest]


class RequestSummary(BaseModel):
    id: UUID
    title: str
    subjects: List[str]
    grade_level: str
    status: RequestStatus

    model_config = {"from_attributes": True}


class SubmittedApplication(ApplicationResponse):
    """An application as the applying tutor sees it."""
    request: Optional[RequestSummary] = None


class OwnApplicationsResponse(BaseModel):
    applications: List[SubmittedApplication]


# ── Connections ───────────────────────────────────────────────────────────────

class ConnectionResponse(BaseModel):
    id: UUID
    student_id: UUID
    tutor_id: UUID
    tutoring_request_id: Optional[UUID] = None
    status: ConnectionStatus
    notes: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ConnectionListItem(ConnectionResponse):
    counterparty_name: str


class ConnectionListResponse(BaseModel):
    connections: List[ConnectionListItem]


class ApplicationReviewResponse(BaseModel):
    """Result of PATCH /applications/{id}. Connection and contact only on accept."""
    application: ApplicationResponse
    connection: Optional[ConnectionResponse] = None
    tutor_contact: Optional[TutorContact] = None
