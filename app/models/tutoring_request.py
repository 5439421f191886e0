# app/models/tutoring_request.py
# Matching flow: Student posts request → Tutors apply → Student accepts one
#
# Flow:
#   1. Student posts a request            → POST  /requests            (OPEN)
#   2. Tutors browse and apply            → POST  /applications        (PENDING)
#   3. Student accepts one application    → PATCH /applications/{id}
#        accepted app    → ACCEPTED
#        sibling apps    → REJECTED
#        request         → MATCHED (selected_tutor_id set)
#        ConnectionRequest created (ACCEPTED)
#   4. Student may close / reopen an unmatched request at any time
#
# Invariant: selected_tutor_id is set iff status == MATCHED

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.db.types import JSONData, StringList


class RequestStatus(str, enum.Enum):
    OPEN = "OPEN"          # Browsable, accepting applications
    MATCHED = "MATCHED"    # An application was accepted (terminal)
    CLOSED = "CLOSED"      # Hidden by the student, may be reopened


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class ConnectionStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class TutoringRequest(Base):
    """
    A student's posted need for tutoring in one or more subjects.
    grade_level is copied from the student profile at creation time.
    """
    __tablename__ = "tutoring_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # ── Request Details ───────────────────────────────────────────────────────
    title = Column(String(255), nullable=False)
    subjects = Column(StringList, nullable=False)
    grade_level = Column(String(50), nullable=False, index=True)
    description = Column(Text, nullable=False)
    preferred_schedule = Column(JSONData, nullable=True)

    # ── Status ────────────────────────────────────────────────────────────────
    status = Column(
        Enum(RequestStatus, name="request_status_enum"),
        nullable=False,
        default=RequestStatus.OPEN,
        index=True,
    )
    selected_tutor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tutor_profiles.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ── Timestamps ────────────────────────────────────────────────────────────
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    # Applications are removed explicitly by the delete operation;
    # passive_deletes="all" stops the ORM from touching them on its own.
    student = relationship("StudentProfile", back_populates="tutoring_requests")
    applications = relationship(
        "TutorApplication",
        back_populates="request",
        passive_deletes="all",
        order_by="TutorApplication.created_at.desc()",
    )
    selected_tutor = relationship("TutorProfile", foreign_keys=[selected_tutor_id])

    def __repr__(self) -> str:
        return f"<TutoringRequest id={self.id} student={self.student_id} status={self.status}>"


class TutorApplication(Base):
    """
    A tutor's offer to fulfil a specific tutoring request.
    One application per (request, tutor). Never updated after ACCEPTED/REJECTED.
    """
    __tablename__ = "tutor_applications"
    __table_args__ = (
        UniqueConstraint("request_id", "tutor_id", name="uq_tutor_applications_request_tutor"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tutoring_requests.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tutor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tutor_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    message = Column(Text, nullable=False)
    proposed_schedule = Column(JSONData, nullable=True)

    status = Column(
        Enum(ApplicationStatus, name="application_status_enum"),
        nullable=False,
        default=ApplicationStatus.PENDING,
        index=True,
    )

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    request = relationship("TutoringRequest", back_populates="applications")
    tutor = relationship("TutorProfile", back_populates="applications")

    def __repr__(self) -> str:
        return (
            f"<TutorApplication id={self.id} request={self.request_id} "
            f"tutor={self.tutor_id} status={self.status}>"
        )


class ConnectionRequest(Base):
    """
    The realised student ↔ tutor pairing.
    Created exactly once per accepted application, with status ACCEPTED.
    Survives deletion of its originating request (tutoring_request_id → NULL).
    """
    __tablename__ = "connection_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    student_id = Column(
        UUID(as_uuid=True),
        ForeignKey("student_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tutor_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tutor_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tutoring_request_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tutoring_requests.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    status = Column(
        Enum(ConnectionStatus, name="connection_status_enum"),
        nullable=False,
        default=ConnectionStatus.PENDING,
        index=True,
    )
    notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    student = relationship("StudentProfile")
    tutor = relationship("TutorProfile")

    def __repr__(self) -> str:
        return (
            f"<ConnectionRequest student={self.student_id} "
            f"tutor={self.tutor_id} status={self.status}>"
        )
