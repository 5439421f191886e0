# app/models/profile.py
# Role profiles: StudentProfile and TutorProfile
#
# Both carry the same verification gate:
#   PENDING  → documents submitted, awaiting admin review
#   APPROVED → may post requests (student) / apply to requests (tutor)
#   REJECTED → admin declined, notes explain why; profile may re-upload
#
# verification_documents holds object-storage keys, never public URLs.

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Enum, ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.base_class import Base
from app.db.types import JSONData, StringList


class VerificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class StudentProfile(Base):
    """
    Extended profile for users with role=STUDENT.
    Phone and special-needs description are private: never shown to tutors.
    """
    __tablename__ = "student_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # ── Public Fields ─────────────────────────────────────────────────────────
    full_name = Column(String(255), nullable=False)
    grade_level = Column(String(50), nullable=False)           # "中學 S3"
    subjects_needed = Column(StringList, nullable=False, default=list)

    # ── Private Fields ────────────────────────────────────────────────────────
    phone = Column(String(20), nullable=True)
    special_needs_description = Column(Text, nullable=True)

    # ── Verification ──────────────────────────────────────────────────────────
    verification_documents = Column(StringList, nullable=False, default=list)
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status_enum"),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )
    verification_notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="student_profile")
    tutoring_requests = relationship(
        "TutoringRequest", back_populates="student", passive_deletes=True
    )

    @property
    def is_approved(self) -> bool:
        return self.verification_status == VerificationStatus.APPROVED

    def __repr__(self) -> str:
        return f"<StudentProfile user={self.user_id} status={self.verification_status}>"


class TutorProfile(Base):
    """
    Extended profile for users with role=TUTOR.
    Phone is only disclosed to a student at the moment they accept
    this tutor's application.
    """
    __tablename__ = "tutor_profiles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    # ── Public Profile ────────────────────────────────────────────────────────
    full_name = Column(String(255), nullable=False)
    education_level = Column(String(100), nullable=False)      # "學士學位"
    subjects_taught = Column(StringList, nullable=False, default=list)
    bio = Column(Text, nullable=True)
    # {"monday": [{"start": "18:00", "end": "20:00"}], ...}
    availability = Column(JSONData, nullable=True)
    # [{"exam_type": "HKDSE", "subject": "數學", "grade": "5*"}]
    exam_results = Column(JSONData, nullable=True)

    # ── Private Fields ────────────────────────────────────────────────────────
    phone = Column(String(20), nullable=True)

    # ── Verification ──────────────────────────────────────────────────────────
    verification_documents = Column(StringList, nullable=False, default=list)
    verification_status = Column(
        Enum(VerificationStatus, name="verification_status_enum"),
        nullable=False,
        default=VerificationStatus.PENDING,
        index=True,
    )
    verification_notes = Column(Text, nullable=True)

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # ── Relationships ─────────────────────────────────────────────────────────
    user = relationship("User", back_populates="tutor_profile")
    applications = relationship(
        "TutorApplication", back_populates="tutor", passive_deletes=True
    )

    @property
    def is_approved(self) -> bool:
        return self.verification_status == VerificationStatus.APPROVED

    def __repr__(self) -> str:
        return f"<TutorProfile user={self.user_id} status={self.verification_status}>"
