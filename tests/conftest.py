"""
FreeTutor API - Test Configuration and Fixtures

Every test gets a fresh in-memory SQLite schema. The FastAPI app's get_db
dependency is overridden to hand out the same session the fixtures write to.
SendGrid is never called (no API key) and GCS runs in dev mode (no bucket).
"""
import os
from typing import Callable, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set testing environment before anything from app is imported
os.environ["APP_ENV"] = "test"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-key-for-testing"
os.environ["SENDGRID_API_KEY"] = ""
os.environ["GCS_PRIVATE_BUCKET"] = ""

import app.db.base  # noqa: E402,F401
from app.core.security import create_access_token, hash_password  # noqa: E402
from app.db.base_class import Base  # noqa: E402
from app.db.session import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.profile import StudentProfile, TutorProfile, VerificationStatus  # noqa: E402
from app.models.tutoring_request import TutoringRequest  # noqa: E402
from app.models.user import User, UserRole  # noqa: E402
from app.services import email_service  # noqa: E402

TEST_PASSWORD = "testpassword123"

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    bind=test_engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Fresh schema and session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    """Test client with the database dependency pointed at the test session."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def sent_emails(monkeypatch) -> List[email_service.EmailTemplate]:
    """Capture every email handed to SendGrid instead of sending it."""
    outbox: List[email_service.EmailTemplate] = []

    def fake_send(template: email_service.EmailTemplate) -> bool:
        outbox.append(template)
        return True

    monkeypatch.setattr(email_service, "send_email", fake_send)
    return outbox


# ── Factories ─────────────────────────────────────────────────────────────────

@pytest.fixture
def make_user(db: Session, password_hash: str) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(role: UserRole, email: str = None) -> User:
        counter["n"] += 1
        user = User(
            email=email or f"{role.value.lower()}{counter['n']}@example.com",
            hashed_password=password_hash,
            role=role,
            is_active=True,
        )
        db.add(user)
        db.flush()
        return user

    return _make


@pytest.fixture
def make_student(db: Session, make_user) -> Callable[..., StudentProfile]:
    def _make(
        approved: bool = True,
        full_name: str = "陳小明",
        grade_level: str = "中學 S3",
        email: str = None,
    ) -> StudentProfile:
        user = make_user(UserRole.STUDENT, email=email)
        profile = StudentProfile(
            user_id=user.id,
            full_name=full_name,
            phone="91234567",
            grade_level=grade_level,
            subjects_needed=["數學"],
            special_needs_description="讀寫障礙",
            verification_status=(
                VerificationStatus.APPROVED if approved else VerificationStatus.PENDING
            ),
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_tutor(db: Session, make_user) -> Callable[..., TutorProfile]:
    def _make(
        approved: bool = True,
        full_name: str = "李老師",
        phone: str = "98765432",
        email: str = None,
    ) -> TutorProfile:
        user = make_user(UserRole.TUTOR, email=email)
        profile = TutorProfile(
            user_id=user.id,
            full_name=full_name,
            phone=phone,
            education_level="學士學位",
            subjects_taught=["數學", "物理"],
            bio="十年補習經驗",
            availability={"monday": [{"start": "18:00", "end": "20:00"}]},
            exam_results=[{"exam_type": "HKDSE", "subject": "數學", "grade": "5**"}],
            verification_status=(
                VerificationStatus.APPROVED if approved else VerificationStatus.PENDING
            ),
        )
        db.add(profile)
        db.commit()
        return profile

    return _make


@pytest.fixture
def make_admin(db: Session, make_user) -> Callable[..., User]:
    def _make(email: str = None) -> User:
        user = make_user(UserRole.ADMIN, email=email)
        db.commit()
        return user

    return _make


@pytest.fixture
def make_request(db: Session) -> Callable[..., TutoringRequest]:
    """Insert a request directly, bypassing the service checks."""
    def _make(student: StudentProfile, **overrides) -> TutoringRequest:
        fields = dict(
            student_id=student.id,
            title="需要數學補習",
            subjects=["數學"],
            grade_level=student.grade_level,
            description="每週兩堂，準備 DSE",
        )
        fields.update(overrides)
        req = TutoringRequest(**fields)
        db.add(req)
        db.commit()
        return req

    return _make


@pytest.fixture
def auth_headers() -> Callable[[object], Dict[str, str]]:
    """Bearer header for a User, StudentProfile or TutorProfile."""
    def _headers(who) -> Dict[str, str]:
        user = who.user if hasattr(who, "user_id") else who
        token = create_access_token(user.id, user.role.value)
        return {"Authorization": f"Bearer {token}"}

    return _headers
