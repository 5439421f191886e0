"""
Matching workflow: requests, applications, accept/reject, close/reopen, delete.
Exercised directly against the service layer.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.core.exceptions import Conflict, Forbidden, Internal, InvalidInput, NotFound
from app.models.tutoring_request import (
    ApplicationStatus,
    ConnectionRequest,
    ConnectionStatus,
    RequestStatus,
    TutorApplication,
    TutoringRequest,
)
from app.services import matching_service


def _statuses(db, req):
    rows = db.query(TutorApplication).filter(TutorApplication.request_id == req.id).all()
    return sorted(a.status.value for a in rows)


# ── Create request ────────────────────────────────────────────────────────────

class TestCreateRequest:

    def test_approved_student_creates_open_request(self, db, make_student):
        student = make_student(grade_level="小學 P5")

        req = matching_service.create_request(
            db, student.id, "  英文閱讀  ", [" 英文 ", "", "中文"], "需要耐心的導師",
            preferred_schedule={"saturday": ["10:00-12:00"]},
        )

        assert req.status == RequestStatus.OPEN
        assert req.title == "英文閱讀"
        assert req.subjects == ["英文", "中文"]
        assert req.grade_level == "小學 P5"
        assert req.selected_tutor_id is None
        assert req.preferred_schedule == {"saturday": ["10:00-12:00"]}

    def test_unapproved_student_is_forbidden_and_nothing_is_written(self, db, make_student):
        student = make_student(approved=False)

        with pytest.raises(Forbidden):
            matching_service.create_request(db, student.id, "數學", ["數學"], "描述")

        assert db.query(TutoringRequest).count() == 0

    def test_approval_is_checked_before_fields(self, db, make_student):
        student = make_student(approved=False)

        with pytest.raises(Forbidden):
            matching_service.create_request(db, student.id, "", [], "")

    @pytest.mark.parametrize("title,subjects,description", [
        ("", ["數學"], "描述"),
        ("   ", ["數學"], "描述"),
        ("數學", [], "描述"),
        ("數學", ["  "], "描述"),
        ("數學", ["數學"], ""),
        (None, None, None),
    ])
    def test_missing_fields_are_invalid(self, db, make_student, title, subjects, description):
        student = make_student()

        with pytest.raises(InvalidInput):
            matching_service.create_request(db, student.id, title, subjects, description)

        assert db.query(TutoringRequest).count() == 0

    def test_title_longer_than_column_is_invalid(self, db, make_student):
        student = make_student()

        with pytest.raises(InvalidInput, match="at most 255"):
            matching_service.create_request(db, student.id, "數" * 256, ["數學"], "描述")

        assert db.query(TutoringRequest).count() == 0

    def test_title_at_column_width_is_accepted(self, db, make_student):
        req = matching_service.create_request(db, make_student().id, "數" * 255, ["數學"], "描述")

        assert len(req.title) == 255

    def test_long_title_from_unapproved_student_is_still_forbidden(self, db, make_student):
        student = make_student(approved=False)

        with pytest.raises(Forbidden):
            matching_service.create_request(db, student.id, "數" * 256, ["數學"], "描述")

    def test_unknown_student_profile(self, db):
        with pytest.raises(NotFound):
            matching_service.create_request(db, None, "數學", ["數學"], "描述")


# ── Apply ─────────────────────────────────────────────────────────────────────

class TestApply:

    def test_tutor_applies_to_open_request(self, db, make_student, make_tutor, make_request):
        req = make_request(make_student())
        tutor = make_tutor()

        application = matching_service.apply_to_request(db, tutor.id, req.id, "  我可以幫忙  ")

        assert application.status == ApplicationStatus.PENDING
        assert application.message == "我可以幫忙"
        assert application.request_id == req.id
        assert application.tutor_id == tutor.id

    def test_duplicate_application_is_conflict(self, db, make_student, make_tutor, make_request):
        req = make_request(make_student())
        tutor = make_tutor()
        matching_service.apply_to_request(db, tutor.id, req.id, "第一次")

        with pytest.raises(Conflict):
            matching_service.apply_to_request(db, tutor.id, req.id, "第二次")

        assert db.query(TutorApplication).count() == 1

    @pytest.mark.parametrize("status", [RequestStatus.CLOSED, RequestStatus.MATCHED])
    def test_request_not_open_is_conflict(self, db, make_student, make_tutor, make_request, status):
        other = make_tutor()
        req = make_request(
            make_student(),
            status=status,
            selected_tutor_id=other.id if status == RequestStatus.MATCHED else None,
        )
        tutor = make_tutor()

        with pytest.raises(Conflict, match="no longer accepting"):
            matching_service.apply_to_request(db, tutor.id, req.id, "你好")

        assert db.query(TutorApplication).count() == 0

    def test_unknown_request_is_not_found(self, db, make_tutor):
        tutor = make_tutor()

        with pytest.raises(NotFound):
            matching_service.apply_to_request(db, tutor.id, uuid.uuid4(), "你好")

    def test_unapproved_tutor_is_forbidden(self, db, make_student, make_tutor, make_request):
        req = make_request(make_student())
        tutor = make_tutor(approved=False)

        with pytest.raises(Forbidden):
            matching_service.apply_to_request(db, tutor.id, req.id, "你好")

        assert db.query(TutorApplication).count() == 0

    def test_empty_message_is_invalid(self, db, make_student, make_tutor, make_request):
        req = make_request(make_student())
        tutor = make_tutor()

        with pytest.raises(InvalidInput):
            matching_service.apply_to_request(db, tutor.id, req.id, "   ")


# ── Accept ────────────────────────────────────────────────────────────────────

class TestAccept:

    def test_accept_matches_request_and_rejects_siblings(
        self, db, make_student, make_tutor, make_request, sent_emails
    ):
        student = make_student()
        req = make_request(student, title="DSE 數學")
        tutors = [make_tutor(full_name=f"導師{i}", phone=f"9000000{i}") for i in range(3)]
        apps = [matching_service.apply_to_request(db, t.id, req.id, "申請") for t in tutors]

        result = matching_service.accept_application(db, student.id, apps[1].id)

        assert result.application.status == ApplicationStatus.ACCEPTED
        assert _statuses(db, req) == ["ACCEPTED", "REJECTED", "REJECTED"]

        db.refresh(req)
        assert req.status == RequestStatus.MATCHED
        assert req.selected_tutor_id == tutors[1].id

        assert result.connection.status == ConnectionStatus.ACCEPTED
        assert result.connection.student_id == student.id
        assert result.connection.tutor_id == tutors[1].id
        assert result.connection.tutoring_request_id == req.id
        assert result.connection.notes == "Matched through tutoring request: DSE 數學"
        assert db.query(ConnectionRequest).count() == 1

        assert result.tutor_contact.full_name == "導師1"
        assert result.tutor_contact.phone == "90000001"
        assert result.tutor_contact.education_level == "學士學位"

        assert [e.to for e in sent_emails] == [tutors[1].user.email]

    def test_at_most_one_accepted_per_request(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        first = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        second = matching_service.apply_to_request(db, make_tutor().id, req.id, "b")
        matching_service.accept_application(db, student.id, first.id)

        with pytest.raises(Conflict):
            matching_service.accept_application(db, student.id, second.id)

        assert _statuses(db, req) == ["ACCEPTED", "REJECTED"]
        assert db.query(ConnectionRequest).count() == 1

    def test_accepting_twice_is_conflict(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        matching_service.accept_application(db, student.id, application.id)

        with pytest.raises(Conflict):
            matching_service.accept_application(db, student.id, application.id)

        assert db.query(ConnectionRequest).count() == 1

    def test_accept_on_closed_request_is_conflict(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        matching_service.update_request_status(db, student.id, req.id, "CLOSED")

        with pytest.raises(Conflict):
            matching_service.accept_application(db, student.id, application.id)

        db.refresh(application)
        assert application.status == ApplicationStatus.PENDING

    def test_request_matched_concurrently_is_conflict(
        self, db, make_student, make_tutor, make_request
    ):
        student = make_student()
        req = make_request(student)
        winner = make_tutor()
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")

        # Another transaction matched the row behind this session's back
        db.execute(
            update(TutoringRequest)
            .where(TutoringRequest.id == req.id)
            .values(status=RequestStatus.MATCHED, selected_tutor_id=winner.id)
        )
        db.commit()

        with pytest.raises(Conflict):
            matching_service.accept_application(db, student.id, application.id)

        db.refresh(application)
        assert application.status == ApplicationStatus.PENDING
        assert db.query(ConnectionRequest).count() == 0

    def test_non_owner_is_forbidden_and_rows_unchanged(
        self, db, make_student, make_tutor, make_request
    ):
        owner = make_student()
        intruder = make_student()
        req = make_request(owner)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")

        with pytest.raises(Forbidden):
            matching_service.accept_application(db, intruder.id, application.id)

        db.refresh(req)
        assert req.status == RequestStatus.OPEN
        assert _statuses(db, req) == ["PENDING"]

    def test_unknown_application_is_not_found(self, db, make_student):
        student = make_student()

        with pytest.raises(NotFound):
            matching_service.accept_application(db, student.id, uuid.uuid4())

    def test_failure_inside_transaction_rolls_everything_back(
        self, db, make_student, make_tutor, make_request, monkeypatch
    ):
        student = make_student()
        req = make_request(student)
        apps = [matching_service.apply_to_request(db, make_tutor().id, req.id, "a") for _ in range(2)]

        def broken_insert(*args, **kwargs):
            raise IntegrityError("INSERT INTO connection_requests", {}, Exception("boom"))

        monkeypatch.setattr(matching_service, "_create_connection", broken_insert)

        with pytest.raises(Internal):
            matching_service.accept_application(db, student.id, apps[0].id)

        req = db.query(TutoringRequest).filter(TutoringRequest.id == req.id).one()
        assert req.status == RequestStatus.OPEN
        assert req.selected_tutor_id is None
        assert _statuses(db, req) == ["PENDING", "PENDING"]
        assert db.query(ConnectionRequest).count() == 0

    def test_non_database_failure_also_rolls_back(
        self, db, make_student, make_tutor, make_request, monkeypatch
    ):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")

        def broken_insert(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(matching_service, "_create_connection", broken_insert)

        with pytest.raises(RuntimeError):
            matching_service.accept_application(db, student.id, application.id)

        assert _statuses(db, req) == ["PENDING"]
        req = db.query(TutoringRequest).filter(TutoringRequest.id == req.id).one()
        assert req.status == RequestStatus.OPEN


# ── Reject ────────────────────────────────────────────────────────────────────

class TestReject:

    def test_reject_touches_only_that_application(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        first = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        matching_service.apply_to_request(db, make_tutor().id, req.id, "b")

        rejected = matching_service.reject_application(db, student.id, first.id)

        assert rejected.status == ApplicationStatus.REJECTED
        assert _statuses(db, req) == ["PENDING", "REJECTED"]
        db.refresh(req)
        assert req.status == RequestStatus.OPEN

    def test_rejecting_a_terminal_application_is_conflict(
        self, db, make_student, make_tutor, make_request
    ):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        matching_service.accept_application(db, student.id, application.id)

        with pytest.raises(Conflict):
            matching_service.reject_application(db, student.id, application.id)

        db.refresh(application)
        assert application.status == ApplicationStatus.ACCEPTED

    def test_non_owner_reject_is_forbidden(self, db, make_student, make_tutor, make_request):
        req = make_request(make_student())
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")

        with pytest.raises(Forbidden):
            matching_service.reject_application(db, make_student().id, application.id)

        db.refresh(application)
        assert application.status == ApplicationStatus.PENDING


# ── Close / reopen ────────────────────────────────────────────────────────────

class TestRequestStatus:

    def test_close_then_reopen(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        matching_service.apply_to_request(db, make_tutor().id, req.id, "a")

        closed = matching_service.update_request_status(db, student.id, req.id, "CLOSED")
        assert closed.status == RequestStatus.CLOSED
        # Pending applications are left alone
        assert _statuses(db, req) == ["PENDING"]

        reopened = matching_service.update_request_status(db, student.id, req.id, "OPEN")
        assert reopened.status == RequestStatus.OPEN

    def test_matched_request_cannot_be_closed(self, db, make_student, make_tutor, make_request):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        matching_service.accept_application(db, student.id, application.id)

        with pytest.raises(Conflict):
            matching_service.update_request_status(db, student.id, req.id, "CLOSED")

        db.refresh(req)
        assert req.status == RequestStatus.MATCHED
        assert req.selected_tutor_id is not None

    @pytest.mark.parametrize("status", ["MATCHED", "DONE", "", None])
    def test_only_open_or_closed_can_be_set(self, db, make_student, make_request, status):
        student = make_student()
        req = make_request(student)

        with pytest.raises(InvalidInput):
            matching_service.update_request_status(db, student.id, req.id, status)

        db.refresh(req)
        assert req.status == RequestStatus.OPEN

    def test_other_students_request_is_not_found(self, db, make_student, make_request):
        req = make_request(make_student())

        with pytest.raises(NotFound):
            matching_service.update_request_status(db, make_student().id, req.id, "CLOSED")


# ── Delete ────────────────────────────────────────────────────────────────────

class TestDelete:

    def test_delete_removes_request_and_applications(
        self, db, make_student, make_tutor, make_request
    ):
        student = make_student()
        req = make_request(student)
        for _ in range(3):
            matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        keep = make_request(student, title="另一個")
        matching_service.apply_to_request(db, make_tutor().id, keep.id, "b")
        req_id = req.id

        matching_service.delete_request(db, student.id, req_id)

        assert db.query(TutoringRequest).filter(TutoringRequest.id == req_id).count() == 0
        assert db.query(TutorApplication).filter(TutorApplication.request_id == req_id).count() == 0
        assert db.query(TutorApplication).count() == 1

    def test_connection_survives_with_null_request(
        self, db, make_student, make_tutor, make_request
    ):
        student = make_student()
        req = make_request(student)
        application = matching_service.apply_to_request(db, make_tutor().id, req.id, "a")
        result = matching_service.accept_application(db, student.id, application.id)

        matching_service.delete_request(db, student.id, req.id)

        connection = db.query(ConnectionRequest).filter(
            ConnectionRequest.id == result.connection.id
        ).one()
        assert connection.tutoring_request_id is None
        assert connection.status == ConnectionStatus.ACCEPTED

    def test_other_students_request_is_not_found(self, db, make_student, make_request):
        req = make_request(make_student())

        with pytest.raises(NotFound):
            matching_service.delete_request(db, make_student().id, req.id)

        assert db.query(TutoringRequest).count() == 1


# ── Browse ────────────────────────────────────────────────────────────────────

class TestBrowse:

    def _at(self, minutes_ago):
        return datetime.now(timezone.utc) - timedelta(minutes=minutes_ago)

    def test_defaults_to_open_newest_first_with_counts(
        self, db, make_student, make_tutor, make_request
    ):
        student = make_student()
        old = make_request(student, title="舊", created_at=self._at(30))
        new = make_request(student, title="新", created_at=self._at(5))
        make_request(student, title="已關閉", status=RequestStatus.CLOSED, created_at=self._at(1))
        matching_service.apply_to_request(db, make_tutor().id, old.id, "a")
        matching_service.apply_to_request(db, make_tutor().id, old.id, "b")

        rows = matching_service.browse_requests(db)

        assert [(r.title, count) for r, count in rows] == [("新", 0), ("舊", 2)]
        assert rows[0][0].id == new.id

    def test_status_subject_and_grade_filters(self, db, make_student, make_request):
        junior = make_student(grade_level="小學 P5")
        senior = make_student(grade_level="中學 S5")
        make_request(junior, title="P5 英文", subjects=["英文"])
        make_request(senior, title="S5 數學", subjects=["數學", "物理"])
        make_request(senior, title="S5 已關閉", subjects=["物理"], status=RequestStatus.CLOSED)

        physics = matching_service.browse_requests(db, subject="物理")
        assert [r.title for r, _ in physics] == ["S5 數學"]

        closed = matching_service.browse_requests(db, status="CLOSED")
        assert [r.title for r, _ in closed] == ["S5 已關閉"]

        p5 = matching_service.browse_requests(db, grade_level="小學 P5")
        assert [r.title for r, _ in p5] == ["P5 英文"]

    def test_limit(self, db, make_student, make_request):
        student = make_student()
        for i in range(5):
            make_request(student, title=f"r{i}", created_at=self._at(i))

        rows = matching_service.browse_requests(db, limit=3)

        assert [r.title for r, _ in rows] == ["r0", "r1", "r2"]

    def test_unknown_status_is_invalid(self, db):
        with pytest.raises(InvalidInput):
            matching_service.browse_requests(db, status="DONE")


# ── Connections ───────────────────────────────────────────────────────────────

class TestConnections:

    def _matched(self, db, make_student, make_tutor, make_request):
        student = make_student()
        tutor = make_tutor()
        req = make_request(student)
        application = matching_service.apply_to_request(db, tutor.id, req.id, "a")
        result = matching_service.accept_application(db, student.id, application.id)
        return student, tutor, result.connection

    def test_both_sides_see_the_connection(self, db, make_student, make_tutor, make_request):
        student, tutor, connection = self._matched(db, make_student, make_tutor, make_request)

        assert [c.id for c in matching_service.list_connections(db, student_id=student.id)] == [connection.id]
        assert [c.id for c in matching_service.list_connections(db, tutor_id=tutor.id)] == [connection.id]
        assert matching_service.list_connections(db) == []

    def test_tutor_declines(self, db, make_student, make_tutor, make_request):
        _, tutor, connection = self._matched(db, make_student, make_tutor, make_request)

        updated = matching_service.respond_to_connection(db, tutor.id, connection.id, accept=False)

        assert updated.status == ConnectionStatus.DECLINED

    def test_other_tutor_is_forbidden(self, db, make_student, make_tutor, make_request):
        _, _, connection = self._matched(db, make_student, make_tutor, make_request)

        with pytest.raises(Forbidden):
            matching_service.respond_to_connection(db, make_tutor().id, connection.id, accept=False)


# ── End to end ────────────────────────────────────────────────────────────────

def test_one_request_two_tutors_one_match(db, make_student, make_tutor):
    """S posts R; A and B apply; S accepts A."""
    s = make_student()
    a = make_tutor(full_name="A", phone="61111111")
    b = make_tutor(full_name="B", phone="62222222")

    r = matching_service.create_request(db, s.id, "數學", ["數學"], "每週一堂")
    app_a = matching_service.apply_to_request(db, a.id, r.id, "我是 A")
    app_b = matching_service.apply_to_request(db, b.id, r.id, "我是 B")

    result = matching_service.accept_application(db, s.id, app_a.id)

    db.refresh(r)
    db.refresh(app_b)
    assert r.status == RequestStatus.MATCHED
    assert r.selected_tutor_id == a.id
    assert result.application.status == ApplicationStatus.ACCEPTED
    assert app_b.status == ApplicationStatus.REJECTED

    connections = db.query(ConnectionRequest).all()
    assert len(connections) == 1
    assert (connections[0].student_id, connections[0].tutor_id, connections[0].status) == (
        s.id, a.id, ConnectionStatus.ACCEPTED,
    )
    assert result.tutor_contact.phone == "61111111"
