from datetime import date, datetime, time, timedelta, timezone
from decimal import ROUND_HALF_UP, Decimal
from types import SimpleNamespace

import pytest

from tutorslot.crud.people import SqlStudentLookup
from tutorslot.crud.session import SqlSessionStore
from tutorslot.exceptions import (
    ConflictError,
    IntegrityError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from tutorslot.models.people import Student, Tutor
from tutorslot.models.session import SessionStatus, TutoringSession
from tutorslot.schemas.session import BookingRequest
from tutorslot.services.scheduling_service import SchedulingService
from tutorslot.utils.booking_lock import TutorLockRegistry

from conftest import NOW

START = datetime(2025, 1, 10, 10, 0)


def _candidate(tutor, student, start=START, minutes=60, **extra):
    return TutoringSession(
        tutor_id=tutor.id,
        student_id=student.id,
        subject=extra.pop("subject", "Mathematics"),
        scheduled_start=start,
        duration_minutes=minutes,
        **extra,
    )


def _book(service, tutor, student, start=START, minutes=60, **extra):
    return service.create(_candidate(tutor, student, start, minutes, **extra))


# ======================
# CREATE
# ======================
def test_booking_from_request(service, tutor, student):
    request = BookingRequest(
        date=date(2025, 1, 10), time=time(10, 0), method="online", student_id=student.id
    )
    session = service.create_from_request(request, tutor)

    assert session.id is not None
    assert session.total_amount == Decimal("200000")
    assert session.location == "Online (Zoom / Google Meet)"
    assert session.status == SessionStatus.SCHEDULED
    assert session.scheduled_end == datetime(2025, 1, 10, 11, 0)
    assert session.version == 1


def test_create_copies_tutor_rate_when_missing(service, tutor, student):
    session = _book(service, tutor, student, minutes=90)
    assert session.hourly_rate == Decimal("200000")
    assert session.total_amount == Decimal("300000")


def test_create_keeps_explicit_rate(service, tutor, student):
    session = _book(service, tutor, student, hourly_rate=Decimal("150000"))
    assert session.total_amount == Decimal("150000")


def test_create_ignores_caller_status(service, tutor, student):
    session = _book(service, tutor, student, status=SessionStatus.COMPLETED)
    assert session.status == SessionStatus.SCHEDULED


def test_create_converts_aware_start_to_utc(service, tutor, student):
    aware = datetime(2025, 1, 10, 17, 0, tzinfo=timezone(timedelta(hours=7)))
    session = _book(service, tutor, student, start=aware)
    assert session.scheduled_start == START


def test_create_requires_fields(service, tutor, student):
    with pytest.raises(ValidationError) as exc_info:
        service.create(TutoringSession(tutor_id=tutor.id, student_id=student.id, subject=" "))
    assert set(exc_info.value.details["missing"]) == {"scheduled_start", "subject"}


def test_create_rejects_short_duration(service, tutor, student):
    with pytest.raises(ValidationError):
        _book(service, tutor, student, minutes=15)


def test_create_rejects_negative_rate(service, tutor, student):
    with pytest.raises(ValidationError):
        _book(service, tutor, student, hourly_rate=Decimal("-1"))


def test_sub_cent_rate_rejected_on_create_and_update(db_session, service, tutor, student):
    with pytest.raises(ValidationError):
        _book(service, tutor, student, minutes=90, hourly_rate=Decimal("123.456"))
    assert service.list_all() == []

    session = _book(service, tutor, student, minutes=90, hourly_rate=Decimal("123.45"))
    with pytest.raises(ValidationError):
        service.update(
            session.id,
            subject="Mathematics",
            scheduled_start=START,
            duration_minutes=90,
            hourly_rate=Decimal("123.456"),
        )

    db_session.expire_all()
    stored = service.get(session.id)
    assert stored.hourly_rate == Decimal("123.45")
    # 123.45 * 90 / 60 = 185.175 -> 185.18
    assert stored.total_amount == Decimal("185.18")


def test_stored_total_matches_stored_rate(db_session, service, tutor, student):
    session = _book(service, tutor, student, minutes=90, hourly_rate=Decimal("123.450"))
    session_id = session.id

    db_session.expire_all()
    stored = service.get(session_id)
    expected = (stored.hourly_rate * 90 / Decimal(60)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    assert stored.total_amount == expected


def test_create_unknown_tutor_or_student(service, tutor, student):
    with pytest.raises(NotFoundError):
        service.create(_candidate(SimpleNamespace(id=999), student))
    with pytest.raises(NotFoundError):
        service.create(_candidate(tutor, SimpleNamespace(id=999)))


def test_foreign_key_failure_surfaces_as_integrity_error(db_session, student):
    ghost = SimpleNamespace(id=4242, hourly_rate=Decimal("100"))

    class GhostTutors:
        def by_id(self, tutor_id):
            return ghost

    store = SqlSessionStore(db_session)
    service = SchedulingService(
        store,
        GhostTutors(),
        SqlStudentLookup(db_session),
        locks=TutorLockRegistry(),
        clock=lambda: NOW,
    )
    with pytest.raises(IntegrityError):
        service.create(_candidate(ghost, student))
    assert store.list_all() == []


# ======================
# CONFLICTS
# ======================
def test_overlapping_booking_is_rejected(service, tutor, student):
    _book(service, tutor, student)
    with pytest.raises(ConflictError) as exc_info:
        _book(service, tutor, student, start=START + timedelta(minutes=30))
    assert len(exc_info.value.details["conflicting_session_ids"]) == 1
    assert len(service.list_by_tutor(tutor.id)) == 1


def test_back_to_back_sessions_do_not_conflict(service, tutor, student):
    _book(service, tutor, student)
    _book(service, tutor, student, start=START + timedelta(hours=1))
    _book(service, tutor, student, start=START - timedelta(minutes=30), minutes=30)
    assert len(service.list_by_tutor(tutor.id)) == 3


def test_cancelled_session_frees_the_slot(service, tutor, student):
    first = _book(service, tutor, student)
    service.cancel(first.id)
    second = _book(service, tutor, student, start=START + timedelta(minutes=15))
    assert second.status == SessionStatus.SCHEDULED


def test_other_tutors_do_not_conflict(db_session, service, tutor, student):
    other = Tutor(full_name="Pham Quang", hourly_rate=Decimal("180000"))
    db_session.add(other)
    db_session.commit()
    _book(service, tutor, student)
    _book(service, other, student)
    assert len(service.list_by_student(student.id)) == 2


def test_has_conflict(service, tutor, student):
    _book(service, tutor, student)
    assert service.has_conflict(tutor.id, START + timedelta(minutes=59), START + timedelta(hours=2))
    assert not service.has_conflict(tutor.id, START + timedelta(hours=1), START + timedelta(hours=2))
    with pytest.raises(ValidationError):
        service.has_conflict(tutor.id, START, START)


# ======================
# STATUS TRANSITIONS
# ======================
def test_lifecycle(service, tutor, student):
    session = _book(service, tutor, student)
    assert service.confirm(session.id).status == SessionStatus.CONFIRMED
    assert service.complete(session.id).status == SessionStatus.COMPLETED


def test_complete_requires_confirmation(service, tutor, student):
    session = _book(service, tutor, student)
    with pytest.raises(InvalidStateError):
        service.complete(session.id)
    assert service.get(session.id).status == SessionStatus.SCHEDULED


def test_terminal_sessions_reject_transitions(service, tutor, student):
    session = _book(service, tutor, student)
    service.cancel(session.id)
    for transition in (service.confirm, service.complete, service.cancel):
        with pytest.raises(InvalidStateError):
            transition(session.id)


def test_transition_on_missing_session(service):
    with pytest.raises(NotFoundError):
        service.confirm(12345)


# ======================
# UPDATE / RESCHEDULE
# ======================
def test_update_recomputes_total(service, tutor, student):
    session = _book(service, tutor, student)
    updated = service.update(
        session.id,
        subject="Mathematics",
        scheduled_start=START,
        duration_minutes=90,
        hourly_rate=Decimal("200000"),
        location="Library",
        notes=None,
    )
    assert updated.total_amount == Decimal("300000")
    assert updated.scheduled_end == START + timedelta(minutes=90)
    assert updated.location == "Library"
    assert updated.version == 2


def test_update_rejected_on_terminal_session(service, tutor, student):
    session = _book(service, tutor, student)
    service.cancel(session.id)
    with pytest.raises(InvalidStateError) as exc_info:
        service.update(
            session.id,
            subject="Mathematics",
            scheduled_start=START,
            duration_minutes=60,
            hourly_rate=Decimal("200000"),
        )
    assert exc_info.value.trigger == "update"


def test_update_validation_leaves_session_untouched(service, tutor, student):
    session = _book(service, tutor, student)
    with pytest.raises(ValidationError):
        service.update(
            session.id,
            subject="Mathematics",
            scheduled_start=START,
            duration_minutes=10,
            hourly_rate=Decimal("200000"),
        )
    assert service.get(session.id).duration_minutes == 60


def test_reschedule_moves_session(service, tutor, student):
    session = _book(service, tutor, student)
    moved = service.reschedule(session.id, START + timedelta(minutes=30), duration_minutes=90)
    assert moved.scheduled_start == START + timedelta(minutes=30)
    assert moved.scheduled_end == START + timedelta(minutes=120)
    assert moved.total_amount == Decimal("300000")


def test_reschedule_into_another_session_conflicts(service, tutor, student):
    first = _book(service, tutor, student)
    second = _book(service, tutor, student, start=START + timedelta(hours=2))
    with pytest.raises(ConflictError):
        service.reschedule(second.id, START + timedelta(minutes=30))
    assert service.get(second.id).scheduled_start == START + timedelta(hours=2)
    assert service.get(first.id).scheduled_start == START


def test_reschedule_rejected_on_completed_session(service, tutor, student):
    session = _book(service, tutor, student)
    service.confirm(session.id)
    service.complete(session.id)
    with pytest.raises(InvalidStateError) as exc_info:
        service.reschedule(session.id, START + timedelta(days=1))
    assert exc_info.value.trigger == "reschedule"


# ======================
# QUERIES
# ======================
def test_queries(db_session, service, tutor, student):
    other_student = Student(full_name="Nguyen Hoa")
    db_session.add(other_student)
    db_session.commit()

    a = _book(service, tutor, student, subject="Advanced Mathematics")
    b = _book(service, tutor, other_student, start=START + timedelta(days=1), subject="Physics")
    c = _book(service, tutor, student, start=START + timedelta(days=2))
    service.confirm(c.id)
    service.complete(c.id)

    assert [s.id for s in service.list_all()] == [a.id, b.id, c.id]
    assert [s.id for s in service.list_by_student(student.id)] == [a.id, c.id]
    assert [s.id for s in service.list_by_status(SessionStatus.COMPLETED)] == [c.id]
    assert [s.id for s in service.list_by_status("SCHEDULED")] == [a.id, b.id]
    assert [s.id for s in service.list_by_subject("mathem")] == [a.id, c.id]
    assert [s.id for s in service.list_completed(tutor_id=tutor.id)] == [c.id]
    assert [s.id for s in service.list_completed(student_id=other_student.id)] == []
    assert [s.id for s in service.list_upcoming(tutor_id=tutor.id)] == [a.id, b.id]
    assert [s.id for s in service.list_upcoming(student_id=other_student.id)] == [b.id]
    assert service.count_by_tutor_and_status(tutor.id, SessionStatus.SCHEDULED) == 2
    assert service.count_by_student_and_status(student.id, SessionStatus.COMPLETED) == 1


def test_upcoming_excludes_past_sessions(service, tutor, student):
    past = _book(service, tutor, student, start=NOW - timedelta(hours=3))
    future = _book(service, tutor, student)
    assert [s.id for s in service.list_upcoming(tutor_id=tutor.id)] == [future.id]
    assert past.id not in [s.id for s in service.list_upcoming(student_id=student.id)]


def test_date_range_is_inclusive(service, tutor, student):
    a = _book(service, tutor, student)
    b = _book(service, tutor, student, start=START + timedelta(hours=3))
    _book(service, tutor, student, start=START + timedelta(hours=6))

    found = service.list_by_date_range(START, START + timedelta(hours=3))
    assert [s.id for s in found] == [a.id, b.id]
    with pytest.raises(ValidationError):
        service.list_by_date_range(START, START - timedelta(minutes=1))


def test_unknown_status_and_blank_subject(service):
    with pytest.raises(ValidationError):
        service.list_by_status("PENDING")
    with pytest.raises(ValidationError):
        service.list_by_subject("   ")


def test_get_missing_session(service):
    with pytest.raises(NotFoundError):
        service.get(404)


# ======================
# CANCELLATION FEE / DELETE
# ======================
def test_cancellation_fee_uses_service_clock(db_session, tutor, student):
    from tutorslot.services.scheduling_service import build_scheduling_service

    booked = _book(
        build_scheduling_service(db_session, locks=TutorLockRegistry(), clock=lambda: NOW),
        tutor,
        student,
        hourly_rate=Decimal("100000"),
    )

    def at(now):
        return build_scheduling_service(db_session, locks=TutorLockRegistry(), clock=lambda: now)

    assert at(START - timedelta(hours=10)).cancellation_fee(booked.id) == Decimal("50000.00")
    assert at(START - timedelta(hours=15)).cancellation_fee(booked.id) == Decimal("0.00")
    assert at(START + timedelta(hours=1)).cancellation_fee(booked.id) == Decimal("100000.00")
    assert at(START - timedelta(hours=10)).hours_until_start(booked.id) == 10
    # Quoting a fee never changes the session
    assert at(START).get(booked.id).status == SessionStatus.SCHEDULED


def test_delete(service, tutor, student):
    session = _book(service, tutor, student)
    service.delete(session.id)
    with pytest.raises(NotFoundError):
        service.get(session.id)
    with pytest.raises(NotFoundError):
        service.delete(session.id)
