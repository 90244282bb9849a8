# tutorslot/services/scheduling_service.py
"""
Scheduling Service - session booking and lifecycle

Composes pricing, conflict detection, the status machine and the
cancellation policy on top of a SessionStore. Holds no state between calls;
build one per request with ``build_scheduling_service``.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Iterator, List, Optional

from sqlalchemy.orm import Session

from tutorslot.config import settings
from tutorslot.crud.people import SqlStudentLookup, SqlTutorLookup
from tutorslot.crud.session import SqlSessionStore
from tutorslot.exceptions import ConcurrencyError, ConflictError, NotFoundError, ValidationError
from tutorslot.models.session import SessionStatus, TutoringSession
from tutorslot.schemas.session import BookingRequest
from tutorslot.services.booking_request import BookingRequestResolver
from tutorslot.services.cancellation import CancellationFeePolicy, hours_until
from tutorslot.services.conflicts import ConflictDetector, session_window
from tutorslot.services.pricing import PricingCalculator, round_money, to_money
from tutorslot.services.status_machine import StatusMachine, Trigger
from tutorslot.services.store import SessionStore, StudentLookup, TutorLookup, TutorRef
from tutorslot.utils.booking_lock import TutorLockRegistry, tutor_locks

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class SchedulingService:

    def __init__(
        self,
        store: SessionStore,
        tutors: TutorLookup,
        students: StudentLookup,
        *,
        resolver: Optional[BookingRequestResolver] = None,
        pricing: Optional[PricingCalculator] = None,
        detector: Optional[ConflictDetector] = None,
        status_machine: Optional[StatusMachine] = None,
        fee_policy: Optional[CancellationFeePolicy] = None,
        locks: Optional[TutorLockRegistry] = None,
        clock: Optional[Callable[[], datetime]] = None,
        min_duration_minutes: int = settings.MIN_DURATION_MINUTES,
    ):
        self.store = store
        self.tutors = tutors
        self.students = students
        self.pricing = pricing or PricingCalculator()
        self.resolver = resolver or BookingRequestResolver(
            students,
            self.pricing,
            default_subject=settings.DEFAULT_SUBJECT,
            default_duration_minutes=settings.DEFAULT_DURATION_MINUTES,
            fallback_hourly_rate=settings.FALLBACK_HOURLY_RATE,
            online_location=settings.ONLINE_LOCATION_LABEL,
            offline_location=settings.OFFLINE_LOCATION_LABEL,
            allow_student_fallback=settings.ALLOW_FIRST_AVAILABLE_STUDENT,
        )
        self.detector = detector or ConflictDetector(store)
        self.status_machine = status_machine or StatusMachine()
        self.fee_policy = fee_policy or CancellationFeePolicy(
            free_hours=settings.FREE_CANCELLATION_HOURS,
            late_rate=settings.LATE_CANCELLATION_FEE_RATE,
        )
        self.locks = locks or tutor_locks
        self.clock = clock or utcnow
        self.min_duration_minutes = min_duration_minutes

    def now(self) -> datetime:
        return to_naive_utc(self.clock())

    # ======================
    # CREATE
    # ======================

    def create(self, candidate: TutoringSession) -> TutoringSession:
        """
        Validate, price and persist a new session.

        Raises:
            ValidationError: missing or out-of-range fields
            NotFoundError: unknown tutor or student
            ConflictError: the tutor already has an active session overlapping the slot
        """
        self._require_fields(candidate)
        tutor = self._require_tutor(candidate.tutor_id)
        self._require_student(candidate.student_id)

        if candidate.hourly_rate is None:
            # Copied once at booking time; later tutor rate changes don't touch it.
            candidate.hourly_rate = to_money(tutor.hourly_rate or 0)
        if candidate.duration_minutes is None:
            candidate.duration_minutes = settings.DEFAULT_DURATION_MINUTES
        candidate.scheduled_start = to_naive_utc(candidate.scheduled_start)
        candidate.subject = candidate.subject.strip()
        self._validate_values(candidate.subject, candidate.duration_minutes, candidate.hourly_rate)

        self._recompute_derived(candidate)
        self.status_machine.initialize(candidate)

        with self._serialized_for_tutor(candidate.tutor_id):
            self._reject_conflicts(
                candidate.tutor_id, candidate.scheduled_start, candidate.scheduled_end
            )
            saved = self.store.save(candidate)

        logger.info(
            "Booked session %s for tutor %s / student %s at %s (%s min, total %s)",
            saved.id,
            saved.tutor_id,
            saved.student_id,
            saved.scheduled_start,
            saved.duration_minutes,
            saved.total_amount,
        )
        return saved

    def create_from_request(self, request: BookingRequest, tutor: TutorRef) -> TutoringSession:
        candidate = self.resolver.resolve(request, tutor)
        return self.create(candidate)

    # ======================
    # STATUS TRANSITIONS
    # ======================

    def confirm(self, session_id: int) -> TutoringSession:
        return self._transition(session_id, Trigger.CONFIRM)

    def complete(self, session_id: int) -> TutoringSession:
        return self._transition(session_id, Trigger.COMPLETE)

    def cancel(self, session_id: int) -> TutoringSession:
        return self._transition(session_id, Trigger.CANCEL)

    def _transition(self, session_id: int, trigger: Trigger) -> TutoringSession:
        session = self.get(session_id)
        previous = session.status
        self.status_machine.apply(session, trigger)
        saved = self.store.save(session)
        logger.info(
            "Session %s %s: %s -> %s",
            session_id,
            trigger.value,
            getattr(previous, "value", previous),
            saved.status.value,
        )
        return saved

    # ======================
    # UPDATES
    # ======================

    def update(
        self,
        session_id: int,
        *,
        subject: str,
        scheduled_start: datetime,
        duration_minutes: int,
        hourly_rate: Decimal,
        location: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> TutoringSession:
        """
        Replace the mutable fields of an active session.

        Does not re-run conflict detection; use ``reschedule`` to move a
        session to a different slot safely.
        """
        session = self.get(session_id)
        self.status_machine.ensure_mutable(session, "update")
        if scheduled_start is None:
            raise ValidationError("scheduled_start is required")
        subject = (subject or "").strip()
        self._validate_values(subject, duration_minutes, hourly_rate)

        session.subject = subject
        session.scheduled_start = to_naive_utc(scheduled_start)
        session.duration_minutes = duration_minutes
        session.hourly_rate = to_money(hourly_rate)
        session.location = location
        session.notes = notes
        self._recompute_derived(session)

        saved = self.store.save(session)
        logger.info("Updated session %s (total %s)", saved.id, saved.total_amount)
        return saved

    def reschedule(
        self,
        session_id: int,
        new_start: datetime,
        duration_minutes: Optional[int] = None,
    ) -> TutoringSession:
        session = self.get(session_id)
        self.status_machine.ensure_mutable(session, "reschedule")
        if new_start is None:
            raise ValidationError("new_start is required")
        duration = duration_minutes if duration_minutes is not None else session.duration_minutes
        self._validate_values(session.subject, duration, session.hourly_rate)

        start, end = session_window(to_naive_utc(new_start), duration)
        with self._serialized_for_tutor(session.tutor_id):
            self._reject_conflicts(session.tutor_id, start, end, exclude_id=session.id)
            session.scheduled_start = start
            session.duration_minutes = duration
            self._recompute_derived(session)
            saved = self.store.save(session)

        logger.info("Rescheduled session %s to %s", saved.id, saved.scheduled_start)
        return saved

    # ======================
    # QUERIES
    # ======================

    def get(self, session_id: int) -> TutoringSession:
        session = self.store.get(session_id)
        if session is None:
            raise NotFoundError(
                f"Session {session_id} not found",
                details={"session_id": session_id},
            )
        return session

    def get_tutor(self, tutor_id: int) -> TutorRef:
        return self._require_tutor(tutor_id)

    def list_all(self) -> List[TutoringSession]:
        return self.store.list_all()

    def list_by_tutor(self, tutor_id: int) -> List[TutoringSession]:
        return self.store.list_by_tutor(tutor_id)

    def list_by_student(self, student_id: int) -> List[TutoringSession]:
        return self.store.list_by_student(student_id)

    def list_by_status(self, status: SessionStatus) -> List[TutoringSession]:
        return self.store.list_by_status(self._coerce_status(status))

    def list_by_subject(self, subject: str) -> List[TutoringSession]:
        if not subject or not subject.strip():
            raise ValidationError("subject must not be blank")
        return self.store.list_by_subject(subject)

    def list_by_date_range(self, start: datetime, end: datetime) -> List[TutoringSession]:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if start > end:
            raise ValidationError("start must not be after end")
        return self.store.list_by_date_range(start, end)

    def list_upcoming(
        self,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        return self.store.list_upcoming(self.now(), tutor_id=tutor_id, student_id=student_id)

    def list_completed(
        self,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        return self.store.list_completed(tutor_id=tutor_id, student_id=student_id)

    def count_by_tutor_and_status(self, tutor_id: int, status: SessionStatus) -> int:
        return self.store.count_by_tutor_and_status(tutor_id, self._coerce_status(status))

    def count_by_student_and_status(self, student_id: int, status: SessionStatus) -> int:
        return self.store.count_by_student_and_status(student_id, self._coerce_status(status))

    def has_conflict(self, tutor_id: int, start: datetime, end: datetime) -> bool:
        start, end = to_naive_utc(start), to_naive_utc(end)
        if end <= start:
            raise ValidationError("end must be after start")
        return self.detector.has_conflict(tutor_id, start, end)

    def cancellation_fee(self, session_id: int) -> Decimal:
        session = self.get(session_id)
        return self.fee_policy.fee(session, self.now())

    def hours_until_start(self, session_id: int) -> int:
        return hours_until(self.get(session_id).scheduled_start, self.now())

    # ======================
    # ADMIN
    # ======================

    def delete(self, session_id: int) -> None:
        """Hard delete; not a lifecycle transition."""
        session = self.get(session_id)
        self.store.delete(session)
        logger.info("Deleted session %s", session_id)

    # ======================
    # HELPERS
    # ======================

    @contextmanager
    def _serialized_for_tutor(self, tutor_id: int) -> Iterator[None]:
        try:
            with self.locks.hold(tutor_id):
                with self.store.serialized_for_tutor(tutor_id):
                    yield
        except TimeoutError as e:
            raise ConcurrencyError(
                "Another booking for this tutor is in progress; retry shortly",
                details={"tutor_id": tutor_id},
            ) from e

    def _reject_conflicts(
        self,
        tutor_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> None:
        conflicts = self.detector.conflicts(tutor_id, start, end, exclude_id=exclude_id)
        if conflicts:
            raise ConflictError(
                "Tutor already has a session in the selected time slot",
                details={
                    "tutor_id": tutor_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "conflicting_session_ids": [s.id for s in conflicts],
                },
            )

    def _recompute_derived(self, session: TutoringSession) -> None:
        """Keep total_amount and scheduled_end in step with their inputs."""
        session.total_amount = self.pricing.total_amount(session.hourly_rate, session.duration_minutes)
        _, session.scheduled_end = session_window(session.scheduled_start, session.duration_minutes)

    def _require_fields(self, candidate: TutoringSession) -> None:
        missing = [
            name
            for name in ("tutor_id", "student_id", "scheduled_start")
            if getattr(candidate, name) is None
        ]
        if candidate.subject is None or not str(candidate.subject).strip():
            missing.append("subject")
        if missing:
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}",
                details={"missing": missing},
            )

    def _validate_values(self, subject: str, duration_minutes: int, hourly_rate: Decimal) -> None:
        if not subject:
            raise ValidationError("subject must not be blank")
        if duration_minutes is None or duration_minutes < self.min_duration_minutes:
            raise ValidationError(
                f"Duration must be at least {self.min_duration_minutes} minutes",
                details={"duration_minutes": duration_minutes},
            )
        if hourly_rate is None or to_money(hourly_rate) < 0:
            raise ValidationError(
                "Hourly rate must be non-negative",
                details={"hourly_rate": str(hourly_rate)},
            )
        # hourly_rate is stored as Numeric(10, 2); a sub-cent rate would be
        # rounded on write and no longer match the total priced from it.
        if to_money(hourly_rate) != round_money(to_money(hourly_rate)):
            raise ValidationError(
                "Hourly rate must be a whole number of cents",
                details={"hourly_rate": str(hourly_rate)},
            )

    def _require_tutor(self, tutor_id: int) -> TutorRef:
        tutor = self.tutors.by_id(tutor_id)
        if tutor is None:
            raise NotFoundError(f"Tutor {tutor_id} not found", details={"tutor_id": tutor_id})
        return tutor

    def _require_student(self, student_id: int) -> None:
        if self.students.by_id(student_id) is None:
            raise NotFoundError(
                f"Student {student_id} not found",
                details={"student_id": student_id},
            )

    @staticmethod
    def _coerce_status(status) -> SessionStatus:
        try:
            return SessionStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown session status: {status}") from None


def build_scheduling_service(
    db: Session,
    *,
    locks: Optional[TutorLockRegistry] = None,
    clock: Optional[Callable[[], datetime]] = None,
    allow_student_fallback: Optional[bool] = None,
) -> SchedulingService:
    """Wire the SQL-backed collaborators for one request/unit of work."""
    store = SqlSessionStore(db)
    students = SqlStudentLookup(db)
    pricing = PricingCalculator()
    resolver = BookingRequestResolver(
        students,
        pricing,
        default_subject=settings.DEFAULT_SUBJECT,
        default_duration_minutes=settings.DEFAULT_DURATION_MINUTES,
        fallback_hourly_rate=settings.FALLBACK_HOURLY_RATE,
        online_location=settings.ONLINE_LOCATION_LABEL,
        offline_location=settings.OFFLINE_LOCATION_LABEL,
        allow_student_fallback=(
            settings.ALLOW_FIRST_AVAILABLE_STUDENT
            if allow_student_fallback is None
            else allow_student_fallback
        ),
    )
    return SchedulingService(
        store,
        SqlTutorLookup(db),
        students,
        resolver=resolver,
        pricing=pricing,
        locks=locks,
        clock=clock,
    )
