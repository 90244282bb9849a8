# tutorslot/services/booking_request.py
"""
Booking form → candidate session.

The guided booking form only carries a date, a time, a delivery method and a
few optional fields. Everything else (student, subject, duration, rate,
location, price) is defaulted here. The result is an unsaved
``TutoringSession``; conflict checks and persistence belong to
``SchedulingService``.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional

from tutorslot.exceptions import EmptyCollectionError, NotFoundError, ValidationError
from tutorslot.models.session import TutoringSession
from tutorslot.schemas.session import BookingRequest
from tutorslot.services.conflicts import session_window
from tutorslot.services.pricing import PricingCalculator, to_money
from tutorslot.services.store import StudentLookup, StudentRef, TutorRef

logger = logging.getLogger(__name__)

ONLINE_METHOD = "online"


class BookingRequestResolver:

    def __init__(
        self,
        students: StudentLookup,
        pricing: PricingCalculator,
        *,
        default_subject: str,
        default_duration_minutes: int,
        fallback_hourly_rate: Decimal,
        online_location: str,
        offline_location: str,
        allow_student_fallback: bool = False,
    ):
        self.students = students
        self.pricing = pricing
        self.default_subject = default_subject
        self.default_duration_minutes = default_duration_minutes
        self.fallback_hourly_rate = to_money(fallback_hourly_rate)
        self.online_location = online_location
        self.offline_location = offline_location
        self.allow_student_fallback = allow_student_fallback

    def resolve(self, request: BookingRequest, tutor: TutorRef) -> TutoringSession:
        """
        Build a priced candidate session for ``tutor``.

        Raises:
            NotFoundError: ``student_id`` given but unknown
            ValidationError: no ``student_id`` and the fallback is disabled
            EmptyCollectionError: fallback enabled but there are no students
        """
        if tutor is None or tutor.id is None:
            raise ValidationError("A resolved tutor is required to book a session")

        student = self.resolve_student(request.student_id)
        scheduled_start = datetime.combine(request.date, request.time)
        duration = self.default_duration_minutes
        hourly_rate = self.resolve_hourly_rate(tutor.hourly_rate)
        _, scheduled_end = session_window(scheduled_start, duration)

        return TutoringSession(
            tutor_id=tutor.id,
            student_id=student.id,
            subject=self.resolve_subject(request.subject),
            scheduled_start=scheduled_start,
            scheduled_end=scheduled_end,
            duration_minutes=duration,
            location=self.resolve_location(request.method),
            notes=request.note,
            hourly_rate=hourly_rate,
            total_amount=self.pricing.total_amount(hourly_rate, duration),
        )

    def resolve_student(self, student_id: Optional[int]) -> StudentRef:
        if student_id is not None and student_id > 0:
            student = self.students.by_id(student_id)
            if student is None:
                raise NotFoundError(
                    f"Student {student_id} not found",
                    details={"student_id": student_id},
                )
            return student

        if not self.allow_student_fallback:
            raise ValidationError("student_id is required to book a session")

        student = self.students.first_available()
        if student is None:
            raise EmptyCollectionError("No students exist; add a student before booking")
        logger.warning("No student selected; falling back to student %s", student.id)
        return student

    def resolve_subject(self, subject: Optional[str]) -> str:
        cleaned = (subject or "").strip()
        return cleaned or self.default_subject

    def resolve_hourly_rate(self, rate: Optional[Decimal]) -> Decimal:
        if rate is None or to_money(rate) <= 0:
            return self.fallback_hourly_rate
        return to_money(rate)

    def resolve_location(self, method: Optional[str]) -> str:
        if (method or "").strip().lower() == ONLINE_METHOD:
            return self.online_location
        return self.offline_location
