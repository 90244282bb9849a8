# tutorslot/services/store.py
"""
Collaborator interfaces consumed by the scheduling service.

The SQLAlchemy implementations live in ``tutorslot.crud``; anything that
satisfies these protocols can be passed to ``SchedulingService`` instead.
"""

from datetime import datetime
from decimal import Decimal
from typing import ContextManager, List, Optional, Protocol

from tutorslot.models.session import SessionStatus, TutoringSession


class TutorRef(Protocol):
    id: int
    hourly_rate: Optional[Decimal]


class StudentRef(Protocol):
    id: int


class TutorLookup(Protocol):
    def by_id(self, tutor_id: int) -> Optional[TutorRef]: ...


class StudentLookup(Protocol):
    def by_id(self, student_id: int) -> Optional[StudentRef]: ...

    def first_available(self) -> Optional[StudentRef]: ...


class SessionStore(Protocol):
    """Persistence and queries over session records. No business rules."""

    def get(self, session_id: int) -> Optional[TutoringSession]: ...

    def list_all(self) -> List[TutoringSession]: ...

    def list_by_tutor(self, tutor_id: int) -> List[TutoringSession]: ...

    def list_by_student(self, student_id: int) -> List[TutoringSession]: ...

    def list_by_status(self, status: SessionStatus) -> List[TutoringSession]: ...

    def list_by_subject(self, subject: str) -> List[TutoringSession]: ...

    def list_by_date_range(self, start: datetime, end: datetime) -> List[TutoringSession]: ...

    def list_upcoming(
        self,
        now: datetime,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]: ...

    def list_completed(
        self,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]: ...

    def list_active_conflicting(
        self,
        tutor_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[TutoringSession]: ...

    def serialized_for_tutor(self, tutor_id: int) -> ContextManager[None]: ...

    def save(self, session: TutoringSession) -> TutoringSession: ...

    def delete(self, session: TutoringSession) -> None: ...

    def count_by_tutor_and_status(self, tutor_id: int, status: SessionStatus) -> int: ...

    def count_by_student_and_status(self, student_id: int, status: SessionStatus) -> int: ...
