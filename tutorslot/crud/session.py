# tutorslot/crud/session.py
"""
Session persistence backed by SQLAlchemy.

Every write commits or rolls back as a unit, and database-level failures are
translated into scheduling exceptions here so callers never see a half-written
session.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import exc as sa_exc, text
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from tutorslot.exceptions import ConcurrencyError, ConflictError, IntegrityError
from tutorslot.models.people import Tutor
from tutorslot.models.session import (
    ACTIVE_STATUSES,
    NO_OVERLAP_CONSTRAINT,
    SessionStatus,
    TutoringSession,
)

logger = logging.getLogger(__name__)


class SqlSessionStore:
    """SessionStore over a single SQLAlchemy session (one per request)."""

    def __init__(self, db: Session):
        self.db = db

    # ======================
    # READS
    # ======================

    def get(self, session_id: int) -> Optional[TutoringSession]:
        return self.db.query(TutoringSession).filter(TutoringSession.id == session_id).first()

    def list_all(self) -> List[TutoringSession]:
        return self.db.query(TutoringSession).order_by(TutoringSession.scheduled_start.asc()).all()

    def list_by_tutor(self, tutor_id: int) -> List[TutoringSession]:
        return (
            self.db.query(TutoringSession)
            .filter(TutoringSession.tutor_id == tutor_id)
            .order_by(TutoringSession.scheduled_start.asc())
            .all()
        )

    def list_by_student(self, student_id: int) -> List[TutoringSession]:
        return (
            self.db.query(TutoringSession)
            .filter(TutoringSession.student_id == student_id)
            .order_by(TutoringSession.scheduled_start.asc())
            .all()
        )

    def list_by_status(self, status: SessionStatus) -> List[TutoringSession]:
        return (
            self.db.query(TutoringSession)
            .filter(TutoringSession.status == status)
            .order_by(TutoringSession.scheduled_start.asc())
            .all()
        )

    def list_by_subject(self, subject: str) -> List[TutoringSession]:
        pattern = f"%{subject.strip()}%"
        return (
            self.db.query(TutoringSession)
            .filter(TutoringSession.subject.ilike(pattern))
            .order_by(TutoringSession.scheduled_start.asc())
            .all()
        )

    def list_by_date_range(self, start: datetime, end: datetime) -> List[TutoringSession]:
        return (
            self.db.query(TutoringSession)
            .filter(
                TutoringSession.scheduled_start >= start,
                TutoringSession.scheduled_start <= end,
            )
            .order_by(TutoringSession.scheduled_start.asc())
            .all()
        )

    def list_upcoming(
        self,
        now: datetime,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        query = self.db.query(TutoringSession).filter(
            TutoringSession.scheduled_start > now,
            TutoringSession.status.in_(ACTIVE_STATUSES),
        )
        if tutor_id is not None:
            query = query.filter(TutoringSession.tutor_id == tutor_id)
        if student_id is not None:
            query = query.filter(TutoringSession.student_id == student_id)
        return query.order_by(TutoringSession.scheduled_start.asc()).all()

    def list_completed(
        self,
        *,
        tutor_id: Optional[int] = None,
        student_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        query = self.db.query(TutoringSession).filter(
            TutoringSession.status == SessionStatus.COMPLETED
        )
        if tutor_id is not None:
            query = query.filter(TutoringSession.tutor_id == tutor_id)
        if student_id is not None:
            query = query.filter(TutoringSession.student_id == student_id)
        return query.order_by(TutoringSession.scheduled_start.desc()).all()

    def list_active_conflicting(
        self,
        tutor_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        # Half-open intervals: [s1, e1) and [s2, e2) overlap iff s1 < e2 and s2 < e1.
        query = self.db.query(TutoringSession).filter(
            TutoringSession.tutor_id == tutor_id,
            TutoringSession.status.in_(ACTIVE_STATUSES),
            TutoringSession.scheduled_start < end,
            TutoringSession.scheduled_end > start,
        )
        if exclude_id is not None:
            query = query.filter(TutoringSession.id != exclude_id)
        return query.order_by(TutoringSession.scheduled_start.asc()).all()

    def count_by_tutor_and_status(self, tutor_id: int, status: SessionStatus) -> int:
        return self.db.query(TutoringSession).filter(
            TutoringSession.tutor_id == tutor_id,
            TutoringSession.status == status,
        ).count()

    def count_by_student_and_status(self, student_id: int, status: SessionStatus) -> int:
        return self.db.query(TutoringSession).filter(
            TutoringSession.student_id == student_id,
            TutoringSession.status == status,
        ).count()

    # ======================
    # WRITES
    # ======================

    @contextmanager
    def serialized_for_tutor(self, tutor_id: int) -> Iterator[None]:
        """
        Hold the tutor's row lock for the rest of the transaction.

        ``FOR UPDATE`` is a no-op on SQLite, so there the whole database
        write lock is taken instead (``BEGIN IMMEDIATE``). Either lock is
        released by the commit in ``save`` or by the rollback below.
        """
        if self.db.get_bind().dialect.name == "sqlite":
            self._begin_immediate(tutor_id)
        try:
            self.db.query(Tutor.id).filter(Tutor.id == tutor_id).with_for_update().first()
            yield
        except Exception:
            self.db.rollback()
            raise

    def _begin_immediate(self, tutor_id: int) -> None:
        dbapi_connection = self.db.connection().connection.dbapi_connection
        if dbapi_connection.in_transaction:
            # Already writing in this transaction, so the lock is held.
            return
        try:
            self.db.execute(text("BEGIN IMMEDIATE"))
        except sa_exc.OperationalError as e:
            self.db.rollback()
            logger.warning("SQLite write lock timed out for tutor %s: %s", tutor_id, e)
            raise ConcurrencyError(
                "Another booking is being written; retry shortly",
                details={"tutor_id": tutor_id},
            ) from e

    def save(self, session: TutoringSession) -> TutoringSession:
        session_id = session.id
        try:
            self.db.add(session)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("Stale write rejected for session %s", session_id)
            raise ConcurrencyError(
                "Session was modified by another request; reload and retry",
                details={"session_id": session_id},
            ) from e
        except sa_exc.IntegrityError as e:
            error = self._translate_integrity_error(e, session)
            self.db.rollback()
            raise error from e
        except sa_exc.SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(session)
        return session

    def delete(self, session: TutoringSession) -> None:
        session_id = session.id
        try:
            self.db.delete(session)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise ConcurrencyError(
                "Session was modified by another request; reload and retry",
                details={"session_id": session_id},
            ) from e
        except sa_exc.SQLAlchemyError:
            self.db.rollback()
            raise

    def _translate_integrity_error(self, error: sa_exc.IntegrityError, session: TutoringSession):
        text = str(getattr(error, "orig", error))
        if NO_OVERLAP_CONSTRAINT in text:
            return ConflictError(
                "Tutor already has a session in the selected time slot",
                details={
                    "tutor_id": session.tutor_id,
                    "start": session.scheduled_start.isoformat(),
                    "end": session.scheduled_end.isoformat(),
                },
            )
        return IntegrityError(
            "Referenced tutor or student no longer exists",
            details={
                "tutor_id": session.tutor_id,
                "student_id": session.student_id,
                "reason": text,
            },
        )
