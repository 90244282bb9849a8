# tutorslot/models/session.py
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Numeric, Enum, TIMESTAMP, func
from tutorslot.database import Base
import enum


class SessionStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


ACTIVE_STATUSES = (SessionStatus.SCHEDULED, SessionStatus.CONFIRMED)

# Installed by the alembic migration on PostgreSQL only.
NO_OVERLAP_CONSTRAINT = "tutoring_sessions_no_overlap_per_tutor"


class TutoringSession(Base):
    __tablename__ = "tutoring_sessions"

    id = Column(Integer, primary_key=True, index=True)
    # Plain references; tutor/student records are owned elsewhere.
    tutor_id = Column(Integer, ForeignKey("tutors.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("students.id"), nullable=False, index=True)
    subject = Column(String(100), nullable=False)
    scheduled_start = Column(DateTime, nullable=False, index=True)
    scheduled_end = Column(DateTime, nullable=False)
    duration_minutes = Column(Integer, nullable=False, default=60)
    status = Column(
        Enum(SessionStatus, native_enum=False, length=20, name="session_status"),
        nullable=False,
        index=True,
    )
    location = Column(String(255))
    notes = Column(String(1000))
    hourly_rate = Column(Numeric(10, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    version = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return (
            f"<TutoringSession id={self.id} tutor={self.tutor_id} "
            f"start={self.scheduled_start} status={self.status}>"
        )
