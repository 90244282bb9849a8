# tutorslot/api/session.py
"""
Session Management API
Booking, lifecycle transitions, queries and the cancellation-fee quote.
"""

from contextlib import contextmanager
from datetime import date, datetime, time
from typing import List, Optional

import pydantic
from fastapi import APIRouter, Depends, Form, HTTPException, Query
from sqlalchemy.orm import Session

from tutorslot.database import get_db
from tutorslot.exceptions import DomainError
from tutorslot.models.session import SessionStatus, TutoringSession
from tutorslot.schemas.session import (
    BookingRequest,
    CancellationFeeResponse,
    ConflictCheckResponse,
    SessionCountResponse,
    SessionCreate,
    SessionReschedule,
    SessionResponse,
    SessionUpdate,
)
from tutorslot.services.scheduling_service import SchedulingService, build_scheduling_service

router = APIRouter(prefix="/sessions", tags=["sessions"])


# ======================
# HELPER FUNCTIONS
# ======================
def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    return build_scheduling_service(db)


@contextmanager
def _domain_errors():
    """Map domain failures onto HTTP status codes."""
    try:
        yield
    except DomainError as e:
        raise e.to_http_exception() from e


def _to_response(sessions: List[TutoringSession]) -> List[SessionResponse]:
    return [SessionResponse.model_validate(s) for s in sessions]


# ======================
# CREATE SESSION
# ======================
@router.post("/", response_model=SessionResponse, status_code=201)
def create_session(
    payload: SessionCreate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Book a fully specified session. Hourly rate defaults to the tutor's."""
    with _domain_errors():
        session = service.create(TutoringSession(**payload.model_dump()))
    return SessionResponse.model_validate(session)


@router.post("/schedule", response_model=SessionResponse, status_code=201)
def schedule_session(
    tutor_id: int = Form(...),
    date: date = Form(...),
    time: time = Form(...),
    method: str = Form(...),
    note: Optional[str] = Form(None),
    subject: Optional[str] = Form(None),
    student_id: Optional[int] = Form(None),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """
    Book from the guided form: date, time and delivery method.
    Subject, duration, rate and location fall back to configured defaults.
    """
    try:
        request = BookingRequest(
            date=date,
            time=time,
            method=method,
            note=note,
            subject=subject,
            student_id=student_id,
        )
    except pydantic.ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    with _domain_errors():
        tutor = service.get_tutor(tutor_id)
        session = service.create_from_request(request, tutor)
    return SessionResponse.model_validate(session)


# ======================
# SESSION LISTING
# ======================
@router.get("/", response_model=List[SessionResponse])
def list_sessions(
    status: Optional[SessionStatus] = None,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """All sessions, optionally filtered by status."""
    with _domain_errors():
        if status is not None:
            return _to_response(service.list_by_status(status))
        return _to_response(service.list_all())


@router.get("/tutor/{tutor_id}", response_model=List[SessionResponse])
def list_tutor_sessions(tutor_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_by_tutor(tutor_id))


@router.get("/student/{student_id}", response_model=List[SessionResponse])
def list_student_sessions(student_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_by_student(student_id))


@router.get("/status/{status}", response_model=List[SessionResponse])
def list_sessions_by_status(status: SessionStatus, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        return _to_response(service.list_by_status(status))


@router.get("/subject", response_model=List[SessionResponse])
def search_sessions_by_subject(
    q: str = Query(..., min_length=1),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Case-insensitive substring match on subject."""
    with _domain_errors():
        return _to_response(service.list_by_subject(q))


@router.get("/date-range", response_model=List[SessionResponse])
def list_sessions_in_range(
    start: datetime = Query(...),
    end: datetime = Query(...),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Sessions starting within [start, end], both ends inclusive."""
    with _domain_errors():
        return _to_response(service.list_by_date_range(start, end))


@router.get("/conflict-check", response_model=ConflictCheckResponse)
def check_conflict(
    tutor_id: int = Query(...),
    start: datetime = Query(...),
    end: datetime = Query(...),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with _domain_errors():
        has_conflict = service.has_conflict(tutor_id, start, end)
    return ConflictCheckResponse(tutor_id=tutor_id, start=start, end=end, has_conflict=has_conflict)


@router.get("/tutor/{tutor_id}/upcoming", response_model=List[SessionResponse])
def upcoming_tutor_sessions(tutor_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_upcoming(tutor_id=tutor_id))


@router.get("/student/{student_id}/upcoming", response_model=List[SessionResponse])
def upcoming_student_sessions(student_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_upcoming(student_id=student_id))


@router.get("/tutor/{tutor_id}/completed", response_model=List[SessionResponse])
def completed_tutor_sessions(tutor_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_completed(tutor_id=tutor_id))


@router.get("/student/{student_id}/completed", response_model=List[SessionResponse])
def completed_student_sessions(student_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    return _to_response(service.list_completed(student_id=student_id))


@router.get("/tutor/{tutor_id}/count/{status}", response_model=SessionCountResponse)
def count_tutor_sessions(
    tutor_id: int,
    status: SessionStatus,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with _domain_errors():
        count = service.count_by_tutor_and_status(tutor_id, status)
    return SessionCountResponse(status=status, count=count)


@router.get("/student/{student_id}/count/{status}", response_model=SessionCountResponse)
def count_student_sessions(
    student_id: int,
    status: SessionStatus,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with _domain_errors():
        count = service.count_by_student_and_status(student_id, status)
    return SessionCountResponse(status=status, count=count)


# ======================
# SINGLE SESSION
# ======================
@router.get("/{session_id}", response_model=SessionResponse)
def get_session(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        return SessionResponse.model_validate(service.get(session_id))


@router.put("/{session_id}", response_model=SessionResponse)
def update_session(
    session_id: int,
    payload: SessionUpdate,
    service: SchedulingService = Depends(get_scheduling_service),
):
    """
    Replace subject, start, duration, rate, location and notes.
    The new slot is not conflict-checked; use /reschedule for that.
    """
    with _domain_errors():
        session = service.update(session_id, **payload.model_dump())
    return SessionResponse.model_validate(session)


@router.patch("/{session_id}/reschedule", response_model=SessionResponse)
def reschedule_session(
    session_id: int,
    payload: SessionReschedule,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with _domain_errors():
        session = service.reschedule(session_id, payload.new_start, payload.duration_minutes)
    return SessionResponse.model_validate(session)


# ======================
# STATUS TRANSITIONS
# ======================
@router.patch("/{session_id}/confirm", response_model=SessionResponse)
def confirm_session(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        return SessionResponse.model_validate(service.confirm(session_id))


@router.patch("/{session_id}/complete", response_model=SessionResponse)
def complete_session(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        return SessionResponse.model_validate(service.complete(session_id))


@router.patch("/{session_id}/cancel", response_model=SessionResponse)
def cancel_session(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        return SessionResponse.model_validate(service.cancel(session_id))


@router.get("/{session_id}/cancellation-fee", response_model=CancellationFeeResponse)
def get_cancellation_fee(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    """Fee owed if the session were cancelled now. Does not cancel anything."""
    with _domain_errors():
        session = service.get(session_id)
        fee = service.cancellation_fee(session_id)
        hours = service.hours_until_start(session_id)
    return CancellationFeeResponse(
        session_id=session.id,
        total_amount=session.total_amount,
        hours_until_start=hours,
        cancellation_fee=fee,
    )


# ======================
# DELETE SESSION
# ======================
@router.delete("/{session_id}")
def delete_session(session_id: int, service: SchedulingService = Depends(get_scheduling_service)):
    with _domain_errors():
        service.delete(session_id)
    return {"message": "Session deleted", "session_id": session_id}
