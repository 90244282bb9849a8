from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import date as date_type, datetime, time as time_type
from decimal import Decimal

from tutorslot.models.session import SessionStatus

# ======================
# SESSION REQUEST MODELS
# ======================

class SessionCreate(BaseModel):
    """Fully specified session, as sent by back-office clients."""
    tutor_id: int = Field(..., gt=0)
    student_id: int = Field(..., gt=0)
    subject: str = Field(..., min_length=1, max_length=100)
    scheduled_start: datetime
    duration_minutes: int = Field(60, ge=30)
    hourly_rate: Optional[Decimal] = Field(
        None, ge=0, max_digits=10, decimal_places=2, description="Defaults to the tutor's rate"
    )
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)

    @field_validator("subject")
    @classmethod
    def validate_subject(cls, v):
        if v.strip() == "":
            raise ValueError("Subject cannot be empty or just whitespace")
        return v.strip()


class BookingRequest(BaseModel):
    """For the frontend booking form (date + time + method)"""
    date: date_type
    time: time_type
    method: str = Field(..., min_length=1)  # "online" or "offline"
    note: Optional[str] = Field(None, max_length=1000)
    subject: Optional[str] = None
    student_id: Optional[int] = None


# ======================
# SESSION UPDATE MODELS
# ======================

class SessionUpdate(BaseModel):
    """Full replacement of the mutable fields."""
    subject: str = Field(..., min_length=1, max_length=100)
    scheduled_start: datetime
    duration_minutes: int = Field(..., ge=30)
    hourly_rate: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    location: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = Field(None, max_length=1000)


class SessionReschedule(BaseModel):
    new_start: datetime
    duration_minutes: Optional[int] = Field(None, ge=30)


# ======================
# SESSION RESPONSE MODELS
# ======================

class SessionResponse(BaseModel):
    id: int
    tutor_id: int
    student_id: int
    subject: str
    scheduled_start: datetime
    scheduled_end: datetime
    duration_minutes: int
    status: SessionStatus
    location: Optional[str] = None
    notes: Optional[str] = None
    hourly_rate: Decimal
    total_amount: Decimal
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CancellationFeeResponse(BaseModel):
    session_id: int
    total_amount: Decimal
    hours_until_start: int
    cancellation_fee: Decimal


class ConflictCheckResponse(BaseModel):
    tutor_id: int
    start: datetime
    end: datetime
    has_conflict: bool


class SessionCountResponse(BaseModel):
    status: SessionStatus
    count: int
