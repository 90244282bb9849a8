# tutorslot/schemas/__init__.py

# Session schemas
from .session import (
    SessionCreate,
    BookingRequest,
    SessionUpdate,
    SessionReschedule,
    SessionResponse,
    CancellationFeeResponse,
    ConflictCheckResponse,
    SessionCountResponse,
)

__all__ = [
    "SessionCreate",
    "BookingRequest",
    "SessionUpdate",
    "SessionReschedule",
    "SessionResponse",
    "CancellationFeeResponse",
    "ConflictCheckResponse",
    "SessionCountResponse",
]
