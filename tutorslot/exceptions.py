# tutorslot/exceptions.py
"""
Domain exceptions for the scheduling engine.

Services raise these; the API layer turns them into HTTP responses through
``to_http_exception``.
"""

from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class DomainError(Exception):
    """Base exception for all scheduling errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """A required field is missing or out of range."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    """A referenced session, tutor or student does not exist."""

    status_code = status.HTTP_404_NOT_FOUND


class EmptyCollectionError(NotFoundError):
    """A fallback lookup found nothing to pick from."""


class ConflictError(DomainError):
    """The requested slot overlaps an active session of the same tutor."""

    status_code = status.HTTP_409_CONFLICT


class InvalidStateError(ConflictError):
    """The session's current status does not allow the attempted action."""

    def __init__(self, current_status: Any, trigger: Any, message: Optional[str] = None) -> None:
        self.current_status = current_status
        self.trigger = trigger
        current = getattr(current_status, "value", current_status)
        action = getattr(trigger, "value", trigger)
        super().__init__(
            message or f"Cannot {action} a session in status {current}",
            details={"current_status": current, "trigger": action},
        )


class ConcurrencyError(DomainError):
    """The session changed underneath a read-modify-write; reload and retry."""

    status_code = status.HTTP_409_CONFLICT


class IntegrityError(DomainError):
    """A referenced tutor or student disappeared while the write was in flight."""
