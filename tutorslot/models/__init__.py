# tutorslot/models/__init__.py
# Import models in dependency order
from .people import Tutor, Student
from .session import TutoringSession, SessionStatus, ACTIVE_STATUSES  # Import session LAST

__all__ = ["Tutor", "Student", "TutoringSession", "SessionStatus", "ACTIVE_STATUSES"]
