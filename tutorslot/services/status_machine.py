# tutorslot/services/status_machine.py
"""
Session lifecycle.

SCHEDULED -> CONFIRMED -> COMPLETED, with CANCELLED reachable from either
active state. COMPLETED and CANCELLED are terminal. This module is the only
place that writes ``TutoringSession.status``.
"""

import enum
from typing import Dict, Tuple

from tutorslot.exceptions import InvalidStateError
from tutorslot.models.session import SessionStatus, TutoringSession


class Trigger(str, enum.Enum):
    CONFIRM = "confirm"
    COMPLETE = "complete"
    CANCEL = "cancel"


TRANSITIONS: Dict[Tuple[SessionStatus, Trigger], SessionStatus] = {
    (SessionStatus.SCHEDULED, Trigger.CONFIRM): SessionStatus.CONFIRMED,
    (SessionStatus.SCHEDULED, Trigger.CANCEL): SessionStatus.CANCELLED,
    (SessionStatus.CONFIRMED, Trigger.COMPLETE): SessionStatus.COMPLETED,
    (SessionStatus.CONFIRMED, Trigger.CANCEL): SessionStatus.CANCELLED,
}

INITIAL_STATUS = SessionStatus.SCHEDULED
TERMINAL_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})


class StatusMachine:

    def initialize(self, session: TutoringSession) -> TutoringSession:
        session.status = INITIAL_STATUS
        return session

    def next_status(self, current: SessionStatus, trigger: Trigger) -> SessionStatus:
        try:
            return TRANSITIONS[(SessionStatus(current), Trigger(trigger))]
        except KeyError:
            raise InvalidStateError(current, trigger) from None

    def can_apply(self, current: SessionStatus, trigger: Trigger) -> bool:
        return (SessionStatus(current), Trigger(trigger)) in TRANSITIONS

    def apply(self, session: TutoringSession, trigger: Trigger) -> TutoringSession:
        session.status = self.next_status(session.status, trigger)
        return session

    def ensure_mutable(self, session: TutoringSession, action: str) -> None:
        """Field edits are only allowed while the session is still active."""
        if SessionStatus(session.status) in TERMINAL_STATUSES:
            raise InvalidStateError(session.status, action)
