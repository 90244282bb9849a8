# tutorslot/services/conflicts.py
import logging
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from tutorslot.models.session import ACTIVE_STATUSES, TutoringSession

logger = logging.getLogger(__name__)


def session_window(start: datetime, duration_minutes: int) -> Tuple[datetime, datetime]:
    """Half-open ``[start, end)`` occupied by a session."""
    return start, start + timedelta(minutes=duration_minutes)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    return start_a < end_b and start_b < end_a


def find_conflicts(
    start: datetime,
    end: datetime,
    sessions: Iterable[TutoringSession],
    exclude_id: Optional[int] = None,
) -> List[TutoringSession]:
    """Linear scan; only SCHEDULED/CONFIRMED sessions can conflict."""
    conflicts = []
    for existing in sessions:
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if existing.status not in ACTIVE_STATUSES:
            continue
        existing_start, existing_end = session_window(
            existing.scheduled_start, existing.duration_minutes
        )
        if overlaps(start, end, existing_start, existing_end):
            conflicts.append(existing)
    return conflicts


class ConflictDetector:
    """
    Checks a candidate time window against a tutor's active sessions.

    The store narrows the candidates with an indexed range query; the final
    overlap decision is made here so it does not depend on how a given
    backend compares timestamps.
    """

    def __init__(self, store):
        self.store = store

    def conflicts(
        self,
        tutor_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> List[TutoringSession]:
        candidates = self.store.list_active_conflicting(tutor_id, start, end, exclude_id=exclude_id)
        found = find_conflicts(start, end, candidates, exclude_id=exclude_id)
        if found:
            logger.warning(
                "Found %d conflicting session(s) for tutor %s between %s and %s",
                len(found),
                tutor_id,
                start,
                end,
            )
        return found

    def has_conflict(
        self,
        tutor_id: int,
        start: datetime,
        end: datetime,
        exclude_id: Optional[int] = None,
    ) -> bool:
        return len(self.conflicts(tutor_id, start, end, exclude_id=exclude_id)) > 0
