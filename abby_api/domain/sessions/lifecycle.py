"""
Session lifecycle rules

Session statuses: pending → scheduled → in-progress → completed → pending-approval
pending / scheduled / in-progress can also be cancelled (terminal).

All status changes go through ensure_transition so the table below is the only
place that decides which moves are legal.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)

# Quiz score needed for a completion to count towards progress
PASSING_QUIZ_SCORE = 70
MAX_PROGRESS_LEVEL = 5
# Summary stored when a client leaves an AI session without taking the quiz
SKIPPED_SUMMARY = "Quiz skipped"


class SessionType(str, Enum):
    AI = "ai"
    HUMAN = "human"


class SessionStatus(str, Enum):
    PENDING = "pending"  # Human session waiting for an admin to pick a doctor
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    PENDING_APPROVAL = "pending-approval"  # Doctor notes submitted for admin review


VALID_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.PENDING: frozenset({SessionStatus.SCHEDULED, SessionStatus.CANCELLED}),
    SessionStatus.SCHEDULED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.CANCELLED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED}),
    SessionStatus.COMPLETED: frozenset({SessionStatus.PENDING_APPROVAL}),
    SessionStatus.CANCELLED: frozenset(),  # Terminal state
    SessionStatus.PENDING_APPROVAL: frozenset(),  # Terminal state; only the admin review remains
}

# Entering one of these stamps ended_at
ENDING_STATUSES = frozenset({SessionStatus.COMPLETED, SessionStatus.CANCELLED})


class InvalidTransitionError(ValueError):
    """Raised when a session is asked to move to a status the table does not allow"""

    def __init__(self, current: str, target: str, message: Optional[str] = None):
        # Accept SessionStatus members as well as raw status strings
        self.current = getattr(current, "value", current)
        self.target = getattr(target, "value", target)
        super().__init__(message or f"Cannot move session from '{self.current}' to '{self.target}'")


class MeetingUrlRequiredError(InvalidTransitionError):
    """A human session cannot start until the doctor has attached a meeting link"""

    def __init__(self, current: str):
        super().__init__(
            current,
            SessionStatus.IN_PROGRESS.value,
            "Please add a meeting URL before starting this session",
        )


def can_transition(current: str, target: str) -> bool:
    try:
        return SessionStatus(target) in VALID_TRANSITIONS[SessionStatus(current)]
    except ValueError:
        return False


def ensure_transition(current: str, target: str) -> SessionStatus:
    """
    Validate a status change

    Returns:
        The target status as a SessionStatus

    Raises:
        InvalidTransitionError: If the move is not in VALID_TRANSITIONS
    """
    if not can_transition(current, target):
        raise InvalidTransitionError(current, target)
    return SessionStatus(target)


def apply_transition(session, target: SessionStatus, now: Optional[datetime] = None) -> None:
    """Move a session to `target`, stamping ended_at when the session ends"""
    previous = session.status
    target = ensure_transition(previous, target)
    session.status = target.value
    if target in ENDING_STATUSES:
        session.ended_at = now or datetime.utcnow()
    logger.info(f"✅ Session {session.id} transitioned: {previous} → {target.value}")


def needs_assignment(session_type: str, doctor_id: Optional[str]) -> bool:
    """A human session booked without a therapist waits for an admin"""
    return session_type == SessionType.HUMAN.value and not doctor_id


def booking_status(session_type: str, doctor_id: Optional[str]) -> SessionStatus:
    if needs_assignment(session_type, doctor_id):
        return SessionStatus.PENDING
    return SessionStatus.SCHEDULED


def start_session(session, now: Optional[datetime] = None) -> None:
    """
    Move a session to in-progress.

    Human sessions are refused until a meeting URL has been set; the session is
    left untouched in that case.
    """
    ensure_transition(session.status, SessionStatus.IN_PROGRESS)
    if session.type == SessionType.HUMAN.value and not (session.meeting_url or "").strip():
        raise MeetingUrlRequiredError(session.status)
    apply_transition(session, SessionStatus.IN_PROGRESS)
    session.started_at = now or datetime.utcnow()


def quiz_passed(score: Optional[float]) -> bool:
    return score is not None and score >= PASSING_QUIZ_SCORE


def progress_level(total_sessions_completed: int) -> int:
    return min(MAX_PROGRESS_LEVEL, total_sessions_completed // 2 + 1)
