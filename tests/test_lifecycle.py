from datetime import datetime
from types import SimpleNamespace

import pytest

from abby_api.domain.sessions.lifecycle import (
    InvalidTransitionError,
    MeetingUrlRequiredError,
    SessionStatus,
    apply_transition,
    booking_status,
    can_transition,
    ensure_transition,
    needs_assignment,
    progress_level,
    quiz_passed,
    start_session,
)


def make_session(status="scheduled", session_type="human", meeting_url=None):
    return SimpleNamespace(
        id="s1", status=status, type=session_type, meeting_url=meeting_url, started_at=None, ended_at=None
    )


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "scheduled"),
        ("pending", "cancelled"),
        ("scheduled", "in-progress"),
        ("scheduled", "cancelled"),
        ("in-progress", "completed"),
        ("in-progress", "cancelled"),
        ("completed", "pending-approval"),
    ],
)
def test_allowed_transitions(current, target):
    assert can_transition(current, target)
    assert ensure_transition(current, target) == SessionStatus(target)


@pytest.mark.parametrize(
    "current,target",
    [
        ("pending", "in-progress"),
        ("scheduled", "completed"),
        ("completed", "completed"),
        ("completed", "cancelled"),
        ("cancelled", "scheduled"),
        ("cancelled", "cancelled"),
        ("pending-approval", "completed"),
        ("in-progress", "unknown"),
    ],
)
def test_rejected_transitions(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidTransitionError):
        ensure_transition(current, target)


def test_refused_transition_message_uses_status_values():
    session = SimpleNamespace(id="s-1", status="scheduled", ended_at=None)

    with pytest.raises(InvalidTransitionError) as exc:
        apply_transition(session, SessionStatus.COMPLETED)

    assert str(exc.value) == "Cannot move session from 'scheduled' to 'completed'"
    assert exc.value.target == "completed"


def test_booking_status_and_assignment():
    assert booking_status("human", None) == SessionStatus.PENDING
    assert needs_assignment("human", None)
    assert booking_status("human", "doc-1") == SessionStatus.SCHEDULED
    assert not needs_assignment("human", "doc-1")
    assert booking_status("ai", None) == SessionStatus.SCHEDULED
    assert not needs_assignment("ai", None)


def test_apply_transition_stamps_ended_at_only_when_ending():
    session = make_session(status="scheduled")
    apply_transition(session, SessionStatus.IN_PROGRESS)
    assert session.status == "in-progress"
    assert session.ended_at is None

    ended = datetime(2024, 5, 1, 10, 0)
    apply_transition(session, SessionStatus.COMPLETED, now=ended)
    assert session.status == "completed"
    assert session.ended_at == ended


def test_start_human_session_without_meeting_url_is_refused():
    session = make_session(status="scheduled", meeting_url="   ")
    with pytest.raises(MeetingUrlRequiredError):
        start_session(session)
    assert session.status == "scheduled"
    assert session.started_at is None


def test_start_human_session_with_meeting_url():
    session = make_session(status="scheduled", meeting_url="https://meet.example.com/abc")
    start_session(session)
    assert session.status == "in-progress"
    assert session.started_at is not None


def test_start_ai_session_does_not_need_meeting_url():
    session = make_session(status="scheduled", session_type="ai")
    start_session(session)
    assert session.status == "in-progress"


def test_start_pending_session_is_an_invalid_transition():
    session = make_session(status="pending", meeting_url="https://meet.example.com/abc")
    with pytest.raises(InvalidTransitionError):
        start_session(session)
    assert session.status == "pending"


@pytest.mark.parametrize("sessions,level", [(0, 1), (1, 1), (2, 2), (3, 2), (7, 4), (8, 5), (20, 5)])
def test_progress_level(sessions, level):
    assert progress_level(sessions) == level


def test_quiz_passed():
    assert quiz_passed(70)
    assert quiz_passed(100)
    assert not quiz_passed(69)
    assert not quiz_passed(None)
