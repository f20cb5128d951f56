import pytest
from fastapi import HTTPException
from sqlalchemy import update

from abby_api.domain.certifications.evaluator import ensure_default_certifications
from abby_api.domain.sessions import service as session_service_module
from abby_api.domain.sessions.schemas import ClientCompleteRequest, SessionRequestCreate
from abby_api.domain.sessions.service import SessionService, resolve_quiz_score
from abby_api.models import ClientProfile, QuizResult, TherapySession, UserCertification


@pytest.fixture
def service(db):
    return SessionService(db)


def book(service, client, **overrides):
    data = {"preferredDate": "2030-01-15", "preferredTime": "10:30", "reason": "Work stress"}
    data.update(overrides)
    return service.book_session(SessionRequestCreate(**data), client)


def in_progress_ai_session(service, client):
    return service.start_ai_session(client)["id"]


def profile_for(db, user):
    db.expire_all()
    return db.query(ClientProfile).filter(ClientProfile.user_id == user.id).one()


# ----------------------------------------------------------------------
# Booking
# ----------------------------------------------------------------------


def test_human_booking_without_doctor_needs_assignment(service, client_user):
    result = book(service, client_user)
    assert result["needsApproval"] is True
    assert result["session"]["status"] == "pending"
    assert result["session"]["needsAssignment"] is True
    assert result["session"]["scheduledAt"].isoformat() == "2030-01-15T10:30:00"


def test_human_booking_with_doctor_is_scheduled(service, client_user, doctor_user):
    result = book(service, client_user, doctorId=doctor_user.id)
    assert result["needsApproval"] is False
    assert result["session"]["status"] == "scheduled"
    assert result["session"]["doctorId"] == doctor_user.id


def test_ai_booking_is_scheduled(service, client_user):
    result = book(service, client_user, sessionType="ai")
    assert result["session"]["status"] == "scheduled"
    assert result["session"]["needsAssignment"] is False


@pytest.mark.parametrize("missing", ["preferredDate", "preferredTime", "reason"])
def test_booking_requires_date_time_and_reason(service, client_user, missing):
    with pytest.raises(HTTPException) as exc:
        book(service, client_user, **{missing: None})
    assert exc.value.status_code == 400


def test_booking_with_unapproved_doctor_is_refused(db, service, client_user, make_user):
    doctor = make_user("doctor", approved=False)
    with pytest.raises(HTTPException) as exc:
        book(service, client_user, doctorId=doctor.id)
    assert exc.value.status_code == 400
    assert db.query(TherapySession).count() == 0


# ----------------------------------------------------------------------
# Client completion
# ----------------------------------------------------------------------


def test_skip_cancels_without_quiz_or_progress(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)

    result = service.complete_as_client(session_id, ClientCompleteRequest(skipped=True, quizScore=95), client_user)

    assert result["session"]["status"] == "cancelled"
    assert result["session"]["summary"] == "Quiz skipped"
    assert result["session"]["endedAt"] is not None
    assert db.query(QuizResult).count() == 0
    profile = profile_for(db, client_user)
    assert profile.total_sessions_completed == 0
    assert profile.total_quizzes_completed == 0


def test_passing_quiz_increments_counters_by_one(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)

    result = service.complete_as_client(
        session_id, ClientCompleteRequest(quizScore=85, rating=5, feedback="Helpful"), client_user
    )

    assert result["session"]["status"] == "completed"
    assert result["session"]["clientRating"] == 5
    assert result["quizResult"]["score"] == 85
    profile = profile_for(db, client_user)
    assert profile.total_sessions_completed == 1
    assert profile.total_quizzes_completed == 1
    assert profile.progress_level == 1


def test_failing_quiz_records_result_without_progress(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)

    service.complete_as_client(session_id, ClientCompleteRequest(quizScore=50), client_user)

    assert db.query(QuizResult).count() == 1
    profile = profile_for(db, client_user)
    assert profile.total_sessions_completed == 0
    assert profile.progress_level == 1


def test_quiz_score_computed_from_answers(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)
    answers = [
        {"question": "Breathing helps?", "answer": 0, "isCorrect": True},
        {"question": "Name a trigger", "answer": 2, "isCorrect": True},
        {"question": "Best grounding step?", "answer": 1, "isCorrect": False},
        {"question": "When to ask for help?", "answer": 3, "isCorrect": True},
    ]

    result = service.complete_as_client(session_id, ClientCompleteRequest(quizAnswers=answers), client_user)

    assert result["quizResult"]["score"] == 75
    assert result["quizResult"]["answers"] == [0, 2, 1, 3]
    assert result["quizResult"]["totalQuestions"] == 4
    assert profile_for(db, client_user).total_quizzes_completed == 1


def test_resolve_quiz_score():
    assert resolve_quiz_score(None, None) is None
    assert resolve_quiz_score([], None) is None
    assert resolve_quiz_score([{"isCorrect": True}], 42.4) == 42
    assert resolve_quiz_score([{"isCorrect": True}, 1], None) == 50


def test_second_completion_is_rejected_and_does_not_double_count(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)
    service.complete_as_client(session_id, ClientCompleteRequest(quizScore=90), client_user)

    with pytest.raises(HTTPException) as exc:
        service.complete_as_client(session_id, ClientCompleteRequest(quizScore=90), client_user)

    assert exc.value.status_code == 400
    assert db.query(QuizResult).count() == 1
    assert profile_for(db, client_user).total_sessions_completed == 1


def test_counters_increment_from_stored_values(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)
    profile = db.query(ClientProfile).filter(ClientProfile.user_id == client_user.id).one()
    assert profile.total_sessions_completed == 0
    # Another request completes sessions after this profile was loaded
    db.execute(
        update(ClientProfile)
        .where(ClientProfile.id == profile.id)
        .values(total_sessions_completed=5, total_quizzes_completed=5)
        .execution_options(synchronize_session=False)
    )

    service.complete_as_client(session_id, ClientCompleteRequest(quizScore=90), client_user)

    profile = profile_for(db, client_user)
    assert profile.total_sessions_completed == 6
    assert profile.total_quizzes_completed == 6
    assert profile.progress_level == 4


def test_duplicate_quiz_result_is_a_bad_request(db, service, client_user):
    session_id = in_progress_ai_session(service, client_user)
    # Quiz row written by a concurrent completion of the same session
    db.add(QuizResult(session_id=session_id, user_id=client_user.id, score=90, total_questions=0))
    db.commit()

    with pytest.raises(HTTPException) as exc:
        service.complete_as_client(session_id, ClientCompleteRequest(quizScore=90), client_user)

    assert exc.value.status_code == 400
    assert exc.value.detail == "Session has already been completed"
    assert profile_for(db, client_user).total_sessions_completed == 0
    assert db.get(TherapySession, session_id).status == "in-progress"


def test_two_passing_completions_award_first_certification(db, service, client_user):
    ensure_default_certifications(db)
    db.commit()

    first = service.complete_as_client(
        in_progress_ai_session(service, client_user), ClientCompleteRequest(quizScore=85), client_user
    )
    assert first["newCertifications"] == []
    assert profile_for(db, client_user).progress_level == 1

    second = service.complete_as_client(
        in_progress_ai_session(service, client_user), ClientCompleteRequest(quizScore=85), client_user
    )
    profile = profile_for(db, client_user)
    assert profile.total_sessions_completed == 2
    assert profile.total_quizzes_completed == 2
    assert profile.progress_level == 2
    assert [c["certification"]["name"] for c in second["newCertifications"]] == ["Anxiety Management Basics"]


def test_latest_score_below_minimum_blocks_award(db, service, client_user):
    ensure_default_certifications(db)
    db.commit()

    service.complete_as_client(
        in_progress_ai_session(service, client_user), ClientCompleteRequest(quizScore=95), client_user
    )
    second = service.complete_as_client(
        in_progress_ai_session(service, client_user), ClientCompleteRequest(quizScore=75), client_user
    )

    assert second["newCertifications"] == []
    assert profile_for(db, client_user).total_sessions_completed == 2
    assert db.query(UserCertification).count() == 0


def test_evaluator_failure_keeps_completion(db, service, client_user, monkeypatch):
    def broken_evaluator(*args, **kwargs):
        raise RuntimeError("evaluator down")

    monkeypatch.setattr(session_service_module, "evaluate_certifications", broken_evaluator)
    session_id = in_progress_ai_session(service, client_user)

    result = service.complete_as_client(session_id, ClientCompleteRequest(quizScore=88), client_user)

    assert result["newCertifications"] == []
    db.expire_all()
    assert db.get(TherapySession, session_id).status == "completed"
    assert profile_for(db, client_user).total_sessions_completed == 1


# ----------------------------------------------------------------------
# Assignment and review
# ----------------------------------------------------------------------


@pytest.mark.parametrize("doctor_kwargs", [{"is_active": False}, {"approved": False}])
def test_assigning_unusable_doctor_changes_nothing(db, service, client_user, admin_user, make_user, doctor_kwargs):
    session_id = book(service, client_user)["session"]["id"]
    doctor = make_user("doctor", **doctor_kwargs)

    with pytest.raises(HTTPException) as exc:
        service.assign_doctor(session_id, doctor.id, admin_user)

    assert exc.value.status_code == 400
    db.expire_all()
    session = db.get(TherapySession, session_id)
    assert session.doctor_id is None
    assert session.status == "pending"


def test_assigning_client_as_doctor_is_refused(service, client_user, admin_user, make_user):
    session_id = book(service, client_user)["session"]["id"]
    other_client = make_user("client")
    with pytest.raises(HTTPException) as exc:
        service.assign_doctor(session_id, other_client.id, admin_user)
    assert exc.value.status_code == 400


def test_assigning_unknown_doctor_is_not_found(service, client_user, admin_user):
    session_id = book(service, client_user)["session"]["id"]
    with pytest.raises(HTTPException) as exc:
        service.assign_doctor(session_id, "missing", admin_user)
    assert exc.value.status_code == 404


def test_assign_schedules_pending_session(service, client_user, doctor_user, admin_user):
    session_id = book(service, client_user)["session"]["id"]

    result = service.assign_doctor(session_id, doctor_user.id, admin_user)

    assert result["session"]["status"] == "scheduled"
    assert result["session"]["doctorId"] == doctor_user.id
    assert result["session"]["doctorName"] == doctor_user.full_name
    assert result["session"]["needsAssignment"] is False


def test_review_finalizes_once(db, service, client_user, doctor_user, admin_user):
    session = TherapySession(
        client_id=client_user.id, doctor_id=doctor_user.id, type="human", status="pending-approval", notes="ok"
    )
    db.add(session)
    db.commit()

    result = service.review_session(session.id, True, admin_user)
    assert result["session"]["reviewApproved"] is True
    assert result["session"]["reviewedAt"] is not None

    with pytest.raises(HTTPException) as exc:
        service.review_session(session.id, False, admin_user)
    assert exc.value.status_code == 400
