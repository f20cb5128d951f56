"""Session service - Booking, lifecycle and completion of therapy sessions"""

import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import HTTPException
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import COHERE_MODEL
from ...database import unit_of_work
from ...models import ClientProfile, TherapySession, User
from ...services.ai_chat import generate_ai_reply
from ...shared.validators import parse_date, parse_preferred_datetime
from ..certifications.evaluator import evaluate_certifications
from ..certifications.schemas import award_to_dict
from .assignment import ASSIGNABLE_STATUSES, check_doctor_assignable
from .lifecycle import (
    SKIPPED_SUMMARY,
    InvalidTransitionError,
    MeetingUrlRequiredError,
    SessionStatus,
    SessionType,
    apply_transition,
    booking_status,
    needs_assignment,
    progress_level,
    quiz_passed,
    start_session,
)
from .repository import SessionRepository
from .schemas import (
    ChatMessageCreate,
    ClientCompleteRequest,
    DoctorCompleteRequest,
    SessionRequestCreate,
    message_to_dict,
    quiz_result_to_dict,
    session_to_dict,
)

logger = logging.getLogger(__name__)

DEFAULT_AI_TOPIC = "AI Therapy Session"


@contextmanager
def lifecycle_errors():
    """Surface lifecycle refusals as 400 responses"""
    try:
        yield
    except MeetingUrlRequiredError as e:
        raise HTTPException(
            status_code=400, detail={"error": str(e), "requiresMeetingUrl": True}
        ) from e
    except InvalidTransitionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def resolve_quiz_score(answers: Optional[list[Any]], score: Optional[float]) -> Optional[int]:
    """
    Score for a quiz submission: the explicit score when given, otherwise the
    share of answers marked isCorrect. None when no quiz data was sent.
    """
    if score is not None:
        return round(score)
    if not answers:
        return None
    correct = sum(1 for a in answers if isinstance(a, dict) and a.get("isCorrect"))
    return round(correct / len(answers) * 100)


class SessionService:
    """Service layer for session business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SessionRepository()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_client_session(self, session_id: str, client: User) -> TherapySession:
        session = self.repo.get_client_session(self.db, session_id, client.id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def get_doctor_session(self, session_id: str, doctor: User) -> TherapySession:
        session = self.repo.get_doctor_session(self.db, session_id, doctor.id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def get_session(self, session_id: str) -> TherapySession:
        session = self.repo.get_session(self.db, session_id)
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")
        return session

    def _client_profile(self, client_id: str) -> ClientProfile:
        profile = self.db.query(ClientProfile).filter(ClientProfile.user_id == client_id).first()
        if not profile:
            profile = ClientProfile(user_id=client_id)
            self.db.add(profile)
            self.db.flush()
        return profile

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_client_sessions(
        self, client: User, status: Optional[str] = None, session_type: Optional[str] = None
    ) -> list[dict]:
        sessions = self.repo.list_sessions(
            self.db, client_id=client.id, status=status, session_type=session_type
        )
        return [session_to_dict(s) for s in sessions]

    def list_doctor_sessions(
        self, doctor: User, status: Optional[str] = None, date: Optional[str] = None
    ) -> list[dict]:
        scheduled_from = scheduled_to = None
        if date:
            try:
                scheduled_from = parse_date(date).replace(hour=0, minute=0, second=0, microsecond=0)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e
            scheduled_to = scheduled_from + timedelta(days=1)

        sessions = self.repo.list_sessions(
            self.db,
            doctor_id=doctor.id,
            status=status,
            scheduled_from=scheduled_from,
            scheduled_to=scheduled_to,
        )
        return [session_to_dict(s) for s in sessions]

    def list_all_sessions(
        self, status: Optional[str] = None, unassigned: Optional[bool] = None
    ) -> list[dict]:
        sessions = self.repo.list_sessions(
            self.db, status=status, unassigned=unassigned, newest_first_by="created_at"
        )
        return [session_to_dict(s) for s in sessions]

    # ------------------------------------------------------------------
    # Booking and AI chat
    # ------------------------------------------------------------------

    def book_session(self, data: SessionRequestCreate, client: User) -> dict:
        """Create a human or AI session request for the client"""
        if not (data.preferredDate and data.preferredTime and (data.reason or "").strip()):
            raise HTTPException(
                status_code=400, detail="Preferred date, time, and reason are required"
            )
        if data.sessionType not in (SessionType.HUMAN.value, SessionType.AI.value):
            raise HTTPException(status_code=400, detail="Session type must be 'human' or 'ai'")

        try:
            scheduled_at = parse_preferred_datetime(data.preferredDate, data.preferredTime)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        doctor_id = data.doctorId or None
        if doctor_id:
            check_doctor_assignable(self.repo.get_user(self.db, doctor_id))

        session = TherapySession(
            client_id=client.id,
            doctor_id=doctor_id,
            type=data.sessionType,
            status=booking_status(data.sessionType, doctor_id).value,
            scheduled_at=scheduled_at,
            topic=data.reason.strip(),
            ai_model=COHERE_MODEL if data.sessionType == SessionType.AI.value else None,
        )
        with unit_of_work(self.db):
            self.repo.add(self.db, session)

        logger.info(f"📅 Client {client.id} booked {session.type} session {session.id} ({session.status})")
        pending = needs_assignment(session.type, session.doctor_id)
        return {
            "message": (
                "Session request submitted. An administrator will assign a therapist shortly."
                if pending
                else "Session booked successfully"
            ),
            "session": session_to_dict(session),
            "needsApproval": pending,
        }

    def start_ai_session(self, client: User, topic: Optional[str] = None) -> dict:
        now = datetime.utcnow()
        session = TherapySession(
            client_id=client.id,
            type=SessionType.AI.value,
            status=SessionStatus.IN_PROGRESS.value,
            scheduled_at=now,
            started_at=now,
            topic=(topic or "").strip() or DEFAULT_AI_TOPIC,
            ai_model=COHERE_MODEL,
        )
        with unit_of_work(self.db):
            self.repo.add(self.db, session)
        logger.info(f"🤖 Client {client.id} started AI session {session.id}")
        return session_to_dict(session)

    def start_as_client(self, session_id: str, client: User) -> dict:
        """Open a booked AI session. Human sessions are started by their doctor."""
        session = self.get_client_session(session_id, client)
        if session.type != SessionType.AI.value:
            raise HTTPException(status_code=400, detail="Only AI sessions can be started by the client")

        with lifecycle_errors(), unit_of_work(self.db):
            start_session(session)
        logger.info(f"🤖 Client {client.id} started booked AI session {session.id}")
        return {"message": "Session started", "session": session_to_dict(session)}

    def list_messages(self, session_id: str, client: User) -> list[dict]:
        session = self.get_client_session(session_id, client)
        return [message_to_dict(m) for m in self.repo.list_messages(self.db, session.id)]

    async def send_ai_message(self, session_id: str, data: ChatMessageCreate, client: User) -> dict:
        """Store the client's message and the therapist reply"""
        session = self.get_client_session(session_id, client)
        if session.type != SessionType.AI.value:
            raise HTTPException(status_code=400, detail="Messages can only be sent in AI sessions")
        if session.status != SessionStatus.IN_PROGRESS.value:
            raise HTTPException(status_code=400, detail="Session is not in progress")

        content = (data.content or "").strip()
        if not content:
            raise HTTPException(status_code=400, detail="Message content is required")

        history = [
            {"sender": m.sender, "content": m.content}
            for m in self.repo.list_messages(self.db, session.id)
        ]
        with unit_of_work(self.db):
            user_message = self.repo.add_message(self.db, session.id, "user", content, data.type)

        reply = await generate_ai_reply(content, history)

        with unit_of_work(self.db):
            ai_message = self.repo.add_message(self.db, session.id, "ai", reply)

        return {"userMessage": message_to_dict(user_message), "aiMessage": message_to_dict(ai_message)}

    # ------------------------------------------------------------------
    # Client completion
    # ------------------------------------------------------------------

    def complete_as_client(self, session_id: str, data: ClientCompleteRequest, client: User) -> dict:
        """
        Finish a session from the client's side.

        Skipping cancels the session without touching progress. Otherwise the
        session completes; a passing quiz moves the client's counters and may
        award certifications. All of it is committed together.
        """
        session = self.get_client_session(session_id, client)

        if data.skipped:
            with lifecycle_errors(), unit_of_work(self.db):
                apply_transition(session, SessionStatus.CANCELLED)
                session.summary = SKIPPED_SUMMARY
                if data.rating is not None:
                    session.client_rating = data.rating
                if data.feedback:
                    session.client_feedback = data.feedback
            logger.info(f"⏭️ Client {client.id} skipped the quiz for session {session.id}")
            return {"message": "Session ended", "session": session_to_dict(session), "newCertifications": []}

        score = resolve_quiz_score(data.quizAnswers, data.quizScore)
        awarded = []
        quiz_result = None

        try:
            with lifecycle_errors(), unit_of_work(self.db):
                apply_transition(session, SessionStatus.COMPLETED)
                session.client_rating = data.rating
                session.client_feedback = data.feedback

                if score is not None:
                    answers = data.quizAnswers or []
                    quiz_result = self.repo.add_quiz_result(
                        self.db,
                        session_id=session.id,
                        user_id=client.id,
                        questions=[a.get("question") for a in answers if isinstance(a, dict) and a.get("question")],
                        answers=[a.get("answer") if isinstance(a, dict) else a for a in answers],
                        score=score,
                        total_questions=len(answers),
                    )

                if quiz_passed(score):
                    profile = self._increment_progress(client.id)
                    awarded = self._evaluate_certifications(client.id, profile, score)
        except IntegrityError as e:
            # Unique quiz result per session: another request already completed it
            logger.warning(f"⚠️ Duplicate completion for session {session_id}: {e.orig}")
            raise HTTPException(status_code=400, detail="Session has already been completed") from e

        logger.info(f"✅ Client {client.id} completed session {session.id} (score: {score})")
        return {
            "message": "Session completed",
            "session": session_to_dict(session),
            "quizResult": quiz_result_to_dict(quiz_result),
            "newCertifications": [award_to_dict(a) for a in awarded],
        }

    def _increment_progress(self, client_id: str) -> ClientProfile:
        """
        Add one completed session and one completed quiz to the client's profile.
        The increment is applied in SQL to the stored row, not to the loaded values.
        """
        profile = self._client_profile(client_id)
        self.db.execute(
            update(ClientProfile)
            .where(ClientProfile.id == profile.id)
            .values(
                total_sessions_completed=ClientProfile.total_sessions_completed + 1,
                total_quizzes_completed=ClientProfile.total_quizzes_completed + 1,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.refresh(profile)
        profile.progress_level = progress_level(profile.total_sessions_completed)
        self.db.flush()
        return profile

    def _evaluate_certifications(self, user_id: str, profile: ClientProfile, score: int) -> list:
        # Savepoint: a failure here is logged and undone without losing the completion
        try:
            with self.db.begin_nested():
                return evaluate_certifications(
                    self.db,
                    user_id,
                    profile.total_sessions_completed,
                    profile.total_quizzes_completed,
                    score,
                )
        except Exception as e:
            logger.error(f"❌ Certification evaluation failed for user {user_id}: {e}")
            return []

    # ------------------------------------------------------------------
    # Doctor actions
    # ------------------------------------------------------------------

    def start_as_doctor(self, session_id: str, doctor: User) -> dict:
        session = self.get_doctor_session(session_id, doctor)
        with lifecycle_errors(), unit_of_work(self.db):
            start_session(session)
        return {"message": "Session started", "session": session_to_dict(session)}

    def update_meeting_url(self, session_id: str, meeting_url: Optional[str], doctor: User) -> dict:
        session = self.get_doctor_session(session_id, doctor)
        meeting_url = (meeting_url or "").strip()
        if not meeting_url:
            raise HTTPException(status_code=400, detail="Meeting URL is required")
        if session.status not in (
            SessionStatus.PENDING.value,
            SessionStatus.SCHEDULED.value,
            SessionStatus.IN_PROGRESS.value,
        ):
            raise HTTPException(status_code=400, detail="Cannot change the meeting URL of a finished session")

        with unit_of_work(self.db):
            session.meeting_url = meeting_url
        return {"message": "Meeting URL updated", "session": session_to_dict(session)}

    def complete_as_doctor(self, session_id: str, data: DoctorCompleteRequest, doctor: User) -> dict:
        session = self.get_doctor_session(session_id, doctor)
        with lifecycle_errors(), unit_of_work(self.db):
            apply_transition(session, SessionStatus.COMPLETED)
            if data.notes is not None:
                session.notes = data.notes
            if data.summary is not None:
                session.summary = data.summary
            if data.doctorRating is not None:
                session.doctor_rating = data.doctorRating
            if data.meetingUrl and data.meetingUrl.strip():
                session.meeting_url = data.meetingUrl.strip()
        return {"message": "Session completed", "session": session_to_dict(session)}

    def submit_for_review(self, session_id: str, notes: Optional[str], doctor: User) -> dict:
        session = self.get_doctor_session(session_id, doctor)
        notes = (notes or session.notes or "").strip()
        if not notes:
            raise HTTPException(status_code=400, detail="Session notes are required before review")

        with lifecycle_errors(), unit_of_work(self.db):
            apply_transition(session, SessionStatus.PENDING_APPROVAL)
            session.notes = notes
        return {"message": "Session submitted for review", "session": session_to_dict(session)}

    def cancel_as_doctor(self, session_id: str, reason: Optional[str], doctor: User) -> dict:
        session = self.get_doctor_session(session_id, doctor)
        return self._cancel(session, reason, doctor)

    # ------------------------------------------------------------------
    # Admin actions
    # ------------------------------------------------------------------

    def cancel_as_admin(self, session_id: str, reason: Optional[str], admin: User) -> dict:
        return self._cancel(self.get_session(session_id), reason, admin)

    def _cancel(self, session: TherapySession, reason: Optional[str], actor: User) -> dict:
        with lifecycle_errors(), unit_of_work(self.db):
            apply_transition(session, SessionStatus.CANCELLED)
            if reason and reason.strip():
                session.summary = reason.strip()
        logger.info(f"🚫 Session {session.id} cancelled by {actor.role} {actor.id}")
        return {"message": "Session cancelled", "session": session_to_dict(session)}

    def assign_doctor(self, session_id: str, doctor_id: Optional[str], admin: User) -> dict:
        """Attach an approved, active doctor to a human session"""
        session = self.get_session(session_id)
        if session.type != SessionType.HUMAN.value:
            raise HTTPException(status_code=400, detail="Only human sessions can be assigned a doctor")
        if session.status not in ASSIGNABLE_STATUSES:
            raise HTTPException(status_code=400, detail=f"Cannot assign a doctor to a {session.status} session")
        if not doctor_id:
            raise HTTPException(status_code=400, detail="Doctor ID is required")

        doctor = check_doctor_assignable(self.repo.get_user(self.db, doctor_id))

        with lifecycle_errors(), unit_of_work(self.db):
            session.doctor_id = doctor.id
            if session.status == SessionStatus.PENDING.value:
                apply_transition(session, SessionStatus.SCHEDULED)

        logger.info(f"👩‍⚕️ Admin {admin.id} assigned doctor {doctor.id} to session {session.id}")
        data = session_to_dict(session)
        data["doctorName"] = doctor.full_name
        return {"message": "Doctor assigned successfully", "session": data}

    def review_session(self, session_id: str, approved: bool, admin: User) -> dict:
        """Finalize a session whose notes were submitted for review"""
        session = self.get_session(session_id)
        if session.status != SessionStatus.PENDING_APPROVAL.value:
            raise HTTPException(status_code=400, detail="Session is not awaiting review")
        if session.reviewed_at is not None:
            raise HTTPException(status_code=400, detail="Session has already been reviewed")

        with unit_of_work(self.db):
            session.reviewed_at = datetime.utcnow()
            session.reviewed_by = admin.id
            session.review_approved = approved
        return {
            "message": "Session approved" if approved else "Session rejected",
            "session": session_to_dict(session),
        }
