"""Session repository - Database operations for therapy sessions"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import ChatMessage, QuizResult, TherapySession, User


class SessionRepository:
    """Repository for therapy session database operations"""

    @staticmethod
    def get_session(db: Session, session_id: str) -> Optional[TherapySession]:
        return db.query(TherapySession).filter(TherapySession.id == session_id).first()

    @staticmethod
    def get_client_session(db: Session, session_id: str, client_id: str) -> Optional[TherapySession]:
        """Get a session only if it belongs to the client"""
        return (
            db.query(TherapySession)
            .filter(TherapySession.id == session_id, TherapySession.client_id == client_id)
            .first()
        )

    @staticmethod
    def get_doctor_session(db: Session, session_id: str, doctor_id: str) -> Optional[TherapySession]:
        """Get a session only if it is assigned to the doctor"""
        return (
            db.query(TherapySession)
            .filter(TherapySession.id == session_id, TherapySession.doctor_id == doctor_id)
            .first()
        )

    @staticmethod
    def list_sessions(
        db: Session,
        client_id: Optional[str] = None,
        doctor_id: Optional[str] = None,
        status: Optional[str] = None,
        session_type: Optional[str] = None,
        scheduled_from: Optional[datetime] = None,
        scheduled_to: Optional[datetime] = None,
        unassigned: Optional[bool] = None,
        limit: Optional[int] = None,
        newest_first_by: str = "scheduled_at",
    ) -> list[TherapySession]:
        query = db.query(TherapySession).options(
            joinedload(TherapySession.client),
            joinedload(TherapySession.doctor),
            joinedload(TherapySession.quiz_result),
        )
        if client_id:
            query = query.filter(TherapySession.client_id == client_id)
        if doctor_id:
            query = query.filter(TherapySession.doctor_id == doctor_id)
        if status:
            query = query.filter(TherapySession.status == status)
        if session_type:
            query = query.filter(TherapySession.type == session_type)
        if scheduled_from:
            query = query.filter(TherapySession.scheduled_at >= scheduled_from)
        if scheduled_to:
            query = query.filter(TherapySession.scheduled_at < scheduled_to)
        if unassigned is True:
            query = query.filter(TherapySession.type == "human", TherapySession.doctor_id.is_(None))
        elif unassigned is False:
            query = query.filter(
                (TherapySession.type != "human") | TherapySession.doctor_id.isnot(None)
            )

        order_column = getattr(TherapySession, newest_first_by)
        query = query.order_by(order_column.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    @staticmethod
    def next_scheduled_session(db: Session, client_id: str, now: datetime) -> Optional[TherapySession]:
        return (
            db.query(TherapySession)
            .filter(
                TherapySession.client_id == client_id,
                TherapySession.status == "scheduled",
                TherapySession.scheduled_at >= now,
            )
            .order_by(TherapySession.scheduled_at.asc())
            .first()
        )

    @staticmethod
    def count(db: Session, **filters) -> int:
        query = db.query(TherapySession)
        for key, value in filters.items():
            query = query.filter(getattr(TherapySession, key) == value)
        return query.count()

    @staticmethod
    def add(db: Session, session: TherapySession) -> TherapySession:
        db.add(session)
        db.flush()
        return session

    @staticmethod
    def add_message(db: Session, session_id: str, sender: str, content: str, message_type: str = "text") -> ChatMessage:
        message = ChatMessage(session_id=session_id, sender=sender, content=content, type=message_type)
        db.add(message)
        db.flush()
        return message

    @staticmethod
    def list_messages(db: Session, session_id: str) -> list[ChatMessage]:
        return (
            db.query(ChatMessage)
            .filter(ChatMessage.session_id == session_id)
            .order_by(ChatMessage.created_at.asc())
            .all()
        )

    @staticmethod
    def add_quiz_result(db: Session, **data) -> QuizResult:
        result = QuizResult(**data)
        db.add(result)
        db.flush()
        return result

    @staticmethod
    def quiz_results_for_user(db: Session, user_id: str) -> list[QuizResult]:
        return (
            db.query(QuizResult)
            .filter(QuizResult.user_id == user_id)
            .order_by(QuizResult.completed_at.asc())
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).options(joinedload(User.doctor_profile)).filter(User.id == user_id).first()
