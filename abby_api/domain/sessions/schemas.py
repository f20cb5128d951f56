"""Session domain schemas - Pydantic models for validation and response shaping"""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from ...models import ChatMessage, QuizResult, TherapySession
from ...shared.validators import validate_rating
from .lifecycle import needs_assignment


class SessionRequestCreate(BaseModel):
    """Client booking request. Required fields are checked by the service."""

    preferredDate: Optional[str] = None
    preferredTime: Optional[str] = None
    reason: Optional[str] = None
    doctorId: Optional[str] = None
    sessionType: str = "human"


class AISessionCreate(BaseModel):
    topic: Optional[str] = None


class ChatMessageCreate(BaseModel):
    content: str
    type: str = "text"


class ClientCompleteRequest(BaseModel):
    """Client finishing a session, with or without the reflection quiz"""

    quizAnswers: Optional[list[Any]] = None
    quizScore: Optional[float] = Field(default=None, ge=0, le=100)
    rating: Optional[int] = None
    feedback: Optional[str] = None
    skipped: bool = False

    @field_validator("rating")
    @classmethod
    def check_rating(cls, v):
        return validate_rating(v)


class DoctorCompleteRequest(BaseModel):
    notes: Optional[str] = None
    doctorRating: Optional[int] = None
    summary: Optional[str] = None
    meetingUrl: Optional[str] = None

    @field_validator("doctorRating")
    @classmethod
    def check_rating(cls, v):
        return validate_rating(v)


class MeetingUrlUpdate(BaseModel):
    meetingUrl: Optional[str] = None


class CancelSessionRequest(BaseModel):
    reason: Optional[str] = None


class AssignDoctorRequest(BaseModel):
    doctorId: Optional[str] = None


class SessionReviewRequest(BaseModel):
    approved: bool


def quiz_result_to_dict(result: Optional[QuizResult]) -> Optional[dict]:
    if result is None:
        return None
    return {
        "id": result.id,
        "sessionId": result.session_id,
        "questions": result.questions or [],
        "answers": result.answers or [],
        "score": result.score,
        "totalQuestions": result.total_questions,
        "completedAt": result.completed_at,
    }


def message_to_dict(message: ChatMessage) -> dict:
    return {
        "id": message.id,
        "sessionId": message.session_id,
        "sender": message.sender,
        "content": message.content,
        "type": message.type,
        "timestamp": message.created_at,
    }


def session_to_dict(session: TherapySession) -> dict:
    """Session summary shared by the client, doctor and admin views"""
    return {
        "id": session.id,
        "clientId": session.client_id,
        "doctorId": session.doctor_id,
        "type": session.type,
        "status": session.status,
        "scheduledAt": session.scheduled_at,
        "startedAt": session.started_at,
        "endedAt": session.ended_at,
        "topic": session.topic,
        "summary": session.summary,
        "notes": session.notes,
        "meetingUrl": session.meeting_url,
        "aiModel": session.ai_model,
        "clientRating": session.client_rating,
        "clientFeedback": session.client_feedback,
        "doctorRating": session.doctor_rating,
        "needsAssignment": needs_assignment(session.type, session.doctor_id),
        "clientName": session.client.full_name if session.client else None,
        "doctorName": session.doctor.full_name if session.doctor else None,
        "quizResult": quiz_result_to_dict(session.quiz_result),
        "reviewedAt": session.reviewed_at,
        "reviewApproved": session.review_approved,
        "createdAt": session.created_at,
    }
