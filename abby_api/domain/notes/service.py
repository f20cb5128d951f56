"""Session notes - Clinical notes a doctor keeps against their sessions"""

import logging
from typing import Any, Optional

from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...database import unit_of_work
from ...models import SessionNote, TherapySession, User

logger = logging.getLogger(__name__)


class SessionNoteCreate(BaseModel):
    sessionId: Optional[str] = None
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    diagnosis: Optional[str] = None
    treatmentPlan: Optional[str] = None
    nextSteps: Optional[str] = None


class SessionNoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[list[str]] = None
    diagnosis: Optional[str] = None
    treatmentPlan: Optional[str] = None
    nextSteps: Optional[str] = None


def note_to_dict(note: SessionNote) -> dict[str, Any]:
    session = note.session
    client = session.client if session else None
    return {
        "id": note.id,
        "sessionId": note.session_id,
        "doctorId": note.doctor_id,
        "title": note.title,
        "content": note.content,
        "tags": note.tags or [],
        "diagnosis": note.diagnosis,
        "treatmentPlan": note.treatment_plan,
        "nextSteps": note.next_steps,
        "clientId": session.client_id if session else None,
        "clientName": client.full_name if client else None,
        "createdAt": note.created_at,
        "updatedAt": note.updated_at,
    }


class SessionNoteService:
    def __init__(self, db: Session):
        self.db = db

    def list_notes(self, doctor: User, client_id: Optional[str] = None, search: Optional[str] = None) -> list[dict]:
        query = (
            self.db.query(SessionNote)
            .join(TherapySession, SessionNote.session_id == TherapySession.id)
            .options(joinedload(SessionNote.session).joinedload(TherapySession.client))
            .filter(SessionNote.doctor_id == doctor.id)
        )
        if client_id:
            query = query.filter(TherapySession.client_id == client_id)
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(SessionNote.title.ilike(pattern), SessionNote.content.ilike(pattern)))
        return [note_to_dict(n) for n in query.order_by(SessionNote.created_at.desc()).all()]

    def create_note(self, data: SessionNoteCreate, doctor: User) -> dict:
        if not (data.sessionId and (data.title or "").strip() and (data.content or "").strip()):
            raise HTTPException(status_code=400, detail="Session ID, title, and content are required")

        session = (
            self.db.query(TherapySession)
            .filter(TherapySession.id == data.sessionId, TherapySession.doctor_id == doctor.id)
            .first()
        )
        if not session:
            raise HTTPException(status_code=404, detail="Session not found")

        note = SessionNote(
            session_id=session.id,
            doctor_id=doctor.id,
            title=data.title.strip(),
            content=data.content.strip(),
            tags=data.tags or [],
            diagnosis=data.diagnosis,
            treatment_plan=data.treatmentPlan,
            next_steps=data.nextSteps,
        )
        with unit_of_work(self.db):
            self.db.add(note)
        logger.info(f"📝 Doctor {doctor.id} added a note to session {session.id}")
        return {"message": "Session note created successfully", "note": note_to_dict(note)}

    def update_note(self, note_id: str, data: SessionNoteUpdate, doctor: User) -> dict:
        note = (
            self.db.query(SessionNote)
            .filter(SessionNote.id == note_id, SessionNote.doctor_id == doctor.id)
            .first()
        )
        if not note:
            raise HTTPException(status_code=404, detail="Session note not found")

        fields = {
            "title": "title",
            "content": "content",
            "tags": "tags",
            "diagnosis": "diagnosis",
            "treatmentPlan": "treatment_plan",
            "nextSteps": "next_steps",
        }
        with unit_of_work(self.db):
            for field, value in data.model_dump(exclude_none=True).items():
                setattr(note, fields[field], value)
        return {"message": "Session note updated successfully", "note": note_to_dict(note)}
