import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ..auth import get_current_doctor
from ..database import get_db
from ..domain.dashboards.service import DashboardService
from ..domain.notes.service import SessionNoteCreate, SessionNoteService, SessionNoteUpdate
from ..domain.sessions.schemas import CancelSessionRequest, DoctorCompleteRequest, MeetingUrlUpdate
from ..domain.sessions.service import SessionService
from ..domain.users.schemas import DoctorSettingsUpdate, ScheduleUpdate
from ..domain.users.service import UserService
from ..models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/doctor", tags=["Doctor"])


class SubmitForReviewRequest(BaseModel):
    notes: Optional[str] = None


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    return DashboardService(db).doctor_dashboard(current_user)


# ============================================================================
# SESSIONS
# ============================================================================


@router.get("/sessions")
async def get_sessions(
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
    status: Optional[str] = Query(None),
    date: Optional[str] = Query(None),
):
    return {"sessions": service.list_doctor_sessions(current_user, status=status, date=date)}


@router.post("/sessions/{session_id}/start")
async def start_session(
    session_id: str,
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
):
    """Human sessions need a meeting URL before they can start"""
    return service.start_as_doctor(session_id, current_user)


@router.put("/sessions/{session_id}/meeting-url")
async def update_meeting_url(
    session_id: str,
    data: MeetingUrlUpdate,
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
):
    return service.update_meeting_url(session_id, data.meetingUrl, current_user)


@router.post("/sessions/{session_id}/complete")
async def complete_session(
    session_id: str,
    data: DoctorCompleteRequest,
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
):
    return service.complete_as_doctor(session_id, data, current_user)


@router.post("/sessions/{session_id}/submit-for-review")
async def submit_for_review(
    session_id: str,
    data: Optional[SubmitForReviewRequest] = None,
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
):
    return service.submit_for_review(session_id, data.notes if data else None, current_user)


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(
    session_id: str,
    data: Optional[CancelSessionRequest] = None,
    current_user: User = Depends(get_current_doctor),
    service: SessionService = Depends(get_session_service),
):
    return service.cancel_as_doctor(session_id, data.reason if data else None, current_user)


# ============================================================================
# SCHEDULE AND SETTINGS
# ============================================================================


@router.get("/schedule")
async def get_schedule(
    current_user: User = Depends(get_current_doctor),
    service: UserService = Depends(get_user_service),
    week: Optional[str] = Query(None),
):
    return service.get_schedule(current_user, week)


@router.put("/schedule")
async def update_schedule(
    data: ScheduleUpdate,
    current_user: User = Depends(get_current_doctor),
    service: UserService = Depends(get_user_service),
):
    return service.update_schedule(current_user, data)


@router.get("/settings")
async def get_settings(
    current_user: User = Depends(get_current_doctor),
    service: UserService = Depends(get_user_service),
):
    return service.get_doctor_settings(current_user)


@router.put("/settings")
async def update_settings(
    data: DoctorSettingsUpdate,
    current_user: User = Depends(get_current_doctor),
    service: UserService = Depends(get_user_service),
):
    return service.update_doctor_settings(current_user, data)


# ============================================================================
# SESSION NOTES
# ============================================================================


@router.get("/session-notes")
async def get_session_notes(
    current_user: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
    clientId: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    return {"notes": SessionNoteService(db).list_notes(current_user, client_id=clientId, search=search)}


@router.post("/session-notes", status_code=201)
async def create_session_note(
    data: SessionNoteCreate,
    current_user: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    return SessionNoteService(db).create_note(data, current_user)


@router.put("/session-notes/{note_id}")
async def update_session_note(
    note_id: str,
    data: SessionNoteUpdate,
    current_user: User = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    return SessionNoteService(db).update_note(note_id, data, current_user)
