import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_client
from ..database import get_db
from ..domain.certifications.service import CertificationService
from ..domain.dashboards.service import DashboardService
from ..domain.payments.schemas import PaymentCreate
from ..domain.payments.service import PaymentService
from ..domain.sessions.schemas import (
    AISessionCreate,
    ChatMessageCreate,
    ClientCompleteRequest,
    SessionRequestCreate,
)
from ..domain.sessions.service import SessionService
from ..domain.users.service import UserService
from ..models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/client", tags=["Client"])


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db)


# ============================================================================
# DASHBOARD AND PROGRESS
# ============================================================================


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return DashboardService(db).client_dashboard(current_user)


@router.get("/progress")
async def get_progress(
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return DashboardService(db).client_progress(current_user)


@router.get("/certifications")
async def get_certifications(
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return {"certifications": CertificationService(db).client_certifications(current_user)}


@router.get("/doctors")
async def get_available_doctors(
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return {"doctors": UserService(db).available_doctors()}


# ============================================================================
# SESSIONS
# ============================================================================


@router.get("/sessions")
async def get_sessions(
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
    status: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
):
    return {"sessions": service.list_client_sessions(current_user, status=status, session_type=type)}


@router.post("/sessions/request", status_code=201)
async def request_session(
    data: SessionRequestCreate,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    """Book a session. Human sessions without a doctor wait for an admin to assign one."""
    return service.book_session(data, current_user)


@router.post("/sessions/ai", status_code=201)
async def start_ai_session(
    data: Optional[AISessionCreate] = None,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    session = service.start_ai_session(current_user, topic=data.topic if data else None)
    return {"message": "AI session started", "session": session}


@router.post("/sessions/{session_id}/start")
async def start_booked_session(
    session_id: str,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    """Start an AI session that was booked for later"""
    return service.start_as_client(session_id, current_user)


@router.get("/sessions/{session_id}/messages")
async def get_messages(
    session_id: str,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    return {"messages": service.list_messages(session_id, current_user)}


@router.post("/sessions/{session_id}/messages")
async def send_message(
    session_id: str,
    data: ChatMessageCreate,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    return await service.send_ai_message(session_id, data, current_user)


@router.post("/sessions/{session_id}/complete")
async def complete_session(
    session_id: str,
    data: ClientCompleteRequest,
    current_user: User = Depends(get_current_client),
    service: SessionService = Depends(get_session_service),
):
    """Finish a session with a quiz result, or skip the quiz to end it without progress"""
    return service.complete_as_client(session_id, data, current_user)


# ============================================================================
# PAYMENTS
# ============================================================================


@router.post("/payments", status_code=201)
async def submit_payment(
    data: PaymentCreate,
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return PaymentService(db).submit_payment(data, current_user)


@router.get("/payments")
async def get_payments(
    current_user: User = Depends(get_current_client),
    db: Session = Depends(get_db),
):
    return {"payments": PaymentService(db).client_payments(current_user)}
