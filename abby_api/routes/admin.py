import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import get_current_admin
from ..database import get_db
from ..domain.api_keys.service import APIKeyCreate, APIKeyService, APIKeyUpdate
from ..domain.certifications.schemas import CertificationApprovalRequest
from ..domain.certifications.service import CertificationService
from ..domain.dashboards.service import DashboardService
from ..domain.payments.schemas import PaymentVerify
from ..domain.payments.service import PaymentService
from ..domain.sessions.schemas import AssignDoctorRequest, CancelSessionRequest, SessionReviewRequest
from ..domain.sessions.service import SessionService
from ..domain.users.schemas import DoctorApproval, DoctorCreate, UserStatusUpdate
from ..domain.users.service import UserService
from ..models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


def _bool_query(value: Optional[str]) -> Optional[bool]:
    """'true' / 'false' query strings; anything else means no filter"""
    return {"true": True, "false": False}.get((value or "").lower())


def get_session_service(db: Session = Depends(get_db)) -> SessionService:
    return SessionService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


def get_payment_service(db: Session = Depends(get_db)) -> PaymentService:
    return PaymentService(db)


def get_api_key_service(db: Session = Depends(get_db)) -> APIKeyService:
    return APIKeyService(db)


def get_certification_service(db: Session = Depends(get_db)) -> CertificationService:
    return CertificationService(db)


@router.get("/dashboard")
async def get_dashboard(
    current_user: User = Depends(get_current_admin),
    db: Session = Depends(get_db),
):
    return DashboardService(db).admin_dashboard()


@router.get("/settings")
async def get_settings(
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return service.get_admin_settings(current_user)


# ============================================================================
# USERS AND DOCTORS
# ============================================================================


@router.get("/users")
async def get_users(
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
    role: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    return service.list_users(role=role, status=status, search=search, page=page, limit=limit)


@router.put("/users/{user_id}/status")
async def update_user_status(
    user_id: str,
    data: UserStatusUpdate,
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return service.set_user_status(user_id, data.isActive, current_user)


@router.get("/doctors")
async def get_doctors(
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
    approved: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
):
    return {"doctors": service.list_doctors(approved=_bool_query(approved), search=search)}


@router.post("/doctors", status_code=201)
async def create_doctor(
    data: DoctorCreate,
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return service.create_doctor(data, current_user)


@router.put("/doctors/{doctor_id}/approval")
async def set_doctor_approval(
    doctor_id: str,
    data: DoctorApproval,
    current_user: User = Depends(get_current_admin),
    service: UserService = Depends(get_user_service),
):
    return service.set_doctor_approval(doctor_id, data.approved, current_user)


# ============================================================================
# SESSIONS
# ============================================================================


@router.get("/sessions")
async def get_sessions(
    current_user: User = Depends(get_current_admin),
    service: SessionService = Depends(get_session_service),
    status: Optional[str] = Query(None),
    needsAssignment: Optional[str] = Query(None),
):
    return {"sessions": service.list_all_sessions(status=status, unassigned=_bool_query(needsAssignment))}


@router.put("/sessions/{session_id}/assign")
async def assign_doctor(
    session_id: str,
    data: AssignDoctorRequest,
    current_user: User = Depends(get_current_admin),
    service: SessionService = Depends(get_session_service),
):
    """Assign an active, approved doctor to a pending or scheduled human session"""
    return service.assign_doctor(session_id, data.doctorId, current_user)


@router.post("/sessions/{session_id}/cancel")
async def cancel_session(
    session_id: str,
    data: Optional[CancelSessionRequest] = None,
    current_user: User = Depends(get_current_admin),
    service: SessionService = Depends(get_session_service),
):
    return service.cancel_as_admin(session_id, data.reason if data else None, current_user)


@router.put("/sessions/{session_id}/review")
async def review_session(
    session_id: str,
    data: SessionReviewRequest,
    current_user: User = Depends(get_current_admin),
    service: SessionService = Depends(get_session_service),
):
    return service.review_session(session_id, data.approved, current_user)


# ============================================================================
# PAYMENTS
# ============================================================================


@router.get("/payments")
async def get_payments(
    current_user: User = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
    status: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    verified: Optional[str] = Query(None),
):
    return {"payments": service.list_payments(status=status, method=method, verified=verified)}


@router.get("/payments/export")
async def export_payments(
    current_user: User = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
    format: str = Query("csv"),
    status: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    verified: Optional[str] = Query(None),
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
):
    """Payments report as CSV (default) or JSON"""
    return service.export_payments(format, status, method, verified, startDate, endDate)


@router.put("/payments/{payment_id}/verify")
async def verify_payment(
    payment_id: str,
    data: PaymentVerify,
    current_user: User = Depends(get_current_admin),
    service: PaymentService = Depends(get_payment_service),
):
    return service.verify_payment(payment_id, data.verified, current_user)


# ============================================================================
# API KEYS
# ============================================================================


@router.get("/api-keys")
async def get_api_keys(
    current_user: User = Depends(get_current_admin),
    service: APIKeyService = Depends(get_api_key_service),
):
    return {"apiKeys": service.list_keys()}


@router.post("/api-keys", status_code=201)
async def create_api_key(
    data: APIKeyCreate,
    current_user: User = Depends(get_current_admin),
    service: APIKeyService = Depends(get_api_key_service),
):
    return service.create_key(data, current_user)


@router.put("/api-keys/{key_id}")
async def update_api_key(
    key_id: str,
    data: APIKeyUpdate,
    current_user: User = Depends(get_current_admin),
    service: APIKeyService = Depends(get_api_key_service),
):
    return service.update_key(key_id, data)


@router.delete("/api-keys/{key_id}")
async def delete_api_key(
    key_id: str,
    current_user: User = Depends(get_current_admin),
    service: APIKeyService = Depends(get_api_key_service),
):
    return service.delete_key(key_id, current_user)


# ============================================================================
# CERTIFICATIONS
# ============================================================================


@router.get("/certifications")
async def get_certifications(
    current_user: User = Depends(get_current_admin),
    service: CertificationService = Depends(get_certification_service),
    status: Optional[str] = Query(None),
    pending: Optional[str] = Query(None),
):
    return {"certifications": service.list_awards(status=status, pending_only=_bool_query(pending) is True)}


@router.put("/certifications/{award_id}/approve")
async def approve_certification(
    award_id: str,
    data: CertificationApprovalRequest,
    current_user: User = Depends(get_current_admin),
    service: CertificationService = Depends(get_certification_service),
):
    certification = service.set_approval(award_id, data.approved, current_user)
    return {
        "message": f"Certification {'approved' if data.approved else 'rejected'} successfully",
        "certification": certification,
    }


@router.post("/certifications/setup")
async def setup_certifications(
    current_user: User = Depends(get_current_admin),
    service: CertificationService = Depends(get_certification_service),
):
    """Create any missing default certification"""
    created = service.setup_defaults()
    return {"message": "Default certifications created successfully", "certifications": created}
