"""Doctor assignment rules for human sessions"""

from typing import Optional

from fastapi import HTTPException

from ...models import User
from .lifecycle import SessionStatus

# Sessions an admin may still (re)assign a doctor to
ASSIGNABLE_STATUSES = frozenset({SessionStatus.PENDING.value, SessionStatus.SCHEDULED.value})


def doctor_refusal_reason(doctor: User) -> Optional[str]:
    """Why `doctor` cannot take sessions, or None when they can"""
    if doctor.role != "doctor":
        return "Selected user is not a doctor"
    if not doctor.is_active:
        return "Doctor account is not active"
    if not doctor.doctor_profile or not doctor.doctor_profile.is_approved:
        return "Doctor has not been approved"
    return None


def check_doctor_assignable(doctor: Optional[User]) -> User:
    """
    Raises:
        HTTPException 404 when the doctor does not exist,
        HTTPException 400 when they cannot be assigned
    """
    if doctor is None:
        raise HTTPException(status_code=404, detail="Doctor not found")
    reason = doctor_refusal_reason(doctor)
    if reason:
        raise HTTPException(status_code=400, detail=reason)
    return doctor
