"""User domain schemas - Pydantic models for validation"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator

from ...models import AdminProfile, ClientProfile, DoctorProfile, User
from ...shared.validators import validate_email

DEFAULT_WORKING_HOURS = {
    "monday": {"start": "09:00", "end": "17:00", "isAvailable": True},
    "tuesday": {"start": "09:00", "end": "17:00", "isAvailable": True},
    "wednesday": {"start": "09:00", "end": "17:00", "isAvailable": True},
    "thursday": {"start": "09:00", "end": "17:00", "isAvailable": True},
    "friday": {"start": "09:00", "end": "17:00", "isAvailable": True},
    "saturday": {"start": "09:00", "end": "13:00", "isAvailable": False},
    "sunday": {"start": "09:00", "end": "13:00", "isAvailable": False},
}


class ProfileUpdate(BaseModel):
    """Basic account fields plus role profile fields (camelCase, all optional)"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    # Client profile
    emergencyContact: Optional[str] = None
    primaryGoals: Optional[list[str]] = None
    anxietyTriggers: Optional[list[str]] = None
    preferredTherapyType: Optional[list[str]] = None
    previousTherapyExperience: Optional[bool] = None
    medicationStatus: Optional[str] = None
    # Doctor profile
    specializations: Optional[list[str]] = None
    education: Optional[list[Any]] = None
    experience: Optional[int] = None
    bio: Optional[str] = None
    isAvailable: Optional[bool] = None


class DoctorOnboarding(BaseModel):
    licenseNumber: Optional[str] = None
    specializations: Optional[list[str]] = None
    education: Optional[list[Any]] = None
    experience: Optional[int] = None
    bio: Optional[str] = None
    workingHours: Optional[dict] = None
    sessionDuration: Optional[int] = None
    breakBetweenSessions: Optional[int] = None


class OnboardingRequest(BaseModel):
    emergencyContact: Optional[str] = None
    primaryGoals: Optional[list[str]] = None
    anxietyTriggers: Optional[list[str]] = None
    preferredTherapyType: Optional[list[str]] = None
    previousTherapyExperience: Optional[bool] = None
    medicationStatus: Optional[str] = None
    doctorProfile: Optional[DoctorOnboarding] = None


class UserStatusUpdate(BaseModel):
    isActive: bool


class DoctorCreate(BaseModel):
    """Admin-created doctor account"""

    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    licenseNumber: Optional[str] = None
    specializations: Optional[list[str]] = None
    education: Optional[list[Any]] = None
    experience: Optional[int] = None
    bio: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class DoctorApproval(BaseModel):
    approved: bool


class ScheduleUpdate(BaseModel):
    workingHours: Optional[dict] = None
    sessionDuration: Optional[int] = None
    breakBetweenSessions: Optional[int] = None


class DoctorSettingsUpdate(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    licenseNumber: Optional[str] = None
    specializations: Optional[list[str]] = None
    education: Optional[list[Any]] = None
    experience: Optional[int] = None
    bio: Optional[str] = None


def client_profile_to_dict(profile: Optional[ClientProfile]) -> Optional[dict]:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "userId": profile.user_id,
        "emergencyContact": profile.emergency_contact,
        "primaryGoals": profile.primary_goals or [],
        "anxietyTriggers": profile.anxiety_triggers or [],
        "preferredTherapyType": profile.preferred_therapy_type or [],
        "previousTherapyExperience": bool(profile.previous_therapy_experience),
        "medicationStatus": profile.medication_status,
        "totalSessionsCompleted": profile.total_sessions_completed or 0,
        "totalQuizzesCompleted": profile.total_quizzes_completed or 0,
        "progressLevel": profile.progress_level or 1,
    }


def doctor_profile_to_dict(profile: Optional[DoctorProfile]) -> Optional[dict]:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "userId": profile.user_id,
        "licenseNumber": profile.license_number,
        "specializations": profile.specializations or [],
        "education": profile.education or [],
        "experience": profile.experience or 0,
        "bio": profile.bio,
        "workingHours": profile.working_hours or {},
        "sessionDuration": profile.session_duration,
        "breakBetweenSessions": profile.break_between_sessions,
        "isAvailable": profile.is_available,
        "isApproved": profile.is_approved,
        "approvedAt": profile.approved_at,
    }


def admin_profile_to_dict(profile: Optional[AdminProfile]) -> Optional[dict]:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "userId": profile.user_id,
        "permissions": profile.permissions or [],
        "lastLogin": profile.last_login,
    }


def role_profile(user: User) -> Optional[dict]:
    if user.role == "client":
        return client_profile_to_dict(user.client_profile)
    if user.role == "doctor":
        return doctor_profile_to_dict(user.doctor_profile)
    return admin_profile_to_dict(user.admin_profile)


def user_to_dict(user: User, include_profile: bool = True) -> dict:
    """Public view of a user. Never includes the password hash."""
    data = {
        "id": user.id,
        "email": user.email,
        "firstName": user.first_name,
        "lastName": user.last_name,
        "role": user.role,
        "isActive": user.is_active,
        "avatar": user.avatar,
        "phone": user.phone,
        "dateOfBirth": user.date_of_birth,
        "hasCompletedOnboarding": user.has_completed_onboarding,
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }
    if include_profile:
        data["profile"] = role_profile(user)
    return data
