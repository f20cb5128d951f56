"""User service - Profiles, onboarding, doctor management and schedules"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...models import ClientProfile, DoctorProfile, User
from ...security_utils import generate_temporary_password, hash_password
from ...shared.validators import parse_date
from ..sessions.repository import SessionRepository
from ..sessions.schemas import session_to_dict
from .repository import UserRepository
from .schemas import (
    DEFAULT_WORKING_HOURS,
    DoctorCreate,
    DoctorSettingsUpdate,
    OnboardingRequest,
    ProfileUpdate,
    ScheduleUpdate,
    client_profile_to_dict,
    doctor_profile_to_dict,
    user_to_dict,
)

logger = logging.getLogger(__name__)

# camelCase request field -> profile column
CLIENT_PROFILE_FIELDS = {
    "emergencyContact": "emergency_contact",
    "primaryGoals": "primary_goals",
    "anxietyTriggers": "anxiety_triggers",
    "preferredTherapyType": "preferred_therapy_type",
    "previousTherapyExperience": "previous_therapy_experience",
    "medicationStatus": "medication_status",
}
DOCTOR_PROFILE_FIELDS = {
    "licenseNumber": "license_number",
    "specializations": "specializations",
    "education": "education",
    "experience": "experience",
    "bio": "bio",
    "isAvailable": "is_available",
    "workingHours": "working_hours",
    "sessionDuration": "session_duration",
    "breakBetweenSessions": "break_between_sessions",
}
USER_FIELDS = {
    "firstName": "first_name",
    "lastName": "last_name",
    "phone": "phone",
    "avatar": "avatar",
}


def _apply(target, data: dict, mapping: dict) -> None:
    """Copy the non-None request values named in `mapping` onto `target`"""
    for field, column in mapping.items():
        value = data.get(field)
        if value is not None:
            setattr(target, column, value)


class UserService:
    """Service layer for user and profile business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    def _client_profile(self, user: User) -> ClientProfile:
        if user.client_profile is None:
            self.db.add(ClientProfile(user_id=user.id))
            self.db.flush()
            self.db.refresh(user)
        return user.client_profile

    def _doctor_profile(self, user: User) -> DoctorProfile:
        if user.doctor_profile is None:
            self.db.add(DoctorProfile(user_id=user.id, license_number=None))
            self.db.flush()
            self.db.refresh(user)
        return user.doctor_profile

    def _check_license(self, license_number: str, user_id: Optional[str] = None) -> str:
        license_number = (license_number or "").strip()
        if not license_number:
            raise HTTPException(status_code=400, detail="License number is required")
        if self.repo.license_taken(self.db, license_number, exclude_user_id=user_id):
            raise HTTPException(
                status_code=400,
                detail="License number already exists. Please use a different license number.",
            )
        return license_number

    # ------------------------------------------------------------------
    # Own profile
    # ------------------------------------------------------------------

    def update_profile(self, user: User, data: ProfileUpdate) -> dict:
        values = data.model_dump(exclude_none=True)
        with unit_of_work(self.db):
            _apply(user, values, USER_FIELDS)
            if user.role == "client":
                _apply(self._client_profile(user), values, CLIENT_PROFILE_FIELDS)
            elif user.role == "doctor":
                _apply(self._doctor_profile(user), values, DOCTOR_PROFILE_FIELDS)
        self.db.refresh(user)
        return user_to_dict(user)

    def complete_onboarding(self, user: User, data: OnboardingRequest) -> dict:
        """Store the onboarding questionnaire on the user's role profile"""
        profile = None
        with unit_of_work(self.db):
            if user.role == "client":
                client_profile = self._client_profile(user)
                _apply(client_profile, data.model_dump(exclude_none=True), CLIENT_PROFILE_FIELDS)
                profile = client_profile
            elif user.role == "doctor":
                if data.doctorProfile is None:
                    raise HTTPException(status_code=400, detail="Doctor profile details are required")
                doctor_profile = self._doctor_profile(user)
                values = data.doctorProfile.model_dump(exclude_none=True)
                values["licenseNumber"] = self._check_license(values.get("licenseNumber"), user.id)
                if not doctor_profile.working_hours:
                    values.setdefault("workingHours", DEFAULT_WORKING_HOURS)
                _apply(doctor_profile, values, DOCTOR_PROFILE_FIELDS)
                profile = doctor_profile
            user.has_completed_onboarding = True

        logger.info(f"✅ User {user.id} ({user.role}) completed onboarding")
        if isinstance(profile, ClientProfile):
            return {"message": "Onboarding completed successfully", "profile": client_profile_to_dict(profile)}
        return {"message": "Onboarding completed successfully", "profile": doctor_profile_to_dict(profile)}

    # ------------------------------------------------------------------
    # Admin user management
    # ------------------------------------------------------------------

    def list_users(
        self,
        role: Optional[str] = None,
        status: Optional[str] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> dict:
        is_active = {"active": True, "inactive": False}.get(status or "")
        users, total = self.repo.list_users(
            self.db, role=role, is_active=is_active, search=search, page=page, limit=limit
        )
        return {
            "users": [user_to_dict(u) for u in users],
            "pagination": {
                "total": total,
                "page": page,
                "limit": limit,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    def set_user_status(self, user_id: str, is_active: bool, admin: User) -> dict:
        user = self.get_user(user_id)
        if user.id == admin.id and not is_active:
            raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
        with unit_of_work(self.db):
            user.is_active = is_active
        logger.info(f"👤 Admin {admin.id} {'activated' if is_active else 'deactivated'} user {user.id}")
        return {
            "message": f"User {'activated' if is_active else 'deactivated'} successfully",
            "user": user_to_dict(user, include_profile=False),
        }

    def list_doctors(self, approved: Optional[bool] = None, search: Optional[str] = None) -> list[dict]:
        completed = self.repo.completed_sessions_by_doctor(self.db)
        doctors = []
        for doctor in self.repo.list_doctors(self.db, approved=approved, search=search):
            data = user_to_dict(doctor)
            data["completedSessions"] = completed.get(doctor.id, 0)
            doctors.append(data)
        return doctors

    def available_doctors(self) -> list[dict]:
        """Active, approved doctors with a license and at least one specialization"""
        doctors = self.repo.list_doctors(self.db, approved=True, active_only=True)
        return [
            {
                "id": d.id,
                "firstName": d.first_name,
                "lastName": d.last_name,
                "avatar": d.avatar,
                "doctorProfile": doctor_profile_to_dict(d.doctor_profile),
            }
            for d in doctors
            if d.doctor_profile and d.doctor_profile.license_number and d.doctor_profile.specializations
        ]

    def create_doctor(self, data: DoctorCreate, admin: User) -> dict:
        """Create an inactive, unapproved doctor account with a temporary password"""
        if not (data.email and data.firstName and data.lastName and (data.licenseNumber or "").strip()):
            raise HTTPException(
                status_code=400,
                detail="Email, first name, last name, and license number are required",
            )
        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=400, detail="User with this email already exists")
        license_number = self._check_license(data.licenseNumber)

        temp_password = generate_temporary_password()
        with unit_of_work(self.db):
            doctor = self.repo.create_user(
                self.db,
                profile_fields={
                    "license_number": license_number,
                    "specializations": data.specializations or [],
                    "education": data.education or [],
                    "experience": data.experience or 0,
                    "bio": data.bio,
                    "working_hours": DEFAULT_WORKING_HOURS,
                    "is_approved": False,
                },
                email=data.email,
                password_hash=hash_password(temp_password),
                first_name=data.firstName.strip(),
                last_name=data.lastName.strip(),
                role="doctor",
                phone=data.phone,
                is_active=False,
            )

        logger.info(f"👩‍⚕️ Admin {admin.id} created doctor account {doctor.id}")
        return {
            "message": "Doctor created successfully",
            "doctor": user_to_dict(doctor),
            "tempPassword": temp_password,
        }

    def set_doctor_approval(self, doctor_id: str, approved: bool, admin: User) -> dict:
        """Approving a doctor also activates their account"""
        doctor = self.repo.get_by_id(self.db, doctor_id)
        if not doctor or doctor.role != "doctor" or doctor.doctor_profile is None:
            raise HTTPException(status_code=404, detail="Doctor not found")

        with unit_of_work(self.db):
            doctor.doctor_profile.is_approved = approved
            doctor.doctor_profile.approved_at = datetime.utcnow() if approved else None
            if approved:
                doctor.is_active = True

        logger.info(f"👩‍⚕️ Admin {admin.id} {'approved' if approved else 'rejected'} doctor {doctor.id}")
        return {
            "message": f"Doctor {'approved' if approved else 'rejected'} successfully",
            "doctor": user_to_dict(doctor),
        }

    # ------------------------------------------------------------------
    # Doctor schedule and settings
    # ------------------------------------------------------------------

    def get_schedule(self, doctor: User, week: Optional[str] = None) -> dict:
        """Working hours plus the doctor's sessions for the week containing `week`"""
        profile = doctor.doctor_profile
        if profile is None:
            raise HTTPException(status_code=404, detail="Doctor profile not found")

        try:
            anchor = parse_date(week) if week else datetime.utcnow()
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        # Weeks start on Sunday
        week_start = (anchor - timedelta(days=(anchor.weekday() + 1) % 7)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        week_end = week_start + timedelta(days=7)

        sessions = SessionRepository.list_sessions(
            self.db, doctor_id=doctor.id, scheduled_from=week_start, scheduled_to=week_end
        )
        return {
            "workingHours": profile.working_hours or {},
            "sessionDuration": profile.session_duration,
            "breakBetweenSessions": profile.break_between_sessions,
            "sessions": [session_to_dict(s) for s in sorted(sessions, key=lambda s: s.scheduled_at)],
            "weekStart": week_start,
            "weekEnd": week_end,
        }

    def update_schedule(self, doctor: User, data: ScheduleUpdate) -> dict:
        for value, label in ((data.sessionDuration, "Session duration"), (data.breakBetweenSessions, "Break")):
            if value is not None and value < 0:
                raise HTTPException(status_code=400, detail=f"{label} must not be negative")

        with unit_of_work(self.db):
            profile = self._doctor_profile(doctor)
            _apply(profile, data.model_dump(exclude_none=True), DOCTOR_PROFILE_FIELDS)
        return {"message": "Schedule updated successfully", "profile": doctor_profile_to_dict(profile)}

    def get_doctor_settings(self, doctor: User) -> dict:
        with unit_of_work(self.db):
            self._doctor_profile(doctor)
        data = user_to_dict(doctor, include_profile=False)
        data["doctorProfile"] = doctor_profile_to_dict(doctor.doctor_profile)
        return {"user": data}

    def update_doctor_settings(self, doctor: User, data: DoctorSettingsUpdate) -> dict:
        values = data.model_dump(exclude_none=True)
        with unit_of_work(self.db):
            _apply(doctor, values, USER_FIELDS)
            profile = self._doctor_profile(doctor)
            if "licenseNumber" in values:
                values["licenseNumber"] = self._check_license(values["licenseNumber"], doctor.id)
            _apply(profile, values, DOCTOR_PROFILE_FIELDS)

        data = user_to_dict(doctor, include_profile=False)
        data["doctorProfile"] = doctor_profile_to_dict(doctor.doctor_profile)
        return {"message": "Settings updated successfully", "user": data}

    def get_admin_settings(self, admin: User) -> dict:
        return {"user": user_to_dict(admin)}
