"""User repository - Database operations for accounts and role profiles"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from ...models import AdminProfile, ClientProfile, DoctorProfile, TherapySession, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def license_taken(db: Session, license_number: str, exclude_user_id: Optional[str] = None) -> bool:
        query = db.query(DoctorProfile).filter(DoctorProfile.license_number == license_number)
        if exclude_user_id:
            query = query.filter(DoctorProfile.user_id != exclude_user_id)
        return query.first() is not None

    @staticmethod
    def list_users(
        db: Session,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> tuple[list[User], int]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )

        total = query.count()
        users = (
            query.options(
                joinedload(User.client_profile),
                joinedload(User.doctor_profile),
                joinedload(User.admin_profile),
            )
            .order_by(User.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return users, total

    @staticmethod
    def list_doctors(
        db: Session,
        approved: Optional[bool] = None,
        active_only: bool = False,
        search: Optional[str] = None,
    ) -> list[User]:
        query = db.query(User).outerjoin(DoctorProfile).options(joinedload(User.doctor_profile))
        query = query.filter(User.role == "doctor")
        if active_only:
            query = query.filter(User.is_active.is_(True))
        if approved is not None:
            query = query.filter(DoctorProfile.is_approved.is_(approved))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    User.first_name.ilike(pattern),
                    User.last_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
        return query.order_by(User.created_at.desc()).all()

    @staticmethod
    def completed_sessions_by_doctor(db: Session) -> dict[str, int]:
        rows = (
            db.query(TherapySession.doctor_id, func.count(TherapySession.id))
            .filter(TherapySession.status == "completed", TherapySession.doctor_id.isnot(None))
            .group_by(TherapySession.doctor_id)
            .all()
        )
        return dict(rows)

    @staticmethod
    def create_user(db: Session, profile_fields: Optional[dict] = None, **data) -> User:
        """Create a user with the role profile that matches its role. Flushes only."""
        user = User(**data)
        db.add(user)
        db.flush()

        profile_fields = profile_fields or {}
        if user.role == "client":
            db.add(ClientProfile(user_id=user.id, **profile_fields))
        elif user.role == "doctor":
            db.add(DoctorProfile(user_id=user.id, **profile_fields))
        elif user.role == "admin":
            db.add(AdminProfile(user_id=user.id, **profile_fields))
        db.flush()
        db.refresh(user)
        return user

    @staticmethod
    def count(db: Session, **filters) -> int:
        query = db.query(User)
        for key, value in filters.items():
            query = query.filter(getattr(User, key) == value)
        return query.count()

    @staticmethod
    def recent_users(db: Session, limit: int = 5) -> list[User]:
        return db.query(User).order_by(User.created_at.desc()).limit(limit).all()
