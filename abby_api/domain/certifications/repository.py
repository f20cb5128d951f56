"""Certification repository - Database operations for certifications and awards"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Certification, UserCertification


class CertificationRepository:
    """Repository for certification database operations"""

    @staticmethod
    def list_certifications(db: Session) -> list[Certification]:
        return db.query(Certification).order_by(Certification.required_sessions.asc()).all()

    @staticmethod
    def list_user_certifications(db: Session, user_id: str) -> list[UserCertification]:
        return (
            db.query(UserCertification)
            .options(joinedload(UserCertification.certification))
            .filter(UserCertification.user_id == user_id)
            .all()
        )

    @staticmethod
    def list_awards(
        db: Session, status: Optional[str] = None, pending_only: bool = False
    ) -> list[UserCertification]:
        query = db.query(UserCertification).options(
            joinedload(UserCertification.user), joinedload(UserCertification.certification)
        )
        if pending_only:
            query = query.filter(
                UserCertification.status == "completed", UserCertification.is_approved.is_(False)
            )
        elif status:
            query = query.filter(UserCertification.status == status)
        return query.order_by(UserCertification.earned_at.desc()).all()

    @staticmethod
    def get_award(db: Session, award_id: str) -> Optional[UserCertification]:
        return db.query(UserCertification).filter(UserCertification.id == award_id).first()

    @staticmethod
    def count_awards(db: Session, **filters) -> int:
        query = db.query(UserCertification)
        for key, value in filters.items():
            query = query.filter(getattr(UserCertification, key) == value)
        return query.count()
