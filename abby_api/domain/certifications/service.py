"""Certification service - catalogue, client progress and admin approval"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import ClientProfile, User
from .evaluator import certification_progress, ensure_default_certifications
from .repository import CertificationRepository
from .schemas import award_to_dict, certification_to_dict, client_certification_view

logger = logging.getLogger(__name__)


class CertificationService:
    """Service layer for certification business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = CertificationRepository()

    def client_certifications(self, user: User) -> list[dict]:
        """Every certification with the client's award or progress towards it"""
        profile = self.db.query(ClientProfile).filter(ClientProfile.user_id == user.id).first()
        awards = {a.certification_id: a for a in self.repo.list_user_certifications(self.db, user.id)}
        return [
            client_certification_view(cert, awards.get(cert.id), certification_progress(profile, cert))
            for cert in self.repo.list_certifications(self.db)
        ]

    def user_awards(self, user_id: str) -> list[dict]:
        return [award_to_dict(a) for a in self.repo.list_user_certifications(self.db, user_id)]

    def list_awards(self, status: Optional[str] = None, pending_only: bool = False) -> list[dict]:
        awards = self.repo.list_awards(self.db, status=status, pending_only=pending_only)
        return [award_to_dict(a, include_user=True) for a in awards]

    def set_approval(self, award_id: str, approved: bool, admin: User) -> dict:
        award = self.repo.get_award(self.db, award_id)
        if not award:
            raise HTTPException(status_code=404, detail="Certification not found")

        award.is_approved = approved
        award.approved_by = admin.id if approved else None
        award.approved_at = datetime.utcnow() if approved else None
        award.status = "approved" if approved else "completed"
        self.db.commit()
        self.db.refresh(award)
        logger.info(f"✅ Certification award {award.id} {'approved' if approved else 'rejected'} by {admin.email}")
        return award_to_dict(award, include_user=True)

    def setup_defaults(self) -> list[dict]:
        created = ensure_default_certifications(self.db)
        self.db.commit()
        return [certification_to_dict(c) for c in created]
