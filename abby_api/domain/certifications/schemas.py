"""Certification domain schemas"""

from typing import Optional

from pydantic import BaseModel

from ...models import Certification, UserCertification


class CertificationApprovalRequest(BaseModel):
    approved: bool


def certification_to_dict(cert: Certification) -> dict:
    return {
        "id": cert.id,
        "name": cert.name,
        "description": cert.description,
        "requirements": cert.requirements or [],
        "requiredSessions": cert.required_sessions,
        "requiredQuizzes": cert.required_quizzes,
        "minimumScore": cert.minimum_score,
        "badgeImageUrl": cert.badge_image_url,
    }


def award_to_dict(award: UserCertification, include_user: bool = False) -> dict:
    data = {
        "id": award.id,
        "userId": award.user_id,
        "certificationId": award.certification_id,
        "status": award.status,
        "progressPercentage": award.progress_percentage,
        "earnedAt": award.earned_at,
        "isApproved": award.is_approved,
        "approvedBy": award.approved_by,
        "approvedAt": award.approved_at,
    }
    if award.certification is not None:
        data["certification"] = certification_to_dict(award.certification)
    if include_user and award.user is not None:
        data["user"] = {
            "firstName": award.user.first_name,
            "lastName": award.user.last_name,
            "email": award.user.email,
        }
    return data


def client_certification_view(
    cert: Certification, award: Optional[UserCertification], progress: int
) -> dict:
    """A catalogue entry merged with the client's award, if any"""
    data = certification_to_dict(cert)
    data["userProgress"] = award_to_dict(award) if award else None
    data["isUnlocked"] = award is not None
    data["progressPercentage"] = 100 if award else progress
    return data
