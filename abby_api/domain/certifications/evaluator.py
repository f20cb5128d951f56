"""
Certification eligibility

A client earns a certification once their completed sessions, completed
quizzes and latest quiz score all reach the certification's thresholds.
Awards are made once per (user, certification) and never re-evaluated.
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ...models import Certification, ClientProfile, UserCertification

logger = logging.getLogger(__name__)

DEFAULT_CERTIFICATIONS = [
    {
        "name": "Anxiety Management Basics",
        "description": (
            "Complete fundamental anxiety management techniques and demonstrate "
            "understanding through practical application."
        ),
        "requirements": ["Complete 2 therapy sessions", "Pass 2 quizzes with 80% score"],
        "required_sessions": 2,
        "required_quizzes": 2,
        "minimum_score": 80,
        "badge_image_url": "/certifications/anxiety-badge.png",
    },
    {
        "name": "Emotional Intelligence Explorer",
        "description": (
            "Develop emotional awareness and regulation skills through guided therapy sessions."
        ),
        "requirements": ["Complete 3 therapy sessions", "Pass 3 quizzes with 85% score"],
        "required_sessions": 3,
        "required_quizzes": 3,
        "minimum_score": 85,
        "badge_image_url": "/certifications/emotional-badge.png",
    },
    {
        "name": "Mindfulness Practitioner",
        "description": (
            "Master mindfulness techniques and meditation practices for mental well-being."
        ),
        "requirements": ["Complete 4 therapy sessions", "Pass 4 quizzes with 80% score"],
        "required_sessions": 4,
        "required_quizzes": 4,
        "minimum_score": 80,
        "badge_image_url": "/certifications/mindfulness-badge.png",
    },
]


def ensure_default_certifications(db: Session) -> list[Certification]:
    """
    Create any default certification that is missing (matched by name).
    Safe to call repeatedly. Flushes but does not commit.

    Returns:
        The certifications created by this call
    """
    existing = {name for (name,) in db.query(Certification.name).all()}
    created = []
    for definition in DEFAULT_CERTIFICATIONS:
        if definition["name"] in existing:
            continue
        cert = Certification(**definition)
        db.add(cert)
        created.append(cert)
    if created:
        db.flush()
        logger.info(f"🏆 Provisioned {len(created)} default certification(s)")
    return created


def meets_requirements(
    cert: Certification, sessions_completed: int, quizzes_completed: int, latest_score: float
) -> bool:
    return (
        sessions_completed >= cert.required_sessions
        and quizzes_completed >= cert.required_quizzes
        and latest_score >= cert.minimum_score
    )


def certification_progress(profile: ClientProfile, cert: Certification) -> int:
    """Percentage towards a certification's session and quiz counts, for display"""
    sessions = profile.total_sessions_completed if profile else 0
    quizzes = profile.total_quizzes_completed if profile else 0
    session_progress = min(100.0, sessions / cert.required_sessions * 100) if cert.required_sessions else 100.0
    quiz_progress = min(100.0, quizzes / cert.required_quizzes * 100) if cert.required_quizzes else 100.0
    return round(min(100.0, (session_progress + quiz_progress) / 2))


def evaluate_certifications(
    db: Session,
    user_id: str,
    sessions_completed: int,
    quizzes_completed: int,
    latest_score: float,
) -> list[UserCertification]:
    """
    Award every certification the client now qualifies for.
    Flushes but does not commit; the caller owns the transaction.

    Returns:
        Newly created UserCertification rows
    """
    if db.query(Certification).count() == 0:
        ensure_default_certifications(db)

    already_awarded = {
        cert_id
        for (cert_id,) in db.query(UserCertification.certification_id)
        .filter(UserCertification.user_id == user_id)
        .all()
    }

    awarded = []
    now = datetime.utcnow()
    for cert in db.query(Certification).order_by(Certification.required_sessions).all():
        if cert.id in already_awarded:
            continue
        if not meets_requirements(cert, sessions_completed, quizzes_completed, latest_score):
            continue
        award = UserCertification(
            user_id=user_id,
            certification_id=cert.id,
            status="completed",
            progress_percentage=100,
            earned_at=now,
            is_approved=True,
            approved_at=now,
        )
        db.add(award)
        awarded.append(award)
        logger.info(f"🎓 User {user_id} earned certification '{cert.name}'")

    if awarded:
        db.flush()
    return awarded
