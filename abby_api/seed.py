"""
Demo data for local development

Usage:
    python -m abby_api.seed
"""

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from .database import Base, SessionLocal, engine, unit_of_work
from .domain.certifications.evaluator import ensure_default_certifications
from .domain.sessions.lifecycle import progress_level
from .domain.users.repository import UserRepository
from .domain.users.schemas import DEFAULT_WORKING_HOURS
from .security_utils import hash_password

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"  # noqa: S105 - local demo accounts only

DEMO_ACCOUNTS = [
    {
        "user": {
            "email": "client@abbyai.com",
            "first_name": "Emma",
            "last_name": "Client",
            "role": "client",
            "phone": "+1-555-0123",
            "date_of_birth": datetime(1995, 6, 15),
            "has_completed_onboarding": True,
        },
        "profile": {
            "emergency_contact": "John Client - +1-555-0124",
            "primary_goals": ["Anxiety Management", "Stress Reduction"],
            "anxiety_triggers": ["Public Speaking", "Social Situations"],
            "preferred_therapy_type": ["CBT", "Mindfulness"],
            "previous_therapy_experience": True,
            "medication_status": "None",
            "total_sessions_completed": 3,
            "total_quizzes_completed": 3,
            "progress_level": progress_level(3),
        },
    },
    {
        "user": {
            "email": "doctor@abbyai.com",
            "first_name": "Sarah",
            "last_name": "Wilson",
            "role": "doctor",
            "phone": "+1-555-0125",
            "has_completed_onboarding": True,
        },
        "profile": {
            "license_number": "PSY-12345",
            "specializations": ["Anxiety Disorders", "Depression", "CBT"],
            "education": ["PhD Psychology - Harvard University", "MS Clinical Psychology - Stanford"],
            "experience": 8,
            "bio": (
                "Specialized in cognitive behavioral therapy with 8+ years experience "
                "helping clients with anxiety and depression."
            ),
            "working_hours": DEFAULT_WORKING_HOURS,
            "session_duration": 50,
            "break_between_sessions": 10,
            "is_approved": True,
            "approved_at": datetime.utcnow(),
        },
    },
    {
        "user": {
            "email": "admin@abbyai.com",
            "first_name": "Admin",
            "last_name": "User",
            "role": "admin",
            "phone": "+1-555-0126",
        },
        "profile": {
            "permissions": [
                "user_management",
                "doctor_approval",
                "payment_verification",
                "certification_approval",
            ],
        },
    },
]


def seed_demo_data(db: Session) -> dict:
    """
    Create the demo accounts and default certifications. Existing accounts
    (matched by email) are left alone, so this is safe to re-run.
    """
    repo = UserRepository()
    created_users = []
    with unit_of_work(db):
        for account in DEMO_ACCOUNTS:
            email = account["user"]["email"]
            if repo.get_by_email(db, email):
                logger.info(f"Demo account {email} already exists")
                continue
            repo.create_user(
                db,
                profile_fields=account["profile"],
                password_hash=hash_password(DEMO_PASSWORD),
                is_active=True,
                **account["user"],
            )
            created_users.append(email)
        certifications = ensure_default_certifications(db)

    return {"users": created_users, "certifications": [c.name for c in certifications]}


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        result = seed_demo_data(db)
    finally:
        db.close()

    logger.info(f"🌱 Seeded {len(result['users'])} account(s), {len(result['certifications'])} certification(s)")
    for account in DEMO_ACCOUNTS:
        logger.info(f"   {account['user']['role']}: {account['user']['email']} / {DEMO_PASSWORD}")


if __name__ == "__main__":
    main()
