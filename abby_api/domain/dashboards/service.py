"""Dashboard service - Read-only summaries for each role's landing page"""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session, joinedload

from ...models import ClientProfile, SessionNote, TherapySession, User
from ..certifications.repository import CertificationRepository
from ..certifications.schemas import award_to_dict
from ..notes.service import note_to_dict
from ..payments.repository import PaymentRepository
from ..payments.schemas import payment_to_dict
from ..sessions.lifecycle import SessionStatus, SessionType, progress_level
from ..sessions.repository import SessionRepository
from ..sessions.schemas import session_to_dict
from ..users.repository import UserRepository
from ..users.schemas import client_profile_to_dict, doctor_profile_to_dict, user_to_dict


class DashboardService:
    def __init__(self, db: Session):
        self.db = db
        self.sessions = SessionRepository()
        self.certifications = CertificationRepository()

    def client_dashboard(self, client: User) -> dict:
        profile = self.db.query(ClientProfile).filter(ClientProfile.user_id == client.id).first()
        sessions_completed = profile.total_sessions_completed if profile else 0
        quizzes_completed = profile.total_quizzes_completed if profile else 0
        awards = self.certifications.list_user_certifications(self.db, client.id)
        next_session = self.sessions.next_scheduled_session(self.db, client.id, datetime.utcnow())
        recent = self.sessions.list_sessions(
            self.db, client_id=client.id, limit=5, newest_first_by="created_at"
        )

        return {
            "profile": client_profile_to_dict(profile),
            "hasCompletedOnboarding": client.has_completed_onboarding,
            "recentSessions": [session_to_dict(s) for s in recent],
            "certifications": [award_to_dict(a) for a in awards],
            "nextSession": session_to_dict(next_session) if next_session else None,
            "stats": {
                "completedSessions": sessions_completed,
                "completedQuizzes": quizzes_completed,
                "certificationsEarned": len(awards),
                "progressLevel": profile.progress_level if profile else progress_level(0),
            },
        }

    def client_progress(self, client: User) -> dict:
        sessions = sorted(
            self.sessions.list_sessions(self.db, client_id=client.id),
            key=lambda s: s.created_at or datetime.min,
        )
        quiz_results = self.sessions.quiz_results_for_user(self.db, client.id)
        scores = [q.score for q in quiz_results]

        return {
            "progress": {
                "totalSessions": len(sessions),
                "completedSessions": sum(1 for s in sessions if s.status == SessionStatus.COMPLETED.value),
                "aiSessions": sum(1 for s in sessions if s.type == SessionType.AI.value),
                "humanSessions": sum(1 for s in sessions if s.type == SessionType.HUMAN.value),
                "averageQuizScore": sum(scores) / len(scores) if scores else 0,
                "sessionHistory": [
                    {
                        "date": s.scheduled_at,
                        "type": s.type,
                        "status": s.status,
                        "score": s.quiz_result.score if s.quiz_result else None,
                    }
                    for s in sessions
                ],
                "quizTrend": [{"date": q.completed_at, "score": q.score} for q in quiz_results],
            }
        }

    def doctor_dashboard(self, doctor: User) -> dict:
        now = datetime.utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_start = today - timedelta(days=(today.weekday() + 1) % 7)

        today_sessions = sorted(
            self.sessions.list_sessions(
                self.db, doctor_id=doctor.id, scheduled_from=today, scheduled_to=today + timedelta(days=1)
            ),
            key=lambda s: s.scheduled_at,
        )
        upcoming = self.sessions.list_sessions(
            self.db,
            doctor_id=doctor.id,
            status=SessionStatus.SCHEDULED.value,
            limit=5,
            newest_first_by="created_at",
        )
        recent_notes = (
            self.db.query(SessionNote)
            .options(joinedload(SessionNote.session).joinedload(TherapySession.client))
            .filter(SessionNote.doctor_id == doctor.id)
            .order_by(SessionNote.created_at.desc())
            .limit(5)
            .all()
        )
        week_sessions = (
            self.db.query(TherapySession)
            .filter(TherapySession.doctor_id == doctor.id, TherapySession.scheduled_at >= week_start)
            .count()
        )

        return {
            "profile": doctor_profile_to_dict(doctor.doctor_profile),
            "todaySessions": [session_to_dict(s) for s in today_sessions],
            "pendingRequests": [session_to_dict(s) for s in upcoming],
            "recentNotes": [note_to_dict(n) for n in recent_notes],
            "stats": {
                "totalSessions": self.sessions.count(
                    self.db, doctor_id=doctor.id, status=SessionStatus.COMPLETED.value
                ),
                "weekSessions": week_sessions,
                "todaySessionsCount": len(today_sessions),
                "pendingRequestsCount": len(upcoming),
            },
        }

    def admin_dashboard(self) -> dict:
        users = UserRepository()
        payments = PaymentRepository()
        pending_payments = payments.list_payments(self.db, status="pending", limit=5)
        recent_sessions = self.sessions.list_sessions(self.db, limit=5, newest_first_by="created_at")

        return {
            "stats": {
                "totalClients": users.count(self.db, role="client"),
                "totalDoctors": users.count(self.db, role="doctor"),
                "activeSessions": self.sessions.count(self.db, status=SessionStatus.IN_PROGRESS.value),
                "pendingAssignments": self.sessions.count(self.db, status=SessionStatus.PENDING.value),
                "completedSessions": self.sessions.count(self.db, status=SessionStatus.COMPLETED.value),
                "pendingReviews": self.sessions.count(
                    self.db, status=SessionStatus.PENDING_APPROVAL.value, reviewed_at=None
                ),
                "pendingPayments": payments.count(self.db, status="pending"),
                "revenue": payments.verified_revenue(self.db),
                "certificationsIssued": self.certifications.count_awards(self.db),
            },
            "recentUsers": [user_to_dict(u, include_profile=False) for u in users.recent_users(self.db)],
            "recentSessions": [session_to_dict(s) for s in recent_sessions],
            "pendingPaymentsList": [payment_to_dict(p, include_user=True) for p in pending_payments],
        }
