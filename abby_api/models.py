import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a unique string ID for a new row"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), nullable=False, default="client", index=True)  # client, doctor, admin
    # Clients are active on signup; doctors and admins wait for an administrator
    is_active = Column(Boolean, default=False, nullable=False)
    phone = Column(String(50), nullable=True)
    avatar = Column(String(500), nullable=True)
    date_of_birth = Column(DateTime, nullable=True)
    has_completed_onboarding = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client_profile = relationship("ClientProfile", back_populates="user", uselist=False)
    doctor_profile = relationship("DoctorProfile", back_populates="user", uselist=False)
    admin_profile = relationship("AdminProfile", back_populates="user", uselist=False)
    sessions_as_client = relationship(
        "TherapySession", back_populates="client", foreign_keys="TherapySession.client_id"
    )
    sessions_as_doctor = relationship(
        "TherapySession", back_populates="doctor", foreign_keys="TherapySession.doctor_id"
    )
    payments = relationship("Payment", back_populates="user", foreign_keys="Payment.user_id")
    certifications = relationship(
        "UserCertification", back_populates="user", foreign_keys="UserCertification.user_id"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class ClientProfile(Base):
    __tablename__ = "client_profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    emergency_contact = Column(String(255), nullable=True)
    primary_goals = Column(JSON, default=list)
    anxiety_triggers = Column(JSON, default=list)
    preferred_therapy_type = Column(JSON, default=list)
    previous_therapy_experience = Column(Boolean, default=False)
    medication_status = Column(String(255), nullable=True)
    # Aggregates driven by passing quiz completions
    total_sessions_completed = Column(Integer, default=0, nullable=False)
    total_quizzes_completed = Column(Integer, default=0, nullable=False)
    progress_level = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="client_profile")


class DoctorProfile(Base):
    __tablename__ = "doctor_profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    # Empty until onboarding; uniqueness is enforced for non-empty values in the service
    license_number = Column(String(100), nullable=True, index=True)
    specializations = Column(JSON, default=list)
    education = Column(JSON, default=list)
    experience = Column(Integer, default=0)
    bio = Column(Text, nullable=True)
    working_hours = Column(JSON, default=dict)  # {"monday": {"start": "09:00", "end": "17:00", "isAvailable": true}}
    session_duration = Column(Integer, default=50)  # minutes
    break_between_sessions = Column(Integer, default=10)  # minutes
    is_available = Column(Boolean, default=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="doctor_profile")


class AdminProfile(Base):
    __tablename__ = "admin_profiles"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), unique=True, nullable=False)
    permissions = Column(JSON, default=list)
    last_login = Column(DateTime, nullable=True)

    user = relationship("User", back_populates="admin_profile")


class TherapySession(Base):
    """One AI- or human-led therapy encounter"""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True, default=generate_id)
    client_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    # Null until an admin assigns a therapist or the client picks one when booking
    doctor_id = Column(String(36), ForeignKey("users.id"), nullable=True, index=True)
    type = Column(String(10), nullable=False)  # ai, human
    # Status workflow: pending → scheduled → in-progress → completed → pending-approval
    # pending / scheduled / in-progress may also move to cancelled (terminal)
    status = Column(String(30), nullable=False, default="scheduled", index=True)
    scheduled_at = Column(DateTime, nullable=True, index=True)
    started_at = Column(DateTime, nullable=True)
    ended_at = Column(DateTime, nullable=True)
    topic = Column(String(500), nullable=True)
    summary = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    meeting_url = Column(String(500), nullable=True)
    ai_model = Column(String(100), nullable=True)
    client_rating = Column(Integer, nullable=True)
    client_feedback = Column(Text, nullable=True)
    doctor_rating = Column(Integer, nullable=True)

    # Admin review of submitted session notes
    reviewed_at = Column(DateTime, nullable=True)
    reviewed_by = Column(String(36), nullable=True)
    review_approved = Column(Boolean, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    client = relationship("User", back_populates="sessions_as_client", foreign_keys=[client_id])
    doctor = relationship("User", back_populates="sessions_as_doctor", foreign_keys=[doctor_id])
    quiz_result = relationship("QuizResult", back_populates="session", uselist=False)
    messages = relationship(
        "ChatMessage", back_populates="session", order_by="ChatMessage.created_at"
    )
    session_notes = relationship("SessionNote", back_populates="session")


class QuizResult(Base):
    __tablename__ = "quiz_results"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(String(36), ForeignKey("sessions.id"), unique=True, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    questions = Column(JSON, default=list)
    answers = Column(JSON, default=list)  # Ordered as answered
    score = Column(Integer, nullable=False)  # 0-100
    total_questions = Column(Integer, default=0)
    completed_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("TherapySession", back_populates="quiz_result")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(String(36), ForeignKey("sessions.id"), nullable=False, index=True)
    sender = Column(String(10), nullable=False)  # user, ai, doctor
    content = Column(Text, nullable=False)
    type = Column(String(10), default="text")  # text, voice
    created_at = Column(DateTime, default=datetime.utcnow)

    session = relationship("TherapySession", back_populates="messages")


class SessionNote(Base):
    __tablename__ = "session_notes"

    id = Column(String(36), primary_key=True, default=generate_id)
    session_id = Column(String(36), ForeignKey("sessions.id"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    tags = Column(JSON, default=list)
    diagnosis = Column(Text, nullable=True)
    treatment_plan = Column(Text, nullable=True)
    next_steps = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    session = relationship("TherapySession", back_populates="session_notes")


class Certification(Base):
    __tablename__ = "certifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text, nullable=True)
    requirements = Column(JSON, default=list)  # Human-readable requirement lines
    required_sessions = Column(Integer, nullable=False)
    required_quizzes = Column(Integer, nullable=False)
    minimum_score = Column(Integer, nullable=False)
    badge_image_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class UserCertification(Base):
    __tablename__ = "user_certifications"
    __table_args__ = (UniqueConstraint("user_id", "certification_id", name="uq_user_certification"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    certification_id = Column(String(36), ForeignKey("certifications.id"), nullable=False)
    status = Column(String(20), nullable=False, default="completed")  # completed, approved
    progress_percentage = Column(Integer, default=0, nullable=False)
    earned_at = Column(DateTime, nullable=True)
    is_approved = Column(Boolean, default=False, nullable=False)
    approved_by = Column(String(36), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="certifications", foreign_keys=[user_id])
    certification = relationship("Certification")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)
    payment_method = Column(String(20), nullable=False)  # paypal, bank-transfer
    status = Column(String(20), default="pending", nullable=False, index=True)  # pending, completed
    transaction_id = Column(String(255), nullable=True)
    account_name = Column(String(255), nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    verified_by = Column(String(36), nullable=True)
    verified_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="payments", foreign_keys=[user_id])


class APIKey(Base):
    __tablename__ = "api_keys"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    key_hash = Column(String(64), unique=True, nullable=False)  # sha256 hex of the raw key
    provider = Column(String(50), default="cohere")
    permissions = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(String(36), ForeignKey("users.id"), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    last_used = Column(DateTime, nullable=True)
    usage_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
