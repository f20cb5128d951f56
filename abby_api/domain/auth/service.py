"""Auth service - Registration and credential login"""

import logging
from datetime import datetime

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...database import unit_of_work
from ...models import User
from ...security_utils import create_access_token, hash_password, verify_password
from ...shared.validators import parse_date
from ..users.repository import UserRepository
from ..users.schemas import user_to_dict
from .schemas import LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


class AuthService:
    """Service layer for authentication"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def register(self, data: RegisterRequest) -> dict:
        """
        Create an account and its role profile.

        Clients can sign in straight away; doctors and admins stay inactive
        until an administrator activates them.
        """
        if self.repo.get_by_email(self.db, data.email):
            raise HTTPException(status_code=400, detail="User with this email already exists")

        date_of_birth = None
        if data.dateOfBirth:
            try:
                date_of_birth = parse_date(data.dateOfBirth)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e)) from e

        with unit_of_work(self.db):
            user = self.repo.create_user(
                self.db,
                email=data.email,
                password_hash=hash_password(data.password),
                first_name=data.firstName,
                last_name=data.lastName,
                role=data.role,
                date_of_birth=date_of_birth,
                is_active=data.role == "client",
            )

        logger.info(f"✅ Registered {user.role} {user.id}")
        return {"message": "User registered successfully", "user": user_to_dict(user, include_profile=False)}

    def login(self, data: LoginRequest) -> dict:
        user = self.repo.get_by_email(self.db, data.email)
        if not user or not verify_password(data.password, user.password_hash):
            logger.warning(f"⚠️ Failed login for {data.email}")
            raise HTTPException(status_code=401, detail="Invalid email or password")

        if not user.is_active:
            raise HTTPException(
                status_code=401,
                detail="Account is pending activation. Please contact an administrator.",
            )

        if user.role == "admin" and user.admin_profile is not None:
            with unit_of_work(self.db):
                user.admin_profile.last_login = datetime.utcnow()

        token = create_access_token(user.id, user.email, user.role)
        return {"message": "Login successful", "token": token, "user": user_to_dict(user)}

    def me(self, user: User) -> dict:
        return {"user": user_to_dict(user)}
