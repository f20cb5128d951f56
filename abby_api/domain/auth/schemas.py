"""Auth domain schemas"""

from typing import Optional

from pydantic import BaseModel, field_validator

from ...shared.validators import validate_email, validate_password

USER_ROLES = ("client", "doctor", "admin")


class RegisterRequest(BaseModel):
    email: str
    password: str
    firstName: str
    lastName: str
    role: str = "client"
    dateOfBirth: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)

    @field_validator("firstName", "lastName")
    @classmethod
    def check_name(cls, v):
        if not v or not v.strip():
            raise ValueError("First name and last name are required")
        return v.strip()

    @field_validator("role")
    @classmethod
    def check_role(cls, v):
        if v not in USER_ROLES:
            raise ValueError(f"Role must be one of: {', '.join(USER_ROLES)}")
        return v


class LoginRequest(BaseModel):
    email: str
    password: str
