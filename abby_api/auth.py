import logging

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .database import get_db
from .models import User
from .security_utils import decode_access_token

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user"""
    if not credentials:
        raise HTTPException(status_code=401, detail="Access token required")

    payload = decode_access_token(credentials.credentials)
    if not payload or not payload.get("userId"):
        raise HTTPException(
            status_code=401,
            detail="Invalid or expired token",
            headers={"X-Token-Expired": "true"},
        )

    # Verify user still exists and is active
    user = db.query(User).filter(User.id == payload["userId"]).first()
    if not user or not user.is_active:
        logger.warning(f"⚠️ Token presented for missing or inactive user {payload['userId']}")
        raise HTTPException(status_code=401, detail="Invalid or inactive user")

    return user


def require_role(*roles: str):
    """
    Build a dependency that only lets users with one of `roles` through
    and returns the user, e.g. `user: User = Depends(require_role("admin"))`.
    """

    async def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            logger.warning(f"⚠️ User {user.email} ({user.role}) denied; requires {roles}")
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return checker


get_current_client = require_role("client")
get_current_doctor = require_role("doctor")
get_current_admin = require_role("admin")
