import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..database import get_db
from ..domain.auth.schemas import LoginRequest, RegisterRequest
from ..domain.auth.service import AuthService
from ..domain.users.schemas import OnboardingRequest, ProfileUpdate
from ..domain.users.service import UserService
from ..models import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    return UserService(db)


@router.post("/register", status_code=201)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Create an account. Doctors and admins need an administrator to activate them."""
    return service.register(data)


@router.post("/login")
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    return service.login(data)


@router.get("/me")
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return service.me(current_user)


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    user = service.update_profile(current_user, data)
    return {"message": "Profile updated successfully", "user": user}


@router.post("/onboarding")
async def complete_onboarding(
    data: OnboardingRequest,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.complete_onboarding(current_user, data)
