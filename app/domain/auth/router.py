"""Auth router - token issue and account endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import get_current_user
from ...database import get_db
from ...models import User
from .schemas import AuthUser, ForgotPasswordRequest, LoginRequest, RegisterRequest, TokenResponse
from .service import AuthService

router = APIRouter(prefix="/auth", tags=["Authentication"])


def get_auth_service(db: Session = Depends(get_db)) -> AuthService:
    return AuthService(db)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, service: AuthService = Depends(get_auth_service)):
    token, user = service.login(data)
    return TokenResponse(token=token, user=AuthUser.from_user(user))


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(data: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    token, user = service.register(data)
    return TokenResponse(token=token, user=AuthUser.from_user(user))


@router.post("/forgot-password")
async def forgot_password(data: ForgotPasswordRequest, service: AuthService = Depends(get_auth_service)):
    """Set a new password using the temporary password an admin issued"""
    return service.forgot_password(data)


@router.get("/me", response_model=AuthUser)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user"""
    return AuthUser.from_user(current_user)
