"""Auth service - login, self registration and temporary-password reset"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...security_utils import create_access_token, hash_password, verify_password
from ...shared.validators import sanitize_phone
from ..users.repository import UserRepository
from .schemas import ForgotPasswordRequest, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def login(self, data: LoginRequest) -> tuple[str, User]:
        user = self.repo.get_user_by_email(self.db, data.email)
        if not user or not verify_password(data.password, user.password_hash):
            logger.warning(f"⚠️ Failed login for {data.email}")
            raise HTTPException(status_code=401, detail="Invalid email or password")

        logger.info(f"✅ User {user.id} logged in")
        return create_access_token(user.id), user

    def register(self, data: RegisterRequest) -> tuple[str, User]:
        if self.repo.get_user_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="Email already registered")

        user = self.repo.create_user(
            self.db,
            email=str(data.email).lower(),
            password_hash=hash_password(data.password),
            role=data.role,
            first_name=data.firstName,
            last_name=data.lastName,
            phone=sanitize_phone(data.phone) or None,
        )
        logger.info(f"✅ Registered {user.role} user {user.id}")
        return create_access_token(user.id), user

    def forgot_password(self, data: ForgotPasswordRequest) -> dict:
        """
        Replace the password of an account that was created with a temporary password.

        The temporary password stays on the account so the admin can still
        see what was issued; `has_reset_password` records the reset.
        """
        user = self.repo.get_user_by_email(self.db, data.email)
        if not user:
            raise HTTPException(status_code=404, detail="No account found with this email address")

        if not user.temporary_password:
            raise HTTPException(
                status_code=400,
                detail="This account was not created with a temporary password. "
                "Please use the login page or contact support.",
            )
        if data.temporaryPassword != user.temporary_password:
            raise HTTPException(
                status_code=401,
                detail="Incorrect temporary password. Please contact us if you've forgotten it.",
            )

        user.password_hash = hash_password(data.newPassword)
        user.has_reset_password = True
        self.db.commit()
        logger.info(f"🔁 Password reset for user {user.id}")

        return {
            "success": True,
            "message": "Password has been reset successfully. You can now log in with your new password.",
        }
