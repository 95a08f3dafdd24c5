"""Auth domain schemas - Pydantic models for validation"""

from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from ...models import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=8)
    role: Literal["CLIENT", "CLEANER"] = "CLIENT"
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr
    temporaryPassword: str = Field(min_length=1)
    newPassword: str = Field(min_length=8)


class AuthUser(BaseModel):
    id: int
    email: str
    role: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    hasResetPassword: bool = True
    adminPermissions: Optional[dict[str, bool]] = None

    @classmethod
    def from_user(cls, user) -> "AuthUser":
        """Permissions are only exposed for ADMIN and OWNER accounts"""
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            firstName=user.first_name,
            lastName=user.last_name,
            phone=user.phone,
            hasResetPassword=user.has_reset_password,
            adminPermissions=user.admin_permissions if user.role in UserRole.STAFF else None,
        )


class TokenResponse(BaseModel):
    token: str
    user: AuthUser
