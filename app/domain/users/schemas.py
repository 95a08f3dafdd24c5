"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ...shared.validators import validate_hex_color
from ..bookings.schemas import BookingResponse
from ..payments.schemas import PaymentResponse, SavedPaymentMethodResponse

RoleLiteral = Literal["CLIENT", "CLEANER", "ADMIN", "OWNER"]


class UserCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    role: RoleLiteral
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)


class UserUpdate(BaseModel):
    """
    Admin edit of a user.

    Only fields present in the request are applied. An empty
    `temporaryPassword` clears it; one shorter than 6 characters is ignored.
    """

    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[RoleLiteral] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    temporaryPassword: Optional[str] = None
    color: Optional[str] = None
    adminPermissions: Optional[dict[str, bool]] = None

    @field_validator("color")
    @classmethod
    def check_color(cls, v):
        return validate_hex_color(v)


class UserResponse(BaseModel):
    id: int
    email: str
    role: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    color: Optional[str] = None
    temporaryPassword: Optional[str] = None
    hasResetPassword: bool = True
    adminPermissions: Optional[dict[str, bool]] = None
    openphoneContactId: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            role=user.role,
            firstName=user.first_name,
            lastName=user.last_name,
            phone=user.phone,
            color=user.color,
            temporaryPassword=user.temporary_password,
            hasResetPassword=user.has_reset_password,
            adminPermissions=user.admin_permissions,
            openphoneContactId=user.openphone_contact_id,
            createdAt=user.created_at,
        )


class UserCreateResponse(BaseModel):
    user: UserResponse
    generatedPassword: Optional[str] = None


class CustomerStatistics(BaseModel):
    totalBookings: int
    completedBookings: int
    cancelledBookings: int
    totalSpent: float
    totalEarned: float
    totalPaid: float


class CustomerDetailsResponse(BaseModel):
    customer: UserResponse
    clientBookings: list[BookingResponse]
    cleanerBookings: list[BookingResponse]
    payments: list[PaymentResponse]
    savedPaymentMethods: list[SavedPaymentMethodResponse]
    statistics: CustomerStatistics
