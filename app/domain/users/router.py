"""User router - admin user management endpoints"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...services.openphone_service import OpenPhoneService, get_openphone_service
from ...shared.permissions import MANAGE_CUSTOMERS
from ..bookings.schemas import BookingResponse
from ..payments.schemas import PaymentResponse, SavedPaymentMethodResponse
from .schemas import (
    CustomerDetailsResponse,
    RoleLiteral,
    UserCreate,
    UserCreateResponse,
    UserResponse,
    UserUpdate,
)
from .service import UserService

router = APIRouter(prefix="/admin/users", tags=["Users"])


def get_user_service(
    db: Session = Depends(get_db),
    openphone_service: OpenPhoneService = Depends(get_openphone_service),
) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db, openphone_service)


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: Optional[RoleLiteral] = Query(None),
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    """List users, optionally for one role; role permissions are checked per request"""
    return [UserResponse.from_user(u) for u in service.list_users(current_user, role)]


@router.post("", response_model=UserCreateResponse, status_code=201)
async def create_user(
    data: UserCreate,
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    user, generated_password = await service.create_user(current_user, data)
    return UserCreateResponse(user=UserResponse.from_user(user), generatedPassword=generated_password)


@router.patch("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_user(await service.update_user(current_user, user_id, data))


@router.delete("/{user_id}")
async def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin()),
    service: UserService = Depends(get_user_service),
):
    return service.delete_user(current_user, user_id)


@router.get("/{user_id}/details", response_model=CustomerDetailsResponse)
async def get_customer_details(
    user_id: int,
    current_user: User = Depends(require_admin(MANAGE_CUSTOMERS)),
    service: UserService = Depends(get_user_service),
):
    details = service.get_customer_details(user_id)
    return CustomerDetailsResponse(
        customer=UserResponse.from_user(details["customer"]),
        clientBookings=[BookingResponse.from_booking(b, status) for b, status in details["clientBookings"]],
        cleanerBookings=[BookingResponse.from_booking(b, status) for b, status in details["cleanerBookings"]],
        payments=[PaymentResponse.from_payment(p) for p in details["payments"]],
        savedPaymentMethods=[SavedPaymentMethodResponse.from_method(m) for m in details["savedPaymentMethods"]],
        statistics=details["statistics"],
    )
