"""User service - admin management of clients, cleaners and admins"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User, UserRole
from ...security_utils import generate_temporary_password, hash_password
from ...services.openphone_service import OpenPhoneService
from ...shared.permissions import (
    ALL_PERMISSIONS,
    MANAGE_ADMINS,
    MANAGE_CLEANERS,
    MANAGE_CUSTOMERS,
    has_any_permission,
    has_permission,
)
from ...shared.time_utils import derive_status
from ...shared.validators import sanitize_phone
from .repository import UserRepository
from .schemas import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

TEMPORARY_PASSWORD_MIN_LENGTH = 6

# Permission an admin needs to manage users of each role, and the noun used in errors
ROLE_PERMISSIONS = {
    UserRole.CLIENT: (MANAGE_CUSTOMERS, "customers"),
    UserRole.CLEANER: (MANAGE_CLEANERS, "cleaners"),
    UserRole.ADMIN: (MANAGE_ADMINS, "admins"),
    UserRole.OWNER: (MANAGE_ADMINS, "admins"),
}


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session, openphone_service: Optional[OpenPhoneService] = None):
        self.db = db
        self.repo = UserRepository()
        self.openphone = openphone_service

    def _check_role_permission(self, admin: User, role: str, action: str = "manage") -> None:
        permission, noun = ROLE_PERMISSIONS[role]
        if not has_permission(admin, permission):
            raise HTTPException(status_code=403, detail=f"You do not have permission to {action} {noun}")

    def get_user(self, user_id: int, detail: str = "User not found") -> User:
        user = self.repo.get_user(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail=detail)
        return user

    def list_users(self, admin: User, role: Optional[str] = None) -> list[User]:
        if role:
            self._check_role_permission(admin, role)
        elif not has_any_permission(admin, (MANAGE_CUSTOMERS, MANAGE_CLEANERS, MANAGE_ADMINS)):
            raise HTTPException(status_code=403, detail="You do not have permission to manage users")
        return self.repo.list_users(self.db, role)

    async def create_user(self, admin: User, data: UserCreate) -> tuple[User, Optional[str]]:
        """Create a user; CLIENT accounts also get a temporary password returned to the admin"""
        self._check_role_permission(admin, data.role, "create")

        if self.repo.get_user_by_email(self.db, data.email):
            raise HTTPException(status_code=409, detail="Email already in use")

        temporary_password = generate_temporary_password() if data.role == UserRole.CLIENT else None

        admin_permissions = None
        if data.role == UserRole.ADMIN:
            admin_permissions = {}
        elif data.role == UserRole.OWNER:
            admin_permissions = {p: True for p in ALL_PERMISSIONS}

        user = self.repo.create_user(
            self.db,
            email=str(data.email).lower(),
            password_hash=hash_password(data.password),
            role=data.role,
            first_name=data.firstName,
            last_name=data.lastName,
            phone=sanitize_phone(data.phone) or None,
            color=data.color,
            temporary_password=temporary_password,
            has_reset_password=False,
            admin_permissions=admin_permissions,
        )
        logger.info(f"✅ Admin {admin.id} created {user.role} user {user.id}")

        await self._sync_openphone(user)
        return user, temporary_password

    async def _sync_openphone(self, user: User) -> None:
        if not self.openphone or user.role != UserRole.CLIENT or not user.phone or user.openphone_contact_id:
            return
        contact_id = await self.openphone.create_contact(
            user.first_name or "",
            user.last_name or "",
            user.phone,
            email=user.email,
            role="Client",
            external_id=str(user.id),
        )
        if contact_id:
            user.openphone_contact_id = contact_id
            self.db.commit()

    def _check_permission_grant(self, admin: User, target_role: str, permissions: dict[str, bool]) -> None:
        """An ADMIN may only grant permissions it holds itself and never edit an OWNER"""
        if admin.role == UserRole.OWNER:
            return
        if target_role == UserRole.OWNER:
            raise HTTPException(status_code=403, detail="Admins cannot modify owner permissions")

        own = admin.admin_permissions
        if not own:
            raise HTTPException(status_code=403, detail="You do not have permission to grant any permissions")
        if not own.get(MANAGE_ADMINS):
            raise HTTPException(status_code=403, detail="You do not have permission to manage admin permissions")
        for permission, value in permissions.items():
            if value is True and not own.get(permission):
                raise HTTPException(
                    status_code=403,
                    detail=f"You cannot grant the '{permission}' permission because you do not have it yourself",
                )

    async def update_user(self, admin: User, user_id: int, data: UserUpdate) -> User:
        target = self.get_user(user_id, "User to update not found")
        provided = data.model_fields_set

        final_role = data.role or target.role
        self._check_role_permission(admin, final_role)

        if data.email and data.email.lower() != target.email:
            if self.repo.get_user_by_email(self.db, data.email):
                raise HTTPException(status_code=409, detail="Email already in use")
            target.email = str(data.email).lower()

        if "role" in provided and data.role:
            target.role = data.role
        if "firstName" in provided:
            target.first_name = data.firstName
        if "lastName" in provided:
            target.last_name = data.lastName
        if "phone" in provided:
            target.phone = sanitize_phone(data.phone) or None
        if "color" in provided:
            target.color = data.color
        if data.password:
            target.password_hash = hash_password(data.password)

        if "temporaryPassword" in provided:
            if not data.temporaryPassword:
                target.temporary_password = None
                target.has_reset_password = False
            elif len(data.temporaryPassword) >= TEMPORARY_PASSWORD_MIN_LENGTH:
                target.temporary_password = data.temporaryPassword
                target.has_reset_password = False

        if data.adminPermissions is not None and final_role in UserRole.STAFF:
            self._check_permission_grant(admin, final_role, data.adminPermissions)
            target.admin_permissions = dict(data.adminPermissions)

        self.db.commit()
        self.db.refresh(target)
        logger.info(f"✅ Admin {admin.id} updated user {target.id}")

        await self._sync_openphone(target)
        return target

    def delete_user(self, admin: User, user_id: int) -> dict:
        if admin.id == user_id:
            raise HTTPException(status_code=400, detail="You cannot delete your own account")

        target = self.get_user(user_id, "User to delete not found")
        self._check_role_permission(admin, target.role, "delete")

        self.repo.delete_user(self.db, target)
        logger.info(f"🗑️ Admin {admin.id} deleted {target.role} user {user_id}")
        return {"success": True}

    def get_customer_details(self, user_id: int) -> dict:
        """Bookings on both sides with derived status, payments, saved cards and totals"""
        customer = self.get_user(user_id, "Customer not found")

        client_bookings = [
            (b, derive_status(b.status, b.scheduled_date)) for b in self.repo.get_customer_bookings(self.db, user_id)
        ]
        cleaner_bookings = [
            (b, derive_status(b.status, b.scheduled_date)) for b in self.repo.get_cleaner_bookings(self.db, user_id)
        ]
        payments = self.repo.get_customer_payments(self.db, user_id)
        all_statuses = [status for _, status in client_bookings + cleaner_bookings]

        statistics = {
            "totalBookings": len(all_statuses),
            "completedBookings": all_statuses.count("COMPLETED"),
            "cancelledBookings": all_statuses.count("CANCELLED"),
            "totalSpent": sum(b.final_price or 0 for b, _ in client_bookings),
            "totalEarned": sum(b.final_price or 0 for b, _ in cleaner_bookings),
            "totalPaid": sum(p.amount for p in payments if p.is_captured),
        }

        return {
            "customer": customer,
            "clientBookings": client_bookings,
            "cleanerBookings": cleaner_bookings,
            "payments": payments,
            "savedPaymentMethods": self.repo.get_saved_methods(self.db, user_id),
            "statistics": statistics,
        }
