"""Admin permission checks"""

from typing import Iterable

from ..models import User, UserRole

MANAGE_BOOKINGS = "manage_bookings"
MANAGE_CUSTOMERS = "manage_customers"
MANAGE_CLEANERS = "manage_cleaners"
MANAGE_ADMINS = "manage_admins"
MANAGE_PRICING = "manage_pricing"
MANAGE_TIME_OFF_REQUESTS = "manage_time_off_requests"
VIEW_REPORTS = "view_reports"

ALL_PERMISSIONS = (
    MANAGE_BOOKINGS,
    MANAGE_CUSTOMERS,
    MANAGE_CLEANERS,
    MANAGE_ADMINS,
    MANAGE_PRICING,
    MANAGE_TIME_OFF_REQUESTS,
    VIEW_REPORTS,
)


def has_permission(user: User, permission: str) -> bool:
    """OWNER holds every permission; ADMIN only those explicitly set to true"""
    if user.role == UserRole.OWNER:
        return True
    if user.role != UserRole.ADMIN:
        return False
    permissions = user.admin_permissions or {}
    return permissions.get(permission) is True


def has_any_permission(user: User, permissions: Iterable[str]) -> bool:
    return any(has_permission(user, p) for p in permissions)


def has_all_permissions(user: User, permissions: Iterable[str]) -> bool:
    return all(has_permission(user, p) for p in permissions)
