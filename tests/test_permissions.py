"""Tests for admin permission checks and role-gated endpoints"""

from app.models import User, UserRole
from app.shared.permissions import (
    MANAGE_BOOKINGS,
    VIEW_REPORTS,
    has_all_permissions,
    has_any_permission,
    has_permission,
)

from .conftest import auth_headers, make_user


def test_owner_has_every_permission():
    owner = User(role=UserRole.OWNER, admin_permissions={})
    assert has_permission(owner, MANAGE_BOOKINGS)
    assert has_all_permissions(owner, [MANAGE_BOOKINGS, VIEW_REPORTS])


def test_admin_needs_explicit_true():
    admin = User(role=UserRole.ADMIN, admin_permissions={MANAGE_BOOKINGS: True, VIEW_REPORTS: "yes"})
    assert has_permission(admin, MANAGE_BOOKINGS)
    assert not has_permission(admin, VIEW_REPORTS)
    assert has_any_permission(admin, [VIEW_REPORTS, MANAGE_BOOKINGS])
    assert not has_all_permissions(admin, [VIEW_REPORTS, MANAGE_BOOKINGS])


def test_admin_without_permissions_map():
    assert not has_permission(User(role=UserRole.ADMIN, admin_permissions=None), MANAGE_BOOKINGS)


def test_non_staff_never_have_permissions():
    for role in (UserRole.CLIENT, UserRole.CLEANER):
        user = User(role=role, admin_permissions={MANAGE_BOOKINGS: True})
        assert not has_permission(user, MANAGE_BOOKINGS)


def test_missing_token_is_401(client):
    response = client.get("/admin/bookings")
    assert response.status_code == 401


def test_malformed_token_is_401(client):
    response = client.get("/admin/bookings", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


def test_client_cannot_use_admin_endpoints(client, customer):
    response = client.get("/admin/bookings", headers=auth_headers(customer))
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"


def test_admin_without_permission_is_forbidden(client, db):
    admin = make_user(db, UserRole.ADMIN, admin_permissions={MANAGE_BOOKINGS: False})
    response = client.get("/admin/bookings", headers=auth_headers(admin))
    assert response.status_code == 403


def test_client_cannot_use_cleaner_portal(client, customer):
    response = client.get("/cleaner/schedule", headers=auth_headers(customer))
    assert response.status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}
