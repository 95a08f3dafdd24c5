"""API tests for admin user management"""

from datetime import datetime

from app.models import Booking, BookingStatus, Payment, User, UserRole
from app.security_utils import verify_password

from .conftest import auth_headers, make_user


def test_create_client_returns_temporary_password(client, db, admin, openphone_requests):
    response = client.post(
        "/admin/users",
        json={
            "email": "Sam@Example.com",
            "password": "secret99",
            "role": "CLIENT",
            "firstName": "Sam",
            "phone": "555-222-3333",
        },
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["generatedPassword"]
    assert body["user"]["email"] == "sam@example.com"
    assert body["user"]["phone"] == "5552223333"
    assert body["user"]["hasResetPassword"] is False
    assert body["user"]["openphoneContactId"]
    user = db.get(User, body["user"]["id"])
    assert verify_password("secret99", user.password_hash)


def test_create_cleaner_has_no_temporary_password(client, admin):
    response = client.post(
        "/admin/users",
        json={"email": "clean@example.com", "password": "secret99", "role": "CLEANER", "color": "#00FF00"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    assert response.json()["generatedPassword"] is None
    assert response.json()["user"]["color"] == "#00FF00"


def test_create_rejects_bad_color_and_short_password(client, admin):
    bad_color = {"email": "a@example.com", "password": "secret99", "role": "CLEANER", "color": "green"}
    short = {"email": "b@example.com", "password": "123", "role": "CLEANER"}

    assert client.post("/admin/users", json=bad_color, headers=auth_headers(admin)).status_code == 422
    assert client.post("/admin/users", json=short, headers=auth_headers(admin)).status_code == 422


def test_duplicate_email(client, admin, customer):
    response = client.post(
        "/admin/users",
        json={"email": customer.email, "password": "secret99", "role": "CLIENT"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email already in use"


def test_admin_without_manage_admins_cannot_create_admins(client, admin):
    response = client.post(
        "/admin/users",
        json={"email": "boss@example.com", "password": "secret99", "role": "ADMIN"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to create admins"


def test_owner_creates_admin_with_empty_permissions(client, owner):
    response = client.post(
        "/admin/users",
        json={"email": "helper@example.com", "password": "secret99", "role": "ADMIN"},
        headers=auth_headers(owner),
    )
    assert response.json()["user"]["adminPermissions"] == {}


def test_list_users_by_role(client, admin, customer, cleaner):
    response = client.get("/admin/users", params={"role": "CLEANER"}, headers=auth_headers(admin))

    assert response.status_code == 200
    assert [u["id"] for u in response.json()] == [cleaner.id]


def test_list_users_needs_a_user_permission(client, db):
    admin = make_user(db, UserRole.ADMIN, admin_permissions={"view_reports": True})
    assert client.get("/admin/users", headers=auth_headers(admin)).status_code == 403


def test_partial_update(client, db, admin, customer):
    response = client.patch(
        f"/admin/users/{customer.id}", json={"firstName": "Renamed"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["firstName"] == "Renamed"
    assert response.json()["phone"] == "5551234567"


def test_temporary_password_rules(client, db, admin, customer):
    headers = auth_headers(admin)

    client.patch(f"/admin/users/{customer.id}", json={"temporaryPassword": "abc"}, headers=headers)
    db.refresh(customer)
    assert customer.temporary_password is None

    client.patch(f"/admin/users/{customer.id}", json={"temporaryPassword": "abcdef"}, headers=headers)
    db.refresh(customer)
    assert customer.temporary_password == "abcdef"
    assert customer.has_reset_password is False

    client.patch(f"/admin/users/{customer.id}", json={"temporaryPassword": ""}, headers=headers)
    db.refresh(customer)
    assert customer.temporary_password is None


def test_permission_grants(client, db, owner):
    granter = make_user(
        db,
        UserRole.ADMIN,
        admin_permissions={"manage_admins": True, "manage_bookings": True, "view_reports": False},
    )
    target = make_user(db, UserRole.ADMIN, admin_permissions={})

    ok = client.patch(
        f"/admin/users/{target.id}",
        json={"adminPermissions": {"manage_bookings": True}},
        headers=auth_headers(granter),
    )
    assert ok.status_code == 200
    assert ok.json()["adminPermissions"] == {"manage_bookings": True}

    denied = client.patch(
        f"/admin/users/{target.id}",
        json={"adminPermissions": {"view_reports": True}},
        headers=auth_headers(granter),
    )
    assert denied.status_code == 403
    assert "'view_reports'" in denied.json()["detail"]

    on_owner = client.patch(
        f"/admin/users/{owner.id}",
        json={"adminPermissions": {"manage_bookings": False}},
        headers=auth_headers(granter),
    )
    assert on_owner.status_code == 403


def test_cannot_delete_self(client, admin):
    response = client.delete(f"/admin/users/{admin.id}", headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["detail"] == "You cannot delete your own account"


def test_delete_user(client, db, admin, customer):
    assert client.delete(f"/admin/users/{customer.id}", headers=auth_headers(admin)).json() == {"success": True}
    assert db.query(User).filter(User.id == customer.id).count() == 0


def test_delete_client_removes_bookings_and_payments(client, db, admin, customer):
    booking = Booking(
        client_id=customer.id,
        service_type="Standard Cleaning",
        scheduled_date=datetime(2030, 2, 1),
        final_price=100.0,
        status=BookingStatus.CONFIRMED,
    )
    db.add(booking)
    db.commit()
    db.add(Payment(booking_id=booking.id, amount=100.0, status="succeeded", is_captured=True))
    db.commit()

    response = client.delete(f"/admin/users/{customer.id}", headers=auth_headers(admin))

    assert response.status_code == 200
    db.expire_all()
    assert db.query(User).filter(User.id == customer.id).count() == 0
    assert db.query(Booking).count() == 0
    assert db.query(Payment).count() == 0


def test_delete_cleaner_unassigns_bookings(client, db, admin, customer, cleaner):
    booking = Booking(
        client_id=customer.id,
        cleaner_id=cleaner.id,
        service_type="Standard Cleaning",
        scheduled_date=datetime(2030, 2, 1),
        status=BookingStatus.CONFIRMED,
    )
    db.add(booking)
    db.commit()

    assert client.delete(f"/admin/users/{cleaner.id}", headers=auth_headers(admin)).status_code == 200
    db.expire_all()
    assert db.get(Booking, booking.id).cleaner_id is None


def test_customer_details(client, db, admin, customer, saved_card):
    past = Booking(
        client_id=customer.id,
        service_type="Standard Cleaning",
        scheduled_date=datetime(2020, 2, 1),
        final_price=100.0,
        status=BookingStatus.CONFIRMED,
    )
    cancelled = Booking(
        client_id=customer.id,
        service_type="Standard Cleaning",
        scheduled_date=datetime(2030, 2, 1),
        final_price=80.0,
        status=BookingStatus.CANCELLED,
    )
    db.add_all([past, cancelled])
    db.commit()
    db.add(Payment(booking_id=past.id, amount=100.0, status="succeeded", is_captured=True))
    db.commit()

    response = client.get(f"/admin/users/{customer.id}/details", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["statistics"] == {
        "totalBookings": 2,
        "completedBookings": 1,
        "cancelledBookings": 1,
        "totalSpent": 180.0,
        "totalEarned": 0,
        "totalPaid": 100.0,
    }
    assert len(body["savedPaymentMethods"]) == 1
    assert {b["status"] for b in body["clientBookings"]} == {"COMPLETED", "CANCELLED"}
