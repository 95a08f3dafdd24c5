"""API tests for saved cards, payment intents, hold capture, refunds and charge dashboards"""

from datetime import datetime, timedelta

import pytest

from app.models import Booking, BookingStatus, Payment, SavedPaymentMethod, User, UserRole
from app.shared.time_utils import utcnow

from .conftest import auth_headers, make_user


def _booking(db, client, scheduled_date=None, status=BookingStatus.CONFIRMED, **fields):
    booking = Booking(
        client_id=client.id,
        service_type="Standard Cleaning",
        scheduled_date=scheduled_date or datetime(2030, 5, 1, 9),
        final_price=150.0,
        status=status,
        **fields,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def _hold(db, fake_stripe, booking, amount=150.0, status="requires_capture"):
    intent = fake_stripe.create_hold(int(amount * 100), "cus_existing", "pm_saved_4242", "hold", {})
    intent.status = status
    payment = Payment(
        booking_id=booking.id,
        amount=amount,
        stripe_payment_intent_id=intent.id,
        stripe_payment_method_id="pm_saved_4242",
        status=status,
        is_captured=False,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


@pytest.fixture
def captured(db, fake_stripe, customer):
    booking = _booking(db, customer, scheduled_date=datetime(2024, 5, 1, 9), status=BookingStatus.COMPLETED)
    payment = _hold(db, fake_stripe, booking, status="succeeded")
    payment.is_captured = True
    payment.paid_at = utcnow()
    db.commit()
    return payment


# ============================================================================
# CUSTOMERS AND SAVED CARDS
# ============================================================================


def test_publishable_key_is_public(client):
    response = client.get("/payments/publishable-key")
    assert response.status_code == 200
    assert "publishableKey" in response.json()


def test_client_creates_own_customer(client, db):
    user = make_user(db, UserRole.CLIENT)

    response = client.post("/payments/customer", json={}, headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["clientId"] == user.id
    assert body["customerId"].startswith("cus_fake")
    db.refresh(user)
    assert user.stripe_customer_id == body["customerId"]


def test_existing_customer_is_reused(client, customer):
    response = client.post("/payments/customer", json={}, headers=auth_headers(customer))
    assert response.json()["customerId"] == "cus_existing"


def test_client_cannot_create_customer_for_others(client, customer):
    response = client.post("/payments/customer", json={"clientEmail": "x@example.com"}, headers=auth_headers(customer))
    assert response.status_code == 403


def test_admin_creates_customer_and_account_by_email(client, db, admin):
    response = client.post(
        "/payments/customer", json={"clientEmail": "fresh@example.com"}, headers=auth_headers(admin)
    )

    assert response.status_code == 200
    assert response.json()["generatedPassword"]
    assert db.query(User).filter(User.email == "fresh@example.com").one().stripe_customer_id


def test_save_payment_method(client, db, customer, saved_card, fake_stripe):
    response = client.post(
        "/payments/methods",
        json={"clientId": customer.id, "paymentMethodId": "pm_new", "setAsDefault": True},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["last4"] == "4242"
    assert body["isDefault"] is True
    assert fake_stripe.attached == [("pm_new", "cus_existing")]
    db.refresh(saved_card)
    assert saved_card.is_default is False


def test_cannot_save_card_for_another_client(client, db, customer):
    other = make_user(db, UserRole.CLIENT)
    response = client.post(
        "/payments/methods",
        json={"clientId": other.id, "paymentMethodId": "pm_new"},
        headers=auth_headers(customer),
    )
    assert response.status_code == 403


def test_list_set_default_and_delete_cards(client, db, customer, saved_card, fake_stripe):
    second = SavedPaymentMethod(user_id=customer.id, stripe_payment_method_id="pm_second", last4="0005")
    db.add(second)
    db.commit()
    headers = auth_headers(customer)

    listed = client.get("/payments/methods", params={"clientId": customer.id}, headers=headers).json()
    assert [m["stripePaymentMethodId"] for m in listed][0] == "pm_saved_4242"

    assert client.post(f"/payments/methods/{second.id}/default", headers=headers).json() == {"success": True}
    db.expire_all()
    assert second.is_default is True
    assert saved_card.is_default is False

    assert client.delete(f"/payments/methods/{second.id}", headers=headers).json() == {"success": True}
    assert fake_stripe.detached == ["pm_second"]
    assert db.query(SavedPaymentMethod).count() == 1


def test_cannot_list_other_clients_cards(client, db, customer):
    other = make_user(db, UserRole.CLIENT)
    response = client.get("/payments/methods", params={"clientId": other.id}, headers=auth_headers(customer))
    assert response.status_code == 403


# ============================================================================
# PAYMENT INTENTS
# ============================================================================


def test_create_payment_intent(client, db, customer):
    booking = _booking(db, customer)

    response = client.post(
        "/payments/intents", json={"amount": 15000, "bookingId": booking.id}, headers=auth_headers(customer)
    )

    assert response.status_code == 200
    assert response.json()["clientSecret"].startswith(response.json()["paymentIntentId"])


def test_payment_intent_for_someone_elses_booking(client, db, customer):
    booking = _booking(db, make_user(db, UserRole.CLIENT))
    response = client.post(
        "/payments/intents", json={"amount": 15000, "bookingId": booking.id}, headers=auth_headers(customer)
    )
    assert response.status_code == 403


def test_record_successful_payment(client, db, customer, fake_stripe):
    booking = _booking(db, customer)
    intent = fake_stripe.create_payment_intent(amount=17500, confirm=True, capture_method="automatic")

    response = client.post(
        "/payments/record",
        json={"paymentIntentId": intent.id, "bookingId": booking.id},
        headers=auth_headers(customer),
    )

    assert response.status_code == 200
    assert response.json()["amount"] == 175.0
    assert response.json()["isCaptured"] is True
    db.refresh(booking)
    assert booking.final_price == 175.0
    assert booking.payment_details == f"Stripe Payment Intent: {intent.id}"


def test_record_rejects_unfinished_intent(client, db, customer, fake_stripe):
    booking = _booking(db, customer)
    intent = fake_stripe.create_payment_intent(amount=1000)

    response = client.post(
        "/payments/record",
        json={"paymentIntentId": intent.id, "bookingId": booking.id},
        headers=auth_headers(customer),
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Payment not successful. Status: requires_payment_method"


# ============================================================================
# CAPTURE / CANCEL / REFUND / RETRY
# ============================================================================


def test_capture_hold(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer))

    response = client.post(f"/admin/payments/{payment.id}/capture", headers=auth_headers(admin))

    assert response.status_code == 200
    assert response.json()["status"] == "succeeded"
    db.refresh(payment)
    assert payment.is_captured is True
    assert payment.paid_at is not None

    again = client.post(f"/admin/payments/{payment.id}/capture", headers=auth_headers(admin))
    assert again.status_code == 400
    assert again.json()["detail"] == "Payment has already been captured"


def test_capture_requires_authorized_hold(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer), status="canceled")

    response = client.post(f"/admin/payments/{payment.id}/capture", headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot capture payment. Current status: canceled"


def test_cancel_hold(client, db, admin, customer, fake_stripe):
    booking = _booking(db, customer)
    payment = _hold(db, fake_stripe, booking)

    response = client.post(f"/admin/payments/bookings/{booking.id}/cancel-hold", headers=auth_headers(admin))

    assert response.json()["status"] == "canceled"
    again = client.post(f"/admin/payments/bookings/{booking.id}/cancel-hold", headers=auth_headers(admin))
    assert again.status_code == 400
    db.refresh(payment)
    assert payment.status == "canceled"


def test_partial_refund(client, db, admin, captured, fake_stripe):
    response = client.post(
        f"/admin/payments/{captured.id}/refund",
        json={"amount": 5000, "reason": "requested_by_customer"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["amount"] == 50.0
    refund_row = db.query(Payment).filter(Payment.amount < 0).one()
    assert refund_row.amount == -50.0
    assert refund_row.description == f"Refund for Payment #{captured.id} - requested by customer"


def test_refund_amount_bounds(client, admin, captured):
    response = client.post(f"/admin/payments/{captured.id}/refund", json={"amount": 15001}, headers=auth_headers(admin))

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid refund amount. Must be between 1 and 15000 cents"


def test_refund_requires_captured_payment(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer))
    response = client.post(f"/admin/payments/{payment.id}/refund", json={}, headers=auth_headers(admin))
    assert response.status_code == 400


def test_retry_declined_charge(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer), status="failed")

    response = client.post(f"/admin/payments/{payment.id}/retry", headers=auth_headers(admin))

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Payment retry successful"
    retried = db.query(Payment).filter(Payment.id == body["paymentId"]).one()
    assert retried.is_captured is True
    assert retried.stripe_payment_method_id == "pm_default"


def test_retry_decline_records_failure(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer), status="canceled")
    fake_stripe.decline = True

    response = client.post(f"/admin/payments/{payment.id}/retry", headers=auth_headers(admin))

    assert response.status_code == 400
    assert db.query(Payment).filter(Payment.status == "failed").count() == 1


def test_retry_only_declined_payments(client, db, admin, customer, fake_stripe):
    payment = _hold(db, fake_stripe, _booking(db, customer))
    response = client.post(f"/admin/payments/{payment.id}/retry", headers=auth_headers(admin))
    assert response.status_code == 400


def test_process_holds_endpoint(client, db, admin, customer, saved_card):
    booking = _booking(db, customer, scheduled_date=utcnow() + timedelta(hours=6))

    response = client.post(
        "/admin/payments/process-holds", json={"overrideDelayHours": 24}, headers=auth_headers(admin)
    )

    assert response.json()["success"] == 1
    assert db.query(Payment).filter(Payment.booking_id == booking.id).one().status == "requires_capture"


# ============================================================================
# DASHBOARDS
# ============================================================================


def test_charge_dashboards(client, db, admin, customer, fake_stripe, captured):
    past = _booking(db, customer, scheduled_date=utcnow() - timedelta(days=1))
    _hold(db, fake_stripe, past)
    upcoming = _booking(db, customer, scheduled_date=utcnow() + timedelta(days=3))
    _hold(db, fake_stripe, upcoming)
    declined = _hold(db, fake_stripe, _booking(db, customer), status="failed")
    headers = auth_headers(admin)

    pending = client.get("/admin/payments/pending", headers=headers).json()
    holds = client.get("/admin/payments/holds", headers=headers).json()
    declined_list = client.get("/admin/payments/declined", headers=headers).json()
    captured_list = client.get("/admin/payments/captured", headers=headers).json()

    assert [c["booking"]["id"] for c in pending] == [past.id]
    assert [c["booking"]["id"] for c in holds] == [upcoming.id]
    assert [p["id"] for p in declined_list] == [declined.id]
    assert [p["id"] for p in captured_list] == [captured.id]
    assert captured_list[0]["booking"]["id"] == captured.booking_id


def test_dashboard_search(client, db, admin, fake_stripe):
    alice = make_user(db, UserRole.CLIENT, first_name="Alice")
    bob = make_user(db, UserRole.CLIENT, first_name="Bob")
    for person in (alice, bob):
        _hold(db, fake_stripe, _booking(db, person, scheduled_date=utcnow() + timedelta(days=2)))

    holds = client.get("/admin/payments/holds", params={"searchTerm": "ali"}, headers=auth_headers(admin)).json()

    assert [c["booking"]["clientId"] for c in holds] == [alice.id]
