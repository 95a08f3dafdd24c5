"""API tests for the public inquiry form and the admin lead kanban"""

import json

from app.domain.leads.schemas import LeadBookingDetails
from app.domain.leads.service import compose_lead_message
from app.models import BookingInquiry, LeadStatus, UserRole

from .conftest import auth_headers, make_user


def inquiry(**overrides):
    payload = {
        "firstName": "Dana",
        "lastName": "Reed",
        "phone": "(555) 123-4567",
        "email": "dana@example.com",
        "howHeardAbout": "Google",
        "smsConsent": True,
    }
    payload.update(overrides)
    return payload


def test_submit_inquiry_is_public(client, db, openphone_requests):
    response = client.post("/inquiries", json=inquiry())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    lead = db.get(BookingInquiry, body["id"])
    assert lead.phone == "5551234567"
    assert lead.status == LeadStatus.INCOMING
    assert lead.sms_consent is True
    assert lead.openphone_contact_id is not None
    assert json.loads(openphone_requests[-1].content)["defaultFields"]["phoneNumbers"][0]["value"] == "+15551234567"


def test_inquiry_requires_phone_and_source(client):
    assert client.post("/inquiries", json=inquiry(phone="   ")).status_code == 422
    assert client.post("/inquiries", json=inquiry(howHeardAbout="")).status_code == 422


def test_kanban_has_every_column(client, admin):
    client.post("/inquiries", json=inquiry())

    response = client.get("/admin/leads", headers=auth_headers(admin))

    assert response.status_code == 200
    columns = response.json()
    assert set(columns) == set(LeadStatus.ALL)
    assert len(columns["INCOMING"]) == 1
    assert columns["HOT_LEAD"] == []


def test_kanban_requires_manage_customers(client, db):
    admin = make_user(db, UserRole.ADMIN, admin_permissions={"manage_bookings": True})
    assert client.get("/admin/leads", headers=auth_headers(admin)).status_code == 403


def test_move_lead_between_columns(client, admin):
    lead_id = client.post("/inquiries", json=inquiry()).json()["id"]

    response = client.patch(f"/admin/leads/{lead_id}/status", json={"status": "HOT_LEAD"}, headers=auth_headers(admin))

    assert response.json()["status"] == "HOT_LEAD"
    assert client.get("/admin/leads", headers=auth_headers(admin)).json()["HOT_LEAD"][0]["id"] == lead_id
    bad = client.patch(f"/admin/leads/{lead_id}/status", json={"status": "WON"}, headers=auth_headers(admin))
    assert bad.status_code == 422


def test_lead_message_format():
    details = LeadBookingDetails(
        serviceType="Deep Cleaning",
        specialInstructions="Dog in the yard",
        address="5 Pine Rd",
        finalPrice=250,
        numberOfBedrooms=3,
    )

    message = compose_lead_message(details)

    head, body = message.split("Booking Details:\n")
    assert head == "Special Instructions: Dog in the yard\n\n"
    assert json.loads(body) == {
        "serviceType": "Deep Cleaning",
        "address": "5 Pine Rd",
        "finalPrice": 250,
        "numberOfBedrooms": 3,
    }


def test_save_booking_form_as_lead_for_existing_client(client, admin, customer):
    response = client.post(
        "/admin/leads/from-booking",
        json={"clientId": customer.id, "serviceType": "Standard Cleaning", "address": "12 Elm"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 201
    lead = response.json()
    assert lead["userId"] == customer.id
    assert lead["email"] == customer.email
    assert lead["phone"] == customer.phone
    assert lead["howHeardAbout"] == "Admin Portal - Saved as Lead"
    assert lead["message"].startswith("Booking Details:\n")


def test_save_booking_form_as_lead_for_new_email(client, admin):
    response = client.post(
        "/admin/leads/from-booking",
        json={"clientEmail": "prospect@example.com", "serviceType": "Move Out"},
        headers=auth_headers(admin),
    )

    lead = response.json()
    assert lead["userId"] is None
    assert lead["firstName"] is None
    assert lead["phone"] == "prospect@example.com"


def test_update_and_delete_lead(client, db, admin, customer):
    lead_id = client.post("/inquiries", json=inquiry()).json()["id"]

    response = client.put(
        f"/admin/leads/{lead_id}",
        json={"clientId": customer.id, "serviceType": "Deep Cleaning", "specialInstructions": "Gate code 12"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200
    assert response.json()["userId"] == customer.id
    assert response.json()["message"].startswith("Special Instructions: Gate code 12")
    assert response.json()["status"] == "INCOMING"

    assert client.delete(f"/admin/leads/{lead_id}", headers=auth_headers(admin)).json() == {"success": True}
    assert db.query(BookingInquiry).count() == 0
    assert client.delete(f"/admin/leads/{lead_id}", headers=auth_headers(admin)).status_code == 404
