"""Lead service - public inquiries and the admin lead kanban"""

import json
import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import BookingInquiry, LeadStatus
from ...services.openphone_service import OpenPhoneService
from ...shared.validators import sanitize_phone
from .repository import LeadRepository
from .schemas import InquirySubmit, LeadBookingDetails, LeadFromBooking, LeadUpdate

logger = logging.getLogger(__name__)

ADMIN_LEAD_SOURCE = "Admin Portal - Saved as Lead"

# Booking form fields recorded in a lead's message, in display order
DETAIL_FIELDS = (
    "scheduledDate",
    "scheduledTime",
    "durationHours",
    "address",
    "finalPrice",
    "serviceFrequency",
    "houseSquareFootage",
    "basementSquareFootage",
    "numberOfBedrooms",
    "numberOfBathrooms",
    "numberOfCleanersRequested",
)


def compose_lead_message(data: LeadBookingDetails) -> str:
    """Optional special instructions block followed by the booking form as JSON"""
    details = {"serviceType": data.serviceType}
    for field in DETAIL_FIELDS:
        value = getattr(data, field)
        if value:
            details[field] = value
    if data.selectedExtras:
        details["selectedExtras"] = data.selectedExtras

    message = ""
    if data.specialInstructions:
        message = f"Special Instructions: {data.specialInstructions}\n\n"
    return message + f"Booking Details:\n{json.dumps(details, indent=2)}"


class LeadService:
    """Service layer for lead business logic"""

    def __init__(self, db: Session, openphone_service: Optional[OpenPhoneService] = None):
        self.db = db
        self.repo = LeadRepository()
        self.openphone = openphone_service

    def get_lead(self, lead_id: int) -> BookingInquiry:
        lead = self.repo.get_lead(self.db, lead_id)
        if not lead:
            raise HTTPException(status_code=404, detail="Lead not found")
        return lead

    async def submit_inquiry(self, data: InquirySubmit) -> dict:
        lead = self.repo.create_lead(
            self.db,
            first_name=data.firstName or None,
            last_name=data.lastName or None,
            phone=sanitize_phone(data.phone) or data.phone,
            email=str(data.email),
            how_heard_about=data.howHeardAbout,
            message=data.message or None,
            sms_consent=data.smsConsent,
            status=LeadStatus.INCOMING,
        )
        logger.info(f"📥 New booking inquiry #{lead.id} ({data.howHeardAbout})")

        if self.openphone and lead.phone:
            contact_id = await self.openphone.create_contact(
                lead.first_name or "", lead.last_name or "", lead.phone, lead.email
            )
            if contact_id:
                self.repo.update_lead(self.db, lead, openphone_contact_id=contact_id)

        return {"success": True, "id": lead.id}

    def list_leads_by_status(self) -> dict[str, list[BookingInquiry]]:
        """Kanban columns, newest lead first in each"""
        columns: dict[str, list[BookingInquiry]] = {status: [] for status in LeadStatus.ALL}
        for lead in self.repo.list_leads(self.db):
            columns.setdefault(lead.status, []).append(lead)
        return columns

    def update_status(self, lead_id: int, status: str) -> BookingInquiry:
        lead = self.get_lead(lead_id)
        logger.info(f"Lead #{lead.id}: {lead.status} -> {status}")
        return self.repo.update_lead(self.db, lead, status=status)

    async def create_from_booking(self, data: LeadFromBooking) -> BookingInquiry:
        user_id = None
        if data.clientId:
            client = self.repo.get_user(self.db, data.clientId)
            if not client:
                raise HTTPException(status_code=404, detail="Client not found")
            user_id = client.id
            first_name, last_name = client.first_name, client.last_name
            email, phone = client.email, client.phone
        else:
            first_name, last_name = data.clientFirstName, data.clientLastName
            email, phone = str(data.clientEmail), data.clientPhone
            existing = self.repo.get_user_by_email(self.db, email)
            if existing:
                user_id = existing.id

        lead = self.repo.create_lead(
            self.db,
            user_id=user_id,
            first_name=first_name or None,
            last_name=last_name or None,
            phone=phone or email or "N/A",
            email=email or "",
            how_heard_about=ADMIN_LEAD_SOURCE,
            message=compose_lead_message(data),
            status=LeadStatus.INCOMING,
        )
        logger.info(f"✅ Saved booking form as lead #{lead.id}")

        await self._sync_openphone(lead)
        return lead

    async def _sync_openphone(self, lead: BookingInquiry) -> None:
        """Reuse the linked client's contact when there is one, else create a Lead contact"""
        if not self.openphone or not lead.phone or lead.openphone_contact_id:
            return

        user = lead.user
        if user and user.openphone_contact_id:
            self.repo.update_lead(self.db, lead, openphone_contact_id=user.openphone_contact_id)
            return

        contact_id = await self.openphone.create_contact(
            lead.first_name or "Lead",
            lead.last_name or "",
            lead.phone,
            email=lead.email or None,
            role="Lead",
            external_id=f"Lead-{lead.id}",
        )
        if contact_id:
            lead.openphone_contact_id = contact_id
            if user:
                user.openphone_contact_id = contact_id
            self.db.commit()

    def update_lead(self, lead_id: int, data: LeadUpdate) -> BookingInquiry:
        """Replace the lead's contact details and booking message; status is changed separately"""
        lead = self.get_lead(lead_id)

        user_id = lead.user_id
        first_name, last_name = data.clientFirstName, data.clientLastName
        email = str(data.clientEmail) if data.clientEmail else lead.email
        phone = data.clientPhone or lead.phone

        if data.clientId:
            client = self.repo.get_user(self.db, data.clientId)
            if client:
                user_id = client.id
                first_name, last_name = client.first_name, client.last_name
                email, phone = client.email, client.phone

        return self.repo.update_lead(
            self.db,
            lead,
            user_id=user_id,
            first_name=first_name or None,
            last_name=last_name or None,
            email=email,
            phone=phone or "N/A",
            message=compose_lead_message(data),
        )

    def delete_lead(self, lead_id: int) -> dict:
        lead = self.get_lead(lead_id)
        self.repo.delete_lead(self.db, lead)
        logger.info(f"🗑️ Deleted lead #{lead_id}")
        return {"success": True}
