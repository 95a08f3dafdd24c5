"""Lead domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

LeadStatusLiteral = Literal["INCOMING", "NO_RESPONSE", "HOT_LEAD", "PENDING_CALL_BACK", "OFFER_MADE"]
FrequencyLiteral = Literal["ONE_TIME", "WEEKLY", "BIWEEKLY", "MONTHLY"]


class InquirySubmit(BaseModel):
    """Public booking inquiry form"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: str = Field(min_length=1)
    email: EmailStr
    howHeardAbout: str = Field(min_length=1)
    message: Optional[str] = None
    smsConsent: bool = False

    @field_validator("phone", "howHeardAbout")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("This field is required")
        return v


class LeadBookingDetails(BaseModel):
    """Booking form fields saved onto a lead instead of creating a booking"""

    serviceType: str = Field(min_length=1)
    scheduledDate: Optional[str] = None
    scheduledTime: Optional[str] = None
    durationHours: Optional[float] = Field(default=None, gt=0)
    address: Optional[str] = None
    specialInstructions: Optional[str] = None
    finalPrice: Optional[float] = Field(default=None, gt=0)
    serviceFrequency: Optional[FrequencyLiteral] = None
    houseSquareFootage: Optional[int] = Field(default=None, gt=0)
    basementSquareFootage: Optional[int] = Field(default=None, gt=0)
    numberOfBedrooms: Optional[int] = Field(default=None, gt=0)
    numberOfBathrooms: Optional[int] = Field(default=None, gt=0)
    numberOfCleanersRequested: Optional[int] = Field(default=None, gt=0)
    selectedExtras: Optional[list[int]] = None


class LeadFromBooking(LeadBookingDetails):
    clientId: Optional[int] = None
    clientEmail: Optional[EmailStr] = None
    clientFirstName: Optional[str] = None
    clientLastName: Optional[str] = None
    clientPhone: Optional[str] = None

    @model_validator(mode="after")
    def require_client(self):
        if not self.clientId and not self.clientEmail:
            raise ValueError("Either clientId or clientEmail must be provided")
        return self


class LeadUpdate(LeadBookingDetails):
    clientId: Optional[int] = None
    clientEmail: Optional[EmailStr] = None
    clientFirstName: Optional[str] = None
    clientLastName: Optional[str] = None
    clientPhone: Optional[str] = None


class LeadStatusUpdate(BaseModel):
    status: LeadStatusLiteral


class LeadResponse(BaseModel):
    id: int
    userId: Optional[int] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: str
    howHeardAbout: Optional[str] = None
    message: Optional[str] = None
    smsConsent: bool
    status: str
    openphoneContactId: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_lead(cls, lead) -> "LeadResponse":
        return cls(
            id=lead.id,
            userId=lead.user_id,
            firstName=lead.first_name,
            lastName=lead.last_name,
            email=lead.email,
            phone=lead.phone,
            howHeardAbout=lead.how_heard_about,
            message=lead.message,
            smsConsent=lead.sms_consent,
            status=lead.status,
            openphoneContactId=lead.openphone_contact_id,
            createdAt=lead.created_at,
        )
