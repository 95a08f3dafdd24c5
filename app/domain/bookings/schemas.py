"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from ...shared.time_utils import to_naive_utc

BookingStatusLiteral = Literal["PENDING", "CONFIRMED", "IN_PROGRESS", "COMPLETED", "CANCELLED"]
FrequencyLiteral = Literal["ONE_TIME", "WEEKLY", "BIWEEKLY", "MONTHLY"]
PaymentMethodLiteral = Literal["CREDIT_CARD", "CASH"]


class BookingCreate(BaseModel):
    """Schema for an admin creating a booking (existing client or a new one by email)"""

    clientId: Optional[int] = None
    clientEmail: Optional[EmailStr] = None
    clientFirstName: Optional[str] = None
    clientLastName: Optional[str] = None
    clientPhone: Optional[str] = None
    cleanerId: Optional[int] = None
    serviceType: str = Field(min_length=1)
    scheduledDate: datetime
    scheduledTime: str = Field(min_length=1)
    durationHours: Optional[float] = Field(default=None, gt=0)
    address: str = Field(min_length=1)
    specialInstructions: Optional[str] = None
    finalPrice: Optional[float] = Field(default=None, gt=0)
    status: BookingStatusLiteral = "PENDING"
    serviceFrequency: Optional[FrequencyLiteral] = None
    houseSquareFootage: Optional[int] = Field(default=None, gt=0)
    basementSquareFootage: Optional[int] = Field(default=None, gt=0)
    numberOfBedrooms: Optional[int] = Field(default=None, gt=0)
    numberOfBathrooms: Optional[float] = Field(default=None, gt=0)
    numberOfCleanersRequested: Optional[int] = Field(default=None, gt=0)
    cleanerPaymentAmount: Optional[float] = Field(default=None, gt=0)
    paymentMethod: Optional[PaymentMethodLiteral] = None
    paymentDetails: Optional[str] = None
    savedPaymentMethodId: Optional[int] = None
    selectedExtras: Optional[list[int]] = None

    @field_validator("scheduledDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)

    @model_validator(mode="after")
    def require_client(self):
        if not self.clientId and not self.clientEmail:
            raise ValueError("Either clientId or clientEmail must be provided")
        return self


class BookingUpdate(BaseModel):
    """
    Schema for an admin updating a booking.

    Only fields present in the request are applied, so an explicit
    `cleanerId: null` unassigns the cleaner while an absent one leaves it.
    """

    cleanerId: Optional[int] = None
    serviceType: Optional[str] = None
    scheduledDate: Optional[datetime] = None
    scheduledTime: Optional[str] = None
    durationHours: Optional[float] = Field(default=None, gt=0)
    address: Optional[str] = None
    specialInstructions: Optional[str] = None
    finalPrice: Optional[float] = Field(default=None, gt=0)
    status: Optional[BookingStatusLiteral] = None
    serviceFrequency: Optional[FrequencyLiteral] = None
    houseSquareFootage: Optional[int] = Field(default=None, gt=0)
    basementSquareFootage: Optional[int] = Field(default=None, gt=0)
    numberOfBedrooms: Optional[int] = Field(default=None, gt=0)
    numberOfBathrooms: Optional[float] = Field(default=None, gt=0)
    numberOfCleanersRequested: Optional[int] = Field(default=None, gt=0)
    cleanerPaymentAmount: Optional[float] = Field(default=None, gt=0)
    paymentMethod: Optional[PaymentMethodLiteral] = None
    paymentDetails: Optional[str] = None
    savedPaymentMethodId: Optional[int] = None
    replacePaymentMethod: Optional[bool] = None
    selectedExtras: Optional[list[int]] = None
    updateMode: Literal["SINGLE", "FUTURE"] = "SINGLE"

    @field_validator("scheduledDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)


class BookingCancel(BaseModel):
    chargeFee: bool = False
    feeAmount: Optional[float] = Field(default=None, ge=0)
    sendEmail: bool = False
    cancellationReason: Optional[str] = None
    cancelFutureBookings: bool = False


class PriceCalculationRequest(BaseModel):
    serviceType: str
    houseSquareFootage: Optional[int] = Field(default=None, gt=0)
    basementSquareFootage: Optional[int] = Field(default=None, gt=0)
    numberOfBedrooms: Optional[int] = Field(default=None, gt=0)
    numberOfBathrooms: Optional[float] = Field(default=None, gt=0)
    selectedExtras: Optional[list[int]] = None


class ChecklistItemUpdate(BaseModel):
    isCompleted: bool


class PersonSummary(BaseModel):
    id: int
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    color: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> Optional["PersonSummary"]:
        if user is None:
            return None
        return cls(
            id=user.id,
            firstName=user.first_name,
            lastName=user.last_name,
            email=user.email,
            phone=user.phone,
            color=user.color,
        )


class ChecklistItemResponse(BaseModel):
    id: int
    description: str
    order: int
    isCompleted: bool
    completedAt: Optional[datetime] = None
    completedBy: Optional[int] = None


class ChecklistResponse(BaseModel):
    id: int
    bookingId: int
    templateId: Optional[int] = None
    items: list[ChecklistItemResponse]

    @classmethod
    def from_checklist(cls, checklist) -> Optional["ChecklistResponse"]:
        if checklist is None:
            return None
        return cls(
            id=checklist.id,
            bookingId=checklist.booking_id,
            templateId=checklist.template_id,
            items=[
                ChecklistItemResponse(
                    id=item.id,
                    description=item.description,
                    order=item.order,
                    isCompleted=item.is_completed,
                    completedAt=item.completed_at,
                    completedBy=item.completed_by_id,
                )
                for item in checklist.items
            ],
        )


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: int
    clientId: int
    cleanerId: Optional[int] = None
    serviceType: str
    scheduledDate: datetime
    scheduledTime: Optional[str] = None
    durationHours: Optional[float] = None
    address: Optional[str] = None
    specialInstructions: Optional[str] = None
    finalPrice: Optional[float] = None
    status: str
    serviceFrequency: Optional[str] = None
    houseSquareFootage: Optional[int] = None
    basementSquareFootage: Optional[int] = None
    numberOfBedrooms: Optional[int] = None
    numberOfBathrooms: Optional[float] = None
    numberOfCleanersRequested: Optional[int] = None
    cleanerPaymentAmount: Optional[float] = None
    paymentMethod: Optional[str] = None
    paymentDetails: Optional[str] = None
    selectedExtras: Optional[list[int]] = None
    client: Optional[PersonSummary] = None
    cleaner: Optional[PersonSummary] = None
    checklist: Optional[ChecklistResponse] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking, status: Optional[str] = None, include_checklist: bool = False) -> "BookingResponse":
        """Build the response; `status` overrides the stored status (derived views)"""
        return cls(
            id=booking.id,
            clientId=booking.client_id,
            cleanerId=booking.cleaner_id,
            serviceType=booking.service_type,
            scheduledDate=booking.scheduled_date,
            scheduledTime=booking.scheduled_time,
            durationHours=booking.duration_hours,
            address=booking.address,
            specialInstructions=booking.special_instructions,
            finalPrice=booking.final_price,
            status=status or booking.status,
            serviceFrequency=booking.service_frequency,
            houseSquareFootage=booking.house_square_footage,
            basementSquareFootage=booking.basement_square_footage,
            numberOfBedrooms=booking.number_of_bedrooms,
            numberOfBathrooms=booking.number_of_bathrooms,
            numberOfCleanersRequested=booking.number_of_cleaners_requested,
            cleanerPaymentAmount=booking.cleaner_payment_amount,
            paymentMethod=booking.payment_method,
            paymentDetails=booking.payment_details,
            selectedExtras=booking.selected_extras,
            client=PersonSummary.from_user(booking.client),
            cleaner=PersonSummary.from_user(booking.cleaner),
            checklist=ChecklistResponse.from_checklist(booking.checklist) if include_checklist else None,
            createdAt=booking.created_at,
        )


class BookingCreateResponse(BaseModel):
    booking: BookingResponse
    generatedPassword: Optional[str] = None


class BookingCancelResponse(BaseModel):
    booking: BookingResponse
    feeCharged: Optional[float] = None
    cancelledFutureBookings: int = 0


class AvailabilityBooking(BaseModel):
    id: int
    scheduledDate: datetime
    scheduledTime: Optional[str] = None
    durationHours: Optional[float] = None
    serviceType: str
    cleaner: Optional[PersonSummary] = None

