"""Payment domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from ..bookings.schemas import BookingResponse


class CreateCustomerRequest(BaseModel):
    """Admins may create the customer for a client by id or email; anyone else for themselves"""

    clientId: Optional[int] = None
    clientEmail: Optional[EmailStr] = None
    clientFirstName: Optional[str] = None
    clientLastName: Optional[str] = None
    clientPhone: Optional[str] = None
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    phone: Optional[str] = None


class CreateCustomerResponse(BaseModel):
    customerId: str
    clientId: int
    generatedPassword: Optional[str] = None


class CreatePaymentIntentRequest(BaseModel):
    amount: int = Field(gt=0, description="Amount in cents")
    currency: str = "usd"
    bookingId: Optional[int] = None
    customerId: Optional[str] = None
    paymentMethodId: Optional[str] = None
    captureMethod: Literal["automatic", "manual"] = "manual"
    description: Optional[str] = None


class CreatePaymentIntentResponse(BaseModel):
    clientSecret: Optional[str] = None
    paymentIntentId: str


class RecordPaymentRequest(BaseModel):
    paymentIntentId: str
    bookingId: int


class AttachPaymentMethodRequest(BaseModel):
    stripeCustomerId: str
    paymentMethodId: str


class SavePaymentMethodRequest(BaseModel):
    clientId: int
    paymentMethodId: str
    setAsDefault: bool = False


class RefundRequest(BaseModel):
    amount: Optional[int] = Field(default=None, description="Cents; omit for a full refund")
    reason: Optional[Literal["duplicate", "fraudulent", "requested_by_customer"]] = None


class ProcessHoldsRequest(BaseModel):
    overrideDelayHours: Optional[int] = Field(default=None, ge=0)


class SavedPaymentMethodResponse(BaseModel):
    id: int
    stripePaymentMethodId: str
    brand: Optional[str] = None
    last4: Optional[str] = None
    expiryMonth: Optional[int] = None
    expiryYear: Optional[int] = None
    isDefault: bool
    createdAt: Optional[datetime] = None

    @classmethod
    def from_method(cls, method) -> "SavedPaymentMethodResponse":
        return cls(
            id=method.id,
            stripePaymentMethodId=method.stripe_payment_method_id,
            brand=method.brand,
            last4=method.last4,
            expiryMonth=method.expiry_month,
            expiryYear=method.expiry_year,
            isDefault=method.is_default,
            createdAt=method.created_at,
        )


class PaymentResponse(BaseModel):
    id: int
    bookingId: Optional[int] = None
    cleanerId: Optional[int] = None
    amount: float
    description: Optional[str] = None
    stripePaymentIntentId: Optional[str] = None
    stripePaymentMethodId: Optional[str] = None
    status: Optional[str] = None
    isCaptured: bool
    paidAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_payment(cls, payment) -> "PaymentResponse":
        return cls(
            id=payment.id,
            bookingId=payment.booking_id,
            cleanerId=payment.cleaner_id,
            amount=payment.amount,
            description=payment.description,
            stripePaymentIntentId=payment.stripe_payment_intent_id,
            stripePaymentMethodId=payment.stripe_payment_method_id,
            status=payment.status,
            isCaptured=payment.is_captured,
            paidAt=payment.paid_at,
            createdAt=payment.created_at,
        )


class PaymentWithBookingResponse(PaymentResponse):
    booking: Optional[BookingResponse] = None

    @classmethod
    def from_payment(cls, payment) -> "PaymentWithBookingResponse":
        base = PaymentResponse.from_payment(payment).model_dump()
        booking = BookingResponse.from_booking(payment.booking) if payment.booking else None
        return cls(**base, booking=booking)


class BookingChargesResponse(BaseModel):
    """A booking together with the payments the dashboard is about"""

    booking: BookingResponse
    payments: list[PaymentResponse]


class HoldActionResponse(BaseModel):
    success: bool
    paymentId: Optional[int] = None
    paymentIntentId: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    message: Optional[str] = None


class RefundResponse(BaseModel):
    success: bool
    refundId: str
    amount: float
    status: Optional[str] = None
    paymentIntentId: str
