"""Payment router - FastAPI endpoints for cards, payment intents and admin charge operations"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin
from ...database import get_db
from ...models import User
from ...services.stripe_service import StripeService, get_stripe_service
from ...shared.permissions import MANAGE_BOOKINGS
from ..bookings.schemas import BookingResponse
from .schemas import (
    AttachPaymentMethodRequest,
    BookingChargesResponse,
    CreateCustomerRequest,
    CreateCustomerResponse,
    CreatePaymentIntentRequest,
    CreatePaymentIntentResponse,
    HoldActionResponse,
    PaymentResponse,
    PaymentWithBookingResponse,
    ProcessHoldsRequest,
    RecordPaymentRequest,
    RefundRequest,
    RefundResponse,
    SavedPaymentMethodResponse,
    SavePaymentMethodRequest,
)
from .service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["Payments"])
admin_router = APIRouter(prefix="/admin/payments", tags=["Admin Payments"])


def get_payment_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(db, stripe_service)


def _charges(bookings) -> list[BookingChargesResponse]:
    return [
        BookingChargesResponse(
            booking=BookingResponse.from_booking(b),
            payments=[
                PaymentResponse.from_payment(p)
                for p in b.payments
                if not p.is_captured and p.status == "requires_capture"
            ],
        )
        for b in bookings
    ]


# ============================================================================
# CLIENT PAYMENTS
# ============================================================================


@router.get("/publishable-key")
async def get_publishable_key(service: PaymentService = Depends(get_payment_service)):
    return service.get_publishable_key()


@router.post("/customer", response_model=CreateCustomerResponse)
async def create_stripe_customer(
    data: CreateCustomerRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.create_stripe_customer(current_user, data)


@router.post("/intents", response_model=CreatePaymentIntentResponse)
async def create_payment_intent(
    data: CreatePaymentIntentRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.create_payment_intent(current_user, data)


@router.post("/record", response_model=PaymentResponse)
async def record_successful_payment(
    data: RecordPaymentRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return PaymentResponse.from_payment(service.record_successful_payment(current_user, data))


@router.post("/methods/attach")
async def attach_payment_method(
    data: AttachPaymentMethodRequest,
    current_user: User = Depends(require_admin()),
    service: PaymentService = Depends(get_payment_service),
):
    return service.attach_payment_method(data)


@router.post("/methods", response_model=SavedPaymentMethodResponse)
async def save_payment_method(
    data: SavePaymentMethodRequest,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return SavedPaymentMethodResponse.from_method(service.save_payment_method(current_user, data))


@router.get("/methods", response_model=list[SavedPaymentMethodResponse])
async def list_saved_payment_methods(
    clientId: int = Query(...),
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    methods = service.list_saved_payment_methods(current_user, clientId)
    return [SavedPaymentMethodResponse.from_method(m) for m in methods]


@router.post("/methods/{method_id}/default")
async def set_default_payment_method(
    method_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.set_default_payment_method(current_user, method_id)


@router.delete("/methods/{method_id}")
async def delete_saved_payment_method(
    method_id: int,
    current_user: User = Depends(get_current_user),
    service: PaymentService = Depends(get_payment_service),
):
    return service.delete_saved_payment_method(current_user, method_id)


# ============================================================================
# ADMIN HOLDS, CAPTURES AND REFUNDS
# ============================================================================


@admin_router.post("/{payment_id}/capture", response_model=HoldActionResponse)
async def capture_payment_hold(
    payment_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    logger.info(f"💳 Admin {current_user.id} capturing payment #{payment_id}")
    return service.capture_payment_hold(payment_id)


@admin_router.post("/bookings/{booking_id}/cancel-hold", response_model=HoldActionResponse)
async def cancel_payment_hold(
    booking_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    return service.cancel_payment_hold(booking_id)


@admin_router.post("/{payment_id}/refund", response_model=RefundResponse)
async def issue_refund(
    payment_id: int,
    data: RefundRequest,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    logger.info(f"↩️ Admin {current_user.id} refunding payment #{payment_id}")
    return service.issue_refund(payment_id, data.amount, data.reason)


@admin_router.post("/{payment_id}/retry", response_model=HoldActionResponse)
async def retry_charge(
    payment_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    return service.retry_charge(payment_id)


@admin_router.post("/process-holds")
async def process_payment_holds(
    data: Optional[ProcessHoldsRequest] = None,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    """Run the hold placement job now"""
    return service.process_payment_holds(data.overrideDelayHours if data else None)


# ============================================================================
# CHARGE DASHBOARDS
# ============================================================================


@admin_router.get("/pending", response_model=list[BookingChargesResponse])
async def get_pending_charges(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    searchTerm: Optional[str] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    """Past or completed bookings whose hold still has to be captured"""
    return _charges(service.get_pending_charges(startDate, endDate, searchTerm))


@admin_router.get("/holds", response_model=list[BookingChargesResponse])
async def get_upcoming_holds(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    searchTerm: Optional[str] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    return _charges(service.get_upcoming_holds(startDate, endDate, searchTerm))


@admin_router.get("/declined", response_model=list[PaymentWithBookingResponse])
async def get_declined_charges(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    searchTerm: Optional[str] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    payments = service.get_declined_charges(startDate, endDate, searchTerm)
    return [PaymentWithBookingResponse.from_payment(p) for p in payments]


@admin_router.get("/captured", response_model=list[PaymentWithBookingResponse])
async def get_captured_charges(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    searchTerm: Optional[str] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: PaymentService = Depends(get_payment_service),
):
    payments = service.get_captured_charges(startDate, endDate, searchTerm)
    return [PaymentWithBookingResponse.from_payment(p) for p in payments]
