"""Booking router - FastAPI endpoints for admin booking management and the client portal"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_client
from ...database import get_db
from ...models import User
from ...services.openphone_service import OpenPhoneService, get_openphone_service
from ...services.stripe_service import StripeService, get_stripe_service
from ...shared.permissions import MANAGE_BOOKINGS
from .schemas import (
    AvailabilityBooking,
    BookingCancel,
    BookingCancelResponse,
    BookingCreate,
    BookingCreateResponse,
    BookingResponse,
    BookingUpdate,
    ChecklistItemResponse,
    ChecklistItemUpdate,
    ChecklistResponse,
    PersonSummary,
    PriceCalculationRequest,
)
from .service import BookingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/bookings", tags=["Bookings"])
client_router = APIRouter(prefix="/client/bookings", tags=["Client Portal"])
checklist_router = APIRouter(prefix="/checklists", tags=["Checklists"])


def get_booking_service(
    db: Session = Depends(get_db),
    stripe_service: StripeService = Depends(get_stripe_service),
    openphone_service: OpenPhoneService = Depends(get_openphone_service),
) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db, stripe_service, openphone_service)


# ============================================================================
# ADMIN BOOKINGS
# ============================================================================


@router.get("", response_model=list[BookingResponse])
async def list_bookings(
    startDate: Optional[str] = Query(None),
    endDate: Optional[str] = Query(None),
    clientId: Optional[int] = Query(None),
    cleanerId: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    """List bookings, with past non-cancelled bookings reported as COMPLETED"""
    bookings = service.list_bookings(startDate, endDate, clientId, cleanerId, status)
    return [BookingResponse.from_booking(b, status=s, include_checklist=True) for b, s in bookings]


@router.post("", response_model=BookingCreateResponse, status_code=201)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    logger.info(f"📥 Admin {current_user.id} creating booking")
    booking, generated_password = await service.create_booking(data)
    return BookingCreateResponse(
        booking=BookingResponse.from_booking(booking, include_checklist=True),
        generatedPassword=generated_password,
    )


@router.post("/calculate-price")
async def calculate_price(
    data: PriceCalculationRequest,
    current_user: User = Depends(require_admin()),
    service: BookingService = Depends(get_booking_service),
):
    return service.calculate_price(data)


@router.get("/availability", response_model=list[AvailabilityBooking])
async def get_booking_availability(
    startDate: str = Query(...),
    endDate: str = Query(...),
    current_user: User = Depends(require_admin()),
    service: BookingService = Depends(get_booking_service),
):
    """Booked slots for the scheduling calendar"""
    return [
        AvailabilityBooking(
            id=b.id,
            scheduledDate=b.scheduled_date,
            scheduledTime=b.scheduled_time,
            durationHours=b.duration_hours,
            serviceType=b.service_type,
            cleaner=PersonSummary.from_user(b.cleaner),
        )
        for b in service.get_availability(startDate, endDate)
    ]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    return BookingResponse.from_booking(service.get_booking(booking_id), include_checklist=True)


@router.patch("/{booking_id}", response_model=BookingResponse)
async def update_booking(
    booking_id: int,
    data: BookingUpdate,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    logger.info(f"📥 Admin {current_user.id} updating booking #{booking_id} ({data.updateMode})")
    return BookingResponse.from_booking(service.update_booking(booking_id, data), include_checklist=True)


@router.post("/{booking_id}/cancel", response_model=BookingCancelResponse)
async def cancel_booking(
    booking_id: int,
    data: BookingCancel,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    result = service.cancel_booking(booking_id, data)
    return BookingCancelResponse(
        booking=BookingResponse.from_booking(result["booking"]),
        feeCharged=result["feeCharged"],
        cancelledFutureBookings=result["cancelledFutureBookings"],
    )


@router.delete("/{booking_id}")
async def delete_booking(
    booking_id: int,
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: BookingService = Depends(get_booking_service),
):
    return service.delete_booking(booking_id)


# ============================================================================
# CHECKLISTS
# ============================================================================


@checklist_router.get("/booking/{booking_id}", response_model=Optional[ChecklistResponse])
async def get_booking_checklist(
    booking_id: int,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    return ChecklistResponse.from_checklist(service.get_checklist(booking_id, current_user))


@checklist_router.patch("/items/{item_id}", response_model=ChecklistItemResponse)
async def update_checklist_item(
    item_id: int,
    data: ChecklistItemUpdate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    item = service.update_checklist_item(item_id, data.isCompleted, current_user)
    return ChecklistItemResponse(
        id=item.id,
        description=item.description,
        order=item.order,
        isCompleted=item.is_completed,
        completedAt=item.completed_at,
        completedBy=item.completed_by_id,
    )


# ============================================================================
# CLIENT PORTAL
# ============================================================================


@client_router.get("", response_model=list[BookingResponse])
async def get_my_bookings(
    current_user: User = Depends(require_client),
    service: BookingService = Depends(get_booking_service),
):
    return [BookingResponse.from_booking(b, status=s) for b, s in service.get_client_bookings(current_user)]


@client_router.get("/upcoming", response_model=list[BookingResponse])
async def get_my_upcoming_bookings(
    current_user: User = Depends(require_client),
    service: BookingService = Depends(get_booking_service),
):
    bookings = service.get_client_bookings(current_user, upcoming_only=True)
    return [BookingResponse.from_booking(b, status=s) for b, s in bookings]
