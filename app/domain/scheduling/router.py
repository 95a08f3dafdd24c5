"""Scheduling router - cleaner portal, admin time-off review and cleaner availability"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin, require_cleaner
from ...database import get_db
from ...models import User
from ...shared.permissions import MANAGE_CLEANERS, MANAGE_TIME_OFF_REQUESTS
from ..bookings.schemas import BookingResponse
from ..payments.schemas import PaymentWithBookingResponse
from .schemas import AvailabilityQuery, CleanerAvailability, TimeOffResponse, TimeOffReview, TimeOffSubmit
from .service import SchedulingService

cleaner_router = APIRouter(prefix="/cleaner", tags=["Cleaner Portal"])
router = APIRouter(prefix="/admin", tags=["Scheduling"])


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


# ============================================================================
# CLEANER PORTAL
# ============================================================================


@cleaner_router.get("/schedule", response_model=list[BookingResponse])
async def get_schedule(
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    """Assigned bookings with their checklists; past bookings read as COMPLETED"""
    return [
        BookingResponse.from_booking(b, status, include_checklist=True)
        for b, status in service.get_schedule(current_user)
    ]


@cleaner_router.get("/payments", response_model=list[PaymentWithBookingResponse])
async def get_payments(
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [PaymentWithBookingResponse.from_payment(p) for p in service.get_payments(current_user)]


@cleaner_router.get("/time-off", response_model=list[TimeOffResponse])
async def list_my_time_off(
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [TimeOffResponse.from_request(r) for r in service.list_own_time_off(current_user)]


@cleaner_router.post("/time-off", response_model=TimeOffResponse, status_code=201)
async def submit_time_off(
    data: TimeOffSubmit,
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return TimeOffResponse.from_request(service.submit_time_off(current_user, data))


@cleaner_router.put("/time-off/{request_id}", response_model=TimeOffResponse)
async def update_time_off(
    request_id: int,
    data: TimeOffSubmit,
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return TimeOffResponse.from_request(service.update_time_off(current_user, request_id, data))


@cleaner_router.delete("/time-off/{request_id}")
async def delete_time_off(
    request_id: int,
    current_user: User = Depends(require_cleaner),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.delete_time_off(current_user, request_id)


# ============================================================================
# ADMIN TIME OFF
# ============================================================================


@router.get("/time-off", response_model=list[TimeOffResponse])
async def list_time_off(
    includeCleared: bool = Query(False),
    current_user: User = Depends(require_admin(MANAGE_TIME_OFF_REQUESTS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return [TimeOffResponse.from_request(r) for r in service.list_time_off(includeCleared)]


@router.patch("/time-off/{request_id}", response_model=TimeOffResponse)
async def review_time_off(
    request_id: int,
    data: TimeOffReview,
    current_user: User = Depends(require_admin(MANAGE_TIME_OFF_REQUESTS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return TimeOffResponse.from_request(service.review_time_off(current_user, request_id, data))


@router.post("/time-off/{request_id}/clear", response_model=TimeOffResponse)
async def clear_time_off(
    request_id: int,
    current_user: User = Depends(require_admin(MANAGE_TIME_OFF_REQUESTS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return TimeOffResponse.from_request(service.clear_time_off(request_id))


# ============================================================================
# CLEANER AVAILABILITY
# ============================================================================


@router.get("/cleaners/availability", response_model=list[CleanerAvailability])
async def get_cleaner_availability(
    scheduledDate: Optional[str] = Query(None),
    scheduledTime: Optional[str] = Query(None),
    durationHours: Optional[float] = Query(None, gt=0),
    excludeBookingId: Optional[int] = Query(None),
    current_user: User = Depends(require_admin(MANAGE_CLEANERS)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    query = AvailabilityQuery(
        scheduledDate=scheduledDate,
        scheduledTime=scheduledTime,
        durationHours=durationHours,
        excludeBookingId=excludeBookingId,
    )
    return service.get_cleaner_availability(query)
