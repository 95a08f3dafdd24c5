"""Scheduling domain schemas - time off and cleaner availability"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.time_utils import to_naive_utc
from ..bookings.schemas import PersonSummary


class TimeOffSubmit(BaseModel):
    """Inclusive date range; the end day may equal the start day"""

    startDate: datetime
    endDate: datetime
    reason: Optional[str] = None

    @field_validator("startDate", "endDate")
    @classmethod
    def normalize_date(cls, v):
        return to_naive_utc(v)


class TimeOffReview(BaseModel):
    status: Literal["APPROVED", "REJECTED"]
    adminNotes: Optional[str] = None


class TimeOffResponse(BaseModel):
    id: int
    cleanerId: int
    startDate: datetime
    endDate: datetime
    reason: Optional[str] = None
    status: str
    adminNotes: Optional[str] = None
    reviewedAt: Optional[datetime] = None
    isCleared: bool = False
    cleaner: Optional[PersonSummary] = None
    reviewedBy: Optional[PersonSummary] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_request(cls, request) -> "TimeOffResponse":
        return cls(
            id=request.id,
            cleanerId=request.cleaner_id,
            startDate=request.start_date,
            endDate=request.end_date,
            reason=request.reason,
            status=request.status,
            adminNotes=request.admin_notes,
            reviewedAt=request.reviewed_at,
            isCleared=request.is_cleared,
            cleaner=PersonSummary.from_user(request.cleaner),
            reviewedBy=PersonSummary.from_user(request.reviewed_by),
            createdAt=request.created_at,
        )


class CleanerAvailability(BaseModel):
    id: int
    email: str
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    phone: Optional[str] = None
    color: Optional[str] = None
    isAvailable: bool = True
    conflictType: Optional[Literal["BOOKED", "TIME_OFF"]] = None
    conflictDetails: Optional[str] = None


class AvailabilityQuery(BaseModel):
    scheduledDate: Optional[str] = None
    scheduledTime: Optional[str] = None
    durationHours: Optional[float] = Field(default=None, gt=0)
    excludeBookingId: Optional[int] = None
