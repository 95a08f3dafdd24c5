"""Scheduling service - cleaner portal, time-off workflow and cleaner availability"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Booking, Payment, TimeOffRequest, TimeOffStatus, User
from ...shared.time_utils import (
    day_bounds,
    derive_status,
    format_duration_hours,
    format_time_12h,
    parse_time,
    utcnow,
)
from .repository import SchedulingRepository
from .schemas import AvailabilityQuery, TimeOffReview, TimeOffSubmit

logger = logging.getLogger(__name__)

DEFAULT_DURATION_HOURS = 2


def _booking_window(day: datetime, time_str: Optional[str], duration: Optional[float]) -> tuple[datetime, datetime]:
    hour, minute = parse_time(time_str)
    start = day.replace(hour=hour, minute=minute, second=0, microsecond=0)
    return start, start + timedelta(hours=duration or DEFAULT_DURATION_HOURS)


def _short_date(value: datetime) -> str:
    return f"{value:%b} {value.day}"


class SchedulingService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    # ------------------------------------------------------------------
    # Cleaner portal
    # ------------------------------------------------------------------

    def get_schedule(self, cleaner: User) -> list[tuple[Booking, str]]:
        now = utcnow()
        return [
            (b, derive_status(b.status, b.scheduled_date, now))
            for b in self.repo.get_cleaner_schedule(self.db, cleaner.id)
        ]

    def get_payments(self, cleaner: User) -> list[Payment]:
        return self.repo.get_cleaner_payments(self.db, cleaner.id)

    def _own_pending_request(self, cleaner: User, request_id: int, action: str) -> TimeOffRequest:
        request = self.repo.get_time_off(self.db, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Time-off request not found")
        if request.cleaner_id != cleaner.id:
            raise HTTPException(status_code=403, detail=f"You can only {action} your own time-off requests")
        if request.status != TimeOffStatus.PENDING:
            raise HTTPException(status_code=400, detail=f"Only pending requests can be {action}d")
        return request

    @staticmethod
    def _check_range(data: TimeOffSubmit) -> None:
        if data.endDate < data.startDate:
            raise HTTPException(status_code=400, detail="End date must be after start date")

    def submit_time_off(self, cleaner: User, data: TimeOffSubmit) -> TimeOffRequest:
        self._check_range(data)
        request = self.repo.save(
            self.db,
            TimeOffRequest(
                cleaner_id=cleaner.id,
                start_date=data.startDate,
                end_date=data.endDate,
                reason=data.reason,
                status=TimeOffStatus.PENDING,
            ),
        )
        logger.info(f"📅 Cleaner {cleaner.id} requested time off {data.startDate:%Y-%m-%d} - {data.endDate:%Y-%m-%d}")
        return request

    def list_own_time_off(self, cleaner: User) -> list[TimeOffRequest]:
        return self.repo.list_cleaner_time_off(self.db, cleaner.id)

    def update_time_off(self, cleaner: User, request_id: int, data: TimeOffSubmit) -> TimeOffRequest:
        request = self._own_pending_request(cleaner, request_id, "update")
        self._check_range(data)
        request.start_date = data.startDate
        request.end_date = data.endDate
        request.reason = data.reason
        return self.repo.save(self.db, request)

    def delete_time_off(self, cleaner: User, request_id: int) -> dict:
        request = self._own_pending_request(cleaner, request_id, "delete")
        self.repo.delete(self.db, request)
        logger.info(f"🗑️ Cleaner {cleaner.id} withdrew time-off request {request_id}")
        return {"success": True}

    # ------------------------------------------------------------------
    # Admin review
    # ------------------------------------------------------------------

    def list_time_off(self, include_cleared: bool = False) -> list[TimeOffRequest]:
        return self.repo.list_time_off(self.db, include_cleared)

    def _get_request(self, request_id: int) -> TimeOffRequest:
        request = self.repo.get_time_off(self.db, request_id)
        if not request:
            raise HTTPException(status_code=404, detail="Time-off request not found")
        return request

    def review_time_off(self, admin: User, request_id: int, data: TimeOffReview) -> TimeOffRequest:
        request = self._get_request(request_id)
        request.status = data.status
        request.reviewed_by_id = admin.id
        request.reviewed_at = utcnow()
        request.admin_notes = data.adminNotes
        logger.info(f"✅ Admin {admin.id} marked time-off request {request_id} {data.status}")
        return self.repo.save(self.db, request)

    def clear_time_off(self, request_id: int) -> TimeOffRequest:
        request = self._get_request(request_id)
        if request.status == TimeOffStatus.PENDING:
            raise HTTPException(
                status_code=400, detail="Cannot clear pending requests. Please approve or reject first."
            )
        request.is_cleared = True
        return self.repo.save(self.db, request)

    # ------------------------------------------------------------------
    # Cleaner availability
    # ------------------------------------------------------------------

    def get_cleaner_availability(self, query: AvailabilityQuery) -> list[dict]:
        """
        Every cleaner with whether they can take a slot.

        A cleaner is BOOKED when one of their non-cancelled bookings that day
        overlaps the slot, otherwise TIME_OFF when approved time off covers
        the day. Without a date and time every cleaner is available.
        """
        cleaners = self.repo.list_cleaners(self.db)
        results = [
            {
                "id": c.id,
                "email": c.email,
                "firstName": c.first_name,
                "lastName": c.last_name,
                "phone": c.phone,
                "color": c.color,
                "isAvailable": True,
                "conflictType": None,
                "conflictDetails": None,
            }
            for c in cleaners
        ]
        if not query.scheduledDate or not query.scheduledTime:
            return results

        try:
            day = datetime.strptime(query.scheduledDate, "%Y-%m-%d")
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format. Expected YYYY-MM-DD")

        day_start, day_end = day_bounds(day)
        slot_start, slot_end = _booking_window(day, query.scheduledTime, query.durationHours)

        for entry in results:
            conflict = self._booking_conflict(entry["id"], day, slot_start, slot_end, query.excludeBookingId)
            if conflict:
                entry.update(isAvailable=False, conflictType="BOOKED", conflictDetails=conflict)
                continue

            time_off = self.repo.get_approved_time_off_on(self.db, entry["id"], day_start, day_end)
            if time_off:
                details = f"Time off: {_short_date(time_off.start_date)} - {_short_date(time_off.end_date)}"
                if time_off.reason:
                    details += f" ({time_off.reason})"
                entry.update(isAvailable=False, conflictType="TIME_OFF", conflictDetails=details)

        return results

    def _booking_conflict(
        self,
        cleaner_id: int,
        day: datetime,
        slot_start: datetime,
        slot_end: datetime,
        exclude_booking_id: Optional[int],
    ) -> Optional[str]:
        day_start, day_end = day_bounds(day)
        for booking in self.repo.get_cleaner_day_bookings(self.db, cleaner_id, day_start, day_end, exclude_booking_id):
            start, end = _booking_window(day, booking.scheduled_time, booking.duration_hours)
            if slot_start < end and slot_end > start:
                client = booking.client
                client_name = f"{client.first_name} {client.last_name}" if client else "Unknown client"
                duration = format_duration_hours(booking.duration_hours or DEFAULT_DURATION_HOURS)
                return f"Already booked: {client_name} at {format_time_12h(booking.scheduled_time)} ({duration})"
        return None
