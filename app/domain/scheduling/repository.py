"""Scheduling repository - cleaner schedules, payouts and time-off requests"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from ...models import (
    Booking,
    BookingChecklist,
    BookingStatus,
    Payment,
    TimeOffRequest,
    TimeOffStatus,
    User,
    UserRole,
)


class SchedulingRepository:
    """Repository for scheduling database operations"""

    @staticmethod
    def get_cleaner_schedule(db: Session, cleaner_id: int) -> list[Booking]:
        return (
            db.query(Booking)
            .options(
                selectinload(Booking.client),
                selectinload(Booking.cleaner),
                selectinload(Booking.checklist).selectinload(BookingChecklist.items),
            )
            .filter(Booking.cleaner_id == cleaner_id)
            .order_by(Booking.scheduled_date.asc())
            .all()
        )

    @staticmethod
    def get_cleaner_payments(db: Session, cleaner_id: int) -> list[Payment]:
        return (
            db.query(Payment)
            .options(selectinload(Payment.booking))
            .filter(Payment.cleaner_id == cleaner_id)
            .order_by(Payment.created_at.desc())
            .all()
        )

    @staticmethod
    def get_time_off(db: Session, request_id: int) -> Optional[TimeOffRequest]:
        return db.query(TimeOffRequest).filter(TimeOffRequest.id == request_id).first()

    @staticmethod
    def list_cleaner_time_off(db: Session, cleaner_id: int) -> list[TimeOffRequest]:
        return (
            db.query(TimeOffRequest)
            .options(selectinload(TimeOffRequest.reviewed_by))
            .filter(TimeOffRequest.cleaner_id == cleaner_id)
            .order_by(TimeOffRequest.created_at.desc())
            .all()
        )

    @staticmethod
    def list_time_off(db: Session, include_cleared: bool = False) -> list[TimeOffRequest]:
        """Pending requests plus reviewed ones that have not been cleared from the queue"""
        query = db.query(TimeOffRequest).options(
            selectinload(TimeOffRequest.cleaner), selectinload(TimeOffRequest.reviewed_by)
        )
        if not include_cleared:
            query = query.filter(
                or_(TimeOffRequest.status == TimeOffStatus.PENDING, TimeOffRequest.is_cleared.is_(False))
            )
        return query.order_by(TimeOffRequest.created_at.desc()).all()

    @staticmethod
    def save(db: Session, request: TimeOffRequest) -> TimeOffRequest:
        db.add(request)
        db.commit()
        db.refresh(request)
        return request

    @staticmethod
    def delete(db: Session, request: TimeOffRequest) -> None:
        db.delete(request)
        db.commit()

    @staticmethod
    def list_cleaners(db: Session) -> list[User]:
        return (
            db.query(User)
            .filter(User.role == UserRole.CLEANER)
            .order_by(User.first_name.asc(), User.last_name.asc())
            .all()
        )

    @staticmethod
    def get_cleaner_day_bookings(
        db: Session, cleaner_id: int, start: datetime, end: datetime, exclude_booking_id: Optional[int] = None
    ) -> list[Booking]:
        query = (
            db.query(Booking)
            .options(selectinload(Booking.client))
            .filter(
                Booking.cleaner_id == cleaner_id,
                Booking.status != BookingStatus.CANCELLED,
                Booking.scheduled_date >= start,
                Booking.scheduled_date < end,
            )
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.all()

    @staticmethod
    def get_approved_time_off_on(db: Session, cleaner_id: int, start: datetime, end: datetime) -> Optional[TimeOffRequest]:
        """Approved time off covering any part of the day [start, end)"""
        return (
            db.query(TimeOffRequest)
            .filter(
                TimeOffRequest.cleaner_id == cleaner_id,
                TimeOffRequest.status == TimeOffStatus.APPROVED,
                TimeOffRequest.start_date < end,
                TimeOffRequest.end_date >= start,
            )
            .order_by(TimeOffRequest.start_date.asc())
            .first()
        )
