"""Report repository - read-only booking queries for dashboards"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ...models import Booking, BookingStatus, User


class ReportRepository:
    @staticmethod
    def all_bookings(db: Session) -> list[Booking]:
        return db.query(Booking).all()

    @staticmethod
    def priced_bookings(
        db: Session, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> list[Booking]:
        query = db.query(Booking).filter(Booking.final_price.isnot(None))
        if start:
            query = query.filter(Booking.scheduled_date >= start)
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        return query.all()

    @staticmethod
    def count_users(db: Session, role: str) -> int:
        return db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    @staticmethod
    def count_active_cleaners(db: Session, since: datetime) -> int:
        """Cleaners with a booking on or after `since` (past month or anything upcoming)"""
        return (
            db.query(func.count(func.distinct(Booking.cleaner_id)))
            .filter(Booking.cleaner_id.isnot(None), Booking.scheduled_date >= since)
            .scalar()
            or 0
        )

    @staticmethod
    def count_unassigned(db: Session) -> int:
        return (
            db.query(func.count(Booking.id))
            .filter(Booking.cleaner_id.is_(None), Booking.status != BookingStatus.CANCELLED)
            .scalar()
            or 0
        )

    @staticmethod
    def upcoming_bookings(db: Session, start: datetime, end: Optional[datetime] = None, limit: Optional[int] = None):
        query = (
            db.query(Booking)
            .options(selectinload(Booking.client), selectinload(Booking.cleaner))
            .filter(Booking.scheduled_date >= start, Booking.status != BookingStatus.CANCELLED)
        )
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        else:
            query = query.filter(Booking.status != BookingStatus.COMPLETED)
        query = query.order_by(Booking.scheduled_date.asc(), Booking.scheduled_time.asc())
        if limit:
            query = query.limit(limit)
        return query.all()
