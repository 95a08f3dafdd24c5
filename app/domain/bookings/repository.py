"""Booking repository - Database operations for bookings"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from ...models import (
    Booking,
    BookingChecklist,
    BookingChecklistItem,
    BookingStatus,
    ChecklistTemplate,
    SavedPaymentMethod,
    User,
    UserRole,
)


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def list_bookings(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        client_id: Optional[int] = None,
        cleaner_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[Booking]:
        query = db.query(Booking).options(
            selectinload(Booking.client),
            selectinload(Booking.cleaner),
            selectinload(Booking.checklist).selectinload(BookingChecklist.items),
        )
        if start:
            query = query.filter(Booking.scheduled_date >= start)
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        if client_id:
            query = query.filter(Booking.client_id == client_id)
        if cleaner_id:
            query = query.filter(Booking.cleaner_id == cleaner_id)
        if status:
            query = query.filter(Booking.status == status)
        return query.order_by(Booking.scheduled_date.asc()).all()

    @staticmethod
    def get_bookings_in_range(db: Session, start: datetime, end: datetime) -> list[Booking]:
        """Non-cancelled bookings in [start, end], for the availability calendar"""
        return (
            db.query(Booking)
            .options(selectinload(Booking.cleaner))
            .filter(
                Booking.scheduled_date >= start,
                Booking.scheduled_date <= end,
                Booking.status != BookingStatus.CANCELLED,
            )
            .order_by(Booking.scheduled_time.asc())
            .all()
        )

    @staticmethod
    def get_series_after(db: Session, booking: Booking, exclude_statuses: tuple[str, ...]) -> list[Booking]:
        """Later bookings of the same recurring series"""
        return (
            db.query(Booking)
            .filter(
                Booking.client_id == booking.client_id,
                Booking.service_type == booking.service_type,
                Booking.service_frequency == booking.service_frequency,
                Booking.scheduled_date > booking.scheduled_date,
                Booking.status.notin_(exclude_statuses),
                Booking.id != booking.id,
            )
            .all()
        )

    @staticmethod
    def get_user(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_cleaner(db: Session, cleaner_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == cleaner_id, User.role == UserRole.CLEANER).first()

    @staticmethod
    def get_saved_payment_method(db: Session, method_id: int) -> Optional[SavedPaymentMethod]:
        return db.query(SavedPaymentMethod).filter(SavedPaymentMethod.id == method_id).first()

    @staticmethod
    def attach_checklist(db: Session, booking: Booking, template: ChecklistTemplate) -> Optional[BookingChecklist]:
        """Copy a template's items onto the booking; templates without items are ignored"""
        if not template.items:
            return None
        checklist = BookingChecklist(booking_id=booking.id, template_id=template.id)
        checklist.items = [
            BookingChecklistItem(description=item.description, order=item.order, is_completed=False)
            for item in template.items
        ]
        db.add(checklist)
        db.commit()
        return checklist

    @staticmethod
    def get_checklist_item(db: Session, item_id: int) -> Optional[BookingChecklistItem]:
        return db.query(BookingChecklistItem).filter(BookingChecklistItem.id == item_id).first()
