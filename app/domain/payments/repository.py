"""Payment repository - Database operations for payments and saved cards"""

from datetime import datetime
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session, selectinload

from ...models import Booking, BookingStatus, Payment, SavedPaymentMethod, User

DECLINED_STATUSES = ("canceled", "failed", "requires_payment_method")


def _search_clause(term: str):
    """Case-insensitive match on client name, email, phone or the booking address"""
    pattern = f"%{term}%"
    return or_(
        User.first_name.ilike(pattern),
        User.last_name.ilike(pattern),
        User.email.ilike(pattern),
        User.phone.ilike(pattern),
        Booking.address.ilike(pattern),
    )


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_payment(db: Session, payment_id: int) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.id == payment_id).first()

    @staticmethod
    def get_latest_payment(db: Session, booking_id: int) -> Optional[Payment]:
        return (
            db.query(Payment)
            .filter(Payment.booking_id == booking_id)
            .order_by(Payment.created_at.desc(), Payment.id.desc())
            .first()
        )

    @staticmethod
    def create_payment(db: Session, **fields) -> Payment:
        payment = Payment(**fields)
        db.add(payment)
        db.commit()
        db.refresh(payment)
        return payment

    # ------------------------------------------------------------------
    # Saved cards
    # ------------------------------------------------------------------

    @staticmethod
    def get_saved_method(db: Session, method_id: int) -> Optional[SavedPaymentMethod]:
        return db.query(SavedPaymentMethod).filter(SavedPaymentMethod.id == method_id).first()

    @staticmethod
    def get_saved_method_by_stripe_id(db: Session, stripe_payment_method_id: str) -> Optional[SavedPaymentMethod]:
        return (
            db.query(SavedPaymentMethod)
            .filter(SavedPaymentMethod.stripe_payment_method_id == stripe_payment_method_id)
            .first()
        )

    @staticmethod
    def list_saved_methods(db: Session, user_id: int) -> list[SavedPaymentMethod]:
        return (
            db.query(SavedPaymentMethod)
            .filter(SavedPaymentMethod.user_id == user_id)
            .order_by(SavedPaymentMethod.is_default.desc(), SavedPaymentMethod.created_at.desc())
            .all()
        )

    @staticmethod
    def clear_default(db: Session, user_id: int, exclude_id: Optional[int] = None) -> None:
        """Unset the default flag on a user's cards; the caller commits"""
        query = db.query(SavedPaymentMethod).filter(
            SavedPaymentMethod.user_id == user_id, SavedPaymentMethod.is_default.is_(True)
        )
        if exclude_id is not None:
            query = query.filter(SavedPaymentMethod.id != exclude_id)
        query.update({SavedPaymentMethod.is_default: False}, synchronize_session="fetch")

    # ------------------------------------------------------------------
    # Charge dashboards
    # ------------------------------------------------------------------

    @staticmethod
    def _bookings_with_holds(db: Session, search: Optional[str]) -> Query:
        has_hold = (
            db.query(Payment.id)
            .filter(
                Payment.booking_id == Booking.id,
                Payment.is_captured.is_(False),
                Payment.status == "requires_capture",
            )
            .exists()
        )
        query = (
            db.query(Booking)
            .join(User, Booking.client_id == User.id)
            .options(selectinload(Booking.client), selectinload(Booking.cleaner), selectinload(Booking.payments))
            .filter(has_hold)
        )
        if search and search.strip():
            query = query.filter(_search_clause(search.strip()))
        return query

    @staticmethod
    def pending_charge_bookings(
        db: Session,
        now: datetime,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Booking]:
        """Completed or past bookings still holding an uncaptured authorization"""
        query = PaymentRepository._bookings_with_holds(db, search).filter(
            or_(
                Booking.status == BookingStatus.COMPLETED,
                (Booking.scheduled_date < now) & (Booking.status != BookingStatus.CANCELLED),
            )
        )
        if start:
            query = query.filter(Booking.scheduled_date >= start)
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        return query.order_by(Booking.scheduled_date.desc()).all()

    @staticmethod
    def upcoming_hold_bookings(
        db: Session,
        now: datetime,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Booking]:
        """Future bookings whose card is already authorized"""
        query = PaymentRepository._bookings_with_holds(db, search).filter(
            Booking.scheduled_date >= now,
            Booking.status.notin_((BookingStatus.CANCELLED, BookingStatus.COMPLETED)),
        )
        if start:
            query = query.filter(Booking.scheduled_date >= start)
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        return query.order_by(Booking.scheduled_date.asc()).all()

    @staticmethod
    def _payments_query(db: Session, search: Optional[str]) -> Query:
        query = db.query(Payment).options(
            selectinload(Payment.booking).selectinload(Booking.client),
            selectinload(Payment.booking).selectinload(Booking.cleaner),
        )
        if search and search.strip():
            query = (
                query.join(Booking, Payment.booking_id == Booking.id)
                .join(User, Booking.client_id == User.id)
                .filter(_search_clause(search.strip()))
            )
        return query

    @staticmethod
    def declined_payments(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Payment]:
        """Failed or canceled payments, filtered on the booking's scheduled date"""
        query = PaymentRepository._payments_query(db, search).filter(Payment.status.in_(DECLINED_STATUSES))
        if (start or end) and not (search and search.strip()):
            query = query.join(Booking, Payment.booking_id == Booking.id)
        if start:
            query = query.filter(Booking.scheduled_date >= start)
        if end:
            query = query.filter(Booking.scheduled_date <= end)
        return query.order_by(Payment.created_at.desc()).all()

    @staticmethod
    def captured_payments(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        search: Optional[str] = None,
    ) -> list[Payment]:
        """Captured, succeeded payments, filtered on the payment date"""
        query = PaymentRepository._payments_query(db, search).filter(
            Payment.is_captured.is_(True), Payment.status == "succeeded"
        )
        if start:
            query = query.filter(Payment.paid_at >= start)
        if end:
            query = query.filter(Payment.paid_at <= end)
        return query.order_by(Payment.paid_at.desc()).all()

    @staticmethod
    def get_client(db: Session, user_id: int) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(User.email == email).first()

    @staticmethod
    def get_booking(db: Session, booking_id: int) -> Optional[Booking]:
        return db.query(Booking).filter(Booking.id == booking_id).first()
