"""
Payment holds - authorize-now, capture-later card holds on bookings

A hold is a manual-capture PaymentIntent recorded as an uncaptured Payment row.
Holds are placed immediately or, when a delay is configured, by the hourly
job once the booking is within the delay window.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import stripe
from sqlalchemy import and_, not_
from sqlalchemy.orm import Session, selectinload

from ...models import Booking, BookingStatus, Payment, PaymentMethod, User
from ...services.stripe_service import StripeService, stripe_error_message, to_cents
from ...shared.time_utils import hours_until, utcnow
from ..settings.repository import SettingsRepository

logger = logging.getLogger(__name__)

TERMINAL_HOLD_STATUSES = ("canceled", "failed")


def get_hold_delay_hours(db: Session) -> Optional[int]:
    config = SettingsRepository.get_configuration(db)
    return config.payment_hold_delay_hours if config else None


def should_place_hold_now(
    scheduled_date: datetime, delay_hours: Optional[int], now: Optional[datetime] = None
) -> bool:
    """Without a configured delay holds are placed right away"""
    if not delay_hours:
        return True
    return hours_until(scheduled_date, now) <= delay_hours


def deferred_hold_details(delay_hours: Optional[int]) -> str:
    return f"Payment hold deferred - will be placed {delay_hours} hours before booking"


def active_hold_filter():
    return and_(
        Payment.is_captured.is_(False),
        Payment.stripe_payment_intent_id.isnot(None),
        Payment.status.notin_(TERMINAL_HOLD_STATUSES),
    )


def find_active_hold(db: Session, booking_id: int) -> Optional[Payment]:
    """Most recent uncaptured Stripe payment that is still alive"""
    return (
        db.query(Payment)
        .filter(Payment.booking_id == booking_id, active_hold_filter())
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )


def place_hold(
    db: Session,
    stripe_service: StripeService,
    booking: Booking,
    customer_id: str,
    payment_method_id: str,
    last4: Optional[str],
    amount: float,
    description: Optional[str] = None,
    payment_description: Optional[str] = None,
    details_label: str = "Hold",
    extra_metadata: Optional[dict] = None,
) -> Payment:
    """
    Authorize the booking amount on a saved card and record it.

    Raises stripe.StripeError when Stripe declines; nothing is written in that case.
    """
    metadata = {"bookingId": str(booking.id), "clientId": str(booking.client_id)}
    if extra_metadata:
        metadata.update(extra_metadata)

    intent = stripe_service.create_hold(
        amount_cents=to_cents(amount),
        customer_id=customer_id,
        payment_method_id=payment_method_id,
        description=description or f"Booking #{booking.id}: {booking.service_type}",
        metadata=metadata,
    )

    payment = Payment(
        booking_id=booking.id,
        cleaner_id=booking.cleaner_id,
        amount=amount,
        description=payment_description or f"Payment hold for booking #{booking.id}",
        stripe_payment_intent_id=intent.id,
        stripe_payment_method_id=payment_method_id,
        status=intent.status,
        is_captured=False,
    )
    db.add(payment)
    booking.payment_method = PaymentMethod.CREDIT_CARD
    booking.payment_details = f"Saved card ending in {last4 or 'XXXX'} - {details_label}: {intent.id}"
    db.commit()
    db.refresh(payment)
    logger.info(f"✅ Placed hold {intent.id} (${amount:.2f}) on booking #{booking.id}")
    return payment


def cancel_holds(
    db: Session,
    stripe_service: StripeService,
    booking_id: int,
    statuses: tuple[str, ...] = ("requires_capture",),
) -> int:
    """
    Cancel uncaptured holds with the given statuses.

    Each failure is logged and skipped so one stale intent cannot block the rest.
    Returns the number of holds canceled.
    """
    holds = (
        db.query(Payment)
        .filter(
            Payment.booking_id == booking_id,
            Payment.is_captured.is_(False),
            Payment.status.in_(statuses),
        )
        .order_by(Payment.created_at.desc())
        .all()
    )
    canceled = 0
    for payment in holds:
        if not payment.stripe_payment_intent_id:
            continue
        try:
            intent = stripe_service.cancel_payment_intent(payment.stripe_payment_intent_id)
            payment.status = intent.status or "canceled"
            db.commit()
            canceled += 1
        except stripe.StripeError as e:
            db.rollback()
            logger.error(
                f"❌ Failed to cancel hold {payment.stripe_payment_intent_id} on booking #{booking_id}: "
                f"{stripe_error_message(e)}"
            )
    return canceled


def _pick_payment_method(
    stripe_service: StripeService, client: User
) -> tuple[Optional[str], Optional[str]]:
    """Default saved card first, then any saved card, then the oldest card on the Stripe customer"""
    saved = sorted(client.saved_payment_methods, key=lambda m: (not m.is_default, m.id))
    if saved:
        return saved[0].stripe_payment_method_id, saved[0].last4

    logger.info(f"No local card for client {client.id}, checking Stripe")
    try:
        cards = stripe_service.list_card_payment_methods(client.stripe_customer_id)
    except stripe.StripeError as e:
        logger.error(f"❌ Failed to list Stripe cards for client {client.id}: {stripe_error_message(e)}")
        return None, None
    if not cards:
        return None, None
    card = cards[0]
    return card.id, getattr(getattr(card, "card", None), "last4", None)


def process_payment_holds(
    db: Session,
    stripe_service: StripeService,
    override_delay_hours: Optional[int] = None,
    now: Optional[datetime] = None,
) -> dict:
    """Place holds on every upcoming booking that has entered the delay window without one"""
    delay_hours = override_delay_hours if override_delay_hours is not None else get_hold_delay_hours(db)
    if not delay_hours:
        return {"message": "No payment hold delay configured. Skipping."}

    now = now or utcnow()
    window_end = now + timedelta(hours=delay_hours)

    has_active_hold = (
        db.query(Payment.id).filter(Payment.booking_id == Booking.id, active_hold_filter()).exists()
    )
    bookings = (
        db.query(Booking)
        .options(selectinload(Booking.client).selectinload(User.saved_payment_methods))
        .filter(
            Booking.scheduled_date > now,
            Booking.scheduled_date <= window_end,
            Booking.status.notin_(BookingStatus.LOCKED),
            not_(has_active_hold),
        )
        .order_by(Booking.scheduled_date)
        .all()
    )
    logger.info(f"📥 Found {len(bookings)} bookings needing payment holds")

    results = {"processed": 0, "success": 0, "failed": 0, "errors": []}
    for booking in bookings:
        results["processed"] += 1
        try:
            if _auto_hold(db, stripe_service, booking):
                results["success"] += 1
        except stripe.StripeError as e:
            db.rollback()
            message = stripe_error_message(e)
            logger.error(f"❌ Auto hold failed for booking #{booking.id}: {message}")
            results["failed"] += 1
            results["errors"].append(f"Booking #{booking.id}: {message}")
        except Exception as e:
            db.rollback()
            message = getattr(e, "detail", None) or str(e)
            logger.exception(f"❌ Unexpected error placing hold for booking #{booking.id}")
            results["failed"] += 1
            results["errors"].append(f"Booking #{booking.id}: {message}")

    return results


def _auto_hold(db: Session, stripe_service: StripeService, booking: Booking) -> bool:
    """Place the automatic hold for one booking; False when it is skipped"""
    client = booking.client
    if not client.stripe_customer_id:
        logger.info(f"Booking #{booking.id} skipped: client has no Stripe customer")
        return False

    payment_method_id, last4 = _pick_payment_method(stripe_service, client)
    if not payment_method_id:
        logger.info(f"Booking #{booking.id} skipped: no usable payment method")
        return False

    amount = booking.final_price or 0
    if amount <= 0:
        return False

    place_hold(
        db,
        stripe_service,
        booking,
        customer_id=client.stripe_customer_id,
        payment_method_id=payment_method_id,
        last4=last4,
        amount=amount,
        description=f"Automatic Payment Hold for Booking #{booking.id}",
        payment_description="Automatic Payment Hold (Cron/Config Re-eval)",
        details_label="Auto Hold",
        extra_metadata={"type": "auto_hold"},
    )
    return True
