"""
Recurring bookings

A recurring series is the set of bookings sharing client, service type and
frequency. The first booking is the anchor; copies run for twelve months.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingStatus, ServiceFrequency
from ...shared.time_utils import add_months, month_difference, utcnow

logger = logging.getLogger(__name__)

HORIZON_MONTHS = 12
INTERVAL_DAYS = {ServiceFrequency.WEEKLY: 7, ServiceFrequency.BIWEEKLY: 14}

# Fields copied from the anchor onto each generated booking
COPIED_FIELDS = (
    "client_id",
    "cleaner_id",
    "service_type",
    "scheduled_time",
    "duration_hours",
    "address",
    "special_instructions",
    "final_price",
    "house_square_footage",
    "basement_square_footage",
    "number_of_bedrooms",
    "number_of_bathrooms",
    "number_of_cleaners_requested",
    "cleaner_payment_amount",
    "payment_method",
    "payment_details",
    "selected_extras",
)


def increment_date(value: datetime, frequency: str) -> datetime:
    if frequency in INTERVAL_DAYS:
        return value + timedelta(days=INTERVAL_DAYS[frequency])
    if frequency == ServiceFrequency.MONTHLY:
        return add_months(value, 1)
    return value


def recurrence_dates(start: datetime, frequency: Optional[str]) -> list[datetime]:
    """Occurrences after start, up to and including start + 12 months"""
    if frequency not in ServiceFrequency.RECURRING:
        return []

    horizon = add_months(start, HORIZON_MONTHS)
    dates = []
    step = 1
    while True:
        if frequency == ServiceFrequency.MONTHLY:
            # Offsets from the anchor keep the 31st from drifting to the 28th
            next_date = add_months(start, step)
        else:
            next_date = start + timedelta(days=INTERVAL_DAYS[frequency] * step)
        if next_date > horizon:
            break
        dates.append(next_date)
        step += 1
    return dates


def generate_future_bookings(db: Session, booking: Booking, frequency: Optional[str]) -> list[Booking]:
    """Create the PENDING copies of a recurring booking for the next twelve months"""
    dates = recurrence_dates(booking.scheduled_date, frequency)
    if not dates:
        return []

    created = []
    for scheduled_date in dates:
        copy = Booking(
            scheduled_date=scheduled_date,
            status=BookingStatus.PENDING,
            service_frequency=frequency,
            **{field: getattr(booking, field) for field in COPIED_FIELDS},
        )
        db.add(copy)
        created.append(copy)

    db.commit()
    logger.info(f"🔁 Generated {len(created)} {frequency} bookings from booking #{booking.id}")
    return created


def shifted_date(
    future_date: datetime,
    original_anchor: datetime,
    new_anchor: datetime,
    frequency: Optional[str],
) -> datetime:
    """
    New date for a later booking in a series whose anchor moved.

    The booking keeps its position (N intervals after the anchor) relative to
    the new anchor; bookings that cannot be placed that way move by the same
    delta as the anchor.
    """
    if frequency in INTERVAL_DAYS:
        interval = INTERVAL_DAYS[frequency]
        days_diff = (future_date - original_anchor).total_seconds() / 86400
        intervals_away = round(days_diff / interval)
        if intervals_away > 0:
            return new_anchor + timedelta(days=intervals_away * interval)
    elif frequency == ServiceFrequency.MONTHLY:
        months_away = month_difference(original_anchor, future_date)
        if months_away > 0:
            return add_months(new_anchor, months_away)
    return future_date + (new_anchor - original_anchor)


def shift_future_bookings(
    db: Session,
    anchor: Booking,
    original_date: datetime,
    new_date: datetime,
    new_time: Optional[str],
    frequency: Optional[str],
    service_type: Optional[str] = None,
) -> int:
    """
    Move the rest of the series after its anchor was rescheduled.

    service_type is the series' service type before the edit and defaults to
    the anchor's current one.
    """
    service_type = service_type or anchor.service_type
    future_bookings = (
        db.query(Booking)
        .filter(
            Booking.client_id == anchor.client_id,
            Booking.service_type == service_type,
            Booking.service_frequency == frequency,
            Booking.scheduled_date > original_date,
            Booking.status != BookingStatus.CANCELLED,
            Booking.id != anchor.id,
        )
        .all()
    )

    for future in future_bookings:
        future.scheduled_date = shifted_date(future.scheduled_date, original_date, new_date, frequency)
        if new_time is not None:
            future.scheduled_time = new_time

    db.commit()
    logger.info(f"📅 Shifted {len(future_bookings)} future bookings after booking #{anchor.id}")
    return len(future_bookings)


def clear_future_series(
    db: Session, booking: Booking, original_date: datetime, service_type: Optional[str] = None
) -> int:
    """
    Delete open bookings of this client and service type after the cutoff.

    The cutoff is the later of now and the booking's original date so history
    is never touched.
    """
    service_type = service_type or booking.service_type
    now = utcnow()
    cutoff = original_date if original_date > now else now
    deleted = (
        db.query(Booking)
        .filter(
            Booking.client_id == booking.client_id,
            Booking.service_type == service_type,
            Booking.scheduled_date > cutoff,
            Booking.status.notin_(BookingStatus.LOCKED),
            Booking.id != booking.id,
        )
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"🗑️ Cleared {deleted} future bookings after {cutoff.isoformat()}")
    return deleted
