"""Tests for recurring booking date generation and series shifting"""

from datetime import datetime, timedelta

from app.domain.bookings.recurrence import (
    clear_future_series,
    generate_future_bookings,
    recurrence_dates,
    shift_future_bookings,
    shifted_date,
)
from app.models import Booking, BookingStatus, ServiceFrequency, UserRole

from .conftest import make_user


def test_weekly_series_covers_twelve_months():
    start = datetime(2026, 1, 5, 9, 0)
    dates = recurrence_dates(start, ServiceFrequency.WEEKLY)

    assert len(dates) == 52
    assert dates[0] == datetime(2026, 1, 12, 9, 0)
    assert all(b - a == timedelta(days=7) for a, b in zip(dates, dates[1:]))
    assert dates[-1] <= datetime(2027, 1, 5, 9, 0)


def test_biweekly_series():
    dates = recurrence_dates(datetime(2026, 1, 5), ServiceFrequency.BIWEEKLY)

    assert len(dates) == 26
    assert dates[1] - dates[0] == timedelta(days=14)


def test_monthly_series_keeps_anchor_day():
    dates = recurrence_dates(datetime(2026, 1, 31, 10, 0), ServiceFrequency.MONTHLY)

    assert len(dates) == 12
    assert dates[0] == datetime(2026, 2, 28, 10, 0)
    assert dates[1] == datetime(2026, 3, 31, 10, 0)
    assert dates[-1] == datetime(2027, 1, 31, 10, 0)


def test_one_time_and_missing_frequency_have_no_copies():
    start = datetime(2026, 3, 1)
    assert recurrence_dates(start, ServiceFrequency.ONE_TIME) == []
    assert recurrence_dates(start, None) == []


def test_shifted_date_keeps_position_in_weekly_series():
    original = datetime(2026, 1, 5, 9)
    moved = datetime(2026, 1, 7, 9)
    third = original + timedelta(days=14)

    assert shifted_date(third, original, moved, ServiceFrequency.WEEKLY) == moved + timedelta(days=14)


def test_shifted_date_monthly():
    original = datetime(2026, 1, 10)
    moved = datetime(2026, 1, 31)

    assert shifted_date(datetime(2026, 2, 10), original, moved, ServiceFrequency.MONTHLY) == datetime(2026, 2, 28)
    assert shifted_date(datetime(2026, 3, 10), original, moved, ServiceFrequency.MONTHLY) == datetime(2026, 3, 31)


def test_shifted_date_falls_back_to_delta():
    original = datetime(2026, 1, 5)
    moved = datetime(2026, 1, 8)

    assert shifted_date(datetime(2026, 1, 6), original, moved, ServiceFrequency.WEEKLY) == datetime(2026, 1, 9)


def _anchor(db, client, scheduled_date, frequency=ServiceFrequency.WEEKLY, **fields):
    booking = Booking(
        client_id=client.id,
        service_type="Standard Cleaning",
        scheduled_date=scheduled_date,
        scheduled_time="09:00",
        final_price=150.0,
        service_frequency=frequency,
        status=BookingStatus.CONFIRMED,
        **fields,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def test_generate_future_bookings_copies_fields(db):
    client = make_user(db, UserRole.CLIENT)
    anchor = _anchor(db, client, datetime(2030, 1, 7, 9), address="1 Main St")

    created = generate_future_bookings(db, anchor, ServiceFrequency.BIWEEKLY)

    assert len(created) == 26
    first = created[0]
    assert first.status == BookingStatus.PENDING
    assert first.address == "1 Main St"
    assert first.final_price == 150.0
    assert first.service_frequency == ServiceFrequency.BIWEEKLY
    assert first.scheduled_date == datetime(2030, 1, 21, 9)


def test_shift_future_bookings_moves_series(db):
    client = make_user(db, UserRole.CLIENT)
    original = datetime(2030, 1, 7, 9)
    anchor = _anchor(db, client, original)
    generate_future_bookings(db, anchor, ServiceFrequency.WEEKLY)

    new_date = datetime(2030, 1, 9, 9)
    anchor.scheduled_date = new_date
    db.commit()
    shifted = shift_future_bookings(db, anchor, original, new_date, "11:00", ServiceFrequency.WEEKLY)

    assert shifted == 52
    future = (
        db.query(Booking)
        .filter(Booking.id != anchor.id)
        .order_by(Booking.scheduled_date)
        .all()
    )
    assert future[0].scheduled_date == datetime(2030, 1, 16, 9)
    assert all(b.scheduled_time == "11:00" for b in future)


def test_clear_future_series_keeps_locked_bookings(db):
    client = make_user(db, UserRole.CLIENT)
    anchor = _anchor(db, client, datetime(2030, 1, 7, 9))
    generate_future_bookings(db, anchor, ServiceFrequency.MONTHLY)
    locked = (
        db.query(Booking).filter(Booking.id != anchor.id).order_by(Booking.scheduled_date).first()
    )
    locked.status = BookingStatus.IN_PROGRESS
    db.commit()

    deleted = clear_future_series(db, anchor, anchor.scheduled_date)

    assert deleted == 11
    remaining = {b.id for b in db.query(Booking).all()}
    assert remaining == {anchor.id, locked.id}
