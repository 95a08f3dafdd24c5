"""Report service - booking statistics, revenue report and monthly dashboard metrics"""

import logging
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Booking, BookingStatus, ServiceFrequency, UserRole
from ...shared.time_utils import add_months, derive_status, eastern_day_range, utcnow
from ..payments.repository import PaymentRepository
from .repository import ReportRepository

logger = logging.getLogger(__name__)

ACTIVE_CLEANER_WINDOW_DAYS = 30
TREND_MONTHS = 6
OPEN_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED, BookingStatus.IN_PROGRESS)


def _percent_change(current: float, previous: float) -> float:
    if previous <= 0:
        return 0
    return (current - previous) / previous * 100


def revenue_trends(bookings: list[Booking], now: datetime) -> list[dict]:
    """Completed revenue for the current month and the five before it, oldest first"""
    since = add_months(now, -TREND_MONTHS)
    by_month: dict[str, float] = defaultdict(float)
    for booking in bookings:
        if booking.final_price is None or booking.scheduled_date < since:
            continue
        if derive_status(booking.status, booking.scheduled_date, now) == BookingStatus.COMPLETED:
            by_month[f"{booking.scheduled_date:%Y-%m}"] += booking.final_price

    trends = []
    for offset in range(TREND_MONTHS - 1, -1, -1):
        month = add_months(now, -offset)
        key = f"{month:%Y-%m}"
        trends.append({"month": f"{month:%b %Y}", "monthKey": key, "revenue": by_month.get(key, 0)})
    return trends


class ReportService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ReportRepository()

    def get_booking_stats(self) -> dict:
        now = utcnow()
        bookings = self.repo.all_bookings(self.db)
        derived = [(b, derive_status(b.status, b.scheduled_date, now)) for b in bookings]
        counts = Counter(status for _, status in derived)

        completed_revenue = sum(b.final_price or 0 for b, s in derived if s == BookingStatus.COMPLETED)
        pending_revenue = sum(b.final_price or 0 for b, s in derived if s in OPEN_STATUSES)

        return {
            "totalBookings": len(bookings),
            "bookingsByStatus": {
                "pending": counts[BookingStatus.PENDING],
                "confirmed": counts[BookingStatus.CONFIRMED],
                "inProgress": counts[BookingStatus.IN_PROGRESS],
                "completed": counts[BookingStatus.COMPLETED],
                "cancelled": counts[BookingStatus.CANCELLED],
            },
            "totalClients": self.repo.count_users(self.db, UserRole.CLIENT),
            "totalCleaners": self.repo.count_users(self.db, UserRole.CLEANER),
            "activeCleaners": self.repo.count_active_cleaners(
                self.db, now - timedelta(days=ACTIVE_CLEANER_WINDOW_DAYS)
            ),
            "revenue": {"total": completed_revenue, "pending": pending_revenue},
            "revenueTrends": revenue_trends(bookings, now),
            "upcomingAppointments": self.repo.upcoming_bookings(self.db, now, limit=10),
            "unassignedBookings": self.repo.count_unassigned(self.db),
        }

    def get_revenue_report(self, start_date: Optional[str] = None, end_date: Optional[str] = None) -> dict:
        """
        Revenue over a range of US Eastern days.

        Billed revenue is past (derived COMPLETED) bookings, pending revenue is
        upcoming bookings that are not cancelled, and recurring revenue covers
        every non-cancelled booking of a recurring series.
        """
        now = utcnow()
        start, end = eastern_day_range(start_date, end_date)

        billed = pending = 0.0
        recurring = {ServiceFrequency.WEEKLY: 0.0, ServiceFrequency.BIWEEKLY: 0.0, ServiceFrequency.MONTHLY: 0.0}
        for booking in self.repo.priced_bookings(self.db, start, end):
            price = booking.final_price or 0
            if derive_status(booking.status, booking.scheduled_date, now) == BookingStatus.COMPLETED:
                billed += price
            if booking.scheduled_date >= now and booking.status != BookingStatus.CANCELLED:
                pending += price
            if booking.service_frequency in recurring and booking.status != BookingStatus.CANCELLED:
                recurring[booking.service_frequency] += price

        return {
            "totalRevenue": billed + pending,
            "billedRevenue": billed,
            "pendingRevenue": pending,
            "recurringRevenue": sum(recurring.values()),
            "weeklyRevenue": recurring[ServiceFrequency.WEEKLY],
            "biweeklyRevenue": recurring[ServiceFrequency.BIWEEKLY],
            "monthlyRevenue": recurring[ServiceFrequency.MONTHLY],
        }

    def get_monthly_metrics(self) -> dict:
        now = utcnow()
        this_month_start = datetime(now.year, now.month, 1)
        last_month_start = add_months(this_month_start, -1)

        bookings = self.repo.priced_bookings(self.db)
        current_revenue = previous_revenue = 0.0
        current_count = previous_count = 0
        for booking in bookings:
            if derive_status(booking.status, booking.scheduled_date, now) != BookingStatus.COMPLETED:
                continue
            if booking.scheduled_date >= this_month_start:
                current_revenue += booking.final_price
                current_count += 1
            elif booking.scheduled_date >= last_month_start:
                previous_revenue += booking.final_price
                previous_count += 1

        today_start = datetime(now.year, now.month, now.day)
        upcoming_end = today_start + timedelta(days=3) - timedelta(microseconds=1)

        return {
            "monthlyRevenue": {
                "current": current_revenue,
                "previous": previous_revenue,
                "changePercent": _percent_change(current_revenue, previous_revenue),
            },
            "monthlyBookings": {
                "current": current_count,
                "previous": previous_count,
                "changePercent": _percent_change(current_count, previous_count),
            },
            "revenueTrends": revenue_trends(bookings, now),
            "pendingChargesCount": len(PaymentRepository.pending_charge_bookings(self.db, now)),
            "upcomingJobs": self.repo.upcoming_bookings(self.db, today_start, end=upcoming_end),
        }
