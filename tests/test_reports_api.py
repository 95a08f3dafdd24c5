"""API tests for the admin dashboards: booking stats, revenue report and monthly metrics"""

from datetime import datetime, timedelta

from app.domain.reports.service import revenue_trends
from app.models import Booking, BookingStatus, Payment, ServiceFrequency, UserRole
from app.shared.time_utils import add_months, utcnow

from .conftest import auth_headers, make_user


def _booking(db, customer, scheduled_date, price, status=BookingStatus.CONFIRMED, **fields):
    booking = Booking(
        client_id=customer.id,
        service_type="Standard Cleaning",
        scheduled_date=scheduled_date,
        scheduled_time="10:00",
        final_price=price,
        status=status,
        **fields,
    )
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


def test_booking_stats(client, db, admin, customer, cleaner):
    _booking(db, customer, datetime(2020, 5, 1), 100, cleaner_id=cleaner.id)
    unassigned = _booking(db, customer, datetime(2030, 5, 2), 200, status=BookingStatus.PENDING)
    _booking(db, customer, datetime(2030, 5, 3), 50, status=BookingStatus.CANCELLED)
    assigned = _booking(db, customer, datetime(2030, 5, 1), 80, cleaner_id=cleaner.id)

    response = client.get("/admin/reports/booking-stats", headers=auth_headers(admin))

    assert response.status_code == 200
    stats = response.json()
    assert stats["totalBookings"] == 4
    assert stats["bookingsByStatus"] == {
        "pending": 1,
        "confirmed": 1,
        "inProgress": 0,
        "completed": 1,
        "cancelled": 1,
    }
    assert stats["totalClients"] == 1
    assert stats["totalCleaners"] == 1
    assert stats["activeCleaners"] == 1
    assert stats["revenue"] == {"total": 100.0, "pending": 280.0}
    assert len(stats["revenueTrends"]) == 6
    assert [b["id"] for b in stats["upcomingAppointments"]] == [assigned.id, unassigned.id]
    assert stats["unassignedBookings"] == 1


def test_booking_stats_need_manage_bookings(client, db):
    admin = make_user(db, UserRole.ADMIN, admin_permissions={"view_reports": True})
    assert client.get("/admin/reports/booking-stats", headers=auth_headers(admin)).status_code == 403


def test_revenue_report(client, db, admin, customer):
    _booking(db, customer, datetime(2020, 6, 15), 100, service_frequency=ServiceFrequency.WEEKLY)
    _booking(
        db,
        customer,
        datetime(2030, 6, 15),
        200,
        status=BookingStatus.PENDING,
        service_frequency=ServiceFrequency.BIWEEKLY,
    )
    _booking(
        db,
        customer,
        datetime(2030, 6, 16),
        50,
        status=BookingStatus.CANCELLED,
        service_frequency=ServiceFrequency.MONTHLY,
    )
    _booking(db, customer, datetime(2030, 6, 17), 30, service_frequency=ServiceFrequency.ONE_TIME)

    response = client.get("/admin/reports/revenue", headers=auth_headers(admin))

    assert response.json() == {
        "totalRevenue": 330.0,
        "billedRevenue": 100.0,
        "pendingRevenue": 230.0,
        "recurringRevenue": 300.0,
        "weeklyRevenue": 100.0,
        "biweeklyRevenue": 200.0,
        "monthlyRevenue": 0.0,
    }

    ranged = client.get(
        "/admin/reports/revenue",
        params={"startDate": "2030-01-01", "endDate": "2030-12-31"},
        headers=auth_headers(admin),
    ).json()
    assert ranged["billedRevenue"] == 0
    assert ranged["pendingRevenue"] == 230.0
    assert ranged["recurringRevenue"] == 200.0


def test_revenue_range_uses_eastern_days(client, db, admin, customer):
    # 02:00 UTC on Jan 2 is still Jan 1 in US Eastern
    _booking(db, customer, datetime(2030, 1, 2, 2), 90)
    params = {"startDate": "2030-01-02", "endDate": "2030-01-02"}

    report = client.get("/admin/reports/revenue", params=params, headers=auth_headers(admin)).json()

    assert report["pendingRevenue"] == 0


def test_monthly_metrics(client, db, admin, customer):
    now = utcnow()
    this_month = datetime(now.year, now.month, 1)
    _booking(db, customer, this_month, 150)
    _booking(db, customer, add_months(this_month, -1), 100)
    _booking(db, customer, add_months(this_month, -1), 100, status=BookingStatus.CANCELLED)

    response = client.get("/admin/reports/monthly", headers=auth_headers(admin))

    assert response.status_code == 200
    metrics = response.json()
    assert metrics["monthlyRevenue"] == {"current": 150.0, "previous": 100.0, "changePercent": 50.0}
    assert metrics["monthlyBookings"] == {"current": 1, "previous": 1, "changePercent": 0.0}
    assert metrics["revenueTrends"][-1]["revenue"] == 150.0
    assert metrics["pendingChargesCount"] == 0


def test_monthly_metrics_count_pending_charges_and_upcoming_jobs(client, db, admin, customer):
    now = utcnow()
    past = _booking(db, customer, datetime(2020, 1, 1), 120)
    db.add(Payment(booking_id=past.id, amount=120.0, status="requires_capture", is_captured=False))
    db.commit()
    soon = _booking(db, customer, datetime(now.year, now.month, now.day) + timedelta(days=1), 60)
    _booking(db, customer, datetime(2030, 1, 1), 60)

    metrics = client.get("/admin/reports/monthly", headers=auth_headers(admin)).json()

    assert metrics["pendingChargesCount"] == 1
    assert [b["id"] for b in metrics["upcomingJobs"]] == [soon.id]


def test_reports_need_view_reports(client, db):
    admin = make_user(db, UserRole.ADMIN, admin_permissions={"manage_bookings": True})
    assert client.get("/admin/reports/revenue", headers=auth_headers(admin)).status_code == 403
    assert client.get("/admin/reports/monthly", headers=auth_headers(admin)).status_code == 403


def test_revenue_trends_cover_six_months_oldest_first():
    now = datetime(2026, 3, 15)
    bookings = [
        Booking(scheduled_date=datetime(2026, 3, 1), final_price=40, status=BookingStatus.CONFIRMED),
        Booking(scheduled_date=datetime(2026, 1, 10), final_price=60, status=BookingStatus.COMPLETED),
        Booking(scheduled_date=datetime(2026, 1, 11), final_price=99, status=BookingStatus.CANCELLED),
        Booking(scheduled_date=datetime(2026, 3, 20), final_price=70, status=BookingStatus.CONFIRMED),
        Booking(scheduled_date=datetime(2025, 6, 1), final_price=500, status=BookingStatus.COMPLETED),
    ]

    trends = revenue_trends(bookings, now)

    assert [t["monthKey"] for t in trends] == ["2025-10", "2025-11", "2025-12", "2026-01", "2026-02", "2026-03"]
    assert trends[0]["month"] == "Oct 2025"
    assert [t["revenue"] for t in trends] == [0, 0, 0, 60, 0, 40]
