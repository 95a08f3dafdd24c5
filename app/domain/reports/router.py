"""Report router - admin dashboards"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...models import User
from ...shared.permissions import MANAGE_BOOKINGS, VIEW_REPORTS
from ..bookings.schemas import BookingResponse
from .schemas import BookingStatsResponse, MonthlyMetricsResponse, RevenueReportResponse
from .service import ReportService

router = APIRouter(prefix="/admin/reports", tags=["Reports"])


def get_report_service(db: Session = Depends(get_db)) -> ReportService:
    return ReportService(db)


@router.get("/booking-stats", response_model=BookingStatsResponse)
async def get_booking_stats(
    current_user: User = Depends(require_admin(MANAGE_BOOKINGS)),
    service: ReportService = Depends(get_report_service),
):
    stats = service.get_booking_stats()
    stats["upcomingAppointments"] = [BookingResponse.from_booking(b) for b in stats["upcomingAppointments"]]
    return stats


@router.get("/revenue", response_model=RevenueReportResponse)
async def get_revenue_report(
    startDate: Optional[str] = Query(None, description="YYYY-MM-DD"),
    endDate: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: User = Depends(require_admin(VIEW_REPORTS)),
    service: ReportService = Depends(get_report_service),
):
    return service.get_revenue_report(startDate, endDate)


@router.get("/monthly", response_model=MonthlyMetricsResponse)
async def get_monthly_metrics(
    current_user: User = Depends(require_admin(VIEW_REPORTS)),
    service: ReportService = Depends(get_report_service),
):
    metrics = service.get_monthly_metrics()
    metrics["upcomingJobs"] = [BookingResponse.from_booking(b) for b in metrics["upcomingJobs"]]
    return metrics
