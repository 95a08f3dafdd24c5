"""Report domain schemas"""

from pydantic import BaseModel

from ..bookings.schemas import BookingResponse


class StatusCounts(BaseModel):
    pending: int
    confirmed: int
    inProgress: int
    completed: int
    cancelled: int


class RevenueTotals(BaseModel):
    total: float
    pending: float


class RevenueTrend(BaseModel):
    month: str
    monthKey: str
    revenue: float


class BookingStatsResponse(BaseModel):
    totalBookings: int
    bookingsByStatus: StatusCounts
    totalClients: int
    totalCleaners: int
    activeCleaners: int
    revenue: RevenueTotals
    revenueTrends: list[RevenueTrend]
    upcomingAppointments: list[BookingResponse]
    unassignedBookings: int


class RevenueReportResponse(BaseModel):
    totalRevenue: float
    billedRevenue: float
    pendingRevenue: float
    recurringRevenue: float
    weeklyRevenue: float
    biweeklyRevenue: float
    monthlyRevenue: float


class MonthComparison(BaseModel):
    current: float
    previous: float
    changePercent: float


class MonthlyMetricsResponse(BaseModel):
    monthlyRevenue: MonthComparison
    monthlyBookings: MonthComparison
    revenueTrends: list[RevenueTrend]
    pendingChargesCount: int
    upcomingJobs: list[BookingResponse]
