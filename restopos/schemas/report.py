from pydantic import BaseModel
from typing import Dict, List, Optional
from datetime import date

from restopos.schemas.transaction import TransactionRead


class MethodStats(BaseModel):
    count: int = 0
    total: int = 0


class DashboardStats(BaseModel):
    today_revenue: int
    today_count: int
    active_orders: int
    payment_methods: Dict[str, MethodStats]


class Chart(BaseModel):
    labels: List[str]
    data: List[int]


class TopItem(BaseModel):
    name: str
    total_qty: int
    total_revenue: int


class DashboardRead(BaseModel):
    stats: DashboardStats
    chart: Chart
    top_items: List[TopItem]
    recent_transactions: List[TransactionRead]


class HourlyCount(BaseModel):
    hour: str
    count: int


class MethodDistribution(BaseModel):
    method: str
    count: int
    total: int


class MenuSales(BaseModel):
    name: str
    total_sold: int


class ReportSummary(BaseModel):
    total_transactions: int
    total_revenue: int
    average_order: float


class ReportFilters(BaseModel):
    start_date: date
    end_date: date


class ReportRead(BaseModel):
    hourlyTrend: List[HourlyCount]
    paymentMethods: List[MethodDistribution]
    topMenus: List[MenuSales]
    bottomMenus: List[MenuSales]
    summary: ReportSummary
    filters: ReportFilters


class HistoryFilters(BaseModel):
    date: date
    search: Optional[str] = None


class HistoryPage(BaseModel):
    data: List[TransactionRead]
    current_page: int
    per_page: int
    total: int
    last_page: int
    filters: HistoryFilters
