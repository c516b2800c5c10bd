"""
Pydantic models for analytics request/response schemas and data validation
"""

from datetime import datetime, date
from typing import Any, Dict, List, Optional, Union, Literal
from pydantic import BaseModel, ConfigDict, Field, model_validator
from enum import Enum
import pytz

from backend.reporting.time_range import Granularity, TimeRangeSelector


class AnalyticsMetric(str, Enum):
    """Metrics shown on the analytics dashboard"""
    LEADS_COUNT = "LEADS_COUNT"
    LEADS_CONVERSION_RATE = "LEADS_CONVERSION_RATE"
    TIME_TO_CONVERSION = "TIME_TO_CONVERSION"
    CUSTOMERS_COUNT = "CUSTOMERS_COUNT"
    REVENUE = "REVENUE"
    ORDERS_COUNT = "ORDERS_COUNT"
    AVERAGE_ORDER_VALUE = "AVERAGE_ORDER_VALUE"
    INVOICES_PAID = "INVOICES_PAID"
    INVOICES_OVERDUE = "INVOICES_OVERDUE"
    APPOINTMENTS_COUNT = "APPOINTMENTS_COUNT"


METRIC_LABELS: Dict[AnalyticsMetric, str] = {
    AnalyticsMetric.LEADS_COUNT: "Total Leads",
    AnalyticsMetric.LEADS_CONVERSION_RATE: "Lead Conversion Rate",
    AnalyticsMetric.TIME_TO_CONVERSION: "Avg. Time to Conversion (days)",
    AnalyticsMetric.CUSTOMERS_COUNT: "Total Customers",
    AnalyticsMetric.REVENUE: "Total Revenue",
    AnalyticsMetric.ORDERS_COUNT: "Order Count",
    AnalyticsMetric.AVERAGE_ORDER_VALUE: "Average Order Value",
    AnalyticsMetric.INVOICES_PAID: "Invoices Paid",
    AnalyticsMetric.INVOICES_OVERDUE: "Overdue Invoices",
    AnalyticsMetric.APPOINTMENTS_COUNT: "Appointment Count",
}


# Request Models
class AnalyticsFilter(BaseModel):
    """Analytics query parameters"""
    model_config = ConfigDict(populate_by_name=True)

    time_range: TimeRangeSelector = Field(default=TimeRangeSelector.THIS_MONTH)
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None
    lead_source: Optional[str] = Field(None, max_length=100, description="Only count leads from this source")

    @model_validator(mode="after")
    def validate_custom_range(self) -> "AnalyticsFilter":
        if self.time_range == TimeRangeSelector.CUSTOM:
            if self.from_ is None or self.to is None:
                raise ValueError("Custom time range requires both from and to dates")
        if self.from_ is not None and self.to is not None:
            # Mixed naive/aware bounds are compared after localization
            same_awareness = (self.from_.tzinfo is None) == (self.to.tzinfo is None)
            if same_awareness and self.to < self.from_:
                raise ValueError("to must be after from")
        return self

    def localized(self, tz: str) -> "AnalyticsFilter":
        """Copy with naive bounds interpreted in the given timezone"""
        zone = pytz.timezone(tz)
        updates = {}
        for name in ("from_", "to"):
            value = getattr(self, name)
            if value is not None and value.tzinfo is None:
                updates[name] = zone.localize(value)
        return self.model_copy(update=updates) if updates else self


# Response Models
class DataPoint(BaseModel):
    """Labelled value in a breakdown chart"""
    label: str
    value: float


class TimeSeriesDataPoint(BaseModel):
    """Value of one trend bucket"""
    date: date
    value: float
    label: Optional[str] = None


class ChartData(BaseModel):
    """Chart series with totals"""
    series: List[Union[TimeSeriesDataPoint, DataPoint]] = Field(default_factory=list)
    total: float = 0
    average: Optional[float] = None


class MetricSummary(BaseModel):
    """Metric value compared with the previous period"""
    value: float
    label: str
    previous_value: float
    change: float
    change_percentage: float
    trend: List[TimeSeriesDataPoint] = Field(default_factory=list)


def build_metric_summary(
    value: float,
    previous_value: float,
    label: str,
    trend: Optional[List[TimeSeriesDataPoint]] = None,
) -> MetricSummary:
    """Combine current and previous values; percent change is 0 without a baseline"""
    change = value - previous_value
    change_percentage = (change / previous_value) * 100 if previous_value != 0 else 0
    return MetricSummary(
        value=value,
        label=label,
        previous_value=previous_value,
        change=change,
        change_percentage=change_percentage,
        trend=trend or [],
    )


class ReportPeriod(BaseModel):
    """Resolved current and comparison periods"""
    time_range: TimeRangeSelector
    label: str
    granularity: Granularity
    from_: datetime = Field(serialization_alias="from")
    to: datetime
    previous_from: datetime
    previous_to: datetime
    display: str


class DashboardSummary(BaseModel):
    """Dashboard metrics for a period"""
    metrics: Dict[AnalyticsMetric, MetricSummary]
    period: ReportPeriod


class LeadsAnalytics(BaseModel):
    """Lead funnel analytics for a period"""
    total_leads: MetricSummary
    leads_by_source: ChartData
    leads_by_status: ChartData
    lead_conversion_rate: MetricSummary
    time_to_conversion: MetricSummary
    leads_trend: ChartData
    period: ReportPeriod


class SalesAnalytics(BaseModel):
    """Sales analytics for a period"""
    total_revenue: MetricSummary
    order_count: MetricSummary
    average_order_value: MetricSummary
    sales_by_payment_method: ChartData
    sales_trend: ChartData
    period: ReportPeriod


class ApiResponse(BaseModel):
    """Response envelope"""
    success: bool = True
    data: Optional[Any] = None


class HealthCheck(BaseModel):
    """Health check response"""
    status: Literal["healthy", "unhealthy", "degraded"]
    version: str
    timestamp: datetime
    services: Dict[str, Dict[str, Any]]
