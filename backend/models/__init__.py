"""Models package for the CRM reporting service"""

from .schemas import (
    # Enums
    AnalyticsMetric,

    # Request Models
    AnalyticsFilter,

    # Response Models
    DataPoint, TimeSeriesDataPoint, ChartData, MetricSummary, ReportPeriod,
    DashboardSummary, LeadsAnalytics, SalesAnalytics, ApiResponse, HealthCheck,

    # Helpers
    METRIC_LABELS, build_metric_summary,
)

__all__ = [
    # Enums
    "AnalyticsMetric",

    # Request Models
    "AnalyticsFilter",

    # Response Models
    "DataPoint", "TimeSeriesDataPoint", "ChartData", "MetricSummary", "ReportPeriod",
    "DashboardSummary", "LeadsAnalytics", "SalesAnalytics", "ApiResponse", "HealthCheck",

    # Helpers
    "METRIC_LABELS", "build_metric_summary",
]
