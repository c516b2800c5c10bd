"""
Dashboard Service - Headline CRM metrics with period-over-period comparison
"""

import asyncio
from datetime import datetime

import structlog

from backend.models.schemas import (
    AnalyticsFilter,
    AnalyticsMetric,
    DashboardSummary,
    METRIC_LABELS,
    build_metric_summary,
)
from backend.reporting.time_range import DateInterval, DateRangeResolver
from backend.services import column_constants as cols
from backend.services.leads_analytics_service import get_lead_conversion_rate, get_total_leads
from backend.services.record_store import RecordStore
from backend.services.report_periods import resolve_report_period
from backend.services.sales_analytics_service import get_orders_count, get_total_revenue

logger = structlog.get_logger(__name__)

DASHBOARD_METRICS = [
    AnalyticsMetric.LEADS_COUNT,
    AnalyticsMetric.LEADS_CONVERSION_RATE,
    AnalyticsMetric.CUSTOMERS_COUNT,
    AnalyticsMetric.REVENUE,
    AnalyticsMetric.ORDERS_COUNT,
    AnalyticsMetric.APPOINTMENTS_COUNT,
    AnalyticsMetric.INVOICES_PAID,
    AnalyticsMetric.INVOICES_OVERDUE,
]


async def get_total_customers(store: RecordStore, interval: DateInterval) -> int:
    """Customers that existed by the end of the interval"""
    return await store.count_rows(cols.CUSTOMERS, lte={cols.CREATED_AT: interval.end})


async def get_appointments_count(store: RecordStore, interval: DateInterval) -> int:
    return await store.count_rows(
        cols.APPOINTMENTS,
        gte={cols.SCHEDULED_AT: interval.start},
        lte={cols.SCHEDULED_AT: interval.end},
    )


async def get_invoices_paid(store: RecordStore, interval: DateInterval) -> int:
    return await store.count_rows(
        cols.INVOICES,
        eq={cols.STATUS: cols.INVOICE_STATUS_PAID},
        gte={cols.PAID_AT: interval.start},
        lte={cols.PAID_AT: interval.end},
    )


async def get_invoices_overdue(store: RecordStore, now: datetime) -> int:
    """Pending invoices already past due; a snapshot, not bound to the period"""
    return await store.count_rows(
        cols.INVOICES,
        eq={cols.STATUS: cols.INVOICE_STATUS_PENDING},
        lt={cols.DUE_DATE: now},
    )


async def _collect_period_metrics(
    store: RecordStore,
    interval: DateInterval,
    lead_source=None,
) -> list:
    """Period-bound values for DASHBOARD_METRICS, in order"""
    return await asyncio.gather(
        get_total_leads(store, interval, lead_source),
        get_lead_conversion_rate(store, interval, lead_source),
        get_total_customers(store, interval),
        get_total_revenue(store, interval),
        get_orders_count(store, interval),
        get_appointments_count(store, interval),
        get_invoices_paid(store, interval),
    )


async def get_dashboard_summary(
    filter_: AnalyticsFilter,
    store: RecordStore,
    resolver: DateRangeResolver,
) -> DashboardSummary:
    """
    Build the dashboard summary for the filter's period.

    Args:
        filter_: Validated analytics filter
        store: Record store to query
        resolver: Date range resolver carrying the clock and timezone

    Returns:
        DashboardSummary keyed by metric

    Raises:
        RecordStoreError: any metric query failed; no partial summary is built
    """
    pair, period = resolve_report_period(filter_, resolver)
    now = resolver.now()

    current_values, previous_values, overdue = await asyncio.gather(
        _collect_period_metrics(store, pair.current, filter_.lead_source),
        _collect_period_metrics(store, pair.previous, filter_.lead_source),
        get_invoices_overdue(store, now),
    )
    # The overdue snapshot is shared by both periods
    current_values = list(current_values) + [overdue]
    previous_values = list(previous_values) + [overdue]

    metrics = {
        metric: build_metric_summary(value, previous_value, METRIC_LABELS[metric])
        for metric, value, previous_value in zip(DASHBOARD_METRICS, current_values, previous_values)
    }

    logger.info(
        "Dashboard summary built",
        time_range=filter_.time_range.value,
        start=pair.current.start.isoformat(),
        end=pair.current.end.isoformat(),
    )

    return DashboardSummary(metrics=metrics, period=period)
