"""
Sales Analytics Service - Revenue and order metrics compared with the previous period
"""

import asyncio

import structlog

from backend.models.schemas import (
    AnalyticsFilter,
    AnalyticsMetric,
    ChartData,
    METRIC_LABELS,
    SalesAnalytics,
    build_metric_summary,
)
from backend.reporting.time_range import DateInterval, DateRangeResolver, Granularity
from backend.services import column_constants as cols
from backend.services.record_store import RecordStore
from backend.services.report_periods import build_breakdown, build_trend, resolve_report_period

logger = structlog.get_logger(__name__)


async def get_total_revenue(store: RecordStore, interval: DateInterval) -> float:
    """Sum of paid invoice totals, by payment date"""
    rows = await store.fetch_rows(
        cols.INVOICES,
        columns=cols.TOTAL,
        eq={cols.STATUS: cols.INVOICE_STATUS_PAID},
        gte={cols.PAID_AT: interval.start},
        lte={cols.PAID_AT: interval.end},
    )
    return sum(float(row.get(cols.TOTAL) or 0) for row in rows)


async def get_orders_count(store: RecordStore, interval: DateInterval) -> int:
    return await store.count_rows(
        cols.ORDERS,
        gte={cols.CREATED_AT: interval.start},
        lte={cols.CREATED_AT: interval.end},
    )


async def get_average_order_value(store: RecordStore, interval: DateInterval) -> float:
    rows = await store.fetch_rows(
        cols.ORDERS,
        columns=cols.TOTAL,
        gte={cols.CREATED_AT: interval.start},
        lte={cols.CREATED_AT: interval.end},
    )
    if not rows:
        return 0
    return sum(float(row.get(cols.TOTAL) or 0) for row in rows) / len(rows)


async def get_sales_by_payment_method(store: RecordStore, interval: DateInterval) -> ChartData:
    rows = await store.fetch_rows(
        cols.ORDERS,
        columns=f"{cols.PAYMENT_METHOD},{cols.TOTAL}",
        gte={cols.CREATED_AT: interval.start},
        lte={cols.CREATED_AT: interval.end},
    )
    return build_breakdown(rows, cols.PAYMENT_METHOD, value_column=cols.TOTAL, sort_desc=True)


async def get_sales_trend(
    store: RecordStore,
    interval: DateInterval,
    granularity: Granularity,
) -> ChartData:
    rows = await store.fetch_rows(
        cols.ORDERS,
        columns=f"{cols.CREATED_AT},{cols.TOTAL}",
        gte={cols.CREATED_AT: interval.start},
        lte={cols.CREATED_AT: interval.end},
    )
    return build_trend(
        rows,
        cols.CREATED_AT,
        interval.start,
        interval.end,
        granularity,
        value_column=cols.TOTAL,
    )


async def get_sales_analytics(
    filter_: AnalyticsFilter,
    store: RecordStore,
    resolver: DateRangeResolver,
) -> SalesAnalytics:
    """Build sales analytics for the filter's period"""
    pair, period = resolve_report_period(filter_, resolver)
    current, previous = pair.current, pair.previous

    (
        revenue,
        prev_revenue,
        orders_count,
        prev_orders_count,
        avg_order_value,
        prev_avg_order_value,
        sales_by_payment_method,
        sales_trend,
    ) = await asyncio.gather(
        get_total_revenue(store, current),
        get_total_revenue(store, previous),
        get_orders_count(store, current),
        get_orders_count(store, previous),
        get_average_order_value(store, current),
        get_average_order_value(store, previous),
        get_sales_by_payment_method(store, current),
        get_sales_trend(store, current, pair.granularity),
    )

    logger.info(
        "Sales analytics built",
        time_range=filter_.time_range.value,
        revenue=revenue,
        previous_revenue=prev_revenue,
    )

    return SalesAnalytics(
        total_revenue=build_metric_summary(
            revenue,
            prev_revenue,
            METRIC_LABELS[AnalyticsMetric.REVENUE],
        ),
        order_count=build_metric_summary(
            orders_count,
            prev_orders_count,
            METRIC_LABELS[AnalyticsMetric.ORDERS_COUNT],
        ),
        average_order_value=build_metric_summary(
            avg_order_value,
            prev_avg_order_value,
            METRIC_LABELS[AnalyticsMetric.AVERAGE_ORDER_VALUE],
        ),
        sales_by_payment_method=sales_by_payment_method,
        sales_trend=sales_trend,
        period=period,
    )
