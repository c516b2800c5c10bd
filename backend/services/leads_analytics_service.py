"""
Leads Analytics Service - Lead funnel metrics compared with the previous period
"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from backend.models.schemas import (
    AnalyticsFilter,
    AnalyticsMetric,
    ChartData,
    LeadsAnalytics,
    METRIC_LABELS,
    build_metric_summary,
)
from backend.reporting.time_range import DateInterval, DateRangeResolver, Granularity
from backend.services import column_constants as cols
from backend.services.record_store import RecordStore
from backend.services.report_periods import (
    build_breakdown,
    build_trend,
    parse_timestamp,
    resolve_report_period,
)

logger = structlog.get_logger(__name__)

SECONDS_PER_DAY = 86400


def _lead_filters(lead_source: Optional[str], **extra: Any) -> Dict[str, Any]:
    eq = dict(extra)
    if lead_source:
        eq[cols.LEAD_SOURCE] = lead_source
    return eq


def _created_between(interval: DateInterval) -> Dict[str, Dict[str, Any]]:
    return {
        "gte": {cols.CREATED_AT: interval.start},
        "lte": {cols.CREATED_AT: interval.end},
    }


async def get_total_leads(
    store: RecordStore,
    interval: DateInterval,
    lead_source: Optional[str] = None,
) -> int:
    """Leads created within the interval"""
    return await store.count_rows(
        cols.LEADS,
        eq=_lead_filters(lead_source),
        **_created_between(interval),
    )


async def get_lead_conversion_rate(
    store: RecordStore,
    interval: DateInterval,
    lead_source: Optional[str] = None,
) -> float:
    """Percentage of leads created within the interval that converted"""
    converted, total = await asyncio.gather(
        store.count_rows(
            cols.LEADS,
            eq=_lead_filters(lead_source, **{cols.STATUS: cols.LEAD_STATUS_CONVERTED}),
            **_created_between(interval),
        ),
        store.count_rows(
            cols.LEADS,
            eq=_lead_filters(lead_source),
            **_created_between(interval),
        ),
    )
    return (converted / total) * 100 if total > 0 else 0


async def get_time_to_conversion(
    store: RecordStore,
    interval: DateInterval,
    lead_source: Optional[str] = None,
) -> float:
    """Average days between creation and conversion of converted leads"""
    rows = await store.fetch_rows(
        cols.LEADS,
        columns=f"{cols.CREATED_AT},{cols.CONVERTED_AT}",
        eq=_lead_filters(lead_source, **{cols.STATUS: cols.LEAD_STATUS_CONVERTED}),
        **_created_between(interval),
    )

    tz = interval.start.tzinfo
    durations = []
    for row in rows:
        created = parse_timestamp(row.get(cols.CREATED_AT), tz)
        converted = parse_timestamp(row.get(cols.CONVERTED_AT), tz)
        if created is None or converted is None or converted < created:
            continue
        durations.append((converted - created).total_seconds() / SECONDS_PER_DAY)

    return sum(durations) / len(durations) if durations else 0


async def get_leads_by_source(
    store: RecordStore,
    interval: DateInterval,
    lead_source: Optional[str] = None,
) -> ChartData:
    rows = await store.fetch_rows(
        cols.LEADS,
        columns=cols.LEAD_SOURCE,
        eq=_lead_filters(lead_source),
        **_created_between(interval),
    )
    return build_breakdown(rows, cols.LEAD_SOURCE, sort_desc=True)


async def get_leads_by_status(
    store: RecordStore,
    interval: DateInterval,
    lead_source: Optional[str] = None,
) -> ChartData:
    rows = await store.fetch_rows(
        cols.LEADS,
        columns=cols.STATUS,
        eq=_lead_filters(lead_source),
        **_created_between(interval),
    )
    return build_breakdown(rows, cols.STATUS)


async def get_leads_trend(
    store: RecordStore,
    interval: DateInterval,
    granularity: Granularity,
    lead_source: Optional[str] = None,
) -> ChartData:
    rows = await store.fetch_rows(
        cols.LEADS,
        columns=cols.CREATED_AT,
        eq=_lead_filters(lead_source),
        **_created_between(interval),
    )
    return build_trend(rows, cols.CREATED_AT, interval.start, interval.end, granularity)


async def get_leads_analytics(
    filter_: AnalyticsFilter,
    store: RecordStore,
    resolver: DateRangeResolver,
) -> LeadsAnalytics:
    """
    Build lead analytics for the filter's period.

    All queries for the current and previous period run concurrently; any
    failing query fails the whole report.
    """
    pair, period = resolve_report_period(filter_, resolver)
    current, previous = pair.current, pair.previous
    source = filter_.lead_source

    (
        total_leads,
        prev_total_leads,
        leads_by_source,
        leads_by_status,
        conversion_rate,
        prev_conversion_rate,
        time_to_conversion,
        prev_time_to_conversion,
        leads_trend,
    ) = await asyncio.gather(
        get_total_leads(store, current, source),
        get_total_leads(store, previous, source),
        get_leads_by_source(store, current, source),
        get_leads_by_status(store, current, source),
        get_lead_conversion_rate(store, current, source),
        get_lead_conversion_rate(store, previous, source),
        get_time_to_conversion(store, current, source),
        get_time_to_conversion(store, previous, source),
        get_leads_trend(store, current, pair.granularity, source),
    )

    logger.info(
        "Leads analytics built",
        time_range=filter_.time_range.value,
        total_leads=total_leads,
        previous_total_leads=prev_total_leads,
    )

    return LeadsAnalytics(
        total_leads=build_metric_summary(
            total_leads,
            prev_total_leads,
            METRIC_LABELS[AnalyticsMetric.LEADS_COUNT],
            leads_trend.series,
        ),
        leads_by_source=leads_by_source,
        leads_by_status=leads_by_status,
        lead_conversion_rate=build_metric_summary(
            conversion_rate,
            prev_conversion_rate,
            METRIC_LABELS[AnalyticsMetric.LEADS_CONVERSION_RATE],
        ),
        time_to_conversion=build_metric_summary(
            time_to_conversion,
            prev_time_to_conversion,
            METRIC_LABELS[AnalyticsMetric.TIME_TO_CONVERSION],
        ),
        leads_trend=leads_trend,
        period=period,
    )
