"""
Report period helpers shared by the analytics services
"""

from collections import OrderedDict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pytz
from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from backend.models.schemas import AnalyticsFilter, ChartData, DataPoint, ReportPeriod, TimeSeriesDataPoint
from backend.reporting.time_range import (
    ComparisonPair,
    DateRangeResolver,
    Granularity,
    TIME_RANGE_LABELS,
    bucket_start,
    format_date_range,
)
from backend.services.column_constants import UNKNOWN_LABEL


def resolve_report_period(
    filter_: AnalyticsFilter,
    resolver: DateRangeResolver,
) -> Tuple[ComparisonPair, ReportPeriod]:
    """Resolve the current and comparison periods for a filter"""
    pair = resolver.resolve_comparison(filter_.time_range, filter_.from_, filter_.to)
    period = ReportPeriod(
        time_range=filter_.time_range,
        label=TIME_RANGE_LABELS[filter_.time_range],
        granularity=pair.granularity,
        from_=pair.current.start,
        to=pair.current.end,
        previous_from=pair.previous.start,
        previous_to=pair.previous.end,
        display=format_date_range(pair.current.start, pair.current.end),
    )
    return pair, period


def iter_buckets(start: date, end: date, granularity: Granularity) -> Iterable[date]:
    """Every bucket key between two dates, inclusive"""
    step = {
        Granularity.DAY: relativedelta(days=1),
        Granularity.WEEK: relativedelta(weeks=1),
        Granularity.MONTH: relativedelta(months=1),
    }[granularity]
    current = bucket_start(start, granularity)
    while current <= end:
        yield current
        current = current + step


def parse_timestamp(value: Any, tz: pytz.BaseTzInfo) -> Optional[datetime]:
    """Record store timestamps arrive as ISO strings; naive ones are UTC"""
    if value is None or value == "":
        return None
    moment = value if isinstance(value, datetime) else isoparse(str(value))
    if moment.tzinfo is None:
        moment = pytz.utc.localize(moment)
    return moment.astimezone(tz)


def build_trend(
    rows: List[Dict[str, Any]],
    timestamp_column: str,
    start: datetime,
    end: datetime,
    granularity: Granularity,
    value_column: Optional[str] = None,
) -> ChartData:
    """
    Bucket rows into a continuous time series.

    Rows are counted, or their value_column summed when given. Buckets with
    no rows are kept with a zero value.
    """
    tz = start.tzinfo or pytz.utc
    buckets: "OrderedDict[date, float]" = OrderedDict(
        (key, 0.0) for key in iter_buckets(start.date(), end.date(), granularity)
    )

    for row in rows:
        moment = parse_timestamp(row.get(timestamp_column), tz)
        if moment is None:
            continue
        key = bucket_start(moment, granularity)
        if key not in buckets:
            continue
        buckets[key] += float(row.get(value_column) or 0) if value_column else 1

    series = [
        TimeSeriesDataPoint(date=key, value=value, label=key.isoformat())
        for key, value in buckets.items()
    ]
    total = sum(point.value for point in series)
    average = total / len(series) if series else 0
    return ChartData(series=series, total=total, average=average)


def build_breakdown(
    rows: List[Dict[str, Any]],
    column: str,
    value_column: Optional[str] = None,
    sort_desc: bool = False,
) -> ChartData:
    """Group rows by a column; empty values are reported as Unknown"""
    totals: Dict[str, float] = {}
    for row in rows:
        label = row.get(column) or UNKNOWN_LABEL
        increment = float(row.get(value_column) or 0) if value_column else 1
        totals[str(label)] = totals.get(str(label), 0) + increment

    series = [DataPoint(label=label, value=value) for label, value in totals.items()]
    if sort_desc:
        series.sort(key=lambda point: point.value, reverse=True)
    return ChartData(series=series, total=sum(point.value for point in series))
