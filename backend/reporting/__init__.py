"""
Reporting Module - Period resolution and comparison analytics for the CRM
"""

from backend.reporting.time_range import (
    resolve_interval,
    resolve_previous_period,
    resolve_granularity,
    DateRangeResolver,
    DateInterval,
    ComparisonPair,
    Granularity,
    TimeRangeSelector,
    MissingRangeError,
)

__all__ = [
    'resolve_interval',
    'resolve_previous_period',
    'resolve_granularity',
    'DateRangeResolver',
    'DateInterval',
    'ComparisonPair',
    'Granularity',
    'TimeRangeSelector',
    'MissingRangeError',
]
