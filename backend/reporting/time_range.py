"""
Time Range Module - Resolve reporting periods for CRM analytics

This module provides:
- resolve_interval(selector, custom_from, custom_to) -> DateInterval
- resolve_previous_period(selector, start, end) -> DateInterval
- resolve_granularity(selector) -> Granularity

Calendar rules:
1. Weeks start on Monday; Sunday closes the week that began six days earlier
2. Open periods (today, this week/month/quarter/year) end at the end of today
3. The comparison period has the same length and ends where the current one starts
"""

from datetime import datetime, date, time, timedelta, tzinfo
from typing import Callable, Dict, Optional, Union
from enum import Enum
from dataclasses import dataclass
import pytz
from dateutil.relativedelta import relativedelta
import structlog

logger = structlog.get_logger(__name__)

# Returns the current aware datetime
Clock = Callable[[], datetime]

END_OF_DAY = time(23, 59, 59, 999000)


class TimeRangeSelector(str, Enum):
    """Predefined reporting periods"""
    TODAY = "TODAY"
    YESTERDAY = "YESTERDAY"
    THIS_WEEK = "THIS_WEEK"
    LAST_WEEK = "LAST_WEEK"
    THIS_MONTH = "THIS_MONTH"
    LAST_MONTH = "LAST_MONTH"
    THIS_QUARTER = "THIS_QUARTER"
    LAST_QUARTER = "LAST_QUARTER"
    THIS_YEAR = "THIS_YEAR"
    LAST_YEAR = "LAST_YEAR"
    CUSTOM = "CUSTOM"

    @classmethod
    def coerce(cls, value: Union["TimeRangeSelector", str, None]) -> Optional["TimeRangeSelector"]:
        """Return the matching selector, or None for unknown values"""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                return None
        return None


class Granularity(str, Enum):
    """Chart bucket size for values within an interval"""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


TIME_RANGE_LABELS: Dict[TimeRangeSelector, str] = {
    TimeRangeSelector.TODAY: "Today",
    TimeRangeSelector.YESTERDAY: "Yesterday",
    TimeRangeSelector.THIS_WEEK: "This Week",
    TimeRangeSelector.LAST_WEEK: "Last Week",
    TimeRangeSelector.THIS_MONTH: "This Month",
    TimeRangeSelector.LAST_MONTH: "Last Month",
    TimeRangeSelector.THIS_QUARTER: "This Quarter",
    TimeRangeSelector.LAST_QUARTER: "Last Quarter",
    TimeRangeSelector.THIS_YEAR: "This Year",
    TimeRangeSelector.LAST_YEAR: "Last Year",
    TimeRangeSelector.CUSTOM: "Custom Range",
}

GRANULARITY_BY_SELECTOR: Dict[TimeRangeSelector, Granularity] = {
    TimeRangeSelector.TODAY: Granularity.DAY,
    TimeRangeSelector.YESTERDAY: Granularity.DAY,
    TimeRangeSelector.THIS_WEEK: Granularity.DAY,
    TimeRangeSelector.LAST_WEEK: Granularity.DAY,
    TimeRangeSelector.THIS_MONTH: Granularity.WEEK,
    TimeRangeSelector.LAST_MONTH: Granularity.WEEK,
    TimeRangeSelector.THIS_QUARTER: Granularity.WEEK,
    TimeRangeSelector.LAST_QUARTER: Granularity.WEEK,
    TimeRangeSelector.THIS_YEAR: Granularity.MONTH,
    TimeRangeSelector.LAST_YEAR: Granularity.MONTH,
    TimeRangeSelector.CUSTOM: Granularity.MONTH,
}


class TimeRangeError(ValueError):
    """Base class for reporting period errors"""


class MissingRangeError(TimeRangeError):
    """Custom period requested without both bounds"""

    def __init__(self, message: str = "Custom date range requires both from and to dates"):
        super().__init__(message)


class InvalidRangeError(TimeRangeError):
    """Custom period whose end precedes its start"""

    def __init__(self, start: datetime, end: datetime):
        self.start = start
        self.end = end
        super().__init__(
            f"Custom date range end ({end.isoformat()}) is before its start ({start.isoformat()})"
        )


@dataclass(frozen=True)
class DateInterval:
    """Concrete query window"""
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return _instant(self.end) - _instant(self.start)

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary for serialization"""
        return {
            "from": self.start.isoformat(),
            "to": self.end.isoformat(),
        }


@dataclass(frozen=True)
class ComparisonPair:
    """Current period and the equal-length period right before it"""
    current: DateInterval
    previous: DateInterval
    granularity: Granularity

    def to_dict(self) -> Dict[str, object]:
        return {
            "current": self.current.to_dict(),
            "previous": self.previous.to_dict(),
            "granularity": self.granularity.value,
        }


def _instant(moment: datetime) -> datetime:
    """Normalize aware datetimes to UTC so subtraction is exact"""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(pytz.utc)


def _shift_back(moment: datetime, delta: timedelta) -> datetime:
    if moment.tzinfo is None:
        return moment - delta
    return (_instant(moment) - delta).astimezone(moment.tzinfo)


def system_clock(tz: Union[str, tzinfo]) -> Clock:
    """Clock reading the system time in the given timezone"""
    zone = pytz.timezone(tz) if isinstance(tz, str) else tz
    return lambda: datetime.now(zone)


class DateRangeResolver:
    """Resolve time range selectors into concrete date intervals"""

    def __init__(self, tz: str = "UTC", clock: Optional[Clock] = None):
        """Initialize resolver with timezone and an optional clock"""
        self.tz = pytz.timezone(tz) if isinstance(tz, str) else tz
        self.clock = clock or system_clock(self.tz)

    def now(self) -> datetime:
        """Get current datetime in configured timezone"""
        now = self.clock()
        if now.tzinfo is None:
            return self.tz.localize(now)
        return now.astimezone(self.tz)

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return self.tz.localize(moment)
        return moment

    def _today(self) -> date:
        return self.now().date()

    def _start_of(self, day: date) -> datetime:
        return self.tz.localize(datetime.combine(day, time.min))

    def _end_of(self, day: date) -> datetime:
        return self.tz.localize(datetime.combine(day, END_OF_DAY))

    def _days(self, first: date, last: date) -> DateInterval:
        return DateInterval(start=self._start_of(first), end=self._end_of(last))

    @staticmethod
    def _monday_of(day: date) -> date:
        # weekday() is 0 for Monday and 6 for Sunday
        return day - timedelta(days=day.weekday())

    @staticmethod
    def _quarter_start(day: date) -> date:
        return date(day.year, (day.month - 1) // 3 * 3 + 1, 1)

    def resolve_interval(
        self,
        selector: Union[TimeRangeSelector, str],
        custom_from: Optional[datetime] = None,
        custom_to: Optional[datetime] = None,
    ) -> DateInterval:
        """
        Resolve a selector into the interval reports should query.

        Args:
            selector: Predefined period, or CUSTOM
            custom_from: Start instant, required for CUSTOM only
            custom_to: End instant, required for CUSTOM only

        Returns:
            DateInterval anchored to local day boundaries

        Raises:
            MissingRangeError: CUSTOM without both bounds
            InvalidRangeError: CUSTOM whose end precedes its start
        """
        resolved = TimeRangeSelector.coerce(selector)
        today = self._today()

        if resolved is TimeRangeSelector.CUSTOM:
            if custom_from is None or custom_to is None:
                raise MissingRangeError()
            if (custom_from.tzinfo is None) != (custom_to.tzinfo is None):
                # A naive bound paired with an aware one is local time
                custom_from = self._localize(custom_from)
                custom_to = self._localize(custom_to)
            if _instant(custom_to) < _instant(custom_from):
                raise InvalidRangeError(custom_from, custom_to)
            return DateInterval(start=custom_from, end=custom_to)

        if resolved is TimeRangeSelector.TODAY:
            return self._days(today, today)

        if resolved is TimeRangeSelector.YESTERDAY:
            yesterday = today - timedelta(days=1)
            return self._days(yesterday, yesterday)

        if resolved is TimeRangeSelector.THIS_WEEK:
            return self._days(self._monday_of(today), today)

        if resolved is TimeRangeSelector.LAST_WEEK:
            last_monday = self._monday_of(today) - timedelta(days=7)
            return self._days(last_monday, last_monday + timedelta(days=6))

        if resolved is TimeRangeSelector.THIS_MONTH:
            return self._days(today.replace(day=1), today)

        if resolved is TimeRangeSelector.LAST_MONTH:
            end_date = today.replace(day=1) - timedelta(days=1)
            return self._days(end_date.replace(day=1), end_date)

        if resolved is TimeRangeSelector.THIS_QUARTER:
            return self._days(self._quarter_start(today), today)

        if resolved is TimeRangeSelector.LAST_QUARTER:
            # Q1 rolls back to October of the previous year
            start_date = self._quarter_start(today) - relativedelta(months=3)
            end_date = start_date + relativedelta(months=3) - timedelta(days=1)
            return self._days(start_date, end_date)

        if resolved is TimeRangeSelector.THIS_YEAR:
            return self._days(date(today.year, 1, 1), today)

        if resolved is TimeRangeSelector.LAST_YEAR:
            return self._days(date(today.year - 1, 1, 1), date(today.year - 1, 12, 31))

        logger.warning("Unrecognized time range selector, using today", selector=str(selector))
        return self._days(today, today)

    def resolve_previous_period(
        self,
        selector: Union[TimeRangeSelector, str],
        start: datetime,
        end: datetime,
    ) -> DateInterval:
        """Same-length interval ending exactly where the given one starts"""
        return resolve_previous_period(selector, start, end)

    def resolve_granularity(self, selector: Union[TimeRangeSelector, str]) -> Granularity:
        return resolve_granularity(selector)

    def resolve_comparison(
        self,
        selector: Union[TimeRangeSelector, str],
        custom_from: Optional[datetime] = None,
        custom_to: Optional[datetime] = None,
    ) -> ComparisonPair:
        """Resolve the current period together with its comparison period"""
        current = self.resolve_interval(selector, custom_from, custom_to)
        previous = resolve_previous_period(selector, current.start, current.end)
        granularity = resolve_granularity(selector)

        logger.info(
            "Time range resolved",
            selector=str(getattr(selector, "value", selector)),
            start=current.start.isoformat(),
            end=current.end.isoformat(),
            previous_start=previous.start.isoformat(),
            granularity=granularity.value,
        )
        return ComparisonPair(current=current, previous=previous, granularity=granularity)


def resolve_previous_period(
    selector: Union[TimeRangeSelector, str],
    start: datetime,
    end: datetime,
) -> DateInterval:
    """
    Derive the comparison period for an interval.

    The selector does not change the result: the interval is shifted back by
    its own duration, measured on absolute instants.
    """
    duration = _instant(end) - _instant(start)
    return DateInterval(
        start=_shift_back(start, duration),
        end=_shift_back(end, duration),
    )


def resolve_granularity(selector: Union[TimeRangeSelector, str]) -> Granularity:
    """Chart bucket size for a selector; unknown selectors chart by day"""
    resolved = TimeRangeSelector.coerce(selector)
    if resolved is None:
        return Granularity.DAY
    return GRANULARITY_BY_SELECTOR[resolved]


def resolve_interval(
    selector: Union[TimeRangeSelector, str],
    custom_from: Optional[datetime] = None,
    custom_to: Optional[datetime] = None,
    tz: str = "UTC",
    clock: Optional[Clock] = None,
) -> DateInterval:
    """
    Resolve a selector into a concrete interval.

    Args:
        selector: Predefined period, or CUSTOM
        custom_from: Start instant for CUSTOM
        custom_to: End instant for CUSTOM
        tz: Timezone string (default: UTC)
        clock: Optional clock overriding the system time

    Returns:
        DateInterval for the selector
    """
    return DateRangeResolver(tz, clock).resolve_interval(selector, custom_from, custom_to)


def bucket_start(moment: Union[datetime, date], granularity: Granularity) -> date:
    """Key of the chart bucket a moment falls into"""
    day = moment.date() if isinstance(moment, datetime) else moment
    if granularity == Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    if granularity == Granularity.MONTH:
        return day.replace(day=1)
    return day


def format_date_range(start: datetime, end: datetime) -> str:
    """Display label such as 'Mar 1, 2026 - Mar 15, 2026'"""
    start_str = f"{start.strftime('%b')} {start.day}, {start.year}"
    end_str = f"{end.strftime('%b')} {end.day}, {end.year}"
    if start_str == end_str:
        return start_str
    return f"{start_str} - {end_str}"
