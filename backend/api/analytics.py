"""Analytics API endpoints"""

from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request
from pydantic import ValidationError
import structlog

from backend.config.settings import get_settings
from backend.models.schemas import AnalyticsFilter, ApiResponse
from backend.reporting.time_range import (
    DateRangeResolver,
    InvalidRangeError,
    MissingRangeError,
    TimeRangeError,
    TimeRangeSelector,
)
from backend.services.dashboard_service import get_dashboard_summary
from backend.services.leads_analytics_service import get_leads_analytics
from backend.services.record_store import RecordStore, RecordStoreError
from backend.services.report_periods import resolve_report_period
from backend.services.sales_analytics_service import get_sales_analytics
from backend.utils.errors import ErrorCode, raise_record_store_error, raise_validation_error

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_analytics_filter(
    time_range: Optional[TimeRangeSelector] = Query(None, description="Reporting period"),
    from_: Optional[datetime] = Query(None, alias="from", description="Start of a CUSTOM period"),
    to: Optional[datetime] = Query(None, description="End of a CUSTOM period"),
    lead_source: Optional[str] = Query(None, max_length=100),
) -> AnalyticsFilter:
    """Validate query parameters into an AnalyticsFilter"""
    settings = get_settings()
    try:
        filter_ = AnalyticsFilter(
            time_range=time_range or settings.default_time_range,
            from_=from_,
            to=to,
            lead_source=lead_source,
        )
    except ValidationError as e:
        first = e.errors()[0]
        message = str(first.get("msg", "Invalid analytics filter")).removeprefix("Value error, ")
        raise_validation_error(message)
    return filter_.localized(settings.timezone)


def get_resolver() -> DateRangeResolver:
    return DateRangeResolver(tz=get_settings().timezone)


def get_record_store(request: Request) -> RecordStore:
    store = getattr(request.app.state, "record_store", None)
    if store is None:
        raise_record_store_error("report", RuntimeError("Record store is not initialized"))
    return store


def _raise_time_range_error(exc: TimeRangeError) -> None:
    if isinstance(exc, MissingRangeError):
        code = ErrorCode.MISSING_RANGE
    elif isinstance(exc, InvalidRangeError):
        code = ErrorCode.INVALID_RANGE
    else:
        code = ErrorCode.VALIDATION_ERROR
    raise_validation_error(str(exc), field="from", code=code)


def _envelope(model) -> Dict[str, Any]:
    return ApiResponse(data=model.model_dump(mode="json", by_alias=True)).model_dump()


@router.get("/time-range")
async def get_time_range(
    filter_: AnalyticsFilter = Depends(get_analytics_filter),
    resolver: DateRangeResolver = Depends(get_resolver),
):
    """Resolve the current and comparison periods without querying data"""
    try:
        _, period = resolve_report_period(filter_, resolver)
    except TimeRangeError as e:
        _raise_time_range_error(e)
    return _envelope(period)


@router.get("/dashboard")
async def get_dashboard(
    filter_: AnalyticsFilter = Depends(get_analytics_filter),
    resolver: DateRangeResolver = Depends(get_resolver),
    store: RecordStore = Depends(get_record_store),
):
    """Headline metrics for the period, compared with the previous period"""
    try:
        summary = await get_dashboard_summary(filter_, store, resolver)
    except TimeRangeError as e:
        _raise_time_range_error(e)
    except RecordStoreError as e:
        raise_record_store_error("dashboard summary", e)
    return _envelope(summary)


@router.get("/leads")
async def get_leads(
    filter_: AnalyticsFilter = Depends(get_analytics_filter),
    resolver: DateRangeResolver = Depends(get_resolver),
    store: RecordStore = Depends(get_record_store),
):
    """Lead funnel analytics for the period"""
    try:
        analytics = await get_leads_analytics(filter_, store, resolver)
    except TimeRangeError as e:
        _raise_time_range_error(e)
    except RecordStoreError as e:
        raise_record_store_error("leads analytics", e)
    return _envelope(analytics)


@router.get("/sales")
async def get_sales(
    filter_: AnalyticsFilter = Depends(get_analytics_filter),
    resolver: DateRangeResolver = Depends(get_resolver),
    store: RecordStore = Depends(get_record_store),
):
    """Revenue and order analytics for the period"""
    try:
        analytics = await get_sales_analytics(filter_, store, resolver)
    except TimeRangeError as e:
        _raise_time_range_error(e)
    except RecordStoreError as e:
        raise_record_store_error("sales analytics", e)
    return _envelope(analytics)
