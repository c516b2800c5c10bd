"""
Tests for the Supabase record store facade
"""

from datetime import datetime

import pytest
import pytz
from unittest.mock import MagicMock, patch

from backend.config.settings import clear_settings_cache
from backend.reporting.time_range import DateInterval
from backend.services.record_store import RecordStore, RecordStoreError
from backend.services.sales_analytics_service import get_total_revenue


def make_client(data=None, count=None, error=None):
    """Supabase client mock whose query builder chains back to itself"""
    client = MagicMock()
    query = MagicMock()
    client.table.return_value.select.return_value = query
    for method in ("eq", "gte", "lte", "lt", "order", "range"):
        getattr(query, method).return_value = query
    if error:
        query.execute.side_effect = error
    else:
        query.execute.return_value = MagicMock(data=data, count=count)
    return client, query


class TestFetchRows:

    @pytest.mark.asyncio
    async def test_returns_rows(self):
        client, _ = make_client(data=[{"id": 1}, {"id": 2}])
        store = RecordStore(client)

        rows = await store.fetch_rows("leads")

        assert rows == [{"id": 1}, {"id": 2}]
        client.table.assert_called_once_with("leads")
        client.table.return_value.select.assert_called_once_with("*")

    @pytest.mark.asyncio
    async def test_empty_response(self):
        client, _ = make_client(data=None)

        assert await RecordStore(client).fetch_rows("leads") == []

    @pytest.mark.asyncio
    async def test_filters_serialize_datetimes(self):
        client, query = make_client(data=[])
        start = pytz.utc.localize(datetime(2026, 10, 19))
        end = pytz.utc.localize(datetime(2026, 10, 21, 23, 59, 59, 999000))

        await RecordStore(client).fetch_rows(
            "invoices",
            columns="total",
            eq={"status": "PAID"},
            gte={"paidAt": start},
            lte={"paidAt": end},
        )

        query.eq.assert_called_once_with("status", "PAID")
        query.gte.assert_called_once_with("paidAt", "2026-10-19T00:00:00+00:00")
        query.lte.assert_called_once_with("paidAt", "2026-10-21T23:59:59.999000+00:00")
        query.lt.assert_not_called()


def make_paging_client(rows, cap=1000):
    """Client mock that honours .range() and returns at most cap rows per response"""
    client, query = make_client()
    window = {}

    def select_range(start, end):
        window["bounds"] = (start, end)
        return query

    def execute():
        start, end = window.get("bounds", (0, len(rows) - 1))
        end = min(end, start + cap - 1)
        return MagicMock(data=rows[start:end + 1], count=None)

    query.range.side_effect = select_range
    query.execute.side_effect = execute
    return client, query


class TestPaging:

    @pytest.mark.asyncio
    async def test_fetches_every_page(self):
        rows = [{"id": i} for i in range(2500)]
        client, query = make_paging_client(rows)

        fetched = await RecordStore(client).fetch_rows("invoices")

        assert fetched == rows
        assert [c.args for c in query.range.call_args_list] == [(0, 999), (1000, 1999), (2000, 2999)]
        query.order.assert_called_with("id")

    @pytest.mark.asyncio
    async def test_full_last_page_needs_one_more_request(self):
        rows = [{"id": i} for i in range(2000)]
        client, query = make_paging_client(rows)

        assert len(await RecordStore(client).fetch_rows("orders")) == 2000
        assert query.execute.call_count == 3

    @pytest.mark.asyncio
    async def test_revenue_is_not_truncated(self):
        rows = [{"id": i, "total": 1} for i in range(2500)]
        client, _ = make_paging_client(rows)
        interval = DateInterval(
            start=pytz.utc.localize(datetime(2026, 10, 1)),
            end=pytz.utc.localize(datetime(2026, 10, 31, 23, 59, 59, 999000)),
        )

        assert await get_total_revenue(RecordStore(client), interval) == 2500


class TestCountRows:

    @pytest.mark.asyncio
    async def test_uses_exact_count(self):
        client, _ = make_client(data=[{"id": 1}], count=42)

        assert await RecordStore(client).count_rows("customers") == 42
        client.table.return_value.select.assert_called_once_with("id", count="exact")

    @pytest.mark.asyncio
    async def test_falls_back_to_row_count(self):
        client, _ = make_client(data=[{"id": 1}, {"id": 2}], count=None)

        assert await RecordStore(client).count_rows("customers") == 2


class TestErrors:

    @pytest.mark.asyncio
    async def test_query_failure_is_wrapped(self):
        client, _ = make_client(error=ConnectionError("connection refused"))

        with pytest.raises(RecordStoreError) as exc_info:
            await RecordStore(client).count_rows("orders")

        assert exc_info.value.table == "orders"
        assert exc_info.value.operation == "count"
        assert isinstance(exc_info.value.cause, ConnectionError)

    @pytest.mark.asyncio
    async def test_uninitialized_store(self):
        with pytest.raises(RecordStoreError) as exc_info:
            await RecordStore().fetch_rows("leads")

        assert "not initialized" in str(exc_info.value.cause)

    @pytest.mark.asyncio
    async def test_close_releases_client(self):
        client, _ = make_client(data=[])
        store = RecordStore(client)

        await store.close()

        assert store.client is None


class TestInitialize:

    def setup_method(self):
        clear_settings_cache()

    def teardown_method(self):
        clear_settings_cache()

    @pytest.mark.asyncio
    async def test_requires_credentials(self, monkeypatch):
        monkeypatch.delenv("SUPABASE_URL", raising=False)
        monkeypatch.delenv("SUPABASE_KEY", raising=False)

        with pytest.raises(RuntimeError):
            await RecordStore().initialize()

    @pytest.mark.asyncio
    async def test_creates_client_from_settings(self, monkeypatch):
        monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
        monkeypatch.setenv("SUPABASE_KEY", "test-key")

        with patch("backend.services.record_store.create_client") as create_client:
            store = RecordStore()
            await store.initialize()

        create_client.assert_called_once_with("https://example.supabase.co", "test-key")
        assert store.client is create_client.return_value
