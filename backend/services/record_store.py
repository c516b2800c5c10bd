"""
Record Store Service - Read-only access to the hosted CRM tables (Supabase)
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from supabase import Client, create_client
import structlog

from backend.config.settings import get_settings
from backend.services import column_constants as cols

logger = structlog.get_logger(__name__)

Filters = Optional[Dict[str, Any]]

# Hosted Supabase returns at most this many rows per response by default
PAGE_SIZE = 1000


class RecordStoreError(Exception):
    """Raised when a query against the record store fails"""

    def __init__(self, table: str, operation: str, cause: Optional[Exception] = None):
        self.table = table
        self.operation = operation
        self.cause = cause
        super().__init__(f"Record store {operation} on '{table}' failed")


def _serialize(value: Any) -> Any:
    """Datetime bounds travel as ISO 8601 strings"""
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class RecordStore:
    """
    Async facade over the Supabase table query builder.

    Every call runs the blocking client in a worker thread so that reports
    can fan out several queries concurrently.
    """

    def __init__(self, client: Optional[Client] = None):
        self.client = client

    async def initialize(self) -> None:
        """Create the Supabase client from settings"""
        if self.client is not None:
            return
        settings = get_settings()
        if not settings.supabase_url or not settings.supabase_key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_KEY must be set")
        logger.info("Initializing record store client", url=settings.supabase_url)
        self.client = create_client(settings.supabase_url, settings.supabase_key)

    async def close(self) -> None:
        self.client = None

    def _build_query(
        self,
        table: str,
        columns: str,
        count: Optional[str],
        eq: Filters,
        gte: Filters,
        lte: Filters,
        lt: Filters,
        page: Optional[Tuple[int, int]] = None,
    ):
        if self.client is None:
            raise RuntimeError("Record store is not initialized")
        if count:
            query = self.client.table(table).select(columns, count=count)
        else:
            query = self.client.table(table).select(columns)
        for column, value in (eq or {}).items():
            query = query.eq(column, _serialize(value))
        for column, value in (gte or {}).items():
            query = query.gte(column, _serialize(value))
        for column, value in (lte or {}).items():
            query = query.lte(column, _serialize(value))
        for column, value in (lt or {}).items():
            query = query.lt(column, _serialize(value))
        if page is not None:
            # Stable order so consecutive pages neither skip nor repeat rows
            query = query.order(cols.ID).range(*page)
        return query

    async def _execute(self, table: str, operation: str, query_kwargs: Dict[str, Any]):
        try:
            query = self._build_query(table, **query_kwargs)
            return await asyncio.to_thread(query.execute)
        except Exception as e:
            logger.error(
                "Record store query failed",
                table=table,
                operation=operation,
                error=str(e),
            )
            raise RecordStoreError(table, operation, e) from e

    async def fetch_rows(
        self,
        table: str,
        columns: str = "*",
        eq: Filters = None,
        gte: Filters = None,
        lte: Filters = None,
        lt: Filters = None,
    ) -> List[Dict[str, Any]]:
        """
        Fetch every matching row, one page of PAGE_SIZE rows at a time.

        Args:
            table: Table name
            columns: Comma-separated column list
            eq: Column equality filters
            gte: Inclusive lower bounds
            lte: Inclusive upper bounds
            lt: Exclusive upper bounds

        Returns:
            List of row dictionaries
        """
        rows: List[Dict[str, Any]] = []
        offset = 0
        while True:
            response = await self._execute(
                table,
                "select",
                dict(
                    columns=columns,
                    count=None,
                    eq=eq,
                    gte=gte,
                    lte=lte,
                    lt=lt,
                    page=(offset, offset + PAGE_SIZE - 1),
                ),
            )
            batch = response.data or []
            rows.extend(batch)
            # A short page is the last one
            if len(batch) < PAGE_SIZE:
                return rows
            offset += PAGE_SIZE

    async def count_rows(
        self,
        table: str,
        eq: Filters = None,
        gte: Filters = None,
        lte: Filters = None,
        lt: Filters = None,
    ) -> int:
        """Exact number of matching rows"""
        response = await self._execute(
            table,
            "count",
            dict(columns="id", count="exact", eq=eq, gte=gte, lte=lte, lt=lt),
        )
        if response.count is not None:
            return response.count
        return len(response.data or [])
