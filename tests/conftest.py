import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest
from dateutil.parser import isoparse

ROOT = Path(__file__).resolve().parents[1]

# Prefer this workspace over any installed copy
root_str = str(ROOT)
if root_str not in sys.path:
    sys.path.insert(0, root_str)

from backend.services.record_store import RecordStoreError  # noqa: E402


def _comparable(row_value: Any, bound: Any) -> Any:
    if isinstance(bound, datetime) and isinstance(row_value, str):
        return isoparse(row_value)
    return row_value


class FakeRecordStore:
    """In-memory record store applying the same filters as the Supabase gateway"""

    def __init__(self, tables: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.tables = tables or {}
        self.failing_tables = set()
        self.calls: List[Dict[str, Any]] = []

    def _matches(self, row, eq, gte, lte, lt) -> bool:
        for column, value in (eq or {}).items():
            if row.get(column) != value:
                return False
        checks = (
            (gte, lambda a, b: a >= b),
            (lte, lambda a, b: a <= b),
            (lt, lambda a, b: a < b),
        )
        for filters, compare in checks:
            for column, bound in (filters or {}).items():
                value = row.get(column)
                if value is None or not compare(_comparable(value, bound), bound):
                    return False
        return True

    def _select(self, table, operation, eq, gte, lte, lt):
        self.calls.append(
            {"table": table, "operation": operation, "eq": eq, "gte": gte, "lte": lte, "lt": lt}
        )
        if table in self.failing_tables:
            raise RecordStoreError(table, operation, RuntimeError("upstream failure"))
        return [
            row for row in self.tables.get(table, [])
            if self._matches(row, eq, gte, lte, lt)
        ]

    async def fetch_rows(self, table, columns="*", eq=None, gte=None, lte=None, lt=None):
        rows = self._select(table, "select", eq, gte, lte, lt)
        if columns == "*":
            return [dict(row) for row in rows]
        wanted = [c.strip() for c in columns.split(",")]
        return [{c: row.get(c) for c in wanted} for row in rows]

    async def count_rows(self, table, eq=None, gte=None, lte=None, lt=None):
        return len(self._select(table, "count", eq, gte, lte, lt))

    async def close(self):
        pass


@pytest.fixture
def fake_store():
    """Empty in-memory record store"""
    return FakeRecordStore()
