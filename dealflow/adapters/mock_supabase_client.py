"""
In-memory Supabase client for running without a hosted project.
"""

import copy
import fnmatch
import json
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pendulum

from ..domain.exceptions import DataStoreError
from .query import MAYBE_SINGLE, SINGLE, Filter, QueryResult, TableQuery

ChangeCallback = Callable[[Dict[str, Any]], None]


class MockSupabaseClient:
    """
    Mock client that evaluates table queries against in-memory rows.

    Rows can be passed directly or loaded from a JSON file mapping table
    names to row lists. Supports the same filters, ordering, ranges and exact
    counts as the real client.
    """

    def __init__(
        self,
        tables: Optional[Dict[str, List[Dict[str, Any]]]] = None,
        data_file: Optional[Path] = None,
        user: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize the mock client.

        Args:
            tables: Table name -> list of rows
            data_file: Optional JSON file with the same shape as ``tables``
            user: Signed-in user returned by ``get_user``
        """
        self.tables: Dict[str, List[Dict[str, Any]]] = copy.deepcopy(tables) if tables else {}
        self.user = user
        self.executed: List[TableQuery] = []
        self._listeners: Dict[str, List[ChangeCallback]] = {}

        if data_file is not None:
            self._load_tables(data_file)

    def _load_tables(self, data_file: Path) -> None:
        with open(data_file, "r", encoding="utf-8") as f:
            for table, rows in json.load(f).items():
                self.tables.setdefault(table, []).extend(rows)

    @staticmethod
    def _matches(row: Dict[str, Any], item: Filter) -> bool:
        value = row.get(item.column)

        if item.operator == "eq":
            return value == item.value
        if item.operator == "ilike":
            return value is not None and fnmatch.fnmatch(
                str(value).lower(), str(item.value).lower().replace("%", "*")
            )
        if value is None:
            return False
        if item.operator == "gte":
            return value >= item.value
        if item.operator == "lte":
            return value <= item.value

        raise DataStoreError(f"Unsupported filter operator: {item.operator}")

    def execute(self, query: TableQuery) -> QueryResult:
        self.executed.append(query)

        rows = [
            row for row in self.tables.get(query.table, [])
            if all(self._matches(row, item) for item in query.filters)
        ]

        # Apply sort keys last-to-first so the first key wins; nulls last ascending, first descending.
        for column, ascending in reversed(query.ordering):
            rows.sort(
                key=lambda r: (r.get(column) is None, r.get(column) if r.get(column) is not None else ""),
                reverse=not ascending,
            )

        count = len(rows) if query.count_mode else None

        if query.range_start is not None:
            rows = rows[query.range_start:query.range_end + 1]

        rows = copy.deepcopy(rows)

        if query.cardinality == SINGLE:
            if len(rows) != 1:
                raise DataStoreError(
                    f"Expected exactly one row from {query.table}, got {len(rows)}", status_code=406
                )
            return QueryResult(data=rows[0], count=count)

        if query.cardinality == MAYBE_SINGLE:
            if len(rows) > 1:
                raise DataStoreError(f"Expected at most one row from {query.table}, got {len(rows)}")
            return QueryResult(data=rows[0] if rows else None, count=count)

        return QueryResult(data=rows, count=count)

    def insert(self, table: str, rows: Any) -> List[Dict[str, Any]]:
        batch = rows if isinstance(rows, list) else [rows]
        now = pendulum.now("UTC").to_iso8601_string()

        stored = []
        for row in batch:
            record = {"id": str(uuid.uuid4()), "created_at": now, "updated_at": now, **row}
            self.tables.setdefault(table, []).append(record)
            stored.append(copy.deepcopy(record))
            self._emit(table, "INSERT", new=record)
        return stored

    def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Dict[str, Any]]:
        updated = []
        for row in self.tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                old = copy.deepcopy(row)
                row.update(values)
                updated.append(copy.deepcopy(row))
                self._emit(table, "UPDATE", new=row, old=old)
        return updated

    def delete(self, table: str, match: Dict[str, Any]) -> None:
        kept = []
        for row in self.tables.get(table, []):
            if all(row.get(k) == v for k, v in match.items()):
                self._emit(table, "DELETE", old=row)
            else:
                kept.append(row)
        self.tables[table] = kept

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        """
        Call ``callback`` with a change payload after every write to ``table``.

        Payloads carry ``eventType``, ``table``, ``new`` and ``old`` like the
        hosted change feed. Returns a function that removes the callback.
        """
        listeners = self._listeners.setdefault(table, [])
        listeners.append(callback)

        def unsubscribe() -> None:
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe

    def _emit(self, table: str, event: str, new: Optional[Dict[str, Any]] = None,
              old: Optional[Dict[str, Any]] = None) -> None:
        payload = {
            "eventType": event,
            "table": table,
            "new": copy.deepcopy(new) if new else {},
            "old": copy.deepcopy(old) if old else {},
        }
        for callback in list(self._listeners.get(table, [])):
            callback(payload)

    def get_user(self) -> Optional[Dict[str, Any]]:
        return self.user

    def test_connection(self, table: str) -> Optional[int]:
        return len(self.tables.get(table, []))


class MockSupabaseAuthenticator:
    """
    Mock authenticator that bypasses Supabase sign-in.
    """

    def __init__(self, url: str = "mock", api_key: str = "mock", **kwargs):
        self.url = url
        self.api_key = api_key

    def get_access_token(self, force_refresh: bool = False) -> str:
        return "mock_access_token_12345"

    def sign_in(self, email: str, password: str) -> str:
        return self.get_access_token()

    def clear_cache(self) -> None:
        """Mock cache clear (does nothing)."""
        pass
