"""
Fluent table query builder for the Supabase REST (PostgREST) interface.

A ``TableQuery`` only describes a request; a client executes it. The real
client turns it into query-string filters and headers, the mock client
evaluates it against in-memory rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

SINGLE = "single"
MAYBE_SINGLE = "maybe_single"


@dataclass(frozen=True)
class Filter:
    column: str
    operator: str  # eq, ilike, gte, lte
    value: Any


@dataclass(frozen=True)
class QueryResult:
    """Rows (or one row for single-row queries) and the exact count if requested."""
    data: Any
    count: Optional[int] = None


def encode_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


class TableQuery:
    """
    Describe a select against one table.

    Example:
        TableQuery("daily_deal_flow").select("*", count="exact")
            .eq("status", "Pending Approval")
            .gte("date", "2024-01-08").lte("date", "2024-01-13")
            .order("created_at", ascending=False)
            .range(0, 999)
    """

    def __init__(self, table: str):
        self.table = table
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.filters: List[Filter] = []
        self.ordering: List[Tuple[str, bool]] = []
        self.range_start: Optional[int] = None
        self.range_end: Optional[int] = None
        self.cardinality: Optional[str] = None

    def select(self, columns: str = "*", count: Optional[str] = None) -> "TableQuery":
        self.columns = columns
        self.count_mode = count
        return self

    def _add(self, column: str, operator: str, value: Any) -> "TableQuery":
        self.filters.append(Filter(column=column, operator=operator, value=value))
        return self

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "eq", value)

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        """Case-insensitive match; ``%`` is the wildcard."""
        return self._add(column, "ilike", pattern)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "gte", value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._add(column, "lte", value)

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        self.ordering.append((column, ascending))
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        """Restrict to rows ``start`` through ``end``, both inclusive."""
        if start < 0 or end < start:
            raise ValueError(f"Invalid row range {start}-{end}")
        self.range_start = start
        self.range_end = end
        return self

    def single(self) -> "TableQuery":
        """Expect exactly one row."""
        self.cardinality = SINGLE
        return self

    def maybe_single(self) -> "TableQuery":
        """Expect zero or one row."""
        self.cardinality = MAYBE_SINGLE
        return self

    def to_params(self) -> List[Tuple[str, str]]:
        """Render PostgREST query-string pairs (repeated keys allowed)."""
        params: List[Tuple[str, str]] = [("select", self.columns)]

        for item in self.filters:
            value = encode_value(item.value)
            if item.operator == "ilike":
                value = value.replace("%", "*")
            params.append((item.column, f"{item.operator}.{value}"))

        if self.ordering:
            params.append((
                "order",
                ",".join(
                    f"{column}.{'asc' if ascending else 'desc'}"
                    for column, ascending in self.ordering
                ),
            ))

        return params

    def range_header(self) -> Optional[str]:
        if self.range_start is None:
            return None
        return f"{self.range_start}-{self.range_end}"

    def __repr__(self) -> str:
        return f"TableQuery({self.table!r}, params={self.to_params()!r}, range={self.range_header()!r})"


def match_params(match: dict) -> List[Tuple[str, str]]:
    """Equality filters used to target rows for update and delete."""
    return [(column, f"eq.{encode_value(value)}") for column, value in match.items()]
