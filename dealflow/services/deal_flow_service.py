"""
Application services for reading and writing daily deal flow records.

The service builds table queries, applies the signed-in user's center scope
and hands date-set fetches to the chunked range fetcher. Metrics and report
rows are computed by the domain layer; the client dependency is a simple
protocol so tests can plug in the mock client.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from pendulum import Date

from ..adapters.query import QueryResult, TableQuery
from ..domain.exceptions import DataStoreError
from ..domain.metrics import (
    DailyDealFlowMetrics,
    DailyRates,
    StatResult,
    build_stats_from_metrics,
    calculate_daily_rates,
    calculate_metrics_from_data,
    calculate_metrics_with_comparison,
    get_default_stats,
    zero_changes,
)
from ..domain.models import ChunkFetchResult, DateRange, RangeQuery, WorkingDayPolicy
from ..domain.records import DEAL_FLOW_TABLE, DailyDealFlowInsert, DealFlowFilters
from ..domain.working_days import (
    DEFAULT_POLICY,
    DEFAULT_TIMEZONE,
    DateLike,
    format_business_date,
    last_n_working_days,
    previous_comparison_window,
    previous_period_range,
    to_business_date,
    today,
    working_days_between,
)
from .access_role import AccessRole, AccessRoleResolver
from .chunked_fetcher import DEFAULT_PAGE_SIZE, fetch_by_contiguous_ranges

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 1000

Record = Dict[str, Any]

ChangeCallback = Callable[[Record], None]


class DataStoreClientProtocol(Protocol):
    """Protocol describing the data store client behaviour needed by the service."""

    def execute(self, query: TableQuery) -> QueryResult:
        """Run a select query."""

    def insert(self, table: str, rows: Any) -> List[Record]:
        """Insert rows and return what was stored."""

    def update(self, table: str, values: Dict[str, Any], match: Dict[str, Any]) -> List[Record]:
        """Update matching rows and return them."""

    def delete(self, table: str, match: Dict[str, Any]) -> None:
        """Delete matching rows."""

    def get_user(self) -> Optional[Dict[str, Any]]:
        """Return the signed-in user, if any."""

    def subscribe(self, table: str, callback: ChangeCallback) -> Callable[[], None]:
        """Register a change callback and return the function that removes it."""


@dataclass(frozen=True)
class WorkingDayComparison:
    """Metrics for a run of working days against the run just before it."""
    current_dates: List[Date]
    previous_dates: List[Date]
    metrics: DailyDealFlowMetrics
    changes: Dict[str, int]
    stats: List[StatResult]


@dataclass(frozen=True)
class WeeklyRecords:
    """Rows of one report week and of its comparison window."""
    this_week_dates: List[Date]
    last_week_dates: List[Date]
    this_week: List[Record]
    last_week: List[Record]


class DealFlowService:
    """
    Queries and mutations on the ``daily_deal_flow`` table.

    Center users only ever see rows of their own lead vendor, whatever
    filters they pass.
    """

    def __init__(
        self,
        client: DataStoreClientProtocol,
        access: Optional[AccessRoleResolver] = None,
        timezone: str = DEFAULT_TIMEZONE,
        policy: WorkingDayPolicy = DEFAULT_POLICY,
        page_size: int = DEFAULT_PAGE_SIZE,
        list_limit: int = DEFAULT_LIST_LIMIT,
    ) -> None:
        self._client = client
        self._access = access or AccessRoleResolver(client)
        self._timezone = timezone
        self._policy = policy
        self._page_size = page_size
        self._list_limit = list_limit

    @property
    def timezone(self) -> str:
        return self._timezone

    @property
    def policy(self) -> WorkingDayPolicy:
        return self._policy

    async def _execute(self, query: TableQuery) -> QueryResult:
        return await asyncio.to_thread(self._client.execute, query)

    async def _build_listing_query(self, filters: DealFlowFilters) -> TableQuery:
        limit = filters.limit or self._list_limit
        offset = filters.offset or 0

        role = await self._access.ensure_resolved()

        query = (
            TableQuery(DEAL_FLOW_TABLE)
            .select("*", count="exact")
            .order("created_at", ascending=False)
            .range(offset, offset + limit - 1)
        )

        if role is AccessRole.CENTER and self._access.lead_vendor:
            query.eq("lead_vendor", self._access.lead_vendor)

        for column, value in filters.equality_filters().items():
            query.eq(column, value)

        if filters.insured_name:
            query.ilike("insured_name", f"%{filters.insured_name}%")

        if filters.date:
            query.eq("date", filters.date)
        if filters.date_from:
            query.gte("date", filters.date_from)
        if filters.date_to:
            query.lte("date", filters.date_to)

        return query

    async def fetch_all(self, filters: Optional[DealFlowFilters] = None) -> ChunkFetchResult[Record]:
        """
        Fetch one page of deal flow rows, newest first.

        Store failures are logged and reported in the result instead of
        raised, with empty data and a zero count.
        """
        filters = filters or DealFlowFilters()
        query = await self._build_listing_query(filters)

        try:
            result = await self._execute(query)
        except DataStoreError as exc:
            logger.error("Error fetching deal flow rows: %s", exc)
            return ChunkFetchResult(data=[], error=exc, count=0)

        data = result.data or []
        logger.debug("Fetched %d records (total count %s)", len(data), result.count)
        return ChunkFetchResult(data=data, error=None, count=result.count or 0)

    async def fetch_range(
        self,
        range_query: RangeQuery,
        filters: Optional[DealFlowFilters] = None,
    ) -> ChunkFetchResult[Record]:
        """Fetch the rows of one contiguous date range."""
        filters = (filters or DealFlowFilters()).with_bounds(
            range_query.date_from,
            range_query.date_to,
            limit=range_query.limit,
            offset=range_query.offset,
        )
        return await self.fetch_all(filters)

    async def fetch_all_by_working_dates(
        self,
        dates: Sequence[Date],
        filters: Optional[DealFlowFilters] = None,
    ) -> ChunkFetchResult[Record]:
        """
        Fetch every row dated on one of ``dates``.

        The dates are queried one contiguous range at a time; the first range
        that fails makes the whole result empty, carrying that error.
        """
        outcome = await fetch_by_contiguous_ranges(
            dates,
            lambda range_query: self.fetch_range(range_query, filters),
            page_size=self._page_size,
            timezone=self._timezone,
        )

        if outcome.error is not None or outcome.data is None:
            return ChunkFetchResult(data=[], error=outcome.error, count=0)

        return ChunkFetchResult(data=outcome.data, error=None, count=len(outcome.data))

    async def fetch_by_id(self, entry_id: str) -> Record:
        """
        Fetch one row by id.

        Raises:
            DataStoreError: If no row (or more than one) has the id
        """
        query = TableQuery(DEAL_FLOW_TABLE).select("*").eq("id", entry_id).single()
        result = await self._execute(query)
        return result.data

    async def create(self, entry: DailyDealFlowInsert) -> Record:
        rows = await asyncio.to_thread(self._client.insert, DEAL_FLOW_TABLE, entry.to_row())
        return rows[0]

    async def create_many(self, entries: Sequence[DailyDealFlowInsert]) -> List[Record]:
        if not entries:
            return []
        rows = [entry.to_row() for entry in entries]
        return await asyncio.to_thread(self._client.insert, DEAL_FLOW_TABLE, rows)

    async def update(self, entry_id: str, updates: Dict[str, Any]) -> Record:
        """
        Update one row and return it.

        Raises:
            DataStoreError: If no row has the id
        """
        rows = await asyncio.to_thread(
            self._client.update, DEAL_FLOW_TABLE, updates, {"id": entry_id}
        )
        if len(rows) != 1:
            raise DataStoreError(f"Expected one updated row for id {entry_id}, got {len(rows)}")
        return rows[0]

    async def remove(self, entry_id: str) -> None:
        await asyncio.to_thread(self._client.delete, DEAL_FLOW_TABLE, {"id": entry_id})

    def subscribe(self, callback: ChangeCallback) -> Callable[[], None]:
        """
        Pass ``callback`` to the client's change feed for the deal flow table.

        Payloads are forwarded untouched, without center scoping.

        Raises:
            DataStoreError: If the client has no change feed
        """
        return self._client.subscribe(DEAL_FLOW_TABLE, callback)

    async def get_metrics(self, date: Optional[DateLike] = None) -> DailyRates:
        """
        Compute the daily rates for one business date (today by default).

        Raises:
            DataStoreError: If the rows cannot be fetched
        """
        target = format_business_date(date, self._timezone) if date else today(self._timezone).to_date_string()

        filters = DealFlowFilters(date=target, limit=self._page_size)
        query = await self._build_listing_query(filters)
        result = await self._execute(query)
        return calculate_daily_rates(result.data or [])

    async def fetch_analytics_stats(self, period: DateRange) -> List[StatResult]:
        """
        Dashboard tiles for ``period`` compared with the period before it.

        Falls back to zeroed tiles when the current period cannot be loaded,
        and to zero variations when only the previous period fails.
        """
        previous = previous_period_range(period)

        current_result = await self.fetch_all(
            DealFlowFilters().with_bounds(*period.as_query_bounds(), limit=self._page_size, offset=0)
        )
        if current_result.error is not None:
            logger.warning("Error fetching current period analytics data: %s", current_result.error)
            return get_default_stats()

        previous_result = await self.fetch_all(
            DealFlowFilters().with_bounds(*previous.as_query_bounds(), limit=self._page_size, offset=0)
        )
        if previous_result.error is not None:
            logger.warning("Error fetching previous period analytics data: %s", previous_result.error)
            metrics = calculate_metrics_from_data(current_result.data, current_result.count)
            return build_stats_from_metrics(metrics, zero_changes())

        metrics, changes = calculate_metrics_with_comparison(
            current_result.data,
            current_result.count,
            previous_result.data,
            previous_result.count,
        )
        return build_stats_from_metrics(metrics, changes)

    async def _fetch_dates_or_raise(
        self,
        dates: Sequence[Date],
        filters: Optional[DealFlowFilters] = None,
    ) -> List[Record]:
        result = await self.fetch_all_by_working_dates(dates, filters)
        if result.error is not None:
            if isinstance(result.error, Exception):
                raise result.error
            raise DataStoreError(str(result.error))
        return result.data or []

    async def fetch_working_day_comparison(
        self,
        end: Optional[DateLike] = None,
        n: int = 5,
        filters: Optional[DealFlowFilters] = None,
    ) -> WorkingDayComparison:
        """
        Compare the last ``n`` working days up to ``end`` with the ``n``
        working days before them.
        """
        end_day = to_business_date(end, self._timezone) if end else today(self._timezone)
        current_dates = last_n_working_days(end_day, n, self._policy, self._timezone)
        previous_dates = previous_comparison_window(current_dates, self._policy, self._timezone)

        current_rows = await self._fetch_dates_or_raise(current_dates, filters)
        previous_rows = await self._fetch_dates_or_raise(previous_dates, filters)

        metrics, changes = calculate_metrics_with_comparison(
            current_rows, len(current_rows), previous_rows, len(previous_rows)
        )
        return WorkingDayComparison(
            current_dates=current_dates,
            previous_dates=previous_dates,
            metrics=metrics,
            changes=changes,
            stats=build_stats_from_metrics(metrics, changes),
        )

    async def fetch_weekly_records(self, week_of: Optional[DateLike] = None) -> WeeklyRecords:
        """
        Fetch the rows of the working days in the week containing ``week_of``
        and of the same number of working days before it.
        """
        anchor = to_business_date(week_of, self._timezone) if week_of else today(self._timezone)
        week_start = anchor.start_of("week")
        week_end = anchor.end_of("week")

        this_week_dates = working_days_between(week_start, week_end, self._policy, self._timezone)
        last_week_dates = previous_comparison_window(this_week_dates, self._policy, self._timezone)

        this_week = await self._fetch_dates_or_raise(this_week_dates)
        last_week = await self._fetch_dates_or_raise(last_week_dates)

        return WeeklyRecords(
            this_week_dates=this_week_dates,
            last_week_dates=last_week_dates,
            this_week=this_week,
            last_week=last_week,
        )
