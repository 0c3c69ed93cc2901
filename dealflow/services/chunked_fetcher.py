"""
Fetch records for a sparse set of dates, one contiguous range at a time.

The hosted data store caps how many rows one request may return, so a date
set is split into contiguous ranges and each range is queried separately.
Ranges are fetched strictly in calendar order, one request in flight at a
time, and the first failing range aborts the whole operation: callers get
every requested record or a clear error, never a silently partial list.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, List, TypeVar


from ..domain.date_ranges import split_into_contiguous_ranges
from ..domain.exceptions import TruncatedChunkError
from ..domain.models import ChunkFetchResult, FetchOutcome, RangeQuery
from ..domain.working_days import DEFAULT_TIMEZONE, DateLike, format_business_date

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 10000

RangeFetcher = Callable[[RangeQuery], Awaitable[ChunkFetchResult[T]]]


async def fetch_by_contiguous_ranges(
    dates: Iterable[DateLike],
    fetch_range: RangeFetcher[T],
    page_size: int = DEFAULT_PAGE_SIZE,
    timezone: str = DEFAULT_TIMEZONE,
) -> FetchOutcome[T]:
    """
    Fetch and concatenate the records of every contiguous range in ``dates``.

    Args:
        dates: Civil dates of interest, in any order, duplicates allowed
        fetch_range: Async fetcher called once per range with inclusive bounds
        page_size: Rows requested per range; a range must fit in one page
        timezone: Business timezone used to read instants and format the range bounds

    Returns:
        ``FetchOutcome(data=records, error=None)`` when every range succeeds,
        ``FetchOutcome(data=None, error=err)`` for the first range that fails.
        A range whose reported count exceeds ``page_size`` fails with
        ``TruncatedChunkError``.
    """
    ranges = split_into_contiguous_ranges(dates, timezone)
    records: List[T] = []

    for date_range in ranges:
        date_from = format_business_date(date_range.start, timezone)
        date_to = format_business_date(date_range.end, timezone)

        result = await fetch_range(
            RangeQuery(date_from=date_from, date_to=date_to, limit=page_size, offset=0)
        )

        error = result.error
        if error is None and result.count is not None and result.count > page_size:
            error = TruncatedChunkError(date_from, date_to, result.count, page_size)

        if error is not None:
            logger.warning("Fetch for %s..%s failed: %s", date_from, date_to, error)
            return FetchOutcome(data=None, error=error)

        if result.data:
            records.extend(result.data)

        logger.debug(
            "Fetched %d rows for %s..%s", len(result.data or []), date_from, date_to
        )

    return FetchOutcome(data=records, error=None)
