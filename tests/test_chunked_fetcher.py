"""
Tests for the fail-fast chunked range fetcher.
"""

import asyncio
from datetime import date, datetime, timezone
from typing import List

from dealflow.domain.exceptions import TruncatedChunkError
from dealflow.domain.models import ChunkFetchResult, RangeQuery, civil_date
from dealflow.services.chunked_fetcher import fetch_by_contiguous_ranges


def jan(day):
    return civil_date(2024, 1, day)


class StubRangeFetcher:
    """Returns one record per requested range, or configured errors."""

    def __init__(self, errors=None, counts=None):
        self.calls: List[RangeQuery] = []
        self.errors = errors or {}
        self.counts = counts or {}
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, query: RangeQuery) -> ChunkFetchResult:
        self.calls.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1

        if query.date_from in self.errors:
            return ChunkFetchResult(data=None, error=self.errors[query.date_from])

        data = [f"{query.date_from}..{query.date_to}"]
        return ChunkFetchResult(data=data, count=self.counts.get(query.date_from, len(data)))


class TestFetchByContiguousRanges:
    """Tests for fetch_by_contiguous_ranges."""

    def test_fetches_each_range_once_in_order(self):
        fetcher = StubRangeFetcher()
        dates = [jan(10), jan(1), jan(2), jan(3), jan(5), jan(6)]

        outcome = asyncio.run(fetch_by_contiguous_ranges(dates, fetcher))

        assert outcome.ok
        assert outcome.data == ["2024-01-01..2024-01-03", "2024-01-05..2024-01-06", "2024-01-10..2024-01-10"]
        assert fetcher.calls == [
            RangeQuery(date_from="2024-01-01", date_to="2024-01-03", limit=10000, offset=0),
            RangeQuery(date_from="2024-01-05", date_to="2024-01-06", limit=10000, offset=0),
            RangeQuery(date_from="2024-01-10", date_to="2024-01-10", limit=10000, offset=0),
        ]

    def test_requests_are_sequential(self):
        fetcher = StubRangeFetcher()

        asyncio.run(fetch_by_contiguous_ranges([jan(1), jan(3), jan(5), jan(7)], fetcher))

        assert fetcher.max_in_flight == 1

    def test_empty_input_makes_no_requests(self):
        fetcher = StubRangeFetcher()

        outcome = asyncio.run(fetch_by_contiguous_ranges([], fetcher))

        assert outcome.data == []
        assert outcome.error is None
        assert fetcher.calls == []

    def test_first_error_aborts_remaining_ranges(self):
        failure = RuntimeError("boom")
        fetcher = StubRangeFetcher(errors={"2024-01-05": failure})

        outcome = asyncio.run(fetch_by_contiguous_ranges([jan(1), jan(5), jan(10)], fetcher))

        assert outcome.data is None
        assert outcome.error is failure
        assert not outcome.ok
        assert [call.date_from for call in fetcher.calls] == ["2024-01-01", "2024-01-05"]

    def test_truncated_range_fails(self):
        fetcher = StubRangeFetcher(counts={"2024-01-01": 3})

        outcome = asyncio.run(fetch_by_contiguous_ranges([jan(1), jan(2), jan(9)], fetcher, page_size=2))

        assert outcome.data is None
        assert isinstance(outcome.error, TruncatedChunkError)
        assert outcome.error.count == 3
        assert outcome.error.page_size == 2
        assert len(fetcher.calls) == 1

    def test_count_equal_to_page_size_is_complete(self):
        fetcher = StubRangeFetcher(counts={"2024-01-01": 2})

        outcome = asyncio.run(fetch_by_contiguous_ranges([jan(1)], fetcher, page_size=2))

        assert outcome.ok

    def test_plain_dates_and_instants(self):
        fetcher = StubRangeFetcher()
        dates = [date(2024, 1, 10), datetime(2024, 1, 12, 1, 0, tzinfo=timezone.utc), date(2024, 1, 13)]

        outcome = asyncio.run(fetch_by_contiguous_ranges(dates, fetcher))

        assert outcome.ok
        assert [(c.date_from, c.date_to) for c in fetcher.calls] == [
            ("2024-01-10", "2024-01-11"),
            ("2024-01-13", "2024-01-13"),
        ]
