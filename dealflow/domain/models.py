"""
Domain value types for calendar dates, date ranges and chunked fetch results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Iterator, List, Optional, TypeVar

import pendulum
from pendulum import Date

T = TypeVar("T")


@dataclass(frozen=True)
class WorkingDayPolicy:
    """
    Which weekdays count as non-working.

    Sunday is a day off unless ``include_sunday`` is set. Saturday is a
    working day unless ``exclude_saturday`` is set.
    """
    include_sunday: bool = False
    exclude_saturday: bool = False


@dataclass(frozen=True)
class DateRange:
    """
    An inclusive range of civil dates.

    Invariant: start must not be after end.
    """
    start: Date
    end: Date

    def __post_init__(self):
        # Plain datetime.date values lack pendulum's day arithmetic.
        for name in ("start", "end"):
            value = getattr(self, name)
            if not isinstance(value, Date):
                object.__setattr__(self, name, pendulum.date(value.year, value.month, value.day))

        if self.start > self.end:
            raise ValueError(f"Range start {self.start} must not be after end {self.end}")

    def days(self) -> int:
        """Return the number of calendar days covered, both ends included."""
        return self.end.toordinal() - self.start.toordinal() + 1

    def contains(self, date: Date) -> bool:
        return self.start <= date <= self.end

    def iter_dates(self) -> Iterator[Date]:
        """Yield every civil date in the range, ascending."""
        current = self.start
        while current <= self.end:
            yield current
            current = current.add(days=1)

    def as_query_bounds(self) -> tuple[str, str]:
        """Return the ``(date_from, date_to)`` ISO strings for a query."""
        return self.start.to_date_string(), self.end.to_date_string()

    def __str__(self) -> str:
        if self.start == self.end:
            return self.start.to_date_string()
        return f"{self.start.to_date_string()}..{self.end.to_date_string()}"


@dataclass(frozen=True)
class RangeQuery:
    """Bounds handed to a range fetcher: ISO civil dates plus paging."""
    date_from: str
    date_to: str
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass(frozen=True)
class ChunkFetchResult(Generic[T]):
    """What every range fetcher returns for one request."""
    data: Optional[List[T]] = None
    error: Optional[Exception] = None
    count: Optional[int] = None


@dataclass(frozen=True)
class FetchOutcome(Generic[T]):
    """All requested records, or the first error. Never both."""
    data: Optional[List[T]]
    error: Optional[Exception]

    @property
    def ok(self) -> bool:
        return self.error is None


def civil_date(year: int, month: int, day: int) -> Date:
    """Shorthand for building a civil date."""
    return pendulum.date(year, month, day)
