"""
Partition a set of civil dates into maximal contiguous ranges.

The partitioner merges literal calendar adjacency only. It has no opinion on
working days: a skipped Sunday breaks a range only if the caller left it out
of the input.
"""

from typing import Iterable, List

from pendulum import Date

from .models import DateRange
from .working_days import DEFAULT_TIMEZONE, DateLike, to_business_date


def split_into_contiguous_ranges(
    dates: Iterable[DateLike],
    timezone: str = DEFAULT_TIMEZONE,
) -> List[DateRange]:
    """
    Collapse dates into the minimal list of inclusive, non-adjacent ranges.

    Inputs are normalized to civil dates in ``timezone`` first, so instants,
    plain ``datetime.date`` values and ISO strings mix freely.

    Example:
    Input:  [2024-01-13, 2024-01-10, 2024-01-11, 2024-01-11]
    Result: [2024-01-10..2024-01-11, 2024-01-13]
    """
    ordered = sorted({to_business_date(d, timezone) for d in dates})

    if not ordered:
        return []

    ranges: List[DateRange] = []
    range_start = ordered[0]
    range_end = ordered[0]

    for current in ordered[1:]:
        if current == range_end.add(days=1):
            range_end = current
            continue

        ranges.append(DateRange(start=range_start, end=range_end))
        range_start = current
        range_end = current

    ranges.append(DateRange(start=range_start, end=range_end))
    return ranges


def expand_ranges(ranges: Iterable[DateRange]) -> List[Date]:
    """Flatten ranges back into their individual dates, in range order."""
    return [day for date_range in ranges for day in date_range.iter_dates()]
