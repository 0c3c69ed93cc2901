"""
Domain layer - Pure business logic without external dependencies.
"""

from .date_ranges import split_into_contiguous_ranges
from .models import ChunkFetchResult, DateRange, FetchOutcome, RangeQuery, WorkingDayPolicy
from .working_days import (
    is_working_day,
    last_n_working_days,
    previous_comparison_window,
    previous_working_day,
    working_days_between,
)

__all__ = [
    "ChunkFetchResult",
    "DateRange",
    "FetchOutcome",
    "RangeQuery",
    "WorkingDayPolicy",
    "is_working_day",
    "last_n_working_days",
    "previous_comparison_window",
    "previous_working_day",
    "split_into_contiguous_ranges",
    "working_days_between",
]
