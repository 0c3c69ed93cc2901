"""
Tests for splitting date sets into contiguous ranges.
"""

from datetime import date, datetime, timezone

import pendulum

from dealflow.domain.date_ranges import expand_ranges, split_into_contiguous_ranges
from dealflow.domain.models import DateRange, civil_date


def jan(day):
    return civil_date(2024, 1, day)


class TestSplitIntoContiguousRanges:
    """Tests for split_into_contiguous_ranges."""

    def test_empty(self):
        assert split_into_contiguous_ranges([]) == []

    def test_single_date(self):
        assert split_into_contiguous_ranges([jan(5)]) == [DateRange(start=jan(5), end=jan(5))]

    def test_gaps_close_ranges(self):
        dates = [jan(1), jan(2), jan(3), jan(5), jan(6), jan(10)]

        assert split_into_contiguous_ranges(dates) == [
            DateRange(start=jan(1), end=jan(3)),
            DateRange(start=jan(5), end=jan(6)),
            DateRange(start=jan(10), end=jan(10)),
        ]

    def test_unsorted_input_with_duplicates(self):
        dates = [jan(6), jan(2), jan(5), jan(2), jan(1)]

        assert split_into_contiguous_ranges(dates) == [
            DateRange(start=jan(1), end=jan(2)),
            DateRange(start=jan(5), end=jan(6)),
        ]

    def test_month_and_leap_day_boundaries(self):
        dates = [civil_date(2024, 2, 28), civil_date(2024, 2, 29), civil_date(2024, 3, 1)]

        assert split_into_contiguous_ranges(dates) == [
            DateRange(start=civil_date(2024, 2, 28), end=civil_date(2024, 3, 1))
        ]

    def test_daylight_saving_weekend_stays_contiguous(self):
        dates = [civil_date(2024, 3, 9), civil_date(2024, 3, 10), civil_date(2024, 3, 11)]

        assert len(split_into_contiguous_ranges(dates)) == 1

    def test_ranges_are_non_adjacent(self):
        ranges = split_into_contiguous_ranges([jan(d) for d in (1, 2, 4, 5, 7, 9, 10, 11)])

        for earlier, later in zip(ranges, ranges[1:]):
            assert later.start.toordinal() - earlier.end.toordinal() > 1

    def test_expanding_reproduces_the_deduplicated_input(self):
        dates = [jan(d) for d in (9, 1, 2, 4, 5, 5, 7, 10, 11)]

        ranges = split_into_contiguous_ranges(dates)

        assert expand_ranges(ranges) == sorted(set(dates))
        assert split_into_contiguous_ranges(expand_ranges(ranges)) == ranges

    def test_plain_dates_are_accepted(self):
        dates = [date(2024, 1, 13), date(2024, 1, 10), date(2024, 1, 11)]

        assert split_into_contiguous_ranges(dates) == [
            DateRange(start=jan(10), end=jan(11)),
            DateRange(start=jan(13), end=jan(13)),
        ]

    def test_instants_are_read_as_business_days(self):
        """01:00 UTC on the 12th is still the 11th in New York."""
        dates = [jan(10), datetime(2024, 1, 12, 1, 0, tzinfo=timezone.utc), "2024-01-13"]

        assert split_into_contiguous_ranges(dates) == [
            DateRange(start=jan(10), end=jan(11)),
            DateRange(start=jan(13), end=jan(13)),
        ]

    def test_same_day_as_instant_and_date_is_deduplicated(self):
        dates = [jan(10), pendulum.datetime(2024, 1, 10, 15, tz="America/New_York"), date(2024, 1, 10)]

        assert split_into_contiguous_ranges(dates) == [DateRange(start=jan(10), end=jan(10))]

    def test_timezone_decides_the_civil_day(self):
        dates = [jan(10), datetime(2024, 1, 12, 1, 0, tzinfo=timezone.utc)]

        assert split_into_contiguous_ranges(dates, "UTC") == [
            DateRange(start=jan(10), end=jan(10)),
            DateRange(start=jan(12), end=jan(12)),
        ]
