"""
Working-day calendar arithmetic in a fixed business timezone.

Every function here works on civil dates (``pendulum.Date``). Instants are
converted into the business timezone first, so a process running in another
zone classifies weekdays the same way the business does. Adjacency and
stepping use civil-day arithmetic, which keeps daylight-saving transitions
from shifting a date.
"""

from __future__ import annotations

from datetime import date as std_date
from datetime import datetime as std_datetime
from typing import Iterable, List, Sequence, Union

import pendulum
from pendulum import Date, DateTime

from .exceptions import BoundedSearchExceeded
from .models import DateRange, WorkingDayPolicy

DEFAULT_TIMEZONE = "America/New_York"

# Any policy expressible with the two flags leaves at least five working days a week.
MAX_BACKWARD_SEARCH_DAYS = 14

DEFAULT_POLICY = WorkingDayPolicy()

DateLike = Union[Date, DateTime, std_date, std_datetime, str]


def to_business_date(value: DateLike, timezone: str = DEFAULT_TIMEZONE) -> Date:
    """
    Normalize an instant, date or ISO string into a civil date.

    Instants are observed in ``timezone``; naive datetimes are taken as UTC,
    matching how pendulum treats them. Plain dates are already civil and are
    returned unchanged.
    """
    if isinstance(value, str):
        parsed = pendulum.parse(value, tz=timezone)
        if isinstance(parsed, DateTime):
            return parsed.in_timezone(timezone).date()
        if isinstance(parsed, Date):
            return parsed
        raise ValueError(f"Could not parse a calendar date from {value!r}")

    if isinstance(value, std_datetime):
        return pendulum.instance(value).in_timezone(timezone).date()

    if isinstance(value, Date):
        return value

    if isinstance(value, std_date):
        return pendulum.date(value.year, value.month, value.day)

    raise TypeError(f"Unsupported date value: {value!r}")


def format_business_date(value: DateLike, timezone: str = DEFAULT_TIMEZONE) -> str:
    """
    Format a value as ``YYYY-MM-DD`` in the business timezone.

    This is the only formatter that should produce query bounds.
    """
    return to_business_date(value, timezone).to_date_string()


def to_date_strings(dates: Iterable[DateLike], timezone: str = DEFAULT_TIMEZONE) -> List[str]:
    return [format_business_date(d, timezone) for d in dates]


def weekday_name(value: DateLike, timezone: str = DEFAULT_TIMEZONE) -> str:
    """Return the short English weekday (``Sun`` .. ``Sat``) observed in ``timezone``."""
    return to_business_date(value, timezone).format("ddd", locale="en")


def is_sunday(value: DateLike, timezone: str = DEFAULT_TIMEZONE) -> bool:
    return to_business_date(value, timezone).day_of_week == pendulum.SUNDAY


def is_saturday(value: DateLike, timezone: str = DEFAULT_TIMEZONE) -> bool:
    return to_business_date(value, timezone).day_of_week == pendulum.SATURDAY


def is_working_day(
    value: DateLike,
    policy: WorkingDayPolicy = DEFAULT_POLICY,
    timezone: str = DEFAULT_TIMEZONE,
) -> bool:
    """Check a date against the weekend rules of ``policy``."""
    day = to_business_date(value, timezone)

    if not policy.include_sunday and day.day_of_week == pendulum.SUNDAY:
        return False
    if policy.exclude_saturday and day.day_of_week == pendulum.SATURDAY:
        return False
    return True


def previous_working_day(
    value: DateLike,
    policy: WorkingDayPolicy = DEFAULT_POLICY,
    timezone: str = DEFAULT_TIMEZONE,
) -> Date:
    """
    Clamp a date to the latest working day at or before it.

    Raises:
        BoundedSearchExceeded: If no working day is found within
            ``MAX_BACKWARD_SEARCH_DAYS`` days.
    """
    cursor = to_business_date(value, timezone)

    for _ in range(MAX_BACKWARD_SEARCH_DAYS):
        if is_working_day(cursor, policy):
            return cursor
        cursor = cursor.subtract(days=1)

    raise BoundedSearchExceeded(
        f"No working day within {MAX_BACKWARD_SEARCH_DAYS} days before {value} under {policy}"
    )


def working_days_between(
    start: DateLike,
    end: DateLike,
    policy: WorkingDayPolicy = DEFAULT_POLICY,
    timezone: str = DEFAULT_TIMEZONE,
) -> List[Date]:
    """Return the working days from ``start`` to ``end`` inclusive, ascending."""
    start_day = to_business_date(start, timezone)
    end_day = to_business_date(end, timezone)

    if start_day > end_day:
        return []

    return [
        day for day in DateRange(start=start_day, end=end_day).iter_dates()
        if is_working_day(day, policy)
    ]


def last_n_working_days(
    end_inclusive: DateLike,
    n: int,
    policy: WorkingDayPolicy = DEFAULT_POLICY,
    timezone: str = DEFAULT_TIMEZONE,
) -> List[Date]:
    """
    Return exactly ``n`` working days ending at or before ``end_inclusive``.

    The end date is first clamped to the latest working day at or before it,
    then working days are collected walking backwards. The result is ascending.
    A non-positive ``n`` yields an empty list.

    Raises:
        BoundedSearchExceeded: If ``n`` working days cannot be collected
            within the bounded search window.
    """
    if n <= 0:
        return []

    cursor = previous_working_day(end_inclusive, policy, timezone)
    search_window = n * 7 + MAX_BACKWARD_SEARCH_DAYS

    collected: List[Date] = []
    for _ in range(search_window):
        if is_working_day(cursor, policy):
            collected.append(cursor)
            if len(collected) == n:
                collected.reverse()
                return collected
        cursor = cursor.subtract(days=1)

    raise BoundedSearchExceeded(
        f"Collected only {len(collected)} of {n} working days within {search_window} days"
    )


def previous_comparison_window(
    current_dates: Sequence[DateLike],
    policy: WorkingDayPolicy = DEFAULT_POLICY,
    timezone: str = DEFAULT_TIMEZONE,
) -> List[Date]:
    """
    Return the like-for-like working days immediately preceding ``current_dates``.

    The window has the same number of working days and ends the day before the
    earliest current date.
    """
    if not current_dates:
        return []

    earliest = min(to_business_date(d, timezone) for d in current_dates)
    return last_n_working_days(earliest.subtract(days=1), len(current_dates), policy, timezone)


def previous_period_range(period: DateRange) -> DateRange:
    """
    Return the calendar period of equal length ending the day before ``period``.

    Unlike ``previous_comparison_window`` this ignores working days; it is
    used for plain date-range analytics.
    """
    previous_end = period.start.subtract(days=1)
    previous_start = previous_end.subtract(days=period.days() - 1)
    return DateRange(start=previous_start, end=previous_end)


def today(timezone: str = DEFAULT_TIMEZONE) -> Date:
    """Return the current civil date in the business timezone."""
    return pendulum.now(timezone).date()
