"""
Day count and business day conventions used by swap schedules.

Supported Day Counts:
- ACT/360: Actual days / 360 (EUR floating legs)
- ACT/365: Actual days / 365 (model time axis)
- 30/360: 30 days per month / 360 (EUR fixed legs)

Business Day Conventions:
- Following, Modified Following, Preceding, Unadjusted

Only a weekend calendar (plus an optional set of holidays) is provided;
full holiday calendars are an external concern.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Optional, Set
import calendar


class DayCount(Enum):
    """Day count convention enumeration."""
    ACT_360 = "ACT/360"
    ACT_365 = "ACT/365"
    THIRTY_360 = "30/360"

    @classmethod
    def from_string(cls, s: str) -> "DayCount":
        """Parse a day count label such as 'ACT/360', 'act365' or '30/360'."""
        key = s.upper().replace(" ", "").replace("/", "")
        for day_count in cls:
            if day_count.value.replace("/", "") == key:
                return day_count
        raise ValueError(f"Unknown day count convention: {s}")


class BusinessDayConvention(Enum):
    """Business day adjustment convention."""
    FOLLOWING = "Following"
    MODIFIED_FOLLOWING = "ModifiedFollowing"
    PRECEDING = "Preceding"
    UNADJUSTED = "Unadjusted"


def year_fraction(start: date, end: date, day_count: DayCount) -> float:
    """
    Calculate year fraction between two dates.

    Negative intervals are returned as negative fractions so that times
    before the reference date stay ordered.

    Args:
        start: Start date
        end: End date
        day_count: Day count convention

    Returns:
        Year fraction as float
    """
    if end < start:
        return -year_fraction(end, start, day_count)

    actual_days = (end - start).days

    if day_count == DayCount.ACT_360:
        return actual_days / 360.0
    elif day_count == DayCount.ACT_365:
        return actual_days / 365.0
    elif day_count == DayCount.THIRTY_360:
        d1 = min(start.day, 30)
        d2 = min(end.day, 30) if d1 == 30 else end.day
        return (360 * (end.year - start.year) + 30 * (end.month - start.month) + (d2 - d1)) / 360.0
    raise ValueError(f"Unknown day count: {day_count}")


def is_business_day(d: date, holidays: Optional[Set[date]] = None) -> bool:
    """Weekends and the supplied holidays are non-business days."""
    if d.weekday() >= 5:
        return False
    return not (holidays and d in holidays)


def adjust_business_day(
    d: date,
    convention: BusinessDayConvention,
    holidays: Optional[Set[date]] = None
) -> date:
    """
    Adjust a date according to business day convention.

    Args:
        d: Date to adjust
        convention: Business day adjustment rule
        holidays: Optional set of holiday dates

    Returns:
        Adjusted date
    """
    if convention == BusinessDayConvention.UNADJUSTED or is_business_day(d, holidays):
        return d

    step = timedelta(days=-1 if convention == BusinessDayConvention.PRECEDING else 1)
    adjusted = d
    while not is_business_day(adjusted, holidays):
        adjusted += step

    if convention == BusinessDayConvention.MODIFIED_FOLLOWING and adjusted.month != d.month:
        return adjust_business_day(d, BusinessDayConvention.PRECEDING, holidays)
    return adjusted


def add_months(start: date, months: int) -> date:
    """Add calendar months, clipping the day to the end of the target month."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_business_days(start: date, days: int, holidays: Optional[Set[date]] = None) -> date:
    """Move by a signed number of business days."""
    step = timedelta(days=1 if days >= 0 else -1)
    result = start
    remaining = abs(days)
    while remaining > 0:
        result += step
        if is_business_day(result, holidays):
            remaining -= 1
    return result


__all__ = [
    "DayCount",
    "BusinessDayConvention",
    "year_fraction",
    "is_business_day",
    "adjust_business_day",
    "add_months",
    "add_business_days",
]
