"""
Unit tests for conventions module.
"""

from datetime import date
import pytest

from sabrcube.conventions import (
    DayCount,
    BusinessDayConvention,
    year_fraction,
    is_business_day,
    adjust_business_day,
    add_months,
    add_business_days,
)


class TestDayCount:
    """Tests for day count conventions."""

    def test_act_360(self):
        """Test ACT/360 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)  # 91 days

        yf = year_fraction(start, end, DayCount.ACT_360)
        assert abs(yf - 91 / 360) < 1e-10

    def test_act_365(self):
        """Test ACT/365 day count."""
        start = date(2024, 1, 15)
        end = date(2024, 4, 15)

        yf = year_fraction(start, end, DayCount.ACT_365)
        assert abs(yf - 91 / 365) < 1e-10

    def test_thirty_360(self):
        """Test 30/360 day count."""
        yf = year_fraction(date(2024, 1, 15), date(2024, 4, 15), DayCount.THIRTY_360)
        assert abs(yf - 90 / 360) < 1e-10

    def test_thirty_360_month_end(self):
        """Day 31 is treated as 30 when the start is on the 30th."""
        yf = year_fraction(date(2019, 8, 30), date(2020, 8, 31), DayCount.THIRTY_360)
        assert yf == 1.0

    def test_year_fraction_same_date(self):
        d = date(2024, 1, 15)
        assert year_fraction(d, d, DayCount.ACT_360) == 0.0

    def test_reversed_dates_negative(self):
        yf = year_fraction(date(2024, 4, 15), date(2024, 1, 15), DayCount.ACT_365)
        assert abs(yf + 91 / 365) < 1e-10

    def test_from_string(self):
        assert DayCount.from_string("ACT/360") == DayCount.ACT_360
        assert DayCount.from_string("30/360") == DayCount.THIRTY_360
        assert DayCount.from_string("act365") == DayCount.ACT_365
        with pytest.raises(ValueError):
            DayCount.from_string("ACT/ACT")


class TestBusinessDays:
    """Tests for business day adjustment."""

    def test_weekend_is_not_business_day(self):
        assert not is_business_day(date(2020, 8, 30))  # Sunday
        assert is_business_day(date(2020, 8, 31))

    def test_holiday(self):
        holiday = date(2020, 8, 31)
        assert not is_business_day(holiday, {holiday})

    def test_following(self):
        adjusted = adjust_business_day(date(2020, 8, 29), BusinessDayConvention.FOLLOWING)
        assert adjusted == date(2020, 8, 31)

    def test_modified_following_stays_in_month(self):
        # Saturday 2020-10-31: following would be November
        adjusted = adjust_business_day(date(2020, 10, 31), BusinessDayConvention.MODIFIED_FOLLOWING)
        assert adjusted == date(2020, 10, 30)

    def test_preceding(self):
        adjusted = adjust_business_day(date(2020, 8, 30), BusinessDayConvention.PRECEDING)
        assert adjusted == date(2020, 8, 28)

    def test_unadjusted(self):
        d = date(2020, 8, 30)
        assert adjust_business_day(d, BusinessDayConvention.UNADJUSTED) == d

    def test_add_business_days(self):
        assert add_business_days(date(2018, 8, 30), -2) == date(2018, 8, 28)
        assert add_business_days(date(2020, 8, 28), 1) == date(2020, 8, 31)
        assert add_business_days(date(2020, 8, 28), 0) == date(2020, 8, 28)


class TestAddMonths:

    def test_simple(self):
        assert add_months(date(2017, 8, 30), 12) == date(2018, 8, 30)

    def test_clips_to_month_end(self):
        assert add_months(date(2017, 8, 30), 18) == date(2019, 2, 28)

    def test_negative(self):
        assert add_months(date(2017, 8, 30), -8) == date(2016, 12, 30)
