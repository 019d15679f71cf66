"""
Swap leg schedules.

Provides:
- Schedule: an immutable, generated leg schedule (period boundaries, fixing
  and payment dates, accrual fractions and model times)
- SchedulePrototype: the schedule generator. Given a reference date, an
  option maturity and a swap tenor (both in months) it produces the schedule
  of the forward starting swap.

Model times are ACT/365 year fractions from the reference date, the same
axis the curves are queried on.
"""

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, List, Optional, Tuple

import numpy as np

from .conventions import (
    BusinessDayConvention,
    DayCount,
    add_business_days,
    add_months,
    adjust_business_day,
    year_fraction,
)

TIME_DAY_COUNT = DayCount.ACT_365


@dataclass(frozen=True)
class Schedule:
    """
    Generated schedule of a swap leg.

    Attributes:
        reference_date: Date from which model times are measured
        period_starts: Adjusted accrual start dates
        period_ends: Adjusted accrual end dates
        fixings: Fixing dates of each period
        payments: Payment dates of each period
        day_count: Accrual day count
    """
    reference_date: date
    period_starts: Tuple[date, ...]
    period_ends: Tuple[date, ...]
    fixings: Tuple[date, ...]
    payments: Tuple[date, ...]
    day_count: DayCount

    def __post_init__(self):
        n = len(self.period_starts)
        if n == 0:
            raise ValueError("Schedule needs at least one period")
        if not (len(self.period_ends) == len(self.fixings) == len(self.payments) == n):
            raise ValueError("Schedule date lists must have equal length")

    @property
    def number_of_periods(self) -> int:
        return len(self.period_starts)

    def _time(self, d: date) -> float:
        return year_fraction(self.reference_date, d, TIME_DAY_COUNT)

    def period_length(self, index: int) -> float:
        """Accrual fraction of period `index`."""
        return year_fraction(self.period_starts[index], self.period_ends[index], self.day_count)

    @property
    def period_lengths(self) -> np.ndarray:
        return np.array([self.period_length(i) for i in range(self.number_of_periods)])

    @property
    def average_period_length(self) -> float:
        return float(self.period_lengths.mean())

    def fixing_time(self, index: int) -> float:
        return self._time(self.fixings[index])

    def payment_time(self, index: int) -> float:
        return self._time(self.payments[index])

    def period_start_time(self, index: int) -> float:
        return self._time(self.period_starts[index])

    def period_end_time(self, index: int) -> float:
        return self._time(self.period_ends[index])

    @property
    def payment_times(self) -> np.ndarray:
        return np.array([self.payment_time(i) for i in range(self.number_of_periods)])

    @property
    def period_start_times(self) -> np.ndarray:
        return np.array([self.period_start_time(i) for i in range(self.number_of_periods)])

    @property
    def period_end_times(self) -> np.ndarray:
        return np.array([self.period_end_time(i) for i in range(self.number_of_periods)])


@dataclass(frozen=True)
class SchedulePrototype:
    """
    Generator for forward starting swap leg schedules.

    Attributes:
        frequency_months: Length of a regular period in months (12 = annual)
        day_count: Accrual day count
        business_day: Adjustment rule for period boundaries
        fixing_offset_days: Business days between fixing and period start
            (negative: fixing before start)
        payment_offset_days: Business days between period end and payment
        holidays: Optional holidays on top of weekends
    """
    frequency_months: int
    day_count: DayCount = DayCount.THIRTY_360
    business_day: BusinessDayConvention = BusinessDayConvention.MODIFIED_FOLLOWING
    fixing_offset_days: int = -2
    payment_offset_days: int = 0
    holidays: Optional[FrozenSet[date]] = None

    def __post_init__(self):
        if self.frequency_months <= 0:
            raise ValueError(f"frequency_months must be positive, got {self.frequency_months}")

    def generate_schedule(self, reference_date: date, maturity: int, tenor: int) -> Schedule:
        """
        Generate the schedule of a swap starting `maturity` months after the
        reference date and running for `tenor` months.

        A tenor which is not a multiple of the frequency gets a short final
        period.

        Args:
            reference_date: Reference (valuation) date
            maturity: Option maturity in months
            tenor: Swap tenor in months

        Returns:
            Schedule
        """
        if maturity < 0:
            raise ValueError(f"maturity must be non-negative, got {maturity}")
        if tenor <= 0:
            raise ValueError(f"tenor must be positive, got {tenor}")

        unadjusted: List[date] = []
        offset = 0
        while offset < tenor:
            unadjusted.append(add_months(reference_date, maturity + offset))
            offset += self.frequency_months
        unadjusted.append(add_months(reference_date, maturity + tenor))

        holidays = set(self.holidays) if self.holidays else None
        boundaries = [adjust_business_day(d, self.business_day, holidays) for d in unadjusted]

        starts = tuple(boundaries[:-1])
        ends = tuple(boundaries[1:])
        fixings = tuple(add_business_days(d, self.fixing_offset_days, holidays) for d in starts)
        payments = tuple(add_business_days(d, self.payment_offset_days, holidays) for d in ends)

        return Schedule(
            reference_date=reference_date,
            period_starts=starts,
            period_ends=ends,
            fixings=fixings,
            payments=payments,
            day_count=self.day_count,
        )


__all__ = ["Schedule", "SchedulePrototype", "TIME_DAY_COUNT"]
