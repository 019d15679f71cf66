"""
Tests for schedule generation.
"""

from datetime import date

import numpy as np
import pytest

from sabrcube.conventions import DayCount
from sabrcube.schedule import Schedule, SchedulePrototype


class TestSchedulePrototype:

    def test_annual_five_year(self, reference_date, fix_prototype):
        """1Y into 5Y annual fixed leg."""
        schedule = fix_prototype.generate_schedule(reference_date, 12, 60)

        assert schedule.number_of_periods == 5
        assert schedule.period_starts[0] == date(2018, 8, 30)
        # 2020-08-30 is a Sunday
        assert schedule.period_starts[2] == date(2020, 8, 31)
        assert schedule.period_ends[-1] == date(2023, 8, 30)
        np.testing.assert_allclose(schedule.period_lengths, np.ones(5))
        assert schedule.average_period_length == pytest.approx(1.0)

    def test_fixing_two_business_days_before_start(self, reference_date, fix_prototype):
        schedule = fix_prototype.generate_schedule(reference_date, 12, 60)
        assert schedule.fixings[0] == date(2018, 8, 28)
        assert schedule.fixing_time(0) == pytest.approx(363 / 365)

    def test_semiannual_float_leg(self, reference_date, float_prototype):
        schedule = float_prototype.generate_schedule(reference_date, 12, 60)
        assert schedule.number_of_periods == 10
        assert schedule.day_count == DayCount.ACT_360
        assert np.all(schedule.period_lengths > 0.49)
        assert np.all(schedule.period_lengths < 0.52)

    def test_short_final_stub(self, reference_date, fix_prototype):
        schedule = fix_prototype.generate_schedule(reference_date, 0, 18)
        assert schedule.number_of_periods == 2
        assert schedule.period_ends[-1] == date(2019, 2, 28)
        assert 0.4 < schedule.period_length(1) < 0.55

    def test_times_are_increasing(self, reference_date, float_prototype):
        schedule = float_prototype.generate_schedule(reference_date, 24, 120)
        assert np.all(np.diff(schedule.payment_times) > 0)
        np.testing.assert_allclose(schedule.period_start_times[1:], schedule.period_end_times[:-1])

    def test_spot_start_fixes_before_reference(self, reference_date, fix_prototype):
        schedule = fix_prototype.generate_schedule(reference_date, 0, 12)
        assert schedule.fixing_time(0) < 0

    def test_invalid_offsets(self, reference_date, fix_prototype):
        with pytest.raises(ValueError):
            fix_prototype.generate_schedule(reference_date, -1, 12)
        with pytest.raises(ValueError):
            fix_prototype.generate_schedule(reference_date, 12, 0)

    def test_invalid_frequency(self):
        with pytest.raises(ValueError):
            SchedulePrototype(frequency_months=0)

    def test_prototypes_compare_by_value(self):
        assert SchedulePrototype(12) == SchedulePrototype(12)
        assert SchedulePrototype(12) != SchedulePrototype(6)


class TestSchedule:

    def test_mismatched_lengths(self, reference_date):
        with pytest.raises(ValueError):
            Schedule(
                reference_date=reference_date,
                period_starts=(date(2018, 8, 30),),
                period_ends=(date(2019, 8, 30), date(2020, 8, 31)),
                fixings=(date(2018, 8, 28),),
                payments=(date(2019, 8, 30),),
                day_count=DayCount.THIRTY_360,
            )

    def test_empty(self, reference_date):
        with pytest.raises(ValueError):
            Schedule(reference_date, (), (), (), (), DayCount.THIRTY_360)
