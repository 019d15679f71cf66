"""
Unit tests for option pricing models and swaption analytics.
"""

import numpy as np
import pytest

from sabrcube.exceptions import ImpliedVolatilityInversionError
from sabrcube.options.base_models import (
    bachelier_call,
    bachelier_put,
    black76_call,
    black76_put,
    implied_vol_bachelier,
    implied_vol_shifted_black,
    shifted_black_call,
    shifted_black_put,
)
from sabrcube.options.swaption import (
    PhysicalSwaption,
    build_underlying,
    cash_annuity,
    cash_function,
    float_leg_value,
    forward_swap_rate,
    physical_swaption_value,
    swap_annuity,
)

from conftest import CUBE_NAME, DISCOUNT_CURVE, FORWARD_CURVE, REFERENCE_DATE


class TestBachelier:
    """Tests for Bachelier (normal) model."""

    def test_call_atm(self):
        """ATM call value is sigma * sqrt(T) / sqrt(2 pi)."""
        F = 0.012
        sigma_n = 0.0065
        T = 2.0

        price = bachelier_call(F, F, T, sigma_n)
        expected = sigma_n * np.sqrt(T) / np.sqrt(2 * np.pi)

        assert price == pytest.approx(expected, rel=1e-12)

    def test_put_call_parity(self):
        """Call - Put = df * (F - K)."""
        F = 0.012
        K = 0.015
        T = 1.0
        sigma_n = 0.0070
        df = 4.8

        call = bachelier_call(F, K, T, sigma_n, df)
        put = bachelier_put(F, K, T, sigma_n, df)

        assert call - put == pytest.approx(df * (F - K), abs=1e-14)

    def test_negative_strikes(self):
        """Normal model prices through zero without any shift."""
        call = bachelier_call(-0.002, -0.004, 1.0, 0.006)
        assert call > 0.002

    def test_vectorised_strikes(self):
        strikes = np.array([0.005, 0.010, 0.015, 0.020])
        vols = np.array([0.0070, 0.0068, 0.0066, 0.0064])

        prices = bachelier_call(0.012, strikes, 1.5, vols)
        assert prices.shape == (4,)
        for i in range(4):
            assert prices[i] == pytest.approx(bachelier_call(0.012, strikes[i], 1.5, vols[i]))
        assert np.all(np.diff(prices) < 0)

    def test_scalar_result_is_float(self):
        assert isinstance(bachelier_put(0.01, 0.012, 1.0, 0.006), float)

    def test_expired_is_intrinsic(self):
        assert bachelier_call(0.02, 0.015, 0.0, 0.01, 2.0) == pytest.approx(0.01)
        assert bachelier_put(0.02, 0.015, 0.0, 0.01) == 0.0

    def test_zero_vol_is_intrinsic(self):
        prices = bachelier_call(0.02, np.array([0.01, 0.03]), 1.0, 0.0)
        np.testing.assert_allclose(prices, [0.01, 0.0])


class TestBlack76:
    """Tests for (shifted) Black'76 model."""

    def test_put_call_parity(self):
        F, K, T, sigma, df = 0.03, 0.035, 2.0, 0.25, 0.95
        call = black76_call(F, K, T, sigma, df)
        put = black76_put(F, K, T, sigma, df)
        assert call - put == pytest.approx(df * (F - K), abs=1e-14)

    def test_negative_forward_rejected(self):
        with pytest.raises(ValueError):
            black76_call(-0.001, 0.01, 1.0, 0.2)

    def test_shift_zero_is_black(self):
        assert shifted_black_call(0.03, 0.025, 1.0, 0.2, 0.0) == pytest.approx(black76_call(0.03, 0.025, 1.0, 0.2))

    def test_shift_allows_negative_rates(self):
        call = shifted_black_call(-0.002, 0.0, 1.0, 0.3, shift=0.01)
        put = shifted_black_put(-0.002, 0.0, 1.0, 0.3, shift=0.01)
        assert call > 0
        assert call - put == pytest.approx(-0.002, abs=1e-14)

    def test_shifted_strike_must_be_positive(self):
        with pytest.raises(ValueError):
            shifted_black_call(0.01, -0.02, 1.0, 0.3, shift=0.01)


class TestImpliedVol:
    """Tests for implied volatility calculations."""

    @pytest.mark.parametrize("is_call", [True, False])
    @pytest.mark.parametrize("K", [0.005, 0.012, 0.020])
    def test_bachelier_round_trip(self, is_call, K):
        F, T, sigma, df = 0.012, 1.5, 0.0068, 4.6
        pricer = bachelier_call if is_call else bachelier_put
        price = pricer(F, K, T, sigma, df)

        implied = implied_vol_bachelier(price, F, K, T, df, is_call=is_call)
        assert implied == pytest.approx(sigma, rel=1e-8)

    def test_intrinsic_returns_zero(self):
        assert implied_vol_bachelier(0.0, 0.02, 0.03, 1.0) == 0.0
        assert implied_vol_bachelier(0.01, 0.02, 0.01, 1.0) == 0.0

    def test_below_intrinsic(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_bachelier(0.005, 0.02, 0.01, 1.0)

    def test_above_max_vol(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_bachelier(10.0, 0.02, 0.02, 1.0)

    def test_expired(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_bachelier(0.001, 0.02, 0.02, 0.0)

    def test_non_positive_annuity(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_bachelier(0.001, 0.02, 0.02, 1.0, df=0.0)

    def test_nan_price(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_bachelier(float("nan"), 0.02, 0.02, 1.0)

    def test_inversion_error_is_value_error(self):
        with pytest.raises(ValueError):
            implied_vol_bachelier(-1.0, 0.02, 0.02, 1.0)

    @pytest.mark.parametrize("is_call", [True, False])
    def test_shifted_black_round_trip(self, is_call):
        F, K, T, shift, sigma = -0.001, 0.002, 2.0, 0.02, 0.35
        pricer = shifted_black_call if is_call else shifted_black_put
        price = pricer(F, K, T, sigma, shift, 3.0)

        implied = implied_vol_shifted_black(price, F, K, T, shift, 3.0, is_call=is_call)
        assert implied == pytest.approx(sigma, rel=1e-8)

    def test_shifted_black_requires_positive_shifted_rates(self):
        with pytest.raises(ImpliedVolatilityInversionError):
            implied_vol_shifted_black(0.001, -0.01, 0.0, 1.0, shift=0.005)


class TestCashAnnuity:

    def test_closed_form(self):
        assert cash_annuity(0.02, 5, 1.0) == pytest.approx((1 - 1.02 ** -5) / 0.02, rel=1e-14)

    def test_zero_rate_limit_is_exact(self):
        assert cash_annuity(0.0, 10, 0.5) == 5.0
        assert cash_annuity(1e-12, 10, 0.5) == 5.0

    def test_continuous_through_zero(self):
        np.testing.assert_allclose(cash_annuity(np.array([-1e-7, 1e-7]), 10, 0.5), [5.0, 5.0], rtol=1e-5)

    def test_decreasing_in_rate(self):
        values = cash_annuity(np.array([-0.01, 0.0, 0.01, 0.03]), 5, 1.0)
        assert np.all(np.diff(values) < 0)

    def test_cash_function_uses_schedule(self, reference_date, fix_prototype):
        schedule = fix_prototype.generate_schedule(reference_date, 12, 60)
        assert cash_function(0.0, schedule) == pytest.approx(5.0, abs=1e-14)
        assert cash_function(0.02, schedule) == pytest.approx(cash_annuity(0.02, 5, 1.0), rel=1e-12)


class TestForwardSwapRate:

    @pytest.fixture
    def underlying(self, market_model, fix_prototype, float_prototype):
        return build_underlying(
            market_model, REFERENCE_DATE, 12, 60, fix_prototype, float_prototype,
            DISCOUNT_CURVE, FORWARD_CURVE,
        )

    def test_annuity(self, underlying, market_model):
        discount = market_model.get_discount_curve(DISCOUNT_CURVE)
        expected = np.sum(discount.discount_factor(underlying.fix_schedule.payment_times))
        assert underlying.annuity == pytest.approx(expected, rel=1e-12)
        assert swap_annuity(underlying.fix_schedule, discount) == pytest.approx(expected, rel=1e-12)

    def test_forward_is_float_leg_over_annuity(self, underlying, market_model):
        discount = market_model.get_discount_curve(DISCOUNT_CURVE)
        forward_curve = market_model.get_forward_curve(FORWARD_CURVE)
        float_pv = float_leg_value(underlying.float_schedule, forward_curve, discount)

        assert underlying.forward == pytest.approx(float_pv / underlying.annuity, rel=1e-12)
        assert 0.0115 < underlying.forward < 0.0125

    def test_expiry_is_first_fixing(self, underlying):
        assert underlying.expiry == pytest.approx(underlying.fix_schedule.fixing_time(0))
        assert underlying.cash_annuity == pytest.approx(cash_function(underlying.forward, underlying.fix_schedule))

    def test_returns_pair(self, underlying, market_model):
        forward, annuity = forward_swap_rate(
            underlying.fix_schedule, underlying.float_schedule,
            market_model.get_forward_curve(FORWARD_CURVE), market_model.get_discount_curve(DISCOUNT_CURVE),
        )
        assert forward == pytest.approx(underlying.forward)
        assert annuity == pytest.approx(underlying.annuity)


class TestPhysicalSwaption:

    def test_value_matches_cube_vol(self, model_with_cube, fix_prototype, float_prototype):
        underlying = build_underlying(
            model_with_cube, REFERENCE_DATE, 12, 60, fix_prototype, float_prototype,
            DISCOUNT_CURVE, FORWARD_CURVE,
        )
        strike = underlying.forward + 0.005
        swaption = PhysicalSwaption(
            12, 60, underlying.fix_schedule, underlying.float_schedule, strike,
            DISCOUNT_CURVE, FORWARD_CURVE, CUBE_NAME,
        )
        cube = model_with_cube.get_volatility_cube(CUBE_NAME)
        sigma = cube.normal_volatility(12, 60, underlying.forward, strike, underlying.expiry)
        expected = physical_swaption_value(underlying.forward, strike, underlying.expiry, underlying.annuity, sigma)

        assert swaption.value(model_with_cube) == pytest.approx(expected, rel=1e-12)

    def test_payer_receiver_parity(self, model_with_cube, fix_prototype, float_prototype):
        underlying = build_underlying(
            model_with_cube, REFERENCE_DATE, 24, 120, fix_prototype, float_prototype,
            DISCOUNT_CURVE, FORWARD_CURVE,
        )
        strike = 0.01
        common = (24, 120, underlying.fix_schedule, underlying.float_schedule, strike,
                  DISCOUNT_CURVE, FORWARD_CURVE, CUBE_NAME)
        payer = PhysicalSwaption(*common).value(model_with_cube)
        receiver = PhysicalSwaption(*common, is_payer=False).value(model_with_cube)

        assert payer - receiver == pytest.approx(underlying.annuity * (underlying.forward - strike), abs=1e-12)
