"""
SABR cube calibration.

Calibrates, tenor by tenor, the SABR base volatility, vol-of-vol and rho at
every observed option maturity so that

- cash settled payer prices (replication pricer)
- cash settled receiver prices (replication pricer)
- physically settled prices (Bachelier on the SABR smile)

are matched in a weighted least-squares sense. Displacement, beta and the
annuity mapping parameters are fixed.

Tenors are independent problems and run in parallel on a thread pool (or an
injected executor). The cube is all-or-nothing: if any tenor fails, the
calibration raises SolverFailureError naming that tenor.
"""

import logging
import os
from concurrent.futures import Executor, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING

import numpy as np
import pandas as pd
from scipy.optimize import least_squares

from ..data.lattice import QuotingConvention, SwaptionLattice
from ..data.quote_table import QuoteTable, TableConvention
from ..exceptions import InvalidConventionError, SolverFailureError
from ..options.annuity_mapping import AnnuityMappingType
from ..options.cash_settled import CashSettledSwaption, ReplicationGrid, ReplicationSettings
from ..options.swaption import SwapUnderlying, build_underlying, physical_swaption_value
from .cube import SabrTenorParameters, VolatilityCube
from .sabr import alpha_from_atm_normal_vol, hagan_normal_vol

if TYPE_CHECKING:
    from ..market_model import MarketModel

logger = logging.getLogger(__name__)

BASIS_POINT = 1e-4

DEFAULT_RHO = -0.2
DEFAULT_VOLVOL = 0.4
DEFAULT_BASE_VOL = 0.01

# Parameter bounds: base vol > 0, volvol > 0, |rho| < 1
LOWER_BOUNDS = (1e-8, 1e-8, -0.9999)
UPPER_BOUNDS = (np.inf, np.inf, 0.9999)

# Residuals are prices, so the relative stopping rules must be far below the
# default error tolerance
SOLVER_TOLERANCE = 1e-12


class CalibrationState(Enum):
    CONFIGURED = "CONFIGURED"
    RUNNING = "RUNNING"
    CALIBRATED = "CALIBRATED"
    FAILED = "FAILED"


@dataclass
class TenorCalibrationResult:
    """Result of the least-squares fit of one tenor."""
    tenor: int
    parameters: SabrTenorParameters
    rms_error: float
    evaluations: int
    status: int
    message: str
    observations: int


@dataclass
class _Observation:
    maturity: int
    moneyness: int
    kind: str
    market_price: float
    weight: float
    price: Callable[[float, float, float], float]


class SabrCubeCalibrator:
    """
    Calibrator of a SABR volatility cube to cash and physical swaption prices.

    Configure with the setters, then call `calibrate` once. Setters are
    not thread safe and raise RuntimeError once calibration has started.

    Example:
        calibrator = SabrCubeCalibrator(ref, payers, receivers, atm, model,
                                        AnnuityMappingType.MULTI_PITERBARG,
                                        displacement=0.25, beta=0.5)
        calibrator.set_calibration_parameters(max_iterations=50, number_of_threads=4)
        cube = calibrator.calibrate("EUR-SABR", [24, 60, 120])
    """

    def __init__(
        self,
        reference_date: date,
        payer_lattice: SwaptionLattice,
        receiver_lattice: SwaptionLattice,
        physical_lattice: SwaptionLattice,
        model: "MarketModel",
        mapping_type: AnnuityMappingType = AnnuityMappingType.MULTI_PITERBARG,
        displacement: float = 0.0,
        beta: float = 0.5,
        correlation_decay: float = 0.0,
        ibor_ois_decorrelation: float = 1.0
    ):
        for lattice in (payer_lattice, receiver_lattice):
            if not lattice.quoting_convention.is_price:
                raise InvalidConventionError(
                    lattice.quoting_convention, "cash lattices must be PAYER_PRICE or RECEIVER_PRICE"
                )
        if not 0 <= beta <= 1:
            raise ValueError(f"beta must be in [0, 1], got {beta}")

        self.reference_date = reference_date
        self.payer_lattice = payer_lattice
        self.receiver_lattice = receiver_lattice
        self.model = model
        self.mapping_type = mapping_type
        self.displacement = displacement
        self.beta = beta
        self.correlation_decay = correlation_decay
        self.ibor_ois_decorrelation = ibor_ois_decorrelation

        self.physical_lattice = physical_lattice.convert(QuotingConvention.PAYER_PRICE, model)
        self._physical_normal_vols = physical_lattice.convert(QuotingConvention.PAYER_VOL_NORMAL, model)

        self._state = CalibrationState.CONFIGURED
        self._max_iterations = 100
        self._number_of_threads = os.cpu_count() or 1
        self._settings = ReplicationSettings()
        self._error_tolerance = 1e-7
        self._weights = {"payer": 1.0, "receiver": 1.0, "physical": 1.0}
        self._rho_table: Optional[QuoteTable] = None
        self._base_vol_table: Optional[QuoteTable] = None
        self._volvol_table: Optional[QuoteTable] = None
        self._results: Dict[int, TenorCalibrationResult] = {}

    # Configuration
    @property
    def state(self) -> CalibrationState:
        return self._state

    @property
    def replication_settings(self) -> ReplicationSettings:
        return self._settings

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @property
    def number_of_threads(self) -> int:
        return self._number_of_threads

    def _check_configurable(self) -> None:
        if self._state != CalibrationState.CONFIGURED:
            raise RuntimeError(f"Calibrator is {self._state.name}; configure it before calling calibrate")

    def set_calibration_parameters(self, max_iterations: int, number_of_threads: Optional[int] = None) -> None:
        """Cap on solver function evaluations per tenor and the worker pool size."""
        self._check_configurable()
        if max_iterations <= 0:
            raise ValueError(f"max_iterations must be positive, got {max_iterations}")
        if number_of_threads is not None and number_of_threads <= 0:
            raise ValueError(f"number_of_threads must be positive, got {number_of_threads}")
        self._max_iterations = max_iterations
        if number_of_threads is not None:
            self._number_of_threads = number_of_threads

    def set_replication_parameters(
        self,
        use_as_offset: bool,
        lower_bound: float,
        upper_bound: float,
        number_of_points: int
    ) -> None:
        self._check_configurable()
        self._settings = ReplicationSettings(
            use_as_offset=use_as_offset,
            lower_bound=lower_bound,
            upper_bound=upper_bound,
            number_of_points=number_of_points,
            use_linear_interpolation=self._settings.use_linear_interpolation,
        )

    def set_use_linear_interpolation(self, use_linear_interpolation: bool) -> None:
        self._check_configurable()
        self._settings = replace(self._settings, use_linear_interpolation=use_linear_interpolation)

    def set_initial_parameters(
        self,
        rho_table: Optional[QuoteTable] = None,
        base_vol_table: Optional[QuoteTable] = None,
        volvol_table: Optional[QuoteTable] = None
    ) -> None:
        """Custom initial guesses keyed by (maturity, tenor) in months. Missing cells use the defaults."""
        self._check_configurable()
        for table in (rho_table, base_vol_table, volvol_table):
            if table is not None and table.convention != TableConvention.MONTHS:
                raise InvalidConventionError(table.convention, f"initial parameter table '{table.name}' must be in MONTHS")
        self._rho_table = rho_table
        self._base_vol_table = base_vol_table
        self._volvol_table = volvol_table

    def set_error_tolerance(self, tolerance: float) -> None:
        """Largest weighted RMS price residual a tenor fit may leave."""
        self._check_configurable()
        if tolerance <= 0:
            raise ValueError(f"tolerance must be positive, got {tolerance}")
        self._error_tolerance = tolerance

    def set_observation_weights(self, payer: float = 1.0, receiver: float = 1.0, physical: float = 1.0) -> None:
        self._check_configurable()
        if min(payer, receiver, physical) < 0:
            raise ValueError("Observation weights must be non-negative")
        self._weights = {"payer": payer, "receiver": receiver, "physical": physical}

    # Initial guess
    def _underlying(self, lattice: SwaptionLattice, maturity: int, tenor: int) -> SwapUnderlying:
        return build_underlying(
            self.model, self.reference_date, maturity, tenor,
            lattice.fix_schedule, lattice.float_schedule,
            lattice.discount_curve_name, lattice.forward_curve_name,
        )

    def _default_base_vol(self, maturity: int, tenor: int) -> float:
        atm_vol = self._physical_normal_vols.get(maturity, tenor, 0)
        if atm_vol is None:
            return DEFAULT_BASE_VOL
        forward = self._underlying(self.physical_lattice, maturity, tenor).forward
        return alpha_from_atm_normal_vol(atm_vol, forward, self.beta, self.displacement)

    def initial_guess(self, maturity: int, tenor: int) -> Tuple[float, float, float]:
        """(base volatility, volvol, rho) starting point of the solve."""
        base_vol = self._base_vol_table.get(maturity, tenor) if self._base_vol_table else None
        volvol = self._volvol_table.get(maturity, tenor) if self._volvol_table else None
        rho = self._rho_table.get(maturity, tenor) if self._rho_table else None
        if base_vol is None:
            base_vol = self._default_base_vol(maturity, tenor)
        return (
            base_vol,
            DEFAULT_VOLVOL if volvol is None else volvol,
            DEFAULT_RHO if rho is None else rho,
        )

    # Problem assembly
    def _cash_observations(self, lattice: SwaptionLattice, tenor: int, cube_name: str) -> List[_Observation]:
        is_payer = lattice.quoting_convention.is_payer
        kind = "payer" if is_payer else "receiver"
        observations = []
        for (maturity, t, moneyness), market_price in lattice.entries():
            if t != tenor:
                continue
            u = self._underlying(lattice, maturity, tenor)
            strike = u.forward + BASIS_POINT * moneyness if is_payer else u.forward - BASIS_POINT * moneyness
            product = CashSettledSwaption(
                maturity=maturity,
                tenor=tenor,
                fix_schedule=u.fix_schedule,
                float_schedule=u.float_schedule,
                strike=strike,
                discount_curve_name=lattice.discount_curve_name,
                forward_curve_name=lattice.forward_curve_name,
                cube_name=cube_name,
                mapping_type=self.mapping_type,
                is_payer=is_payer,
            )
            grid = product.prepare(
                self.model, self._settings, self.correlation_decay, self.ibor_ois_decorrelation, self.displacement,
            )
            observations.append(_Observation(
                maturity, moneyness, kind, market_price, self._weights[kind], self._cash_pricer(grid),
            ))
        return observations

    def _cash_pricer(self, grid: ReplicationGrid) -> Callable[[float, float, float], float]:
        def price(alpha: float, nu: float, rho: float) -> float:
            return grid.price(lambda k: hagan_normal_vol(
                grid.forward, k, grid.expiry, alpha, self.beta, rho, nu, self.displacement
            ))
        return price

    def _physical_observations(self, tenor: int) -> List[_Observation]:
        observations = []
        for (maturity, t, moneyness), market_price in self.physical_lattice.entries():
            if t != tenor:
                continue
            u = self._underlying(self.physical_lattice, maturity, tenor)
            observations.append(_Observation(
                maturity, moneyness, "physical", market_price, self._weights["physical"],
                self._physical_pricer(u, u.forward + BASIS_POINT * moneyness),
            ))
        return observations

    def _physical_pricer(self, u: SwapUnderlying, strike: float) -> Callable[[float, float, float], float]:
        def price(alpha: float, nu: float, rho: float) -> float:
            vol = hagan_normal_vol(u.forward, strike, u.expiry, alpha, self.beta, rho, nu, self.displacement)
            return physical_swaption_value(u.forward, strike, u.expiry, u.annuity, vol, is_payer=True)
        return price

    # Solve
    def _calibrate_tenor(self, tenor: int, cube_name: str) -> TenorCalibrationResult:
        logger.info("Calibrating tenor %dM", tenor)
        observations = (
            self._cash_observations(self.payer_lattice, tenor, cube_name)
            + self._cash_observations(self.receiver_lattice, tenor, cube_name)
            + self._physical_observations(tenor)
        )
        observations = [o for o in observations if o.weight > 0]
        if not observations:
            raise SolverFailureError(tenor, "no observations for this tenor")

        maturities = sorted({o.maturity for o in observations})
        slot = {m: i for i, m in enumerate(maturities)}
        if len(observations) < 3 * len(maturities):
            logger.warning("Tenor %dM: %d observations for %d parameters", tenor, len(observations), 3 * len(maturities))

        lower = np.tile(LOWER_BOUNDS, len(maturities))
        upper = np.tile(UPPER_BOUNDS, len(maturities))
        x0 = np.concatenate([self.initial_guess(m, tenor) for m in maturities]).astype(float)
        x0 = np.clip(x0, lower + 1e-10, np.where(np.isfinite(upper), upper - 1e-10, upper))

        market = np.array([o.market_price for o in observations])
        weights = np.array([o.weight for o in observations])

        def residuals(x: np.ndarray) -> np.ndarray:
            params = x.reshape(-1, 3)
            try:
                model_prices = np.array([o.price(*params[slot[o.maturity]]) for o in observations])
            except (ValueError, ArithmeticError) as exc:
                raise SolverFailureError(tenor, f"residual evaluation failed: {exc}") from exc
            return weights * (model_prices - market)

        result = least_squares(
            residuals, x0, bounds=(lower, upper), method="trf", x_scale="jac",
            ftol=SOLVER_TOLERANCE, xtol=SOLVER_TOLERANCE, gtol=SOLVER_TOLERANCE,
            max_nfev=self._max_iterations,
        )

        if not np.all(np.isfinite(result.fun)):
            raise SolverFailureError(tenor, "non-finite residuals")
        rms = float(np.sqrt(np.mean(result.fun ** 2)))
        if rms > self._error_tolerance:
            raise SolverFailureError(
                tenor, f"no acceptable fit after {result.nfev} evaluations (rms={rms:.3e}): {result.message}"
            )

        fitted = result.x.reshape(-1, 3)
        logger.debug("Tenor %dM: status=%d nfev=%d rms=%.3e", tenor, result.status, result.nfev, rms)

        parameters = SabrTenorParameters.from_nodes(
            maturities=maturities,
            base_volatilities=fitted[:, 0],
            volvols=fitted[:, 1],
            rhos=fitted[:, 2],
            displacement=self.displacement,
            beta=self.beta,
            correlation_decay=self.correlation_decay,
            ibor_ois_decorrelation=self.ibor_ois_decorrelation,
        )
        return TenorCalibrationResult(
            tenor=tenor,
            parameters=parameters,
            rms_error=rms,
            evaluations=int(result.nfev),
            status=int(result.status),
            message=str(result.message),
            observations=len(observations),
        )

    def calibrate(self, name: str, tenors: Sequence[int], executor: Optional[Executor] = None) -> VolatilityCube:
        """
        Calibrate the cube for `tenors` (months).

        Args:
            name: Name of the resulting cube
            tenors: Swap tenors to calibrate
            executor: Optional executor to run the tenors on; by default a
                thread pool of `number_of_threads` workers is used

        Returns:
            VolatilityCube with one parameter set per tenor

        Raises:
            SolverFailureError: If any tenor fails (carries the tenor)
        """
        self._check_configurable()
        tenors = list(dict.fromkeys(tenors))
        if not tenors:
            raise ValueError("At least one tenor is required")

        self._state = CalibrationState.RUNNING
        logger.info("Calibrating cube '%s' for tenors %s", name, tenors)

        if executor is not None:
            outcomes = self._run(executor, name, tenors)
        else:
            with ThreadPoolExecutor(max_workers=min(self._number_of_threads, len(tenors))) as pool:
                outcomes = self._run(pool, name, tenors)

        for tenor in tenors:
            error = outcomes[tenor].exception()
            if error is not None:
                self._state = CalibrationState.FAILED
                logger.error("Calibration of cube '%s' failed for tenor %dM: %s", name, tenor, error)
                if isinstance(error, SolverFailureError):
                    raise error
                raise SolverFailureError(tenor, f"{type(error).__name__}: {error}") from error

        self._results = {tenor: outcomes[tenor].result() for tenor in tenors}
        self._state = CalibrationState.CALIBRATED
        logger.info("Calibrated cube '%s' (%d tenors)", name, len(tenors))
        return VolatilityCube(name, self.reference_date, {t: r.parameters for t, r in self._results.items()})

    def _run(self, executor: Executor, name: str, tenors: List[int]):
        futures = {tenor: executor.submit(self._calibrate_tenor, tenor, name) for tenor in tenors}
        wait(futures.values())
        return futures

    @property
    def results(self) -> Dict[int, TenorCalibrationResult]:
        return dict(self._results)

    @property
    def diagnostics(self) -> pd.DataFrame:
        """Per-tenor fit statistics of the last successful calibration."""
        columns = ["tenor", "maturities", "observations", "rms_error", "evaluations", "status", "message"]
        rows = [
            {
                "tenor": r.tenor,
                "maturities": list(r.parameters.maturities),
                "observations": r.observations,
                "rms_error": r.rms_error,
                "evaluations": r.evaluations,
                "status": r.status,
                "message": r.message,
            }
            for r in self._results.values()
        ]
        return pd.DataFrame(rows, columns=columns)


__all__ = [
    "CalibrationState",
    "TenorCalibrationResult",
    "SabrCubeCalibrator",
]
