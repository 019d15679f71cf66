"""
Quoting convention transforms for swaption lattices.

Provides:
- Quote tables -> lattice assembly
- Cash settled prices -> payer normal volatilities (and back)
- Cash to physical smile shift
- Physical settlement conversions between all quoting conventions

Strikes follow the lattice moneyness convention: payer strike F + m bp,
receiver strike F - m bp. A receiver at moneyness m and a payer at -m
share the strike K = F - m bp, and by put-call parity

    payer(K) - receiver(K) = A * (F - K) = A * m * 1e-4

which is how receiver quotes enter payer-quoted lattices.
"""

import logging
from datetime import date
from typing import Callable, Dict, Mapping, Optional, Tuple, TYPE_CHECKING

from .data.lattice import LatticeBuilder, LatticeMetadata, QuotingConvention, SwaptionLattice
from .data.quote_table import QuoteTable, TableConvention
from .exceptions import InvalidConventionError
from .options.base_models import (
    bachelier_call,
    bachelier_put,
    implied_vol_bachelier,
    implied_vol_shifted_black,
    shifted_black_call,
)
from .options.swaption import SwapUnderlying, build_underlying, cash_function
from .schedule import SchedulePrototype

if TYPE_CHECKING:
    from .market_model import MarketModel

logger = logging.getLogger(__name__)

BASIS_POINT = 1e-4

PRICE_CONVENTIONS = (QuotingConvention.PAYER_PRICE, QuotingConvention.RECEIVER_PRICE)


def convert_tables_to_lattice(
    tables: Mapping[int, QuoteTable],
    quoting_convention: QuotingConvention,
    reference_date: date,
    discount_curve_name: str,
    forward_curve_name: str,
    fix_schedule: SchedulePrototype,
    float_schedule: SchedulePrototype,
    displacement: float = 0.0
) -> SwaptionLattice:
    """
    Flatten one quote table per moneyness into a lattice.

    Args:
        tables: Moneyness (bp) -> table of that smile slice
        quoting_convention: Convention of the table values

    Returns:
        Lattice with one entry per populated table cell

    Raises:
        InvalidConventionError: If any table is not in MONTHS
    """
    for moneyness, table in tables.items():
        if table.convention != TableConvention.MONTHS:
            raise InvalidConventionError(
                table.convention, f"table '{table.name}' at moneyness {moneyness} must be in MONTHS"
            )

    metadata = LatticeMetadata(
        reference_date=reference_date,
        discount_curve_name=discount_curve_name,
        forward_curve_name=forward_curve_name,
        fix_schedule=fix_schedule,
        float_schedule=float_schedule,
        displacement=displacement,
    )
    builder = LatticeBuilder(quoting_convention, metadata)
    for moneyness, table in tables.items():
        for (maturity, tenor), value in table:
            builder.add(maturity, tenor, moneyness, value)
    return builder.build()


def convert_table_to_lattice(
    table: QuoteTable,
    quoting_convention: QuotingConvention,
    reference_date: date,
    discount_curve_name: str,
    forward_curve_name: str,
    fix_schedule: SchedulePrototype,
    float_schedule: SchedulePrototype,
    displacement: float = 0.0
) -> SwaptionLattice:
    """Single table (e.g. an ATM grid) as a lattice at moneyness 0."""
    return convert_tables_to_lattice(
        {0: table}, quoting_convention, reference_date, discount_curve_name,
        forward_curve_name, fix_schedule, float_schedule, displacement,
    )


def _underlying_lookup(lattice: SwaptionLattice, model: "MarketModel") -> Callable[[int, int], SwapUnderlying]:
    """Memoised (maturity, tenor) -> SwapUnderlying on the lattice's curves and schedules."""
    cache: Dict[Tuple[int, int], SwapUnderlying] = {}

    def lookup(maturity: int, tenor: int) -> SwapUnderlying:
        key = (maturity, tenor)
        if key not in cache:
            cache[key] = build_underlying(
                model, lattice.reference_date, maturity, tenor,
                lattice.fix_schedule, lattice.float_schedule,
                lattice.discount_curve_name, lattice.forward_curve_name,
            )
        return cache[key]

    return lookup


def convert_cash_lattice_to_normal_volatility(
    cash_lattice: SwaptionLattice,
    model: "MarketModel"
) -> SwaptionLattice:
    """
    Imply payer normal volatilities from cash settled prices.

    The cash annuity C(F) of the fixed leg takes the place of the physical
    annuity in the Bachelier formula. Receiver prices are turned into payer
    prices at the same strike by parity and recorded at negated moneyness.

    Raises:
        InvalidConventionError: If the lattice is not price quoted
        ImpliedVolatilityInversionError: If a price admits no volatility
    """
    convention = cash_lattice.quoting_convention
    if convention not in PRICE_CONVENTIONS:
        raise InvalidConventionError(convention, "cash conversion needs PAYER_PRICE or RECEIVER_PRICE")
    is_payer = convention == QuotingConvention.PAYER_PRICE

    underlying = _underlying_lookup(cash_lattice, model)
    builder = LatticeBuilder(QuotingConvention.PAYER_VOL_NORMAL, cash_lattice.metadata)

    for (maturity, tenor, moneyness), price in cash_lattice.entries():
        u = underlying(maturity, tenor)
        annuity = cash_function(u.forward, u.fix_schedule)
        if is_payer:
            strike = u.forward + BASIS_POINT * moneyness
            output_moneyness = moneyness
        else:
            strike = u.forward - BASIS_POINT * moneyness
            price = price + BASIS_POINT * moneyness * annuity
            output_moneyness = -moneyness

        vol = implied_vol_bachelier(price, u.forward, strike, u.expiry, annuity, is_call=True)
        builder.add(maturity, tenor, output_moneyness, vol)

    logger.debug("Converted %d cash %s quotes to normal volatilities", len(builder), convention.name)
    return builder.build()


def convert_normal_volatility_to_cash_price(
    lattice: SwaptionLattice,
    model: "MarketModel",
    convention: QuotingConvention = QuotingConvention.PAYER_PRICE
) -> SwaptionLattice:
    """
    Inverse of `convert_cash_lattice_to_normal_volatility`.

    Raises:
        InvalidConventionError: If the input is not PAYER_VOL_NORMAL or the
            target is not a price convention
    """
    if lattice.quoting_convention != QuotingConvention.PAYER_VOL_NORMAL:
        raise InvalidConventionError(lattice.quoting_convention, "expected a PAYER_VOL_NORMAL lattice")
    if convention not in PRICE_CONVENTIONS:
        raise InvalidConventionError(convention, "target must be PAYER_PRICE or RECEIVER_PRICE")

    underlying = _underlying_lookup(lattice, model)
    builder = LatticeBuilder(convention, lattice.metadata)

    for (maturity, tenor, moneyness), vol in lattice.entries():
        u = underlying(maturity, tenor)
        annuity = cash_function(u.forward, u.fix_schedule)
        price = bachelier_call(u.forward, u.forward + BASIS_POINT * moneyness, u.expiry, vol, annuity)
        if convention == QuotingConvention.PAYER_PRICE:
            builder.add(maturity, tenor, moneyness, price)
        else:
            receiver_moneyness = -moneyness
            builder.add(maturity, tenor, receiver_moneyness, price - BASIS_POINT * receiver_moneyness * annuity)

    return builder.build()


def shift_cash_to_physical_smile(
    model: "MarketModel",
    physical_lattice: SwaptionLattice,
    *cash_lattices: SwaptionLattice
) -> SwaptionLattice:
    """
    Transport cash smiles onto the physical ATM level.

    For every non-ATM cash point with an ATM anchor in both the cash and the
    physical lattice:

        physical[m] = physical[0] + cash[m] - cash[0]

    Points missing either anchor are skipped. Cash lattices are folded in
    order, each appending to the running physical lattice.

    Returns:
        PAYER_VOL_NORMAL physical lattice spanning the smile

    Raises:
        LatticeCollisionError: If a shifted point already exists
    """
    result = physical_lattice.convert(QuotingConvention.PAYER_VOL_NORMAL, model)

    for cash_lattice in cash_lattices:
        if cash_lattice.quoting_convention != QuotingConvention.PAYER_VOL_NORMAL:
            cash_lattice = convert_cash_lattice_to_normal_volatility(cash_lattice, model)

        builder = LatticeBuilder(QuotingConvention.PAYER_VOL_NORMAL, result.metadata)
        skipped = 0
        for (maturity, tenor, moneyness), cash_vol in cash_lattice.entries():
            if moneyness == 0:
                continue
            cash_atm = cash_lattice.get(maturity, tenor, 0)
            physical_atm = result.get(maturity, tenor, 0)
            if cash_atm is None or physical_atm is None:
                logger.debug("No ATM anchor for maturity=%s tenor=%s, skipping moneyness %s",
                             maturity, tenor, moneyness)
                skipped += 1
                continue
            builder.add(maturity, tenor, moneyness, physical_atm + cash_vol - cash_atm)

        logger.debug("Shifted %d smile points onto the physical lattice (%d skipped)", len(builder), skipped)
        result = result.append(builder.build())

    return result


def _to_payer_price(lattice: SwaptionLattice, model: "MarketModel") -> SwaptionLattice:
    convention = lattice.quoting_convention
    underlying = _underlying_lookup(lattice, model)
    builder = LatticeBuilder(QuotingConvention.PAYER_PRICE, lattice.metadata)

    for (maturity, tenor, moneyness), value in lattice.entries():
        u = underlying(maturity, tenor)
        if convention == QuotingConvention.PAYER_VOL_NORMAL:
            price = bachelier_call(u.forward, u.forward + BASIS_POINT * moneyness, u.expiry, value, u.annuity)
            builder.add(maturity, tenor, moneyness, price)
        elif convention == QuotingConvention.PAYER_VOL_LOGNORMAL:
            price = shifted_black_call(u.forward, u.forward + BASIS_POINT * moneyness, u.expiry, value,
                                       lattice.displacement, u.annuity)
            builder.add(maturity, tenor, moneyness, price)
        elif convention == QuotingConvention.RECEIVER_VOL_NORMAL:
            receiver = bachelier_put(u.forward, u.forward - BASIS_POINT * moneyness, u.expiry, value, u.annuity)
            builder.add(maturity, tenor, -moneyness, receiver + BASIS_POINT * moneyness * u.annuity)
        elif convention == QuotingConvention.RECEIVER_PRICE:
            builder.add(maturity, tenor, -moneyness, value + BASIS_POINT * moneyness * u.annuity)
        else:
            raise InvalidConventionError(convention, "unsupported source convention")

    return builder.build()


def _from_payer_price(lattice: SwaptionLattice, target: QuotingConvention, model: "MarketModel") -> SwaptionLattice:
    underlying = _underlying_lookup(lattice, model)
    builder = LatticeBuilder(target, lattice.metadata)

    for (maturity, tenor, moneyness), price in lattice.entries():
        u = underlying(maturity, tenor)
        strike = u.forward + BASIS_POINT * moneyness
        if target == QuotingConvention.PAYER_VOL_NORMAL:
            vol = implied_vol_bachelier(price, u.forward, strike, u.expiry, u.annuity, is_call=True)
            builder.add(maturity, tenor, moneyness, vol)
        elif target == QuotingConvention.PAYER_VOL_LOGNORMAL:
            vol = implied_vol_shifted_black(price, u.forward, strike, u.expiry, lattice.displacement,
                                            u.annuity, is_call=True)
            builder.add(maturity, tenor, moneyness, vol)
        elif target in (QuotingConvention.RECEIVER_PRICE, QuotingConvention.RECEIVER_VOL_NORMAL):
            receiver_moneyness = -moneyness
            receiver = price - BASIS_POINT * receiver_moneyness * u.annuity
            if target == QuotingConvention.RECEIVER_PRICE:
                builder.add(maturity, tenor, receiver_moneyness, receiver)
            else:
                vol = implied_vol_bachelier(receiver, u.forward, strike, u.expiry, u.annuity, is_call=False)
                builder.add(maturity, tenor, receiver_moneyness, vol)
        else:
            raise InvalidConventionError(target, "unsupported target convention")

    return builder.build()


def convert_lattice(
    lattice: SwaptionLattice,
    target: QuotingConvention,
    model: Optional["MarketModel"]
) -> SwaptionLattice:
    """
    Convert a physically settled lattice to `target`, going through
    payer prices.

    Raises:
        ValueError: If a conversion is needed and no model is given
        ImpliedVolatilityInversionError: If a price admits no volatility
    """
    if target == lattice.quoting_convention:
        return lattice
    if model is None:
        raise ValueError(
            f"A market model is required to convert {lattice.quoting_convention.name} to {target.name}"
        )

    payer_prices = lattice
    if lattice.quoting_convention != QuotingConvention.PAYER_PRICE:
        payer_prices = _to_payer_price(lattice, model)
    if target == QuotingConvention.PAYER_PRICE:
        return payer_prices
    return _from_payer_price(payer_prices, target, model)


__all__ = [
    "convert_tables_to_lattice",
    "convert_table_to_lattice",
    "convert_cash_lattice_to_normal_volatility",
    "convert_normal_volatility_to_cash_price",
    "shift_cash_to_physical_smile",
    "convert_lattice",
]
