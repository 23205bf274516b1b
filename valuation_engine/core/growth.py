"""Growth metrics: CAGR, ROI and expected price projection."""

import math
from typing import Optional, Sequence
import structlog

from valuation_engine.models.valuation_data import Basket, BitcoinState, ReturnBreakdown

logger = structlog.get_logger(__name__)

DEFAULT_GROWTH_PCT = 20.0
MIN_GROWTH_RATE = -0.8
MAX_GROWTH_RATE = 3.0
# Ceiling on price appreciation over the whole horizon
MAX_PRICE_MULTIPLE = 1e100

MARKET_MULTIPLIERS = {
    BitcoinState.BULLISH: 1.3,
    BitcoinState.NEUTRAL: 0.8,
    BitcoinState.BEARISH: 0.4,
}

BASKET_GROWTH_MULTIPLIERS = {
    Basket.BITCOIN: 1.0,
    Basket.BLUE_CHIP: 1.2,
    Basket.SMALL_CAP: 1.5,
}


def cagr(begin_value: float, end_value: float, periods: float) -> float:
    """
    Calculate compound annual growth rate.

    Args:
        begin_value: Value at the start
        end_value: Value at the end
        periods: Elapsed periods (years)

    Returns:
        CAGR as a percentage, 0.0 when any argument is non-positive
    """
    if begin_value <= 0 or end_value <= 0 or periods <= 0:
        return 0.0

    return ((end_value / begin_value) ** (1 / periods) - 1) * 100


def roi(begin_value: float, end_value: float) -> float:
    """Simple percentage change; 0.0 when begin is non-positive."""
    if begin_value <= 0:
        return 0.0
    return (end_value - begin_value) / begin_value * 100


def project_expected_price(current_price: float,
                           cagr_pct: Optional[float],
                           horizon_years: int,
                           bitcoin_state: BitcoinState = BitcoinState.NEUTRAL,
                           basket: Basket = Basket.BITCOIN,
                           fed_rate_change: float = 0.0,
                           beta: Optional[float] = None) -> float:
    """
    Project the price at the end of the horizon from historical growth.

    Historical CAGR (20% when unknown) is scaled by the Bitcoin market
    state, shrunk by rate hikes and scaled per basket. When beta is given
    the market and Fed effects are amplified by it. Growth is bounded to
    [-80%, +300%] per year and the total multiple to MAX_PRICE_MULTIPLE.

    Args:
        current_price: Current price
        cagr_pct: Historical CAGR in percent, or None
        horizon_years: Projection horizon
        bitcoin_state: Bitcoin market state
        basket: Coin basket
        fed_rate_change: Signed Fed rate change in percentage points
        beta: Optional systematic risk used to scale market effects

    Returns:
        Expected price at the horizon
    """
    if current_price <= 0:
        return 0.0

    growth_pct = cagr_pct if cagr_pct is not None and math.isfinite(cagr_pct) else DEFAULT_GROWTH_PCT
    growth_rate = growth_pct / 100

    market_multiplier = MARKET_MULTIPLIERS[bitcoin_state]
    if beta is not None:
        market_multiplier = 1 + (market_multiplier - 1) * beta
    growth_rate *= market_multiplier

    if fed_rate_change > 0:
        fed_impact = fed_rate_change * 0.1 * (beta if beta is not None else 1.0)
        growth_rate *= (1 - fed_impact)

    growth_rate *= BASKET_GROWTH_MULTIPLIERS.get(basket, 1.0)
    growth_rate = max(MIN_GROWTH_RATE, min(MAX_GROWTH_RATE, growth_rate))

    horizon = max(1, int(horizon_years))
    log_multiple = min(horizon * math.log1p(growth_rate), math.log(MAX_PRICE_MULTIPLE))
    expected_price = current_price * math.exp(log_multiple)

    logger.debug("Projected expected price",
                 current_price=current_price,
                 growth_rate=growth_rate,
                 horizon=horizon,
                 expected_price=expected_price)

    return expected_price


def return_breakdown(investment_amount: float,
                     current_price: float,
                     expected_price: float,
                     cash_flows: Sequence[float],
                     horizon_years: int) -> ReturnBreakdown:
    """
    Split growth into price appreciation and staking contribution.

    Total return counts every positive-period cash flow received.
    """
    if investment_amount <= 0 or current_price <= 0:
        return ReturnBreakdown(price_cagr=0.0, total_return_cagr=0.0,
                               price_roi=0.0, total_roi=0.0, staking_roi=0.0)

    quantity = investment_amount / current_price
    price_end_value = quantity * expected_price
    total_received = sum(cash_flows[1:])

    price_roi = roi(investment_amount, price_end_value)
    total_roi = roi(investment_amount, total_received)

    return ReturnBreakdown(
        price_cagr=cagr(investment_amount, price_end_value, horizon_years),
        total_return_cagr=cagr(investment_amount, total_received, horizon_years),
        price_roi=price_roi,
        total_roi=total_roi,
        staking_roi=total_roi - price_roi
    )
