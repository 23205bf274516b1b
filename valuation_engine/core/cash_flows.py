"""Cash-flow projection for a single coin position."""

import math
import warnings
from typing import List, Sequence
import structlog

from valuation_engine.models.valuation_data import CashFlowModel, CashFlowProjection

logger = structlog.get_logger(__name__)


def _interpolated_price(current_price: float, expected_price: float,
                        year: int, horizon: int) -> float:
    """Geometric interpolation between current and expected price."""
    if expected_price <= 0:
        return 0.0
    return current_price * (expected_price / current_price) ** (year / horizon)


def _project_compounding(amount: float, expected_price: float, current_price: float,
                         horizon: int, yield_rate: float) -> CashFlowProjection:
    quantity = amount / current_price
    balance = quantity
    cash_flows = [-amount]
    balances = [quantity]
    prices = [current_price]

    for year in range(1, horizon):
        reward = balance * yield_rate
        balance += reward
        price = _interpolated_price(current_price, expected_price, year, horizon)
        cash_flows.append(reward * price)
        balances.append(balance)
        prices.append(price)

    # Final year's reward accrues before the whole balance is sold
    balance += balance * yield_rate
    cash_flows.append(balance * expected_price)
    balances.append(balance)
    prices.append(expected_price)

    return CashFlowProjection(
        cash_flows=cash_flows,
        coin_balances=balances,
        prices=prices,
        initial_quantity=quantity,
        final_coin_balance=balance,
        model=CashFlowModel.COMPOUNDING
    )


def _project_flat(amount: float, expected_price: float, current_price: float,
                  horizon: int, yield_rate: float) -> CashFlowProjection:
    warnings.warn(
        "The flat cash flow model understates yield-bearing returns; use CashFlowModel.COMPOUNDING",
        DeprecationWarning,
        stacklevel=3
    )

    quantity = amount / current_price
    flat_reward = amount * yield_rate
    cash_flows = [-amount] + [flat_reward] * (horizon - 1)
    cash_flows.append(quantity * expected_price + flat_reward)

    prices = [_interpolated_price(current_price, expected_price, year, horizon)
              for year in range(horizon)]
    prices.append(expected_price)

    return CashFlowProjection(
        cash_flows=cash_flows,
        coin_balances=[quantity] * (horizon + 1),
        prices=prices,
        initial_quantity=quantity,
        final_coin_balance=quantity,
        model=CashFlowModel.FLAT
    )


def project_cash_flows(investment_amount: float,
                       expected_price: float,
                       current_price: float,
                       horizon_years: int,
                       staking_yield_pct: float = 0.0,
                       model: CashFlowModel = CashFlowModel.COMPOUNDING) -> CashFlowProjection:
    """
    Project the cash flows of buying, staking and finally selling a coin.

    The initial investment buys ``amount / current_price`` coins. Under the
    compounding model each intermediate year's staking reward is added to
    the coin balance and its dollar value realized at the geometrically
    interpolated price; the terminal year liquidates the full compounded
    balance at the expected price.

    Degenerate inputs never raise: the horizon is coerced to at least one
    year and a non-positive amount or price yields a zero-quantity projection.

    Args:
        investment_amount: Dollars invested at t=0
        expected_price: Price at the horizon
        current_price: Price at t=0
        horizon_years: Holding period in years
        staking_yield_pct: Annual staking yield (percent)
        model: Cash flow model

    Returns:
        CashFlowProjection with ``horizon + 1`` cash flows
    """
    horizon = max(1, int(horizon_years))
    yield_pct = staking_yield_pct if staking_yield_pct and math.isfinite(staking_yield_pct) else 0.0
    yield_rate = max(0.0, yield_pct) / 100

    if (investment_amount <= 0 or current_price <= 0
            or not math.isfinite(current_price) or not math.isfinite(expected_price)):
        logger.warning("Degenerate cash flow inputs, projecting zero quantity",
                       investment_amount=investment_amount,
                       current_price=current_price,
                       expected_price=expected_price)
        return CashFlowProjection(
            cash_flows=[-investment_amount] + [0.0] * horizon,
            coin_balances=[0.0] * (horizon + 1),
            prices=[0.0] * (horizon + 1),
            initial_quantity=0.0,
            final_coin_balance=0.0,
            model=model
        )

    if model == CashFlowModel.FLAT:
        return _project_flat(investment_amount, expected_price, current_price, horizon, yield_rate)
    return _project_compounding(investment_amount, expected_price, current_price, horizon, yield_rate)


def generate_cash_flows(investment_amount: float,
                        expected_price: float,
                        current_price: float,
                        horizon_years: int,
                        staking_yield_pct: float = 0.0,
                        model: CashFlowModel = CashFlowModel.COMPOUNDING) -> List[float]:
    """Cash-flow series only; see project_cash_flows."""
    return project_cash_flows(
        investment_amount, expected_price, current_price,
        horizon_years, staking_yield_pct, model
    ).cash_flows


def validate_cash_flows(cash_flows: Sequence[float]) -> bool:
    """Check that a series has an outlay first, at least one period and only finite values."""
    if len(cash_flows) < 2:
        return False
    if not all(math.isfinite(cf) for cf in cash_flows):
        return False
    return cash_flows[0] < 0
