"""Statistical utility functions for valuation and risk analysis."""

import math
from typing import List, Sequence, Tuple
import numpy as np

from valuation_engine.models.market_inputs import PriceSeries


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray([float(v) for v in values], dtype=float)


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for empty input."""
    if not values:
        return 0.0
    return float(np.mean(_as_array(values)))


def standard_deviation(values: Sequence[float]) -> float:
    """
    Calculate sample standard deviation (n-1 denominator).

    Args:
        values: Observations

    Returns:
        Sample standard deviation, 0.0 for fewer than two values
    """
    if len(values) < 2:
        return 0.0

    std = float(np.std(_as_array(values), ddof=1))
    return std if math.isfinite(std) else 0.0


def variance(values: Sequence[float]) -> float:
    """Population variance; 0.0 for fewer than two values."""
    if len(values) < 2:
        return 0.0

    var = float(np.var(_as_array(values)))
    return var if math.isfinite(var) else 0.0


def covariance(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Population covariance of two paired series.

    Mismatched lengths or fewer than two points yield 0.0.
    """
    if len(a) != len(b) or len(a) < 2:
        return 0.0

    x = _as_array(a)
    y = _as_array(b)
    cov = float(np.mean((x - x.mean()) * (y - y.mean())))
    return cov if math.isfinite(cov) else 0.0


def calculate_returns(prices: Sequence[float]) -> List[float]:
    """
    Calculate simple period-over-period returns.

    Periods whose previous price is non-positive or non-finite are skipped.
    """
    returns = []
    for previous, current in zip(prices, prices[1:]):
        previous = float(previous)
        current = float(current)
        if previous <= 0 or not math.isfinite(previous) or not math.isfinite(current):
            continue
        returns.append((current - previous) / previous)
    return returns


def annualized_volatility(prices: Sequence[float], periods_per_year: int = 365) -> float:
    """
    Calculate annualized volatility from a price path.

    Args:
        prices: Ordered prices
        periods_per_year: Observations per year used for scaling

    Returns:
        Annualized volatility as a percentage. 0.0 means insufficient data,
        not zero risk.
    """
    if len(prices) < 2 or periods_per_year <= 0:
        return 0.0

    returns = calculate_returns(prices)
    return standard_deviation(returns) * math.sqrt(periods_per_year) * 100


def align_returns(asset_prices: PriceSeries,
                  market_prices: PriceSeries) -> Tuple[List[float], List[float]]:
    """
    Pair two price series on their common timestamps and derive returns.

    Returns:
        Tuple of (asset_returns, market_returns) with equal lengths
    """
    market_by_time = {p.timestamp: p.price for p in market_prices.points}
    asset_aligned = []
    market_aligned = []

    for point in asset_prices.points:
        if point.timestamp in market_by_time:
            asset_aligned.append(point.price)
            market_aligned.append(market_by_time[point.timestamp])

    # Prices are validated positive, so both return series keep equal length
    return calculate_returns(asset_aligned), calculate_returns(market_aligned)
