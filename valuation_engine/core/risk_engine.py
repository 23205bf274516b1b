"""Risk engine: beta, Sharpe, VaR and the composite 1-5 risk factor."""

import math
from typing import Dict, Optional, Sequence
import numpy as np
import structlog
from scipy import stats

from valuation_engine.models.valuation_data import Basket, RiskAssessment, RiskModel, VaRMethod
from valuation_engine.utils.statistics import covariance, variance, mean, standard_deviation

logger = structlog.get_logger(__name__)

NEUTRAL_BETA = 1.0
MIN_RISK_FACTOR = 1
MAX_RISK_FACTOR = 5
MIN_DISCOUNT_RATE = 0.005
MAX_DISCOUNT_RATE = 0.5

BASE_RISK_SCORES = {
    Basket.BITCOIN: 3,
    Basket.BLUE_CHIP: 4,
    Basket.SMALL_CAP: 5,
}

DEFAULT_BETA_RISK_WEIGHTS = {
    'beta': 0.40,
    'volatility': 0.30,
    'basket': 0.20,
    'fundamentals': 0.10,
}


def _finite(value: Optional[float]) -> Optional[float]:
    """Return value when it is a finite number, else None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def beta(asset_returns: Sequence[float], market_returns: Sequence[float]) -> float:
    """
    Calculate beta as cov(asset, market) / var(market).

    Returns:
        Beta, or neutral 1.0 when series are mismatched, shorter than two
        points, or the market has zero variance
    """
    if len(asset_returns) != len(market_returns) or len(market_returns) < 2:
        return NEUTRAL_BETA

    market_variance = variance(market_returns)
    if market_variance == 0:
        return NEUTRAL_BETA

    result = covariance(asset_returns, market_returns) / market_variance
    return result if math.isfinite(result) else NEUTRAL_BETA


def sharpe_ratio(portfolio_return: float, risk_free_rate: float, std_dev: float) -> float:
    """(return - risk free) / stddev; 0.0 when stddev is zero."""
    if not std_dev or not math.isfinite(std_dev):
        return 0.0
    return (portfolio_return - risk_free_rate) / std_dev


def value_at_risk(portfolio_value: float,
                  returns: Sequence[float],
                  confidence: float = 0.95,
                  method: VaRMethod = VaRMethod.HISTORICAL) -> float:
    """
    Estimate Value-at-Risk as a positive loss amount.

    Historical VaR takes the return at index floor((1 - confidence) * n) of
    the ascending-sorted returns. Parametric VaR uses the normal quantile of
    the return distribution.

    Args:
        portfolio_value: Position value
        returns: Period returns
        confidence: Confidence level
        method: Estimation method

    Returns:
        Loss at the requested confidence, 0.0 for empty input or when
        the quantile return is a gain
    """
    clean = [r for r in returns if math.isfinite(r)]
    if not clean:
        return 0.0

    if method == VaRMethod.PARAMETRIC:
        quantile_return = mean(clean) + standard_deviation(clean) * float(stats.norm.ppf(1 - confidence))
    else:
        ordered = sorted(clean)
        index = min(int(math.floor((1 - confidence) * len(ordered))), len(ordered) - 1)
        quantile_return = ordered[max(index, 0)]

    # A positive quantile return is a gain, not a loss
    return max(0.0, -quantile_return * portfolio_value)


def max_drawdown(prices: Sequence[float]) -> float:
    """Largest peak-to-trough decline as a fraction of the peak."""
    if len(prices) < 2:
        return 0.0

    path = np.asarray(prices, dtype=float)
    peaks = np.maximum.accumulate(path)
    with np.errstate(divide='ignore', invalid='ignore'):
        drawdowns = np.where(peaks > 0, (peaks - path) / peaks, 0.0)
    return float(np.nanmax(drawdowns))


def adjust_discount_rate_for_fed(base_rate: float,
                                 fed_rate_change: float,
                                 sensitivity: float = 2.0,
                                 basket_multiplier: float = 1.0) -> float:
    """
    Shift a discount rate proportionally to a Fed rate change.

    Args:
        base_rate: Discount rate as a decimal
        fed_rate_change: Signed Fed change in percentage points
        sensitivity: Crypto sensitivity to the Fed move
        basket_multiplier: Basket-specific amplification

    Returns:
        Adjusted rate clamped to [0.5%, 50%]
    """
    change = _finite(fed_rate_change) or 0.0
    adjusted = base_rate + (change / 100) * sensitivity * basket_multiplier
    return _clamp(adjusted, MIN_DISCOUNT_RATE, MAX_DISCOUNT_RATE)


def _onchain_and_macro_adjustments(basket: Basket,
                                   aviv_ratio: Optional[float],
                                   active_supply: Optional[float],
                                   vaulted_supply: Optional[float],
                                   smart_money_activity: Optional[bool],
                                   fed_rate_change: Optional[float]) -> Dict[str, float]:
    adjustments = {}

    if basket == Basket.BITCOIN and aviv_ratio is not None:
        if aviv_ratio > 2.5:
            adjustments['aviv_overbought'] = 1.0
        elif aviv_ratio < 0.55:
            adjustments['aviv_oversold'] = -1.0

    if active_supply is not None and active_supply > 50:
        adjustments['active_supply'] = 1.0
    if vaulted_supply is not None and vaulted_supply > 70:
        adjustments['vaulted_supply'] = -1.0

    if smart_money_activity:
        adjustments['smart_money'] = 1.0

    if fed_rate_change is not None:
        if fed_rate_change > 0:
            adjustments['fed_hike'] = 0.5
        elif fed_rate_change < 0:
            adjustments['fed_cut'] = -0.5

    return adjustments


def _quantize(raw_score: float) -> int:
    """Clamp to [1, 5] and round half up."""
    clamped = _clamp(raw_score, MIN_RISK_FACTOR, MAX_RISK_FACTOR)
    return int(math.floor(clamped + 0.5))


def assess_risk(basket: Basket,
                volatility: Optional[float],
                fundamentals_score: Optional[float],
                aviv_ratio: Optional[float] = None,
                active_supply: Optional[float] = None,
                vaulted_supply: Optional[float] = None,
                fed_rate_change: Optional[float] = None,
                smart_money_activity: Optional[bool] = None,
                beta_value: Optional[float] = None,
                model: RiskModel = RiskModel.BASIC,
                weights: Optional[Dict[str, float]] = None) -> RiskAssessment:
    """
    Score risk on a 1-5 scale with a breakdown of contributions.

    The basic model starts from the basket base score (Bitcoin 3, BlueChip 4,
    SmallCap 5) and applies additive adjustments for fundamentals,
    volatility, on-chain cointime signals and Fed moves. The beta-weighted
    model blends beta, volatility, basket and fundamentals into a 0-100
    composite, maps it to 1-5 and then applies the same on-chain and macro
    adjustments. Non-finite inputs are treated as absent and volatility at
    or below zero means insufficient data.
    """
    volatility = _finite(volatility)
    if volatility is not None and volatility <= 0:
        volatility = None
    fundamentals_score = _finite(fundamentals_score)
    aviv_ratio = _finite(aviv_ratio)
    active_supply = _finite(active_supply)
    vaulted_supply = _finite(vaulted_supply)
    fed_rate_change = _finite(fed_rate_change)
    beta_value = _finite(beta_value)

    base_score = float(BASE_RISK_SCORES.get(basket, 3))
    adjustments = _onchain_and_macro_adjustments(
        basket, aviv_ratio, active_supply, vaulted_supply,
        smart_money_activity, fed_rate_change
    )
    composite_score = None

    if model == RiskModel.BETA_WEIGHTED:
        weights = weights or DEFAULT_BETA_RISK_WEIGHTS
        components = {
            'beta': _clamp((beta_value if beta_value is not None else NEUTRAL_BETA) / 2.5 * 100, 0, 100),
            'volatility': _clamp(volatility, 0, 100) if volatility is not None else 50.0,
            'basket': (base_score - 1) / 4 * 100,
            'fundamentals': _clamp((10 - fundamentals_score) * 10, 0, 100)
            if fundamentals_score is not None else 50.0,
        }
        composite_score = sum(weights.get(name, 0.0) * score for name, score in components.items())
        start_score = 1 + composite_score / 25
    else:
        start_score = base_score

        if fundamentals_score is not None:
            if basket == Basket.BLUE_CHIP and fundamentals_score > 8:
                adjustments['strong_fundamentals'] = -1.0
            elif basket == Basket.SMALL_CAP and fundamentals_score > 9:
                adjustments['strong_fundamentals'] = -1.0
            elif basket == Basket.SMALL_CAP and fundamentals_score < 5:
                adjustments['weak_fundamentals'] = 1.0

        if volatility is not None:
            if volatility > 80:
                adjustments['high_volatility'] = 1.0
            elif volatility < 30:
                adjustments['low_volatility'] = -1.0

    raw_score = start_score + sum(adjustments.values())
    factor = _quantize(raw_score)

    logger.debug("Risk assessed",
                 basket=basket.value,
                 model=model.value,
                 raw_score=raw_score,
                 risk_factor=factor)

    return RiskAssessment(
        risk_factor=factor,
        raw_score=raw_score,
        model=model,
        base_score=start_score,
        composite_score=composite_score,
        adjustments=adjustments
    )


def risk_factor(basket: Basket,
                volatility: Optional[float],
                fundamentals_score: Optional[float],
                aviv_ratio: Optional[float] = None,
                active_supply: Optional[float] = None,
                vaulted_supply: Optional[float] = None,
                fed_rate_change: Optional[float] = None,
                smart_money_activity: Optional[bool] = None,
                beta_value: Optional[float] = None,
                model: RiskModel = RiskModel.BASIC) -> int:
    """Integer risk factor in [1, 5]; see assess_risk."""
    return assess_risk(
        basket, volatility, fundamentals_score, aviv_ratio, active_supply,
        vaulted_supply, fed_rate_change, smart_money_activity, beta_value, model
    ).risk_factor
