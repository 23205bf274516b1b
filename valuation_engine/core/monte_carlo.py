"""Monte Carlo projection of terminal position value."""

import math
from typing import Optional
import numpy as np
import structlog

from valuation_engine.models.valuation_data import MonteCarloProjection

logger = structlog.get_logger(__name__)


def _empty_projection(simulations: int, seed: Optional[int]) -> MonteCarloProjection:
    return MonteCarloProjection(
        expected_value=0.0,
        lower_bound=0.0,
        upper_bound=0.0,
        value_at_risk=0.0,
        probability_of_loss=0.0,
        max_drawdown=0.0,
        simulations=max(0, simulations),
        seed=seed
    )


def _return_scale(aviv_ratio: Optional[float], vaulted_supply: Optional[float]) -> float:
    """Cointime bias applied to every simulated step return."""
    scale = 1.0
    if aviv_ratio is not None and math.isfinite(aviv_ratio):
        if aviv_ratio < 0.8:
            scale *= 1.2
        elif aviv_ratio > 2.0:
            scale *= 0.8
    if vaulted_supply is not None and math.isfinite(vaulted_supply) and vaulted_supply > 70:
        scale *= 0.9
    return scale


def simulate_projection(initial_investment: float,
                        cagr_pct: float,
                        volatility_pct: float,
                        horizon_years: int,
                        aviv_ratio: Optional[float] = None,
                        vaulted_supply: Optional[float] = None,
                        simulations: int = 1000,
                        steps_per_year: int = 52,
                        seed: Optional[int] = None) -> MonteCarloProjection:
    """
    Simulate terminal position values with a geometric random walk.

    Step returns are drawn from a normal distribution whose mean and
    standard deviation are the annual CAGR and volatility scaled to the
    step length. Undervalued assets (AVIV < 0.8) have step returns scaled
    by 1.2, overvalued ones (AVIV > 2.0) by 0.8, and a vaulted supply above
    70% scales them by 0.9.

    Args:
        initial_investment: Position value at t=0
        cagr_pct: Expected annual growth (percent)
        volatility_pct: Annualized volatility (percent)
        horizon_years: Simulation horizon
        aviv_ratio: Optional AVIV ratio
        vaulted_supply: Optional vaulted supply (percent)
        simulations: Number of paths
        steps_per_year: Steps per simulated year
        seed: Random seed; identical seeds give identical projections

    Returns:
        MonteCarloProjection with p5/p95 bounds and loss metrics
    """
    if initial_investment <= 0 or horizon_years <= 0 or simulations <= 0 or steps_per_year <= 0:
        return _empty_projection(simulations, seed)

    growth = cagr_pct / 100 if math.isfinite(cagr_pct) else 0.0
    volatility = max(volatility_pct, 0.0) / 100 if math.isfinite(volatility_pct) else 0.0

    step_mean = growth / steps_per_year
    step_std = volatility / math.sqrt(steps_per_year)
    total_steps = int(horizon_years * steps_per_year)

    rng = np.random.default_rng(seed)
    step_returns = rng.normal(step_mean, step_std, size=(simulations, total_steps))
    step_returns *= _return_scale(aviv_ratio, vaulted_supply)

    # A step cannot lose more than the whole position
    growth_factors = np.maximum(1.0 + step_returns, 0.0)
    paths = initial_investment * np.cumprod(growth_factors, axis=1)
    paths = np.hstack([np.full((simulations, 1), float(initial_investment)), paths])

    final_values = np.sort(paths[:, -1])
    lower = float(final_values[min(int(math.floor(simulations * 0.05)), simulations - 1)])
    upper = float(final_values[min(int(math.floor(simulations * 0.95)), simulations - 1)])

    peaks = np.maximum.accumulate(paths, axis=1)
    drawdowns = (peaks - paths) / peaks

    projection = MonteCarloProjection(
        expected_value=float(np.mean(final_values)),
        lower_bound=lower,
        upper_bound=upper,
        value_at_risk=initial_investment - lower,
        probability_of_loss=float(np.mean(final_values < initial_investment)),
        max_drawdown=float(np.max(drawdowns)),
        simulations=simulations,
        seed=seed
    )

    logger.debug("Monte Carlo projection completed",
                 simulations=simulations,
                 steps=total_steps,
                 expected_value=projection.expected_value,
                 probability_of_loss=projection.probability_of_loss)

    return projection
