"""Utility functions for the valuation engine."""

from valuation_engine.utils.statistics import (
    mean,
    standard_deviation,
    variance,
    covariance,
    calculate_returns,
    annualized_volatility,
    align_returns
)
from valuation_engine.utils.logging import setup_logging, get_logger

__all__ = [
    "mean",
    "standard_deviation",
    "variance",
    "covariance",
    "calculate_returns",
    "annualized_volatility",
    "align_returns",
    "setup_logging",
    "get_logger",
]
