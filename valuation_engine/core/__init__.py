"""Core valuation and risk components."""

from valuation_engine.core.valuation_engine import (
    InvestmentValuationEngine,
    ValuationError,
    InvalidCashFlowError
)
from valuation_engine.core.recommendation import (
    RecommendationSynthesizer,
    RecommendationSignals,
    synthesize_recommendation
)

__all__ = [
    "InvestmentValuationEngine",
    "ValuationError",
    "InvalidCashFlowError",
    "RecommendationSynthesizer",
    "RecommendationSignals",
    "synthesize_recommendation",
]
