"""
Crypto Investment Valuation Engine

Deterministic NPV, IRR, growth, risk and allocation analytics
synthesized into investment recommendations.
"""

__version__ = "1.0.0"
__author__ = "Crypto Valuation Engine Team"
__description__ = "Valuation and risk analytics engine for crypto investment analysis"

from valuation_engine.core.valuation_engine import (
    InvestmentValuationEngine,
    ValuationError,
    InvalidCashFlowError
)
from valuation_engine.core.recommendation import RecommendationSynthesizer, RecommendationSignals
from valuation_engine.models.config import ValuationEngineConfig
from valuation_engine.models.market_inputs import (
    InvestmentInputs,
    CoinSnapshot,
    PricePoint,
    PriceSeries,
    MarketConditions
)
from valuation_engine.models.valuation_data import (
    Action,
    Basket,
    BitcoinState,
    RecommendationResult,
    ValuationReport
)

__all__ = [
    "InvestmentValuationEngine",
    "ValuationError",
    "InvalidCashFlowError",
    "RecommendationSynthesizer",
    "RecommendationSignals",
    "ValuationEngineConfig",
    "InvestmentInputs",
    "CoinSnapshot",
    "PricePoint",
    "PriceSeries",
    "MarketConditions",
    "Action",
    "Basket",
    "BitcoinState",
    "RecommendationResult",
    "ValuationReport",
]
