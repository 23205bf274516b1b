"""Data models for the valuation engine."""

from valuation_engine.models.config import ValuationEngineConfig
from valuation_engine.models.market_inputs import (
    InvestmentInputs,
    CoinSnapshot,
    PricePoint,
    PriceSeries,
    MarketConditions
)
from valuation_engine.models.valuation_data import (
    Basket,
    BitcoinState,
    AllocationStatus,
    AllocationAction,
    Action,
    RiskModel,
    CashFlowModel,
    IRRMethod,
    VaRMethod,
    IRRResult,
    CashFlowProjection,
    ReturnBreakdown,
    RiskAssessment,
    AllocationResult,
    PortfolioAllocationCheck,
    MonteCarloProjection,
    DataQuality,
    Finding,
    RecommendationResult,
    ValuationReport
)

__all__ = [
    "ValuationEngineConfig",
    "InvestmentInputs",
    "CoinSnapshot",
    "PricePoint",
    "PriceSeries",
    "MarketConditions",
    "Basket",
    "BitcoinState",
    "AllocationStatus",
    "AllocationAction",
    "Action",
    "RiskModel",
    "CashFlowModel",
    "IRRMethod",
    "VaRMethod",
    "IRRResult",
    "CashFlowProjection",
    "ReturnBreakdown",
    "RiskAssessment",
    "AllocationResult",
    "PortfolioAllocationCheck",
    "MonteCarloProjection",
    "DataQuality",
    "Finding",
    "RecommendationResult",
    "ValuationReport",
]
