"""Data models for valuation engine results."""

from datetime import datetime
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field
from enum import Enum


class Basket(Enum):
    """Portfolio risk tier classification."""
    BITCOIN = "Bitcoin"
    BLUE_CHIP = "BlueChip"
    SMALL_CAP = "SmallCap"


class BitcoinState(Enum):
    """Bitcoin market state enumeration."""
    BULLISH = "bullish"
    NEUTRAL = "neutral"
    BEARISH = "bearish"


class AllocationStatus(Enum):
    """Position size classification against basket limits."""
    UNDEREXPOSED = "underexposed"
    OPTIMAL = "optimal"
    OVEREXPOSED = "overexposed"


class AllocationAction(Enum):
    """Rebalancing direction for an allocation."""
    INCREASE = "increase"
    MAINTAIN = "maintain"
    DECREASE = "decrease"


class Action(Enum):
    """Recommended investment action."""
    BUY = "Buy"
    BUY_LESS = "Buy Less"
    HOLD = "Hold"
    DO_NOT_BUY = "Do Not Buy"
    SELL = "Sell"


class RiskModel(Enum):
    """Risk scoring formula selection."""
    BASIC = "basic"
    BETA_WEIGHTED = "beta_weighted"


class CashFlowModel(Enum):
    """Cash flow generation model selection."""
    COMPOUNDING = "compounding"
    FLAT = "flat"  # deprecated


class IRRMethod(Enum):
    """Root-finding method used for IRR."""
    NEWTON = "newton"
    BRENT = "brent"


class VaRMethod(Enum):
    """Value-at-Risk estimation method."""
    HISTORICAL = "historical"
    PARAMETRIC = "parametric"


@dataclass(frozen=True)
class IRRResult:
    """Internal rate of return with solver diagnostics."""
    rate: float  # percent
    converged: bool
    iterations: int
    method: IRRMethod = IRRMethod.NEWTON

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'rate': self.rate,
            'converged': self.converged,
            'iterations': self.iterations,
            'method': self.method.value
        }


@dataclass(frozen=True)
class CashFlowProjection:
    """Projected cash flows for a single position."""
    cash_flows: List[float]
    coin_balances: List[float]
    prices: List[float]
    initial_quantity: float
    final_coin_balance: float
    model: CashFlowModel = CashFlowModel.COMPOUNDING

    @property
    def horizon_years(self) -> int:
        return len(self.cash_flows) - 1

    @property
    def terminal_value(self) -> float:
        return self.cash_flows[-1]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'cash_flows': list(self.cash_flows),
            'coin_balances': list(self.coin_balances),
            'prices': list(self.prices),
            'initial_quantity': self.initial_quantity,
            'final_coin_balance': self.final_coin_balance,
            'model': self.model.value
        }


@dataclass(frozen=True)
class ReturnBreakdown:
    """Price versus total-return growth split."""
    price_cagr: float
    total_return_cagr: float
    price_roi: float
    total_roi: float
    staking_roi: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'price_cagr': self.price_cagr,
            'total_return_cagr': self.total_return_cagr,
            'price_roi': self.price_roi,
            'total_roi': self.total_roi,
            'staking_roi': self.staking_roi
        }


@dataclass(frozen=True)
class RiskAssessment:
    """Risk factor with the contributions that produced it."""
    risk_factor: int  # 1-5
    raw_score: float
    model: RiskModel
    base_score: float
    composite_score: Optional[float] = None  # 0-100, beta-weighted model only
    adjustments: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'risk_factor': self.risk_factor,
            'raw_score': self.raw_score,
            'model': self.model.value,
            'base_score': self.base_score,
            'composite_score': self.composite_score,
            'adjustments': dict(self.adjustments)
        }


@dataclass(frozen=True)
class AllocationResult:
    """Allocation compliance of a proposed position."""
    portfolio_percentage: float
    basket: Basket
    status: AllocationStatus
    action: AllocationAction
    min_allocation: float
    max_allocation: float
    recommended_range: Tuple[float, float]
    message: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'portfolio_percentage': self.portfolio_percentage,
            'basket': self.basket.value,
            'status': self.status.value,
            'action': self.action.value,
            'min_allocation': self.min_allocation,
            'max_allocation': self.max_allocation,
            'recommended_range': list(self.recommended_range),
            'message': self.message
        }


@dataclass(frozen=True)
class PortfolioAllocationCheck:
    """Portfolio-wide basket allocation validation."""
    total_allocation: float
    is_complete: bool
    violations: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.is_complete and not self.violations

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_allocation': self.total_allocation,
            'is_complete': self.is_complete,
            'is_valid': self.is_valid,
            'violations': list(self.violations)
        }


@dataclass(frozen=True)
class MonteCarloProjection:
    """Distribution of simulated terminal portfolio values."""
    expected_value: float
    lower_bound: float  # 5th percentile
    upper_bound: float  # 95th percentile
    value_at_risk: float
    probability_of_loss: float
    max_drawdown: float
    simulations: int
    seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'expected_value': self.expected_value,
            'confidence_interval': {
                'lower': self.lower_bound,
                'upper': self.upper_bound
            },
            'risk_metrics': {
                'value_at_risk': self.value_at_risk,
                'probability_of_loss': self.probability_of_loss,
                'max_drawdown': self.max_drawdown
            },
            'simulations': self.simulations,
            'seed': self.seed
        }


@dataclass(frozen=True)
class DataQuality:
    """Measured sufficiency of the data behind an analysis."""
    sample_size: int
    score: float  # 0-100
    sufficient: bool
    reliable_volatility: bool
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sample_size': self.sample_size,
            'score': self.score,
            'sufficient': self.sufficient,
            'reliable_volatility': self.reliable_volatility,
            'notes': list(self.notes)
        }


@dataclass(frozen=True)
class Finding:
    """A single supporting reason or risk warning."""
    code: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return {'code': self.code, 'message': self.message}


@dataclass(frozen=True)
class RecommendationResult:
    """Terminal output of an analysis."""
    action: Action
    confidence: float  # 0-100
    reasons: Tuple[Finding, ...] = ()
    warnings: Tuple[Finding, ...] = ()
    rebalancing_actions: Tuple[str, ...] = ()
    risk_factor: Optional[int] = None

    @property
    def worth_investing(self) -> bool:
        return self.action in (Action.BUY, Action.BUY_LESS)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization (OUTPUT CONTRACT)."""
        return {
            'action': self.action.value,
            'confidence': self.confidence,
            'reasons': [r.to_dict() for r in self.reasons],
            'warnings': [w.to_dict() for w in self.warnings],
            'rebalancing_actions': list(self.rebalancing_actions),
            'risk_factor': self.risk_factor
        }


@dataclass(frozen=True)
class ValuationReport:
    """Complete result of one valuation analysis."""
    coin_id: str
    timestamp: datetime
    basket: Basket

    # Time value
    cash_flow_projection: CashFlowProjection
    discount_rate: float  # decimal
    npv: float
    irr: IRRResult

    # Growth
    expected_price: float
    returns: ReturnBreakdown

    # Risk
    volatility: float  # annualized percent, 0 = insufficient data
    beta: float
    sharpe_ratio: float
    value_at_risk: float
    risk: RiskAssessment

    # Allocation
    allocation: Optional[AllocationResult]

    # Simulation and quality
    monte_carlo: MonteCarloProjection
    data_quality: DataQuality

    recommendation: RecommendationResult

    # Verification data
    input_data_hash: str = ""
    calculation_hash: str = ""
    calculation_time_ms: int = 0

    def to_audit_record(self) -> Dict[str, Any]:
        """Flatten key metrics into an audit record keyed by coin and timestamp."""
        return {
            'coin_id': self.coin_id,
            'timestamp': self.timestamp.isoformat(),
            'basket': self.basket.value,
            'npv': self.npv,
            'irr': self.irr.rate,
            'irr_converged': self.irr.converged,
            'cagr': self.returns.price_cagr,
            'beta': self.beta,
            'volatility': self.volatility,
            'risk_factor': self.risk.risk_factor,
            'action': self.recommendation.action.value,
            'confidence': self.recommendation.confidence,
            'data_quality_score': self.data_quality.score,
            'input_data_hash': self.input_data_hash,
            'calculation_hash': self.calculation_hash,
            'recommendation': self.recommendation.to_dict()
        }

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'coin_id': self.coin_id,
            'timestamp': self.timestamp.isoformat(),
            'basket': self.basket.value,
            'time_value': {
                'cash_flows': self.cash_flow_projection.to_dict(),
                'discount_rate': self.discount_rate,
                'npv': self.npv,
                'irr': self.irr.to_dict()
            },
            'growth': {
                'expected_price': self.expected_price,
                **self.returns.to_dict()
            },
            'risk': {
                'volatility': self.volatility,
                'beta': self.beta,
                'sharpe_ratio': self.sharpe_ratio,
                'value_at_risk': self.value_at_risk,
                **self.risk.to_dict()
            },
            'allocation': self.allocation.to_dict() if self.allocation else None,
            'monte_carlo': self.monte_carlo.to_dict(),
            'data_quality': self.data_quality.to_dict(),
            'recommendation': self.recommendation.to_dict(),
            'verification': {
                'input_data_hash': self.input_data_hash,
                'calculation_hash': self.calculation_hash,
                'calculation_time_ms': self.calculation_time_ms
            }
        }
