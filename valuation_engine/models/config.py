"""Configuration for the Investment Valuation Engine."""

from typing import Dict, Optional
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Recommendation synthesizer thresholds (percent unless noted)
DEFAULT_RECOMMENDATION_THRESHOLDS = {
    'irr_hurdle': 15.0,
    'irr_floor': 15.0,
    'irr_unconverged_penalty': 10.0,
    'cagr_strong': 20.0,
    'cagr_floor': 0.0,
    'volatility_low': 30.0,
    'volatility_high': 100.0,
    'aviv_undervalued': 0.8,
    'aviv_overextended': 2.5,
    'beta_moderate': 1.2,
    'beta_high': 2.5,
    'loss_probability_low': 0.2,
    'loss_probability_high': 0.4,
    'loss_probability_sell': 0.6,
    'data_quality_low': 50.0,
    'data_quality_high': 80.0,
    'buy_confidence': 70.0,
    'buy_less_confidence': 50.0,
    'sell_npv': -1000.0,
}


class ValuationEngineConfig(BaseSettings):
    """Configuration for the valuation and risk analytics engine."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="VALUATION_",
        extra="ignore",
    )

    # Basket Assumptions (percent)
    basket_assumptions: Dict[str, Dict[str, float]] = Field(
        default={
            'Bitcoin': {'discount_rate': 10.0, 'hurdle_rate': 10.0, 'target_allocation': 50.0},
            'BlueChip': {'discount_rate': 15.0, 'hurdle_rate': 15.0, 'target_allocation': 30.0},
            'SmallCap': {'discount_rate': 20.0, 'hurdle_rate': 20.0, 'target_allocation': 20.0},
        },
        description="Discount rate, hurdle rate and target allocation per basket"
    )

    # Allocation Rules (percent of total portfolio)
    allocation_rules: Dict[str, Dict[str, float]] = Field(
        default={
            'Bitcoin': {'min': 60.0, 'max': 80.0, 'recommended_min': 60.0, 'recommended_max': 75.0},
            'BlueChip': {'min': 0.0, 'max': 40.0, 'recommended_min': 20.0, 'recommended_max': 35.0},
            'SmallCap': {'min': 0.0, 'max': 15.0, 'recommended_min': 5.0, 'recommended_max': 10.0},
        },
        description="Min/max and recommended allocation range per basket"
    )
    allocation_sum_tolerance: float = Field(default=1.0, description="Tolerance (pp) for allocations summing to 100%")

    # Strategy Selection
    risk_model: str = Field(default="basic", description="Risk scoring model (basic|beta_weighted)")
    cash_flow_model: str = Field(default="compounding", description="Cash flow model (compounding|flat)")

    # IRR Solver
    irr_max_iterations: int = Field(default=100, ge=1, description="Newton-Raphson iteration budget")
    irr_precision: float = Field(default=1e-4, gt=0, description="NPV tolerance for IRR convergence")
    irr_brent_fallback: bool = Field(default=True, description="Retry with bracketed search when Newton stalls")

    # Rates
    default_risk_free_rate: float = Field(default=3.0, ge=2.0, le=4.0, description="Risk-free rate (percent)")
    market_return: float = Field(default=25.0, description="Expected crypto market return (percent)")
    fed_sensitivity: float = Field(default=2.0, ge=0, description="Discount rate sensitivity to Fed changes")
    fed_basket_multipliers: Dict[str, float] = Field(
        default={'Bitcoin': 1.0, 'BlueChip': 1.2, 'SmallCap': 1.5},
        description="Per-basket multiplier on Fed rate sensitivity"
    )

    # Beta-weighted Risk Model
    beta_risk_weights: Dict[str, float] = Field(
        default={
            'beta': 0.40,
            'volatility': 0.30,
            'basket': 0.20,
            'fundamentals': 0.10
        },
        description="Component weights for the beta-weighted risk model"
    )

    # Volatility Estimation
    periods_per_year: int = Field(default=365, ge=1, description="Price observations per year")
    min_reliable_points: int = Field(default=30, ge=2, description="Points needed for a reliable volatility")
    var_confidence: float = Field(default=0.95, gt=0, lt=1, description="Value-at-Risk confidence level")

    # Recommendation Thresholds
    recommendation_thresholds: Dict[str, float] = Field(
        default=dict(DEFAULT_RECOMMENDATION_THRESHOLDS),
        description="Thresholds used by the recommendation synthesizer; partial overrides keep the other defaults"
    )

    # Monte Carlo Settings
    monte_carlo_simulations: int = Field(default=1000, ge=1, description="Number of simulated paths")
    monte_carlo_steps_per_year: int = Field(default=52, ge=1, description="Simulation steps per year")
    monte_carlo_seed: Optional[int] = Field(default=42, description="Seed for reproducible simulations")
    fallback_volatility: float = Field(default=50.0, gt=0, description="Volatility (percent) simulated when price history is insufficient")

    # Logging Settings
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Log format (json|text)")
    log_file: Optional[str] = Field(default=None, description="Log file path")

    @field_validator('risk_model')
    @classmethod
    def validate_risk_model(cls, v):
        """Validate the risk model name."""
        if v not in ('basic', 'beta_weighted'):
            raise ValueError(f"Unknown risk model: {v}")
        return v

    @field_validator('cash_flow_model')
    @classmethod
    def validate_cash_flow_model(cls, v):
        """Validate the cash flow model name."""
        if v not in ('compounding', 'flat'):
            raise ValueError(f"Unknown cash flow model: {v}")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        """Validate the logging level name."""
        if v.upper() not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
            raise ValueError(f"Unknown log level: {v}")
        return v.upper()

    @field_validator('log_format')
    @classmethod
    def validate_log_format(cls, v):
        """Validate the log format name."""
        if v.lower() not in ('json', 'text'):
            raise ValueError(f"Unknown log format: {v}")
        return v.lower()

    @field_validator('beta_risk_weights')
    @classmethod
    def validate_beta_risk_weights(cls, v):
        """Validate that beta-weighted risk weights sum to 1.0."""
        total = sum(v.values())
        if abs(total - 1.0) > 0.001:
            raise ValueError(f"Beta risk weights must sum to 1.0, got {total}")
        return v

    @field_validator('allocation_rules')
    @classmethod
    def validate_allocation_rules(cls, v):
        """Validate that every allocation rule is ordered min <= recommended <= max."""
        for basket, rule in v.items():
            if not (rule['min'] <= rule['recommended_min'] <= rule['recommended_max'] <= rule['max']):
                raise ValueError(f"Allocation rule for {basket} is not ordered")
        return v

    @field_validator('recommendation_thresholds')
    @classmethod
    def validate_recommendation_thresholds(cls, v):
        """Merge overrides over the defaults and validate paired low/high ordering."""
        unknown = sorted(set(v) - set(DEFAULT_RECOMMENDATION_THRESHOLDS))
        if unknown:
            raise ValueError(f"Unknown recommendation thresholds: {', '.join(unknown)}")
        v = {**DEFAULT_RECOMMENDATION_THRESHOLDS, **v}

        pairs = (
            ('volatility_low', 'volatility_high'),
            ('aviv_undervalued', 'aviv_overextended'),
            ('beta_moderate', 'beta_high'),
            ('loss_probability_low', 'loss_probability_high'),
            ('data_quality_low', 'data_quality_high'),
            ('buy_less_confidence', 'buy_confidence'),
        )
        for low, high in pairs:
            if v[low] > v[high]:
                raise ValueError(f"Threshold {low} must not exceed {high}")
        return v

    def get_basket_assumptions(self, basket: str) -> Dict[str, float]:
        """Get discount/hurdle assumptions for a basket."""
        return self.basket_assumptions.get(basket, self.basket_assumptions['Bitcoin'])

    def get_allocation_rule(self, basket: str) -> Dict[str, float]:
        """Get allocation rule for a basket."""
        return self.allocation_rules[basket]

    def get_fed_basket_multiplier(self, basket: str) -> float:
        """Get Fed rate sensitivity multiplier for a basket."""
        return self.fed_basket_multipliers.get(basket, 1.0)
