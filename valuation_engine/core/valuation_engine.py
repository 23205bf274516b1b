"""Main Investment Valuation Engine implementation."""

import hashlib
import json
import time
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
import structlog

from valuation_engine.models.config import ValuationEngineConfig
from valuation_engine.models.market_inputs import (
    InvestmentInputs, CoinSnapshot, PriceSeries, MarketConditions
)
from valuation_engine.models.valuation_data import (
    CashFlowModel, IRRResult, RiskModel, ValuationReport
)
from valuation_engine.core import time_value, growth, cash_flows, risk_engine, allocation
from valuation_engine.core.monte_carlo import simulate_projection
from valuation_engine.core.data_quality import assess_data_quality
from valuation_engine.core.recommendation import RecommendationSignals, RecommendationSynthesizer
from valuation_engine.utils.statistics import annualized_volatility, align_returns, calculate_returns
from valuation_engine.utils.logging import setup_logging

logger = structlog.get_logger(__name__)


class ValuationError(Exception):
    """Valuation engine specific error."""
    pass


class InvalidCashFlowError(ValuationError):
    """Generated cash flows failed validation."""
    pass


class InvestmentValuationEngine:
    """
    Stateless engine producing a full valuation report per call.

    Every call derives its metrics from its own arguments only; the engine
    holds configuration and no per-analysis state.
    """

    def __init__(self, config: Optional[ValuationEngineConfig] = None,
                 configure_logging: bool = False):
        self.config = config or ValuationEngineConfig()

        if configure_logging:
            setup_logging(self.config)

        self.logger = logger.bind(component="valuation_engine")
        self.synthesizer = RecommendationSynthesizer(self.config)

        self.risk_model = RiskModel(self.config.risk_model)
        self.cash_flow_model = CashFlowModel(self.config.cash_flow_model)

        self.logger.info("Investment Valuation Engine initialized",
                         risk_model=self.risk_model.value,
                         cash_flow_model=self.cash_flow_model.value)

    def analyze(self,
                inputs: InvestmentInputs,
                coin: CoinSnapshot,
                price_history: PriceSeries,
                market: Optional[MarketConditions] = None,
                market_history: Optional[PriceSeries] = None,
                total_portfolio: Optional[float] = None,
                expected_price: Optional[float] = None,
                timestamp: Optional[datetime] = None) -> ValuationReport:
        """
        Run a complete valuation analysis.

        Args:
            inputs: Investment parameters
            coin: Current coin snapshot
            price_history: Historical coin prices
            market: Macro and sentiment snapshot (neutral when omitted)
            market_history: Benchmark prices used for beta
            total_portfolio: Portfolio value for the allocation check
            expected_price: Price at the horizon; projected when omitted
            timestamp: Analysis timestamp (default: now)

        Returns:
            ValuationReport with all metrics and the recommendation
        """
        if market is None:
            market = MarketConditions()
        if timestamp is None:
            timestamp = datetime.now()

        start_time = time.time()
        config = self.config

        self.logger.info("Starting valuation analysis",
                         coin_id=inputs.coin_id,
                         basket=coin.basket.value,
                         horizon=inputs.investment_horizon,
                         price_points=len(price_history))

        try:
            input_data_hash = self._calculate_input_hash(
                inputs, coin, price_history, market, market_history,
                total_portfolio, expected_price
            )

            # Step 1: Statistics
            prices = price_history.prices
            volatility = annualized_volatility(prices, config.periods_per_year)
            beta_value, beta_sample_size = self._calculate_beta(price_history, market_history)

            # Step 2: Expected price and cash flows
            if expected_price is None:
                expected_price = inputs.expected_price
            if expected_price is None:
                expected_price = growth.project_expected_price(
                    coin.current_price,
                    coin.cagr_36m,
                    inputs.investment_horizon,
                    market.bitcoin_state,
                    coin.basket,
                    market.fed_rate_change,
                    beta_value if beta_sample_size >= 2 else None
                )

            staking_yield = inputs.staking_yield
            if staking_yield is None:
                staking_yield = coin.staking_yield or 0.0

            projection = cash_flows.project_cash_flows(
                inputs.investment_amount,
                expected_price,
                coin.current_price,
                inputs.investment_horizon,
                staking_yield,
                self.cash_flow_model
            )
            if not cash_flows.validate_cash_flows(projection.cash_flows):
                raise InvalidCashFlowError(
                    f"Generated cash flows failed validation for {inputs.coin_id}"
                )

            # Step 3: Time value
            assumptions = config.get_basket_assumptions(coin.basket.value)
            discount_rate = risk_engine.adjust_discount_rate_for_fed(
                assumptions['discount_rate'] / 100,
                market.fed_rate_change,
                config.fed_sensitivity,
                config.get_fed_basket_multiplier(coin.basket.value)
            )
            npv_value = time_value.npv(projection.cash_flows, discount_rate)
            irr_result = self._calculate_irr(projection.cash_flows)

            returns = growth.return_breakdown(
                inputs.investment_amount,
                coin.current_price,
                expected_price,
                projection.cash_flows,
                inputs.investment_horizon
            )

            # Step 4: Risk
            risk_free_rate = inputs.risk_free_rate
            if risk_free_rate is None:
                risk_free_rate = config.default_risk_free_rate

            sharpe = risk_engine.sharpe_ratio(returns.total_return_cagr, risk_free_rate, volatility)
            var = risk_engine.value_at_risk(
                inputs.investment_amount,
                calculate_returns(prices),
                config.var_confidence
            )
            risk = risk_engine.assess_risk(
                coin.basket,
                volatility,
                coin.fundamentals_score,
                aviv_ratio=coin.aviv_ratio,
                active_supply=coin.active_supply,
                vaulted_supply=coin.vaulted_supply,
                fed_rate_change=market.fed_rate_change,
                smart_money_activity=bool(coin.smart_money_activity or market.smart_money_activity),
                beta_value=beta_value,
                model=self.risk_model,
                weights=config.beta_risk_weights
            )

            # Step 5: Allocation
            if total_portfolio is None:
                total_portfolio = inputs.total_portfolio
            allocation_result = None
            if total_portfolio is not None:
                allocation_result = allocation.check_allocation(
                    inputs.investment_amount,
                    total_portfolio,
                    coin.basket,
                    config.allocation_rules
                )

            # Step 6: Simulation and data quality
            simulated_growth = coin.cagr_36m if coin.cagr_36m is not None else returns.price_cagr
            monte_carlo = simulate_projection(
                inputs.investment_amount,
                simulated_growth,
                volatility if volatility > 0 else config.fallback_volatility,
                inputs.investment_horizon,
                aviv_ratio=coin.aviv_ratio,
                vaulted_supply=coin.vaulted_supply,
                simulations=config.monte_carlo_simulations,
                steps_per_year=config.monte_carlo_steps_per_year,
                seed=config.monte_carlo_seed
            )
            data_quality = assess_data_quality(
                len(price_history),
                beta_sample_size,
                onchain_fields={
                    'aviv_ratio': coin.aviv_ratio,
                    'active_supply': coin.active_supply,
                    'vaulted_supply': coin.vaulted_supply,
                    'fundamentals_score': coin.fundamentals_score,
                },
                min_reliable_points=config.min_reliable_points
            )

            # Step 7: Recommendation
            recommendation = self.synthesizer.synthesize(RecommendationSignals(
                npv=npv_value,
                irr=irr_result.rate,
                cagr=returns.total_return_cagr,
                volatility=volatility,
                aviv_ratio=coin.aviv_ratio,
                beta=beta_value,
                probability_of_loss=monte_carlo.probability_of_loss,
                data_quality=data_quality.score,
                irr_converged=irr_result.converged,
                allocation=allocation_result,
                market=market,
                risk_factor=risk.risk_factor
            ))

            calculation_time_ms = int((time.time() - start_time) * 1000)

            report = ValuationReport(
                coin_id=inputs.coin_id,
                timestamp=timestamp,
                basket=coin.basket,
                cash_flow_projection=projection,
                discount_rate=discount_rate,
                npv=npv_value,
                irr=irr_result,
                expected_price=expected_price,
                returns=returns,
                volatility=volatility,
                beta=beta_value,
                sharpe_ratio=sharpe,
                value_at_risk=var,
                risk=risk,
                allocation=allocation_result,
                monte_carlo=monte_carlo,
                data_quality=data_quality,
                recommendation=recommendation,
                input_data_hash=input_data_hash,
                calculation_hash=self._calculate_result_hash(npv_value, irr_result, recommendation.to_dict()),
                calculation_time_ms=calculation_time_ms
            )

            self.logger.info("Valuation analysis completed",
                             coin_id=inputs.coin_id,
                             action=recommendation.action.value,
                             confidence=recommendation.confidence,
                             npv=npv_value,
                             irr=irr_result.rate,
                             risk_factor=risk.risk_factor,
                             calculation_time_ms=calculation_time_ms)

            return report

        except Exception as e:
            self.logger.error("Valuation analysis failed",
                              coin_id=inputs.coin_id,
                              error=str(e))
            raise

    def _calculate_beta(self, price_history: PriceSeries,
                        market_history: Optional[PriceSeries]) -> Tuple[float, int]:
        """Beta against the benchmark and the number of aligned returns used."""
        if market_history is None:
            self.logger.debug("No market history supplied, using neutral beta")
            return risk_engine.NEUTRAL_BETA, 0

        asset_returns, market_returns = align_returns(price_history, market_history)
        if len(market_returns) < 2:
            self.logger.warning("Too few aligned returns for beta",
                                aligned_returns=len(market_returns))

        return risk_engine.beta(asset_returns, market_returns), len(market_returns)

    def _calculate_irr(self, flows: List[float]) -> IRRResult:
        """IRR with the configured solver strategy."""
        if self.config.irr_brent_fallback:
            result = time_value.irr_with_fallback(
                flows, self.config.irr_max_iterations, self.config.irr_precision
            )
        else:
            result = time_value.irr(
                flows, self.config.irr_max_iterations, self.config.irr_precision
            )
            if not result.converged:
                self.logger.warning("IRR did not converge",
                                    rate=result.rate,
                                    iterations=result.iterations)
        return result

    def _calculate_input_hash(self, inputs: InvestmentInputs, coin: CoinSnapshot,
                              price_history: PriceSeries, market: MarketConditions,
                              market_history: Optional[PriceSeries],
                              total_portfolio: Optional[float],
                              expected_price: Optional[float]) -> str:
        """Calculate hash of input data for reproducibility."""
        input_data = {
            'inputs': inputs.model_dump(mode='json'),
            'coin': coin.model_dump(mode='json'),
            'price_history': price_history.model_dump(mode='json'),
            'market': market.model_dump(mode='json'),
            'market_history': market_history.model_dump(mode='json') if market_history else None,
            'total_portfolio': total_portfolio,
            'expected_price': expected_price,
        }

        normalized_data = json.dumps(input_data, sort_keys=True, default=str)
        return hashlib.sha256(normalized_data.encode()).hexdigest()

    def _calculate_result_hash(self, npv_value: float, irr_result: IRRResult,
                               recommendation: Dict[str, Any]) -> str:
        """Calculate hash of calculation results."""
        result_data = {
            'npv': npv_value,
            'irr': irr_result.to_dict(),
            'recommendation': recommendation
        }

        normalized_data = json.dumps(result_data, sort_keys=True)
        return hashlib.sha256(normalized_data.encode()).hexdigest()
