"""Integration tests for the Investment Valuation Engine."""

import json
import math
import pytest

from valuation_engine import (
    InvestmentValuationEngine, InvalidCashFlowError, ValuationEngineConfig, InvestmentInputs,
    CoinSnapshot, MarketConditions
)
from valuation_engine.models.valuation_data import (
    Action, AllocationStatus, Basket, BitcoinState, CashFlowModel, RiskModel
)


@pytest.fixture
def engine(config):
    """Engine with the test configuration."""
    return InvestmentValuationEngine(config)


# ============================================================================
# REPORT CONTRACT
# ============================================================================

class TestValuationReport:
    """Test suite for a complete analysis."""

    def test_report_invariants(self, engine, investment_inputs, bitcoin_snapshot,
                               price_history, sample_timestamp):
        """Test structural invariants of a full report."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                timestamp=sample_timestamp)

        flows = report.cash_flow_projection.cash_flows
        assert len(flows) == investment_inputs.investment_horizon + 1
        assert flows[0] == -investment_inputs.investment_amount
        assert 1 <= report.risk.risk_factor <= 5
        assert 0.0 <= report.recommendation.confidence <= 100.0
        assert report.recommendation.action != Action.HOLD
        assert report.recommendation.risk_factor == report.risk.risk_factor
        assert report.volatility > 0
        assert report.beta == 1.0
        assert report.allocation is None
        assert report.timestamp == sample_timestamp
        assert report.discount_rate == pytest.approx(0.10)

    def test_audit_record(self, engine, investment_inputs, bitcoin_snapshot,
                          price_history, sample_timestamp):
        """Test the flattened audit record and verification hashes."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                timestamp=sample_timestamp)
        record = report.to_audit_record()

        assert record['coin_id'] == "bitcoin"
        assert record['timestamp'] == sample_timestamp.isoformat()
        assert record['basket'] == "Bitcoin"
        assert record['action'] == report.recommendation.action.value
        assert len(record['input_data_hash']) == 64
        assert len(record['calculation_hash']) == 64

    def test_report_serializes_to_json(self, engine, investment_inputs, bitcoin_snapshot,
                                       price_history, sample_timestamp):
        """Test the report dictionary is JSON serializable."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                timestamp=sample_timestamp)
        data = json.loads(json.dumps(report.to_dict()))

        assert data['recommendation']['action'] == report.recommendation.action.value
        assert data['time_value']['irr']['converged'] is report.irr.converged

    def test_deterministic_analysis(self, engine, investment_inputs, bitcoin_snapshot,
                                    price_history, sample_timestamp):
        """Test identical inputs give identical results."""
        first = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                               timestamp=sample_timestamp)
        second = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                timestamp=sample_timestamp)

        assert first.input_data_hash == second.input_data_hash
        assert first.calculation_hash == second.calculation_hash
        assert first.monte_carlo == second.monte_carlo
        assert first.recommendation == second.recommendation

    def test_explicit_expected_price(self, engine, investment_inputs, bitcoin_snapshot,
                                     price_history):
        """Test a supplied expected price drives the terminal flow."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                expected_price=50000.0)

        assert report.expected_price == 50000.0
        assert report.cash_flow_projection.cash_flows[-1] == pytest.approx(10000.0 / 43000.0 * 50000.0)

    def test_expected_price_from_inputs(self, engine, bitcoin_snapshot, price_history):
        """Test the expected price can come from the investment inputs."""
        inputs = InvestmentInputs(coin_id="bitcoin", investment_amount=10000.0,
                                  investment_horizon=2, expected_price=60000.0)
        report = engine.analyze(inputs, bitcoin_snapshot, price_history)

        assert report.expected_price == 60000.0
        assert report.npv > 0


# ============================================================================
# OPTIONAL INPUTS
# ============================================================================

class TestOptionalInputs:
    """Test suite for optional context."""

    def test_allocation_check(self, engine, investment_inputs, bitcoin_snapshot, price_history):
        """Test allocation is evaluated when a portfolio total is known."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                total_portfolio=15000.0)

        assert report.allocation is not None
        assert report.allocation.status == AllocationStatus.OPTIMAL
        assert report.allocation.portfolio_percentage == pytest.approx(10000.0 / 15000.0 * 100)

    def test_market_history_beta(self, engine, investment_inputs, bitcoin_snapshot, price_history):
        """Test beta against an identical benchmark is one."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                market_history=price_history)

        assert report.beta == pytest.approx(1.0)
        assert report.data_quality.score > 70.0

    def test_short_history(self, engine, investment_inputs, bitcoin_snapshot, short_price_history):
        """Test insufficient history reports zero volatility with a warning."""
        report = engine.analyze(investment_inputs, bitcoin_snapshot, short_price_history)

        assert report.volatility == 0.0
        assert report.value_at_risk == 0.0
        assert report.data_quality.sufficient is False
        assert 'volatility_unavailable' in [w.code for w in report.recommendation.warnings]
        assert report.monte_carlo.simulations == 200

    def test_bearish_market_adds_warnings(self, engine, investment_inputs, bitcoin_snapshot,
                                          price_history, neutral_market, bearish_market):
        """Test bearish conditions raise the discount rate and add warnings."""
        neutral = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                 market=neutral_market, expected_price=50000.0)
        bearish = engine.analyze(investment_inputs, bitcoin_snapshot, price_history,
                                 market=bearish_market, expected_price=50000.0)

        assert bearish.discount_rate > neutral.discount_rate
        assert bearish.npv < neutral.npv
        assert 'bearish_market' in [w.code for w in bearish.recommendation.warnings]
        assert bearish.recommendation.rebalancing_actions


# ============================================================================
# STRATEGY SELECTION
# ============================================================================

class TestStrategySelection:
    """Test suite for configured strategies."""

    def test_beta_weighted_risk_model(self, investment_inputs, bitcoin_snapshot, price_history):
        """Test the beta-weighted model is used when configured."""
        config = ValuationEngineConfig(_env_file=None, risk_model="beta_weighted",
                                       monte_carlo_simulations=200)
        report = InvestmentValuationEngine(config).analyze(
            investment_inputs, bitcoin_snapshot, price_history
        )

        assert report.risk.model == RiskModel.BETA_WEIGHTED
        assert report.risk.composite_score is not None

    def test_flat_cash_flow_model(self, investment_inputs, bitcoin_snapshot, price_history):
        """Test the flat model is deprecated but still selectable."""
        config = ValuationEngineConfig(_env_file=None, cash_flow_model="flat",
                                       monte_carlo_simulations=200)
        engine = InvestmentValuationEngine(config)

        with pytest.warns(DeprecationWarning):
            report = engine.analyze(investment_inputs, bitcoin_snapshot, price_history)

        assert report.cash_flow_projection.model == CashFlowModel.FLAT


# ============================================================================
# ERROR HANDLING
# ============================================================================

class TestErrorHandling:
    """Test suite for failure propagation."""

    def test_invalid_cash_flows_raise(self, engine, investment_inputs, bitcoin_snapshot,
                                      price_history, monkeypatch):
        """Test cash flows failing validation abort the analysis."""
        monkeypatch.setattr("valuation_engine.core.cash_flows.validate_cash_flows",
                            lambda flows: False)

        with pytest.raises(InvalidCashFlowError):
            engine.analyze(investment_inputs, bitcoin_snapshot, price_history)

    def test_extreme_growth_over_longest_horizon(self, engine, price_history):
        """Test a century of capped hyper-growth completes with finite metrics."""
        inputs = InvestmentInputs(coin_id="moonshot", investment_amount=10000.0,
                                  investment_horizon=100)
        coin = CoinSnapshot(current_price=2.5, basket=Basket.SMALL_CAP, cagr_36m=200.0)
        market = MarketConditions(bitcoin_state=BitcoinState.BULLISH)

        report = engine.analyze(inputs, coin, price_history, market=market)

        assert math.isfinite(report.expected_price)
        assert math.isfinite(report.npv)
        assert len(report.cash_flow_projection.cash_flows) == 101
        assert report.value_at_risk >= 0.0
        assert report.recommendation.action != Action.HOLD
