"""Unit tests for Monte Carlo projection."""

import pytest

from valuation_engine.core.monte_carlo import simulate_projection


class TestMonteCarloProjection:
    """Test suite for simulated terminal values."""

    def test_seeded_runs_are_identical(self):
        """Test identical seeds give identical projections."""
        first = simulate_projection(10000, 25, 60, 2, simulations=300, seed=7)
        second = simulate_projection(10000, 25, 60, 2, simulations=300, seed=7)

        assert first.to_dict() == second.to_dict()

    def test_bounds_are_ordered(self):
        """Test p5 does not exceed p95 and VaR is measured from p5."""
        projection = simulate_projection(10000, 25, 60, 2, simulations=300, seed=1)

        assert projection.lower_bound <= projection.upper_bound
        assert projection.value_at_risk == pytest.approx(10000 - projection.lower_bound)
        assert 0.0 <= projection.probability_of_loss <= 1.0
        assert 0.0 <= projection.max_drawdown <= 1.0
        assert projection.simulations == 300

    def test_deterministic_growth_without_volatility(self):
        """Test zero volatility compounds the step return on every path."""
        projection = simulate_projection(10000, 20, 0, 1, simulations=50, steps_per_year=52, seed=3)
        expected = 10000 * (1 + 0.2 / 52) ** 52

        assert projection.expected_value == pytest.approx(expected)
        assert projection.lower_bound == pytest.approx(projection.upper_bound)
        assert projection.probability_of_loss == 0.0
        assert projection.max_drawdown == pytest.approx(0.0)

    def test_certain_loss_without_volatility(self):
        """Test negative growth without volatility always loses."""
        projection = simulate_projection(10000, -20, 0, 1, simulations=50, seed=3)
        assert projection.probability_of_loss == 1.0

    def test_undervalued_aviv_increases_growth(self):
        """Test AVIV below 0.8 scales step returns up."""
        base = simulate_projection(10000, 20, 0, 1, simulations=10, seed=3)
        undervalued = simulate_projection(10000, 20, 0, 1, aviv_ratio=0.5, simulations=10, seed=3)
        overvalued = simulate_projection(10000, 20, 0, 1, aviv_ratio=3.0, simulations=10, seed=3)

        assert undervalued.expected_value > base.expected_value > overvalued.expected_value

    def test_vaulted_supply_dampens_returns(self):
        """Test vaulted supply above 70% scales step returns down."""
        base = simulate_projection(10000, 20, 0, 1, simulations=10, seed=3)
        vaulted = simulate_projection(10000, 20, 0, 1, vaulted_supply=80, simulations=10, seed=3)

        assert vaulted.expected_value < base.expected_value

    @pytest.mark.parametrize("initial,horizon", [(0, 2), (-100, 2), (10000, 0)])
    def test_degenerate_inputs(self, initial, horizon):
        """Test degenerate inputs give an empty projection."""
        projection = simulate_projection(initial, 20, 50, horizon, seed=3)

        assert projection.expected_value == 0.0
        assert projection.probability_of_loss == 0.0

    def test_serialization(self):
        """Test to_dict structure."""
        data = simulate_projection(10000, 20, 50, 1, simulations=20, seed=3).to_dict()

        assert set(data) == {'expected_value', 'confidence_interval', 'risk_metrics', 'simulations', 'seed'}
        assert set(data['risk_metrics']) == {'value_at_risk', 'probability_of_loss', 'max_drawdown'}
