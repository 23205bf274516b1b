"""Unit tests for the time-value solver."""

import math
import pytest

from valuation_engine.core.time_value import (
    npv, present_values, irr, irr_with_fallback, capm_expected_return, risk_adjusted_npv
)
from valuation_engine.models.valuation_data import IRRMethod


CONVENTIONAL_SERIES = [
    [-1000, 1100],
    [-1000, 300, 400, 500],
    [-5000, 1000, 1000, 1000, 1000, 3000],
    [-100, 0, 0, 200],
    [-10000, 0, 0, 0, 0, 8000],
]


class TestNPV:
    """Test suite for net present value."""

    def test_npv_discounts_from_period_zero(self):
        """Test CF_0 is undiscounted."""
        assert npv([100], 0.5) == pytest.approx(100)
        assert npv([-1000, 1100], 0.1) == pytest.approx(0.0, abs=1e-9)

    def test_npv_empty_series(self):
        """Test empty input returns zero."""
        assert npv([], 0.1) == 0.0

    def test_npv_rate_domain_guard(self):
        """Test a rate at or below -100% returns zero."""
        assert npv([-100, 50], -1.0) == 0.0

    def test_present_values(self):
        """Test per-period discounted values."""
        assert present_values([-1000, 1100], 0.1) == pytest.approx([-1000, 1000])

    def test_npv_long_series_does_not_overflow(self):
        """Test distant flows whose discount factor overflows contribute nothing."""
        flows = [-1.0] + [1.0] * 8000
        assert npv(flows, 0.1) == pytest.approx(9.0)

    def test_npv_at_rate_floor_does_not_raise(self):
        """Test an underflowing discount factor gives a signed infinity."""
        flows = [-1.0] + [1.0] * 200

        assert npv(flows, -0.99) == math.inf
        assert present_values(flows, -0.99)[-1] == math.inf
        assert present_values([0.0] * 200, -0.99)[-1] == 0.0

    def test_present_values_long_series(self):
        """Test per-period values stay finite for long series."""
        values = present_values([-1.0] + [1.0] * 8000, 0.1)

        assert len(values) == 8001
        assert values[-1] == 0.0


class TestIRR:
    """Test suite for internal rate of return."""

    def test_simple_loan(self):
        """Test IRR of a one-period loan is 10%."""
        result = irr([-1000, 1100])

        assert result.converged is True
        assert result.rate == pytest.approx(10.0, abs=0.01)
        assert result.method == IRRMethod.NEWTON

    @pytest.mark.parametrize("cash_flows", CONVENTIONAL_SERIES)
    def test_npv_at_irr_is_zero(self, cash_flows):
        """Test NPV evaluated at a converged IRR is within solver precision."""
        result = irr(cash_flows)

        assert result.converged is True
        assert abs(npv(cash_flows, result.rate / 100)) < 1e-4

    def test_doubling_over_three_years(self):
        """Test IRR of a three-year doubling."""
        result = irr([-100, 0, 0, 200])
        assert result.rate == pytest.approx((2 ** (1 / 3) - 1) * 100, abs=1e-3)

    @pytest.mark.parametrize("cash_flows", [[100, 200, 300], [-100, -200], [-100]])
    def test_no_sign_change_does_not_converge(self, cash_flows):
        """Test series that never cross zero NPV return immediately."""
        result = irr(cash_flows)

        assert result.converged is False
        assert result.iterations == 0

    def test_iteration_budget_is_respected(self):
        """Test the solver stops at the iteration budget."""
        result = irr([-1000, 300, 400, 500], max_iterations=1)

        assert result.converged is False
        assert result.iterations == 1

    def test_rate_never_below_floor(self):
        """Test deeply negative returns stay above -99%."""
        result = irr([-1000, 1])
        assert result.rate >= -99.0 - 1e-9

    def test_brent_method(self):
        """Test the bracketed solver finds the same root."""
        result = irr([-1000, 1100], method=IRRMethod.BRENT)

        assert result.converged is True
        assert result.method == IRRMethod.BRENT
        assert result.rate == pytest.approx(10.0, abs=1e-6)

    def test_fallback_keeps_converged_newton_result(self):
        """Test fallback returns Newton's answer when it converges."""
        result = irr_with_fallback([-1000, 1100])
        assert result.method == IRRMethod.NEWTON

    def test_fallback_recovers_with_bracketed_search(self):
        """Test Brent is used when Newton exhausts its budget."""
        cash_flows = [-1000, 300, 400, 500]
        result = irr_with_fallback(cash_flows, max_iterations=1)

        assert result.converged is True
        assert result.method == IRRMethod.BRENT
        assert abs(npv(cash_flows, result.rate / 100)) < 1e-4

    def test_result_serialization(self):
        """Test IRRResult.to_dict."""
        data = irr([-1000, 1100]).to_dict()

        assert data['method'] == 'newton'
        assert data['converged'] is True


class TestCAPM:
    """Test suite for CAPM helpers."""

    def test_expected_return(self):
        """Test rf + beta * (rm - rf)."""
        assert capm_expected_return(0.045, 0.25, 1.2) == pytest.approx(0.291)

    def test_risk_adjusted_npv(self):
        """Test discounting at rf + beta * premium."""
        assert risk_adjusted_npv([-1000, 1100], 0.04, 0.05, 1.2) == pytest.approx(0.0, abs=1e-9)
