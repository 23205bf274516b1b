"""Time-value solver: NPV, IRR and CAPM discounting."""

import math
from typing import List, Sequence
import structlog
from scipy.optimize import brentq

from valuation_engine.models.valuation_data import IRRResult, IRRMethod

logger = structlog.get_logger(__name__)

IRR_INITIAL_GUESS = 0.1
IRR_RATE_FLOOR = -0.99
IRR_BRENT_UPPER = 10.0
BRENT_MAX_ITERATIONS = 500


def _discount(cash_flow: float, discount_rate: float, period: int) -> float:
    """
    Present value of a single cash flow.

    A discount factor too large for a float contributes nothing; one that
    underflows to zero yields a signed infinity.
    """
    try:
        return cash_flow / (1 + discount_rate) ** period
    except OverflowError:
        return 0.0
    except ZeroDivisionError:
        return math.copysign(math.inf, cash_flow) if cash_flow else 0.0


def npv(cash_flows: Sequence[float], discount_rate: float) -> float:
    """
    Calculate net present value.

    CF_0 is undiscounted (t indexed from 0).

    Args:
        cash_flows: Signed cash flows, index 0 is the initial outlay
        discount_rate: Discount rate as a decimal (0.10 = 10%)

    Returns:
        NPV, 0.0 for empty input or a rate at or below -100%
    """
    if not cash_flows or discount_rate <= -1:
        return 0.0

    return sum(_discount(cf, discount_rate, t) for t, cf in enumerate(cash_flows))


def present_values(cash_flows: Sequence[float], discount_rate: float) -> List[float]:
    """Discounted value of each period's cash flow."""
    if discount_rate <= -1:
        return [0.0] * len(cash_flows)
    return [_discount(cf, discount_rate, t) for t, cf in enumerate(cash_flows)]


def _npv_derivative(cash_flows: Sequence[float], rate: float) -> float:
    return sum(-t * cf / (1 + rate) ** (t + 1) for t, cf in enumerate(cash_flows) if t > 0)


def _has_sign_change(cash_flows: Sequence[float]) -> bool:
    return any(cf > 0 for cf in cash_flows) and any(cf < 0 for cf in cash_flows)


def _irr_newton(cash_flows: Sequence[float], max_iterations: int,
                precision: float) -> IRRResult:
    rate = IRR_INITIAL_GUESS
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        try:
            value = npv(cash_flows, rate)
            derivative = _npv_derivative(cash_flows, rate)
        except (OverflowError, ZeroDivisionError):
            break

        if not math.isfinite(value) or not math.isfinite(derivative):
            break

        if abs(value) < precision:
            return IRRResult(rate=rate * 100, converged=True,
                             iterations=iterations, method=IRRMethod.NEWTON)

        if derivative == 0:
            break

        rate = max(rate - value / derivative, IRR_RATE_FLOOR)

    return IRRResult(rate=rate * 100, converged=False,
                     iterations=iterations, method=IRRMethod.NEWTON)


def _irr_brent(cash_flows: Sequence[float], max_iterations: int,
               precision: float) -> IRRResult:
    def f(rate):
        return npv(cash_flows, rate)

    try:
        low = f(IRR_RATE_FLOOR)
        high = f(IRR_BRENT_UPPER)
    except (OverflowError, ZeroDivisionError):
        return IRRResult(rate=0.0, converged=False, iterations=0, method=IRRMethod.BRENT)

    if not (math.isfinite(low) and math.isfinite(high)) or low * high > 0:
        return IRRResult(rate=0.0, converged=False, iterations=0, method=IRRMethod.BRENT)

    root, info = brentq(f, IRR_RATE_FLOOR, IRR_BRENT_UPPER,
                        maxiter=max_iterations, full_output=True, disp=False)

    converged = bool(info.converged) and abs(f(root)) < precision
    return IRRResult(rate=float(root) * 100, converged=converged,
                     iterations=int(info.iterations), method=IRRMethod.BRENT)


def irr(cash_flows: Sequence[float], max_iterations: int = 100,
        precision: float = 1e-4, method: IRRMethod = IRRMethod.NEWTON) -> IRRResult:
    """
    Calculate internal rate of return.

    Newton-Raphson starts at 10% and never steps below -99%. When the
    solver stalls or exhausts its budget the last iterate is returned with
    ``converged=False``; callers should treat that as low confidence.

    Args:
        cash_flows: Signed cash flows
        max_iterations: Iteration budget
        precision: |NPV| tolerance at the root
        method: Root-finding method

    Returns:
        IRRResult with the rate as a percentage
    """
    if len(cash_flows) < 2 or not _has_sign_change(cash_flows):
        logger.debug("IRR undefined for cash flows without a sign change",
                     periods=len(cash_flows))
        return IRRResult(rate=0.0, converged=False, iterations=0, method=method)

    if method == IRRMethod.BRENT:
        return _irr_brent(cash_flows, max_iterations, precision)
    return _irr_newton(cash_flows, max_iterations, precision)


def irr_with_fallback(cash_flows: Sequence[float], max_iterations: int = 100,
                      precision: float = 1e-4) -> IRRResult:
    """Newton-Raphson IRR, retried with a bracketed Brent search if it does not converge."""
    result = irr(cash_flows, max_iterations, precision, IRRMethod.NEWTON)
    if result.converged or not _has_sign_change(cash_flows):
        return result

    fallback = irr(cash_flows, BRENT_MAX_ITERATIONS, precision, IRRMethod.BRENT)
    if fallback.converged:
        logger.debug("IRR recovered by bracketed search",
                     newton_rate=result.rate,
                     brent_rate=fallback.rate)
        return fallback

    logger.warning("IRR did not converge",
                   rate=result.rate,
                   iterations=result.iterations)
    return result


def capm_expected_return(risk_free_rate: float, market_return: float, beta: float) -> float:
    """CAPM expected return: rf + beta * (rm - rf). Rates share the caller's unit."""
    return risk_free_rate + beta * (market_return - risk_free_rate)


def risk_adjusted_npv(cash_flows: Sequence[float], risk_free_rate: float,
                      market_risk_premium: float, beta: float) -> float:
    """NPV discounted at the CAPM rate rf + beta * premium (decimals)."""
    return npv(cash_flows, risk_free_rate + beta * market_risk_premium)
