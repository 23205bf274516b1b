"""Allocation policy: basket limits and portfolio-wide validation."""

from typing import Dict, Optional, Sequence
import structlog

from valuation_engine.models.valuation_data import (
    Basket, AllocationStatus, AllocationAction, AllocationResult, PortfolioAllocationCheck
)

logger = structlog.get_logger(__name__)

# Percent of total portfolio value
DEFAULT_ALLOCATION_RULES = {
    'Bitcoin': {'min': 60.0, 'max': 80.0, 'recommended_min': 60.0, 'recommended_max': 75.0},
    'BlueChip': {'min': 0.0, 'max': 40.0, 'recommended_min': 20.0, 'recommended_max': 35.0},
    'SmallCap': {'min': 0.0, 'max': 15.0, 'recommended_min': 5.0, 'recommended_max': 10.0},
}


def check_allocation(investment_amount: float,
                     total_portfolio: float,
                     basket: Basket,
                     rules: Optional[Dict[str, Dict[str, float]]] = None) -> AllocationResult:
    """
    Classify a proposed position against its basket's limits.

    Args:
        investment_amount: Proposed position size
        total_portfolio: Total portfolio value
        basket: Basket of the coin
        rules: Allocation rules keyed by basket name

    Returns:
        AllocationResult; a non-positive portfolio is treated as 0%
    """
    rule = (rules or DEFAULT_ALLOCATION_RULES)[basket.value]

    if total_portfolio > 0:
        percentage = investment_amount / total_portfolio * 100
    else:
        percentage = 0.0

    if percentage < rule['min']:
        status = AllocationStatus.UNDEREXPOSED
        action = AllocationAction.INCREASE
        message = (f"{basket.value} allocation {percentage:.1f}% is below the "
                   f"{rule['min']:.0f}% minimum; increase toward "
                   f"{rule['recommended_min']:.0f}-{rule['recommended_max']:.0f}%")
    elif percentage > rule['max']:
        status = AllocationStatus.OVEREXPOSED
        action = AllocationAction.DECREASE
        message = (f"{basket.value} allocation {percentage:.1f}% exceeds the "
                   f"{rule['max']:.0f}% maximum; reduce toward "
                   f"{rule['recommended_min']:.0f}-{rule['recommended_max']:.0f}%")
    else:
        status = AllocationStatus.OPTIMAL
        action = AllocationAction.MAINTAIN
        message = f"{basket.value} allocation {percentage:.1f}% is within limits"

    return AllocationResult(
        portfolio_percentage=percentage,
        basket=basket,
        status=status,
        action=action,
        min_allocation=rule['min'],
        max_allocation=rule['max'],
        recommended_range=(rule['recommended_min'], rule['recommended_max']),
        message=message
    )


def validate_portfolio_allocation(bitcoin: float,
                                  blue_chip: float,
                                  small_cap: float,
                                  rules: Optional[Dict[str, Dict[str, float]]] = None,
                                  tolerance: float = 1.0) -> PortfolioAllocationCheck:
    """
    Validate basket percentages for a whole portfolio.

    Allocations must sum to 100% within ``tolerance`` percentage points and
    no basket may exceed its cap.
    """
    rules = rules or DEFAULT_ALLOCATION_RULES
    allocations = {
        Basket.BITCOIN: bitcoin,
        Basket.BLUE_CHIP: blue_chip,
        Basket.SMALL_CAP: small_cap,
    }

    total = bitcoin + blue_chip + small_cap
    violations = []

    if abs(total - 100) > tolerance:
        violations.append(f"Allocations sum to {total:.1f}%, expected 100%")

    for basket, percentage in allocations.items():
        cap = rules[basket.value]['max']
        if percentage > cap:
            violations.append(f"{basket.value} allocation {percentage:.1f}% exceeds {cap:.0f}% cap")

    if violations:
        logger.debug("Portfolio allocation violations", violations=violations)

    return PortfolioAllocationCheck(
        total_allocation=total,
        is_complete=abs(total - 100) <= tolerance,
        violations=violations
    )


def diversification_score(weights: Sequence[float]) -> float:
    """
    Diversification score 0-100 from the Herfindahl-Hirschman index.

    Weights are normalized to percentages; score = 100 - HHI / 100.
    """
    positive = [w for w in weights if w > 0]
    total = sum(positive)
    if total <= 0:
        return 0.0

    hhi = sum((w / total * 100) ** 2 for w in positive)
    return max(0.0, 100 - hhi / 100)
