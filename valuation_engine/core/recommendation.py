"""Recommendation synthesizer: merge metrics into an investment action."""

from dataclasses import dataclass
from typing import List, Optional
import structlog

from valuation_engine.models.config import ValuationEngineConfig
from valuation_engine.models.market_inputs import MarketConditions
from valuation_engine.models.valuation_data import (
    Action, AllocationResult, AllocationStatus, BitcoinState, Finding, RecommendationResult
)

logger = structlog.get_logger(__name__)

STARTING_CONFIDENCE = 50.0


@dataclass(frozen=True)
class RecommendationSignals:
    """Metrics feeding the recommendation."""
    npv: float
    irr: float  # percent
    cagr: float  # percent
    volatility: float  # annualized percent, 0 = insufficient data
    aviv_ratio: Optional[float]
    beta: float
    probability_of_loss: float  # 0-1
    data_quality: float  # 0-100
    irr_converged: bool = True
    allocation: Optional[AllocationResult] = None
    market: Optional[MarketConditions] = None
    risk_factor: Optional[int] = None


class RecommendationSynthesizer:
    """
    Rule-based synthesizer turning analysis metrics into an action.

    Confidence starts at 50 and each signal nudges it by a fixed delta:
    - NPV positive +15, otherwise -20
    - IRR above the hurdle +10, otherwise -15
    - CAGR above the strong threshold +10, below the floor -20
    - Volatility below the low threshold +5, above the high threshold -15
    - AVIV undervalued +15, overextended -15
    - Beta moderate +5, high -10
    - Loss probability low +10, high -20
    - Data quality high +10, low -15

    Decision table (first match wins):
    - NPV > 0 and IRR > hurdle and confidence > buy threshold: Buy
    - NPV > 0 and confidence > buy-less threshold: Buy Less
    - NPV < sell threshold or loss probability > sell threshold: Sell
    - otherwise: Do Not Buy

    Allocation, market conditions and the risk factor only add findings
    and rebalancing actions. Hold is never produced here.
    """

    def __init__(self, config: Optional[ValuationEngineConfig] = None):
        self.config = config or ValuationEngineConfig()
        self.thresholds = self.config.recommendation_thresholds
        self.logger = logger.bind(component="recommendation_synthesizer")

    def synthesize(self, signals: RecommendationSignals) -> RecommendationResult:
        """
        Build the recommendation for one analysis.

        Reasons and warnings are returned in evaluation order.
        """
        t = self.thresholds
        confidence = STARTING_CONFIDENCE
        reasons: List[Finding] = []
        warnings: List[Finding] = []

        # NPV
        if signals.npv > 0:
            confidence += 15
            reasons.append(Finding("positive_npv", f"Positive NPV of ${signals.npv:,.2f}"))
        else:
            confidence -= 20
            warnings.append(Finding("negative_npv", f"Non-positive NPV of ${signals.npv:,.2f}"))

        # IRR
        if signals.irr > t['irr_hurdle']:
            confidence += 10
            reasons.append(Finding("irr_above_hurdle",
                                   f"IRR {signals.irr:.1f}% exceeds the {t['irr_hurdle']:.0f}% hurdle"))
        elif signals.irr <= t['irr_floor']:
            confidence -= 15
            warnings.append(Finding("irr_below_hurdle",
                                    f"IRR {signals.irr:.1f}% does not clear the {t['irr_floor']:.0f}% hurdle"))

        if not signals.irr_converged:
            confidence -= t['irr_unconverged_penalty']
            warnings.append(Finding("irr_not_converged",
                                    "IRR solver did not converge; rate is a low-confidence estimate"))

        # CAGR
        if signals.cagr > t['cagr_strong']:
            confidence += 10
            reasons.append(Finding("strong_growth", f"Strong growth with {signals.cagr:.1f}% CAGR"))
        elif signals.cagr < t['cagr_floor']:
            confidence -= 20
            warnings.append(Finding("negative_growth", f"Negative growth with {signals.cagr:.1f}% CAGR"))

        # Volatility
        if signals.volatility <= 0:
            warnings.append(Finding("volatility_unavailable",
                                    "Insufficient price history to estimate volatility"))
        elif signals.volatility < t['volatility_low']:
            confidence += 5
            reasons.append(Finding("low_volatility", f"Low volatility of {signals.volatility:.1f}%"))
        elif signals.volatility > t['volatility_high']:
            confidence -= 15
            warnings.append(Finding("extreme_volatility",
                                    f"Extreme volatility of {signals.volatility:.1f}%"))

        # AVIV
        if signals.aviv_ratio is not None:
            if signals.aviv_ratio < t['aviv_undervalued']:
                confidence += 15
                reasons.append(Finding("aviv_undervalued",
                                       f"AVIV ratio {signals.aviv_ratio:.2f} indicates undervaluation"))
            elif signals.aviv_ratio > t['aviv_overextended']:
                confidence -= 15
                warnings.append(Finding("aviv_overextended",
                                        f"AVIV ratio {signals.aviv_ratio:.2f} indicates an overheated market"))

        # Beta
        if signals.beta < t['beta_moderate']:
            confidence += 5
            reasons.append(Finding("moderate_beta", f"Moderate systematic risk (beta {signals.beta:.2f})"))
        elif signals.beta > t['beta_high']:
            confidence -= 10
            warnings.append(Finding("high_beta", f"High systematic risk (beta {signals.beta:.2f})"))

        # Monte Carlo loss probability
        if signals.probability_of_loss < t['loss_probability_low']:
            confidence += 10
            reasons.append(Finding("low_loss_probability",
                                   f"Low probability of loss ({signals.probability_of_loss:.0%})"))
        elif signals.probability_of_loss > t['loss_probability_high']:
            confidence -= 20
            warnings.append(Finding("high_loss_probability",
                                    f"High probability of loss ({signals.probability_of_loss:.0%})"))

        # Data quality
        if signals.data_quality > t['data_quality_high']:
            confidence += 10
            reasons.append(Finding("high_data_quality", f"High data quality ({signals.data_quality:.0f}/100)"))
        elif signals.data_quality < t['data_quality_low']:
            confidence -= 15
            warnings.append(Finding("low_data_quality", f"Limited data quality ({signals.data_quality:.0f}/100)"))

        confidence = max(0.0, min(100.0, confidence))
        action = self._decide(signals, confidence)

        rebalancing_actions = self._apply_overlays(signals, reasons, warnings)

        result = RecommendationResult(
            action=action,
            confidence=confidence,
            reasons=tuple(reasons),
            warnings=tuple(warnings),
            rebalancing_actions=tuple(rebalancing_actions),
            risk_factor=signals.risk_factor
        )

        self.logger.debug("Recommendation synthesized",
                          action=action.value,
                          confidence=confidence,
                          reasons=len(reasons),
                          warnings=len(warnings))

        return result

    def _decide(self, signals: RecommendationSignals, confidence: float) -> Action:
        """Apply the decision table."""
        t = self.thresholds

        if signals.npv > 0 and signals.irr > t['irr_hurdle'] and confidence > t['buy_confidence']:
            return Action.BUY
        if signals.npv > 0 and confidence > t['buy_less_confidence']:
            return Action.BUY_LESS
        if signals.npv < t['sell_npv'] or signals.probability_of_loss > t['loss_probability_sell']:
            return Action.SELL
        return Action.DO_NOT_BUY

    def _apply_overlays(self, signals: RecommendationSignals,
                        reasons: List[Finding],
                        warnings: List[Finding]) -> List[str]:
        """Append allocation, market and risk-factor findings."""
        rebalancing_actions = []

        allocation = signals.allocation
        if allocation is not None:
            low, high = allocation.recommended_range
            if allocation.status == AllocationStatus.OVEREXPOSED:
                warnings.append(Finding("allocation_overexposed", allocation.message))
                rebalancing_actions.append(
                    f"Reduce {allocation.basket.value} allocation from "
                    f"{allocation.portfolio_percentage:.1f}% to {low:.0f}-{high:.0f}%"
                )
            elif allocation.status == AllocationStatus.UNDEREXPOSED:
                warnings.append(Finding("allocation_underexposed", allocation.message))
                rebalancing_actions.append(
                    f"Increase {allocation.basket.value} allocation from "
                    f"{allocation.portfolio_percentage:.1f}% to {low:.0f}-{high:.0f}%"
                )
            else:
                reasons.append(Finding("allocation_optimal", allocation.message))

        market = signals.market
        if market is not None:
            if market.bitcoin_state == BitcoinState.BEARISH:
                warnings.append(Finding("bearish_market", "Bitcoin market is bearish"))
                if market.smart_money_activity:
                    warnings.append(Finding("smart_money_exit",
                                            "Smart money is selling into a bearish market"))
                    rebalancing_actions.append("Reduce exposure while smart money is distributing")
            elif market.bitcoin_state == BitcoinState.BULLISH:
                reasons.append(Finding("bullish_market", "Bitcoin market is bullish"))

            if market.smart_money_activity and market.bitcoin_state != BitcoinState.BEARISH:
                warnings.append(Finding("smart_money_selling", "Smart money selling detected"))

            if market.fed_rate_change > 0.5:
                warnings.append(Finding("fed_rate_hike",
                                        f"Fed rate hike of {market.fed_rate_change:.2f}pp pressures valuations"))

        if signals.risk_factor is not None:
            if signals.risk_factor >= 4:
                warnings.append(Finding("high_risk_factor", f"High risk factor ({signals.risk_factor}/5)"))
            elif signals.risk_factor <= 2:
                reasons.append(Finding("low_risk_factor", f"Low risk factor ({signals.risk_factor}/5)"))

        return rebalancing_actions


def synthesize_recommendation(signals: RecommendationSignals,
                              config: Optional[ValuationEngineConfig] = None) -> RecommendationResult:
    """Convenience wrapper around RecommendationSynthesizer."""
    return RecommendationSynthesizer(config).synthesize(signals)
