"""Data sufficiency assessment for an analysis."""

from typing import Any, Mapping, Optional
import structlog

from valuation_engine.models.valuation_data import DataQuality

logger = structlog.get_logger(__name__)

PRICE_HISTORY_TARGET = 365
BETA_SAMPLE_TARGET = 252
PRICE_WEIGHT = 40.0
BETA_WEIGHT = 30.0
ONCHAIN_WEIGHT = 30.0


def assess_data_quality(price_points: int,
                        beta_sample_size: int = 0,
                        onchain_fields: Optional[Mapping[str, Any]] = None,
                        min_reliable_points: int = 30) -> DataQuality:
    """
    Score how well the available data supports the analysis.

    Score = 40% price-history completeness (points / 365)
          + 30% beta sample completeness (aligned returns / 252)
          + 30% share of on-chain fields that are present.

    Args:
        price_points: Number of price observations
        beta_sample_size: Number of aligned asset/market returns
        onchain_fields: On-chain signals by name, None where missing
        min_reliable_points: Points needed for a reliable volatility

    Returns:
        DataQuality with score 0-100 and explanatory notes
    """
    price_points = max(0, int(price_points))
    beta_sample_size = max(0, int(beta_sample_size))
    notes = []

    price_completeness = min(price_points / PRICE_HISTORY_TARGET, 1.0)
    beta_completeness = min(beta_sample_size / BETA_SAMPLE_TARGET, 1.0)

    onchain_fields = onchain_fields or {}
    present = [name for name, value in onchain_fields.items() if value is not None]
    missing = [name for name, value in onchain_fields.items() if value is None]
    onchain_completeness = len(present) / len(onchain_fields) if onchain_fields else 0.0

    sufficient = price_points >= 2
    reliable_volatility = price_points >= min_reliable_points

    if not sufficient:
        notes.append("Insufficient price history: volatility reported as 0")
    elif not reliable_volatility:
        notes.append(f"Only {price_points} price points; volatility is unreliable below {min_reliable_points}")

    if beta_sample_size < 2:
        notes.append("No aligned market history: beta defaults to 1.0")

    if missing:
        notes.append(f"Missing on-chain signals: {', '.join(sorted(missing))}")

    score = (PRICE_WEIGHT * price_completeness
             + BETA_WEIGHT * beta_completeness
             + ONCHAIN_WEIGHT * onchain_completeness)

    if not reliable_volatility:
        logger.warning("Limited price history",
                       price_points=price_points,
                       min_reliable_points=min_reliable_points)

    return DataQuality(
        sample_size=price_points,
        score=round(score, 2),
        sufficient=sufficient,
        reliable_volatility=reliable_volatility,
        notes=notes
    )
