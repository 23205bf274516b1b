"""Pytest configuration and fixtures for valuation engine tests."""

import pytest
from datetime import datetime, timedelta

from valuation_engine.models.config import ValuationEngineConfig
from valuation_engine.models.market_inputs import (
    InvestmentInputs, CoinSnapshot, PricePoint, PriceSeries, MarketConditions
)
from valuation_engine.models.valuation_data import Basket, BitcoinState


# ============================================================================
# CONFIGURATION FIXTURES
# ============================================================================

@pytest.fixture
def config():
    """Engine configuration with a small simulation budget."""
    return ValuationEngineConfig(_env_file=None, monte_carlo_simulations=200)


@pytest.fixture
def sample_timestamp():
    """Sample timestamp for testing."""
    return datetime(2024, 1, 15, 12, 0, 0)


# ============================================================================
# PRICE HISTORY FIXTURES
# ============================================================================

def build_price_series(start_price: float, days: int, drift: float = 0.001,
                       swing: float = 0.01, start: datetime = datetime(2023, 1, 1)) -> PriceSeries:
    """Deterministic daily price path with drift and alternating swings."""
    points = []
    for i in range(days):
        price = start_price * (1 + drift) ** i * (1 + swing * (-1) ** i)
        points.append(PricePoint(timestamp=start + timedelta(days=i), price=price))
    return PriceSeries(points=points)


@pytest.fixture
def price_history():
    """One year of daily Bitcoin prices."""
    return build_price_series(30000.0, 365)


@pytest.fixture
def short_price_history():
    """Single-point price history (insufficient for statistics)."""
    return PriceSeries(points=[PricePoint(timestamp=datetime(2024, 1, 1), price=30000.0)])


# ============================================================================
# INPUT FIXTURES
# ============================================================================

@pytest.fixture
def investment_inputs():
    """Sample investment inputs."""
    return InvestmentInputs(
        coin_id="bitcoin",
        investment_amount=10000.0,
        investment_horizon=3,
        staking_yield=0.0
    )


@pytest.fixture
def bitcoin_snapshot():
    """Sample Bitcoin snapshot with cointime signals."""
    return CoinSnapshot(
        current_price=43000.0,
        basket=Basket.BITCOIN,
        fundamentals_score=9.0,
        cagr_36m=25.0,
        aviv_ratio=0.9,
        active_supply=40.0,
        vaulted_supply=60.0,
        smart_money_activity=False
    )


@pytest.fixture
def neutral_market():
    """Neutral market conditions."""
    return MarketConditions(
        fed_rate_change=0.0,
        bitcoin_state=BitcoinState.NEUTRAL,
        sentiment_score=0.0,
        smart_money_activity=False
    )


@pytest.fixture
def bearish_market():
    """Bearish market with smart money selling and a Fed hike."""
    return MarketConditions(
        fed_rate_change=0.75,
        bitcoin_state=BitcoinState.BEARISH,
        sentiment_score=-0.6,
        smart_money_activity=True
    )
