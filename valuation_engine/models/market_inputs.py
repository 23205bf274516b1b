"""Pydantic input models for valuation analysis."""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from valuation_engine.models.valuation_data import Basket, BitcoinState


class InvestmentInputs(BaseModel):
    """Investment parameters for a single analysis call."""
    model_config = ConfigDict(frozen=True)

    coin_id: str = Field(..., min_length=1, description="Coin identifier")
    investment_amount: float = Field(..., gt=0, description="Investment amount in USD")
    investment_horizon: int = Field(..., ge=1, le=100, description="Investment horizon in years")
    staking_yield: Optional[float] = Field(None, ge=0, le=50, description="Annual staking yield (percent)")
    risk_free_rate: Optional[float] = Field(None, ge=2, le=4, description="Risk-free rate (percent)")
    total_portfolio: Optional[float] = Field(None, gt=0, description="Total portfolio value in USD")
    expected_price: Optional[float] = Field(None, gt=0, description="Expected price at horizon")


class CoinSnapshot(BaseModel):
    """Current coin state and on-chain signals."""
    model_config = ConfigDict(frozen=True)

    current_price: float = Field(..., gt=0, description="Current price in USD")
    basket: Basket = Field(..., description="Basket classification")
    fundamentals_score: Optional[float] = Field(None, ge=0, le=10, description="Fundamentals score 0-10")
    cagr_36m: Optional[float] = Field(None, description="Historical 36-month CAGR (percent)")
    staking_yield: Optional[float] = Field(None, ge=0, le=50, description="Native staking yield (percent)")

    # Cointime signals
    aviv_ratio: Optional[float] = Field(None, description="Active value / investor value ratio")
    active_supply: Optional[float] = Field(None, ge=0, le=100, description="Active supply (percent)")
    vaulted_supply: Optional[float] = Field(None, ge=0, le=100, description="Vaulted supply (percent)")
    smart_money_activity: Optional[bool] = Field(None, description="Smart money selling detected")


class PricePoint(BaseModel):
    """Single observation in a price history."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    price: float = Field(..., gt=0)


class PriceSeries(BaseModel):
    """Ordered price history, strictly increasing in time."""
    model_config = ConfigDict(frozen=True)

    points: List[PricePoint] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_ordering(self):
        """Validate that timestamps are strictly increasing."""
        for previous, current in zip(self.points, self.points[1:]):
            if current.timestamp <= previous.timestamp:
                raise ValueError(
                    f"Price series timestamps must be strictly increasing: "
                    f"{current.timestamp.isoformat()} follows {previous.timestamp.isoformat()}"
                )
        return self

    @property
    def prices(self) -> List[float]:
        return [p.price for p in self.points]

    @property
    def timestamps(self) -> List[datetime]:
        return [p.timestamp for p in self.points]

    def __len__(self) -> int:
        return len(self.points)


class MarketConditions(BaseModel):
    """Macro and sentiment snapshot supplied per analysis."""
    model_config = ConfigDict(frozen=True)

    fed_rate_change: float = Field(default=0.0, description="Fed rate change (signed percentage points)")
    bitcoin_state: BitcoinState = Field(default=BitcoinState.NEUTRAL, description="Bitcoin market state")
    sentiment_score: float = Field(default=0.0, description="Market sentiment score")
    smart_money_activity: bool = Field(default=False, description="Smart money selling detected")
