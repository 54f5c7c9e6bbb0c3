"""
Snapshot of market conditions for one pair, as served by the market data
provider.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class MarketData(BaseModel):
    current_price: float
    price_history: List[float] = Field(default_factory=list)
    volume: float = 0.0
    rsi: float = 50.0
    liquidity: Optional[float] = None

    @property
    def pool_liquidity(self) -> float:
        # The provider only reports volume for most pairs; it stands in for depth.
        return self.liquidity if self.liquidity is not None else self.volume

    @classmethod
    def from_api(cls, raw: dict) -> "MarketData":
        return cls(
            current_price=float(raw["currentPrice"]),
            price_history=[float(p) for p in (raw.get("priceHistory") or [])],
            volume=float(raw.get("volume") or 0.0),
            rsi=float(raw["rsi"]) if raw.get("rsi") is not None else 50.0,
            liquidity=float(raw["liquidity"]) if raw.get("liquidity") is not None else None,
        )

    def to_request(self) -> dict:
        return {
            "currentPrice": self.current_price,
            "priceHistory": list(self.price_history),
            "volume": self.volume,
            "rsi": self.rsi,
        }
