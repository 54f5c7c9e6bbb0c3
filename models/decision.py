"""
Trading recommendation produced by a decision source.

Ephemeral: it is summarised into the activity log and, when acted upon, into
a trade record, but never stored as-is. ``suggested_slippage`` is a fraction
(0.005 = 0.5 %) and is informational only; execution uses its own fixed
tolerance.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from enums.trade_action import TradeAction
from utils.web3_utils import format_plain_decimal


class Decision(BaseModel):
    action: TradeAction
    confidence: float = Field(ge=0.0, le=1.0)
    amount: Decimal
    suggested_slippage: float = 0.005
    reasoning: List[str] = Field(default_factory=list)
    source: str = "heuristic"

    def is_actionable(self, threshold: float) -> bool:
        return self.action in (TradeAction.BUY, TradeAction.SELL) and self.confidence >= threshold

    def summary(self) -> dict:
        return {
            "action": self.action.value,
            "confidence": self.confidence,
            "amount": format_plain_decimal(self.amount),
            "suggestedSlippage": self.suggested_slippage,
            "reasoning": list(self.reasoning),
            "source": self.source,
        }
