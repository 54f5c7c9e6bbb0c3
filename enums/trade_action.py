"""
Trade direction and outcome enumerations.
"""

from __future__ import annotations

from enum import Enum


class TradeAction(str, Enum):
    """What a decision recommends doing with the pair."""

    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"


class TradeStatus(str, Enum):
    """Final state of a persisted trade."""

    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
