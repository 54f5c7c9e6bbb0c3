"""
Persisted outcome of one executed trade attempt.

Exactly one record is written per trade that reached on-chain confirmation;
records are append-only.
"""

from __future__ import annotations

import time
from typing import Optional

from pydantic import BaseModel, Field

from enums.trade_action import TradeAction, TradeStatus


class TradeRecord(BaseModel):
    id: Optional[int] = None
    session_id: int
    wallet_address: str
    action: TradeAction
    amount: str
    pair: str
    status: TradeStatus
    transaction_hash: Optional[str] = None
    is_ai: bool = True
    timestamp: int = Field(default_factory=lambda: int(time.time()))
