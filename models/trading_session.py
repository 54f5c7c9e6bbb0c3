"""
A user's delegation of funds to a bot-controlled wallet under one strategy.

Sessions are created when a user delegates funds and only ever change by
being (de)activated. The allocated amount is owned by funds accounting
outside this engine and is never decremented here.
"""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field


class TradingSession(BaseModel):
    id: int
    user_address: str
    wallet_address: str
    allocated_amount: Decimal = Field(ge=0)
    strategy_id: int
    is_active: bool = True
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def from_row(cls, row: dict) -> "TradingSession":
        return cls(
            id=int(row["id"]),
            user_address=row["user_address"],
            wallet_address=row["wallet_address"],
            allocated_amount=Decimal(str(row["allocated_amount"])),
            strategy_id=int(row["strategy_id"]),
            is_active=bool(row["is_active"]),
            created_at=int(row.get("created_at") or 0),
            updated_at=int(row.get("updated_at") or 0),
        )
