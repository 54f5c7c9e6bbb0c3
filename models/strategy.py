from __future__ import annotations

import json
from typing import Any, Dict

from pydantic import BaseModel, Field

from enums.strategy_type import RiskLevel, StrategyType


class Strategy(BaseModel):
    id: int
    name: str
    type: StrategyType
    risk_level: RiskLevel = RiskLevel.MEDIUM
    is_enabled: bool = False
    config: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict) -> "Strategy":
        raw_config = row.get("config") or "{}"
        return cls(
            id=int(row["id"]),
            name=row["name"],
            type=StrategyType(str(row["type"]).upper()),
            risk_level=RiskLevel(str(row.get("risk_level") or "MEDIUM").upper()),
            is_enabled=bool(row.get("is_enabled")),
            config=json.loads(raw_config) if isinstance(raw_config, str) else dict(raw_config),
        )
