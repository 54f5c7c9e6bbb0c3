"""
Wire schema for the remote decision (analysis) service.

The request mirrors the market snapshot plus the pair and strategy type; the
response carries ``action``, ``confidence`` and ``reasoning`` and may be
wrapped in a ``decision`` object. Anything that does not match raises
``ValueError`` so that the caller can fall back.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, List, Optional

_ACTIONS = ("BUY", "SELL", "HOLD")


@dataclass
class AnalysisRequest:
    """Body of ``POST <analysisEndpoint>``."""

    currentPrice: float
    priceHistory: List[float]
    volume: float
    rsi: float
    pair: str
    strategyType: str

    def to_payload(self) -> dict:
        return asdict(self)


@dataclass
class AnalysisResponse:
    """Validated response of the analysis service."""

    action: str
    confidence: float
    reasoning: List[str] = field(default_factory=list)
    amount: Optional[Any] = None
    suggestedSlippage: Optional[float] = None

    @classmethod
    def parse(cls, body: Any) -> "AnalysisResponse":
        if not isinstance(body, dict):
            raise ValueError("analysis response is not a JSON object")
        data = body.get("decision", body)
        if not isinstance(data, dict):
            raise ValueError("analysis decision is not a JSON object")

        action = str(data.get("action", "")).upper()
        if action not in _ACTIONS:
            raise ValueError(f"unknown action {data.get('action')!r}")

        confidence = data.get("confidence")
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise ValueError(f"confidence is not a number: {confidence!r}")
        confidence = float(confidence)
        if not math.isfinite(confidence):
            raise ValueError(f"confidence is not finite: {confidence!r}")
        # some deployments answer on a 0-100 scale
        if confidence > 1.0:
            confidence = confidence / 100.0
        if confidence < 0.0 or confidence > 1.0:
            raise ValueError(f"confidence out of range: {data.get('confidence')!r}")

        reasoning = data.get("reasoning")
        if not isinstance(reasoning, list):
            raise ValueError("reasoning is not a list")

        slippage = data.get("suggestedSlippage")
        if isinstance(slippage, bool) or not isinstance(slippage, (int, float)):
            slippage = None
        elif not math.isfinite(slippage):
            raise ValueError(f"suggestedSlippage is not finite: {slippage!r}")
        return cls(
            action=action,
            confidence=confidence,
            reasoning=[str(r) for r in reasoning],
            amount=data.get("amount"),
            suggestedSlippage=float(slippage) if slippage is not None else None,
        )
