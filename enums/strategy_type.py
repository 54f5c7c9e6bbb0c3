"""
Strategy classification used for pair selection and trade sizing.

A strategy's type decides which trading pair a session works on; its risk
level decides which fraction of the allocated funds a single trade may use.
"""

from __future__ import annotations

from enum import Enum


class StrategyType(str, Enum):
    """Kinds of strategy a session can be delegated under."""

    MEMECOIN = "MEMECOIN"
    ARBITRAGE = "ARBITRAGE"
    LIMIT_ORDER = "LIMIT_ORDER"


class RiskLevel(str, Enum):
    """Risk appetite of a strategy."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
