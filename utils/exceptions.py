"""
Exception hierarchy for the trading iteration engine.

The iteration maps each family to a different audit outcome: skips and
economic rejections are normal results, configuration and execution errors
fail the iteration.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class TradingError(Exception):
    """Base class for every error raised by the engine."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


# Configuration
class ConfigurationError(TradingError):
    """Missing router address, key material or token registry entry."""


class MissingKeyMaterial(ConfigurationError):
    pass


class TokenNotConfigured(ConfigurationError):
    pass


# Upstream services
class DataUnavailable(TradingError):
    """Market data could not be fetched; there is no safe fallback for prices."""


class DecisionUnavailable(TradingError):
    """A decision source failed (timeout, non-2xx, malformed body)."""


# Resolution skips: terminal for the iteration, never retried
class IterationSkipped(TradingError):
    pass


class SessionNotFound(IterationSkipped):
    pass


class SessionInactive(IterationSkipped):
    pass


class StrategyNotFound(IterationSkipped):
    pass


class StrategyDisabled(IterationSkipped):
    pass


class IterationInProgress(IterationSkipped):
    pass


# Economic rejection
class NotProfitable(TradingError):
    """The trade would not clear the minimum profit after gas."""


# On-chain
class ExecutionError(TradingError):
    pass


class TransactionReverted(ExecutionError):
    def __init__(self, message: str, tx_hash: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.tx_hash = tx_hash


class TransactionTimeout(ExecutionError):
    def __init__(self, message: str, tx_hash: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.tx_hash = tx_hash
