"""
Kinds of entries written to the wallet activity audit log.
"""

from __future__ import annotations

from enum import Enum


class ActivityType(str, Enum):
    SESSION_START = "SESSION_START"
    SESSION_STOP = "SESSION_STOP"
    TRADING_CYCLE_START = "TRADING_CYCLE_START"
    MARKET_ANALYSIS = "MARKET_ANALYSIS"
    TRADING_DECISION = "TRADING_DECISION"
    TRADE_EXECUTION_START = "TRADE_EXECUTION_START"
    TRADE_EXECUTION_SUCCESS = "TRADE_EXECUTION_SUCCESS"
    TRADE_EXECUTION_FAILED = "TRADE_EXECUTION_FAILED"
    TRADING_HOLD = "TRADING_HOLD"
    TRADING_SKIPPED = "TRADING_SKIPPED"
    TRADING_ERROR = "TRADING_ERROR"
    TRADING_CYCLE_ERROR = "TRADING_CYCLE_ERROR"
    JOB_ERROR = "JOB_ERROR"
