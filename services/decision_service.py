# services/decision_service.py
from __future__ import annotations
import os
import statistics
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional, Sequence

import requests
from pydantic import ValidationError

from enums.strategy_type import StrategyType
from enums.trade_action import TradeAction
from models.decision import Decision
from models.market_data import MarketData
from schemas.analysis_schema import AnalysisRequest, AnalysisResponse
from services.market_data_service import API_BASE_URL, HTTP_TIMEOUT_SECS
from utils.exceptions import DecisionUnavailable
from utils.log_config import logger_manager, log_function
from utils.web3_utils import renders_scientific, to_decimal

logger = logger_manager.setup_logger(__name__)

ANALYSIS_URL = os.getenv("ANALYSIS_URL", f"{API_BASE_URL}/api/ai/analyze")
DUST_AMOUNT = Decimal(os.getenv("DUST_AMOUNT", "0.000001"))

# RSI bands and base confidences
RSI_OVERSOLD = 30.0
RSI_OVERBOUGHT = 70.0
LEAN_CONFIDENCE = 0.7
NEUTRAL_CONFIDENCE = 0.5
GUARD_CONFIDENCE = 0.8

# momentum over the last points of history, in percent
MOMENTUM_WINDOW = 5
MOMENTUM_THRESHOLD_PCT = 5.0
MOMENTUM_BOOST = 0.1

# slippage tolerance as a fraction (0.005 = 0.5 %)
BASE_SLIPPAGE = 0.005
MIN_SLIPPAGE = 0.001
MAX_SLIPPAGE = 0.03

HIGH_VOLATILITY = 0.05
LOW_VOLATILITY = 0.01
VOLATILITY_PENALTY = 0.1

LOW_LIQUIDITY = 100_000.0
HIGH_LIQUIDITY = 1_000_000.0
LOW_LIQUIDITY_PENALTY = 0.1
HIGH_LIQUIDITY_BOOST = 0.05


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def momentum_pct(history: Sequence[float], window: int = MOMENTUM_WINDOW) -> float:
    """Percentage change between the first and last of the last ``window`` points."""
    points = list(history)[-window:]
    if len(points) < 2 or points[0] == 0:
        return 0.0
    return (points[-1] - points[0]) / points[0] * 100.0


def returns_volatility(history: Sequence[float]) -> float:
    """Population standard deviation of consecutive fractional returns."""
    returns = [
        (cur - prev) / prev
        for prev, cur in zip(history, list(history)[1:])
        if prev != 0
    ]
    if len(returns) < 2:
        return 0.0
    return statistics.pstdev(returns)


class DecisionSource(ABC):
    """Anything able to turn a market snapshot into a recommendation."""

    name = "source"

    @abstractmethod
    def decide(self, market: MarketData, pair: str, strategy_type: StrategyType, trade_amount: Decimal) -> Decision:
        ...


class HeuristicDecisionSource(DecisionSource):
    """
    Deterministic local rules: RSI lean, then momentum, volatility and
    liquidity adjustments. Never raises for well-formed market data.
    """

    name = "heuristic"

    def decide(self, market: MarketData, pair: str, strategy_type: StrategyType, trade_amount: Decimal) -> Decision:
        reasoning: List[str] = [f"Current price: {market.current_price:.6g}"]
        rsi = market.rsi

        if rsi < RSI_OVERSOLD:
            action, confidence = TradeAction.BUY, LEAN_CONFIDENCE
            reasoning.append(f"RSI is oversold at {rsi:.2f}")
        elif rsi > RSI_OVERBOUGHT:
            action, confidence = TradeAction.SELL, LEAN_CONFIDENCE
            reasoning.append(f"RSI is overbought at {rsi:.2f}")
        else:
            action, confidence = TradeAction.HOLD, NEUTRAL_CONFIDENCE
            reasoning.append(f"RSI is neutral at {rsi:.2f}")

        change = momentum_pct(market.price_history)
        if abs(change) > MOMENTUM_THRESHOLD_PCT:
            direction = "increased" if change > 0 else "decreased"
            reasoning.append(f"Price {direction} by {abs(change):.2f}% over the last {MOMENTUM_WINDOW} points")
            # only a move that agrees with the lean adds confidence
            if (action == TradeAction.BUY and change < 0) or (action == TradeAction.SELL and change > 0):
                confidence += MOMENTUM_BOOST

        slippage = BASE_SLIPPAGE
        volatility = returns_volatility(market.price_history)
        if volatility > HIGH_VOLATILITY:
            confidence -= VOLATILITY_PENALTY
            slippage = min(slippage + 0.01, MAX_SLIPPAGE)
            reasoning.append(f"High volatility ({volatility:.4f}); widening slippage tolerance")
        elif volatility < LOW_VOLATILITY:
            slippage = max(slippage - 0.002, MIN_SLIPPAGE)

        liquidity = market.pool_liquidity
        if liquidity < LOW_LIQUIDITY:
            confidence -= LOW_LIQUIDITY_PENALTY
            slippage = min(slippage + 0.005, MAX_SLIPPAGE)
            reasoning.append(f"Thin liquidity ({liquidity:,.0f}); lowering confidence")
        elif liquidity > HIGH_LIQUIDITY:
            confidence += HIGH_LIQUIDITY_BOOST
            slippage = max(slippage - 0.001, MIN_SLIPPAGE)
            reasoning.append(f"Deep liquidity ({liquidity:,.0f})")

        return Decision(
            action=action,
            confidence=clamp(confidence, 0.0, 1.0),
            amount=to_decimal(trade_amount),
            suggested_slippage=clamp(slippage, MIN_SLIPPAGE, MAX_SLIPPAGE),
            reasoning=reasoning,
            source=self.name,
        )


class RemoteDecisionSource(DecisionSource):
    """
    Analysis service client: ``POST <url>`` with the market snapshot, pair
    and strategy type. Any transport error, non-2xx status or malformed body
    raises ``DecisionUnavailable``.
    """

    name = "remote"

    def __init__(self, url: str | None = None, timeout: float | None = None,
                 session: requests.Session | None = None) -> None:
        self.url = url or ANALYSIS_URL
        self.timeout = HTTP_TIMEOUT_SECS if timeout is None else timeout
        self.http = session or requests.Session()

    def decide(self, market: MarketData, pair: str, strategy_type: StrategyType, trade_amount: Decimal) -> Decision:
        request = AnalysisRequest(
            currentPrice=market.current_price,
            priceHistory=list(market.price_history),
            volume=market.volume,
            rsi=market.rsi,
            pair=pair,
            strategyType=StrategyType(strategy_type).value,
        )
        try:
            r = self.http.post(self.url, json=request.to_payload(), timeout=self.timeout)
            r.raise_for_status()
            return self._to_decision(AnalysisResponse.parse(r.json()), trade_amount)
        except (requests.RequestException, ValidationError, ValueError) as e:
            raise DecisionUnavailable(f"Analysis service failed: {e}", {"pair": pair}) from e

    def _to_decision(self, parsed: AnalysisResponse, trade_amount: Decimal) -> Decision:
        amount = to_decimal(parsed.amount) if parsed.amount is not None else to_decimal(trade_amount)
        if not amount.is_finite():
            raise ValueError(f"amount is not finite: {parsed.amount!r}")

        slippage = parsed.suggestedSlippage
        if slippage is None:
            slippage = BASE_SLIPPAGE
        elif slippage > MAX_SLIPPAGE:
            # answered in percent, e.g. 0.5 → 0.005
            slippage = slippage / 100.0

        return Decision(
            action=TradeAction(parsed.action),
            confidence=clamp(parsed.confidence, 0.0, 1.0),
            amount=amount,
            suggested_slippage=clamp(slippage, MIN_SLIPPAGE, MAX_SLIPPAGE),
            reasoning=parsed.reasoning,
            source=self.name,
        )


class FallbackDecisionSource(DecisionSource):
    """
    Uses ``primary`` and, when it is unavailable, silently answers with
    ``fallback`` for the same inputs.
    """

    def __init__(self, primary: DecisionSource, fallback: DecisionSource) -> None:
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    def decide(self, market: MarketData, pair: str, strategy_type: StrategyType, trade_amount: Decimal) -> Decision:
        try:
            return self.primary.decide(market, pair, strategy_type, trade_amount)
        except DecisionUnavailable as e:
            logger.warning(f"[decision] {self.primary.name} unavailable for {pair}, using {self.fallback.name}: {e}")
            return self.fallback.decide(market, pair, strategy_type, trade_amount)


def default_source() -> DecisionSource:
    heuristic = HeuristicDecisionSource()
    if not ANALYSIS_URL:
        return heuristic
    return FallbackDecisionSource(RemoteDecisionSource(), heuristic)


class DecisionEngine:
    """
    Produces the recommendation for one iteration and applies the
    degenerate-amount guard to whatever the source answered.
    """

    def __init__(self, source: Optional[DecisionSource] = None, dust_amount: Decimal = DUST_AMOUNT) -> None:
        self.source = source or default_source()
        self.dust_amount = Decimal(dust_amount)

    @log_function
    def decide(self, market: MarketData, pair: str, strategy_type: StrategyType, trade_amount: Decimal) -> Decision:
        decision = self.source.decide(market, pair, strategy_type, trade_amount)
        return self._guard_amount(decision)

    def _guard_amount(self, decision: Decision) -> Decision:
        amount = decision.amount
        if amount > 0 and amount >= self.dust_amount and not renders_scientific(amount):
            return decision

        if amount <= 0:
            why = f"suggested amount {amount} is not positive"
        elif amount < self.dust_amount:
            why = f"suggested amount {amount} is below the dust floor {self.dust_amount}"
        else:
            why = f"suggested amount {amount} is too small to express as a plain decimal"
        logger.info(f"[decision] downgrading {decision.action.value} to HOLD: {why}")
        return decision.model_copy(update={
            "action": TradeAction.HOLD,
            "confidence": GUARD_CONFIDENCE,
            "reasoning": list(decision.reasoning) + [f"Forced HOLD: {why}"],
        })
