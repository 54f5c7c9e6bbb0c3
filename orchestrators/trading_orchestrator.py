# orchestrators/trading_orchestrator.py
from __future__ import annotations
import os
from typing import Optional

from controllers.trade_controller import TradeExecutor
from enums.activity_type import ActivityType
from services.activity_log_service import ActivityLogger
from services.decision_service import DecisionEngine
from services.market_data_service import MarketDataClient
from services.strategy_service import SessionStrategyResolver
from services.telegram_service import TelegramService
from utils.exceptions import DataUnavailable, IterationInProgress, IterationSkipped, NotProfitable
from utils.log_config import logger_manager, log_function
from utils.session_lock import SessionLockRegistry, session_locks
from utils.web3_utils import format_plain_decimal

logger = logger_manager.setup_logger(__name__)

# Minimum decision confidence (0..1) for a BUY/SELL to be executed
CONFIDENCE_THRESHOLD = float(os.getenv("CONFIDENCE_THRESHOLD", "0.6"))


class TradingOrchestrator:
    """
    One trading iteration for one session:
      - resolve session + strategy (skips end here),
      - fetch market data and ask the decision engine,
      - size the trade and hand BUY/SELL above the confidence threshold to
        the executor, otherwise HOLD.
    Every branch leaves at least one activity log entry. Returns True when
    the iteration completed (trade or hold), False when it was skipped or
    failed.
    """

    def __init__(
        self,
        resolver: SessionStrategyResolver,
        market: MarketDataClient,
        engine: DecisionEngine,
        executor: TradeExecutor,
        activity: ActivityLogger,
        locks: SessionLockRegistry = session_locks,
        confidence_threshold: float = CONFIDENCE_THRESHOLD,
        notifier: Optional[TelegramService] = None,
    ) -> None:
        self.resolver = resolver
        self.market = market
        self.engine = engine
        self.executor = executor
        self.activity = activity
        self.locks = locks
        self.confidence_threshold = float(confidence_threshold)
        self.notifier = notifier

    @log_function
    def run_iteration(self, session_id: int) -> bool:
        with self.locks.hold(session_id) as acquired:
            if not acquired:
                return self._skip(session_id, IterationInProgress(f"Session {session_id} is already trading"))
            try:
                return self._iterate(session_id)
            except Exception as e:
                logger.exception(f"[iteration] session {session_id} failed: {e}")
                self.activity.log(session_id, ActivityType.TRADING_CYCLE_ERROR, {
                    "error": str(e), "errorType": type(e).__name__,
                })
                return False

    def _skip(self, session_id: int, reason: IterationSkipped) -> bool:
        self.activity.log(session_id, ActivityType.TRADING_SKIPPED, {
            "reason": type(reason).__name__, "message": reason.message, **reason.details,
        })
        return False

    def _hold(self, session_id: int, reason: str, **details) -> bool:
        self.activity.log(session_id, ActivityType.TRADING_HOLD, {"reason": reason, **details})
        return True

    def _iterate(self, session_id: int) -> bool:
        try:
            resolution = self.resolver.resolve(session_id)
        except IterationSkipped as e:
            return self._skip(session_id, e)

        session, strategy, pair = resolution.session, resolution.strategy, resolution.pair
        trade_amount = resolution.trade_amount
        self.activity.log(session_id, ActivityType.TRADING_CYCLE_START, {
            "strategy": strategy.name,
            "strategyType": strategy.type.value,
            "riskLevel": strategy.risk_level.value,
            "allocatedAmount": format_plain_decimal(session.allocated_amount),
            "pair": pair,
        })

        try:
            market = self.market.fetch(pair)
        except DataUnavailable as e:
            self.activity.log(session_id, ActivityType.TRADING_CYCLE_ERROR, {"error": e.message, **e.details})
            return False
        self.activity.log(session_id, ActivityType.MARKET_ANALYSIS, {"pair": pair, **market.to_request()})

        decision = self.engine.decide(market, pair, strategy.type, trade_amount)
        self.activity.log(session_id, ActivityType.TRADING_DECISION, {
            **decision.summary(),
            "pair": pair,
            "tradeAmount": format_plain_decimal(trade_amount),
        }, confidence=decision.confidence)

        if not decision.is_actionable(self.confidence_threshold):
            return self._hold(
                session_id,
                "Low confidence or HOLD signal",
                action=decision.action.value,
                confidence=decision.confidence,
                threshold=self.confidence_threshold,
            )

        amount = min(trade_amount, decision.amount)
        if amount <= 0 or amount < self.engine.dust_amount:
            return self._hold(session_id, "Sized amount below dust floor", amount=format_plain_decimal(amount))

        try:
            record = self.executor.execute(session_id, session.wallet_address, decision.action, amount, pair)
        except NotProfitable as e:
            return self._hold(session_id, "Trade not profitable after gas costs", **e.details)
        except Exception as e:
            self.activity.log(session_id, ActivityType.TRADING_ERROR, {
                "error": str(e),
                "errorType": type(e).__name__,
                "action": decision.action.value,
                "amount": format_plain_decimal(amount),
                "pair": pair,
            })
            if self.notifier:
                self.notifier.notify_error(session_id, str(e))
            return False

        if self.notifier:
            self.notifier.notify_trade(record)
        return True

