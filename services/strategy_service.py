# services/strategy_service.py
from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal

from enums.strategy_type import RiskLevel, StrategyType
from models.strategy import Strategy
from models.trading_session import TradingSession
from repositories.session_repository import SessionRepository
from repositories.strategy_repository import StrategyRepository
from utils.exceptions import SessionInactive, SessionNotFound, StrategyDisabled, StrategyNotFound
from utils.log_config import log_function
from utils.web3_utils import to_decimal

# Fixed pair per strategy type; there is no discovery of trending pairs.
STRATEGY_PAIRS: dict[StrategyType, str] = {
    StrategyType.MEMECOIN: "USDC/SHIB",
    StrategyType.ARBITRAGE: "USDC/WETH",
    StrategyType.LIMIT_ORDER: "USDC/WBTC",
}
DEFAULT_PAIR = "USDC/WETH"

RISK_SIZING: dict[RiskLevel, Decimal] = {
    RiskLevel.LOW: Decimal("0.05"),
    RiskLevel.MEDIUM: Decimal("0.10"),
    RiskLevel.HIGH: Decimal("0.20"),
}


@dataclass(frozen=True)
class Resolution:
    session: TradingSession
    strategy: Strategy
    pair: str
    sizing_fraction: Decimal

    @property
    def trade_amount(self) -> Decimal:
        return self.session.allocated_amount * self.sizing_fraction


def sizing_fraction(strategy: Strategy) -> Decimal:
    """Fraction of the allocation one trade may use.

    An ``investmentPercentage`` in the strategy config replaces the
    risk-level default entirely.
    """
    override = strategy.config.get("investmentPercentage") if strategy.config else None
    if override is not None:
        return to_decimal(override) / Decimal(100)
    return RISK_SIZING[strategy.risk_level]


class SessionStrategyResolver:
    """Loads session and strategy, then picks the pair and the trade size."""

    def __init__(self, sessions: SessionRepository, strategies: StrategyRepository) -> None:
        self.sessions = sessions
        self.strategies = strategies

    @log_function
    def resolve(self, session_id: int) -> Resolution:
        session = self.sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFound(f"No trading session found with ID {session_id}")
        if not session.is_active:
            raise SessionInactive(f"Session {session_id} is not active")

        strategy = self.strategies.get_by_id(session.strategy_id)
        if strategy is None:
            raise StrategyNotFound(f"Strategy {session.strategy_id} not found for session {session_id}")
        if not strategy.is_enabled:
            raise StrategyDisabled(f"Strategy {strategy.name} is disabled", {"strategyId": strategy.id})

        return Resolution(
            session=session,
            strategy=strategy,
            pair=STRATEGY_PAIRS.get(strategy.type, DEFAULT_PAIR),
            sizing_fraction=sizing_fraction(strategy),
        )
