# services/session_service.py
from __future__ import annotations
from decimal import Decimal

from enums.activity_type import ActivityType
from models.trading_session import TradingSession
from repositories.session_repository import SessionRepository
from repositories.strategy_repository import StrategyRepository
from repositories.wallet_key_repository import WalletKeyRepository
from services.activity_log_service import ActivityLogger
from services.wallet_service import WalletService
from utils.exceptions import SessionNotFound, StrategyNotFound
from utils.log_config import logger_manager, log_function
from utils.web3_utils import format_plain_decimal, to_decimal

logger = logger_manager.setup_logger(__name__)


class SessionService:
    """Starts and stops delegated trading sessions."""

    def __init__(self, sessions: SessionRepository, strategies: StrategyRepository,
                 keys: WalletKeyRepository, wallets: WalletService, activity: ActivityLogger) -> None:
        self.sessions = sessions
        self.strategies = strategies
        self.keys = keys
        self.wallets = wallets
        self.activity = activity

    @log_function
    def start_session(self, user_address: str, allocated_amount: Decimal, strategy_id: int) -> TradingSession:
        amount = to_decimal(allocated_amount)
        if amount < 0:
            raise ValueError("allocated_amount must be non-negative")
        if self.strategies.get_by_id(strategy_id) is None:
            raise StrategyNotFound(f"Strategy {strategy_id} not found")

        wallet = self.wallets.derive(user_address, self.sessions.count_for_user(user_address))
        session = self.sessions.create(user_address, wallet.address, amount, strategy_id)
        try:
            self.keys.save(session.id, wallet.private_key)
        except Exception:
            # sessions without key material stay inactive
            self.sessions.set_active(session.id, False)
            raise

        self.activity.log(session.id, ActivityType.SESSION_START, {
            "userAddress": user_address,
            "aiWalletAddress": wallet.address,
            "allocatedAmount": format_plain_decimal(amount),
            "strategyId": strategy_id,
        })
        logger.info(f"Session {session.id} started for {user_address} → {wallet.address}")
        return session

    @log_function
    def stop_session(self, session_id: int) -> TradingSession:
        session = self.sessions.get_by_id(session_id)
        if session is None:
            raise SessionNotFound(f"No trading session found with ID {session_id}")
        self.sessions.set_active(session_id, False)
        self.activity.log(session_id, ActivityType.SESSION_STOP, {"sessionId": session_id})
        return self.sessions.get_by_id(session_id)
