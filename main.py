# main.py
from __future__ import annotations
import argparse
import os
import signal
import sys
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

# ---- project imports (after .env so module-level settings see it) ----
from controllers.trade_controller import TradeExecutor
from enums.strategy_type import RiskLevel, StrategyType
from orchestrators.trading_orchestrator import TradingOrchestrator
from orchestrators.trading_scheduler import TradingScheduler
from repositories.activity_log_repository import ActivityLogRepository
from repositories.session_repository import SessionRepository
from repositories.strategy_repository import StrategyRepository
from repositories.token_repository import TokenRepository
from repositories.trade_repository import TradeRepository
from repositories.wallet_key_repository import WalletKeyRepository
from services.activity_log_service import ActivityLogger
from services.decision_service import DecisionEngine
from services.market_data_service import MarketDataClient
from services.profitability_service import ProfitabilityEvaluator
from services.session_service import SessionService
from services.strategy_service import SessionStrategyResolver
from services.telegram_service import TelegramService
from services.wallet_service import WalletService
from services.web3_service import Web3Service
from utils.config import load_config, token_registry
from utils.log_config import ENABLE_TELEGRAM, logger_manager

logger = logger_manager.setup_logger(__name__)

SESSION_SYNC_SEC = float(os.getenv("SESSION_SYNC_SEC", "30"))


@dataclass
class Repositories:
    sessions: SessionRepository
    strategies: StrategyRepository
    tokens: TokenRepository
    trades: TradeRepository
    keys: WalletKeyRepository
    activity: ActivityLogRepository

    @classmethod
    def open(cls, db_path: Optional[str] = None) -> "Repositories":
        return cls(
            sessions=SessionRepository(db_path),
            strategies=StrategyRepository(db_path),
            tokens=TokenRepository(db_path),
            trades=TradeRepository(db_path),
            keys=WalletKeyRepository(db_path),
            activity=ActivityLogRepository(db_path),
        )


def seed_from_config(repos: Repositories, config: dict) -> None:
    """Token registry always follows config.yaml; strategies only seed an empty table."""
    n = repos.tokens.seed(token_registry(config))
    logger.info(f"Token registry: {n} symbols from config.")
    if repos.strategies.list_all():
        return
    for s in config.get("strategies") or []:
        repos.strategies.save(
            name=s["name"],
            type=StrategyType(str(s["type"]).upper()),
            risk_level=RiskLevel(str(s.get("risk_level", "MEDIUM")).upper()),
            is_enabled=bool(s.get("enabled", True)),
            config=s.get("config") or {},
        )
        logger.info(f"Strategy seeded: {s['name']}")


def build_orchestrator(repos: Repositories) -> TradingOrchestrator:
    activity = ActivityLogger(repos.activity)
    w3s = Web3Service()
    executor = TradeExecutor(
        w3s=w3s,
        evaluator=ProfitabilityEvaluator(gas_source=w3s),
        tokens=repos.tokens,
        keys=repos.keys,
        trades=repos.trades,
        activity=activity,
    )
    return TradingOrchestrator(
        resolver=SessionStrategyResolver(repos.sessions, repos.strategies),
        market=MarketDataClient(),
        engine=DecisionEngine(),
        executor=executor,
        activity=activity,
        notifier=TelegramService() if ENABLE_TELEGRAM else None,
    )


# ------------------------------
# Commands
# ------------------------------
def cmd_run(repos: Repositories) -> int:
    scheduler = TradingScheduler(build_orchestrator(repos), repos.sessions, ActivityLogger(repos.activity))
    stop_evt = threading.Event()

    def shutdown(*_):
        logger.info("🛑 Shutdown signal received, stopping trading jobs...")
        stop_evt.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    logger.info("🚀 Starting trading scheduler...")
    while not stop_evt.is_set():
        # picks up sessions activated since the last pass
        started = scheduler.start_all_active()
        if started:
            logger.info(f"[main] {started} trading job(s) started; running: {scheduler.running()}")
        stop_evt.wait(SESSION_SYNC_SEC)

    scheduler.stop(timeout=5)
    logger.info("✅ Shutdown complete.")
    return 0


def cmd_run_once(repos: Repositories, session_id: int) -> int:
    ok = build_orchestrator(repos).run_iteration(session_id)
    logger.info(f"Iteration for session {session_id}: {'completed' if ok else 'not completed'}")
    return 0 if ok else 1


def _session_service(repos: Repositories) -> SessionService:
    return SessionService(repos.sessions, repos.strategies, repos.keys, WalletService(), ActivityLogger(repos.activity))


def cmd_start_session(repos: Repositories, user_address: str, amount: str, strategy_id: int) -> int:
    session = _session_service(repos).start_session(user_address, Decimal(amount), strategy_id)
    print(f"session {session.id} wallet {session.wallet_address}")
    return 0


def cmd_stop_session(repos: Repositories, session_id: int) -> int:
    _session_service(repos).stop_session(session_id)
    print(f"session {session_id} stopped")
    return 0


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delegated-session trading engine")
    parser.add_argument("--db", default=None, help="sqlite file (defaults to DB_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("run", help="run trading jobs for every active session")

    p = sub.add_parser("run-once", help="run a single iteration")
    p.add_argument("session_id", type=int)

    p = sub.add_parser("start-session", help="open a delegated session")
    p.add_argument("user_address")
    p.add_argument("amount")
    p.add_argument("strategy_id", type=int)

    p = sub.add_parser("stop-session", help="deactivate a session")
    p.add_argument("session_id", type=int)
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    repos = Repositories.open(args.db)
    seed_from_config(repos, load_config())

    if args.command == "run":
        return cmd_run(repos)
    if args.command == "run-once":
        return cmd_run_once(repos, args.session_id)
    if args.command == "start-session":
        return cmd_start_session(repos, args.user_address, args.amount, args.strategy_id)
    return cmd_stop_session(repos, args.session_id)


if __name__ == "__main__":
    sys.exit(main())
