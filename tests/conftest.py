import os
import tempfile
from contextlib import contextmanager
from decimal import Decimal

# keep rotating log files out of the working tree
os.environ.setdefault("LOG_DIR", os.path.join(tempfile.gettempdir(), "session-trader-test-logs"))

import pytest
from eth_account import Account

from controllers.trade_controller import TradeExecutor
from enums.strategy_type import RiskLevel, StrategyType
from enums.trade_action import TradeAction
from models.decision import Decision
from models.market_data import MarketData
from repositories.activity_log_repository import ActivityLogRepository
from repositories.session_repository import SessionRepository
from repositories.strategy_repository import StrategyRepository
from repositories.token_repository import TokenRepository
from repositories.trade_repository import TradeRepository
from repositories.wallet_key_repository import WalletKeyRepository
from services.activity_log_service import ActivityLogger
from services.decision_service import DecisionSource
from services.profitability_service import ProfitabilityEvaluator
from services.wallet_service import WalletService
from utils.exceptions import DataUnavailable, TransactionReverted

USER = "0x1111111111111111111111111111111111111111"
TOKENS = {
    "USDC": "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",
    "WETH": "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2",
    "WBTC": "0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599",
    "SHIB": "0x95aD61b0a150d79219dCF64E1E6Cc01f0B64C4cE",
}
DECIMALS = {
    TOKENS["USDC"]: 6,
    TOKENS["WETH"]: 18,
    TOKENS["WBTC"]: 8,
    TOKENS["SHIB"]: 18,
}


class FakeWeb3Service:
    """In-memory stand-in for Web3Service; records every call it receives."""

    router_address = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"

    def __init__(self, quote_out=40_000_000_000_000_000, gas_price=1, balance=10**30):
        self.quote_out = quote_out
        self._gas_price = gas_price
        self.balance = balance
        self.reverts = set()
        self.calls = []

    def get_token_decimals(self, token_address):
        return DECIMALS[token_address]

    def token_balance_raw(self, token_address, wallet_address):
        return self.balance

    def get_amounts_out(self, amount_in, path):
        self.calls.append(("quote", amount_in, list(path)))
        return [amount_in, self.quote_out]

    def estimate_approve_gas(self, token_address, owner, amount_in):
        return 46_000

    def estimate_swap_gas(self, owner, amount_in, amount_out_min, path, deadline):
        return 150_000

    def gas_price(self):
        return self._gas_price

    @contextmanager
    def signer(self, private_key):
        yield Account.from_key(private_key)

    def send_approve(self, account, token_address, amount_in, gas_price):
        self.calls.append(("approve", token_address, amount_in))
        return "0xapprove"

    def send_swap(self, account, amount_in, amount_out_min, path, recipient, deadline, gas_price):
        self.calls.append(("swap", amount_in, amount_out_min, list(path), recipient))
        return "0xswap"

    def wait_for_receipt(self, tx_hash, timeout=180):
        if tx_hash in self.reverts:
            raise TransactionReverted(f"Transaction {tx_hash} reverted", tx_hash)
        return {"status": 1, "gasUsed": 120_000, "blockNumber": 1}

    def sent(self, kind):
        return [c for c in self.calls if c[0] == kind]


class FakeMarket:
    def __init__(self, market=None, error=None):
        self.market = market or MarketData(current_price=1.0, price_history=[1.0] * 10, volume=500_000, rsi=50)
        self.error = error
        self.pairs = []

    def fetch(self, pair):
        self.pairs.append(pair)
        if self.error:
            raise self.error
        return self.market


class FixedDecisionSource(DecisionSource):
    name = "fixed"

    def __init__(self, decision=None, error=None):
        self.decision = decision
        self.error = error
        self.calls = 0

    def decide(self, market, pair, strategy_type, trade_amount):
        self.calls += 1
        if self.error:
            raise self.error
        return self.decision


def make_decision(action=TradeAction.BUY, confidence=0.8, amount="80"):
    return Decision(action=action, confidence=confidence, amount=Decimal(amount), reasoning=["test"], source="fixed")


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "trading.db")


@pytest.fixture
def sessions(db_path):
    return SessionRepository(db_path)


@pytest.fixture
def strategies(db_path):
    return StrategyRepository(db_path)


@pytest.fixture
def tokens(db_path):
    repo = TokenRepository(db_path)
    repo.seed(TOKENS)
    return repo


@pytest.fixture
def trades(db_path):
    return TradeRepository(db_path)


@pytest.fixture
def keys(db_path):
    return WalletKeyRepository(db_path)


@pytest.fixture
def activity_repo(db_path):
    return ActivityLogRepository(db_path)


@pytest.fixture
def activity(activity_repo):
    return ActivityLogger(activity_repo)


@pytest.fixture
def wallets():
    return WalletService(master_seed="test-master-seed")


@pytest.fixture
def fake_w3():
    return FakeWeb3Service()


@pytest.fixture
def executor(fake_w3, tokens, keys, trades, activity):
    return TradeExecutor(
        w3s=fake_w3,
        evaluator=ProfitabilityEvaluator(gas_source=fake_w3),
        tokens=tokens,
        keys=keys,
        trades=trades,
        activity=activity,
        clock=lambda: 1_700_000_000,
    )


@pytest.fixture
def make_session(sessions, strategies, keys, wallets):
    """Create a strategy plus a session whose wallet key is in the key store."""
    def _make(allocated="1000", risk=RiskLevel.MEDIUM, type=StrategyType.ARBITRAGE,
              enabled=True, active=True, config=None, with_key=True):
        strategy = strategies.save("test strategy", type, risk, enabled, config)
        wallet = wallets.derive(USER, sessions.count_for_user(USER))
        session = sessions.create(USER, wallet.address, Decimal(allocated), strategy.id)
        if with_key:
            keys.save(session.id, wallet.private_key)
        if not active:
            sessions.set_active(session.id, False)
            session = sessions.get_by_id(session.id)
        return session
    return _make


@pytest.fixture
def data_unavailable():
    return DataUnavailable("Failed to fetch market data for USDC/WETH", {"pair": "USDC/WETH"})
