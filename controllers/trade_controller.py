# controllers/trade_controller.py
from __future__ import annotations
import os
import time
from decimal import Decimal
from typing import Callable, Optional

from enums.activity_type import ActivityType
from enums.trade_action import TradeAction, TradeStatus
from models.trade_record import TradeRecord
from repositories.token_repository import TokenRepository
from repositories.trade_repository import TradeRepository
from repositories.wallet_key_repository import WalletKeyRepository
from services.activity_log_service import ActivityLogger
from services.market_data_service import split_pair
from services.profitability_service import ProfitabilityEvaluator
from services.web3_service import Web3Service
from utils.exceptions import (
    ConfigurationError,
    ExecutionError,
    MissingKeyMaterial,
    NotProfitable,
    TokenNotConfigured,
)
from utils.log_config import logger_manager, log_function
from utils.web3_utils import format_plain_decimal, from_base_units, to_base_units

logger = logger_manager.setup_logger(__name__)

# Fixed tolerance on the executor path: min_out = quote * 99 / 100
SLIPPAGE_KEEP_PCT = 99
SWAP_DEADLINE_SECS = int(os.getenv("SWAP_DEADLINE_SECS", "300"))


def min_amount_out(quoted_out: int) -> int:
    return int(quoted_out) * SLIPPAGE_KEEP_PCT // 100


class TradeExecutor:
    """
    Approve-then-swap against the session's delegated wallet.

    Steps run strictly in order and each one gates the next:
      token addresses + decimals -> base units -> quote / min_out ->
      gas estimate -> profitability gate -> approve (mined) -> swap (mined) ->
      TradeRecord.
    A failure at any step leaves no TradeRecord, writes TRADE_EXECUTION_FAILED
    and re-raises. A profitability veto re-raises ``NotProfitable`` without a
    failure entry: it is a skip, not an error.

    Not safe to call concurrently for one wallet (nonces are sequential);
    callers hold the session lock.
    """

    def __init__(
        self,
        w3s: Web3Service,
        evaluator: ProfitabilityEvaluator,
        tokens: TokenRepository,
        keys: WalletKeyRepository,
        trades: TradeRepository,
        activity: ActivityLogger,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.w3s = w3s
        self.evaluator = evaluator
        self.tokens = tokens
        self.keys = keys
        self.trades = trades
        self.activity = activity
        self.clock = clock

    @log_function
    def execute(self, session_id: int, wallet_address: str, action: TradeAction, amount: Decimal, pair: str) -> TradeRecord:
        action = TradeAction(action)
        if action == TradeAction.HOLD:
            raise ValueError("HOLD is not an executable action")

        amount_txt = format_plain_decimal(amount)
        base = {"action": action.value, "amount": amount_txt, "pair": pair}
        progress: dict = {}

        self.activity.log(session_id, ActivityType.TRADE_EXECUTION_START, dict(base))
        try:
            record, receipt = self._execute(session_id, wallet_address, action, amount, amount_txt, pair, progress)
        except NotProfitable:
            raise
        except Exception as e:
            # hashes of anything already broadcast stay traceable
            self.activity.log(session_id, ActivityType.TRADE_EXECUTION_FAILED, {**base, **progress, "error": str(e)})
            raise

        self.activity.log(session_id, ActivityType.TRADE_EXECUTION_SUCCESS, {
            **base,
            "transactionHash": record.transaction_hash,
            "gasUsed": str(receipt.get("gasUsed", "")),
            "gasPrice": str(progress.get("gasPrice", "")),
            "minAmountOut": str(progress.get("minAmountOut", "")),
            "expectedOut": progress.get("expectedOut", ""),
        })
        return record

    # ---------- steps ----------
    def _token_address(self, symbol: str) -> str:
        address = self.tokens.get_address(symbol)
        if not address:
            raise TokenNotConfigured(f"Token address not found for {symbol}")
        return address

    def _execute(self, session_id: int, wallet_address: str, action: TradeAction, amount: Decimal,
                 amount_txt: str, pair: str, progress: dict):
        router = self.w3s.router_address

        # 1) both legs of the pair
        symbol_a, symbol_b = split_pair(pair)
        address_a, address_b = self._token_address(symbol_a), self._token_address(symbol_b)
        decimals_a = self.w3s.get_token_decimals(address_a)
        decimals_b = self.w3s.get_token_decimals(address_b)
        if action == TradeAction.BUY:
            token_in, decimals_in, decimals_out, path = address_a, decimals_a, decimals_b, [address_a, address_b]
        else:
            token_in, decimals_in, decimals_out, path = address_b, decimals_b, decimals_a, [address_b, address_a]

        # 2) human amount -> base units of the source token
        amount_in = to_base_units(amount, decimals_in)
        if amount_in <= 0:
            raise ExecutionError(f"Amount {amount_txt} rounds to zero at {decimals_in} decimals")
        balance = self.w3s.token_balance_raw(token_in, wallet_address)
        if balance < amount_in:
            raise ExecutionError(f"Insufficient balance: have {balance}, need {amount_in}", {"token": token_in})

        # 3) quote and slippage bound
        amounts = self.w3s.get_amounts_out(amount_in, path)
        quoted_out = int(amounts[-1]) if amounts else 0
        if quoted_out <= 0:
            raise ExecutionError(f"Router returned no output for {pair}")
        amount_out_min = min_amount_out(quoted_out)
        progress.update({
            "amountIn": str(amount_in),
            "quotedOut": str(quoted_out),
            "expectedOut": format_plain_decimal(from_base_units(quoted_out, decimals_out)),
            "minAmountOut": str(amount_out_min),
        })

        # 4) gas for approve + swap, then the profitability gate
        deadline = int(self.clock()) + SWAP_DEADLINE_SECS
        approve_gas = self.w3s.estimate_approve_gas(token_in, wallet_address, amount_in)
        swap_gas = self.w3s.estimate_swap_gas(wallet_address, amount_in, amount_out_min, path, deadline)
        total_gas = int(approve_gas) + int(swap_gas)
        if not self.evaluator.is_profitable(amount_in, amount_out_min, total_gas, action):
            raise NotProfitable("Trade not profitable after gas costs", {
                **progress, "estimatedGas": total_gas,
            })

        # 5-6) sign with a transient account: approve, then swap
        private_key: Optional[str] = self.keys.get_private_key(session_id)
        if not private_key:
            raise MissingKeyMaterial("AI wallet private key not found")
        gas_price = self.evaluator.optimized_gas_price()
        progress["gasPrice"] = gas_price
        with self.w3s.signer(private_key) as account:
            if account.address.lower() != wallet_address.lower():
                raise ConfigurationError("Key material does not match the session wallet")

            approve_hash = self.w3s.send_approve(account, token_in, amount_in, gas_price)
            progress["approveTxHash"] = approve_hash
            self.w3s.wait_for_receipt(approve_hash)
            logger.info(f"[trade] session {session_id} approve mined {approve_hash} (router {router})")

            deadline = int(self.clock()) + SWAP_DEADLINE_SECS
            swap_hash = self.w3s.send_swap(account, amount_in, amount_out_min, path, wallet_address, deadline, gas_price)
            progress["swapTxHash"] = swap_hash
            receipt = self.w3s.wait_for_receipt(swap_hash)

        # 7) persist
        record = self.trades.create(TradeRecord(
            session_id=session_id,
            wallet_address=wallet_address,
            action=action,
            amount=amount_txt,
            pair=pair,
            status=TradeStatus.COMPLETED,
            transaction_hash=swap_hash,
        ))
        logger.info(f"[trade] session {session_id} {action.value} {amount_txt} {pair} completed: {swap_hash}")
        return record, receipt
