from __future__ import annotations
import os
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted
from web3.middleware import ExtraDataToPOAMiddleware
from web3.types import TxReceipt

from utils.exceptions import ConfigurationError, TransactionReverted, TransactionTimeout
from utils.load_abi import load_erc20_abi, load_router_abi
from utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

# ---------- ENV ----------
# Comma-separated RPC list; the first one that connects is used.
_RPC_ENV = os.getenv("RPC_URLS") or os.getenv("RPC_URL") or os.getenv("PROVIDER_URL") or "http://localhost:8545"
DEFAULT_RPC_URLS = [u.strip().rstrip("/") for u in _RPC_ENV.split(",") if u.strip()]

ROUTER_ADDRESS = os.getenv("ROUTER_ADDRESS") or os.getenv("DEX_ROUTER_ADDRESS") or ""

REQUEST_TIMEOUT_SECS = float(os.getenv("RPC_TIMEOUT_SECS", "30"))
RECEIPT_TIMEOUT_SECS = int(os.getenv("RECEIPT_TIMEOUT_SECS", "180"))
GAS_LIMIT_MULTIPLIER = float(os.getenv("GAS_LIMIT_MULTIPLIER", "1.20"))
DEFAULT_SWAP_GAS_LIMIT = int(os.getenv("DEFAULT_SWAP_GAS_LIMIT", "350000"))


class Web3Service:
    """
    JSON-RPC access for the executor: token metadata, router quotes, gas
    estimates and signed submissions for ``approve`` and
    ``swapExactTokensForTokens``.

    The service never holds signing capability; callers open ``signer()``
    for the duration of one trade.
    """

    def __init__(self, rpc_url: Optional[str] = None, router_address: Optional[str] = None) -> None:
        self._rpc_urls: List[str] = [rpc_url] if rpc_url else list(DEFAULT_RPC_URLS)
        if not self._rpc_urls:
            raise ConfigurationError("No RPC endpoint configured.")
        self._connect_first_ok()

        self._router_address = router_address if router_address is not None else ROUTER_ADDRESS
        self._router_abi = load_router_abi()
        self._erc20_abi = load_erc20_abi()
        self._router = None

        try:
            chain = self._w3.eth.chain_id
        except Exception:
            chain = "?"
        logger.debug(f"Connected to {self._active_rpc}; chain_id={chain}")

    # ---------- connection ----------
    def _connect(self, url: str) -> Web3:
        w3 = Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": REQUEST_TIMEOUT_SECS}))
        # PoA chains put extra data in the header; harmless elsewhere
        w3.middleware_onion.inject(ExtraDataToPOAMiddleware, layer=0)
        if not w3.is_connected():
            raise ConnectionError(f"Node not reachable: {url}")
        return w3

    def _connect_first_ok(self) -> None:
        last_err: Optional[Exception] = None
        for url in self._rpc_urls:
            try:
                self._w3 = self._connect(url)
                self._active_rpc = url
                return
            except Exception as e:
                last_err = e
                logger.warning(f"RPC unavailable {url}: {e}")
        raise last_err or ConnectionError("No RPC endpoint reachable.")

    def _rpc_call(self, label: str, fn: Callable[[], Any]) -> Any:
        """
        Run one RPC call. Failures are logged with their label and re-raised:
        nothing here is retried, a repeated submission could double a trade.
        """
        try:
            return fn()
        except Exception as e:
            logger.warning(f"[RPC:{label}] failed: {e}")
            raise

    # ---------- util ----------
    def checksum(self, address: str) -> str:
        return self._w3.to_checksum_address(address)

    @property
    def router_address(self) -> str:
        if not self._router_address:
            raise ConfigurationError("DEX router address not configured")
        return self.checksum(self._router_address)

    def load_router(self):
        if self._router is None:
            self._router = self._w3.eth.contract(address=self.router_address, abi=self._router_abi)
        return self._router

    def load_erc20(self, address: str):
        return self._w3.eth.contract(address=self.checksum(address), abi=self._erc20_abi)

    # ---------- reads ----------
    @log_function
    def get_token_decimals(self, token_address: str) -> int:
        erc20 = self.load_erc20(token_address)
        return int(self._rpc_call("decimals", lambda: erc20.functions.decimals().call()))

    def gas_price(self) -> int:
        return int(self._rpc_call("gas_price", lambda: self._w3.eth.gas_price))

    @log_function
    def get_amounts_out(self, amount_in: int, path: List[str]) -> List[int]:
        router = self.load_router()
        path_cs = [self.checksum(p) for p in path]
        amounts = self._rpc_call(
            "router.getAmountsOut",
            lambda: router.functions.getAmountsOut(int(amount_in), path_cs).call()
        )
        return [int(x) for x in amounts]

    def allowance(self, token_address: str, owner: str, spender: str) -> int:
        erc20 = self.load_erc20(token_address)
        return int(self._rpc_call(
            "allowance",
            lambda: erc20.functions.allowance(self.checksum(owner), self.checksum(spender)).call()
        ))

    def token_balance_raw(self, token_address: str, wallet_address: str) -> int:
        erc20 = self.load_erc20(token_address)
        wallet = self.checksum(wallet_address)
        return int(self._rpc_call("balanceOf", lambda: erc20.functions.balanceOf(wallet).call()))

    # ---------- gas estimates ----------
    @log_function
    def estimate_approve_gas(self, token_address: str, owner: str, amount_in: int) -> int:
        erc20 = self.load_erc20(token_address)
        fn = erc20.functions.approve(self.router_address, int(amount_in))
        return int(self._rpc_call("estimate_gas_approve", lambda: fn.estimate_gas({"from": self.checksum(owner)})))

    @log_function
    def estimate_swap_gas(self, owner: str, amount_in: int, amount_out_min: int, path: List[str], deadline: int) -> int:
        """
        Estimate ``swapExactTokensForTokens``. Before the approval is mined the
        router reverts on ``transferFrom``; in that case the default swap gas
        limit stands in for the estimate.
        """
        router = self.load_router()
        owner_cs = self.checksum(owner)
        fn = router.functions.swapExactTokensForTokens(
            int(amount_in), int(amount_out_min), [self.checksum(p) for p in path], owner_cs, int(deadline)
        )
        try:
            return int(self._rpc_call("estimate_gas_swap", lambda: fn.estimate_gas({"from": owner_cs})))
        except ContractLogicError:
            if self.allowance(path[0], owner_cs, self.router_address) >= int(amount_in):
                raise
            logger.info(f"Swap estimate reverted before approval; using DEFAULT_SWAP_GAS_LIMIT={DEFAULT_SWAP_GAS_LIMIT}")
            return DEFAULT_SWAP_GAS_LIMIT

    # ---------- signing / submission ----------
    @contextmanager
    def signer(self, private_key: str) -> Iterator[LocalAccount]:
        """Transient signing account, valid only inside the ``with`` block."""
        account = Account.from_key(private_key)
        try:
            yield account
        finally:
            del account

    def _sign_and_send(self, account: LocalAccount, fn, gas_price: int, label: str) -> str:
        tx = fn.build_transaction({
            "from": account.address,
            "nonce": self._rpc_call("get_transaction_count", lambda: self._w3.eth.get_transaction_count(account.address, "pending")),
            "chainId": self._rpc_call("chain_id", lambda: self._w3.eth.chain_id),
            "gasPrice": int(gas_price),
            "type": 0,
        })
        tx["gas"] = int(int(tx["gas"]) * GAS_LIMIT_MULTIPLIER)
        signed = account.sign_transaction(tx)
        tx_hash = self._rpc_call(label, lambda: self._w3.eth.send_raw_transaction(signed.raw_transaction))
        return Web3.to_hex(tx_hash)

    @log_function
    def send_approve(self, account: LocalAccount, token_address: str, amount_in: int, gas_price: int) -> str:
        erc20 = self.load_erc20(token_address)
        fn = erc20.functions.approve(self.router_address, int(amount_in))
        return self._sign_and_send(account, fn, gas_price, "send_approve")

    @log_function
    def send_swap(self, account: LocalAccount, amount_in: int, amount_out_min: int, path: List[str],
                  recipient: str, deadline: int, gas_price: int) -> str:
        router = self.load_router()
        fn = router.functions.swapExactTokensForTokens(
            int(amount_in), int(amount_out_min), [self.checksum(p) for p in path], self.checksum(recipient), int(deadline)
        )
        return self._sign_and_send(account, fn, gas_price, "send_swap")

    @log_function
    def wait_for_receipt(self, tx_hash: str, timeout: int = RECEIPT_TIMEOUT_SECS) -> TxReceipt:
        try:
            receipt = self._rpc_call(
                "wait_for_receipt",
                lambda: self._w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
            )
        except TimeExhausted as e:
            raise TransactionTimeout(f"Transaction {tx_hash} not confirmed after {timeout}s", tx_hash) from e
        if int(receipt.get("status", 0)) != 1:
            raise TransactionReverted(f"Transaction {tx_hash} reverted", tx_hash, {"blockNumber": receipt.get("blockNumber")})
        return receipt
