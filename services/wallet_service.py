# services/wallet_service.py
from __future__ import annotations
import os
from dataclasses import dataclass

from eth_account import Account
from web3 import Web3

from utils.exceptions import ConfigurationError

WALLET_MASTER_SEED = os.getenv("WALLET_MASTER_SEED", "")


@dataclass(frozen=True)
class DelegatedWallet:
    address: str
    private_key: str

    def __repr__(self) -> str:
        return f"DelegatedWallet(address={self.address!r})"


class WalletService:
    """
    Deterministic delegated wallets: the key is the keccak hash of the master
    seed, the owner's address and the owner's session index, so the same
    inputs always give back the same wallet.
    """

    def __init__(self, master_seed: str | None = None) -> None:
        self._master_seed = master_seed if master_seed is not None else WALLET_MASTER_SEED

    def derive(self, user_address: str, index: int) -> DelegatedWallet:
        if not self._master_seed:
            raise ConfigurationError("WALLET_MASTER_SEED not configured")
        owner = Web3.to_checksum_address(user_address).lower()
        digest = Web3.keccak(text=f"{self._master_seed}:{owner}:{int(index)}")
        account = Account.from_key(digest)
        return DelegatedWallet(address=account.address, private_key=Web3.to_hex(digest))
