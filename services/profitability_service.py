# services/profitability_service.py
from __future__ import annotations
import os
from typing import Protocol

from web3 import Web3

from enums.trade_action import TradeAction
from utils.log_config import logger_manager, log_function

logger = logger_manager.setup_logger(__name__)

GAS_PRICE_BUFFER_PCT = int(os.getenv("GAS_PRICE_BUFFER_PCT", "110"))     # 10 % over network price
MAX_GAS_PRICE_WEI = int(Web3.to_wei(os.getenv("MAX_GAS_PRICE_GWEI", "100"), "gwei"))
MIN_PROFIT_BPS = int(os.getenv("MIN_PROFIT_BPS", "50"))                  # 0.5 %
BPS = 10_000


class GasPriceSource(Protocol):
    def gas_price(self) -> int: ...


def gas_cost_in_tokens(gas_cost_wei: int, amount_in: int, amount_out: int, action: TradeAction) -> int:
    if TradeAction(action) == TradeAction.BUY:
        return gas_cost_wei * amount_out // amount_in
    return gas_cost_wei


def net_profit_bps(amount_in: int, amount_out: int, gas_in_tokens: int, action: TradeAction) -> int:
    """Return after gas in basis points, floor-divided on integers."""
    if TradeAction(action) == TradeAction.BUY:
        return (amount_out - gas_in_tokens) * BPS // amount_in
    return (amount_in - gas_in_tokens) * BPS // amount_out


class ProfitabilityEvaluator:
    """
    Gate that rejects trades whose expected return after gas is below
    ``min_profit_bps``. Integer arithmetic only; amounts are base units and
    gas is wei.
    """

    def __init__(self, gas_source: GasPriceSource,
                 max_gas_price_wei: int = MAX_GAS_PRICE_WEI,
                 min_profit_bps: int = MIN_PROFIT_BPS,
                 buffer_pct: int = GAS_PRICE_BUFFER_PCT) -> None:
        self.gas_source = gas_source
        self.max_gas_price_wei = int(max_gas_price_wei)
        self.min_profit_bps = int(min_profit_bps)
        self.buffer_pct = int(buffer_pct)

    def optimized_gas_price(self) -> int:
        buffered = int(self.gas_source.gas_price()) * self.buffer_pct // 100
        return min(buffered, self.max_gas_price_wei)

    @log_function
    def is_profitable(self, amount_in: int, amount_out: int, estimated_gas_units: int, action: TradeAction) -> bool:
        amount_in, amount_out = int(amount_in), int(amount_out)
        if amount_in <= 0 or amount_out <= 0:
            return False

        gas_cost = self.optimized_gas_price() * int(estimated_gas_units)
        gas_tokens = gas_cost_in_tokens(gas_cost, amount_in, amount_out, action)
        profit_bps = net_profit_bps(amount_in, amount_out, gas_tokens, action)

        accepted = profit_bps >= self.min_profit_bps
        logger.info(
            f"[profit] {TradeAction(action).value} in={amount_in} out={amount_out} gas={gas_cost}wei "
            f"→ {profit_bps}bps (min {self.min_profit_bps}) {'OK' if accepted else 'REJECTED'}"
        )
        return accepted
