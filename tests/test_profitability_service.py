import pytest
from web3 import Web3

from enums.trade_action import TradeAction
from services.profitability_service import (
    ProfitabilityEvaluator,
    gas_cost_in_tokens,
    net_profit_bps,
)


class StaticGas:
    def __init__(self, price):
        self.price = price

    def gas_price(self):
        return self.price


def test_buy_with_small_gas_is_accepted():
    # (1050 - 10) / 1000 = 104 %
    assert net_profit_bps(1000, 1050, 10, TradeAction.BUY) == 10_400


def test_buy_where_gas_eats_the_output_is_rejected():
    # (1050 - 1049) / 1000 = 0.1 %
    bps = net_profit_bps(1000, 1050, 1049, TradeAction.BUY)
    assert bps == 10
    assert bps < 50


def test_gas_is_scaled_to_output_token_for_buys_only():
    assert gas_cost_in_tokens(100, 1000, 2000, TradeAction.BUY) == 200
    assert gas_cost_in_tokens(100, 1000, 2000, TradeAction.SELL) == 100


def test_gas_price_gets_ten_percent_buffer():
    evaluator = ProfitabilityEvaluator(StaticGas(Web3.to_wei(20, "gwei")))
    assert evaluator.optimized_gas_price() == Web3.to_wei(22, "gwei")


def test_gas_price_is_capped():
    evaluator = ProfitabilityEvaluator(StaticGas(Web3.to_wei(200, "gwei")))
    assert evaluator.optimized_gas_price() == Web3.to_wei(100, "gwei")


def test_evaluator_accepts_profitable_trade():
    evaluator = ProfitabilityEvaluator(StaticGas(100))
    assert evaluator.is_profitable(10_000, 10_500, 1, TradeAction.BUY) is True


def test_evaluator_rejects_when_gas_dominates():
    # gas 1100 wei scaled by 1050/1000 → 1155 tokens, more than the output
    evaluator = ProfitabilityEvaluator(StaticGas(1000))
    assert evaluator.is_profitable(1000, 1050, 1, TradeAction.BUY) is False


@pytest.mark.parametrize("amount_in, amount_out", [(0, 100), (100, 0), (-1, 100)])
def test_non_positive_amounts_are_never_profitable(amount_in, amount_out):
    evaluator = ProfitabilityEvaluator(StaticGas(1))
    assert evaluator.is_profitable(amount_in, amount_out, 1, TradeAction.SELL) is False


def test_large_amounts_stay_exact():
    evaluator = ProfitabilityEvaluator(StaticGas(1), min_profit_bps=50)
    amount = 10**30
    assert evaluator.is_profitable(amount, amount, 0, TradeAction.BUY) is True
    assert net_profit_bps(amount, amount, 0, TradeAction.SELL) == 10_000
