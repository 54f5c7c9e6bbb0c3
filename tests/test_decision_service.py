import random
from decimal import Decimal
from unittest.mock import Mock

import pytest
import requests

from enums.strategy_type import StrategyType
from enums.trade_action import TradeAction
from models.market_data import MarketData
from services.decision_service import (
    DecisionEngine,
    FallbackDecisionSource,
    HeuristicDecisionSource,
    RemoteDecisionSource,
    momentum_pct,
    returns_volatility,
)

from conftest import FixedDecisionSource, make_decision

PAIR = "USDC/WETH"
AMOUNT = Decimal("100")


def calm_market(rsi, history=None, volume=500_000.0):
    return MarketData(current_price=100.0, price_history=history or [100.0] * 10, volume=volume, rsi=rsi)


def response(body, status=200):
    r = Mock()
    r.status_code = status
    r.json.return_value = body
    if status >= 400:
        r.raise_for_status.side_effect = requests.HTTPError(f"{status} error")
    return r


def remote_with(post):
    http = Mock()
    http.post = post
    return RemoteDecisionSource(url="http://analysis.test/api/ai/analyze", timeout=1, session=http)


# ---------- heuristic ----------
@pytest.mark.parametrize("rsi, action", [
    (10, TradeAction.BUY),
    (29.9, TradeAction.BUY),
    (70.1, TradeAction.SELL),
    (95, TradeAction.SELL),
])
def test_rsi_extremes_lean_with_base_confidence(rsi, action):
    decision = HeuristicDecisionSource().decide(calm_market(rsi), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.action == action
    assert decision.confidence == pytest.approx(0.7)
    assert decision.source == "heuristic"


@pytest.mark.parametrize("rsi", [30, 50, 70])
def test_neutral_rsi_holds(rsi):
    decision = HeuristicDecisionSource().decide(calm_market(rsi), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.action == TradeAction.HOLD
    assert decision.confidence == pytest.approx(0.5)


def test_falling_price_reinforces_oversold_buy():
    history = [100, 100, 100, 100, 100, 100, 97, 95, 92, 90]
    decision = HeuristicDecisionSource().decide(calm_market(25, history), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.action == TradeAction.BUY
    assert decision.confidence == pytest.approx(0.8)
    assert any("decreased" in r for r in decision.reasoning)


def test_rising_price_does_not_reinforce_buy():
    history = [100, 100, 100, 100, 100, 100, 103, 105, 108, 110]
    decision = HeuristicDecisionSource().decide(calm_market(25, history), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.confidence == pytest.approx(0.7)


def test_thin_liquidity_lowers_confidence_and_widens_slippage():
    deep = HeuristicDecisionSource().decide(calm_market(25, volume=500_000), PAIR, StrategyType.MEMECOIN, AMOUNT)
    thin = HeuristicDecisionSource().decide(calm_market(25, volume=10_000), PAIR, StrategyType.MEMECOIN, AMOUNT)
    assert thin.confidence == pytest.approx(0.6)
    assert thin.suggested_slippage > deep.suggested_slippage


def test_explicit_liquidity_wins_over_volume():
    market = MarketData(current_price=1.0, price_history=[1.0] * 5, volume=10.0, rsi=20, liquidity=2_000_000.0)
    decision = HeuristicDecisionSource().decide(market, PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.confidence == pytest.approx(0.75)


def test_heuristic_suggests_the_sized_amount():
    decision = HeuristicDecisionSource().decide(calm_market(20), PAIR, StrategyType.ARBITRAGE, Decimal("42.5"))
    assert decision.amount == Decimal("42.5")


def test_confidence_stays_in_range_for_random_markets():
    rng = random.Random(1234)
    source = HeuristicDecisionSource()
    for _ in range(500):
        history = [rng.uniform(0.01, 1000.0) for _ in range(rng.randint(0, 30))]
        market = MarketData(
            current_price=rng.uniform(0.01, 1000.0),
            price_history=history,
            volume=rng.uniform(0, 5_000_000),
            rsi=rng.uniform(0, 100),
        )
        decision = source.decide(market, PAIR, StrategyType.MEMECOIN, AMOUNT)
        assert 0.0 <= decision.confidence <= 1.0
        assert 0.001 <= decision.suggested_slippage <= 0.03
        if market.rsi < 30:
            assert decision.action == TradeAction.BUY
        elif market.rsi > 70:
            assert decision.action == TradeAction.SELL
        else:
            assert decision.action == TradeAction.HOLD


def test_momentum_and_volatility_helpers():
    assert momentum_pct([100, 110]) == pytest.approx(10.0)
    assert momentum_pct([5]) == 0.0
    assert momentum_pct([0, 10]) == 0.0
    assert returns_volatility([100, 100, 100]) == 0.0
    assert returns_volatility([100]) == 0.0
    assert returns_volatility([100, 110, 99]) > 0.05


# ---------- remote + fallback ----------
def test_remote_decision_is_used_when_available():
    post = Mock(return_value=response({"action": "SELL", "confidence": 0.85, "reasoning": ["overbought"], "amount": 80.0}))
    decision = remote_with(post).decide(calm_market(50), PAIR, StrategyType.ARBITRAGE, AMOUNT)

    assert decision.action == TradeAction.SELL
    assert decision.confidence == pytest.approx(0.85)
    assert decision.amount == Decimal("80.0")
    assert decision.source == "remote"
    payload = post.call_args.kwargs["json"]
    assert payload["pair"] == PAIR
    assert payload["strategyType"] == "ARBITRAGE"
    assert payload["rsi"] == 50


def test_remote_percent_scales_are_normalised():
    body = {"decision": {"action": "BUY", "confidence": 85, "reasoning": [], "suggestedSlippage": 0.5}}
    decision = remote_with(Mock(return_value=response(body))).decide(calm_market(50), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.confidence == pytest.approx(0.85)
    assert decision.suggested_slippage == pytest.approx(0.005)
    assert decision.amount == AMOUNT


@pytest.mark.parametrize("post", [
    Mock(side_effect=requests.Timeout("timed out")),
    Mock(side_effect=requests.ConnectionError("refused")),
    Mock(return_value=response({"error": "boom"}, status=503)),
    Mock(return_value=response({"action": "MAYBE", "confidence": 0.9, "reasoning": []})),
    Mock(return_value=response({"action": "BUY", "confidence": "high", "reasoning": []})),
    Mock(return_value=response({"action": "BUY", "confidence": 0.9, "reasoning": "text"})),
    Mock(return_value=response(["not", "an", "object"])),
    Mock(return_value=response({"action": "BUY", "confidence": float("nan"), "reasoning": []})),
    Mock(return_value=response({"action": "SELL", "confidence": 0.9, "reasoning": [], "suggestedSlippage": float("nan")})),
    Mock(return_value=response({"action": "BUY", "confidence": 0.9, "reasoning": [], "amount": float("nan")})),
    Mock(return_value=response({"action": "BUY", "confidence": 0.9, "reasoning": [], "amount": float("inf")})),
    Mock(return_value=response({"action": "BUY", "confidence": 0.9, "reasoning": [], "amount": {"value": 1}})),
])
def test_remote_failures_fall_back_to_heuristic(post):
    source = FallbackDecisionSource(remote_with(post), HeuristicDecisionSource())
    decision = source.decide(calm_market(20), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.source == "heuristic"
    assert decision.action == TradeAction.BUY
    assert decision.confidence == pytest.approx(0.7)


# ---------- dust guard ----------
@pytest.mark.parametrize("amount", ["0", "-5", "0.0000001", "1E-7"])
def test_degenerate_amounts_are_forced_to_hold(amount):
    engine = DecisionEngine(source=FixedDecisionSource(make_decision(TradeAction.BUY, 0.95, amount)))
    decision = engine.decide(calm_market(20), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.action == TradeAction.HOLD
    assert decision.confidence == pytest.approx(0.8)
    assert decision.reasoning[-1].startswith("Forced HOLD")


def test_regular_amounts_pass_the_guard():
    original = make_decision(TradeAction.SELL, 0.9, "12.5")
    engine = DecisionEngine(source=FixedDecisionSource(original))
    assert engine.decide(calm_market(80), PAIR, StrategyType.ARBITRAGE, AMOUNT) == original


@pytest.mark.parametrize("amount", ["1E+2", "1.0E+3", "100.00", "0.000001"])
def test_large_or_plain_amounts_pass_the_guard(amount):
    engine = DecisionEngine(source=FixedDecisionSource(make_decision(TradeAction.BUY, 0.9, amount)))
    decision = engine.decide(calm_market(20), PAIR, StrategyType.ARBITRAGE, AMOUNT)
    assert decision.action == TradeAction.BUY
    assert decision.amount == Decimal(amount)


def test_decision_summary_writes_plain_amounts():
    summary = make_decision(TradeAction.BUY, 0.9, "1E+2").summary()
    assert summary["amount"] == "100"
    assert summary["action"] == "BUY"
