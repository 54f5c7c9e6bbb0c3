from decimal import Decimal

import pytest

from enums.strategy_type import RiskLevel, StrategyType
from services.strategy_service import SessionStrategyResolver, sizing_fraction
from utils.exceptions import SessionInactive, SessionNotFound, StrategyDisabled, StrategyNotFound


@pytest.fixture
def resolver(sessions, strategies):
    return SessionStrategyResolver(sessions, strategies)


@pytest.mark.parametrize("risk, expected", [
    (RiskLevel.LOW, Decimal("50")),
    (RiskLevel.MEDIUM, Decimal("100")),
    (RiskLevel.HIGH, Decimal("200")),
])
def test_trade_amount_follows_risk_level(resolver, make_session, risk, expected):
    session = make_session(allocated="1000", risk=risk)
    assert resolver.resolve(session.id).trade_amount == expected


@pytest.mark.parametrize("type, pair", [
    (StrategyType.MEMECOIN, "USDC/SHIB"),
    (StrategyType.ARBITRAGE, "USDC/WETH"),
    (StrategyType.LIMIT_ORDER, "USDC/WBTC"),
])
def test_pair_is_fixed_per_strategy_type(resolver, make_session, type, pair):
    session = make_session(type=type)
    assert resolver.resolve(session.id).pair == pair


def test_investment_percentage_overrides_risk_default(resolver, make_session):
    session = make_session(allocated="1000", risk=RiskLevel.HIGH, config={"investmentPercentage": 5})
    resolution = resolver.resolve(session.id)
    assert resolution.sizing_fraction == Decimal("0.05")
    assert resolution.trade_amount == Decimal("50")


def test_sizing_fraction_without_config(strategies):
    strategy = strategies.save("plain", StrategyType.MEMECOIN, RiskLevel.LOW)
    assert sizing_fraction(strategy) == Decimal("0.05")


def test_unknown_session(resolver):
    with pytest.raises(SessionNotFound):
        resolver.resolve(404)


def test_inactive_session(resolver, make_session):
    session = make_session(active=False)
    with pytest.raises(SessionInactive):
        resolver.resolve(session.id)


def test_disabled_strategy(resolver, make_session):
    session = make_session(enabled=False)
    with pytest.raises(StrategyDisabled):
        resolver.resolve(session.id)


def test_missing_strategy(resolver, sessions):
    session = sessions.create("0xabc", "0xdef", Decimal("10"), strategy_id=999)
    with pytest.raises(StrategyNotFound):
        resolver.resolve(session.id)
