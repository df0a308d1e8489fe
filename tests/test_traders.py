import pytest

from meowsim.catalog import GOODS_BY_KEY
from meowsim.core import round2
from meowsim.engine import tick
from meowsim.lots import add_units
from meowsim.traders import find_trader, run_traders, set_trader_enabled, set_trader_rules

ALWAYS_BUY = [{"kind": "buyBelow", "good_key": "kibble", "price": 1000, "qty": 1}]


def test_disabled_trader_does_nothing(state, cfg):
    assert find_trader(state, "tuna").enabled is False
    assert run_traders(state, 10.0, cfg) == []


def test_actions_capped_per_tick(state, cfg):
    tick(state, 1.0, cfg)
    assert set_trader_enabled(state, "tuna", True)
    assert set_trader_rules(state, "tuna", ALWAYS_BUY)
    find_trader(state, "tuna").actions_per_min = 600
    trades = run_traders(state, 1.0, cfg)
    assert len(trades) == 3
    assert state.inventory["kibble"] == 3
    # 10 actions accrued, 3 allowed; the surplus is not carried over
    assert state.trader_runtime["tuna"].budget == pytest.approx(0.0)
    assert all(t.actor == "tuna" for t in trades)


def test_budget_accrues_slowly(state, cfg):
    set_trader_enabled(state, "tuna", True)
    set_trader_rules(state, "tuna", ALWAYS_BUY)
    # 10 actions per minute -> one action every 6 seconds
    assert run_traders(state, 3.0, cfg) == []
    assert len(run_traders(state, 3.0, cfg)) == 1


def test_buy_fee_applied(state, cfg):
    tick(state, 1.0, cfg)
    set_trader_enabled(state, "tuna", True)
    set_trader_rules(state, "tuna", ALWAYS_BUY)
    price = state.market["kibble"].price
    (trade,) = run_traders(state, 6.0, cfg)
    assert trade.unit_price == round2(price * 1.005)
    assert state.lots["kibble"][0].unit_cost == trade.unit_price


def test_sell_rule_needs_inventory(state, cfg):
    tick(state, 1.0, cfg)
    set_trader_enabled(state, "tuna", True)
    set_trader_rules(state, "tuna", [{"kind": "sellAbove", "good_key": "kibble", "price": 1, "qty": 2}])
    assert run_traders(state, 6.0, cfg) == []
    state.market["kibble"].price = 12.0
    add_units(state, "kibble", 2, 5.0)
    (trade,) = run_traders(state, 6.0, cfg)
    assert trade.kind == "sell"
    assert trade.unit_price == round2(12.0 * 0.995)
    assert trade.pnl == pytest.approx(round2(trade.amount - 10.0))


def test_locked_goods_are_skipped(state, cfg):
    set_trader_enabled(state, "tuna", True)
    set_trader_rules(state, "tuna", [{"kind": "buyBelow", "good_key": "shiny", "price": 1000, "qty": 1}])
    assert run_traders(state, 60.0, cfg) == []


def test_malformed_rules_rejected_whole(state):
    before = list(find_trader(state, "tuna").rules)
    bad = ALWAYS_BUY + [{"kind": "sellAbove", "good_key": "kibble", "price": float("nan"), "qty": 1}]
    assert set_trader_rules(state, "tuna", bad) is False
    assert find_trader(state, "tuna").rules == before
    assert set_trader_enabled(state, "ghost", True) is False


def test_trader_trades_raise_heat(state, cfg):
    tick(state, 1.0, cfg)
    state.unlocked["heat"] = True
    set_trader_enabled(state, "tuna", True)
    set_trader_rules(state, "tuna", [{"kind": "buyBelow", "good_key": "kibble", "price": 1000, "qty": 2}])
    (trade,) = run_traders(state, 6.0, cfg)
    assert trade.qty == 2
    assert state.heat == pytest.approx(GOODS_BY_KEY["kibble"].heat_base * 2)
    assert state.market["kibble"].pressure == pytest.approx(2.0)
