import random

import pytest

from meowsim.catalog import CONTRACTS, GOOD_KEYS
from meowsim.config import SimConfig
from meowsim.contracts import abandon_active_contract, accept_contract
from meowsim.core import round2
from meowsim.engine import new_state, tick
from meowsim.jobs import assign_job
from meowsim.ledger import buy, buy_price, can_buy, can_sell, check_buy, check_sell, sell
from meowsim.lots import average_cost, lots_total
from meowsim.schemes import activate_scheme, equip_scheme
from meowsim.state import Lot, state_to_dict


def test_kibble_scenario(state, cfg):
    tick(state, 1.0, cfg)
    price = state.market["kibble"].price
    pressure = state.market["kibble"].pressure
    assert buy(state, "kibble", 1, cfg) is True
    assert state.coins == pytest.approx(round2(50 - price))
    assert state.inventory["kibble"] == 1
    assert state.market["kibble"].pressure == pytest.approx(pressure + 1)
    assert state.last_trade.kind == "buy" and state.last_trade.unit_price == price


def test_round_trip_without_pressure_returns_coins():
    cfg = SimConfig(pressure_price_coeff=0.0)
    s = new_state(seed=9, cfg=cfg)
    tick(s, 1.0, cfg)
    assert buy(s, "kibble", 3, cfg)
    assert sell(s, "kibble", 3, cfg)
    assert s.coins == pytest.approx(50.0)
    assert s.inventory["kibble"] == 0
    assert s.lots["kibble"] == []


def test_round_trip_pays_for_own_pressure(state, cfg):
    tick(state, 1.0, cfg)
    p_buy = state.market["kibble"].price
    buy(state, "kibble", 2, cfg)
    p_sell = state.market["kibble"].price
    assert p_sell > p_buy
    sell(state, "kibble", 2, cfg)
    expected = round2(round2(50 - round2(p_buy * 2)) + round2(p_sell * 2))
    assert state.coins == pytest.approx(expected)
    assert state.inventory["kibble"] == 0


def test_fifo_cost_basis(state, cfg):
    tick(state, 1.0, cfg)
    state.market["kibble"].price = 10.0
    assert buy(state, "kibble", 1, cfg)
    state.market["kibble"].price = 20.0
    assert buy(state, "kibble", 1, cfg)
    assert state.coins == pytest.approx(20.0)

    state.market["kibble"].price = 15.0
    assert sell(state, "kibble", 1, cfg)
    assert state.last_trade.pnl == pytest.approx(5.0)
    assert state.lots["kibble"] == [Lot(qty=1, unit_cost=20.0)]
    assert state.coins == pytest.approx(35.0)


def test_partial_lot_consumption(state, cfg):
    tick(state, 1.0, cfg)
    state.market["kibble"].price = 4.0
    buy(state, "kibble", 3, cfg)
    state.market["kibble"].price = 5.0
    sell(state, "kibble", 2, cfg)
    assert state.last_trade.pnl == pytest.approx(10.0 - 8.0)
    assert state.lots["kibble"] == [Lot(qty=1, unit_cost=4.0)]


def test_rejected_trades_mutate_nothing(state, cfg):
    tick(state, 1.0, cfg)
    before = state_to_dict(state)
    assert buy(state, "catnip", 1, cfg) is False
    assert buy(state, "bogus", 1, cfg) is False
    assert buy(state, "kibble", 100, cfg) is False
    assert buy(state, "kibble", float("nan"), cfg) is False
    assert buy(state, "kibble", 0, cfg) is False
    assert sell(state, "kibble", 1, cfg) is False
    assert state_to_dict(state) == before


@pytest.mark.parametrize("good, qty, reason", [
    ("catnip", 1, "locked"),
    ("bogus", 1, "unknown_good"),
    ("kibble", -1, "bad_qty"),
    ("kibble", 100, "insufficient_coins"),
])
def test_check_buy_reasons(state, cfg, good, qty, reason):
    tick(state, 1.0, cfg)
    assert check_buy(state, good, qty, cfg) == (False, reason)


def test_check_sell_reason(state, cfg):
    assert check_sell(state, "kibble", 1, cfg) == (False, "insufficient_inventory")


def test_fractional_qty_is_floored(state, cfg):
    tick(state, 1.0, cfg)
    assert buy(state, "kibble", 2.7, cfg)
    assert state.inventory["kibble"] == 2


def test_negotiating_and_price_pounce_stack(state, cfg):
    tick(state, 1.0, cfg)
    price = state.market["kibble"].price
    assert assign_job(state, "miso", "negotiating")
    assert buy_price(state, "kibble", cfg) == round2(price * 0.98)
    assert equip_scheme(state, 0, "pricePounce")
    assert activate_scheme(state, "pricePounce", cfg)
    assert buy_price(state, "kibble", cfg) == pytest.approx(round2(price * (0.98 * 0.98)))


def test_trade_heat_only_after_unlock(state, cfg):
    tick(state, 1.0, cfg)
    buy(state, "kibble", 1, cfg)
    assert state.heat == 0.0

    state.unlocked["heat"] = True
    buy(state, "kibble", 1, cfg)
    assert state.heat == pytest.approx(0.6)
    assign_job(state, "beans", "guarding")
    sell(state, "kibble", 2, cfg)
    assert state.heat == pytest.approx(0.6 + 0.7 * 0.6 * 2)


def test_random_play_never_goes_negative(hot_cfg):
    cfg = hot_cfg
    s = new_state(seed=77, cfg=cfg)
    s.unlocked.update(catnip=True, shiny=True, heat=True)
    rnd = random.Random(0)
    for _ in range(600):
        action = rnd.random()
        good = rnd.choice(GOOD_KEYS)
        if action < 0.35:
            buy(s, good, rnd.randint(1, 5), cfg)
        elif action < 0.65:
            sell(s, good, rnd.randint(1, 5), cfg)
        elif action < 0.7:
            accept_contract(s, rnd.choice(CONTRACTS).contract_id, cfg)
        elif action < 0.72:
            abandon_active_contract(s)
        else:
            tick(s, rnd.uniform(0.0, 3.0), cfg)
        assert s.coins >= 0.0
        assert 0.0 <= s.heat <= cfg.heat_max
        for k in GOOD_KEYS:
            assert s.inventory[k] >= 0
            assert lots_total(s, k) == s.inventory[k]
            assert all(lot.qty > 0 for lot in s.lots[k])
            assert s.market[k].price >= 1.0
            assert abs(s.market[k].pressure) <= cfg.pressure_limit


def test_can_buy_and_average_cost(state, cfg):
    tick(state, 1.0, cfg)
    assert can_buy(state, "kibble", 1, cfg)
    assert can_sell(state, "kibble", 1, cfg) is False
    state.market["kibble"].price = 10.0
    buy(state, "kibble", 1, cfg)
    state.market["kibble"].price = 20.0
    buy(state, "kibble", 1, cfg)
    assert average_cost(state, "kibble") == 15.0
    assert can_sell(state, "kibble", 2, cfg)
