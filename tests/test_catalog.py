import pytest

from meowsim.catalog import (
    CONTRACTS, GOOD_KEYS, GOODS, STARTER_CONTRACTS, STARTER_TRADERS, DeliverGood, EarnCoins, is_valid_contract,
    load_contracts, parse_contract,
    parse_requirement, parse_trader, parse_trader_rule, starter_traders,
)


def test_goods_get_more_volatile():
    assert GOOD_KEYS == ("kibble", "catnip", "shiny")
    vols = [(g.slow_vol, g.fast_vol, g.drift_mag) for g in GOODS]
    assert vols == sorted(vols)


def test_builtin_contracts_are_valid():
    assert all(is_valid_contract(c) for c in CONTRACTS)
    assert [c.is_prestige for c in CONTRACTS] == [False, False, True]


def test_parse_contract():
    raw = {
        "id": "night-shift",
        "title": "Night Shift",
        "requirements": [{"kind": "deliverGood", "goodKey": "catnip", "qty": 4}, {"kind": "earnCoins", "coins": 30}],
        "deadlineSec": 120,
        "reward": {"coins": 40},
        "penalty": {"coins": 5},
    }
    c = parse_contract(raw)
    assert c.requirements == (DeliverGood("catnip", 4), EarnCoins(30.0))
    assert parse_contract({**raw, "deadlineSec": 0}) is None
    assert parse_contract({**raw, "requirements": [{"kind": "stealFish"}]}) is None


@pytest.mark.parametrize("raw", [
    None,
    {"kind": "earnCoins", "coins": -1},
    {"kind": "deliverGood", "goodKey": "gold", "qty": 1},
    {"kind": "deliverGood", "goodKey": "kibble", "qty": float("inf")},
])
def test_parse_requirement_rejects(raw):
    assert parse_requirement(raw) is None


def test_trader_dict_round_trip():
    (tuna,) = starter_traders()
    assert parse_trader(tuna.to_dict()) == tuna
    assert tuna.to_dict()["rules"][0] == {"kind": "buyBelow", "good_key": "kibble", "price": 9.5, "qty": 1}
    assert parse_trader({**STARTER_TRADERS[0], "enabled": "yes"}) is None
    assert parse_trader_rule({"kind": "buyBelow", "good_key": "kibble", "price": 5, "qty": 0}) is None


def test_load_contracts_rejects_bad_tables():
    assert [c.contract_id for c in load_contracts(STARTER_CONTRACTS)] == [c.contract_id for c in CONTRACTS]
    assert CONTRACTS[1].requirements == (DeliverGood("kibble", 8),)
    with pytest.raises(ValueError):
        load_contracts([{**STARTER_CONTRACTS[0], "reward": ["coins", 5]}])
