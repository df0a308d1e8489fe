import json
import logging

import pytest

from meowsim.engine import new_state, tick
from meowsim.ledger import buy
from meowsim.state import Lot, SimState, ensure_state, reconcile_lots, state_from_dict, state_to_dict


def test_save_round_trip(cfg):
    s = new_state(seed=31, cfg=cfg)
    for _ in range(20):
        tick(s, 0.75, cfg)
    buy(s, "kibble", 2, cfg)
    tick(s, 1.0, cfg)

    blob = json.loads(json.dumps(state_to_dict(s)))
    loaded = state_from_dict(blob, cfg)
    assert loaded == s

    # both copies keep evolving identically
    for _ in range(10):
        tick(s, 1.0, cfg)
        tick(loaded, 1.0, cfg)
    assert state_to_dict(loaded) == state_to_dict(s)


def test_empty_blob_gets_defaults(cfg):
    s = state_from_dict({}, cfg)
    assert s.seed is None
    assert s.coins == 50.0
    assert s.inventory == {"kibble": 0, "catnip": 0, "shiny": 0}
    assert s.unlocked["kibble"] is True and s.unlocked["catnip"] is False
    assert s.meta.scheme_slot_count == 1
    assert [t.trader_id for t in s.traders] == ["tuna"]

    tick(s, 1.0, cfg)
    assert s.seed is not None
    assert s.market["kibble"].price >= 1.0


def test_malformed_fields_are_normalized(cfg, caplog):
    blob = {
        "coins": -5,
        "heat": 400,
        "inventory": {"kibble": 3, "bogus": 9, "shiny": "lots"},
        "lots": {"kibble": [{"qty": 1, "unit_cost": 4.0}, "junk"]},
        "contracts": {"active_id": "retired-contract", "started_at_sec": 1},
        "job_assignments": {"miso": "guarding", "beans": "guarding"},
        "meta": {"district_key": "moon", "scheme_slot_count": 0},
        "traders": [{"trader_id": "x"}, {
            "id": "sardine", "name": "Sardine", "enabled": True, "feeBps": 25,
            "actionsPerMin": 6, "rules": [{"kind": "sellAbove", "goodKey": "kibble", "price": 11, "qty": 1}],
        }],
    }
    with caplog.at_level(logging.WARNING, logger="meowsim.state"):
        s = state_from_dict(blob, cfg)
    assert "malformed trader" in caplog.text

    assert s.coins == 0.0
    assert s.heat == 100.0
    assert s.inventory == {"kibble": 3, "catnip": 0, "shiny": 0}
    assert s.lots["kibble"] == [Lot(1, 4.0), Lot(2, 4.0)]
    assert s.contracts.active_id is None
    assert s.job_assignments == {"miso": "guarding", "beans": None}
    assert s.meta.district_key == "alley" and s.meta.scheme_slot_count == 1
    assert [t.trader_id for t in s.traders] == ["sardine"]
    assert s.traders[0].rules[0].good_key == "kibble"


def test_reconcile_lots_trims_oldest_first():
    lots = [Lot(2, 1.0), Lot(3, 2.0)]
    assert reconcile_lots(lots, 4) == [Lot(1, 1.0), Lot(3, 2.0)]
    assert reconcile_lots(lots, 3) == [Lot(3, 2.0)]
    assert lots == [Lot(2, 1.0), Lot(3, 2.0)]
    assert reconcile_lots([], 2) == [Lot(2, 0.0)]


def test_ensure_state_rejects_other_types():
    with pytest.raises(TypeError):
        ensure_state({"coins": 5})
    s = SimState(inventory={})
    ensure_state(s)
    assert set(s.inventory) == {"kibble", "catnip", "shiny"}
