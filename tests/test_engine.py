import pytest

from meowsim.config import SimConfig
from meowsim.core import Event, EventLog
from meowsim.engine import TICK_PIPELINE, SimulationEngine, new_state, run_tick, tick


def test_pipeline_order():
    assert [name for name, _ in TICK_PIPELINE] == [
        "unlocks", "market", "pressure", "production", "traders", "schemes", "heat", "contracts", "history",
    ]


def test_new_state_defaults(cfg):
    s = new_state(seed=5, cfg=cfg)
    assert s.seed == 5 and s.rng_state == 5
    assert s.coins == 50.0
    assert s.market["kibble"].price == 10.0
    assert s.sim_time == 0.0


def test_lazy_seed_from_config():
    cfg = SimConfig(default_seed=77)
    s = new_state(cfg=cfg)
    assert s.seed is None
    tick(s, 0.5, cfg)
    assert s.seed == 77


def test_history_is_trimmed(state, cfg):
    for _ in range(40):
        tick(state, 1.0, cfg)
    assert set(state.history) == {"kibble", "catnip", "shiny", "coins", "heat"}
    assert all(len(v) == cfg.history_max_points for v in state.history.values())
    assert state.history["kibble"][-1] == state.market["kibble"].price


def test_tick_returns_state(state, cfg):
    assert tick(state, 1.0, cfg) is state
    report = run_tick(state, 1.0, cfg)
    assert report.sim_time == pytest.approx(2.0)
    assert report.latent_steps == 1


def test_engine_logs_player_actions(engine):
    engine.step(1.0)
    assert engine.buy("kibble", 2)
    assert engine.buy("catnip", 1) is False
    assert engine.accept_contract("starter-profit-60")
    assert engine.abandon_contract()
    trades = engine.log.of_type("TRADE_EXECUTED")
    assert len(trades) == 1
    assert trades[0].good_key == "kibble" and trades[0].meta["qty"] == 2
    assert [e.event_type for e in engine.log.tail(2)] == ["CONTRACT_ACCEPTED", "CONTRACT_ABANDONED"]


def test_engine_logs_unlocks_and_seasons(engine):
    engine.state.coins = 120.0
    engine.step(1.0)
    assert [e.good_key for e in engine.log.of_type("GOOD_UNLOCKED")] == ["catnip"]
    result = engine.end_season()
    assert result == {"meta_currency_awarded": 0}
    assert engine.log.tail(1)[0].event_type == "SEASON_ENDED"
    assert engine.switch_district("uptown")
    assert engine.state.meta.district_key == "uptown"


def test_engine_logs_expired_contract(engine):
    engine.accept_contract("starter-kibble-8")
    engine.state.contracts.started_at_sec = -500.0
    report = engine.step(0.25)
    assert report.expired_contract == "starter-kibble-8"
    assert engine.log.of_type("CONTRACT_EXPIRED")[0].meta["contract_id"] == "starter-kibble-8"


def test_engine_metrics(engine):
    engine.run(10, 0.5)
    assert engine.steps == 20
    market = engine.metrics.market_df()
    assert len(market) == 60
    assert set(market["good_key"]) == {"kibble", "catnip", "shiny"}
    run = engine.metrics.run_df()
    assert list(run["step"]) == list(range(1, 21))
    assert run["coins"].iloc[-1] == engine.state.coins
    stats = engine.metrics.price_stats()
    assert set(stats.index) == {"kibble", "catnip", "shiny"}
    assert (stats["min"] >= 1.0).all()


def test_metrics_stride():
    eng = SimulationEngine(cfg=SimConfig(metrics_stride=4), seed=3)
    eng.run(4, 0.5)
    assert len(eng.metrics.run_rows) == 2


def test_event_log_bounded():
    log = EventLog(maxlen=3)
    for i in range(5):
        log.add(Event(float(i), "TICK"))
    assert [e.sim_time for e in log.tail(10)] == [2.0, 3.0, 4.0]
    assert log.tail(0) == []
    assert log.tail(1)[0].to_dict()["event_type"] == "TICK"
