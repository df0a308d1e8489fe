from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple
import logging
import random

from .catalog import GOOD_KEYS
from .config import DEFAULT_CONFIG, SimConfig
from .contracts import (
    abandon_active_contract, accept_contract, contract_status, fail_expired_active_contract,
    redeem_active_contract,
)
from .core import Event, EventLog, clamp, safe_float
from .goals import apply_good_unlocks, level_up
from .heat import decay_heat, maybe_trigger_event
from .jobs import assign_job, run_production
from .ledger import buy, sell
from .market import advance_market, decay_pressure, recompute_market, switch_district
from .metrics import MetricsStore
from .prestige import end_season
from .rng import reseed
from .schemes import activate_scheme, tick_schemes
from .state import LastTrade, SimState, ensure_state, reset_run_fields
from .traders import run_traders

logger = logging.getLogger(__name__)

@dataclass
class TickReport:
    sim_time: float
    dt: float
    latent_steps: int = 0
    unlocked: List[str] = field(default_factory=list)
    produced: int = 0
    trader_trades: List[LastTrade] = field(default_factory=list)
    heat_event: Optional[dict] = None
    expired_contract: Optional[str] = None
    busted: bool = False

# -----------------------------
# State construction
# -----------------------------
def new_state(seed: Optional[int] = None, cfg: SimConfig = DEFAULT_CONFIG) -> SimState:
    state = SimState()
    reset_run_fields(state, cfg)
    if seed is not None:
        reseed(state, seed)
    recompute_market(state, cfg)
    return state

def _ensure_seed(state: SimState, cfg: SimConfig) -> None:
    if state.seed is not None:
        return
    seed = cfg.default_seed if cfg.default_seed is not None else random.SystemRandom().getrandbits(32)
    reseed(state, seed)
    logger.info("assigned seed %d", state.seed)

# -----------------------------
# Tick pipeline
# -----------------------------
def _stage_unlocks(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    report.unlocked = apply_good_unlocks(state, cfg)

def _stage_market(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    report.latent_steps = advance_market(state, dt, cfg)

def _stage_pressure(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    decay_pressure(state, dt, cfg)
    recompute_market(state, cfg)

def _stage_production(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    report.produced = run_production(state, dt, cfg)

def _stage_traders(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    report.trader_trades = run_traders(state, dt, cfg)

def _stage_schemes(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    tick_schemes(state, dt)

def _stage_heat(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    # decay after this tick's trade heat has been added
    decay_heat(state, dt, cfg)
    report.heat_event = maybe_trigger_event(state, cfg)

def _stage_contracts(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    strict = state.meta.strict_mode
    report.expired_contract = fail_expired_active_contract(state, cfg)
    report.busted = strict and report.expired_contract is not None

def _stage_history(state: SimState, dt: float, cfg: SimConfig, report: TickReport) -> None:
    points = {k: state.market[k].price for k in GOOD_KEYS}
    points["coins"] = state.coins
    points["heat"] = state.heat
    for series, value in points.items():
        arr = state.history.setdefault(series, [])
        arr.append(float(value))
        del arr[: max(0, len(arr) - cfg.history_max_points)]

Stage = Callable[[SimState, float, SimConfig, TickReport], None]

# Order matters: prices move before anyone trades on them, trade heat lands
# before heat decays, and history records the settled end-of-tick state.
TICK_PIPELINE: Tuple[Tuple[str, Stage], ...] = (
    ("unlocks", _stage_unlocks),
    ("market", _stage_market),
    ("pressure", _stage_pressure),
    ("production", _stage_production),
    ("traders", _stage_traders),
    ("schemes", _stage_schemes),
    ("heat", _stage_heat),
    ("contracts", _stage_contracts),
    ("history", _stage_history),
)

def run_tick(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> TickReport:
    ensure_state(state)
    _ensure_seed(state, cfg)
    step = clamp(dt, 0.0, cfg.max_tick_dt)
    state.sim_time = max(0.0, safe_float(state.sim_time)) + step
    report = TickReport(sim_time=state.sim_time, dt=step)
    for _name, stage in TICK_PIPELINE:
        stage(state, step, cfg, report)
    return report

def tick(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> SimState:
    run_tick(state, dt, cfg)
    return state

# -----------------------------
# Engine
# -----------------------------
class SimulationEngine:
    """One save plus its event log and metrics; player actions are logged as events."""

    def __init__(self, cfg: Optional[SimConfig] = None, seed: Optional[int] = 1,
                 state: Optional[SimState] = None) -> None:
        self.cfg = cfg or SimConfig()
        self.state = state if state is not None else new_state(seed, self.cfg)
        self.log = EventLog(maxlen=self.cfg.event_log_maxlen)
        self.metrics = MetricsStore()
        self.steps: int = 0
        tick(self.state, 0.0, self.cfg)

    def _event(self, event_type: str, **kwargs) -> None:
        self.log.add(Event(self.state.sim_time, event_type, **kwargs))

    def _log_trade(self, trade: Optional[LastTrade]) -> None:
        if trade is None:
            return
        self._event(
            "TRADE_EXECUTED", actor_id=trade.actor, good_key=trade.good_key, amount=trade.amount,
            meta={"kind": trade.kind, "qty": trade.qty, "unit_price": trade.unit_price, "pnl": trade.pnl},
        )

    # -- time --
    def step(self, dt: float = 1.0) -> TickReport:
        report = run_tick(self.state, dt, self.cfg)
        self.steps += 1
        for good_key in report.unlocked:
            self._event("GOOD_UNLOCKED", good_key=good_key)
        for trade in report.trader_trades:
            self._log_trade(trade)
        if report.heat_event is not None:
            ev = report.heat_event
            self._event("HEAT_EVENT", good_key=ev.get("good_key"), amount=ev.get("amount"),
                        meta={"kind": ev["kind"], "mitigated": ev["mitigated"]})
        if report.expired_contract is not None:
            self._event("RUN_BUSTED" if report.busted else "CONTRACT_EXPIRED",
                        meta={"contract_id": report.expired_contract})
        self.snapshot_metrics()
        return report

    def run(self, seconds: float, dt: float = 0.25) -> None:
        n = int(round(max(0.0, seconds) / dt)) if dt > 0 else 0
        for _ in range(n):
            self.step(dt)

    # -- player actions --
    def buy(self, good_key: str, qty: int = 1) -> bool:
        ok = buy(self.state, good_key, qty, self.cfg)
        if ok:
            self._log_trade(self.state.last_trade)
        return ok

    def sell(self, good_key: str, qty: int = 1) -> bool:
        ok = sell(self.state, good_key, qty, self.cfg)
        if ok:
            self._log_trade(self.state.last_trade)
        return ok

    def accept_contract(self, contract_id: str) -> bool:
        ok = accept_contract(self.state, contract_id, self.cfg)
        if ok:
            self._event("CONTRACT_ACCEPTED", meta={"contract_id": contract_id})
        return ok

    def redeem_contract(self) -> bool:
        contract_id = self.state.contracts.active_id
        ok = redeem_active_contract(self.state)
        if ok:
            self._event("CONTRACT_REDEEMED", meta={"contract_id": contract_id})
        return ok

    def abandon_contract(self) -> bool:
        contract_id = self.state.contracts.active_id
        ok = abandon_active_contract(self.state)
        if ok:
            self._event("CONTRACT_ABANDONED", meta={"contract_id": contract_id})
        return ok

    def activate_scheme(self, scheme_id: str) -> bool:
        ok = activate_scheme(self.state, scheme_id, self.cfg)
        if ok:
            self._event("SCHEME_ACTIVATED", meta={"scheme_id": scheme_id})
        return ok

    def assign_job(self, cat_id: str, job_key: Optional[str]) -> bool:
        ok = assign_job(self.state, cat_id, job_key)
        if ok:
            self._event("JOB_ASSIGNED", actor_id=cat_id, meta={"job": job_key})
        return ok

    def level_up(self) -> bool:
        ok = level_up(self.state)
        if ok:
            self._event("LEVEL_UP", meta={"level": self.state.level})
        return ok

    def switch_district(self, district_key: str) -> bool:
        ok = switch_district(self.state, district_key, self.cfg)
        if ok:
            self._event("DISTRICT_SWITCHED", meta={"district": district_key})
        return ok

    def end_season(self) -> dict:
        result = end_season(self.state, self.cfg)
        self._event("SEASON_ENDED", amount=result["meta_currency_awarded"],
                    meta={"seasons": self.state.meta.seasons_completed})
        return result

    # -- metrics --
    def snapshot_metrics(self) -> None:
        stride = int(self.cfg.metrics_stride or 0)
        if stride <= 0 or self.steps % stride != 0:
            return
        s = self.state
        rows = []
        for k in GOOD_KEYS:
            lat = s.market_latent.get(k)
            rows.append({
                "step": self.steps,
                "sim_time": s.sim_time,
                "good_key": k,
                "price": s.market[k].price,
                "pressure": s.market[k].pressure,
                "base_price": lat.last_base_price if lat else None,
                "regime": lat.regime if lat else None,
            })
        self.metrics.add_market_rows(rows)
        self.metrics.add_run({
            "step": self.steps,
            "sim_time": s.sim_time,
            "coins": s.coins,
            "heat": s.heat,
            "inventory_units": sum(s.inventory.values()),
            "inventory_value": sum(qty * s.market[k].price for k, qty in s.inventory.items() if k in s.market),
            "contract_status": contract_status(s),
            "district": s.meta.district_key,
        })
