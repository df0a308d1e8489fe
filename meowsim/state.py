"""
Run state for one save.

Everything the simulation mutates lives on a single ``SimState``; there is no
module-level simulation state, so several independent games can run in one
process. ``state_to_dict`` / ``state_from_dict`` convert to and from a plain
JSON-compatible blob. ``state_from_dict`` is the one place where old or
partial saves are migrated; the rest of the package assumes a complete state
(``ensure_state`` only back-fills per-key entries, e.g. a good added to the
catalog after the save was written).
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional
import logging

from .catalog import (
    CAT_IDS, CONTRACTS_BY_ID, DEFAULT_DISTRICT, DEFAULT_SCHEME_LOADOUT, GOOD_KEYS, JOBS_BY_KEY, SCHEMES_BY_ID,
    Regime, TraderDef, default_unlocks, normalize_district_key, parse_trader, starter_traders,
)
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp, clamp0, safe_float, safe_qty

logger = logging.getLogger(__name__)

# -----------------------------
# Records
# -----------------------------
@dataclass
class MarketEntry:
    price: float = 1.0
    pressure: float = 0.0

@dataclass
class LatentPrice:
    anchor: float
    drift: float = 0.0
    regime: Regime = "calm"
    regime_time_left: float = 0.0
    slow: float = 0.0
    fast: float = 0.0
    last_base_price: float = 1.0

@dataclass
class Lot:
    qty: int
    unit_cost: float

@dataclass
class ContractsRuntime:
    active_id: Optional[str] = None
    started_at_sec: Optional[float] = None
    start_coins: Optional[float] = None

    def clear(self) -> None:
        self.active_id = None
        self.started_at_sec = None
        self.start_coins = None

@dataclass
class SchemeRuntime:
    cooldown_left: float = 0.0
    active_left: float = 0.0
    charges: int = 0

@dataclass
class TraderRuntime:
    budget: float = 0.0

@dataclass
class Meta:
    whiskers: float = 0.0
    seasons_completed: int = 0
    scheme_slot_count: int = 1
    district_key: str = DEFAULT_DISTRICT
    districts_unlocked: List[str] = field(default_factory=lambda: [DEFAULT_DISTRICT])
    strict_mode: bool = False

@dataclass
class LastTrade:
    kind: str
    good_key: str
    qty: int
    unit_price: float
    amount: float           # cost for buys, proceeds for sells
    pnl: Optional[float] = None
    actor: str = "player"

@dataclass
class SimState:
    sim_time: float = 0.0
    seed: Optional[int] = None
    rng_state: int = 0
    coins: float = 50.0
    level: int = 0
    inventory: Dict[str, int] = field(default_factory=dict)
    lots: Dict[str, List[Lot]] = field(default_factory=dict)
    market: Dict[str, MarketEntry] = field(default_factory=dict)
    market_latent: Dict[str, LatentPrice] = field(default_factory=dict)
    market_clock: float = 0.0
    heat: float = 0.0
    unlocked: Dict[str, bool] = field(default_factory=default_unlocks)
    history: Dict[str, List[float]] = field(default_factory=dict)
    events: List[dict] = field(default_factory=list)
    last_event_sec: int = -1
    contracts: ContractsRuntime = field(default_factory=ContractsRuntime)
    schemes: Dict[str, SchemeRuntime] = field(default_factory=dict)
    scheme_loadout: List[str] = field(default_factory=lambda: list(DEFAULT_SCHEME_LOADOUT))
    traders: List[TraderDef] = field(default_factory=starter_traders)
    trader_runtime: Dict[str, TraderRuntime] = field(default_factory=dict)
    job_assignments: Dict[str, Optional[str]] = field(default_factory=dict)
    production_carry: float = 0.0
    meta: Meta = field(default_factory=Meta)
    last_trade: Optional[LastTrade] = None

# -----------------------------
# Queries
# -----------------------------
def has_job(state: SimState, job_key: str) -> bool:
    return any(job == job_key for job in state.job_assignments.values())

def is_scheme_active(state: SimState, scheme_id: str) -> bool:
    rt = state.schemes.get(scheme_id)
    return rt is not None and rt.active_left > 0.0

# -----------------------------
# Defaults
# -----------------------------
def ensure_state(state: SimState) -> SimState:
    """Back-fill per-key entries a partial state may lack."""
    if not isinstance(state, SimState):
        raise TypeError(f"expected SimState, got {type(state).__name__}")
    for k in GOOD_KEYS:
        state.inventory.setdefault(k, 0)
        state.lots.setdefault(k, [])
    for k, v in default_unlocks().items():
        state.unlocked.setdefault(k, v)
    for sid in SCHEMES_BY_ID:
        state.schemes.setdefault(sid, SchemeRuntime())
    for cat_id in CAT_IDS:
        state.job_assignments.setdefault(cat_id, None)
    for t in state.traders:
        state.trader_runtime.setdefault(t.trader_id, TraderRuntime())
    return state

def reset_run_fields(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    """Reset everything run-scoped; meta, seed, the rng register and the clock survive."""
    state.coins = float(cfg.start_coins)
    state.level = 0
    state.inventory = {k: 0 for k in GOOD_KEYS}
    state.lots = {k: [] for k in GOOD_KEYS}
    state.market = {}
    state.market_latent = {}
    state.heat = 0.0
    state.unlocked = default_unlocks()
    state.history = {}
    state.events = []
    state.contracts = ContractsRuntime()
    state.schemes = {sid: SchemeRuntime() for sid in SCHEMES_BY_ID}
    state.scheme_loadout = list(DEFAULT_SCHEME_LOADOUT)
    state.trader_runtime = {}
    state.job_assignments = {cat_id: None for cat_id in CAT_IDS}
    state.production_carry = 0.0
    state.last_trade = None
    ensure_state(state)

# -----------------------------
# Serialization
# -----------------------------
def state_to_dict(state: SimState) -> dict:
    return asdict(state)

def _dict(x: Any) -> dict:
    return x if isinstance(x, dict) else {}

def _opt_float(x: Any) -> Optional[float]:
    return None if x is None else safe_float(x)

def _parse_lots(raw: Any) -> List[Lot]:
    lots: List[Lot] = []
    for item in raw if isinstance(raw, list) else []:
        if not isinstance(item, dict):
            continue
        qty = safe_qty(item.get("qty"))
        if qty > 0:
            lots.append(Lot(qty=qty, unit_cost=clamp0(item.get("unit_cost", item.get("unitCost")))))
    return lots

def reconcile_lots(lots: List[Lot], qty: int) -> List[Lot]:
    """Trim (oldest first) or top up a lot queue so it sums to ``qty``."""
    total = sum(l.qty for l in lots)
    out = [Lot(l.qty, l.unit_cost) for l in lots]
    while total > qty and out:
        take = min(out[0].qty, total - qty)
        out[0].qty -= take
        total -= take
        if out[0].qty == 0:
            out.pop(0)
    if total < qty:
        avg = sum(l.qty * l.unit_cost for l in out) / total if total else 0.0
        out.append(Lot(qty=qty - total, unit_cost=avg))
    return out

def state_from_dict(blob: Any, cfg: SimConfig = DEFAULT_CONFIG) -> SimState:
    """Build a complete ``SimState`` from a saved blob, defaulting anything missing or malformed."""
    raw = _dict(blob)
    s = SimState(coins=float(cfg.start_coins))

    s.sim_time = clamp0(raw.get("sim_time"))
    seed = raw.get("seed")
    if seed is not None:
        s.seed = int(safe_float(seed)) & 0xFFFFFFFF
    s.rng_state = int(safe_float(raw.get("rng_state", s.seed or 0))) & 0xFFFFFFFF
    s.coins = clamp0(raw.get("coins", cfg.start_coins))
    s.level = safe_qty(raw.get("level"))
    s.heat = clamp(raw.get("heat"), 0.0, cfg.heat_max)
    s.market_clock = clamp(raw.get("market_clock"), 0.0, 0.999999)
    s.last_event_sec = int(safe_float(raw.get("last_event_sec"), -1.0))
    s.production_carry = clamp0(raw.get("production_carry"))

    inv = _dict(raw.get("inventory"))
    lots = _dict(raw.get("lots"))
    for k in GOOD_KEYS:
        s.inventory[k] = safe_qty(inv.get(k))
        s.lots[k] = reconcile_lots(_parse_lots(lots.get(k)), s.inventory[k])

    for k, entry in _dict(raw.get("market")).items():
        if k in GOOD_KEYS and isinstance(entry, dict):
            s.market[k] = MarketEntry(
                price=max(1.0, safe_float(entry.get("price"), 1.0)),
                pressure=clamp(entry.get("pressure"), -cfg.pressure_limit, cfg.pressure_limit),
            )
    for k, lat in _dict(raw.get("market_latent")).items():
        if k not in GOOD_KEYS or not isinstance(lat, dict):
            continue
        regime = lat.get("regime")
        if not isinstance(regime, str) or regime not in cfg.regime_weights:
            regime = "calm"
        s.market_latent[k] = LatentPrice(
            anchor=safe_float(lat.get("anchor"), 1.0),
            drift=clamp(lat.get("drift"), -cfg.drift_limit, cfg.drift_limit),
            regime=regime,
            regime_time_left=clamp0(lat.get("regime_time_left")),
            slow=safe_float(lat.get("slow")),
            fast=safe_float(lat.get("fast")),
            last_base_price=max(1.0, safe_float(lat.get("last_base_price"), 1.0)),
        )

    unlocked = _dict(raw.get("unlocked"))
    s.unlocked = {k: bool(unlocked.get(k, v)) for k, v in default_unlocks().items()}

    for series, points in _dict(raw.get("history")).items():
        if isinstance(points, list):
            s.history[str(series)] = [safe_float(p) for p in points][-cfg.history_max_points:]
    s.events = [dict(e) for e in raw.get("events") or [] if isinstance(e, dict)][: cfg.events_max]

    c = _dict(raw.get("contracts"))
    active_id = c.get("active_id")
    if isinstance(active_id, str) and active_id in CONTRACTS_BY_ID:
        s.contracts = ContractsRuntime(
            active_id=active_id,
            started_at_sec=_opt_float(c.get("started_at_sec")) or 0.0,
            start_coins=_opt_float(c.get("start_coins")) or 0.0,
        )

    schemes = _dict(raw.get("schemes"))
    for sid in SCHEMES_BY_ID:
        rt = _dict(schemes.get(sid))
        s.schemes[sid] = SchemeRuntime(
            cooldown_left=clamp0(rt.get("cooldown_left")),
            active_left=clamp0(rt.get("active_left")),
            charges=safe_qty(rt.get("charges")),
        )
    loadout = raw.get("scheme_loadout")
    if isinstance(loadout, list):
        kept = [sid for sid in dict.fromkeys(x for x in loadout if isinstance(x, str)) if sid in SCHEMES_BY_ID]
        s.scheme_loadout = kept + [sid for sid in DEFAULT_SCHEME_LOADOUT if sid not in kept]

    if isinstance(raw.get("traders"), list):
        traders = [parse_trader(t) for t in raw["traders"]]
        dropped = sum(1 for t in traders if t is None)
        if dropped:
            logger.warning("dropped %d malformed trader(s) while loading state", dropped)
        s.traders = [t for t in traders if t is not None]
    runtime = _dict(raw.get("trader_runtime"))
    for t in s.traders:
        s.trader_runtime[t.trader_id] = TraderRuntime(budget=clamp0(_dict(runtime.get(t.trader_id)).get("budget")))

    jobs = _dict(raw.get("job_assignments"))
    counts: Dict[str, int] = {}
    for cat_id in CAT_IDS:
        job = jobs.get(cat_id)
        if isinstance(job, str) and job in JOBS_BY_KEY and counts.get(job, 0) < JOBS_BY_KEY[job].cap:
            counts[job] = counts.get(job, 0) + 1
            s.job_assignments[cat_id] = job
        else:
            s.job_assignments[cat_id] = None

    m = _dict(raw.get("meta"))
    district_key = normalize_district_key(m.get("district_key"))
    unlocked_districts = [normalize_district_key(d) for d in m.get("districts_unlocked") or []]
    s.meta = Meta(
        whiskers=clamp0(m.get("whiskers")),
        seasons_completed=safe_qty(m.get("seasons_completed")),
        scheme_slot_count=max(1, safe_qty(m.get("scheme_slot_count"))),
        district_key=district_key,
        districts_unlocked=sorted(set(unlocked_districts) | {DEFAULT_DISTRICT, district_key}),
        strict_mode=bool(m.get("strict_mode", False)),
    )

    lt = raw.get("last_trade")
    if isinstance(lt, dict) and lt.get("good_key") in GOOD_KEYS:
        s.last_trade = LastTrade(
            kind=str(lt.get("kind")),
            good_key=lt["good_key"],
            qty=safe_qty(lt.get("qty")),
            unit_price=safe_float(lt.get("unit_price")),
            amount=safe_float(lt.get("amount")),
            pnl=_opt_float(lt.get("pnl")),
            actor=str(lt.get("actor") or "player"),
        )
    return ensure_state(s)
