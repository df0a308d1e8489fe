"""
Static content tables: goods, districts, jobs, cats, contracts, schemes,
traders and the goal ladder.

Only the numeric parameters matter to the simulation; labels exist so the
surrounding app can show something. Records coming from JSON (player-edited
trader rules, custom contract tables) go through the ``parse_*`` helpers,
which return None for anything malformed instead of raising.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Optional, Tuple, Union
import math

Regime = Literal["calm", "choppy", "hype"]
JobKey = Literal["production", "scouting", "negotiating", "guarding"]
SchemeId = Literal["hustle", "pricePounce", "nineLives", "coolWhiskers", "marketNap", "purrSuasion"]
EventKind = Literal["tax", "rival", "confiscation"]
TraderRuleKind = Literal["buyBelow", "sellAbove"]

def _finite(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)

# -----------------------------
# Goods / districts
# -----------------------------
@dataclass(frozen=True)
class GoodDef:
    key: str
    label: str
    base: float
    slow_vol: float
    fast_vol: float
    drift_mag: float
    mean_rev: float
    regime_min_sec: float
    regime_max_sec: float
    heat_base: float   # heat per unit traded

GOODS: Tuple[GoodDef, ...] = (
    GoodDef("kibble", "Kibble", base=10.0, slow_vol=0.04, fast_vol=0.10, drift_mag=0.02,
            mean_rev=0.08, regime_min_sec=20.0, regime_max_sec=60.0, heat_base=0.6),
    GoodDef("catnip", "Catnip", base=18.0, slow_vol=0.25, fast_vol=0.45, drift_mag=0.08,
            mean_rev=0.05, regime_min_sec=15.0, regime_max_sec=45.0, heat_base=1.2),
    GoodDef("shiny", "Shiny Things", base=40.0, slow_vol=1.0, fast_vol=1.8, drift_mag=0.25,
            mean_rev=0.03, regime_min_sec=10.0, regime_max_sec=35.0, heat_base=2.0),
)
GOOD_KEYS: Tuple[str, ...] = tuple(g.key for g in GOODS)
GOODS_BY_KEY: Dict[str, GoodDef] = {g.key: g for g in GOODS}

@dataclass(frozen=True)
class DistrictDef:
    key: str
    label: str
    base_mult: float = 1.0
    slow_vol_mult: float = 1.0
    fast_vol_mult: float = 1.0
    drift_mult: float = 1.0
    mean_rev_mult: float = 1.0

DISTRICTS: Tuple[DistrictDef, ...] = (
    DistrictDef("alley", "Alley Market"),
    DistrictDef("uptown", "Uptown Bazaar", base_mult=1.05, slow_vol_mult=1.10, fast_vol_mult=1.20,
                drift_mult=1.15, mean_rev_mult=0.95),
)
DISTRICTS_BY_KEY: Dict[str, DistrictDef] = {d.key: d for d in DISTRICTS}
DEFAULT_DISTRICT = "alley"

def normalize_district_key(key: Any) -> str:
    return key if isinstance(key, str) and key in DISTRICTS_BY_KEY else DEFAULT_DISTRICT

# -----------------------------
# Cats / jobs
# -----------------------------
@dataclass(frozen=True)
class JobDef:
    key: str
    label: str
    cap: int

JOBS: Tuple[JobDef, ...] = (
    JobDef("production", "Production", cap=1),
    JobDef("scouting", "Scouting", cap=1),
    JobDef("negotiating", "Negotiating", cap=1),
    JobDef("guarding", "Guarding", cap=1),
)
JOBS_BY_KEY: Dict[str, JobDef] = {j.key: j for j in JOBS}

@dataclass(frozen=True)
class CatDef:
    cat_id: str
    name: str

CATS: Tuple[CatDef, ...] = (CatDef("miso", "Miso"), CatDef("beans", "Beans"))
CAT_IDS: Tuple[str, ...] = tuple(c.cat_id for c in CATS)

# -----------------------------
# Contracts
# -----------------------------
@dataclass(frozen=True)
class EarnCoins:
    coins: float
    kind: Literal["earnCoins"] = "earnCoins"

@dataclass(frozen=True)
class DeliverGood:
    good_key: str
    qty: int
    kind: Literal["deliverGood"] = "deliverGood"

Requirement = Union[EarnCoins, DeliverGood]

def parse_requirement(raw: Any) -> Optional[Requirement]:
    if not isinstance(raw, dict):
        return None
    kind = raw.get("kind")
    if kind == "earnCoins":
        coins = raw.get("coins")
        if not _finite(coins) or coins <= 0:
            return None
        return EarnCoins(coins=float(coins))
    if kind == "deliverGood":
        good_key = raw.get("goodKey", raw.get("good_key"))
        qty = raw.get("qty")
        if not isinstance(good_key, str) or good_key not in GOODS_BY_KEY:
            return None
        if not _finite(qty) or qty <= 0:
            return None
        return DeliverGood(good_key=good_key, qty=int(qty))
    return None

@dataclass(frozen=True)
class ContractDef:
    contract_id: str
    title: str
    requirements: Tuple[Requirement, ...]
    deadline_sec: float
    reward_coins: float
    penalty_coins: float
    tags: Tuple[str, ...] = ()

    @property
    def is_prestige(self) -> bool:
        return "prestige" in self.tags

def is_valid_contract(c: Any) -> bool:
    if not isinstance(c, ContractDef) or not c.contract_id or not c.title:
        return False
    if not c.requirements or not all(isinstance(r, (EarnCoins, DeliverGood)) for r in c.requirements):
        return False
    if not _finite(c.deadline_sec) or c.deadline_sec <= 0:
        return False
    return _finite(c.reward_coins) and c.reward_coins >= 0 and _finite(c.penalty_coins) and c.penalty_coins >= 0

def parse_contract(raw: Any) -> Optional[ContractDef]:
    if not isinstance(raw, dict):
        return None
    reqs_raw = raw.get("requirements")
    if not isinstance(reqs_raw, list) or not reqs_raw:
        return None
    reqs = [parse_requirement(r) for r in reqs_raw]
    if any(r is None for r in reqs):
        return None
    reward = raw.get("reward")
    penalty = raw.get("penalty")
    c = ContractDef(
        contract_id=str(raw.get("id") or ""),
        title=str(raw.get("title") or ""),
        requirements=tuple(reqs),
        deadline_sec=raw.get("deadlineSec"),
        reward_coins=reward.get("coins") if isinstance(reward, dict) else None,
        penalty_coins=penalty.get("coins") if isinstance(penalty, dict) else None,
        tags=tuple(str(t) for t in raw.get("tags") or ()),
    )
    return c if is_valid_contract(c) else None

STARTER_CONTRACTS: Tuple[dict, ...] = (
    {
        "id": "starter-profit-60",
        "title": "Quick Flip",
        "requirements": [{"kind": "earnCoins", "coins": 60.0}],
        "deadlineSec": 180.0,
        "reward": {"coins": 25.0},
        "penalty": {"coins": 10.0},
        "tags": ["starter", "trade", "safe"],
    },
    {
        "id": "starter-kibble-8",
        "title": "Kibble Delivery",
        "requirements": [{"kind": "deliverGood", "goodKey": "kibble", "qty": 8}],
        "deadlineSec": 220.0,
        "reward": {"coins": 35.0},
        "penalty": {"coins": 12.0},
        "tags": ["starter", "production", "safe"],
    },
    {
        "id": "prestige-heat-hedge",
        "title": "Back-Alley Hedge",
        "requirements": [{"kind": "earnCoins", "coins": 120.0}],
        "deadlineSec": 240.0,
        "reward": {"coins": 70.0},
        "penalty": {"coins": 25.0},
        "tags": ["prestige", "trade", "risky"],
    },
)

def load_contracts(raw_table) -> Tuple[ContractDef, ...]:
    """Parse a contract table, raising on any entry that does not validate."""
    contracts = []
    for raw in raw_table:
        c = parse_contract(raw)
        if c is None:
            raise ValueError(f"invalid contract definition: {raw!r}")
        contracts.append(c)
    return tuple(contracts)

CONTRACTS: Tuple[ContractDef, ...] = load_contracts(STARTER_CONTRACTS)
CONTRACTS_BY_ID: Dict[str, ContractDef] = {c.contract_id: c for c in CONTRACTS}

# -----------------------------
# Schemes
# -----------------------------
@dataclass(frozen=True)
class SchemeDef:
    scheme_id: str
    name: str
    cooldown_sec: float
    duration_sec: float

SCHEMES: Tuple[SchemeDef, ...] = (
    SchemeDef("hustle", "Hustle", cooldown_sec=30.0, duration_sec=10.0),
    SchemeDef("pricePounce", "Price Pounce", cooldown_sec=45.0, duration_sec=8.0),
    SchemeDef("nineLives", "Nine Lives", cooldown_sec=60.0, duration_sec=0.0),
    SchemeDef("coolWhiskers", "Cool Whiskers", cooldown_sec=40.0, duration_sec=0.0),
    SchemeDef("marketNap", "Market Nap", cooldown_sec=55.0, duration_sec=0.0),
    SchemeDef("purrSuasion", "Purr-suasion", cooldown_sec=50.0, duration_sec=12.0),
)
SCHEMES_BY_ID: Dict[str, SchemeDef] = {s.scheme_id: s for s in SCHEMES}
DEFAULT_SCHEME_LOADOUT: Tuple[str, ...] = tuple(s.scheme_id for s in SCHEMES)

# -----------------------------
# Traders
# -----------------------------
@dataclass(frozen=True)
class TraderRule:
    kind: TraderRuleKind
    good_key: str
    price: float
    qty: int

    def to_dict(self) -> dict:
        return {"kind": self.kind, "good_key": self.good_key, "price": float(self.price), "qty": int(self.qty)}

@dataclass
class TraderDef:
    trader_id: str
    name: str
    enabled: bool
    fee_bps: float
    actions_per_min: float
    rules: List[TraderRule] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "trader_id": self.trader_id,
            "name": self.name,
            "enabled": bool(self.enabled),
            "fee_bps": float(self.fee_bps),
            "actions_per_min": float(self.actions_per_min),
            "rules": [r.to_dict() for r in self.rules],
        }

def parse_trader_rule(raw: Any) -> Optional[TraderRule]:
    if isinstance(raw, TraderRule):
        return raw
    if not isinstance(raw, dict):
        return None
    kind = raw.get("kind")
    good_key = raw.get("good_key", raw.get("goodKey"))
    price = raw.get("price")
    qty = raw.get("qty")
    if kind not in ("buyBelow", "sellAbove"):
        return None
    if not isinstance(good_key, str) or good_key not in GOODS_BY_KEY:
        return None
    if not _finite(price) or price <= 0 or not _finite(qty) or qty < 1:
        return None
    return TraderRule(kind=kind, good_key=good_key, price=float(price), qty=int(qty))

def parse_trader(raw: Any) -> Optional[TraderDef]:
    if isinstance(raw, TraderDef):
        return raw
    if not isinstance(raw, dict):
        return None
    trader_id = raw.get("trader_id", raw.get("id"))
    name = raw.get("name")
    enabled = raw.get("enabled")
    fee_bps = raw.get("fee_bps", raw.get("feeBps"))
    rate = raw.get("actions_per_min", raw.get("actionsPerMin"))
    rules_raw = raw.get("rules")
    if not isinstance(trader_id, str) or not trader_id or not isinstance(name, str) or not name:
        return None
    if not isinstance(enabled, bool):
        return None
    if not _finite(fee_bps) or fee_bps < 0 or not _finite(rate) or rate <= 0:
        return None
    if not isinstance(rules_raw, list):
        return None
    rules = [parse_trader_rule(r) for r in rules_raw]
    if any(r is None for r in rules):
        return None
    return TraderDef(trader_id=trader_id, name=name, enabled=enabled, fee_bps=float(fee_bps),
                     actions_per_min=float(rate), rules=rules)

STARTER_TRADERS: Tuple[dict, ...] = (
    {
        "trader_id": "tuna",
        "name": "Tuna",
        "enabled": False,
        "fee_bps": 50,
        "actions_per_min": 10,
        "rules": [
            {"kind": "buyBelow", "good_key": "kibble", "price": 9.5, "qty": 1},
            {"kind": "sellAbove", "good_key": "kibble", "price": 10.8, "qty": 1},
        ],
    },
)

def starter_traders() -> List[TraderDef]:
    return [parse_trader(t) for t in STARTER_TRADERS]

# -----------------------------
# Goal ladder
# -----------------------------
@dataclass(frozen=True)
class GoalDef:
    level: int
    coins: float
    label: str
    unlocks: Tuple[str, ...] = ()

GOALS: Tuple[GoalDef, ...] = (
    GoalDef(0, 100.0, "reach 100 coins (unlock Catnip)"),
    GoalDef(1, 250.0, "reach 250 coins (unlock Shiny Things)"),
    GoalDef(2, 500.0, "reach 500 coins", unlocks=("heat", "schemes")),
    GoalDef(3, 800.0, "reach 800 coins", unlocks=("traders",)),
    GoalDef(4, 1200.0, "reach 1200 coins", unlocks=("cats",)),
)

FEATURE_KEYS: Tuple[str, ...] = ("heat", "schemes", "traders", "cats")

def default_unlocks() -> Dict[str, bool]:
    unlocked = {k: False for k in GOOD_KEYS + FEATURE_KEYS}
    unlocked[GOOD_KEYS[0]] = True
    return unlocked
