"""
Price engine.

Two layers per good:

- a latent process (anchor + drift + slow/fast noise under a volatility
  regime) that advances exactly once per simulated second, no matter how
  often ``tick`` is called; a fractional carry (``state.market_clock``)
  decides how many whole seconds a call crosses;
- order-flow pressure from trading, which decays continuously and is
  applied on top of the cached base price.

Displayed price = max(1, round2(base * (1 + 0.02 * pressure))). Trades
refresh it immediately from the cached base, so intra-second trades see
their own impact while the stochastic part stays at 1 Hz.
"""
from __future__ import annotations
from typing import Tuple
import logging
import math

from .catalog import DISTRICTS_BY_KEY, GOOD_KEYS, GOODS_BY_KEY, DistrictDef, GoodDef
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp, round2, safe_float
from .rng import normalish, uniform_range, weighted_choice
from .state import LatentPrice, MarketEntry, SimState

logger = logging.getLogger(__name__)

# -----------------------------
# Tunables
# -----------------------------
def current_district(state: SimState) -> DistrictDef:
    return DISTRICTS_BY_KEY.get(state.meta.district_key) or DISTRICTS_BY_KEY["alley"]

def good_tunables(good: GoodDef, district: DistrictDef) -> Tuple[float, float, float, float, float]:
    """(base, slow_vol, fast_vol, drift_mag, mean_rev) scaled for the district."""
    return (
        good.base * district.base_mult,
        good.slow_vol * district.slow_vol_mult,
        good.fast_vol * district.fast_vol_mult,
        good.drift_mag * district.drift_mult,
        good.mean_rev * district.mean_rev_mult,
    )

def display_price(base_price: float, pressure: float, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    base = max(1.0, safe_float(base_price, 1.0))
    p = clamp(pressure, -cfg.pressure_limit, cfg.pressure_limit)
    return max(1.0, round2(base * (1.0 + cfg.pressure_price_coeff * p)))

def get_price(state: SimState, good_key: str) -> float:
    entry = state.market.get(good_key)
    return entry.price if entry is not None else 0.0

# -----------------------------
# Latent process
# -----------------------------
def init_latent(state: SimState, good_key: str) -> LatentPrice:
    base = good_tunables(GOODS_BY_KEY[good_key], current_district(state))[0]
    lat = LatentPrice(anchor=base, last_base_price=max(1.0, round2(base)))
    state.market_latent[good_key] = lat
    return lat

def ensure_market(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    for k in GOOD_KEYS:
        lat = state.market_latent.get(k) or init_latent(state, k)
        if k not in state.market:
            state.market[k] = MarketEntry(price=display_price(lat.last_base_price, 0.0, cfg), pressure=0.0)

def step_latent(state: SimState, good_key: str, cfg: SimConfig = DEFAULT_CONFIG, dt: float = 1.0) -> float:
    good = GOODS_BY_KEY[good_key]
    base, slow_vol, fast_vol, drift_mag, mean_rev = good_tunables(good, current_district(state))
    lat = state.market_latent.get(good_key) or init_latent(state, good_key)

    lat.regime_time_left = safe_float(lat.regime_time_left) - dt
    if lat.regime_time_left <= 0.0:
        lat.regime = weighted_choice(state, f"regime:{good_key}", cfg.regime_weights)
        lat.regime_time_left = uniform_range(
            state, f"regime-len:{good_key}", good.regime_min_sec, good.regime_max_sec
        )
    vol = cfg.regime_vol_mult.get(lat.regime, 1.0)
    sqrt_dt = math.sqrt(dt)

    drift = safe_float(lat.drift) * cfg.drift_decay + drift_mag * vol * normalish(state, f"drift:{good_key}")
    lat.drift = clamp(drift, -cfg.drift_limit, cfg.drift_limit)
    lat.slow = safe_float(lat.slow * cfg.slow_decay + slow_vol * vol * normalish(state, f"slow:{good_key}") * sqrt_dt)
    lat.fast = safe_float(lat.fast * cfg.fast_decay + fast_vol * vol * normalish(state, f"fast:{good_key}") * sqrt_dt)

    target = base + cfg.anchor_drift_weight * lat.drift
    anchor = safe_float(lat.anchor, base)
    lat.anchor = safe_float(anchor + (target - anchor) * min(1.0, mean_rev * dt), base)

    lat.last_base_price = max(1.0, round2(lat.anchor + lat.slow + lat.fast))
    return lat.last_base_price

def advance_market(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> int:
    """Carry ``dt`` into the market clock and run one latent step per whole second crossed."""
    clock = max(0.0, safe_float(state.market_clock)) + max(0.0, safe_float(dt))
    steps = int(math.floor(clock))
    state.market_clock = clock - steps
    for _ in range(steps):
        for k in GOOD_KEYS:
            step_latent(state, k, cfg)
    return steps

# -----------------------------
# Pressure
# -----------------------------
def refresh_price(state: SimState, good_key: str, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    lat = state.market_latent.get(good_key) or init_latent(state, good_key)
    entry = state.market.setdefault(good_key, MarketEntry())
    entry.price = display_price(lat.last_base_price, entry.pressure, cfg)
    return entry.price

def recompute_market(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    ensure_market(state, cfg)
    for k in GOOD_KEYS:
        refresh_price(state, k, cfg)

def apply_pressure(state: SimState, good_key: str, delta: float, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    entry = state.market.setdefault(good_key, MarketEntry())
    cur = safe_float(entry.pressure)
    entry.pressure = clamp(round2(cur + safe_float(delta)), -cfg.pressure_limit, cfg.pressure_limit)

def decay_pressure(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    k = math.exp(-cfg.pressure_decay_per_sec * max(0.0, safe_float(dt)))
    for entry in state.market.values():
        entry.pressure = clamp(round2(safe_float(entry.pressure) * k), -cfg.pressure_limit, cfg.pressure_limit)

def scale_pressure(state: SimState, mult: float, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    for k, entry in state.market.items():
        entry.pressure = clamp(round2(safe_float(entry.pressure) * mult), -cfg.pressure_limit, cfg.pressure_limit)
        refresh_price(state, k, cfg)

# -----------------------------
# Districts
# -----------------------------
def switch_district(state: SimState, district_key: str, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    if not isinstance(district_key, str) or district_key not in DISTRICTS_BY_KEY:
        return False
    if district_key not in state.meta.districts_unlocked:
        return False
    if district_key == state.meta.district_key:
        return True
    state.meta.district_key = district_key
    # Fresh anchors/regimes for the new market; the rng register carries on.
    state.market_latent = {}
    recompute_market(state, cfg)
    logger.info("district switched to %s", district_key)
    return True
