"""
Schemes: cooldown-gated abilities.

Instant effects (Nine Lives, Cool Whiskers, Market Nap) happen inside
``activate_scheme``. Timed effects (Hustle, Price Pounce, Purr-suasion) are
read elsewhere through ``is_scheme_active``.

Only schemes in the first ``meta.scheme_slot_count`` entries of
``state.scheme_loadout`` can be activated.
"""
from __future__ import annotations
from typing import List
import logging

from .catalog import SCHEMES_BY_ID
from .config import DEFAULT_CONFIG, SimConfig
from .core import safe_float
from .heat import add_heat
from .market import scale_pressure
from .state import SchemeRuntime, SimState

logger = logging.getLogger(__name__)

def usable_schemes(state: SimState) -> List[str]:
    return list(state.scheme_loadout[: max(1, state.meta.scheme_slot_count)])

def equip_scheme(state: SimState, slot: int, scheme_id: str) -> bool:
    if not isinstance(scheme_id, str) or scheme_id not in SCHEMES_BY_ID:
        return False
    if not isinstance(slot, int) or slot < 0 or slot >= max(1, state.meta.scheme_slot_count):
        return False
    loadout = state.scheme_loadout
    if slot >= len(loadout):
        return False
    if loadout[slot] == scheme_id:
        return True
    if scheme_id in loadout:
        other = loadout.index(scheme_id)
        loadout[other] = loadout[slot]
    loadout[slot] = scheme_id
    return True

def activate_scheme(state: SimState, scheme_id: str, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    scheme = SCHEMES_BY_ID.get(scheme_id) if isinstance(scheme_id, str) else None
    if scheme is None or scheme_id not in usable_schemes(state):
        return False
    rt = state.schemes.setdefault(scheme_id, SchemeRuntime())
    if rt.cooldown_left > 0.0:
        return False
    # preconditions; a failed activation keeps the scheme ready
    if scheme_id == "coolWhiskers" and not state.unlocked.get("heat", False):
        return False

    rt.cooldown_left = scheme.cooldown_sec
    rt.active_left = scheme.duration_sec

    if scheme_id == "nineLives":
        rt.charges += 1
    elif scheme_id == "coolWhiskers":
        add_heat(state, -cfg.cool_whiskers_heat_drop, cfg)
    elif scheme_id == "marketNap":
        scale_pressure(state, cfg.market_nap_pressure_mult, cfg)

    logger.debug("[SCHEME] %s activated cooldown=%.1f active=%.1f", scheme_id, rt.cooldown_left, rt.active_left)
    return True

def tick_schemes(state: SimState, dt: float) -> None:
    step = max(0.0, safe_float(dt))
    for rt in state.schemes.values():
        rt.cooldown_left = max(0.0, rt.cooldown_left - step)
        rt.active_left = max(0.0, rt.active_left - step)
