"""
Heat: a 0..100 attention meter.

Trading raises it, time cools it, and above 20 it starts rolling adverse
events once per simulated second. Events are setbacks, never game-enders.
"""
from __future__ import annotations
from typing import Optional
import logging
import math

from .catalog import GOOD_KEYS
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp, clamp0, safe_float
from .lots import remove_units
from .rng import randint, uniform01, weighted_choice
from .state import SimState, has_job

logger = logging.getLogger(__name__)

EVENT_TITLES = {
    "tax": "Cat Tax Audit",
    "rival": "Rival Crew",
    "confiscation": "Confiscation",
}

def add_heat(state: SimState, delta: float, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    state.heat = clamp(safe_float(state.heat) + safe_float(delta), 0.0, cfg.heat_max)

def decay_heat(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    rate = cfg.heat_decay_guarded_per_sec if has_job(state, "guarding") else cfg.heat_decay_per_sec
    add_heat(state, -rate * max(0.0, safe_float(dt)), cfg)

def event_probability(heat: float, guarded: bool, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    h = clamp(heat, 0.0, cfg.heat_max)
    p = clamp((h - cfg.event_heat_floor) / cfg.event_heat_span, 0.0, cfg.event_prob_cap)
    if guarded:
        p *= cfg.guard_event_mult
    return clamp(p, 0.0, cfg.event_prob_cap)

def apply_event(state: SimState, kind: str, cfg: SimConfig = DEFAULT_CONFIG) -> dict:
    record = {"kind": kind, "title": EVENT_TITLES.get(kind, kind), "good_key": None, "amount": 0.0}
    if kind == "tax":
        rate = clamp(cfg.tax_rate_min + state.heat / cfg.tax_heat_divisor, cfg.tax_rate_min, cfg.tax_rate_max)
        loss = math.floor(clamp0(state.coins) * rate)
        state.coins = clamp0(state.coins - loss)
        add_heat(state, -cfg.tax_heat_cooldown, cfg)
        record["amount"] = float(loss)
    elif kind == "rival":
        best = None
        best_price = -math.inf
        for k in GOOD_KEYS:
            if state.inventory.get(k, 0) <= 0:
                continue
            price = state.market[k].price if k in state.market else 0.0
            if price > best_price:
                best, best_price = k, price
        if best is not None:
            taken, _ = remove_units(state, best, 1)
            record["good_key"] = best
            record["amount"] = float(taken)
        add_heat(state, cfg.rival_heat_gain, cfg)
    elif kind == "confiscation":
        k = GOOD_KEYS[randint(state, "confiscate", len(GOOD_KEYS))]
        taken, _ = remove_units(state, k, cfg.confiscation_units)
        record["good_key"] = k
        record["amount"] = float(taken)
        add_heat(state, -cfg.confiscation_heat_cooldown, cfg)
    return record

def _log_event(state: SimState, record: dict, cfg: SimConfig) -> None:
    state.events.insert(0, record)
    del state.events[cfg.events_max:]

def maybe_trigger_event(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> Optional[dict]:
    """Roll for a heat event at most once per integer second; returns the logged record or None."""
    sec = int(math.floor(safe_float(state.sim_time)))
    if sec == state.last_event_sec:
        return None
    state.last_event_sec = sec
    if not state.unlocked.get("heat", False):
        return None

    p = event_probability(state.heat, has_job(state, "guarding"), cfg)
    if p <= 0.0 or uniform01(state, "event") >= p:
        return None
    kind = weighted_choice(state, "event-kind", cfg.event_kind_weights)

    # Shield is checked before anything about the event touches state.
    shield = state.schemes.get("nineLives")
    if shield is not None and shield.charges > 0:
        shield.charges -= 1
        record = {"kind": kind, "title": EVENT_TITLES.get(kind, kind), "good_key": None, "amount": 0.0,
                  "mitigated": True}
    else:
        record = apply_event(state, kind, cfg)
        record["mitigated"] = False
    record["at_sec"] = sec
    _log_event(state, record, cfg)
    logger.debug("[HEAT] sec=%d kind=%s mitigated=%s heat=%.2f", sec, kind, record["mitigated"], state.heat)
    return record
