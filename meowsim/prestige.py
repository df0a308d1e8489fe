"""
Season prestige.

Ending a season trades run coins for Whiskers (the meta currency), bumps the
season counter, and resets everything run-scoped. ``meta``, the seed, the rng
register and the simulation clock carry over, so a save stays deterministic
across seasons. A bust (strict-mode failure) is the same reset with no award.
"""
from __future__ import annotations
import logging
import math

from .catalog import DISTRICTS_BY_KEY
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp0
from .market import recompute_market
from .state import SimState, reset_run_fields

logger = logging.getLogger(__name__)

def whiskers_for_coins(run_coins: float, cfg: SimConfig = DEFAULT_CONFIG) -> int:
    return int(math.floor(clamp0(run_coins) / cfg.whiskers_coin_divisor))

def _reset_run(state: SimState, cfg: SimConfig) -> None:
    reset_run_fields(state, cfg)
    recompute_market(state, cfg)

def end_season(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> dict:
    awarded = whiskers_for_coins(state.coins, cfg)
    meta = state.meta
    meta.whiskers = clamp0(meta.whiskers + awarded)
    meta.seasons_completed += 1

    # carryover unlocks after the first completed season
    if meta.seasons_completed >= 1:
        meta.scheme_slot_count = max(meta.scheme_slot_count, cfg.prestige_scheme_slots)
        if cfg.prestige_district in DISTRICTS_BY_KEY and cfg.prestige_district not in meta.districts_unlocked:
            meta.districts_unlocked = sorted(set(meta.districts_unlocked) | {cfg.prestige_district})

    run_coins = state.coins
    _reset_run(state, cfg)
    logger.info("season %d ended: run coins %.2f -> %d whiskers (total %.0f)",
                meta.seasons_completed, run_coins, awarded, meta.whiskers)
    return {"meta_currency_awarded": awarded}

def bust_run(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> None:
    _reset_run(state, cfg)
    logger.info("run busted at t=%.2f", state.sim_time)
