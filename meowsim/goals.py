from __future__ import annotations
from typing import List, Optional

from .catalog import GOALS, GoalDef
from .config import DEFAULT_CONFIG, SimConfig
from .core import safe_float
from .state import SimState

# Unlock flags only ever flip False -> True here; prestige/bust reset them.

def apply_good_unlocks(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> List[str]:
    coins = safe_float(state.coins)
    newly: List[str] = []
    for good_key, threshold in cfg.good_unlock_coins.items():
        if not state.unlocked.get(good_key, False) and coins >= threshold:
            state.unlocked[good_key] = True
            newly.append(good_key)
    return newly

def current_goal(state: SimState) -> Optional[GoalDef]:
    if 0 <= state.level < len(GOALS):
        return GOALS[state.level]
    return None

def can_level_up(state: SimState) -> bool:
    goal = current_goal(state)
    return goal is not None and safe_float(state.coins) >= goal.coins

def level_up(state: SimState) -> bool:
    """Claim the current goal (coins are not spent) and apply its unlocks."""
    goal = current_goal(state)
    if goal is None or not can_level_up(state):
        return False
    for feature in goal.unlocks:
        state.unlocked[feature] = True
    state.level += 1
    return True
