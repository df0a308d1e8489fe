"""
Contracts: timed objectives, at most one active.

    none --accept--> active --(requirements met)--> complete --redeem--> none
                       |                                  (reward, goods consumed)
                       +--(deadline passed)--> expired --tick--> none (penalty)
                       +--abandon--> none (penalty)

Expiry is noticed lazily by the tick loop. In strict mode an expired contract
busts the whole run instead.

``deliverGood`` looks at the inventory on hand, not at what was gathered
after accepting, so stock held beforehand counts.
"""
from __future__ import annotations
from typing import List, Literal, Optional
import logging

from .catalog import CONTRACTS, CONTRACTS_BY_ID, ContractDef, DeliverGood, EarnCoins, Requirement
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp0, round2, safe_float
from .lots import remove_units
from .prestige import bust_run
from .state import SimState

logger = logging.getLogger(__name__)

ContractStatus = Literal["none", "active", "complete", "expired"]

def get_available_contracts(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> List[ContractDef]:
    if state.contracts.active_id:
        return []
    # Nobody wants to work with a cat this hot.
    if state.unlocked.get("heat", False) and state.heat >= cfg.contract_heat_gate:
        return []
    seasons = state.meta.seasons_completed
    return [c for c in CONTRACTS if not c.is_prestige or seasons >= 1]

def get_active_contract(state: SimState) -> Optional[ContractDef]:
    active_id = state.contracts.active_id
    if not active_id:
        return None
    return CONTRACTS_BY_ID.get(active_id)

def accept_contract(state: SimState, contract_id: str, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    if not any(c.contract_id == contract_id for c in get_available_contracts(state, cfg)):
        return False
    state.contracts.active_id = contract_id
    state.contracts.started_at_sec = safe_float(state.sim_time)
    state.contracts.start_coins = safe_float(state.coins)
    logger.debug("[CONTRACT] accepted %s at t=%.2f coins=%.2f", contract_id, state.sim_time, state.coins)
    return True

def requirement_met(state: SimState, req: Requirement) -> bool:
    if isinstance(req, EarnCoins):
        earned = max(0.0, safe_float(state.coins) - safe_float(state.contracts.start_coins))
        return earned >= req.coins
    if isinstance(req, DeliverGood):
        return state.inventory.get(req.good_key, 0) >= req.qty
    # unknown requirement kinds never complete
    return False

def is_active_contract_complete(state: SimState) -> bool:
    c = get_active_contract(state)
    if c is None:
        return False
    return all(requirement_met(state, r) for r in c.requirements)

def is_active_contract_expired(state: SimState) -> bool:
    c = get_active_contract(state)
    if c is None or state.contracts.started_at_sec is None:
        return False
    return safe_float(state.sim_time) - safe_float(state.contracts.started_at_sec) > c.deadline_sec

def time_left(state: SimState) -> Optional[float]:
    c = get_active_contract(state)
    if c is None:
        return None
    elapsed = safe_float(state.sim_time) - safe_float(state.contracts.started_at_sec)
    return max(0.0, c.deadline_sec - elapsed)

def contract_status(state: SimState) -> ContractStatus:
    if get_active_contract(state) is None:
        return "none"
    if is_active_contract_expired(state):
        return "expired"
    if is_active_contract_complete(state):
        return "complete"
    return "active"

def _apply_penalty(state: SimState, c: ContractDef) -> None:
    state.coins = clamp0(round2(state.coins - c.penalty_coins))
    state.contracts.clear()

def redeem_active_contract(state: SimState) -> bool:
    c = get_active_contract(state)
    if c is None or contract_status(state) != "complete":
        return False
    for r in c.requirements:
        if isinstance(r, DeliverGood):
            remove_units(state, r.good_key, r.qty)
    state.coins = clamp0(round2(state.coins + c.reward_coins))
    state.contracts.clear()
    logger.debug("[CONTRACT] redeemed %s reward=%.2f", c.contract_id, c.reward_coins)
    return True

def abandon_active_contract(state: SimState) -> bool:
    c = get_active_contract(state)
    if c is None:
        return False
    _apply_penalty(state, c)
    logger.debug("[CONTRACT] abandoned %s penalty=%.2f", c.contract_id, c.penalty_coins)
    return True

def fail_expired_active_contract(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> Optional[str]:
    """Tick hook: settle an expired contract. Returns its id, or None when nothing expired."""
    c = get_active_contract(state)
    if c is None or not is_active_contract_expired(state):
        return None
    if state.meta.strict_mode:
        logger.info("contract %s expired in strict mode; busting run", c.contract_id)
        bust_run(state, cfg)
        return c.contract_id
    _apply_penalty(state, c)
    logger.debug("[CONTRACT] expired %s penalty=%.2f", c.contract_id, c.penalty_coins)
    return c.contract_id
