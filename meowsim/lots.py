from __future__ import annotations
from typing import List, Tuple

from .core import clamp0, round2
from .state import Lot, SimState

# FIFO cost-basis queues. Any change to inventory goes through here so that
# sum(lot.qty) == inventory[good] holds after every operation.

def lots_total(state: SimState, good_key: str) -> int:
    return sum(l.qty for l in state.lots.get(good_key, []))

def consume_fifo(lots: List[Lot], qty: int) -> Tuple[int, float]:
    """Pop ``qty`` units oldest-first; returns (units taken, total cost basis)."""
    taken = 0
    basis = 0.0
    while taken < qty and lots:
        head = lots[0]
        take = min(head.qty, qty - taken)
        basis += take * head.unit_cost
        taken += take
        head.qty -= take
        if head.qty <= 0:
            lots.pop(0)
    return taken, round2(basis)

def add_units(state: SimState, good_key: str, qty: int, unit_cost: float = 0.0) -> None:
    if qty <= 0:
        return
    state.inventory[good_key] = state.inventory.get(good_key, 0) + qty
    state.lots.setdefault(good_key, []).append(Lot(qty=qty, unit_cost=clamp0(unit_cost)))

def remove_units(state: SimState, good_key: str, qty: int) -> Tuple[int, float]:
    """Remove up to ``qty`` units; never drives inventory below 0."""
    have = state.inventory.get(good_key, 0)
    qty = min(max(0, qty), have)
    if qty <= 0:
        return 0, 0.0
    taken, basis = consume_fifo(state.lots.setdefault(good_key, []), qty)
    state.inventory[good_key] = have - qty
    return qty, basis

def average_cost(state: SimState, good_key: str) -> float:
    lots = state.lots.get(good_key, [])
    total = sum(l.qty for l in lots)
    if total <= 0:
        return 0.0
    return round2(sum(l.qty * l.unit_cost for l in lots) / total)
