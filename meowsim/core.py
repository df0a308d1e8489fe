from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from collections import deque
import math

def format_inventory(inv: Dict[str, int]) -> str:
    if not inv:
        return "(empty)"
    items = sorted(inv.items(), key=lambda kv: kv[0])
    return ", ".join(f"{good}:{qty}" for good, qty in items)

# -----------------------------
# Numeric guards
# -----------------------------
def safe_float(x: Any, default: float = 0.0) -> float:
    try:
        v = float(x)
    except (TypeError, ValueError):
        return default
    return v if math.isfinite(v) else default

def safe_qty(x: Any) -> int:
    """Whole units; non-finite or non-numeric input becomes 0."""
    v = safe_float(x)
    return int(math.floor(v)) if v > 0 else 0

def clamp(x: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, safe_float(x)))

def clamp0(x: Any) -> float:
    return max(0.0, safe_float(x))

def round2(x: float) -> float:
    # half-up, so 0.125 -> 0.13 on every platform
    return math.floor(safe_float(x) * 100.0 + 0.5) / 100.0

# -----------------------------
# Events
# -----------------------------
@dataclass
class Event:
    sim_time: float
    event_type: str
    actor_id: Optional[str] = None
    good_key: Optional[str] = None
    amount: Optional[float] = None
    meta: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "sim_time": float(self.sim_time),
            "event_type": self.event_type,
            "actor_id": self.actor_id,
            "good_key": self.good_key,
            "amount": None if self.amount is None else float(self.amount),
            "meta": dict(self.meta),
        }

class EventLog:
    def __init__(self, maxlen: Optional[int] = None) -> None:
        self.events = deque(maxlen=maxlen)

    def add(self, e: Event) -> None:
        self.events.append(e)

    def tail(self, n: int = 200) -> List[Event]:
        if n <= 0:
            return []
        if n >= len(self.events):
            return list(self.events)
        return list(self.events)[-n:]

    def of_type(self, event_type: str) -> List[Event]:
        return [e for e in self.events if e.event_type == event_type]
