"""
Deterministic randomness for a save.

Goals:
- Same seed + same sequence of calls => bit-identical draws, on any machine.
- Named sub-streams ("regime:kibble", "event", ...) so a draw is tied to
  what it is used for.

Every draw mixes the stream name (FNV-1a) into ``state.rng_state``, takes one
xorshift32 step, and writes the result back. All streams share that one
register, so anything that consumes randomness (a heat event, a regime
change) shifts every later draw. That is intended: outcomes depend on the
seed *and* on what the player did.

Non-goals:
- Cryptographic security.
- True Gaussian noise (``normalish`` is a sum of six uniforms).
"""
from __future__ import annotations
from functools import lru_cache
import math

from .state import SimState

U32_MASK = 0xFFFFFFFF
ZERO_GUARD = 0xA5A5A5A5   # xorshift32 never leaves 0
_FNV_OFFSET = 2166136261
_FNV_PRIME = 16777619
_U32_SCALE = 4294967296.0

@lru_cache(maxsize=256)
def fnv1a(text: str) -> int:
    h = _FNV_OFFSET
    for ch in text.encode("utf-8"):
        h ^= ch
        h = (h * _FNV_PRIME) & U32_MASK
    return h

def xorshift32(x: int) -> int:
    x &= U32_MASK
    x ^= (x << 13) & U32_MASK
    x ^= x >> 17
    x ^= (x << 5) & U32_MASK
    return x & U32_MASK

def reseed(state: SimState, seed: int) -> None:
    state.seed = int(seed) & U32_MASK
    state.rng_state = state.seed

def next_u32(state: SimState, stream: str) -> int:
    x = (int(state.rng_state) ^ fnv1a(stream)) & U32_MASK
    x = xorshift32(x or ZERO_GUARD)
    state.rng_state = x
    return x

def uniform01(state: SimState, stream: str) -> float:
    """[0, 1)"""
    return next_u32(state, stream) / _U32_SCALE

def uniform_range(state: SimState, stream: str, lo: float, hi: float) -> float:
    return lo + uniform01(state, stream) * (hi - lo)

def randint(state: SimState, stream: str, n: int) -> int:
    """[0, n); 0 when n <= 0 (no draw is consumed)."""
    if n <= 0:
        return 0
    return min(n - 1, int(uniform01(state, stream) * n))

def normalish(state: SimState, stream: str) -> float:
    # Sum of 6 uniforms has mean 3, variance 0.5; scaled to mean 0, variance ~1.
    # Bounded to +/- 3*sqrt(2), lighter tails than a real normal.
    total = 0.0
    for _ in range(6):
        total += uniform01(state, stream)
    return (total - 3.0) * math.sqrt(2.0)

def weighted_choice(state: SimState, stream: str, weights: dict) -> str:
    """Pick a key of ``weights`` (iteration order is the tie-break order)."""
    total = sum(max(0.0, float(w)) for w in weights.values())
    r = uniform01(state, stream) * total
    last = None
    for key, w in weights.items():
        w = max(0.0, float(w))
        if w <= 0.0:
            continue
        last = key
        if r < w:
            return key
        r -= w
    return last
