from __future__ import annotations
from typing import Dict, Optional
import logging
import math

from .catalog import CAT_IDS, JOBS, JOBS_BY_KEY
from .config import DEFAULT_CONFIG, SimConfig
from .core import safe_float
from .lots import add_units
from .state import SimState, is_scheme_active

logger = logging.getLogger(__name__)

def job_counts(state: SimState) -> Dict[str, int]:
    counts = {j.key: 0 for j in JOBS}
    for job in state.job_assignments.values():
        if job in counts:
            counts[job] += 1
    return counts

def assign_job(state: SimState, cat_id: str, job_key: Optional[str]) -> bool:
    """Assign (or with ``None`` unassign) a cat, respecting per-job capacity."""
    if not isinstance(cat_id, str) or cat_id not in CAT_IDS:
        return False
    if job_key is None:
        state.job_assignments[cat_id] = None
        return True
    job = JOBS_BY_KEY.get(job_key) if isinstance(job_key, str) else None
    if job is None:
        return False
    current = state.job_assignments.get(cat_id)
    if current == job_key:
        return True
    counts = job_counts(state)
    if counts[job_key] >= job.cap:
        return False
    state.job_assignments[cat_id] = job_key
    logger.debug("cat %s: %s -> %s", cat_id, current, job_key)
    return True

def run_production(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> int:
    """Producing cats turn time into zero-cost units of the production good."""
    workers = job_counts(state)["production"]
    good_key = cfg.production_good
    if workers <= 0 or not state.unlocked.get(good_key, False):
        return 0
    rate = cfg.production_units_per_sec * workers
    if is_scheme_active(state, "hustle"):
        rate *= cfg.hustle_production_mult
    carry = safe_float(state.production_carry) + rate * max(0.0, safe_float(dt))
    units = int(math.floor(carry))
    state.production_carry = carry - units
    add_units(state, good_key, units, 0.0)
    return units
