from __future__ import annotations

import pytest

from meowsim.config import SimConfig
from meowsim.engine import SimulationEngine, new_state
from meowsim.state import SimState


@pytest.fixture
def cfg() -> SimConfig:
    return SimConfig()


@pytest.fixture
def state(cfg) -> SimState:
    """Fresh save with a fixed seed (no time advanced yet)."""
    return new_state(seed=1234, cfg=cfg)


@pytest.fixture
def hot_cfg() -> SimConfig:
    # every roll above the floor triggers
    return SimConfig(event_heat_span=1.0, event_prob_cap=1.0)


@pytest.fixture
def engine(cfg) -> SimulationEngine:
    return SimulationEngine(cfg=cfg, seed=7)
