"""
Hired traders: player-configured rule lists executed on a rate limit.

Each trader earns ``actions_per_min / 60`` budget per simulated second. Every
whole unit of budget buys one pass over the rule list, where the first rule
whose trigger holds is executed. At most ``trader_max_actions_per_tick``
passes run per tick, and unspent budget is capped at that many, so neither a
long frame nor a backlog can burst-trade. Trades settle through
the ledger, so lots, pressure and heat behave exactly as for manual trades.
"""
from __future__ import annotations
from typing import Any, List, Optional
import logging

from .catalog import TraderDef, TraderRule, parse_trader_rule
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp0, round2, safe_float
from .ledger import execute_buy, execute_sell
from .market import get_price
from .state import LastTrade, SimState, TraderRuntime

logger = logging.getLogger(__name__)

def fee_mult_buy(fee_bps: float) -> float:
    return 1.0 + clamp0(fee_bps) / 10000.0

def fee_mult_sell(fee_bps: float) -> float:
    return 1.0 - clamp0(fee_bps) / 10000.0

def find_trader(state: SimState, trader_id: str) -> Optional[TraderDef]:
    for t in state.traders:
        if t.trader_id == trader_id:
            return t
    return None

def set_trader_enabled(state: SimState, trader_id: str, enabled: bool) -> bool:
    t = find_trader(state, trader_id)
    if t is None or not isinstance(enabled, bool):
        return False
    t.enabled = enabled
    return True

def set_trader_rules(state: SimState, trader_id: str, rules: List[Any]) -> bool:
    """Replace a trader's rules; rejected as a whole if any rule is malformed."""
    t = find_trader(state, trader_id)
    if t is None or not isinstance(rules, list):
        return False
    parsed = [parse_trader_rule(r) for r in rules]
    if any(r is None for r in parsed):
        return False
    t.rules = parsed
    return True

def _run_rule(state: SimState, trader: TraderDef, rule: TraderRule, cfg: SimConfig) -> Optional[LastTrade]:
    if not state.unlocked.get(rule.good_key, False):
        return None
    price = get_price(state, rule.good_key)
    if price < 1.0:
        return None
    if rule.kind == "buyBelow":
        if price >= rule.price:
            return None
        unit = round2(price * fee_mult_buy(trader.fee_bps))
        if clamp0(state.coins) < round2(unit * rule.qty):
            return None
        return execute_buy(state, rule.good_key, rule.qty, unit, cfg, actor=trader.trader_id)
    if rule.kind == "sellAbove":
        if price <= rule.price or state.inventory.get(rule.good_key, 0) < rule.qty:
            return None
        unit = round2(price * fee_mult_sell(trader.fee_bps))
        return execute_sell(state, rule.good_key, rule.qty, unit, cfg, actor=trader.trader_id)
    return None

def run_traders(state: SimState, dt: float, cfg: SimConfig = DEFAULT_CONFIG) -> List[LastTrade]:
    step = max(0.0, safe_float(dt))
    trades: List[LastTrade] = []
    if step <= 0.0:
        return trades
    for t in state.traders:
        if not t.enabled:
            continue
        rt = state.trader_runtime.setdefault(t.trader_id, TraderRuntime())
        cap = float(cfg.trader_max_actions_per_tick)
        rt.budget = min(clamp0(rt.budget) + t.actions_per_min * step / 60.0, cap)
        actions = 0
        while rt.budget >= 1.0 and actions < cfg.trader_max_actions_per_tick:
            actions += 1
            rt.budget -= 1.0
            for rule in t.rules:
                trade = _run_rule(state, t, rule, cfg)
                if trade is not None:
                    trades.append(trade)
                    break
    return trades
