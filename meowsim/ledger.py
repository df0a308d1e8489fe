from __future__ import annotations
from typing import Optional, Tuple
import logging

from .catalog import GOODS_BY_KEY
from .config import DEFAULT_CONFIG, SimConfig
from .core import clamp0, format_inventory, round2, safe_qty
from .heat import add_heat
from .lots import add_units, remove_units
from .market import apply_pressure, get_price, refresh_price
from .state import LastTrade, SimState, has_job, is_scheme_active

logger = logging.getLogger(__name__)

# -----------------------------
# Prices
# -----------------------------
def edge_multipliers(state: SimState, cfg: SimConfig = DEFAULT_CONFIG) -> Tuple[float, float]:
    """(buy, sell) multipliers from a negotiating cat and/or an active Price Pounce."""
    buy_mult = 1.0
    sell_mult = 1.0
    if has_job(state, "negotiating"):
        buy_mult *= cfg.negotiate_buy_mult
        sell_mult *= cfg.negotiate_sell_mult
    if is_scheme_active(state, "pricePounce"):
        buy_mult *= cfg.negotiate_buy_mult
        sell_mult *= cfg.negotiate_sell_mult
    return buy_mult, sell_mult

def buy_price(state: SimState, good_key: str, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    price = get_price(state, good_key)
    mult, _ = edge_multipliers(state, cfg)
    return round2(price * mult) if mult != 1.0 else price

def sell_price(state: SimState, good_key: str, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    price = get_price(state, good_key)
    _, mult = edge_multipliers(state, cfg)
    return round2(price * mult) if mult != 1.0 else price

def trade_heat(state: SimState, good_key: str, qty: int, cfg: SimConfig = DEFAULT_CONFIG) -> float:
    mult = cfg.guard_heat_mult if has_job(state, "guarding") else 1.0
    if is_scheme_active(state, "purrSuasion"):
        mult *= cfg.lay_low_heat_mult
    return mult * GOODS_BY_KEY[good_key].heat_base * qty

# -----------------------------
# Checks
# -----------------------------
def _tradeable(state: SimState, good_key: str) -> Tuple[bool, str]:
    if not isinstance(good_key, str) or good_key not in GOODS_BY_KEY:
        return False, "unknown_good"
    if not state.unlocked.get(good_key, False):
        return False, "locked"
    if get_price(state, good_key) < 1.0:
        return False, "no_price"
    return True, "ok"

def check_buy(state: SimState, good_key: str, qty, cfg: SimConfig = DEFAULT_CONFIG) -> Tuple[bool, str]:
    ok, reason = _tradeable(state, good_key)
    if not ok:
        return False, reason
    q = safe_qty(qty)
    if q <= 0:
        return False, "bad_qty"
    cost = round2(buy_price(state, good_key, cfg) * q)
    if clamp0(state.coins) < cost:
        return False, "insufficient_coins"
    return True, "ok"

def check_sell(state: SimState, good_key: str, qty, cfg: SimConfig = DEFAULT_CONFIG) -> Tuple[bool, str]:
    ok, reason = _tradeable(state, good_key)
    if not ok:
        return False, reason
    q = safe_qty(qty)
    if q <= 0:
        return False, "bad_qty"
    if state.inventory.get(good_key, 0) < q:
        return False, "insufficient_inventory"
    return True, "ok"

def can_buy(state: SimState, good_key: str, qty=1, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    return check_buy(state, good_key, qty, cfg)[0]

def can_sell(state: SimState, good_key: str, qty=1, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    return check_sell(state, good_key, qty, cfg)[0]

# -----------------------------
# Execution
# -----------------------------
def _debug_trade(state: SimState, trade: LastTrade, cfg: SimConfig) -> None:
    if not cfg.debug_trades or not logger.isEnabledFor(logging.DEBUG):
        return
    logger.debug(
        "[TRADE] actor=%s kind=%s good=%s qty=%d unit=%.2f amount=%.2f pnl=%s coins=%.2f heat=%.2f inv={ %s }",
        trade.actor,
        trade.kind,
        trade.good_key,
        trade.qty,
        trade.unit_price,
        trade.amount,
        "-" if trade.pnl is None else f"{trade.pnl:.2f}",
        state.coins,
        state.heat,
        format_inventory(state.inventory),
    )

def _after_trade(state: SimState, good_key: str, signed_qty: int, cfg: SimConfig) -> None:
    apply_pressure(state, good_key, signed_qty, cfg)
    if state.unlocked.get("heat", False):
        add_heat(state, trade_heat(state, good_key, abs(signed_qty), cfg), cfg)
    refresh_price(state, good_key, cfg)

def execute_buy(state: SimState, good_key: str, qty: int, unit_price: float,
                cfg: SimConfig = DEFAULT_CONFIG, actor: str = "player") -> Optional[LastTrade]:
    """Settle a buy at ``unit_price``. Callers have already checked lock state; coins are re-checked here."""
    cost = round2(unit_price * qty)
    if qty <= 0 or clamp0(state.coins) < cost:
        return None
    state.coins = clamp0(round2(state.coins - cost))
    add_units(state, good_key, qty, unit_price)
    trade = LastTrade(kind="buy", good_key=good_key, qty=qty, unit_price=unit_price, amount=cost, actor=actor)
    state.last_trade = trade
    _after_trade(state, good_key, qty, cfg)
    _debug_trade(state, trade, cfg)
    return trade

def execute_sell(state: SimState, good_key: str, qty: int, unit_price: float,
                 cfg: SimConfig = DEFAULT_CONFIG, actor: str = "player") -> Optional[LastTrade]:
    if qty <= 0 or state.inventory.get(good_key, 0) < qty:
        return None
    _, basis = remove_units(state, good_key, qty)
    proceeds = round2(unit_price * qty)
    state.coins = clamp0(round2(state.coins + proceeds))
    trade = LastTrade(kind="sell", good_key=good_key, qty=qty, unit_price=unit_price, amount=proceeds,
                      pnl=round2(proceeds - basis), actor=actor)
    state.last_trade = trade
    _after_trade(state, good_key, -qty, cfg)
    _debug_trade(state, trade, cfg)
    return trade

def buy(state: SimState, good_key: str, qty=1, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    ok, _ = check_buy(state, good_key, qty, cfg)
    if not ok:
        return False
    return execute_buy(state, good_key, safe_qty(qty), buy_price(state, good_key, cfg), cfg) is not None

def sell(state: SimState, good_key: str, qty=1, cfg: SimConfig = DEFAULT_CONFIG) -> bool:
    ok, _ = check_sell(state, good_key, qty, cfg)
    if not ok:
        return False
    return execute_sell(state, good_key, safe_qty(qty), sell_price(state, good_key, cfg), cfg) is not None
