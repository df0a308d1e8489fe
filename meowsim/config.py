from dataclasses import dataclass, field


@dataclass
class SimConfig:
    # Run start / clock
    start_coins: float = 50.0
    max_tick_dt: float = 5.0          # seconds; larger deltas are clamped
    default_seed: int | None = None   # None -> draw a fresh seed on first tick
    history_max_points: int = 30
    events_max: int = 10

    # Unlocks (coins needed before a good can be traded)
    good_unlock_coins: dict[str, float] = field(default_factory=lambda: {"catnip": 100.0, "shiny": 250.0})

    # Pressure / saturation
    pressure_limit: float = 25.0
    pressure_price_coeff: float = 0.02   # displayed = base * (1 + coeff * pressure)
    pressure_decay_per_sec: float = 0.35

    # Latent price process
    drift_decay: float = 0.92
    drift_limit: float = 0.6
    slow_decay: float = 0.985
    fast_decay: float = 0.90
    anchor_drift_weight: float = 2.0
    regime_weights: dict[str, float] = field(default_factory=lambda: {"calm": 0.62, "choppy": 0.28, "hype": 0.10})
    regime_vol_mult: dict[str, float] = field(default_factory=lambda: {"calm": 0.75, "choppy": 1.05, "hype": 1.55})

    # Trading edges
    negotiate_buy_mult: float = 0.98
    negotiate_sell_mult: float = 1.02

    # Heat
    heat_max: float = 100.0
    heat_decay_per_sec: float = 0.8
    heat_decay_guarded_per_sec: float = 1.2
    guard_heat_mult: float = 0.7          # trade heat while a cat is guarding
    lay_low_heat_mult: float = 0.5        # trade heat while purrSuasion is active
    event_heat_floor: float = 20.0        # no events at or below this heat
    event_heat_span: float = 400.0        # (heat - floor) / span = per-second probability
    event_prob_cap: float = 0.18
    guard_event_mult: float = 0.7
    event_kind_weights: dict[str, float] = field(default_factory=lambda: {"tax": 0.5, "rival": 0.3, "confiscation": 0.2})
    tax_rate_min: float = 0.04
    tax_rate_max: float = 0.10
    tax_heat_divisor: float = 2000.0
    tax_heat_cooldown: float = 6.0
    rival_heat_gain: float = 3.0
    confiscation_units: int = 2
    confiscation_heat_cooldown: float = 10.0

    # Contracts
    contract_heat_gate: float = 70.0      # no offers at or above this heat (once heat is unlocked)

    # Schemes
    cool_whiskers_heat_drop: float = 25.0
    market_nap_pressure_mult: float = 0.5
    hustle_production_mult: float = 2.0

    # Production (cats on the production job)
    production_good: str = "kibble"
    production_units_per_sec: float = 0.2

    # Traders
    trader_max_actions_per_tick: int = 3

    # Prestige
    whiskers_coin_divisor: float = 200.0
    prestige_scheme_slots: int = 2
    prestige_district: str = "uptown"

    # Engine bookkeeping
    metrics_stride: int = 1               # snapshot every N engine steps (0 disables)
    event_log_maxlen: int | None = 5000

    # Debug
    debug_trades: bool = True

    def __post_init__(self) -> None:
        if self.max_tick_dt <= 0:
            raise ValueError("max_tick_dt must be positive")
        if self.history_max_points < 1:
            raise ValueError("history_max_points must be >= 1")
        if set(self.regime_weights) != set(self.regime_vol_mult):
            raise ValueError("regime_weights and regime_vol_mult must name the same regimes")
        if sum(self.regime_weights.values()) <= 0 or sum(self.event_kind_weights.values()) <= 0:
            raise ValueError("weight tables must have a positive total")
        if self.pressure_limit <= 0:
            raise ValueError("pressure_limit must be positive")
        if self.whiskers_coin_divisor <= 0:
            raise ValueError("whiskers_coin_divisor must be positive")


DEFAULT_CONFIG = SimConfig()
