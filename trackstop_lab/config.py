from __future__ import annotations

import math
from dataclasses import dataclass, field

from trackstop_lab.allocation import ADAPTIVE, ALLOCATION_WARMUP, BEST_WEIGHT_FLOOR, GAP_FLOOR, validate_mode
from trackstop_lab.divergence import KL_EPS
from trackstop_lab.stopping import STOPPING_WARMUP

DEFAULT_RATES: tuple[float, ...] = (0.55, 0.45, 0.72, 0.48)
VARIANT_NAMES: tuple[str, ...] = ("Variant A", "Variant B", "Variant C", "Variant D")
DEFAULT_DELTA = 0.05
MAX_STEPS = 5000
HISTORY_INTERVAL = 15


def variant_name(arm: int) -> str:
    if 0 <= arm < len(VARIANT_NAMES):
        return VARIANT_NAMES[arm]
    return f"Variant {arm}"


@dataclass(slots=True)
class SimulationConfig:
    true_rates: tuple[float, ...] = field(default=DEFAULT_RATES)
    mode: str = ADAPTIVE
    delta: float = DEFAULT_DELTA
    max_steps: int = MAX_STEPS
    allocation_warmup: int = ALLOCATION_WARMUP
    stopping_warmup: int = STOPPING_WARMUP
    history_interval: int = HISTORY_INTERVAL
    gap_floor: float = GAP_FLOOR
    best_weight_floor: float = BEST_WEIGHT_FLOOR
    eps: float = KL_EPS

    def __post_init__(self) -> None:
        self.true_rates = tuple(float(rate) for rate in self.true_rates)
        if len(self.true_rates) < 1:
            raise ValueError("at least one arm is required")
        if any(not (0.0 <= rate <= 1.0) for rate in self.true_rates):
            raise ValueError("true_rates must be in [0, 1]")
        self.mode = validate_mode(self.mode)
        if not (0.0 < self.delta < 1.0):
            raise ValueError("delta must be in (0, 1)")
        if self.max_steps <= 0:
            raise ValueError("max_steps must be positive")
        if self.allocation_warmup < 0 or self.stopping_warmup < 0:
            raise ValueError("warm-up floors must be non-negative")
        if self.history_interval <= 0:
            raise ValueError("history_interval must be positive")
        if not (0.0 < self.gap_floor < math.inf):
            raise ValueError("gap_floor must be positive")
        if not (0.0 < self.best_weight_floor < math.inf):
            raise ValueError("best_weight_floor must be positive")
        if not (0.0 < self.eps < 0.5):
            raise ValueError("eps must be in (0, 0.5)")

    @property
    def n_arms(self) -> int:
        return len(self.true_rates)
