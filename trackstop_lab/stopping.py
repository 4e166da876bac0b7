from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

from trackstop_lab.arms import ArmState, best_arm, min_pulls
from trackstop_lab.divergence import KL_EPS
from trackstop_lab.glrt import glrt

STOPPING_WARMUP = 12


def stopping_threshold(t: int, delta: float) -> float:
    """Anytime-valid threshold ln((ln(t + e) + 1) / delta), safe to check at every t."""
    if not (0.0 < delta < 1.0):
        raise ValueError("delta must be in (0, 1)")
    if t < 0:
        raise ValueError("t must be non-negative")
    return math.log((math.log(float(t) + math.e) + 1.0) / delta)


@dataclass(slots=True)
class StoppingCheck:
    stop: bool
    threshold: float
    best_arm: int
    statistics: dict[int, float] = field(default_factory=dict)
    weakest_challenger: int | None = None
    warming_up: bool = False


@dataclass(slots=True)
class StoppingRule:
    delta: float
    warmup: int = STOPPING_WARMUP
    eps: float = KL_EPS

    def __post_init__(self) -> None:
        if not (0.0 < self.delta < 1.0):
            raise ValueError("delta must be in (0, 1)")
        if self.warmup < 0:
            raise ValueError("warmup must be non-negative")
        if not (0.0 < self.eps < 0.5):
            raise ValueError("eps must be in (0, 0.5)")

    def threshold(self, total_pulls: int) -> float:
        return stopping_threshold(total_pulls, self.delta)

    def evaluate(self, arms: Sequence[ArmState], total_pulls: int) -> StoppingCheck:
        threshold = self.threshold(total_pulls)
        a_hat = best_arm(arms)
        if min_pulls(arms) < self.warmup:
            return StoppingCheck(stop=False, threshold=threshold, best_arm=a_hat, warming_up=True)

        stop_ok = True
        weakest: int | None = None
        weakest_stat = math.inf
        statistics: dict[int, float] = {}
        for arm in range(len(arms)):
            if arm == a_hat:
                continue
            stat = glrt(arms[a_hat], arms[arm], eps=self.eps)
            statistics[arm] = stat
            if stat < weakest_stat:
                weakest_stat = stat
                weakest = arm
            if stat < threshold:
                stop_ok = False

        return StoppingCheck(
            stop=stop_ok,
            threshold=threshold,
            best_arm=a_hat,
            statistics=statistics,
            weakest_challenger=weakest,
        )

    def should_stop(self, arms: Sequence[ArmState], total_pulls: int) -> bool:
        return self.evaluate(arms, total_pulls).stop
