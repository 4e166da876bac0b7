from __future__ import annotations

from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from trackstop_lab.arms import ArmState, mean_estimates, min_pulls

ADAPTIVE = "adaptive"
UNIFORM = "uniform"
ALLOCATION_MODES = (ADAPTIVE, UNIFORM)

ALLOCATION_WARMUP = 6
GAP_FLOOR = 0.005
BEST_WEIGHT_FLOOR = 0.01


def validate_mode(mode: str) -> str:
    normalized = mode.strip().lower()
    if normalized not in ALLOCATION_MODES:
        raise ValueError(f"unknown allocation mode: {mode}")
    return normalized


def uniform_allocation(n_arms: int) -> NDArray[np.float64]:
    if n_arms < 1:
        raise ValueError("n_arms must be at least 1")
    return np.ones(n_arms, dtype=np.float64) / float(n_arms)


def track_and_stop_weights(
    means: NDArray[np.float64],
    gap_floor: float = GAP_FLOOR,
    best_weight_floor: float = BEST_WEIGHT_FLOOR,
) -> NDArray[np.float64]:
    """Normalized 1/gap^2 weights around the empirical leader.

    Each challenger gets weight 1 / max(mu_best - mu_i, gap_floor)^2 and the
    leader gets the sum of the challenger weights (at least best_weight_floor).
    """
    n_arms = int(means.size)
    a_hat = int(np.argmax(means))
    scores = np.zeros(n_arms, dtype=np.float64)

    for arm in range(n_arms):
        if arm == a_hat:
            continue
        gap = max(float(means[a_hat] - means[arm]), gap_floor)
        scores[arm] = 1.0 / (gap * gap)

    scores[a_hat] = max(float(np.sum(scores)), best_weight_floor)
    return scores / float(np.sum(scores))


def compute_allocation(
    arms: Sequence[ArmState],
    mode: str,
    warmup: int = ALLOCATION_WARMUP,
    gap_floor: float = GAP_FLOOR,
    best_weight_floor: float = BEST_WEIGHT_FLOOR,
) -> NDArray[np.float64]:
    """Sampling distribution over arms for the next pull."""
    n_arms = len(arms)
    mode = validate_mode(mode)
    if mode == UNIFORM or min_pulls(arms) < warmup:
        return uniform_allocation(n_arms)

    return track_and_stop_weights(
        mean_estimates(arms),
        gap_floor=gap_floor,
        best_weight_floor=best_weight_floor,
    )


def sample_arm(allocation: Sequence[float] | NDArray[np.float64], u: float) -> int:
    """First arm whose cumulative weight reaches `u`; last arm if rounding leaves it short."""
    cumulative = 0.0
    n_arms = len(allocation)
    for arm in range(n_arms):
        cumulative += float(allocation[arm])
        if u <= cumulative:
            return arm
    return n_arms - 1
