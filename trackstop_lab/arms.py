from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

PRIOR_MEAN = 0.5


@dataclass(slots=True)
class ArmState:
    """Cumulative pull and success counts observed for one arm."""

    pulls: int = 0
    successes: int = 0

    def record_trial(self, success: bool) -> None:
        self.pulls += 1
        if success:
            self.successes += 1

    def mean_estimate(self) -> float:
        if self.pulls == 0:
            return PRIOR_MEAN
        return float(self.successes) / float(self.pulls)

    def reset(self) -> None:
        self.pulls = 0
        self.successes = 0


def make_arms(n_arms: int) -> list[ArmState]:
    if n_arms < 1:
        raise ValueError("n_arms must be at least 1")
    return [ArmState() for _ in range(n_arms)]


def total_pulls(arms: Sequence[ArmState]) -> int:
    return sum(arm.pulls for arm in arms)


def min_pulls(arms: Sequence[ArmState]) -> int:
    return min(arm.pulls for arm in arms)


def mean_estimates(arms: Sequence[ArmState]) -> NDArray[np.float64]:
    return np.asarray([arm.mean_estimate() for arm in arms], dtype=np.float64)


def pull_counts(arms: Sequence[ArmState]) -> NDArray[np.int_]:
    return np.asarray([arm.pulls for arm in arms], dtype=np.int_)


def best_arm(arms: Sequence[ArmState]) -> int:
    # np.argmax returns the first maximum, so exact ties go to the lowest index.
    return int(np.argmax(mean_estimates(arms)))
