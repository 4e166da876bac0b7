from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from numpy.typing import NDArray

from trackstop_lab.records import SimulationOutcome


@dataclass(slots=True)
class TrialAggregate:
    num_trials: int
    mean_total_pulls: float
    std_total_pulls: float
    misidentification_rate: float
    cap_rate: float
    mean_pulls_per_arm: NDArray[np.float64]


def _true_best_vector(true_best: int | Sequence[int], n: int) -> NDArray[np.int_]:
    if isinstance(true_best, (int, np.integer)):
        return np.full(n, int(true_best), dtype=np.int_)
    vec = np.asarray(list(true_best), dtype=np.int_)
    if vec.size != n:
        raise ValueError("true_best must have one entry per outcome")
    return vec


def misidentification_rate(outcomes: Sequence[SimulationOutcome], true_best: int | Sequence[int]) -> float:
    if not outcomes:
        raise ValueError("outcomes must be non-empty")
    winners = np.asarray([res.winner_index for res in outcomes], dtype=np.int_)
    return float(np.mean(winners != _true_best_vector(true_best, len(outcomes))))


def cap_rate(outcomes: Sequence[SimulationOutcome]) -> float:
    if not outcomes:
        raise ValueError("outcomes must be non-empty")
    return float(np.mean([res.capped for res in outcomes]))


def summarize_outcomes(
    outcomes: Sequence[SimulationOutcome],
    pulls_per_arm: Sequence[NDArray[np.int_]],
    true_best: int | Sequence[int],
) -> TrialAggregate:
    if not outcomes:
        raise ValueError("outcomes must be non-empty")
    if len(pulls_per_arm) != len(outcomes):
        raise ValueError("pulls_per_arm must have one entry per outcome")

    total_pulls = np.asarray([res.total_pulls for res in outcomes], dtype=np.float64)
    pulls_matrix = np.stack([np.asarray(row, dtype=np.float64) for row in pulls_per_arm], axis=0)
    return TrialAggregate(
        num_trials=len(outcomes),
        mean_total_pulls=float(np.mean(total_pulls)),
        std_total_pulls=float(np.std(total_pulls)),
        misidentification_rate=misidentification_rate(outcomes, true_best),
        cap_rate=cap_rate(outcomes),
        mean_pulls_per_arm=np.mean(pulls_matrix, axis=0),
    )
