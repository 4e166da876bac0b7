from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from trackstop_lab.records import RandomSource


@dataclass(slots=True)
class BernoulliBandit:
    """Ground-truth success rates; the sampling algorithm never reads them."""

    rates: NDArray[np.float64]
    rng: RandomSource

    @classmethod
    def from_rates(
        cls,
        rates: list[float] | tuple[float, ...] | NDArray[np.float64],
        seed: int | None = None,
        rng: RandomSource | None = None,
    ) -> "BernoulliBandit":
        mu = np.array(rates, dtype=np.float64)
        if mu.ndim != 1 or mu.size == 0:
            raise ValueError("rates must be a non-empty 1D array")
        if not np.all((mu >= 0.0) & (mu <= 1.0)):
            raise ValueError("rates must be in [0, 1]")

        generator = rng if rng is not None else np.random.default_rng(seed)
        return cls(rates=mu, rng=generator)

    @property
    def n_arms(self) -> int:
        return int(self.rates.size)

    @property
    def best_arm(self) -> int:
        return int(np.argmax(self.rates))

    def set_rate(self, arm: int, rate: float) -> None:
        if arm < 0 or arm >= self.n_arms:
            raise IndexError(f"arm index {arm} out of range")
        if not (0.0 <= rate <= 1.0):
            raise ValueError("rate must be in [0, 1]")
        self.rates[arm] = float(rate)

    def pull(self, arm: int) -> bool:
        if arm < 0 or arm >= self.n_arms:
            raise IndexError(f"arm index {arm} out of range")
        return float(self.rng.random()) < float(self.rates[arm])
