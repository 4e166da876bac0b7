from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Literal, Protocol

StopReason = Literal["stopped", "capped"]


class RandomSource(Protocol):
    """Uniform draws in [0, 1). numpy.random.Generator satisfies this."""

    def random(self) -> float:
        ...


@dataclass(frozen=True, slots=True)
class AllocationSnapshot:
    total_pulls: int
    allocation: tuple[float, ...]


@dataclass(frozen=True, slots=True)
class SimulationOutcome:
    winner_index: int
    total_pulls: int
    reason: StopReason = "stopped"

    @property
    def capped(self) -> bool:
        return self.reason == "capped"


@dataclass(frozen=True, slots=True)
class StepResult:
    allocation_used: tuple[float, ...]
    selected_arm: int
    outcome: bool
    stopped: bool
    capped: bool = False
    winner: int | None = None


StepCallback = Callable[[StepResult], None]
