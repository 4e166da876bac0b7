from __future__ import annotations

import dataclasses
import enum
import logging

import numpy as np
from numpy.typing import NDArray

from trackstop_lab import arms as arm_stats
from trackstop_lab.allocation import compute_allocation, sample_arm, validate_mode
from trackstop_lab.config import SimulationConfig
from trackstop_lab.envs.bernoulli import BernoulliBandit
from trackstop_lab.records import (
    AllocationSnapshot,
    RandomSource,
    SimulationOutcome,
    StepCallback,
    StepResult,
    StopReason,
)
from trackstop_lab.stopping import StoppingCheck, StoppingRule

logger = logging.getLogger(__name__)


class SimulationState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"
    CAPPED = "capped"


TERMINAL_STATES = frozenset({SimulationState.STOPPED, SimulationState.CAPPED})


class SimulationStateError(RuntimeError):
    """Raised when an operation is not allowed in the current simulation state."""


class SimulationDriver:
    """One Track-and-Stop (or uniform) experiment, advanced one pull at a time.

    The driver owns its arm statistics, allocation history, ground-truth
    environment and random source, so independent drivers share nothing.
    Each `step()` draws the next arm from the current allocation, records a
    Bernoulli outcome, snapshots the allocation every `history_interval`
    pulls and re-evaluates the stopping rule.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        rng: RandomSource | None = None,
        seed: int | None = None,
        on_step: StepCallback | None = None,
    ) -> None:
        # Each driver owns its own copy; set_mode and set_true_rate mutate it.
        self.config = dataclasses.replace(config) if config is not None else SimulationConfig()
        self._rng: RandomSource = rng if rng is not None else np.random.default_rng(seed)
        self._env = BernoulliBandit.from_rates(self.config.true_rates, rng=self._rng)
        self._arms = arm_stats.make_arms(self.config.n_arms)
        self._stopping = StoppingRule(
            delta=self.config.delta,
            warmup=self.config.stopping_warmup,
            eps=self.config.eps,
        )
        self._history: list[AllocationSnapshot] = []
        self._outcome: SimulationOutcome | None = None
        self._last_check: StoppingCheck | None = None
        self._state = SimulationState.IDLE
        self._on_step = on_step

    @property
    def state(self) -> SimulationState:
        return self._state

    @property
    def n_arms(self) -> int:
        return len(self._arms)

    @property
    def is_finished(self) -> bool:
        return self._state in TERMINAL_STATES

    @property
    def outcome(self) -> SimulationOutcome | None:
        return self._outcome

    @property
    def history(self) -> tuple[AllocationSnapshot, ...]:
        return tuple(self._history)

    @property
    def last_check(self) -> StoppingCheck | None:
        return self._last_check

    @property
    def true_rates(self) -> tuple[float, ...]:
        return self.config.true_rates

    def _transition(self, new_state: SimulationState) -> None:
        logger.debug("simulation state %s -> %s", self._state.value, new_state.value)
        self._state = new_state

    def start(self) -> None:
        if self._state is not SimulationState.IDLE:
            raise SimulationStateError(f"cannot start from state {self._state.value}")
        self._transition(SimulationState.RUNNING)

    def pause(self) -> None:
        if self._state is not SimulationState.RUNNING:
            raise SimulationStateError(f"cannot pause from state {self._state.value}")
        self._transition(SimulationState.PAUSED)

    def resume(self) -> None:
        if self._state is not SimulationState.PAUSED:
            raise SimulationStateError(f"cannot resume from state {self._state.value}")
        self._transition(SimulationState.RUNNING)

    def reset(self) -> None:
        for arm in self._arms:
            arm.reset()
        self._history.clear()
        self._outcome = None
        self._last_check = None
        if self._state is not SimulationState.IDLE:
            self._transition(SimulationState.IDLE)

    def set_mode(self, mode: str) -> None:
        """Switch between adaptive and uniform allocation; restarts the run."""
        self.config.mode = validate_mode(mode)
        self.reset()

    def set_true_rate(self, arm: int, rate: float) -> None:
        self._env.set_rate(arm, rate)
        self.config.true_rates = tuple(float(v) for v in self._env.rates)

    def total_pulls(self) -> int:
        return arm_stats.total_pulls(self._arms)

    def pulls_per_arm(self) -> NDArray[np.int_]:
        return arm_stats.pull_counts(self._arms)

    def mean_estimates(self) -> NDArray[np.float64]:
        return arm_stats.mean_estimates(self._arms)

    def current_best_arm(self) -> int:
        return arm_stats.best_arm(self._arms)

    def current_allocation(self) -> NDArray[np.float64]:
        return compute_allocation(
            self._arms,
            self.config.mode,
            warmup=self.config.allocation_warmup,
            gap_floor=self.config.gap_floor,
            best_weight_floor=self.config.best_weight_floor,
        )

    def _finish(self, winner: int, reason: StopReason) -> None:
        total = self.total_pulls()
        self._outcome = SimulationOutcome(winner_index=winner, total_pulls=total, reason=reason)
        self._transition(SimulationState.STOPPED if reason == "stopped" else SimulationState.CAPPED)
        logger.info(
            "simulation %s: winner=%d total_pulls=%d mode=%s",
            reason,
            winner,
            total,
            self.config.mode,
        )

    def step(self) -> StepResult:
        if self._state in TERMINAL_STATES:
            raise SimulationStateError("simulation has finished; call reset() before stepping again")
        if self._state is SimulationState.PAUSED:
            raise SimulationStateError("simulation is paused; call resume() before stepping")
        if self._state is SimulationState.IDLE:
            self._transition(SimulationState.RUNNING)

        allocation = self.current_allocation()
        arm = sample_arm(allocation, float(self._rng.random()))
        success = self._env.pull(arm)
        self._arms[arm].record_trial(success)

        total = self.total_pulls()
        allocation_used = tuple(float(v) for v in allocation)
        if total % self.config.history_interval == 0:
            self._history.append(AllocationSnapshot(total_pulls=total, allocation=allocation_used))

        check = self._stopping.evaluate(self._arms, total)
        self._last_check = check
        winner: int | None = None
        if check.stop:
            winner = check.best_arm
            self._finish(winner, "stopped")
        elif total >= self.config.max_steps:
            winner = self.current_best_arm()
            self._finish(winner, "capped")

        result = StepResult(
            allocation_used=allocation_used,
            selected_arm=arm,
            outcome=success,
            stopped=check.stop,
            capped=self._state is SimulationState.CAPPED,
            winner=winner,
        )
        if self._on_step is not None:
            self._on_step(result)
        return result

    def run_batch(self, n_steps: int) -> list[StepResult]:
        """Advance up to `n_steps` pulls, ending early if the run finishes."""
        if n_steps < 0:
            raise ValueError("n_steps must be non-negative")
        results: list[StepResult] = []
        for _ in range(n_steps):
            if self.is_finished:
                break
            results.append(self.step())
        return results

    def run(self) -> SimulationOutcome:
        while self._outcome is None:
            self.step()
        return self._outcome
