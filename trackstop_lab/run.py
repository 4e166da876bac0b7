from __future__ import annotations

import argparse
import csv
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from trackstop_lab.allocation import ADAPTIVE, ALLOCATION_MODES, UNIFORM
from trackstop_lab.config import DEFAULT_DELTA, DEFAULT_RATES, HISTORY_INTERVAL, MAX_STEPS, SimulationConfig, variant_name
from trackstop_lab.driver import SimulationDriver
from trackstop_lab.metrics import TrialAggregate, summarize_outcomes
from trackstop_lab.records import SimulationOutcome

BOTH = "both"


@dataclass(slots=True)
class RunConfig:
    mode: str = ADAPTIVE
    rates_spec: str = "default"
    rates_list: str | None = None
    k: int = len(DEFAULT_RATES)
    delta: float = DEFAULT_DELTA
    seed: int = 0
    seed_step: int = 1
    trials: int = 1
    max_steps: int = MAX_STEPS
    history_interval: int = HISTORY_INTERVAL
    output_csv: str | None = None
    output_json: bool = False
    verbose: bool = False


@dataclass(slots=True)
class TrialRun:
    trial_id: int
    seed: int
    mode: str
    outcome: SimulationOutcome
    pulls_per_arm: NDArray[np.int_]
    rates: NDArray[np.float64]
    true_best: int

    @property
    def correct(self) -> bool:
        return self.outcome.winner_index == self.true_best


def parse_rates_list(raw: str) -> NDArray[np.float64]:
    parts = [chunk.strip() for chunk in raw.split(",") if chunk.strip()]
    if not parts:
        raise ValueError("rates-list must contain at least one numeric value")

    values: list[float] = []
    for token in parts:
        try:
            values.append(float(token))
        except ValueError as exc:
            raise ValueError(f"invalid value in rates-list: {token}") from exc

    rates = np.asarray(values, dtype=np.float64)
    if not np.all((rates >= 0.0) & (rates <= 1.0)):
        raise ValueError("rates-list values must be in [0, 1]")
    return rates


def generate_rates(spec: str, k: int, rng: np.random.Generator) -> NDArray[np.float64]:
    if spec == "default":
        return np.asarray(DEFAULT_RATES, dtype=np.float64)

    if k <= 0:
        raise ValueError("K must be positive")

    if spec == "random":
        return np.asarray(rng.uniform(0.05, 0.95, size=k), dtype=np.float64)

    if spec.startswith("topgap:"):
        try:
            gap = float(spec.split(":", maxsplit=1)[1])
        except ValueError as exc:
            raise ValueError("topgap format must be topgap:<float>") from exc
        if not (0.0 < gap < 0.5):
            raise ValueError("topgap must be in (0, 0.5)")

        rates = np.empty(k, dtype=np.float64)
        rates[0] = 0.5 + gap
        if k > 1:
            rates[1] = 0.5
        if k > 2:
            rates[2:] = 0.5 - rng.uniform(0.0, 0.2, size=k - 2)
        return np.clip(rates, 0.0, 1.0)

    raise ValueError(f"unknown rates regime: {spec}")


def resolve_modes(mode: str) -> list[str]:
    normalized = mode.strip().lower()
    if normalized == BOTH:
        return [ADAPTIVE, UNIFORM]
    if normalized in ALLOCATION_MODES:
        return [normalized]
    raise ValueError(f"unknown mode: {mode}")


def _resolve_rates(config: RunConfig, rng: np.random.Generator) -> NDArray[np.float64]:
    if config.rates_list is not None:
        return parse_rates_list(config.rates_list)
    return generate_rates(config.rates_spec, config.k, rng)


def run_once(config: RunConfig, mode: str, seed: int, trial_id: int = 0) -> TrialRun:
    rng = np.random.default_rng(seed)
    rates = _resolve_rates(config, rng)
    sim_config = SimulationConfig(
        true_rates=tuple(float(v) for v in rates),
        mode=mode,
        delta=config.delta,
        max_steps=config.max_steps,
        history_interval=config.history_interval,
    )
    driver = SimulationDriver(sim_config, rng=rng)
    outcome = driver.run()
    return TrialRun(
        trial_id=trial_id,
        seed=seed,
        mode=sim_config.mode,
        outcome=outcome,
        pulls_per_arm=driver.pulls_per_arm(),
        rates=rates,
        true_best=int(np.argmax(rates)),
    )


def run_trials(config: RunConfig, mode: str | None = None) -> list[TrialRun]:
    if config.trials <= 0:
        raise ValueError("trials must be positive")

    selected = mode if mode is not None else resolve_modes(config.mode)[0]
    trials: list[TrialRun] = []
    for trial_id in range(config.trials):
        seed = config.seed + trial_id * config.seed_step
        trials.append(run_once(config, selected, seed, trial_id=trial_id))
    return trials


def summarize_trial_runs(trials: Sequence[TrialRun]) -> TrialAggregate:
    if not trials:
        raise ValueError("trials must be non-empty")
    return summarize_outcomes(
        [trial.outcome for trial in trials],
        [trial.pulls_per_arm for trial in trials],
        [trial.true_best for trial in trials],
    )


def _trial_to_json_record(trial: TrialRun) -> dict[str, Any]:
    return {
        "trial_id": trial.trial_id,
        "seed": trial.seed,
        "mode": trial.mode,
        "winner": trial.outcome.winner_index,
        "winner_name": variant_name(trial.outcome.winner_index),
        "true_best": trial.true_best,
        "correct": trial.correct,
        "reason": trial.outcome.reason,
        "total_pulls": trial.outcome.total_pulls,
        "pulls_per_arm": trial.pulls_per_arm.tolist(),
        "rates": [float(v) for v in trial.rates.tolist()],
    }


def _summary_to_json(summary: TrialAggregate) -> dict[str, Any]:
    return {
        "n_trials": summary.num_trials,
        "misidentification_rate": summary.misidentification_rate,
        "cap_rate": summary.cap_rate,
        "mean_total_pulls": summary.mean_total_pulls,
        "std_total_pulls": summary.std_total_pulls,
        "mean_pulls_per_arm": [float(x) for x in summary.mean_pulls_per_arm.tolist()],
    }


def write_trials_csv(path: str, trials: Sequence[TrialRun]) -> None:
    if not trials:
        raise ValueError("trials must be non-empty")

    output_path = Path(path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "trial_id",
        "seed",
        "mode",
        "winner",
        "true_best",
        "correct",
        "reason",
        "total_pulls",
        "pulls_per_arm",
        "rates",
    ]

    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        for trial in trials:
            writer.writerow(
                {
                    "trial_id": trial.trial_id,
                    "seed": trial.seed,
                    "mode": trial.mode,
                    "winner": trial.outcome.winner_index,
                    "true_best": trial.true_best,
                    "correct": int(trial.correct),
                    "reason": trial.outcome.reason,
                    "total_pulls": trial.outcome.total_pulls,
                    "pulls_per_arm": json.dumps(trial.pulls_per_arm.tolist()),
                    "rates": json.dumps([round(float(v), 6) for v in trial.rates.tolist()]),
                }
            )


def parse_args(argv: Sequence[str] | None = None) -> RunConfig:
    parser = argparse.ArgumentParser(description="Track-and-Stop best arm identification simulator")
    parser.add_argument("--mode", default=ADAPTIVE, choices=[ADAPTIVE, UNIFORM, BOTH])
    parser.add_argument("--rates", type=str, default="default", help="default | random | topgap:<gap>")
    parser.add_argument("--rates-list", type=str, default=None)
    parser.add_argument("--K", type=int, default=len(DEFAULT_RATES))
    parser.add_argument("--delta", type=float, default=DEFAULT_DELTA)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--seed-step", type=int, default=1)
    parser.add_argument("--trials", type=int, default=1)
    parser.add_argument("--max-steps", type=int, default=MAX_STEPS)
    parser.add_argument("--history-interval", type=int, default=HISTORY_INTERVAL)
    parser.add_argument("--output-csv", type=str, default=None)
    parser.add_argument("--json", action="store_true")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    return RunConfig(
        mode=args.mode,
        rates_spec=args.rates,
        rates_list=args.rates_list,
        k=args.K,
        delta=args.delta,
        seed=args.seed,
        seed_step=args.seed_step,
        trials=args.trials,
        max_steps=args.max_steps,
        history_interval=args.history_interval,
        output_csv=args.output_csv,
        output_json=bool(args.json),
        verbose=bool(args.verbose),
    )


def _print_single_trial(config: RunConfig, trial: TrialRun) -> None:
    k = int(trial.rates.size)
    print(f"mode={trial.mode} K={k} delta={config.delta} seed={trial.seed}")
    print(f"rates={[round(float(v), 4) for v in trial.rates.tolist()]}")
    print(
        f"winner={trial.outcome.winner_index} ({variant_name(trial.outcome.winner_index)}) "
        f"true_best={trial.true_best} correct={trial.correct} reason={trial.outcome.reason}"
    )
    print(f"total_pulls={trial.outcome.total_pulls}")
    print(f"pulls_per_arm={trial.pulls_per_arm.tolist()}")


def _print_multi_trial(config: RunConfig, mode: str, summary: TrialAggregate) -> None:
    print(f"mode={mode} delta={config.delta} trials={summary.num_trials}")
    print(f"seed_start={config.seed} seed_step={config.seed_step}")
    print(
        "summary "
        f"misidentification_rate={summary.misidentification_rate:.4f} "
        f"cap_rate={summary.cap_rate:.4f} "
        f"mean_total_pulls={summary.mean_total_pulls:.2f} "
        f"std_total_pulls={summary.std_total_pulls:.2f}"
    )
    print(f"mean_pulls_per_arm={[round(float(x), 3) for x in summary.mean_pulls_per_arm.tolist()]}")


def main(argv: Sequence[str] | None = None) -> None:
    config = parse_args(argv)
    if config.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")

    modes = resolve_modes(config.mode)
    trials_by_mode = {mode: run_trials(config, mode=mode) for mode in modes}
    summaries = {mode: summarize_trial_runs(trials) for mode, trials in trials_by_mode.items()}

    if config.output_csv is not None:
        write_trials_csv(config.output_csv, [trial for trials in trials_by_mode.values() for trial in trials])

    if config.output_json:
        payload: dict[str, Any] = {
            "delta": config.delta,
            "trials": config.trials,
            "seed": config.seed,
            "seed_step": config.seed_step,
            "rates_regime": config.rates_spec,
            "rates_list": config.rates_list,
            "max_steps": config.max_steps,
            "modes": {
                mode: {
                    "results": [_trial_to_json_record(trial) for trial in trials_by_mode[mode]],
                    "summary": _summary_to_json(summaries[mode]),
                }
                for mode in modes
            },
        }
        print(json.dumps(payload, ensure_ascii=False))
    else:
        for mode in modes:
            if config.trials == 1:
                _print_single_trial(config, trials_by_mode[mode][0])
            else:
                _print_multi_trial(config, mode, summaries[mode])

        if len(modes) == 2:
            adaptive_mean = summaries[ADAPTIVE].mean_total_pulls
            uniform_mean = summaries[UNIFORM].mean_total_pulls
            print(f"uniform_to_adaptive_pull_ratio={uniform_mean / adaptive_mean:.3f}")

    if config.output_csv is not None:
        print(f"saved_csv={config.output_csv}")


if __name__ == "__main__":
    main()
