from __future__ import annotations

import argparse
import csv
import json
from pathlib import Path

import numpy as np
from numpy.typing import NDArray

from trackstop_lab.allocation import ADAPTIVE, UNIFORM
from trackstop_lab.config import SimulationConfig
from trackstop_lab.driver import SimulationDriver
from trackstop_lab.metrics import summarize_outcomes
from trackstop_lab.records import SimulationOutcome
from trackstop_lab.run import generate_rates


def parse_int_list(text: str) -> list[int]:
    return [int(part.strip()) for part in text.split(",") if part.strip()]


def parse_float_list(text: str) -> list[float]:
    return [float(part.strip()) for part in text.split(",") if part.strip()]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sweep delta and top gap for adaptive vs uniform allocation")
    parser.add_argument("--K-values", type=str, default="2,4")
    parser.add_argument("--deltas", type=str, default="0.01,0.05,0.1")
    parser.add_argument("--gaps", type=str, default="0.05,0.1,0.2")
    parser.add_argument("--trials", type=int, default=50)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--max-steps", type=int, default=5000)
    parser.add_argument("--output", type=str, default="experiments/sweep_results.csv")
    return parser.parse_args()


def main() -> None:
    args = parse_args()

    k_values = parse_int_list(args.K_values)
    deltas = parse_float_list(args.deltas)
    gaps = parse_float_list(args.gaps)
    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fieldnames = [
        "mode",
        "K",
        "delta",
        "gap",
        "trials",
        "mean_total_pulls",
        "misidentification_rate",
        "cap_rate",
        "mean_pulls_per_arm",
    ]

    combo_idx = 0
    with output_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()

        for k in k_values:
            for delta in deltas:
                for gap in gaps:
                    combo_idx += 1
                    for mode in (ADAPTIVE, UNIFORM):
                        outcomes: list[SimulationOutcome] = []
                        pulls_list: list[NDArray[np.int_]] = []
                        true_best: list[int] = []

                        for trial in range(args.trials):
                            # Both modes reuse the trial seeds.
                            trial_seed = args.seed + 100_000 * combo_idx + trial
                            rng = np.random.default_rng(trial_seed)
                            rates = generate_rates(f"topgap:{gap}", k, rng)
                            config = SimulationConfig(
                                true_rates=tuple(float(v) for v in rates),
                                mode=mode,
                                delta=delta,
                                max_steps=args.max_steps,
                            )
                            driver = SimulationDriver(config, rng=rng)
                            outcomes.append(driver.run())
                            pulls_list.append(driver.pulls_per_arm())
                            true_best.append(int(np.argmax(rates)))

                        summary = summarize_outcomes(outcomes, pulls_list, true_best)
                        writer.writerow(
                            {
                                "mode": mode,
                                "K": k,
                                "delta": delta,
                                "gap": gap,
                                "trials": args.trials,
                                "mean_total_pulls": f"{summary.mean_total_pulls:.3f}",
                                "misidentification_rate": f"{summary.misidentification_rate:.4f}",
                                "cap_rate": f"{summary.cap_rate:.4f}",
                                "mean_pulls_per_arm": json.dumps(
                                    [round(float(x), 3) for x in summary.mean_pulls_per_arm.tolist()]
                                ),
                            }
                        )

                        print(
                            "finished "
                            f"mode={mode} K={k} delta={delta} gap={gap} "
                            f"mean_T={summary.mean_total_pulls:.1f} err={summary.misidentification_rate:.3f} "
                            f"capped={summary.cap_rate:.3f}"
                        )

    print(f"saved: {output_path}")


if __name__ == "__main__":
    main()
