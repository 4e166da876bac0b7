import numpy as np
import pytest

from scripted import ScriptedRandom
from trackstop_lab.config import SimulationConfig
from trackstop_lab.driver import SimulationDriver, SimulationState, SimulationStateError
from trackstop_lab.records import StepResult

# Selection draw then outcome draw per step: arm 0, success draw, arm 1, success draw.
ALTERNATING = [0.25, 0.1, 0.75, 0.1]


def _alternating_driver(rates: tuple[float, ...], **kwargs) -> SimulationDriver:
    config = SimulationConfig(true_rates=rates, **kwargs)
    return SimulationDriver(config, rng=ScriptedRandom(ALTERNATING))


def test_new_driver_is_idle_and_empty() -> None:
    driver = SimulationDriver(seed=0)
    assert driver.state is SimulationState.IDLE
    assert driver.total_pulls() == 0
    assert driver.history == ()
    assert driver.outcome is None
    assert driver.current_best_arm() == 0
    np.testing.assert_allclose(driver.current_allocation(), [0.25, 0.25, 0.25, 0.25])


def test_empty_arm_list_rejected() -> None:
    with pytest.raises(ValueError):
        SimulationDriver(SimulationConfig(true_rates=()))


def test_clear_winner_stops_once_both_arms_reach_floor() -> None:
    driver = _alternating_driver((1.0, 0.0), history_interval=5)
    outcome = driver.run()

    assert driver.state is SimulationState.STOPPED
    assert outcome.winner_index == 0
    assert outcome.total_pulls == 24
    assert outcome.reason == "stopped"
    assert not outcome.capped
    assert driver.pulls_per_arm().tolist() == [12, 12]
    np.testing.assert_allclose(driver.mean_estimates(), [1.0, 0.0])


def test_history_snapshots_every_interval() -> None:
    driver = _alternating_driver((1.0, 0.0), history_interval=5)
    driver.run()

    history = driver.history
    assert [snap.total_pulls for snap in history] == [5, 10, 15, 20]
    for snap in history:
        assert snap.allocation == (0.5, 0.5)
    with pytest.raises(AttributeError):
        history[0].total_pulls = 99  # type: ignore[misc]


def test_history_holds_copies_of_the_allocation() -> None:
    driver = SimulationDriver(SimulationConfig(history_interval=1), seed=3)
    driver.run_batch(200)

    allocations = [snap.allocation for snap in driver.history]
    assert len(allocations) == driver.total_pulls()
    assert all(isinstance(alloc, tuple) for alloc in allocations)
    assert len(set(allocations)) > 1


def test_step_reports_selection_and_outcome() -> None:
    driver = _alternating_driver((1.0, 0.0))
    first = driver.step()
    second = driver.step()

    assert driver.state is SimulationState.RUNNING
    assert first == StepResult(allocation_used=(0.5, 0.5), selected_arm=0, outcome=True, stopped=False)
    assert second.selected_arm == 1
    assert second.outcome is False
    assert second.winner is None


def test_final_step_carries_winner() -> None:
    driver = _alternating_driver((1.0, 0.0))
    results = driver.run_batch(100)

    assert len(results) == 24
    assert all(not r.stopped for r in results[:-1])
    assert results[-1].stopped
    assert results[-1].winner == 0


def test_cap_forces_termination_with_current_leader() -> None:
    driver = _alternating_driver((0.5, 0.5), max_steps=30)
    outcome = driver.run()

    assert driver.state is SimulationState.CAPPED
    assert outcome.reason == "capped"
    assert outcome.capped
    assert outcome.total_pulls == 30
    assert outcome.winner_index == 0


def test_step_after_finish_fails_until_reset() -> None:
    driver = _alternating_driver((1.0, 0.0))
    driver.run()

    with pytest.raises(SimulationStateError):
        driver.step()
    assert driver.run_batch(10) == []

    driver.reset()
    assert driver.state is SimulationState.IDLE
    driver.step()
    assert driver.total_pulls() == 1


def test_pause_and_resume() -> None:
    driver = SimulationDriver(seed=1)
    driver.start()
    driver.step()
    driver.pause()
    assert driver.state is SimulationState.PAUSED

    with pytest.raises(SimulationStateError):
        driver.step()
    with pytest.raises(SimulationStateError):
        driver.pause()

    driver.resume()
    assert driver.state is SimulationState.RUNNING
    driver.step()
    assert driver.total_pulls() == 2


def test_invalid_transitions() -> None:
    driver = SimulationDriver(seed=1)
    with pytest.raises(SimulationStateError):
        driver.resume()
    with pytest.raises(SimulationStateError):
        driver.pause()

    driver.start()
    with pytest.raises(SimulationStateError):
        driver.start()


def test_reset_is_idempotent() -> None:
    driver = SimulationDriver(SimulationConfig(history_interval=1), seed=2)
    driver.reset()
    assert driver.total_pulls() == 0

    driver.run_batch(30)
    assert driver.total_pulls() == 30
    driver.reset()
    driver.reset()

    assert driver.state is SimulationState.IDLE
    assert driver.total_pulls() == 0
    assert driver.pulls_per_arm().tolist() == [0, 0, 0, 0]
    assert driver.history == ()
    assert driver.outcome is None
    assert driver.last_check is None


def test_reset_from_paused_and_stopped() -> None:
    driver = _alternating_driver((1.0, 0.0))
    driver.step()
    driver.pause()
    driver.reset()
    assert driver.state is SimulationState.IDLE

    driver.run()
    driver.reset()
    assert driver.state is SimulationState.IDLE
    assert driver.total_pulls() == 0


def test_run_batch_stops_early_and_respects_count() -> None:
    driver = SimulationDriver(seed=4)
    assert len(driver.run_batch(15)) == 15
    assert driver.total_pulls() == 15
    assert driver.run_batch(0) == []
    with pytest.raises(ValueError):
        driver.run_batch(-1)


def test_allocation_used_reflects_all_previous_updates() -> None:
    driver = SimulationDriver(seed=8)
    driver.run_batch(40)
    for _ in range(50):
        if driver.is_finished:
            break
        expected = tuple(float(v) for v in driver.current_allocation())
        result = driver.step()
        assert result.allocation_used == expected


def test_seeded_runs_are_reproducible() -> None:
    a = SimulationDriver(seed=7)
    b = SimulationDriver(seed=7)
    assert a.run_batch(200) == b.run_batch(200)
    assert a.outcome == b.outcome


def test_independent_drivers_share_no_state() -> None:
    a = SimulationDriver(seed=11)
    b = SimulationDriver(seed=11)
    a.run_batch(50)

    assert b.total_pulls() == 0
    assert b.history == ()
    assert b.state is SimulationState.IDLE


def test_injected_random_source_is_the_only_source() -> None:
    rng = ScriptedRandom(ALTERNATING)
    driver = SimulationDriver(SimulationConfig(true_rates=(1.0, 0.0)), rng=rng)
    driver.run_batch(10)
    assert rng.calls == 20


def test_set_mode_resets_and_switches_allocation() -> None:
    driver = SimulationDriver(seed=5)
    driver.run_batch(60)
    driver.set_mode("uniform")

    assert driver.config.mode == "uniform"
    assert driver.state is SimulationState.IDLE
    assert driver.total_pulls() == 0
    driver.run_batch(60)
    np.testing.assert_allclose(driver.current_allocation(), [0.25] * 4)

    with pytest.raises(ValueError):
        driver.set_mode("epsilon-greedy")


def test_set_true_rate_updates_ground_truth() -> None:
    driver = _alternating_driver((0.0, 0.0))
    driver.set_true_rate(1, 1.0)
    assert driver.true_rates == (0.0, 1.0)

    outcome = driver.run()
    assert outcome.winner_index == 1

    with pytest.raises(IndexError):
        driver.set_true_rate(2, 0.5)
    with pytest.raises(ValueError):
        driver.set_true_rate(0, 2.0)


def test_on_step_callback_receives_every_result() -> None:
    seen: list[StepResult] = []
    driver = SimulationDriver(seed=6, on_step=seen.append)
    results = driver.run_batch(25)
    assert seen == results


def test_single_arm_run_stops_after_floor() -> None:
    driver = SimulationDriver(SimulationConfig(true_rates=(0.3,)), seed=0)
    outcome = driver.run()
    assert outcome.winner_index == 0
    assert outcome.total_pulls == 12
    assert outcome.reason == "stopped"


def test_drivers_built_from_one_config_do_not_share_it() -> None:
    config = SimulationConfig(true_rates=(0.6, 0.4))
    a = SimulationDriver(config, seed=1)
    b = SimulationDriver(config, seed=1)

    a.set_mode("uniform")
    a.set_true_rate(0, 0.99)

    assert a.config.mode == "uniform"
    assert a.true_rates == (0.99, 0.4)
    assert b.config.mode == "adaptive"
    assert b.true_rates == (0.6, 0.4)
    assert config.mode == "adaptive"
    assert config.true_rates == (0.6, 0.4)


def test_run_on_finished_driver_returns_existing_outcome() -> None:
    driver = SimulationDriver(SimulationConfig(true_rates=(0.9, 0.1)), seed=3)
    outcome = driver.run()
    pulls = driver.total_pulls()

    assert driver.run() == outcome
    assert driver.total_pulls() == pulls
