import pytest

from trackstop_lab.arms import ArmState
from trackstop_lab.divergence import kl_bernoulli
from trackstop_lab.glrt import glrt


def test_glrt_is_zero_without_pulls() -> None:
    pulled = ArmState(pulls=10, successes=9)
    assert glrt(pulled, ArmState()) == 0.0
    assert glrt(ArmState(), pulled) == 0.0
    assert glrt(ArmState(), ArmState()) == 0.0


def test_glrt_is_zero_when_best_is_not_ahead() -> None:
    low = ArmState(pulls=20, successes=5)
    high = ArmState(pulls=20, successes=15)
    tied = ArmState(pulls=40, successes=10)

    assert glrt(low, high) == 0.0
    assert glrt(low, tied) == 0.0


def test_glrt_weights_divergences_by_pull_counts() -> None:
    best = ArmState(pulls=30, successes=24)
    challenger = ArmState(pulls=10, successes=4)

    expected = 30 * kl_bernoulli(0.8, 0.4) + 10 * kl_bernoulli(0.4, 0.8)
    assert glrt(best, challenger) == pytest.approx(expected)


def test_glrt_grows_with_more_evidence() -> None:
    small = glrt(ArmState(pulls=10, successes=7), ArmState(pulls=10, successes=3))
    large = glrt(ArmState(pulls=100, successes=70), ArmState(pulls=100, successes=30))
    assert 0.0 < small < large


def test_glrt_finite_for_perfect_separation() -> None:
    value = glrt(ArmState(pulls=12, successes=12), ArmState(pulls=12, successes=0))
    assert value > 100.0
    assert value < float("inf")
