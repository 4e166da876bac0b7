from __future__ import annotations

from trackstop_lab.arms import ArmState
from trackstop_lab.divergence import KL_EPS, kl_bernoulli


def glrt(best: ArmState, challenger: ArmState, eps: float = KL_EPS) -> float:
    """Generalized likelihood-ratio evidence (nats) that `best` beats `challenger`.

    Zero when either arm is unpulled or when `best` is not strictly ahead of
    `challenger` at the current estimates.
    """
    n_best = best.pulls
    n_chal = challenger.pulls
    if n_best < 1 or n_chal < 1:
        return 0.0

    mu_best = best.mean_estimate()
    mu_chal = challenger.mean_estimate()
    if mu_best <= mu_chal:
        return 0.0

    return float(n_best) * kl_bernoulli(mu_best, mu_chal, eps=eps) + float(n_chal) * kl_bernoulli(
        mu_chal, mu_best, eps=eps
    )
