from __future__ import annotations

import math

KL_EPS = 1e-9


def kl_bernoulli(p: float, q: float, eps: float = KL_EPS) -> float:
    """KL(Ber(p) || Ber(q)) in nats, with both rates clipped to [eps, 1 - eps]."""
    p_clip = min(max(p, eps), 1.0 - eps)
    q_clip = min(max(q, eps), 1.0 - eps)
    value = p_clip * math.log(p_clip / q_clip) + (1.0 - p_clip) * math.log((1.0 - p_clip) / (1.0 - q_clip))
    return max(value, 0.0)
