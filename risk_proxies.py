# risk_proxies.py
from __future__ import annotations

import math
from typing import Optional

from receipt_normalizer import Guards, Signals


NEUTRAL = 0.5
EPSILON = 1e-9

# VKD weights: Φ* shortfall, κ, Δhol
VKD_PHI_WEIGHT = 0.5
VKD_KAPPA_WEIGHT = 0.3
VKD_DHOL_WEIGHT = 0.2


def clamp(x: Optional[float], lo: float = 0.0, hi: float = 1.0, default: float = NEUTRAL) -> float:
    if x is None or math.isnan(x):
        x = default
    return max(lo, min(hi, x))


def vkd_proxy(signals: Optional[Signals] = None) -> float:
    """
    Viability margin in 0..1 (1 = comfortable, 0 = at risk).
    Higher κ and Δhol hurt; higher Φ* helps.
    """
    s = signals or Signals()
    k = clamp(s.kappa)
    d = clamp(s.dhol)
    p = clamp(s.phi_star)

    risk = VKD_PHI_WEIGHT * (1 - p) + VKD_KAPPA_WEIGHT * k + VKD_DHOL_WEIGHT * d
    return 1 - clamp(risk)


def obs_proxy(signals: Optional[Signals] = None, guards: Optional[Guards] = None) -> float:
    """
    Observability window in 0..1: what ops can reliably observe (capacity)
    against how spicy the run is (load). 0 = blind spot.
    """
    s = signals or Signals()
    g = guards or Guards()
    k = clamp(s.kappa)
    d = clamp(s.dhol)
    u = clamp(g.ucr)
    es = clamp(s.evidence_strength)

    capacity = (1 - k) * (1 - d) * es
    load = 0.5 * u + 0.5 * d
    return clamp(capacity / (capacity + load + EPSILON))
