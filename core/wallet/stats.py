from __future__ import annotations

import math
from typing import List, Sequence


TREND_WINDOW = 12
TREND_MIN_POINTS = 4


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def percentile(values: Sequence[float], q: float) -> float:
    """
    Linearly interpolated order statistic; q is a fraction in 0..1.
    Empty input -> 0.
    """
    if not values:
        return 0.0
    a = sorted(values)
    n = len(a)
    i = max(0.0, min(float(n - 1), (n - 1) * q))
    lo, hi = math.floor(i), math.ceil(i)
    if lo == hi:
        return float(a[lo])
    return a[lo] + (a[hi] - a[lo]) * (i - lo)


def trend_slope(
    values: Sequence[float],
    window: int = TREND_WINDOW,
    min_points: int = TREND_MIN_POINTS,
) -> float:
    """
    OLS slope over the last `window` points against x = 0..n-1.
    Index spacing, not elapsed time. Positive = rising.
    """
    if len(values) < min_points:
        return 0.0
    n = min(len(values), window)
    ys: List[float] = list(values[-n:])
    xs = range(n)

    x_bar = sum(xs) / n
    y_bar = sum(ys) / n
    num = 0.0
    den = 0.0
    for x, y in zip(xs, ys):
        num += (x - x_bar) * (y - y_bar)
        den += (x - x_bar) ** 2
    return num / den if den else 0.0
