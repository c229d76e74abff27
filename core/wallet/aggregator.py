from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from advisory_rules import Advisory, build_advisories, render_advice
from core.wallet.models import AdvisoryView, IssuerStats
from core.wallet.stats import mean, percentile, trend_slope
from receipt_normalizer import Receipt
from risk_proxies import clamp, obs_proxy, vkd_proxy


K_PERCENTILE = 0.95

WEIGHTS: Dict[str, float] = {
    "green_rate": 0.5,
    "kappa": 0.2,
    "drift": 0.2,
    "phi_floor": 0.1,
}


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def _finite(v: Optional[float]) -> bool:
    return v is not None and math.isfinite(v)


def advisory_to_view(a: Advisory) -> AdvisoryView:
    return AdvisoryView(
        code=a.code,
        advisory_type=a.advisory_type,
        priority=a.priority,
        category=a.category,
        title=a.title,
    )


def health_score(green_rate: float, k95: float, dhol_trend: float, phi_floor: float) -> int:
    """
    0..100 composite. Each input is clamped to 0..1 first, so negative
    drift scores the same as no drift.
    """
    g = clamp(green_rate)
    k = clamp(k95)
    d = clamp(dhol_trend)
    p = clamp(phi_floor)
    weighted = (
        WEIGHTS["green_rate"] * g +
        WEIGHTS["kappa"] * (1 - k) +
        WEIGHTS["drift"] * (1 - d) +
        WEIGHTS["phi_floor"] * p
    )
    return round_half_up(100 * weighted)


@dataclass
class _IssuerBucket:
    issuer_id: str
    total: int = 0
    green: int = 0
    kappas: List[float] = field(default_factory=list)
    phis: List[float] = field(default_factory=list)
    dhol_series: List[float] = field(default_factory=list)
    vkd: List[float] = field(default_factory=list)
    obs: List[float] = field(default_factory=list)

    def add(self, r: Receipt) -> None:
        s = r.signals
        self.total += 1
        if r.is_green:
            self.green += 1
        if _finite(s.kappa):
            self.kappas.append(s.kappa)
        if _finite(s.phi_star):
            self.phis.append(s.phi_star)
        # trend treats missing Δhol as neutral 0
        self.dhol_series.append(s.dhol if _finite(s.dhol) else 0.0)
        self.vkd.append(vkd_proxy(s))
        self.obs.append(obs_proxy(s, r.guards))

    def to_stats(self) -> IssuerStats:
        green_rate = self.green / self.total if self.total else 0.0
        k95 = percentile(self.kappas, K_PERCENTILE)
        phi_floor = min(self.phis) if self.phis else 0.0
        dhol_trend = trend_slope(self.dhol_series)
        obs_avg = mean(self.obs)

        advisories = build_advisories(
            k95=k95,
            phi_floor=phi_floor,
            dhol_trend=dhol_trend,
            green_rate=green_rate,
            obs_avg=obs_avg,
        )

        return IssuerStats(
            issuer_id=self.issuer_id,
            total=self.total,
            green_count=self.green,
            green_rate=green_rate,
            k95=k95,
            phi_floor=phi_floor,
            dhol_trend=dhol_trend,
            vkd_avg=mean(self.vkd),
            obs_avg=obs_avg,
            health=health_score(green_rate, k95, dhol_trend, phi_floor),
            advisories=[advisory_to_view(a) for a in advisories],
            advice=render_advice([a.code for a in advisories]),
        )


def compute_issuer_stats(receipts: Iterable[Receipt]) -> List[IssuerStats]:
    """
    One stats record per issuer, healthiest first. Ties keep the order in
    which issuers first appeared.
    """
    buckets: Dict[str, _IssuerBucket] = {}
    for r in receipts:
        bucket = buckets.get(r.issuer_id)
        if bucket is None:
            bucket = buckets[r.issuer_id] = _IssuerBucket(issuer_id=r.issuer_id)
        bucket.add(r)

    out = [b.to_stats() for b in buckets.values()]
    out.sort(key=lambda s: s.health, reverse=True)
    return out
