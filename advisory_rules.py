# advisory_rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Literal, Mapping, Sequence


Priority = Literal["P0", "P1", "P2"]
AdvisoryType = Literal["fix", "maintain"]


# Thresholds
KAPPA_BRAKE_K95 = 0.95
PHI_FLOOR_MIN = 0.20
DRIFT_TREND_MAX = 0.15
GREEN_RATE_MIN = 0.60
OBS_WINDOW_MIN = 0.40


@dataclass(frozen=True)
class Advisory:
    code: str
    advisory_type: AdvisoryType
    priority: Priority
    category: str
    title: str


ADVICE_TEXT: Dict[str, str] = {
    "kappa_brake": "Brake: κ high → reduce chain width/sampling; roll back risky config.",
    "phi_floor_low": "Raise Φ* floor: add test prompts or clamp temperature.",
    "drift_rising": "Drift ↑: diff configs/data since last stable run.",
    "green_rate_low": "Green rate low: simplify tool/step graph.",
    "obs_window_tight": "Obs window tight: receipts mandatory for deploys.",
    "stable": "Stable: hold config; weekly sample controls.",
}


def build_advisories(
    *,
    k95: float,
    phi_floor: float,
    dhol_trend: float,
    green_rate: float,
    obs_avg: float,
) -> List[Advisory]:
    """
    Fixed-order rule table. Every matching rule contributes; the stable
    advisory appears only when nothing else matched.
    """
    out: List[Advisory] = []

    # -------------------------
    # P0: κ tail at the ceiling
    # -------------------------
    if k95 >= KAPPA_BRAKE_K95:
        out.append(Advisory(
            code="kappa_brake",
            advisory_type="fix",
            priority="P0",
            category="Instability",
            title="Reduce sampling/chain width and roll back risky config",
        ))

    # -------------------------
    # P1: viability, drift, green rate
    # -------------------------
    if phi_floor < PHI_FLOOR_MIN:
        out.append(Advisory(
            code="phi_floor_low",
            advisory_type="fix",
            priority="P1",
            category="Viability",
            title="Raise the Φ* floor with more test prompts or lower temperature",
        ))

    if dhol_trend >= DRIFT_TREND_MAX:
        out.append(Advisory(
            code="drift_rising",
            advisory_type="fix",
            priority="P1",
            category="Drift",
            title="Diff configuration and data since the last stable run",
        ))

    if green_rate < GREEN_RATE_MIN:
        out.append(Advisory(
            code="green_rate_low",
            advisory_type="fix",
            priority="P1",
            category="Reliability",
            title="Simplify the tool/step graph",
        ))

    # -------------------------
    # P2: observability
    # -------------------------
    if obs_avg < OBS_WINDOW_MIN:
        out.append(Advisory(
            code="obs_window_tight",
            advisory_type="fix",
            priority="P2",
            category="Observability",
            title="Make receipts mandatory before deploys",
        ))

    if not out:
        out.append(Advisory(
            code="stable",
            advisory_type="maintain",
            priority="P2",
            category="Maintain",
            title="Hold current configuration; sample controls weekly",
        ))

    return out


def render_advice(codes: Sequence[str], catalog: Mapping[str, str] = ADVICE_TEXT) -> str:
    """Join catalog texts in the given order. Unknown codes render as themselves."""
    return " ".join(catalog.get(code, code) for code in codes)
