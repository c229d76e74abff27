from __future__ import annotations

import json
import math
from typing import Any, Iterable, List, Sequence

from core.wallet.models import FleetPosture, IssuerStats
from receipt_normalizer import Receipt


def _json_safe(v: Any) -> Any:
    """Non-finite floats become null so every line is strict JSON."""
    if isinstance(v, float) and not math.isfinite(v):
        return None
    if isinstance(v, dict):
        return {k: _json_safe(x) for k, x in v.items()}
    return v


def receipts_to_jsonl(receipts: Iterable[Receipt]) -> str:
    return "\n".join(
        json.dumps(_json_safe(r.to_dict()), ensure_ascii=False, separators=(",", ":"), allow_nan=False)
        for r in receipts
    )


def pct(v: float) -> str:
    return f"{v * 100:.1f}%"


def round3(v: float) -> str:
    return f"{v:.3f}"


def signed3(v: float) -> str:
    return ("+" if v >= 0 else "") + round3(v)


def issuer_line(s: IssuerStats) -> str:
    return (
        f"{s.issuer_id}: health {s.health}, green {pct(s.green_rate)}, "
        f"κ95 {round3(s.k95)}, ΔholTrend {signed3(s.dhol_trend)}, "
        f"Φ*floor {round3(s.phi_floor)}, Obs {int(s.obs_avg * 100)}%, VKD {int(s.vkd_avg * 100)}%"
    )


def render_summary_text(stats: Sequence[IssuerStats], posture: FleetPosture) -> str:
    lines: List[str] = [
        "OpenLine Wallet summary",
        f"Overall health: {posture.score} ({posture.posture})",
        f"Advice: {posture.worst_issuer_advice}",
        "Issuers:",
    ]
    lines.extend(f"  {issuer_line(s)}" for s in stats)
    return "\n".join(lines)
