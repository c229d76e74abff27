from __future__ import annotations

from typing import Sequence

from core.wallet.aggregator import round_half_up
from core.wallet.models import FleetPosture, IssuerStats


PLACEHOLDER = "—"


def posture_text(green_rate: float, total: int) -> str:
    return f"{green_rate * 100:.1f}% green • {total} receipts"


def compute_fleet_posture(stats: Sequence[IssuerStats]) -> FleetPosture:
    """
    Receipt-count-weighted rollup of issuer stats. The worst issuer is the
    lowest health; the first one listed wins a tie.
    """
    if not stats:
        return FleetPosture(
            score=0,
            green_rate=0.0,
            total_receipts=0,
            issuer_count=0,
            posture=PLACEHOLDER,
            worst_issuer_id=None,
            worst_issuer_advice=PLACEHOLDER,
        )

    total = sum(s.total for s in stats)
    if total:
        score = round_half_up(sum(s.health * s.total for s in stats) / total)
        green_rate = min(1.0, sum(s.green_rate * s.total for s in stats) / total)
    else:
        score, green_rate = 0, 0.0

    # min() returns the first minimal element
    worst = min(stats, key=lambda s: s.health)

    return FleetPosture(
        score=score,
        green_rate=green_rate,
        total_receipts=total,
        issuer_count=len(stats),
        posture=posture_text(green_rate, total),
        worst_issuer_id=worst.issuer_id,
        worst_issuer_advice=worst.advice,
    )
