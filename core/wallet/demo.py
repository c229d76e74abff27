from __future__ import annotations

import random
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple


DEMO_ISSUERS = ["labA", "labB", "opsX", "unknown"]
DEMO_MODELS = ["demo-llm", "op-llm", "agent-x"]

Range = Tuple[float, float]

# (upper bucket bound, status, kappa, dhol, phi_star)
STATUS_BUCKETS: List[Tuple[float, str, Range, Range, Range]] = [
    (0.55, "GREEN", (0.05, 0.50), (0.00, 0.28), (0.75, 0.98)),
    (0.90, "AMBER", (0.50, 0.90), (0.28, 0.60), (0.45, 0.80)),
    (1.00, "RED", (0.90, 1.20), (0.60, 1.00), (0.10, 0.45)),
]


def make_random_receipt(rng: Optional[random.Random] = None) -> Dict[str, Any]:
    """Raw (pre-normalization) receipt with plausible signals for its status."""
    rng = rng or random.Random()

    roll = rng.random()
    bucket = next((b for b in STATUS_BUCKETS if roll < b[0]), STATUS_BUCKETS[-1])
    _, status, k_range, d_range, p_range = bucket

    return {
        "rid": str(uuid.UUID(int=rng.getrandbits(128), version=4)),
        "issuer_id": rng.choice(DEMO_ISSUERS),
        "model": rng.choice(DEMO_MODELS),
        "issued_at": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "attrs": {"status": status},
        "signals": {
            "kappa": round(rng.uniform(*k_range), 3),
            "dhol": round(rng.uniform(*d_range), 3),
            "phi_star": round(rng.uniform(*p_range), 3),
        },
    }
