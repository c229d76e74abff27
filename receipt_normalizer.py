# receipt_normalizer.py
from __future__ import annotations

import json
import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Literal, Mapping, Optional, TypedDict


Status = Literal["GREEN", "AMBER", "RED"]

STATUSES = ("GREEN", "AMBER", "RED")
DEFAULT_STATUS: Status = "GREEN"
UNRECOGNIZED_STATUS: Status = "AMBER"
DEFAULT_ISSUER = "unknown"
DEFAULT_EVIDENCE_STRENGTH = 0.5
DEFAULT_UCR = 0.5


class MalformedInput(ValueError):
    """Raised when an ingested payload cannot be turned into receipts."""


class RawSignalsInput(TypedDict, total=False):
    kappa: Any
    dhol: Any
    phi_star: Any
    phiStar: Any
    evidence_strength: Any
    evidenceStrength: Any


class RawReceiptInput(TypedDict, total=False):
    """Every key normalize() understands. All of them are optional."""

    rid: str
    issuer_id: str
    issuerId: str
    model: str
    issued_at: str
    issuedAt: str
    attrs: Dict[str, Any]
    status: str
    signals: RawSignalsInput
    guards: Dict[str, Any]
    # flat aliases
    kappa: Any
    dhol: Any
    phi_star: Any
    phi: Any
    evidence_strength: Any
    ucr: Any


@dataclass(frozen=True)
class Signals:
    kappa: Optional[float] = None
    dhol: Optional[float] = None
    phi_star: Optional[float] = None
    evidence_strength: float = DEFAULT_EVIDENCE_STRENGTH


@dataclass(frozen=True)
class Guards:
    ucr: float = DEFAULT_UCR


@dataclass(frozen=True)
class Receipt:
    rid: str
    issuer_id: str
    issued_at: str
    status: Status
    signals: Signals = field(default_factory=Signals)
    guards: Guards = field(default_factory=Guards)
    byte_size: int = 0
    model: Optional[str] = None

    @property
    def is_green(self) -> bool:
        return self.status == "GREEN"

    def to_dict(self) -> Dict[str, Any]:
        """Line-export shape; normalize() reads it back unchanged."""
        return {
            "rid": self.rid,
            "issuer_id": self.issuer_id,
            "model": self.model,
            "issued_at": self.issued_at,
            "attrs": {"status": self.status},
            "signals": {
                "kappa": self.signals.kappa,
                "dhol": self.signals.dhol,
                "phi_star": self.signals.phi_star,
                "evidence_strength": self.signals.evidence_strength,
            },
            "guards": {"ucr": self.guards.ucr},
            "bytes": self.byte_size,
        }


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _to_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        n = float(v)
    except (TypeError, ValueError, OverflowError):
        return None
    # NaN and ±inf have no JSON form
    return n if math.isfinite(n) else None


def _non_empty_str(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def _mapping(v: Any) -> Mapping[str, Any]:
    return v if isinstance(v, Mapping) else {}


def measure_bytes(raw_text: str) -> int:
    try:
        return len(raw_text.encode("utf-8"))
    except UnicodeEncodeError:
        # lone surrogates and similar
        return len(raw_text)


def _resolve_status(raw: Mapping[str, Any]) -> Status:
    attrs = _mapping(raw.get("attrs"))
    if _non_empty_str(attrs.get("status")):
        value = str(attrs["status"]).strip().upper()
    elif _non_empty_str(raw.get("status")):
        value = str(raw["status"]).strip().upper()
    else:
        return DEFAULT_STATUS
    return value if value in STATUSES else UNRECOGNIZED_STATUS


def _resolve_signal(nested: Mapping[str, Any], raw: Mapping[str, Any], *keys: str) -> Optional[float]:
    """First parsable value among nested[keys...], then raw[keys...]."""
    for source in (nested, raw):
        for key in keys:
            value = _to_float(source.get(key))
            if value is not None:
                return value
    return None


def _resolve_signals(raw: Mapping[str, Any]) -> Signals:
    nested = _mapping(raw.get("signals"))

    kappa = _resolve_signal(nested, raw, "kappa")
    dhol = _resolve_signal(nested, raw, "dhol")

    phi_star = _resolve_signal(nested, {}, "phi_star", "phiStar")
    if phi_star is None:
        phi_star = _resolve_signal({}, raw, "phi_star", "phiStar", "phi")

    evidence = _resolve_signal(nested, raw, "evidence_strength", "evidenceStrength")
    if evidence is None:
        evidence = DEFAULT_EVIDENCE_STRENGTH

    return Signals(kappa=kappa, dhol=dhol, phi_star=phi_star, evidence_strength=evidence)


def _resolve_guards(raw: Mapping[str, Any]) -> Guards:
    ucr = _resolve_signal(_mapping(raw.get("guards")), raw, "ucr")
    return Guards(ucr=DEFAULT_UCR if ucr is None else ucr)


def normalize(raw: RawReceiptInput, raw_text: Optional[str] = None) -> Receipt:
    """
    Coerce one decoded JSON value into a canonical Receipt.

    Missing optional fields are filled with defaults; only a non-object
    payload is rejected.
    """
    if not isinstance(raw, Mapping):
        raise MalformedInput(
            f"Expected a JSON object per receipt, got {type(raw).__name__}."
        )

    if raw_text is None:
        raw_text = json.dumps(raw, ensure_ascii=False, separators=(",", ":"), default=str)

    return Receipt(
        rid=_non_empty_str(raw.get("rid")) or str(uuid.uuid4()),
        issuer_id=_non_empty_str(raw.get("issuer_id")) or _non_empty_str(raw.get("issuerId")) or DEFAULT_ISSUER,
        model=_non_empty_str(raw.get("model")),
        issued_at=_non_empty_str(raw.get("issued_at")) or _non_empty_str(raw.get("issuedAt")) or _now_iso(),
        status=_resolve_status(raw),
        signals=_resolve_signals(raw),
        guards=_resolve_guards(raw),
        byte_size=measure_bytes(raw_text),
    )
