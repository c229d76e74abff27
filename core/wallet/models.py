from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


AdvisoryCode = Literal[
    "kappa_brake",
    "phi_floor_low",
    "drift_rising",
    "green_rate_low",
    "obs_window_tight",
    "stable",
]


class AdvisoryView(BaseModel):
    """One matched rule, as exposed on IssuerStats."""

    code: AdvisoryCode
    advisory_type: Literal["fix", "maintain"]
    priority: Literal["P0", "P1", "P2"]
    category: str
    title: str


class IssuerStats(BaseModel):
    issuer_id: str
    total: int = Field(ge=0)
    green_count: int = Field(ge=0)
    green_rate: float = Field(ge=0, le=1)

    k95: float = 0.0
    phi_floor: float = 0.0
    dhol_trend: float = 0.0

    vkd_avg: float = Field(default=0.0, ge=0, le=1)
    obs_avg: float = Field(default=0.0, ge=0, le=1)

    health: int = Field(ge=0, le=100)

    # rule-table output, in rule order, and its rendered text
    advisories: List[AdvisoryView] = Field(default_factory=list)
    advice: str = ""


class FleetPosture(BaseModel):
    score: int = Field(ge=0, le=100)
    green_rate: float = Field(ge=0, le=1)
    total_receipts: int = Field(ge=0)
    issuer_count: int = Field(ge=0)
    posture: str
    worst_issuer_id: Optional[str] = None
    worst_issuer_advice: str


class ReceiptView(BaseModel):
    """One receipt as listed by the API, with its proxies."""

    rid: str
    issuer_id: str
    model: Optional[str] = None
    issued_at: str
    status: str
    kappa: Optional[float] = None
    dhol: Optional[float] = None
    phi_star: Optional[float] = None
    byte_size: int
    vkd: float = Field(ge=0, le=1)
    obs: float = Field(ge=0, le=1)
