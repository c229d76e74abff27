import logging
import random
import threading
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, HttpUrl

from config import settings
from core.wallet.aggregator import compute_issuer_stats
from core.wallet.demo import make_random_receipt
from core.wallet.export import receipts_to_jsonl, render_summary_text
from core.wallet.fleet import compute_fleet_posture
from core.wallet.ingest import ParsedReceipt, fetch_receipts, parse_receipts_text
from core.wallet.models import FleetPosture, IssuerStats, ReceiptView
from core.wallet.store import ReceiptStore
from receipt_normalizer import MalformedInput, Receipt, normalize
from risk_proxies import obs_proxy, vkd_proxy

# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger("openline")

# -------------------------------------------------------------------
# FastAPI App
# -------------------------------------------------------------------

app = FastAPI(
    title="OpenLine Wallet API",
    version="1.0.0",
    description="OpenLine Wallet: issuer health and fleet posture from compliance receipts.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_ORIGIN],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -------------------------------------------------------------------
# Receipt store (session-owned; mutations serialized here)
# -------------------------------------------------------------------

store = ReceiptStore()
_store_lock = threading.Lock()

# -------------------------------------------------------------------
# Models
# -------------------------------------------------------------------

class IngestTextRequest(BaseModel):
    text: str


class IngestUrlRequest(BaseModel):
    url: HttpUrl


class IngestResponse(BaseModel):
    added: int
    total: int


class PostureResponse(BaseModel):
    posture: FleetPosture
    issuers: List[IssuerStats]

# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def ingest_objects(pairs: List[ParsedReceipt], *, source: str) -> IngestResponse:
    # normalize everything before touching the store: all or nothing
    receipts = [normalize(obj, raw_text) for obj, raw_text in pairs]
    with _store_lock:
        added = store.extend(receipts)
        total = len(store)
    logger.info("Ingest complete: source=%s added=%s total=%s", source, added, total)
    return IngestResponse(added=added, total=total)


def add_demo_receipts(count: int, rng: Optional[random.Random] = None) -> IngestResponse:
    rng = rng or random.Random()
    return ingest_objects([(make_random_receipt(rng), None) for _ in range(count)], source="demo")


def to_view(r: Receipt) -> ReceiptView:
    return ReceiptView(
        rid=r.rid,
        issuer_id=r.issuer_id,
        model=r.model,
        issued_at=r.issued_at,
        status=r.status,
        kappa=r.signals.kappa,
        dhol=r.signals.dhol,
        phi_star=r.signals.phi_star,
        byte_size=r.byte_size,
        vkd=vkd_proxy(r.signals),
        obs=obs_proxy(r.signals, r.guards),
    )

# -------------------------------------------------------------------
# Startup
# -------------------------------------------------------------------

@app.on_event("startup")
def on_startup():
    logger.info("OpenLine Wallet starting up...")
    if settings.demo_enabled:
        add_demo_receipts(settings.DEMO_SEED_COUNT, random.Random(settings.DEMO_SEED))
    logger.info("OpenLine Wallet startup complete (receipts=%s)", len(store))

# -------------------------------------------------------------------
# Routes
# -------------------------------------------------------------------

@app.get("/")
def root():
    return {"status": "ok", "service": "OpenLine Wallet API", "version": "1.0.0"}


@app.get("/health")
def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "receipts": len(store),
    }


@app.post("/receipts", response_model=IngestResponse)
def add_receipts(payload: IngestTextRequest):
    pairs = parse_receipts_text(payload.text)
    if not pairs:
        raise HTTPException(status_code=400, detail="Nothing to import. Provide JSON (object/array) or JSONL.")
    return ingest_objects(pairs, source="text")


@app.post("/receipts/url", response_model=IngestResponse)
def add_receipts_by_url(payload: IngestUrlRequest):
    pairs = fetch_receipts(str(payload.url), timeout=settings.URL_FETCH_TIMEOUT)
    if not pairs:
        raise HTTPException(status_code=400, detail="No receipts found at the URL.")
    return ingest_objects(pairs, source="url")


@app.post("/receipts/demo", response_model=IngestResponse)
def add_demo(count: int = Query(default=1, ge=1, le=50)):
    return add_demo_receipts(count)


@app.delete("/receipts")
def clear_receipts():
    with _store_lock:
        removed = len(store)
        store.clear()
    logger.info("Receipts cleared: removed=%s", removed)
    return {"removed": removed, "total": 0}


@app.get("/receipts", response_model=List[ReceiptView])
def list_receipts(limit: Optional[int] = Query(default=None, ge=1, le=1000)):
    n = limit or settings.RECENT_RECEIPTS_LIMIT
    recent = store.snapshot()[-n:]
    return [to_view(r) for r in reversed(recent)]


@app.get("/issuers", response_model=List[IssuerStats])
def issuers():
    return compute_issuer_stats(store.snapshot())


@app.get("/posture", response_model=PostureResponse)
def posture():
    stats = compute_issuer_stats(store.snapshot())
    return PostureResponse(posture=compute_fleet_posture(stats), issuers=stats)


@app.get("/export.jsonl")
def export_jsonl():
    return PlainTextResponse(receipts_to_jsonl(store.snapshot()), media_type="application/jsonl")


@app.get("/summary")
def summary():
    stats = compute_issuer_stats(store.snapshot())
    return PlainTextResponse(render_summary_text(stats, compute_fleet_posture(stats)))


@app.exception_handler(MalformedInput)
async def malformed_input_handler(request: Request, exc: MalformedInput):
    logger.info("Rejected input: path=%s reason=%s", request.url.path, exc)
    return JSONResponse(
        status_code=400,
        content={"error": str(exc), "status_code": 400, "path": str(request.url)},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "status_code": exc.status_code, "path": str(request.url)},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})
