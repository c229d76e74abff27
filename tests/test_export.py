"""
Unit tests for core/wallet/export.py and core/wallet/demo.py

Tests cover:
- receipts_to_jsonl() line format, strict JSON and re-normalization
- render_summary_text() layout
- make_random_receipt() shape, determinism and status buckets
"""
import json
import math
import random

import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.wallet.aggregator import compute_issuer_stats
from core.wallet.demo import DEMO_ISSUERS, DEMO_MODELS, make_random_receipt
from core.wallet.export import receipts_to_jsonl, render_summary_text, signed3
from core.wallet.fleet import compute_fleet_posture
from core.wallet.ingest import parse_receipts_text
from receipt_normalizer import Receipt, Signals, normalize


class TestJsonlExport:

    def test_one_line_per_receipt(self):
        receipts = [normalize({"rid": "a"}), normalize({"rid": "b"})]

        lines = receipts_to_jsonl(receipts).split("\n")

        assert len(lines) == 2
        assert json.loads(lines[0])["rid"] == "a"
        assert json.loads(lines[1])["attrs"] == {"status": "GREEN"}

    def test_empty_export(self):
        assert receipts_to_jsonl([]) == ""

    def test_non_finite_signals_exported_as_null(self):
        """Lines stay strict JSON even for hand-built receipts"""
        r = Receipt(
            rid="x",
            issuer_id="labA",
            issued_at="2025-01-01T00:00:00Z",
            status="GREEN",
            signals=Signals(kappa=math.inf, dhol=-math.inf, phi_star=math.nan),
        )

        def reject(token):
            raise ValueError(token)

        line = json.loads(receipts_to_jsonl([r]), parse_constant=reject)

        assert line["signals"]["kappa"] is None
        assert line["signals"]["dhol"] is None
        assert line["signals"]["phi_star"] is None
        assert line["signals"]["evidence_strength"] == 0.5

    def test_reimport_keeps_canonical_fields(self):
        """Export -> parse -> normalize reproduces signals/guards/status"""
        originals = [
            normalize({"issuer_id": "labA", "kappa": 0.31, "phi": 0.72, "status": "amber"}),
            normalize({"issuer_id": "labB", "signals": {"dhol": 0.4, "evidence_strength": 0.8}, "ucr": 0.1}),
            normalize({}),
        ]

        again = [normalize(o, t) for o, t in parse_receipts_text(receipts_to_jsonl(originals))]

        for before, after in zip(originals, again):
            assert after.signals == before.signals
            assert after.guards == before.guards
            assert after.status == before.status


class TestSummaryText:

    def test_summary_lines(self):
        receipts = [
            normalize({"issuer_id": "labA", "signals": {"kappa": 0.1, "dhol": 0.1, "phi_star": 0.9}}),
            normalize({"issuer_id": "labB", "status": "RED", "signals": {"kappa": 0.5, "dhol": 0.2, "phi_star": 0.6}}),
        ]
        stats = compute_issuer_stats(receipts)

        text = render_summary_text(stats, compute_fleet_posture(stats))
        lines = text.split("\n")

        assert lines[0].startswith("OpenLine Wallet")
        assert lines[1].startswith("Overall health: ")
        assert "50.0% green • 2 receipts" in lines[1]
        assert lines[2].startswith("Advice: ")
        assert lines[3] == "Issuers:"
        assert lines[4].startswith("  labA: health 97, green 100.0%, κ95 0.100, ΔholTrend +0.000")
        assert lines[5].startswith("  labB: ")

    def test_signed3(self):
        assert signed3(0.25) == "+0.250"
        assert signed3(-0.1234) == "-0.123"


class TestDemoReceipts:

    def test_shape(self):
        raw = make_random_receipt(random.Random(7))

        assert raw["issuer_id"] in DEMO_ISSUERS
        assert raw["model"] in DEMO_MODELS
        assert raw["attrs"]["status"] in ("GREEN", "AMBER", "RED")
        assert set(raw["signals"]) == {"kappa", "dhol", "phi_star"}

    def test_seeded_generator_is_deterministic(self):
        a = make_random_receipt(random.Random(11))
        b = make_random_receipt(random.Random(11))

        a.pop("issued_at"), b.pop("issued_at")
        assert a == b

    @pytest.mark.parametrize("seed", range(20))
    def test_signals_match_status_bucket(self, seed):
        raw = make_random_receipt(random.Random(seed))
        s = raw["signals"]
        status = raw["attrs"]["status"]

        if status == "GREEN":
            assert 0.05 <= s["kappa"] <= 0.50 and 0.75 <= s["phi_star"] <= 0.98
        elif status == "AMBER":
            assert 0.50 <= s["kappa"] <= 0.90 and 0.45 <= s["phi_star"] <= 0.80
        else:
            assert 0.90 <= s["kappa"] <= 1.20 and 0.10 <= s["phi_star"] <= 0.45

    def test_normalizes_cleanly(self):
        r = normalize(make_random_receipt(random.Random(3)))
        assert r.signals.kappa is not None
        assert r.byte_size > 0
