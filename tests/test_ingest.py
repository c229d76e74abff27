"""
Unit tests for core/wallet/ingest.py and core/wallet/store.py

Tests cover:
- parse_receipts_text(): object, array, JSONL, pretty-printed documents, source text
- Comment and trailing-comma tolerance
- MalformedInput rejection
- to_raw_url() GitHub rewriting
- fetch_receipts() with a stubbed HTTP layer
- ReceiptStore append / extend / clear / snapshot
"""
import pytest
import requests

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.wallet import ingest
from core.wallet.ingest import fetch_receipts, parse_receipts_text, strip_json_noise, to_raw_url
from core.wallet.store import ReceiptStore
from receipt_normalizer import MalformedInput, normalize


def _objects(text):
    return [obj for obj, _ in parse_receipts_text(text)]


class TestParseReceiptsText:

    def test_empty_text(self):
        assert parse_receipts_text("") == []
        assert parse_receipts_text("   \n  ") == []

    def test_single_object(self):
        assert parse_receipts_text('{"rid": "a"}') == [({"rid": "a"}, '{"rid": "a"}')]

    def test_array(self):
        pairs = parse_receipts_text('[{"rid": "a"}, {"rid": "b"}]')
        assert [obj["rid"] for obj, _ in pairs] == ["a", "b"]
        assert [text for _, text in pairs] == [None, None]

    def test_jsonl(self):
        text = '{"rid": "a"}\n\n{"rid": "b"}\n{"rid": "c"}\n'
        assert [i["rid"] for i in _objects(text)] == ["a", "b", "c"]

    def test_jsonl_lines_are_source_text(self):
        """Each JSONL object carries its own line for byte measurement"""
        text = '{"rid": "a"}\n  {"rid": "bb", "issuer_id": "läb"}  \n'

        pairs = parse_receipts_text(text)

        assert [t for _, t in pairs] == ['{"rid": "a"}', '{"rid": "bb", "issuer_id": "läb"}']
        r = normalize(*pairs[1])
        assert r.byte_size == len('{"rid": "bb", "issuer_id": "läb"}'.encode("utf-8"))

    def test_pretty_printed_object(self):
        """Multi-line single object is not mistaken for JSONL"""
        text = '{\n  "rid": "a",\n  "issuer_id": "labA"\n}'
        assert parse_receipts_text(text) == [({"rid": "a", "issuer_id": "labA"}, text)]

    def test_comments_and_trailing_commas(self):
        text = """
        [
          // first receipt
          {"rid": "a", "signals": {"kappa": 0.2,},},
          /* second */ {"rid": "b"},
        ]
        """
        items = _objects(text)

        assert [i["rid"] for i in items] == ["a", "b"]
        assert items[0]["signals"] == {"kappa": 0.2}

    def test_block_comment_spanning_jsonl_lines(self):
        """A /* */ comment may cover several JSONL lines"""
        text = '{"rid": "a"}\n/* skipped\n{"rid": "x"}\n*/\n{"rid": "b"}'
        assert [i["rid"] for i in _objects(text)] == ["a", "b"]

    def test_comment_markers_inside_strings_kept(self):
        text = '{"model": "http://x/*y*/", "note": "a, ]"}'
        assert _objects(text) == [{"model": "http://x/*y*/", "note": "a, ]"}]

    def test_escaped_quotes_inside_strings(self):
        assert strip_json_noise('{"a": "say \\"hi\\", // no"}') == '{"a": "say \\"hi\\", // no"}'

    def test_invalid_json_rejected(self):
        with pytest.raises(MalformedInput, match="JSON"):
            parse_receipts_text("{not json")

    def test_bad_jsonl_line_rejects_everything(self):
        with pytest.raises(MalformedInput, match="line 2"):
            parse_receipts_text('{"rid": "a"}\n{oops\n{"rid": "c"}')

    @pytest.mark.parametrize("text", ["42", '"str"', "[1, 2]", '[{"rid": "a"}, null]'])
    def test_non_objects_rejected(self, text):
        with pytest.raises(MalformedInput):
            parse_receipts_text(text)


class TestToRawUrl:

    def test_github_blob_rewritten(self):
        url = "https://github.com/acme/receipts/blob/main/data/r1.json"
        assert to_raw_url(url) == "https://raw.githubusercontent.com/acme/receipts/main/data/r1.json"

    def test_other_urls_untouched(self):
        for url in (
            "https://example.com/r.json",
            "https://github.com/acme/receipts/tree/main/data",
            "https://raw.githubusercontent.com/acme/receipts/main/r.json",
        ):
            assert to_raw_url(url) == url


class _FakeResponse:
    def __init__(self, text, status=200):
        self.text = text
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")


class TestFetchReceipts:

    def test_fetches_raw_url_with_cache_buster(self, monkeypatch):
        calls = {}

        def fake_get(url, params=None, headers=None, timeout=None):
            calls.update(url=url, params=params, timeout=timeout)
            return _FakeResponse('{"rid": "remote"}')

        monkeypatch.setattr(ingest.requests, "get", fake_get)

        items = fetch_receipts("https://github.com/o/r/blob/main/x.json", timeout=5)

        assert items == [({"rid": "remote"}, '{"rid": "remote"}')]
        assert calls["url"] == "https://raw.githubusercontent.com/o/r/main/x.json"
        assert "v" in calls["params"]
        assert calls["timeout"] == 5

    def test_http_error_is_malformed_input(self, monkeypatch):
        monkeypatch.setattr(ingest.requests, "get", lambda *a, **kw: _FakeResponse("", status=404))

        with pytest.raises(MalformedInput, match="Could not fetch"):
            fetch_receipts("https://example.com/missing.json")

    def test_connection_error_is_malformed_input(self, monkeypatch):
        def boom(*a, **kw):
            raise requests.ConnectionError("down")

        monkeypatch.setattr(ingest.requests, "get", boom)

        with pytest.raises(MalformedInput):
            fetch_receipts("https://example.com/r.json")


class TestReceiptStore:

    def test_append_and_snapshot(self):
        store = ReceiptStore()
        r = normalize({"rid": "a"})

        store.append(r)

        assert len(store) == 1
        assert store.snapshot() == (r,)

    def test_snapshot_is_detached(self):
        store = ReceiptStore()
        store.append(normalize({"rid": "a"}))
        snap = store.snapshot()

        store.append(normalize({"rid": "b"}))

        assert len(snap) == 1
        assert isinstance(snap, tuple)

    def test_extend_is_all_or_nothing(self):
        store = ReceiptStore()

        def gen():
            yield normalize({"rid": "a"})
            raise MalformedInput("bad")

        with pytest.raises(MalformedInput):
            store.extend(gen())
        assert len(store) == 0

        assert store.extend([normalize({}), normalize({})]) == 2
        assert len(store) == 2

    def test_clear(self):
        store = ReceiptStore()
        store.extend([normalize({}), normalize({})])

        store.clear()

        assert len(store) == 0
        assert store.snapshot() == ()
