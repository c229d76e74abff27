"""
Receipt ingest: text and URL payloads -> decoded receipt objects.

Accepts a single JSON object, a JSON array of objects, or JSONL (one object
per line). Comments and trailing commas are tolerated; anything else that
fails to decode is rejected as a whole.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import requests

from receipt_normalizer import MalformedInput

logger = logging.getLogger(__name__)

PARSE_HELP = "Provide JSON (object/array) or JSONL."
FETCH_HELP = "Expecting JSON receipts at the URL."

ParsedReceipt = Tuple[Dict[str, Any], Optional[str]]


def strip_json_noise(text: str) -> str:
    """Drop // and /* */ comments and trailing commas outside string literals."""
    out: List[str] = []
    i, n = 0, len(text)
    in_string = False

    while i < n:
        c = text[i]

        if in_string:
            out.append(c)
            if c == "\\" and i + 1 < n:
                out.append(text[i + 1])
                i += 2
                continue
            if c == '"':
                in_string = False
            i += 1
            continue

        if c == '"':
            in_string = True
            out.append(c)
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            i = n if end == -1 else end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            i = n if end == -1 else end + 2
        elif c == ",":
            j = i + 1
            while j < n and text[j] in " \t\r\n":
                j += 1
            if j < n and text[j] in "}]":
                i += 1  # trailing comma
            else:
                out.append(c)
                i += 1
        else:
            out.append(c)
            i += 1

    return "".join(out)


def _decode(fragment: str, where: str) -> Any:
    """fragment must already be free of comments and trailing commas."""
    try:
        return json.loads(fragment)
    except json.JSONDecodeError as e:
        raise MalformedInput(f"Invalid JSON {where} ({e.msg} at line {e.lineno}). {PARSE_HELP}") from e


def _looks_like_jsonl(text: str) -> bool:
    return "\n" in text and not text.startswith("[") and not text.endswith("]")


def parse_receipts_text(text: str) -> List[ParsedReceipt]:
    """
    Decode pasted or uploaded text into (receipt object, source text) pairs.

    The source text is what byte_size is measured on: the document for a
    single object, the line for JSONL, and None for array items (they are
    measured on their own serialization).
    Empty text -> []. Any bad line or non-object item rejects the whole input.
    """
    t = (text or "").strip()
    if not t:
        return []
    cleaned = strip_json_noise(t)

    # a pretty-printed single document is also multi-line, so try it whole first
    try:
        doc = _decode(cleaned, "document")
    except MalformedInput:
        if not _looks_like_jsonl(t):
            raise
        pairs: List[Tuple[Any, Optional[str]]] = []
        for lineno, line in enumerate(cleaned.splitlines(), start=1):
            line = line.strip()
            if line:
                pairs.append((_decode(line, f"on line {lineno}"), line))
    else:
        if isinstance(doc, list):
            pairs = [(item, None) for item in doc]
        else:
            pairs = [(doc, t)]

    for idx, (item, _) in enumerate(pairs):
        if not isinstance(item, dict):
            raise MalformedInput(
                f"Item {idx + 1} is {type(item).__name__}, expected a JSON object. {PARSE_HELP}"
            )
    return pairs


def to_raw_url(url: str) -> str:
    """github.com/<owner>/<repo>/blob/<ref>/<path> -> raw.githubusercontent.com URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return url
    if parsed.hostname == "github.com":
        parts = [p for p in parsed.path.split("/") if p]
        if len(parts) >= 4 and parts[2] == "blob":
            owner, repo, ref = parts[0], parts[1], parts[3]
            return f"https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{'/'.join(parts[4:])}"
    return url


def fetch_receipts(url: str, *, timeout: int = 20) -> List[ParsedReceipt]:
    raw_url = to_raw_url(url.strip())
    logger.info("Fetching receipts: url=%s", raw_url)
    try:
        r = requests.get(
            raw_url,
            params={"v": int(time.time() * 1000)},
            headers={"Cache-Control": "no-store"},
            timeout=timeout,
        )
        r.raise_for_status()
    except requests.RequestException as e:
        logger.exception("Receipt fetch failed: url=%s", raw_url)
        raise MalformedInput(f"Could not fetch {raw_url}. {FETCH_HELP}") from e

    return parse_receipts_text(r.text)
