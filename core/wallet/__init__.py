"""
Wallet analytics core.

This package defines:
- Statistics primitives (mean, interpolated percentile, trailing trend slope)
- Per-issuer aggregation with a deterministic composite health score
- Fleet-wide posture rollup
- The caller-owned receipt store
- Ingest parsing, demo receipts and line/summary exports
"""
