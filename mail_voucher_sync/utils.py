"""Utility helpers shared across modules."""

from __future__ import annotations

from hashlib import sha256


def sha256_hex(payload: bytes) -> str:
    """Convenience wrapper for hex digests."""
    return sha256(payload).hexdigest()


def truncate(text: str, limit: int = 500) -> str:
    """Shorten long response bodies before they end up in log lines."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]}... [{len(text) - limit} more chars]"
