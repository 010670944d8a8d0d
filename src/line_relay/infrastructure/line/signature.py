"""HMAC-SHA256 webhook signature helpers for the LINE `x-line-signature` header."""

from __future__ import annotations

import base64
import hashlib
import hmac


def compute_line_signature(*, secret: str, body: bytes) -> str:
    """Return base64-encoded HMAC-SHA256 digest of the raw request body."""

    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_line_signature(*, secret: str, body: bytes, provided_signature: str | None) -> bool:
    """Return whether the provided header matches the expected body signature."""

    if not provided_signature:
        return False
    expected = compute_line_signature(secret=secret, body=body)
    return hmac.compare_digest(
        expected.encode("ascii"),
        provided_signature.strip().encode("utf-8"),
    )
