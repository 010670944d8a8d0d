from __future__ import annotations

import base64
import hashlib
import hmac

from line_relay.infrastructure.line.signature import (
    compute_line_signature,
    verify_line_signature,
)


def test_compute_line_signature_is_base64_hmac_sha256_of_body() -> None:
    body = b'{"destination":"U0","events":[]}'

    expected = base64.b64encode(
        hmac.new(b"channel-secret", body, hashlib.sha256).digest()
    ).decode("ascii")

    assert compute_line_signature(secret="channel-secret", body=body) == expected


def test_verify_line_signature_accepts_matching_signature() -> None:
    body = b'{"events":[]}'
    signature = compute_line_signature(secret="channel-secret", body=body)

    assert verify_line_signature(secret="channel-secret", body=body, provided_signature=signature)


def test_verify_line_signature_rejects_missing_wrong_or_tampered_signature() -> None:
    body = b'{"events":[]}'
    signature = compute_line_signature(secret="channel-secret", body=body)

    assert not verify_line_signature(secret="channel-secret", body=body, provided_signature=None)
    assert not verify_line_signature(secret="channel-secret", body=body, provided_signature="")
    assert not verify_line_signature(secret="other-secret", body=body, provided_signature=signature)
    assert not verify_line_signature(
        secret="channel-secret",
        body=b'{"events":[{}]}',
        provided_signature=signature,
    )


def test_verify_line_signature_rejects_non_ascii_signature() -> None:
    body = b'{"events":[]}'

    assert not verify_line_signature(
        secret="channel-secret",
        body=body,
        provided_signature="café",
    )
