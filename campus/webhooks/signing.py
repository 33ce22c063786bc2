"""HMAC-SHA256 signing for outbound webhook payloads."""

import hashlib
import hmac
import json
import secrets
from typing import Any


def generate_webhook_secret(length: int = 32) -> str:
    """Random secret, hex-encoded (64 characters for the default 32 bytes)."""
    return secrets.token_hex(length)


def canonical_json(payload: Any) -> bytes:
    """
    Serialize a payload to the exact bytes that are signed and sent.

    Compact separators, keys in insertion order, UTF-8 without ASCII
    escaping. The same bytes must be used for the signature and the body.
    """
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def _as_bytes(payload: Any) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return canonical_json(payload)


def sign_payload(secret: str, payload: Any) -> str:
    """Hex HMAC-SHA256 of the payload. bytes/str are signed as given."""
    return hmac.new(
        secret.encode("utf-8"),
        _as_bytes(payload),
        hashlib.sha256,
    ).hexdigest()


def verify_webhook_signature(secret: str, payload: Any, signature: str | None) -> bool:
    """
    Receiver-side check of an X-Webhook-Signature header.

    Compares in constant time. A missing or non-string signature is simply
    invalid.
    """
    if not secret or not isinstance(signature, str) or not signature:
        return False

    computed_sig = sign_payload(secret, payload)
    try:
        return hmac.compare_digest(signature.lower(), computed_sig)
    except TypeError:
        # compare_digest rejects non-ASCII str
        return False
