"""HMAC-SHA256 signing of outbound webhook bodies."""

import hashlib
import hmac
import secrets

SIGNATURE_PREFIX = "sha256="
SECRET_PREFIX = "whsec_"


def _to_bytes(value: str | bytes) -> bytes:
    return value if isinstance(value, bytes) else value.encode("utf-8")


def sign_payload(secret: str | bytes, body: str | bytes) -> str:
    """Hex HMAC-SHA256 of ``body`` keyed by ``secret``.

    ``body`` must be the exact bytes sent on the wire.
    """
    return hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()


def signature_header(secret: str | None, body: str | bytes) -> str | None:
    """``sha256=<hex>`` for the signature header, or None when the webhook has no secret."""
    if secret is None:
        return None
    return f"{SIGNATURE_PREFIX}{sign_payload(secret, body)}"


def verify_signature(secret: str | bytes, body: str | bytes, signature: str) -> bool:
    """Receiver-side check; accepts ``sha256=<hex>`` or the bare hex digest."""
    if not signature:
        return False
    if signature.startswith(SIGNATURE_PREFIX):
        signature = signature[len(SIGNATURE_PREFIX):]
    return hmac.compare_digest(sign_payload(secret, body), signature.strip().lower())


def generate_secret() -> str:
    """Fresh signing secret for webhooks created without one."""
    return f"{SECRET_PREFIX}{secrets.token_urlsafe(24)}"
