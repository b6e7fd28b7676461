"""Webhook signatures: base64-encoded HMAC-SHA256 of the raw request body."""

import base64
import hashlib
import hmac


def sign(payload: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), payload, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify(payload: bytes, signature: str | None, secret: str) -> bool:
    if not signature:
        return False
    return hmac.compare_digest(sign(payload, secret), signature)
