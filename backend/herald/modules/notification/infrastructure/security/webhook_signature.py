"""HMAC signatures for webhook deliveries.

The signature covers the exact bytes that are sent. Receivers recompute it
over the raw request body with the shared secret and compare the result with
the signature header in constant time.
"""

import hashlib
import hmac
import json
from typing import Any

SIGNATURE_PREFIX = "sha256="


def canonical_json(payload: dict[str, Any]) -> bytes:
    """Serialize a payload deterministically: sorted keys, compact separators."""
    return json.dumps(
        payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str
    ).encode("utf-8")


class WebhookSigner:
    """Signs and verifies webhook bodies with HMAC-SHA256."""

    def __init__(self, header_name: str = "X-Herald-Signature"):
        self.header_name = header_name

    @staticmethod
    def sign(secret: str, body: bytes) -> str:
        """
        Compute the signature header value for ``body``.

        Args:
            secret: Shared webhook secret of the receiving user
            body: Serialized request body

        Returns:
            ``sha256=<hex digest>``
        """
        digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
        return f"{SIGNATURE_PREFIX}{digest}"

    @classmethod
    def verify(cls, secret: str, body: bytes, signature: str | None) -> bool:
        """Check a received signature against the body, in constant time."""
        if not signature or not secret:
            return False
        expected = cls.sign(secret, body)
        return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))

    def headers(self, secret: str, body: bytes) -> dict[str, str]:
        return {self.header_name: self.sign(secret, body)}
