"""
Standard Webhooks signature verification.

The auth provider signs hook calls with HMAC-SHA256 over
"{webhook-id}.{webhook-timestamp}.{body}" using a base64 secret that is
distributed as "v1,whsec_<base64>" or "whsec_<base64>". The
webhook-signature header holds one or more space separated "v1,<sig>"
entries.

Reference: https://www.standardwebhooks.com/
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import time
from collections.abc import Mapping
from typing import Any

TOLERANCE_SECONDS = 5 * 60


class WebhookVerificationError(Exception):
    """Raised when a webhook signature does not verify."""


def _secret_bytes(secret: str) -> bytes:
    for prefix in ("v1,", "whsec_"):
        if secret.startswith(prefix):
            secret = secret[len(prefix):]
    try:
        return base64.b64decode(secret, validate=True)
    except binascii.Error as e:
        raise WebhookVerificationError("Invalid webhook secret") from e


def sign(secret: str, msg_id: str, timestamp: int, body: bytes) -> str:
    """Return the "v1,<base64>" signature for a payload."""
    to_sign = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), to_sign, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode("ascii")


def verify(
    secret: str,
    body: bytes,
    headers: Mapping[str, str],
    *,
    now: float | None = None,
) -> dict[str, Any]:
    """
    Verify a signed webhook and return the decoded JSON body.

    Raises:
        WebhookVerificationError: On missing headers, a stale timestamp,
            a signature mismatch or a body that is not JSON.
    """
    msg_id = headers.get("webhook-id")
    msg_timestamp = headers.get("webhook-timestamp")
    msg_signature = headers.get("webhook-signature")
    if not (msg_id and msg_timestamp and msg_signature):
        raise WebhookVerificationError("Missing required headers")

    try:
        timestamp = int(msg_timestamp)
    except ValueError as e:
        raise WebhookVerificationError("Invalid Signature Headers") from e

    current = time.time() if now is None else now
    if abs(current - timestamp) > TOLERANCE_SECONDS:
        raise WebhookVerificationError("Message timestamp outside tolerance")

    expected = sign(secret, msg_id, timestamp, body).split(",", 1)[1]
    for entry in msg_signature.split(" "):
        version, _, signature = entry.partition(",")
        if version == "v1" and hmac.compare_digest(signature, expected):
            break
    else:
        raise WebhookVerificationError("No matching signature found")

    try:
        return json.loads(body)
    except ValueError as e:
        raise WebhookVerificationError("Body is not JSON") from e
