"""Slack request signature verification."""

from __future__ import annotations

import hashlib
import hmac

SIGNATURE_VERSION = "v0"


def compute_slack_signature(body: str, timestamp: str, signing_secret: str) -> str:
    base = f"{SIGNATURE_VERSION}:{timestamp}:{body}"
    digest = hmac.new(signing_secret.encode(), base.encode(), hashlib.sha256).hexdigest()
    return f"{SIGNATURE_VERSION}={digest}"


def verify_slack_signature(body: str, signature: str, timestamp: str, signing_secret: str) -> bool:
    """Check an ``X-Slack-Signature`` header against the raw request body."""

    expected = compute_slack_signature(body, timestamp, signing_secret)
    return hmac.compare_digest(expected, signature)


__all__ = ["compute_slack_signature", "verify_slack_signature"]
