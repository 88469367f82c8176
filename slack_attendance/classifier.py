"""Classify Slack messages as check-ins, check-outs or anything else."""

from __future__ import annotations

import re

from .models import CHECKIN, CHECKOUT, OTHER

CHECKIN_PATTERNS = [
    re.compile(r"^(checkin|check in|check-in|ci|in)$", re.IGNORECASE),
    re.compile(r"^(good morning|gm|morning)$", re.IGNORECASE),
    re.compile(r"^(starting|start|begin)$", re.IGNORECASE),
    re.compile(r"^(here|present|arrived)$", re.IGNORECASE),
]
CHECKOUT_PATTERNS = [
    re.compile(r"^(checkout|check out|check-out|co|out)$", re.IGNORECASE),
    re.compile(r"^(good night|gn|night)$", re.IGNORECASE),
    re.compile(r"^(done|finished|complete|ending|end)$", re.IGNORECASE),
    re.compile(r"^(leaving|bye|goodbye)$", re.IGNORECASE),
]


def classify_message(text: str) -> str:
    """Return the message type for a Slack message body.

    Only messages that consist entirely of one of the known phrases count;
    anything longer is ``other``.
    """

    normalized = text.strip().lower()
    if any(pattern.match(normalized) for pattern in CHECKIN_PATTERNS):
        return CHECKIN
    if any(pattern.match(normalized) for pattern in CHECKOUT_PATTERNS):
        return CHECKOUT
    return OTHER


__all__ = ["CHECKIN_PATTERNS", "CHECKOUT_PATTERNS", "classify_message"]
