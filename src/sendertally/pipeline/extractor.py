"""Sender address extraction from raw From header values."""

from __future__ import annotations

import re

# Deliberately loose: tolerates display names, angle brackets, quoting and
# provider formatting quirks. Not RFC 5322.
SENDER_PATTERN = re.compile(r"[\w.-]+@[\w.-]+")


def extract_sender(raw: str | None) -> str | None:
    """Return the first address-like token in ``raw``, lower-cased.

    'Jane Doe <Jane@X.com>' -> 'jane@x.com'. Returns None for a missing
    header, non-string input, or text with no match.
    """
    if not isinstance(raw, str):
        return None
    match = SENDER_PATTERN.search(raw)
    if match is None:
        return None
    return match.group(0).lower()
