# Overview: Service-layer operations for identifiers; pure code generation and validation.

"""
Identifier Service - item code generation and verification

WHY: Item codes are the primary identity of an item and get typed in or
scanned at the counter. A trailing check digit catches transcription errors
before they turn into a wrong stock movement.

FORMAT (generated item codes, EAN-13 compatible):
- 3-digit internal-use prefix (default "799")
- 9 digits from a cryptographically secure source
- 1 check digit: weighted sum of the first 12 digits (weight 1 at even
  0-based index, 3 at odd), check = (10 - sum % 10) % 10

Internal codes ("PRD-12345-678") are best-effort unique only; the caller
must check them against existing items before accepting one.

No database access here: every function is pure over the random/time source.
"""

from __future__ import annotations

import secrets
import time

ITEM_CODE_LENGTH = 13
DEFAULT_ITEM_CODE_PREFIX = "799"
DEFAULT_INTERNAL_CODE_PREFIX = "PRD"


def compute_check_digit(digits: str) -> int:
    """Mod-10 check digit over a string of decimal digits."""
    total = 0
    for index, char in enumerate(digits):
        digit = int(char)
        total += digit if index % 2 == 0 else digit * 3
    return (10 - (total % 10)) % 10


def new_item_code(prefix: str = DEFAULT_ITEM_CODE_PREFIX) -> str:
    """Generate a fresh checksum-bearing item code."""
    if not prefix.isdigit() or len(prefix) >= ITEM_CODE_LENGTH - 1:
        raise ValueError("item code prefix must be a short string of digits")

    random_len = ITEM_CODE_LENGTH - 1 - len(prefix)
    body = prefix + "".join(str(secrets.randbelow(10)) for _ in range(random_len))
    return body + str(compute_check_digit(body))


def validate_item_code(code) -> bool:
    """
    True when `code` is a well-formed item code with a matching check digit.

    Malformed input (None, wrong length, non-digits) yields False, never an error.
    """
    if not isinstance(code, str):
        return False
    if len(code) != ITEM_CODE_LENGTH or not code.isascii() or not code.isdigit():
        return False
    return compute_check_digit(code[:-1]) == int(code[-1])


def new_internal_code(prefix: str | None = DEFAULT_INTERNAL_CODE_PREFIX) -> str:
    """Secondary code: prefix, a time-derived component and a small random suffix."""
    millis = int(time.time() * 1000) % 100000
    suffix = secrets.randbelow(1000)
    return f"{prefix or DEFAULT_INTERNAL_CODE_PREFIX}-{millis:05d}-{suffix:03d}"
