"""Base58 public key helpers.

Only the subset consumed by the adapter layer: validating a textual key and
rendering a raw 32-byte key the way upstream decoders sometimes emit it.
"""

from __future__ import annotations

from typing import Any

import base58

PUBKEY_LENGTH: int = 32


def is_valid_pubkey(value: str) -> bool:
    """Return True if ``value`` is base58 text decoding to exactly 32 bytes."""
    if not isinstance(value, str) or not value:
        return False
    try:
        raw = base58.b58decode(value)
    except ValueError:
        return False
    return len(raw) == PUBKEY_LENGTH


def value_to_pubkey(value: Any) -> str | None:
    """Convert a JSON value to a base58 key string.

    Strings are returned as-is. A list of exactly 32 byte values is encoded.
    Anything else yields None.
    """
    if isinstance(value, str):
        return value
    if not isinstance(value, list):
        return None

    raw: list[int] = []
    for item in value:
        if isinstance(item, bool) or not isinstance(item, int):
            continue
        if 0 <= item <= 255:
            raw.append(item)

    if len(raw) != PUBKEY_LENGTH:
        return None
    return base58.b58encode(bytes(raw)).decode("ascii")
