"""Range-checked integer conversions.

Upstream amounts are unsigned on the wire; downstream persistence stores
signed 64-bit integers. Every conversion goes through this module and
never wraps or truncates.
"""

from __future__ import annotations

from order_lifecycle.core.domain.errors import ProtocolError

I64_MAX: int = (1 << 63) - 1
I16_MAX: int = (1 << 15) - 1

U64_MAX: int = (1 << 64) - 1
U16_MAX: int = (1 << 16) - 1
U8_MAX: int = (1 << 8) - 1


def checked_u64_to_i64(value: int, field: str) -> int:
    """Return ``value`` unchanged if it fits a signed 64-bit integer."""
    if value < 0 or value > I64_MAX:
        raise ProtocolError(f"{field} value {value} is out of range for i64")
    return value


def checked_u16_to_i16(value: int, field: str) -> int:
    """Return ``value`` unchanged if it fits a signed 16-bit integer."""
    if value < 0 or value > I16_MAX:
        raise ProtocolError(f"{field} value {value} is out of range for i16")
    return value


def checked_optional_u64_to_i64(value: int | None, field: str) -> int | None:
    if value is None:
        return None
    return checked_u64_to_i64(value, field)
