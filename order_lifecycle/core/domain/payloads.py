"""Typed payloads extracted from resolved events.

All amounts are non-negative integers that fit a signed 64-bit column; the
adapters guarantee this through the checked conversions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from order_lifecycle.core.domain.taxonomy import TerminalStatus

UNKNOWN_COUNTERPARTY: str = "unknown"


@dataclass(frozen=True, slots=True)
class NoPayload:
    pass


@dataclass(frozen=True, slots=True)
class DcaFill:
    in_amount: int
    out_amount: int


@dataclass(frozen=True, slots=True)
class DcaClosed:
    status: TerminalStatus


@dataclass(frozen=True, slots=True)
class LimitFill:
    in_amount: int
    out_amount: int
    remaining_in_amount: int
    counterparty: str = UNKNOWN_COUNTERPARTY


@dataclass(frozen=True, slots=True)
class KaminoDisplay:
    """Cumulative fill snapshot reported by a Kamino display event."""

    remaining_input_amount: int
    filled_output_amount: int
    terminal_status: TerminalStatus | None = None


EventPayload = Union[NoPayload, DcaFill, DcaClosed, LimitFill, KaminoDisplay]


def payload_closed_status(payload: EventPayload) -> TerminalStatus | None:
    """Return the closure status carried by ``payload``, if any."""
    if isinstance(payload, DcaClosed):
        return payload.status
    if isinstance(payload, KaminoDisplay):
        return payload.terminal_status
    return None
