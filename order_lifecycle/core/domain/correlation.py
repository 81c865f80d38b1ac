"""Correlation outcomes.

Correlation is tri-state so callers can route each case without inspecting
payload shapes:

- NotRequired: protocol-level diagnostic, not tied to a specific order.
- Correlated: one or more order identifiers the record applies to.
- Uncorrelated: correlation was required but could not be satisfied from the
  record alone; the caller may recover out-of-band.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Union


@dataclass(frozen=True, slots=True)
class NotRequired:
    pass


@dataclass(frozen=True, slots=True)
class Correlated:
    order_ids: tuple[str, ...]

    def __post_init__(self) -> None:
        ids = tuple(self.order_ids)
        if not ids:
            raise ValueError("Correlated requires at least one order id")
        if any(not order_id for order_id in ids):
            raise ValueError("Correlated order ids must be non-empty")
        object.__setattr__(self, "order_ids", ids)

    @classmethod
    def one(cls, order_id: str) -> Correlated:
        return cls((order_id,))

    @classmethod
    def many(cls, order_ids: Iterable[str]) -> Correlated:
        return cls(tuple(order_ids))


@dataclass(frozen=True, slots=True)
class Uncorrelated:
    reason: str


CorrelationOutcome = Union[NotRequired, Correlated, Uncorrelated]


def correlated_ids(outcome: CorrelationOutcome) -> tuple[str, ...]:
    """Return the order ids of a Correlated outcome, or an empty tuple."""
    if isinstance(outcome, Correlated):
        return outcome.order_ids
    return ()
