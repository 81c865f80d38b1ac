"""
Ledger event models.

Immutable facts recorded while an order ledger replays decoded records.
Enumerations are stored by their boundary string form so the events
serialise as plain JSON.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class OrderTransitionEvent:
    step: int
    protocol: str
    order_id: str
    signature: str | None

    event_type: str | None
    transition: str
    decision: str

    from_status: str | None
    to_status: str | None


@dataclass(frozen=True, slots=True)
class SnapshotRegressionEvent:
    step: int
    protocol: str
    order_id: str

    stored_total: int
    snapshot_total: int


@dataclass(frozen=True, slots=True)
class UncorrelatedRecordEvent:
    step: int
    protocol: str
    signature: str
    event_type: str

    reason: str
