"""Protocol adapter capability.

This module defines the boundary every protocol adapter implements. Concrete
adapters live in ``order_lifecycle.protocols`` and are stateless values.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, NamedTuple, Protocol

if TYPE_CHECKING:
    from order_lifecycle.core.domain.correlation import CorrelationOutcome
    from order_lifecycle.core.domain.payloads import EventPayload
    from order_lifecycle.core.domain.taxonomy import EventType
    from order_lifecycle.core.domain.taxonomy import Protocol as ProtocolId
    from order_lifecycle.core.domain.types import RawEvent, RawInstruction, ResolveContext


class ResolvedEvent(NamedTuple):
    """Classification, correlation and payload of one event record."""

    event_type: EventType
    correlation: CorrelationOutcome
    payload: EventPayload


class ProtocolAdapter(Protocol):
    """Per-protocol classifier and resolver.

    Implementations own the JSON envelope shape of their protocol and must
    not hold mutable state.
    """

    def protocol(self) -> ProtocolId:
        """Return the protocol this adapter handles."""

    def classify_instruction(self, ix: RawInstruction) -> EventType | None:
        """Return the event type of a named instruction.

        None for known-but-irrelevant and for unknown instructions.
        """

    def classify_and_resolve_event(
        self,
        ev: RawEvent,
        ctx: ResolveContext,
    ) -> ResolvedEvent | None:
        """Classify an event and resolve its correlation and payload.

        Returns None when the payload is absent or carries no known variant.
        Raises ProtocolError when a known variant fails to decode or carries
        overflowing amounts.
        """
