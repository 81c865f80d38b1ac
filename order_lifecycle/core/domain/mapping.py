"""Canonical mapping from event types to lifecycle transitions."""

from __future__ import annotations

from order_lifecycle.core.domain.correlation import CorrelationOutcome, NotRequired
from order_lifecycle.core.domain.order_state_machine import (
    ACTIVE_STATE,
    Close,
    Create,
    FillDelta,
    LifecycleTransition,
    MetadataOnly,
)
from order_lifecycle.core.domain.payloads import EventPayload, payload_closed_status
from order_lifecycle.core.domain.taxonomy import EventType, TerminalStatus

_FILL_EVENTS: frozenset[EventType] = frozenset({EventType.FILL_INITIATED, EventType.FILL_COMPLETED})
_METADATA_EVENTS: frozenset[EventType] = frozenset(
    {EventType.FEE_COLLECTED, EventType.WITHDRAWN, EventType.DEPOSITED}
)


def event_type_to_transition(
    event_type: EventType,
    closed_status: TerminalStatus | None = None,
) -> LifecycleTransition:
    """Map an event type to its lifecycle transition.

    ``closed_status`` only matters for Closed: it carries the terminal status
    derived from protocol fields (DCA close flags, Kamino display status).
    Closed without a status is metadata only.
    """
    if event_type is EventType.CREATED:
        return Create()
    if event_type in _FILL_EVENTS:
        return FillDelta()
    if event_type is EventType.CANCELLED:
        return Close(TerminalStatus.CANCELLED)
    if event_type is EventType.EXPIRED:
        return Close(TerminalStatus.EXPIRED)
    if event_type is EventType.CLOSED:
        if closed_status is None:
            return MetadataOnly()
        return Close(closed_status)
    if event_type in _METADATA_EVENTS:
        return MetadataOnly()
    raise ValueError(f"Unhandled event type: {event_type!r}")


def resolved_event_transition(
    event_type: EventType,
    correlation: CorrelationOutcome,
    payload: EventPayload,
) -> LifecycleTransition:
    """Transition for a resolved event, honouring correlation routing.

    NotRequired records are diagnostics and never mutate order state.
    """
    if isinstance(correlation, NotRequired):
        return MetadataOnly()
    return event_type_to_transition(event_type, payload_closed_status(payload))


def transition_to_display(transition: LifecycleTransition) -> str:
    """Human-readable form: ``Create``, ``FillDelta``, ``Close(Completed)``, ``MetadataOnly``."""
    if isinstance(transition, Close):
        return f"Close({transition.status.value.capitalize()})"
    return type(transition).__name__


def transition_target(transition: LifecycleTransition) -> str | None:
    """Status an order moves to when ``transition`` is applied, or None if unchanged."""
    if isinstance(transition, Create):
        return ACTIVE_STATE
    if isinstance(transition, Close):
        return transition.status.value
    return None
