"""JSON-ready protocol catalogue and payload key classifier.

These helpers back documentation and inspection tooling. They only look at
variant names; payload bodies are never decoded here.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from order_lifecycle.core.domain.mapping import event_type_to_transition, transition_to_display
from order_lifecycle.core.domain.order_state_machine import decide_transition
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.protocols import dca, kamino, limit_v1, limit_v2
from order_lifecycle.protocols.envelope import InstructionKind

_INSTRUCTION_MAPS: dict[Protocol, Mapping[InstructionKind, EventType | None]] = {
    Protocol.DCA: dca.INSTRUCTION_EVENT_TYPES,
    Protocol.LIMIT_V1: limit_v1.INSTRUCTION_EVENT_TYPES,
    Protocol.LIMIT_V2: limit_v2.INSTRUCTION_EVENT_TYPES,
    Protocol.KAMINO: kamino.INSTRUCTION_EVENT_TYPES,
}

_EVENT_MAPS: dict[Protocol, Mapping[str, EventType]] = {
    Protocol.DCA: dca.EVENT_EVENT_TYPES,
    Protocol.LIMIT_V1: limit_v1.EVENT_EVENT_TYPES,
    Protocol.LIMIT_V2: limit_v2.EVENT_EVENT_TYPES,
    Protocol.KAMINO: kamino.EVENT_EVENT_TYPES,
}

CLOSED_VARIANTS: tuple[str, ...] = tuple(status.value for status in TerminalStatus)


def instruction_event_types(protocol: Protocol) -> dict[str, EventType]:
    """Instruction names of ``protocol`` that map to an event type."""
    return {
        kind.value: event_type
        for kind, event_type in _INSTRUCTION_MAPS[protocol].items()
        if event_type is not None
    }


def event_event_types(protocol: Protocol) -> dict[str, EventType]:
    return dict(_EVENT_MAPS[protocol])


def protocol_catalog() -> list[dict[str, Any]]:
    """Describe every supported protocol as a JSON-ready dict."""
    return [
        {
            "id": protocol.value,
            "program_id": protocol.program_id,
            "instructions": {name: et.value for name, et in instruction_event_types(protocol).items()},
            "events": {name: et.value for name, et in event_event_types(protocol).items()},
            "closed_variants": list(CLOSED_VARIANTS),
        }
        for protocol in Protocol
    ]


def _error(message: str) -> dict[str, Any]:
    return {"error": message}


def _classification(variant_name: str, source: str, event_type: EventType) -> dict[str, Any]:
    transition = event_type_to_transition(event_type)
    return {
        "variant_name": variant_name,
        "source": source,
        "event_type": event_type.value,
        "transition": transition_to_display(transition),
        "decision": decide_transition(None, transition).value,
    }


def classify_variant(protocol: Protocol | str, payload: Any) -> dict[str, Any]:
    """Classify a one-key payload by its variant name.

    ``payload`` is a decoded JSON object or its text. The result describes
    the variant (event names win over instruction names) together with the
    transition and the decision it would get against a fresh order. Failures
    come back as ``{"error": ...}`` rather than exceptions.
    """
    proto = protocol if isinstance(protocol, Protocol) else Protocol.parse(protocol)
    if proto is None:
        return _error("Unknown protocol")

    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            return _error("Invalid JSON")

    if not isinstance(payload, dict) or not payload:
        return _error("Expected a JSON object with a variant key")

    variant_name = next(iter(payload))
    events = event_event_types(proto)
    if variant_name in events:
        return _classification(variant_name, "event", events[variant_name])

    instructions = instruction_event_types(proto)
    if variant_name in instructions:
        return _classification(variant_name, "instruction", instructions[variant_name])

    return _error(
        f'Unknown variant "{variant_name}". '
        f"Known events: {', '.join(events)}. "
        f"Known instructions: {', '.join(instructions)}."
    )
