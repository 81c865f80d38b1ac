"""
Semantic test: amount overflow at every adapter boundary.

Invariant:
An unsigned amount equal to i64::MAX + 1 is a protocol error naming the
field; amounts at i64::MAX pass through unchanged.
"""

from __future__ import annotations

from typing import Any

import pytest

from order_lifecycle.core.domain.conversions import I64_MAX, U64_MAX
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.taxonomy import Protocol
from order_lifecycle.core.domain.types import RawEvent, ResolveContext
from order_lifecycle.protocols.registry import adapter_for

OVER = I64_MAX + 1
CTX = ResolveContext(pre_fetched_order_pdas=["p"])


def resolve(protocol: Protocol, fields: Any):
    ev = RawEvent(
        signature="sig",
        event_index=0,
        program_id=protocol.program_id,
        inner_program_id=protocol.program_id,
        event_name="Probe",
        fields=fields,
        slot=1,
    )
    return adapter_for(protocol).classify_and_resolve_event(ev, CTX)


def dca_filled(**amounts: int) -> dict[str, Any]:
    return {"FilledEvent": {"dca_key": "o1", "in_amount": 1, "out_amount": 1, **amounts}}


def limit_trade(**amounts: int) -> dict[str, Any]:
    body = {
        "order_key": "k",
        "taker": "t",
        "making_amount": 1,
        "taking_amount": 1,
        "remaining_making_amount": 1,
        "remaining_taking_amount": 1,
    }
    body.update(amounts)
    return {"TradeEvent": body}


def kamino_display(**amounts: int) -> dict[str, Any]:
    body = {"remaining_input_amount": 1, "filled_output_amount": 1, "number_of_fills": 1, "status": 0}
    body.update(amounts)
    return {"OrderDisplayEvent": body}


@pytest.mark.parametrize(
    ("protocol", "fields", "field_name"),
    [
        (Protocol.DCA, dca_filled(in_amount=OVER), "in_amount"),
        (Protocol.DCA, dca_filled(out_amount=OVER), "out_amount"),
        (Protocol.DCA, {"ClosedEvent": {"dca_key": "o1", "user_closed": False, "unfilled_amount": OVER}}, "unfilled_amount"),
        (Protocol.LIMIT_V1, limit_trade(making_amount=OVER), "making_amount"),
        (Protocol.LIMIT_V1, limit_trade(taking_amount=OVER), "taking_amount"),
        (Protocol.LIMIT_V1, limit_trade(remaining_making_amount=OVER), "remaining_making_amount"),
        (Protocol.LIMIT_V2, limit_trade(making_amount=OVER), "making_amount"),
        (Protocol.LIMIT_V2, limit_trade(taking_amount=OVER), "taking_amount"),
        (Protocol.LIMIT_V2, limit_trade(remaining_making_amount=OVER), "remaining_making_amount"),
        (Protocol.KAMINO, kamino_display(remaining_input_amount=OVER), "remaining_input_amount"),
        (Protocol.KAMINO, kamino_display(filled_output_amount=OVER), "filled_output_amount"),
    ],
)
def test_overflow_names_field(protocol: Protocol, fields: dict[str, Any], field_name: str) -> None:
    with pytest.raises(ProtocolError) as exc_info:
        resolve(protocol, fields)

    reason = exc_info.value.reason
    assert field_name in reason
    assert str(OVER) in reason


@pytest.mark.parametrize(
    ("protocol", "fields"),
    [
        (Protocol.DCA, dca_filled(in_amount=I64_MAX, out_amount=I64_MAX)),
        (Protocol.LIMIT_V2, limit_trade(making_amount=I64_MAX)),
        (Protocol.KAMINO, kamino_display(filled_output_amount=I64_MAX)),
    ],
)
def test_i64_max_is_accepted(protocol: Protocol, fields: dict[str, Any]) -> None:
    assert resolve(protocol, fields) is not None


def test_unused_amounts_may_exceed_i64() -> None:
    # remaining_taking_amount is decoded but never surfaced.
    resolved = resolve(Protocol.LIMIT_V2, limit_trade(remaining_taking_amount=U64_MAX))
    assert resolved is not None


def test_above_u64_is_a_decode_failure() -> None:
    with pytest.raises(ProtocolError, match="failed to parse DCA event payload"):
        resolve(Protocol.DCA, dca_filled(in_amount=U64_MAX + 1))
