"""
Semantic test: Limit v1 classification.

Invariant:
Trade events decode under both v1 and v2 amount names and surface the taker
as the counterparty ("unknown" when absent).
"""

from __future__ import annotations

from typing import Any

import pytest

from order_lifecycle.core.domain.correlation import Correlated
from order_lifecycle.core.domain.payloads import LimitFill, NoPayload
from order_lifecycle.core.domain.taxonomy import LIMIT_V1_PROGRAM_ID, EventType
from order_lifecycle.core.domain.types import RawEvent, RawInstruction, ResolveContext
from order_lifecycle.protocols.limit_v1 import LimitV1Adapter

ADAPTER = LimitV1Adapter()


def mk_instruction(name: str) -> RawInstruction:
    return RawInstruction(
        signature="sig",
        instruction_index=1,
        program_id=LIMIT_V1_PROGRAM_ID,
        inner_program_id=LIMIT_V1_PROGRAM_ID,
        instruction_name=name,
        slot=10,
    )


def resolve(fields: Any):
    ev = RawEvent(
        signature="sig",
        event_index=0,
        program_id=LIMIT_V1_PROGRAM_ID,
        inner_program_id=LIMIT_V1_PROGRAM_ID,
        event_name="TradeEvent",
        fields=fields,
        slot=10,
    )
    return ADAPTER.classify_and_resolve_event(ev, ResolveContext.empty())


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("InitializeOrder", EventType.CREATED),
        ("PreFlashFillOrder", EventType.FILL_INITIATED),
        ("FillOrder", EventType.FILL_COMPLETED),
        ("FlashFillOrder", EventType.FILL_COMPLETED),
        ("CancelOrder", EventType.CANCELLED),
        ("CancelExpiredOrder", EventType.EXPIRED),
        ("WithdrawFee", None),
        ("InitFee", None),
        ("UpdateFee", None),
        ("OpenDca", None),
    ],
)
def test_limit_v1_instruction_map(name: str, expected: EventType | None) -> None:
    assert ADAPTER.classify_instruction(mk_instruction(name)) is expected


def test_limit_v1_key_only_events() -> None:
    created = resolve({"CreateOrderEvent": {"order_key": "k", "maker": "m"}})
    cancelled = resolve({"CancelOrderEvent": {"order_key": "k"}})

    assert created == (EventType.CREATED, Correlated.one("k"), NoPayload())
    assert cancelled == (EventType.CANCELLED, Correlated.one("k"), NoPayload())


def test_limit_v1_trade_with_v2_style_names() -> None:
    resolved = resolve(
        {
            "TradeEvent": {
                "order_key": "k",
                "taker": "t",
                "making_amount": 100,
                "taking_amount": 10,
                "remaining_making_amount": 900,
                "remaining_taking_amount": 90,
            }
        }
    )

    assert resolved is not None
    assert resolved.event_type is EventType.FILL_COMPLETED
    assert resolved.payload == LimitFill(in_amount=100, out_amount=10, remaining_in_amount=900, counterparty="t")


def test_limit_v1_trade_with_v1_style_names() -> None:
    resolved = resolve(
        {"TradeEvent": {"order_key": "k", "taker": "t", "in_amount": 7, "out_amount": 3, "remaining_in_amount": 1}}
    )

    assert resolved is not None
    assert resolved.payload == LimitFill(in_amount=7, out_amount=3, remaining_in_amount=1, counterparty="t")


def test_limit_v1_taker_defaults_to_unknown() -> None:
    resolved = resolve({"TradeEvent": {"order_key": "k", "making_amount": 1, "taking_amount": 1}})

    assert resolved is not None
    assert resolved.payload.counterparty == "unknown"
    assert resolved.payload.remaining_in_amount == 0
