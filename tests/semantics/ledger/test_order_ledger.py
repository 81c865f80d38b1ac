"""
Semantic test: in-memory order ledger.

Invariant:
The ledger applies only what the engine admits, logs every decision per
order and publishes it on the event bus.
"""

from __future__ import annotations

from typing import Any

import pytest

from order_lifecycle.core.config.ledger_config import LedgerConfig
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.order_state_machine import Close, MetadataOnly, TransitionDecision
from order_lifecycle.core.domain.state import OrderLedger
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.core.domain.types import RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.events.event_bus import EventBus
from order_lifecycle.core.events.events import (
    OrderTransitionEvent,
    SnapshotRegressionEvent,
    UncorrelatedRecordEvent,
)


class _RecordingSink:
    def __init__(self) -> None:
        self.events: list[Any] = []

    def on_event(self, event: Any) -> None:
        self.events.append(event)


def mk_event(protocol: Protocol, fields: Any, signature: str = "sig") -> RawEvent:
    return RawEvent(
        signature=signature,
        event_index=0,
        program_id=protocol.program_id,
        inner_program_id=protocol.program_id,
        event_name=next(iter(fields)) if isinstance(fields, dict) and fields else "Unknown",
        fields=fields,
        slot=1,
    )


def mk_instruction(protocol: Protocol, name: str, accounts: Any) -> RawInstruction:
    return RawInstruction(
        signature="ixSig",
        instruction_index=0,
        program_id=protocol.program_id,
        inner_program_id=protocol.program_id,
        instruction_name=name,
        accounts=accounts,
        slot=1,
    )


def display(filled: int, status: int = 0) -> dict[str, Any]:
    return {"OrderDisplayEvent": {"remaining_input_amount": 10, "filled_output_amount": filled, "number_of_fills": 1, "status": status}}


def test_dca_replay_accumulates_fills_and_absorbs_late_records() -> None:
    sink = _RecordingSink()
    ledger = OrderLedger(event_bus=EventBus([sink]))

    ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"OpenedEvent": {"dca_key": "o1"}}))
    ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"FilledEvent": {"dca_key": "o1", "in_amount": 1000, "out_amount": 50}}))
    ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"FilledEvent": {"dca_key": "o1", "in_amount": 1000, "out_amount": 50}}))
    ledger.apply_event(
        Protocol.DCA,
        mk_event(Protocol.DCA, {"ClosedEvent": {"dca_key": "o1", "user_closed": False, "unfilled_amount": 0}}),
    )
    (late,) = ledger.apply_event(
        Protocol.DCA, mk_event(Protocol.DCA, {"FilledEvent": {"dca_key": "o1", "in_amount": 1, "out_amount": 1}})
    )

    order = ledger.order("o1")
    assert order is not None
    assert order.status == "completed"
    assert order.terminal_status is TerminalStatus.COMPLETED
    assert order.fill_count == 2
    assert (order.filled_in_amount, order.filled_out_amount) == (2000, 100)

    assert late.decision is TransitionDecision.IGNORE_TERMINAL_VIOLATION
    assert late.from_status == late.to_status == "completed"
    assert [entry.transition for entry in order.log] == [
        "Create",
        "FillDelta",
        "FillDelta",
        "Close(Completed)",
        "FillDelta",
    ]
    assert [entry.step for entry in order.log] == [1, 2, 3, 4, 5]

    transitions = [e for e in sink.events if isinstance(e, OrderTransitionEvent)]
    assert len(transitions) == 5
    assert transitions[0].from_status is None and transitions[0].to_status == "active"
    assert transitions[-1].decision == "IgnoreTerminalViolation"
    assert transitions[-1].event_type == "fill_completed"


def test_metadata_after_terminal_is_applied_without_status_change() -> None:
    ledger = OrderLedger()
    ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"OpenedEvent": {"dca_key": "o1"}}))
    ledger.apply_event(
        Protocol.DCA,
        mk_event(Protocol.DCA, {"ClosedEvent": {"dca_key": "o1", "user_closed": False, "unfilled_amount": 1000}}),
    )
    (fee,) = ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"CollectedFeeEvent": {"dca_key": "o1"}}))

    assert fee.decision is TransitionDecision.APPLY
    assert fee.transition == "MetadataOnly"
    assert ledger.status_of("o1") == "expired"


def test_limit_fill_tracks_remaining_and_counterparty() -> None:
    ledger = OrderLedger()
    trade = {
        "TradeEvent": {
            "order_key": "k",
            "taker": "t",
            "making_amount": 100,
            "taking_amount": 10,
            "remaining_making_amount": 900,
            "remaining_taking_amount": 90,
        }
    }
    (entry,) = ledger.apply_event(Protocol.LIMIT_V2, mk_event(Protocol.LIMIT_V2, trade))

    order = ledger.order("k")
    assert entry.from_status is None and entry.to_status == "active"
    assert order.remaining_in_amount == 900
    assert order.counterparty == "t"


def test_kamino_snapshots_become_deltas() -> None:
    sink = _RecordingSink()
    ledger = OrderLedger(event_bus=EventBus([sink]))
    ctx = ResolveContext(pre_fetched_order_pdas=["p"])

    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100)), ctx)
    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(80)), ctx)
    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(150)), ctx)

    order = ledger.order("p")
    assert order.filled_out_amount == 150
    assert order.fill_count == 3
    assert order.status == "active"

    regressions = [e for e in sink.events if isinstance(e, SnapshotRegressionEvent)]
    assert regressions == [
        SnapshotRegressionEvent(step=2, protocol="kamino", order_id="p", stored_total=100, snapshot_total=80)
    ]


def test_kamino_terminal_display_closes_order() -> None:
    ledger = OrderLedger()
    ctx = ResolveContext(pre_fetched_order_pdas=["p"])

    fill, close = ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100, status=1)), ctx)
    assert fill.transition == "FillDelta"
    assert close.transition == "Close(Completed)"
    assert close.to_status == "completed"
    assert ledger.order("p").closed
    assert ledger.status_of("p") == "completed"
    assert ledger.order("p").filled_out_amount == 100

    (late,) = ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(150, status=1)), ctx)
    assert late.decision is TransitionDecision.IGNORE_TERMINAL_VIOLATION
    assert ledger.order("p").filled_out_amount == 100

    tip = ledger.apply_instruction(
        Protocol.KAMINO,
        mk_instruction(Protocol.KAMINO, "CloseOrderAndClaimTip", [{"pubkey": "p", "name": "order"}]),
    )
    assert tip.transition == "MetadataOnly"
    assert ledger.status_of("p") == "completed"


@pytest.mark.parametrize(("code", "status"), [(2, "cancelled"), (3, "expired")])
def test_kamino_display_terminal_codes(code: int, status: str) -> None:
    ledger = OrderLedger()
    ctx = ResolveContext(pre_fetched_order_pdas=["p"])

    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(5, status=code)), ctx)
    assert ledger.status_of("p") == status


def test_duplicate_prefetched_ids_apply_once() -> None:
    ledger = OrderLedger()
    ctx = ResolveContext(pre_fetched_order_pdas=["p", "p"])

    (entry,) = ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100)), ctx)
    assert entry.applied
    assert ledger.order("p").fill_count == 1
    assert ledger.order("p").filled_out_amount == 100


def test_regression_tracking_can_be_disabled() -> None:
    sink = _RecordingSink()
    ledger = OrderLedger(config=LedgerConfig(track_regressions=False), event_bus=EventBus([sink]))
    ctx = ResolveContext(pre_fetched_order_pdas=["p"])

    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100)), ctx)
    ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(80)), ctx)

    assert not [e for e in sink.events if isinstance(e, SnapshotRegressionEvent)]
    assert ledger.order("p").filled_out_amount == 100


def test_uncorrelated_display_policy() -> None:
    sink = _RecordingSink()
    ledger = OrderLedger(event_bus=EventBus([sink]))

    assert ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100), signature="5k")) == []
    assert len(ledger) == 0
    (event,) = sink.events
    assert isinstance(event, UncorrelatedRecordEvent)
    assert event.signature == "5k"
    assert event.event_type == EventType.FILL_COMPLETED.value

    strict = OrderLedger(config=LedgerConfig(on_uncorrelated="raise"))
    with pytest.raises(ProtocolError, match="5k"):
        strict.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, display(100), signature="5k"))


def test_diagnostic_records_touch_no_order() -> None:
    ledger = OrderLedger()
    swap = {"UserSwapBalancesEvent": {"balance": 1}}

    assert ledger.apply_event(Protocol.KAMINO, mk_event(Protocol.KAMINO, swap)) == []
    assert len(ledger) == 0


def test_unknown_record_policy() -> None:
    foreign = mk_event(Protocol.DCA, {"ForeignEvent": {}})
    admin = mk_instruction(Protocol.DCA, "WithdrawFees", [{"pubkey": "a"}])

    lenient = OrderLedger()
    assert lenient.apply_event(Protocol.DCA, foreign) == []
    assert lenient.apply_instruction(Protocol.DCA, admin) is None

    strict = OrderLedger(config=LedgerConfig(on_unknown_record="raise"))
    with pytest.raises(ProtocolError, match="ForeignEvent"):
        strict.apply_event(Protocol.DCA, foreign)
    with pytest.raises(ProtocolError, match="WithdrawFees"):
        strict.apply_instruction(Protocol.DCA, admin)


def test_malformed_known_record_propagates() -> None:
    ledger = OrderLedger()
    with pytest.raises(ProtocolError, match="failed to parse DCA event payload"):
        ledger.apply_event(Protocol.DCA, mk_event(Protocol.DCA, {"FilledEvent": {"dca_key": "o1"}}))


def test_instruction_driven_limit_v2_replay() -> None:
    ledger = OrderLedger()
    accounts = [{"pubkey": "maker", "is_signer": True}, {"pubkey": "x"}, {"pubkey": "orderPda"}]

    for name in ("InitializeOrder", "FlashFillOrder", "CancelOrder"):
        entry = ledger.apply_instruction(Protocol.LIMIT_V2, mk_instruction(Protocol.LIMIT_V2, name, accounts))
        assert entry is not None and entry.applied

    late = ledger.apply_instruction(Protocol.LIMIT_V2, mk_instruction(Protocol.LIMIT_V2, "FlashFillOrder", accounts))
    assert late is not None and not late.applied
    assert late.signature == "ixSig"
    assert ledger.status_of("orderPda") == "cancelled"
    assert ledger.order("orderPda").protocol is Protocol.LIMIT_V2


def test_close_instruction_without_status_is_metadata() -> None:
    ledger = OrderLedger()
    accounts = [{"pubkey": "user"}, {"pubkey": "dcaPda"}]

    entry = ledger.apply_instruction(Protocol.DCA, mk_instruction(Protocol.DCA, "CloseDca", accounts))

    assert entry is not None
    assert entry.transition == "MetadataOnly"
    assert ledger.status_of("dcaPda") is None


def test_disabled_protocol_is_rejected() -> None:
    ledger = OrderLedger(config=LedgerConfig(protocols=[Protocol.DCA]))

    with pytest.raises(ProtocolError, match="limit_v1"):
        ledger.apply_event(Protocol.LIMIT_V1, mk_event(Protocol.LIMIT_V1, {"CreateOrderEvent": {"order_key": "k"}}))


def test_apply_transition_directly() -> None:
    ledger = OrderLedger()

    first = ledger.apply_transition("x", Close(TerminalStatus.CANCELLED))
    second = ledger.apply_transition("x", Close(TerminalStatus.COMPLETED))
    third = ledger.apply_transition("x", MetadataOnly())

    assert first.applied and first.to_status == "cancelled"
    assert not second.applied and second.to_status == "cancelled"
    assert third.applied
    assert "x" in ledger
    assert ledger.order_ids() == ["x"]
    assert ledger.step == 3

    with pytest.raises(ValueError):
        ledger.apply_transition("", MetadataOnly())
