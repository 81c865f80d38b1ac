"""In-memory order ledger.

This module replays decoded records against per-order state: it classifies
each record with the protocol adapters, maps it to a lifecycle transition,
asks the engine whether the transition may be applied and then applies it.
It is the only stateful component of the package; the adapters and the
engine stay pure and can be used without it.

Callers must serialise the records they apply to a single ledger.
"""

# pylint: disable=too-many-arguments,too-many-instance-attributes
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from order_lifecycle.core.config.ledger_config import LedgerConfig
from order_lifecycle.core.domain.correlation import NotRequired, Uncorrelated, correlated_ids
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.mapping import (
    event_type_to_transition,
    resolved_event_transition,
    transition_to_display,
)
from order_lifecycle.core.domain.order_state_machine import (
    ACTIVE_STATE,
    Close,
    Create,
    FillDelta,
    LifecycleTransition,
    TransitionDecision,
    decide_transition,
    is_terminal_state,
    normalize_snapshot_to_delta,
)
from order_lifecycle.core.domain.payloads import DcaFill, EventPayload, KaminoDisplay, LimitFill, NoPayload
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.core.domain.types import RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.events.events import (
    OrderTransitionEvent,
    SnapshotRegressionEvent,
    UncorrelatedRecordEvent,
)
from order_lifecycle.core.events.sinks.null_event_bus import NullEventBus
from order_lifecycle.protocols.helpers import parse_accounts
from order_lifecycle.protocols.registry import adapter_for, extract_order_pda

if TYPE_CHECKING:
    from order_lifecycle.core.events.event_bus import EventBus

LOGGER = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Ledger state models
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """One decision taken for one order."""

    step: int
    from_status: str | None
    transition: str
    to_status: str | None
    decision: TransitionDecision

    event_type: EventType | None = None
    signature: str | None = None

    @property
    def applied(self) -> bool:
        return self.decision is TransitionDecision.APPLY


@dataclass(slots=True)
class OrderRecord:
    """Replayed state of a single order.

    ``status`` is None until a state-mutating transition is applied, then
    ``active`` or one of the terminal statuses.
    """

    order_id: str
    protocol: Protocol | None = None
    status: str | None = None

    fill_count: int = 0
    filled_in_amount: int = 0
    filled_out_amount: int = 0
    remaining_in_amount: int | None = None
    counterparty: str | None = None

    log: list[LedgerEntry] = field(default_factory=list)

    @property
    def terminal_status(self) -> TerminalStatus | None:
        return TerminalStatus.parse(self.status)

    @property
    def closed(self) -> bool:
        return is_terminal_state(self.status)


# ---------------------------------------------------------------------------
# Ledger
# ---------------------------------------------------------------------------


class OrderLedger:
    """Order lifecycle replay keyed by order id."""

    def __init__(self, config: LedgerConfig | None = None, event_bus: EventBus | None = None) -> None:
        self._config = config if config is not None else LedgerConfig()
        self._event_bus = event_bus if event_bus is not None else NullEventBus()
        self._orders: dict[str, OrderRecord] = {}
        self._step = 0

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def step(self) -> int:
        """Number of decisions taken so far."""
        return self._step

    def __contains__(self, order_id: object) -> bool:
        return order_id in self._orders

    def __len__(self) -> int:
        return len(self._orders)

    def order(self, order_id: str) -> OrderRecord | None:
        return self._orders.get(order_id)

    def status_of(self, order_id: str) -> str | None:
        record = self._orders.get(order_id)
        return record.status if record is not None else None

    def order_ids(self) -> list[str]:
        return list(self._orders)

    # -----------------------------------------------------------------------
    # Record application
    # -----------------------------------------------------------------------

    def apply_event(
        self,
        protocol: Protocol,
        ev: RawEvent,
        ctx: ResolveContext | None = None,
    ) -> list[LedgerEntry]:
        """Classify, correlate and apply an event record.

        Returns one entry per correlated order, plus a closing entry when a
        display snapshot reports a terminal status. Foreign noise, NotRequired
        diagnostics and (with the ``skip`` policy) uncorrelated records yield
        an empty list.
        """
        self._require_enabled(protocol)
        resolved = adapter_for(protocol).classify_and_resolve_event(
            ev, ctx if ctx is not None else ResolveContext.empty()
        )
        if resolved is None:
            self._unknown_record(f"unrecognised {protocol} event {ev.event_name} in {ev.signature}")
            return []

        event_type, correlation, payload = resolved
        if isinstance(correlation, NotRequired):
            LOGGER.debug("%s %s is not tied to an order", protocol, ev.event_name)
            return []

        if isinstance(correlation, Uncorrelated):
            self._step += 1
            self._event_bus.emit(
                UncorrelatedRecordEvent(
                    step=self._step,
                    protocol=protocol.value,
                    signature=ev.signature,
                    event_type=event_type.value,
                    reason=correlation.reason,
                )
            )
            if self._config.on_uncorrelated == "raise":
                raise ProtocolError(correlation.reason)
            return []

        transition = resolved_event_transition(event_type, correlation, payload)
        entries: list[LedgerEntry] = []
        for order_id in correlated_ids(correlation):
            entry = self._apply(order_id, transition, protocol, event_type, ev.signature, payload)
            entries.append(entry)
            # A display snapshot carrying a terminal code also closes the order.
            if isinstance(payload, KaminoDisplay) and payload.terminal_status is not None and entry.applied:
                closure = Close(payload.terminal_status)
                entries.append(self._apply(order_id, closure, protocol, event_type, ev.signature, NoPayload()))
        return entries

    def apply_instruction(self, protocol: Protocol, ix: RawInstruction) -> LedgerEntry | None:
        """Classify an instruction and apply it to the order it targets.

        The order id comes from the instruction's accounts. Instructions
        mapping to no event type yield None under the ``skip`` policy.
        """
        self._require_enabled(protocol)
        event_type = adapter_for(protocol).classify_instruction(ix)
        if event_type is None:
            self._unknown_record(f"{protocol} instruction {ix.instruction_name} has no lifecycle event")
            return None

        order_id = extract_order_pda(protocol, parse_accounts(ix.accounts), ix.instruction_name)
        transition = event_type_to_transition(event_type)
        return self._apply(order_id, transition, protocol, event_type, ix.signature, NoPayload())

    def apply_transition(self, order_id: str, transition: LifecycleTransition) -> LedgerEntry:
        """Apply a transition directly, bypassing classification."""
        if not order_id:
            raise ValueError("order_id must be non-empty")
        return self._apply(order_id, transition, None, None, None, NoPayload())

    # -----------------------------------------------------------------------
    # Internals
    # -----------------------------------------------------------------------

    def _require_enabled(self, protocol: Protocol) -> None:
        if not self._config.is_enabled(protocol):
            raise ProtocolError(f"protocol {protocol} is not enabled for this ledger")

    def _unknown_record(self, reason: str) -> None:
        if self._config.on_unknown_record == "raise":
            raise ProtocolError(reason)
        LOGGER.debug("skipping record: %s", reason)

    def _record_for(self, order_id: str, protocol: Protocol | None) -> OrderRecord:
        record = self._orders.get(order_id)
        if record is None:
            record = OrderRecord(order_id=order_id, protocol=protocol)
            self._orders[order_id] = record
        elif record.protocol is None:
            record.protocol = protocol
        return record

    def _apply(
        self,
        order_id: str,
        transition: LifecycleTransition,
        protocol: Protocol | None,
        event_type: EventType | None,
        signature: str | None,
        payload: EventPayload,
    ) -> LedgerEntry:
        record = self._record_for(order_id, protocol)
        self._step += 1

        from_status = record.status
        decision = decide_transition(record.terminal_status, transition)
        to_status = from_status

        if decision is TransitionDecision.APPLY:
            if isinstance(transition, Create):
                to_status = ACTIVE_STATE
            elif isinstance(transition, FillDelta):
                record.fill_count += 1
                self._apply_fill(record, payload)
                if from_status is None:
                    to_status = ACTIVE_STATE
            elif isinstance(transition, Close):
                to_status = transition.status.value
            # MetadataOnly leaves the status untouched.

        record.status = to_status
        entry = LedgerEntry(
            step=self._step,
            from_status=from_status,
            transition=transition_to_display(transition),
            to_status=to_status,
            decision=decision,
            event_type=event_type,
            signature=signature,
        )
        record.log.append(entry)

        self._event_bus.emit(
            OrderTransitionEvent(
                step=entry.step,
                protocol=protocol.value if protocol is not None else "",
                order_id=order_id,
                signature=signature,
                event_type=event_type.value if event_type is not None else None,
                transition=entry.transition,
                decision=decision.value,
                from_status=from_status,
                to_status=to_status,
            )
        )
        return entry

    def _apply_fill(self, record: OrderRecord, payload: EventPayload) -> None:
        if isinstance(payload, DcaFill):
            record.filled_in_amount += payload.in_amount
            record.filled_out_amount += payload.out_amount
        elif isinstance(payload, LimitFill):
            record.filled_in_amount += payload.in_amount
            record.filled_out_amount += payload.out_amount
            record.remaining_in_amount = payload.remaining_in_amount
            record.counterparty = payload.counterparty
        elif isinstance(payload, KaminoDisplay):
            # Display events report cumulative totals.
            snapshot = normalize_snapshot_to_delta(record.filled_out_amount, payload.filled_output_amount)
            record.filled_out_amount += snapshot.delta
            record.remaining_in_amount = payload.remaining_input_amount
            if snapshot.regression and self._config.track_regressions:
                self._event_bus.emit(
                    SnapshotRegressionEvent(
                        step=self._step,
                        protocol=record.protocol.value if record.protocol is not None else "",
                        order_id=record.order_id,
                        stored_total=record.filled_out_amount,
                        snapshot_total=payload.filled_output_amount,
                    )
                )
