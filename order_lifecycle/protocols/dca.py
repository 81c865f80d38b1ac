"""Jupiter DCA protocol adapter.

Variant names mirror the upstream decoder exactly. Every DCA event carries a
single ``dca_key`` which is the order identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import Field

from order_lifecycle.core.domain.conversions import (
    checked_optional_u64_to_i64,
    checked_u64_to_i64,
)
from order_lifecycle.core.domain.correlation import Correlated
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.payloads import DcaClosed, DcaFill, NoPayload
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.core.domain.types import AccountInfo, RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.ports.protocol_adapter import ResolvedEvent
from order_lifecycle.protocols.envelope import (
    I64,
    U64,
    EnvelopeDecoder,
    EventVariant,
    FieldBlock,
    Flag,
    InstructionKind,
    Key,
    parse_field_block,
)
from order_lifecycle.protocols.helpers import account_at, find_account_by_name

# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class DcaKeyHolder(FieldBlock):
    dca_key: Key


class FilledEventFields(FieldBlock):
    dca_key: Key
    in_amount: U64
    out_amount: U64


class ClosedEventFields(FieldBlock):
    dca_key: Key
    user_closed: Flag
    unfilled_amount: U64


class OpenedEvent(EventVariant):
    body: DcaKeyHolder = Field(alias="OpenedEvent")


class FilledEvent(EventVariant):
    body: FilledEventFields = Field(alias="FilledEvent")


class ClosedEvent(EventVariant):
    body: ClosedEventFields = Field(alias="ClosedEvent")


class CollectedFeeEvent(EventVariant):
    body: DcaKeyHolder = Field(alias="CollectedFeeEvent")


class WithdrawEvent(EventVariant):
    body: DcaKeyHolder = Field(alias="WithdrawEvent")


class DepositEvent(EventVariant):
    body: DcaKeyHolder = Field(alias="DepositEvent")


DCA_EVENT_ENVELOPE = EnvelopeDecoder(
    "DCA",
    OpenedEvent,
    FilledEvent,
    ClosedEvent,
    CollectedFeeEvent,
    WithdrawEvent,
    DepositEvent,
)

# Events that only carry a dca_key, with their event type.
_KEY_ONLY_EVENTS: dict[type[EventVariant], EventType] = {
    OpenedEvent: EventType.CREATED,
    CollectedFeeEvent: EventType.FEE_COLLECTED,
    WithdrawEvent: EventType.WITHDRAWN,
    DepositEvent: EventType.DEPOSITED,
}

EVENT_EVENT_TYPES: dict[str, EventType] = {
    "OpenedEvent": EventType.CREATED,
    "FilledEvent": EventType.FILL_COMPLETED,
    "ClosedEvent": EventType.CLOSED,
    "CollectedFeeEvent": EventType.FEE_COLLECTED,
    "WithdrawEvent": EventType.WITHDRAWN,
    "DepositEvent": EventType.DEPOSITED,
}

# ---------------------------------------------------------------------------
# Instruction kinds
# ---------------------------------------------------------------------------


class DcaInstruction(InstructionKind):
    OPEN_DCA = "OpenDca"
    OPEN_DCA_V2 = "OpenDcaV2"
    INITIATE_FLASH_FILL = "InitiateFlashFill"
    INITIATE_DLMM_FILL = "InitiateDlmmFill"
    FULFILL_FLASH_FILL = "FulfillFlashFill"
    FULFILL_DLMM_FILL = "FulfillDlmmFill"
    CLOSE_DCA = "CloseDca"
    END_AND_CLOSE = "EndAndClose"
    TRANSFER = "Transfer"
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    WITHDRAW_FEES = "WithdrawFees"


INSTRUCTION_EVENT_TYPES: dict[DcaInstruction, EventType | None] = {
    DcaInstruction.OPEN_DCA: EventType.CREATED,
    DcaInstruction.OPEN_DCA_V2: EventType.CREATED,
    DcaInstruction.INITIATE_FLASH_FILL: EventType.FILL_INITIATED,
    DcaInstruction.INITIATE_DLMM_FILL: EventType.FILL_INITIATED,
    DcaInstruction.FULFILL_FLASH_FILL: EventType.FILL_COMPLETED,
    DcaInstruction.FULFILL_DLMM_FILL: EventType.FILL_COMPLETED,
    DcaInstruction.CLOSE_DCA: EventType.CLOSED,
    DcaInstruction.END_AND_CLOSE: EventType.CLOSED,
    # Escrow and fee administration; not order lifecycle.
    DcaInstruction.TRANSFER: None,
    DcaInstruction.DEPOSIT: None,
    DcaInstruction.WITHDRAW: None,
    DcaInstruction.WITHDRAW_FEES: None,
}

# Positional index of the DCA account when the accounts list carries no names.
_ORDER_PDA_INDEX: dict[DcaInstruction, int] = {
    DcaInstruction.OPEN_DCA: 0,
    DcaInstruction.OPEN_DCA_V2: 0,
    DcaInstruction.INITIATE_FLASH_FILL: 1,
    DcaInstruction.INITIATE_DLMM_FILL: 1,
    DcaInstruction.FULFILL_FLASH_FILL: 1,
    DcaInstruction.FULFILL_DLMM_FILL: 1,
    DcaInstruction.CLOSE_DCA: 1,
    DcaInstruction.END_AND_CLOSE: 1,
}

_CREATE_MINT_INDEXES: dict[DcaInstruction, tuple[int, int]] = {
    DcaInstruction.OPEN_DCA: (2, 3),
    DcaInstruction.OPEN_DCA_V2: (3, 4),
}

# ---------------------------------------------------------------------------
# Extracted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DcaClosedEvent:
    order_pda: str
    user_closed: bool
    unfilled_amount: int


@dataclass(frozen=True, slots=True)
class DcaCreateArgs:
    in_amount: int
    in_amount_per_cycle: int
    cycle_frequency: int
    min_out_amount: int | None = None
    max_out_amount: int | None = None
    start_at: int | None = None


@dataclass(frozen=True, slots=True)
class DcaCreateMints:
    input_mint: str
    output_mint: str


class OpenDcaFields(FieldBlock):
    in_amount: U64
    in_amount_per_cycle: U64
    cycle_frequency: I64
    min_out_amount: U64 | None = None
    max_out_amount: U64 | None = None
    start_at: I64 | None = None


def dca_closed_terminal_status(closed: DcaClosedEvent) -> TerminalStatus:
    """Derive the terminal status of a closed DCA order.

    A user close is a cancellation whatever is left; otherwise an empty
    remainder means the schedule completed and a non-empty one expired.
    """
    if closed.user_closed:
        return TerminalStatus.CANCELLED
    if closed.unfilled_amount == 0:
        return TerminalStatus.COMPLETED
    return TerminalStatus.EXPIRED


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class DcaAdapter:
    """Jupiter DCA adapter (stateless)."""

    __slots__ = ()

    def protocol(self) -> Protocol:
        return Protocol.DCA

    def classify_instruction(self, ix: RawInstruction) -> EventType | None:
        kind = DcaInstruction.parse(ix.instruction_name)
        if kind is None:
            return None
        return INSTRUCTION_EVENT_TYPES[kind]

    def classify_and_resolve_event(
        self,
        ev: RawEvent,
        ctx: ResolveContext,  # pylint: disable=unused-argument
    ) -> ResolvedEvent | None:
        if ev.fields is None:
            return None
        envelope = DCA_EVENT_ENVELOPE.decode(ev.fields)
        if envelope is None:
            return None
        return self._resolve_event(envelope)

    @staticmethod
    def _resolve_event(envelope: EventVariant) -> ResolvedEvent:
        if isinstance(envelope, FilledEvent):
            filled = envelope.body
            return ResolvedEvent(
                EventType.FILL_COMPLETED,
                Correlated.one(filled.dca_key),
                DcaFill(
                    in_amount=checked_u64_to_i64(filled.in_amount, "in_amount"),
                    out_amount=checked_u64_to_i64(filled.out_amount, "out_amount"),
                ),
            )

        if isinstance(envelope, ClosedEvent):
            body = envelope.body
            closed = DcaClosedEvent(
                order_pda=body.dca_key,
                user_closed=body.user_closed,
                unfilled_amount=checked_u64_to_i64(body.unfilled_amount, "unfilled_amount"),
            )
            return ResolvedEvent(
                EventType.CLOSED,
                Correlated.one(closed.order_pda),
                DcaClosed(status=dca_closed_terminal_status(closed)),
            )

        event_type = _KEY_ONLY_EVENTS[type(envelope)]
        return ResolvedEvent(event_type, Correlated.one(envelope.body.dca_key), NoPayload())

    # -----------------------------------------------------------------------
    # Instruction helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def extract_order_pda(accounts: Sequence[AccountInfo], instruction_name: str) -> str:
        """Return the DCA order account of an instruction.

        The named ``dca`` account wins; otherwise a positional index per
        instruction kind is used.
        """
        named = find_account_by_name(accounts, "dca")
        if named is not None:
            return named.pubkey

        kind = DcaInstruction.require(instruction_name, "DCA")
        idx = _ORDER_PDA_INDEX.get(kind)
        if idx is None:
            raise ProtocolError(f"DCA instruction {instruction_name} has no order PDA")
        return account_at(accounts, idx, f"DCA account for {instruction_name}")

    @staticmethod
    def extract_create_mints(
        accounts: Sequence[AccountInfo],
        instruction_name: str,
    ) -> DcaCreateMints:
        """Return input/output mints of an OpenDca/OpenDcaV2 instruction."""
        input_named = find_account_by_name(accounts, "input_mint")
        output_named = find_account_by_name(accounts, "output_mint")
        if input_named is not None and output_named is not None:
            return DcaCreateMints(input_mint=input_named.pubkey, output_mint=output_named.pubkey)

        kind = DcaInstruction.require(instruction_name, "DCA")
        indexes = _CREATE_MINT_INDEXES.get(kind)
        if indexes is None:
            raise ProtocolError(f"not a DCA create instruction: {instruction_name}")

        input_idx, output_idx = indexes
        return DcaCreateMints(
            input_mint=account_at(accounts, input_idx, "DCA input_mint"),
            output_mint=account_at(accounts, output_idx, "DCA output_mint"),
        )

    @staticmethod
    def parse_create_args(args: Any) -> DcaCreateArgs:
        fields = parse_field_block(OpenDcaFields, args, "failed to parse DCA create args")
        return DcaCreateArgs(
            in_amount=checked_u64_to_i64(fields.in_amount, "in_amount"),
            in_amount_per_cycle=checked_u64_to_i64(fields.in_amount_per_cycle, "in_amount_per_cycle"),
            cycle_frequency=fields.cycle_frequency,
            min_out_amount=checked_optional_u64_to_i64(fields.min_out_amount, "min_out_amount"),
            max_out_amount=checked_optional_u64_to_i64(fields.max_out_amount, "max_out_amount"),
            start_at=fields.start_at,
        )
