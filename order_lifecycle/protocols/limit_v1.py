"""Jupiter Limit Order v1 protocol adapter.

Trade events are accepted with both the v1 amount names (``in_amount``,
``out_amount``, ...) and the v2 names (``making_amount``, ``taking_amount``,
...) so an upstream rename does not turn fills into errors.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import AliasChoices, Field, StrictStr

from order_lifecycle.core.domain.conversions import checked_u64_to_i64
from order_lifecycle.core.domain.correlation import Correlated
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.payloads import UNKNOWN_COUNTERPARTY, LimitFill, NoPayload
from order_lifecycle.core.domain.taxonomy import EventType, Protocol
from order_lifecycle.core.domain.types import AccountInfo, RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.ports.protocol_adapter import ResolvedEvent
from order_lifecycle.protocols.envelope import (
    I64,
    U64,
    EnvelopeDecoder,
    EventVariant,
    FieldBlock,
    InstructionKind,
    Key,
    parse_field_block,
)
from order_lifecycle.protocols.helpers import account_at, find_account_by_name

# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class OrderKeyHolder(FieldBlock):
    order_key: Key


class TradeEventFields(FieldBlock):
    order_key: Key
    taker: StrictStr = UNKNOWN_COUNTERPARTY
    in_amount: U64 = Field(0, validation_alias=AliasChoices("in_amount", "making_amount"))
    out_amount: U64 = Field(0, validation_alias=AliasChoices("out_amount", "taking_amount"))
    remaining_in_amount: U64 = Field(
        0, validation_alias=AliasChoices("remaining_in_amount", "remaining_making_amount")
    )
    remaining_out_amount: U64 = Field(
        0, validation_alias=AliasChoices("remaining_out_amount", "remaining_taking_amount")
    )


class CreateOrderEvent(EventVariant):
    body: OrderKeyHolder = Field(alias="CreateOrderEvent")


class CancelOrderEvent(EventVariant):
    body: OrderKeyHolder = Field(alias="CancelOrderEvent")


class TradeEvent(EventVariant):
    body: TradeEventFields = Field(alias="TradeEvent")


LIMIT_V1_EVENT_ENVELOPE = EnvelopeDecoder(
    "Limit v1",
    CreateOrderEvent,
    CancelOrderEvent,
    TradeEvent,
)

EVENT_EVENT_TYPES: dict[str, EventType] = {
    "CreateOrderEvent": EventType.CREATED,
    "CancelOrderEvent": EventType.CANCELLED,
    "TradeEvent": EventType.FILL_COMPLETED,
}

# ---------------------------------------------------------------------------
# Instruction kinds
# ---------------------------------------------------------------------------


class LimitV1Instruction(InstructionKind):
    INITIALIZE_ORDER = "InitializeOrder"
    PRE_FLASH_FILL_ORDER = "PreFlashFillOrder"
    FILL_ORDER = "FillOrder"
    FLASH_FILL_ORDER = "FlashFillOrder"
    CANCEL_ORDER = "CancelOrder"
    CANCEL_EXPIRED_ORDER = "CancelExpiredOrder"
    WITHDRAW_FEE = "WithdrawFee"
    INIT_FEE = "InitFee"
    UPDATE_FEE = "UpdateFee"


INSTRUCTION_EVENT_TYPES: dict[LimitV1Instruction, EventType | None] = {
    LimitV1Instruction.INITIALIZE_ORDER: EventType.CREATED,
    LimitV1Instruction.PRE_FLASH_FILL_ORDER: EventType.FILL_INITIATED,
    LimitV1Instruction.FILL_ORDER: EventType.FILL_COMPLETED,
    LimitV1Instruction.FLASH_FILL_ORDER: EventType.FILL_COMPLETED,
    LimitV1Instruction.CANCEL_ORDER: EventType.CANCELLED,
    LimitV1Instruction.CANCEL_EXPIRED_ORDER: EventType.EXPIRED,
    # Fee administration.
    LimitV1Instruction.WITHDRAW_FEE: None,
    LimitV1Instruction.INIT_FEE: None,
    LimitV1Instruction.UPDATE_FEE: None,
}

_ORDER_PDA_INDEX: dict[LimitV1Instruction, int] = {
    LimitV1Instruction.INITIALIZE_ORDER: 2,
    LimitV1Instruction.FILL_ORDER: 0,
    LimitV1Instruction.PRE_FLASH_FILL_ORDER: 0,
    LimitV1Instruction.FLASH_FILL_ORDER: 0,
    LimitV1Instruction.CANCEL_ORDER: 0,
    LimitV1Instruction.CANCEL_EXPIRED_ORDER: 0,
}

# ---------------------------------------------------------------------------
# Extracted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LimitV1CreateArgs:
    making_amount: int
    taking_amount: int
    expired_at: int | None = None


@dataclass(frozen=True, slots=True)
class LimitCreateMints:
    input_mint: str
    output_mint: str


class InitializeOrderFields(FieldBlock):
    making_amount: U64
    taking_amount: U64
    expired_at: I64 | None = None


def extract_named_create_mints(accounts: Sequence[AccountInfo]) -> LimitCreateMints | None:
    """Return mints from named ``input_mint``/``output_mint`` accounts, if both exist."""
    input_named = find_account_by_name(accounts, "input_mint")
    output_named = find_account_by_name(accounts, "output_mint")
    if input_named is None or output_named is None:
        return None
    return LimitCreateMints(input_mint=input_named.pubkey, output_mint=output_named.pubkey)


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class LimitV1Adapter:
    """Jupiter Limit Order v1 adapter (stateless)."""

    __slots__ = ()

    def protocol(self) -> Protocol:
        return Protocol.LIMIT_V1

    def classify_instruction(self, ix: RawInstruction) -> EventType | None:
        kind = LimitV1Instruction.parse(ix.instruction_name)
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
        envelope = LIMIT_V1_EVENT_ENVELOPE.decode(ev.fields)
        if envelope is None:
            return None
        return self._resolve_event(envelope)

    @staticmethod
    def _resolve_event(envelope: EventVariant) -> ResolvedEvent:
        if isinstance(envelope, CreateOrderEvent):
            return ResolvedEvent(EventType.CREATED, Correlated.one(envelope.body.order_key), NoPayload())

        if isinstance(envelope, CancelOrderEvent):
            return ResolvedEvent(EventType.CANCELLED, Correlated.one(envelope.body.order_key), NoPayload())

        trade: TradeEventFields = envelope.body
        return ResolvedEvent(
            EventType.FILL_COMPLETED,
            Correlated.one(trade.order_key),
            LimitFill(
                in_amount=checked_u64_to_i64(trade.in_amount, "in_amount/making_amount"),
                out_amount=checked_u64_to_i64(trade.out_amount, "out_amount/taking_amount"),
                remaining_in_amount=checked_u64_to_i64(
                    trade.remaining_in_amount, "remaining_in_amount/remaining_making_amount"
                ),
                counterparty=trade.taker,
            ),
        )

    # -----------------------------------------------------------------------
    # Instruction helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def extract_order_pda(accounts: Sequence[AccountInfo], instruction_name: str) -> str:
        named = find_account_by_name(accounts, "order")
        if named is not None:
            return named.pubkey

        kind = LimitV1Instruction.require(instruction_name, "Limit v1")
        idx = _ORDER_PDA_INDEX.get(kind)
        if idx is None:
            raise ProtocolError(f"Limit v1 instruction {instruction_name} has no order PDA")
        return account_at(accounts, idx, f"Limit v1 account for {instruction_name}")

    @staticmethod
    def extract_create_mints(accounts: Sequence[AccountInfo]) -> LimitCreateMints:
        """Named mints win; otherwise positions 5 (input) and 8 (output)."""
        named = extract_named_create_mints(accounts)
        if named is not None:
            return named
        return LimitCreateMints(
            input_mint=account_at(accounts, 5, "Limit v1 input_mint"),
            output_mint=account_at(accounts, 8, "Limit v1 output_mint"),
        )

    @staticmethod
    def parse_create_args(args: Any) -> LimitV1CreateArgs:
        fields = parse_field_block(InitializeOrderFields, args, "failed to parse Limit v1 create args")
        return LimitV1CreateArgs(
            making_amount=checked_u64_to_i64(fields.making_amount, "making_amount"),
            taking_amount=checked_u64_to_i64(fields.taking_amount, "taking_amount"),
            expired_at=fields.expired_at,
        )
