"""Jupiter Limit Order v2 protocol adapter."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import Field, StrictStr, ValidationError

from order_lifecycle.core.domain.conversions import (
    checked_optional_u64_to_i64,
    checked_u16_to_i16,
    checked_u64_to_i64,
)
from order_lifecycle.core.domain.correlation import Correlated
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.payloads import UNKNOWN_COUNTERPARTY, LimitFill, NoPayload
from order_lifecycle.core.domain.taxonomy import EventType, Protocol
from order_lifecycle.core.domain.types import AccountInfo, RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.ports.protocol_adapter import ResolvedEvent
from order_lifecycle.protocols.envelope import (
    I64,
    U16,
    U64,
    EnvelopeDecoder,
    EventVariant,
    FieldBlock,
    InstructionKind,
    Key,
)
from order_lifecycle.protocols.helpers import account_at, find_account_by_name
from order_lifecycle.protocols.limit_v1 import (
    LimitCreateMints,
    OrderKeyHolder,
    extract_named_create_mints,
)

# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class TradeEventFields(FieldBlock):
    order_key: Key
    taker: StrictStr = UNKNOWN_COUNTERPARTY
    making_amount: U64
    taking_amount: U64
    remaining_making_amount: U64
    remaining_taking_amount: U64


class CreateOrderEvent(EventVariant):
    body: OrderKeyHolder = Field(alias="CreateOrderEvent")


class CancelOrderEvent(EventVariant):
    body: OrderKeyHolder = Field(alias="CancelOrderEvent")


class TradeEvent(EventVariant):
    body: TradeEventFields = Field(alias="TradeEvent")


LIMIT_V2_EVENT_ENVELOPE = EnvelopeDecoder(
    "Limit v2",
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


class LimitV2Instruction(InstructionKind):
    INITIALIZE_ORDER = "InitializeOrder"
    PRE_FLASH_FILL_ORDER = "PreFlashFillOrder"
    FLASH_FILL_ORDER = "FlashFillOrder"
    CANCEL_ORDER = "CancelOrder"
    UPDATE_FEE = "UpdateFee"
    WITHDRAW_FEE = "WithdrawFee"


INSTRUCTION_EVENT_TYPES: dict[LimitV2Instruction, EventType | None] = {
    LimitV2Instruction.INITIALIZE_ORDER: EventType.CREATED,
    LimitV2Instruction.PRE_FLASH_FILL_ORDER: EventType.FILL_INITIATED,
    LimitV2Instruction.FLASH_FILL_ORDER: EventType.FILL_COMPLETED,
    LimitV2Instruction.CANCEL_ORDER: EventType.CANCELLED,
    LimitV2Instruction.UPDATE_FEE: None,
    LimitV2Instruction.WITHDRAW_FEE: None,
}

_ORDER_PDA_INDEX: dict[LimitV2Instruction, int] = {
    LimitV2Instruction.INITIALIZE_ORDER: 2,
    LimitV2Instruction.FLASH_FILL_ORDER: 2,
    LimitV2Instruction.CANCEL_ORDER: 2,
    LimitV2Instruction.PRE_FLASH_FILL_ORDER: 1,
}

# ---------------------------------------------------------------------------
# Extracted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LimitV2CreateArgs:
    making_amount: int
    taking_amount: int
    unique_id: int | None = None
    expired_at: int | None = None
    fee_bps: int | None = None


class InitializeOrderParams(FieldBlock):
    unique_id: U64 | None = None
    making_amount: U64
    taking_amount: U64
    expired_at: I64 | None = None
    fee_bps: U16 | None = None


class InitializeOrderWrapper(FieldBlock):
    params: InitializeOrderParams


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class LimitV2Adapter:
    """Jupiter Limit Order v2 adapter (stateless)."""

    __slots__ = ()

    def protocol(self) -> Protocol:
        return Protocol.LIMIT_V2

    def classify_instruction(self, ix: RawInstruction) -> EventType | None:
        kind = LimitV2Instruction.parse(ix.instruction_name)
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
        envelope = LIMIT_V2_EVENT_ENVELOPE.decode(ev.fields)
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
                in_amount=checked_u64_to_i64(trade.making_amount, "making_amount"),
                out_amount=checked_u64_to_i64(trade.taking_amount, "taking_amount"),
                remaining_in_amount=checked_u64_to_i64(
                    trade.remaining_making_amount, "remaining_making_amount"
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

        kind = LimitV2Instruction.require(instruction_name, "Limit v2")
        idx = _ORDER_PDA_INDEX.get(kind)
        if idx is None:
            raise ProtocolError(f"Limit v2 instruction {instruction_name} has no order PDA")
        return account_at(accounts, idx, f"Limit v2 account for {instruction_name}")

    @staticmethod
    def extract_create_mints(accounts: Sequence[AccountInfo]) -> LimitCreateMints:
        """Named mints win; otherwise positions 7 (input) and 8 (output)."""
        named = extract_named_create_mints(accounts)
        if named is not None:
            return named
        return LimitCreateMints(
            input_mint=account_at(accounts, 7, "Limit v2 input_mint"),
            output_mint=account_at(accounts, 8, "Limit v2 output_mint"),
        )

    @staticmethod
    def parse_create_args(args: Any) -> LimitV2CreateArgs:
        """Parse InitializeOrder args, with or without the ``params`` wrapper."""
        try:
            params = InitializeOrderWrapper.model_validate(args).params
        except ValidationError:
            try:
                params = InitializeOrderParams.model_validate(args)
            except ValidationError as exc:
                raise ProtocolError.from_validation("failed to parse Limit v2 create args", exc) from exc

        return LimitV2CreateArgs(
            making_amount=checked_u64_to_i64(params.making_amount, "making_amount"),
            taking_amount=checked_u64_to_i64(params.taking_amount, "taking_amount"),
            unique_id=checked_optional_u64_to_i64(params.unique_id, "unique_id"),
            expired_at=params.expired_at,
            fee_bps=None if params.fee_bps is None else checked_u16_to_i16(params.fee_bps, "fee_bps"),
        )
