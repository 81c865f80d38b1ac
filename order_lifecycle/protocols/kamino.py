"""Kamino limit-order protocol adapter.

Kamino does not put the order key into its events. The display event is a
cumulative snapshot of one order's fills, correlated through order ids the
caller pre-extracted from the same transaction's instructions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Sequence

from pydantic import Field

from order_lifecycle.core.domain.conversions import checked_u64_to_i64
from order_lifecycle.core.domain.correlation import Correlated, NotRequired, Uncorrelated
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.core.domain.payloads import KaminoDisplay, NoPayload
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.core.domain.types import AccountInfo, RawEvent, RawInstruction, ResolveContext
from order_lifecycle.core.ports.protocol_adapter import ResolvedEvent
from order_lifecycle.protocols.envelope import (
    U8,
    U64,
    EnvelopeDecoder,
    EventVariant,
    FieldBlock,
    InstructionKind,
    parse_field_block,
)
from order_lifecycle.protocols.helpers import account_at, find_account_by_name

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Display status
# ---------------------------------------------------------------------------


class KaminoDisplayStatus(IntEnum):
    OPEN = 0
    FILLED = 1
    CANCELLED = 2
    EXPIRED = 3


_DISPLAY_TERMINAL_STATUS: dict[KaminoDisplayStatus, TerminalStatus | None] = {
    KaminoDisplayStatus.OPEN: None,
    KaminoDisplayStatus.FILLED: TerminalStatus.COMPLETED,
    KaminoDisplayStatus.CANCELLED: TerminalStatus.CANCELLED,
    KaminoDisplayStatus.EXPIRED: TerminalStatus.EXPIRED,
}


def parse_display_status(status: int) -> KaminoDisplayStatus:
    try:
        return KaminoDisplayStatus(status)
    except ValueError as exc:
        raise ProtocolError(f"unknown Kamino display status code: {status}") from exc


def kamino_display_terminal_status(status: int) -> TerminalStatus | None:
    """Map a display status code to a terminal status (None while open)."""
    return _DISPLAY_TERMINAL_STATUS[parse_display_status(status)]


# ---------------------------------------------------------------------------
# Event envelope
# ---------------------------------------------------------------------------


class OrderDisplayEventFields(FieldBlock):
    remaining_input_amount: U64 = 0
    filled_output_amount: U64 = 0
    number_of_fills: U64 = 0
    status: U8 = 0


class OrderDisplayEvent(EventVariant):
    body: OrderDisplayEventFields = Field(alias="OrderDisplayEvent")


class UserSwapBalancesEvent(EventVariant):
    body: Any = Field(alias="UserSwapBalancesEvent")


KAMINO_EVENT_ENVELOPE = EnvelopeDecoder(
    "Kamino",
    OrderDisplayEvent,
    UserSwapBalancesEvent,
)

EVENT_EVENT_TYPES: dict[str, EventType] = {
    "OrderDisplayEvent": EventType.FILL_COMPLETED,
    "UserSwapBalancesEvent": EventType.FILL_COMPLETED,
}

# ---------------------------------------------------------------------------
# Instruction kinds
# ---------------------------------------------------------------------------


class KaminoInstruction(InstructionKind):
    CREATE_ORDER = "CreateOrder"
    TAKE_ORDER = "TakeOrder"
    FLASH_TAKE_ORDER_START = "FlashTakeOrderStart"
    FLASH_TAKE_ORDER_END = "FlashTakeOrderEnd"
    CLOSE_ORDER_AND_CLAIM_TIP = "CloseOrderAndClaimTip"
    INITIALIZE_GLOBAL_CONFIG = "InitializeGlobalConfig"
    INITIALIZE_VAULT = "InitializeVault"
    UPDATE_GLOBAL_CONFIG = "UpdateGlobalConfig"
    UPDATE_GLOBAL_CONFIG_ADMIN = "UpdateGlobalConfigAdmin"
    WITHDRAW_HOST_TIP = "WithdrawHostTip"
    LOG_USER_SWAP_BALANCES = "LogUserSwapBalances"


INSTRUCTION_EVENT_TYPES: dict[KaminoInstruction, EventType | None] = {
    KaminoInstruction.CREATE_ORDER: EventType.CREATED,
    KaminoInstruction.TAKE_ORDER: EventType.FILL_COMPLETED,
    KaminoInstruction.FLASH_TAKE_ORDER_START: EventType.FILL_INITIATED,
    KaminoInstruction.FLASH_TAKE_ORDER_END: EventType.FILL_COMPLETED,
    KaminoInstruction.CLOSE_ORDER_AND_CLAIM_TIP: EventType.CLOSED,
    # Program administration and diagnostics.
    KaminoInstruction.INITIALIZE_GLOBAL_CONFIG: None,
    KaminoInstruction.INITIALIZE_VAULT: None,
    KaminoInstruction.UPDATE_GLOBAL_CONFIG: None,
    KaminoInstruction.UPDATE_GLOBAL_CONFIG_ADMIN: None,
    KaminoInstruction.WITHDRAW_HOST_TIP: None,
    KaminoInstruction.LOG_USER_SWAP_BALANCES: None,
}

_ORDER_PDA_INDEX: dict[KaminoInstruction, int] = {
    KaminoInstruction.CREATE_ORDER: 3,
    KaminoInstruction.TAKE_ORDER: 4,
    KaminoInstruction.FLASH_TAKE_ORDER_START: 4,
    KaminoInstruction.FLASH_TAKE_ORDER_END: 4,
    KaminoInstruction.CLOSE_ORDER_AND_CLAIM_TIP: 1,
}

# ---------------------------------------------------------------------------
# Extracted records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class KaminoCreateArgs:
    input_amount: int
    output_amount: int
    order_type: int = 0


@dataclass(frozen=True, slots=True)
class KaminoCreateMints:
    input_mint: str
    output_mint: str


class CreateOrderFields(FieldBlock):
    input_amount: U64
    output_amount: U64
    order_type: U8 = 0


# ---------------------------------------------------------------------------
# Adapter
# ---------------------------------------------------------------------------


class KaminoAdapter:
    """Kamino limit-order adapter (stateless)."""

    __slots__ = ()

    def protocol(self) -> Protocol:
        return Protocol.KAMINO

    def classify_instruction(self, ix: RawInstruction) -> EventType | None:
        kind = KaminoInstruction.parse(ix.instruction_name)
        if kind is None:
            return None
        return INSTRUCTION_EVENT_TYPES[kind]

    def classify_and_resolve_event(
        self,
        ev: RawEvent,
        ctx: ResolveContext,
    ) -> ResolvedEvent | None:
        if ev.fields is None:
            return None
        envelope = KAMINO_EVENT_ENVELOPE.decode(ev.fields)
        if envelope is None:
            return None
        return self._resolve_event(envelope, ev.signature, ctx)

    @staticmethod
    def _resolve_event(envelope: EventVariant, signature: str, ctx: ResolveContext) -> ResolvedEvent:
        if isinstance(envelope, UserSwapBalancesEvent):
            return ResolvedEvent(EventType.FILL_COMPLETED, NotRequired(), NoPayload())

        display: OrderDisplayEventFields = envelope.body
        order_pdas = ctx.order_pdas
        if not order_pdas:
            LOGGER.debug("Kamino display event without pre-fetched order ids (signature=%s)", signature)
            return ResolvedEvent(
                EventType.FILL_COMPLETED,
                Uncorrelated(reason=f"cannot correlate Kamino OrderDisplayEvent for signature {signature}"),
                NoPayload(),
            )

        terminal_status = kamino_display_terminal_status(display.status)
        return ResolvedEvent(
            EventType.FILL_COMPLETED,
            Correlated.many(order_pdas),
            KaminoDisplay(
                remaining_input_amount=checked_u64_to_i64(
                    display.remaining_input_amount, "remaining_input_amount"
                ),
                filled_output_amount=checked_u64_to_i64(display.filled_output_amount, "filled_output_amount"),
                terminal_status=terminal_status,
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

        kind = KaminoInstruction.require(instruction_name, "Kamino")
        idx = _ORDER_PDA_INDEX.get(kind)
        if idx is None:
            raise ProtocolError(f"Kamino instruction {instruction_name} has no order PDA")
        return account_at(accounts, idx, f"Kamino account for {instruction_name}")

    @staticmethod
    def extract_create_mints(accounts: Sequence[AccountInfo]) -> KaminoCreateMints:
        """Named mints win; otherwise positions 4 (input) and 5 (output)."""
        input_named = find_account_by_name(accounts, "input_mint")
        output_named = find_account_by_name(accounts, "output_mint")
        if input_named is not None and output_named is not None:
            return KaminoCreateMints(input_mint=input_named.pubkey, output_mint=output_named.pubkey)
        return KaminoCreateMints(
            input_mint=account_at(accounts, 4, "Kamino input_mint"),
            output_mint=account_at(accounts, 5, "Kamino output_mint"),
        )

    @staticmethod
    def parse_create_args(args: Any) -> KaminoCreateArgs:
        fields = parse_field_block(CreateOrderFields, args, "failed to parse Kamino create args")
        return KaminoCreateArgs(
            input_amount=checked_u64_to_i64(fields.input_amount, "input_amount"),
            output_amount=checked_u64_to_i64(fields.output_amount, "output_amount"),
            order_type=fields.order_type,
        )
