"""Wire records consumed by the adapter layer.

These Pydantic models mirror the JSON rows produced by the upstream decoder
(see ``core/schemas``). They are immutable: the library never mutates its
inputs. Upstream rows may carry extra bookkeeping columns, which are ignored.
"""

# pylint: disable=missing-class-docstring
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr

# ---------------------------------------------------------------------------
# Raw decoder records
# ---------------------------------------------------------------------------


class RawInstruction(BaseModel):
    """A decoded instruction of one of the supported programs."""

    id: int | None = None
    signature: str = Field(..., min_length=1)
    instruction_index: int = Field(..., ge=0)
    program_id: str = Field(..., min_length=1)
    inner_program_id: str = Field(..., min_length=1)
    instruction_name: str = Field(..., min_length=1)

    # Opaque JSON: a list of account objects and the instruction's args block.
    accounts: Any | None = None
    args: Any | None = None

    slot: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="ignore")


class RawEvent(BaseModel):
    """A decoded event (self-CPI log) of one of the supported programs."""

    id: int | None = None
    signature: str = Field(..., min_length=1)
    event_index: int = Field(..., ge=0)
    program_id: str = Field(..., min_length=1)
    inner_program_id: str = Field(..., min_length=1)
    event_name: str = Field(..., min_length=1)

    # Opaque JSON, expected as a one-key object {"VariantName": {...}}.
    fields: Any | None = None

    slot: int = Field(..., ge=0)

    model_config = ConfigDict(frozen=True, extra="ignore")


# ---------------------------------------------------------------------------
# Caller-supplied side channel
# ---------------------------------------------------------------------------


class ResolveContext(BaseModel):
    """Order identifiers pre-extracted by the caller for the same transaction.

    Only the Kamino display event needs it; every other resolve ignores it.
    """

    pre_fetched_order_pdas: list[str] | None = None

    model_config = ConfigDict(frozen=True, extra="forbid")

    @classmethod
    def empty(cls) -> ResolveContext:
        return cls()

    @property
    def order_pdas(self) -> list[str]:
        return list(dict.fromkeys(pda for pda in (self.pre_fetched_order_pdas or []) if pda))


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------


class AccountInfo(BaseModel):
    pubkey: StrictStr
    is_signer: StrictBool = False
    is_writable: StrictBool = False
    name: StrictStr | None = None

    model_config = ConfigDict(frozen=True, extra="ignore")
