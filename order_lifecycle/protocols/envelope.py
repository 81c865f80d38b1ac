"""Tagged-envelope decoding.

Upstream decoders emit payloads as ``{"VariantName": {...fields...}}``. Each
adapter declares one envelope model per variant and a decoder built from them;
decoding is a single Pydantic validation against a discriminated union whose
tags are the variant names. The set of recognised variants therefore comes
from the models themselves.

Instruction names are matched the same way against a per-protocol
enumeration of instruction kinds.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    StrictBool,
    Tag,
    TypeAdapter,
    ValidationError,
)

from order_lifecycle.core.domain.conversions import U8_MAX, U16_MAX, U64_MAX
from order_lifecycle.core.domain.errors import ProtocolError
from order_lifecycle.protocols.helpers import contains_known_variant

LOGGER = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Wire scalars
# ---------------------------------------------------------------------------

U64 = Annotated[int, Field(strict=True, ge=0, le=U64_MAX)]
U16 = Annotated[int, Field(strict=True, ge=0, le=U16_MAX)]
U8 = Annotated[int, Field(strict=True, ge=0, le=U8_MAX)]
I64 = Annotated[int, Field(strict=True, ge=-(1 << 63), le=(1 << 63) - 1)]
Key = Annotated[str, Field(strict=True, min_length=1)]
Flag = StrictBool


class FieldBlock(BaseModel):
    """Base for variant bodies. Unknown fields are ignored."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


# ---------------------------------------------------------------------------
# Event envelopes
# ---------------------------------------------------------------------------


class EventVariant(BaseModel):
    """One-key envelope. Subclasses declare ``body`` aliased to the variant name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    body: Any

    @classmethod
    def variant_name(cls) -> str:
        alias = cls.model_fields["body"].alias
        if not alias:
            raise TypeError(f"{cls.__name__}.body must be aliased to its variant name")
        return alias


def _variant_tag(value: Any) -> str | None:
    if isinstance(value, EventVariant):
        return value.variant_name()
    if isinstance(value, dict) and len(value) == 1:
        tag = next(iter(value))
        return tag if isinstance(tag, str) else None
    return None


class EnvelopeDecoder:
    """Decode event payloads into one of a fixed set of envelope variants.

    A failed decode is classified with the known-variant probe: payloads with
    no known key are foreign noise (None), payloads naming a known variant are
    malformed (ProtocolError carrying the decoder's message).
    """

    def __init__(self, label: str, *variants: type[EventVariant]) -> None:
        if len(variants) < 2:
            raise ValueError("an envelope needs at least two variants")
        self._label = label
        self.variant_names: tuple[str, ...] = tuple(v.variant_name() for v in variants)
        members = tuple(Annotated[v, Tag(v.variant_name())] for v in variants)
        self._adapter: TypeAdapter[Any] = TypeAdapter(
            Annotated[Union[members], Discriminator(_variant_tag)]  # type: ignore[valid-type]
        )

    def decode(self, fields: Any) -> EventVariant | None:
        try:
            return self._adapter.validate_python(fields)
        except ValidationError as exc:
            if not contains_known_variant(fields, self.variant_names):
                LOGGER.debug("ignoring foreign %s event payload", self._label)
                return None
            raise ProtocolError.from_validation(
                f"failed to parse {self._label} event payload", exc
            ) from exc


# ---------------------------------------------------------------------------
# Instruction kinds
# ---------------------------------------------------------------------------


class InstructionKind(str, Enum):
    """Base for per-protocol instruction enumerations (values are decoder names)."""

    @classmethod
    def parse(cls, name: str | None) -> InstructionKind | None:
        if name is None:
            return None
        try:
            return cls(name)
        except ValueError:
            return None

    @classmethod
    def require(cls, name: str, label: str) -> InstructionKind:
        """Parse ``name`` or raise ProtocolError naming the protocol ``label``."""
        kind = cls.parse(name)
        if kind is None:
            raise ProtocolError(f"unknown {label} instruction: {name}")
        return kind


def parse_field_block(model: type[FieldBlock], args: Any, context: str) -> Any:
    """Validate an args block, wrapping failures in ProtocolError."""
    try:
        return model.model_validate(args)
    except ValidationError as exc:
        raise ProtocolError.from_validation(context, exc) from exc
