"""Error model for the protocol adapter layer.

Two kinds are distinguished at the boundary:

- ParseError: input structure that is not specific to the protocol layer
  could not be decoded.
- ProtocolError: the shape decoded, but a semantic invariant failed
  (numeric overflow, unknown status code, missing field in a known variant,
  positional account out of range, wrong-variant precondition).

JsonError wraps a raw JSON decode failure and keeps the decoder's message.
"""

from __future__ import annotations

import json

from pydantic import ValidationError


class OrderLifecycleError(ValueError):
    """Base class for every error raised by this package."""

    kind: str = "lifecycle"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return f"{self.kind} error: {self.reason}"


class ParseError(OrderLifecycleError):
    kind = "parse"


class ProtocolError(OrderLifecycleError):
    kind = "protocol"

    @classmethod
    def from_validation(cls, context: str, exc: ValidationError) -> ProtocolError:
        """Wrap a Pydantic validation failure, keeping the decoder's message."""
        return cls(f"{context}: {_flatten_validation_message(exc)}")


class JsonError(OrderLifecycleError):
    kind = "json"

    @classmethod
    def from_decode(cls, exc: json.JSONDecodeError) -> JsonError:
        return cls(str(exc))


def _flatten_validation_message(exc: ValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors(include_url=False):
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) if parts else str(exc)
