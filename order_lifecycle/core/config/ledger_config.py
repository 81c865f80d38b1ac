"""Order ledger configuration model."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from order_lifecycle.core.domain.taxonomy import Protocol

# How the ledger treats a record it cannot apply to an order:
# "skip" records it and moves on, "raise" surfaces a ProtocolError.
RecordPolicy = Literal["skip", "raise"]


class LedgerConfig(BaseModel):
    """Structured-only ledger configuration."""

    protocols: list[Protocol] = Field(default_factory=lambda: list(Protocol))

    # Kamino display events without pre-fetched order ids.
    on_uncorrelated: RecordPolicy = "skip"
    # Foreign-noise records and instructions that map to no event type.
    on_unknown_record: RecordPolicy = "skip"

    track_regressions: bool = True

    model_config = ConfigDict(extra="forbid", frozen=True)

    @classmethod
    def from_json_obj(cls, config_obj: dict[str, Any]) -> LedgerConfig:
        """Create a LedgerConfig from a JSON-compatible object."""
        return cls.model_validate(config_obj)

    @model_validator(mode="after")
    def validate_consistency(self) -> LedgerConfig:
        if not self.protocols:
            raise ValueError("protocols must not be empty")
        if len(set(self.protocols)) != len(self.protocols):
            raise ValueError("protocols must not contain duplicates")
        return self

    def is_enabled(self, protocol: Protocol) -> bool:
        return protocol in self.protocols
