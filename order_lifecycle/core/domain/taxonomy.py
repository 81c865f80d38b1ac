"""Canonical taxonomy shared by every protocol adapter.

String values of these enumerations are the stable names used on external
boundaries (storage columns, logs, JSON catalogues).
"""

from __future__ import annotations

from enum import Enum

from order_lifecycle.core.domain.pubkey import is_valid_pubkey

# ---------------------------------------------------------------------------
# Program identifiers (match the upstream decoder constants)
# ---------------------------------------------------------------------------

DCA_PROGRAM_ID: str = "DCA265Vj8a9CEuX1eb1LWRnDT7uK6q1xMipnNyatn23M"
LIMIT_V1_PROGRAM_ID: str = "jupoNjAxXgZ4rjzxzPMP4oxduvQsQtZzyknqvzYNrNu"
LIMIT_V2_PROGRAM_ID: str = "j1o2qRpjcyUwEvwtcfhEQefh773ZgjxcVRry7LDqg5X"
KAMINO_PROGRAM_ID: str = "LiMoM9rMhrdYrfzUCxQppvxCSG1FcrUK9G8uLq4A1GF"


class Protocol(str, Enum):
    """Supported order-book protocols."""

    DCA = "dca"
    LIMIT_V1 = "limit_v1"
    LIMIT_V2 = "limit_v2"
    KAMINO = "kamino"

    def __str__(self) -> str:
        return self.value

    @property
    def program_id(self) -> str:
        return _PROGRAM_IDS[self]

    @classmethod
    def from_program_id(cls, program_id: str) -> Protocol | None:
        """Return the protocol owning ``program_id``.

        Malformed keys and unknown programs both yield None.
        """
        if not is_valid_pubkey(program_id):
            return None
        return _PROTOCOLS_BY_PROGRAM_ID.get(program_id)

    @classmethod
    def parse(cls, value: str) -> Protocol | None:
        try:
            return cls(value)
        except ValueError:
            return None

    @staticmethod
    def all_program_ids() -> tuple[str, ...]:
        return tuple(_PROGRAM_IDS.values())


_PROGRAM_IDS: dict[Protocol, str] = {
    Protocol.DCA: DCA_PROGRAM_ID,
    Protocol.LIMIT_V1: LIMIT_V1_PROGRAM_ID,
    Protocol.LIMIT_V2: LIMIT_V2_PROGRAM_ID,
    Protocol.KAMINO: KAMINO_PROGRAM_ID,
}

_PROTOCOLS_BY_PROGRAM_ID: dict[str, Protocol] = {v: k for k, v in _PROGRAM_IDS.items()}


class EventType(str, Enum):
    """Protocol-agnostic event taxonomy."""

    CREATED = "created"
    FILL_INITIATED = "fill_initiated"
    FILL_COMPLETED = "fill_completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    CLOSED = "closed"
    FEE_COLLECTED = "fee_collected"
    WITHDRAWN = "withdrawn"
    DEPOSITED = "deposited"

    def __str__(self) -> str:
        return self.value


class TerminalStatus(str, Enum):
    """The only order statuses considered terminal."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, value: str | None) -> TerminalStatus | None:
        """Parse the lowercase string form; anything else yields None."""
        if value is None:
            return None
        try:
            return cls(value)
        except ValueError:
            return None
