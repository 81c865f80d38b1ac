"""
Event sink interface.

Sinks consume the ledger events published while replaying order lifecycles.
"""
from __future__ import annotations

from typing import Any, Protocol


class EventSink(Protocol):
    def on_event(self, event: Any) -> None:
        """Consume a ledger event."""
