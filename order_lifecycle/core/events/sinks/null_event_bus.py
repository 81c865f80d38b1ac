from __future__ import annotations

from typing import Any

from order_lifecycle.core.events.event_bus import EventBus


class _NullSink:
    """Sink that drops every event."""

    def on_event(self, event: Any) -> None:
        return


class NullEventBus(EventBus):
    """EventBus that discards all events (default for ledgers built without a bus)."""

    def __init__(self) -> None:
        super().__init__(sinks=[_NullSink()])
