"""Public API for the order_lifecycle package.

Only symbols imported here are considered part of the stable,
supported external interface.
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

# ----------------------------------------------------------------------
# Catalogue
# ----------------------------------------------------------------------
from order_lifecycle.catalog import classify_variant, protocol_catalog

# ----------------------------------------------------------------------
# Config API
# ----------------------------------------------------------------------
from order_lifecycle.core.config.ledger_config import LedgerConfig

# ----------------------------------------------------------------------
# Domain types
# ----------------------------------------------------------------------
from order_lifecycle.core.domain.conversions import checked_u16_to_i16, checked_u64_to_i64
from order_lifecycle.core.domain.correlation import (
    Correlated,
    CorrelationOutcome,
    NotRequired,
    Uncorrelated,
)
from order_lifecycle.core.domain.errors import (
    JsonError,
    OrderLifecycleError,
    ParseError,
    ProtocolError,
)
from order_lifecycle.core.domain.mapping import (
    event_type_to_transition,
    resolved_event_transition,
    transition_target,
    transition_to_display,
)
from order_lifecycle.core.domain.order_state_machine import (
    Close,
    Create,
    FillDelta,
    LifecycleEngine,
    LifecycleTransition,
    MetadataOnly,
    SnapshotDelta,
    TransitionDecision,
    decide_transition,
    normalize_snapshot_to_delta,
)
from order_lifecycle.core.domain.payloads import (
    DcaClosed,
    DcaFill,
    EventPayload,
    KaminoDisplay,
    LimitFill,
    NoPayload,
)
from order_lifecycle.core.domain.state import LedgerEntry, OrderLedger, OrderRecord
from order_lifecycle.core.domain.taxonomy import EventType, Protocol, TerminalStatus
from order_lifecycle.core.domain.types import AccountInfo, RawEvent, RawInstruction, ResolveContext

# ----------------------------------------------------------------------
# Events
# ----------------------------------------------------------------------
from order_lifecycle.core.events.event_bus import EventBus
from order_lifecycle.core.ports.protocol_adapter import ProtocolAdapter, ResolvedEvent

# ----------------------------------------------------------------------
# Protocol adapters
# ----------------------------------------------------------------------
from order_lifecycle.protocols.dca import DcaAdapter
from order_lifecycle.protocols.helpers import (
    contains_known_variant,
    find_account_by_name,
    find_signer,
    parse_accounts,
)
from order_lifecycle.protocols.kamino import KaminoAdapter
from order_lifecycle.protocols.limit_v1 import LimitV1Adapter
from order_lifecycle.protocols.limit_v2 import LimitV2Adapter
from order_lifecycle.protocols.registry import adapter_for

# ----------------------------------------------------------------------
# Public API definition
# ----------------------------------------------------------------------

__all__ = [
    # Taxonomy and records
    "Protocol",
    "EventType",
    "TerminalStatus",
    "RawInstruction",
    "RawEvent",
    "ResolveContext",
    "AccountInfo",

    # Correlation and payloads
    "CorrelationOutcome",
    "NotRequired",
    "Correlated",
    "Uncorrelated",
    "EventPayload",
    "NoPayload",
    "DcaFill",
    "DcaClosed",
    "LimitFill",
    "KaminoDisplay",

    # Adapters
    "ProtocolAdapter",
    "ResolvedEvent",
    "DcaAdapter",
    "LimitV1Adapter",
    "LimitV2Adapter",
    "KaminoAdapter",
    "adapter_for",
    "parse_accounts",
    "find_signer",
    "find_account_by_name",
    "contains_known_variant",
    "checked_u64_to_i64",
    "checked_u16_to_i16",

    # Lifecycle
    "LifecycleTransition",
    "Create",
    "FillDelta",
    "Close",
    "MetadataOnly",
    "TransitionDecision",
    "SnapshotDelta",
    "LifecycleEngine",
    "decide_transition",
    "normalize_snapshot_to_delta",
    "event_type_to_transition",
    "resolved_event_transition",
    "transition_to_display",
    "transition_target",

    # Ledger
    "OrderLedger",
    "OrderRecord",
    "LedgerEntry",
    "LedgerConfig",
    "EventBus",

    # Catalogue
    "protocol_catalog",
    "classify_variant",

    # Errors
    "OrderLifecycleError",
    "ParseError",
    "ProtocolError",
    "JsonError",

    # Version
    "__version__",
]

# ----------------------------------------------------------------------
# Package version
# ----------------------------------------------------------------------

try:
    __version__ = version("defi-order-lifecycle")
except PackageNotFoundError:
    __version__ = "0.0.0"
