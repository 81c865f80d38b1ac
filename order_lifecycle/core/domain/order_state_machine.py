"""
Order lifecycle state machine.

This module defines the lifecycle transitions, the terminal statuses that
absorb them, and the stateless engine that arbitrates whether a transition
may be applied to an order given its current status.

The engine is pure: the caller owns per-order status and must serialise the
transitions it applies to a single order.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from order_lifecycle.core.domain.conversions import I64_MAX
from order_lifecycle.core.domain.taxonomy import TerminalStatus

# Terminal order statuses: once reached, only metadata updates are admitted.
ORDER_TERMINAL_STATES: frozenset[str] = frozenset(status.value for status in TerminalStatus)

# Status assigned by a Create transition.
ACTIVE_STATE: str = "active"


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Create:
    pass


@dataclass(frozen=True, slots=True)
class FillDelta:
    pass


@dataclass(frozen=True, slots=True)
class Close:
    status: TerminalStatus


@dataclass(frozen=True, slots=True)
class MetadataOnly:
    pass


LifecycleTransition = Union[Create, FillDelta, Close, MetadataOnly]

ALL_TRANSITIONS: tuple[LifecycleTransition, ...] = (
    Create(),
    FillDelta(),
    *(Close(status) for status in TerminalStatus),
    MetadataOnly(),
)


class TransitionDecision(str, Enum):
    APPLY = "Apply"
    IGNORE_TERMINAL_VIOLATION = "IgnoreTerminalViolation"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class SnapshotDelta:
    """Incremental quantity derived from a cumulative snapshot.

    ``delta`` is never negative. ``regression`` is set when the snapshot is
    below the stored total, in which case ``delta`` is 0.
    """

    delta: int
    regression: bool


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


def is_terminal_state(state: str | None) -> bool:
    """Return True if the given status string is terminal."""
    return state in ORDER_TERMINAL_STATES


class LifecycleEngine:
    """Terminal-state transition arbiter (stateless)."""

    @staticmethod
    def decide_transition(
        current_terminal: TerminalStatus | None,
        transition: LifecycleTransition,
    ) -> TransitionDecision:
        """Decide whether ``transition`` may be applied.

        Orders that are not terminal admit everything. Terminal orders admit
        only MetadataOnly; no transition between terminal statuses is applied.
        """
        if current_terminal is None:
            return TransitionDecision.APPLY

        if isinstance(transition, MetadataOnly):
            return TransitionDecision.APPLY
        return TransitionDecision.IGNORE_TERMINAL_VIOLATION

    @staticmethod
    def normalize_snapshot_to_delta(stored_total: int, snapshot_total: int) -> SnapshotDelta:
        """Convert a cumulative snapshot into a non-negative delta.

        The difference saturates at i64::MAX so the result always fits the
        stored column.
        """
        if snapshot_total < stored_total:
            return SnapshotDelta(delta=0, regression=True)
        return SnapshotDelta(delta=min(snapshot_total - stored_total, I64_MAX), regression=False)


decide_transition = LifecycleEngine.decide_transition
normalize_snapshot_to_delta = LifecycleEngine.normalize_snapshot_to_delta
