"""State machines for catalog operations.

The cascade delete walks a fixed sequence of states. Each step must be
entered from its predecessor; ABORTED is reachable from any non-terminal
state.
"""

from enum import Enum

from storefront.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Cascade Delete State Machine
# ============================================================================


class CascadeDeleteState(str, Enum):
    """Cascade delete lifecycle states.

    State diagram:
        START ──────────────────────────────┐
          │ relax constraints               │
          ▼                                 │
        CONSTRAINTS_RELAXED ────────────────┤
          │ delete categories/reviews/      │
          │ comments                        │
          ▼                                 │
        DEPENDENTS_CLEARED ─────────────────┤
          │ delete product                  │ failure
          ▼                                 │
        PRODUCT_REMOVED ────────────────────┤
          │ restore constraints             │
          ▼                                 │
        CONSTRAINTS_RESTORED ───────────────┤
          │ commit                          ▼
          ▼                              ABORTED
        DONE
    """

    START = "start"
    CONSTRAINTS_RELAXED = "constraints_relaxed"
    DEPENDENTS_CLEARED = "dependents_cleared"
    PRODUCT_REMOVED = "product_removed"
    CONSTRAINTS_RESTORED = "constraints_restored"
    DONE = "done"
    ABORTED = "aborted"

    def can_transition_to(self, target: "CascadeDeleteState") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _CASCADE_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["CascadeDeleteState"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return list(_CASCADE_TRANSITIONS.get(self, set()))

    def is_terminal(self) -> bool:
        """Check if this is a terminal (final) state.

        Returns:
            True if no further transitions are possible.
        """
        return len(_CASCADE_TRANSITIONS.get(self, set())) == 0


_CASCADE_TRANSITIONS: dict[CascadeDeleteState, set[CascadeDeleteState]] = {
    CascadeDeleteState.START: {
        CascadeDeleteState.CONSTRAINTS_RELAXED,
        CascadeDeleteState.ABORTED,
    },
    CascadeDeleteState.CONSTRAINTS_RELAXED: {
        CascadeDeleteState.DEPENDENTS_CLEARED,
        CascadeDeleteState.ABORTED,
    },
    CascadeDeleteState.DEPENDENTS_CLEARED: {
        CascadeDeleteState.PRODUCT_REMOVED,
        CascadeDeleteState.ABORTED,
    },
    CascadeDeleteState.PRODUCT_REMOVED: {
        CascadeDeleteState.CONSTRAINTS_RESTORED,
        CascadeDeleteState.ABORTED,
    },
    CascadeDeleteState.CONSTRAINTS_RESTORED: {
        CascadeDeleteState.DONE,
        CascadeDeleteState.ABORTED,
    },
    CascadeDeleteState.DONE: set(),  # Terminal state
    CascadeDeleteState.ABORTED: set(),  # Terminal state
}


def validate_cascade_transition(
    product_id: int,
    current: CascadeDeleteState,
    target: CascadeDeleteState,
) -> None:
    """Validate a cascade delete state transition.

    Args:
        product_id: Product being deleted.
        current: Current state.
        target: Target state.

    Raises:
        InvalidStateTransitionError: If transition is invalid.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            entity_type="CascadeDelete",
            entity_id=str(product_id),
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
