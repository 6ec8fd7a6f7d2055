"""Delete request states and transitions.

State Machine Diagram:

    ┌──────────┐
    │ PENDING  │ ← Created when a document owner asks for deletion
    └────┬─────┘
         │
         ├──────────────────┐
         │                  │
    ┌────▼─────┐      ┌─────▼────┐
    │ APPROVED │      │ REJECTED │
    └──────────┘      └──────────┘

APPROVED deletes the document and its stored file.
REJECTED leaves the document untouched. Both are terminal.
"""

from enum import Enum
from typing import Set, Dict, Optional, NamedTuple


class DeleteRequestState(str, Enum):
    """States of a delete request."""

    PENDING = "pending"      # Awaiting an admin decision
    APPROVED = "approved"    # Document removed
    REJECTED = "rejected"    # Document kept


class DeleteRequestTransition(str, Enum):
    """Actions that trigger state transitions."""

    APPROVE = "approve"      # PENDING → APPROVED
    REJECT = "reject"        # PENDING → REJECTED


class TransitionRule(NamedTuple):
    """Defines a valid state transition."""
    from_state: DeleteRequestState
    to_state: DeleteRequestState
    transition: DeleteRequestTransition
    requires_permission: Optional[str] = None


TRANSITION_RULES: list[TransitionRule] = [
    TransitionRule(DeleteRequestState.PENDING, DeleteRequestState.APPROVED,
                   DeleteRequestTransition.APPROVE, "delete-request:approve"),
    TransitionRule(DeleteRequestState.PENDING, DeleteRequestState.REJECTED,
                   DeleteRequestTransition.REJECT, "delete-request:approve"),
]

# Build lookup tables for efficient access
VALID_TRANSITIONS: Dict[DeleteRequestState, Set[DeleteRequestTransition]] = {}
TRANSITION_TARGETS: Dict[tuple[DeleteRequestState, DeleteRequestTransition], TransitionRule] = {}

for rule in TRANSITION_RULES:
    VALID_TRANSITIONS.setdefault(rule.from_state, set()).add(rule.transition)
    TRANSITION_TARGETS[(rule.from_state, rule.transition)] = rule


TERMINAL_STATES: Set[DeleteRequestState] = {
    DeleteRequestState.APPROVED,
    DeleteRequestState.REJECTED,
}

# Review decisions arrive as the target status name
STATUS_TO_TRANSITION: Dict[DeleteRequestState, DeleteRequestTransition] = {
    DeleteRequestState.APPROVED: DeleteRequestTransition.APPROVE,
    DeleteRequestState.REJECTED: DeleteRequestTransition.REJECT,
}


def can_transition(from_state: DeleteRequestState, transition: DeleteRequestTransition) -> bool:
    """Check if a transition is valid from the given state."""
    return transition in VALID_TRANSITIONS.get(from_state, set())


def get_transition_rule(
    from_state: DeleteRequestState, transition: DeleteRequestTransition
) -> Optional[TransitionRule]:
    """Get the transition rule for a state/action combination."""
    return TRANSITION_TARGETS.get((from_state, transition))


def get_target_state(
    from_state: DeleteRequestState, transition: DeleteRequestTransition
) -> Optional[DeleteRequestState]:
    """Get the target state for a transition."""
    rule = get_transition_rule(from_state, transition)
    return rule.to_state if rule else None


def transition_for_status(status: DeleteRequestState) -> Optional[DeleteRequestTransition]:
    """Map a requested target status to the transition that reaches it."""
    return STATUS_TO_TRANSITION.get(status)
