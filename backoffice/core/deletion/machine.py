"""Delete request state machine implementation.

Handles state transitions with validation, permission checking and history.
"""

from datetime import datetime
from typing import Optional, Dict, Any, Iterable

from .states import (
    DeleteRequestState,
    DeleteRequestTransition,
    can_transition,
    get_transition_rule,
    TERMINAL_STATES,
)


class TransitionError(Exception):
    """Raised when a state transition is invalid."""

    def __init__(self, message: str, from_state: DeleteRequestState, transition: DeleteRequestTransition):
        super().__init__(message)
        self.from_state = from_state
        self.transition = transition


class PermissionDeniedError(Exception):
    """Raised when the reviewer lacks permission for a transition."""

    def __init__(self, required_permission: str):
        super().__init__(f"Permission denied: requires {required_permission}")
        self.required_permission = required_permission


class DeleteRequestStateMachine:
    """
    State machine for a single delete request.

    Validates each transition, checks the reviewer permission it requires
    and records it in the history.
    """

    def __init__(
        self,
        request_id: int,
        current_state: DeleteRequestState,
        *,
        user_permissions: Optional[Iterable[str]] = None,
    ):
        """
        Initialize the state machine.

        Args:
            request_id: ID of the delete request
            current_state: Current state
            user_permissions: Permission names held by the acting reviewer
        """
        self.request_id = request_id
        self._state = DeleteRequestState(current_state)
        self.user_permissions = set(user_permissions or [])
        self._transition_history: list[Dict[str, Any]] = []

    @property
    def state(self) -> DeleteRequestState:
        return self._state

    @property
    def is_terminal(self) -> bool:
        return self._state in TERMINAL_STATES

    def transition(
        self,
        transition: DeleteRequestTransition,
        *,
        user_id: Optional[int] = None,
    ) -> DeleteRequestState:
        """
        Perform a state transition.

        Raises:
            TransitionError: If the transition is invalid
            PermissionDeniedError: If the reviewer lacks the required permission
        """
        if not can_transition(self._state, transition):
            raise TransitionError(
                f"Cannot {transition.value} a request that is already {self._state.value}",
                self._state,
                transition,
            )

        rule = get_transition_rule(self._state, transition)
        if rule.requires_permission and rule.requires_permission not in self.user_permissions:
            raise PermissionDeniedError(rule.requires_permission)

        record = {
            "request_id": self.request_id,
            "from_state": self._state.value,
            "to_state": rule.to_state.value,
            "transition": transition.value,
            "user_id": user_id,
            "timestamp": datetime.utcnow(),
        }
        self._transition_history.append(record)
        self._state = rule.to_state

        return self._state

    def get_history(self) -> list[Dict[str, Any]]:
        return self._transition_history.copy()
