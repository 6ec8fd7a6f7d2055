"""Delete request workflow for the back office.

Implements the pending → approved / rejected state machine for owner-initiated
document deletion.
"""

from .states import DeleteRequestState, DeleteRequestTransition, VALID_TRANSITIONS
from .machine import DeleteRequestStateMachine, TransitionError, PermissionDeniedError
from .service import DeleteRequestService

__all__ = [
    "DeleteRequestState",
    "DeleteRequestTransition",
    "VALID_TRANSITIONS",
    "DeleteRequestStateMachine",
    "TransitionError",
    "PermissionDeniedError",
    "DeleteRequestService",
]
