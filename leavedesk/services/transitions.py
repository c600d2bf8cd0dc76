"""Role-gated transition table shared by leave and reimbursement requests.

The table maps ``(actor_role, subject_role, current_status)`` to the set of
statuses the actor may move a request to. Keys that are absent allow
nothing.
"""

from __future__ import annotations

from leavedesk.exceptions import AwaitingManagerError, UnauthorizedTransitionError
from leavedesk.models.enums import RequestStatus, Role

_DECIDE = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})
_REVERSE = frozenset({RequestStatus.REJECTED})

TRANSITION_TABLE: dict[tuple[Role, Role, RequestStatus], frozenset[RequestStatus]] = {
    # Managers handle the first tier for employees only.
    (Role.MANAGER, Role.EMPLOYEE, RequestStatus.PENDING): frozenset(
        {RequestStatus.MANAGER_APPROVED, RequestStatus.REJECTED},
    ),
    # Admins take the final decision.
    (Role.ADMIN, Role.EMPLOYEE, RequestStatus.MANAGER_APPROVED): _DECIDE,
    (Role.ADMIN, Role.MANAGER, RequestStatus.PENDING): _DECIDE,
    (Role.ADMIN, Role.ADMIN, RequestStatus.PENDING): _DECIDE,
    # Undoing a mistaken approval.
    (Role.ADMIN, Role.EMPLOYEE, RequestStatus.APPROVED): _REVERSE,
    (Role.ADMIN, Role.MANAGER, RequestStatus.APPROVED): _REVERSE,
    (Role.ADMIN, Role.ADMIN, RequestStatus.APPROVED): _REVERSE,
}

# Combinations where the request must first pass the manager tier.
AWAITING_MANAGER: frozenset[tuple[Role, Role, RequestStatus]] = frozenset(
    {(Role.ADMIN, Role.EMPLOYEE, RequestStatus.PENDING)},
)


def allowed_targets(actor_role: Role, subject_role: Role, current: RequestStatus) -> frozenset[RequestStatus]:
    """Return the statuses an actor may set from ``current``."""
    return TRANSITION_TABLE.get((actor_role, subject_role, current), frozenset())


def check_transition(
    actor_role: Role,
    subject_role: Role,
    current: RequestStatus,
    target: RequestStatus,
) -> None:
    """Raise unless the actor may move a request from ``current`` to ``target``."""
    key = (actor_role, subject_role, current)
    if key in AWAITING_MANAGER:
        raise AwaitingManagerError
    if target not in TRANSITION_TABLE.get(key, frozenset()):
        msg = f"{actor_role} cannot move a {subject_role} request from {current} to {target}"
        raise UnauthorizedTransitionError(msg)
