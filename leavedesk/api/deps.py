# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header, status

from leavedesk.exceptions import AppError
from leavedesk.models.enums import Role
from leavedesk.models.subject import Subject
from leavedesk.services.events import EventPublisher, get_event_publisher
from leavedesk.services.repository import RequestRepository, get_repository
from leavedesk.services.state_machine import ApprovalStateMachine

RepositoryDep = Annotated[RequestRepository, Depends(get_repository)]
PublisherDep = Annotated[EventPublisher, Depends(get_event_publisher)]


async def get_actor(repository: RepositoryDep, x_user_id: uuid.UUID = Header()) -> Subject:
    """Resolve the caller from the dev `X-User-Id` header.

    The header only identifies the caller; the role comes from the stored subject.
    """
    actor = await repository.get_subject(x_user_id)
    if actor is None:
        raise AppError("Unknown user", status_code=status.HTTP_401_UNAUTHORIZED)
    return actor


ActorDep = Annotated[Subject, Depends(get_actor)]


async def require_reviewer(actor: ActorDep) -> Subject:
    """Require a Manager or Admin."""
    if actor.role not in (Role.MANAGER, Role.ADMIN):
        raise AppError(
            f"Role: {actor.role} is not authorized to access this resource",
            status_code=status.HTTP_403_FORBIDDEN,
        )
    return actor


ReviewerDep = Annotated[Subject, Depends(require_reviewer)]


async def require_admin(actor: ActorDep) -> Subject:
    """Require admin role for the request."""
    if actor.role != Role.ADMIN:
        raise AppError("Admin access required", status_code=status.HTTP_403_FORBIDDEN)
    return actor


AdminDep = Annotated[Subject, Depends(require_admin)]


def get_state_machine(repository: RepositoryDep, publisher: PublisherDep) -> ApprovalStateMachine:
    return ApprovalStateMachine(repository, publisher)


StateMachineDep = Annotated[ApprovalStateMachine, Depends(get_state_machine)]
