# ruff: noqa: TC003
"""Lifecycle events and the publishers that fan them out.

Delivery is at-most-once and fire-and-forget: the state machine never
depends on an event reaching anyone.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel

from leavedesk.models.enums import RequestKind, RequestStatus

logger = logging.getLogger(__name__)


class RequestCreated(BaseModel):
    """A subject created a new request (managers want to hear about it)."""

    event: Literal["request_created"] = "request_created"
    kind: RequestKind
    request_id: uuid.UUID
    subject_id: uuid.UUID
    subject_name: str
    risk_flag: bool | None = None
    charged_days: int = 0
    charged_amount: Decimal = Decimal(0)


class RequestStatusChanged(BaseModel):
    """A request moved to a new status (the owning subject wants to hear about it)."""

    event: Literal["request_status_changed"] = "request_status_changed"
    kind: RequestKind
    request_id: uuid.UUID
    subject_id: uuid.UUID
    new_status: RequestStatus


LifecycleEvent = RequestCreated | RequestStatusChanged


@runtime_checkable
class EventPublisher(Protocol):
    """Interface for the notification fan-out."""

    async def publish(self, event: LifecycleEvent) -> None:
        """Deliver an event to interested observers, best effort."""
        ...


class LoggingEventPublisher:
    """Publisher that writes every event to the application log."""

    async def publish(self, event: LifecycleEvent) -> None:
        logger.info("Event %s: %s", event.event, event.model_dump_json())


class RecordingEventPublisher:
    """In-memory publisher that keeps events for inspection."""

    def __init__(self) -> None:
        self.events: list[LifecycleEvent] = []

    async def publish(self, event: LifecycleEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: type[BaseModel]) -> list[LifecycleEvent]:
        """Return recorded events of one type, in publish order."""
        return [e for e in self.events if isinstance(e, event_type)]


_event_publisher: EventPublisher = LoggingEventPublisher()


def get_event_publisher() -> EventPublisher:
    """FastAPI dependency for the event publisher."""
    return _event_publisher


def set_event_publisher(publisher: EventPublisher) -> None:
    """Override the publisher (for testing or production wiring)."""
    global _event_publisher
    _event_publisher = publisher
