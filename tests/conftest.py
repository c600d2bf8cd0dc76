from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from leavedesk.db import get_session
from leavedesk.main import app
from leavedesk.models import SQLModel
from leavedesk.models.enums import Role
from leavedesk.models.subject import Subject
from leavedesk.seed import seed_subjects
from leavedesk.services.events import RecordingEventPublisher, get_event_publisher, set_event_publisher
from leavedesk.services.repository import InMemoryRequestRepository, SqlRequestRepository, set_repository
from leavedesk.services.state_machine import ApprovalStateMachine

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

INITIAL_BALANCE = 20


def make_subject(role: Role, name: str, balance: int = INITIAL_BALANCE) -> Subject:
    return Subject(
        name=name,
        email=f"{name.lower().replace(' ', '.')}@example.com",
        role=role.value,
        department="Engineering",
        leave_balance=balance,
    )


# ---------------------------------------------------------------------------
# In-memory workflow fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def repository() -> InMemoryRequestRepository:
    return InMemoryRequestRepository()


@pytest.fixture
def publisher() -> RecordingEventPublisher:
    return RecordingEventPublisher()


@pytest.fixture
def machine(repository: InMemoryRequestRepository, publisher: RecordingEventPublisher) -> ApprovalStateMachine:
    return ApprovalStateMachine(repository, publisher, max_attempts=3)


@pytest.fixture
def employee(repository: InMemoryRequestRepository) -> Subject:
    subject = make_subject(Role.EMPLOYEE, "Erin Employee")
    repository.seed(subject)
    return subject


@pytest.fixture
def manager(repository: InMemoryRequestRepository) -> Subject:
    subject = make_subject(Role.MANAGER, "Mia Manager")
    repository.seed(subject)
    return subject


@pytest.fixture
def admin(repository: InMemoryRequestRepository) -> Subject:
    subject = make_subject(Role.ADMIN, "Ada Admin")
    repository.seed(subject)
    return subject


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """Create a throwaway SQLite database with all tables for one test."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'leave_desk.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
def sql_repository(session_factory: async_sessionmaker[AsyncSession]) -> SqlRequestRepository:
    return SqlRequestRepository(session_factory)


@pytest.fixture
def api_publisher() -> Iterator[RecordingEventPublisher]:
    """Record events published through the API for the duration of a test."""
    previous = get_event_publisher()
    recorder = RecordingEventPublisher()
    set_event_publisher(recorder)
    yield recorder
    set_event_publisher(previous)


@pytest.fixture
async def async_client(
    sql_repository: SqlRequestRepository,
    session_factory: async_sessionmaker[AsyncSession],
    api_publisher: RecordingEventPublisher,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the SQLite repository."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_factory() as session:
            yield session

    set_repository(sql_repository)
    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()
    set_repository(None)


@pytest.fixture
async def seeded(sql_repository: SqlRequestRepository) -> list[Subject]:
    """Register the demo admin, manager and employees in the SQLite database."""
    return await seed_subjects(sql_repository)
