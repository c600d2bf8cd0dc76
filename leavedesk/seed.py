"""Seed script for development data.

Run with:  python -m leavedesk.seed

Registers an admin, a manager and two employees with well-known IDs so the
API can be exercised with ``X-User-Id`` headers right away.
"""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from typing import TYPE_CHECKING

from leavedesk.config import get_settings
from leavedesk.exceptions import AppError
from leavedesk.models.enums import Role
from leavedesk.models.subject import Subject
from leavedesk.services.ledger import BalanceLedger

if TYPE_CHECKING:
    from leavedesk.services.repository import RequestRepository

logger = logging.getLogger(__name__)

ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
ALICE_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")
BOB_ID = uuid.UUID("00000000-0000-0000-0000-000000000004")

SUBJECTS = [
    {"id": ADMIN_ID, "name": "Ada Admin", "email": "ada.admin@example.com", "role": Role.ADMIN, "department": "HR"},
    {
        "id": MANAGER_ID,
        "name": "Max Manager",
        "email": "max.manager@example.com",
        "role": Role.MANAGER,
        "department": "Engineering",
    },
    {
        "id": ALICE_ID,
        "name": "Alice Johnson",
        "email": "alice.johnson@example.com",
        "role": Role.EMPLOYEE,
        "department": "Engineering",
    },
    {
        "id": BOB_ID,
        "name": "Bob Smith",
        "email": "bob.smith@example.com",
        "role": Role.EMPLOYEE,
        "department": "Sales",
        "leave_balance": 5,
    },
]


async def seed_subjects(repository: RequestRepository) -> list[Subject]:
    """Register the demo subjects, skipping any that already exist."""
    ledger = BalanceLedger()
    default_balance = get_settings().default_leave_balance
    created: list[Subject] = []
    for entry in SUBJECTS:
        if await repository.get_subject(entry["id"]) is not None:
            logger.info("Skipping existing subject %s", entry["email"])
            continue
        subject = Subject(
            id=entry["id"],
            name=entry["name"],
            email=entry["email"],
            role=entry["role"].value,
            department=entry["department"],
            leave_balance=entry.get("leave_balance", default_balance),
        )
        try:
            await repository.insert_subject(subject, ledger.opening(subject).to_entry())
        except AppError as exc:
            logger.warning("Could not seed %s: %s", entry["email"], exc.message)
            continue
        created.append(subject)
        logger.info("Seeded %s %s", subject.role, subject.email)
    return created


async def _main() -> int:
    from leavedesk.db import create_tables, dispose_engine, get_session_factory
    from leavedesk.services.repository import SqlRequestRepository

    await create_tables()
    try:
        created = await seed_subjects(SqlRequestRepository(get_session_factory()))
    finally:
        await dispose_engine()
    logger.info("Seeded %d subjects", len(created))
    return 0


def main() -> None:
    """Entry point for the seed script."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    sys.exit(asyncio.run(_main()))


if __name__ == "__main__":
    main()
