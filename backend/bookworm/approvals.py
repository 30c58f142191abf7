"""Book review workflow: approve, reject and achievement reconciliation.

A book moves from ``pending`` to ``approved`` or ``rejected`` exactly once.
The transition is a conditional UPDATE so that when two parents review the
same book at the same time only one of them wins; the other sees an
:class:`~bookworm.errors.InvalidStateError`.

Granting achievements is a reconciliation step rather than part of the
approval transaction.  It can be re-run at any time and is invoked again
whenever a child's book list is read, which repairs any grant that failed
after the status change had already been committed.
"""

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from bookworm.achievements import evaluate
from bookworm.crud import (
    add_achievements,
    count_approved_books,
    get_granted_achievement_types,
)
from bookworm.errors import InvalidStateError
from bookworm.models import Achievement, Book

logger = logging.getLogger(__name__)

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

RECONCILE_ATTEMPTS = 2


async def _transition(
    db: AsyncSession, book: Book, new_status: str, reviewer_id: int | None
) -> Book:
    if book.status != PENDING:
        raise InvalidStateError(f"Book {book.id} has already been {book.status}")
    values = {"status": new_status, "reviewed_by": reviewer_id}
    if new_status == APPROVED:
        values["approved_at"] = datetime.utcnow()
    result = await db.execute(
        update(Book)
        .where(Book.id == book.id, Book.status == PENDING)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        await db.refresh(book)
        raise InvalidStateError(f"Book {book.id} has already been {book.status}")
    await db.commit()
    await db.refresh(book)
    return book


async def reconcile_achievements(
    db: AsyncSession, child_id: int
) -> list[Achievement]:
    """Grant every achievement the child has earned but does not hold yet."""

    for attempt in range(RECONCILE_ATTEMPTS):
        approved = await count_approved_books(db, child_id)
        granted = await get_granted_achievement_types(db, child_id)
        new_achievements = evaluate(child_id, approved, granted)
        if not new_achievements:
            return []
        try:
            added = await add_achievements(db, new_achievements)
        except IntegrityError:
            # Another request granted one of these first; re-read and retry.
            await db.rollback()
            logger.info(
                "Concurrent achievement grant for child %s (attempt %s)",
                child_id,
                attempt + 1,
            )
            continue
        logger.info(
            "Child %s earned %s",
            child_id,
            ", ".join(a.achievement_type for a in added),
        )
        return added
    return []


async def approve_book(
    db: AsyncSession, book: Book, reviewer_id: int | None = None
) -> tuple[Book, list[Achievement]]:
    """Approve a pending book and grant any achievements it unlocks."""

    book = await _transition(db, book, APPROVED, reviewer_id)
    logger.info("Book %s approved by user %s", book.id, reviewer_id)
    achievements = await reconcile_achievements(db, book.child_id)
    # A rolled-back grant expires loaded rows; reload before returning.
    await db.refresh(book)
    return book, achievements


async def reject_book(
    db: AsyncSession, book: Book, reviewer_id: int | None = None
) -> Book:
    """Reject a pending book. Rejected books earn nothing."""

    book = await _transition(db, book, REJECTED, reviewer_id)
    logger.info("Book %s rejected by user %s", book.id, reviewer_id)
    return book
