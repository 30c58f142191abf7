"""Asynchronous CRUD helpers for the application's data models.

Each function in this module encapsulates a specific database operation
using SQLModel and SQLAlchemy.  Centralizing the logic keeps route
handlers light and makes behavior easier to test.
"""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, delete
from sqlalchemy import func, or_
from bookworm.models import (
    User,
    Child,
    RewardSettings,
    Book,
    Achievement,
    Prize,
)
from bookworm.auth import get_password_hash
from bookworm.rewards import validate_policy, effective_policy, compute_accrual

logger = logging.getLogger(__name__)


# --- Parents ----------------------------------------------------------------

async def create_user(db: AsyncSession, user: User) -> User:
    """Create a new parent, hashing the password if needed."""

    if not user.password_hash.startswith("$2b$"):
        user.password_hash = get_password_hash(user.password_hash)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Load a parent by primary key."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def save_user(db: AsyncSession, user: User) -> User:
    """Persist changes to an existing parent."""

    user.updated_at = datetime.utcnow()
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


# --- Children ---------------------------------------------------------------

async def create_child(
    db: AsyncSession,
    child: Child,
    settings: RewardSettings | None = None,
) -> Child:
    """Create a child and, optionally, its reward settings together."""

    if settings is not None:
        validate_policy(
            settings.reward_type, settings.amount_per_book, settings.payout_threshold
        )
    db.add(child)
    await db.flush()  # ensure child.id is populated
    if settings is not None:
        settings.child_id = child.id
        db.add(settings)
    await db.commit()
    await db.refresh(child)
    return child


async def get_children_by_user(db: AsyncSession, user_id: int) -> list[Child]:
    """Return all children of a parent, oldest first."""
    result = await db.execute(
        select(Child)
        .where(Child.parent_id == user_id)
        .order_by(Child.created_at, Child.id)
    )
    return result.scalars().all()


async def get_child(db: AsyncSession, child_id: int) -> Child | None:
    """Fetch a child by id or ``None`` if not found."""
    result = await db.execute(select(Child).where(Child.id == child_id))
    return result.scalar_one_or_none()


async def get_child_by_access_code(db: AsyncSession, access_code: str):
    """Return a child by their unique access code."""
    result = await db.execute(
        select(Child).where(Child.access_code == access_code)
    )
    return result.scalars().first()


async def save_child(db: AsyncSession, child: Child) -> Child:
    """Persist changes to a child record."""

    child.updated_at = datetime.utcnow()
    db.add(child)
    await db.commit()
    await db.refresh(child)
    return child


async def delete_child(db: AsyncSession, child: Child) -> None:
    """Remove a child and everything recorded for them."""
    await db.execute(delete(Achievement).where(Achievement.child_id == child.id))
    await db.execute(delete(Book).where(Book.child_id == child.id))
    await db.execute(
        delete(RewardSettings).where(RewardSettings.child_id == child.id)
    )
    await db.execute(delete(Prize).where(Prize.child_id == child.id))
    await db.delete(child)
    await db.commit()


# --- Reward settings --------------------------------------------------------

async def get_reward_settings(
    db: AsyncSession, child_id: int
) -> RewardSettings | None:
    """Return the stored reward settings for a child, if any."""
    result = await db.execute(
        select(RewardSettings).where(RewardSettings.child_id == child_id)
    )
    return result.scalar_one_or_none()


async def set_reward_settings(
    db: AsyncSession,
    child_id: int,
    reward_type: str,
    amount_per_book: float,
    payout_threshold: float,
    commit: bool = True,
) -> RewardSettings:
    """Create or replace a child's reward settings.

    With ``commit=False`` the row is only flushed so the caller can commit
    it together with other changes.
    """

    validate_policy(reward_type, amount_per_book, payout_threshold)
    settings = await get_reward_settings(db, child_id)
    if settings is None:
        settings = RewardSettings(child_id=child_id)
    settings.reward_type = reward_type
    settings.amount_per_book = amount_per_book
    settings.payout_threshold = payout_threshold
    settings.updated_at = datetime.utcnow()
    db.add(settings)
    if not commit:
        await db.flush()
        return settings
    await db.commit()
    await db.refresh(settings)
    logger.info("Reward settings saved for child %s", child_id)
    return settings


# --- Books ------------------------------------------------------------------

async def create_book(db: AsyncSession, book: Book) -> Book:
    """Persist a newly logged book."""

    db.add(book)
    await db.commit()
    await db.refresh(book)
    return book


async def get_book(db: AsyncSession, book_id: int) -> Book | None:
    result = await db.execute(select(Book).where(Book.id == book_id))
    return result.scalar_one_or_none()


async def get_books_by_child(db: AsyncSession, child_id: int) -> list[Book]:
    """Return a child's books, most recent first."""
    result = await db.execute(
        select(Book)
        .where(Book.child_id == child_id)
        .order_by(Book.submitted_at.desc(), Book.id.desc())
    )
    return result.scalars().all()


async def get_pending_books_for_parent(
    db: AsyncSession, parent_id: int
) -> list[tuple[Book, Child]]:
    """Return pending books for all of a parent's children, oldest first."""
    query = (
        select(Book, Child)
        .join(Child, Child.id == Book.child_id)
        .where(Child.parent_id == parent_id, Book.status == "pending")
        .order_by(Book.submitted_at, Book.id)
    )
    result = await db.execute(query)
    return result.all()


async def count_books_by_status(db: AsyncSession, child_id: int) -> dict[str, int]:
    result = await db.execute(
        select(Book.status, func.count())
        .where(Book.child_id == child_id)
        .group_by(Book.status)
    )
    counts = {"pending": 0, "approved": 0, "rejected": 0}
    for status, count in result.all():
        counts[status] = count
    return counts


async def count_approved_books(db: AsyncSession, child_id: int) -> int:
    """Count approved books with a fresh query; never cached."""
    result = await db.execute(
        select(func.count())
        .select_from(Book)
        .where(Book.child_id == child_id, Book.status == "approved")
    )
    return result.scalar_one()


# --- Achievements -----------------------------------------------------------

async def get_achievements_by_child(
    db: AsyncSession, child_id: int
) -> list[Achievement]:
    """Return a child's achievements, newest first."""
    result = await db.execute(
        select(Achievement)
        .where(Achievement.child_id == child_id)
        .order_by(Achievement.earned_at.desc(), Achievement.id.desc())
    )
    return result.scalars().all()


async def get_granted_achievement_types(db: AsyncSession, child_id: int) -> set[str]:
    result = await db.execute(
        select(Achievement.achievement_type).where(Achievement.child_id == child_id)
    )
    return set(result.scalars().all())


async def add_achievements(
    db: AsyncSession, achievements: list[Achievement]
) -> list[Achievement]:
    """Insert achievements in one commit.

    Raises ``IntegrityError`` if another writer granted one of them first.
    """
    if not achievements:
        return []
    db.add_all(achievements)
    await db.commit()
    for achievement in achievements:
        await db.refresh(achievement)
    return achievements


# --- Prizes -----------------------------------------------------------------

async def create_prize(db: AsyncSession, prize: Prize) -> Prize:
    db.add(prize)
    await db.commit()
    await db.refresh(prize)
    return prize


async def get_prize(db: AsyncSession, prize_id: int) -> Prize | None:
    result = await db.execute(select(Prize).where(Prize.id == prize_id))
    return result.scalar_one_or_none()


async def get_prizes_by_parent(db: AsyncSession, parent_id: int) -> list[Prize]:
    """Return every prize a parent created, newest first."""
    result = await db.execute(
        select(Prize)
        .where(Prize.parent_id == parent_id)
        .order_by(Prize.created_at.desc(), Prize.id.desc())
    )
    return result.scalars().all()


async def get_prizes_for_child(db: AsyncSession, child: Child) -> list[Prize]:
    """Return prizes for one child plus the family-wide ones."""
    result = await db.execute(
        select(Prize)
        .where(
            Prize.parent_id == child.parent_id,
            or_(Prize.child_id == child.id, Prize.child_id.is_(None)),
        )
        .order_by(Prize.points_required, Prize.id)
    )
    return result.scalars().all()


async def save_prize(db: AsyncSession, prize: Prize) -> Prize:
    db.add(prize)
    await db.commit()
    await db.refresh(prize)
    return prize


async def delete_prize(db: AsyncSession, prize: Prize) -> None:
    await db.delete(prize)
    await db.commit()


# --- Dashboard --------------------------------------------------------------

async def get_child_stats(db: AsyncSession, child: Child) -> dict:
    """Book counts and earnings for the parent dashboard."""

    counts = await count_books_by_status(db, child.id)
    settings = await get_reward_settings(db, child.id)
    accrual = compute_accrual(counts["approved"], effective_policy(settings))
    return {
        "total_books": sum(counts.values()),
        "approved_books": counts["approved"],
        "pending_books": counts["pending"],
        "total_earned": accrual.total_earned,
        "reward_settings": settings,
    }


async def count_pending_books_for_parent(db: AsyncSession, parent_id: int) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Book)
        .join(Child, Child.id == Book.child_id)
        .where(Child.parent_id == parent_id, Book.status == "pending")
    )
    return result.scalar_one()
