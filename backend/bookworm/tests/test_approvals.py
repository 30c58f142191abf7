"""Tests for the approval workflow against an in-memory database."""

import asyncio
import pathlib
import sys

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from bookworm.approvals import approve_book, reject_book, reconcile_achievements
from bookworm.auth import get_password_hash
from bookworm.crud import (
    count_approved_books,
    create_book,
    create_child,
    get_achievements_by_child,
    get_child_stats,
    set_reward_settings,
)
from bookworm.errors import InvalidStateError
from bookworm.models import Achievement, Book, Child, User


async def _setup():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    Session = async_sessionmaker(engine, expire_on_commit=False)
    async with Session() as session:
        parent = User(
            full_name="Parent",
            email="p@example.com",
            password_hash=get_password_hash("pass"),
        )
        session.add(parent)
        await session.commit()
        await session.refresh(parent)
        child = await create_child(
            session, Child(parent_id=parent.id, name="Kid", grade_level=2)
        )
    return Session, parent.id, child.id


async def _add_book(session, child_id, title="Book", status="pending"):
    return await create_book(
        session,
        Book(child_id=child_id, title=title, author="Author", summary="Fun", status=status),
    )


def test_approve_sets_status_and_grants_first_book():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            book = await _add_book(session, child_id)
            book, new = await approve_book(session, book, parent_id)
            assert book.status == "approved"
            assert book.approved_at is not None
            assert book.reviewed_by == parent_id
            assert [a.achievement_type for a in new] == ["first_book"]
            assert await count_approved_books(session, child_id) == 1

    asyncio.run(run())


def test_second_approve_and_reject_after_approve_fail():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            book = await _add_book(session, child_id)
            await approve_book(session, book, parent_id)
            with pytest.raises(InvalidStateError):
                await approve_book(session, book, parent_id)
            with pytest.raises(InvalidStateError):
                await reject_book(session, book, parent_id)

    asyncio.run(run())


def test_reject_has_no_side_effects():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            book = await _add_book(session, child_id)
            book = await reject_book(session, book, parent_id)
            assert book.status == "rejected"
            assert book.approved_at is None
            assert await get_achievements_by_child(session, child_id) == []
            with pytest.raises(InvalidStateError):
                await approve_book(session, book, parent_id)

    asyncio.run(run())


def test_stale_copy_loses_race():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as first, Session() as second:
            book = await _add_book(first, child_id)
            stale = await second.get(Book, book.id)
            await approve_book(first, book, parent_id)
            # The second reviewer still sees "pending" locally.
            assert stale.status == "pending"
            with pytest.raises(InvalidStateError):
                await reject_book(second, stale, parent_id)
            await second.refresh(stale)
            assert stale.status == "approved"

    asyncio.run(run())


def test_fifth_approval_grants_milestone_5_only():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            for i in range(4):
                book = await _add_book(session, child_id, title=f"Book {i}")
                await approve_book(session, book, parent_id)
            types = {a.achievement_type for a in await get_achievements_by_child(session, child_id)}
            assert types == {"first_book"}

            book = await _add_book(session, child_id, title="Book 5")
            _, new = await approve_book(session, book, parent_id)
            assert [a.achievement_type for a in new] == ["milestone_5"]

    asyncio.run(run())


def test_reconcile_repairs_missing_grants_and_is_idempotent():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            # Approved rows written without going through the workflow
            for i in range(10):
                await _add_book(session, child_id, title=f"B{i}", status="approved")
            session.add(
                Achievement(
                    child_id=child_id,
                    achievement_type="first_book",
                    title="First Book!",
                    description="Read your first book",
                )
            )
            await session.commit()

            added = await reconcile_achievements(session, child_id)
            assert [a.achievement_type for a in added] == ["milestone_5", "milestone_10"]
            assert await reconcile_achievements(session, child_id) == []
            assert len(await get_achievements_by_child(session, child_id)) == 3

    asyncio.run(run())


def test_stats_follow_current_policy():
    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            for i in range(3):
                book = await _add_book(session, child_id, title=f"B{i}")
                await approve_book(session, book, parent_id)
            await _add_book(session, child_id, title="waiting")
            child = await session.get(Child, child_id)

            stats = await get_child_stats(session, child)
            assert stats["total_books"] == 4
            assert stats["approved_books"] == 3
            assert stats["pending_books"] == 1
            assert stats["total_earned"] == pytest.approx(3.0)
            assert stats["reward_settings"] is None

            await set_reward_settings(session, child_id, "points", 10, 100)
            stats = await get_child_stats(session, child)
            assert stats["total_earned"] == 30

    asyncio.run(run())


def test_concurrent_grant_is_retried_without_duplicates(monkeypatch):
    import bookworm.approvals as approvals

    reads = []
    real_read = approvals.get_granted_achievement_types

    async def stale_once(db, child_id):
        reads.append(child_id)
        if len(reads) == 1:
            # Another request granted first_book after this one looked.
            return set()
        return await real_read(db, child_id)

    monkeypatch.setattr(approvals, "get_granted_achievement_types", stale_once)

    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            for i in range(5):
                await _add_book(session, child_id, title=f"B{i}", status="approved")
            session.add(
                Achievement(
                    child_id=child_id,
                    achievement_type="first_book",
                    title="First Book!",
                    description="Read your first book",
                )
            )
            await session.commit()

            added = await reconcile_achievements(session, child_id)
            assert len(reads) == 2
            assert [a.achievement_type for a in added] == ["milestone_5"]

            types = [a.achievement_type for a in await get_achievements_by_child(session, child_id)]
            assert sorted(types) == ["first_book", "milestone_5"]

    asyncio.run(run())


def test_lost_grant_race_leaves_single_row(monkeypatch):
    import bookworm.approvals as approvals

    reads = []
    real_read = approvals.get_granted_achievement_types

    async def stale_once(db, child_id):
        reads.append(child_id)
        if len(reads) == 1:
            return set()
        return await real_read(db, child_id)

    monkeypatch.setattr(approvals, "get_granted_achievement_types", stale_once)

    async def run():
        Session, parent_id, child_id = await _setup()
        async with Session() as session:
            await _add_book(session, child_id, status="approved")
            session.add(
                Achievement(
                    child_id=child_id,
                    achievement_type="first_book",
                    title="First Book!",
                    description="Read your first book",
                )
            )
            await session.commit()

            assert await reconcile_achievements(session, child_id) == []
            assert len(reads) == 2
            assert len(await get_achievements_by_child(session, child_id)) == 1

    asyncio.run(run())
