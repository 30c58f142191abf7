"""Routes for logging books and reviewing them."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bookworm.approvals import approve_book, reject_book, reconcile_achievements
from bookworm.auth import (
    get_current_user,
    get_current_child,
    get_current_identity,
    get_owned_child,
    get_visible_child,
)
from bookworm.book_info import BookLookup, get_book_lookup
from bookworm.crud import (
    create_book,
    get_book,
    get_books_by_child,
    get_pending_books_for_parent,
)
from bookworm.database import get_session
from bookworm.errors import ValidationError
from bookworm.models import Book, Child, User
from bookworm.schemas import (
    AchievementRead,
    ApprovalResult,
    BookCreate,
    BookRead,
    PendingBookRead,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/books", tags=["books"])


def _required(value: str, label: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"Please enter the book's {label}")
    return value


@router.post("/", response_model=BookRead)
async def submit_book(
    data: BookCreate,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
    lookup: BookLookup = Depends(get_book_lookup),
):
    """Log a book for review. Children log their own; parents pass ``child_id``."""
    kind, obj = identity
    if kind == "child":
        child = obj
    else:
        if data.child_id is None:
            raise ValidationError("Please select a child")
        child = await get_owned_child(db, data.child_id, obj)

    title = _required(data.title, "title")
    author = _required(data.author, "author")
    summary = _required(data.summary, "summary")

    info = await lookup(title, author)
    book = Book(
        child_id=child.id,
        title=title,
        author=author,
        summary=summary,
        cover_url=info.cover_url,
        reading_level=info.reading_level,
        interest_level=info.interest_level,
        status="pending",
    )
    new_book = await create_book(db, book)
    logger.info("Book %s submitted for child %s", new_book.id, child.id)
    return new_book


@router.get("/pending", response_model=list[PendingBookRead])
async def pending_books(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = await get_pending_books_for_parent(db, current_user.id)
    return [
        PendingBookRead(
            **BookRead.model_validate(book).model_dump(), child_name=child.name
        )
        for book, child in rows
    ]


@router.get("/mine", response_model=list[BookRead])
async def my_books(
    db: AsyncSession = Depends(get_session),
    child: Child = Depends(get_current_child),
):
    child_id = child.id
    await reconcile_achievements(db, child_id)
    return await get_books_by_child(db, child_id)


@router.get("/child/{child_id}", response_model=list[BookRead])
async def list_child_books(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
):
    await get_visible_child(db, child_id, identity)
    await reconcile_achievements(db, child_id)
    return await get_books_by_child(db, child_id)


async def _get_reviewable_book(
    db: AsyncSession, book_id: int, current_user: User
) -> Book:
    book = await get_book(db, book_id)
    if not book:
        raise HTTPException(status_code=404, detail="Book not found")
    await get_owned_child(db, book.child_id, current_user)
    return book


@router.post("/{book_id}/approve", response_model=ApprovalResult)
async def approve_book_route(
    book_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book = await _get_reviewable_book(db, book_id, current_user)
    book, achievements = await approve_book(db, book, current_user.id)
    return ApprovalResult(
        book=BookRead.model_validate(book),
        new_achievements=[AchievementRead.model_validate(a) for a in achievements],
    )


@router.post("/{book_id}/reject", response_model=BookRead)
async def reject_book_route(
    book_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book = await _get_reviewable_book(db, book_id, current_user)
    return await reject_book(db, book, current_user.id)
