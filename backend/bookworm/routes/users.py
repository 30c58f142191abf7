"""Profile endpoints for the signed-in parent."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookworm.auth import get_current_user
from bookworm.crud import (
    save_user,
    get_children_by_user,
    count_pending_books_for_parent,
)
from bookworm.database import get_session
from bookworm.errors import ValidationError
from bookworm.models import User
from bookworm.schemas import UserResponse, UserUpdate, UserSummary

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def read_current_user(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/me", response_model=UserResponse)
async def update_current_user(
    data: UserUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if data.full_name is not None:
        name = data.full_name.strip()
        if not name:
            raise ValidationError("Please enter your name")
        current_user.full_name = name
    return await save_user(db, current_user)


@router.get("/me/summary", response_model=UserSummary)
async def read_summary(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    children = await get_children_by_user(db, current_user.id)
    pending = await count_pending_books_for_parent(db, current_user.id)
    return UserSummary(children=len(children), pending_books=pending)
