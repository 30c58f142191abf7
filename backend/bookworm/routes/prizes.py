"""Routes for the parent's prize wishlist.

Prizes are not linked to accrued earnings: a parent marks a prize as
redeemed by hand.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from bookworm.auth import get_current_child, get_current_user, get_owned_child
from bookworm.crud import (
    create_prize,
    delete_prize,
    get_prize,
    get_prizes_by_parent,
    get_prizes_for_child,
    save_prize,
)
from bookworm.database import get_session
from bookworm.errors import ValidationError
from bookworm.models import Child, Prize, User
from bookworm.schemas import PrizeCreate, PrizeRead, PrizeUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prizes", tags=["prizes"])


def _validate(name: str | None, points_required: float | None) -> None:
    if name is not None and not name.strip():
        raise ValidationError("Please enter a prize name")
    if points_required is not None and points_required < 0:
        raise ValidationError("Please enter a valid points value")


async def _get_own_prize(db: AsyncSession, prize_id: int, user: User) -> Prize:
    prize = await get_prize(db, prize_id)
    if not prize or prize.parent_id != user.id:
        raise HTTPException(status_code=404, detail="Prize not found")
    return prize


@router.get("/", response_model=list[PrizeRead])
async def list_prizes(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return await get_prizes_by_parent(db, current_user.id)


@router.get("/mine", response_model=list[PrizeRead])
async def my_prizes(
    db: AsyncSession = Depends(get_session),
    child: Child = Depends(get_current_child),
):
    return await get_prizes_for_child(db, child)


@router.post("/", response_model=PrizeRead)
async def add_prize(
    data: PrizeCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    _validate(data.name, data.points_required)
    if data.child_id is not None:
        await get_owned_child(db, data.child_id, current_user)
    prize = Prize(
        parent_id=current_user.id,
        child_id=data.child_id,
        name=data.name.strip(),
        description=data.description.strip(),
        points_required=data.points_required,
    )
    new_prize = await create_prize(db, prize)
    logger.info("Prize %s created by user %s", new_prize.id, current_user.id)
    return new_prize


@router.put("/{prize_id}", response_model=PrizeRead)
async def update_prize(
    prize_id: int,
    data: PrizeUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    prize = await _get_own_prize(db, prize_id, current_user)
    _validate(data.name, data.points_required)
    changes = data.model_dump(exclude_unset=True)
    if changes.get("child_id") is not None:
        await get_owned_child(db, changes["child_id"], current_user)
    for field, value in changes.items():
        # child_id=None makes the prize family-wide; other fields are required
        if value is None and field != "child_id":
            continue
        if isinstance(value, str):
            value = value.strip()
        setattr(prize, field, value)
    return await save_prize(db, prize)


@router.post("/{prize_id}/redeem", response_model=PrizeRead)
async def toggle_redeemed(
    prize_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Flip the redeemed flag."""
    prize = await _get_own_prize(db, prize_id, current_user)
    prize.is_redeemed = not prize.is_redeemed
    updated = await save_prize(db, prize)
    logger.info(
        "Prize %s marked %s by user %s",
        prize_id,
        "redeemed" if updated.is_redeemed else "available",
        current_user.id,
    )
    return updated


@router.delete("/{prize_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_prize(
    prize_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    prize = await _get_own_prize(db, prize_id, current_user)
    await delete_prize(db, prize)
    logger.info("Prize %s deleted by user %s", prize_id, current_user.id)
    return None
