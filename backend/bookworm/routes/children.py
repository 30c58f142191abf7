"""Routes for managing children, their reward settings and progress."""

import logging
import random

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from bookworm.achievements import next_achievement
from bookworm.schemas import (
    ChildCreate,
    ChildRead,
    ChildLogin,
    ChildUpdate,
    ChildStats,
    RewardSettingsRead,
    RewardSettingsUpdate,
    ProgressRead,
    AVATAR_COLORS,
)
from bookworm.models import Child, User, RewardSettings
from bookworm.database import get_session
from bookworm.crud import (
    create_child,
    get_children_by_user,
    get_child_by_access_code,
    save_child,
    delete_child,
    get_reward_settings,
    set_reward_settings,
    count_approved_books,
    get_child_stats,
)
from bookworm.auth import (
    get_current_user,
    create_access_token,
    get_current_child,
    get_current_identity,
    get_owned_child,
    get_visible_child,
)
from bookworm.errors import ValidationError
from bookworm.rewards import compute_accrual, effective_policy, format_amount

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/children", tags=["children"])


async def _check_access_code(
    db: AsyncSession, access_code: str | None, child_id: int | None = None
) -> None:
    if not access_code:
        return
    existing = await get_child_by_access_code(db, access_code)
    if existing and existing.id != child_id:
        raise HTTPException(status_code=400, detail="Access code already in use")


@router.post("/", response_model=ChildRead)
async def create_child_route(
    data: ChildCreate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Create a new child for the current parent."""
    await _check_access_code(db, data.access_code)
    child = Child(
        parent_id=current_user.id,
        name=data.name,
        grade_level=data.grade_level,
        avatar_color=data.avatar_color or random.choice(AVATAR_COLORS),
        access_code=data.access_code or None,
    )
    settings = None
    if data.reward_settings is not None:
        settings = RewardSettings(**data.reward_settings.model_dump())
    new_child = await create_child(db, child, settings)
    logger.info("Child %s created by user %s", new_child.id, current_user.id)
    return new_child


@router.get("/", response_model=list[ChildRead])
async def list_children(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """List children belonging to the authenticated parent."""
    return await get_children_by_user(db, current_user.id)


@router.get("/stats", response_model=list[ChildStats])
async def list_children_with_stats(
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Dashboard view: every child with book counts and earnings."""
    result = []
    for child in await get_children_by_user(db, current_user.id):
        stats = await get_child_stats(db, child)
        result.append(
            ChildStats(
                id=child.id,
                name=child.name,
                grade_level=child.grade_level,
                avatar_color=child.avatar_color,
                created_at=child.created_at,
                total_books=stats["total_books"],
                approved_books=stats["approved_books"],
                pending_books=stats["pending_books"],
                total_earned=stats["total_earned"],
                reward_settings=RewardSettingsRead.for_child(
                    stats["reward_settings"]
                ),
            )
        )
    return result


@router.post("/login")
async def child_login(
    credentials: ChildLogin,
    db: AsyncSession = Depends(get_session),
):
    """Issue a token for a child using their access code."""
    child = await get_child_by_access_code(db, credentials.access_code)
    if not child:
        logger.warning("Failed child login")
        raise HTTPException(status_code=401, detail="Invalid access code")
    token = create_access_token(data={"sub": f"child:{child.id}"})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=ChildRead)
async def read_current_child(child: Child = Depends(get_current_child)):
    return child


@router.get("/{child_id}", response_model=ChildRead)
async def get_child_route(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
):
    return await get_visible_child(db, child_id, identity)


@router.put("/{child_id}", response_model=ChildRead)
async def update_child_route(
    child_id: int,
    data: ChildUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    child = await get_owned_child(db, child_id, current_user)
    if data.access_code:
        await _check_access_code(db, data.access_code, child_id)
    changes = data.model_dump(exclude_unset=True, exclude={"reward_settings"})
    if "name" in changes:
        name = (changes["name"] or "").strip()
        if not name:
            raise ValidationError("Please enter a name")
        changes["name"] = name
    # Child and policy are committed together by save_child.
    if data.reward_settings is not None:
        await set_reward_settings(
            db,
            child_id,
            data.reward_settings.reward_type,
            data.reward_settings.amount_per_book,
            data.reward_settings.payout_threshold,
            commit=False,
        )
    for field, value in changes.items():
        if field == "grade_level" and value is None:
            continue
        setattr(child, field, value)
    updated = await save_child(db, child)
    logger.info("Child %s updated by user %s", child_id, current_user.id)
    return updated


@router.delete("/{child_id}", status_code=204)
async def delete_child_route(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Delete a child together with their books, achievements and prizes."""
    child = await get_owned_child(db, child_id, current_user)
    await delete_child(db, child)
    logger.info("Child %s deleted by user %s", child_id, current_user.id)
    return


@router.get("/{child_id}/reward-settings", response_model=RewardSettingsRead)
async def read_reward_settings(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
):
    await get_visible_child(db, child_id, identity)
    settings = await get_reward_settings(db, child_id)
    return RewardSettingsRead.for_child(settings)


@router.put("/{child_id}/reward-settings", response_model=RewardSettingsRead)
async def update_reward_settings(
    child_id: int,
    data: RewardSettingsUpdate,
    db: AsyncSession = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    await get_owned_child(db, child_id, current_user)
    settings = await set_reward_settings(
        db, child_id, data.reward_type, data.amount_per_book, data.payout_threshold
    )
    return RewardSettingsRead.for_child(settings)


@router.get("/{child_id}/progress", response_model=ProgressRead)
async def read_progress(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
):
    """Earnings and progress toward the payout threshold, computed fresh."""
    await get_visible_child(db, child_id, identity)
    approved = await count_approved_books(db, child_id)
    policy = effective_policy(await get_reward_settings(db, child_id))
    accrual = compute_accrual(approved, policy)
    upcoming = next_achievement(approved)
    return ProgressRead(
        child_id=child_id,
        approved_books=approved,
        reward_type=policy.reward_type,
        amount_per_book=policy.amount_per_book,
        payout_threshold=policy.payout_threshold,
        total_earned=accrual.total_earned,
        total_earned_display=format_amount(accrual.total_earned, policy.reward_type),
        progress_ratio=accrual.progress_ratio,
        progress_percent=round(accrual.display_progress * 100, 2),
        goal_reached=accrual.goal_reached,
        next_achievement=upcoming.title if upcoming else None,
        books_to_next_achievement=upcoming.count - approved if upcoming else None,
    )
