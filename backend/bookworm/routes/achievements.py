"""Routes for reading achievements."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bookworm.auth import get_current_child, get_current_identity, get_visible_child
from bookworm.crud import get_achievements_by_child
from bookworm.database import get_session
from bookworm.models import Child, User
from bookworm.schemas import AchievementRead

router = APIRouter(prefix="/achievements", tags=["achievements"])


@router.get("/mine", response_model=list[AchievementRead])
async def my_achievements(
    child: Child = Depends(get_current_child),
    db: AsyncSession = Depends(get_session),
):
    return await get_achievements_by_child(db, child.id)


@router.get("/child/{child_id}", response_model=list[AchievementRead])
async def child_achievements(
    child_id: int,
    db: AsyncSession = Depends(get_session),
    identity: tuple[str, Child | User] = Depends(get_current_identity),
):
    await get_visible_child(db, child_id, identity)
    return await get_achievements_by_child(db, child_id)
