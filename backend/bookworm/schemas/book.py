from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from bookworm.schemas.achievement import AchievementRead


class BookCreate(BaseModel):
    title: str
    author: str
    summary: str
    # Required when a parent logs a book on a child's behalf
    child_id: Optional[int] = None


class BookRead(BaseModel):
    id: int
    child_id: int
    title: str
    author: str
    summary: str
    cover_url: Optional[str] = None
    reading_level: Optional[str] = None
    interest_level: Optional[str] = None
    status: str
    submitted_at: datetime
    approved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PendingBookRead(BookRead):
    child_name: str


class ApprovalResult(BaseModel):
    book: BookRead
    new_achievements: list[AchievementRead] = []
