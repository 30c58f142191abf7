from datetime import datetime

from pydantic import BaseModel


class AchievementRead(BaseModel):
    id: int
    child_id: int
    achievement_type: str
    title: str
    description: str
    earned_at: datetime

    class Config:
        from_attributes = True
