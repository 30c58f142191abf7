from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PrizeCreate(BaseModel):
    name: str
    description: str = ""
    points_required: float = 10
    child_id: Optional[int] = None


class PrizeUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    points_required: Optional[float] = None
    child_id: Optional[int] = None


class PrizeRead(BaseModel):
    id: int
    parent_id: int
    child_id: Optional[int] = None
    name: str
    description: str
    points_required: float
    is_redeemed: bool
    created_at: datetime

    class Config:
        from_attributes = True
