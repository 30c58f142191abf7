from datetime import datetime
from typing import Optional

from pydantic import BaseModel, computed_field, field_validator

from bookworm.errors import ValidationError
from bookworm.grades import parse_grade_level, format_grade_level
from bookworm.schemas.reward import RewardSettingsRead, RewardSettingsUpdate

AVATAR_COLORS = ["#4CAF50", "#2196F3", "#FF9800", "#9C27B0", "#F44336", "#00BCD4"]


def _grade(value):
    try:
        return parse_grade_level(value)
    except ValidationError as exc:
        raise ValueError(exc.message) from None


class ChildCreate(BaseModel):
    name: str
    grade_level: int | str
    avatar_color: Optional[str] = None
    access_code: Optional[str] = None
    reward_settings: Optional[RewardSettingsUpdate] = None

    @field_validator("grade_level", mode="before")
    @classmethod
    def check_grade(cls, value):
        return _grade(value)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter a name")
        return value


class ChildUpdate(BaseModel):
    name: Optional[str] = None
    grade_level: Optional[int | str] = None
    avatar_color: Optional[str] = None
    access_code: Optional[str] = None
    reward_settings: Optional[RewardSettingsUpdate] = None

    @field_validator("grade_level", mode="before")
    @classmethod
    def check_grade(cls, value):
        if value is None:
            return None
        return _grade(value)


class ChildRead(BaseModel):
    id: int
    name: str
    grade_level: int
    avatar_color: str
    created_at: datetime

    class Config:
        from_attributes = True

    @computed_field
    @property
    def grade_display(self) -> str:
        return format_grade_level(self.grade_level)


class ChildLogin(BaseModel):
    access_code: str


class ChildStats(ChildRead):
    total_books: int
    approved_books: int
    pending_books: int
    total_earned: float
    reward_settings: RewardSettingsRead
