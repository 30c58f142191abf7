"""Database models used by Bookworm Rewards.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic)
and represent parents, children, their reward settings, logged books,
earned achievements and the prize wishlist.  Comments are kept concise
to avoid distracting from the field definitions.
"""

from typing import Optional, List
from datetime import datetime
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import UniqueConstraint


class User(SQLModel, table=True):
    """Parent account and profile."""
    id: Optional[int] = Field(default=None, primary_key=True)
    full_name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    children: List["Child"] = Relationship(back_populates="parent")


class Child(SQLModel, table=True):
    """Child reader owned by a single parent."""
    id: Optional[int] = Field(default=None, primary_key=True)
    parent_id: int = Field(foreign_key="user.id", index=True)
    name: str
    grade_level: int = 0  # 0 is kindergarten, 1-12 otherwise
    avatar_color: str = "#4CAF50"
    access_code: Optional[str] = Field(default=None, unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    parent: User = Relationship(back_populates="children")
    reward_settings: Optional["RewardSettings"] = Relationship(
        back_populates="child", sa_relationship_kwargs={"uselist": False}
    )
    books: List["Book"] = Relationship(back_populates="child")
    achievements: List["Achievement"] = Relationship(back_populates="child")


class RewardSettings(SQLModel, table=True):
    """Per-child reward policy. Absent until the parent first saves one."""
    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="child.id", unique=True)
    reward_type: str = "money"  # "money" or "points"
    amount_per_book: float = 1.0
    payout_threshold: float = 10.0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    child: Child = Relationship(back_populates="reward_settings")


class Book(SQLModel, table=True):
    """Book logged by a child and reviewed by a parent."""
    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="child.id", index=True)
    title: str
    author: str
    summary: str
    cover_url: Optional[str] = None
    reading_level: Optional[str] = None
    interest_level: Optional[str] = None
    status: str = "pending"  # pending, approved, rejected
    submitted_at: datetime = Field(default_factory=datetime.utcnow)
    approved_at: Optional[datetime] = None
    reviewed_by: Optional[int] = Field(default=None, foreign_key="user.id")

    child: Child = Relationship(back_populates="books")


class Achievement(SQLModel, table=True):
    """Reading milestone granted once per child."""

    __table_args__ = (
        UniqueConstraint("child_id", "achievement_type"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    child_id: int = Field(foreign_key="child.id", index=True)
    achievement_type: str
    title: str
    description: str
    earned_at: datetime = Field(default_factory=datetime.utcnow)

    child: Child = Relationship(back_populates="achievements")


class Prize(SQLModel, table=True):
    """Wishlist prize kept by a parent, optionally for one child."""
    id: Optional[int] = Field(default=None, primary_key=True)
    parent_id: int = Field(foreign_key="user.id", index=True)
    child_id: Optional[int] = Field(default=None, foreign_key="child.id")
    name: str
    description: str = ""
    points_required: float = 10.0
    is_redeemed: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
