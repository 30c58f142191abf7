from .user import (
    UserCreate,
    UserResponse,
    UserUpdate,
    UserLogin,
    UserSummary,
)
"""Convenience imports for all schema classes used by the API."""

from .reward import RewardSettingsUpdate, RewardSettingsRead, ProgressRead
from .child import (
    ChildCreate,
    ChildRead,
    ChildLogin,
    ChildUpdate,
    ChildStats,
    AVATAR_COLORS,
)
from .achievement import AchievementRead
from .book import BookCreate, BookRead, PendingBookRead, ApprovalResult
from .prize import PrizeCreate, PrizeRead, PrizeUpdate

__all__ = [
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "UserLogin",
    "UserSummary",
    "RewardSettingsUpdate",
    "RewardSettingsRead",
    "ProgressRead",
    "ChildCreate",
    "ChildRead",
    "ChildLogin",
    "ChildUpdate",
    "ChildStats",
    "AVATAR_COLORS",
    "AchievementRead",
    "BookCreate",
    "BookRead",
    "PendingBookRead",
    "ApprovalResult",
    "PrizeCreate",
    "PrizeRead",
    "PrizeUpdate",
]
