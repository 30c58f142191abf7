from typing import Optional

from pydantic import BaseModel

from bookworm.rewards import DEFAULT_POLICY


class RewardSettingsUpdate(BaseModel):
    reward_type: str = DEFAULT_POLICY.reward_type
    amount_per_book: float = DEFAULT_POLICY.amount_per_book
    payout_threshold: float = DEFAULT_POLICY.payout_threshold


class RewardSettingsRead(BaseModel):
    reward_type: str
    amount_per_book: float
    payout_threshold: float
    is_default: bool = False

    class Config:
        from_attributes = True

    @classmethod
    def for_child(cls, settings) -> "RewardSettingsRead":
        """Stored settings, or the defaults flagged with ``is_default``."""
        if settings is None:
            return cls(
                reward_type=DEFAULT_POLICY.reward_type,
                amount_per_book=DEFAULT_POLICY.amount_per_book,
                payout_threshold=DEFAULT_POLICY.payout_threshold,
                is_default=True,
            )
        return cls.model_validate(settings)


class ProgressRead(BaseModel):
    child_id: int
    approved_books: int
    reward_type: str
    amount_per_book: float
    payout_threshold: float
    total_earned: float
    total_earned_display: str
    # None when the payout threshold is zero
    progress_ratio: Optional[float] = None
    progress_percent: float
    goal_reached: bool
    next_achievement: Optional[str] = None
    books_to_next_achievement: Optional[int] = None
