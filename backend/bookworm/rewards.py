"""Reward policy defaults and the accrual calculator.

Nothing here touches the database.  Route handlers load the approved book
count and the child's stored settings, then call :func:`compute_accrual`.
Totals are never cached: every read recomputes them from the current
approved count and the current ``amount_per_book``.
"""

import math
from dataclasses import dataclass
from typing import Optional

from bookworm.errors import ValidationError

REWARD_TYPES = ("money", "points")


@dataclass(frozen=True)
class RewardPolicy:
    reward_type: str
    amount_per_book: float
    payout_threshold: float


# Used whenever a child has no stored settings yet.  Never written to the
# database.
DEFAULT_POLICY = RewardPolicy(
    reward_type="money", amount_per_book=1.0, payout_threshold=10.0
)


@dataclass(frozen=True)
class Accrual:
    """Earnings for a child under a given policy.

    ``progress_ratio`` is the raw ratio of earnings to the payout threshold
    and may exceed ``1``.  It is ``None`` when the threshold is zero, in
    which case the goal counts as reached.
    """

    total_earned: float
    progress_ratio: Optional[float]

    @property
    def goal_reached(self) -> bool:
        return self.progress_ratio is None or self.progress_ratio >= 1

    @property
    def display_progress(self) -> float:
        """Ratio clamped to ``[0, 1]`` for progress bars."""
        if self.progress_ratio is None:
            return 1.0
        return min(max(self.progress_ratio, 0.0), 1.0)


def _is_amount(value) -> bool:
    return value is not None and math.isfinite(value) and value >= 0


def validate_policy(
    reward_type: str, amount_per_book: float, payout_threshold: float
) -> None:
    if reward_type not in REWARD_TYPES:
        raise ValidationError("Reward type must be 'money' or 'points'")
    if not _is_amount(amount_per_book):
        raise ValidationError("Please enter a valid amount per book")
    if not _is_amount(payout_threshold):
        raise ValidationError("Please enter a valid payout threshold")


def effective_policy(settings) -> RewardPolicy:
    """Return the stored policy as a :class:`RewardPolicy` or the defaults."""

    if settings is None:
        return DEFAULT_POLICY
    return RewardPolicy(
        reward_type=settings.reward_type,
        amount_per_book=settings.amount_per_book,
        payout_threshold=settings.payout_threshold,
    )


def compute_accrual(approved_count: int, policy: RewardPolicy) -> Accrual:
    if approved_count < 0:
        raise ValidationError("Approved book count cannot be negative")
    total_earned = approved_count * policy.amount_per_book
    if policy.payout_threshold > 0:
        ratio = total_earned / policy.payout_threshold
    else:
        ratio = None
    return Accrual(total_earned=total_earned, progress_ratio=ratio)


def format_amount(amount: float, reward_type: str) -> str:
    """Render an amount the way the app shows it, e.g. ``$3.00`` or ``3 pts``."""

    if reward_type == "money":
        return f"${amount:.2f}"
    return f"{amount:g} pts"
