"""Reading achievements and the evaluator that grants them.

The catalog is fixed and ordered by the number of approved books a child
needs.  :func:`evaluate` only builds unsaved :class:`Achievement` rows;
the approval workflow persists them and relies on the unique
``(child_id, achievement_type)`` constraint to reject duplicates.
"""

from typing import Iterable, NamedTuple

from bookworm.models import Achievement


class AchievementDefinition(NamedTuple):
    count: int
    type: str
    title: str
    description: str


ACHIEVEMENTS = [
    AchievementDefinition(1, "first_book", "First Book!", "Read your first book"),
    AchievementDefinition(5, "milestone_5", "Reading Rookie", "Read 5 books"),
    AchievementDefinition(10, "milestone_10", "Page Turner", "Read 10 books"),
    AchievementDefinition(25, "milestone_25", "Book Worm", "Read 25 books"),
    AchievementDefinition(50, "milestone_50", "Reading Master", "Read 50 books"),
    AchievementDefinition(100, "milestone_100", "Book Legend", "Read 100 books!"),
]

ACHIEVEMENT_TYPES = {a.type: a for a in ACHIEVEMENTS}


def evaluate(
    child_id: int, approved_count: int, already_granted: Iterable[str]
) -> list[Achievement]:
    """Return the achievements earned at ``approved_count`` but not yet held."""

    granted = set(already_granted)
    return [
        Achievement(
            child_id=child_id,
            achievement_type=definition.type,
            title=definition.title,
            description=definition.description,
        )
        for definition in ACHIEVEMENTS
        if definition.count <= approved_count and definition.type not in granted
    ]


def next_achievement(approved_count: int) -> AchievementDefinition | None:
    """Return the next milestone a child is working toward, if any."""
    for definition in ACHIEVEMENTS:
        if definition.count > approved_count:
            return definition
    return None
