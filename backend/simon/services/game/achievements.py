from typing import Iterable, List, NamedTuple


class AchievementDef(NamedTuple):
    id: str
    name: str
    description: str
    threshold: int


ACHIEVEMENTS = (
    AchievementDef('sharp-starter', 'Sharp Starter', 'Reach a score of 5 points in a single game', 5),
    AchievementDef('memory-master', 'Memory Master', 'Reach a score of 10 points in a single game', 10),
    AchievementDef('reflex-lord', 'Reflex Lord', 'Reach a score of 15 points in a single game', 15),
    AchievementDef('simon-slayer', 'Simon Slayer', 'Reach a score of 20 points in a single game', 20),
)

ACHIEVEMENTS_BY_ID = {a.id: a for a in ACHIEVEMENTS}


def earned_by_score(score: int) -> List[AchievementDef]:
    return [a for a in ACHIEVEMENTS if score >= a.threshold]


def newly_earned(score: int, already_earned: Iterable[str]) -> List[AchievementDef]:
    """Achievements a game with ``score`` unlocks that the player lacks."""
    owned = set(already_earned)
    return [a for a in earned_by_score(score) if a.id not in owned]
