from enum import Enum
from typing import NamedTuple, Union


class DifficultyLevel(Enum):
    EASY = 'easy'
    MEDIUM = 'medium'
    HARD = 'hard'

    @classmethod
    def parse(cls, value) -> 'DifficultyLevel':
        """Accept a level or its name in any case ('Hard', 'hard')."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"Unknown difficulty: {value!r}") from None


class DifficultyProfile(NamedTuple):
    reveal_duration_ms: int
    pause_duration_ms: int
    base_multiplier: int


_PROFILES = {
    DifficultyLevel.EASY: DifficultyProfile(400, 400, 1),
    DifficultyLevel.MEDIUM: DifficultyProfile(300, 300, 2),
    DifficultyLevel.HARD: DifficultyProfile(200, 200, 3),
}


def get_profile(level: Union[DifficultyLevel, str]) -> DifficultyProfile:
    return _PROFILES[DifficultyLevel.parse(level)]
