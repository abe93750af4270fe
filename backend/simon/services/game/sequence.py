import random

# 3x3 grid
TILE_COUNT = 9


class SequenceGenerator:
    """Draws the next tile of a sequence.

    ``rng`` is anything with a ``randrange`` method. Production code lets it
    default to a private ``random.Random``; tests pass a scripted source.
    """

    def __init__(self, rng=None):
        self._rng = rng if rng is not None else random.Random()

    def next_tile(self) -> int:
        return self._rng.randrange(TILE_COUNT)


def is_valid_tile(value) -> bool:
    # bool is an int subclass but never a tile
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value < TILE_COUNT
