import math

BASE_POINTS = 1

# (minimum sequence length, length multiplier), highest first
_LENGTH_BREAKPOINTS = (
    (20, 6),
    (16, 5),
    (13, 4),
    (10, 3),
    (5, 2),
)


def length_multiplier(sequence_length: int) -> int:
    for minimum, factor in _LENGTH_BREAKPOINTS:
        if sequence_length >= minimum:
            return factor
    return 1


def compute_multiplier(base_multiplier: int, sequence_length: int) -> int:
    """Scoring factor for a round: difficulty base rate times length bonus."""
    return base_multiplier * length_multiplier(sequence_length)


def compute_round_score(current_score: int, multiplier) -> int:
    """Add one completed round's points to ``current_score``.

    One base point scaled by ``multiplier``, rounded half up. Multipliers are
    integers in practice so the rounding is exact.
    """
    return current_score + int(math.floor(BASE_POINTS * multiplier + 0.5))
