"""Per-player statistics derived from stored game records.

Works on anything exposing ``score``, ``difficulty``, ``streak`` and
``created_at`` (the ``GameRecord`` model, or plain objects in tests).
"""
from collections import Counter

from .difficulty import DifficultyLevel


def _difficulty_value(record) -> str:
    d = record.difficulty
    return d.value if isinstance(d, DifficultyLevel) else str(d)


def _difficulty_summary(records):
    scores = [r.score for r in records]
    return {
        'games_played': len(scores),
        'high_score': max(scores) if scores else 0,
        'average_score': (sum(scores) / len(scores)) if scores else 0,
    }


def improvement_streak(records) -> int:
    """Longest run of games, in date order, each beating the one before."""
    ordered = sorted(records, key=lambda r: r.created_at)
    current = best = 0
    for prev, cur in zip(ordered, ordered[1:]):
        if cur.score > prev.score:
            current += 1
            best = max(best, current)
        else:
            current = 0
    return best


def most_used_difficulty(records) -> str:
    counts = Counter(_difficulty_value(r) for r in records)
    best = DifficultyLevel.EASY.value
    # Ties go to the easier level
    for level in DifficultyLevel:
        if counts[level.value] > counts[best]:
            best = level.value
    return best.capitalize()


def summarize(records):
    records = list(records)
    total = sum(r.score for r in records)
    by_difficulty = {
        level.value: _difficulty_summary([r for r in records if _difficulty_value(r) == level.value])
        for level in DifficultyLevel
    }
    return {
        'games_played': len(records),
        'total_score': total,
        'average_score': (total / len(records)) if records else 0,
        'max_streak': max((r.streak for r in records), default=0),
        'improvement_streak': improvement_streak(records),
        'most_used_difficulty': most_used_difficulty(records),
        'difficulties': by_difficulty,
    }
