from contextlib import nullcontext
from datetime import datetime, timezone
from typing import Callable, List, Optional

from flask import current_app, has_app_context
from simon import db, socketio
from simon.models import Achievement, GameRecord, HighScore
from .achievements import newly_earned
from .difficulty import DifficultyLevel
from .session import SessionListener


def get_current_high_score(user_id: int, difficulty) -> int:
    level = DifficultyLevel.parse(difficulty)
    row = HighScore.query.filter_by(user_id=user_id, difficulty=level.value).first()
    return row.score if row else 0


def record_high_score(user_id: int, difficulty, score: int) -> bool:
    """Store ``score`` if it beats the player's best for ``difficulty``.

    Returns True when a row was written. Does not commit.
    """
    level = DifficultyLevel.parse(difficulty)
    row = HighScore.query.filter_by(user_id=user_id, difficulty=level.value).first()
    # A missing row counts as a best of 0
    if score <= (row.score if row else 0):
        return False
    if row is None:
        row = HighScore(user_id=user_id, difficulty=level.value, score=score)
    else:
        row.score = score
        row.created_at = datetime.now(timezone.utc)
    db.session.add(row)
    return True


def unlock_achievements(user_id: int, score: int) -> List[Achievement]:
    owned = [a.achievement_id for a in Achievement.query.filter_by(user_id=user_id).all()]
    unlocked = []
    for definition in newly_earned(score, owned):
        row = Achievement(
            user_id=user_id,
            achievement_id=definition.id,
            name=definition.name,
            description=definition.description,
        )
        db.session.add(row)
        unlocked.append(row)
    return unlocked


def reset_stats(user_id: int) -> bool:
    """Delete the player's game history and high scores. Achievements stay."""
    try:
        games = GameRecord.query.filter_by(user_id=user_id).delete()
        bests = HighScore.query.filter_by(user_id=user_id).delete()
        db.session.commit()
    except Exception as exc:
        db.session.rollback()
        current_app.logger.warning(f"[stats-reset-failed] user={user_id} error={exc}")
        return False
    current_app.logger.info(f"[stats-reset] user={user_id} games={games} high_scores={bests}")
    return True


class ScoreRecorder(SessionListener):
    """Writes finished games of one signed-in player to the database.

    The write runs as a background task so the session is never held up by
    it. Failures are logged and rolled back; the session never sees them.
    ``on_saved`` receives the achievements a save unlocked.
    """

    def __init__(self, app, user_id: int, on_saved: Optional[Callable[[List[dict]], None]] = None, spawn=None):
        self.app = app
        self.user_id = user_id
        self.on_saved = on_saved
        self._spawn = spawn or self._default_spawn

    def _default_spawn(self, task):
        # Inline under TESTING
        if self.app.config.get('TESTING'):
            task()
        else:
            socketio.start_background_task(task)

    def _app_context(self):
        # Reuse the caller's context (socket handlers); background tasks need their own
        if has_app_context() and current_app._get_current_object() is self.app:
            return nullcontext()
        return self.app.app_context()

    def high_score_provider(self, difficulty) -> int:
        with self._app_context():
            return get_current_high_score(self.user_id, difficulty)

    def on_session_ended(self, final_score, difficulty, sequence_length_reached):
        self._spawn(lambda: self.save(final_score, difficulty, sequence_length_reached))

    def save(self, final_score, difficulty, sequence_length_reached) -> List[dict]:
        with self._app_context():
            try:
                db.session.add(GameRecord(
                    user_id=self.user_id,
                    score=final_score,
                    difficulty=difficulty.value,
                    sequence_length_reached=sequence_length_reached,
                ))
                wrote = record_high_score(self.user_id, difficulty, final_score)
                rows = unlock_achievements(self.user_id, final_score)
                db.session.commit()
                unlocked = [a.to_dict() for a in rows]
            except Exception as exc:
                db.session.rollback()
                self.app.logger.warning(f"[score-save-failed] user={self.user_id} error={exc}")
                return []
            self.app.logger.info(
                f"[score-saved] user={self.user_id} difficulty={difficulty.value} score={final_score} "
                f"length={sequence_length_reached} high_score_written={wrote} unlocked={len(unlocked)}"
            )
        if self.on_saved is not None:
            try:
                self.on_saved(unlocked)
            except Exception as exc:
                self.app.logger.warning(f"[score-saved-notify-failed] user={self.user_id} error={exc}")
        return unlocked
