from datetime import datetime, timezone

from simon import db
from flask_login import UserMixin


def _utcnow():
    return datetime.now(timezone.utc)


class User(UserMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    games = db.relationship('GameRecord', back_populates='user', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
        }


class GameRecord(db.Model):
    """One finished game."""
    __tablename__ = 'game_record'
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    score = db.Column(db.Integer, nullable=False, default=0)
    difficulty = db.Column(db.String(16), nullable=False)  # easy, medium, hard
    sequence_length_reached = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    user = db.relationship('User', back_populates='games')

    @property
    def streak(self):
        # Rounds completed before the game ended
        return max(0, (self.sequence_length_reached or 0) - 1)

    def to_dict(self):
        return {
            'id': self.id,
            'user_id': self.user_id,
            'score': self.score,
            'difficulty': self.difficulty,
            'sequence_length_reached': self.sequence_length_reached,
            'streak': self.streak,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class HighScore(db.Model):
    __tablename__ = 'high_score'
    __table_args__ = (db.UniqueConstraint('user_id', 'difficulty', name='uq_high_score_user_difficulty'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False)
    difficulty = db.Column(db.String(16), nullable=False)
    score = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)
    user = db.relationship('User')

    @classmethod
    def leaderboard(cls, difficulty=None, limit=20):
        """Best scores first; among equal scores the most recent wins."""
        query = cls.query.join(User)
        if difficulty and difficulty != 'all':
            query = query.filter(cls.difficulty == difficulty)
        return query.order_by(cls.score.desc(), cls.created_at.desc()).limit(limit).all()

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.user.username if self.user else None,
            'score': self.score,
            'difficulty': self.difficulty,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class Achievement(db.Model):
    __tablename__ = 'achievement'
    __table_args__ = (db.UniqueConstraint('user_id', 'achievement_id', name='uq_achievement_user_achievement'),)
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    achievement_id = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(64), nullable=False)
    description = db.Column(db.String(256), nullable=False, default='')
    earned_at = db.Column(db.DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.achievement_id,
            'name': self.name,
            'description': self.description,
            'earned_at': self.earned_at.isoformat() if self.earned_at else None,
        }
