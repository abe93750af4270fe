"""Game domain services: the Simon engine and its collaborators.

Difficulty, sequence generation, scoring and the session state machine are
framework-free. ``persistence`` and ``scheduler`` bind them to the database
and to Socket.IO background tasks; the socket handlers only ever talk
to a ``GameSession`` through its commands and listener events.
"""
from .difficulty import DifficultyLevel, DifficultyProfile, get_profile
from .scoring import compute_multiplier, compute_round_score
from .sequence import SequenceGenerator
from .session import GameSession, GameState, SessionListener, SubmitOutcome, SubmitResult
