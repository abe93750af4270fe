import logging
import threading
from enum import Enum
from typing import Callable, List, NamedTuple, Optional

from .difficulty import DifficultyLevel, DifficultyProfile, get_profile
from .scoring import compute_multiplier, compute_round_score
from .sequence import SequenceGenerator, is_valid_tile


logger = logging.getLogger(__name__)

INTER_ROUND_DELAY_MS = 1000


class GameState(Enum):
    IDLE = 'idle'
    SHOWING_SEQUENCE = 'showing'
    WAITING_FOR_INPUT = 'waiting'
    GAME_OVER = 'gameover'


ACTIVE_STATES = (GameState.SHOWING_SEQUENCE, GameState.WAITING_FOR_INPUT)


class SubmitOutcome(Enum):
    IGNORED = 'ignored'
    ACCEPTED = 'accepted'
    ROUND_COMPLETE = 'round_complete'
    MISMATCH = 'mismatch'


class SubmitResult(NamedTuple):
    outcome: SubmitOutcome
    # Index in the sequence the submitted tile was checked against
    position: Optional[int] = None


class SessionListener:
    """Receives session events. Override only what you need.

    Listeners are called synchronously while the session holds its lock, so
    they must not block; anything slow belongs in a background task.
    """

    def on_state_changed(self, state: GameState) -> None:
        pass

    def on_round_tile_activated(self, tile: int) -> None:
        pass

    def on_round_tile_deactivated(self, tile: int) -> None:
        pass

    def on_input_tile_flashed(self, tile: int) -> None:
        pass

    def on_score_changed(self, score: int, multiplier: int) -> None:
        pass

    def on_high_score_updated(self, score: int, difficulty: DifficultyLevel) -> None:
        pass

    def on_session_ended(self, final_score: int, difficulty: DifficultyLevel, sequence_length_reached: int) -> None:
        pass


class GameSession:
    """One player's Simon game: reveal the sequence, collect input, score.

    Lifecycle::

        idle --start--> showing --(reveal done)--> waiting
        waiting --(round complete, delay)--> showing (one tile longer)
        waiting --(wrong tile)--> gameover
        showing|waiting --stop--> gameover
        any --reset--> idle

    Calling ``start`` during an active game stops it first (the ended game is
    reported like any other) and then begins a new one.

    Timers go through ``scheduler.call_later`` and are tagged with the current
    generation; ``stop``, ``reset`` and a wrong tile bump the generation so a
    timer that slipped past cancellation still does nothing.
    """

    def __init__(
        self,
        scheduler,
        generator: Optional[SequenceGenerator] = None,
        difficulty=DifficultyLevel.EASY,
        high_score_provider: Optional[Callable[[DifficultyLevel], int]] = None,
        inter_round_delay_ms: int = INTER_ROUND_DELAY_MS,
        listeners=(),
    ):
        self._scheduler = scheduler
        self._generator = generator or SequenceGenerator()
        self._high_score_provider = high_score_provider
        self.inter_round_delay_ms = inter_round_delay_ms
        self._listeners: List[SessionListener] = list(listeners)
        self._lock = threading.RLock()
        self._timers = []
        self._generation = 0

        self.difficulty = DifficultyLevel.parse(difficulty)
        self.state = GameState.IDLE
        self.high_score = 0
        self._clear()

    # ---- read-only views ----

    @property
    def profile(self) -> DifficultyProfile:
        return get_profile(self.difficulty)

    @property
    def sequence(self) -> List[int]:
        return list(self._sequence)

    @property
    def user_input(self) -> List[int]:
        return list(self._user_input)

    @property
    def is_active(self) -> bool:
        return self.state in ACTIVE_STATES

    def add_listener(self, listener: SessionListener) -> None:
        self._listeners.append(listener)

    def to_dict(self):
        with self._lock:
            return {
                'state': self.state.value,
                'difficulty': self.difficulty.value,
                'sequence_length': len(self._sequence),
                'input_length': len(self._user_input),
                'score': self.score,
                'multiplier': self.multiplier,
                'high_score': self.high_score,
                'mismatch_position': self.last_mismatch,
            }

    # ---- commands ----

    def set_difficulty(self, level) -> bool:
        level = DifficultyLevel.parse(level)
        with self._lock:
            if self.state != GameState.IDLE:
                logger.info(f"[difficulty-ignored] state={self.state.value} requested={level.value}")
                return False
            self.difficulty = level
            self.multiplier = self.profile.base_multiplier
            return True

    def start(self) -> None:
        with self._lock:
            if self.is_active:
                logger.info(f"[session-restart] state={self.state.value} score={self.score}")
                self._finish()
            self._cancel_timers()
            self._clear()
            self.high_score = self._read_high_score()
            logger.info(f"[session-start] difficulty={self.difficulty.value} high_score={self.high_score}")
            self._next_round()

    def stop(self) -> bool:
        with self._lock:
            if not self.is_active:
                return False
            logger.info(f"[session-stop] state={self.state.value} score={self.score} length={len(self._sequence)}")
            self._finish()
            return True

    def reset(self) -> None:
        # Silent: no events, not even a state change
        with self._lock:
            self._cancel_timers()
            self._clear()
            self.state = GameState.IDLE

    def submit_tile(self, tile) -> SubmitResult:
        with self._lock:
            if self.state != GameState.WAITING_FOR_INPUT:
                return SubmitResult(SubmitOutcome.IGNORED)

            position = len(self._user_input)
            self._user_input.append(tile)
            if is_valid_tile(tile):
                self._emit('on_input_tile_flashed', tile)

            if not is_valid_tile(tile) or tile != self._sequence[position]:
                self.last_mismatch = position
                logger.info(
                    f"[session-mismatch] position={position} expected={self._sequence[position]} got={tile!r} score={self.score}"
                )
                self._finish()
                return SubmitResult(SubmitOutcome.MISMATCH, position)

            if len(self._user_input) < len(self._sequence):
                return SubmitResult(SubmitOutcome.ACCEPTED, position)

            self._complete_round()
            return SubmitResult(SubmitOutcome.ROUND_COMPLETE, position)

    # ---- internals ----

    def _clear(self) -> None:
        self._sequence: List[int] = []
        self._user_input: List[int] = []
        self.score = 0
        self.multiplier = self.profile.base_multiplier
        self.last_mismatch: Optional[int] = None

    def _read_high_score(self) -> int:
        if self._high_score_provider is None:
            return 0
        try:
            return int(self._high_score_provider(self.difficulty) or 0)
        except Exception as exc:
            logger.warning(f"[high-score-read-failed] difficulty={self.difficulty.value} error={exc}")
            return 0

    def _set_state(self, state: GameState) -> None:
        if state == self.state:
            return
        self.state = state
        self._emit('on_state_changed', state)

    def _emit(self, event: str, *args) -> None:
        for listener in list(self._listeners):
            try:
                getattr(listener, event)(*args)
            except Exception:
                logger.exception(f"[listener-error] event={event} listener={type(listener).__name__}")

    def _schedule(self, delay_ms: int, callback: Callable[[], None]) -> None:
        generation = self._generation

        def _fire():
            with self._lock:
                if generation != self._generation:
                    return
                callback()

        self._timers = [t for t in self._timers if t.pending]
        self._timers.append(self._scheduler.call_later(delay_ms, _fire))

    def _cancel_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []
        self._generation += 1

    def _next_round(self) -> None:
        self._sequence.append(self._generator.next_tile())
        self._user_input = []
        self._set_state(GameState.SHOWING_SEQUENCE)
        self._reveal(0)

    def _reveal(self, index: int) -> None:
        self._emit('on_round_tile_activated', self._sequence[index])
        self._schedule(self.profile.reveal_duration_ms, lambda: self._conceal(index))

    def _conceal(self, index: int) -> None:
        self._emit('on_round_tile_deactivated', self._sequence[index])
        if index + 1 < len(self._sequence):
            self._schedule(self.profile.pause_duration_ms, lambda: self._reveal(index + 1))
        else:
            self._schedule(self.profile.pause_duration_ms, self._await_input)

    def _await_input(self) -> None:
        self._set_state(GameState.WAITING_FOR_INPUT)

    def _complete_round(self) -> None:
        self.multiplier = compute_multiplier(self.profile.base_multiplier, len(self._sequence))
        self.score = compute_round_score(self.score, self.multiplier)
        logger.info(f"[round-complete] length={len(self._sequence)} multiplier={self.multiplier} score={self.score}")
        self._emit('on_score_changed', self.score, self.multiplier)
        if self.score > self.high_score:
            self.high_score = self.score
            self._emit('on_high_score_updated', self.score, self.difficulty)
        # Input stays locked until the longer sequence has been shown
        self._set_state(GameState.SHOWING_SEQUENCE)
        self._schedule(self.inter_round_delay_ms, self._next_round)

    def _finish(self) -> None:
        self._cancel_timers()
        self._set_state(GameState.GAME_OVER)
        self._emit('on_session_ended', self.score, self.difficulty, len(self._sequence))
