from flask_socketio import join_room, leave_room, emit
from simon import socketio
from flask import current_app, request
from flask_login import current_user
from simon.models import Achievement, GameRecord, HighScore
from simon.services.game import DifficultyLevel, GameSession, SequenceGenerator, SessionListener
from simon.services.game.persistence import ScoreRecorder, reset_stats
from simon.services.game.stats import summarize
from typing import Dict, Optional

NAMESPACE = '/ws'


class SocketPresenter(SessionListener):
    """Forwards session events to every socket the player has open."""

    def __init__(self, room: str, session: Optional[GameSession] = None):
        self.room = room
        self.session = session

    def _send(self, event, payload):
        socketio.emit(event, payload, to=self.room, namespace=NAMESPACE)

    def on_state_changed(self, state):
        self._send('state_update', self.session.to_dict())

    def on_round_tile_activated(self, tile):
        self._send('tile_on', {'tile': tile})

    def on_round_tile_deactivated(self, tile):
        self._send('tile_off', {'tile': tile})

    def on_input_tile_flashed(self, tile):
        self._send('input_flash', {'tile': tile})

    def on_score_changed(self, score, multiplier):
        self._send('score_update', {'score': score, 'multiplier': multiplier})

    def on_high_score_updated(self, score, difficulty):
        self._send('high_score', {'score': score, 'difficulty': difficulty.value})

    def on_session_ended(self, final_score, difficulty, sequence_length_reached):
        self._send('game_over', {
            'score': final_score,
            'difficulty': difficulty.value,
            'sequence_length': sequence_length_reached,
            'mismatch_position': self.session.last_mismatch,
        })

    def on_score_saved(self, unlocked):
        if unlocked:
            self._send('achievements', {'unlocked': unlocked})


# ---- Player session registry ----

_sessions: Dict[str, GameSession] = {}
_sid_to_player: Dict[str, str] = {}
_connection_count: Dict[str, int] = {}


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _player_key() -> str:
    if current_user.is_authenticated:
        return f"user:{current_user.id}"
    return f"sid:{_get_sid()}"


def _room(player_key: str) -> str:
    return f"player:{player_key}"


def _get_session() -> GameSession:
    """Return the caller's session, creating it on first use."""
    key = _sid_to_player.get(_get_sid()) or _player_key()
    session = _sessions.get(key)
    if session is not None:
        return session

    app = current_app._get_current_object()
    presenter = SocketPresenter(_room(key))
    recorder = None
    if current_user.is_authenticated:
        recorder = ScoreRecorder(app, current_user.id, on_saved=presenter.on_score_saved)
    session = GameSession(
        scheduler=app.extensions['simon_scheduler'],
        generator=SequenceGenerator(),
        high_score_provider=recorder.high_score_provider if recorder else None,
        inter_round_delay_ms=int(app.config.get('INTER_ROUND_DELAY_MS', 1000)),
    )
    presenter.session = session
    session.add_listener(presenter)
    if recorder:
        session.add_listener(recorder)
    _sessions[key] = session
    app.logger.info(f"[session-created] player={key}")
    return session


def _end_player(player_key: str) -> None:
    """Stop and forget a player's session. A running game is recorded."""
    session = _sessions.pop(player_key, None)
    _connection_count.pop(player_key, None)
    if session is not None:
        session.stop()
        session.reset()


def end_all_sessions() -> None:
    for key in list(_sessions):
        _end_player(key)
    _sid_to_player.clear()
    _connection_count.clear()


# ---- Handlers ----

def handle_connect(auth=None):
    key = _player_key()
    _sid_to_player[_get_sid()] = key
    _connection_count[key] = _connection_count.get(key, 0) + 1
    join_room(_room(key))
    emit('connected', {
        'message': 'Connected to /ws',
        'user': current_user.to_dict() if current_user.is_authenticated else None,
    })


def handle_disconnect(reason=None):
    key = _sid_to_player.pop(_get_sid(), None)
    if not key:
        return
    leave_room(_room(key))
    _connection_count[key] = max(0, _connection_count.get(key, 0) - 1)
    if _connection_count[key] == 0:
        try:
            current_app.logger.info(f"[player-left] player={key} reason={reason}")
        except Exception:
            pass
        _end_player(key)


def handle_set_difficulty(data):
    value = (data or {}).get('difficulty')
    try:
        level = DifficultyLevel.parse(value)
    except ValueError:
        emit('error', {'message': f'Unknown difficulty: {value}'})
        return
    session = _get_session()
    if not session.set_difficulty(level):
        emit('error', {'message': 'Difficulty can only be changed before a game starts'})
    emit('state_update', session.to_dict())


def handle_start_game(data=None):
    _get_session().start()


def handle_stop_game(data=None):
    session = _get_session()
    if not session.stop():
        emit('state_update', session.to_dict())


def handle_reset_game(data=None):
    session = _get_session()
    session.reset()
    emit('state_update', session.to_dict())


def handle_submit_tile(data):
    result = _get_session().submit_tile((data or {}).get('tile'))
    emit('tile_result', {'outcome': result.outcome.value, 'position': result.position})


def handle_get_state(data=None):
    emit('state_update', _get_session().to_dict())


def handle_get_leaderboard(data=None):
    difficulty = (data or {}).get('difficulty') or 'all'
    if difficulty != 'all':
        try:
            difficulty = DifficultyLevel.parse(difficulty).value
        except ValueError:
            emit('error', {'message': f'Unknown difficulty: {difficulty}'})
            return
    limit = int(current_app.config.get('LEADERBOARD_LIMIT', 20))
    rows = HighScore.leaderboard(difficulty=difficulty, limit=limit)
    emit('leaderboard', {'difficulty': difficulty, 'entries': [r.to_dict() for r in rows]})


def _stats_payload(user_id: int) -> dict:
    payload = summarize(GameRecord.query.filter_by(user_id=user_id).all())
    payload['achievements'] = [a.to_dict() for a in Achievement.query.filter_by(user_id=user_id).all()]
    return payload


def handle_get_stats(data=None):
    if not current_user.is_authenticated:
        emit('error', {'message': 'Sign in to see your stats'})
        return
    emit('stats', _stats_payload(current_user.id))


def handle_reset_stats(data=None):
    if not current_user.is_authenticated:
        emit('error', {'message': 'Sign in to reset your stats'})
        return
    if not reset_stats(current_user.id):
        emit('error', {'message': 'Failed to reset stats'})
        return
    emit('stats', _stats_payload(current_user.id))


def handle_ping(data=None):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('set_difficulty', handle_set_difficulty, namespace=NAMESPACE)
    socketio.on_event('start_game', handle_start_game, namespace=NAMESPACE)
    socketio.on_event('stop_game', handle_stop_game, namespace=NAMESPACE)
    socketio.on_event('reset_game', handle_reset_game, namespace=NAMESPACE)
    socketio.on_event('submit_tile', handle_submit_tile, namespace=NAMESPACE)
    socketio.on_event('get_state', handle_get_state, namespace=NAMESPACE)
    socketio.on_event('get_leaderboard', handle_get_leaderboard, namespace=NAMESPACE)
    socketio.on_event('get_stats', handle_get_stats, namespace=NAMESPACE)
    socketio.on_event('reset_stats', handle_reset_stats, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
