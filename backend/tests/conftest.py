import os
import sys
import pytest

# Ensure the backend root (containing the `simon` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from simon import create_app, db, socketio
from simon.services.game import GameSession, SequenceGenerator
from simon.services.game.scheduler import ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    INTER_ROUND_DELAY_MS = 1000
    GAME_SCHEDULER = 'manual'
    LEADERBOARD_LIMIT = 20


class ScriptedTiles:
    """Stands in for ``random.Random``: hands out tiles from a list."""

    def __init__(self, tiles):
        self.tiles = list(tiles)
        self.calls = 0

    def randrange(self, stop):
        tile = self.tiles[self.calls]
        self.calls += 1
        assert 0 <= tile < stop
        return tile


class RecordingListener:
    """Collects every session event as ``(name, args)``."""

    def __init__(self):
        self.events = []

    def __getattr__(self, name):
        if not name.startswith('on_'):
            raise AttributeError(name)

        def _record(*args):
            self.events.append((name, args))
        return _record

    def named(self, name):
        return [args for event, args in self.events if event == name]


def make_session(scheduler, tiles, difficulty='easy', listener=None, **kwargs):
    session = GameSession(
        scheduler,
        generator=SequenceGenerator(ScriptedTiles(tiles)),
        difficulty=difficulty,
        **kwargs,
    )
    if listener is not None:
        session.add_listener(listener)
    return session


def finish_reveal(session, scheduler):
    profile = session.profile
    scheduler.advance((profile.reveal_duration_ms + profile.pause_duration_ms) * len(session.sequence))


def play_round(session, scheduler):
    """Enter the current sequence, wait out the delay and the next reveal."""
    for tile in session.sequence:
        session.submit_tile(tile)
    scheduler.advance(session.inter_round_delay_ms)
    finish_reveal(session, scheduler)


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def listener():
    return RecordingListener()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import simon.models  # noqa: F401
        db.create_all()
        yield application
        from simon.socketio_events import end_all_sessions
        end_all_sessions()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def app_scheduler(flask_app):
    return flask_app.extensions['simon_scheduler']


@pytest.fixture()
def user(flask_app):
    from simon.models import User
    u = User(username='alice')
    db.session.add(u)
    db.session.commit()
    return u


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def user_sio_client(flask_app, user):
    """Socket client whose Flask session is signed in as ``user``."""
    http = flask_app.test_client()
    with http.session_transaction() as sess:
        sess['_user_id'] = str(user.id)
        sess['_fresh'] = True
    test_client = socketio.test_client(flask_app, flask_test_client=http, namespace='/ws')
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
