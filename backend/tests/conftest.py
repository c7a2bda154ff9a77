import os
import sys
import pytest

# Ensure the backend root (containing the `mathduel` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from mathduel import create_app, db, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CHALLENGE_MODE = 'advanced'
    DAILY_CHALLENGE_TZ = 'Europe/Berlin'
    RECONCILE_MAX_RETRIES = 3


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import mathduel.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def store(flask_app):
    return flask_app.extensions['game_store']


@pytest.fixture()
def new_game(store):
    """Create a game document in its initial pending state."""
    def _create(game_id='g1', **fields):
        doc = {'gameId': game_id, 'inviterId': 'alice', 'inviteeId': 'bob'}
        doc.update(fields)
        return store.create(doc)
    return _create


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
