import os
import sys
import random
import pytest

# Ensure the backend root (containing the `sequence_server` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from sequence_server import create_app, db, socketio
from sequence_server.broadcast import coordinator


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOBBY_URL_BASE = 'http://lobby.test'
    DEFAULT_MAX_PLAYERS = 4
    MIN_MAX_PLAYERS = 2
    MAX_MAX_PLAYERS = 6
    MIN_PLAYERS = 2
    HAND_SIZE = 7
    SOCKETIO_NAMESPACE = '/ws'


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import sequence_server.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()
    coordinator.reset()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


def _connect(flask_app):
    return socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )


@pytest.fixture()
def sio_client(flask_app):
    test_client = _connect(flask_app)
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


@pytest.fixture()
def sio_factory(flask_app):
    """Open extra socket connections; all are closed at teardown."""
    opened = []

    def _open():
        test_client = _connect(flask_app)
        opened.append(test_client)
        return test_client

    yield _open
    for test_client in opened:
        try:
            test_client.disconnect(namespace='/ws')
        except Exception:
            pass


@pytest.fixture()
def rng():
    return random.Random(1234)


def received_messages(test_client, msg_type=None):
    """Protocol messages received on /ws, optionally filtered by type."""
    messages = []
    for pkt in test_client.get_received('/ws'):
        if pkt['name'] != 'message':
            continue
        args = pkt['args']
        message = args[0] if isinstance(args, list) else args
        if msg_type is None or message.get('type') == msg_type:
            messages.append(message)
    return messages


def send(test_client, msg_type, **data):
    test_client.emit('message', {'type': msg_type, 'data': data}, namespace='/ws')
