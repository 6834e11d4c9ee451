import os
import sys
import pytest

# Ensure the backend root (containing the `dicestats` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from dicestats import create_app, socketio
from dicestats.errors import StoreError
from dicestats.store import MemoryStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    STORE_URL = 'memory://'
    CORS_ORIGINS = '*'
    SURVIVAL_THRESHOLD = 10
    STATS_PUSH_ENABLED = True


class FailingStore(MemoryStore):
    """MemoryStore that raises StoreError on the named operation."""

    def __init__(self, fail_on):
        super().__init__()
        self.fail_on = set(fail_on)

    def _maybe_fail(self, op):
        if op in self.fail_on:
            raise StoreError(f'{op} failed: connection reset by peer')

    def get(self, key):
        self._maybe_fail('get')
        return super().get(key)

    def set(self, key, value):
        self._maybe_fail('set')
        return super().set(key, value)

    def sadd(self, key, member):
        self._maybe_fail('sadd')
        return super().sadd(key, member)

    def srem(self, key, member):
        self._maybe_fail('srem')
        return super().srem(key, member)

    def scard(self, key):
        self._maybe_fail('scard')
        return super().scard(key)

    def hgetall(self, key):
        self._maybe_fail('hgetall')
        return super().hgetall(key)

    def ping(self):
        self._maybe_fail('ping')
        return super().ping()


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def flask_app(store):
    application = create_app(TestConfig, store=store)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def make_client():
    """Build a client whose app talks to the given store."""
    def _make(custom_store):
        return create_app(TestConfig, store=custom_store).test_client()
    return _make


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
