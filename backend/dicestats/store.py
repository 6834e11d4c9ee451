"""Key-value store clients.

Stats handlers only ever talk to a ``KeyValueStore``. Each single operation is
atomic; there are no multi-key transactions. Missing keys read as ``None``,
an empty set or an empty dict.
"""

from __future__ import annotations

import functools
import threading
from typing import Dict, Optional, Set, Union

import redis

from dicestats.errors import StoreError

Number = Union[int, float]


def coerce_number(raw):
    """Turn a stored scalar back into int/float. Non-numeric values pass through."""
    if raw is None or isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return raw
    try:
        return int(raw)
    except (TypeError, ValueError):
        pass
    try:
        return float(raw)
    except (TypeError, ValueError):
        return raw


class KeyValueStore:
    """Operations the stats handlers rely on."""

    def get(self, key: str):
        raise NotImplementedError

    def set(self, key: str, value) -> None:
        raise NotImplementedError

    def incr(self, key: str, amount: int = 1) -> int:
        raise NotImplementedError

    def incr_float(self, key: str, amount: float) -> Number:
        raise NotImplementedError

    def sadd(self, key: str, member: str) -> int:
        raise NotImplementedError

    def srem(self, key: str, member: str) -> int:
        raise NotImplementedError

    def sismember(self, key: str, member: str) -> bool:
        raise NotImplementedError

    def scard(self, key: str) -> int:
        raise NotImplementedError

    def smembers(self, key: str) -> Set[str]:
        raise NotImplementedError

    def hgetall(self, key: str) -> Dict[str, object]:
        raise NotImplementedError

    def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        raise NotImplementedError

    def ping(self) -> bool:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """In-process store used for development and tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._scalars: Dict[str, object] = {}
        self._sets: Dict[str, Set[str]] = {}
        self._hashes: Dict[str, Dict[str, object]] = {}

    def get(self, key):
        with self._lock:
            return coerce_number(self._scalars.get(key))

    def set(self, key, value):
        with self._lock:
            self._scalars[key] = value

    def incr(self, key, amount=1):
        with self._lock:
            cur = coerce_number(self._scalars.get(key)) or 0
            if not isinstance(cur, int):
                raise StoreError(f'value at {key} is not an integer')
            cur += int(amount)
            self._scalars[key] = cur
            return cur

    def incr_float(self, key, amount):
        with self._lock:
            cur = coerce_number(self._scalars.get(key)) or 0
            if not isinstance(cur, (int, float)):
                raise StoreError(f'value at {key} is not a number')
            cur += amount
            if isinstance(cur, float) and cur.is_integer():
                cur = int(cur)
            self._scalars[key] = cur
            return cur

    def sadd(self, key, member):
        with self._lock:
            members = self._sets.setdefault(key, set())
            if member in members:
                return 0
            members.add(member)
            return 1

    def srem(self, key, member):
        with self._lock:
            members = self._sets.get(key)
            if not members or member not in members:
                return 0
            members.discard(member)
            return 1

    def sismember(self, key, member):
        with self._lock:
            return member in self._sets.get(key, ())

    def scard(self, key):
        with self._lock:
            return len(self._sets.get(key, ()))

    def smembers(self, key):
        with self._lock:
            return set(self._sets.get(key, ()))

    def hgetall(self, key):
        with self._lock:
            return {field: coerce_number(value) for field, value in self._hashes.get(key, {}).items()}

    def hincrby(self, key, field, amount=1):
        with self._lock:
            fields = self._hashes.setdefault(key, {})
            cur = coerce_number(fields.get(field)) or 0
            if not isinstance(cur, int):
                raise StoreError(f'hash field {key}.{field} is not an integer')
            cur += int(amount)
            fields[field] = cur
            return cur

    def hset(self, key, field, value):
        """Raw hash write, used to seed data in tests and tooling."""
        with self._lock:
            self._hashes.setdefault(key, {})[field] = value

    def ping(self):
        return True


def _wrap_redis_errors(fn):
    @functools.wraps(fn)
    def wrapper(self, *args, **kwargs):
        try:
            return fn(self, *args, **kwargs)
        except redis.RedisError as exc:
            raise StoreError(f'{fn.__name__} failed: {exc}') from exc
    return wrapper


class RedisStore(KeyValueStore):
    """Redis-backed store (Upstash, Vercel KV or a plain Redis server)."""

    def __init__(self, client: redis.Redis):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> 'RedisStore':
        return cls(redis.from_url(url, decode_responses=True))

    @_wrap_redis_errors
    def get(self, key):
        return coerce_number(self.client.get(key))

    @_wrap_redis_errors
    def set(self, key, value):
        self.client.set(key, value)

    @_wrap_redis_errors
    def incr(self, key, amount=1):
        return int(self.client.incrby(key, int(amount)))

    @_wrap_redis_errors
    def incr_float(self, key, amount):
        value = self.client.incrbyfloat(key, float(amount))
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @_wrap_redis_errors
    def sadd(self, key, member):
        return int(self.client.sadd(key, member))

    @_wrap_redis_errors
    def srem(self, key, member):
        return int(self.client.srem(key, member))

    @_wrap_redis_errors
    def sismember(self, key, member):
        return bool(self.client.sismember(key, member))

    @_wrap_redis_errors
    def scard(self, key):
        return int(self.client.scard(key) or 0)

    @_wrap_redis_errors
    def smembers(self, key):
        return set(self.client.smembers(key) or ())

    @_wrap_redis_errors
    def hgetall(self, key):
        raw = self.client.hgetall(key) or {}
        return {field: coerce_number(value) for field, value in raw.items()}

    @_wrap_redis_errors
    def hincrby(self, key, field, amount=1):
        return int(self.client.hincrby(key, field, int(amount)))

    @_wrap_redis_errors
    def ping(self):
        return bool(self.client.ping())


def make_store(url: Optional[str]) -> KeyValueStore:
    url = (url or 'memory://').strip()
    if url.startswith('memory://'):
        return MemoryStore()
    if url.startswith(('redis://', 'rediss://', 'unix://')):
        return RedisStore.from_url(url)
    raise ValueError(f'Unsupported STORE_URL scheme: {url}')


class KVStore:
    """Flask extension holding the app's key-value store."""

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app, store: Optional[KeyValueStore] = None) -> None:
        if store is None:
            store = make_store(app.config.get('STORE_URL'))
        app.extensions['kv_store'] = store
        app.logger.info(f"[kv] using {type(store).__name__}")


def get_store(app) -> KeyValueStore:
    return app.extensions['kv_store']
