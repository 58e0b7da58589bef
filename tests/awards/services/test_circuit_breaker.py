"""Tests for awards.services.circuit_breaker — shared-state breaker and registry."""
import time
from unittest.mock import MagicMock

import pytest

from awards.services.circuit_breaker import (
    CircuitBreaker, CircuitOpenError, CLOSED, OPEN, HALF_OPEN,
    get_breaker, get_all_breakers, init_breakers, _registry,
)


class FakeRedis:
    """Minimal in-memory Redis fake."""

    def __init__(self):
        self.store = {}
        self.hashes = {}

    def get(self, key):
        return self.store.get(key)

    def set(self, key, value):
        self.store[key] = str(value)

    def incr(self, key):
        val = int(self.store.get(key, 0)) + 1
        self.store[key] = str(val)
        return val

    def delete(self, *keys):
        for k in keys:
            self.store.pop(k, None)

    def hset(self, key, field, value):
        self.hashes.setdefault(key, {})[field] = value

    def hincrby(self, key, field, amount):
        h = self.hashes.setdefault(key, {})
        h[field] = str(int(h.get(field, 0)) + amount)

    def hgetall(self, key):
        return dict(self.hashes.get(key, {}))

    def pipeline(self):
        return FakePipeline(self)


class FakePipeline:
    """Queues commands and replays them on execute()."""

    def __init__(self, redis):
        self._redis = redis
        self._ops = []

    def __getattr__(self, name):
        def queue(*args):
            self._ops.append((name, args))
            return self
        return queue

    def execute(self):
        for name, args in self._ops:
            getattr(self._redis, name)(*args)
        self._ops = []


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def cb(fake_redis):
    return CircuitBreaker('loops', fake_redis, failure_threshold=3, reset_timeout=120)


@pytest.fixture(autouse=True)
def _clean_registry():
    saved = dict(_registry)
    _registry.clear()
    yield
    _registry.clear()
    _registry.update(saved)


def _fail():
    raise ConnectionError('loops down')


def _trip(cb):
    for _ in range(cb.failure_threshold):
        with pytest.raises(ConnectionError):
            cb.call(_fail)


class TestStates:

    def test_starts_closed(self, cb):
        assert cb.state == CLOSED

    def test_counts_failures_below_threshold(self, cb):
        for _ in range(2):
            with pytest.raises(ConnectionError):
                cb.call(_fail)
        assert cb.failure_count == 2
        assert cb.state == CLOSED

    def test_opens_at_threshold_and_rejects(self, cb):
        _trip(cb)
        assert cb.state == OPEN
        with pytest.raises(CircuitOpenError) as exc_info:
            cb.call(lambda: 'ok')
        assert exc_info.value.name == 'loops'
        assert 0 < exc_info.value.retry_after <= 120

    def test_half_open_after_timeout_then_closes_on_success(self, cb, fake_redis):
        _trip(cb)
        fake_redis.store[cb._key('last_failure')] = str(time.time() - 200)
        assert cb.state == HALF_OPEN
        assert cb.call(lambda: 'back') == 'back'
        assert cb.state == CLOSED
        assert cb.failure_count == 0

    def test_success_resets_failure_count(self, cb):
        with pytest.raises(ConnectionError):
            cb.call(_fail)
        cb.call(lambda: 'ok')
        assert cb.failure_count == 0

    def test_redis_outage_keeps_circuit_closed(self):
        broken = MagicMock()
        broken.get.side_effect = ConnectionError('redis down')
        broken.incr.side_effect = ConnectionError('redis down')
        broken.pipeline.side_effect = ConnectionError('redis down')
        cb = CircuitBreaker('hubspot', broken)
        assert cb.state == CLOSED
        assert cb.call(lambda: 42) == 42
        with pytest.raises(ValueError):
            cb.call(lambda: (_ for _ in ()).throw(ValueError('bad')))


class TestResetAndHealth:

    def test_reset(self, cb):
        _trip(cb)
        cb.reset()
        assert cb.state == CLOSED
        assert cb.call(lambda: 'ok') == 'ok'

    def test_health(self, cb):
        cb.call(lambda: 'ok')
        with pytest.raises(ConnectionError):
            cb.call(_fail)
        health = cb.get_health()
        assert health['name'] == 'loops'
        assert health['total_success'] == 1
        assert health['total_failure'] == 1
        assert health['last_error'] == 'loops down'
        assert health['failure_threshold'] == 3


class TestRegistry:

    def test_init_breakers_registers_outbound_services(self, fake_redis):
        breakers = init_breakers(fake_redis)
        assert set(breakers) == {'hubspot', 'loops'}
        assert breakers['hubspot'].reset_timeout == 180
        assert set(get_all_breakers()) == {'hubspot', 'loops'}

    def test_get_breaker_reuses_instance(self, fake_redis):
        first = get_breaker('loops', fake_redis)
        assert get_breaker('loops') is first
        assert first.reset_timeout == 120
