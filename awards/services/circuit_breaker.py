"""
Redis-backed circuit breaker for the outbound CRM/email APIs.

  CLOSED    → calls pass through
  OPEN      → failure_threshold consecutive failures; calls raise CircuitOpenError
  HALF_OPEN → reset_timeout elapsed; the next call tests the service

State lives in Redis so every gunicorn worker and RQ worker shares it. If Redis
itself is unreachable the breaker stays closed.
"""
import logging
import time

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'

# name → (failure_threshold, reset_timeout seconds)
SERVICE_LIMITS = {
    'hubspot': (3, 180),
    'loops': (3, 120),
}


class CircuitOpenError(Exception):
    """Raised when calling through an open circuit breaker."""
    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is open, {name} calls are suspended")


class CircuitBreaker:
    """
    Usage:
        cb = CircuitBreaker('loops', redis_client, failure_threshold=3, reset_timeout=120)
        response = cb.call(requests.post, url, json=body, timeout=10)
    """

    PREFIX = 'wsa:cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=180):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout

    def _key(self, part):
        return f'{self.PREFIX}:{self.name}:{part}'

    @property
    def state(self):
        try:
            current = self.redis.get(self._key('state'))
            if current is None:
                return CLOSED
            if current == OPEN and self._seconds_since_failure() > self.reset_timeout:
                self.redis.set(self._key('state'), HALF_OPEN)
                return HALF_OPEN
            return current
        except Exception:
            return CLOSED

    @property
    def failure_count(self):
        try:
            return int(self.redis.get(self._key('failures')) or 0)
        except Exception:
            return 0

    def _seconds_since_failure(self):
        last = self.redis.get(self._key('last_failure'))
        return time.time() - float(last) if last else float('inf')

    def call(self, func, *args, **kwargs):
        """Execute func through the breaker, recording the outcome."""
        if self.state == OPEN:
            try:
                retry_after = max(0.0, self.reset_timeout - self._seconds_since_failure())
            except Exception:
                retry_after = None
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._on_failure(e)
            raise
        self._on_success()
        return result

    def _on_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.hincrby(self._key('health'), 'success', 1)
            pipe.hset(self._key('health'), 'last_success', str(time.time()))
            pipe.execute()
        except Exception:
            logger.debug("Redis unavailable recording success for '%s'", self.name)

    def _on_failure(self, error):
        try:
            count = self.redis.incr(self._key('failures'))
            now = str(time.time())
            self.redis.set(self._key('last_failure'), now)
            pipe = self.redis.pipeline()
            pipe.hincrby(self._key('health'), 'failure', 1)
            pipe.hset(self._key('health'), 'last_failure', now)
            pipe.hset(self._key('health'), 'last_error', str(error)[:200])
            pipe.execute()
        except Exception:
            logger.debug("Redis unavailable recording failure for '%s'", self.name)
            return

        if count >= self.failure_threshold:
            self.redis.set(self._key('state'), OPEN)
            logger.warning("Circuit '%s' opened after %d failures: %s", self.name, count, error)
        else:
            logger.info("Circuit '%s' failure %d/%d: %s",
                        self.name, count, self.failure_threshold, error)

    def reset(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._key('state'), CLOSED)
            pipe.set(self._key('failures'), 0)
            pipe.delete(self._key('last_failure'))
            pipe.execute()
            logger.info("Circuit '%s' manually reset", self.name)
        except Exception as e:
            logger.error("Failed to reset circuit '%s': %s", self.name, e)

    def get_health(self):
        """Health snapshot for /api/health."""
        try:
            data = self.redis.hgetall(self._key('health')) or {}
        except Exception:
            data = {}
        return {
            'name': self.name,
            'state': self.state,
            'failure_count': self.failure_count,
            'failure_threshold': self.failure_threshold,
            'total_success': int(data.get('success', 0)),
            'total_failure': int(data.get('failure', 0)),
            'last_error': data.get('last_error', ''),
        }


# ── Registry ─────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None):
    """Get or create the named breaker (one per process)."""
    if name not in _registry:
        if redis_client is None:
            from awards.extensions import redis_client
        threshold, timeout = SERVICE_LIMITS.get(name, (3, 180))
        _registry[name] = CircuitBreaker(name, redis_client, failure_threshold=threshold,
                                         reset_timeout=timeout)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register a breaker for every outbound service."""
    for name, (threshold, timeout) in SERVICE_LIMITS.items():
        _registry[name] = CircuitBreaker(name, redis_client, failure_threshold=threshold,
                                         reset_timeout=timeout)
    return dict(_registry)
