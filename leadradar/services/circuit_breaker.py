"""
Redis-backed circuit breakers for the external collaborators.

One breaker per collaborator (OpenAI conversation analysis, Facebook Ads
Library lookups). State lives in Redis so every gunicorn worker sees the
same circuit:

    closed ──(failure_threshold consecutive failures)──▶ open
    open ──(reset_timeout seconds)──▶ half_open ──(success)──▶ closed

Redis trouble never blocks a call: unreadable state counts as closed and
bookkeeping writes are dropped with a debug log.
"""
import logging
import time

from leadradar.errors import LeadRadarError

logger = logging.getLogger('services.circuit_breaker')

CLOSED = 'closed'
OPEN = 'open'
HALF_OPEN = 'half_open'

# (failure_threshold, reset_timeout seconds) per collaborator
COLLABORATORS = {
    'openai': (5, 60),
    'facebook_ads': (3, 300),
}


class CircuitOpenError(LeadRadarError):
    """The collaborator's circuit is open; the call was not attempted."""
    code = 'SERVICE_UNAVAILABLE'
    status_code = 503

    def __init__(self, name, retry_after=None):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"{name} is temporarily unavailable", details={'service': name})


class CircuitBreaker:
    PREFIX = 'cb'

    def __init__(self, name, redis_client, failure_threshold=3, reset_timeout=300):
        self.name = name
        self.redis = redis_client
        self.failure_threshold = failure_threshold
        self.reset_timeout = reset_timeout
        self.keys = {
            part: f'{self.PREFIX}:{name}:{part}'
            for part in ('state', 'failures', 'last_failure', 'health')
        }

    def _seconds_since_failure(self):
        last = self.redis.get(self.keys['last_failure'])
        return time.time() - float(last) if last else None

    @property
    def state(self):
        try:
            current = self.redis.get(self.keys['state']) or CLOSED
            if current == OPEN:
                elapsed = self._seconds_since_failure()
                if elapsed is not None and elapsed > self.reset_timeout:
                    self.redis.set(self.keys['state'], HALF_OPEN)
                    return HALF_OPEN
            return current
        except Exception:
            return CLOSED

    def get_health(self):
        """Snapshot for /api/health."""
        health = {
            'name': self.name,
            'state': 'unknown',
            'failure_count': 0,
            'failure_threshold': self.failure_threshold,
            'reset_timeout': self.reset_timeout,
            'total_success': 0,
            'total_failure': 0,
            'last_error': '',
        }
        try:
            counters = self.redis.hgetall(self.keys['health']) or {}
            failures = self.redis.get(self.keys['failures'])
        except Exception:
            return health
        health.update(
            state=self.state,
            failure_count=int(failures or 0),
            total_success=int(counters.get('success', 0)),
            total_failure=int(counters.get('failure', 0)),
            last_error=counters.get('last_error', ''),
        )
        return health

    def call(self, func, *args, **kwargs):
        """Run func unless the circuit is open; record the outcome."""
        if self.state == OPEN:
            try:
                elapsed = self._seconds_since_failure()
            except Exception:
                elapsed = None
            retry_after = max(0, self.reset_timeout - elapsed) if elapsed is not None else None
            raise CircuitOpenError(self.name, retry_after=retry_after)

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self._record_failure(e)
            raise
        self._record_success()
        return result

    def _record_success(self):
        try:
            pipe = self.redis.pipeline()
            pipe.set(self.keys['state'], CLOSED)
            pipe.set(self.keys['failures'], 0)
            pipe.hincrby(self.keys['health'], 'success', 1)
            pipe.execute()
        except Exception:
            logger.debug("%s: success not recorded", self.name)

    def _record_failure(self, error):
        try:
            failures = self.redis.incr(self.keys['failures'])
            self.redis.set(self.keys['last_failure'], str(time.time()))
            self.redis.hincrby(self.keys['health'], 'failure', 1)
            self.redis.hset(self.keys['health'], 'last_error', str(error)[:200])
            if failures >= self.failure_threshold:
                self.redis.set(self.keys['state'], OPEN)
        except Exception:
            logger.debug("%s: failure not recorded", self.name)
            return
        if failures >= self.failure_threshold:
            logger.warning("%s circuit opened after %d consecutive failures: %s",
                           self.name, failures, error)
        else:
            logger.info("%s call failed (%d/%d): %s",
                        self.name, failures, self.failure_threshold, error)

    def reset(self):
        pipe = self.redis.pipeline()
        pipe.set(self.keys['state'], CLOSED)
        pipe.set(self.keys['failures'], 0)
        pipe.delete(self.keys['last_failure'])
        pipe.execute()
        logger.info("%s circuit manually closed", self.name)


# ── Registry ─────────────────────────────────────────────────────────────────

_registry = {}


def get_breaker(name, redis_client=None, **kwargs):
    """Named breaker, created on first use against the shared Redis client."""
    if name not in _registry:
        if redis_client is None:
            from leadradar.extensions import redis_client
        if name in COLLABORATORS and not kwargs:
            threshold, timeout = COLLABORATORS[name]
            kwargs = {'failure_threshold': threshold, 'reset_timeout': timeout}
        _registry[name] = CircuitBreaker(name, redis_client, **kwargs)
    return _registry[name]


def get_all_breakers():
    return dict(_registry)


def init_breakers(redis_client):
    """Register a breaker for every collaborator in COLLABORATORS."""
    for name, (threshold, timeout) in COLLABORATORS.items():
        _registry[name] = CircuitBreaker(name, redis_client,
                                         failure_threshold=threshold, reset_timeout=timeout)
    return dict(_registry)
