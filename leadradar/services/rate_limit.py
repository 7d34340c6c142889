"""
Fixed-window rate limiter backed by Redis.

Each client gets `limit` requests per `window` seconds, counted with
INCR + EXPIRE on a key that includes the window number. Redis errors fail
open: the request is allowed and the error logged.
"""
import logging
import time

from leadradar.errors import RateLimitError

logger = logging.getLogger('services.rate_limit')


class FixedWindowRateLimiter:
    PREFIX = 'rl'

    def __init__(self, redis_client, limit=60, window=60, clock=time.time):
        self.redis = redis_client
        self.limit = limit
        self.window = window
        self.clock = clock

    def hit(self, client_id):
        """
        Count one request for client_id.

        Returns the number of requests left in the window. Raises
        RateLimitError once the quota is exhausted.
        """
        now = self.clock()
        window_number = int(now // self.window)
        key = f'{self.PREFIX}:{client_id}:{window_number}'
        try:
            pipe = self.redis.pipeline()
            pipe.incr(key)
            pipe.expire(key, self.window)
            count, _ = pipe.execute()
        except Exception as e:
            logger.warning("Rate limiter unavailable, allowing request: %s", e)
            return self.limit

        if int(count) > self.limit:
            retry_after = int((window_number + 1) * self.window - now) or 1
            raise RateLimitError(retry_after=retry_after)
        return self.limit - int(count)


def client_identity(request, user_id=None):
    """
    Rate limit key for the caller.

    Authenticated callers are counted per user. Everyone else is counted by
    remote address: the socket peer, or the client address ProxyFix restored
    from a trusted proxy. Raw forwarding headers are never read here.
    """
    if user_id:
        return f'user:{user_id}'
    return f"ip:{request.remote_addr or 'unknown'}"
