"""Tests for leadradar.services.rate_limit — fixed-window limiter."""
from unittest.mock import MagicMock

import pytest

from leadradar.errors import RateLimitError
from leadradar.services.rate_limit import FixedWindowRateLimiter, client_identity


class TestFixedWindowRateLimiter:

    def test_counts_down(self, fake_redis):
        limiter = FixedWindowRateLimiter(fake_redis, limit=3, window=60, clock=lambda: 1000.0)
        assert limiter.hit('1.2.3.4') == 2
        assert limiter.hit('1.2.3.4') == 1
        assert limiter.hit('1.2.3.4') == 0

    def test_over_limit_raises_with_retry_after(self, fake_redis):
        limiter = FixedWindowRateLimiter(fake_redis, limit=1, window=60, clock=lambda: 1000.0)
        limiter.hit('1.2.3.4')
        with pytest.raises(RateLimitError) as exc:
            limiter.hit('1.2.3.4')
        # window 16 ends at 1020
        assert exc.value.retry_after == 20
        assert exc.value.status_code == 429

    def test_clients_counted_separately(self, fake_redis):
        limiter = FixedWindowRateLimiter(fake_redis, limit=1, window=60, clock=lambda: 1000.0)
        limiter.hit('a')
        assert limiter.hit('b') == 0

    def test_new_window_resets(self, fake_redis):
        now = [1000.0]
        limiter = FixedWindowRateLimiter(fake_redis, limit=1, window=60, clock=lambda: now[0])
        limiter.hit('a')
        now[0] = 1021.0
        assert limiter.hit('a') == 0

    def test_key_expires_with_window(self, fake_redis):
        FixedWindowRateLimiter(fake_redis, limit=5, window=60, clock=lambda: 1000.0).hit('a')
        assert fake_redis.ttls == {'rl:a:16': 60}

    def test_redis_failure_allows_request(self):
        broken = MagicMock()
        broken.pipeline.side_effect = ConnectionError('down')
        limiter = FixedWindowRateLimiter(broken, limit=5)
        assert limiter.hit('a') == 5


class TestClientIdentity:

    def _request(self, headers=None, remote_addr='10.0.0.9'):
        request = MagicMock()
        request.headers = headers or {}
        request.remote_addr = remote_addr
        return request

    def test_authenticated_user(self):
        assert client_identity(self._request(), user_id='u9') == 'user:u9'

    def test_remote_addr(self):
        assert client_identity(self._request()) == 'ip:10.0.0.9'

    def test_forwarding_headers_not_trusted(self):
        request = self._request({'X-Forwarded-For': '203.0.113.7', 'X-Real-IP': '198.51.100.2'})
        assert client_identity(request) == 'ip:10.0.0.9'

    def test_unknown(self):
        assert client_identity(self._request(remote_addr=None)) == 'ip:unknown'
