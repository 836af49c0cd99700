import pytest
from unittest.mock import Mock
from replaycoach.errors import RateLimited
from replaycoach.utils.rate_limiter import RateLimiter, get_client_ip


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    """Test the fixed-window limiter"""

    def test_limit_then_reset_after_window(self):
        clock = FakeClock()
        limiter = RateLimiter(5, 3600, key_prefix='contact', clock=clock)

        for expected_remaining in (4, 3, 2, 1, 0):
            allowed, remaining, _ = limiter.check('1.2.3.4')
            assert allowed is True
            assert remaining == expected_remaining

        allowed, remaining, reset_in = limiter.check('1.2.3.4')
        assert allowed is False
        assert reset_in == 3600

        clock.now += 3600
        assert limiter.check('1.2.3.4')[0] is True

    def test_keys_are_independent(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        assert limiter.check('a')[0] is True
        assert limiter.check('a')[0] is False
        assert limiter.check('b')[0] is True

    def test_hit_raises_with_retry_after(self):
        clock = FakeClock()
        limiter = RateLimiter(1, 60, clock=clock)

        headers = limiter.hit('a')
        assert headers['X-RateLimit-Limit'] == '1'
        assert headers['X-RateLimit-Remaining'] == '0'

        clock.now += 20
        with pytest.raises(RateLimited) as exc:
            limiter.hit('a')
        assert exc.value.status_code == 429
        assert exc.value.retry_after == 40

    def test_reset(self):
        limiter = RateLimiter(1, 60, clock=FakeClock())
        limiter.check('a')
        limiter.reset('a')
        assert limiter.check('a')[0] is True


class TestClientIp:
    """Test client IP extraction behind proxies"""

    def request(self, headers=None, remote_addr='10.0.0.1'):
        return Mock(headers=headers or {}, remote_addr=remote_addr)

    def test_forwarded_for_first_hop(self):
        assert get_client_ip(self.request({'X-Forwarded-For': '203.0.113.5, 10.0.0.2'})) == '203.0.113.5'

    def test_fallback_headers(self):
        assert get_client_ip(self.request({'X-Real-IP': '198.51.100.7'})) == '198.51.100.7'
        assert get_client_ip(self.request({'CF-Connecting-IP': '192.0.2.9'})) == '192.0.2.9'

    def test_socket_address(self):
        assert get_client_ip(self.request()) == '10.0.0.1'
        assert get_client_ip(self.request(remote_addr=None)) == 'unknown'
