"""
Tests for the fixed-window RateLimiter.
"""

import os
import sys
import threading

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walletguard.auth.rate_limiter import EndpointPolicy, RateLimiter, default_policies
from walletguard.security.models import CheckKind, RiskLevel


# ===========================================================================
# Window Semantics Tests
# ===========================================================================

class TestFixedWindow:
    """Tests for check_rate_limit window behavior."""

    def test_first_n_pass_then_fail(self, rate_limiter):
        results = [rate_limiter.check_rate_limit("alice", "login", 3, 1000) for _ in range(5)]
        assert [r.success for r in results] == [True, True, True, False, False]
        assert results[0].check_kind == CheckKind.RATE_LIMIT
        assert results[3].risk_level == RiskLevel.MEDIUM
        assert results[3].message == "Request frequency exceeds limit"
        assert results[0].message == "Request frequency within limit"

    def test_details(self, rate_limiter, clock):
        rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        clock.advance(250)
        result = rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        assert result.details == {
            'identity': 'alice',
            'endpoint': 'login',
            'count': 2,
            'max_requests': 2,
            'reset_in_ms': 750,
        }

    def test_count_keeps_rising_while_limited(self, rate_limiter):
        for _ in range(4):
            result = rate_limiter.check_rate_limit("alice", "login", 1, 1000)
        assert result.details['count'] == 4

    def test_new_window_at_exact_boundary(self, rate_limiter, clock):
        """A request at exactly window_reset_at opens a fresh window."""
        for _ in range(3):
            rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        clock.advance(1000)
        result = rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        assert result.success
        assert result.details['count'] == 1
        assert result.details['reset_in_ms'] == 1000

    def test_same_window_just_before_boundary(self, rate_limiter, clock):
        for _ in range(2):
            rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        clock.advance(999)
        assert not rate_limiter.check_rate_limit("alice", "login", 2, 1000).success

    def test_window_does_not_slide(self, rate_limiter, clock):
        """Requests inside a window never extend it."""
        rate_limiter.check_rate_limit("alice", "login", 5, 1000)
        clock.advance(900)
        rate_limiter.check_rate_limit("alice", "login", 5, 1000)
        record = rate_limiter.get_record("alice", "login")
        assert record.window_reset_at == clock.now - 900 + 1000

    def test_keys_are_independent(self, rate_limiter):
        rate_limiter.check_rate_limit("alice", "login", 1, 1000)
        assert not rate_limiter.check_rate_limit("alice", "login", 1, 1000).success
        assert rate_limiter.check_rate_limit("bob", "login", 1, 1000).success
        assert rate_limiter.check_rate_limit("alice", "transfer", 1, 1000).success

    def test_zero_limit_rejects_everything(self, rate_limiter):
        assert not rate_limiter.check_rate_limit("alice", "admin", 0, 1000).success

    @pytest.mark.parametrize("max_requests,window_ms", [(-1, 1000), (5, 0), (5, -10)])
    def test_invalid_limits_low(self, rate_limiter, max_requests, window_ms):
        """Bad limits are reported, never raised."""
        result = rate_limiter.check_rate_limit("alice", "login", max_requests, window_ms)
        assert not result.success
        assert result.risk_level == RiskLevel.LOW
        assert result.message.startswith("Rate limit check error")


# ===========================================================================
# Policy Tests
# ===========================================================================

class TestPolicies:
    def test_named_policy(self, clock):
        limiter = RateLimiter(clock=clock, policies={'issue_token': EndpointPolicy(2, 1000)})
        results = [limiter.check("alice", "issue_token") for _ in range(3)]
        assert [r.success for r in results] == [True, True, False]
        assert results[2].details['max_requests'] == 2

    def test_default_policy_for_unknown_endpoint(self, clock):
        limiter = RateLimiter(clock=clock, policies={}, default_policy=EndpointPolicy(1, 1000))
        assert limiter.check("alice", "anything").success
        assert not limiter.check("alice", "anything").success

    def test_default_policies_cover_core_operations(self):
        policies = default_policies()
        for endpoint in ('validate_address', 'verify_signature', 'issue_token', 'generate_wallet'):
            assert policies[endpoint].max_requests > 0
            assert policies[endpoint].window_ms > 0


# ===========================================================================
# Maintenance Tests
# ===========================================================================

class TestMaintenance:
    def test_sweep_drops_expired_records(self, rate_limiter, clock):
        rate_limiter.check_rate_limit("alice", "login", 5, 1000)
        rate_limiter.check_rate_limit("bob", "login", 5, 5000)
        clock.advance(1000)
        assert rate_limiter.sweep() == 1
        assert rate_limiter.get_record("alice", "login") is None
        assert rate_limiter.get_record("bob", "login") is not None

    def test_swept_record_marked_retired(self, rate_limiter, clock):
        rate_limiter.check_rate_limit("alice", "login", 5, 1000)
        record = rate_limiter.get_record("alice", "login")
        clock.advance(2000)
        rate_limiter.sweep()
        assert record.retired
        result = rate_limiter.check_rate_limit("alice", "login", 5, 1000)
        assert result.details['count'] == 1
        assert rate_limiter.get_record("alice", "login") is not record

    def test_automatic_sweep(self, clock):
        limiter = RateLimiter(clock=clock, sweep_interval_ms=10_000)
        limiter.check_rate_limit("alice", "login", 5, 1000)
        clock.advance(10_000)
        limiter.check_rate_limit("bob", "login", 5, 1000)
        assert limiter.get_record("alice", "login") is None

    def test_reset_by_identity(self, rate_limiter):
        rate_limiter.check_rate_limit("alice", "login", 1, 1000)
        rate_limiter.check_rate_limit("alice", "transfer", 1, 1000)
        rate_limiter.check_rate_limit("bob", "login", 1, 1000)
        assert rate_limiter.reset(identity="alice") == 2
        assert rate_limiter.check_rate_limit("alice", "login", 1, 1000).success
        assert not rate_limiter.check_rate_limit("bob", "login", 1, 1000).success

    def test_reset_all(self, rate_limiter):
        rate_limiter.check_rate_limit("alice", "login", 1, 1000)
        rate_limiter.check_rate_limit("bob", "login", 1, 1000)
        assert rate_limiter.reset() == 2

    def test_stats(self, rate_limiter, clock):
        for _ in range(3):
            rate_limiter.check_rate_limit("alice", "login", 2, 1000)
        rate_limiter.check_rate_limit("bob", "login", 2, 500)
        clock.advance(500)
        assert rate_limiter.get_stats() == {
            'total_records': 2,
            'active_windows': 1,
            'total_checks': 4,
            'total_rejections': 1,
        }


# ===========================================================================
# Concurrency Tests
# ===========================================================================

@pytest.mark.security
class TestConcurrency:
    def test_no_lost_increments(self, rate_limiter):
        """Concurrent callers on one key admit exactly max_requests."""
        allowed = []
        lock = threading.Lock()
        barrier = threading.Barrier(16)

        def worker():
            barrier.wait()
            for _ in range(50):
                if rate_limiter.check_rate_limit("alice", "login", 100, 60_000).success:
                    with lock:
                        allowed.append(1)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(allowed) == 100
        assert rate_limiter.get_record("alice", "login").count == 16 * 50

    def test_concurrent_sweeps_and_checks(self, clock):
        """Sweeping while checking never loses an admitted request."""
        limiter = RateLimiter(clock=clock)
        allowed = []
        lock = threading.Lock()
        stop = threading.Event()

        def sweeper():
            while not stop.is_set():
                limiter.sweep()

        def worker():
            for _ in range(200):
                if limiter.check_rate_limit("alice", "login", 1000, 60_000).success:
                    with lock:
                        allowed.append(1)

        s = threading.Thread(target=sweeper)
        s.start()
        workers = [threading.Thread(target=worker) for _ in range(4)]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        stop.set()
        s.join()

        assert len(allowed) == 800
        assert limiter.get_record("alice", "login").count == 800
