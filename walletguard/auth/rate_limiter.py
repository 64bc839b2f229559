"""
Rate Limiter - fixed-window request gating per (identity, endpoint).

Each key owns a RateLimitRecord {count, window_reset_at}. A request at or
after window_reset_at opens a new window; the read-reset-increment-compare
sequence runs under the record's own lock, so concurrent callers on the same
key never lose increments and never both observe a count under the limit.

Stale records are swept periodically. A swept record is marked retired
before it leaves the map; a caller that raced the sweep and locked a retired
record starts over with a fresh lookup.

Times are integer milliseconds from an injectable clock (monotonic by
default).
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from ..constants import RateLimits
from ..security.models import CheckKind, CheckResult, RiskLevel
from ..utils.error_handling import ErrorCategory, handle_error

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass
class RateLimitRecord:
    """Counter for one (identity, endpoint) window."""
    count: int
    window_reset_at: int
    retired: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)


@dataclass(frozen=True)
class EndpointPolicy:
    """Named limit applied by RateLimiter.check()."""
    max_requests: int
    window_ms: int


def default_policies() -> Dict[str, EndpointPolicy]:
    return {
        endpoint: EndpointPolicy(max_requests, window_ms)
        for endpoint, (max_requests, window_ms) in RateLimits.get_endpoint_limits().items()
    }


class RateLimiter:
    """
    In-memory fixed-window rate limiter.

    Args:
        clock: Millisecond clock, monotonic by default
        policies: endpoint -> EndpointPolicy used by check()
        default_policy: Policy for endpoints without a named one
        sweep_interval_ms: Minimum spacing of automatic sweeps
    """

    def __init__(
        self,
        clock: Optional[Clock] = None,
        policies: Optional[Dict[str, EndpointPolicy]] = None,
        default_policy: Optional[EndpointPolicy] = None,
        sweep_interval_ms: int = RateLimits.SWEEP_INTERVAL_MS,
    ):
        self._clock = clock or monotonic_ms
        self.policies = policies if policies is not None else default_policies()
        self.default_policy = default_policy or EndpointPolicy(
            RateLimits.REQUESTS_DEFAULT, RateLimits.WINDOW_DEFAULT_MS,
        )
        self.sweep_interval_ms = sweep_interval_ms

        self._records: Dict[Tuple[str, str], RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._last_sweep = self._clock()

        self._stats_lock = threading.Lock()
        self._total_checks = 0
        self._total_rejections = 0

    def _get_or_create(self, key: Tuple[str, str], window_ms: int) -> RateLimitRecord:
        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = RateLimitRecord(count=0, window_reset_at=self._clock() + window_ms)
                self._records[key] = record
            return record

    def check_rate_limit(
        self,
        identity: str,
        endpoint: str,
        max_requests: int,
        window_ms: int,
    ) -> CheckResult:
        """
        Count one request against (identity, endpoint).

        Returns a RATE_LIMIT CheckResult; failure (MEDIUM) once the window
        count exceeds max_requests. Never raises.
        """
        kind = CheckKind.RATE_LIMIT
        try:
            if max_requests < 0 or window_ms <= 0:
                raise ValueError(
                    f"invalid limit max_requests={max_requests} window_ms={window_ms}"
                )

            key = (identity, endpoint)
            while True:
                record = self._get_or_create(key, window_ms)
                with record.lock:
                    if record.retired:
                        continue
                    now = self._clock()
                    if now >= record.window_reset_at:
                        record.count = 0
                        record.window_reset_at = now + window_ms
                    record.count += 1
                    count = record.count
                    reset_in_ms = record.window_reset_at - now
                break

            allowed = count <= max_requests
            with self._stats_lock:
                self._total_checks += 1
                if not allowed:
                    self._total_rejections += 1

            self._maybe_sweep(now)

            details = {
                'identity': identity,
                'endpoint': endpoint,
                'count': count,
                'max_requests': max_requests,
                'reset_in_ms': reset_in_ms,
            }
            if not allowed:
                if count == max_requests + 1:
                    logger.warning(
                        f"Rate limit exceeded for {endpoint} ({max_requests}/{window_ms}ms)"
                    )
                return CheckResult.failed(
                    kind, RiskLevel.MEDIUM, "Request frequency exceeds limit", details,
                )
            return CheckResult.passed(kind, "Request frequency within limit", details=details)

        except Exception as e:
            handle_error(e, "check_rate_limit", ErrorCategory.VALIDATION,
                         details={'endpoint': endpoint})
            return CheckResult.failed(kind, RiskLevel.LOW, f"Rate limit check error: {e}")

    def check(self, identity: str, endpoint: str) -> CheckResult:
        """check_rate_limit() using the endpoint's configured policy."""
        policy = self.policies.get(endpoint, self.default_policy)
        return self.check_rate_limit(identity, endpoint, policy.max_requests, policy.window_ms)

    def _maybe_sweep(self, now: int) -> None:
        if now - self._last_sweep >= self.sweep_interval_ms:
            self.sweep(now)

    def sweep(self, now: Optional[int] = None) -> int:
        """Drop records whose window has ended. Returns the number removed."""
        if now is None:
            now = self._clock()
        removed = 0
        with self._lock:
            self._last_sweep = now
            for key, record in list(self._records.items()):
                # Skip records a caller is updating right now
                if not record.lock.acquire(blocking=False):
                    continue
                try:
                    if now >= record.window_reset_at:
                        record.retired = True
                        del self._records[key]
                        removed += 1
                finally:
                    record.lock.release()
        if removed:
            logger.debug(f"Swept {removed} stale rate limit records")
        return removed

    def reset(self, identity: Optional[str] = None, endpoint: Optional[str] = None) -> int:
        """
        Admin: forget counters. With no arguments every record is dropped;
        otherwise only records matching the given identity and/or endpoint.
        """
        removed = 0
        with self._lock:
            for key, record in list(self._records.items()):
                if identity is not None and key[0] != identity:
                    continue
                if endpoint is not None and key[1] != endpoint:
                    continue
                with record.lock:
                    record.retired = True
                del self._records[key]
                removed += 1
        logger.warning(
            f"Rate limit records reset ({removed} removed, "
            f"identity={'*' if identity is None else 'given'}, endpoint={endpoint or '*'})"
        )
        return removed

    def get_record(self, identity: str, endpoint: str) -> Optional[RateLimitRecord]:
        with self._lock:
            return self._records.get((identity, endpoint))

    def get_stats(self) -> Dict[str, int]:
        now = self._clock()
        with self._lock:
            records = list(self._records.values())
        with self._stats_lock:
            return {
                'total_records': len(records),
                'active_windows': sum(1 for r in records if now < r.window_reset_at),
                'total_checks': self._total_checks,
                'total_rejections': self._total_rejections,
            }


__all__ = [
    'RateLimiter',
    'RateLimitRecord',
    'EndpointPolicy',
    'default_policies',
    'monotonic_ms',
]
