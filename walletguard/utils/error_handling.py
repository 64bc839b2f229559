"""
Error Handling Utilities for WalletGuard

The security core's check entry points are total: untrusted input never
raises out of them. Internal failures are reported here instead, then
converted into a failing CheckResult by the caller.

Reports are:
- categorized (crypto, auth, network, ...) with a severity derived from the
  category and the exception type
- logged as one structured record (GuardLogger.log_with_data)
- counted per (category, type, operation); repeats inside the
  deduplication window are counted but logged at DEBUG only

Only counters are kept; exceptions and tracebacks are never retained.

USAGE:
    from walletguard.utils.error_handling import handle_error, ErrorCategory, safe_execute

    with safe_execute("vault shutdown", ErrorCategory.SECURITY):
        vault.shutdown()

    try:
        recover_signer(message, signature)
    except ValueError as e:
        handle_error(e, "verify_signature", ErrorCategory.CRYPTO, details={'chain': 'ethereum'})
"""

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional, Tuple

import requests

from ..errors import TransientNetworkError
from ..logging_config import get_logger

logger = get_logger(__name__)


class ErrorCategory(Enum):
    """Where in the security core a failure happened."""
    SECURITY = "security"      # Feed authentication, vault wipe
    AUTH = "authentication"    # Token verification
    VALIDATION = "validation"  # Untrusted input that slipped past parsing
    CRYPTO = "crypto"          # Signature recovery, key decoding
    NETWORK = "network"        # JSON-RPC transport
    CONFIG = "configuration"
    WALLET = "wallet"          # Adapter and signer failures
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}

# Forged tokens and garbage input are routine from untrusted callers
_CATEGORY_SEVERITY = {
    ErrorCategory.SECURITY: ErrorSeverity.CRITICAL,
    ErrorCategory.CONFIG: ErrorSeverity.CRITICAL,
    ErrorCategory.CRYPTO: ErrorSeverity.ERROR,
    ErrorCategory.WALLET: ErrorSeverity.ERROR,
    ErrorCategory.NETWORK: ErrorSeverity.ERROR,
    ErrorCategory.AUTH: ErrorSeverity.WARNING,
    ErrorCategory.VALIDATION: ErrorSeverity.WARNING,
}

_RETRYABLE = (TransientNetworkError, TimeoutError, requests.Timeout, requests.ConnectionError)


def determine_severity(error: Exception, category: ErrorCategory) -> ErrorSeverity:
    """Severity from the category; retryable transport failures are warnings."""
    if isinstance(error, _RETRYABLE):
        return ErrorSeverity.WARNING
    return _CATEGORY_SEVERITY.get(category, ErrorSeverity.ERROR)


@dataclass
class ErrorContext:
    """One reported failure."""
    error_type: str
    message: str
    category: ErrorCategory
    severity: ErrorSeverity
    operation: str
    details: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    thread_name: str = field(default_factory=lambda: threading.current_thread().name)

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.category.value, self.error_type, self.operation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'error_type': self.error_type,
            'error_message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'operation': self.operation,
            'timestamp': self.timestamp,
            'thread_name': self.thread_name,
            'details': dict(self.details),
        }


class ErrorAggregator:
    """
    Thread-safe failure counters with a deduplication window.

    record() returns False for a repeat of the same (category, type,
    operation) inside the window; the repeat is still counted.
    """

    def __init__(self, dedup_window_seconds: float = 60.0, clock=None):
        self._dedup_window = dedup_window_seconds
        self._clock = clock or time.monotonic
        self._lock = threading.Lock()
        self._counts: Dict[Tuple[str, str, str], int] = {}
        self._last_logged: Dict[Tuple[str, str, str], float] = {}
        self._by_severity: Dict[str, int] = {}

    def record(self, context: ErrorContext) -> bool:
        now = self._clock()
        key = context.key
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1
            severity = context.severity.value
            self._by_severity[severity] = self._by_severity.get(severity, 0) + 1

            last = self._last_logged.get(key)
            if last is not None and now - last < self._dedup_window:
                return False
            self._last_logged[key] = now
            return True

    def get_summary(self) -> Dict[str, Any]:
        """Counts for SecurityCore.get_stats()."""
        with self._lock:
            by_category: Dict[str, int] = {}
            for (category, _, _), count in self._counts.items():
                by_category[category] = by_category.get(category, 0) + count
            return {
                'total_errors': sum(self._counts.values()),
                'by_category': by_category,
                'by_severity': dict(self._by_severity),
                'by_operation': {
                    f"{category}:{error_type}:{operation}": count
                    for (category, error_type, operation), count in self._counts.items()
                },
            }

    def clear(self) -> None:
        with self._lock:
            self._counts.clear()
            self._last_logged.clear()
            self._by_severity.clear()


_global_aggregator = ErrorAggregator()


def get_error_aggregator() -> ErrorAggregator:
    return _global_aggregator


def handle_error(
    error: Exception,
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    severity: Optional[ErrorSeverity] = None,
    details: Optional[Dict[str, Any]] = None,
    reraise: bool = False,
) -> ErrorContext:
    """
    Report a failure: count it and log it once per deduplication window.

    Args:
        error: The exception that occurred
        operation: Name of the failing operation
        category: Error category
        severity: Explicit severity (derived when omitted)
        details: Structured context for the log record (never secrets)
        reraise: Re-raise `error` after reporting
    """
    if severity is None:
        severity = determine_severity(error, category)

    context = ErrorContext(
        error_type=type(error).__name__,
        message=str(error),
        category=category,
        severity=severity,
        operation=operation,
        details=details or {},
    )

    level = _LOG_LEVELS[severity]
    summary = f"{operation} failed: {context.error_type}: {context.message}"
    if _global_aggregator.record(context):
        data = {'category': category.value, 'severity': severity.value, **context.details}
        # Tracebacks only for failures that point at a bug
        logger.log_with_data(level, summary, data, exc_info=error if level >= logging.ERROR else None)
    else:
        logger.debug(f"[repeat] {summary}")

    if reraise:
        raise error

    return context


@contextmanager
def safe_execute(
    operation: str,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    default_return: Any = None,
    reraise: bool = False,
    details: Optional[Dict[str, Any]] = None,
):
    """
    Run a block, reporting any exception through handle_error().

    Usage:
        with safe_execute("loading feed", ErrorCategory.CONFIG) as result:
            result.value = loader.load(path)
        if not result.success:
            ...
    """
    class Result:
        def __init__(self):
            self.value = default_return
            self.error: Optional[ErrorContext] = None
            self.success = True

    result = Result()

    try:
        yield result
    except Exception as e:
        result.success = False
        result.value = default_return
        result.error = handle_error(
            e, operation, category=category, details=details, reraise=reraise,
        )


def log_security_error(error: Exception, operation: str, **details) -> ErrorContext:
    return handle_error(error, operation, category=ErrorCategory.SECURITY, details=details)


def log_network_error(error: Exception, operation: str, **details) -> ErrorContext:
    return handle_error(error, operation, category=ErrorCategory.NETWORK, details=details)


__all__ = [
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'ErrorAggregator',
    'get_error_aggregator',
    'handle_error',
    'safe_execute',
    'determine_severity',
    'log_security_error',
    'log_network_error',
]
