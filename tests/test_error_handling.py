"""
Tests for error handling utilities.
"""

import logging
import os
import sys

import pytest
import requests

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walletguard.errors import SubmissionTimeoutError, ThreatFeedError
from walletguard.utils.error_handling import (
    ErrorAggregator,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    determine_severity,
    get_error_aggregator,
    handle_error,
    log_network_error,
    log_security_error,
    safe_execute,
)


class TestDetermineSeverity:
    @pytest.mark.parametrize("category,expected", [
        (ErrorCategory.SECURITY, ErrorSeverity.CRITICAL),
        (ErrorCategory.CONFIG, ErrorSeverity.CRITICAL),
        (ErrorCategory.CRYPTO, ErrorSeverity.ERROR),
        (ErrorCategory.WALLET, ErrorSeverity.ERROR),
        (ErrorCategory.NETWORK, ErrorSeverity.ERROR),
        (ErrorCategory.AUTH, ErrorSeverity.WARNING),
        (ErrorCategory.VALIDATION, ErrorSeverity.WARNING),
        (ErrorCategory.UNKNOWN, ErrorSeverity.ERROR),
    ])
    def test_by_category(self, category, expected):
        assert determine_severity(RuntimeError("x"), category) == expected

    def test_message_text_does_not_escalate(self):
        error = ThreatFeedError("feed integrity lost")
        assert determine_severity(error, ErrorCategory.WALLET) == ErrorSeverity.ERROR

    @pytest.mark.parametrize("error", [
        SubmissionTimeoutError("no confirmation"),
        requests.Timeout("slow"),
        requests.ConnectionError("refused"),
        TimeoutError("slow"),
    ])
    def test_retryable_transport_is_warning(self, error):
        assert determine_severity(error, ErrorCategory.NETWORK) == ErrorSeverity.WARNING


class FakeMonotonic:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now


class TestErrorAggregator:
    def _context(self, operation="op", category=ErrorCategory.VALIDATION):
        return ErrorContext(
            error_type="ValueError",
            message="boom",
            category=category,
            severity=ErrorSeverity.WARNING,
            operation=operation,
        )

    def test_repeat_counted_but_not_relogged(self):
        aggregator = ErrorAggregator(dedup_window_seconds=60)
        assert aggregator.record(self._context())
        assert not aggregator.record(self._context())
        summary = aggregator.get_summary()
        assert summary['total_errors'] == 2
        assert summary['by_operation'] == {'validation:ValueError:op': 2}
        assert summary['by_severity'] == {'warning': 2}

    def test_window_expiry_logs_again(self):
        clock = FakeMonotonic()
        aggregator = ErrorAggregator(dedup_window_seconds=10, clock=clock)
        assert aggregator.record(self._context())
        clock.now += 10
        assert aggregator.record(self._context())

    def test_by_category(self):
        aggregator = ErrorAggregator()
        aggregator.record(self._context("a"))
        aggregator.record(self._context("b"))
        aggregator.record(self._context("c", ErrorCategory.CRYPTO))
        assert aggregator.get_summary()['by_category'] == {'validation': 2, 'crypto': 1}

    def test_clear(self):
        aggregator = ErrorAggregator()
        aggregator.record(self._context())
        aggregator.clear()
        assert aggregator.get_summary()['total_errors'] == 0
        assert aggregator.record(self._context())


class TestHandleError:
    def test_logs_structured_record(self, caplog):
        with caplog.at_level(logging.WARNING, logger="walletguard.utils.error_handling"):
            context = handle_error(ValueError("bad input"), "parse", ErrorCategory.VALIDATION,
                                   details={'field': 'amount'})
        assert context.severity == ErrorSeverity.WARNING
        record = caplog.records[-1]
        assert record.levelno == logging.WARNING
        assert "parse failed: ValueError: bad input" in record.getMessage()
        assert record.extra_data['field'] == 'amount'
        assert record.extra_data['category'] == 'validation'
        assert not record.exc_info
        assert get_error_aggregator().get_summary()['total_errors'] == 1

    def test_error_level_carries_traceback(self, caplog):
        try:
            raise RuntimeError("signer exploded")
        except RuntimeError as e:
            with caplog.at_level(logging.ERROR, logger="walletguard.utils.error_handling"):
                handle_error(e, "sign", ErrorCategory.WALLET)
        assert caplog.records[-1].exc_info[0] is RuntimeError

    def test_repeat_logged_at_debug(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="walletguard.utils.error_handling"):
            handle_error(ValueError("a"), "parse", ErrorCategory.VALIDATION)
            handle_error(ValueError("b"), "parse", ErrorCategory.VALIDATION)
        assert caplog.records[-1].levelno == logging.DEBUG
        assert "[repeat]" in caplog.records[-1].getMessage()
        assert get_error_aggregator().get_summary()['total_errors'] == 2

    def test_reraise(self):
        with pytest.raises(KeyError):
            handle_error(KeyError("k"), "lookup", reraise=True)

    def test_to_dict(self):
        context = handle_error(RuntimeError("x"), "op", ErrorCategory.WALLET)
        data = context.to_dict()
        assert data['error_type'] == 'RuntimeError'
        assert data['category'] == 'wallet'
        assert data['severity'] == 'error'


class TestSafeExecute:
    def test_success(self):
        with safe_execute("compute") as result:
            result.value = 42
        assert result.success
        assert result.value == 42

    def test_swallows_and_records(self):
        with safe_execute("compute", ErrorCategory.CRYPTO, default_return=-1) as result:
            result.value = 1
            raise ValueError("fail")
        assert not result.success
        assert result.value == -1
        assert result.error.category == ErrorCategory.CRYPTO

    def test_reraise(self):
        with pytest.raises(ValueError):
            with safe_execute("compute", reraise=True):
                raise ValueError("fail")


class TestCategoryHelpers:
    def test_log_security_error(self):
        context = log_security_error(ValueError("bad signature"), "authenticate_feed", feed="x")
        assert context.category == ErrorCategory.SECURITY
        assert context.severity == ErrorSeverity.CRITICAL
        assert context.details == {'feed': 'x'}

    def test_log_network_error(self):
        context = log_network_error(requests.ConnectionError("refused"), "rpc call", endpoint="http://x")
        assert context.category == ErrorCategory.NETWORK
        assert context.severity == ErrorSeverity.WARNING
        assert context.details == {'endpoint': 'http://x'}
