"""
Utility modules for WalletGuard.

Provides common utilities including:
- Error handling with verbose logging
- Thread-safe error aggregation
"""

from .error_handling import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    ErrorAggregator,
    get_error_aggregator,
    handle_error,
    safe_execute,
    determine_severity,
    log_security_error,
    log_network_error,
)

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
