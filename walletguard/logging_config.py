"""
Logging Configuration for WalletGuard.

Provides centralized logging setup with a verbose toggle, per-feature
loggers and text or JSON formatting.

Usage:
    from walletguard.logging_config import setup_logging, get_logger

    setup_logging(verbose=True)

    logger = get_logger('walletguard.vault')
    logger.security("Vault cleared on shutdown")

SECURITY: Never pass private keys, vaulted secrets or full tokens to a
logger. Use redact() to log a recognizable prefix instead.
"""

import sys
import json
import logging
import threading
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any, Dict, Optional, Set


# =============================================================================
# LOGGING LEVELS AND FEATURES
# =============================================================================

SECURITY_LEVEL = 55     # Security-critical events (always logged)
VERBOSE_LEVEL = 15


class FeatureArea(Enum):
    """Feature areas for targeted logging."""
    CORE = auto()        # Facade and wiring
    RISK = auto()        # Risk assessment engine
    FEED = auto()        # Blacklist / phishing feeds
    RATE_LIMIT = auto()  # Rate limiter
    TOKEN = auto()       # Signed security tokens
    VAULT = auto()       # Ephemeral key vault
    WALLET = auto()      # Wallet adapters and signers
    RPC = auto()         # JSON-RPC submission
    CONFIG = auto()      # Configuration loading
    CLI = auto()         # Operator command line


logging.addLevelName(VERBOSE_LEVEL, 'VERBOSE')
logging.addLevelName(SECURITY_LEVEL, 'SECURITY')

_setup_lock = threading.Lock()


# =============================================================================
# CUSTOM FORMATTER
# =============================================================================

class GuardFormatter(logging.Formatter):
    """Formatter with optional color and structured (JSON) output."""

    COLORS = {
        'DEBUG': '\033[36m',
        'VERBOSE': '\033[94m',
        'INFO': '\033[32m',
        'WARNING': '\033[33;1m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[31;1m',
        'SECURITY': '\033[35;1m',
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, json_format: bool = False):
        self.use_colors = use_colors and sys.stdout.isatty()
        self.json_format = json_format
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_name = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            level_str = f"{color}{level_name:8}{self.COLORS['RESET']}"
        else:
            level_str = f"{level_name:8}"

        feature_str = f"[{self._extract_feature(record.name)}]"
        msg = record.getMessage()

        extra_str = ""
        if getattr(record, 'extra_data', None):
            extra_items = [f"{k}={v}" for k, v in record.extra_data.items()]
            extra_str = f" | {', '.join(extra_items)}"

        text = f"{timestamp} {level_str} {feature_str:14} {msg}{extra_str}"
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.now().isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'feature': self._extract_feature(record.name),
        }

        if getattr(record, 'extra_data', None):
            data['extra'] = record.extra_data

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        return json.dumps(data, default=str)

    def _extract_feature(self, logger_name: str) -> str:
        """walletguard.auth.key_vault -> auth"""
        parts = logger_name.split('.')
        if len(parts) >= 2 and parts[0] == 'walletguard':
            return parts[1]
        return parts[0] if parts else 'core'


# =============================================================================
# CUSTOM LOGGER CLASS
# =============================================================================

class GuardLogger(logging.Logger):
    """Logger with VERBOSE and SECURITY levels and structured extras."""

    def verbose(self, msg: str, *args, **kwargs):
        """Log at VERBOSE level."""
        if self.isEnabledFor(VERBOSE_LEVEL):
            self._log(VERBOSE_LEVEL, msg, args, **kwargs)

    def security(self, msg: str, *args, **kwargs):
        """Log security-relevant events (always logged)."""
        self._log(SECURITY_LEVEL, msg, args, **kwargs)

    def log_with_data(self, level: int, msg: str, data: Dict[str, Any], **kwargs):
        """Log with structured extra data."""
        extra = kwargs.get('extra', {})
        extra['extra_data'] = data
        kwargs['extra'] = extra
        self._log(level, msg, (), **kwargs)


logging.setLoggerClass(GuardLogger)


# =============================================================================
# SETUP AND CONFIGURATION
# =============================================================================

def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
    features: Optional[Set[FeatureArea]] = None,
) -> None:
    """
    Initialize the logging system.

    Args:
        verbose: Enable VERBOSE level output
        log_file: Optional file path for log output
        console: Enable console output (stderr)
        json_format: Use JSON format for logs
        features: Feature areas logged at the base level; others log
                  warnings and above only
    """
    enabled = set(features) if features is not None else set(FeatureArea)

    with _setup_lock:
        base_level = VERBOSE_LEVEL if verbose else logging.INFO

        root = logging.getLogger()
        root.setLevel(base_level)
        for handler in root.handlers[:]:
            root.removeHandler(handler)

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(base_level)
            console_handler.setFormatter(GuardFormatter(use_colors=True, json_format=json_format))
            root.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(base_level)
            file_handler.setFormatter(GuardFormatter(use_colors=False, json_format=json_format))
            root.addHandler(file_handler)

        for feature in FeatureArea:
            level = base_level if feature in enabled else logging.WARNING
            logging.getLogger(f"walletguard.{_FEATURE_PACKAGES[feature]}").setLevel(level)


# Logger namespace used by each feature area
_FEATURE_PACKAGES = {
    FeatureArea.CORE: 'service',
    FeatureArea.RISK: 'security.risk_engine',
    FeatureArea.FEED: 'security.threat_feed',
    FeatureArea.RATE_LIMIT: 'auth.rate_limiter',
    FeatureArea.TOKEN: 'auth.security_token',
    FeatureArea.VAULT: 'auth.key_vault',
    FeatureArea.WALLET: 'wallet',
    FeatureArea.RPC: 'wallet.rpc',
    FeatureArea.CONFIG: 'config',
    FeatureArea.CLI: 'cli',
}


def get_logger(name: str) -> GuardLogger:
    """Get a GuardLogger, upgrading the logger class if needed."""
    logger = logging.getLogger(name)
    if not isinstance(logger, GuardLogger):
        logging.setLoggerClass(GuardLogger)
        logger = logging.getLogger(name)
    return logger


def redact(value: Optional[str], keep: int = 8) -> str:
    """Return a loggable prefix of a credential."""
    if not value:
        return "<empty>"
    if len(value) <= keep:
        return "*" * len(value)
    return f"{value[:keep]}..."


__all__ = [
    'SECURITY_LEVEL',
    'VERBOSE_LEVEL',
    'FeatureArea',
    'setup_logging',
    'get_logger',
    'redact',
    'GuardLogger',
    'GuardFormatter',
]
