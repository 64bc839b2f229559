"""
Centralized Constants Module for WalletGuard.

Consolidates the thresholds, lifetimes and sizes used by the security core
so that security-sensitive values are easy to audit in one place.

Values marked as overridable read a WALLETGUARD_<NAME> environment variable;
invalid or out-of-bounds overrides are rejected with a warning and the
default is used instead.

Usage:
    from walletguard.constants import Lifetimes, Timeouts

    vault.store(secret, ttl_ms=Lifetimes.VAULT_DEFAULT_TTL_MS)
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Mapping, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

ENV_PREFIX = "WALLETGUARD_"


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDE UTILITIES
# =============================================================================

T = TypeVar('T')


def _env_override(
    env_var: str,
    default: T,
    converter: Callable[[str], T] = str,
    min_value: Optional[T] = None,
    max_value: Optional[T] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> T:
    """Get a configuration value with environment variable override.

    Args:
        env_var: Environment variable name (will be prefixed with WALLETGUARD_)
        default: Default value if env var not set
        converter: Function to convert string to target type
        min_value: Optional minimum allowed value
        max_value: Optional maximum allowed value
        environ: Mapping to read instead of os.environ

    Returns:
        Configured value (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = (os.environ if environ is None else environ).get(full_env_var)

    if env_value is None:
        return default

    try:
        converted = converter(env_value)

        if min_value is not None and converted < min_value:
            logger.warning(
                f"SECURITY: {full_env_var}={env_value} below minimum {min_value}, using default"
            )
            return default
        if max_value is not None and converted > max_value:
            logger.warning(
                f"SECURITY: {full_env_var}={env_value} above maximum {max_value}, using default"
            )
            return default

        logger.info(f"Using {full_env_var}={converted} (override)")
        return converted

    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid value for {full_env_var}: {e}, using default")
        return default


# =============================================================================
# LIFETIMES
# =============================================================================

@dataclass(frozen=True)
class Lifetimes:
    """
    Lifetimes of issued credentials, in milliseconds.

    SECURITY: Shorter lifetimes shrink the replay window of a leaked token
    and the exposure window of vaulted key material.
    """
    TOKEN_DEFAULT_TTL_MS: int = 60 * 60 * 1000      # 1 hour
    TOKEN_MAX_TTL_MS: int = 7 * 24 * 60 * 60 * 1000  # 1 week
    VAULT_DEFAULT_TTL_MS: int = 5 * 60 * 1000        # 5 minutes
    VAULT_MAX_TTL_MS: int = 60 * 60 * 1000           # 1 hour


# =============================================================================
# TIMEOUTS
# =============================================================================

@dataclass(frozen=True)
class Timeouts:
    """Timeout values in seconds."""
    RPC_REQUEST: float = 10.0           # Single JSON-RPC round trip
    SUBMIT_CONFIRM: float = 60.0        # Whole submit-and-confirm deadline
    CONFIRM_POLL_INTERVAL: float = 1.0  # Delay between confirmation polls
    THREAD_JOIN: float = 2.0            # Sweeper thread shutdown
    SWEEP_IDLE_INTERVAL: float = 30.0   # Sweeper wake-up when vault is empty


# =============================================================================
# RATE LIMITING CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class RateLimits:
    """
    Rate limiting parameters.

    SECURITY: Rate limits are consulted before any expensive check
    (signature recovery, RPC access) to bound per-client cost.
    """
    WINDOW_DEFAULT_MS: int = 60 * 1000
    REQUESTS_DEFAULT: int = 100
    SWEEP_INTERVAL_MS: int = 5 * 60 * 1000

    @classmethod
    def get_endpoint_limits(cls) -> Dict[str, Tuple[int, int]]:
        """Per-endpoint limits: endpoint -> (max_requests, window_ms)."""
        return {
            'validate_address': (300, 60 * 1000),
            'validate_transaction': (120, 60 * 1000),
            'verify_signature': (60, 60 * 1000),
            'detect_phishing': (120, 60 * 1000),
            'contract_risk': (60, 60 * 1000),
            'issue_token': (10, 60 * 1000),
            'generate_wallet': (5, 60 * 1000),
        }


# =============================================================================
# CRYPTOGRAPHIC SIZES
# =============================================================================

@dataclass(frozen=True)
class Crypto:
    """Key, signature and token sizes."""
    VAULT_TOKEN_BYTES: int = 32         # 256 bits of entropy per vault token
    MIN_SECRET_BYTES: int = 32          # Recommended HMAC secret length
    EVM_ADDRESS_BYTES: int = 20
    EVM_SIGNATURE_BYTES: int = 65       # r || s || v
    ED25519_PUBLIC_KEY_BYTES: int = 32
    ED25519_SEED_BYTES: int = 32
    ED25519_SECRET_KEY_BYTES: int = 64  # seed || public key
    ED25519_SIGNATURE_BYTES: int = 64


# =============================================================================
# RUNTIME OVERRIDES
# =============================================================================

class RuntimeConfig:
    """
    Runtime values that can be overridden via environment variables.
    """
    @staticmethod
    def get_token_ttl_ms(environ: Optional[Mapping[str, str]] = None) -> int:
        return _env_override(
            "TOKEN_TTL_MS", Lifetimes.TOKEN_DEFAULT_TTL_MS, int,
            min_value=1000, max_value=Lifetimes.TOKEN_MAX_TTL_MS, environ=environ,
        )

    @staticmethod
    def get_vault_ttl_ms(environ: Optional[Mapping[str, str]] = None) -> int:
        return _env_override(
            "VAULT_TTL_MS", Lifetimes.VAULT_DEFAULT_TTL_MS, int,
            min_value=100, max_value=Lifetimes.VAULT_MAX_TTL_MS, environ=environ,
        )

    @staticmethod
    def get_submit_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
        return _env_override(
            "SUBMIT_TIMEOUT", Timeouts.SUBMIT_CONFIRM, float,
            min_value=1.0, max_value=600.0, environ=environ,
        )


__all__ = [
    'ENV_PREFIX',
    'Lifetimes',
    'Timeouts',
    'RateLimits',
    'Crypto',
    'RuntimeConfig',
]
