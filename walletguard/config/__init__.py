"""
Configuration Module for WalletGuard.

Settings are resolved from defaults, an optional JSON/YAML file and the
environment. The token signing secret has no default: a missing secret
fails closed.
"""

from .settings import GuardConfig, load_config, LEGACY_SECRET_ENV, LEGACY_RPC_ENV

__all__ = [
    'GuardConfig',
    'load_config',
    'LEGACY_SECRET_ENV',
    'LEGACY_RPC_ENV',
]
