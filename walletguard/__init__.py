"""
WalletGuard - Security & Credential Core for multi-chain wallets
"""

__version__ = "1.0.0"

from .constants import (
    Lifetimes,
    Timeouts,
    RateLimits,
    Crypto,
    RuntimeConfig,
)
from .chains import ChainType, ChainFamily
from .errors import (
    WalletGuardError,
    ConfigurationError,
    MissingSecretError,
    UnsupportedChainError,
    MissingEndpointError,
    ProviderUnavailableError,
    ThreatFeedError,
    TransientNetworkError,
    SubmissionTimeoutError,
    SubmissionCancelledError,
    SubmissionRejectedError,
    WalletUsageError,
    WalletNotConnectedError,
    InvalidKeyError,
)
from .security import (
    CheckKind,
    CheckResult,
    RiskLevel,
    NormalizedSetStore,
    RiskAssessmentEngine,
    ThreatFeedLoader,
)
from .auth import RateLimiter, SecurityTokenCodec, TokenVerification, EphemeralKeyVault
from .wallet import WalletAdapter, WalletAdapterFactory, LocalKeyAdapter
from .config import GuardConfig, load_config
from .service import SecurityCore, EphemeralWallet, create_security_core

__all__ = [
    '__version__',
    'Lifetimes',
    'Timeouts',
    'RateLimits',
    'Crypto',
    'RuntimeConfig',
    'ChainType',
    'ChainFamily',
    'WalletGuardError',
    'ConfigurationError',
    'MissingSecretError',
    'UnsupportedChainError',
    'MissingEndpointError',
    'ProviderUnavailableError',
    'ThreatFeedError',
    'TransientNetworkError',
    'SubmissionTimeoutError',
    'SubmissionCancelledError',
    'SubmissionRejectedError',
    'WalletUsageError',
    'WalletNotConnectedError',
    'InvalidKeyError',
    'CheckKind',
    'CheckResult',
    'RiskLevel',
    'NormalizedSetStore',
    'RiskAssessmentEngine',
    'ThreatFeedLoader',
    'RateLimiter',
    'SecurityTokenCodec',
    'TokenVerification',
    'EphemeralKeyVault',
    'WalletAdapter',
    'WalletAdapterFactory',
    'LocalKeyAdapter',
    'GuardConfig',
    'load_config',
    'SecurityCore',
    'EphemeralWallet',
    'create_security_core',
]
