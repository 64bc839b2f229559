"""
Error taxonomy for WalletGuard.

Policy failures (invalid address, rate exceeded, phishing, bad token) are
NOT exceptions: they are returned as CheckResult / TokenVerification values.
The exceptions below cover the remaining three kinds:

- Configuration errors: operator-facing, fail fast and loud
- Transient operational errors: network/RPC trouble, retryable by callers
- Usage errors: programming defects such as signing before connect
"""


class WalletGuardError(Exception):
    """Base class for all WalletGuard exceptions."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================

class ConfigurationError(WalletGuardError):
    """Deployment or configuration defect. Never silently degraded."""


class MissingSecretError(ConfigurationError):
    """No token signing secret configured (fail closed)."""


class UnsupportedChainError(ConfigurationError):
    """A chain selector was not recognized or has no implementation."""

    def __init__(self, chain):
        self.chain = chain
        super().__init__(f"Unsupported blockchain type: {chain}")


class MissingEndpointError(ConfigurationError):
    """An RPC endpoint is required but none is configured."""


class ProviderUnavailableError(ConfigurationError):
    """No injected signing context is available for the requested chain."""


class ThreatFeedError(ConfigurationError):
    """Threat feed could not be read, parsed or authenticated."""


# =============================================================================
# OPERATIONAL ERRORS
# =============================================================================

class TransientNetworkError(WalletGuardError):
    """RPC endpoint unreachable or returned a transport-level failure."""


class SubmissionTimeoutError(TransientNetworkError):
    """Transaction was not confirmed before the deadline."""


class SubmissionCancelledError(WalletGuardError):
    """Submit-and-confirm was cancelled by the caller."""


class SubmissionRejectedError(WalletGuardError):
    """The node rejected the transaction or it failed on-chain."""

    def __init__(self, message: str, rpc_error=None):
        self.rpc_error = rpc_error
        super().__init__(message)


# =============================================================================
# USAGE ERRORS
# =============================================================================

class WalletUsageError(WalletGuardError):
    """Wallet API called in a state that does not allow it."""


class WalletNotConnectedError(WalletUsageError):
    """Sign/get_address called while the wallet handle is disconnected."""

    def __init__(self, message: str = "Wallet not connected"):
        super().__init__(message)


class InvalidKeyError(WalletGuardError):
    """Private key material could not be decoded for the chain."""


__all__ = [
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
]
