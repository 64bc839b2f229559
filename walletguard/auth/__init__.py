"""
Credentials and request gating: rate limiting, signed tokens, ephemeral vault.
"""

from .rate_limiter import RateLimiter, RateLimitRecord, EndpointPolicy, default_policies
from .security_token import SecurityTokenCodec, TokenVerification
from .key_vault import EphemeralKeyVault

__all__ = [
    'RateLimiter',
    'RateLimitRecord',
    'EndpointPolicy',
    'default_policies',
    'SecurityTokenCodec',
    'TokenVerification',
    'EphemeralKeyVault',
]
