"""
Security Token Codec - stateless HMAC-SHA256 bearer tokens.

Wire format:

    <base64url(payload_json)>.<hex(hmac_sha256(payload_json, secret))>

payload_json is {"data": ..., "exp": <epoch ms>} serialized with sorted
keys and compact separators. base64url padding is stripped. The MAC is
computed over the exact payload bytes carried in the token, so any change
to either half invalidates it.

SECURITY: There is no fallback secret. Constructing a codec without one
raises MissingSecretError.
"""

import base64
import binascii
import hashlib
import hmac
import json
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from ..constants import Crypto, Lifetimes
from ..errors import MissingSecretError
from ..logging_config import get_logger, redact
from ..utils.error_handling import ErrorCategory, handle_error

logger = get_logger(__name__)

Clock = Callable[[], int]

REASON_MALFORMED = "malformed"
REASON_EXPIRED = "expired"
REASON_BAD_SIGNATURE = "bad signature"

_B64URL_RE = re.compile(r'^[A-Za-z0-9_-]+$')


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


def _b64url_encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b'=').decode('ascii')


def _b64url_decode(text: str) -> bytes:
    if not _B64URL_RE.match(text):
        raise ValueError("not unpadded base64url")
    return base64.urlsafe_b64decode(text + '=' * (-len(text) % 4))


@dataclass(frozen=True)
class TokenVerification:
    """Result of SecurityTokenCodec.verify(). `reason` is None when valid."""
    valid: bool
    data: Any = None
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.valid


class SecurityTokenCodec:
    """
    Issues and verifies signed tokens. Holds no mutable state.

    Args:
        secret: Shared HMAC secret (str is UTF-8 encoded)
        default_ttl_ms: Lifetime used when issue() is called without one
        clock: Wall-clock milliseconds since the epoch
    """

    def __init__(
        self,
        secret: Union[str, bytes, None],
        default_ttl_ms: int = Lifetimes.TOKEN_DEFAULT_TTL_MS,
        clock: Optional[Clock] = None,
    ):
        if not secret:
            raise MissingSecretError(
                "Security token secret is not configured "
                "(set WALLETGUARD_SECURITY_SECRET)"
            )
        self._secret = secret.encode('utf-8') if isinstance(secret, str) else bytes(secret)
        if len(self._secret) < Crypto.MIN_SECRET_BYTES:
            logger.warning(
                f"SECURITY: token secret is {len(self._secret)} bytes, "
                f"at least {Crypto.MIN_SECRET_BYTES} recommended"
            )
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock or wall_clock_ms

    def _mac(self, payload: bytes) -> str:
        return hmac.new(self._secret, payload, hashlib.sha256).hexdigest()

    def issue(self, data: Any, ttl_ms: Optional[int] = None) -> str:
        """
        Issue a token carrying `data` that expires `ttl_ms` from now.

        Raises:
            ValueError: non-positive TTL, or data not JSON serializable
        """
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise ValueError(f"Token TTL must be a positive integer of ms, got {ttl!r}")

        payload = {'data': data, 'exp': self._clock() + ttl}
        try:
            serialized = json.dumps(
                payload, sort_keys=True, separators=(',', ':'), allow_nan=False,
            ).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise ValueError(f"Token data is not JSON serializable: {e}") from e

        return f"{_b64url_encode(serialized)}.{self._mac(serialized)}"

    def verify(self, token: str) -> TokenVerification:
        """
        Check format, then expiry, then MAC (constant-time). Never raises.
        """
        try:
            if not isinstance(token, str):
                return TokenVerification(False, reason=REASON_MALFORMED)

            encoded, sep, mac = token.rpartition('.')
            if not sep or not encoded or not mac or '.' in encoded:
                return TokenVerification(False, reason=REASON_MALFORMED)

            try:
                serialized = _b64url_decode(encoded)
                payload = json.loads(serialized.decode('utf-8'))
            except (binascii.Error, ValueError):
                return TokenVerification(False, reason=REASON_MALFORMED)

            if not isinstance(payload, dict) or 'data' not in payload:
                return TokenVerification(False, reason=REASON_MALFORMED)
            exp = payload.get('exp')
            if isinstance(exp, bool) or not isinstance(exp, int):
                return TokenVerification(False, reason=REASON_MALFORMED)

            if exp < self._clock():
                return TokenVerification(False, reason=REASON_EXPIRED)

            expected = self._mac(serialized)
            if not hmac.compare_digest(expected.encode('ascii'), mac.encode('utf-8')):
                logger.info(f"Token MAC mismatch (payload {redact(encoded)})")
                return TokenVerification(False, reason=REASON_BAD_SIGNATURE)

            return TokenVerification(True, data=payload['data'])

        except Exception as e:
            handle_error(e, "verify_token", ErrorCategory.AUTH)
            return TokenVerification(False, reason=REASON_MALFORMED)


__all__ = [
    'SecurityTokenCodec',
    'TokenVerification',
    'REASON_MALFORMED',
    'REASON_EXPIRED',
    'REASON_BAD_SIGNATURE',
    'wall_clock_ms',
]
