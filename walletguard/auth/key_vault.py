"""
Ephemeral Key Vault - time-boxed, single-retrieval secret store.

Used to hand raw key material across a process boundary (for example a
freshly generated wallet key) without it lingering in memory:

- store() returns an unguessable token; the secret is kept Fernet-encrypted
  under a per-vault key generated at construction
- retrieve() is an atomic pop: a secret is returned at most once, and never
  after its expiry
- a sweeper thread deletes entries that expire unread; it only ever deletes
  entries that are still present and expired, so it cannot race a retrieve.
  It is started by the first store() unless auto_sweep is off
"""

import heapq
import secrets
import threading
import time
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from cryptography.fernet import Fernet

from ..constants import Crypto, Lifetimes, Timeouts
from ..logging_config import get_logger, redact

logger = get_logger(__name__)

Secret = Union[str, bytes]


def monotonic_ms() -> int:
    return int(time.monotonic() * 1000)


@dataclass
class _VaultEntry:
    ciphertext: bytes
    expires_at: int
    is_text: bool


class EphemeralKeyVault:
    """
    Args:
        default_ttl_ms: Lifetime used when store() is called without one
        clock: Millisecond clock, monotonic by default
        start_sweeper: Start the background sweeper immediately
        auto_sweep: Start the sweeper on the first store() if it is not running
    """

    def __init__(
        self,
        default_ttl_ms: int = Lifetimes.VAULT_DEFAULT_TTL_MS,
        clock=None,
        start_sweeper: bool = False,
        auto_sweep: bool = True,
    ):
        self.default_ttl_ms = default_ttl_ms
        self._clock = clock or monotonic_ms
        self.auto_sweep = auto_sweep
        self._fernet = Fernet(Fernet.generate_key())

        self._entries = {}
        self._expiry_heap: List[Tuple[int, str]] = []
        self._lock = threading.Lock()
        self._wakeup = threading.Condition(self._lock)

        self._sweeper: Optional[threading.Thread] = None
        self._stopping = False

        if start_sweeper:
            self.start()

    # =========================================================================
    # STORE / RETRIEVE
    # =========================================================================

    def store(self, secret: Secret, ttl_ms: Optional[int] = None) -> str:
        """
        Keep `secret` for at most `ttl_ms` milliseconds.

        Returns:
            Opaque single-use retrieval token

        Raises:
            TypeError: secret is not str/bytes
            ValueError: TTL not positive or above the vault maximum
        """
        ttl = self.default_ttl_ms if ttl_ms is None else ttl_ms
        if isinstance(ttl, bool) or not isinstance(ttl, int) or ttl <= 0:
            raise ValueError(f"Vault TTL must be a positive integer of ms, got {ttl!r}")
        if ttl > Lifetimes.VAULT_MAX_TTL_MS:
            raise ValueError(f"Vault TTL {ttl}ms exceeds maximum {Lifetimes.VAULT_MAX_TTL_MS}ms")

        if isinstance(secret, str):
            plaintext, is_text = secret.encode('utf-8'), True
        elif isinstance(secret, (bytes, bytearray)):
            plaintext, is_text = bytes(secret), False
        else:
            raise TypeError(f"Vault secrets must be str or bytes, not {type(secret).__name__}")

        if self.auto_sweep and not self.is_running:
            self.start()

        entry = _VaultEntry(
            ciphertext=self._fernet.encrypt(plaintext),
            expires_at=self._clock() + ttl,
            is_text=is_text,
        )

        with self._wakeup:
            token = secrets.token_urlsafe(Crypto.VAULT_TOKEN_BYTES)
            while token in self._entries:
                token = secrets.token_urlsafe(Crypto.VAULT_TOKEN_BYTES)
            self._entries[token] = entry
            heapq.heappush(self._expiry_heap, (entry.expires_at, token))
            if self._expiry_heap[0][1] == token:
                # New earliest deadline
                self._wakeup.notify()

        logger.verbose(f"Stored ephemeral secret {redact(token)} (ttl={ttl}ms)")
        return token

    def retrieve(self, token: str) -> Optional[Secret]:
        """
        Take the secret for `token`. Returns None if it is unknown, was
        already retrieved, or has expired. The entry is gone afterwards.
        """
        if not isinstance(token, str):
            return None
        with self._lock:
            entry = self._entries.pop(token, None)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            logger.debug(f"Ephemeral secret {redact(token)} expired before retrieval")
            return None

        plaintext = self._fernet.decrypt(entry.ciphertext)
        return plaintext.decode('utf-8') if entry.is_text else plaintext

    def clear(self) -> int:
        """Drop every entry. Returns the number discarded."""
        with self._wakeup:
            count = len(self._entries)
            self._entries.clear()
            self._expiry_heap.clear()
            self._wakeup.notify()
        if count:
            logger.security(f"Discarded {count} ephemeral secrets")
        return count

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # =========================================================================
    # EXPIRY SWEEP
    # =========================================================================

    def sweep(self, now: Optional[int] = None) -> int:
        """Delete entries that are still present and expired."""
        if now is None:
            now = self._clock()
        removed = 0
        with self._lock:
            while self._expiry_heap and self._expiry_heap[0][0] <= now:
                _, token = heapq.heappop(self._expiry_heap)
                entry = self._entries.get(token)
                # Already retrieved, or heap entry left over from a clear()
                if entry is None or entry.expires_at > now:
                    continue
                del self._entries[token]
                removed += 1
        if removed:
            logger.debug(f"Swept {removed} expired ephemeral secrets")
        return removed

    def _next_wait_seconds(self) -> float:
        if not self._expiry_heap:
            return Timeouts.SWEEP_IDLE_INTERVAL
        delay_ms = self._expiry_heap[0][0] - self._clock()
        return min(max(delay_ms / 1000.0, 0.0), Timeouts.SWEEP_IDLE_INTERVAL)

    def _sweep_loop(self):
        while True:
            with self._wakeup:
                if self._stopping:
                    return
                wait = self._next_wait_seconds()
                if wait > 0:
                    self._wakeup.wait(timeout=wait)
                if self._stopping:
                    return
            self.sweep()

    def start(self) -> None:
        """Start the background sweeper thread (idempotent)."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stopping = False
            self._sweeper = threading.Thread(
                target=self._sweep_loop,
                name="walletguard-vault-sweeper",
                daemon=True,
            )
            self._sweeper.start()
        logger.debug("Ephemeral vault sweeper started")

    def shutdown(self) -> None:
        """Stop the sweeper and wipe all entries."""
        with self._wakeup:
            self._stopping = True
            self._wakeup.notify_all()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout=Timeouts.THREAD_JOIN)
            if sweeper.is_alive():
                logger.warning("Ephemeral vault sweeper did not stop in time")
        self._sweeper = None
        self.clear()

    @property
    def is_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def __enter__(self) -> 'EphemeralKeyVault':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False


__all__ = ['EphemeralKeyVault']
