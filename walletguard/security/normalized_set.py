"""
Case-insensitive membership sets for blacklisted addresses and phishing
domains.

Readers never take a lock: they read an immutable frozenset snapshot.
Writers serialize on a lock and publish a new snapshot, so a check never
observes a partially-applied update (for example a feed reload).
"""

import logging
import threading
from typing import Callable, FrozenSet, Iterable, Optional

logger = logging.getLogger(__name__)


def normalize_address(value: str) -> str:
    return value.strip().lower()


def normalize_domain(value: str) -> str:
    return value.strip().lower().rstrip('.')


class NormalizedSetStore:
    """
    Set of case-normalized strings with exact-match lookups.

    Args:
        name: Label used in logs ("blacklist", "phishing_domains")
        initial: Values to load at construction
        normalizer: Normalization applied on add/remove/contains
    """

    def __init__(
        self,
        name: str,
        initial: Optional[Iterable[str]] = None,
        normalizer: Callable[[str], str] = normalize_address,
    ):
        self.name = name
        self._normalize = normalizer
        self._write_lock = threading.Lock()
        self._items: FrozenSet[str] = frozenset(self._normalized(initial or ()))

    def _normalized(self, values: Iterable[str]):
        for value in values:
            normalized = self._normalize(value) if isinstance(value, str) else ''
            if normalized:
                yield normalized

    def contains(self, value: Optional[str]) -> bool:
        if not isinstance(value, str) or not value.strip():
            return False
        return self._normalize(value) in self._items

    __contains__ = contains

    def _require(self, value: str) -> str:
        normalized = self._normalize(value) if isinstance(value, str) else ''
        if not normalized:
            raise ValueError(f"{self.name} entries must be non-empty strings, got {value!r}")
        return normalized

    def add(self, value: str) -> bool:
        """
        Add a value. Returns False if it was already present.

        Raises:
            ValueError: value is not a string or normalizes to empty
        """
        normalized = self._require(value)
        with self._write_lock:
            if normalized in self._items:
                return False
            self._items = self._items | {normalized}
        logger.info(f"Added entry to {self.name} ({len(self._items)} entries)")
        return True

    def remove(self, value: str) -> bool:
        """Remove a value. Returns False if it was not present."""
        normalized = self._require(value)
        with self._write_lock:
            if normalized not in self._items:
                return False
            self._items = self._items - {normalized}
        logger.info(f"Removed entry from {self.name} ({len(self._items)} entries)")
        return True

    def update(self, values: Iterable[str]) -> int:
        """Add many values atomically. Returns the number newly added."""
        new_items = set(self._normalized(values))
        with self._write_lock:
            added = len(new_items - self._items)
            self._items = self._items | new_items
        return added

    def replace(self, values: Iterable[str]) -> None:
        """Swap the whole content atomically (feed reload)."""
        new_items = frozenset(self._normalized(values))
        with self._write_lock:
            self._items = new_items
        logger.info(f"Replaced {self.name} with {len(new_items)} entries")

    def clear(self) -> None:
        with self._write_lock:
            self._items = frozenset()

    def snapshot(self) -> FrozenSet[str]:
        return self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)


def create_blacklist(initial: Optional[Iterable[str]] = None) -> NormalizedSetStore:
    return NormalizedSetStore("blacklist", initial, normalize_address)


def create_phishing_domains(initial: Optional[Iterable[str]] = None) -> NormalizedSetStore:
    return NormalizedSetStore("phishing_domains", initial, normalize_domain)


__all__ = [
    'NormalizedSetStore',
    'normalize_address',
    'normalize_domain',
    'create_blacklist',
    'create_phishing_domains',
]
