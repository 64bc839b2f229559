"""
Tests for NormalizedSetStore - case-insensitive blacklist and phishing sets.
"""

import os
import sys
import threading

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walletguard.security.normalized_set import (
    NormalizedSetStore,
    create_blacklist,
    create_phishing_domains,
    normalize_address,
    normalize_domain,
)


# ===========================================================================
# Normalization Tests
# ===========================================================================

class TestNormalizers:
    def test_normalize_address(self):
        assert normalize_address("  0xABcd ") == "0xabcd"

    def test_normalize_domain_strips_trailing_dot(self):
        assert normalize_domain("Evil.Example.COM.") == "evil.example.com"


# ===========================================================================
# Membership Tests
# ===========================================================================

class TestMembership:
    """Tests for add/remove/contains."""

    def test_contains_case_insensitive(self):
        store = create_blacklist(["0xDEAD"])
        assert store.contains("0xdead")
        assert "0XDEAD".lower() in store
        assert store.contains(" 0xDead ")

    def test_exact_match_only(self):
        """No prefix, suffix or wildcard matching."""
        store = create_phishing_domains(["evil.com"])
        assert not store.contains("sub.evil.com")
        assert not store.contains("evil.co")
        assert not store.contains("*.com")

    def test_non_string_and_empty_not_contained(self):
        store = create_blacklist(["x"])
        assert not store.contains(None)
        assert not store.contains("")
        assert not store.contains("   ")
        assert not store.contains(123)

    def test_add_returns_whether_new(self):
        store = create_blacklist()
        assert store.add("0xAbC") is True
        assert store.add("0xabc") is False
        assert len(store) == 1

    def test_remove_returns_whether_present(self):
        store = create_blacklist(["0xabc"])
        assert store.remove("0XABC") is True
        assert store.remove("0xabc") is False
        assert len(store) == 0

    @pytest.mark.parametrize("value", [None, 42, "", "   "])
    def test_add_rejects_blank_or_non_string(self, value):
        store = create_blacklist(["0xabc"])
        with pytest.raises(ValueError):
            store.add(value)
        with pytest.raises(ValueError):
            store.remove(value)
        assert store.snapshot() == frozenset({"0xabc"})

    def test_domain_of_only_dots_rejected(self):
        with pytest.raises(ValueError):
            create_phishing_domains().add(" . ")

    def test_initial_values_skip_blanks(self):
        store = create_blacklist(["a", "", "  ", "A"])
        assert len(store) == 1

    def test_update_counts_new_entries(self):
        store = create_blacklist(["a"])
        assert store.update(["A", "b", "c"]) == 2
        assert set(store) == {"a", "b", "c"}

    def test_replace_swaps_content(self):
        store = create_phishing_domains(["old.com"])
        store.replace(["New.com"])
        assert not store.contains("old.com")
        assert store.contains("new.com")

    def test_clear(self):
        store = create_blacklist(["a", "b"])
        store.clear()
        assert len(store) == 0

    def test_snapshot_is_immutable(self):
        """A snapshot taken before a write is unaffected by it."""
        store = create_blacklist(["a"])
        snapshot = store.snapshot()
        store.add("b")
        assert snapshot == frozenset({"a"})
        assert isinstance(snapshot, frozenset)

    def test_custom_normalizer(self):
        store = NormalizedSetStore("upper", ["abc"], normalizer=lambda v: v.strip().upper())
        assert store.contains("ABC")
        assert store.snapshot() == frozenset({"ABC"})


# ===========================================================================
# Concurrency Tests
# ===========================================================================

class TestConcurrency:
    def test_concurrent_adds_not_lost(self):
        """Writers serialize; every add from every thread lands."""
        store = create_blacklist()
        threads = [
            threading.Thread(target=lambda n=n: [store.add(f"0x{n}-{i}") for i in range(200)])
            for n in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(store) == 8 * 200

    def test_readers_see_whole_replacements(self):
        """A reader never observes a half-applied replace."""
        first = [f"a{i}" for i in range(100)]
        second = [f"b{i}" for i in range(100)]
        store = create_blacklist(first)
        stop = threading.Event()
        torn = []

        def reader():
            while not stop.is_set():
                snap = store.snapshot()
                has_a = any(v.startswith("a") for v in snap)
                has_b = any(v.startswith("b") for v in snap)
                if has_a and has_b:
                    torn.append(snap)

        t = threading.Thread(target=reader)
        t.start()
        for _ in range(200):
            store.replace(second)
            store.replace(first)
        stop.set()
        t.join()
        assert torn == []
