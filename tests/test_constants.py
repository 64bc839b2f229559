"""
Tests for the Constants module.

Tests centralized lifetimes, timeouts and the environment override helper.
"""

import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from walletguard.constants import (
    Crypto,
    Lifetimes,
    RateLimits,
    RuntimeConfig,
    Timeouts,
    _env_override,
)


# ===========================================================================
# Lifetime Constants Tests
# ===========================================================================

class TestLifetimes:
    """Tests for Lifetimes dataclass."""

    def test_defaults_below_maximums(self):
        """Default lifetimes should not exceed their caps."""
        assert 0 < Lifetimes.TOKEN_DEFAULT_TTL_MS <= Lifetimes.TOKEN_MAX_TTL_MS
        assert 0 < Lifetimes.VAULT_DEFAULT_TTL_MS <= Lifetimes.VAULT_MAX_TTL_MS

    def test_vault_shorter_than_tokens(self):
        """Key material should live shorter than bearer tokens."""
        assert Lifetimes.VAULT_MAX_TTL_MS <= Lifetimes.TOKEN_MAX_TTL_MS


class TestTimeouts:
    def test_positive(self):
        assert Timeouts.RPC_REQUEST > 0
        assert Timeouts.SUBMIT_CONFIRM > 0
        assert Timeouts.CONFIRM_POLL_INTERVAL > 0
        assert Timeouts.THREAD_JOIN > 0

    def test_poll_shorter_than_deadline(self):
        assert Timeouts.CONFIRM_POLL_INTERVAL < Timeouts.SUBMIT_CONFIRM
        assert Timeouts.RPC_REQUEST < Timeouts.SUBMIT_CONFIRM


class TestCryptoSizes:
    def test_key_and_signature_sizes(self):
        assert Crypto.EVM_SIGNATURE_BYTES == 65
        assert Crypto.ED25519_SIGNATURE_BYTES == 64
        assert Crypto.ED25519_SECRET_KEY_BYTES == 2 * Crypto.ED25519_SEED_BYTES

    def test_vault_tokens_have_enough_entropy(self):
        assert Crypto.VAULT_TOKEN_BYTES >= 16


class TestRateLimits:
    def test_endpoint_limits_positive(self):
        for endpoint, (max_requests, window_ms) in RateLimits.get_endpoint_limits().items():
            assert max_requests > 0, endpoint
            assert window_ms > 0, endpoint

    def test_wallet_generation_tightest(self):
        limits = RateLimits.get_endpoint_limits()
        assert limits['generate_wallet'][0] <= min(m for m, _ in limits.values())


# ===========================================================================
# Environment Override Tests
# ===========================================================================

class TestEnvOverride:
    def test_unset_uses_default(self):
        assert _env_override("ANYTHING", 7, int, environ={}) == 7

    def test_valid_override(self):
        assert _env_override("N", 7, int, environ={'WALLETGUARD_N': '9'}) == 9

    @pytest.mark.parametrize("value", ["abc", "0", "1000"])
    def test_rejected_overrides(self, value):
        result = _env_override("N", 7, int, min_value=1, max_value=100,
                               environ={'WALLETGUARD_N': value})
        assert result == 7

    def test_runtime_config(self):
        env = {'WALLETGUARD_TOKEN_TTL_MS': '5000', 'WALLETGUARD_SUBMIT_TIMEOUT': '30'}
        assert RuntimeConfig.get_token_ttl_ms(env) == 5000
        assert RuntimeConfig.get_submit_timeout(env) == 30.0
        assert RuntimeConfig.get_vault_ttl_ms(env) == Lifetimes.VAULT_DEFAULT_TTL_MS

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv('WALLETGUARD_VAULT_TTL_MS', '2000')
        assert RuntimeConfig.get_vault_ttl_ms() == 2000
