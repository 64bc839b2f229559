"""
Pytest configuration and shared fixtures for WalletGuard tests.

This module provides common fixtures for testing the security core components.
"""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator, Dict, Any

import pytest

# Add the parent directory to the path for imports
import sys
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import base58
import nacl.signing
from eth_account import Account

from walletguard.auth.key_vault import EphemeralKeyVault
from walletguard.auth.rate_limiter import RateLimiter
from walletguard.auth.security_token import SecurityTokenCodec
from walletguard.security.normalized_set import create_blacklist, create_phishing_domains
from walletguard.security.risk_engine import RiskAssessmentEngine
from walletguard.security.threat_feed import SAMPLE_THREAT_FEED
from walletguard.utils.error_handling import get_error_aggregator


TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


# ===========================================================================
# Clock
# ===========================================================================

class FakeClock:
    """Manually advanced millisecond clock."""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def clock() -> FakeClock:
    """Provide a fake millisecond clock."""
    return FakeClock()


# ===========================================================================
# Temporary Directory Fixtures
# ===========================================================================

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    tmpdir = tempfile.mkdtemp(prefix="walletguard_test_")
    yield Path(tmpdir)
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def feed_file(temp_dir: Path) -> Path:
    """Provide the sample threat feed written as JSON."""
    path = temp_dir / "feed.json"
    path.write_text(json.dumps(SAMPLE_THREAT_FEED))
    return path


# ===========================================================================
# Security Fixtures
# ===========================================================================

@pytest.fixture
def blacklist():
    """Provide a blacklist seeded from the sample feed."""
    return create_blacklist(SAMPLE_THREAT_FEED['blacklisted_addresses'])


@pytest.fixture
def phishing_domains():
    """Provide a phishing domain set seeded from the sample feed."""
    return create_phishing_domains(SAMPLE_THREAT_FEED['phishing_domains'])


@pytest.fixture
def engine(blacklist, phishing_domains) -> RiskAssessmentEngine:
    """Provide a RiskAssessmentEngine over the sample stores."""
    return RiskAssessmentEngine(blacklist, phishing_domains)


@pytest.fixture
def rate_limiter(clock) -> RateLimiter:
    """Provide a RateLimiter driven by the fake clock."""
    return RateLimiter(clock=clock)


@pytest.fixture
def token_codec(clock) -> SecurityTokenCodec:
    """Provide a SecurityTokenCodec driven by the fake clock."""
    return SecurityTokenCodec(TEST_SECRET, default_ttl_ms=60_000, clock=clock)


@pytest.fixture
def vault(clock) -> Generator[EphemeralKeyVault, None, None]:
    """Provide an EphemeralKeyVault without a sweeper thread."""
    vault = EphemeralKeyVault(default_ttl_ms=10_000, clock=clock, auto_sweep=False)
    yield vault
    vault.shutdown()


# ===========================================================================
# Key Fixtures
# ===========================================================================

@pytest.fixture
def eth_account():
    """Provide a fresh EVM account."""
    return Account.create()


@pytest.fixture
def eth_address(eth_account) -> str:
    return eth_account.address


@pytest.fixture
def other_eth_address() -> str:
    return Account.create().address


@pytest.fixture
def solana_signing_key() -> nacl.signing.SigningKey:
    """Provide a fresh ed25519 signing key."""
    return nacl.signing.SigningKey.generate()


@pytest.fixture
def solana_address(solana_signing_key) -> str:
    return base58.b58encode(bytes(solana_signing_key.verify_key)).decode('ascii')


@pytest.fixture
def guard_env() -> Dict[str, Any]:
    """Minimal environment for load_config()."""
    return {'WALLETGUARD_SECURITY_SECRET': TEST_SECRET}


@pytest.fixture(autouse=True)
def clear_error_aggregator():
    """Keep deduplication state from leaking between tests."""
    get_error_aggregator().clear()
    yield
    get_error_aggregator().clear()


# ===========================================================================
# Markers Registration
# ===========================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "security: Security-specific tests")
    config.addinivalue_line("markers", "slow: Slow tests (>1s)")
