"""
Security Core - composes the risk engine, rate limiter, token codec,
ephemeral vault and wallet factory from one GuardConfig.

Usage:
    core = create_security_core()
    with core:
        verdict = core.engine.validate_address(addr, "ethereum")
        token = core.issue_token({"user": "alice"})

        eph = core.create_ephemeral_wallet("solana")
        # later, in the process that needs the key:
        adapter = core.open_vaulted_wallet(eph.vault_token, "solana")
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .auth.key_vault import EphemeralKeyVault
from .auth.rate_limiter import RateLimiter
from .auth.security_token import SecurityTokenCodec, TokenVerification
from .chains import ChainType
from .config.settings import GuardConfig, load_config
from .security.chain_support import ChainRegistry, create_default_registry
from .security.models import CheckResult
from .security.normalized_set import create_blacklist, create_phishing_domains
from .security.risk_engine import RiskAssessmentEngine
from .security.threat_feed import ThreatFeed, ThreatFeedLoader
from .logging_config import get_logger
from .utils.error_handling import ErrorCategory, get_error_aggregator, safe_execute
from .wallet.factory import WalletAdapterFactory
from .wallet.local import LocalKeyAdapter

logger = get_logger(__name__)


@dataclass
class EphemeralWallet:
    """A generated wallet whose private key is parked in the vault."""
    adapter: LocalKeyAdapter
    vault_token: str
    ttl_ms: int

    @property
    def address(self) -> str:
        return self.adapter.get_address()


class SecurityCore:
    """
    Process-wide security services.

    Args:
        config: Resolved configuration; its secret is required
        registry: Chain registry shared by the engine (default: all chains)

    Raises:
        MissingSecretError: config carries no signing secret
    """

    def __init__(self, config: GuardConfig, registry: Optional[ChainRegistry] = None):
        self.config = config

        self.blacklist = create_blacklist()
        self.phishing_domains = create_phishing_domains()
        self.registry = registry or create_default_registry()
        self.engine = RiskAssessmentEngine(self.blacklist, self.phishing_domains, self.registry)

        self.rate_limiter = RateLimiter(policies=dict(config.rate_limits))
        self.token_codec = SecurityTokenCodec(
            config.require_secret(), default_ttl_ms=config.token_ttl_ms,
        )
        self.vault = EphemeralKeyVault(default_ttl_ms=config.vault_ttl_ms)
        self.wallets = WalletAdapterFactory(
            endpoints=config.rpc_endpoints, rpc_timeout=config.rpc_timeout,
        )
        self.feed_loader = ThreatFeedLoader(
            require_signature=config.require_signed_feed,
            trusted_public_keys=config.trusted_feed_keys or None,
        )
        self._started = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self) -> None:
        """Load the configured threat feed and start the vault sweeper."""
        if self._started:
            return
        if self.config.threat_feed_path:
            self.load_threat_feed(self.config.threat_feed_path)
        self.vault.start()
        self._started = True
        logger.log_with_data(logging.INFO, "Security core started", {
            'blacklisted': len(self.blacklist),
            'phishing_domains': len(self.phishing_domains),
            'chains': len(self.registry.chains),
        })

    def shutdown(self) -> None:
        """Stop background work and wipe the vault."""
        with safe_execute("vault shutdown", ErrorCategory.SECURITY) as result:
            self.vault.shutdown()
        self._started = False
        if result.success:
            logger.security("Security core stopped; ephemeral vault wiped")

    def __enter__(self) -> 'SecurityCore':
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()
        return False

    # =========================================================================
    # THREAT DATA ADMIN
    # =========================================================================

    def load_threat_feed(self, path: str, replace: bool = True) -> ThreatFeed:
        return self.feed_loader.load_into(path, self.blacklist, self.phishing_domains, replace)

    def add_to_blacklist(self, address: str) -> bool:
        return self.blacklist.add(address)

    def remove_from_blacklist(self, address: str) -> bool:
        return self.blacklist.remove(address)

    def add_phishing_domain(self, domain: str) -> bool:
        return self.phishing_domains.add(domain)

    def remove_phishing_domain(self, domain: str) -> bool:
        return self.phishing_domains.remove(domain)

    # =========================================================================
    # REQUEST GATING AND TOKENS
    # =========================================================================

    def check_rate_limit(self, identity: str, endpoint: str) -> CheckResult:
        """Count a request against the endpoint's configured policy."""
        return self.rate_limiter.check(identity, endpoint)

    def issue_token(self, data: Any, ttl_ms: Optional[int] = None) -> str:
        return self.token_codec.issue(data, ttl_ms)

    def verify_token(self, token: str) -> TokenVerification:
        return self.token_codec.verify(token)

    # =========================================================================
    # EPHEMERAL WALLETS
    # =========================================================================

    def create_ephemeral_wallet(
        self,
        chain: Union[ChainType, str],
        ttl_ms: Optional[int] = None,
    ) -> EphemeralWallet:
        """
        Generate a wallet and park its private key in the vault. The key is
        only reachable through the returned single-use vault token.
        """
        adapter, private_key = self.wallets.generate_ephemeral(chain)
        ttl = ttl_ms if ttl_ms is not None else self.vault.default_ttl_ms
        token = self.vault.store(private_key, ttl)
        del private_key
        logger.verbose(
            f"Ephemeral {adapter.chain_type.value} wallet {adapter.get_address()} vaulted for {ttl}ms"
        )
        return EphemeralWallet(adapter=adapter, vault_token=token, ttl_ms=ttl)

    def open_vaulted_wallet(
        self,
        vault_token: str,
        chain: Union[ChainType, str],
        endpoint: Optional[str] = None,
    ) -> Optional[LocalKeyAdapter]:
        """LocalKeyAdapter from a vaulted key, or None if the token is spent/expired."""
        private_key = self.vault.retrieve(vault_token)
        if private_key is None:
            return None
        return self.wallets.create_local(private_key, chain, endpoint)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'blacklisted_addresses': len(self.blacklist),
            'phishing_domains': len(self.phishing_domains),
            'vault_entries': len(self.vault),
            'vault_sweeper_running': self.vault.is_running,
            'rate_limiter': self.rate_limiter.get_stats(),
            'chains': [c.value for c in self.registry.chains],
            'errors': get_error_aggregator().get_summary(),
        }


def create_security_core(
    config: Optional[GuardConfig] = None,
    config_path: Optional[str] = None,
) -> SecurityCore:
    """Build a SecurityCore from `config`, or from load_config(config_path)."""
    if config is None:
        config = load_config(config_path)
    return SecurityCore(config)


__all__ = ['SecurityCore', 'EphemeralWallet', 'create_security_core']
