"""
WalletGuard settings.

Sources, later wins:
1. Defaults from walletguard.constants
2. Optional JSON or YAML file
3. Environment variables

Environment:
    WALLETGUARD_SECURITY_SECRET   token signing secret (legacy: SECURITY_SECRET)
    WALLETGUARD_RPC_<CHAIN>       RPC endpoint, e.g. WALLETGUARD_RPC_SOLANA
                                  (legacy: ETH_RPC_URL, BSC_RPC_URL, POLYGON_RPC_URL,
                                  AVAX_RPC_URL, SOLANA_RPC_URL)
    WALLETGUARD_THREAT_FEED       threat feed file
    WALLETGUARD_TOKEN_TTL_MS / WALLETGUARD_VAULT_TTL_MS / WALLETGUARD_SUBMIT_TIMEOUT
    WALLETGUARD_VERBOSE / WALLETGUARD_LOG_JSON   1, true or yes
    WALLETGUARD_LOG_FILE          log file path
    WALLETGUARD_LOG_QUIET         comma-separated feature areas logged at WARNING only

SECURITY: The secret is never logged and is excluded from repr().
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set

import yaml

from ..auth.rate_limiter import EndpointPolicy, default_policies
from ..chains import ChainType
from ..constants import ENV_PREFIX, Lifetimes, RuntimeConfig, Timeouts
from ..errors import ConfigurationError, MissingSecretError, UnsupportedChainError
from ..logging_config import FeatureArea

logger = logging.getLogger(__name__)

LEGACY_SECRET_ENV = "SECURITY_SECRET"

LEGACY_RPC_ENV = {
    ChainType.ETHEREUM: "ETH_RPC_URL",
    ChainType.BNB: "BSC_RPC_URL",
    ChainType.POLYGON: "POLYGON_RPC_URL",
    ChainType.AVALANCHE: "AVAX_RPC_URL",
    ChainType.SOLANA: "SOLANA_RPC_URL",
}


@dataclass
class GuardConfig:
    """Resolved configuration for a SecurityCore."""
    security_secret: Optional[str] = field(default=None, repr=False)
    token_ttl_ms: int = Lifetimes.TOKEN_DEFAULT_TTL_MS
    vault_ttl_ms: int = Lifetimes.VAULT_DEFAULT_TTL_MS
    submit_timeout: float = Timeouts.SUBMIT_CONFIRM
    rpc_timeout: float = Timeouts.RPC_REQUEST
    rpc_endpoints: Dict[ChainType, str] = field(default_factory=dict)

    threat_feed_path: Optional[str] = None
    require_signed_feed: bool = False
    trusted_feed_keys: List[str] = field(default_factory=list)

    rate_limits: Dict[str, EndpointPolicy] = field(default_factory=default_policies)

    verbose: bool = False
    log_json: bool = False
    log_file: Optional[str] = None
    log_quiet: Set[FeatureArea] = field(default_factory=set)

    def require_secret(self) -> str:
        """The signing secret, or MissingSecretError (fail closed)."""
        if not self.security_secret:
            raise MissingSecretError(
                "Security token secret is not configured "
                f"(set {ENV_PREFIX}SECURITY_SECRET)"
            )
        return self.security_secret

    def endpoint_for(self, chain) -> Optional[str]:
        return self.rpc_endpoints.get(ChainType.parse(chain))

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view with the secret masked."""
        return {
            'security_secret': '***' if self.security_secret else None,
            'token_ttl_ms': self.token_ttl_ms,
            'vault_ttl_ms': self.vault_ttl_ms,
            'submit_timeout': self.submit_timeout,
            'rpc_timeout': self.rpc_timeout,
            'rpc_endpoints': {c.value: url for c, url in self.rpc_endpoints.items()},
            'threat_feed_path': self.threat_feed_path,
            'require_signed_feed': self.require_signed_feed,
            'trusted_feed_keys': list(self.trusted_feed_keys),
            'rate_limits': {
                name: {'max_requests': p.max_requests, 'window_ms': p.window_ms}
                for name, p in self.rate_limits.items()
            },
            'verbose': self.verbose,
            'log_json': self.log_json,
            'log_file': self.log_file,
            'log_quiet': sorted(f.name.lower() for f in self.log_quiet),
        }


def _read_config_file(path: str) -> Dict[str, Any]:
    file_path = Path(path)
    try:
        with open(file_path, 'r') as f:
            if file_path.suffix.lower() in ('.yaml', '.yml'):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Cannot read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def _parse_features(names: Iterable[str]) -> Set[FeatureArea]:
    """Feature area names ('vault', 'rate_limit', ...) to FeatureArea members."""
    if isinstance(names, str):
        names = names.split(',')
    features = set()
    for name in names:
        name = str(name).strip().upper()
        if not name:
            continue
        try:
            features.add(FeatureArea[name])
        except KeyError:
            raise ConfigurationError(f"Unknown log feature area: {name.lower()}") from None
    return features


def _apply_file(config: GuardConfig, data: Dict[str, Any]) -> None:
    try:
        if 'security_secret' in data:
            logger.warning("SECURITY: signing secret read from config file; prefer the environment")
            config.security_secret = data['security_secret']
        for key in ('token_ttl_ms', 'vault_ttl_ms'):
            if key in data:
                setattr(config, key, int(data[key]))
        for key in ('submit_timeout', 'rpc_timeout'):
            if key in data:
                setattr(config, key, float(data[key]))

        for chain, url in (data.get('rpc_endpoints') or {}).items():
            config.rpc_endpoints[ChainType.parse(chain)] = str(url)

        feed = data.get('threat_feed') or {}
        if 'path' in feed:
            config.threat_feed_path = feed['path']
        config.require_signed_feed = bool(feed.get('require_signature', config.require_signed_feed))
        config.trusted_feed_keys = list(feed.get('trusted_public_keys', config.trusted_feed_keys))

        for endpoint, limit in (data.get('rate_limits') or {}).items():
            config.rate_limits[endpoint] = EndpointPolicy(
                int(limit['max_requests']), int(limit['window_ms']),
            )

        log_section = data.get('logging') or {}
        config.verbose = bool(log_section.get('verbose', config.verbose))
        config.log_json = bool(log_section.get('json', config.log_json))
        config.log_file = log_section.get('file', config.log_file)
        if 'quiet' in log_section:
            config.log_quiet = _parse_features(log_section['quiet'] or [])

    except UnsupportedChainError:
        raise
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config value: {e}") from e


def _apply_environment(config: GuardConfig, env: Mapping[str, str]) -> None:
    secret = env.get(f"{ENV_PREFIX}SECURITY_SECRET")
    if not secret and env.get(LEGACY_SECRET_ENV):
        logger.info(f"Using legacy {LEGACY_SECRET_ENV}; rename to {ENV_PREFIX}SECURITY_SECRET")
        secret = env[LEGACY_SECRET_ENV]
    if secret:
        config.security_secret = secret

    for chain in ChainType:
        url = env.get(f"{ENV_PREFIX}RPC_{chain.name}") or env.get(LEGACY_RPC_ENV[chain])
        if url:
            config.rpc_endpoints[chain] = url

    feed_path = env.get(f"{ENV_PREFIX}THREAT_FEED")
    if feed_path:
        config.threat_feed_path = feed_path

    # Bounds-checked overrides; only read when actually present
    if f"{ENV_PREFIX}TOKEN_TTL_MS" in env:
        config.token_ttl_ms = RuntimeConfig.get_token_ttl_ms(env)
    if f"{ENV_PREFIX}VAULT_TTL_MS" in env:
        config.vault_ttl_ms = RuntimeConfig.get_vault_ttl_ms(env)
    if f"{ENV_PREFIX}SUBMIT_TIMEOUT" in env:
        config.submit_timeout = RuntimeConfig.get_submit_timeout(env)

    truthy = ('1', 'true', 'yes')
    if env.get(f"{ENV_PREFIX}VERBOSE", '').lower() in truthy:
        config.verbose = True
    if env.get(f"{ENV_PREFIX}LOG_JSON", '').lower() in truthy:
        config.log_json = True
    if env.get(f"{ENV_PREFIX}LOG_FILE"):
        config.log_file = env[f"{ENV_PREFIX}LOG_FILE"]
    if f"{ENV_PREFIX}LOG_QUIET" in env:
        config.log_quiet = _parse_features(env[f"{ENV_PREFIX}LOG_QUIET"])


def load_config(
    path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> GuardConfig:
    """
    Build a GuardConfig from defaults, an optional file and the environment.

    Raises:
        ConfigurationError: unreadable file or invalid values
        UnsupportedChainError: unknown chain in rpc_endpoints
    """
    env = os.environ if environ is None else environ
    config = GuardConfig()

    if path:
        _apply_file(config, _read_config_file(path))
        logger.info(f"Loaded configuration from {path}")

    _apply_environment(config, env)

    if config.vault_ttl_ms > Lifetimes.VAULT_MAX_TTL_MS:
        raise ConfigurationError(
            f"vault_ttl_ms {config.vault_ttl_ms} exceeds maximum {Lifetimes.VAULT_MAX_TTL_MS}"
        )
    if config.token_ttl_ms <= 0 or config.vault_ttl_ms <= 0:
        raise ConfigurationError("TTLs must be positive")

    return config


__all__ = ['GuardConfig', 'load_config', 'LEGACY_SECRET_ENV', 'LEGACY_RPC_ENV']
