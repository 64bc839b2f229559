"""
Threat Feed Loader - provisions the blacklist and phishing-domain stores.

A feed is a JSON or YAML document:

    name: community_threats
    version: "1.0"
    provider: example
    blacklisted_addresses: [0x..., ...]
    phishing_domains: [metamask-wallet.io, ...]
    signature: <hex ed25519 signature>      # optional
    public_key: <hex ed25519 verify key>    # optional

The signature covers the canonical JSON (sorted keys) of name, version,
blacklisted_addresses and phishing_domains. Feeds are applied to the stores
with an atomic replace, so a reload never exposes a half-applied list.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import nacl.encoding
import nacl.signing
import yaml
from nacl.exceptions import BadSignatureError

from ..errors import ThreatFeedError
from ..utils.error_handling import log_security_error
from .normalized_set import NormalizedSetStore

logger = logging.getLogger(__name__)


# Seed entries shipped for development and tests. Production deployments
# provision their own feed.
SAMPLE_THREAT_FEED = {
    'name': 'sample_threats',
    'version': '1.0',
    'provider': 'walletguard',
    'blacklisted_addresses': [
        '0x000000000000000000000000000000000000dead',
        '0x0000000000000000000000000000000000001337',
        'BurnAddress1111111111111111111111111111111',
    ],
    'phishing_domains': [
        'metamask-wallet.io',
        'phantomm.app',
        'solana-faucet.gift',
        'eth-giveaway.com',
        'bnb-event.net',
    ],
}


@dataclass
class ThreatFeed:
    """Blacklisted addresses and phishing domains from a single source."""
    name: str
    version: str = "1.0"
    provider: str = ""
    blacklisted_addresses: List[str] = field(default_factory=list)
    phishing_domains: List[str] = field(default_factory=list)

    signature: Optional[str] = None
    public_key: Optional[str] = None
    signature_valid: bool = False
    loaded_at: Optional[datetime] = None

    @property
    def is_signed(self) -> bool:
        return bool(self.signature and self.public_key)

    @property
    def entry_count(self) -> int:
        return len(self.blacklisted_addresses) + len(self.phishing_domains)

    def signed_content(self) -> bytes:
        return json.dumps({
            'name': self.name,
            'version': self.version,
            'blacklisted_addresses': self.blacklisted_addresses,
            'phishing_domains': self.phishing_domains,
        }, sort_keys=True).encode()

    def verify_signature(self) -> bool:
        """Verify the feed signature against its embedded public key."""
        if not self.is_signed:
            return False

        try:
            verify_key = nacl.signing.VerifyKey(bytes.fromhex(self.public_key))
            verify_key.verify(self.signed_content(), bytes.fromhex(self.signature))
        except (BadSignatureError, ValueError, TypeError) as e:
            logger.error(f"Feed {self.name} signature verification failed: {e}")
            self.signature_valid = False
            return False

        self.signature_valid = True
        return True

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'name': self.name,
            'version': self.version,
            'provider': self.provider,
            'blacklisted_addresses': list(self.blacklisted_addresses),
            'phishing_domains': list(self.phishing_domains),
        }
        if self.is_signed:
            data['signature'] = self.signature
            data['public_key'] = self.public_key
        return data


def sign_feed(feed: ThreatFeed, signing_key: nacl.signing.SigningKey) -> ThreatFeed:
    """Attach an ed25519 signature and public key to `feed` (in place)."""
    signed = signing_key.sign(feed.signed_content())
    feed.signature = signed.signature.hex()
    feed.public_key = signing_key.verify_key.encode(
        encoder=nacl.encoding.HexEncoder
    ).decode()
    return feed


class ThreatFeedLoader:
    """
    Parses, authenticates and applies threat feeds.

    Usage:
        loader = ThreatFeedLoader(require_signature=True,
                                  trusted_public_keys=[key_hex])
        feed = loader.load_file("/etc/walletguard/feed.yaml")
        loader.apply(feed, blacklist, phishing_domains)

    Args:
        require_signature: Reject unsigned feeds or feeds with bad signatures
        trusted_public_keys: If given, a signed feed's key must be one of these
    """

    def __init__(
        self,
        require_signature: bool = False,
        trusted_public_keys: Optional[Iterable[str]] = None,
    ):
        self.require_signature = require_signature
        self.trusted_public_keys = (
            {k.lower() for k in trusted_public_keys} if trusted_public_keys else None
        )

    def parse(self, data: Dict[str, Any], source: str = "<memory>") -> ThreatFeed:
        """
        Build and authenticate a feed from decoded data.

        Raises:
            ThreatFeedError: malformed feed or failed authentication
        """
        if not isinstance(data, dict):
            raise ThreatFeedError(f"Feed {source} is not a mapping")

        addresses = data.get('blacklisted_addresses', [])
        domains = data.get('phishing_domains', [])
        for label, values in (('blacklisted_addresses', addresses), ('phishing_domains', domains)):
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ThreatFeedError(f"Feed {source}: '{label}' must be a list of strings")

        feed = ThreatFeed(
            name=str(data.get('name', Path(source).stem)),
            version=str(data.get('version', '1.0')),
            provider=str(data.get('provider', '')),
            blacklisted_addresses=list(addresses),
            phishing_domains=list(domains),
            signature=data.get('signature'),
            public_key=data.get('public_key'),
        )
        self._authenticate(feed)
        feed.loaded_at = datetime.now(timezone.utc)
        return feed

    def _authenticate(self, feed: ThreatFeed) -> None:
        if feed.is_signed:
            if (self.trusted_public_keys is not None
                    and str(feed.public_key).lower() not in self.trusted_public_keys):
                raise ThreatFeedError(f"Feed {feed.name} is signed by an untrusted key")
            if not feed.verify_signature():
                error = ThreatFeedError(f"Feed {feed.name} has an invalid signature")
                log_security_error(error, "authenticate_feed", feed=feed.name)
                raise error
        elif self.require_signature:
            raise ThreatFeedError(f"Feed {feed.name} is not signed (signatures required)")

    def load_file(self, path: str) -> ThreatFeed:
        """Load a feed from a .json, .yaml or .yml file."""
        file_path = Path(path)
        try:
            with open(file_path, 'r') as f:
                if file_path.suffix.lower() in ('.yaml', '.yml'):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ThreatFeedError(f"Failed to load feed from {path}: {e}") from e

        return self.parse(data, str(path))

    def apply(
        self,
        feed: ThreatFeed,
        blacklist: NormalizedSetStore,
        phishing_domains: NormalizedSetStore,
        replace: bool = True,
    ) -> Dict[str, int]:
        """Push feed entries into the stores. `replace=False` merges instead."""
        if replace:
            blacklist.replace(feed.blacklisted_addresses)
            phishing_domains.replace(feed.phishing_domains)
        else:
            blacklist.update(feed.blacklisted_addresses)
            phishing_domains.update(feed.phishing_domains)

        logger.info(
            f"Applied feed {feed.name} v{feed.version} "
            f"({len(blacklist)} blacklisted, {len(phishing_domains)} phishing domains"
            f"{', signed' if feed.signature_valid else ''})"
        )
        return {
            'blacklisted_addresses': len(blacklist),
            'phishing_domains': len(phishing_domains),
        }

    def load_into(
        self,
        path: str,
        blacklist: NormalizedSetStore,
        phishing_domains: NormalizedSetStore,
        replace: bool = True,
    ) -> ThreatFeed:
        feed = self.load_file(path)
        self.apply(feed, blacklist, phishing_domains, replace=replace)
        return feed


__all__ = [
    'ThreatFeed',
    'ThreatFeedLoader',
    'SAMPLE_THREAT_FEED',
    'sign_feed',
]
