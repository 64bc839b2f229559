"""
URL heuristics for phishing detection.

Each finding adds one point to a URL's score:
- brand impersonation: the host mentions a known wallet/exchange brand but
  is neither the brand's canonical domain nor a subdomain of it
- sensitive keyword: the lower-cased URL contains a lure word
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlsplit

BRAND_DOMAINS: Dict[str, Tuple[str, ...]] = {
    'metamask': ('metamask.io',),
    'phantom': ('phantom.app',),
    'solana': ('solana.com',),
    'ethereum': ('ethereum.org',),
    'binance': ('binance.com',),
    'uniswap': ('uniswap.org',),
}

SENSITIVE_KEYWORDS: Tuple[str, ...] = (
    'wallet', 'connect', 'verify', 'claim', 'airdrop', 'giveaway', 'free', 'bonus',
)


class UnparseableURLError(ValueError):
    """URL has no hostname or could not be split."""


def extract_host(url: str) -> str:
    """
    Lower-cased hostname of `url`, trailing dot stripped.

    Raises:
        UnparseableURLError: no scheme/host could be found
    """
    if not isinstance(url, str) or not url.strip():
        raise UnparseableURLError("empty URL")
    try:
        host = urlsplit(url.strip()).hostname
    except ValueError as e:
        raise UnparseableURLError(str(e)) from e
    if not host:
        raise UnparseableURLError(f"no hostname in {url!r}")
    return host.lower().rstrip('.')


def canonical_domains(brand: str) -> Tuple[str, ...]:
    # brand.com / brand.io are treated as official for every brand
    return BRAND_DOMAINS.get(brand, ()) + (f"{brand}.com", f"{brand}.io")


def _is_official(host: str, brand: str) -> bool:
    for domain in canonical_domains(brand):
        if host == domain or host.endswith('.' + domain):
            return True
    return False


@dataclass
class URLScore:
    host: str
    findings: List[str] = field(default_factory=list)

    @property
    def points(self) -> int:
        return len(self.findings)


def score_url(url: str, host: Optional[str] = None) -> URLScore:
    """Run both heuristics over a URL. `host` may be passed if already parsed."""
    if host is None:
        host = extract_host(url)
    score = URLScore(host=host)

    for brand in BRAND_DOMAINS:
        if brand in host and not _is_official(host, brand):
            score.findings.append(f"Possible imitation of {brand} official website")

    lowered = url.lower()
    for word in SENSITIVE_KEYWORDS:
        if word in lowered:
            score.findings.append(f"URL contains sensitive word: {word}")

    return score


__all__ = [
    'BRAND_DOMAINS',
    'SENSITIVE_KEYWORDS',
    'UnparseableURLError',
    'URLScore',
    'extract_host',
    'canonical_domains',
    'score_url',
]
