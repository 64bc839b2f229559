"""
Risk assessment: address, transaction, signature, phishing and contract checks.
"""

from .models import CheckKind, CheckResult, RiskLevel
from .normalized_set import (
    NormalizedSetStore,
    create_blacklist,
    create_phishing_domains,
)
from .chain_support import (
    AddressValidator,
    SignatureVerifier,
    ChainRegistry,
    create_default_registry,
)
from .risk_engine import RiskAssessmentEngine
from .threat_feed import ThreatFeed, ThreatFeedLoader, SAMPLE_THREAT_FEED, sign_feed

__all__ = [
    'CheckKind',
    'CheckResult',
    'RiskLevel',
    'NormalizedSetStore',
    'create_blacklist',
    'create_phishing_domains',
    'AddressValidator',
    'SignatureVerifier',
    'ChainRegistry',
    'create_default_registry',
    'RiskAssessmentEngine',
    'ThreatFeed',
    'ThreatFeedLoader',
    'SAMPLE_THREAT_FEED',
    'sign_feed',
]
