"""
Risk Assessment Engine - stateless security checks for wallet operations.

Every public method is a total function: expected failures and unexpected
internal errors alike come back as a CheckResult. Internal errors are
reported through utils.error_handling before being converted.

Checks:
- validate_address: allow-list, blacklist, per-chain format
- validate_transaction: both addresses, recipient allow-list, exact amount ceiling
- verify_signature: per-chain cryptographic verification
- detect_phishing: phishing list, blacklist, URL heuristics
- assess_smart_contract_risk: blacklist placeholder
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional, Union

from ..chains import ChainType
from ..errors import UnsupportedChainError
from ..utils.error_handling import ErrorCategory, handle_error
from .chain_support import ChainRegistry, MessageLike, create_default_registry
from .models import CheckKind, CheckResult, RiskLevel
from .normalized_set import (
    NormalizedSetStore,
    create_blacklist,
    create_phishing_domains,
    normalize_address,
)
from .phishing import UnparseableURLError, extract_host, score_url

logger = logging.getLogger(__name__)

ChainSelector = Union[ChainType, str]
AmountLike = Union[str, int, Decimal]

# More findings than this escalates a suspicious URL from MEDIUM to HIGH
PHISHING_HIGH_THRESHOLD = 2


def _chain_label(chain: Any) -> str:
    return chain.value if isinstance(chain, ChainType) else str(chain)


def parse_amount(value: Any) -> Optional[Decimal]:
    """Exact, finite, non-negative decimal, or None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, float):
        # repr() keeps the shortest round-tripping decimal form
        value = repr(value)
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


class RiskAssessmentEngine:
    """
    Security checks consulting injected blacklist/phishing stores and a
    chain registry. Holds no mutable state of its own.
    """

    def __init__(
        self,
        blacklist: Optional[NormalizedSetStore] = None,
        phishing_domains: Optional[NormalizedSetStore] = None,
        registry: Optional[ChainRegistry] = None,
    ):
        self.blacklist = blacklist if blacklist is not None else create_blacklist()
        self.phishing_domains = (
            phishing_domains if phishing_domains is not None else create_phishing_domains()
        )
        self.registry = registry if registry is not None else create_default_registry()

    def _internal_error(
        self,
        error: Exception,
        operation: str,
        kind: CheckKind,
        message: str,
        risk_level: RiskLevel = RiskLevel.MEDIUM,
    ) -> CheckResult:
        handle_error(error, operation, ErrorCategory.VALIDATION)
        return CheckResult.failed(kind, risk_level, f"{message}: {error}")

    # =========================================================================
    # ADDRESSES
    # =========================================================================

    def validate_address(
        self,
        address: str,
        chain: ChainSelector,
        allowed_chains: Optional[Iterable[ChainSelector]] = None,
    ) -> CheckResult:
        kind = CheckKind.ADDRESS_VALIDATION
        try:
            if allowed_chains is not None and not self._chain_allowed(chain, allowed_chains):
                return CheckResult.failed(
                    kind, RiskLevel.HIGH,
                    f"Unsupported blockchain type: {_chain_label(chain)}",
                )

            if self.blacklist.contains(address):
                logger.warning(f"Blacklisted address presented for {_chain_label(chain)}")
                return CheckResult.failed(
                    kind, RiskLevel.CRITICAL, "Address is in blacklisted addresses",
                )

            try:
                validator = self.registry.validator_for(chain)
            except UnsupportedChainError:
                return CheckResult.failed(
                    kind, RiskLevel.MEDIUM,
                    f"Unknown blockchain type: {_chain_label(chain)}",
                )

            if validator.is_valid_address(address):
                return CheckResult.passed(kind, "Address format is valid")
            return CheckResult.failed(kind, RiskLevel.HIGH, "Address format is invalid")

        except Exception as e:
            return self._internal_error(e, "validate_address", kind, "Address validation error")

    def _chain_allowed(self, chain: ChainSelector, allowed_chains: Iterable[ChainSelector]) -> bool:
        try:
            resolved = ChainType.parse(chain)
        except UnsupportedChainError:
            return False
        for allowed in allowed_chains:
            try:
                if ChainType.parse(allowed) is resolved:
                    return True
            except UnsupportedChainError:
                continue
        return False

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    def validate_transaction(
        self,
        from_address: str,
        to_address: str,
        amount: AmountLike,
        chain: ChainSelector,
        max_amount: Optional[AmountLike] = None,
        allowed_recipients: Optional[Iterable[str]] = None,
        min_confirmations: Optional[int] = None,
    ) -> CheckResult:
        """
        Validate a transfer before it is signed.

        Amounts are compared as exact decimals; `amount` and `max_amount`
        are expected as decimal strings (ints and Decimals are accepted).
        """
        kind = CheckKind.TRANSACTION_VALIDATION
        try:
            from_result = self.validate_address(from_address, chain)
            if not from_result.success:
                return from_result.with_message(
                    f"Invalid sending address: {from_result.message}", kind,
                )

            to_result = self.validate_address(to_address, chain)
            if not to_result.success:
                return to_result.with_message(
                    f"Invalid receiving address: {to_result.message}", kind,
                )

            if allowed_recipients:
                allowed = {normalize_address(r) for r in allowed_recipients if isinstance(r, str)}
                if allowed and normalize_address(to_address) not in allowed:
                    return CheckResult.failed(
                        kind, RiskLevel.HIGH, "Receiving address not in allowed list",
                    )

            parsed_amount = parse_amount(amount)
            if parsed_amount is None:
                return CheckResult.failed(
                    kind, RiskLevel.MEDIUM, f"Invalid transaction amount: {amount}",
                )

            if max_amount is not None:
                ceiling = parse_amount(max_amount)
                if ceiling is None:
                    return CheckResult.failed(
                        kind, RiskLevel.MEDIUM, f"Invalid maximum amount: {max_amount}",
                    )
                if parsed_amount > ceiling:
                    return CheckResult.failed(
                        kind, RiskLevel.MEDIUM,
                        f"Transaction amount {amount} exceeds allowed maximum value {max_amount}",
                        details={'amount': str(parsed_amount), 'max_amount': str(ceiling)},
                    )

            details: Dict[str, Any] = {
                'chain': _chain_label(chain),
                'amount': str(parsed_amount),
            }
            if min_confirmations is not None:
                details['min_confirmations'] = min_confirmations
            return CheckResult.passed(kind, "Transaction validation passed", details=details)

        except Exception as e:
            return self._internal_error(e, "validate_transaction", kind, "Transaction validation error")

    # =========================================================================
    # SIGNATURES
    # =========================================================================

    def verify_signature(
        self,
        message: MessageLike,
        signature: str,
        public_key_or_address: str,
        chain: ChainSelector,
    ) -> CheckResult:
        """
        EVM chains recover the personal_sign signer and compare addresses;
        ed25519 chains verify the base58 signature against the base58 public
        key over the raw UTF-8 message bytes.
        """
        kind = CheckKind.SIGNATURE_VERIFICATION
        try:
            try:
                verifier = self.registry.verifier_for(chain)
            except UnsupportedChainError:
                return CheckResult.failed(
                    kind, RiskLevel.MEDIUM,
                    f"Unknown blockchain type: {_chain_label(chain)}",
                )

            if verifier.verify(message, signature, public_key_or_address):
                return CheckResult.passed(kind, "Signature verification passed")

            logger.info(f"Signature verification failed on {_chain_label(chain)}")
            return CheckResult.failed(kind, RiskLevel.HIGH, "Signature verification failed")

        except Exception as e:
            return self._internal_error(e, "verify_signature", kind, "Signature verification error")

    # =========================================================================
    # PHISHING
    # =========================================================================

    def detect_phishing(
        self,
        url: Optional[str] = None,
        address: Optional[str] = None,
        contract_address: Optional[str] = None,
    ) -> CheckResult:
        """
        Known phishing hosts and blacklisted addresses are CRITICAL. Otherwise
        URL heuristics score one point per finding: 1-2 points is MEDIUM,
        more is HIGH. A URL without a parseable host is LOW.
        """
        kind = CheckKind.PHISHING_DETECTION
        try:
            url_result: Optional[CheckResult] = None

            if url:
                try:
                    host = extract_host(url)
                except UnparseableURLError as e:
                    url_result = CheckResult.failed(
                        kind, RiskLevel.LOW, f"Cannot parse URL: {e}", details={'url': url},
                    )
                else:
                    if self.phishing_domains.contains(host):
                        logger.warning(f"Known phishing domain requested: {host}")
                        return CheckResult.failed(
                            kind, RiskLevel.CRITICAL,
                            f"Detected phishing website: {host}", details={'url': url},
                        )
                    score = score_url(url, host)
                    if score.points:
                        level = (
                            RiskLevel.HIGH if score.points > PHISHING_HIGH_THRESHOLD
                            else RiskLevel.MEDIUM
                        )
                        url_result = CheckResult.failed(
                            kind, level, "Detected potential phishing risk",
                            details={'url': url, 'suspicious_features': score.findings},
                        )

            # Blacklisted counterparties outrank any URL verdict
            if address and self.blacklist.contains(address):
                return CheckResult.failed(
                    kind, RiskLevel.CRITICAL, "Detected blacklisted address",
                    details={'address': address},
                )
            if contract_address and self.blacklist.contains(contract_address):
                return CheckResult.failed(
                    kind, RiskLevel.CRITICAL, "Detected blacklisted contract address",
                    details={'contract_address': contract_address},
                )

            if url_result is not None:
                return url_result
            return CheckResult.passed(kind, "No phishing risk detected")

        except Exception as e:
            return self._internal_error(
                e, "detect_phishing", kind, "Phishing detection error", RiskLevel.LOW,
            )

    # =========================================================================
    # SMART CONTRACTS
    # =========================================================================

    def assess_smart_contract_risk(
        self,
        contract_address: str,
        chain: ChainSelector,
        check_source: bool = False,
    ) -> CheckResult:
        """Blacklist lookup only; deeper analysis is an extension point."""
        kind = CheckKind.SMART_CONTRACT_RISK
        try:
            if self.blacklist.contains(contract_address):
                return CheckResult.failed(
                    kind, RiskLevel.CRITICAL, "Contract address is in blacklisted addresses",
                    details={'contract_address': contract_address},
                )
            return CheckResult.passed(
                kind,
                "Basic smart contract security check did not find serious risk",
                risk_level=RiskLevel.LOW,
                details={
                    'contract_address': contract_address,
                    'chain': _chain_label(chain),
                    'check_source': check_source,
                    'note': 'Complete smart contract security analysis requires deeper check',
                },
            )
        except Exception as e:
            return self._internal_error(
                e, "assess_smart_contract_risk", kind, "Smart contract risk assessment error",
            )


__all__ = ['RiskAssessmentEngine', 'parse_amount', 'PHISHING_HIGH_THRESHOLD']
