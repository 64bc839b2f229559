"""
Value types returned by every security check.
"""

from dataclasses import dataclass, field
from enum import Enum
from functools import total_ordering
from typing import Any, Dict, Optional


@total_ordering
class RiskLevel(Enum):
    """Ordered severity: NONE < LOW < MEDIUM < HIGH < CRITICAL."""
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def __lt__(self, other):
        if not isinstance(other, RiskLevel):
            return NotImplemented
        return self.rank < other.rank


_RISK_RANK = {level: i for i, level in enumerate(RiskLevel)}


class CheckKind(Enum):
    """Which check produced a result."""
    ADDRESS_VALIDATION = "address_validation"
    TRANSACTION_VALIDATION = "transaction_validation"
    SIGNATURE_VERIFICATION = "signature_verification"
    PHISHING_DETECTION = "phishing_detection"
    SMART_CONTRACT_RISK = "smart_contract_risk"
    RATE_LIMIT = "rate_limit"


@dataclass(frozen=True)
class CheckResult:
    """Outcome of a security check. Returned, never raised."""
    success: bool
    check_kind: CheckKind
    risk_level: RiskLevel
    message: str
    details: Optional[Dict[str, Any]] = field(default=None, compare=False)

    @classmethod
    def passed(cls, kind: CheckKind, message: str,
               risk_level: RiskLevel = RiskLevel.NONE,
               details: Optional[Dict[str, Any]] = None) -> 'CheckResult':
        return cls(True, kind, risk_level, message, details)

    @classmethod
    def failed(cls, kind: CheckKind, risk_level: RiskLevel, message: str,
               details: Optional[Dict[str, Any]] = None) -> 'CheckResult':
        return cls(False, kind, risk_level, message, details)

    def with_message(self, message: str, kind: Optional[CheckKind] = None) -> 'CheckResult':
        """Copy with a new message (and optionally a new check kind)."""
        return CheckResult(
            success=self.success,
            check_kind=kind or self.check_kind,
            risk_level=self.risk_level,
            message=message,
            details=self.details,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire form consumed by route handlers."""
        data = {
            'success': self.success,
            'checkType': self.check_kind.value,
            'riskLevel': self.risk_level.value,
            'message': self.message,
        }
        if self.details is not None:
            data['details'] = self.details
        return data


__all__ = ['RiskLevel', 'CheckKind', 'CheckResult']
