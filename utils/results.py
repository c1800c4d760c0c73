"""
results.py — Typed outputs of the validation pipeline.

Rule violations are data, not exceptions: each is a ``ValidationError``
tagged with a ``ValidationErrorKind`` and collected in order on the
``ValidationResult``.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Tuple

if TYPE_CHECKING:
    from detection.fraud_scoring import FraudScore

APPROVAL_SCORE_LIMIT = 50


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"

    @classmethod
    def from_score(cls, score: int) -> "RiskLevel":
        if score <= 25:
            return cls.LOW
        if score <= 50:
            return cls.MEDIUM
        if score <= 75:
            return cls.HIGH
        return cls.CRITICAL


class ValidationErrorKind(str, Enum):
    INVALID_AMOUNT = "InvalidAmount"
    INVALID_ACCOUNT = "InvalidAccount"
    DUPLICATE_TRANSACTION = "DuplicateTransaction"
    FRAUD_DETECTED = "FraudDetected"
    COMPLIANCE_FAILED = "ComplianceFailed"
    BUSINESS_RULE_VIOLATION = "BusinessRuleViolation"
    VELOCITY_VIOLATION = "VelocityViolation"
    RISK_THRESHOLD_EXCEEDED = "RiskThresholdExceeded"


_ERROR_PREFIX = {
    ValidationErrorKind.INVALID_AMOUNT: "Invalid amount",
    ValidationErrorKind.INVALID_ACCOUNT: "Invalid account number",
    ValidationErrorKind.DUPLICATE_TRANSACTION: "Duplicate transaction detected",
    ValidationErrorKind.FRAUD_DETECTED: "Fraud pattern detected",
    ValidationErrorKind.COMPLIANCE_FAILED: "Compliance check failed",
    ValidationErrorKind.BUSINESS_RULE_VIOLATION: "Business rule violation",
    ValidationErrorKind.VELOCITY_VIOLATION: "Velocity check failed",
    ValidationErrorKind.RISK_THRESHOLD_EXCEEDED: "Risk threshold exceeded",
}


@dataclass(frozen=True)
class ValidationError:
    """One rule violation.

    ``detail`` is the payload: a message for most kinds, the transaction id
    for ``DUPLICATE_TRANSACTION``.
    """

    kind: ValidationErrorKind
    detail: str

    @classmethod
    def invalid_amount(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.INVALID_AMOUNT, message)

    @classmethod
    def invalid_account(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.INVALID_ACCOUNT, message)

    @classmethod
    def duplicate(cls, transaction_id: str) -> "ValidationError":
        return cls(ValidationErrorKind.DUPLICATE_TRANSACTION, transaction_id)

    @classmethod
    def fraud_detected(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.FRAUD_DETECTED, message)

    @classmethod
    def compliance_failed(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.COMPLIANCE_FAILED, message)

    @classmethod
    def business_rule(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.BUSINESS_RULE_VIOLATION, message)

    @classmethod
    def velocity(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.VELOCITY_VIOLATION, message)

    @classmethod
    def risk_threshold(cls, message: str) -> "ValidationError":
        return cls(ValidationErrorKind.RISK_THRESHOLD_EXCEEDED, message)

    def __str__(self) -> str:
        return f"{_ERROR_PREFIX[self.kind]}: {self.detail}"

    def to_dict(self) -> Dict[str, str]:
        return {"kind": self.kind.value, "detail": self.detail, "message": str(self)}


@dataclass(frozen=True)
class RiskBreakdown:
    amount_risk: int = 0
    velocity_risk: int = 0
    pattern_risk: int = 0
    time_risk: int = 0

    @property
    def total_score(self) -> int:
        """Sum of the four sub-scores, capped at 100."""
        return min(100, self.amount_risk + self.velocity_risk + self.pattern_risk + self.time_risk)

    def to_dict(self) -> Dict[str, int]:
        return {
            "amount_risk": self.amount_risk,
            "velocity_risk": self.velocity_risk,
            "pattern_risk": self.pattern_risk,
            "time_risk": self.time_risk,
            "total_score": self.total_score,
        }


@dataclass(frozen=True)
class ValidationResult:
    transaction_id: str
    is_valid: bool
    errors: Tuple[ValidationError, ...]
    warnings: Tuple[str, ...]
    fraud_score: int
    risk_breakdown: RiskBreakdown
    compliance_checks: Mapping[str, bool] = field(default_factory=dict)
    validated_at: Optional[datetime] = None
    fraud_assessment: Optional["FraudScore"] = None

    def __post_init__(self) -> None:
        # Read-only copy.
        object.__setattr__(self, "compliance_checks", MappingProxyType(dict(self.compliance_checks)))

    def is_approved(self) -> bool:
        return self.is_valid and not self.errors and self.fraud_score < APPROVAL_SCORE_LIMIT

    def requires_manual_review(self) -> bool:
        if self.fraud_score >= APPROVAL_SCORE_LIMIT or self.warnings:
            return True
        if self.fraud_assessment is not None:
            return self.fraud_assessment.risk_level in (RiskLevel.HIGH, RiskLevel.CRITICAL)
        return False

    def risk_level(self) -> RiskLevel:
        return RiskLevel.from_score(self.fraud_score)

    def has_error(self, kind: ValidationErrorKind) -> bool:
        return any(e.kind == kind for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "is_valid": self.is_valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": list(self.warnings),
            "fraud_score": self.fraud_score,
            "risk_breakdown": self.risk_breakdown.to_dict(),
            "compliance_checks": dict(self.compliance_checks),
            "validated_at": self.validated_at.isoformat() if self.validated_at else None,
            "fraud_assessment": (
                self.fraud_assessment.to_dict() if self.fraud_assessment is not None else None
            ),
        }

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, default=str)

    def to_text(self) -> str:
        from utils.json_export import format_validation_result

        return format_validation_result(self)
