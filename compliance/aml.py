"""
aml.py — Rule-based AML screening and KYC record completeness.

``AMLChecker`` raises red flags for CTR-sized amounts, amounts just under
the CTR line, sanctioned counterparties, cross-border transfers and large
cash movements.  It also satisfies the validation pipeline's compliance
hook (``is_compliant``), so it can be injected into
``TransactionValidator(aml_hook=AMLChecker())``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from utils.models import Transaction, TransactionType

log = logging.getLogger("txnrisk.aml")

DEFAULT_SANCTIONED_ENTITIES = ("OFAC-SANCTIONED-001", "SANCTIONED-ENTITY-002")

CASH_TYPES = (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)
CASH_INTENSIVE_AMOUNT = Decimal("5000")
NON_COMPLIANT_SCORE = 75


class RedFlagType(str, Enum):
    POTENTIAL_STRUCTURING = "PotentialStructuring"
    HIGH_VALUE_TRANSACTION = "HighValueTransaction"
    SANCTIONED_ENTITY = "SanctionedEntity"
    RAPID_MOVEMENT = "RapidMovement"
    UNUSUAL_PATTERN = "UnusualPattern"
    CASH_INTENSIVE = "CashIntensive"
    CROSS_BORDER = "CrossBorder"


class AlertSeverity(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


@dataclass
class AMLThresholds:
    ctr_threshold: Decimal = Decimal("10000")
    sar_threshold: Decimal = Decimal("5000")
    structuring_threshold: Decimal = Decimal("9500")


@dataclass(frozen=True)
class AMLRedFlag:
    flag_type: RedFlagType
    description: str
    severity: AlertSeverity

    def to_dict(self) -> Dict[str, str]:
        return {
            "flag_type": self.flag_type.value,
            "description": self.description,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class AMLResult:
    compliant: bool
    requires_ctr: bool
    requires_sar: bool
    red_flags: List[AMLRedFlag] = field(default_factory=list)
    risk_score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compliant": self.compliant,
            "requires_ctr": self.requires_ctr,
            "requires_sar": self.requires_sar,
            "red_flags": [f.to_dict() for f in self.red_flags],
            "risk_score": self.risk_score,
        }


class AMLChecker:
    def __init__(
        self,
        thresholds: Optional[AMLThresholds] = None,
        sanctioned_entities: Optional[Iterable[str]] = None,
    ) -> None:
        self.thresholds = thresholds or AMLThresholds()
        entities = sanctioned_entities if sanctioned_entities is not None else DEFAULT_SANCTIONED_ENTITIES
        self.sanctioned_entities: List[str] = list(entities)

    def check_compliance(self, transaction: Transaction) -> AMLResult:
        amount = transaction.amount
        ctr = self.thresholds.ctr_threshold
        red_flags: List[AMLRedFlag] = []
        score = 0
        requires_sar = False

        if not amount.is_finite():
            red_flags.append(AMLRedFlag(
                RedFlagType.UNUSUAL_PATTERN,
                f"Amount {amount} is not a finite number",
                AlertSeverity.HIGH,
            ))
            score += NON_COMPLIANT_SCORE
            amount = Decimal("0")
        requires_ctr = amount >= ctr

        if self.thresholds.structuring_threshold <= amount < ctr:
            red_flags.append(AMLRedFlag(
                RedFlagType.POTENTIAL_STRUCTURING,
                f"Amount {amount} is just below CTR threshold (potential structuring)",
                AlertSeverity.HIGH,
            ))
            score += 35
            requires_sar = True

        if requires_ctr:
            red_flags.append(AMLRedFlag(
                RedFlagType.HIGH_VALUE_TRANSACTION,
                f"High value transaction: {amount} (CTR required)",
                AlertSeverity.MEDIUM,
            ))
            score += 15

        parties = (transaction.from_account, transaction.to_account)
        if any(p is not None and self.check_sanctions_list(p) for p in parties):
            red_flags.append(AMLRedFlag(
                RedFlagType.SANCTIONED_ENTITY,
                "Transaction involves sanctioned entity",
                AlertSeverity.CRITICAL,
            ))
            score = 100
            requires_sar = True

        if transaction.meta("cross_border") == "true":
            red_flags.append(AMLRedFlag(
                RedFlagType.CROSS_BORDER,
                "Cross-border transaction requires additional due diligence",
                AlertSeverity.MEDIUM,
            ))
            score += 20

        if transaction.transaction_type in CASH_TYPES and amount >= CASH_INTENSIVE_AMOUNT:
            red_flags.append(AMLRedFlag(
                RedFlagType.CASH_INTENSIVE,
                f"Large cash {transaction.transaction_type.value} of {amount}",
                AlertSeverity.HIGH,
            ))
            score += 25

        result = AMLResult(
            compliant=score < NON_COMPLIANT_SCORE,
            requires_ctr=requires_ctr,
            requires_sar=requires_sar,
            red_flags=red_flags,
            risk_score=min(100, score),
        )
        if red_flags:
            log.info(
                "AML flags on %s: %s (score=%d, compliant=%s)",
                transaction.transaction_id,
                ", ".join(f.flag_type.value for f in red_flags),
                result.risk_score,
                result.compliant,
            )
        return result

    def is_compliant(self, transaction: Transaction) -> bool:
        return self.check_compliance(transaction).compliant

    def add_sanctioned_entity(self, entity: str) -> None:
        if entity not in self.sanctioned_entities:
            self.sanctioned_entities.append(entity)

    def check_sanctions_list(self, entity: str) -> bool:
        """True when *entity* contains any listed identifier."""
        return any(s in entity for s in self.sanctioned_entities)


# ── KYC ──────────────────────────────────────────────────────────────────────

KYC_REQUIRED_FIELDS = ("full_name", "date_of_birth", "address", "id_number", "id_type")
KYC_HIGH_RISK_COUNTRIES = frozenset({"KP", "IR", "SY", "CU", "SD"})


@dataclass(frozen=True)
class KYCValidationResult:
    valid: bool
    missing_fields: List[str]
    warnings: List[str]
    requires_enhanced_dd: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "valid": self.valid,
            "missing_fields": list(self.missing_fields),
            "warnings": list(self.warnings),
            "requires_enhanced_dd": self.requires_enhanced_dd,
        }


class KYCValidator:
    @staticmethod
    def validate_customer_data(record: Mapping[str, Any]) -> KYCValidationResult:
        missing = [f for f in KYC_REQUIRED_FIELDS if record.get(f) is None]
        warnings: List[str] = []

        country = record.get("country")
        if isinstance(country, str) and country.upper() in KYC_HIGH_RISK_COUNTRIES:
            warnings.append("Customer from high-risk jurisdiction - Enhanced Due Diligence required")

        if record.get("politically_exposed_person") is True:
            warnings.append("Politically Exposed Person - Enhanced Due Diligence required")

        return KYCValidationResult(
            valid=not missing,
            missing_fields=missing,
            warnings=warnings,
            requires_enhanced_dd=bool(warnings),
        )
