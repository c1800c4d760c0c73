"""
validation.py — Ordered, non-short-circuiting transaction validation.

``TransactionValidator.validate`` runs every check below on every call and
folds the outcome into one ``ValidationResult``:

  1. amount bounds                  → amount_risk
  2. account-number format
  3. duplicate transaction id
  4. per-user velocity window       → velocity_risk
  5. history append
  6. fraud scorer + pattern pass    → pattern_risk
  7. time of day                    → time_risk
  8. AML compliance hook
  9. business rules
 10. risk threshold

Rule violations never raise; they are collected as ``ValidationError``
values in the order the checks run.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple

from detection.fraud_scoring import FraudScorer
from utils.config import ValidatorConfig
from utils.history import HistoryStore
from utils.models import Transaction, TransactionType, is_round_amount, to_utc
from utils.results import RiskBreakdown, ValidationError, ValidationResult

log = logging.getLogger("txnrisk.validation")

# ── Rule constants ───────────────────────────────────────────────────────────
ACCOUNT_PATTERN = re.compile(r"^[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}-[A-Z0-9]{4}$")
MASKED_ACCOUNT_PREFIX = "****"

AMOUNT_RISK_TIERS = (
    (Decimal("100000"), 40),
    (Decimal("50000"), 30),
    (Decimal("10000"), 15),
)

ROUND_PATTERN_MIN = Decimal("10000")
ROUND_UNIT = Decimal("1000")
HIGH_VALUE_AMOUNT = Decimal("50000")
AMOUNT_WARNING_RATIO = Decimal("0.75")

# Inclusive hour bands, UTC.
EXTENDED_HOURS = (6, 22)
BUSINESS_HOURS = (9, 17)

AML_CHECK = "AML"


class ComplianceHook(Protocol):
    def is_compliant(self, transaction: Transaction) -> bool: ...


class PermissiveAMLHook:
    """Placeholder compliance hook: every transaction passes.

    It stands in for a real AML decision so the pipeline's contract (a
    boolean check recorded under ``"AML"``) is exercised end to end.  Inject
    ``compliance.aml.AMLChecker`` for rule-based screening.
    """

    def is_compliant(self, transaction: Transaction) -> bool:
        log.debug("AML placeholder hook passed %s", transaction.transaction_id)
        return True


def _in_band(hour: int, band: Tuple[int, int]) -> bool:
    return band[0] <= hour <= band[1]


def _tracked_amount(amount: Decimal) -> Decimal:
    """Amount counted toward window totals; NaN and infinities count as zero."""
    return amount if amount.is_finite() else Decimal("0")


# ── Public API ───────────────────────────────────────────────────────────────

class TransactionValidator:
    """Stateful validation pipeline.

    Owns its per-user ``HistoryStore``, the set of seen transaction ids and
    (unless scoring is disabled) a ``FraudScorer`` with its own history.
    """

    def __init__(
        self,
        config: Optional[ValidatorConfig] = None,
        fraud_scorer: Optional[FraudScorer] = None,
        aml_hook: Optional[ComplianceHook] = None,
    ) -> None:
        self.config = config or ValidatorConfig()
        self.fraud_scorer = fraud_scorer or FraudScorer()
        self.aml_hook = aml_hook or PermissiveAMLHook()
        self._history = HistoryStore()
        self._seen_ids: Set[str] = set()
        self._processed = 0

    def validate(self, transaction: Transaction) -> ValidationResult:
        errors: List[ValidationError] = []
        warnings: List[str] = []
        compliance_checks: Dict[str, bool] = {}

        # 1. Amount
        amount_error = self._check_amount(transaction.amount)
        if amount_error is not None:
            errors.append(amount_error)
        amount_risk = self._amount_risk(transaction.amount)

        # 2. Account format
        errors.extend(self._check_accounts(transaction))

        # 3. Duplicate id
        if self.config.enable_duplicate_check:
            if transaction.transaction_id in self._seen_ids:
                errors.append(ValidationError.duplicate(transaction.transaction_id))
            else:
                self._seen_ids.add(transaction.transaction_id)

        # 4. Velocity
        velocity_risk, velocity_errors, velocity_warnings = self._check_velocity(transaction)
        errors.extend(velocity_errors)
        warnings.extend(velocity_warnings)

        # 5. History
        self._history.append(
            transaction.user_id, transaction.timestamp, _tracked_amount(transaction.amount)
        )

        # 6. Fraud scoring
        assessment = None
        if self.config.enable_fraud_scoring:
            assessment = self.fraud_scorer.score(transaction)
        pattern_risk, pattern_warnings = self._check_patterns(transaction)
        warnings.extend(pattern_warnings)

        # 7. Time of day
        breakdown = RiskBreakdown(
            amount_risk=amount_risk,
            velocity_risk=velocity_risk,
            pattern_risk=pattern_risk,
            time_risk=self._time_risk(transaction.timestamp),
        )
        fraud_score = breakdown.total_score

        # 8. Compliance
        if self.config.enable_aml_check:
            compliant = bool(self.aml_hook.is_compliant(transaction))
            compliance_checks[AML_CHECK] = compliant
            if not compliant:
                errors.append(ValidationError.compliance_failed("AML compliance check failed"))

        # 9. Business rules
        rule_error = self._check_business_rules(transaction)
        if rule_error is not None:
            errors.append(rule_error)

        # 10. Risk threshold
        if fraud_score > self.config.fraud_threshold:
            errors.append(ValidationError.risk_threshold(
                f"Risk score {fraud_score} exceeds threshold {self.config.fraud_threshold}"
            ))

        self._processed += 1
        result = ValidationResult(
            transaction_id=transaction.transaction_id,
            is_valid=not errors,
            errors=tuple(errors),
            warnings=tuple(warnings),
            fraud_score=fraud_score,
            risk_breakdown=breakdown,
            compliance_checks=compliance_checks,
            validated_at=datetime.now(timezone.utc),
            fraud_assessment=assessment,
        )
        log.debug(
            "Validated %s: valid=%s score=%d errors=%d warnings=%d",
            transaction.transaction_id, result.is_valid, fraud_score, len(errors), len(warnings),
        )
        return result

    def validate_batch(self, transactions: Iterable[Transaction]) -> List[ValidationResult]:
        return [self.validate(tx) for tx in transactions]

    def get_stats(self) -> Dict[str, int]:
        return {
            "total_processed": self._processed,
            "total_transactions_in_history": len(self._history),
        }

    def clear_old_history(self, before: datetime) -> int:
        """Drop pipeline history entries stamped before *before*."""
        return self._history.evict_before(to_utc(before))

    # ── Checks ───────────────────────────────────────────────────────────

    def _check_amount(self, amount: Decimal) -> Optional[ValidationError]:
        if not amount.is_finite():
            return ValidationError.invalid_amount(f"Amount must be a finite number, got {amount}")
        if amount <= 0:
            return ValidationError.invalid_amount("Amount must be positive")
        if amount < self.config.min_transaction_amount:
            return ValidationError.invalid_amount(
                f"Amount {amount} below minimum {self.config.min_transaction_amount}"
            )
        if amount > self.config.max_transaction_amount:
            return ValidationError.invalid_amount(
                f"Amount {amount} exceeds maximum {self.config.max_transaction_amount}"
            )
        return None

    @staticmethod
    def _amount_risk(amount: Decimal) -> int:
        if not amount.is_finite():
            return 0
        for floor, risk in AMOUNT_RISK_TIERS:
            if amount > floor:
                return risk
        return 0

    @staticmethod
    def _check_accounts(transaction: Transaction) -> List[ValidationError]:
        errors: List[ValidationError] = []
        for field_name in ("from_account", "to_account"):
            account = getattr(transaction, field_name)
            if account is None:
                continue
            if not ACCOUNT_PATTERN.match(account) and not account.startswith(MASKED_ACCOUNT_PREFIX):
                errors.append(ValidationError.invalid_account(
                    f"Invalid {field_name} format: {account}"
                ))
        return errors

    def _check_velocity(
        self, transaction: Transaction
    ) -> Tuple[int, List[ValidationError], List[str]]:
        cfg = self.config
        window_start = transaction.timestamp - timedelta(minutes=cfg.velocity_check_window_minutes)
        recent = self._history.since(transaction.user_id, window_start)

        count = len(recent)
        total = sum((e.amount for e in recent), Decimal("0")) + _tracked_amount(transaction.amount)

        risk = 0
        errors: List[ValidationError] = []
        warnings: List[str] = []

        if count >= cfg.max_transactions_per_window:
            risk += 30
            errors.append(ValidationError.velocity(
                f"Too many transactions: {count + 1} in {cfg.velocity_check_window_minutes} minutes"
            ))
        elif count >= cfg.max_transactions_per_window // 2:
            risk += 15
            warnings.append(f"High transaction velocity: {count + 1} transactions in window")

        limit = cfg.max_amount_per_window
        if total >= limit:
            risk += 25
            errors.append(ValidationError.velocity(
                f"Total amount ${total:.2f} exceeds window limit ${limit:.2f}"
            ))
        elif total >= limit * AMOUNT_WARNING_RATIO:
            risk += 10
            warnings.append(f"Approaching amount limit: ${total:.2f} of ${limit:.2f}")

        return min(100, risk), errors, warnings

    @staticmethod
    def _check_patterns(transaction: Transaction) -> Tuple[int, List[str]]:
        score = 0
        warnings: List[str] = []
        amount = transaction.amount

        if amount.is_finite() and amount >= ROUND_PATTERN_MIN and is_round_amount(amount, ROUND_UNIT):
            score += 20
            warnings.append("Large round number transaction")
        if amount.is_finite() and amount > HIGH_VALUE_AMOUNT:
            score += 30
            warnings.append("High-value transaction requires review")
        if transaction.transaction_type == TransactionType.WIRE_TRANSFER:
            score += 15
            warnings.append("Wire transfer flagged for review")
        if not _in_band(transaction.timestamp.hour, EXTENDED_HOURS):
            score += 10
            warnings.append("Transaction outside business hours")

        return score, warnings

    @staticmethod
    def _time_risk(timestamp: datetime) -> int:
        hour = timestamp.hour
        if not _in_band(hour, EXTENDED_HOURS):
            return 20
        if not _in_band(hour, BUSINESS_HOURS):
            return 10
        return 0

    @staticmethod
    def _check_business_rules(transaction: Transaction) -> Optional[ValidationError]:
        tx_type = transaction.transaction_type
        if tx_type == TransactionType.TRANSFER and (
            transaction.from_account is None or transaction.to_account is None
        ):
            return ValidationError.business_rule("Transfers must specify both from and to accounts")
        if tx_type == TransactionType.DEPOSIT and transaction.to_account is None:
            return ValidationError.business_rule("Deposits must specify to_account")
        if tx_type == TransactionType.WITHDRAWAL and transaction.from_account is None:
            return ValidationError.business_rule("Withdrawals must specify from_account")
        return None
