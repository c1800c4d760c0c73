"""
fraud_scoring.py — Per-account behavioural fraud scoring.

Six independent signals are evaluated against the account's history *before*
the current transaction is appended:

  velocity           ≥ N transactions in the past hour          +25
  unusual amount     above the absolute ceiling                  +30
                     more than 5× the account's average          +20
  round amount       ≥ threshold and divisible by 1,000          +15
  high-risk country  metadata["country"] on the denylist         +35
  rapid succession   < 30 s since the previous entry             +10
  amount progression last three amounts strictly increasing      +20

The additive score is capped at 100 and bucketed into a ``RiskLevel``.
Every call to ``FraudScorer.score`` appends the transaction to history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from utils.config import FraudThresholds
from utils.history import HistoryStore
from utils.models import Transaction, is_round_amount, to_utc
from utils.results import RiskLevel

log = logging.getLogger("txnrisk.fraud")

# ── Tunable thresholds ──────────────────────────────────────────────────────
DEFAULT_HIGH_RISK_COUNTRIES = ("KP", "IR", "SY")
VELOCITY_WINDOW = timedelta(hours=1)
RAPID_SUCCESSION_WINDOW = timedelta(seconds=30)
RETENTION_WINDOW = timedelta(hours=24)
AVERAGE_MULTIPLIER = Decimal("5")
ROUND_UNIT = Decimal("1000")
PROGRESSION_LENGTH = 3

VELOCITY_SEVERITY = 25
CEILING_SEVERITY = 30
AVERAGE_SEVERITY = 20
ROUND_SEVERITY = 15
COUNTRY_SEVERITY = 35
RAPID_SEVERITY = 10
PROGRESSION_SEVERITY = 20


class FraudFlagType(str, Enum):
    VELOCITY_EXCEEDED = "VelocityExceeded"
    UNUSUAL_AMOUNT = "UnusualAmount"
    ROUND_AMOUNT = "RoundAmount"
    HIGH_RISK_COUNTRY = "HighRiskCountry"
    DUPLICATE_TRANSACTION = "DuplicateTransaction"
    RAPID_SUCCESSION = "RapidSuccession"
    AMOUNT_PROGRESSION = "AmountProgression"
    TIME_ANOMALY = "TimeAnomaly"
    GEOGRAPHIC_ANOMALY = "GeographicAnomaly"


@dataclass(frozen=True)
class FraudFlag:
    flag_type: FraudFlagType
    description: str
    severity: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "flag_type": self.flag_type.value,
            "description": self.description,
            "severity": self.severity,
        }


@dataclass(frozen=True)
class FraudScore:
    score: int
    risk_level: RiskLevel
    flags: List[FraudFlag] = field(default_factory=list)

    def has_flag(self, flag_type: FraudFlagType) -> bool:
        return any(f.flag_type == flag_type for f in self.flags)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "risk_level": self.risk_level.value,
            "flags": [f.to_dict() for f in self.flags],
        }


# ── Public API ───────────────────────────────────────────────────────────────

class FraudScorer:
    """Stateful scorer owning one per-account ``HistoryStore``.

    Parameters
    ----------
    thresholds : FraudThresholds, optional
        Ceilings for the amount, velocity and round-amount checks.
    high_risk_countries : iterable of str, optional
        ISO country codes that trigger the high-risk-country flag.
    """

    def __init__(
        self,
        thresholds: Optional[FraudThresholds] = None,
        high_risk_countries: Optional[Iterable[str]] = None,
    ) -> None:
        self.thresholds = thresholds or FraudThresholds()
        countries = high_risk_countries if high_risk_countries is not None else DEFAULT_HIGH_RISK_COUNTRIES
        self.high_risk_countries = frozenset(c.upper() for c in countries)
        self._history = HistoryStore()

    @staticmethod
    def history_key(transaction: Transaction) -> str:
        """Source account, or the owning user when no source account is set."""
        return transaction.from_account or transaction.user_id

    def score(self, transaction: Transaction) -> FraudScore:
        key = self.history_key(transaction)
        prior = self._history.entries(key)

        flags: List[FraudFlag] = []
        for check in (
            self._check_velocity,
            self._check_unusual_amount,
            self._check_round_amount,
            self._check_high_risk_country,
            self._check_rapid_succession,
            self._check_amount_progression,
        ):
            flags.extend(check(transaction, prior))

        total = min(100, sum(f.severity for f in flags))
        result = FraudScore(score=total, risk_level=RiskLevel.from_score(total), flags=flags)

        tracked = transaction.amount if transaction.amount.is_finite() else Decimal("0")
        self._history.append(key, transaction.timestamp, tracked)
        log.debug(
            "Scored %s for %s: %d (%s, %d flag(s))",
            transaction.transaction_id, key, total, result.risk_level.value, len(flags),
        )
        return result

    # ── Maintenance & queries ───────────────────────────────────────────

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Keep only entries newer than 24 hours before *now*."""
        now = to_utc(now) if now is not None else datetime.now(timezone.utc)
        return self._history.evict_before(now - RETENTION_WINDOW, inclusive=True)

    def get_transaction_count(self, account: str) -> int:
        if account not in self._history:
            return 0
        return len(self._history.entries(account))

    def get_daily_total(self, account: str, now: Optional[datetime] = None) -> Decimal:
        now = to_utc(now) if now is not None else datetime.now(timezone.utc)
        recent = self._history.since(account, now - RETENTION_WINDOW, inclusive=False)
        return sum((e.amount for e in recent), Decimal("0"))

    # ── Signal checks ───────────────────────────────────────────────────

    def _check_velocity(self, tx: Transaction, prior) -> List[FraudFlag]:
        start = tx.timestamp - VELOCITY_WINDOW
        recent = sum(1 for e in prior if e.timestamp > start)
        limit = self.thresholds.max_transactions_per_hour
        if recent >= limit:
            return [FraudFlag(
                FraudFlagType.VELOCITY_EXCEEDED,
                f"{recent} transactions in last hour (limit: {limit})",
                VELOCITY_SEVERITY,
            )]
        return []

    def _check_unusual_amount(self, tx: Transaction, prior) -> List[FraudFlag]:
        flags: List[FraudFlag] = []
        if not tx.amount.is_finite():
            return flags
        if tx.amount > self.thresholds.max_amount:
            flags.append(FraudFlag(
                FraudFlagType.UNUSUAL_AMOUNT,
                f"Amount {tx.amount} exceeds threshold {self.thresholds.max_amount}",
                CEILING_SEVERITY,
            ))
        if prior:
            avg = sum((e.amount for e in prior), Decimal("0")) / len(prior)
            if tx.amount > avg * AVERAGE_MULTIPLIER:
                flags.append(FraudFlag(
                    FraudFlagType.UNUSUAL_AMOUNT,
                    f"Amount {tx.amount} is 5x higher than average {avg:.2f}",
                    AVERAGE_SEVERITY,
                ))
        return flags

    def _check_round_amount(self, tx: Transaction, prior) -> List[FraudFlag]:
        if not tx.amount.is_finite():
            return []
        if tx.amount >= self.thresholds.round_amount_threshold and is_round_amount(tx.amount, ROUND_UNIT):
            return [FraudFlag(
                FraudFlagType.ROUND_AMOUNT,
                f"Suspicious round amount: {tx.amount} (potential structuring)",
                ROUND_SEVERITY,
            )]
        return []

    def _check_high_risk_country(self, tx: Transaction, prior) -> List[FraudFlag]:
        country = tx.meta("country")
        if country and country.upper() in self.high_risk_countries:
            return [FraudFlag(
                FraudFlagType.HIGH_RISK_COUNTRY,
                f"Transaction from high-risk country: {country}",
                COUNTRY_SEVERITY,
            )]
        return []

    def _check_rapid_succession(self, tx: Transaction, prior) -> List[FraudFlag]:
        last = self._history.last(self.history_key(tx))
        if last is None:
            return []
        gap = tx.timestamp - last.timestamp
        if gap < RAPID_SUCCESSION_WINDOW:
            return [FraudFlag(
                FraudFlagType.RAPID_SUCCESSION,
                f"Transaction within {int(gap.total_seconds())} seconds of previous",
                RAPID_SEVERITY,
            )]
        return []

    def _check_amount_progression(self, tx: Transaction, prior) -> List[FraudFlag]:
        if len(prior) < PROGRESSION_LENGTH:
            return []
        recent = [e.amount for e in prior[-PROGRESSION_LENGTH:]]
        if all(a < b for a, b in zip(recent, recent[1:])):
            return [FraudFlag(
                FraudFlagType.AMOUNT_PROGRESSION,
                "Incrementing amounts detected (potential account testing)",
                PROGRESSION_SEVERITY,
            )]
        return []
