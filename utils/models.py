"""
models.py — Core records shared by the scoring pipeline and the graph.

A ``Transaction`` is the unit fed to the validation pipeline and the fraud
scorer.  Nothing about it is validated at construction time; validity is an
output of ``TransactionValidator.validate``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional


class TransactionType(str, Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRANSFER = "transfer"
    PAYMENT = "payment"
    WIRE_TRANSFER = "wire_transfer"


class SuspiciousPattern(str, Enum):
    """Network-level pattern labels used in graph findings."""

    CIRCULAR_FLOW = "circular_flow"
    LAYERING = "layering"
    STRUCTURING = "structuring"
    FUNNEL_ACCOUNT = "funnel_account"
    AGGREGATOR = "aggregator"
    DISTRIBUTOR = "distributor"
    THRESHOLD_AVOIDANCE = "threshold_avoidance"
    PASS_THROUGH = "pass_through"


def to_decimal(value: Any) -> Decimal:
    """Coerce ints, floats and strings to ``Decimal`` without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_amount(value: Any) -> Decimal:
    """``to_decimal`` for untrusted input: NaN and infinities are rejected."""
    amount = to_decimal(value)
    if not amount.is_finite():
        raise ValueError(f"amount must be a finite number, got {value!r}")
    return amount


def is_round_amount(amount: Decimal, unit: Decimal) -> bool:
    """Whole multiple of *unit*.  Safe for amounts beyond the context precision."""
    if not amount.is_finite() or amount != amount.to_integral_value():
        return False
    return int(amount) % int(unit) == 0


def to_utc(ts: datetime) -> datetime:
    """Normalise *ts* to an aware UTC datetime (naive values are taken as UTC)."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> datetime:
    """Accept a datetime or an ISO-8601 string (a trailing ``Z`` is allowed)."""
    if isinstance(value, datetime):
        return to_utc(value)
    if isinstance(value, str):
        return to_utc(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
    raise TypeError(f"unsupported timestamp: {value!r}")


@dataclass
class Transaction:
    transaction_id: str
    transaction_type: TransactionType
    amount: Decimal
    currency: str
    from_account: Optional[str]
    to_account: Optional[str]
    timestamp: datetime
    user_id: str
    metadata: Optional[Dict[str, str]] = None

    def __post_init__(self) -> None:
        self.transaction_type = TransactionType(self.transaction_type)
        self.amount = to_decimal(self.amount)
        self.timestamp = to_utc(self.timestamp)

    def meta(self, key: str) -> Optional[str]:
        if not self.metadata:
            return None
        return self.metadata.get(key)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Transaction":
        """Build a transaction from a JSON-style mapping.

        ``timestamp`` may be a datetime or an ISO-8601 string (a trailing
        ``Z`` is accepted).  ``transaction_type`` is given by value, e.g.
        ``"wire_transfer"``.  Non-finite amounts raise ``ValueError``.
        """
        ts = parse_timestamp(data["timestamp"])
        metadata = data.get("metadata")
        return cls(
            transaction_id=str(data["transaction_id"]),
            transaction_type=TransactionType(data["transaction_type"]),
            amount=parse_amount(data["amount"]),
            currency=str(data.get("currency", "USD")),
            from_account=data.get("from_account"),
            to_account=data.get("to_account"),
            timestamp=ts,
            user_id=str(data["user_id"]),
            metadata={str(k): str(v) for k, v in metadata.items()} if metadata else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "currency": self.currency,
            "from_account": self.from_account,
            "to_account": self.to_account,
            "timestamp": self.timestamp.isoformat(),
            "user_id": self.user_id,
            "metadata": dict(self.metadata) if self.metadata else None,
        }


@dataclass(frozen=True)
class HistoryEntry:
    """Windowed-aggregation projection of a transaction: (key, timestamp, amount)."""

    key: str
    timestamp: datetime
    amount: Decimal
