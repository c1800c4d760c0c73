"""
config.py — Validator and fraud-scorer configuration.

Defaults live on the dataclasses.  ``from_env`` overlays ``TXN_*``
environment variables (a project-root ``.env`` is loaded first when
present):

- TXN_MAX_TRANSACTION_AMOUNT, TXN_MIN_TRANSACTION_AMOUNT
- TXN_FRAUD_THRESHOLD
- TXN_ENABLE_DUPLICATE_CHECK, TXN_ENABLE_AML_CHECK, TXN_ENABLE_FRAUD_SCORING
- TXN_VELOCITY_WINDOW_MINUTES, TXN_MAX_TRANSACTIONS_PER_WINDOW,
  TXN_MAX_AMOUNT_PER_WINDOW
- TXN_FRAUD_MAX_AMOUNT, TXN_FRAUD_MAX_PER_HOUR, TXN_FRAUD_ROUND_THRESHOLD
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from dotenv import load_dotenv

from utils.models import to_decimal

_ROOT = Path(__file__).resolve().parent.parent
_ENV_PATH = _ROOT / ".env"

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def load_env(path: Optional[Path] = None) -> None:
    """Load ``.env`` from the project root. Existing variables win."""
    load_dotenv(path or _ENV_PATH, override=False)


def _parse_bool(raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def _parse_decimal(raw: str) -> Decimal:
    try:
        return Decimal(raw.strip())
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal: {raw!r}") from exc


def _read_env(mapping: Dict[str, tuple[str, Callable[[str], Any]]]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for field_name, (env_name, parse) in mapping.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        try:
            out[field_name] = parse(raw)
        except ValueError as exc:
            raise ValueError(f"{env_name}: {exc}") from exc
    return out


# ── Validation pipeline ──────────────────────────────────────────────────────

@dataclass
class ValidatorConfig:
    max_transaction_amount: Decimal = Decimal("1000000")
    min_transaction_amount: Decimal = Decimal("0.01")
    fraud_threshold: int = 70
    enable_duplicate_check: bool = True
    enable_aml_check: bool = True
    velocity_check_window_minutes: int = 60
    max_transactions_per_window: int = 10
    max_amount_per_window: Decimal = Decimal("100000")
    enable_fraud_scoring: bool = True

    def __post_init__(self) -> None:
        self.max_transaction_amount = to_decimal(self.max_transaction_amount)
        self.min_transaction_amount = to_decimal(self.min_transaction_amount)
        self.max_amount_per_window = to_decimal(self.max_amount_per_window)

        if self.min_transaction_amount > self.max_transaction_amount:
            raise ValueError("min_transaction_amount exceeds max_transaction_amount")
        if not 0 <= self.fraud_threshold <= 100:
            raise ValueError("fraud_threshold must be within 0-100")
        if self.velocity_check_window_minutes <= 0:
            raise ValueError("velocity_check_window_minutes must be positive")
        if self.max_transactions_per_window <= 0:
            raise ValueError("max_transactions_per_window must be positive")
        if self.max_amount_per_window <= 0:
            raise ValueError("max_amount_per_window must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> "ValidatorConfig":
        load_env()
        values = _read_env({
            "max_transaction_amount": ("TXN_MAX_TRANSACTION_AMOUNT", _parse_decimal),
            "min_transaction_amount": ("TXN_MIN_TRANSACTION_AMOUNT", _parse_decimal),
            "fraud_threshold": ("TXN_FRAUD_THRESHOLD", int),
            "enable_duplicate_check": ("TXN_ENABLE_DUPLICATE_CHECK", _parse_bool),
            "enable_aml_check": ("TXN_ENABLE_AML_CHECK", _parse_bool),
            "enable_fraud_scoring": ("TXN_ENABLE_FRAUD_SCORING", _parse_bool),
            "velocity_check_window_minutes": ("TXN_VELOCITY_WINDOW_MINUTES", int),
            "max_transactions_per_window": ("TXN_MAX_TRANSACTIONS_PER_WINDOW", int),
            "max_amount_per_window": ("TXN_MAX_AMOUNT_PER_WINDOW", _parse_decimal),
        })
        values.update(overrides)
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = str(value) if isinstance(value, Decimal) else value
        return out


# ── Fraud scorer ─────────────────────────────────────────────────────────────

@dataclass
class FraudThresholds:
    max_amount: Decimal = Decimal("50000")
    max_transactions_per_hour: int = 10
    round_amount_threshold: Decimal = Decimal("10000")

    def __post_init__(self) -> None:
        self.max_amount = to_decimal(self.max_amount)
        self.round_amount_threshold = to_decimal(self.round_amount_threshold)
        if self.max_transactions_per_hour <= 0:
            raise ValueError("max_transactions_per_hour must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> "FraudThresholds":
        load_env()
        values = _read_env({
            "max_amount": ("TXN_FRAUD_MAX_AMOUNT", _parse_decimal),
            "max_transactions_per_hour": ("TXN_FRAUD_MAX_PER_HOUR", int),
            "round_amount_threshold": ("TXN_FRAUD_ROUND_THRESHOLD", _parse_decimal),
        })
        values.update(overrides)
        return cls(**values)
