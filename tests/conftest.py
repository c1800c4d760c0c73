"""Shared fixtures for the transaction risk test suite."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from detection.network_analysis import NetworkAnalyzer
from utils.config import ValidatorConfig
from utils.graph_builder import TransactionGraph
from utils.models import Transaction, TransactionType
from utils.validation import TransactionValidator

# Noon UTC: inside business hours, so time-of-day risk is zero.
BASE_TIME = datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)

ACCT_A = "1234-5678-9012-3456"
ACCT_B = "6543-2109-8765-4321"


@pytest.fixture
def base_time() -> datetime:
    return BASE_TIME


@pytest.fixture
def make_tx():
    """Factory for transactions with unique ids and sane defaults.

    ``minutes`` / ``seconds`` offset the timestamp from ``BASE_TIME``; any
    ``Transaction`` field can be overridden by keyword.
    """
    counter = itertools.count(1)

    def _make(amount="100.00", tx_type=TransactionType.TRANSFER, minutes=0, seconds=0, **overrides):
        fields = dict(
            transaction_id=f"TXN-{next(counter):04d}",
            transaction_type=tx_type,
            amount=amount,
            currency="USD",
            from_account=ACCT_A,
            to_account=ACCT_B,
            timestamp=BASE_TIME + timedelta(minutes=minutes, seconds=seconds),
            user_id="USER-001",
            metadata=None,
        )
        fields.update(overrides)
        return Transaction(**fields)

    return _make


@pytest.fixture
def validator() -> TransactionValidator:
    return TransactionValidator(ValidatorConfig())


@pytest.fixture
def graph() -> TransactionGraph:
    return TransactionGraph()


@pytest.fixture
def analyzer() -> NetworkAnalyzer:
    return NetworkAnalyzer()


@pytest.fixture
def add_transfers(graph):
    """Add ``(from, to, amount)`` triples to ``graph`` one minute apart."""

    def _add(*transfers, start=BASE_TIME):
        for i, (src, dst, amount) in enumerate(transfers):
            graph.add_transaction(src, dst, amount, start + timedelta(minutes=i))
        return graph

    return _add
