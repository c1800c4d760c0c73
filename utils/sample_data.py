"""
sample_data.py — Generate synthetic transactions and transfer data that
contain fraud and money-laundering patterns for demonstration and testing.

Transfer patterns embedded (``generate_sample_frame``):
- Circular routing (rings of 3, 4 and 5 accounts)
- Structuring (several payees, each just under 10,000)
- Funnel fan-in / distributor fan-out
- Pass-through relay chains
- Normal legitimate traffic as background noise

Pipeline scenarios (``sample_transactions``): a clean payment, a large
wire, a negative amount, a malformed account, a deposit with no
destination, a duplicate id, a high-risk-country payment and a 3 a.m.
transfer.
"""

from __future__ import annotations

import random
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import numpy as np
import pandas as pd

from utils.models import Transaction, TransactionType


def account_id(prefix: str, n: int) -> str:
    """Account number in the ``XXXX-XXXX-XXXX-XXXX`` format."""
    return f"{prefix}-0000-0000-{n:04d}"


def generate_sample_frame(
    n_normal: int = 200,
    seed: int = 42,
) -> pd.DataFrame:
    """Generate a transfer DataFrame with embedded laundering patterns.

    Parameters
    ----------
    n_normal : int
        Number of normal (background) transfers.
    seed : int
        Random seed for reproducibility.

    Returns
    -------
    pd.DataFrame
        Columns: transaction_id, sender_id, receiver_id, amount, timestamp
        (timestamps as ``YYYY-MM-DD HH:MM:SS`` strings, like a raw CSV).
    """
    rng = random.Random(seed)

    rows: List[dict] = []
    tx_counter = 0
    base_time = datetime(2025, 6, 1, 8, 0, 0)

    def _add_tx(sender: str, receiver: str, amount: float, ts: datetime) -> None:
        nonlocal tx_counter
        tx_counter += 1
        rows.append({
            "transaction_id": f"TXN-{tx_counter:05d}",
            "sender_id": sender,
            "receiver_id": receiver,
            "amount": round(amount, 2),
            "timestamp": ts.strftime("%Y-%m-%d %H:%M:%S"),
        })

    # ── 1. Normal legitimate traffic ─────────────────────────────────────
    normal_accounts = [account_id("ACCT", i) for i in range(1, 81)]
    for _ in range(n_normal):
        s, r = rng.sample(normal_accounts, 2)
        ts = base_time + timedelta(
            days=rng.randint(0, 60),
            hours=rng.randint(0, 12),
            minutes=rng.randint(0, 59),
        )
        _add_tx(s, r, rng.uniform(10, 5000), ts)

    # ── 2. Circular routing (3 rings) ────────────────────────────────────
    for prefix, size, amount, day in (("MULA", 3, 4500.0, 5), ("MULB", 4, 3800.0, 10), ("MULC", 5, 6000.0, 20)):
        ring = [account_id(prefix, i) for i in range(1, size + 1)]
        t = base_time + timedelta(days=day, hours=2)
        for i in range(size):
            _add_tx(ring[i], ring[(i + 1) % size], amount, t)
            t += timedelta(hours=1)

    # ── 3. Structuring (1 payer → 4 payees, each just under 10k) ────────
    structurer = account_id("STRC", 1)
    t = base_time + timedelta(days=12, hours=3)
    for i in range(1, 5):
        _add_tx(structurer, account_id("STRP", i), rng.uniform(9000, 9900), t)
        t += timedelta(hours=rng.randint(2, 8))

    # ── 4. Funnel — fan-in (12 senders → 1 collector → 1 exit) ──────────
    collector = account_id("HUBI", 1)
    t = base_time + timedelta(days=15, hours=2)
    for i in range(1, 13):
        _add_tx(account_id("SMIN", i), collector, rng.uniform(480, 500), t)
        t += timedelta(minutes=rng.randint(10, 45))
    _add_tx(collector, account_id("EXIT", 1), 5800.0, t)

    # ── 5. Distributor — fan-out (1 hub → 11 recipients) ─────────────────
    distributor = account_id("HUBO", 1)
    t = base_time + timedelta(days=18, hours=4)
    for i in range(1, 12):
        _add_tx(distributor, account_id("SMOT", i), rng.uniform(290, 310), t)
        t += timedelta(minutes=rng.randint(5, 30))

    # ── 6. Pass-through relay chain (two passes) ─────────────────────────
    chain = [account_id("SHEL", i) for i in range(1, 6)]
    t = base_time + timedelta(days=25, hours=3)
    for start_amount in (8000.0, 7500.0):
        amount = start_amount
        for i in range(len(chain) - 1):
            _add_tx(chain[i], chain[i + 1], amount, t)
            amount -= round(rng.uniform(5, 15), 2)  # tiny fee / retention
            t += timedelta(hours=rng.randint(1, 4))
        t += timedelta(days=2)

    df = pd.DataFrame(rows)
    # Shuffle rows so patterns aren't visually obvious in the raw CSV
    df = df.sample(frac=1, random_state=np.random.RandomState(seed)).reset_index(drop=True)
    return df


def sample_csv_bytes(seed: int = 42) -> bytes:
    """Return the sample transfer data as UTF-8 CSV bytes."""
    return generate_sample_frame(seed=seed).to_csv(index=False).encode("utf-8")


def sample_transactions(base_time: Optional[datetime] = None) -> List[Transaction]:
    """One transaction per pipeline scenario, in a fixed order."""
    t0 = base_time or datetime(2025, 6, 2, 12, 0, tzinfo=timezone.utc)
    payer, payee = account_id("ACCT", 1), account_id("ACCT", 2)

    def _tx(tx_id: str, tx_type: TransactionType, amount: str, minutes: int, **kw) -> Transaction:
        return Transaction(
            transaction_id=tx_id,
            transaction_type=tx_type,
            amount=amount,
            currency="USD",
            from_account=kw.get("from_account", payer),
            to_account=kw.get("to_account", payee),
            timestamp=t0 + timedelta(minutes=minutes),
            user_id=kw.get("user_id", "USER-001"),
            metadata=kw.get("metadata"),
        )

    return [
        _tx("TXN-0001", TransactionType.PAYMENT, "250.00", 0),
        _tx("TXN-0002", TransactionType.WIRE_TRANSFER, "100000.00", 5, user_id="USER-002"),
        _tx("TXN-0003", TransactionType.TRANSFER, "-1000.00", 10, user_id="USER-003"),
        _tx("TXN-0004", TransactionType.TRANSFER, "500.00", 15, from_account="ACC-123", user_id="USER-004"),
        _tx("TXN-0005", TransactionType.DEPOSIT, "750.00", 20, from_account=None, to_account=None,
            user_id="USER-005"),
        _tx("TXN-0001", TransactionType.PAYMENT, "250.00", 25),
        _tx("TXN-0006", TransactionType.TRANSFER, "1200.00", 30, user_id="USER-006",
            from_account=account_id("ACCT", 6), metadata={"country": "KP"}),
        _tx("TXN-0007", TransactionType.TRANSFER, "900.00", 15 * 60, user_id="USER-007",
            from_account=account_id("ACCT", 7)),
    ]
