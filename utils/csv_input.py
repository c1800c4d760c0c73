"""
csv_input.py — Transfer CSV validation for the graph analyzer.

Validates transfer files against the required schema before any graph
construction or detection logic runs, and converts cleaned rows into
``Transaction`` records for the validation pipeline.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Tuple, Union

import pandas as pd

from utils.models import Transaction, TransactionType

log = logging.getLogger("txnrisk.csv")

# ── Required schema ──────────────────────────────────────────────────────────
REQUIRED_COLUMNS = {
    "transaction_id": "string",
    "sender_id": "string",
    "receiver_id": "string",
    "amount": "float",
    "timestamp": "datetime",
}

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SOFT_ROW_LIMIT = 10_000


# ── Public API ───────────────────────────────────────────────────────────────

def validate_transfer_csv(df: pd.DataFrame) -> Tuple[bool, List[str], pd.DataFrame]:
    """Validate and clean a raw transfer DataFrame.

    Parameters
    ----------
    df : pd.DataFrame
        Raw DataFrame read from a transfer CSV.

    Returns
    -------
    is_valid : bool
        ``True`` if the data passes all checks.
    errors : list[str]
        Human-readable error messages (empty when valid).  Messages that
        start with ``"Warning:"`` and self-transfer notices do not fail
        validation.
    cleaned_df : pd.DataFrame
        Cleaned / type-cast copy of the input (empty DataFrame on failure).
    """
    errors: List[str] = []

    # 1. Check required columns ------------------------------------------------
    missing = set(REQUIRED_COLUMNS) - set(df.columns)
    if missing:
        errors.append(f"Missing required columns: {', '.join(sorted(missing))}")
        return False, errors, pd.DataFrame()

    cleaned = df.copy()

    # 2. Strip whitespace from id columns --------------------------------------
    for col in ("transaction_id", "sender_id", "receiver_id"):
        cleaned[col] = cleaned[col].fillna("").astype(str).str.strip()
        n_empty = int((cleaned[col] == "").sum())
        if n_empty:
            errors.append(f"Column '{col}' has {n_empty} empty/null value(s).")

    # 3. Uniqueness of transaction_id -----------------------------------------
    dup_count = int(cleaned["transaction_id"].duplicated().sum())
    if dup_count:
        errors.append(f"Column 'transaction_id' has {dup_count} duplicate value(s).")

    # 4. Amounts -----------------------------------------------------------------
    cleaned["amount"] = pd.to_numeric(cleaned["amount"], errors="coerce")
    n_bad_amount = int(cleaned["amount"].isna().sum())
    if n_bad_amount:
        errors.append(f"Column 'amount' has {n_bad_amount} non-numeric value(s).")
    n_infinite = int((cleaned["amount"].abs() == float("inf")).sum())
    if n_infinite:
        errors.append(f"Column 'amount' has {n_infinite} non-finite value(s).")
    if not cleaned["amount"].isna().all():
        n_neg = int((cleaned["amount"] <= 0).sum())
        if n_neg:
            errors.append(
                f"Column 'amount' has {n_neg} non-positive value(s). "
                "All amounts must be > 0."
            )

    # 5. Timestamps --------------------------------------------------------------
    cleaned["timestamp"] = pd.to_datetime(
        cleaned["timestamp"], format=TIMESTAMP_FORMAT, errors="coerce"
    )
    n_bad_ts = int(cleaned["timestamp"].isna().sum())
    if n_bad_ts:
        errors.append(
            f"Column 'timestamp' has {n_bad_ts} value(s) that don't match "
            f"format '{TIMESTAMP_FORMAT}'."
        )

    # 6. Self-transfers ------------------------------------------------------------
    self_mask = cleaned["sender_id"] == cleaned["receiver_id"]
    n_self = int(self_mask.sum())
    if n_self:
        errors.append(
            f"Found {n_self} self-transfer(s) (sender == receiver). "
            "These will be dropped."
        )
        log.warning("Dropping %d self-transfer row(s)", n_self)
        cleaned = cleaned[~self_mask]

    if len(cleaned) == 0:
        errors.append("No valid transactions remain after cleaning.")
        return False, errors, pd.DataFrame()

    # 7. Performance guard (soft warning) ----------------------------------------
    if len(cleaned) > SOFT_ROW_LIMIT:
        errors.append(
            f"Warning: {len(cleaned)} transactions detected. "
            f"Performance may degrade above {SOFT_ROW_LIMIT} rows."
        )

    is_valid = not any(
        e for e in errors
        if not e.startswith("Warning:") and "self-transfer" not in e.lower()
    )
    if not is_valid:
        log.warning("Transfer data rejected: %s", "; ".join(errors))
        return False, errors, pd.DataFrame()

    cleaned = cleaned.sort_values("timestamp").reset_index(drop=True)
    return True, errors, cleaned


def load_transfer_csv(path: Union[str, Path]) -> Tuple[bool, List[str], pd.DataFrame]:
    """Read *path* and run ``validate_transfer_csv`` over it."""
    try:
        raw = pd.read_csv(path, dtype={"transaction_id": str, "sender_id": str, "receiver_id": str})
    except (OSError, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        return False, [f"Could not read '{path}': {exc}"], pd.DataFrame()
    return validate_transfer_csv(raw)


def frame_to_transactions(df: pd.DataFrame, currency: str = "USD") -> List[Transaction]:
    """Convert cleaned transfer rows into ``Transaction`` records.

    Each row becomes a ``transfer`` owned by its sender.
    """
    out: List[Transaction] = []
    for row in df.itertuples(index=False):
        out.append(
            Transaction(
                transaction_id=str(row.transaction_id),
                transaction_type=TransactionType.TRANSFER,
                amount=round(float(row.amount), 2),
                currency=currency,
                from_account=str(row.sender_id),
                to_account=str(row.receiver_id),
                timestamp=row.timestamp.to_pydatetime(),
                user_id=str(row.sender_id),
            )
        )
    return out


def quick_stats(df: pd.DataFrame) -> Dict[str, Any]:
    """Return a small summary dict of a *cleaned* transfer DataFrame.

    Keys: total_transactions, unique_senders, unique_receivers,
          unique_accounts, min_amount, max_amount, date_range.
    """
    all_accounts = set(df["sender_id"].unique()) | set(df["receiver_id"].unique())
    return {
        "total_transactions": len(df),
        "unique_senders": int(df["sender_id"].nunique()),
        "unique_receivers": int(df["receiver_id"].nunique()),
        "unique_accounts": len(all_accounts),
        "min_amount": float(df["amount"].min()),
        "max_amount": float(df["amount"].max()),
        "date_range": (
            str(df["timestamp"].min()),
            str(df["timestamp"].max()),
        ),
    }
