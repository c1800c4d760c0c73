"""
structuring.py — Structuring / Threshold Avoidance detection.

Pattern: Multiple transfers just below a reporting threshold.
Example: If the CTR threshold = 10,000 → Criminal sends 9500, 9200, 9800.

Why Suspicious?
Deliberately splitting transfers to avoid Currency Transaction
Reports (CTRs) or other AML threshold triggers.

Detection:
- Per account, look at each outgoing edge's *average* transfer amount
  (edge total ÷ edge transfer count).
- An edge is suspicious when that average falls in
  ``[threshold × 0.85, threshold)``.
- Three or more suspicious edges flag the account.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from utils.graph_builder import TransactionGraph
from utils.models import SuspiciousPattern

# ── Configurable thresholds ──────────────────────────────────────────────────
BELOW_THRESHOLD_PCT: float = 0.15      # within 15% below threshold
MIN_STRUCTURING_EDGES: int = 3         # minimum suspicious edges to flag


@dataclass(frozen=True)
class StructuringResult:
    account_id: str
    transaction_amounts: List[float]
    total_amount: float
    threshold_avoided: float
    pattern: SuspiciousPattern = SuspiciousPattern.STRUCTURING

    @property
    def mean_amount(self) -> float:
        return float(np.mean(self.transaction_amounts))

    @property
    def amount_std(self) -> float:
        """Spread of the near-threshold averages; low values mean uniform splitting."""
        return float(np.std(self.transaction_amounts))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "transaction_amounts": [round(a, 2) for a in self.transaction_amounts],
            "total_amount": round(self.total_amount, 2),
            "mean_amount": round(self.mean_amount, 2),
            "amount_std": round(self.amount_std, 2),
            "threshold_avoided": self.threshold_avoided,
            "pattern": self.pattern.value,
        }


def detect_structuring(
    graph: TransactionGraph,
    threshold: Optional[float] = None,
    below_pct: float = BELOW_THRESHOLD_PCT,
    min_edges: int = MIN_STRUCTURING_EDGES,
) -> List[StructuringResult]:
    """Flag accounts whose outgoing edges average just under a threshold.

    Parameters
    ----------
    graph : TransactionGraph
        Accumulated account graph.
    threshold : float or None
        Reporting threshold; defaults to the graph's ``reporting_threshold``.
    below_pct : float
        Width of the band below the threshold, as a fraction of it.
    min_edges : int
        Minimum qualifying edges to flag the account.

    Returns
    -------
    list[StructuringResult]
    """
    if threshold is None:
        threshold = graph.reporting_threshold
    lower_bound = threshold - threshold * below_pct

    results: List[StructuringResult] = []
    for account in graph.accounts():
        averages: List[float] = []
        for _, _, edata in graph.G.out_edges(account, data=True):
            avg = edata["total_amount"] / edata["tx_count"]
            if lower_bound <= avg < threshold:
                averages.append(avg)

        if len(averages) >= min_edges:
            results.append(
                StructuringResult(
                    account_id=account,
                    transaction_amounts=averages,
                    total_amount=sum(averages),
                    threshold_avoided=threshold,
                )
            )
    return results
