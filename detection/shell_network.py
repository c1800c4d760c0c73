"""
shell_network.py — Pass-Through account detection.

Detects relay accounts that receive funds and forward almost all of them
onward, retaining little: the building block of layered shell networks.

Signature
---------
Account B receives $5 000 from A and sends $4 990 to C.

Detection approach
------------------
An account is pass-through when:
1. it has received something (inflow > 0),
2. outflow / inflow lies in [0.9, 1.1], and
3. it has taken part in at least 4 transfers.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List

from utils.graph_builder import TransactionGraph
from utils.models import SuspiciousPattern

# ── Configurable thresholds ──────────────────────────────────────────────────
MIN_FLOW_RATIO: float = 0.9
MAX_FLOW_RATIO: float = 1.1
MIN_TX_COUNT: int = 4


@dataclass(frozen=True)
class PassThroughResult:
    account_id: str
    total_inflow: float
    total_outflow: float
    transaction_count: int
    activity_duration: timedelta
    pattern: SuspiciousPattern = SuspiciousPattern.PASS_THROUGH

    @property
    def activity_duration_hours(self) -> int:
        return int(self.activity_duration.total_seconds() // 3600)

    @property
    def flow_ratio(self) -> float:
        return self.total_outflow / self.total_inflow

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "total_inflow": round(self.total_inflow, 2),
            "total_outflow": round(self.total_outflow, 2),
            "flow_ratio": round(self.flow_ratio, 4),
            "transaction_count": self.transaction_count,
            "activity_duration_hours": self.activity_duration_hours,
            "pattern": self.pattern.value,
        }


# ── Public API ───────────────────────────────────────────────────────────────

def detect_pass_through(
    graph: TransactionGraph,
    min_ratio: float = MIN_FLOW_RATIO,
    max_ratio: float = MAX_FLOW_RATIO,
    min_tx_count: int = MIN_TX_COUNT,
) -> List[PassThroughResult]:
    """Find accounts whose outflow nearly matches their inflow.

    Parameters
    ----------
    graph : TransactionGraph
        Accumulated account graph.
    min_ratio, max_ratio : float
        Inclusive bounds on outflow / inflow.
    min_tx_count : int
        Minimum transfers the account must have taken part in.

    Returns
    -------
    list[PassThroughResult]
    """
    results: List[PassThroughResult] = []
    for account, node in graph.G.nodes(data=True):
        inflow = node["total_inflow"]
        if inflow <= 0 or node["tx_count"] < min_tx_count:
            continue
        ratio = node["total_outflow"] / inflow
        if not (min_ratio <= ratio <= max_ratio):
            continue
        results.append(
            PassThroughResult(
                account_id=account,
                total_inflow=inflow,
                total_outflow=node["total_outflow"],
                transaction_count=node["tx_count"],
                activity_duration=node["last_seen"] - node["first_seen"],
            )
        )
    return results
