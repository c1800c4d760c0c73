"""
smurfing.py — Funnel / Distributor (fan-in, fan-out) detection.

"Smurfing" collects funds from, or spreads funds across, many
counterparties through one hub account.

Detection targets
-----------------
Funnel      (Collection)   : ≥ 5 distinct senders, ≤ 2 distinct receivers.
Distributor (Distribution) : ≤ 2 distinct senders, ≥ 5 distinct receivers.

Counts are of distinct counterparties, not of transfers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from utils.graph_builder import TransactionGraph
from utils.models import SuspiciousPattern

# ── Configurable thresholds ──────────────────────────────────────────────────

FAN_DEGREE_THRESHOLD: int = 5           # min distinct counterparties on the wide side
NARROW_DEGREE_LIMIT: int = 2            # max distinct counterparties on the narrow side


@dataclass(frozen=True)
class FlowConcentrationResult:
    account_id: str
    incoming_count: int
    outgoing_count: int
    total_inflow: float
    total_outflow: float
    pattern: SuspiciousPattern

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "incoming_count": self.incoming_count,
            "outgoing_count": self.outgoing_count,
            "total_inflow": round(self.total_inflow, 2),
            "total_outflow": round(self.total_outflow, 2),
            "pattern": self.pattern.value,
        }


# ── Public API ───────────────────────────────────────────────────────────────

def detect_funnel_accounts(
    graph: TransactionGraph,
    fan_threshold: int = FAN_DEGREE_THRESHOLD,
    narrow_limit: int = NARROW_DEGREE_LIMIT,
) -> List[FlowConcentrationResult]:
    """Accounts collecting from many senders and forwarding to few."""
    return [
        _result(graph, account, SuspiciousPattern.FUNNEL_ACCOUNT)
        for account in graph.accounts()
        if graph.G.in_degree(account) >= fan_threshold
        and graph.G.out_degree(account) <= narrow_limit
    ]


def detect_distributor_accounts(
    graph: TransactionGraph,
    fan_threshold: int = FAN_DEGREE_THRESHOLD,
    narrow_limit: int = NARROW_DEGREE_LIMIT,
) -> List[FlowConcentrationResult]:
    """Accounts fed by few senders and paying out to many."""
    return [
        _result(graph, account, SuspiciousPattern.DISTRIBUTOR)
        for account in graph.accounts()
        if graph.G.out_degree(account) >= fan_threshold
        and graph.G.in_degree(account) <= narrow_limit
    ]


def detect_flow_concentration(
    graph: TransactionGraph,
    fan_threshold: int = FAN_DEGREE_THRESHOLD,
    narrow_limit: int = NARROW_DEGREE_LIMIT,
) -> List[FlowConcentrationResult]:
    """Funnel results followed by distributor results."""
    return (
        detect_funnel_accounts(graph, fan_threshold, narrow_limit)
        + detect_distributor_accounts(graph, fan_threshold, narrow_limit)
    )


# ── Internal helpers ─────────────────────────────────────────────────────────

def _result(
    graph: TransactionGraph,
    account: str,
    pattern: SuspiciousPattern,
) -> FlowConcentrationResult:
    node = graph.G.nodes[account]
    return FlowConcentrationResult(
        account_id=account,
        incoming_count=graph.G.in_degree(account),
        outgoing_count=graph.G.out_degree(account),
        total_inflow=node["total_inflow"],
        total_outflow=node["total_outflow"],
        pattern=pattern,
    )
