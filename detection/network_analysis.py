"""
network_analysis.py — Run every graph detector and assemble one report.

Detectors are pure reads over the current ``TransactionGraph``; nothing is
cached between ``analyze_all`` calls, so each report reflects the graph as
it stands at call time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pandas as pd

from detection.cycles import DEFAULT_MAX_HOPS, CircularFlowResult, detect_circular_flows
from detection.shell_network import PassThroughResult, detect_pass_through
from detection.smurfing import FlowConcentrationResult, detect_flow_concentration
from detection.structuring import StructuringResult, detect_structuring
from utils.graph_builder import AccountStats, GraphStats, TransactionGraph

log = logging.getLogger("txnrisk.network")


@dataclass
class NetworkAnalysisReport:
    circular_flows: List[CircularFlowResult]
    structuring: List[StructuringResult]
    funnel_accounts: List[FlowConcentrationResult]
    pass_through: List[PassThroughResult]
    graph_stats: GraphStats
    analysis_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def has_suspicious_activity(self) -> bool:
        return self.suspicious_pattern_count() > 0

    def suspicious_pattern_count(self) -> int:
        return (
            len(self.circular_flows)
            + len(self.structuring)
            + len(self.funnel_accounts)
            + len(self.pass_through)
        )

    def flagged_accounts(self) -> List[str]:
        """Every account named by any finding, sorted."""
        flagged = set()
        for flow in self.circular_flows:
            flagged.update(flow.accounts)
        for result in self.structuring:
            flagged.add(result.account_id)
        for result in self.funnel_accounts:
            flagged.add(result.account_id)
        for result in self.pass_through:
            flagged.add(result.account_id)
        return sorted(flagged)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "circular_flows": [r.to_dict() for r in self.circular_flows],
            "structuring": [r.to_dict() for r in self.structuring],
            "funnel_accounts": [r.to_dict() for r in self.funnel_accounts],
            "pass_through": [r.to_dict() for r in self.pass_through],
            "graph_stats": self.graph_stats.to_dict(),
            "analysis_time": self.analysis_time.isoformat(),
            "summary": {
                "has_suspicious_activity": self.has_suspicious_activity(),
                "suspicious_pattern_count": self.suspicious_pattern_count(),
                "flagged_accounts": self.flagged_accounts(),
            },
        }


# ── Public API ───────────────────────────────────────────────────────────────

class NetworkAnalyzer:
    """Owns one ``TransactionGraph`` and runs all detectors over it."""

    def __init__(self, graph: Optional[TransactionGraph] = None) -> None:
        self.graph = graph if graph is not None else TransactionGraph()

    def add_transaction(
        self,
        from_account: str,
        to_account: str,
        amount: Any,
        timestamp: datetime,
    ) -> None:
        self.graph.add_transaction(from_account, to_account, amount, timestamp)

    def add_frame(self, df: pd.DataFrame) -> int:
        return self.graph.add_frame(df)

    def analyze_all(self, max_hops: int = DEFAULT_MAX_HOPS) -> NetworkAnalysisReport:
        report = NetworkAnalysisReport(
            circular_flows=detect_circular_flows(self.graph, max_hops=max_hops),
            structuring=detect_structuring(self.graph),
            funnel_accounts=detect_flow_concentration(self.graph),
            pass_through=detect_pass_through(self.graph),
            graph_stats=self.graph.get_stats(),
        )
        log.info(
            "Network analysis over %d accounts: %d finding(s) "
            "(cycles=%d structuring=%d concentration=%d pass_through=%d)",
            report.graph_stats.node_count,
            report.suspicious_pattern_count(),
            len(report.circular_flows),
            len(report.structuring),
            len(report.funnel_accounts),
            len(report.pass_through),
        )
        return report

    def get_account_stats(self, account: str) -> Optional[AccountStats]:
        return self.graph.get_account_stats(account)
