"""
graph_builder.py — Incrementally built, weighted, directed account graph.

Each node is an account (sender or receiver).
Each edge aggregates every transfer between one ordered pair of accounts,
so parallel transfers collapse into a single edge carrying their total,
their count and their timestamps.

Node attributes
---------------
- total_inflow  : float — sum of incoming amounts
- total_outflow : float — sum of outgoing amounts
- tx_count      : int   — transfers touching the account (a self-transfer counts twice)
- first_seen    : datetime — earliest transfer timestamp
- last_seen     : datetime — latest transfer timestamp

Edge attributes
---------------
- total_amount : float
- tx_count     : int
- timestamps   : list[datetime] — in arrival order
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import networkx as nx
import pandas as pd

from utils.models import to_utc

log = logging.getLogger("txnrisk.graph")

DEFAULT_REPORTING_THRESHOLD = 10_000.0


@dataclass(frozen=True)
class AccountStats:
    account_id: str
    total_inflow: float
    total_outflow: float
    net_flow: float
    tx_count: int
    incoming_count: int
    outgoing_count: int
    first_seen: datetime
    last_seen: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account_id": self.account_id,
            "total_inflow": round(self.total_inflow, 2),
            "total_outflow": round(self.total_outflow, 2),
            "net_flow": round(self.net_flow, 2),
            "tx_count": self.tx_count,
            "incoming_count": self.incoming_count,
            "outgoing_count": self.outgoing_count,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
        }


@dataclass(frozen=True)
class GraphStats:
    node_count: int
    edge_count: int
    total_transactions: int
    total_amount: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "node_count": self.node_count,
            "edge_count": self.edge_count,
            "total_transactions": self.total_transactions,
            "total_amount": round(self.total_amount, 2),
        }


# ── Public API ───────────────────────────────────────────────────────────────

class TransactionGraph:
    """Accumulating account graph.  Transfers are only ever added."""

    def __init__(self, reporting_threshold: float = DEFAULT_REPORTING_THRESHOLD) -> None:
        self.G = nx.DiGraph()
        self.reporting_threshold = float(reporting_threshold)

    def set_reporting_threshold(self, threshold: float) -> None:
        self.reporting_threshold = float(threshold)

    def add_transaction(
        self,
        from_account: str,
        to_account: str,
        amount: Any,
        timestamp: datetime,
    ) -> None:
        """Fold one transfer into the node and edge aggregates."""
        amount = float(amount)
        timestamp = to_utc(timestamp)

        self._touch(from_account, timestamp)
        self.G.nodes[from_account]["total_outflow"] += amount
        self.G.nodes[from_account]["tx_count"] += 1

        self._touch(to_account, timestamp)
        self.G.nodes[to_account]["total_inflow"] += amount
        self.G.nodes[to_account]["tx_count"] += 1

        if self.G.has_edge(from_account, to_account):
            edata = self.G[from_account][to_account]
            edata["total_amount"] += amount
            edata["tx_count"] += 1
            edata["timestamps"].append(timestamp)
        else:
            self.G.add_edge(
                from_account,
                to_account,
                total_amount=amount,
                tx_count=1,
                timestamps=[timestamp],
            )

    def add_frame(self, df: pd.DataFrame) -> int:
        """Ingest a cleaned transfer DataFrame (see ``utils.csv_input``).

        Returns the number of rows added.
        """
        added = 0
        for row in df.itertuples(index=False):
            ts = row.timestamp
            if isinstance(ts, pd.Timestamp):
                ts = ts.to_pydatetime()
            self.add_transaction(str(row.sender_id), str(row.receiver_id), row.amount, ts)
            added += 1
        log.info("Ingested %d transfers; graph has %d accounts", added, self.G.number_of_nodes())
        return added

    # ── Read helpers ─────────────────────────────────────────────────────

    def accounts(self) -> List[str]:
        return list(self.G.nodes())

    def incoming_accounts(self, account: str) -> List[str]:
        if account not in self.G:
            return []
        return list(self.G.predecessors(account))

    def outgoing_accounts(self, account: str) -> List[str]:
        if account not in self.G:
            return []
        return list(self.G.successors(account))

    def edge(self, from_account: str, to_account: str) -> Optional[Dict[str, Any]]:
        if not self.G.has_edge(from_account, to_account):
            return None
        return self.G[from_account][to_account]

    def get_account_stats(self, account: str) -> Optional[AccountStats]:
        if account not in self.G:
            return None
        node = self.G.nodes[account]
        return AccountStats(
            account_id=account,
            total_inflow=node["total_inflow"],
            total_outflow=node["total_outflow"],
            net_flow=node["total_inflow"] - node["total_outflow"],
            tx_count=node["tx_count"],
            incoming_count=self.G.in_degree(account),
            outgoing_count=self.G.out_degree(account),
            first_seen=node["first_seen"],
            last_seen=node["last_seen"],
        )

    def get_stats(self) -> GraphStats:
        total_transactions = 0
        total_amount = 0.0
        for _, _, edata in self.G.edges(data=True):
            total_transactions += edata["tx_count"]
            total_amount += edata["total_amount"]
        return GraphStats(
            node_count=self.G.number_of_nodes(),
            edge_count=self.G.number_of_edges(),
            total_transactions=total_transactions,
            total_amount=total_amount,
        )

    def __contains__(self, account: object) -> bool:
        return account in self.G

    def __len__(self) -> int:
        return self.G.number_of_nodes()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _touch(self, account: str, timestamp: datetime) -> None:
        if account not in self.G:
            self.G.add_node(
                account,
                total_inflow=0.0,
                total_outflow=0.0,
                tx_count=0,
                first_seen=timestamp,
                last_seen=timestamp,
            )
            return
        node = self.G.nodes[account]
        node["first_seen"] = min(node["first_seen"], timestamp)
        node["last_seen"] = max(node["last_seen"], timestamp)


def build_graph_from_frame(
    df: pd.DataFrame,
    reporting_threshold: float = DEFAULT_REPORTING_THRESHOLD,
) -> TransactionGraph:
    """Build a fresh ``TransactionGraph`` from a cleaned transfer DataFrame."""
    graph = TransactionGraph(reporting_threshold=reporting_threshold)
    graph.add_frame(df)
    return graph
