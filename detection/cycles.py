"""
cycles.py — Circular Fund Routing detection.

Detects directed paths that leave an account and come back to it within
``max_hops`` transfers, the classic layering signature: A → B → C → A.

In legitimate commerce, money rarely travels in a circle back to the
originator.  Only the first cycle found from each starting account is
reported, so a ring of N accounts shows up N times (once per member).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from utils.graph_builder import TransactionGraph
from utils.models import SuspiciousPattern

DEFAULT_MAX_HOPS: int = 5
MIN_CYCLE_ACCOUNTS: int = 3


@dataclass(frozen=True)
class CircularFlowResult:
    accounts: List[str]
    total_amount: float
    pattern: SuspiciousPattern = SuspiciousPattern.CIRCULAR_FLOW

    @property
    def start_account(self) -> str:
        return self.accounts[0]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accounts": list(self.accounts),
            "total_amount": round(self.total_amount, 2),
            "pattern": self.pattern.value,
        }


# ── Public API ───────────────────────────────────────────────────────────────

def detect_circular_flows(
    graph: TransactionGraph,
    max_hops: int = DEFAULT_MAX_HOPS,
) -> List[CircularFlowResult]:
    """Return the first circular path found from each account.

    Parameters
    ----------
    graph : TransactionGraph
        Accumulated account graph.
    max_hops : int
        Maximum number of transfers in a reported cycle.

    Returns
    -------
    list[CircularFlowResult]
        In account insertion order.  ``accounts`` starts and ends with the
        starting account; ``total_amount`` sums every traversed edge.
    """
    results: List[CircularFlowResult] = []
    for start in graph.accounts():
        path = _find_circular_path(graph, start, max_hops)
        if path is None:
            continue
        total = sum(
            graph.G[u][v]["total_amount"] for u, v in zip(path, path[1:])
        )
        results.append(CircularFlowResult(accounts=path, total_amount=total))
    return results


# ── Internal helpers ─────────────────────────────────────────────────────────

def _find_circular_path(
    graph: TransactionGraph,
    start: str,
    max_hops: int,
) -> Optional[List[str]]:
    path = [start]
    on_path: Set[str] = {start}
    return _dfs(graph, start, start, path, on_path, max_hops)


def _dfs(
    graph: TransactionGraph,
    current: str,
    target: str,
    path: List[str],
    on_path: Set[str],
    remaining: int,
) -> Optional[List[str]]:
    """Depth-first search with on-path membership pushed/popped per step."""
    if remaining == 0:
        return None

    for nxt in graph.G.successors(current):
        if nxt == target:
            if len(path) >= MIN_CYCLE_ACCOUNTS:
                return path + [target]
            continue
        if nxt in on_path:
            continue

        on_path.add(nxt)
        path.append(nxt)
        found = _dfs(graph, nxt, target, path, on_path, remaining - 1)
        if found is not None:
            return found
        path.pop()
        on_path.discard(nxt)

    return None
