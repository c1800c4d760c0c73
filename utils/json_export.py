"""
json_export.py — Serialise validation results and network reports.

Output Schema (``generate_report``)
-----------------------------------
{
  "validation": { "results": [ ... ], "summary": { ... } },
  "network":    { ...NetworkAnalysisReport.to_dict()... },
  "summary":    { ... }
}
"""

from __future__ import annotations

import json
from collections import Counter
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import pandas as pd

from utils.results import RiskLevel, ValidationResult

if TYPE_CHECKING:
    from detection.network_analysis import NetworkAnalysisReport


def summarize_validation(results: Sequence[ValidationResult]) -> Dict[str, Any]:
    """Counts over a batch of validation results."""
    levels = Counter(r.risk_level().value for r in results)
    error_kinds = Counter(e.kind.value for r in results for e in r.errors)
    return {
        "total": len(results),
        "valid": sum(1 for r in results if r.is_valid),
        "approved": sum(1 for r in results if r.is_approved()),
        "manual_review": sum(1 for r in results if r.requires_manual_review()),
        "risk_levels": {level.value: levels.get(level.value, 0) for level in RiskLevel},
        "error_kinds": dict(error_kinds),
    }


def generate_report(
    results: Sequence[ValidationResult],
    network_report: Optional["NetworkAnalysisReport"] = None,
    processing_time: float = 0.0,
) -> Dict[str, Any]:
    """Build the JSON-serialisable run report.

    Parameters
    ----------
    results : sequence of ValidationResult
        Pipeline outputs, in submission order.
    network_report : NetworkAnalysisReport or None
        Graph findings, when a graph was analysed.
    processing_time : float
        Wall-clock seconds for the full run.

    Returns
    -------
    dict
    """
    validation_summary = summarize_validation(results)
    network = network_report.to_dict() if network_report is not None else None

    summary = {
        "transactions_validated": validation_summary["total"],
        "transactions_rejected": validation_summary["total"] - validation_summary["valid"],
        "transactions_for_review": validation_summary["manual_review"],
        "network_findings": network_report.suspicious_pattern_count() if network_report else 0,
        "processing_time_seconds": round(processing_time, 1),
    }

    return {
        "validation": {
            "results": [r.to_dict() for r in results],
            "summary": validation_summary,
        },
        "network": network,
        "summary": summary,
    }


def report_to_json_string(report: Dict[str, Any], indent: int = 2) -> str:
    """Serialise the report dict to a pretty-printed JSON string."""
    return json.dumps(report, indent=indent, default=str)


def results_to_frame(results: Sequence[ValidationResult]) -> pd.DataFrame:
    """One row per result, for tabular display."""
    rows: List[Dict[str, Any]] = []
    for r in results:
        rows.append(
            {
                "transaction_id": r.transaction_id,
                "is_valid": r.is_valid,
                "approved": r.is_approved(),
                "manual_review": r.requires_manual_review(),
                "fraud_score": r.fraud_score,
                "risk_level": r.risk_level().value,
                "amount_risk": r.risk_breakdown.amount_risk,
                "velocity_risk": r.risk_breakdown.velocity_risk,
                "pattern_risk": r.risk_breakdown.pattern_risk,
                "time_risk": r.risk_breakdown.time_risk,
                "errors": "; ".join(str(e) for e in r.errors),
                "warnings": len(r.warnings),
            }
        )
    return pd.DataFrame(rows)


def build_finding_table(report: "NetworkAnalysisReport") -> List[Dict[str, Any]]:
    """Flat rows, one per network finding.

    Columns: Pattern, Accounts, Amount
    """
    rows: List[Dict[str, Any]] = []
    for flow in report.circular_flows:
        rows.append({
            "Pattern": flow.pattern.value,
            "Accounts": " -> ".join(flow.accounts),
            "Amount": round(flow.total_amount, 2),
        })
    for s in report.structuring:
        rows.append({
            "Pattern": s.pattern.value,
            "Accounts": s.account_id,
            "Amount": round(s.total_amount, 2),
        })
    for f in report.funnel_accounts:
        rows.append({
            "Pattern": f.pattern.value,
            "Accounts": f.account_id,
            "Amount": round(max(f.total_inflow, f.total_outflow), 2),
        })
    for p in report.pass_through:
        rows.append({
            "Pattern": p.pattern.value,
            "Accounts": p.account_id,
            "Amount": round(p.total_inflow, 2),
        })
    return rows


# ── Text rendering ───────────────────────────────────────────────────────────

def format_validation_result(result: ValidationResult) -> str:
    b = result.risk_breakdown
    lines = [
        f"Transaction {result.transaction_id}",
        f"  Valid: {result.is_valid}   Approved: {result.is_approved()}   "
        f"Manual review: {result.requires_manual_review()}",
        f"  Fraud score: {result.fraud_score} ({result.risk_level().value})",
        f"  Breakdown: amount={b.amount_risk} velocity={b.velocity_risk} "
        f"pattern={b.pattern_risk} time={b.time_risk}",
    ]
    if result.errors:
        lines.append("  Errors:")
        lines.extend(f"    - {e}" for e in result.errors)
    if result.warnings:
        lines.append("  Warnings:")
        lines.extend(f"    - {w}" for w in result.warnings)
    if result.compliance_checks:
        checks = ", ".join(
            f"{name}={'pass' if ok else 'fail'}" for name, ok in result.compliance_checks.items()
        )
        lines.append(f"  Compliance: {checks}")
    if result.fraud_assessment is not None and result.fraud_assessment.flags:
        lines.append(f"  Fraud flags ({result.fraud_assessment.score}):")
        lines.extend(
            f"    - {f.flag_type.value}: {f.description}" for f in result.fraud_assessment.flags
        )
    if result.validated_at is not None:
        lines.append(f"  Validated at: {result.validated_at.isoformat()}")
    return "\n".join(lines)


def format_network_report(report: "NetworkAnalysisReport") -> str:
    stats = report.graph_stats
    lines = [
        "Network analysis",
        f"  Accounts: {stats.node_count}   Edges: {stats.edge_count}   "
        f"Transfers: {stats.total_transactions}   Volume: {stats.total_amount:,.2f}",
        f"  Findings: {report.suspicious_pattern_count()}",
    ]
    for row in build_finding_table(report):
        lines.append(f"    [{row['Pattern']}] {row['Accounts']} ({row['Amount']:,.2f})")
    return "\n".join(lines)
