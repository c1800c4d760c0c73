"""
run_local.py — Command-line interface for the Transaction Risk Engine.

Run with:  python run_local.py [transfers.csv] [--json] [--aml]
           python run_local.py --sample    (use built-in sample data)

Validates transactions through the scoring pipeline, builds the transfer
graph, prints the findings and, with ``--json``, writes ``risk_report.json``.
``--aml`` swaps the placeholder compliance hook for the rule-based
``AMLChecker``.
"""

from __future__ import annotations

import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from compliance.aml import AMLChecker
from detection.fraud_scoring import FraudScorer
from detection.network_analysis import NetworkAnalysisReport, NetworkAnalyzer
from utils.config import FraudThresholds, ValidatorConfig
from utils.csv_input import frame_to_transactions, load_transfer_csv, quick_stats, validate_transfer_csv
from utils.json_export import (
    format_network_report,
    format_validation_result,
    generate_report,
    report_to_json_string,
    summarize_validation,
)
from utils.results import ValidationResult
from utils.sample_data import generate_sample_frame, sample_transactions
from utils.validation import TransactionValidator

REPORT_PATH = Path("risk_report.json")
MAX_PRINTED_RESULTS = 20


def print_separator(title: str = "") -> None:
    """Print a visual separator."""
    if title:
        print(f"\n{'='*60}\n  {title}\n{'='*60}")
    else:
        print("-" * 60)


def print_validation(results: List[ValidationResult]) -> None:
    print_separator("TRANSACTION VALIDATION")
    for result in results[:MAX_PRINTED_RESULTS]:
        print(format_validation_result(result))
        print_separator()
    if len(results) > MAX_PRINTED_RESULTS:
        print(f"  ... {len(results) - MAX_PRINTED_RESULTS} more result(s) omitted")

    summary = summarize_validation(results)
    print(f"  Validated:      {summary['total']}")
    print(f"  Valid:          {summary['valid']}")
    print(f"  Approved:       {summary['approved']}")
    print(f"  Manual review:  {summary['manual_review']}")
    for level, count in summary["risk_levels"].items():
        print(f"  {level + ':':<15} {count}")


def print_network(report: NetworkAnalysisReport) -> None:
    print_separator("NETWORK ANALYSIS")
    print(format_network_report(report))
    if not report.has_suspicious_activity():
        print("No suspicious network activity detected.")


def main(argv: Optional[List[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print_separator("Transaction Risk Engine")

    try:
        config = ValidatorConfig.from_env()
        thresholds = FraudThresholds.from_env()
    except ValueError as exc:
        print(f"[ERROR] Invalid configuration: {exc}")
        return 2

    positional = [a for a in args if not a.startswith("--")]
    if not positional or "--sample" in args:
        print("[INFO] Using built-in sample data with embedded risk patterns...")
        _, _, frame = validate_transfer_csv(generate_sample_frame())
        transactions = sample_transactions()
    else:
        csv_path = Path(positional[0])
        if not csv_path.exists():
            print(f"[ERROR] File not found: {csv_path}")
            return 1
        print(f"[INFO] Loading CSV: {csv_path}")
        is_valid, errors, frame = load_transfer_csv(csv_path)
        if not is_valid:
            print("\n[ERROR] Invalid CSV data:")
            for err in errors:
                print(f"  - {err}")
            return 1
        transactions = frame_to_transactions(frame)

    stats = quick_stats(frame)
    print(f"[OK] Loaded {stats['total_transactions']} transfers across {stats['unique_accounts']} accounts")

    start_time = time.time()

    aml_hook = AMLChecker() if "--aml" in args else None
    validator = TransactionValidator(config, FraudScorer(thresholds), aml_hook=aml_hook)
    results = validator.validate_batch(transactions)

    analyzer = NetworkAnalyzer()
    analyzer.add_frame(frame)
    report = analyzer.analyze_all()

    elapsed = time.time() - start_time

    print_validation(results)
    print_network(report)

    if "--json" in args:
        payload = generate_report(results, report, processing_time=elapsed)
        REPORT_PATH.write_text(report_to_json_string(payload))
        print(f"\n[OK] JSON report saved to: {REPORT_PATH}")

    print("\n" + "=" * 60)
    print("  Analysis complete!")
    print("=" * 60 + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
