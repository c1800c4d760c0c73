"""
app.py — Flask JSON API for the Transaction Risk Engine.

Run with:  flask --app app run
           (or ``python app.py``; listens on http://localhost:5000)

One ``TransactionValidator`` and one ``NetworkAnalyzer`` live on the app
instance for its whole lifetime.  Requests are not serialised, so run a
single worker thread per app.

Routes
------
POST /api/validate              one transaction → ValidationResult
POST /api/validate/batch        {"transactions": [...]} → results + summary
POST /api/graph/transactions    {"transfers": [...]} → graph stats
GET  /api/graph/report          ?max_hops=N → NetworkAnalysisReport
GET  /api/graph/accounts/<id>   → AccountStats
GET  /api/stats                 → pipeline + graph counters
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from flask import Flask, current_app, jsonify, request

from detection.cycles import DEFAULT_MAX_HOPS
from detection.fraud_scoring import FraudScorer
from detection.network_analysis import NetworkAnalyzer
from utils.config import FraudThresholds, ValidatorConfig
from utils.json_export import summarize_validation
from utils.models import Transaction, parse_amount, parse_timestamp
from utils.validation import ComplianceHook, TransactionValidator

log = logging.getLogger("txnrisk.api")

EXTENSION_KEY = "txnrisk"
_BAD_INPUT = (KeyError, ValueError, TypeError, AttributeError, ArithmeticError)


def _error(messages: List[str], status: int = 400):
    return jsonify({"error": True, "errors": messages}), status


def _state() -> Dict[str, Any]:
    return current_app.extensions[EXTENSION_KEY]


def _describe(exc: Exception) -> str:
    if isinstance(exc, KeyError):
        return f"missing field {exc.args[0]!r}"
    return str(exc) or exc.__class__.__name__


def _parse_transactions(items: Any) -> Tuple[List[Transaction], List[str]]:
    if not isinstance(items, list):
        return [], ["'transactions' must be a list"]
    parsed: List[Transaction] = []
    errors: List[str] = []
    for i, item in enumerate(items):
        try:
            parsed.append(Transaction.from_dict(item))
        except _BAD_INPUT as exc:
            errors.append(f"transactions[{i}]: {_describe(exc)}")
    return parsed, errors


def create_app(
    config: Optional[ValidatorConfig] = None,
    thresholds: Optional[FraudThresholds] = None,
    aml_hook: Optional[ComplianceHook] = None,
) -> Flask:
    """Build the API app.  Configuration defaults to ``TXN_*`` env vars."""
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16 MB max body

    validator = TransactionValidator(
        config or ValidatorConfig.from_env(),
        FraudScorer(thresholds or FraudThresholds.from_env()),
        aml_hook=aml_hook,
    )
    app.extensions[EXTENSION_KEY] = {
        "validator": validator,
        "analyzer": NetworkAnalyzer(),
    }

    # ── Validation ───────────────────────────────────────────────────────

    @app.route("/api/validate", methods=["POST"])
    def validate_transaction():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            return _error(["Request body must be a JSON object."])
        try:
            tx = Transaction.from_dict(payload)
        except _BAD_INPUT as exc:
            return _error([_describe(exc)])

        result = _state()["validator"].validate(tx)
        return jsonify({
            "error": False,
            "result": result.to_dict(),
            "approved": result.is_approved(),
            "requires_manual_review": result.requires_manual_review(),
            "risk_level": result.risk_level().value,
        })

    @app.route("/api/validate/batch", methods=["POST"])
    def validate_batch():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or "transactions" not in payload:
            return _error(["Request body must be a JSON object with a 'transactions' list."])
        transactions, errors = _parse_transactions(payload["transactions"])
        if errors:
            return _error(errors)

        results = _state()["validator"].validate_batch(transactions)
        return jsonify({
            "error": False,
            "results": [r.to_dict() for r in results],
            "summary": summarize_validation(results),
        })

    # ── Graph ────────────────────────────────────────────────────────────

    @app.route("/api/graph/transactions", methods=["POST"])
    def add_transfers():
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict) or not isinstance(payload.get("transfers"), list):
            return _error(["Request body must be a JSON object with a 'transfers' list."])

        parsed = []
        errors: List[str] = []
        for i, item in enumerate(payload["transfers"]):
            try:
                parsed.append((
                    str(item["from_account"]),
                    str(item["to_account"]),
                    float(parse_amount(item["amount"])),
                    parse_timestamp(item["timestamp"]),
                ))
            except _BAD_INPUT as exc:
                errors.append(f"transfers[{i}]: {_describe(exc)}")
        if errors:
            return _error(errors)

        analyzer: NetworkAnalyzer = _state()["analyzer"]
        for from_account, to_account, amount, ts in parsed:
            analyzer.add_transaction(from_account, to_account, amount, ts)
        log.info("Added %d transfer(s) to the graph", len(parsed))
        return jsonify({
            "error": False,
            "added": len(parsed),
            "graph_stats": analyzer.graph.get_stats().to_dict(),
        })

    @app.route("/api/graph/report", methods=["GET"])
    def graph_report():
        max_hops = request.args.get("max_hops", default=DEFAULT_MAX_HOPS, type=int)
        if max_hops is None or max_hops < 1:
            return _error(["'max_hops' must be a positive integer."])
        report = _state()["analyzer"].analyze_all(max_hops=max_hops)
        return jsonify({"error": False, "report": report.to_dict()})

    @app.route("/api/graph/accounts/<account_id>", methods=["GET"])
    def account_stats(account_id: str):
        stats = _state()["analyzer"].get_account_stats(account_id)
        if stats is None:
            return _error([f"Account '{account_id}' not found."], status=404)
        return jsonify({"error": False, "account": stats.to_dict()})

    # ── Stats ────────────────────────────────────────────────────────────

    @app.route("/api/stats", methods=["GET"])
    def stats():
        state = _state()
        return jsonify({
            "error": False,
            "validator": state["validator"].get_stats(),
            "graph": state["analyzer"].graph.get_stats().to_dict(),
            "config": state["validator"].config.to_dict(),
        })

    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    create_app().run(debug=False, port=5000)
