from __future__ import annotations

import json

import pytest

from app import create_app
from compliance.aml import AMLChecker
from utils.config import FraudThresholds, ValidatorConfig

VALID_TX = {
    "transaction_id": "API-0001",
    "transaction_type": "transfer",
    "amount": "250.00",
    "currency": "USD",
    "from_account": "1234-5678-9012-3456",
    "to_account": "6543-2109-8765-4321",
    "timestamp": "2025-06-02T12:00:00Z",
    "user_id": "USER-001",
}

RING = [
    {"from_account": "A", "to_account": "B", "amount": 1000, "timestamp": "2025-06-02T12:00:00Z"},
    {"from_account": "B", "to_account": "C", "amount": 1000, "timestamp": "2025-06-02T12:05:00Z"},
    {"from_account": "C", "to_account": "A", "amount": 1000, "timestamp": "2025-06-02T12:10:00Z"},
]


@pytest.fixture
def client():
    app = create_app(ValidatorConfig(), FraudThresholds())
    app.config["TESTING"] = True
    return app.test_client()


def test_validate_clean_transaction(client):
    resp = client.post("/api/validate", json=VALID_TX)
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["error"] is False
    assert body["approved"] is True
    assert body["risk_level"] == "Low"
    assert body["result"]["transaction_id"] == "API-0001"
    assert body["result"]["compliance_checks"] == {"AML": True}


def test_validator_state_persists_between_requests(client):
    client.post("/api/validate", json=VALID_TX)
    body = client.post("/api/validate", json=VALID_TX).get_json()

    kinds = [e["kind"] for e in body["result"]["errors"]]
    assert kinds == ["DuplicateTransaction"]
    assert body["approved"] is False


def test_validate_rejects_non_object_body(client):
    resp = client.post("/api/validate", data="not json", content_type="text/plain")

    assert resp.status_code == 400
    assert resp.get_json()["error"] is True


def test_validate_reports_missing_field(client):
    payload = dict(VALID_TX)
    del payload["user_id"]

    resp = client.post("/api/validate", json=payload)

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["missing field 'user_id'"]


def test_validate_rejects_unknown_type(client):
    resp = client.post("/api/validate", json=dict(VALID_TX, transaction_type="barter"))
    assert resp.status_code == 400


def test_batch_validation(client):
    second = dict(VALID_TX, transaction_id="API-0002", amount="-10")
    body = client.post("/api/validate/batch", json={"transactions": [VALID_TX, second]}).get_json()

    assert [r["transaction_id"] for r in body["results"]] == ["API-0001", "API-0002"]
    assert body["summary"]["total"] == 2
    assert body["summary"]["valid"] == 1
    assert body["summary"]["error_kinds"] == {"InvalidAmount": 1}


def test_batch_points_at_bad_item(client):
    resp = client.post("/api/validate/batch", json={"transactions": [VALID_TX, {"transaction_id": "X"}]})

    assert resp.status_code == 400
    assert resp.get_json()["errors"] == ["transactions[1]: missing field 'timestamp'"]


def test_batch_requires_list(client):
    assert client.post("/api/validate/batch", json={"transactions": "nope"}).status_code == 400
    assert client.post("/api/validate/batch", json={}).status_code == 400


def test_graph_ingest_and_report(client):
    resp = client.post("/api/graph/transactions", json={"transfers": RING})
    body = resp.get_json()

    assert resp.status_code == 200
    assert body["added"] == 3
    assert body["graph_stats"]["node_count"] == 3

    report = client.get("/api/graph/report").get_json()["report"]
    assert report["summary"]["has_suspicious_activity"] is True
    assert len(report["circular_flows"]) == 3
    assert report["circular_flows"][0]["accounts"] == ["A", "B", "C", "A"]


def test_report_hop_limit(client):
    client.post("/api/graph/transactions", json={"transfers": RING})

    assert client.get("/api/graph/report?max_hops=2").get_json()["report"]["circular_flows"] == []
    assert client.get("/api/graph/report?max_hops=0").status_code == 400


def test_bad_transfer_is_not_ingested(client):
    transfers = RING[:1] + [{"from_account": "X", "to_account": "Y", "amount": "lots", "timestamp": "2025-06-02"}]
    resp = client.post("/api/graph/transactions", json={"transfers": transfers})

    assert resp.status_code == 400
    assert resp.get_json()["errors"][0].startswith("transfers[1]:")
    assert client.get("/api/stats").get_json()["graph"]["node_count"] == 0


def test_account_stats(client):
    client.post("/api/graph/transactions", json={"transfers": RING})

    body = client.get("/api/graph/accounts/A").get_json()
    assert body["account"]["total_outflow"] == 1000.0
    assert body["account"]["incoming_count"] == 1

    assert client.get("/api/graph/accounts/ZZZ").status_code == 404


def test_stats(client):
    client.post("/api/validate", json=VALID_TX)

    body = client.get("/api/stats").get_json()

    assert body["validator"] == {"total_processed": 1, "total_transactions_in_history": 1}
    assert body["config"]["fraud_threshold"] == 70


def test_injected_aml_hook():
    app = create_app(ValidatorConfig(), FraudThresholds(), aml_hook=AMLChecker())
    payload = dict(VALID_TX, to_account="****SANCTIONED-ENTITY-002")

    body = app.test_client().post("/api/validate", json=payload).get_json()

    assert body["result"]["compliance_checks"] == {"AML": False}


def test_validate_rejects_overflowing_amount(client):
    body = json.dumps(dict(VALID_TX, amount="AMOUNT")).replace('"AMOUNT"', "1e400")

    resp = client.post("/api/validate", data=body, content_type="application/json")

    assert resp.status_code == 400
    assert resp.get_json()["error"] is True
    assert "finite" in resp.get_json()["errors"][0]
    assert client.get("/api/stats").get_json()["validator"]["total_processed"] == 0


def test_graph_rejects_nan_amount(client):
    transfers = [dict(RING[0], amount="NaN")]
    resp = client.post("/api/graph/transactions", json={"transfers": transfers})

    assert resp.status_code == 400
    assert resp.get_json()["errors"][0].startswith("transfers[0]:")
