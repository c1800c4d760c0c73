from __future__ import annotations

import json

import pytest

import run_local
from utils.sample_data import sample_csv_bytes


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ("TXN_FRAUD_THRESHOLD", "TXN_ENABLE_AML_CHECK", "TXN_MAX_TRANSACTIONS_PER_WINDOW"):
        monkeypatch.delenv(name, raising=False)


def test_sample_run_prints_both_sections(capsys):
    assert run_local.main(["--sample"]) == 0

    out = capsys.readouterr().out
    assert "TRANSACTION VALIDATION" in out
    assert "NETWORK ANALYSIS" in out
    assert "Analysis complete!" in out


def test_json_report_is_written(tmp_path):
    assert run_local.main(["--sample", "--json", "--aml"]) == 0

    report = json.loads((tmp_path / "risk_report.json").read_text())
    assert report["validation"]["summary"]["total"] == 8
    assert report["network"]["summary"]["has_suspicious_activity"] is True


def test_csv_input(tmp_path, capsys):
    path = tmp_path / "transfers.csv"
    path.write_bytes(sample_csv_bytes())

    assert run_local.main([str(path)]) == 0
    assert "Loaded" in capsys.readouterr().out


def test_missing_file(capsys):
    assert run_local.main(["does-not-exist.csv"]) == 1
    assert "File not found" in capsys.readouterr().out


def test_invalid_csv(tmp_path, capsys):
    path = tmp_path / "bad.csv"
    path.write_text("sender_id,receiver_id\nA,B\n")

    assert run_local.main([str(path)]) == 1
    assert "Missing required columns" in capsys.readouterr().out


def test_bad_configuration(monkeypatch):
    monkeypatch.setenv("TXN_FRAUD_THRESHOLD", "500")
    assert run_local.main(["--sample"]) == 2
