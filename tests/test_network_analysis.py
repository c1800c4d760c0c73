"""Tests for the transaction graph and the four network detectors."""

from __future__ import annotations

from datetime import timedelta

import pytest

from detection.cycles import detect_circular_flows
from detection.network_analysis import NetworkAnalyzer
from detection.shell_network import detect_pass_through
from detection.smurfing import (
    detect_distributor_accounts,
    detect_flow_concentration,
    detect_funnel_accounts,
)
from detection.structuring import detect_structuring
from tests.conftest import BASE_TIME
from utils.csv_input import validate_transfer_csv
from utils.graph_builder import build_graph_from_frame
from utils.models import SuspiciousPattern
from utils.sample_data import account_id, generate_sample_frame


# ── Graph aggregates ────────────────────────────────────────────────────────

def test_parallel_transfers_collapse_into_one_edge(graph):
    graph.add_transaction("A", "B", 100.0, BASE_TIME)
    graph.add_transaction("A", "B", 50.5, BASE_TIME + timedelta(minutes=5))

    edge = graph.edge("A", "B")
    assert edge["total_amount"] == pytest.approx(150.5)
    assert edge["tx_count"] == 2
    assert len(edge["timestamps"]) == 2

    stats = graph.get_account_stats("A")
    assert stats.total_outflow == pytest.approx(150.5)
    assert stats.tx_count == 2
    assert stats.outgoing_count == 1
    assert stats.incoming_count == 0
    assert stats.net_flow == pytest.approx(-150.5)


def test_first_and_last_seen_ignore_arrival_order(graph):
    late, early = BASE_TIME + timedelta(hours=5), BASE_TIME
    graph.add_transaction("A", "B", 10, late)
    graph.add_transaction("A", "C", 10, early)

    stats = graph.get_account_stats("A")
    assert stats.first_seen == early
    assert stats.last_seen == late


def test_self_transfer_counts_twice(graph):
    graph.add_transaction("A", "A", 25.0, BASE_TIME)

    stats = graph.get_account_stats("A")
    assert stats.tx_count == 2
    assert stats.total_inflow == stats.total_outflow == pytest.approx(25.0)


def test_unknown_account_has_no_stats(graph):
    assert graph.get_account_stats("missing") is None
    assert graph.incoming_accounts("missing") == []
    assert graph.outgoing_accounts("missing") == []


def test_graph_stats(add_transfers):
    graph = add_transfers(("A", "B", 100), ("B", "C", 200), ("A", "B", 50))

    stats = graph.get_stats()
    assert stats.node_count == 3
    assert stats.edge_count == 2
    assert stats.total_transactions == 3
    assert stats.total_amount == pytest.approx(350.0)


# ── Circular flows ──────────────────────────────────────────────────────────

def test_three_account_ring(add_transfers):
    graph = add_transfers(("A", "B", 1000.0), ("B", "C", 1000.0), ("C", "A", 1000.0))

    flows = detect_circular_flows(graph, 5)

    assert len(flows) == 3
    first = flows[0]
    assert first.accounts == ["A", "B", "C", "A"]
    assert first.start_account == "A"
    assert first.total_amount == pytest.approx(3000.0)
    assert first.pattern == SuspiciousPattern.CIRCULAR_FLOW


def test_two_account_round_trip_is_not_a_cycle(add_transfers):
    graph = add_transfers(("A", "B", 500), ("B", "A", 500))
    assert detect_circular_flows(graph) == []


def test_cycle_length_bounded_by_max_hops(add_transfers):
    graph = add_transfers(("A", "B", 10), ("B", "C", 10), ("C", "D", 10), ("D", "A", 10))

    assert detect_circular_flows(graph, max_hops=3) == []
    assert len(detect_circular_flows(graph, max_hops=4)) == 4


# ── Structuring ─────────────────────────────────────────────────────────────

def test_transfers_just_under_threshold(add_transfers):
    graph = add_transfers(("A", "B", 9500), ("A", "C", 9200), ("A", "D", 9800))

    results = detect_structuring(graph)

    assert len(results) == 1
    r = results[0]
    assert r.account_id == "A"
    assert sorted(r.transaction_amounts) == [9200, 9500, 9800]
    assert r.total_amount == pytest.approx(28500)
    assert r.threshold_avoided == 10000
    assert r.mean_amount == pytest.approx(9500)


def test_band_excludes_threshold_itself(add_transfers):
    graph = add_transfers(("A", "B", 10000), ("A", "C", 8500), ("A", "D", 9999))

    results = detect_structuring(graph)

    assert len(results) == 0
    assert detect_structuring(graph, min_edges=2)[0].transaction_amounts == [8500, 9999]


def test_edge_average_is_used(add_transfers):
    graph = add_transfers(
        ("A", "B", 9000), ("A", "B", 9800),
        ("A", "C", 9100), ("A", "D", 9200),
    )
    [result] = detect_structuring(graph)
    assert 9400 in result.transaction_amounts


def test_custom_reporting_threshold(add_transfers):
    graph = add_transfers(("A", "B", 4500), ("A", "C", 4600), ("A", "D", 4700))

    assert detect_structuring(graph) == []
    graph.set_reporting_threshold(5000)
    assert len(detect_structuring(graph)) == 1


# ── Funnel / distributor ────────────────────────────────────────────────────

def test_funnel_account(add_transfers):
    transfers = [(f"S{i}", "HUB", 100) for i in range(10)] + [("HUB", "OUT", 950)]
    graph = add_transfers(*transfers)

    funnels = detect_funnel_accounts(graph)

    assert [f.account_id for f in funnels] == ["HUB"]
    assert funnels[0].incoming_count == 10
    assert funnels[0].outgoing_count == 1
    assert funnels[0].pattern == SuspiciousPattern.FUNNEL_ACCOUNT


def test_distributor_account(add_transfers):
    transfers = [("IN", "HUB", 1000)] + [("HUB", f"R{i}", 90) for i in range(6)]
    graph = add_transfers(*transfers)

    distributors = detect_distributor_accounts(graph)

    assert [d.account_id for d in distributors] == ["HUB"]
    assert distributors[0].pattern == SuspiciousPattern.DISTRIBUTOR


def test_flow_concentration_lists_funnels_first(add_transfers):
    transfers = [(f"S{i}", "FUNNEL", 100) for i in range(5)]
    transfers += [("DIST", f"R{i}", 100) for i in range(5)]
    graph = add_transfers(*transfers)

    patterns = [r.pattern for r in detect_flow_concentration(graph)]

    assert patterns == [SuspiciousPattern.FUNNEL_ACCOUNT, SuspiciousPattern.DISTRIBUTOR]


def test_repeat_transfers_do_not_add_counterparties(add_transfers):
    graph = add_transfers(*[("S1", "HUB", 10)] * 8)
    assert detect_funnel_accounts(graph) == []


# ── Pass-through ────────────────────────────────────────────────────────────

def test_relay_account_is_pass_through(add_transfers):
    graph = add_transfers(
        ("A", "B", 1000), ("B", "C", 950),
        ("A", "B", 1000), ("B", "C", 950),
    )

    results = detect_pass_through(graph)

    assert [r.account_id for r in results] == ["B"]
    r = results[0]
    assert r.transaction_count == 4
    assert r.flow_ratio == pytest.approx(0.95)
    assert r.activity_duration == timedelta(minutes=3)
    assert r.activity_duration_hours == 0


def test_low_activity_or_retention_is_not_pass_through(add_transfers):
    graph = add_transfers(("A", "B", 1000), ("B", "C", 990), ("A", "B", 1000))
    assert detect_pass_through(graph) == []

    graph = add_transfers(("A", "B", 1000), ("B", "C", 400), ("B", "C", 100))
    assert detect_pass_through(graph) == []


# ── Analyzer report ─────────────────────────────────────────────────────────

def test_empty_analyzer_reports_nothing(analyzer):
    report = analyzer.analyze_all()

    assert not report.has_suspicious_activity()
    assert report.suspicious_pattern_count() == 0
    assert report.graph_stats.node_count == 0


def test_report_counts_every_finding(analyzer):
    for src, dst in (("A", "B"), ("B", "C"), ("C", "A")):
        analyzer.add_transaction(src, dst, 1000.0, BASE_TIME)

    report = analyzer.analyze_all()
    data = report.to_dict()

    assert report.has_suspicious_activity()
    assert report.suspicious_pattern_count() == 3
    assert report.flagged_accounts() == ["A", "B", "C"]
    assert data["summary"]["suspicious_pattern_count"] == 3
    for key in ("circular_flows", "structuring", "funnel_accounts", "pass_through",
                "graph_stats", "analysis_time"):
        assert key in data


def test_analyzer_reflects_later_transfers(analyzer):
    analyzer.add_transaction("A", "B", 100, BASE_TIME)
    assert not analyzer.analyze_all().has_suspicious_activity()

    analyzer.add_transaction("B", "C", 100, BASE_TIME)
    analyzer.add_transaction("C", "A", 100, BASE_TIME)
    assert analyzer.analyze_all().has_suspicious_activity()


def test_sample_frame_patterns_are_found():
    ok, errors, cleaned = validate_transfer_csv(generate_sample_frame())
    assert ok, errors

    analyzer = NetworkAnalyzer(build_graph_from_frame(cleaned))
    report = analyzer.analyze_all()

    ring_starts = {flow.start_account for flow in report.circular_flows}
    assert account_id("MULA", 1) in ring_starts
    assert account_id("MULC", 1) in ring_starts
    assert account_id("STRC", 1) in {s.account_id for s in report.structuring}

    concentration = {(f.account_id, f.pattern) for f in report.funnel_accounts}
    assert (account_id("HUBI", 1), SuspiciousPattern.FUNNEL_ACCOUNT) in concentration
    assert (account_id("HUBO", 1), SuspiciousPattern.DISTRIBUTOR) in concentration

    assert account_id("SHEL", 2) in {p.account_id for p in report.pass_through}
