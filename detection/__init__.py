"""Fraud scoring and transaction-graph pattern detectors."""
