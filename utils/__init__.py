"""Shared records, configuration, history, validation pipeline and I/O helpers."""
