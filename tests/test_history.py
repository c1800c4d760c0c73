from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from tests.conftest import BASE_TIME
from utils.history import HistoryStore


def _store():
    store = HistoryStore()
    for minutes, amount in ((0, "10"), (10, "20"), (20, "30")):
        store.append("acct", BASE_TIME + timedelta(minutes=minutes), Decimal(amount))
    store.append("other", BASE_TIME, Decimal("5"))
    return store


def test_entries_keep_append_order():
    store = _store()

    assert [e.amount for e in store.entries("acct")] == [Decimal("10"), Decimal("20"), Decimal("30")]
    assert store.last("acct").amount == Decimal("30")
    assert len(store) == 4
    assert "other" in store


def test_unknown_key_is_empty():
    store = HistoryStore()

    assert store.entries("nobody") == ()
    assert store.last("nobody") is None
    assert store.since("nobody", BASE_TIME) == []
    assert "nobody" not in store


def test_since_inclusive_and_exclusive():
    store = _store()
    edge = BASE_TIME + timedelta(minutes=10)

    assert len(store.since("acct", edge)) == 2
    assert len(store.since("acct", edge, inclusive=False)) == 1


def test_evict_before_keeps_entries_at_cutoff():
    store = _store()

    removed = store.evict_before(BASE_TIME + timedelta(minutes=10))

    assert removed == 2
    assert [e.amount for e in store.entries("acct")] == [Decimal("20"), Decimal("30")]
    assert "other" not in store


def test_inclusive_eviction_drops_entries_at_cutoff():
    store = _store()

    removed = store.evict_before(BASE_TIME + timedelta(minutes=10), inclusive=True)

    assert removed == 3
    assert len(store) == 1
