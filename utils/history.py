"""
history.py — Per-key chronological transaction log for windowed aggregation.

Each component that needs velocity-style aggregates (the validation pipeline
keyed by user, the fraud scorer keyed by account) owns one ``HistoryStore``.
Entries are only ever appended; nothing expires on its own.  Callers evict
explicitly with ``evict_before``.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from utils.models import HistoryEntry

log = logging.getLogger("txnrisk.history")


class HistoryStore:
    """Append-only ``key -> [HistoryEntry, ...]`` log."""

    def __init__(self) -> None:
        self._entries: Dict[str, List[HistoryEntry]] = defaultdict(list)

    def append(self, key: str, timestamp: datetime, amount: Decimal) -> HistoryEntry:
        entry = HistoryEntry(key=key, timestamp=timestamp, amount=amount)
        self._entries[key].append(entry)
        return entry

    def entries(self, key: str) -> Tuple[HistoryEntry, ...]:
        if key not in self._entries:
            return ()
        return tuple(self._entries[key])

    def last(self, key: str) -> Optional[HistoryEntry]:
        bucket = self._entries.get(key)
        if not bucket:
            return None
        return bucket[-1]

    def since(self, key: str, start: datetime, inclusive: bool = True) -> List[HistoryEntry]:
        """Entries for *key* at or after *start* (strictly after when not inclusive).

        This is a full scan of the key's log on every call.
        """
        bucket = self._entries.get(key, [])
        if inclusive:
            return [e for e in bucket if e.timestamp >= start]
        return [e for e in bucket if e.timestamp > start]

    def evict_before(self, cutoff: datetime, inclusive: bool = False) -> int:
        """Drop entries older than *cutoff* from every key.

        With ``inclusive=True`` entries stamped exactly at *cutoff* go too.
        Keys left without entries are removed.  Returns the number of
        entries dropped.
        """
        removed = 0
        for key in list(self._entries):
            bucket = self._entries[key]
            if inclusive:
                kept = [e for e in bucket if e.timestamp > cutoff]
            else:
                kept = [e for e in bucket if e.timestamp >= cutoff]
            removed += len(bucket) - len(kept)
            if kept:
                self._entries[key] = kept
            else:
                del self._entries[key]

        if removed:
            log.info("Evicted %d history entries older than %s", removed, cutoff.isoformat())
        return removed

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())
