"""
sanctions.py — Name screening against sanctions lists.

Matching is case-insensitive (names are upper-cased) and ranked by
confidence:

  exact     1.00   name equals the listed name
  alias     0.95   name equals one of the entity's aliases
  fuzzy     ≥ threshold   0.4 × character overlap + 0.6 × word Jaccard
  partial   0.70–0.90     one name contains the other (once per entity)

The built-in entries are placeholders; this module never calls an
external watchlist service.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

log = logging.getLogger("txnrisk.sanctions")

# Built-in list identifiers; any other string names a custom list.
OFAC = "OFAC SDN"
EU = "EU Consolidated"
UN = "UN Security Council"
UK_OFSI = "UK OFSI"

DEFAULT_FUZZY_THRESHOLD = 0.85
HIGH_CONFIDENCE = 0.9


class MatchType(str, Enum):
    EXACT = "Exact"
    PARTIAL = "Partial"
    FUZZY = "Fuzzy"
    ALIAS = "Alias"


@dataclass(frozen=True)
class SanctionsMatch:
    matched_name: str
    list_name: str
    match_type: MatchType
    confidence: float
    entry_id: str
    program: Optional[str] = None
    country: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched_name": self.matched_name,
            "list": self.list_name,
            "match_type": self.match_type.value,
            "confidence": round(self.confidence, 4),
            "entry_id": self.entry_id,
            "program": self.program,
            "country": self.country,
        }


@dataclass(frozen=True)
class SanctionsResult:
    screened_value: str
    matches: List[SanctionsMatch]
    lists_checked: List[str]
    screening_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_match(self) -> bool:
        return bool(self.matches)

    def has_high_confidence_match(self) -> bool:
        return any(m.confidence >= HIGH_CONFIDENCE for m in self.matches)

    def highest_confidence(self) -> Optional[SanctionsMatch]:
        return self.matches[0] if self.matches else None

    def matches_above_threshold(self, threshold: float) -> List[SanctionsMatch]:
        return [m for m in self.matches if m.confidence >= threshold]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "screened_value": self.screened_value,
            "is_match": self.is_match,
            "matches": [m.to_dict() for m in self.matches],
            "lists_checked": list(self.lists_checked),
            "screening_time": self.screening_time.isoformat(),
        }


@dataclass
class SanctionedEntity:
    entry_id: str
    name: str
    aliases: List[str]
    list_name: str
    program: Optional[str] = None
    country: Optional[str] = None


def name_similarity(s1: str, s2: str) -> float:
    """Blend of character overlap (40%) and word-set Jaccard (60%)."""
    if not s1 or not s2:
        return 0.0
    common_chars = sum(1 for c in s1 if c in s2)
    char_similarity = common_chars / max(len(s1), len(s2))

    words1, words2 = set(s1.split()), set(s2.split())
    union = words1 | words2
    word_similarity = len(words1 & words2) / len(union) if union else 0.0

    return char_similarity * 0.4 + word_similarity * 0.6


# ── Public API ───────────────────────────────────────────────────────────────

class SanctionsScreener:
    def __init__(self, fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD) -> None:
        self.entities: List[SanctionedEntity] = []
        self.enabled_lists: Set[str] = {OFAC, EU, UN}
        self.fuzzy_threshold = DEFAULT_FUZZY_THRESHOLD
        self.set_fuzzy_threshold(fuzzy_threshold)
        self._load_default_entries()

    def _load_default_entries(self) -> None:
        self.entities.extend([
            SanctionedEntity("OFAC-001", "SANCTIONED ENTITY ONE", ["ENTITY ONE", "E1 LTD"],
                             OFAC, "SDGT", "XX"),
            SanctionedEntity("EU-001", "RESTRICTED COMPANY EU", ["RC EU"],
                             EU, "COUNCIL REGULATION", "YY"),
            SanctionedEntity("UN-001", "UN LISTED ORGANIZATION", ["ULO"],
                             UN, "1267", None),
        ])

    def enable_list(self, list_name: str) -> None:
        self.enabled_lists.add(list_name)

    def disable_list(self, list_name: str) -> None:
        self.enabled_lists.discard(list_name)

    def set_fuzzy_threshold(self, threshold: float) -> None:
        self.fuzzy_threshold = min(1.0, max(0.0, float(threshold)))

    def add_entity(self, name: str, aliases: Iterable[str], list_name: str) -> SanctionedEntity:
        entity = SanctionedEntity(
            entry_id=f"{list_name}-{len(self.entities)}",
            name=name.upper(),
            aliases=[a.upper() for a in aliases],
            list_name=list_name,
        )
        self.entities.append(entity)
        return entity

    def screen(self, name: str) -> SanctionsResult:
        upper = name.upper()
        matches: List[SanctionsMatch] = []

        for entity in self.entities:
            if entity.list_name not in self.enabled_lists:
                continue

            if entity.name == upper:
                matches.append(self._match(entity, MatchType.EXACT, 1.0))
                continue

            if any(alias.upper() == upper for alias in entity.aliases):
                matches.append(self._match(entity, MatchType.ALIAS, 0.95))

            similarity = name_similarity(upper, entity.name)
            if similarity >= self.fuzzy_threshold:
                matches.append(self._match(entity, MatchType.FUZZY, similarity))

            if upper and (upper in entity.name or entity.name in upper):
                already = any(m.entry_id == entity.entry_id for m in matches)
                if not already:
                    ratio = min(len(upper), len(entity.name)) / max(len(upper), len(entity.name))
                    matches.append(self._match(entity, MatchType.PARTIAL, 0.7 + 0.2 * ratio))

        matches.sort(key=lambda m: m.confidence, reverse=True)
        if matches:
            log.info("Sanctions screening hit for %r: %d match(es)", name, len(matches))
        return SanctionsResult(
            screened_value=name,
            matches=matches,
            lists_checked=sorted(self.enabled_lists),
        )

    def screen_batch(self, names: Iterable[str]) -> List[SanctionsResult]:
        return [self.screen(n) for n in names]

    @staticmethod
    def _match(entity: SanctionedEntity, match_type: MatchType, confidence: float) -> SanctionsMatch:
        return SanctionsMatch(
            matched_name=entity.name,
            list_name=entity.list_name,
            match_type=match_type,
            confidence=confidence,
            entry_id=entity.entry_id,
            program=entity.program,
            country=entity.country,
        )
