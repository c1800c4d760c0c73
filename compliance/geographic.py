"""
geographic.py — Country and jurisdiction risk scoring.

Ships a small built-in table of country risks (ISO-3166 alpha-2 keys) and
offshore jurisdictions.  The tables are illustrative, not an authoritative
regulatory list; extend them with ``add_country_risk`` /
``add_jurisdiction_risk``.

Transaction risk weighs the destination above the origin:

    combined = (origin × 40 + destination × 60) // 100

with unknown countries scoring 50.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

log = logging.getLogger("txnrisk.geographic")

UNKNOWN_COUNTRY_SCORE = 50
ORIGIN_WEIGHT = 40
DESTINATION_WEIGHT = 60
HIGH_RISK_SCORE = 70
MEDIUM_RISK_SCORE = 40


class CountryRiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    PROHIBITED = "Prohibited"


@dataclass
class CountryRisk:
    country_code: str
    country_name: str
    risk_level: CountryRiskLevel
    risk_score: int
    factors: List[str] = field(default_factory=list)
    fatf_status: Optional[str] = None
    sanctions_programs: List[str] = field(default_factory=list)

    def is_prohibited(self) -> bool:
        return self.risk_level == CountryRiskLevel.PROHIBITED

    def requires_edd(self) -> bool:
        return self.risk_level in (CountryRiskLevel.HIGH, CountryRiskLevel.PROHIBITED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "country_code": self.country_code,
            "country_name": self.country_name,
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "factors": list(self.factors),
            "fatf_status": self.fatf_status,
            "sanctions_programs": list(self.sanctions_programs),
        }


@dataclass
class JurisdictionRisk:
    jurisdiction: str
    is_tax_haven: bool
    is_offshore: bool
    is_fatf_greylist: bool
    is_fatf_blacklist: bool
    transparency_score: int
    regulatory_strength: int
    overall_risk: CountryRiskLevel

    def risk_score(self) -> int:
        score = 0
        if self.is_tax_haven:
            score += 20
        if self.is_offshore:
            score += 15
        if self.is_fatf_greylist:
            score += 30
        if self.is_fatf_blacklist:
            score += 50
        score += (100 - self.transparency_score) // 4
        score += (100 - self.regulatory_strength) // 4
        return min(100, score)


@dataclass(frozen=True)
class TransactionGeographicRisk:
    origin_country: str
    destination_country: str
    origin_risk: Optional[CountryRisk]
    destination_risk: Optional[CountryRisk]
    combined_score: int
    risk_level: CountryRiskLevel
    is_prohibited: bool
    requires_edd: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origin_country": self.origin_country,
            "destination_country": self.destination_country,
            "origin_risk": self.origin_risk.to_dict() if self.origin_risk else None,
            "destination_risk": self.destination_risk.to_dict() if self.destination_risk else None,
            "combined_score": self.combined_score,
            "risk_level": self.risk_level.value,
            "is_prohibited": self.is_prohibited,
            "requires_edd": self.requires_edd,
        }


# ── Built-in tables ──────────────────────────────────────────────────────────

def _default_country_risks() -> List[CountryRisk]:
    P, H, M, L = (
        CountryRiskLevel.PROHIBITED,
        CountryRiskLevel.HIGH,
        CountryRiskLevel.MEDIUM,
        CountryRiskLevel.LOW,
    )
    return [
        CountryRisk("IR", "Iran", P, 100, ["FATF Blacklist", "US Comprehensive Sanctions"],
                    "Blacklist", ["OFAC Iran Sanctions"]),
        CountryRisk("KP", "North Korea", P, 100, ["FATF Blacklist", "UN Sanctions"],
                    "Blacklist", ["OFAC North Korea", "UN Sanctions"]),
        CountryRisk("SY", "Syria", P, 95, ["US Comprehensive Sanctions", "EU Sanctions"],
                    None, ["OFAC Syria Sanctions"]),
        CountryRisk("MM", "Myanmar", H, 80, ["FATF Greylist", "Targeted Sanctions"], "Greylist"),
        CountryRisk("AF", "Afghanistan", H, 85, ["Conflict Zone", "Targeted Sanctions"]),
        CountryRisk("YE", "Yemen", H, 75, ["Conflict Zone", "Targeted Sanctions"]),
        CountryRisk("PK", "Pakistan", M, 55, ["FATF Greylist"], "Greylist"),
        CountryRisk("US", "United States", L, 10),
        CountryRisk("GB", "United Kingdom", L, 10),
        CountryRisk("DE", "Germany", L, 10),
    ]


def _default_jurisdiction_risks() -> List[JurisdictionRisk]:
    return [
        JurisdictionRisk("Cayman Islands", True, True, False, False, 60, 70, CountryRiskLevel.MEDIUM),
        JurisdictionRisk("British Virgin Islands", True, True, False, False, 50, 60, CountryRiskLevel.MEDIUM),
        JurisdictionRisk("Panama", True, True, True, False, 40, 50, CountryRiskLevel.HIGH),
    ]


# ── Public API ───────────────────────────────────────────────────────────────

class GeographicRiskScorer:
    def __init__(self) -> None:
        self._countries: Dict[str, CountryRisk] = {}
        self._jurisdictions: Dict[str, JurisdictionRisk] = {}
        for risk in _default_country_risks():
            self.add_country_risk(risk)
        for jrisk in _default_jurisdiction_risks():
            self.add_jurisdiction_risk(jrisk)

    def add_country_risk(self, risk: CountryRisk) -> None:
        self._countries[risk.country_code.upper()] = risk

    def add_jurisdiction_risk(self, risk: JurisdictionRisk) -> None:
        self._jurisdictions[risk.jurisdiction] = risk

    def get_country_risk(self, country_code: str) -> Optional[CountryRisk]:
        return self._countries.get(country_code.upper())

    def get_jurisdiction_risk(self, jurisdiction: str) -> Optional[JurisdictionRisk]:
        return self._jurisdictions.get(jurisdiction)

    def calculate_transaction_risk(self, origin: str, destination: str) -> TransactionGeographicRisk:
        origin_risk = self.get_country_risk(origin)
        dest_risk = self.get_country_risk(destination)

        origin_score = origin_risk.risk_score if origin_risk else UNKNOWN_COUNTRY_SCORE
        dest_score = dest_risk.risk_score if dest_risk else UNKNOWN_COUNTRY_SCORE
        combined = (origin_score * ORIGIN_WEIGHT + dest_score * DESTINATION_WEIGHT) // 100

        known = [r for r in (origin_risk, dest_risk) if r is not None]
        is_prohibited = any(r.is_prohibited() for r in known)
        requires_edd = any(r.requires_edd() for r in known)

        if is_prohibited:
            level = CountryRiskLevel.PROHIBITED
        elif combined >= HIGH_RISK_SCORE:
            level = CountryRiskLevel.HIGH
        elif combined >= MEDIUM_RISK_SCORE:
            level = CountryRiskLevel.MEDIUM
        else:
            level = CountryRiskLevel.LOW

        log.debug("Geographic risk %s -> %s: %d (%s)", origin, destination, combined, level.value)
        return TransactionGeographicRisk(
            origin_country=origin,
            destination_country=destination,
            origin_risk=origin_risk,
            destination_risk=dest_risk,
            combined_score=combined,
            risk_level=level,
            is_prohibited=is_prohibited,
            requires_edd=requires_edd,
        )

    def get_prohibited_countries(self) -> List[CountryRisk]:
        return [r for r in self._countries.values() if r.risk_level == CountryRiskLevel.PROHIBITED]

    def get_high_risk_countries(self) -> List[CountryRisk]:
        return [r for r in self._countries.values() if r.risk_level == CountryRiskLevel.HIGH]

    def is_fatf_listed(self, country_code: str) -> Optional[str]:
        """FATF list status ("Blacklist" / "Greylist"), or None."""
        risk = self.get_country_risk(country_code)
        return risk.fatf_status if risk else None
