"""
Source records consumed by the analytics engine.

These are supplied by the persistence layer and are read-only to the
engine. Timestamps may be naive (treated as UTC) or timezone-aware.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

SEVERITY_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")
BREACH_LEVELS: tuple[str, ...] = ("none", "warning", "critical")


def as_utc(ts: datetime) -> datetime:
    """Ensure timezone-aware comparison."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IncidentRecord:
    """A logged incident."""
    category: str
    severity: str                        # low | medium | high | critical
    reported_at: datetime
    impact_rating: Optional[float] = None  # 1-5, used by forward predictions
    incident_id: Optional[str] = None


@dataclass(frozen=True)
class KRIMeasurement:
    """A single key-risk-indicator reading."""
    kri_name: str
    actual_value: float
    measured_at: datetime
    breach_level: str = "none"           # none | warning | critical
    category: Optional[str] = None


@dataclass(frozen=True)
class ControlTestRecord:
    """Result of a control effectiveness test."""
    effectiveness_rating: Optional[float]  # 0-10, higher = more effective
    test_description: str = ""
    findings: str = ""
    tested_at: Optional[datetime] = None

    def mentions(self, keyword: str) -> bool:
        """Case-insensitive keyword match against description and findings."""
        needle = keyword.lower()
        return needle in (self.test_description or "").lower() or needle in (self.findings or "").lower()


@dataclass(frozen=True)
class OrganizationProfile:
    """Sector and size used for benchmark lookups."""
    sector: Optional[str] = None
    size: Optional[str] = None
