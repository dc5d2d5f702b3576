"""Pydantic schemas for the source records supplied by the persistence layer."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from riskanalytics.engine.records import (
    ControlTestRecord,
    IncidentRecord,
    KRIMeasurement,
    OrganizationProfile,
)


class IncidentIn(BaseModel):
    category: str = Field(min_length=1, max_length=100)
    severity: Literal["low", "medium", "high", "critical"]
    reported_at: datetime
    impact_rating: Optional[float] = Field(default=None, ge=0, le=5)
    incident_id: Optional[str] = None

    def to_record(self) -> IncidentRecord:
        return IncidentRecord(
            category=self.category,
            severity=self.severity,
            reported_at=self.reported_at,
            impact_rating=self.impact_rating,
            incident_id=self.incident_id,
        )


class KRIMeasurementIn(BaseModel):
    kri_name: str = Field(min_length=1, max_length=200)
    actual_value: float
    measured_at: datetime
    breach_level: Literal["none", "warning", "critical"] = "none"
    category: Optional[str] = None

    def to_record(self) -> KRIMeasurement:
        return KRIMeasurement(
            kri_name=self.kri_name,
            actual_value=self.actual_value,
            measured_at=self.measured_at,
            breach_level=self.breach_level,
            category=self.category,
        )


class ControlTestIn(BaseModel):
    effectiveness_rating: Optional[float] = Field(default=None, ge=0, le=10)
    test_description: str = ""
    findings: str = ""
    tested_at: Optional[datetime] = None

    def to_record(self) -> ControlTestRecord:
        return ControlTestRecord(
            effectiveness_rating=self.effectiveness_rating,
            test_description=self.test_description,
            findings=self.findings,
            tested_at=self.tested_at,
        )


class OrganizationIn(BaseModel):
    sector: Optional[str] = None
    size: Optional[Literal["small", "medium", "large", "enterprise"]] = None

    def to_record(self) -> OrganizationProfile:
        return OrganizationProfile(sector=self.sector, size=self.size)
