"""Pydantic schemas for anomaly, correlation, scoring, adjustment and prediction requests."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from riskanalytics.engine.anomaly import HistoricalSeries
from riskanalytics.engine.scoring import MarketConditions
from riskanalytics.schemas.records import (
    ControlTestIn,
    IncidentIn,
    KRIMeasurementIn,
    OrganizationIn,
)


class HistoricalPointIn(BaseModel):
    timestamp: datetime
    value: float


class ValueAnomalyRequest(BaseModel):
    metric: str = Field(min_length=1, max_length=200)
    current_value: float
    history: list[HistoricalPointIn] = Field(default_factory=list)

    def to_series(self) -> HistoricalSeries:
        return HistoricalSeries.from_pairs(self.metric, ((p.timestamp, p.value) for p in self.history))


class CountAnomalyRequest(BaseModel):
    """Either explicit per-day counts or raw incidents to bucket by day."""
    metric: str = "Daily Incident Count"
    daily_counts: Optional[list[int]] = None
    incidents: Optional[list[IncidentIn]] = None


class AnomalyScanRequest(BaseModel):
    """Recent KRI readings are checked against each KRI's own history."""
    kri_measurements: list[KRIMeasurementIn] = Field(default_factory=list)
    incidents: list[IncidentIn] = Field(default_factory=list)
    as_of: Optional[datetime] = None


class CorrelationRequest(BaseModel):
    incidents: list[IncidentIn] = Field(default_factory=list)
    lookback_days: Optional[int] = Field(default=None, gt=0)
    as_of: Optional[datetime] = None


class ScoreAllRequest(BaseModel):
    incidents: list[IncidentIn] = Field(default_factory=list)
    kri_measurements: list[KRIMeasurementIn] = Field(default_factory=list)
    control_tests: list[ControlTestIn] = Field(default_factory=list)
    organization: Optional[OrganizationIn] = None
    as_of: Optional[datetime] = None


class ScoreRequest(ScoreAllRequest):
    category: str = Field(min_length=1, max_length=100)


class PredictionRequest(BaseModel):
    incidents: list[IncidentIn] = Field(default_factory=list)
    kri_measurements: list[KRIMeasurementIn] = Field(default_factory=list)
    time_horizon: Literal["week", "month", "quarter"] = "month"
    as_of: Optional[datetime] = None


class MarketConditionsIn(BaseModel):
    volatility: Literal["low", "normal", "high"] = "normal"
    interest_rates: str = Field(default="stable", max_length=50)

    def to_record(self) -> MarketConditions:
        return MarketConditions(volatility=self.volatility, interest_rates=self.interest_rates)


class AdjustmentRequest(ScoreAllRequest):
    """Scores every category from the records, then adjusts for conditions."""
    market: MarketConditionsIn = Field(default_factory=MarketConditionsIn)
    regulatory_changes: list[str] = Field(default_factory=list)
